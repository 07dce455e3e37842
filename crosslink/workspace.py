from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from crosslink.builder import detect_relationships
from crosslink.config import DetectionConfig
from crosslink.errors import CrossLinkUserError
from crosslink.join import FIXED_POINT, join_datasets
from crosslink.models.dataset import Dataset, Relationship, RelationshipType
from crosslink.models.sinks import Sink
from crosslink.models.sources import Source
from crosslink.schema import dataset_to_ir
from crosslink.util import Row

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    """The working set of datasets.

    Any change to the set re-runs relationship detection from scratch; relationships are
    never patched individually, so nothing stale survives a removal.

    `checkpoints` records add, remove and export events, keeping only the newest
    `max_checkpoints` of them.
    """
    config: DetectionConfig = field(default_factory=DetectionConfig)
    chaining: str = FIXED_POINT
    checkpoints: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list)
    max_checkpoints: int = 100
    _datasets: List[Dataset] = field(default_factory=list, init=False, repr=False)

    @property
    def datasets(self) -> List[Dataset]:
        return list(self._datasets)

    @property
    def relationships(self) -> List[Relationship]:
        """All attached relationships, flattened in dataset order."""
        return [r for ds in self._datasets for r in ds.relationships]

    def get(self, dataset_id: str) -> Dataset:
        for ds in self._datasets:
            if ds.id == dataset_id:
                return ds
        raise CrossLinkUserError(
            "E_WORKSPACE_UNKNOWN_ID",
            f"No dataset with id '{dataset_id}' in the workspace.",
            hint="Known ids: " + (", ".join(ds.id for ds in self._datasets) or "(none)"),
        )

    def add(self, dataset: Dataset) -> Dataset:
        if not isinstance(dataset, Dataset):
            raise CrossLinkUserError(
                "E_WORKSPACE_ADD",
                "Workspace.add expects a Dataset.",
                hint="Build one with Dataset.from_rows(...) or use Workspace.load_csv(path).",
            )
        if any(ds.id == dataset.id for ds in self._datasets):
            raise CrossLinkUserError(
                "E_WORKSPACE_DUPLICATE_ID",
                f"A dataset with id '{dataset.id}' is already in the workspace.",
                hint="Remove it first, or give the new dataset a different id.",
            )
        self._recompute(self._datasets + [dataset], ("add", dataset))
        return self.get(dataset.id)

    def load_csv(self, uri: Union[str, Path], *, name: Optional[str] = None, **load_options: Any) -> Dataset:
        return self.add(Source(uri, name=name).load(**load_options))

    def remove(self, dataset_id: str) -> Dataset:
        removed = self.get(dataset_id)
        self._recompute([ds for ds in self._datasets if ds.id != dataset_id], ("remove", removed))
        return removed

    def _recompute(self, datasets: List[Dataset], event: Tuple[str, Dataset]) -> None:
        kind, ds = event
        self._datasets = detect_relationships(datasets, self.config)
        rels = self.relationships
        logger.info("workspace %s %s: %d dataset(s), %d relationship(s)", kind, ds.name, len(datasets), len(rels))
        self._checkpoint(
            kind,
            {
                "dataset": ds.id,
                "name": ds.name,
                "datasets": len(self._datasets),
                "relationships": len(rels),
            },
        )

    def _checkpoint(self, kind: str, info: Dict[str, Any]) -> None:
        self.checkpoints.append((kind, info))
        if len(self.checkpoints) > self.max_checkpoints:
            del self.checkpoints[: len(self.checkpoints) - self.max_checkpoints]

    def joined_rows(self) -> List[Row]:
        return join_datasets(self._datasets, self.relationships, chaining=self.chaining)

    def summary(self) -> Dict[str, Any]:
        """Relationship counts grouped by type, plus the mean confidence."""
        rels = self.relationships
        counts = Counter(r.type for r in rels)
        return {
            "datasets": len(self._datasets),
            "total": len(rels),
            "by_type": {t.value: counts.get(t, 0) for t in RelationshipType},
            "average_confidence": sum(r.confidence for r in rels) / len(rels) if rels else 0.0,
        }

    def export(self, uri: Union[str, Path], **options: Any) -> int:
        """Write the joined rows to a CSV file; returns the number of rows written."""
        sink = Sink(uri, options=options)
        rows = self.joined_rows()
        sink.write_rows(rows)
        self._checkpoint("export", {"uri": sink.uri, "rows": len(rows)})
        return len(rows)

    def to_ir(self) -> Dict[str, Any]:
        ir = self.config.to_ir()
        ir["chaining"] = self.chaining
        ir["datasets"] = [dataset_to_ir(ds) for ds in self._datasets]
        return ir

    def __str__(self) -> str:
        parts = [f"Workspace(datasets={len(self._datasets)}, relationships={len(self.relationships)})"]
        for ds in self._datasets:
            parts.append(f"  - {ds}")
        return "\n".join(parts)
