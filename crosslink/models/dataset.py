from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from crosslink.errors import CrossLinkUserError
from crosslink.util import Row, column_union


class RelationshipType(str, Enum):
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class Relationship:
    """An inferred association between a column of one dataset and a column of another.

    Stored on the source dataset, but describes an undirected pairing of the two columns.
    """
    source_file: str
    target_file: str
    source_column: str
    target_column: str
    type: RelationshipType
    confidence: float
    matching_rows: int
    id: str = field(default_factory=lambda: _new_id("rel"))

    def __str__(self) -> str:
        return (
            f"Relationship({self.source_file}.{self.source_column} <-> "
            f"{self.target_file}.{self.target_column}, type={self.type.value}, "
            f"confidence={self.confidence:.2f}, matching_rows={self.matching_rows})"
        )


@dataclass(frozen=True)
class Dataset:
    """One parsed table held in memory.

    Datasets are snapshots: detection returns new records rather than patching these.
    """
    id: str
    name: str
    rows: List[Row]
    columns: List[str]
    relationships: List[Relationship] = field(default_factory=list)
    uploaded_at: datetime = field(default_factory=datetime.now, compare=False)
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise CrossLinkUserError(
                "E_DATASET_NAME",
                "Dataset name must be a non-empty string.",
                hint="Example: Dataset.from_rows('orders.csv', rows)",
            )
        dupes = sorted(c for c, n in Counter(self.columns).items() if n > 1)
        if dupes:
            raise CrossLinkUserError(
                "E_DATASET_COLUMNS",
                f"Dataset '{self.name}' declares duplicate column(s): {dupes}.",
                hint="Column names must be unique within a dataset; rename them before loading.",
            )

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @classmethod
    def from_rows(
        cls,
        name: str,
        rows: Sequence[Row],
        columns: Optional[Sequence[str]] = None,
        *,
        id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "Dataset":
        rows = [dict(r) for r in rows]
        cols = list(columns) if columns is not None else column_union(rows)
        return cls(
            id=id or _new_id("csv"),
            name=name,
            rows=rows,
            columns=cols,
            metadata=dict(metadata or {}),
        )

    def with_relationships(self, relationships: Sequence[Relationship]) -> "Dataset":
        return replace(self, relationships=list(relationships))

    def __str__(self) -> str:
        return (
            f'Dataset("{self.name}")  id={self.id}  rows={self.row_count}  '
            f"columns={len(self.columns)}  relationships={len(self.relationships)}"
        )
