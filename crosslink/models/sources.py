from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import petl as etl
from frictionless import Detector, Resource

from crosslink.errors import CrossLinkUserError
from crosslink.models.dataset import Dataset
from crosslink.util import Row, _infer_type_from_uri, _is_probably_url, is_null

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^\s*-?\d+\s*$")
_FLOAT_RE = re.compile(r"^\s*-?(\d+\.?|\.\d+|\d+\.\d+)([eE][-+]?\d+)?\s*$")

# rows assumed for the progress estimate; it stays below 90 until the file is done
_PROGRESS_ROWS = 10_000


@dataclass(frozen=True)
class ParseProgress:
    loaded: int
    total_bytes: Optional[int]
    percentage: float = 0.0
    finished: bool = False


def _dynamic_value(v: Any) -> Any:
    """Type a raw CSV cell: blanks become None, then booleans, integers and floats are recognized."""
    if not isinstance(v, str):
        return v
    s = v.strip()
    if s == "":
        return None
    low = s.lower()
    if low == "true":
        return True
    if low == "false":
        return False
    if _INT_RE.match(s):
        return int(s)
    if _FLOAT_RE.match(s):
        return float(s)
    return v


@dataclass(frozen=True)
class Source:
    uri: str
    type: Optional[str] = None
    name: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    # --- preview bounds ---
    preview_rows: int = 5
    preview_max_chars: int = 6_000

    _inferred_schema: Optional[Dict[str, Any]] = field(default=None, init=False, repr=False)
    _schema_warnings: List[str] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.uri, os.PathLike):
            object.__setattr__(self, "uri", os.fspath(self.uri))
        if not isinstance(self.uri, str) or not self.uri:
            raise CrossLinkUserError(
                "E_SOURCE_URI_TYPE",
                f"Source uri must be a non-empty string or path, got {type(self.uri).__name__}.",
                hint="Example: Source('orders.csv') or Source(Path('data') / 'orders.csv').",
            )

        inferred = self.type or _infer_type_from_uri(self.uri)
        object.__setattr__(self, "type", inferred)
        if self.type is None:
            raise CrossLinkUserError(
                "E_SOURCE_TYPE_INFER",
                f"Could not infer Source type from uri='{self.uri}'.",
                hint="Provide type explicitly, e.g. Source('file.txt', type='csv').",
            )
        if self.type != "csv":
            raise CrossLinkUserError(
                "E_SOURCE_TYPE_UNSUPPORTED",
                f"Source type '{self.type}' is not supported.",
                hint="Currently supported source types: csv.",
            )

        if not _is_probably_url(self.uri) and not Path(self.uri).is_file():
            raise CrossLinkUserError(
                "E_SOURCE_NOT_FOUND",
                f"Source file not found: '{self.uri}'.",
                hint="Check the path, or pass an absolute path.",
            )

        if self.name is None:
            object.__setattr__(self, "name", Path(self.uri).name)

    # ---------- PETL table (lazy) ----------
    def table(self):
        """
        Return a PETL table. PETL is lazy for many sources; reading occurs on iteration.
        """
        try:
            return etl.fromcsv(self.uri, **self.options)
        except FileNotFoundError as e:
            raise CrossLinkUserError(
                "E_SOURCE_NOT_FOUND",
                f"Source file not found: '{self.uri}'.",
                hint="Check the path, or pass an absolute path.",
            ) from e
        except Exception as e:
            raise CrossLinkUserError(
                "E_SOURCE_READ",
                f"Could not open source '{self.uri}': {type(e).__name__}: {e}",
                hint="Check file permissions and Source options (delimiter/encoding).",
            ) from e

    def head(self, n: Optional[int] = None):
        n = n or self.preview_rows
        return etl.head(self.table(), n)

    def _preview_str(self) -> str:
        """
        Bounded preview string. Does NOT load full dataset.
        """
        s = str(etl.look(self.head(self.preview_rows)))
        if len(s) > self.preview_max_chars:
            s = s[: self.preview_max_chars] + "\n… (truncated)"
        return s

    # ---------- Loading ----------
    def load(
        self,
        *,
        dynamic_typing: bool = True,
        chunk_size: int = 10_000,
        on_progress: Optional[Callable[[ParseProgress], None]] = None,
        yield_point: Optional[Callable[[], None]] = None,
    ) -> Dataset:
        """Read the whole file into a Dataset.

        Rows are consumed in chunks of `chunk_size`; between chunks `on_progress` receives the
        running row count and `yield_point` is called so a host loop can stay responsive.
        Blank lines are skipped. Short rows simply lack the trailing keys; surplus cells are dropped.
        """
        if not isinstance(chunk_size, int) or isinstance(chunk_size, bool) or chunk_size < 1:
            raise CrossLinkUserError(
                "E_SOURCE_CHUNK_SIZE",
                f"chunk_size must be a positive integer, got {chunk_size!r}.",
                hint="Example: Source('orders.csv').load(chunk_size=5000)",
            )

        tbl = self.table()
        try:
            header = [str(h) for h in etl.header(tbl)]
        except Exception as e:
            raise CrossLinkUserError(
                "E_SOURCE_READ_HEADER",
                f"Could not read the header of '{self.uri}': {e}",
                hint="Ensure the file is a CSV with a header row (check delimiter/encoding).",
            ) from e

        total_bytes = None if _is_probably_url(self.uri) else Path(self.uri).stat().st_size
        convert = _dynamic_value if dynamic_typing else (lambda v: v)

        rows: List[Row] = []
        for values in etl.data(tbl):
            if all(is_null(v) for v in values):
                continue
            rows.append({h: convert(v) for h, v in zip(header, values)})
            if len(rows) % chunk_size == 0:
                if on_progress is not None:
                    on_progress(
                        ParseProgress(
                            loaded=len(rows),
                            total_bytes=total_bytes,
                            percentage=min(len(rows) / _PROGRESS_ROWS * 100, 90.0),
                        )
                    )
                if yield_point is not None:
                    yield_point()

        if on_progress is not None:
            on_progress(ParseProgress(loaded=len(rows), total_bytes=total_bytes, percentage=100.0, finished=True))

        logger.info("loaded %s: %d row(s), %d column(s)", self.name, len(rows), len(header))
        return Dataset.from_rows(
            self.name,
            rows,
            header,
            metadata={"uri": self.uri, "file_size": total_bytes},
        )

    # --- peek to see the schema ---
    def peek_schema(self, *, sample_rows: int = 200, force: bool = False) -> Dict[str, Any]:
        """Infer a Frictionless schema from a bounded sample.

        - Never loads full data.
        - Caches the inferred schema on the Source instance.
        """
        if self._inferred_schema is not None and not force:
            return self._inferred_schema

        warnings: List[str] = []
        try:
            detector = Detector(sample_size=sample_rows)
            resource = Resource(path=self.uri, detector=detector)
            resource.infer()
            desc = resource.to_descriptor()
            sch = desc.get("schema") or {"fields": []}
            if not isinstance(sch, dict) or not isinstance(sch.get("fields"), list):
                sch = {"fields": []}
            if not sch["fields"]:
                warnings.append("No fields inferred; the file may be empty or unreadable with current options.")
        except Exception as e:
            warnings.append(f"Schema inference failed: {e}")
            sch = {"fields": []}

        object.__setattr__(self, "_inferred_schema", sch)
        object.__setattr__(self, "_schema_warnings", warnings)
        return sch

    def schema_warnings(self) -> List[str]:
        """Warnings produced during the last schema inference pass."""
        return list(self._schema_warnings)

    def __str__(self) -> str:
        hdr = f'Source("{self.uri}")  kind={self.type}'
        inferred = self._inferred_schema
        if inferred is not None:
            pairs = [
                f"{f['name']}:{f.get('type', 'any')}"
                for f in inferred.get("fields", [])
                if isinstance(f, dict) and isinstance(f.get("name"), str)
            ]
            if pairs:
                hdr += "  inferred={" + ", ".join(pairs[:8]) + (", …" if len(pairs) > 8 else "") + "}"
            if self._schema_warnings:
                hdr += "  warnings=" + str(len(self._schema_warnings))
        return hdr + "\nPreview:\n" + self._preview_str()
