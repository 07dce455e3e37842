from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

Row = Dict[str, Any]


def _is_probably_url(s: str) -> bool:
    return s.startswith("http://") or s.startswith("https://") or s.startswith("s3://")


def _infer_type_from_uri(uri: str) -> Optional[str]:
    ext = Path(uri).suffix.lower()
    if ext == ".csv":
        return "csv"
    return None


def is_null(v: Any) -> bool:
    """True for values that count as missing: None, blank strings and NaN."""
    if v is None:
        return True
    if isinstance(v, str):
        return v.strip() == ""
    if isinstance(v, float):
        return math.isnan(v)
    return False


def normalize_value(v: Any) -> str:
    """Comparable key for a cell: stringified, lower-cased, trimmed.

    Integral floats render without a fraction so that 42, 42.0, "42" and " 42 " all compare equal.
    """
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    return str(v).lower().strip()


def column_union(rows: Iterable[Row]) -> List[str]:
    """Column names across all rows, in first-seen order."""
    seen: Dict[str, None] = {}
    for r in rows:
        for k in r.keys():
            if k not in seen:
                seen[k] = None
    return list(seen)


def stratified_sample(rows: Sequence[Row], sample_size: int) -> List[Row]:
    """Evenly spaced rows, at most `sample_size` of them.

    Small inputs come back whole.
    """
    if len(rows) <= sample_size:
        return list(rows)
    step = len(rows) // sample_size
    return list(rows[::step][:sample_size])
