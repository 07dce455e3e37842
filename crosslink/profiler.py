from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional, Sequence

from crosslink.models.dataset import Dataset
from crosslink.util import Row, is_null, stratified_sample

TYPE_RATIO = 0.8

_DATE_FORMATS = (
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
)


class ColumnType(str, Enum):
    NUMERIC = "numeric"
    DATE = "date"
    CATEGORICAL = "categorical"
    TEXT = "text"


@dataclass(frozen=True)
class ColumnProfile:
    name: str
    type: ColumnType
    unique_values: int
    null_count: int
    sample_values: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class DataQuality:
    total_rows: int
    completeness: float
    duplicate_rows: int
    issues: List[str] = field(default_factory=list)


def _looks_number(v: Any) -> bool:
    if isinstance(v, bool):
        return False
    if isinstance(v, (int, float)):
        return math.isfinite(v)
    if isinstance(v, str):
        try:
            return math.isfinite(float(v.strip()))
        except ValueError:
            return False
    return False


def _looks_date(v: Any) -> bool:
    if isinstance(v, (date, datetime)):
        return True
    if not isinstance(v, str):
        return False
    s = v.strip()
    try:
        datetime.fromisoformat(s)
        return True
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            datetime.strptime(s, fmt)
            return True
        except ValueError:
            continue
    return False


def classify_values(values: Sequence[Any]) -> ColumnType:
    """Semantic type of a column from its non-null values.

    numeric beats date beats categorical; an empty column is text.
    """
    if not values:
        return ColumnType.TEXT
    n = len(values)
    if sum(1 for v in values if _looks_number(v)) / n >= TYPE_RATIO:
        return ColumnType.NUMERIC
    if sum(1 for v in values if _looks_date(v)) / n >= TYPE_RATIO:
        return ColumnType.DATE
    if len({str(v) for v in values}) < n * 0.5:
        return ColumnType.CATEGORICAL
    return ColumnType.TEXT


def profile_column(rows: Sequence[Row], column: str, sample_size: Optional[int] = None) -> ColumnProfile:
    """Profile one column, optionally over a stratified sample of the rows."""
    if sample_size is not None:
        rows = stratified_sample(rows, sample_size)
    values = [r.get(column) for r in rows]
    present = [v for v in values if not is_null(v)]
    return ColumnProfile(
        name=column,
        type=classify_values(present),
        unique_values=len({str(v) for v in present}),
        null_count=len(values) - len(present),
        sample_values=present[:5],
    )


def profile_dataset(dataset: Dataset, sample_size: Optional[int] = None) -> List[ColumnProfile]:
    return [profile_column(dataset.rows, c, sample_size) for c in dataset.columns]


def assess_quality(dataset: Dataset) -> DataQuality:
    total_rows = dataset.row_count
    cols = dataset.columns
    total_cells = total_rows * len(cols)
    filled = sum(1 for r in dataset.rows for c in cols if not is_null(r.get(c)))
    completeness = filled / total_cells if total_cells else 0.0

    distinct = {tuple(r.get(c) for c in cols) for r in dataset.rows}
    duplicate_rows = total_rows - len(distinct)

    issues: List[str] = []
    if completeness < 0.9:
        issues.append("Data has missing values")
    if duplicate_rows > 0:
        issues.append(f"{duplicate_rows} duplicate rows found")
    if total_rows < 10:
        issues.append("Dataset is very small")

    return DataQuality(
        total_rows=total_rows,
        completeness=completeness,
        duplicate_rows=duplicate_rows,
        issues=issues,
    )
