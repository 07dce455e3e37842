from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from crosslink.config import DetectionConfig
from crosslink.models.dataset import Relationship, RelationshipType
from crosslink.similarity import similarity
from crosslink.util import Row, is_null, normalize_value

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = DetectionConfig()


def _non_null(rows: Sequence[Row], column: str) -> List[Any]:
    # rows missing the key count as null
    return [v for v in (r.get(column) for r in rows) if not is_null(v)]


def classify_cardinality(
    source_keys: Sequence[str],
    target_keys: Sequence[str],
    intersection: set,
) -> RelationshipType:
    """Shape of a match, from how many raw values on each side land in the intersection.

    Match counts are taken over the non-deduplicated values and compared with each side's
    distinct-value count; whichever side reaches its full count is the "one" side.
    """
    source_matches = sum(1 for k in source_keys if k in intersection)
    target_matches = sum(1 for k in target_keys if k in intersection)
    source_full = source_matches == len(set(source_keys))
    target_full = target_matches == len(set(target_keys))

    if source_full and target_full:
        return RelationshipType.ONE_TO_ONE
    if source_full or target_full:
        return RelationshipType.ONE_TO_MANY
    return RelationshipType.MANY_TO_MANY


def analyze_column_pair(
    source_rows: Sequence[Row],
    target_rows: Sequence[Row],
    source_column: str,
    target_column: str,
    *,
    source_id: str,
    target_id: str,
    config: Optional[DetectionConfig] = None,
) -> Optional[Relationship]:
    """Decide whether source_column and target_column look like the two ends of a join key.

    Returns None for every negative outcome (empty columns, no overlap, weak overlap).
    """
    config = config or _DEFAULT_CONFIG

    source_values = _non_null(source_rows, source_column)
    target_values = _non_null(target_rows, target_column)
    if not source_values or not target_values:
        return None

    source_keys = [normalize_value(v) for v in source_values]
    target_keys = [normalize_value(v) for v in target_values]
    source_set = set(source_keys)
    target_set = set(target_keys)

    intersection = source_set & target_set
    if not intersection:
        return None

    overlap = len(intersection) / max(len(source_set), len(target_set))
    name_score = similarity(source_column.lower(), target_column.lower())
    if name_score > config.name_similarity_threshold:
        confidence = min(overlap * config.name_boost, 1.0)
    else:
        confidence = overlap

    if confidence < config.min_confidence:
        logger.debug(
            "rejected %s.%s <-> %s.%s: confidence %.3f below floor",
            source_id, source_column, target_id, target_column, confidence,
        )
        return None

    rel_type = classify_cardinality(source_keys, target_keys, intersection)
    return Relationship(
        source_file=source_id,
        target_file=target_id,
        source_column=source_column,
        target_column=target_column,
        type=rel_type,
        confidence=confidence,
        matching_rows=len(intersection),
    )
