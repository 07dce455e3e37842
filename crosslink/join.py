from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from crosslink.errors import CrossLinkUserError
from crosslink.models.dataset import Dataset, Relationship
from crosslink.util import Row, is_null, normalize_value

logger = logging.getLogger(__name__)

SINGLE_PASS = "single_pass"
FIXED_POINT = "fixed_point"
CHAINING_MODES = (SINGLE_PASS, FIXED_POINT)


def _join_key(v) -> Optional[str]:
    # null keys never match anything
    if is_null(v):
        return None
    return normalize_value(v)


def merge_rows(
    base_rows: Sequence[Row],
    incoming_rows: Sequence[Row],
    base_column: str,
    incoming_column: str,
    incoming_name: str,
) -> List[Row]:
    """Left join incoming_rows onto base_rows.

    Every base row survives: unmatched rows pass through unchanged, matched rows fan out
    to one output row per incoming match. An incoming column whose name is already present
    on the joined row is renamed to "{incoming_name}_{column}".
    """
    lookup: Dict[str, List[Row]] = defaultdict(list)
    for row in incoming_rows:
        key = _join_key(row.get(incoming_column))
        if key is not None:
            lookup[key].append(row)

    out: List[Row] = []
    for base_row in base_rows:
        key = _join_key(base_row.get(base_column))
        matches = lookup.get(key, []) if key is not None else []
        if not matches:
            out.append(dict(base_row))
            continue
        for match in matches:
            joined = dict(base_row)
            for col, value in match.items():
                name = f"{incoming_name}_{col}" if col in joined else col
                joined[name] = value
            out.append(joined)
    return out


def join_datasets(
    datasets: Sequence[Dataset],
    relationships: Sequence[Relationship],
    *,
    chaining: str = FIXED_POINT,
) -> List[Row]:
    """Materialize one flat table by chaining left joins outward from datasets[0].

    Relationships are applied in the order given. A relationship can only be applied when
    exactly one of its datasets is already part of the result; relationships pointing at
    unknown datasets, or whose datasets are both already joined, are skipped.

    chaining="single_pass" walks the list once, so a relationship that is not yet reachable
    is dropped. chaining="fixed_point" walks the remaining relationships again for as long
    as some pass joins a new dataset.
    """
    if chaining not in CHAINING_MODES:
        raise CrossLinkUserError(
            "E_JOIN_CHAINING",
            f"Unknown chaining mode: {chaining!r}.",
            hint="Supported: " + ", ".join(CHAINING_MODES),
        )
    if len(datasets) < 2 or not relationships:
        return []

    by_id = {ds.id: ds for ds in datasets}
    base = datasets[0]
    result: List[Row] = [dict(r) for r in base.rows]
    processed = {base.id}
    joined_names = [base.name]

    pending = list(relationships)
    passes = 0
    while pending:
        passes += 1
        deferred: List[Relationship] = []
        progressed = False
        for rel in pending:
            source = by_id.get(rel.source_file)
            target = by_id.get(rel.target_file)
            if source is None or target is None:
                logger.warning("skipping %s: dataset no longer in the working set", rel.id)
                continue

            if source.id in processed and target.id not in processed:
                incoming, base_col, incoming_col = target, rel.source_column, rel.target_column
            elif target.id in processed and source.id not in processed:
                incoming, base_col, incoming_col = source, rel.target_column, rel.source_column
            elif source.id in processed and target.id in processed:
                logger.debug("skipping %s: both datasets already joined", rel.id)
                continue
            else:
                deferred.append(rel)
                continue

            result = merge_rows(result, incoming.rows, base_col, incoming_col, incoming.name)
            processed.add(incoming.id)
            joined_names.append(incoming.name)
            progressed = True

        if chaining == SINGLE_PASS or not progressed:
            if deferred:
                logger.debug("%d relationship(s) could not be chained", len(deferred))
            break
        pending = deferred

    logger.info(
        "joined %d dataset(s) [%s] in %d pass(es): %d row(s)",
        len(processed), ", ".join(joined_names), passes, len(result),
    )
    return result
