from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Dict, Generator, Iterator, List, Optional, Sequence, Tuple

from crosslink.config import DetectionConfig
from crosslink.detector import analyze_column_pair
from crosslink.errors import CrossLinkUserError, DetectionCancelled
from crosslink.models.dataset import Dataset, Relationship
from crosslink.util import Row, stratified_sample

logger = logging.getLogger(__name__)

YieldPoint = Callable[[], None]


def _comparison_rows(ds: Dataset, config: DetectionConfig) -> List[Row]:
    if config.is_full:
        return ds.rows
    return stratified_sample(ds.rows, config.sample_size)


def _check_datasets(datasets: Any) -> List[Dataset]:
    if not isinstance(datasets, (list, tuple)):
        raise CrossLinkUserError(
            "E_DATASETS_TYPE",
            "Relationship detection expects a list of Dataset records.",
            hint="Example: detect_relationships([orders, customers])",
        )
    bad = [i for i, ds in enumerate(datasets) if not isinstance(ds, Dataset)]
    if bad:
        raise CrossLinkUserError(
            "E_DATASETS_TYPE",
            f"Item(s) at position {bad} are not Dataset records.",
            hint="Build datasets with Dataset.from_rows(...) or Source(...).load().",
        )
    return list(datasets)


def _dataset_pairs(n: int) -> Iterator[Tuple[int, int]]:
    for i in range(n):
        for j in range(i + 1, n):
            yield i, j


def compare_datasets(
    source_id: str,
    source_rows: Sequence[Row],
    source_columns: Sequence[str],
    target_id: str,
    target_rows: Sequence[Row],
    target_columns: Sequence[str],
    config: DetectionConfig,
) -> List[Relationship]:
    """Every detector hit between two datasets, in column-list order.

    Takes plain values so it can be shipped to any executor; no acceptance filter is applied here.
    """
    out: List[Relationship] = []
    for source_column in source_columns:
        for target_column in target_columns:
            rel = analyze_column_pair(
                source_rows,
                target_rows,
                source_column,
                target_column,
                source_id=source_id,
                target_id=target_id,
                config=config,
            )
            if rel is not None:
                out.append(rel)
    return out


def _accepted(candidates: List[Relationship], config: DetectionConfig) -> List[Relationship]:
    return [r for r in candidates if r.confidence > config.accept_confidence]


def _finish(datasets: List[Dataset], found: Dict[int, List[Relationship]]) -> List[Dataset]:
    out = [ds.with_relationships(found[i]) for i, ds in enumerate(datasets)]
    logger.info(
        "relationship detection finished: %d dataset(s), %d relationship(s) attached",
        len(out), sum(len(v) for v in found.values()),
    )
    return out


def _detection_steps(
    datasets: List[Dataset],
    config: DetectionConfig,
    cancel: Any,
) -> Generator[Tuple[int, int], None, List[Dataset]]:
    """Run detection one dataset pair at a time, yielding at each pair boundary."""
    samples = [_comparison_rows(ds, config) for ds in datasets]
    found: Dict[int, List[Relationship]] = {i: [] for i in range(len(datasets))}

    for i, j in _dataset_pairs(len(datasets)):
        if cancel is not None and cancel.is_set():
            raise DetectionCancelled(hint=f"Stopped before comparing '{datasets[i].name}' with '{datasets[j].name}'.")
        a, b = datasets[i], datasets[j]
        candidates = compare_datasets(a.id, samples[i], a.columns, b.id, samples[j], b.columns, config)
        accepted = _accepted(candidates, config)
        logger.debug(
            "compared %s with %s: %d candidate(s), %d accepted",
            a.name, b.name, len(candidates), len(accepted),
        )
        found[i].extend(accepted)
        yield i, j

    return _finish(datasets, found)


def detect_relationships(
    datasets: Sequence[Dataset],
    config: Optional[DetectionConfig] = None,
    *,
    yield_point: Optional[YieldPoint] = None,
    cancel: Any = None,
) -> List[Dataset]:
    """Infer relationships across every pair of datasets.

    Returns new Dataset records whose `relationships` are replaced by this run's findings;
    the inputs are left untouched. `yield_point` is called after each dataset pair, and
    `cancel` (anything with `is_set()`) is checked before each pair.
    """
    datasets = _check_datasets(datasets)
    steps = _detection_steps(datasets, config or DetectionConfig(), cancel)
    while True:
        try:
            next(steps)
        except StopIteration as done:
            return done.value
        if yield_point is not None:
            yield_point()


async def detect_relationships_async(
    datasets: Sequence[Dataset],
    config: Optional[DetectionConfig] = None,
    *,
    cancel: Any = None,
) -> List[Dataset]:
    """Same as detect_relationships, handing control back to the event loop between dataset pairs."""
    datasets = _check_datasets(datasets)
    steps = _detection_steps(datasets, config or DetectionConfig(), cancel)
    while True:
        try:
            next(steps)
        except StopIteration as done:
            return done.value
        await asyncio.sleep(0)


def detect_relationships_parallel(
    datasets: Sequence[Dataset],
    config: Optional[DetectionConfig] = None,
    *,
    max_workers: Optional[int] = None,
    executor: Optional[Executor] = None,
) -> List[Dataset]:
    """Shard the dataset-pair comparisons across an executor.

    Results are merged in submission order, so the output matches detect_relationships.
    A caller-supplied executor is used as-is and left running.
    """
    datasets = _check_datasets(datasets)
    config = config or DetectionConfig()
    samples = [_comparison_rows(ds, config) for ds in datasets]
    found: Dict[int, List[Relationship]] = {i: [] for i in range(len(datasets))}

    pool = executor or ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = []
        for i, j in _dataset_pairs(len(datasets)):
            a, b = datasets[i], datasets[j]
            futures.append((i, pool.submit(
                compare_datasets, a.id, samples[i], list(a.columns), b.id, samples[j], list(b.columns), config,
            )))
        for i, fut in futures:
            found[i].extend(_accepted(fut.result(), config))
    finally:
        if executor is None:
            pool.shutdown()

    return _finish(datasets, found)
