"""Counting, scanning and batch-streaming records of an alignment file."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from ..constants import WHOLE_FILE_LABEL
from .handle import AlignmentFileHandle
from .query import ScanQuery, query_width
from .regions import GenomicInterval
from .results import CountResult, ScanResult

logger = logging.getLogger(__name__)


def _label(interval: GenomicInterval | None) -> str:
    return interval.label if interval is not None else WHOLE_FILE_LABEL


def _result_key(interval: GenomicInterval | None, taken: dict[str, ScanResult]) -> str:
    """Label plus feature name, suffixed #2, #3... when the key is already used."""
    key = _label(interval)
    if interval is not None and interval.name:
        key = f"{key} {interval.name}"
    if key not in taken:
        return key
    n = 2
    while f"{key}#{n}" in taken:
        n += 1
    return f"{key}#{n}"


def count_records(
    handle: AlignmentFileHandle, query: ScanQuery | None = None
) -> list[CountResult]:
    """
    Count records and nucleotides per region.

    Args:
        handle: An alignment file handle (opened on demand).
        query: Regions and filters; fields are ignored. Without regions the
            whole file is counted, unmapped records included.

    Returns:
        One CountResult per region, in query order, or a single whole-file result.
    """
    query = query or ScanQuery()
    results: list[CountResult] = []

    for interval in handle.intervals_for(query):
        records = 0
        nucleotides = 0
        for read in handle.records(interval):
            if not query.accepts(read):
                continue
            records += 1
            nucleotides += query_width(read)
        results.append(CountResult(region=interval, records=records, nucleotides=nucleotides))
        logger.debug("Counted %d records (%d nt) in %s", records, nucleotides, _label(interval))

    return results


def scan_records(
    handle: AlignmentFileHandle,
    query: ScanQuery | None = None,
    max_records: int | None = None,
) -> dict[str, ScanResult]:
    """
    Extract the query's fields from every matching record.

    Args:
        handle: An alignment file handle (opened on demand).
        query: Fields, tags, regions and filters to apply.
        max_records: Stop each region after this many records; 0 means no
            limit, None falls back to the handle's config.

    Returns:
        One ScanResult per requested region, in query order. Keys are the
        region label (e.g. ``chr1:100-200``), followed by the feature name
        when the region has one (``chr1:100-200 geneA``), or ``"*"`` for a
        whole-file scan. Repeated keys get a ``#2``, ``#3``... suffix so no
        region is dropped. A record overlapping two requested regions
        appears in both.
    """
    query = query or ScanQuery()
    limit = handle.config.max_records if max_records is None else max_records
    results: dict[str, ScanResult] = {}

    for interval in handle.intervals_for(query):
        rows = []
        for read in handle.records(interval):
            if not query.accepts(read):
                continue
            if limit and len(rows) >= limit:
                logger.info("Stopped %s at max_records=%d", _label(interval), limit)
                break
            rows.append(query.extract(read))

        results[_result_key(interval, results)] = ScanResult.from_rows(query, rows, region=interval)

    return results


def iter_batches(
    handle: AlignmentFileHandle, query: ScanQuery | None = None
) -> Iterator[ScanResult]:
    """Yield ScanResults of at most ``handle.yield_size`` records until the file is exhausted.

    Each batch comes from ``handle.scan_next``, so interleaving other
    ``scan_next`` calls with a different query restarts the stream.
    """
    query = query or ScanQuery()
    handle.reset_stream()
    batch_no = 0
    while True:
        batch = handle.scan_next(query)
        if not len(batch):
            return
        batch_no += 1
        logger.debug("Batch %d: %d records", batch_no, len(batch))
        yield batch
