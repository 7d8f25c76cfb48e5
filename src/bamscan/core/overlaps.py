"""Overlaps between alignments and genomic intervals."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..constants import OVERLAP_TYPES, STRAND_UNKNOWN
from .alignments import AlignmentSet
from .regions import GenomicInterval

logger = logging.getLogger(__name__)


@dataclass
class Hits:
    """Pairs of (alignment index, interval index) that overlap.

    Sorted by alignment index, then interval index.
    """

    query_hits: np.ndarray
    subject_hits: np.ndarray
    query_length: int
    subject_length: int

    def __len__(self) -> int:
        return len(self.query_hits)

    def count_by_subject(self) -> np.ndarray:
        """Number of overlapping alignments per interval."""
        return np.bincount(self.subject_hits, minlength=self.subject_length).astype(np.int64)

    def count_by_query(self) -> np.ndarray:
        """Number of overlapping intervals per alignment."""
        return np.bincount(self.query_hits, minlength=self.query_length).astype(np.int64)

    def pairs(self) -> list[tuple[int, int]]:
        return list(zip(self.query_hits.tolist(), self.subject_hits.tolist(), strict=True))


def _block_overlap(
    alignments: AlignmentSet, i: int, interval: GenomicInterval, min_overlap: int
) -> bool:
    for block_start, block_end in alignments.blocks(i):
        if min(block_end, interval.end) - max(block_start, interval.start) >= min_overlap:
            return True
    return False


def find_overlaps(
    alignments: AlignmentSet,
    intervals: Sequence[GenomicInterval],
    overlap_type: str = "any",
    min_overlap: int = 1,
    ignore_strand: bool = True,
    use_blocks: bool = True,
) -> Hits:
    """
    Find which alignments overlap which intervals.

    Args:
        alignments: Alignments to test (the query side).
        intervals: Resolved intervals (the subject side).
        overlap_type: One of:
            - "any": share at least ``min_overlap`` bases
            - "start": same start coordinate
            - "end": same end coordinate
            - "within": alignment lies inside the interval
            - "equal": same start and end
        min_overlap: Minimum number of shared bases for any hit.
        ignore_strand: If False, stranded intervals only match alignments on
            the same strand ("*" intervals match both strands).
        use_blocks: For "any", test the alignment's CIGAR blocks instead of
            its span, so reads that only bridge an interval with a skipped
            region (N) do not count.

    Returns:
        Hits sorted by alignment index, then interval index.

    Raises:
        ValueError: On an unknown overlap type, min_overlap < 1, or an
            interval without an end.
    """
    if overlap_type not in OVERLAP_TYPES:
        raise ValueError(f"overlap_type must be one of {OVERLAP_TYPES}, got '{overlap_type}'")
    if min_overlap < 1:
        raise ValueError(f"min_overlap must be at least 1, got {min_overlap}")

    njunc = alignments.njunc
    query_parts: list[np.ndarray] = []
    subject_parts: list[np.ndarray] = []

    for j, interval in enumerate(intervals):
        if interval.end is None:
            raise ValueError(f"Interval {interval.label} must be resolved before overlapping")

        mask = alignments.contig == interval.contig
        if not ignore_strand and interval.strand != STRAND_UNKNOWN:
            mask &= alignments.strand == interval.strand

        shared = np.minimum(alignments.end, interval.end) - np.maximum(
            alignments.start, interval.start
        )
        mask &= shared >= min_overlap

        if overlap_type == "start":
            mask &= alignments.start == interval.start
        elif overlap_type == "end":
            mask &= alignments.end == interval.end
        elif overlap_type == "within":
            mask &= (alignments.start >= interval.start) & (alignments.end <= interval.end)
        elif overlap_type == "equal":
            mask &= (alignments.start == interval.start) & (alignments.end == interval.end)

        idx = np.flatnonzero(mask)
        if overlap_type == "any" and use_blocks and len(idx):
            spliced = njunc[idx] > 0
            keep = [
                not is_spliced or _block_overlap(alignments, int(i), interval, min_overlap)
                for i, is_spliced in zip(idx, spliced, strict=True)
            ]
            idx = idx[np.array(keep, dtype=bool)]

        query_parts.append(idx)
        subject_parts.append(np.full(len(idx), j, dtype=np.int64))

    if query_parts:
        query_hits = np.concatenate(query_parts).astype(np.int64)
        subject_hits = np.concatenate(subject_parts)
        order = np.lexsort((subject_hits, query_hits))
        query_hits, subject_hits = query_hits[order], subject_hits[order]
    else:
        query_hits = np.zeros(0, dtype=np.int64)
        subject_hits = np.zeros(0, dtype=np.int64)

    logger.debug(
        "%d hits between %d alignments and %d intervals",
        len(query_hits),
        len(alignments),
        len(intervals),
    )
    return Hits(query_hits, subject_hits, len(alignments), len(intervals))


def count_overlaps(
    intervals: Sequence[GenomicInterval],
    alignments: AlignmentSet,
    overlap_type: str = "any",
    min_overlap: int = 1,
    ignore_strand: bool = True,
    use_blocks: bool = True,
) -> np.ndarray:
    """Number of alignments overlapping each interval, in interval order."""
    hits = find_overlaps(
        alignments,
        intervals,
        overlap_type=overlap_type,
        min_overlap=min_overlap,
        ignore_strand=ignore_strand,
        use_blocks=use_blocks,
    )
    return hits.count_by_subject()
