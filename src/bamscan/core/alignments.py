"""In-memory collection of mapped alignments read through pysam."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..constants import CIGAR_CONSUMES_REFERENCE, CIGAR_OPS, STRAND_FORWARD, STRAND_REVERSE
from .handle import AlignmentFileHandle
from .query import ScanQuery, query_width
from .regions import GenomicInterval

logger = logging.getLogger(__name__)

CIGAR_PATTERN = re.compile(rf"(\d+)([{CIGAR_OPS}])")


def cigar_blocks(
    cigar: str, start: int, drop_deletions: bool = False
) -> list[tuple[int, int]]:
    """
    Convert a CIGAR string into the reference blocks the read covers.

    Skipped regions (N) always split blocks. Deletions (D) are bridged unless
    ``drop_deletions`` is set, in which case they split blocks too.

    Args:
        cigar: CIGAR string, e.g. "20M100N30M".
        start: 0-based reference start of the alignment.

    Returns:
        List of (start, end) half-open reference intervals.

    Examples:
        >>> cigar_blocks("20M100N30M", 700)
        [(700, 720), (820, 850)]
    """
    blocks: list[tuple[int, int]] = []
    pos = start
    block_start: int | None = None

    for length_str, op in CIGAR_PATTERN.findall(cigar):
        if op not in CIGAR_CONSUMES_REFERENCE:
            continue
        if op == "N" or (op == "D" and drop_deletions):
            if block_start is not None and pos > block_start:
                blocks.append((block_start, pos))
            block_start = None
        elif block_start is None:
            block_start = pos
        pos += int(length_str)

    if block_start is not None and pos > block_start:
        blocks.append((block_start, pos))
    return blocks


@dataclass
class AlignmentSet:
    """Column-oriented collection of mapped alignments.

    Coordinates are 0-based and half-open; ``end`` is the reference end of
    the alignment, so ``end - start`` includes deletions and skipped regions.
    """

    contig: np.ndarray  # object dtype, contig names
    start: np.ndarray  # int64
    end: np.ndarray  # int64
    strand: np.ndarray  # "+" / "-"
    cigar: list[str]
    qwidth: np.ndarray  # int64
    mapq: np.ndarray  # int64
    flag: np.ndarray  # int64
    names: list[str] | None = None

    @classmethod
    def empty(cls, with_names: bool = False) -> AlignmentSet:
        ints = np.zeros(0, dtype=np.int64)
        return cls(
            contig=np.zeros(0, dtype=object),
            start=ints,
            end=ints.copy(),
            strand=np.zeros(0, dtype="<U1"),
            cigar=[],
            qwidth=ints.copy(),
            mapq=ints.copy(),
            flag=ints.copy(),
            names=[] if with_names else None,
        )

    def __len__(self) -> int:
        return len(self.start)

    def __repr__(self) -> str:
        return f"AlignmentSet({len(self)} alignments on {len(self.contigs())} contigs)"

    @property
    def width(self) -> np.ndarray:
        """Reference span of each alignment."""
        return self.end - self.start

    @property
    def njunc(self) -> np.ndarray:
        """Number of skipped regions (N operations) in each alignment."""
        return np.array([c.count("N") for c in self.cigar], dtype=np.int64)

    def contigs(self) -> list[str]:
        """Contigs with at least one alignment, in first-seen order."""
        return list(dict.fromkeys(self.contig.tolist()))

    def subset(self, selector: np.ndarray | Sequence[int]) -> AlignmentSet:
        """Alignments picked by a boolean mask or integer indices."""
        idx = np.asarray(selector)
        if idx.dtype == bool:
            idx = np.flatnonzero(idx)
        return AlignmentSet(
            contig=self.contig[idx],
            start=self.start[idx],
            end=self.end[idx],
            strand=self.strand[idx],
            cigar=[self.cigar[i] for i in idx],
            qwidth=self.qwidth[idx],
            mapq=self.mapq[idx],
            flag=self.flag[idx],
            names=[self.names[i] for i in idx] if self.names is not None else None,
        )

    def in_region(self, interval: GenomicInterval) -> AlignmentSet:
        """Alignments whose span overlaps a (resolved) interval."""
        if interval.end is None:
            raise ValueError(f"Interval {interval.label} must be resolved before filtering")
        mask = (
            (self.contig == interval.contig)
            & (self.start < interval.end)
            & (self.end > interval.start)
        )
        return self.subset(mask)

    def blocks(self, i: int) -> list[tuple[int, int]]:
        """Reference blocks of alignment ``i`` (skipped regions removed)."""
        return cigar_blocks(self.cigar[i], int(self.start[i]))

    def coverage(self, contig: str, length: int, start: int = 0) -> np.ndarray:
        """
        Per-base depth over ``[start, length)`` on one contig.

        Deletions count toward depth; skipped regions (introns) do not.

        Args:
            contig: Contig name.
            length: End coordinate of the window, typically the contig length.
            start: Start coordinate of the window.

        Returns:
            int64 array of ``length - start`` depths.
        """
        if length <= start:
            raise ValueError(
                f"Coverage window end ({length}) must be greater than start ({start})"
            )

        diff = np.zeros(length - start + 1, dtype=np.int64)
        for i in np.flatnonzero(self.contig == contig):
            for block_start, block_end in self.blocks(int(i)):
                lo = max(block_start, start) - start
                hi = min(block_end, length) - start
                if hi > lo:
                    diff[lo] += 1
                    diff[hi] -= 1
        return np.cumsum(diff[:-1])


def read_alignments(
    handle: AlignmentFileHandle,
    query: ScanQuery | None = None,
    with_names: bool = False,
) -> AlignmentSet:
    """
    Read mapped alignments into an AlignmentSet.

    Unmapped records are always dropped; everything else follows the query's
    regions and filters. A record overlapping two requested regions is read
    twice.

    Args:
        handle: An alignment file handle (opened on demand).
        query: Optional regions and filters (fields are ignored).
        with_names: Also keep read names.
    """
    query = query or ScanQuery()
    intervals = handle.intervals_for(query)

    contig: list[str] = []
    start: list[int] = []
    end: list[int] = []
    strand: list[str] = []
    cigar: list[str] = []
    qwidth: list[int] = []
    mapq: list[int] = []
    flag: list[int] = []
    names: list[str] = []

    for interval in intervals:
        for read in handle.records(interval):
            if read.is_unmapped or not query.accepts(read):
                continue
            contig.append(read.reference_name)
            start.append(read.reference_start)
            end.append(read.reference_end or read.reference_start)
            strand.append(STRAND_REVERSE if read.is_reverse else STRAND_FORWARD)
            cigar.append(read.cigarstring or "")
            qwidth.append(query_width(read))
            mapq.append(read.mapping_quality)
            flag.append(read.flag)
            if with_names:
                names.append(read.query_name or "")

    if not start:
        return AlignmentSet.empty(with_names=with_names)

    logger.debug("Read %d alignments from %s", len(start), handle.path)
    return AlignmentSet(
        contig=np.array(contig, dtype=object),
        start=np.array(start, dtype=np.int64),
        end=np.array(end, dtype=np.int64),
        strand=np.array(strand, dtype="<U1"),
        cigar=cigar,
        qwidth=np.array(qwidth, dtype=np.int64),
        mapq=np.array(mapq, dtype=np.int64),
        flag=np.array(flag, dtype=np.int64),
        names=names if with_names else None,
    )
