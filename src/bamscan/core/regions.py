"""Genomic intervals: parsing region strings, resolving them against a header, BED input."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from ..constants import STRAND_UNKNOWN, STRANDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenomicInterval:
    """A (contig, start, end) range, 0-based and half-open.

    ``end`` is None for "to the end of the contig" until the interval is
    resolved against a file header.
    """

    contig: str
    start: int = 0
    end: int | None = None
    strand: str = STRAND_UNKNOWN
    name: str | None = None

    @property
    def width(self) -> int | None:
        if self.end is None:
            return None
        return self.end - self.start

    @property
    def label(self) -> str:
        """Region string, e.g. chr1:100-200 or chr1 for a whole contig."""
        if self.end is None and self.start == 0:
            return self.contig
        return f"{self.contig}:{self.start}-{'' if self.end is None else self.end}"


def parse_region(region: str) -> GenomicInterval:
    """
    Parse a genomic region string into a GenomicInterval.

    Supports formats:
        - chr1:1000-2000
        - chr1:1,000-2,000
        - 1:1000-2000
        - chr1 (whole contig)

    Raises:
        ValueError: If the region format is invalid.
    """
    text = region.strip().replace(",", "")
    if not text:
        raise ValueError("Invalid region format: ''. Expected format: 'chr1:1000-2000' or 'chr1'")

    if ":" not in text:
        return GenomicInterval(contig=text)

    try:
        contig, coords = text.rsplit(":", 1)
        start_str, end_str = coords.split("-")
        start = int(start_str)
        end = int(end_str)
    except ValueError as e:
        raise ValueError(
            f"Invalid region format: '{region}'. Expected format: 'chr1:1000-2000' or 'chr1'"
        ) from e

    if not contig:
        raise ValueError(f"Invalid region format: '{region}'. Contig name is empty")
    if start < 0:
        raise ValueError(f"Start position must be non-negative, got {start}")
    if end <= start:
        raise ValueError(f"End position ({end}) must be greater than start ({start})")

    return GenomicInterval(contig=contig, start=start, end=end)


def resolve_interval(interval: GenomicInterval, targets: Mapping[str, int]) -> GenomicInterval:
    """Fill an open end from contig lengths and check the range fits the contig.

    Args:
        interval: Interval to resolve.
        targets: Mapping of contig name to length, in header order.

    Raises:
        ValueError: If the contig is unknown, the range is empty or negative,
            or it runs past the contig end.
    """
    if interval.contig not in targets:
        raise ValueError(f"Unknown contig '{interval.contig}'. Known contigs: {list(targets)}")

    if interval.start < 0 or (interval.end is not None and interval.end <= interval.start):
        raise ValueError(
            f"Invalid interval {interval.label}: start must be non-negative and less than end"
        )

    length = targets[interval.contig]
    if interval.end is None:
        if interval.start >= length:
            raise ValueError(
                f"Start {interval.start} is past the end of {interval.contig} ({length}bp)"
            )
        return replace(interval, end=length)

    if interval.end > length:
        raise ValueError(
            f"Region {interval.label} extends past the end of {interval.contig} ({length}bp)"
        )
    return interval


def load_bed(path: str | Path) -> list[GenomicInterval]:
    """Read intervals from a BED file.

    Columns beyond the first three are optional: name (4) and strand (6).
    Header lines (``#``, ``track``, ``browser``) and blank lines are skipped.

    Raises:
        ValueError: If a data line has fewer than three columns or bad coordinates.
    """
    intervals: list[GenomicInterval] = []
    with open(path) as handle:
        for line_no, line in enumerate(handle, start=1):
            line = line.rstrip("\n")
            if not line.strip() or line.startswith(("#", "track", "browser")):
                continue

            cols = line.split("\t")
            if len(cols) < 3:
                raise ValueError(f"{path}:{line_no}: expected at least 3 columns, got {len(cols)}")

            try:
                start = int(cols[1])
                end = int(cols[2])
            except ValueError as e:
                raise ValueError(f"{path}:{line_no}: non-integer coordinates") from e

            if start < 0 or end <= start:
                raise ValueError(f"{path}:{line_no}: invalid interval {start}-{end}")

            name = cols[3] if len(cols) > 3 and cols[3] not in ("", ".") else None
            # BED uses "." for unstranded
            strand = cols[5] if len(cols) > 5 and cols[5] in STRANDS else STRAND_UNKNOWN

            intervals.append(GenomicInterval(cols[0], start, end, strand=strand, name=name))

    logger.debug("Loaded %d intervals from %s", len(intervals), path)
    return intervals
