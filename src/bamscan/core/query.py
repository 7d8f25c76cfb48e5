"""Scan queries: which fields, tags, regions and flags to extract."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import pysam

from ..constants import (
    FLAG_DUPLICATE,
    FLAG_PAIRED,
    FLAG_PROPER_PAIR,
    FLAG_QC_FAIL,
    FLAG_REVERSE,
    FLAG_SECONDARY,
    FLAG_SUPPLEMENTARY,
    FLAG_UNMAPPED,
    STRAND_FORWARD,
    STRAND_REVERSE,
    STRAND_UNKNOWN,
)
from .regions import GenomicInterval, parse_region


def _strand(read: pysam.AlignedSegment) -> str:
    if read.is_unmapped:
        return STRAND_UNKNOWN
    return STRAND_REVERSE if read.is_reverse else STRAND_FORWARD


def query_width(read: pysam.AlignedSegment) -> int:
    # query_length is 0 when SEQ is "*"; fall back to the CIGAR
    if read.query_length:
        return read.query_length
    return read.infer_query_length() or 0


def _qual(read: pysam.AlignedSegment) -> str | None:
    quals = read.query_qualities
    if quals is None:
        return None
    return pysam.qualities_to_qualitystring(quals)


def _mpos(read: pysam.AlignedSegment) -> int:
    return read.next_reference_start if read.next_reference_id >= 0 else -1


# Field name -> (extractor, is_numeric). Numeric fields become numpy arrays
# with -1 for missing values; the rest stay as lists with None for missing.
FieldExtractor = Callable[[pysam.AlignedSegment], Any]

SCAN_FIELDS: dict[str, tuple[FieldExtractor, bool]] = {
    "qname": (lambda r: r.query_name, False),
    "flag": (lambda r: r.flag, True),
    "rname": (lambda r: r.reference_name, False),
    "strand": (_strand, False),
    "pos": (lambda r: -1 if r.is_unmapped else r.reference_start, True),
    "qwidth": (query_width, True),
    "mapq": (lambda r: r.mapping_quality, True),
    "cigar": (lambda r: r.cigarstring, False),
    "mrnm": (lambda r: r.next_reference_name if r.next_reference_id >= 0 else None, False),
    "mpos": (_mpos, True),
    "isize": (lambda r: r.template_length, True),
    "seq": (lambda r: r.query_sequence, False),
    "qual": (_qual, False),
}

DEFAULT_SCAN_FIELDS = ("rname", "strand", "pos", "qwidth", "mapq")

_FLAG_BITS = {
    "is_paired": FLAG_PAIRED,
    "is_proper_pair": FLAG_PROPER_PAIR,
    "is_unmapped": FLAG_UNMAPPED,
    "is_reverse": FLAG_REVERSE,
    "is_secondary": FLAG_SECONDARY,
    "is_qc_fail": FLAG_QC_FAIL,
    "is_duplicate": FLAG_DUPLICATE,
    "is_supplementary": FLAG_SUPPLEMENTARY,
}


@dataclass(frozen=True)
class FlagFilter:
    """Tri-state SAM flag filter.

    Each attribute is None (don't care), True (bit must be set) or False
    (bit must be unset).
    """

    is_paired: bool | None = None
    is_proper_pair: bool | None = None
    is_unmapped: bool | None = None
    is_reverse: bool | None = None
    is_secondary: bool | None = None
    is_qc_fail: bool | None = None
    is_duplicate: bool | None = None
    is_supplementary: bool | None = None

    @classmethod
    def primary_mapped(cls) -> FlagFilter:
        """Mapped primary alignments only, the usual starting point for counting."""
        return cls(is_unmapped=False, is_secondary=False, is_supplementary=False)

    def masks(self) -> tuple[int, int]:
        """Return (required_bits, forbidden_bits)."""
        required = 0
        forbidden = 0
        for name, bit in _FLAG_BITS.items():
            wanted = getattr(self, name)
            if wanted is True:
                required |= bit
            elif wanted is False:
                forbidden |= bit
        return required, forbidden

    def matches(self, flag: int) -> bool:
        required, forbidden = self.masks()
        return (flag & required) == required and not flag & forbidden


@dataclass(frozen=True)
class ScanQuery:
    """What to extract from an alignment file.

    Attributes:
        fields: Record fields to extract, names from SCAN_FIELDS.
        tags: Two-letter optional tags to extract (e.g. "NM", "RG").
        regions: Intervals to restrict the scan to; empty means the whole file.
        flags: Flag filter applied to every record.
        min_mapq: Records below this mapping quality are skipped.
    """

    fields: tuple[str, ...] = DEFAULT_SCAN_FIELDS
    tags: tuple[str, ...] = ()
    regions: tuple[GenomicInterval, ...] = ()
    flags: FlagFilter = field(default_factory=FlagFilter)
    min_mapq: int = 0

    def __post_init__(self) -> None:
        unknown = [name for name in self.fields if name not in SCAN_FIELDS]
        if unknown:
            raise ValueError(f"Unknown fields {unknown}. Valid fields: {list(SCAN_FIELDS)}")

        bad_tags = [tag for tag in self.tags if len(tag) != 2 or not tag.isalnum()]
        if bad_tags:
            raise ValueError(f"Invalid tag names {bad_tags}. Tags are two alphanumeric characters")

        if not 0 <= self.min_mapq <= 255:
            raise ValueError(f"min_mapq must be between 0 and 255, got {self.min_mapq}")

    @classmethod
    def build(
        cls,
        fields: Sequence[str] | None = None,
        tags: Sequence[str] = (),
        regions: Sequence[str | GenomicInterval] = (),
        flags: FlagFilter | None = None,
        min_mapq: int = 0,
    ) -> ScanQuery:
        """Build a query from loosely typed input (region strings, lists)."""
        return cls(
            fields=tuple(fields) if fields else DEFAULT_SCAN_FIELDS,
            tags=tuple(tags),
            regions=tuple(
                parse_region(r) if isinstance(r, str) else r for r in regions
            ),
            flags=flags or FlagFilter(),
            min_mapq=min_mapq,
        )

    def accepts(self, read: pysam.AlignedSegment) -> bool:
        """Whether a record passes the flag and mapping quality filters."""
        if self.min_mapq and read.mapping_quality < self.min_mapq:
            return False
        return self.flags.matches(read.flag)

    def extract(self, read: pysam.AlignedSegment) -> dict[str, Any]:
        """Pull the requested fields and tags out of one record."""
        row = {name: SCAN_FIELDS[name][0](read) for name in self.fields}
        for tag in self.tags:
            row[tag] = read.get_tag(tag) if read.has_tag(tag) else None
        return row
