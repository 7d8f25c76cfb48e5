"""bamscan: inspect BAM/CRAM/SAM alignment files with pysam."""

from .config import BamScanConfig
from .core import (
    AlignmentFileHandle,
    AlignmentSet,
    FlagFilter,
    GenomicInterval,
    ScanQuery,
    count_overlaps,
    count_records,
    find_overlaps,
    iter_batches,
    parse_region,
    read_alignments,
    scan_records,
)

__version__ = "0.1.0"

__all__ = [
    "AlignmentFileHandle",
    "AlignmentSet",
    "BamScanConfig",
    "FlagFilter",
    "GenomicInterval",
    "ScanQuery",
    "count_overlaps",
    "count_records",
    "find_overlaps",
    "iter_batches",
    "parse_region",
    "read_alignments",
    "scan_records",
]
