"""Core alignment-file inspection modules."""

from .alignments import AlignmentSet, cigar_blocks, read_alignments
from .cache import IndexCache
from .handle import AlignmentFileHandle, HeaderInfo, get_cache
from .overlaps import Hits, count_overlaps, find_overlaps
from .query import SCAN_FIELDS, FlagFilter, ScanQuery
from .regions import GenomicInterval, load_bed, parse_region, resolve_interval
from .results import CountResult, ScanResult
from .scan import count_records, iter_batches, scan_records
from .summary import (
    coverage_stats,
    mapq_table,
    position_histogram,
    strand_table,
    summarize_alignments,
    summarize_scan,
    width_summary,
)
from .validation import validate_path

__all__ = [
    "SCAN_FIELDS",
    "AlignmentFileHandle",
    "AlignmentSet",
    "CountResult",
    "FlagFilter",
    "GenomicInterval",
    "HeaderInfo",
    "Hits",
    "IndexCache",
    "ScanQuery",
    "ScanResult",
    "cigar_blocks",
    "count_overlaps",
    "count_records",
    "coverage_stats",
    "find_overlaps",
    "get_cache",
    "iter_batches",
    "load_bed",
    "mapq_table",
    "parse_region",
    "position_histogram",
    "read_alignments",
    "resolve_interval",
    "scan_records",
    "strand_table",
    "summarize_alignments",
    "summarize_scan",
    "validate_path",
    "width_summary",
]
