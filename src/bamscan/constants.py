"""Shared constants for bamscan defaults and thresholds.

This module is the single source of truth for default values that are consumed
across configuration loading, scanning, plotting, and cache management.
"""

from __future__ import annotations

from pathlib import Path

# Cache location defaults to ~/.cache/bamscan
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "bamscan"

# Scanning defaults
DEFAULT_YIELD_SIZE = 1_000_000
DEFAULT_MIN_MAPQ = 0
DEFAULT_MAX_RECORDS = 0  # 0 means unlimited
WHOLE_FILE_LABEL = "*"

# Plotting defaults
DEFAULT_HISTOGRAM_BINS = 50
DEFAULT_PLOT_DPI = 150
PLOT_FORMATS = (".png", ".pdf", ".svg")

# Logging
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Cache behavior
DEFAULT_CACHE_TTL_SECONDS = 86_400  # 24 hours
CACHE_SESSION_ID_LENGTH = 8
REMOTE_FILE_SCHEMES = ("http://", "https://")
INDEX_DOWNLOAD_TIMEOUT_SECONDS = 60.0

# Alignment file extensions and the pysam open mode for each
FILE_MODES = {
    ".bam": "rb",
    ".cram": "rc",
    ".sam": "r",
}

# CIGAR operation codes (SAM order: M I D N S H P = X)
CIGAR_OPS = "MIDNSHP=X"
CIGAR_CONSUMES_REFERENCE = frozenset("MDN=X")

# SAM flag bits
FLAG_PAIRED = 0x1
FLAG_PROPER_PAIR = 0x2
FLAG_UNMAPPED = 0x4
FLAG_REVERSE = 0x10
FLAG_SECONDARY = 0x100
FLAG_QC_FAIL = 0x200
FLAG_DUPLICATE = 0x400
FLAG_SUPPLEMENTARY = 0x800

# Strand symbols
STRAND_FORWARD = "+"
STRAND_REVERSE = "-"
STRAND_UNKNOWN = "*"
STRANDS = (STRAND_FORWARD, STRAND_REVERSE, STRAND_UNKNOWN)

# Overlap modes accepted by find_overlaps
OVERLAP_TYPES = ("any", "start", "end", "within", "equal")
