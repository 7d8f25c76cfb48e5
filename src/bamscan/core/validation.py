"""Input validation for alignment file paths and plot outputs."""

from __future__ import annotations

from pathlib import Path

from ..config import BamScanConfig
from ..constants import FILE_MODES, PLOT_FORMATS, REMOTE_FILE_SCHEMES

MAX_FILE_PATH_LENGTH = 2048


def file_mode(file_path: str) -> str:
    """pysam open mode for a path, chosen by extension.

    Raises:
        ValueError: If the extension is not .bam, .cram or .sam.
    """
    lower_path = file_path.lower()
    for ext, mode in FILE_MODES.items():
        if lower_path.endswith(ext):
            return mode
    raise ValueError(f"Unsupported file type. Allowed extensions: {tuple(FILE_MODES)}")


def validate_path(file_path: str, config: BamScanConfig) -> None:
    """Check that an alignment file path is allowed by configuration.

    Args:
        file_path: Path or URL to validate.
        config: Runtime configuration.

    Raises:
        ValueError: If the path is not allowed.
    """
    if len(file_path) > MAX_FILE_PATH_LENGTH:
        raise ValueError(f"File path too long (max {MAX_FILE_PATH_LENGTH} characters)")

    file_mode(file_path)

    if "://" in file_path:
        if not config.allow_remote_files:
            raise ValueError("Remote files are disabled (set BAMSCAN_ALLOW_REMOTE_FILES=true)")
        if not file_path.startswith(REMOTE_FILE_SCHEMES):
            raise ValueError(f"Scheme not supported for remote file: {file_path}")
        return

    if config.allowed_directories:
        try:
            abs_path = Path(file_path).resolve()
        except OSError as e:
            raise ValueError(f"Invalid path: {file_path}") from e

        allowed = any(
            abs_path.is_relative_to(Path(d).resolve()) for d in config.allowed_directories
        )
        if not allowed:
            raise ValueError("Path is not in allowed directories")


def validate_plot_path(output: str | Path) -> Path:
    """Check that a plot output path has a supported image extension."""
    path = Path(output)
    if path.suffix.lower() not in PLOT_FORMATS:
        raise ValueError(f"Unsupported plot format '{path.suffix}'. Allowed: {PLOT_FORMATS}")
    return path
