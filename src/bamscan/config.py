"""Configuration for bamscan, loaded from environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path

from .constants import (
    DEFAULT_CACHE_DIR,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_HISTOGRAM_BINS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_RECORDS,
    DEFAULT_MIN_MAPQ,
    DEFAULT_PLOT_DPI,
    DEFAULT_YIELD_SIZE,
    LOG_LEVELS,
)


def _env_list(value: str) -> list[str] | None:
    return [item.strip() for item in value.split(",") if item.strip()] or None


@dataclass
class BamScanConfig:
    """Runtime configuration loaded from environment variables."""

    # Scanning settings
    reference: str | None = None
    yield_size: int = DEFAULT_YIELD_SIZE
    min_mapq: int = DEFAULT_MIN_MAPQ
    max_records: int = DEFAULT_MAX_RECORDS

    # Plot settings
    histogram_bins: int = DEFAULT_HISTOGRAM_BINS
    plot_dpi: int = DEFAULT_PLOT_DPI

    # Cache settings
    cache_dir: str = ""  # Defaults to ~/.cache/bamscan if empty
    cache_ttl: int = DEFAULT_CACHE_TTL_SECONDS

    # File access settings
    allowed_directories: list[str] | None = None
    allow_remote_files: bool = False

    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        """Validate config values and set defaults."""
        if not self.cache_dir:
            self.cache_dir = str(DEFAULT_CACHE_DIR)

        if self.yield_size < 1:
            raise ValueError(f"yield_size must be at least 1, got {self.yield_size}")

        if not 0 <= self.min_mapq <= 255:
            raise ValueError(f"min_mapq must be between 0 and 255, got {self.min_mapq}")

        if self.max_records < 0:
            raise ValueError(f"max_records must be non-negative, got {self.max_records}")

        if self.histogram_bins < 1:
            raise ValueError(f"histogram_bins must be at least 1, got {self.histogram_bins}")

        if self.plot_dpi < 1:
            raise ValueError(f"plot_dpi must be at least 1, got {self.plot_dpi}")

        if self.cache_ttl < 0:
            raise ValueError(f"cache_ttl must be non-negative, got {self.cache_ttl}")

        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got '{self.log_level}'")

    @classmethod
    def from_env(cls) -> "BamScanConfig":
        """Create config from environment variables."""
        env = os.environ

        cache_dir = env.get("BAMSCAN_CACHE_DIR") or str(DEFAULT_CACHE_DIR)
        Path(cache_dir).mkdir(parents=True, exist_ok=True)

        return cls(
            reference=env.get("BAMSCAN_REFERENCE"),
            yield_size=int(env.get("BAMSCAN_YIELD_SIZE", str(DEFAULT_YIELD_SIZE))),
            min_mapq=int(env.get("BAMSCAN_MIN_MAPQ", str(DEFAULT_MIN_MAPQ))),
            max_records=int(env.get("BAMSCAN_MAX_RECORDS", str(DEFAULT_MAX_RECORDS))),
            histogram_bins=int(env.get("BAMSCAN_HISTOGRAM_BINS", str(DEFAULT_HISTOGRAM_BINS))),
            plot_dpi=int(env.get("BAMSCAN_PLOT_DPI", str(DEFAULT_PLOT_DPI))),
            cache_dir=cache_dir,
            cache_ttl=int(env.get("BAMSCAN_CACHE_TTL", str(DEFAULT_CACHE_TTL_SECONDS))),
            allowed_directories=_env_list(env.get("BAMSCAN_ALLOWED_DIRECTORIES", "")),
            allow_remote_files=env.get("BAMSCAN_ALLOW_REMOTE_FILES", "false").lower() == "true",
            log_level=env.get("BAMSCAN_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )
