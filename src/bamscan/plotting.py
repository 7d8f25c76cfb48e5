"""matplotlib plots of scan and alignment summaries.

Each function draws one figure, writes it to ``output`` and returns the path.
"""

from __future__ import annotations

import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

from .constants import DEFAULT_HISTOGRAM_BINS, DEFAULT_PLOT_DPI  # noqa: E402
from .core.summary import position_histogram, strand_table  # noqa: E402
from .core.validation import validate_plot_path  # noqa: E402

logger = logging.getLogger(__name__)

STRAND_COLORS = {"+": "steelblue", "-": "indianred", "*": "gray"}


def _save(fig: plt.Figure, output: str | Path, dpi: int) -> Path:
    try:
        path = validate_plot_path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=dpi, bbox_inches="tight", facecolor="white")
    finally:
        plt.close(fig)
    logger.info("Wrote plot: %s", path)
    return path


def plot_position_histogram(
    positions: np.ndarray,
    output: str | Path,
    bins: int = DEFAULT_HISTOGRAM_BINS,
    title: str = "Alignment start positions",
    dpi: int = DEFAULT_PLOT_DPI,
) -> Path:
    """Histogram of alignment start positions (unmapped records left out)."""
    counts, edges = position_histogram(positions, bins=bins)

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.bar(edges[:-1], counts, width=np.diff(edges), align="edge", color="steelblue")
    ax.set_title(title)
    ax.set_xlabel("Position (0-based)")
    ax.set_ylabel("Records")
    ax.grid(visible=True, axis="y", linestyle=":", color="gray", lw=0.5)
    return _save(fig, output, dpi)


def plot_strand_counts(
    strands: list[str] | np.ndarray,
    output: str | Path,
    title: str = "Records per strand",
    dpi: int = DEFAULT_PLOT_DPI,
) -> Path:
    """Bar chart of "+", "-" and "*" record counts."""
    table = strand_table(list(strands))

    fig, ax = plt.subplots(figsize=(4, 4))
    ax.bar(list(table), list(table.values()), color=[STRAND_COLORS[s] for s in table])
    for x, count in enumerate(table.values()):
        ax.text(x, count, str(count), ha="center", va="bottom", fontsize=9)
    ax.set_title(title)
    ax.set_xlabel("Strand")
    ax.set_ylabel("Records")
    return _save(fig, output, dpi)


def plot_coverage(
    coverage: np.ndarray,
    output: str | Path,
    contig: str,
    start: int = 0,
    title: str | None = None,
    dpi: int = DEFAULT_PLOT_DPI,
) -> Path:
    """Filled depth track for ``coverage`` starting at ``start`` on ``contig``."""
    depth = np.asarray(coverage)
    x = np.arange(start, start + len(depth))

    fig, ax = plt.subplots(figsize=(10, 3))
    ax.fill_between(x, depth, step="post", color="gray", alpha=0.8)
    ax.set_xlim(start, start + max(len(depth), 1))
    ax.set_ylim(bottom=0)
    ax.set_title(title or f"Coverage on {contig}")
    ax.set_xlabel(f"{contig} position (0-based)")
    ax.set_ylabel("Depth")
    return _save(fig, output, dpi)


def plot_width_distribution(
    widths: np.ndarray,
    output: str | Path,
    bins: int = DEFAULT_HISTOGRAM_BINS,
    title: str = "Query widths",
    dpi: int = DEFAULT_PLOT_DPI,
) -> Path:
    """Histogram of read (query) widths."""
    fig, ax = plt.subplots(figsize=(6, 4))
    ax.hist(np.asarray(widths), bins=bins, color="seagreen")
    ax.set_title(title)
    ax.set_xlabel("Width (bp)")
    ax.set_ylabel("Records")
    return _save(fig, output, dpi)
