"""Summary statistics over scan results and alignment sets."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

import numpy as np

from ..constants import DEFAULT_HISTOGRAM_BINS, STRANDS
from .alignments import AlignmentSet
from .results import ScanResult


def strand_table(strands: Iterable[str]) -> dict[str, int]:
    """Counts of "+", "-" and "*" (always all three keys)."""
    counts = Counter(strands)
    return {s: counts.get(s, 0) for s in STRANDS}


def mapq_table(mapq: np.ndarray) -> dict[int, int]:
    """Counts per mapping quality value, ascending."""
    values, counts = np.unique(np.asarray(mapq, dtype=np.int64), return_counts=True)
    return {int(v): int(c) for v, c in zip(values, counts, strict=True)}


def position_histogram(
    positions: np.ndarray,
    bins: int = DEFAULT_HISTOGRAM_BINS,
    value_range: tuple[int, int] | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Histogram of alignment start positions.

    Missing positions (-1, unmapped records) are left out.

    Returns:
        (counts, bin_edges) as from numpy.histogram.
    """
    pos = np.asarray(positions, dtype=np.int64)
    pos = pos[pos >= 0]
    return np.histogram(pos, bins=bins, range=value_range)


def width_summary(widths: np.ndarray) -> dict:
    """Min, quartiles, mean and max of a width array (zeros when empty)."""
    w = np.asarray(widths, dtype=np.int64)
    if not len(w):
        return {"count": 0, "min": 0, "q1": 0, "median": 0, "mean": 0, "q3": 0, "max": 0}
    q1, median, q3 = np.percentile(w, [25, 50, 75])
    return {
        "count": int(len(w)),
        "min": int(w.min()),
        "q1": float(q1),
        "median": float(median),
        "mean": round(float(w.mean()), 2),
        "q3": float(q3),
        "max": int(w.max()),
    }


def coverage_stats(coverage: np.ndarray) -> dict:
    """Depth statistics over a per-base coverage array."""
    cov = np.asarray(coverage, dtype=np.int64)
    if not len(cov):
        return {
            "mean": 0,
            "min": 0,
            "max": 0,
            "median": 0,
            "bases_covered": 0,
            "total_bases": 0,
        }
    return {
        "mean": round(float(cov.mean()), 2),
        "min": int(cov.min()),
        "max": int(cov.max()),
        "median": float(np.median(cov)),
        "bases_covered": int(np.count_nonzero(cov)),
        "total_bases": int(len(cov)),
    }


def summarize_scan(result: ScanResult, bins: int = DEFAULT_HISTOGRAM_BINS) -> dict:
    """Summary of whichever standard fields a scan extracted."""
    summary: dict = {"region": result.label, "records": len(result)}

    if "strand" in result:
        summary["strand"] = strand_table(result["strand"])
    if "mapq" in result:
        summary["mapq"] = mapq_table(result["mapq"])
    if "qwidth" in result:
        summary["qwidth"] = width_summary(result["qwidth"])
    if "rname" in result:
        summary["contigs"] = dict(Counter(r for r in result["rname"] if r is not None))
    if "pos" in result:
        counts, edges = position_histogram(result["pos"], bins=bins)
        summary["position_histogram"] = {
            "counts": counts.tolist(),
            "edges": edges.tolist(),
        }
    return summary


def summarize_alignments(alignments: AlignmentSet) -> dict:
    """Summary of an AlignmentSet: per-contig counts, strands, widths, junctions."""
    return {
        "alignments": len(alignments),
        "contigs": dict(Counter(alignments.contig.tolist())),
        "strand": strand_table(alignments.strand.tolist()),
        "width": width_summary(alignments.width),
        "qwidth": width_summary(alignments.qwidth),
        "spliced": int(np.count_nonzero(alignments.njunc)),
    }
