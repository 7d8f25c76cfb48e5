"""JSON-compatible views of bamscan results.

numpy arrays and scalars become plain lists and numbers, array-valued tags
become lists, and integer-keyed tables get string keys so the output can go
straight to ``json.dumps``.
"""

from __future__ import annotations

from array import array
from dataclasses import asdict
from typing import Any

import numpy as np

from ..reference import BuildGuess
from .alignments import AlignmentSet
from .handle import HeaderInfo
from .overlaps import Hits
from .regions import GenomicInterval
from .results import CountResult, ScanResult


def to_jsonable(value: Any) -> Any:
    """Recursively convert numpy and array values to JSON-compatible types."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, array):
        return value.tolist()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [to_jsonable(v) for v in value]
    return value


def serialize_interval(interval: GenomicInterval | None) -> dict | None:
    if interval is None:
        return None
    d: dict[str, Any] = {"contig": interval.contig, "start": interval.start, "end": interval.end}
    if interval.strand != "*":
        d["strand"] = interval.strand
    if interval.name:
        d["name"] = interval.name
    return d


def serialize_header(header: HeaderInfo, build: BuildGuess | None = None) -> dict:
    """Header metadata, omitting the raw text."""
    d: dict[str, Any] = {
        "version": header.version,
        "sort_order": header.sort_order,
        "targets": [{"name": n, "length": length} for n, length in header.targets.items()],
        "read_groups": header.read_groups,
        "programs": header.programs,
        "comments": header.comments,
    }
    if build is not None:
        d["genome_build"] = asdict(build)
    return to_jsonable(d)


def serialize_counts(counts: list[CountResult]) -> list[dict]:
    return [
        {
            "region": c.label,
            "records": c.records,
            "nucleotides": c.nucleotides,
        }
        for c in counts
    ]


def serialize_scan(result: ScanResult, include_columns: bool = True) -> dict:
    """One scan result; ``include_columns=False`` keeps only the record count."""
    d: dict[str, Any] = {
        "region": result.label,
        "records": len(result),
        "fields": result.fields,
    }
    if include_columns:
        d["columns"] = to_jsonable(result.columns)
    return d


def serialize_alignments(alignments: AlignmentSet, limit: int | None = None) -> dict:
    """Alignments as a list of row dicts, optionally truncated to ``limit`` rows."""
    n = len(alignments) if limit is None else min(limit, len(alignments))
    rows = []
    for i in range(n):
        row: dict[str, Any] = {
            "contig": alignments.contig[i],
            "start": int(alignments.start[i]),
            "end": int(alignments.end[i]),
            "strand": str(alignments.strand[i]),
            "cigar": alignments.cigar[i],
            "qwidth": int(alignments.qwidth[i]),
            "mapq": int(alignments.mapq[i]),
        }
        if alignments.names is not None:
            row["name"] = alignments.names[i]
        rows.append(row)
    return {"count": len(alignments), "truncated": n < len(alignments), "alignments": rows}


def serialize_hits(hits: Hits, intervals: list[GenomicInterval]) -> dict:
    """Per-interval overlap counts plus the raw hit pairs."""
    counts = hits.count_by_subject()
    return {
        "hits": len(hits),
        "intervals": [
            {**(serialize_interval(iv) or {}), "count": int(c)}
            for iv, c in zip(intervals, counts, strict=True)
        ],
        "pairs": hits.pairs(),
    }
