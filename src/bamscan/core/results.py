"""Result containers for record counts and field scans."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..constants import WHOLE_FILE_LABEL
from .query import SCAN_FIELDS, ScanQuery
from .regions import GenomicInterval


@dataclass
class CountResult:
    """Record and nucleotide totals for one region (or the whole file)."""

    region: GenomicInterval | None
    records: int
    nucleotides: int

    @property
    def label(self) -> str:
        return self.region.label if self.region is not None else WHOLE_FILE_LABEL


class ScanResult:
    """Column-oriented fields extracted from a run of records.

    Numeric fields (pos, flag, mapq, ...) are int64 numpy arrays with -1 for
    missing values; string fields and tags are plain lists with None for
    missing values.
    """

    def __init__(
        self,
        columns: dict[str, Any],
        size: int,
        region: GenomicInterval | None = None,
    ):
        self.columns = columns
        self.size = size
        self.region = region

    @classmethod
    def from_rows(
        cls,
        query: ScanQuery,
        rows: Sequence[dict[str, Any]],
        region: GenomicInterval | None = None,
    ) -> ScanResult:
        columns: dict[str, Any] = {}
        for name in query.fields:
            values = [row[name] for row in rows]
            if SCAN_FIELDS[name][1]:
                columns[name] = np.asarray(
                    [-1 if v is None else v for v in values], dtype=np.int64
                )
            else:
                columns[name] = values
        for tag in query.tags:
            columns[tag] = [row[tag] for row in rows]
        return cls(columns, len(rows), region)

    @classmethod
    def concat(cls, results: Iterable[ScanResult]) -> ScanResult:
        """Join results with the same columns end to end (region is dropped)."""
        results = list(results)
        if not results:
            return cls({}, 0)

        names = list(results[0].columns)
        columns: dict[str, Any] = {}
        for name in names:
            parts = [r.columns[name] for r in results]
            if isinstance(parts[0], np.ndarray):
                columns[name] = np.concatenate(parts)
            else:
                columns[name] = [v for part in parts for v in part]
        return cls(columns, sum(r.size for r in results))

    @property
    def label(self) -> str:
        return self.region.label if self.region is not None else WHOLE_FILE_LABEL

    @property
    def fields(self) -> list[str]:
        return list(self.columns)

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, name: str) -> Any:
        return self.columns[name]

    def __contains__(self, name: object) -> bool:
        return name in self.columns

    def __repr__(self) -> str:
        return f"ScanResult({self.label}, records={self.size}, fields={self.fields})"
