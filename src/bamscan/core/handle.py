"""File handle over an indexed BAM/CRAM/SAM file, backed by pysam."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Generator, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

import pysam

from ..config import BamScanConfig
from .cache import IndexCache, is_remote
from .query import ScanQuery
from .regions import GenomicInterval, resolve_interval
from .results import ScanResult
from .validation import file_mode, validate_path

logger = logging.getLogger(__name__)

# Module-level singleton so every handle in a process shares one cache session
_cache_instance: IndexCache | None = None


def get_cache(config: BamScanConfig) -> IndexCache:
    """Get or create the session index cache."""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = IndexCache(config.cache_dir, config.cache_ttl)
    return _cache_instance


@dataclass
class HeaderInfo:
    """Header metadata of an alignment file."""

    targets: dict[str, int]
    version: str | None = None
    sort_order: str | None = None
    read_groups: list[dict[str, Any]] = field(default_factory=list)
    programs: list[dict[str, Any]] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)
    text: str = ""

    @classmethod
    def from_pysam(cls, header: pysam.AlignmentHeader) -> HeaderInfo:
        hd = header.to_dict()
        targets = dict(zip(header.references, header.lengths, strict=True))
        return cls(
            targets=targets,
            version=hd.get("HD", {}).get("VN"),
            sort_order=hd.get("HD", {}).get("SO"),
            read_groups=list(hd.get("RG", [])),
            programs=list(hd.get("PG", [])),
            comments=list(hd.get("CO", [])),
            text=str(header),
        )


class AlignmentFileHandle:
    """An alignment file that is opened lazily and read through pysam.

    The handle also carries the state of a batched scan: with ``yield_size``
    set, each ``scan_next`` call returns at most that many records and picks
    up where the previous call stopped. Closing the handle resets the batch.

    Usage:
        with AlignmentFileHandle("sample.bam", yield_size=10_000) as bam:
            while len(batch := bam.scan_next(query)):
                ...
    """

    def __init__(
        self,
        path: str,
        index: str | None = None,
        yield_size: int | None = None,
        reference: str | None = None,
        config: BamScanConfig | None = None,
    ):
        if yield_size is not None and yield_size < 1:
            raise ValueError(f"yield_size must be at least 1, got {yield_size}")

        self.config = config or BamScanConfig()
        validate_path(path, self.config)

        self.path = path
        self.index = index
        self.yield_size = yield_size
        self.reference = reference or self.config.reference
        self.mode = file_mode(path)

        self._file: pysam.AlignmentFile | None = None
        self._stream: Generator[dict[str, Any], None, None] | None = None
        self._stream_query: ScanQuery | None = None

    # -- lifecycle --------------------------------------------------------

    def _open_file(self) -> pysam.AlignmentFile:
        return pysam.AlignmentFile(
            self.path,
            self.mode,  # type: ignore[arg-type]
            index_filename=self.index,
            reference_filename=self.reference,
        )

    def open(self) -> AlignmentFileHandle:
        """Open the underlying file; a no-op if it is already open."""
        if self._file is None:
            if self.index is None and is_remote(self.path):
                self.index = get_cache(self.config).fetch_index(self.path)
            logger.debug("Opening %s (mode=%s)", self.path, self.mode)
            self._file = self._open_file()
        return self

    def close(self) -> None:
        """Close the file and discard any batched scan in progress."""
        self.reset_stream()
        if self._file is not None:
            self._file.close()
            self._file = None

    @property
    def is_open(self) -> bool:
        return self._file is not None

    @property
    def file(self) -> pysam.AlignmentFile:
        return self.open()._file  # type: ignore[return-value]

    def __enter__(self) -> AlignmentFileHandle:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"AlignmentFileHandle({self.path!r}, yield_size={self.yield_size}, {state})"

    # -- header and index -------------------------------------------------

    def header(self) -> HeaderInfo:
        return HeaderInfo.from_pysam(self.file.header)

    @property
    def targets(self) -> dict[str, int]:
        """Contig name -> length, in header order."""
        samfile = self.file
        return dict(zip(samfile.references, samfile.lengths, strict=True))

    def has_index(self) -> bool:
        samfile = self.file
        return bool(samfile.is_bam or samfile.is_cram) and samfile.has_index()

    def index_statistics(self) -> list[dict[str, Any]]:
        """Mapped and unmapped record counts per contig, read from the index.

        Raises:
            ValueError: If the file has no index.
        """
        if not self.has_index():
            raise ValueError(f"Index required for index statistics: {self.path}")
        return [
            {
                "contig": stat.contig,
                "mapped": stat.mapped,
                "unmapped": stat.unmapped,
                "total": stat.total,
            }
            for stat in self.file.get_index_statistics()
        ]

    def resolve(self, regions: Sequence[GenomicInterval]) -> list[GenomicInterval]:
        """Resolve open-ended intervals and check every contig exists."""
        targets = self.targets
        return [resolve_interval(r, targets) for r in regions]

    def intervals_for(self, query: ScanQuery) -> list[GenomicInterval | None]:
        """Resolved intervals a query reads, or ``[None]`` for the whole file.

        Raises:
            ValueError: If the query names regions and the file has no index,
                or a region does not fit the header.
        """
        if not query.regions:
            return [None]
        if not self.has_index():
            raise ValueError(f"Index required for region queries: {self.path}")
        return list(self.resolve(query.regions))

    # -- record iteration -------------------------------------------------

    def records(
        self,
        interval: GenomicInterval | None = None,
        independent: bool = False,
    ) -> Iterator[pysam.AlignedSegment]:
        """Iterate raw pysam records in an interval, or the whole file.

        Whole-file iteration (interval None) includes unmapped records and
        always reads from a fresh file handle so it starts at the first
        record. Region iteration needs an index.

        Args:
            interval: Resolved interval, or None for every record.
            independent: Give a region iterator its own file handle so it can
                be interleaved with other reads of this handle.

        Raises:
            ValueError: If a region is requested and the file has no index.
        """
        if interval is None:
            return self._all_records()

        if not self.has_index():
            raise ValueError(f"Index required for region queries: {self.path}")

        logger.debug("Fetching %s from %s", interval.label, self.path)
        return self.file.fetch(
            interval.contig,
            interval.start,
            interval.end,
            multiple_iterators=independent,
        )

    def _all_records(self) -> Iterator[pysam.AlignedSegment]:
        logger.debug("Reading all records of %s", self.path)
        with self._open_file() as samfile:
            yield from samfile.fetch(until_eof=True)

    def _stream_rows(
        self, query: ScanQuery, intervals: Sequence[GenomicInterval | None]
    ) -> Generator[dict[str, Any], None, None]:
        for interval in intervals:
            for read in self.records(interval, independent=True):
                if query.accepts(read):
                    yield query.extract(read)

    def reset_stream(self) -> None:
        """Discard the batched scan in progress; the next scan_next starts over."""
        if self._stream is not None:
            self._stream.close()
        self._stream = None
        self._stream_query = None

    def scan_next(self, query: ScanQuery) -> ScanResult:
        """Return the next batch of at most ``yield_size`` records.

        An empty result means the stream is exhausted. Passing a different
        query than the previous call restarts the stream.
        """
        if self._stream is None or self._stream_query != query:
            self.reset_stream()
            self._stream = self._stream_rows(query, self.intervals_for(query))
            self._stream_query = query

        if self.yield_size is None:
            rows = list(self._stream)
        else:
            rows = list(itertools.islice(self._stream, self.yield_size))
        return ScanResult.from_rows(query, rows)
