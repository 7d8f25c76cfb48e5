"""Command line entry point: python -m bamscan <command> FILE ..."""

from __future__ import annotations

import argparse
import atexit
import json
import logging
import sys
from collections.abc import Sequence
from dataclasses import replace

from . import plotting
from .config import BamScanConfig
from .core import handle as _handle_module
from .core.alignments import read_alignments
from .core.handle import AlignmentFileHandle
from .core.overlaps import find_overlaps
from .core.query import SCAN_FIELDS, FlagFilter, ScanQuery
from .core.regions import GenomicInterval, load_bed, parse_region
from .core.results import ScanResult
from .core.scan import count_records, iter_batches, scan_records
from .core.serialization import (
    serialize_alignments,
    serialize_counts,
    serialize_header,
    serialize_hits,
    serialize_scan,
    to_jsonable,
)
from .core.summary import coverage_stats, summarize_alignments, summarize_scan
from .reference import detect_genome_build

logger = logging.getLogger("bamscan")

PLOT_KINDS = ("positions", "strand", "coverage", "widths")


def _cleanup_on_exit() -> None:
    """Remove this session's downloaded index files."""
    if _handle_module._cache_instance is not None:
        removed = _handle_module._cache_instance.cleanup_session()
        if removed > 0:
            logger.info("Cleaned up %d cached index files", removed)


atexit.register(_cleanup_on_exit)


def _csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bamscan",
        description="Inspect BAM/CRAM/SAM alignment files with pysam.",
    )
    parser.add_argument("--log-level", help="Logging level (default from BAMSCAN_LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("file", help="Alignment file (.bam, .cram, .sam) or http(s) URL")
    common.add_argument("--index", help="Index file (.bai/.crai) if not next to the file")
    common.add_argument("--reference", help="Reference FASTA (needed for CRAM)")

    filters = argparse.ArgumentParser(add_help=False)
    filters.add_argument(
        "-r", "--region", action="append", default=[], dest="regions",
        help="Region chr:start-end or contig (repeatable)",
    )
    filters.add_argument("--bed", help="BED file of regions to restrict to")
    filters.add_argument("--min-mapq", type=int, help="Minimum mapping quality")
    filters.add_argument(
        "--primary", action="store_true",
        help="Only mapped primary alignments (no secondary/supplementary)",
    )
    filters.add_argument(
        "--no-duplicates", action="store_true", help="Skip records flagged as duplicates"
    )

    p = sub.add_parser("header", parents=[common], help="Header metadata and build guess")
    p.add_argument("--index-stats", action="store_true", help="Include per-contig index counts")
    p.add_argument("--text", action="store_true", help="Print the raw header text instead")

    sub.add_parser("count", parents=[common, filters], help="Records and nucleotides per region")

    p = sub.add_parser("scan", parents=[common, filters], help="Extract record fields")
    p.add_argument(
        "--fields", type=_csv, default=None,
        help=f"Comma-separated fields from: {','.join(SCAN_FIELDS)}",
    )
    p.add_argument("--tags", type=_csv, default=[], help="Comma-separated tags, e.g. NM,RG")
    p.add_argument("--max-records", type=int, help="Stop each region after this many records")
    p.add_argument("--summary", action="store_true", help="Print summaries instead of columns")

    p = sub.add_parser("batches", parents=[common, filters], help="Stream records in batches")
    p.add_argument("--yield-size", type=int, help="Records per batch")
    p.add_argument("--fields", type=_csv, default=None)

    p = sub.add_parser("alignments", parents=[common, filters], help="Read mapped alignments")
    p.add_argument("--names", action="store_true", help="Include read names")
    p.add_argument("--limit", type=int, default=100, help="Rows to print (default 100)")
    p.add_argument("--summary", action="store_true", help="Print a summary instead of rows")

    p = sub.add_parser(
        "overlaps", parents=[common, filters], help="Count alignments overlapping features"
    )
    p.add_argument("--features", required=True, help="BED file of features to count against")
    p.add_argument("--type", dest="overlap_type", default="any")
    p.add_argument("--min-overlap", type=int, default=1)
    p.add_argument("--stranded", action="store_true", help="Respect feature strand")
    p.add_argument("--span", action="store_true", help="Use alignment spans, not CIGAR blocks")

    p = sub.add_parser("plot", parents=[common, filters], help="Plot a summary to an image file")
    p.add_argument("--kind", choices=PLOT_KINDS, required=True)
    p.add_argument("-o", "--output", required=True, help="Output image (.png, .pdf, .svg)")
    p.add_argument("--bins", type=int, help="Histogram bins")

    return parser


def _config_from_args(args: argparse.Namespace) -> BamScanConfig:
    config = BamScanConfig.from_env()
    overrides = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if getattr(args, "reference", None):
        overrides["reference"] = args.reference
    if getattr(args, "min_mapq", None) is not None:
        overrides["min_mapq"] = args.min_mapq
    if getattr(args, "max_records", None) is not None:
        overrides["max_records"] = args.max_records
    if getattr(args, "yield_size", None) is not None:
        overrides["yield_size"] = args.yield_size
    if getattr(args, "bins", None) is not None:
        overrides["histogram_bins"] = args.bins
    return replace(config, **overrides) if overrides else config


def _query_from_args(
    args: argparse.Namespace, config: BamScanConfig, fields: Sequence[str] | None = None
) -> ScanQuery:
    regions: list[str | GenomicInterval] = list(args.regions)
    if args.bed:
        regions.extend(load_bed(args.bed))

    flags = FlagFilter.primary_mapped() if args.primary else FlagFilter()
    if args.no_duplicates:
        flags = replace(flags, is_duplicate=False)

    return ScanQuery.build(
        fields=fields,
        tags=getattr(args, "tags", ()),
        regions=regions,
        flags=flags,
        min_mapq=config.min_mapq,
    )


def _emit(payload: object) -> None:
    print(json.dumps(to_jsonable(payload), indent=2))


def _cmd_header(args: argparse.Namespace, bam: AlignmentFileHandle) -> None:
    header = bam.header()
    if args.text:
        print(header.text, end="")
        return
    payload = serialize_header(header, detect_genome_build(header.targets))
    payload["has_index"] = bam.has_index()
    if args.index_stats:
        payload["index_statistics"] = bam.index_statistics()
    _emit(payload)


def _cmd_count(args: argparse.Namespace, bam: AlignmentFileHandle, config: BamScanConfig) -> None:
    _emit(serialize_counts(count_records(bam, _query_from_args(args, config))))


def _cmd_scan(args: argparse.Namespace, bam: AlignmentFileHandle, config: BamScanConfig) -> None:
    query = _query_from_args(args, config, fields=args.fields)
    results = scan_records(bam, query, max_records=config.max_records)
    if args.summary:
        _emit([summarize_scan(r, bins=config.histogram_bins) for r in results.values()])
    else:
        _emit([serialize_scan(r) for r in results.values()])


def _cmd_batches(
    args: argparse.Namespace, bam: AlignmentFileHandle, config: BamScanConfig
) -> None:
    query = _query_from_args(args, config, fields=args.fields)
    batches = []
    for i, batch in enumerate(iter_batches(bam, query), start=1):
        summary = summarize_scan(batch, bins=config.histogram_bins)
        summary.pop("position_histogram", None)
        summary["batch"] = i
        batches.append(summary)
    _emit({"yield_size": bam.yield_size, "batches": batches})


def _cmd_alignments(
    args: argparse.Namespace, bam: AlignmentFileHandle, config: BamScanConfig
) -> None:
    alignments = read_alignments(bam, _query_from_args(args, config), with_names=args.names)
    if args.summary:
        _emit(summarize_alignments(alignments))
    else:
        _emit(serialize_alignments(alignments, limit=args.limit))


def _cmd_overlaps(
    args: argparse.Namespace, bam: AlignmentFileHandle, config: BamScanConfig
) -> None:
    features = bam.resolve(load_bed(args.features))
    alignments = read_alignments(bam, _query_from_args(args, config))
    hits = find_overlaps(
        alignments,
        features,
        overlap_type=args.overlap_type,
        min_overlap=args.min_overlap,
        ignore_strand=not args.stranded,
        use_blocks=not args.span,
    )
    _emit(serialize_hits(hits, features))


def _cmd_plot(args: argparse.Namespace, bam: AlignmentFileHandle, config: BamScanConfig) -> None:
    query = _query_from_args(args, config, fields=("strand", "pos", "qwidth"))

    if args.kind == "coverage":
        intervals = bam.intervals_for(query)
        if len(intervals) > 1:
            raise ValueError(f"Coverage plots take a single region, got {len(intervals)}")
        interval = intervals[0]
        if interval is None:
            raise ValueError("Coverage plots need a region (-r chr:start-end or -r contig)")
        alignments = read_alignments(bam, replace(query, regions=(interval,)))
        depth = alignments.coverage(interval.contig, interval.end or 0, start=interval.start)
        path = plotting.plot_coverage(
            depth, args.output, interval.contig, start=interval.start, dpi=config.plot_dpi
        )
        _emit({"plot": str(path), "region": interval.label, "coverage": coverage_stats(depth)})
        return

    scan = ScanResult.concat(scan_records(bam, query, max_records=0).values())
    if args.kind == "positions":
        path = plotting.plot_position_histogram(
            scan["pos"], args.output, bins=config.histogram_bins, dpi=config.plot_dpi
        )
    elif args.kind == "strand":
        path = plotting.plot_strand_counts(scan["strand"], args.output, dpi=config.plot_dpi)
    else:
        path = plotting.plot_width_distribution(
            scan["qwidth"], args.output, bins=config.histogram_bins, dpi=config.plot_dpi
        )
    _emit({"plot": str(path), "records": len(scan)})


def main(argv: Sequence[str] | None = None) -> int:
    """Run the bamscan command line. Returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _config_from_args(args)
    except ValueError as e:
        print(f"bamscan: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        with AlignmentFileHandle(
            args.file,
            index=args.index,
            yield_size=config.yield_size if args.command == "batches" else None,
            reference=config.reference,
            config=config,
        ) as bam:
            if args.command == "header":
                _cmd_header(args, bam)
            elif args.command == "count":
                _cmd_count(args, bam, config)
            elif args.command == "scan":
                _cmd_scan(args, bam, config)
            elif args.command == "batches":
                _cmd_batches(args, bam, config)
            elif args.command == "alignments":
                _cmd_alignments(args, bam, config)
            elif args.command == "overlaps":
                _cmd_overlaps(args, bam, config)
            elif args.command == "plot":
                _cmd_plot(args, bam, config)
    except (ValueError, OSError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"bamscan: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
