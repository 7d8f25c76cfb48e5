"""Tests for bamscan.core.scan: counting, field scans and batch iteration."""

import numpy as np
import pytest

from bamscan.config import BamScanConfig
from bamscan.core.handle import AlignmentFileHandle
from bamscan.core.query import FlagFilter, ScanQuery
from bamscan.core.regions import GenomicInterval
from bamscan.core.results import ScanResult
from bamscan.core.scan import count_records, iter_batches, scan_records


class TestCountRecords:
    """Tests for count_records."""

    @pytest.mark.unit
    def test_whole_file(self, bam):
        (result,) = count_records(bam)

        assert result.label == "*"
        assert result.region is None
        assert result.records == 22
        assert result.nucleotides == 1032

    @pytest.mark.unit
    def test_per_region_in_query_order(self, bam):
        query = ScanQuery.build(regions=["chr2", "chr1:100-200", "chr1:500-600", "chr1"])

        results = count_records(bam, query)

        assert [r.label for r in results] == [
            "chr2:0-500",
            "chr1:100-200",
            "chr1:500-600",
            "chr1:0-1000",
        ]
        assert [r.records for r in results] == [3, 4, 10, 18]
        assert results[1].nucleotides == 180
        assert results[2].nucleotides == 500

    @pytest.mark.unit
    def test_min_mapq(self, bam):
        query = ScanQuery.build(regions=["chr1:100-200"], min_mapq=30)
        assert count_records(bam, query)[0].records == 3

    @pytest.mark.unit
    def test_flag_filter(self, bam):
        region = ["chr1:390-450"]
        assert count_records(bam, ScanQuery.build(regions=region))[0].records == 1

        primary = ScanQuery.build(regions=region, flags=FlagFilter.primary_mapped())
        assert count_records(bam, primary)[0].records == 0

    @pytest.mark.unit
    def test_reversed_interval_rejected(self, bam):
        """A hand-built interval with end before start fails before reaching pysam."""
        query = ScanQuery.build(regions=[GenomicInterval("chr1", 500, 100)])
        with pytest.raises(ValueError, match="Invalid interval chr1:500-100"):
            count_records(bam, query)

    @pytest.mark.unit
    def test_empty_file(self, empty_bam_path):
        with AlignmentFileHandle(empty_bam_path) as handle:
            (result,) = count_records(handle)
        assert result.records == 0
        assert result.nucleotides == 0

    @pytest.mark.unit
    def test_sam_whole_file(self, small_sam_path):
        with AlignmentFileHandle(small_sam_path) as handle:
            assert count_records(handle)[0].records == 3

    @pytest.mark.unit
    def test_sam_regions_need_index(self, small_sam_path):
        with AlignmentFileHandle(small_sam_path) as handle:
            with pytest.raises(ValueError, match="Index required"):
                count_records(handle, ScanQuery.build(regions=["chr1"]))


class TestScanRecords:
    """Tests for scan_records."""

    @pytest.mark.unit
    def test_whole_file_default_fields(self, bam):
        results = scan_records(bam)

        assert list(results) == ["*"]
        result = results["*"]
        assert len(result) == 22
        assert result.fields == ["rname", "strand", "pos", "qwidth", "mapq"]
        assert isinstance(result["pos"], np.ndarray)
        assert result["pos"].dtype == np.int64
        assert sorted(result["strand"]) == sorted(["+"] * 14 + ["-"] * 7 + ["*"])

    @pytest.mark.unit
    def test_unmapped_missing_values(self, bam):
        result = scan_records(bam, ScanQuery(fields=("qname", "rname", "pos", "qwidth")))["*"]

        i = result["qname"].index("read_unmapped")
        assert result["rname"][i] is None
        assert result["pos"][i] == -1
        assert result["qwidth"][i] == 40

    @pytest.mark.unit
    def test_region_keys_and_tags(self, bam):
        query = ScanQuery.build(
            fields=["qname", "pos", "qwidth"],
            tags=["NM", "RG"],
            regions=["chr1:100-200", "chr1:200-260"],
        )

        results = scan_records(bam, query)

        assert list(results) == ["chr1:100-200", "chr1:200-260"]
        first = results["chr1:100-200"]
        rows = dict(zip(first["qname"], zip(first["NM"], first["RG"], strict=True), strict=True))
        assert rows == {
            "read1": (None, "grp1"),
            "read2": (None, None),
            "read3": (1, None),
            "read6_lowq": (None, None),
        }

        second = results["chr1:200-260"]
        assert second["qname"] == ["read4"]
        assert second["qwidth"].tolist() == [52]

    @pytest.mark.unit
    def test_overlapping_regions_repeat_records(self, bam):
        query = ScanQuery.build(fields=["qname"], regions=["chr1:100-150", "chr1:140-200"])
        results = scan_records(bam, query)

        assert "read2" in results["chr1:100-150"]["qname"]
        assert "read2" in results["chr1:140-200"]["qname"]

    @pytest.mark.unit
    def test_named_regions_on_same_coordinates(self, bam):
        """Named features sharing coordinates each get their own result."""
        regions = [
            GenomicInterval("chr1", 100, 200, strand="+", name="geneA"),
            GenomicInterval("chr1", 100, 200, strand="-", name="geneA_antisense"),
        ]
        query = ScanQuery.build(fields=["qname"], regions=regions)

        results = scan_records(bam, query)
        counts = count_records(bam, query)

        assert list(results) == ["chr1:100-200 geneA", "chr1:100-200 geneA_antisense"]
        assert len(results) == len(counts) == 2
        assert [len(r) for r in results.values()] == [c.records for c in counts] == [4, 4]
        assert results["chr1:100-200 geneA_antisense"].region.name == "geneA_antisense"

    @pytest.mark.unit
    def test_repeated_regions_kept(self, bam):
        """Repeating a region keeps every copy under a numbered key."""
        query = ScanQuery.build(
            fields=["qname"], regions=["chr1:100-200", "chr1:100-200", "chr1:100-200"]
        )

        results = scan_records(bam, query)

        assert list(results) == ["chr1:100-200", "chr1:100-200#2", "chr1:100-200#3"]
        assert all(len(r) == 4 for r in results.values())

    @pytest.mark.unit
    def test_mate_fields(self, bam):
        query = ScanQuery.build(fields=["qname", "flag", "mrnm", "mpos", "isize"], regions=["chr2"])
        result = scan_records(bam, query)["chr2:0-500"]

        by_flag = {int(f): i for i, f in enumerate(result["flag"])}
        first, second = by_flag[99], by_flag[147]
        assert result["mrnm"][first] == "chr2"
        assert result["mpos"][first] == 300
        assert result["isize"][first] == 250
        assert result["mpos"][second] == 100
        assert result["isize"][second] == -250

    @pytest.mark.unit
    def test_max_records(self, bam):
        query = ScanQuery.build(regions=["chr1:500-600", "chr2"])
        results = scan_records(bam, query, max_records=4)

        assert len(results["chr1:500-600"]) == 4
        assert len(results["chr2:0-500"]) == 3

    @pytest.mark.unit
    def test_max_records_from_config(self, small_bam_path):
        config = BamScanConfig(max_records=5)
        with AlignmentFileHandle(small_bam_path, config=config) as handle:
            assert len(scan_records(handle)["*"]) == 5
            assert len(scan_records(handle, max_records=0)["*"]) == 22

    @pytest.mark.unit
    def test_empty_region(self, bam):
        result = scan_records(bam, ScanQuery.build(regions=["chr1:900-1000"]))["chr1:900-1000"]

        assert len(result) == 0
        assert result["pos"].dtype == np.int64
        assert result["rname"] == []


class TestIterBatches:
    """Tests for iter_batches."""

    @pytest.mark.unit
    def test_batches_cover_scan(self, small_bam_path):
        query = ScanQuery(fields=("qname", "pos"))
        with AlignmentFileHandle(small_bam_path, yield_size=6) as handle:
            batches = list(iter_batches(handle, query))
            full = scan_records(handle, query)["*"]

        assert [len(b) for b in batches] == [6, 6, 6, 4]
        joined = ScanResult.concat(batches)
        assert joined["qname"] == full["qname"]
        assert np.array_equal(joined["pos"], full["pos"])

    @pytest.mark.unit
    def test_restarts_each_call(self, small_bam_path):
        query = ScanQuery.build(fields=["qname"], regions=["chr2"])
        with AlignmentFileHandle(small_bam_path, yield_size=2) as handle:
            next(iter_batches(handle, query))
            assert sum(len(b) for b in iter_batches(handle, query)) == 3

    @pytest.mark.unit
    def test_without_yield_size_single_batch(self, bam):
        batches = list(iter_batches(bam))
        assert [len(b) for b in batches] == [22]

    @pytest.mark.unit
    def test_empty_file_yields_nothing(self, empty_bam_path):
        with AlignmentFileHandle(empty_bam_path, yield_size=10) as handle:
            assert list(iter_batches(handle)) == []
