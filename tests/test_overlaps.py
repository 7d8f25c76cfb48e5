"""Tests for bamscan.core.overlaps."""

import numpy as np
import pytest

from bamscan.core.alignments import AlignmentSet, read_alignments
from bamscan.core.overlaps import count_overlaps, find_overlaps
from bamscan.core.regions import GenomicInterval, load_bed


@pytest.fixture
def alignments(bam):
    return read_alignments(bam, with_names=True)


@pytest.fixture
def features(bam, features_bed_path):
    return bam.resolve(load_bed(features_bed_path))


def _names(alignments, hits):
    return sorted(alignments.names[i] for i in hits.query_hits)


class TestCountOverlaps:
    """Tests for count_overlaps against the fixture features."""

    @pytest.mark.unit
    def test_any_block_aware(self, alignments, features):
        assert count_overlaps(features, alignments).tolist() == [4, 10, 0, 3]

    @pytest.mark.unit
    def test_span_counts_bridging_read(self, alignments, features):
        counts = count_overlaps(features, alignments, use_blocks=False)
        assert counts.tolist() == [4, 10, 1, 3]

    @pytest.mark.unit
    def test_stranded(self, alignments, features):
        counts = count_overlaps(features, alignments, ignore_strand=False)
        assert counts.tolist() == [3, 5, 0, 2]

    @pytest.mark.unit
    def test_unstranded_interval_matches_both_strands(self, alignments):
        interval = GenomicInterval("chr1", 500, 600)
        counts = count_overlaps([interval], alignments, ignore_strand=False)
        assert counts.tolist() == [10]

    @pytest.mark.unit
    def test_no_intervals(self, alignments):
        assert count_overlaps([], alignments).tolist() == []

    @pytest.mark.unit
    def test_no_alignments(self, features):
        assert count_overlaps(features, AlignmentSet.empty()).tolist() == [0, 0, 0, 0]


class TestOverlapTypes:
    """Tests for the overlap_type modes of find_overlaps."""

    @pytest.mark.unit
    def test_within(self, alignments):
        hits = find_overlaps(
            alignments, [GenomicInterval("chr1", 100, 160)], overlap_type="within"
        )
        assert _names(alignments, hits) == ["read1", "read6_lowq"]

    @pytest.mark.unit
    def test_start(self, alignments):
        hits = find_overlaps(alignments, [GenomicInterval("chr1", 100, 160)], overlap_type="start")
        assert _names(alignments, hits) == ["read1", "read6_lowq"]

    @pytest.mark.unit
    def test_end(self, alignments):
        hits = find_overlaps(alignments, [GenomicInterval("chr1", 100, 130)], overlap_type="end")
        assert _names(alignments, hits) == ["read6_lowq"]

    @pytest.mark.unit
    def test_equal(self, alignments):
        hits = find_overlaps(alignments, [GenomicInterval("chr1", 100, 150)], overlap_type="equal")
        assert _names(alignments, hits) == ["read1"]

    @pytest.mark.unit
    def test_min_overlap(self, alignments):
        interval = [GenomicInterval("chr1", 145, 200)]

        assert len(find_overlaps(alignments, interval, min_overlap=1)) == 3
        hits = find_overlaps(alignments, interval, min_overlap=10)
        assert _names(alignments, hits) == ["read2", "read3"]

    @pytest.mark.unit
    def test_spliced_block_overlap(self, alignments):
        # only the second block (820-850) reaches this interval
        hits = find_overlaps(alignments, [GenomicInterval("chr1", 810, 900)])
        assert _names(alignments, hits) == ["read_spliced"]

    @pytest.mark.unit
    def test_unknown_type(self, alignments):
        with pytest.raises(ValueError, match="overlap_type must be one of"):
            find_overlaps(alignments, [GenomicInterval("chr1", 0, 10)], overlap_type="near")

    @pytest.mark.unit
    def test_min_overlap_positive(self, alignments):
        with pytest.raises(ValueError, match="min_overlap must be at least 1"):
            find_overlaps(alignments, [GenomicInterval("chr1", 0, 10)], min_overlap=0)

    @pytest.mark.unit
    def test_unresolved_interval(self, alignments):
        with pytest.raises(ValueError, match="must be resolved"):
            find_overlaps(alignments, [GenomicInterval("chr1")])


class TestHits:
    """Tests for the Hits container."""

    @pytest.mark.unit
    def test_sorted_pairs(self, alignments):
        intervals = [GenomicInterval("chr1", 140, 200), GenomicInterval("chr1", 100, 150)]
        hits = find_overlaps(alignments, intervals)

        pairs = hits.pairs()
        assert pairs == sorted(pairs)
        assert len(hits) == len(pairs)

    @pytest.mark.unit
    def test_counts(self, alignments):
        intervals = [GenomicInterval("chr1", 140, 200), GenomicInterval("chr1", 100, 150)]
        hits = find_overlaps(alignments, intervals)

        by_query = hits.count_by_query()
        assert len(by_query) == len(alignments)
        assert by_query[alignments.names.index("read2")] == 2
        assert by_query[alignments.names.index("read6_lowq")] == 1
        assert by_query[alignments.names.index("read8_chr2")] == 0
        assert np.array_equal(hits.count_by_subject(), [3, 4])
