"""Shared test fixtures for bamscan tests."""

import os

import pytest

import create_fixtures
from bamscan.core import handle as _handle_module


@pytest.fixture(autouse=True)
def _isolate_cache(tmp_path, monkeypatch):
    """Point the index cache at a temp dir and reset the cache singleton."""
    monkeypatch.setenv("BAMSCAN_CACHE_DIR", str(tmp_path / "cache"))
    yield
    _handle_module._cache_instance = None


@pytest.fixture(scope="session")
def fixtures_dir(tmp_path_factory):
    """Directory holding the generated BAM/SAM/BED fixtures."""
    return create_fixtures.create_all(str(tmp_path_factory.mktemp("fixtures")))


@pytest.fixture
def small_bam_path(fixtures_dir):
    """Sorted, indexed BAM with 22 records on chr1, chr2 and unmapped."""
    return os.path.join(fixtures_dir, "small.bam")


@pytest.fixture
def unindexed_bam_path(fixtures_dir):
    """Copy of small.bam without an index."""
    return os.path.join(fixtures_dir, "unindexed.bam")


@pytest.fixture
def small_sam_path(fixtures_dir):
    """Plain SAM with read1, read2 and read_unmapped."""
    return os.path.join(fixtures_dir, "small.sam")


@pytest.fixture
def empty_bam_path(fixtures_dir):
    """Indexed BAM with a header and no records."""
    return os.path.join(fixtures_dir, "empty.bam")


@pytest.fixture
def features_bed_path(fixtures_dir):
    """BED file: geneA, geneB, intronic on chr1 and geneC on chr2."""
    return os.path.join(fixtures_dir, "features.bed")


@pytest.fixture
def bam(small_bam_path):
    """Open handle on small.bam, closed after the test."""
    from bamscan import AlignmentFileHandle

    with AlignmentFileHandle(small_bam_path) as handle:
        yield handle
