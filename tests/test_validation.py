"""Unit tests for bamscan.core.validation module."""

from pathlib import Path

import pytest

from bamscan.config import BamScanConfig
from bamscan.core.validation import file_mode, validate_path, validate_plot_path


class TestFileMode:
    """Tests for file_mode."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "path, mode",
        [("a.bam", "rb"), ("A.BAM", "rb"), ("a.cram", "rc"), ("a.sam", "r")],
    )
    def test_known_extensions(self, path, mode):
        assert file_mode(path) == mode

    @pytest.mark.unit
    def test_unknown_extension(self):
        with pytest.raises(ValueError, match="Unsupported file type"):
            file_mode("reads.fastq.gz")


class TestValidatePath:
    """Tests for validate_path."""

    @pytest.mark.unit
    def test_local_path_allowed_by_default(self):
        validate_path("/data/sample.bam", BamScanConfig())

    @pytest.mark.unit
    def test_too_long(self):
        with pytest.raises(ValueError, match="File path too long"):
            validate_path("/" + "a" * 3000 + ".bam", BamScanConfig())

    @pytest.mark.unit
    def test_remote_disabled(self):
        with pytest.raises(ValueError, match="Remote files are disabled"):
            validate_path("https://example.com/a.bam", BamScanConfig())

    @pytest.mark.unit
    def test_remote_enabled(self):
        validate_path("https://example.com/a.bam", BamScanConfig(allow_remote_files=True))

    @pytest.mark.unit
    def test_unsupported_scheme(self):
        config = BamScanConfig(allow_remote_files=True)
        with pytest.raises(ValueError, match="Scheme not supported"):
            validate_path("ftp://example.com/a.bam", config)

    @pytest.mark.unit
    def test_allowed_directories(self, tmp_path: Path):
        allowed = tmp_path / "allowed"
        allowed.mkdir()
        config = BamScanConfig(allowed_directories=[str(allowed)])

        validate_path(str(allowed / "x.bam"), config)
        with pytest.raises(ValueError, match="Path is not in allowed directories"):
            validate_path(str(tmp_path / "other" / "x.bam"), config)

    @pytest.mark.unit
    def test_traversal_blocked(self, tmp_path: Path):
        allowed = tmp_path / "allowed"
        allowed.mkdir()
        config = BamScanConfig(allowed_directories=[str(allowed)])

        with pytest.raises(ValueError, match="Path is not in allowed directories"):
            validate_path(str(allowed / ".." / "x.bam"), config)


class TestValidatePlotPath:
    """Tests for validate_plot_path."""

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["out.png", "out.PDF", "out.svg"])
    def test_supported(self, name):
        assert validate_plot_path(name) == Path(name)

    @pytest.mark.unit
    def test_unsupported(self):
        with pytest.raises(ValueError, match="Unsupported plot format"):
            validate_plot_path("out.gif")
