"""Session cache for the index files of remote alignment files."""

from __future__ import annotations

import contextlib
import hashlib
import logging
import time
import uuid
from pathlib import Path

import httpx

from ..constants import (
    CACHE_SESSION_ID_LENGTH,
    DEFAULT_CACHE_TTL_SECONDS,
    INDEX_DOWNLOAD_TIMEOUT_SECONDS,
    REMOTE_FILE_SCHEMES,
)

logger = logging.getLogger(__name__)


def is_remote(path: str) -> bool:
    return path.startswith(REMOTE_FILE_SCHEMES)


def index_candidates(url: str) -> list[str]:
    """Index URLs to try for a remote alignment file, most specific first."""
    if url.endswith(".cram"):
        return [url + ".crai"]
    return [url + ".bai", url.rsplit(".", 1)[0] + ".bai"]


class IndexCache:
    """File-based cache for the .bai/.crai index of remote BAM/CRAM files.

    pysam downloads the index of a remote file into the working directory
    unless told otherwise. Each cache instance owns a session subdirectory
    under ``cache_dir`` so concurrent runs never share or clobber files.
    """

    def __init__(
        self,
        cache_dir: str,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        session_id: str | None = None,
    ):
        self.base_cache_dir = Path(cache_dir)
        self.ttl_seconds = ttl_seconds
        self.session_id = session_id or uuid.uuid4().hex[:CACHE_SESSION_ID_LENGTH]
        self.cache_dir = self.base_cache_dir / self.session_id
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def index_path(self, url: str) -> str | None:
        """Cache path for a remote file's index, or None for local files."""
        if not is_remote(url):
            return None

        # Hash keeps same-named files from different hosts apart (not used for security)
        digest = hashlib.md5(url.encode()).hexdigest()[:8]  # noqa: S324
        suffix = ".crai" if url.endswith(".cram") else ".bai"
        return str(self.cache_dir / f"{digest}_{Path(url).name}{suffix}")

    def is_valid(self, cache_path: str) -> bool:
        """True if the cached file exists and is younger than the TTL."""
        path = Path(cache_path)
        if not path.exists():
            return False
        return time.time() - path.stat().st_mtime < self.ttl_seconds

    def fetch_index(self, url: str, client: httpx.Client | None = None) -> str | None:
        """Download the index of a remote file into the cache.

        Returns:
            Path to the cached index, or None for local files and when every
            download attempt failed (pysam then resolves the index itself).
        """
        cache_path = self.index_path(url)
        if cache_path is None:
            return None

        if self.is_valid(cache_path):
            logger.debug("Using cached index: %s", cache_path)
            return cache_path

        logger.info("Downloading index for remote file: %s", url)
        owns_client = client is None
        if client is None:
            client = httpx.Client(timeout=INDEX_DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True)

        try:
            for index_url in index_candidates(url):
                try:
                    resp = client.get(index_url)
                except httpx.RequestError as e:
                    logger.warning("Index download error for %s: %s", index_url, e)
                    continue

                if resp.status_code == 200:
                    Path(cache_path).write_bytes(resp.content)
                    logger.info("Cached index (%d bytes): %s", len(resp.content), cache_path)
                    return cache_path
                if resp.status_code == 404:
                    logger.debug("Index not found at %s, trying next", index_url)
                else:
                    logger.warning("Index download failed (%d): %s", resp.status_code, index_url)
        finally:
            if owns_client:
                client.close()

        logger.warning("Could not download index for %s, falling back to pysam", url)
        return None

    def cleanup_session(self) -> int:
        """Remove this session's directory and everything in it.

        Returns:
            Number of files removed.
        """
        removed = 0
        if self.cache_dir.exists():
            for cache_file in self.cache_dir.iterdir():
                if cache_file.is_file():
                    cache_file.unlink()
                    removed += 1
            with contextlib.suppress(OSError):
                self.cache_dir.rmdir()
        return removed
