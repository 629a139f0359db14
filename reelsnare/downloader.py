"""
Fetching chunk bytes outside the browser.

Chunk URLs are pre-signed, so a plain HTTP client can fetch them without the
browser's cookies. Signed URLs may briefly answer 403/404 while they rotate, so
every failure, those included, is retried a fixed number of times.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

import httpx

from .chunks import Chunk
from .errors import ChunkDownloadError


logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "*/*",
}

MAX_RETRIES = 3
RETRY_DELAY = 1.0


class ChunkDownloader:
    """
    Downloads chunks with a bounded, fixed-delay retry policy.

    Example usage:
        async with ChunkDownloader() as downloader:
            await downloader.download_stream(target.video_chunks, Path("video.mp4"), "video")
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(headers=DEFAULT_HEADERS, timeout=30, follow_redirects=True)
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def fetch_chunk(self, chunk: Chunk, label: str = "chunk") -> bytes:
        """
        Fetch one chunk's bytes.

        Raises:
            ChunkDownloadError: If every attempt failed
        """
        last_error: Optional[BaseException] = None
        for attempt in range(1, self.max_retries + 1):
            retrying = " Retrying..." if attempt < self.max_retries else ""
            try:
                r = await self.client.get(chunk.url)
                if r.is_success:
                    return r.content
                last_error = httpx.HTTPStatusError(
                    f"HTTP error {r.status_code}", request=r.request, response=r
                )
                logger.warning("Attempt %d: status %d for %s.%s", attempt, r.status_code, label, retrying)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                last_error = e
                logger.warning("Attempt %d failed for %s: %s.%s", attempt, label, e, retrying)

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay)

        logger.error("Download failed for %s after %d attempts", label, self.max_retries)
        raise ChunkDownloadError(chunk.url, self.max_retries, last_error, label)

    async def download_stream(self, chunks: Sequence[Chunk], dest: Path, label: str = "stream") -> int:
        """
        Fetch chunks in the given order and append them to ``dest``.

        Any existing file at ``dest`` is replaced. The file is a flat concatenation,
        so the caller must pass chunks sorted by byte offset.

        Returns:
            Total number of bytes written
        """
        dest = Path(dest)
        logger.info("Starting download for %d %s chunks to %s", len(chunks), label, dest)
        dest.unlink(missing_ok=True)

        total = 0
        for i, chunk in enumerate(chunks, 1):
            name = f"{label} chunk {i}/{len(chunks)} (bytes {chunk.byte_start}-{chunk.byte_end})"
            data = await self.fetch_chunk(chunk, name)
            with open(dest, "ab") as f:
                f.write(data)
            total += len(data)
            logger.debug("Downloaded %s (%.1f KB)", name, len(data) / 1024)

        logger.info("Finished downloading all %s chunks. Total size: %.2f MB", label, total / (1024 * 1024))
        return total
