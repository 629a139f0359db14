"""
Passive collection of media chunks from a browser's network traffic.

The observer sees every response the page receives. Almost all of it is noise, so
each event goes through a cheap string filter before anything is parsed, and the
handler never does I/O: chunk bytes are fetched later by the downloader.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

from .chunks import Chunk, MediaType, classify_url, parse_byte_range


logger = logging.getLogger(__name__)

MEDIA_MARKER = ".mp4"
RANGE_MARKER = "bytestart="


@dataclass
class AssetStream:
    """Chunks captured for one logical media asset, in capture order."""
    asset_id: str
    video: list[Chunk] = field(default_factory=list)
    audio: list[Chunk] = field(default_factory=list)

    @property
    def total_video_bytes(self) -> int:
        return sum(c.size for c in self.video)

    @property
    def total_audio_bytes(self) -> int:
        return sum(c.size for c in self.audio)


class ChunkRegistry:
    """
    Asset id -> AssetStream mapping for one collection session.

    Assets keep the order in which they were first seen. Chunk URLs are remembered
    so the same request delivered twice is only recorded once.
    """

    def __init__(self):
        self._assets: dict[str, AssetStream] = {}
        self._seen_urls: set[str] = set()

    def __len__(self) -> int:
        return len(self._assets)

    def __iter__(self) -> Iterator[AssetStream]:
        return iter(self._assets.values())

    def __contains__(self, asset_id: str) -> bool:
        return asset_id in self._assets

    def get(self, asset_id: str) -> Optional[AssetStream]:
        return self._assets.get(asset_id)

    @property
    def asset_ids(self) -> list[str]:
        return list(self._assets)

    @property
    def chunk_count(self) -> int:
        return sum(len(a.video) + len(a.audio) for a in self._assets.values())

    def has_seen(self, url: str) -> bool:
        return url in self._seen_urls

    def add(self, asset_id: str, media_type: MediaType, chunk: Chunk) -> bool:
        """
        Record a chunk under its asset.

        Returns:
            True if this created a new asset
        """
        if media_type not in (MediaType.VIDEO, MediaType.AUDIO):
            raise ValueError(f"Cannot store chunk of type {media_type!r}")

        created = asset_id not in self._assets
        if created:
            self._assets[asset_id] = AssetStream(asset_id)
        stream = self._assets[asset_id]

        self._seen_urls.add(chunk.url)
        if media_type is MediaType.VIDEO:
            stream.video.append(chunk)
        else:
            stream.audio.append(chunk)
        return created


class ResponseObserver:
    """Feeds browser response events into a ChunkRegistry."""

    def __init__(self, registry: ChunkRegistry, clock: Callable[[], float] = time.time):
        self.registry = registry
        self.clock = clock

    def on_response(self, url: str, status: int) -> Optional[Chunk]:
        """
        Handle one response event.

        Returns:
            The recorded Chunk, or None if the response was ignored
        """
        if MEDIA_MARKER not in url or RANGE_MARKER not in url:
            return None
        if not 200 <= status < 300:
            return None
        if self.registry.has_seen(url):
            return None

        byte_range = parse_byte_range(url)
        if byte_range is None:
            logger.debug("Failed to parse byte range in URL: %s", url[:100])
            return None

        info = classify_url(url)
        if info is None:
            return None
        if info.media_type is MediaType.UNKNOWN:
            logger.debug("Skipping chunk for asset %s with unknown encode tag %r", info.asset_id, info.encode_tag)
            return None

        chunk = Chunk(url=url, byte_start=byte_range[0], byte_end=byte_range[1], captured_at=self.clock())
        if self.registry.add(info.asset_id, info.media_type, chunk):
            logger.info("Detected new asset ID: %s", info.asset_id)
        logger.debug(
            "Captured %s chunk for asset %s: start=%d, size=%d",
            info.media_type.value, info.asset_id, chunk.byte_start, chunk.size,
        )
        return chunk

    __call__ = on_response
