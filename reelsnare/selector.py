"""
Choosing which captured asset is the one the user actually played.

A page requests several media resources (thumbnails, previews, the real reel). The
played asset reliably has the most video data, so that is the one we pick.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Sequence

from .chunks import Chunk
from .collector import AssetStream, ChunkRegistry
from .errors import NoTargetAssetError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectedTarget:
    """The asset to download, with its chunks sorted by byte offset."""
    asset_id: str
    video_chunks: tuple[Chunk, ...]
    audio_chunks: tuple[Chunk, ...]
    video_gaps: int = 0
    audio_gaps: int = 0

    @property
    def has_audio(self) -> bool:
        return len(self.audio_chunks) > 0

    @property
    def total_video_bytes(self) -> int:
        return sum(c.size for c in self.video_chunks)


def sort_chunks(chunks: Iterable[Chunk]) -> list[Chunk]:
    return sorted(chunks, key=lambda c: c.byte_start)


def count_gaps(chunks: Sequence[Chunk]) -> int:
    """
    Count discontinuities in a byte-sorted chunk sequence.

    A chunk that starts neither at 0 nor right after the furthest byte seen so far is
    a gap.
    """
    gaps = 0
    last_end = -1
    for chunk in chunks:
        if chunk.byte_start != 0 and last_end != -1 and chunk.byte_start != last_end + 1:
            gaps += 1
        last_end = max(last_end, chunk.byte_end)
    return gaps


def _largest_video_asset(registry: ChunkRegistry) -> Optional[AssetStream]:
    best = None
    best_total = -1
    for stream in registry:
        total = stream.total_video_bytes
        logger.info(
            "Asset %s: %d video chunks (%.2f MB), %d audio chunks",
            stream.asset_id, len(stream.video), total / (1024 * 1024), len(stream.audio),
        )
        # strict comparison keeps the first-seen asset on ties
        if stream.video and total > best_total:
            best, best_total = stream, total
    return best


def select_target(registry: ChunkRegistry) -> SelectedTarget:
    """
    Pick the asset with the most video bytes.

    Raises:
        NoTargetAssetError: If no asset has any video data
    """
    stream = _largest_video_asset(registry)
    if stream is None:
        raise NoTargetAssetError("No video chunks were captured for any asset.", registry.asset_ids)
    if stream.total_video_bytes <= 0:
        raise NoTargetAssetError(
            "Could not identify a target video asset with significant size.", registry.asset_ids
        )

    logger.info("Selected asset %s as target (largest video size)", stream.asset_id)
    if not stream.audio:
        logger.warning("No audio chunks captured for target asset %s. The final video will be silent.", stream.asset_id)

    video = sort_chunks(stream.video)
    audio = sort_chunks(stream.audio)
    target = SelectedTarget(
        asset_id=stream.asset_id,
        video_chunks=tuple(video),
        audio_chunks=tuple(audio),
        video_gaps=count_gaps(video),
        audio_gaps=count_gaps(audio),
    )
    if target.video_gaps:
        logger.warning("Detected %d potential gap(s) in video sequence for asset %s", target.video_gaps, stream.asset_id)
    if target.audio_gaps:
        logger.warning("Detected %d potential gap(s) in audio sequence for asset %s", target.audio_gaps, stream.asset_id)
    return target


def summarize(registry: ChunkRegistry, target_url: str = "") -> dict:
    """
    Build the analysis report for every captured asset.

    Returns:
        Dict with target_url, collection_time and per-asset chunk lists and gap analysis
    """
    assets = {}
    for stream in registry:
        video = sort_chunks(stream.video)
        audio = sort_chunks(stream.audio)
        assets[stream.asset_id] = {
            "video_chunk_count": len(video),
            "audio_chunk_count": len(audio),
            "analysis": {
                "potential_video_gaps": count_gaps(video),
                "potential_audio_gaps": count_gaps(audio),
                "last_video_byte": max((c.byte_end for c in video), default=-1),
                "last_audio_byte": max((c.byte_end for c in audio), default=-1),
                "total_video_bytes": stream.total_video_bytes,
                "total_audio_bytes": stream.total_audio_bytes,
            },
            "video_chunks": [c.to_dict() for c in video],
            "audio_chunks": [c.to_dict() for c in audio],
        }
    return {
        "target_url": target_url,
        "collection_time": datetime.now().isoformat(),
        "assets": assets,
    }
