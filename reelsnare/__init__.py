"""
Reelsnare - download Instagram reels by sniffing their media traffic.

Reelsnare opens a post in a real browser carrying your Instagram session, watches
the byte-range requests the player makes, picks out the reel's video and audio
streams, downloads them and merges them with ffmpeg. It can also run extraction
scripts against logged-in pages.
"""

from .chunks import (
    Chunk,
    Classification,
    MediaType,
    classify_url,
    parse_byte_range,
)
from .collector import AssetStream, ChunkRegistry, ResponseObserver
from .selector import SelectedTarget, count_gaps, select_target, summarize
from .downloader import ChunkDownloader
from .muxer import FFmpegMuxer
from .assembler import AssemblerState, StreamAssembler
from .config import Settings, load_settings
from .errors import (
    ReelsnareError,
    ConfigError,
    BrowserSessionError,
    NoTargetAssetError,
    PrematureCloseError,
    ChunkDownloadError,
    MuxerError,
    MuxerNotFoundError,
    OutputError,
    ExtractionScriptError,
)

__version__ = "0.1.0"

__all__ = [
    "Chunk",
    "Classification",
    "MediaType",
    "classify_url",
    "parse_byte_range",
    "AssetStream",
    "ChunkRegistry",
    "ResponseObserver",
    "SelectedTarget",
    "count_gaps",
    "select_target",
    "summarize",
    "ChunkDownloader",
    "FFmpegMuxer",
    "AssemblerState",
    "StreamAssembler",
    "Settings",
    "load_settings",
    "ReelsnareError",
    "ConfigError",
    "BrowserSessionError",
    "NoTargetAssetError",
    "PrematureCloseError",
    "ChunkDownloadError",
    "MuxerError",
    "MuxerNotFoundError",
    "OutputError",
    "ExtractionScriptError",
]
