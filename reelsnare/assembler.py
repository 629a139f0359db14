"""
End-to-end reel download: observe, select, download, merge.

    IDLE -> COLLECTING -> SELECTING -> DOWNLOADING_VIDEO -> [DOWNLOADING_AUDIO]
         -> MERGING | RENAMING -> DONE

Any step may fail into FAILED. Collection ends only when the user closes the
browser window; there is no timeout, the user decides when enough has loaded.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Protocol

from .collector import ChunkRegistry, ResponseObserver
from .downloader import ChunkDownloader
from .errors import OutputError, PrematureCloseError
from .selector import SelectedTarget, select_target, summarize


logger = logging.getLogger(__name__)

TEMP_FILE_PREFIX = "temp_dl_"


class AssemblerState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    SELECTING = "selecting"
    DOWNLOADING_VIDEO = "downloading_video"
    DOWNLOADING_AUDIO = "downloading_audio"
    MERGING = "merging"
    RENAMING = "renaming"
    DONE = "done"
    FAILED = "failed"


class Session(Protocol):
    async def start(self): ...
    def on_response(self, handler: Callable[[str, int], object]) -> Callable[[], None]: ...
    async def navigate(self, url: str): ...
    async def wait_closed(self): ...
    async def close(self): ...


class Muxer(Protocol):
    async def mux(self, video: Path, audio: Path, output: Path) -> Path: ...


def temp_paths(output_dir: Path, output_name: str, asset_id: str) -> tuple[Path, Path]:
    """Per-run temporary file names for the video and audio streams."""
    base = Path(output_name).stem
    return (
        output_dir / f"{TEMP_FILE_PREFIX}{base}_{asset_id}_video.mp4",
        output_dir / f"{TEMP_FILE_PREFIX}{base}_{asset_id}_audio.m4a",
    )


def remove_temp_file(path: Path):
    """Delete a temp file. Failures are logged, never raised."""
    if not path.exists():
        return
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete temp file %s: %s", path, e)
        return
    logger.info("Deleted temp file: %s", path)


class StreamAssembler:
    """
    Runs one download from page URL to finished file.

    Example usage:
        async with ChunkDownloader() as downloader:
            assembler = StreamAssembler(lambda: BrowserSession(cookies=cookies), downloader, FFmpegMuxer())
            path = await assembler.run("https://www.instagram.com/reel/...", "reel.mp4")
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        downloader: Optional[ChunkDownloader] = None,
        muxer: Optional[Muxer] = None,
        output_dir: Path = Path("output"),
    ):
        self.session_factory = session_factory
        self.downloader = downloader
        self.muxer = muxer
        self.output_dir = Path(output_dir)
        self.state = AssemblerState.IDLE
        self.history: list[AssemblerState] = [AssemblerState.IDLE]
        self.registry: Optional[ChunkRegistry] = None
        self.target: Optional[SelectedTarget] = None

    def _enter(self, state: AssemblerState):
        logger.debug("%s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    async def collect(self, target_url: str) -> ChunkRegistry:
        """
        Open the page and record media chunks until the browser is closed.

        Returns:
            The populated registry
        """
        self.registry = ChunkRegistry()
        observer = ResponseObserver(self.registry)
        session = self.session_factory()
        try:
            await session.start()
            unsubscribe = session.on_response(observer)
            self._enter(AssemblerState.COLLECTING)
            await session.navigate(target_url)
            logger.info("Listening for video chunks. Close the browser window once the video has played.")
            await session.wait_closed()
            unsubscribe()
        finally:
            await session.close()

        logger.info(
            "Browser closed. Collected %d chunks across %d assets", self.registry.chunk_count, len(self.registry)
        )
        return self.registry

    async def analyse(self, target_url: str) -> dict:
        """Collect chunks and return the per-asset analysis report without downloading."""
        try:
            registry = await self.collect(target_url)
        except Exception:
            self._enter(AssemblerState.FAILED)
            raise
        self._enter(AssemblerState.DONE)
        return summarize(registry, target_url)

    async def run(self, target_url: str, output_name: str) -> Path:
        """
        Download the reel at ``target_url`` to ``output_dir/output_name``.

        Raises:
            PrematureCloseError: If the browser was closed before any chunk was seen
            NoTargetAssetError: If no captured asset has video data
            ChunkDownloadError: If a chunk could not be downloaded
            MuxerError: If ffmpeg failed or is missing
            OutputError: If the final file could not be moved into place
        """
        if self.downloader is None or self.muxer is None:
            raise ValueError("run() needs a downloader and a muxer")
        video_path = audio_path = None
        try:
            registry = await self.collect(target_url)

            self._enter(AssemblerState.SELECTING)
            if len(registry) == 0:
                raise PrematureCloseError()
            self.target = target = select_target(registry)

            self.output_dir.mkdir(parents=True, exist_ok=True)
            video_path, audio_path = temp_paths(self.output_dir, output_name, target.asset_id)
            output_path = self.output_dir / output_name

            self._enter(AssemblerState.DOWNLOADING_VIDEO)
            await self.downloader.download_stream(target.video_chunks, video_path, "video")

            if target.has_audio:
                self._enter(AssemblerState.DOWNLOADING_AUDIO)
                await self.downloader.download_stream(target.audio_chunks, audio_path, "audio")

                self._enter(AssemblerState.MERGING)
                await self.muxer.mux(video_path, audio_path, output_path)
            else:
                self._enter(AssemblerState.RENAMING)
                logger.info("No audio to merge, renaming temporary video file")
                try:
                    video_path.replace(output_path)
                except OSError as e:
                    raise OutputError(output_path, e) from e

            self._enter(AssemblerState.DONE)
            logger.info("Final video saved to: %s", output_path)
            return output_path
        except BaseException:
            self._enter(AssemblerState.FAILED)
            raise
        finally:
            for path in (video_path, audio_path):
                if path is not None:
                    remove_temp_file(path)
