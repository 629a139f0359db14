"""Combining separate video and audio streams with ffmpeg (stream copy, no re-encode)."""

import asyncio
import logging
from pathlib import Path

from .errors import MuxerError, MuxerNotFoundError


logger = logging.getLogger(__name__)


class FFmpegMuxer:
    def __init__(self, program: str = "ffmpeg"):
        self.program = program

    def build_command(self, video: Path, audio: Path, output: Path) -> list[str]:
        return [
            self.program,
            "-i", str(video),
            "-i", str(audio),
            "-c:v", "copy",
            "-c:a", "copy",
            "-loglevel", "warning",
            "-nostdin",
            "-y",
            str(output),
        ]

    async def mux(self, video: Path, audio: Path, output: Path) -> Path:
        """
        Merge ``video`` and ``audio`` into ``output``.

        Raises:
            MuxerNotFoundError: If the ffmpeg binary cannot be started
            MuxerError: If ffmpeg exits with a non-zero status
        """
        command = self.build_command(video, audio, output)
        logger.info("Merging %s and %s into %s", video, audio, output)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise MuxerNotFoundError(self.program) from None

        _, stderr = await proc.communicate()
        stderr_text = stderr.decode("utf-8", errors="replace").strip() if stderr else ""
        if proc.returncode != 0:
            logger.error("FFmpeg stderr: %s", stderr_text or "(no stderr output)")
            raise MuxerError(
                f"FFmpeg failed with code {proc.returncode}", returncode=proc.returncode, stderr=stderr_text
            )

        logger.info("FFmpeg merging completed successfully")
        return Path(output)
