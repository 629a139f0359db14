"""Exceptions raised by reelsnare."""

from pathlib import Path
from typing import Iterable, Optional


class ReelsnareError(Exception):
    """Base class for every fatal reelsnare failure."""


class ConfigError(ReelsnareError):
    """A setting could not be read or has an invalid value."""


class BrowserSessionError(ReelsnareError):
    """The browser could not be started or driven."""


class NoTargetAssetError(ReelsnareError):
    """No captured asset carries enough video data to download."""

    def __init__(self, message: str, asset_ids: Iterable[str] = ()):
        self.asset_ids = list(asset_ids)
        seen = ", ".join(self.asset_ids) or "None"
        super().__init__(f"{message} Assets found: {seen}")


class PrematureCloseError(NoTargetAssetError):
    """The browser was closed before any media data was captured."""

    def __init__(self):
        super().__init__("Browser was closed before any video data could be collected.")


class ChunkDownloadError(ReelsnareError):
    """A chunk could not be fetched within the retry budget."""

    def __init__(self, url: str, attempts: int, cause: Optional[BaseException] = None, label: str = "chunk"):
        self.url = url
        self.attempts = attempts
        self.cause = cause
        reason = f": {cause}" if cause else ""
        super().__init__(f"Download failed for {label} after {attempts} attempts{reason}")


class MuxerError(ReelsnareError):
    """ffmpeg exited with a non-zero status."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class MuxerNotFoundError(MuxerError):
    """The ffmpeg binary could not be started."""

    def __init__(self, program: str):
        self.program = program
        super().__init__(
            f'Failed to start FFmpeg: command "{program}" not found. '
            "Install FFmpeg and make sure it is on your PATH."
        )


class OutputError(ReelsnareError):
    """The final output file could not be put in place."""

    def __init__(self, path: Path, cause: OSError):
        self.path = path
        super().__init__(f"Could not write output file {path}: {cause}")


class ExtractionScriptError(ReelsnareError):
    """An extraction script is missing or has no ``extract...`` function."""
