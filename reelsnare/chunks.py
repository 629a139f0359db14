"""
Byte-range chunks and the classifier that decides which asset they belong to.

Media on the site is streamed as many ``.mp4`` requests, each fetching one byte
range (``bytestart``/``byteend`` query parameters) of one rendition. Every request
also carries an ``efg`` parameter: base64-encoded JSON describing the asset and the
encoding, e.g.::

    {"xpv_asset_id": 1234567890, "vencode_tag": "dash_baseline_1_v1", ...}

The format is undocumented and changes, so it is read as a plain dict and only the
keys we need are checked.
"""

import base64
import binascii
import json
import logging
import time
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit, parse_qs


logger = logging.getLogger(__name__)

EFG_PARAM = "efg"
ASSET_ID_KEY = "xpv_asset_id"
ENCODE_TAG_KEY = "vencode_tag"

AUDIO_MARKERS = ("audio",)
VIDEO_MARKERS = ("dash_baseline", "dash_main", "progressive")


class MediaType(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Classification:
    """Which asset a request belongs to, and what kind of stream it is."""
    asset_id: str
    media_type: MediaType
    encode_tag: str = ""


@dataclass(frozen=True)
class Chunk:
    """One captured byte-range fetch."""
    url: str
    byte_start: int
    byte_end: int
    captured_at: float = field(default_factory=time.time)

    @property
    def size(self) -> int:
        return self.byte_end - self.byte_start + 1

    def to_dict(self) -> dict:
        data = asdict(self)
        data["size"] = self.size
        return data


def _query_param(url: str, name: str) -> Optional[str]:
    try:
        values = parse_qs(urlsplit(url).query).get(name)
    except ValueError:
        return None
    return values[0] if values else None


def decode_efg(value: str) -> Optional[dict]:
    """
    Decode an ``efg`` parameter into a dict.

    Accepts both the standard and URL-safe base64 alphabets with or without padding.
    A ``+`` turned into a space by query-string decoding is restored.

    Returns:
        The decoded mapping, or None if any decoding step fails
    """
    text = value.strip().replace(" ", "+").replace("-", "+").replace("_", "/")
    text += "=" * (-len(text) % 4)
    try:
        raw = base64.b64decode(text, validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError):
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        return None
    return data if isinstance(data, dict) else None


def classify_url(url: str) -> Optional[Classification]:
    """
    Work out the asset id and media type of a captured resource URL.

    Never raises: anything that is not a well-formed, identifiable media request
    yields None.

    Returns:
        Classification, or None when the URL has no usable ``efg`` metadata
    """
    if not isinstance(url, str):
        return None

    efg = _query_param(url, EFG_PARAM)
    if not efg:
        return None

    data = decode_efg(efg)
    if data is None:
        return None

    asset_id = data.get(ASSET_ID_KEY)
    if not asset_id:
        return None

    encode_tag = data.get(ENCODE_TAG_KEY) or ""
    if not isinstance(encode_tag, str):
        encode_tag = ""

    if any(marker in encode_tag for marker in AUDIO_MARKERS):
        media_type = MediaType.AUDIO
    elif any(marker in encode_tag for marker in VIDEO_MARKERS):
        media_type = MediaType.VIDEO
    else:
        media_type = MediaType.UNKNOWN

    return Classification(asset_id=str(asset_id), media_type=media_type, encode_tag=encode_tag)


def parse_byte_range(url: str) -> Optional[tuple[int, int]]:
    """Read the ``bytestart``/``byteend`` parameters, or None if they are unusable."""
    start = _query_param(url, "bytestart")
    end = _query_param(url, "byteend")
    if start is None or end is None:
        return None
    try:
        byte_start, byte_end = int(start), int(end)
    except ValueError:
        return None
    if byte_start < 0 or byte_end < byte_start:
        return None
    return byte_start, byte_end
