import base64
import json
from urllib.parse import urlencode

import pytest

from reelsnare.chunks import Chunk


CDN = "https://scontent-lhr8-1.cdninstagram.com/o1/v/t16/f2/m69"


def encode_efg(data) -> str:
    return base64.b64encode(json.dumps(data).encode()).decode()


def chunk_url(asset_id, tag, start, end, name="clip"):
    params = {
        "efg": encode_efg({"xpv_asset_id": asset_id, "vencode_tag": tag}),
        "bytestart": start,
        "byteend": end,
    }
    return f"{CDN}/{name}.mp4?{urlencode(params)}"


def video_url(asset_id, start, end, name="clip"):
    return chunk_url(asset_id, "dash_baseline_1_v1", start, end, name)


def audio_url(asset_id, start, end, name="clip"):
    return chunk_url(asset_id, "dash_ln_heaac_vbr3_audio", start, end, name)


@pytest.fixture
def make_url():
    return chunk_url


@pytest.fixture
def make_video_url():
    return video_url


@pytest.fixture
def make_audio_url():
    return audio_url


@pytest.fixture
def make_chunk():
    def make(start, end, url=None):
        return Chunk(url=url or f"{CDN}/c.mp4?bytestart={start}&byteend={end}", byte_start=start, byte_end=end)
    return make
