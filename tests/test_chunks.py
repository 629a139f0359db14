import base64
import json
from urllib.parse import urlencode

import pytest

from reelsnare.chunks import Chunk, MediaType, classify_url, decode_efg, parse_byte_range

from conftest import CDN, encode_efg


def url_with_efg(efg, extra="&bytestart=0&byteend=99"):
    return f"{CDN}/clip.mp4?{urlencode({'efg': efg})}{extra}"


def test_classifies_dash_video():
    url = url_with_efg(encode_efg({"xpv_asset_id": "77", "vencode_tag": "dash_baseline"}))
    info = classify_url(url)
    assert info.asset_id == "77"
    assert info.media_type is MediaType.VIDEO


@pytest.mark.parametrize("tag,expected", [
    ("dash_ln_heaac_vbr3_audio", MediaType.AUDIO),
    ("audio_only", MediaType.AUDIO),
    ("dash_main_1080p", MediaType.VIDEO),
    ("xpv_progressive.INSTAGRAM", MediaType.VIDEO),
    ("ig_thumbnail", MediaType.UNKNOWN),
    ("", MediaType.UNKNOWN),
])
def test_media_type_from_encode_tag(tag, expected):
    url = url_with_efg(encode_efg({"xpv_asset_id": 5, "vencode_tag": tag}))
    assert classify_url(url).media_type is expected


def test_audio_marker_wins_over_video_marker():
    url = url_with_efg(encode_efg({"xpv_asset_id": 5, "vencode_tag": "dash_baseline_audio"}))
    assert classify_url(url).media_type is MediaType.AUDIO


def test_missing_or_non_string_tag_is_unknown():
    assert classify_url(url_with_efg(encode_efg({"xpv_asset_id": 5}))).media_type is MediaType.UNKNOWN
    assert classify_url(url_with_efg(encode_efg({"xpv_asset_id": 5, "vencode_tag": 12}))).media_type is MediaType.UNKNOWN


def test_numeric_asset_id_becomes_string():
    info = classify_url(url_with_efg(encode_efg({"xpv_asset_id": 1234567890, "vencode_tag": "dash_baseline"})))
    assert info.asset_id == "1234567890"
    assert info.encode_tag == "dash_baseline"


def test_accepts_urlsafe_unpadded_efg():
    raw = json.dumps({"xpv_asset_id": "9", "vencode_tag": "progressive??>"}).encode()
    efg = base64.urlsafe_b64encode(raw).decode().rstrip("=")
    assert classify_url(url_with_efg(efg)).asset_id == "9"


@pytest.mark.parametrize("url", [
    "",
    "not a url",
    "http://[::1",
    f"{CDN}/clip.mp4?bytestart=0&byteend=99",
    url_with_efg("!!!not-base64!!!"),
    url_with_efg(base64.b64encode(b"hello world").decode()),
    url_with_efg(base64.b64encode(b"\xff\xfe\xfd").decode()),
    url_with_efg(encode_efg([1, 2, 3])),
    url_with_efg(encode_efg({"vencode_tag": "dash_baseline"})),
    url_with_efg(encode_efg({"xpv_asset_id": "", "vencode_tag": "dash_baseline"})),
    url_with_efg(encode_efg({"xpv_asset_id": 0, "vencode_tag": "dash_baseline"})),
    url_with_efg(encode_efg({"xpv_asset_id": None, "vencode_tag": "dash_baseline"})),
])
def test_rejects_unclassifiable_urls(url):
    assert classify_url(url) is None


def test_non_string_input_is_rejected():
    assert classify_url(None) is None
    assert classify_url(42) is None


def test_decode_efg_restores_plus_signs():
    efg = base64.b64encode(b'{"a":">>>"}').decode()
    assert "+" in efg
    assert decode_efg(efg.replace("+", " ")) == {"a": ">>>"}


@pytest.mark.parametrize("query,expected", [
    ("bytestart=0&byteend=99", (0, 99)),
    ("bytestart=100&byteend=100", (100, 100)),
    ("bytestart=0", None),
    ("byteend=99", None),
    ("bytestart=abc&byteend=99", None),
    ("bytestart=0&byteend=9.5", None),
    ("bytestart=-1&byteend=99", None),
    ("bytestart=200&byteend=100", None),
])
def test_parse_byte_range(query, expected):
    assert parse_byte_range(f"{CDN}/clip.mp4?{query}") == expected


def test_chunk_size_and_dict():
    chunk = Chunk(url="u", byte_start=100, byte_end=199, captured_at=1.5)
    assert chunk.size == 100
    assert chunk.to_dict() == {"url": "u", "byte_start": 100, "byte_end": 199, "captured_at": 1.5, "size": 100}


def test_chunk_is_immutable():
    chunk = Chunk(url="u", byte_start=0, byte_end=1)
    with pytest.raises(AttributeError):
        chunk.byte_start = 5
