import logging

import pytest

from reelsnare.chunks import Chunk, MediaType
from reelsnare.collector import ChunkRegistry, ResponseObserver

from conftest import CDN, chunk_url, encode_efg, video_url


@pytest.fixture
def registry():
    return ChunkRegistry()


@pytest.fixture
def observer(registry):
    return ResponseObserver(registry, clock=lambda: 1000.0)


def test_records_video_and_audio_chunks(observer, registry, make_video_url, make_audio_url):
    video = observer.on_response(make_video_url("1", 0, 99), 200)
    audio = observer.on_response(make_audio_url("1", 0, 49), 206)

    assert video == Chunk(url=make_video_url("1", 0, 99), byte_start=0, byte_end=99, captured_at=1000.0)
    assert audio.size == 50
    stream = registry.get("1")
    assert stream.video == [video]
    assert stream.audio == [audio]
    assert registry.chunk_count == 2


@pytest.mark.parametrize("url,status", [
    ("https://www.instagram.com/static/bundle.js", 200),
    (f"{CDN}/thumb.jpg?bytestart=0&byteend=99", 200),
    (f"{CDN}/clip.mp4?byteend=99", 200),
    (video_url("1", 0, 99), 404),
    (video_url("1", 0, 99), 304),
    (video_url("1", 0, 99), 500),
    (f"{CDN}/clip.mp4?efg={encode_efg({'xpv_asset_id': '1', 'vencode_tag': 'dash_baseline'})}&bytestart=0", 200),
    (f"{CDN}/clip.mp4?efg={encode_efg({'xpv_asset_id': '1', 'vencode_tag': 'dash_baseline'})}&bytestart=x&byteend=9", 200),
    (f"{CDN}/clip.mp4?bytestart=0&byteend=99", 200),
    (f"{CDN}/clip.mp4?efg=%%%%&bytestart=0&byteend=99", 200),
    (chunk_url("1", "ig_thumbnail_preview", 0, 99), 200),
    (chunk_url("", "dash_baseline", 0, 99), 200),
])
def test_rejected_responses_leave_registry_untouched(observer, registry, url, status):
    assert observer.on_response(url, status) is None
    assert len(registry) == 0
    assert registry.chunk_count == 0
    assert not registry.has_seen(url)


def test_same_url_is_recorded_once(observer, registry, make_video_url):
    url = make_video_url("1", 0, 99)
    assert observer.on_response(url, 200) is not None
    assert observer.on_response(url, 200) is None
    assert observer(url, 206) is None
    assert len(registry.get("1").video) == 1


def test_failed_response_does_not_block_later_success(observer, registry, make_video_url):
    url = make_video_url("1", 0, 99)
    observer.on_response(url, 503)
    assert observer.on_response(url, 200) is not None
    assert registry.chunk_count == 1


def test_keeps_capture_order(observer, registry, make_video_url):
    for start, end in [(200, 299), (0, 99), (100, 199)]:
        observer.on_response(make_video_url("1", start, end), 200)
    observer.on_response(make_video_url("2", 0, 9), 200)
    observer.on_response(make_video_url("0", 0, 9), 200)

    assert [c.byte_start for c in registry.get("1").video] == [200, 0, 100]
    assert registry.asset_ids == ["1", "2", "0"]


def test_logs_each_new_asset_once(observer, make_video_url, make_audio_url, caplog):
    with caplog.at_level(logging.INFO, logger="reelsnare.collector"):
        observer.on_response(make_video_url("42", 0, 99), 200)
        observer.on_response(make_video_url("42", 100, 199), 200)
        observer.on_response(make_audio_url("42", 0, 49), 200)

    messages = [r.getMessage() for r in caplog.records if "new asset" in r.getMessage()]
    assert messages == ["Detected new asset ID: 42"]


def test_registry_refuses_unknown_media(registry):
    with pytest.raises(ValueError):
        registry.add("1", MediaType.UNKNOWN, Chunk(url="u", byte_start=0, byte_end=1))
    assert len(registry) == 0


def test_stream_totals(observer, registry, make_video_url, make_audio_url):
    observer.on_response(make_video_url("1", 0, 99), 200)
    observer.on_response(make_video_url("1", 100, 299), 200)
    observer.on_response(make_audio_url("1", 0, 9), 200)

    stream = registry.get("1")
    assert stream.total_video_bytes == 300
    assert stream.total_audio_bytes == 10
    assert "1" in registry
    assert [s.asset_id for s in registry] == ["1"]
