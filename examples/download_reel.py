#!/usr/bin/env python3
"""
Example: Download a reel with StreamAssembler directly.

Opens the reel in a browser carrying your Instagram login. Play the video until it
has fully loaded, then close the window; the captured chunks are downloaded and
merged into output/<name>.mp4.

Prerequisites:
    pip install -e .  # Install reelsnare in editable mode
    export FIREFOX_PROFILE_PATH=~/.mozilla/firefox/abcd1234.default-release
"""

import asyncio
import logging
import sys
from pathlib import Path

from reelsnare import ChunkDownloader, FFmpegMuxer, ReelsnareError, StreamAssembler, load_settings
from reelsnare.browser import BrowserSession, read_firefox_cookies


async def main(url: str, output_name: str) -> int:
    settings = load_settings()
    cookies = []
    if settings.profile_path:
        cookies = read_firefox_cookies(Path(settings.profile_path), settings.cookie_domain)

    async with ChunkDownloader(max_retries=settings.max_retries, retry_delay=settings.retry_delay) as downloader:
        assembler = StreamAssembler(
            lambda: BrowserSession(headless=settings.headless, cookies=cookies),
            downloader,
            FFmpegMuxer(settings.ffmpeg_path),
            output_dir=Path(settings.output_dir),
        )
        try:
            path = await assembler.run(url, output_name)
        except ReelsnareError as e:
            print(f"❌ {e} (stopped in state {assembler.history[-2].value})")
            return 1

    target = assembler.target
    print(f"\n✅ Saved {path}")
    print(f"  Asset: {target.asset_id}")
    print(f"  Video chunks: {len(target.video_chunks)} ({target.video_gaps} gaps)")
    print(f"  Audio chunks: {len(target.audio_chunks)} ({target.audio_gaps} gaps)")
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python examples/download_reel.py <reel_url> [output.mp4]")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO)
    sys.exit(asyncio.run(main(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else "reel.mp4")))
