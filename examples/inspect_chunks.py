#!/usr/bin/env python3
"""
Example: Watch a page's media traffic without downloading anything.

Every classified chunk is printed as it arrives. When you close the browser the
per-asset summary shows which asset would be selected for download.

Prerequisites:
    pip install -e .  # Install reelsnare in editable mode
"""

import asyncio
import sys

from reelsnare import ChunkRegistry, NoTargetAssetError, ResponseObserver, select_target
from reelsnare.browser import BrowserSession


async def main(url: str):
    registry = ChunkRegistry()
    observer = ResponseObserver(registry)

    def on_response(response_url: str, status: int):
        chunk = observer.on_response(response_url, status)
        if chunk:
            print(f"  + bytes {chunk.byte_start}-{chunk.byte_end} ({chunk.size / 1024:.1f} KB)")

    async with BrowserSession() as session:
        session.on_response(on_response)
        await session.navigate(url)
        print(">>> Close the browser window when done. <<<")
        await session.wait_closed()

    print(f"\n📊 {len(registry)} assets, {registry.chunk_count} chunks")
    for stream in registry:
        print(f"  {stream.asset_id}: {len(stream.video)} video ({stream.total_video_bytes:,} B), "
              f"{len(stream.audio)} audio ({stream.total_audio_bytes:,} B)")

    try:
        target = select_target(registry)
        print(f"\n🎯 Target asset: {target.asset_id}")
    except NoTargetAssetError as e:
        print(f"\n❌ {e}")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "https://www.instagram.com/reels/"))
