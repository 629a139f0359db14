"""
Command line entry point.

    reelsnare download https://www.instagram.com/reel/C1abcDeFghI/ my_video.mp4
    reelsnare collect https://www.instagram.com/reel/C1abcDeFghI/
    reelsnare scrape https://www.instagram.com/instagram/ scripts/profile.js
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from .assembler import StreamAssembler
from .browser import BrowserSession, read_firefox_cookies
from .config import Settings, load_settings
from .downloader import ChunkDownloader
from .errors import ReelsnareError
from .extractor import run_extraction
from .muxer import FFmpegMuxer


logger = logging.getLogger(__name__)


def save_to_json(data, path: Path) -> Path:
    """Helper to save data to a JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2, default=str)
    print(f"Saved to {path}")
    return path


def timestamp() -> str:
    return datetime.now().isoformat().replace(":", "-")


def normalize_output_name(name: Optional[str]) -> str:
    if not name:
        return f"insta_reel_{int(time.time() * 1000)}.mp4"
    if not name.lower().endswith(".mp4"):
        print(f'Warning: Output filename "{name}" doesn\'t end with .mp4. Appending .mp4')
        name += ".mp4"
    return name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="reelsnare", description="Instagram reel downloader and page scraper")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--profile", help="Firefox profile directory to take session cookies from")
    parser.add_argument("--output-dir", help="directory for downloads and reports")
    parser.add_argument("--headless", action="store_true", default=None, help="run the browser headless")
    parser.add_argument("--max-retries", type=int, help="download attempts per chunk")
    parser.add_argument("--retry-delay", type=float, help="seconds between download attempts")
    parser.add_argument("--ffmpeg", help="path to the ffmpeg binary")

    commands = parser.add_subparsers(dest="command", required=True)

    download = commands.add_parser("download", help="download a reel by sniffing its media chunks")
    download.add_argument("url")
    download.add_argument("output", nargs="?", help="output filename (default insta_reel_<ms>.mp4)")

    collect = commands.add_parser("collect", help="record media chunks and save an analysis report")
    collect.add_argument("url")

    scrape = commands.add_parser("scrape", help="run an extraction script on a page and save its result")
    scrape.add_argument("url")
    scrape.add_argument("script", type=Path)
    scrape.add_argument("--screenshot", action="store_true", help="also save a screenshot of the page")

    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    return settings.override(
        profile_path=args.profile,
        output_dir=args.output_dir,
        headless=args.headless,
        max_retries=args.max_retries,
        retry_delay=args.retry_delay,
        ffmpeg_path=args.ffmpeg,
    )


def session_factory(settings: Settings):
    cookies = []
    if settings.profile_path:
        print(f"Using profile: {settings.profile_path}")
        cookies = read_firefox_cookies(Path(settings.profile_path), settings.cookie_domain)
    else:
        print("No Firefox profile configured, browsing without a login.")
    return lambda: BrowserSession(headless=settings.headless, cookies=cookies)


async def download(args: argparse.Namespace, settings: Settings) -> Path:
    output_name = normalize_output_name(args.output)
    if "instagram.com/reel/" not in args.url:
        print("Warning: URL doesn't look like a standard Instagram Reel URL.")

    print("--- Instagram Reel Downloader ---")
    print(f"Target URL: {args.url}")
    print(f"Output File: {output_name}")
    print(">>> Close the browser window once the video has fully loaded/played. <<<")

    async with ChunkDownloader(max_retries=settings.max_retries, retry_delay=settings.retry_delay) as downloader:
        assembler = StreamAssembler(
            session_factory(settings),
            downloader,
            FFmpegMuxer(settings.ffmpeg_path),
            output_dir=Path(settings.output_dir),
        )
        path = await assembler.run(args.url, output_name)

    print("\n--- Success! ---")
    print(f"Final video saved to: {path}")
    return path


async def collect(args: argparse.Namespace, settings: Settings) -> Path:
    print(f"Collecting chunk URLs for: {args.url}")
    print(">>> Close the browser window once the video has fully loaded/played. <<<")

    report = await StreamAssembler(session_factory(settings)).analyse(args.url)

    assets = report["assets"]
    print("\n--- Analysis ---")
    print(f"Total assets detected: {len(assets)}")
    print(f"Total video chunks captured (all assets): {sum(a['video_chunk_count'] for a in assets.values())}")
    print(f"Total audio chunks captured (all assets): {sum(a['audio_chunk_count'] for a in assets.values())}")
    for asset_id, asset in assets.items():
        gaps = asset["analysis"]
        if gaps["potential_video_gaps"] or gaps["potential_audio_gaps"]:
            print(
                f"  Asset {asset_id}: {gaps['potential_video_gaps']} video gap(s), "
                f"{gaps['potential_audio_gaps']} audio gap(s)"
            )

    return save_to_json(report, Path(settings.output_dir) / f"collected_chunks_{timestamp()}.json")


async def scrape(args: argparse.Namespace, settings: Settings) -> Path:
    print(f"Target URL: {args.url}")
    output_dir = Path(settings.output_dir)
    name = args.script.stem

    async with session_factory(settings)() as session:
        await session.navigate(args.url)
        print(f"Starting {name} extraction...")
        data = await run_extraction(session, args.script)
        if args.screenshot:
            output_dir.mkdir(parents=True, exist_ok=True)
            await session.save_screenshot(output_dir / f"{name}_screenshot.png")

    print("\nExtracted Data:")
    print(json.dumps(data, indent=2, default=str))
    return save_to_json(data, output_dir / f"{name}_{timestamp()}.json")


COMMANDS = {
    "download": download,
    "collect": collect,
    "scrape": scrape,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = apply_overrides(load_settings(), args)
        asyncio.run(COMMANDS[args.command](args, settings))
    except ReelsnareError as e:
        print(f"\n--- {args.command.capitalize()} Failed ---", file=sys.stderr)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
