#!/usr/bin/env python3
"""
CLI Script: Storyboard
======================

Parse a screenplay into scenes, optionally generate storyboard images and
video clips, and lay every scene out on the timeline.

Usage:
    python scripts/storyboard.py script.txt
    python scripts/storyboard.py script.txt --images --videos -o output/
    python scripts/storyboard.py script.txt --images --timeout 600 -v
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from lumina import ArtifactKind, Config, JobState, LuminaError, Studio
from lumina.utils.media import get_extension, save_bytes


def positive_float(value: str) -> float:
    """argparse type for a strictly positive number of seconds."""
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value}")
    if not seconds > 0 or seconds == float("inf"):
        raise argparse.ArgumentTypeError(f"must be a positive number of seconds, got {value}")
    return seconds


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Turn a screenplay into a storyboard and timeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s script.txt
  %(prog)s script.txt --images
  %(prog)s script.txt --images --videos -o output/
        """,
    )

    parser.add_argument(
        "script",
        help="Path to the screenplay text file",
    )

    # Generation
    parser.add_argument(
        "--images",
        action="store_true",
        help="Generate a storyboard image for every scene",
    )
    parser.add_argument(
        "--videos",
        action="store_true",
        help="Generate a video clip for every scene (implies --images)",
    )
    parser.add_argument(
        "--timeout",
        type=positive_float,
        help="Fail any generation job running longer than this many seconds",
    )

    # Timeline
    parser.add_argument(
        "--track",
        type=int,
        help="Track to append scenes to (default: configured video track)",
    )
    parser.add_argument(
        "--ripple",
        action="store_true",
        help="Shift later clips when a scene duration changes",
    )

    # Output
    parser.add_argument(
        "-o", "--output",
        help="Directory to save generated images and videos into",
    )
    parser.add_argument(
        "--config",
        help="Path to config file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


async def generate_all(studio: Studio, kind: ArtifactKind) -> None:
    """Start a job of one kind for every scene and wait for all of them."""
    for scene in studio.scenes():
        if kind is ArtifactKind.IMAGE:
            studio.request_image_generation(scene.scene_id)
        elif scene.storyboard is not None:
            studio.request_video_generation(scene.scene_id)
    await studio.wait_for_jobs()

    for scene in studio.scenes():
        status = studio.job_status(scene.scene_id, kind)
        if status.status is JobState.FAILED:
            print(f"  Scene {scene.number}: {kind.value} failed - {status.message}")
        elif status.status is JobState.SUCCEEDED:
            print(f"  Scene {scene.number}: {kind.value} ready")


def save_artifacts(studio: Studio, output: Path) -> None:
    for scene in studio.scenes():
        for artifact in (scene.storyboard, scene.video):
            if artifact is None or artifact.data is None:
                continue
            name = f"scene_{scene.number:03d}_{artifact.kind.value}{get_extension(artifact.mime_type)}"
            save_bytes(artifact.data, output / name)


async def main():
    """Main CLI entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    script_path = Path(args.script)
    if not script_path.exists():
        print(f"Error: script not found: {script_path}")
        sys.exit(1)

    try:
        config = Config.load(args.config)
        if args.timeout is not None:
            config.generation.job_timeout = args.timeout
            config.generation.validate()
        if args.ripple:
            config.timeline.ripple_edits = True
    except LuminaError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    if not config.generation.api_key:
        print(f"Error: {config.generation.api_key_env} environment variable not set")
        sys.exit(1)

    print("=" * 50)
    print("Lumina Storyboard")
    print("=" * 50)

    try:
        async with Studio.from_config(config) as studio:
            scenes = await studio.request_parse(script_path.read_text())
            print(f"\nParsed {len(scenes)} scenes")

            if args.images or args.videos:
                print("\nGenerating storyboard images...")
                await generate_all(studio, ArtifactKind.IMAGE)
            if args.videos:
                print("\nGenerating video clips...")
                await generate_all(studio, ArtifactKind.VIDEO)

            for scene in studio.scenes():
                studio.add_scene_to_timeline(scene.scene_id, track_id=args.track)

            print("\n" + "-" * 50)
            for scene in studio.scenes():
                print(f"Scene {scene.number}: {scene.slugline} ({scene.duration:g}s)")

            print()
            for track in studio.tracks():
                print(f"{track.name} [{track.kind.value}]")
                for clip in track.clips:
                    print(f"  {clip.start_time:7.2f}s  {clip.duration:6.2f}s  {clip.name}")

            if args.output:
                save_artifacts(studio, Path(args.output))

            print("=" * 50)

    except KeyboardInterrupt:
        print("\nCancelled")
        sys.exit(130)
    except LuminaError as e:
        print(f"\nError: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
