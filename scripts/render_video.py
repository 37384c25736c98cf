"""Render a narrated video from an audio track, a script and visual assets.

Usage:
  python scripts/render_video.py --audio narration.wav --script script.txt \
      --visual s01.png --visual s02.mp4 --out video.webm [--title "My video"] [--srt captions.srt]
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path

from src.config import resolve_render_config
from src.video import AudioSource, SynthesisError, VisualAsset, render_video, suggested_filename, write_srt_file


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--audio", required=True, type=Path, help="Narration audio (WAV recommended).")
    parser.add_argument("--script", required=True, type=Path, help="Script text; only double-quoted spans are narrated.")
    parser.add_argument("--visual", action="append", default=[], help="Image/clip path or http(s) URL, in order.")
    parser.add_argument("--out", type=Path, help="Output container path (defaults to a name derived from the title).")
    parser.add_argument("--title", default="", help="Title overlay used when the script has no narration.")
    parser.add_argument("--srt", type=Path, help="Also write the estimated captions as SubRip.")
    parser.add_argument("--realtime", action="store_true", help="Pace ticks at the frame rate.")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def _load_visual(source: str) -> VisualAsset:
    if source.startswith(("http://", "https://")):
        return VisualAsset.from_url(source)
    if source.startswith("data:"):
        return VisualAsset.from_data_url("inline", source)
    return VisualAsset.from_path(source)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = resolve_render_config()
    if args.realtime:
        config = dataclasses.replace(config, realtime=True)

    try:
        visuals = [_load_visual(source) for source in args.visual]
        script = args.script.read_text(encoding="utf-8")
        result = render_video(AudioSource.from_path(args.audio), visuals, script, title=args.title, config=config)
    except (SynthesisError, OSError) as exc:
        print(f"Video synthesis failed: {exc}")
        return 1

    output_path = args.out or Path(suggested_filename(args.title, config.container))
    result.write(output_path)
    print(f"Wrote {output_path} ({len(result.data)} bytes, {result.frame_count} frames, {len(result.captions)} captions)")
    if args.srt:
        write_srt_file(args.srt, result.captions)
        print(f"Wrote {args.srt}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
