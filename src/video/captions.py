"""Caption timing estimation.

Captions are timed by assuming a constant speaking rate across the whole
narration: each sentence gets a share of the audio proportional to its
character count. This is an approximation, not forced alignment. Drift
between the summed sentence durations and the real audio length is left
as-is; the last caption is not stretched to the end of the audio.
"""
from __future__ import annotations

import math
import re
from pathlib import Path
from typing import Sequence

from .errors import InvalidDuration
from .timeline_schema import Caption

_NARRATION_SPAN = re.compile(r'"(.*?)"')
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def _format_srt_time(seconds: float) -> str:
    total_ms = int(round(seconds * 1000))
    hours = total_ms // 3_600_000
    minutes = (total_ms % 3_600_000) // 60_000
    secs = (total_ms % 60_000) // 1000
    ms = total_ms % 1000
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{ms:03d}"


def validate_duration(audio_duration: float) -> float:
    try:
        duration = float(audio_duration)
    except (TypeError, ValueError) as exc:
        raise InvalidDuration(f"Invalid audio duration {audio_duration!r}.") from exc
    if not math.isfinite(duration) or duration <= 0:
        raise InvalidDuration(f"Invalid audio duration {audio_duration!r} (must be finite and > 0).")
    return duration


def extract_narration_parts(script: str) -> list[str]:
    """Return the double-quoted spans of a script; everything else is a section label."""
    return _NARRATION_SPAN.findall(str(script or ""))


def narration_text(script: str) -> str:
    return " ".join(extract_narration_parts(script)).strip()


def narration_for_voiceover(script: str) -> str:
    parts = extract_narration_parts(script)
    if not parts:
        raise ValueError(
            "Could not find any narration text in double quotes. The script may not be in the expected format."
        )
    return " \n".join(parts)


def split_sentences(text: str) -> list[str]:
    text = str(text or "").strip()
    sentences = [sentence for sentence in _SENTENCE_BOUNDARY.split(text) if sentence.strip()]
    if not sentences and text:
        sentences = [text]
    return sentences


def estimate_captions(script: str, audio_duration: float) -> list[Caption]:
    duration = validate_duration(audio_duration)
    if not extract_narration_parts(script):
        return []

    sentences = split_sentences(narration_text(script))
    total_chars = sum(len(sentence) for sentence in sentences)
    if total_chars == 0:
        return []
    chars_per_second = total_chars / duration

    captions: list[Caption] = []
    current = 0.0
    for sentence in sentences:
        sentence_duration = len(sentence) / chars_per_second
        captions.append(Caption(text=sentence.strip(), start=current, end=current + sentence_duration))
        current += sentence_duration
    return captions


def active_caption(captions: Sequence[Caption], t: float) -> Caption | None:
    for caption in captions:
        if caption.start <= t < caption.end:
            return caption
    return None


def build_srt_from_captions(captions: Sequence[Caption]) -> str:
    lines: list[str] = []
    index = 1
    for caption in captions:
        text = caption.text.strip()
        if not text:
            continue
        lines.extend([str(index), f"{_format_srt_time(caption.start)} --> {_format_srt_time(caption.end)}", text, ""])
        index += 1
    return "\n".join(lines).strip() + ("\n" if lines else "")


def write_srt_file(output_path: str | Path, captions: Sequence[Caption]) -> Path:
    srt_text = build_srt_from_captions(captions)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(srt_text, encoding="utf-8")
    return output_path
