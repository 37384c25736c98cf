"""Run orchestration: audio metadata, captions, asset barrier, render loop, encoder."""
from __future__ import annotations

import asyncio
import logging
import re
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from src.config import RenderConfig, resolve_render_config

from .assets import load_visuals
from .audio import AudioSource, load_audio_metadata
from .captions import estimate_captions
from .compositor import FrameCompositor
from .errors import NoVisuals, RecordingError, SynthesisError
from .recorder import StreamRecorder
from .timeline_schema import Caption, VisualAsset

_logger = logging.getLogger(__name__)


@dataclass
class SynthesisResult:
    data: bytes = field(repr=False)
    mime_type: str
    captions: list[Caption]
    frame_count: int
    chunk_count: int
    duration: float

    def write(self, output_path: str | Path) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(self.data)
        return output_path


def suggested_filename(title: str, extension: str = "webm") -> str:
    stem = re.sub(r"[^a-zA-Z0-9]", "_", str(title or "")) or "video"
    return f"{stem}.{extension}"


def _captions_or_empty(script: str, duration: float) -> list[Caption]:
    try:
        return estimate_captions(script, duration)
    except (SynthesisError, ValueError) as exc:
        _logger.warning("Caption estimation failed, continuing without captions: %s", exc)
        return []


async def synthesize_video(
    audio: AudioSource,
    visuals: Sequence[VisualAsset],
    script: str,
    *,
    title: Optional[str] = None,
    config: Optional[RenderConfig] = None,
) -> SynthesisResult:
    """Render ``visuals`` and captions over ``audio`` into a single container.

    Either a complete, non-empty container is returned or a ``SynthesisError``
    is raised; no partial output escapes.
    """
    config = config or resolve_render_config()
    if not visuals:
        raise NoVisuals("No visuals were uploaded or could be generated. Cannot proceed.")

    workdir = Path(tempfile.mkdtemp(prefix="synthesis_run_"))
    try:
        loaded_audio = await load_audio_metadata(audio, workdir)
        captions = _captions_or_empty(script, loaded_audio.duration)
        if not captions:
            _logger.info("No narration captions; using the title overlay instead.")
        loaded_visuals = await load_visuals(visuals, workdir, fps=config.fps)

        compositor = FrameCompositor(loaded_visuals, captions, loaded_audio.duration, config, title=title)
        recorder = StreamRecorder(loaded_audio.path, workdir, config)
        recorder.start()
        try:
            frame_count = await compositor.run(recorder)
            data = await asyncio.to_thread(recorder.finish)
        except BaseException:
            recorder.abort()
            raise

        if recorder.frames_written != frame_count:
            raise RecordingError(f"Recorder received {recorder.frames_written} of {frame_count} frames.")
        return SynthesisResult(
            data=data,
            mime_type=config.mime_type,
            captions=captions,
            frame_count=frame_count,
            chunk_count=recorder.chunk_count,
            duration=loaded_audio.duration,
        )
    finally:
        if config.keep_workdir:
            _logger.info("Keeping synthesis workdir %s.", workdir)
        else:
            shutil.rmtree(workdir, ignore_errors=True)


def render_video(
    audio: AudioSource,
    visuals: Sequence[VisualAsset],
    script: str,
    *,
    title: Optional[str] = None,
    config: Optional[RenderConfig] = None,
) -> SynthesisResult:
    return asyncio.run(synthesize_video(audio, visuals, script, title=title, config=config))
