"""Boundaries of the collaborators around the synthesis core.

Script writing, metadata, voice and image generation and the upload flow
live outside this package; these protocols and payloads are all the core
knows about them.
"""
from __future__ import annotations

import logging
import wave
from io import BytesIO
from typing import Callable, List, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

from src.video.timeline_schema import VisualAsset

_logger = logging.getLogger(__name__)

VOICE_SAMPLE_RATE = 24000
VOICE_CHANNELS = 1
VOICE_SAMPLE_WIDTH = 2


class VideoMetadata(BaseModel):
    title: str
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    image_prompts: List[str] = Field(default_factory=list)


class VideoDetails(VideoMetadata):
    visuals: List[VisualAsset] = Field(default_factory=list)
    voice: str = ""
    audio: Optional[bytes] = Field(default=None, repr=False)
    script: str = ""
    uploaded_video_id: Optional[str] = None


class ScriptWriter(Protocol):
    def write_script(self, topic: str) -> str: ...


class DetailsWriter(Protocol):
    def write_details(self, script: str) -> VideoMetadata: ...


class VoiceSynthesizer(Protocol):
    def synthesize(self, narration: str, voice: str) -> bytes:
        """Return a playable WAV (see ``wrap_pcm_as_wav``)."""
        ...


class ImageSynthesizer(Protocol):
    def generate_image(self, prompt: str) -> bytes:
        """Return PNG bytes."""
        ...


class VideoUploader(Protocol):
    def upload(
        self,
        data: bytes,
        metadata: VideoMetadata,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> str:
        """Upload an opaque container and return the hosted video id."""
        ...


def wrap_pcm_as_wav(
    pcm: bytes,
    sample_rate: int = VOICE_SAMPLE_RATE,
    channels: int = VOICE_CHANNELS,
    sample_width: int = VOICE_SAMPLE_WIDTH,
) -> bytes:
    """Wrap raw little-endian linear PCM in a standard RIFF/WAVE header."""
    buffer = BytesIO()
    with wave.open(buffer, "wb") as handle:
        handle.setnchannels(channels)
        handle.setsampwidth(sample_width)
        handle.setframerate(sample_rate)
        handle.writeframes(pcm)
    return buffer.getvalue()


def collect_visuals(
    visuals: Sequence[VisualAsset],
    image_prompts: Sequence[str],
    image_synthesizer: Optional[ImageSynthesizer] = None,
    on_status: Optional[Callable[[str], None]] = None,
) -> list[VisualAsset]:
    """Use the caller's visuals, or generate one image per prompt when there are none."""
    collected = list(visuals)
    if collected or image_synthesizer is None:
        return collected
    for index, prompt in enumerate(image_prompts, start=1):
        if on_status:
            on_status(f"Generating image {index}/{len(image_prompts)}...")
        png_bytes = image_synthesizer.generate_image(prompt)
        collected.append(VisualAsset(name=f"AI: {prompt[:25]}...", media=png_bytes, mime_type="image/png"))
    _logger.info("Generated %d visual(s) from image prompts.", len(collected))
    return collected
