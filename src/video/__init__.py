"""Narrated video synthesis: caption timing, visual scheduling, compositing and encoding."""

from .audio import AudioSource
from .captions import build_srt_from_captions, estimate_captions, write_srt_file
from .compositor import FrameCompositor, render_preview_png
from .errors import (
    AssetDecodeError,
    AssetLoadError,
    InvalidDuration,
    NoVisuals,
    RecordingError,
    SynthesisError,
)
from .synthesis import SynthesisResult, render_video, suggested_filename, synthesize_video
from .timeline_builder import active_visual_index
from .timeline_schema import Caption, VisualAsset, VisualKind

__all__ = [
    "AudioSource",
    "Caption",
    "VisualAsset",
    "VisualKind",
    "estimate_captions",
    "active_visual_index",
    "build_srt_from_captions",
    "write_srt_file",
    "FrameCompositor",
    "render_preview_png",
    "synthesize_video",
    "render_video",
    "suggested_filename",
    "SynthesisResult",
    "SynthesisError",
    "InvalidDuration",
    "NoVisuals",
    "AssetLoadError",
    "AssetDecodeError",
    "RecordingError",
]
