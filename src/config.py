"""Centralised secret / configuration helpers.

All other modules should import ``get_secret`` or ``resolve_render_config``
from here rather than reading the environment themselves.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional

_logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _normalize(value: str) -> str:
    """Strip whitespace and surrounding quotes; reject known placeholder strings."""
    v = str(value or "").strip()
    if len(v) >= 2 and v[0] == v[-1] and v[0] in {'"', "'"}:
        v = v[1:-1].strip()
    low = v.lower()
    if low in {"none", "null", ""}:
        return ""
    if low.startswith(("paste_", "paste-", "your_", "your-", "replace_me", "changeme", "xxx")):
        return ""
    if low.endswith(("_here", "-here")):
        return ""
    return v


def get_secret(name: str, default: str = "") -> str:
    """Return a configuration value from the environment.

    Checks ``name``, ``name.lower()``, and ``name.upper()`` in that order.
    """
    candidates = list(dict.fromkeys([name, name.lower(), name.upper()]))
    for key in candidates:
        v = _normalize(os.getenv(key, ""))
        if v:
            return v
    return _normalize(default)


@dataclass(frozen=True)
class RenderConfig:
    width: int = 1280
    height: int = 720
    fps: int = 30
    fade_frames: int = 15
    video_codec: str = "libvpx"
    video_bitrate: str = "2500k"
    audio_codec: str = "libopus"
    audio_bitrate: str = "128k"
    container: str = "webm"
    realtime: bool = False
    font_path: Optional[str] = None
    keep_workdir: bool = False
    encoder_timeout_sec: float = 120.0

    @property
    def mime_type(self) -> str:
        return f"video/{self.container}"

    @property
    def tick_interval(self) -> float:
        return 1.0 / self.fps


def _read_float(reader: Callable[[str, str], str], name: str, default: float) -> float:
    raw = reader(name, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        _logger.warning("Ignoring non-numeric %s=%r.", name, raw)
        return default
    return value if value > 0 else default


@lru_cache(maxsize=1)
def resolve_render_config(secret_reader: Callable[[str, str], str] | None = None) -> RenderConfig:
    """Resolve encoder and pacing overrides from env; geometry and rate stay fixed."""
    reader = secret_reader or get_secret
    defaults = RenderConfig()
    config = RenderConfig(
        video_codec=reader("render_video_codec", defaults.video_codec),
        video_bitrate=reader("render_video_bitrate", defaults.video_bitrate),
        audio_codec=reader("render_audio_codec", defaults.audio_codec),
        audio_bitrate=reader("render_audio_bitrate", defaults.audio_bitrate),
        realtime=reader("render_realtime", "").lower() in _TRUE_VALUES,
        font_path=reader("render_caption_font", "") or None,
        keep_workdir=reader("render_keep_workdir", "").lower() in _TRUE_VALUES,
        encoder_timeout_sec=_read_float(reader, "render_encoder_timeout_sec", defaults.encoder_timeout_sec),
    )
    _logger.info(
        "Render configuration loaded (video=%s@%s, audio=%s@%s, realtime=%s).",
        config.video_codec,
        config.video_bitrate,
        config.audio_codec,
        config.audio_bitrate,
        config.realtime,
    )
    return config
