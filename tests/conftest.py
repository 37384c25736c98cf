from __future__ import annotations

from io import BytesIO

import pytest
from PIL import Image

from src.services.contracts import wrap_pcm_as_wav
from src.video.utils import resolve_ffmpeg_exe, run_ffmpeg


def png_bytes(color: tuple[int, int, int], size: tuple[int, int] = (320, 240)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format="PNG")
    return buffer.getvalue()


def silent_wav(seconds: float, sample_rate: int = 24000) -> bytes:
    return wrap_pcm_as_wav(b"\x00\x00" * int(sample_rate * seconds), sample_rate=sample_rate)


@pytest.fixture
def ffmpeg_exe() -> str:
    try:
        return resolve_ffmpeg_exe()
    except FileNotFoundError:
        pytest.skip("ffmpeg is not available")


@pytest.fixture
def webm_ffmpeg(ffmpeg_exe: str) -> str:
    result = run_ffmpeg([ffmpeg_exe, "-hide_banner", "-encoders"], timeout_sec=30)
    if not result["ok"] or "libvpx" not in result["stdout"] or "libopus" not in result["stdout"]:
        pytest.skip("ffmpeg lacks libvpx/libopus encoders")
    return ffmpeg_exe
