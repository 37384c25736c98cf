from __future__ import annotations

import os
import shutil
import subprocess
import wave
from pathlib import Path
from typing import Any

import imageio_ffmpeg


class FFmpegNotFoundError(RuntimeError):
    pass


def resolve_ffmpeg_exe() -> str:
    env = os.environ.get("FFMPEG_PATH")
    if env and Path(env).exists():
        return env

    exe = shutil.which("ffmpeg")
    if exe:
        return exe

    try:
        exe = imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError:
        exe = None
    if exe and Path(exe).exists():
        return exe

    raise FileNotFoundError("ffmpeg executable not found. Install ffmpeg or ensure it is on PATH.")


def resolve_ffprobe_exe() -> str:
    env = os.environ.get("FFPROBE_PATH")
    if env and Path(env).exists():
        return env

    exe = shutil.which("ffprobe")
    if exe:
        return exe

    try:
        sibling = Path(resolve_ffmpeg_exe()).with_name("ffprobe")
    except FileNotFoundError:
        sibling = None
    if sibling is not None and sibling.exists():
        return str(sibling)

    raise FileNotFoundError("ffprobe executable not found. Install ffmpeg (includes ffprobe) or ensure it is on PATH.")


def ensure_ffmpeg_exists() -> str:
    try:
        ffmpeg_exe = resolve_ffmpeg_exe()
        subprocess.run([ffmpeg_exe, "-version"], check=True, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise FFmpegNotFoundError("FFmpeg is not installed. Install ffmpeg or the imageio-ffmpeg package.") from exc
    except subprocess.CalledProcessError as exc:
        raise FFmpegNotFoundError(
            "FFmpeg could not be executed. Ensure ffmpeg is installed and accessible in PATH."
        ) from exc
    return ffmpeg_exe


def run_ffmpeg(cmd: list[str], timeout_sec: float | None = None) -> dict[str, Any]:
    """Run a short ffmpeg/ffprobe command without bubbling process exceptions."""
    if not cmd or not cmd[0]:
        raise ValueError(f"Invalid ffmpeg/ffprobe command: {cmd!r}")
    try:
        result = subprocess.run(
            list(cmd),
            timeout=timeout_sec,
            check=False,
            capture_output=True,
            text=True,
            shell=False,
        )
        return {
            "ok": result.returncode == 0,
            "returncode": result.returncode,
            "stdout": result.stdout or "",
            "stderr": result.stderr or "",
            "timed_out": False,
        }
    except subprocess.TimeoutExpired as exc:
        return {
            "ok": False,
            "returncode": None,
            "stdout": str(exc.stdout or ""),
            "stderr": str(exc.stderr or ""),
            "timed_out": True,
        }
    except FileNotFoundError as exc:
        return {
            "ok": False,
            "returncode": None,
            "stdout": "",
            "stderr": f"Executable not found for command: {cmd!r}. Error: {exc}",
            "timed_out": False,
        }


def _wav_duration(media_path: Path) -> float | None:
    try:
        with wave.open(str(media_path), "rb") as handle:
            rate = handle.getframerate()
            frames = handle.getnframes()
    except (wave.Error, EOFError, OSError):
        return None
    if rate <= 0:
        return None
    return frames / float(rate)


def get_media_duration(path: str | Path) -> float:
    """Duration in seconds, 0.0 when the file is missing or unreadable."""
    media_path = Path(path).resolve()
    if not media_path.exists():
        return 0.0
    wav_duration = _wav_duration(media_path)
    if wav_duration is not None:
        return wav_duration
    try:
        ffprobe_exe = resolve_ffprobe_exe()
    except FileNotFoundError:
        return 0.0
    cmd = [
        ffprobe_exe,
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(media_path),
    ]
    result = run_ffmpeg(cmd, timeout_sec=60)
    if not result["ok"]:
        return 0.0
    try:
        return float(result["stdout"].strip())
    except (TypeError, ValueError):
        return 0.0
