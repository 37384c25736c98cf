from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from PIL import Image

from src.config import RenderConfig

from .errors import RecordingError
from .ffmpeg_runner import FFmpegPipe
from .utils import FFmpegNotFoundError, ensure_ffmpeg_exists

_logger = logging.getLogger(__name__)


def build_recorder_cmd(ffmpeg_exe: str, audio_path: Path, config: RenderConfig) -> list[str]:
    return [
        ffmpeg_exe,
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-f",
        "rawvideo",
        "-pix_fmt",
        "rgb24",
        "-s",
        f"{config.width}x{config.height}",
        "-framerate",
        str(config.fps),
        "-i",
        "pipe:0",
        "-i",
        str(audio_path),
        "-map",
        "0:v:0",
        "-map",
        "1:a:0",
        "-c:v",
        config.video_codec,
        "-b:v",
        config.video_bitrate,
        "-deadline",
        "realtime",
        "-cpu-used",
        "8",
        "-pix_fmt",
        "yuv420p",
        "-c:a",
        config.audio_codec,
        "-b:a",
        config.audio_bitrate,
        "-ar",
        "48000",
        "-f",
        config.container,
        "pipe:1",
    ]


class StreamRecorder:
    """Encodes composited frames plus the narration track into one container.

    Chunks are collected as the encoder emits them and only joined on
    ``finish``. Any failure discards them; partial output is never returned.
    """

    def __init__(self, audio_path: Path, workdir: Path, config: RenderConfig) -> None:
        self.audio_path = audio_path
        self.workdir = workdir
        self.config = config
        self.frames_written = 0
        self._chunks: list[bytes] = []
        self._lock = threading.Lock()
        self._pipe: Optional[FFmpegPipe] = None
        self._frame_bytes = config.width * config.height * 3

    @property
    def chunk_count(self) -> int:
        with self._lock:
            return len(self._chunks)

    def _collect(self, chunk: bytes) -> None:
        with self._lock:
            self._chunks.append(chunk)

    def start(self) -> None:
        try:
            ffmpeg_exe = ensure_ffmpeg_exists()
        except FFmpegNotFoundError as exc:
            raise RecordingError(f"Encoder could not be initialised: {exc}") from exc
        cmd = build_recorder_cmd(ffmpeg_exe, self.audio_path, self.config)
        self._pipe = FFmpegPipe(cmd, self.workdir, self._collect)
        try:
            self._pipe.start()
        except OSError as exc:
            self._pipe = None
            raise RecordingError(f"Encoder could not be started: {exc}") from exc
        _logger.info(
            "Recording started (%dx%d@%dfps, %s/%s).",
            self.config.width,
            self.config.height,
            self.config.fps,
            self.config.video_codec,
            self.config.audio_codec,
        )

    def write_frame(self, index: int, frame: Image.Image) -> None:
        if self._pipe is None:
            raise RecordingError("Recorder is not running.")
        if index != self.frames_written:
            raise RecordingError(f"Frame {index} received out of order; expected frame {self.frames_written}.")
        if frame.size != (self.config.width, self.config.height) or frame.mode != "RGB":
            raise RecordingError(f"Frame {index} has unexpected geometry {frame.size} {frame.mode}.")
        data = frame.tobytes()
        if len(data) != self._frame_bytes:
            raise RecordingError(f"Frame {index} has {len(data)} bytes; expected {self._frame_bytes}.")
        try:
            self._pipe.write(data)
        except (BrokenPipeError, OSError) as exc:
            tail = self._pipe.stderr_tail()
            self.abort()
            raise RecordingError(f"Encoder stopped accepting frames at frame {index}.", tail) from exc
        self.frames_written += 1

    def finish(self) -> bytes:
        if self._pipe is None:
            raise RecordingError("Recorder is not running.")
        pipe = self._pipe
        returncode, timed_out = pipe.close(timeout_sec=self.config.encoder_timeout_sec)
        self._pipe = None
        if timed_out:
            self._discard()
            raise RecordingError(f"Encoder timed out after {self.config.encoder_timeout_sec}s.", pipe.stderr_tail())
        if returncode != 0:
            self._discard()
            raise RecordingError(f"Encoder failed with exit code {returncode}.", pipe.stderr_tail())
        with self._lock:
            data = b"".join(self._chunks)
            chunk_count = len(self._chunks)
        if not data:
            self._discard()
            raise RecordingError("Encoder produced an empty container.", pipe.stderr_tail())
        _logger.info(
            "Recording finished: %d frame(s), %d chunk(s), %d bytes.", self.frames_written, chunk_count, len(data)
        )
        return data

    def abort(self) -> None:
        if self._pipe is not None:
            self._pipe.kill()
            self._pipe = None
        self._discard()

    def _discard(self) -> None:
        with self._lock:
            self._chunks.clear()
