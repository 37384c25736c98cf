from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .captions import validate_duration
from .errors import InvalidDuration
from .utils import get_media_duration

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioSource:
    """Narration audio. Read-only for the compositor and the recorder."""

    data: Optional[bytes] = None
    path: Optional[Path] = None
    mime_type: str = "audio/wav"

    def __post_init__(self) -> None:
        if self.data is None and self.path is None:
            raise ValueError("AudioSource needs either data or a path.")

    @classmethod
    def from_path(cls, path: str | Path) -> "AudioSource":
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(path=path, mime_type=mime_type or "audio/wav")

    @property
    def suffix(self) -> str:
        if self.path is not None and self.path.suffix:
            return self.path.suffix
        if self.mime_type in {"audio/wav", "audio/x-wav", "audio/wave"}:
            return ".wav"
        return mimetypes.guess_extension(self.mime_type) or ".bin"

    def materialize(self, workdir: Path) -> Path:
        if self.data is None:
            return Path(self.path).resolve()
        target = workdir / f"narration{self.suffix}"
        target.write_bytes(self.data)
        return target


@dataclass(frozen=True)
class LoadedAudio:
    path: Path
    duration: float


async def load_audio_metadata(source: AudioSource, workdir: Path) -> LoadedAudio:
    path = await asyncio.to_thread(source.materialize, workdir)
    duration = await asyncio.to_thread(get_media_duration, path)
    try:
        duration = validate_duration(duration)
    except InvalidDuration as exc:
        raise InvalidDuration(f"Invalid audio duration for {path.name}: could not read a positive length.") from exc
    _logger.info("Narration audio ready: %s (%.2fs).", path.name, duration)
    return LoadedAudio(path=path, duration=duration)
