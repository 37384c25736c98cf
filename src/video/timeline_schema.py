from __future__ import annotations

import base64
import binascii
import mimetypes
from enum import Enum
from pathlib import Path
from typing import Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import AssetLoadError


class VisualKind(str, Enum):
    IMAGE = "image"
    MOTION_CLIP = "motion_clip"

    @classmethod
    def from_mime_type(cls, mime_type: str) -> "VisualKind | None":
        category = str(mime_type or "").split("/", 1)[0].strip().lower()
        if category == "image":
            return cls.IMAGE
        if category == "video":
            return cls.MOTION_CLIP
        return None


class Caption(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    start: float = Field(ge=0)
    end: float

    @model_validator(mode="after")
    def validate_interval(self) -> "Caption":
        if self.end <= self.start:
            raise ValueError("caption end must be greater than start")
        return self

    @property
    def duration(self) -> float:
        return self.end - self.start


class CaptionStyle(BaseModel):
    font_size: int = 48
    line_height: float = 1.2
    padding: int = 10
    bottom_margin: int = 20
    max_width_ratio: float = 0.9
    box_rgba: tuple[int, int, int, int] = (0, 0, 0, 153)
    text_rgb: tuple[int, int, int] = (255, 255, 255)


class VisualAsset(BaseModel):
    """A caller-owned visual. Kind comes from the declared MIME category, never from the bytes."""

    model_config = ConfigDict(frozen=True)

    name: str
    media: bytes = Field(repr=False)
    mime_type: str
    kind: VisualKind

    @model_validator(mode="before")
    @classmethod
    def derive_kind(cls, data):
        if isinstance(data, dict) and data.get("kind") is None:
            kind = VisualKind.from_mime_type(str(data.get("mime_type") or ""))
            if kind is None:
                raise ValueError(f"unsupported media category {data.get('mime_type')!r}")
            data = {**data, "kind": kind}
        return data

    @property
    def suffix(self) -> str:
        return mimetypes.guess_extension(self.mime_type) or (".mp4" if self.kind is VisualKind.MOTION_CLIP else ".png")

    @classmethod
    def from_data_url(cls, name: str, data_url: str) -> "VisualAsset":
        header, sep, payload = str(data_url or "").partition(",")
        if not sep or not header.startswith("data:"):
            raise AssetLoadError(name, "not a data URL")
        mime_type = header[len("data:"):].split(";", 1)[0]
        _require_known_kind(name, mime_type)
        try:
            if header.endswith(";base64"):
                media = base64.b64decode(payload, validate=True)
            else:
                media = payload.encode("utf-8")
        except (binascii.Error, ValueError) as exc:
            raise AssetLoadError(name, "invalid base64 payload") from exc
        return cls(name=name, media=media, mime_type=mime_type)

    @classmethod
    def from_path(cls, path: str | Path, name: Optional[str] = None) -> "VisualAsset":
        path = Path(path)
        label = name or path.name
        mime_type, _ = mimetypes.guess_type(path.name)
        _require_known_kind(label, mime_type or "")
        try:
            media = path.read_bytes()
        except OSError as exc:
            raise AssetLoadError(label, str(exc)) from exc
        return cls(name=label, media=media, mime_type=mime_type)

    @classmethod
    def from_url(cls, url: str, name: Optional[str] = None, timeout_sec: float = 60) -> "VisualAsset":
        label = name or url.rsplit("/", 1)[-1] or url
        try:
            response = requests.get(url, timeout=timeout_sec)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise AssetLoadError(label, str(exc)) from exc
        mime_type = response.headers.get("Content-Type", "").split(";", 1)[0].strip()
        if not mime_type:
            mime_type = mimetypes.guess_type(url)[0] or ""
        _require_known_kind(label, mime_type)
        return cls(name=label, media=response.content, mime_type=mime_type)


def _require_known_kind(name: str, mime_type: str) -> VisualKind:
    kind = VisualKind.from_mime_type(mime_type)
    if kind is None:
        raise AssetLoadError(name, f"unsupported media type {mime_type or 'unknown'!r}")
    return kind
