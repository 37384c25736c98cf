from __future__ import annotations

import asyncio
import logging
import math
from io import BytesIO
from pathlib import Path
from typing import ClassVar, Iterator, Optional, Sequence, Union

import imageio_ffmpeg
from PIL import Image, UnidentifiedImageError

from .errors import AssetDecodeError, AssetLoadError
from .timeline_schema import VisualAsset, VisualKind

_logger = logging.getLogger(__name__)


def cover_fit(media: Image.Image, size: tuple[int, int]) -> Image.Image:
    """Scale uniformly until ``size`` is fully covered, then crop the centred excess."""
    width, height = size
    media_width, media_height = media.size
    scale = max(width / media_width, height / media_height)
    scaled_width = max(width, math.ceil(media_width * scale))
    scaled_height = max(height, math.ceil(media_height * scale))
    scaled = media.resize((scaled_width, scaled_height), Image.Resampling.BILINEAR)
    left = (scaled_width - width) // 2
    top = (scaled_height - height) // 2
    return scaled.crop((left, top, left + width, top + height))


class LoadedImage:
    kind: ClassVar[VisualKind] = VisualKind.IMAGE

    def __init__(self, name: str, image: Image.Image) -> None:
        self.name = name
        self.image = image
        self._covered: dict[tuple[int, int], Image.Image] = {}

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def play(self) -> None:
        pass

    def pause(self) -> None:
        pass

    def rewind(self) -> None:
        pass

    def draw(self, surface: Image.Image) -> None:
        if self.size[0] <= 0 or self.size[1] <= 0:
            raise AssetDecodeError(self.name, "image has no pixels")
        covered = self._covered.get(surface.size)
        if covered is None:
            try:
                covered = cover_fit(self.image, surface.size)
            except (OSError, ValueError) as exc:
                raise AssetDecodeError(self.name, str(exc)) from exc
            self._covered[surface.size] = covered
        surface.paste(covered, (0, 0))


class LoadedClip:
    """A short motion clip decoded on demand at the render frame rate."""

    kind: ClassVar[VisualKind] = VisualKind.MOTION_CLIP

    def __init__(self, name: str, path: Path, size: tuple[int, int], poster: Image.Image, fps: int) -> None:
        self.name = name
        self.path = path
        self.size = size
        self.poster = poster
        self.fps = fps
        self.playing = False
        self._frames: Optional[Iterator[bytes]] = None
        self._current = poster

    def _open_reader(self) -> Iterator[bytes]:
        reader = imageio_ffmpeg.read_frames(str(self.path), pix_fmt="rgb24", output_params=["-vf", f"fps={self.fps}"])
        next(reader)
        return reader

    def play(self) -> None:
        if self._frames is None:
            try:
                self._frames = self._open_reader()
            except (RuntimeError, OSError, StopIteration) as exc:
                raise AssetDecodeError(self.name, f"playback failed: {exc}") from exc
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def rewind(self) -> None:
        if self._frames is not None:
            self._frames.close()
            self._frames = None
        self._current = self.poster

    def _advance(self) -> None:
        try:
            raw = next(self._frames)
        except StopIteration:
            # ended clips hold their last frame
            self.playing = False
            return
        except (RuntimeError, OSError) as exc:
            raise AssetDecodeError(self.name, str(exc)) from exc
        try:
            self._current = Image.frombytes("RGB", self.size, raw)
        except ValueError as exc:
            raise AssetDecodeError(self.name, str(exc)) from exc

    def draw(self, surface: Image.Image) -> None:
        if self.size[0] <= 0 or self.size[1] <= 0:
            raise AssetDecodeError(self.name, "clip has no video pixels")
        if self.playing and self._frames is not None:
            self._advance()
        surface.paste(cover_fit(self._current, surface.size), (0, 0))


LoadedVisual = Union[LoadedImage, LoadedClip]


def _decode_image(asset: VisualAsset) -> LoadedImage:
    try:
        with Image.open(BytesIO(asset.media)) as image:
            image.load()
            rgb = image.convert("RGB")
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
        raise AssetLoadError(asset.name, str(exc)) from exc
    return LoadedImage(asset.name, rgb)


def _decode_clip(asset: VisualAsset, workdir: Path, index: int, fps: int) -> LoadedClip:
    path = workdir / f"visual_{index:02d}{asset.suffix}"
    path.write_bytes(asset.media)
    try:
        reader = imageio_ffmpeg.read_frames(str(path), pix_fmt="rgb24")
        try:
            meta = next(reader)
            size = tuple(int(v) for v in meta.get("size") or (0, 0))
            first = next(reader)
        finally:
            reader.close()
    except StopIteration as exc:
        raise AssetLoadError(asset.name, "clip contains no video frames") from exc
    except (RuntimeError, OSError, ValueError) as exc:
        raise AssetLoadError(asset.name, str(exc)) from exc
    try:
        poster = Image.frombytes("RGB", size, first)
    except ValueError as exc:
        raise AssetLoadError(asset.name, str(exc)) from exc
    return LoadedClip(asset.name, path, size, poster, fps)


def decode_visual(asset: VisualAsset, workdir: Path, index: int = 0, fps: int = 30) -> LoadedVisual:
    if asset.kind is VisualKind.MOTION_CLIP:
        return _decode_clip(asset, workdir, index, fps)
    return _decode_image(asset)


async def load_visuals(assets: Sequence[VisualAsset], workdir: Path, fps: int = 30) -> list[LoadedVisual]:
    """Decode every asset concurrently; the first failure cancels the rest."""
    tasks = [
        asyncio.create_task(asyncio.to_thread(decode_visual, asset, workdir, index, fps), name=f"load:{asset.name}")
        for index, asset in enumerate(assets)
    ]
    if not tasks:
        return []
    _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)

    for asset, task in zip(assets, tasks):
        if task.done() and not task.cancelled() and task.exception() is not None:
            for other in pending:
                other.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            exc = task.exception()
            if isinstance(exc, AssetLoadError):
                raise exc
            raise AssetLoadError(asset.name, str(exc)) from exc

    loaded = [task.result() for task in tasks]
    _logger.info("Loaded %d visual(s): %s.", len(loaded), ", ".join(v.name for v in loaded))
    return loaded
