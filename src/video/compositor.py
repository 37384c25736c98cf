from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Protocol, Sequence

from PIL import Image, ImageDraw, ImageFont

from src.config import RenderConfig

from .assets import LoadedVisual
from .captions import active_caption, validate_duration
from .timeline_builder import active_visual_index
from .timeline_schema import Caption, CaptionStyle

_logger = logging.getLogger(__name__)

_FONT_CANDIDATES = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf", "DejaVuSans.ttf")


class FrameSink(Protocol):
    def write_frame(self, index: int, frame: Image.Image) -> None: ...


@dataclass
class RenderState:
    frame: int = 0
    visual_index: int = -1
    fade_frames_remaining: int = 0
    last_caption_text: str = ""


def load_caption_font(size: int, font_path: Optional[str] = None):
    candidates = ((font_path,) if font_path else ()) + _FONT_CANDIDATES
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def caption_alpha(fade_frames_remaining: int, fade_window: int) -> float:
    """Eased (quadratic) fade-in opacity."""
    if fade_frames_remaining <= 0 or fade_window <= 0:
        return 1.0
    opacity = 1 - (fade_frames_remaining / fade_window)
    return opacity * opacity


def wrap_caption_lines(draw: ImageDraw.ImageDraw, text: str, font, max_width: float) -> list[str]:
    """Greedy wrap on spaces using measured text width."""
    lines: list[str] = []
    current = ""
    for word in text.split(" "):
        candidate = f"{current} {word}" if current else word
        if draw.textlength(candidate, font=font) > max_width and current:
            lines.append(current)
            current = word
        else:
            current = candidate
    lines.append(current)
    return lines


def draw_caption(frame: Image.Image, text: str, font, style: CaptionStyle, alpha: float = 1.0) -> Image.Image:
    """Bottom-anchored caption block, last line nearest the bottom edge."""
    width, height = frame.size
    overlay = Image.new("RGBA", frame.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)

    lines = wrap_caption_lines(draw, text, font, width * style.max_width_ratio)
    line_height = style.font_size * style.line_height
    for index, line in enumerate(reversed(lines)):
        baseline = height - index * line_height - style.bottom_margin
        text_width = draw.textlength(line, font=font)
        box_width = text_width + style.padding * 2
        box_height = style.font_size + style.padding
        box_left = (width - box_width) / 2
        box_top = baseline - style.font_size - style.padding / 2
        draw.rectangle([(box_left, box_top), (box_left + box_width, box_top + box_height)], fill=style.box_rgba)

        bbox = draw.textbbox((0, 0), line, font=font)
        draw.text(((width - text_width) / 2, baseline - bbox[3]), line, font=font, fill=(*style.text_rgb, 255))

    if alpha < 1.0:
        faded = overlay.getchannel("A").point(lambda value: int(value * alpha))
        overlay.putalpha(faded)

    composed = frame.convert("RGBA")
    composed.alpha_composite(overlay)
    return composed.convert("RGB")


class FrameCompositor:
    """Frame-rate-locked renderer for one synthesis run.

    Owns the surface and ``RenderState`` exclusively; nothing else mutates them.
    """

    def __init__(
        self,
        visuals: Sequence[LoadedVisual],
        captions: Sequence[Caption],
        audio_duration: float,
        config: RenderConfig,
        *,
        title: Optional[str] = None,
        style: Optional[CaptionStyle] = None,
    ) -> None:
        self.visuals = list(visuals)
        self.captions = list(captions)
        self.audio_duration = validate_duration(audio_duration)
        self.config = config
        self.title = (title or "").strip()
        self.style = style or CaptionStyle()
        self.font = load_caption_font(self.style.font_size, config.font_path)
        self.state = RenderState()

    @property
    def total_frames(self) -> int:
        return math.ceil(self.audio_duration * self.config.fps)

    @property
    def finished(self) -> bool:
        return self.state.frame > self.total_frames

    def caption_text_at(self, t: float) -> str:
        if not self.captions:
            return self.title
        caption = active_caption(self.captions, t)
        return caption.text if caption else ""

    def _switch_visual(self, index: int) -> None:
        if self.state.visual_index >= 0:
            previous = self.visuals[self.state.visual_index]
            previous.pause()
            previous.rewind()
        self.state.visual_index = index
        self.visuals[index].play()

    def render_surface(self, visual: LoadedVisual, caption_text: str, alpha: float) -> Image.Image:
        surface = Image.new("RGB", (self.config.width, self.config.height), (0, 0, 0))
        visual.draw(surface)
        if caption_text:
            surface = draw_caption(surface, caption_text, self.font, self.style, alpha)
        return surface

    def compose(self) -> Image.Image:
        """Render the current frame and advance the frame counter."""
        state = self.state
        t = state.frame / self.config.fps

        index = active_visual_index(t, len(self.visuals), self.audio_duration)
        if index != state.visual_index:
            self._switch_visual(index)

        text = self.caption_text_at(t)
        if text != state.last_caption_text:
            state.fade_frames_remaining = self.config.fade_frames
            state.last_caption_text = text

        alpha = 1.0
        if text and state.fade_frames_remaining > 0:
            alpha = caption_alpha(state.fade_frames_remaining, self.config.fade_frames)
            state.fade_frames_remaining -= 1

        surface = self.render_surface(self.visuals[index], text, alpha)
        state.frame += 1
        return surface

    def stop_playback(self) -> None:
        for visual in self.visuals:
            visual.pause()
            visual.rewind()

    async def run(self, sink: FrameSink) -> int:
        """Drive ticks until the frame after ``total_frames``; returns frames produced.

        Ticks may run late but are never skipped or reordered. Any sink
        failure stops the loop on that tick.
        """
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        produced = 0
        _logger.info("Compositing %d frame(s) at %dfps.", self.total_frames + 1, self.config.fps)
        try:
            while not self.finished:
                frame_number = self.state.frame
                surface = self.compose()
                await asyncio.to_thread(sink.write_frame, frame_number, surface)
                produced += 1
                if self.config.realtime:
                    next_tick += self.config.tick_interval
                    await asyncio.sleep(max(0.0, next_tick - loop.time()))
                else:
                    await asyncio.sleep(0)
        finally:
            self.stop_playback()
        return produced


def preview_state(
    t: float,
    captions: Sequence[Caption],
    visual_count: int,
    audio_duration: float,
    title: str = "",
) -> tuple[int, str]:
    index = active_visual_index(t, visual_count, audio_duration)
    if not captions:
        return index, title
    caption = active_caption(captions, t)
    return index, caption.text if caption else ""


def render_preview_png(
    visuals: Sequence[LoadedVisual],
    captions: Sequence[Caption],
    audio_duration: float,
    t: float,
    config: RenderConfig,
    *,
    title: Optional[str] = None,
) -> bytes:
    compositor = FrameCompositor(visuals, captions, audio_duration, config, title=title)
    index, text = preview_state(t, compositor.captions, len(compositor.visuals), compositor.audio_duration, compositor.title)
    surface = compositor.render_surface(compositor.visuals[index], text, 1.0)
    buffer = BytesIO()
    surface.save(buffer, format="PNG")
    return buffer.getvalue()
