from __future__ import annotations

import math

from .errors import NoVisuals


def slot_duration(visual_count: int, audio_duration: float) -> float:
    if visual_count <= 0:
        raise NoVisuals("No visuals were uploaded or could be generated. Cannot proceed.")
    return float(audio_duration) / visual_count


def active_visual_index(t: float, visual_count: int, audio_duration: float) -> int:
    """Index of the visual on screen at ``t``; the last slot absorbs any float tail."""
    slot = slot_duration(visual_count, audio_duration)
    if slot <= 0:
        return 0
    index = int(math.floor(max(0.0, t) / slot))
    return min(index, visual_count - 1)


def visual_slots(visual_count: int, audio_duration: float) -> list[tuple[float, float]]:
    slot = slot_duration(visual_count, audio_duration)
    slots = [(i * slot, (i + 1) * slot) for i in range(visual_count)]
    start, _ = slots[-1]
    slots[-1] = (start, float(audio_duration))
    return slots
