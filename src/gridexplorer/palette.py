"""Deterministic colors keyed by the UTM column prefix of a grid name."""

from __future__ import annotations

import colorsys
import re
from functools import lru_cache

TOTAL_COLUMNS = 60
GOLDEN_ANGLE_DEG = 137.508
FALLBACK_COLOR = "#e74c3c"

_SATURATION_STEPS = (70, 80, 90)
_LIGHTNESS_STEPS = (45, 60)
_HSL_RE = re.compile(
    r"^hsl\(\s*([-\d.]+)\s*,\s*([\d.]+)%\s*,\s*([\d.]+)%\s*\)$",
    re.IGNORECASE,
)
_HEX_RE = re.compile(r"^#([0-9a-f]{6})$", re.IGNORECASE)
# Leading-integer parse of the two-character prefix ("7X" -> 7, "X7" -> none).
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


@lru_cache(maxsize=1)
def palette_colors() -> tuple[str, ...]:
    """Sixty hsl() colors, hue stepped by the golden angle."""
    colors: list[str] = []
    for idx in range(TOTAL_COLUMNS):
        hue = (idx * GOLDEN_ANGLE_DEG) % 360
        saturation = _SATURATION_STEPS[idx % 3]
        lightness = _LIGHTNESS_STEPS[idx % 2]
        colors.append(f"hsl({_format_number(hue)}, {saturation}%, {lightness}%)")
    return tuple(colors)


def column_number(name: str | None) -> int | None:
    if not name or len(name) < 2:
        return None
    match = _LEADING_INT_RE.match(name[:2])
    if match is None:
        return None
    column = int(match.group(1))
    if column < 1 or column > TOTAL_COLUMNS:
        return None
    return column


def color_for(name: str | None) -> str:
    column = column_number(name)
    if column is None:
        return FALLBACK_COLOR
    return palette_colors()[column - 1]


def to_rgb(color: str) -> tuple[float, float, float]:
    """Convert an ``hsl(...)`` or ``#rrggbb`` string to RGB floats in [0, 1]."""
    text = color.strip()
    match = _HSL_RE.match(text)
    if match:
        hue = (float(match.group(1)) % 360) / 360.0
        saturation = float(match.group(2)) / 100.0
        lightness = float(match.group(3)) / 100.0
        return colorsys.hls_to_rgb(hue, lightness, saturation)
    match = _HEX_RE.match(text)
    if match:
        raw = match.group(1)
        return (
            int(raw[0:2], 16) / 255.0,
            int(raw[2:4], 16) / 255.0,
            int(raw[4:6], 16) / 255.0,
        )
    raise ValueError(f"Unsupported color string: '{color}'")


def _format_number(value: float) -> str:
    return f"{round(value, 3):g}"
