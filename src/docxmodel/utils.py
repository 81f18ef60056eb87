"""Unit conversion, color math and text normalization helpers."""

from __future__ import annotations

import re
from typing import Optional, Tuple

TWIPS_PER_INCH = 1440
EMU_PER_INCH = 914400
POINTS_PER_INCH = 72
DEFAULT_DPI = 96

# OOXML integer attributes are at most 64-bit
MAX_OOXML_INT = 2 ** 63 - 1


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

def parse_int(value: Optional[str], default: Optional[int] = None) -> Optional[int]:
    """Parse an OOXML integer attribute, returning ``default`` on junk."""
    if value is None:
        return default
    value = value.strip()
    if not value:
        return default
    try:
        result = int(value)
    except ValueError:
        # Some producers write "240.0" or "12pt"
        match = re.match(r"^-?\d+(\.\d+)?", value)
        if not match:
            return default
        try:
            result = int(float(match.group(0)))
        except OverflowError:
            return default
    if abs(result) > MAX_OOXML_INT:
        return default
    return result


def parse_float(value: Optional[str], default: Optional[float] = None) -> Optional[float]:
    if value is None:
        return default
    try:
        return float(value.strip())
    except ValueError:
        return default


def parse_on_off(value: Optional[str], default: bool = True) -> bool:
    """Interpret a ``ST_OnOff`` value; a missing ``w:val`` means on."""
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "off", "none")


# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------

def twips_to_pixels(twips: float, dpi: int = DEFAULT_DPI) -> float:
    """Convert twips (1/20 pt) to pixels. 1440 twips is one inch."""
    return twips * dpi / TWIPS_PER_INCH


def pixels_to_twips(pixels: float, dpi: int = DEFAULT_DPI) -> float:
    return pixels * TWIPS_PER_INCH / dpi


def emu_to_pixels(emu: float, dpi: int = DEFAULT_DPI) -> float:
    """Convert English Metric Units to pixels (914400 EMU per inch)."""
    return emu * dpi / EMU_PER_INCH


def points_to_pixels(points: float, dpi: int = DEFAULT_DPI) -> float:
    return points * dpi / POINTS_PER_INCH


def pixels_to_points(pixels: float, dpi: int = DEFAULT_DPI) -> float:
    return pixels * POINTS_PER_INCH / dpi


def half_points_to_points(half_points: float) -> float:
    return half_points / 2.0


def eighth_points_to_pixels(eighths: float, dpi: int = DEFAULT_DPI) -> float:
    """Border widths (``w:sz``) are expressed in eighths of a point."""
    return points_to_pixels(eighths / 8.0, dpi)


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------

_HEX_RE = re.compile(r"^#?([0-9A-Fa-f]{6})$")


def normalize_hex(value: Optional[str]) -> Optional[str]:
    """Return ``#RRGGBB`` upper-case, or None for ``auto`` / invalid values."""
    if not value:
        return None
    match = _HEX_RE.match(value.strip())
    if not match:
        return None
    return "#" + match.group(1).upper()


def hex_to_rgb(value: str) -> Optional[Tuple[int, int, int]]:
    match = _HEX_RE.match(value.strip()) if value else None
    if not match:
        return None
    digits = match.group(1)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def rgb_to_hex(r: float, g: float, b: float) -> str:
    def channel(v: float) -> int:
        return int(round(max(0.0, min(255.0, v))))

    return "#{:02X}{:02X}{:02X}".format(channel(r), channel(g), channel(b))


def _map_channels(color: str, fn) -> str:
    rgb = hex_to_rgb(color)
    if rgb is None:
        return color
    return rgb_to_hex(*(fn(c) for c in rgb))


def apply_lum_mod(color: str, factor: float) -> str:
    """``a:lumMod``: scale every channel by ``factor``."""
    return _map_channels(color, lambda c: c * factor)


def apply_lum_off(color: str, offset: float) -> str:
    """``a:lumOff``: shift every channel by ``offset`` of full scale."""
    return _map_channels(color, lambda c: c + offset * 255)


def apply_tint(color: str, factor: float) -> str:
    """Move each channel towards white by ``factor`` (0..1)."""
    return _map_channels(color, lambda c: c + (255 - c) * factor)


def apply_shade(color: str, factor: float) -> str:
    """Move each channel towards black by ``factor`` (0..1)."""
    return _map_channels(color, lambda c: c * (1 - factor))


def adjust_brightness(color: str, percent: float) -> str:
    """Lighten (positive) or darken (negative) by ``percent`` (-100..100)."""
    factor = percent / 100.0
    if factor >= 0:
        return apply_tint(color, factor)
    return apply_shade(color, -factor)


def apply_word_tint(color: str, tint_hex: Optional[str]) -> str:
    """Run-level ``w:themeTint``: a hex byte, 0xFF leaves the color as is."""
    value = _hex_byte(tint_hex)
    if value is None:
        return color
    return apply_tint(color, 1 - value / 255.0)


def apply_word_shade(color: str, shade_hex: Optional[str]) -> str:
    """Run-level ``w:themeShade``: a hex byte, 0xFF leaves the color as is."""
    value = _hex_byte(shade_hex)
    if value is None:
        return color
    return apply_shade(color, 1 - value / 255.0)


def _hex_byte(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        byte = int(value, 16)
    except ValueError:
        return None
    if 0 <= byte <= 255:
        return byte
    return None


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

# Control characters that cannot appear in rendered text. Tab and LF stay.
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def normalize_text(text: Optional[str]) -> str:
    """Normalize run text without collapsing whitespace.

    Line endings become ``\\n`` and stray control characters are dropped;
    tabs, newlines and non-breaking spaces are preserved as literal
    characters.
    """
    if not text:
        return ""
    if not isinstance(text, str):
        text = str(text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _CONTROL_RE.sub("", text)


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace for plain-text summaries (headers, footers)."""
    text = normalize_text(text)
    text = text.replace("\t", " ").replace("\u00a0", " ")
    text = re.sub(r"[ ]{2,}", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    return text.strip()
