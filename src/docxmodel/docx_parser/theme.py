"""Theme parser - Parse theme1.xml into a color scheme and font bindings."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from lxml import etree

from docxmodel.model import FontSlots, ThemeColorScheme
from docxmodel.utils import (
    apply_lum_mod,
    apply_lum_off,
    apply_shade,
    apply_tint,
    apply_word_shade,
    apply_word_tint,
    normalize_hex,
    parse_int,
)
from docxmodel.docx_parser.xmlutils import attr, child, children, descendant, local_name

logger = logging.getLogger(__name__)

ACCENTS = ("accent1", "accent2", "accent3", "accent4", "accent5", "accent6")
SCHEME_SLOTS = ("dk1", "lt1", "dk2", "lt2") + ACCENTS + ("hlink", "folHlink")

# Office 2013+ default scheme
DEFAULT_SCHEME_COLORS: Dict[str, str] = {
    "dk1": "#000000",
    "lt1": "#FFFFFF",
    "dk2": "#44546A",
    "lt2": "#E7E6E6",
    "accent1": "#4472C4",
    "accent2": "#ED7D31",
    "accent3": "#A5A5A5",
    "accent4": "#FFC000",
    "accent5": "#5B9BD5",
    "accent6": "#70AD47",
    "hlink": "#0563C1",
    "folHlink": "#954F72",
}

DEFAULT_MAJOR_FONT = FontSlots(latin="Calibri Light", east_asia="等线 Light", complex_script="Times New Roman")
DEFAULT_MINOR_FONT = FontSlots(latin="Calibri", east_asia="等线", complex_script="Times New Roman")

SYSTEM_COLORS: Dict[str, str] = {
    "windowText": "#000000",
    "window": "#FFFFFF",
    "captionText": "#000000",
    "activeCaption": "#0078D4",
    "inactiveCaption": "#CCCCCC",
    "menu": "#F0F0F0",
    "menuText": "#000000",
    "highlight": "#0078D4",
    "highlightText": "#FFFFFF",
    "btnFace": "#F0F0F0",
    "btnText": "#000000",
    "btnHighlight": "#FFFFFF",
    "btnShadow": "#A0A0A0",
    "grayText": "#808080",
    "infoText": "#000000",
    "infoBk": "#FFFFE1",
}

# DrawingML preset colors (ST_PresetColorVal), keyed lower-case.
PRESET_COLORS: Dict[str, str] = {
    "aliceblue": "#F0F8FF", "antiquewhite": "#FAEBD7", "aqua": "#00FFFF",
    "aquamarine": "#7FFFD4", "azure": "#F0FFFF", "beige": "#F5F5DC",
    "bisque": "#FFE4C4", "black": "#000000", "blanchedalmond": "#FFEBCD",
    "blue": "#0000FF", "blueviolet": "#8A2BE2", "brown": "#A52A2A",
    "burlywood": "#DEB887", "cadetblue": "#5F9EA0", "chartreuse": "#7FFF00",
    "chocolate": "#D2691E", "coral": "#FF7F50", "cornflowerblue": "#6495ED",
    "cornsilk": "#FFF8DC", "crimson": "#DC143C", "cyan": "#00FFFF",
    "darkblue": "#00008B", "darkcyan": "#008B8B", "darkgoldenrod": "#B8860B",
    "darkgray": "#A9A9A9", "darkgreen": "#006400", "darkkhaki": "#BDB76B",
    "darkmagenta": "#8B008B", "darkolivegreen": "#556B2F", "darkorange": "#FF8C00",
    "darkorchid": "#9932CC", "darkred": "#8B0000", "darksalmon": "#E9967A",
    "darkseagreen": "#8FBC8F", "darkslateblue": "#483D8B", "darkslategray": "#2F4F4F",
    "darkturquoise": "#00CED1", "darkviolet": "#9400D3", "deeppink": "#FF1493",
    "deepskyblue": "#00BFFF", "dimgray": "#696969", "dodgerblue": "#1E90FF",
    "firebrick": "#B22222", "floralwhite": "#FFFAF0", "forestgreen": "#228B22",
    "fuchsia": "#FF00FF", "gainsboro": "#DCDCDC", "ghostwhite": "#F8F8FF",
    "gold": "#FFD700", "goldenrod": "#DAA520", "gray": "#808080",
    "green": "#008000", "greenyellow": "#ADFF2F", "honeydew": "#F0FFF0",
    "hotpink": "#FF69B4", "indianred": "#CD5C5C", "indigo": "#4B0082",
    "ivory": "#FFFFF0", "khaki": "#F0E68C", "lavender": "#E6E6FA",
    "lavenderblush": "#FFF0F5", "lawngreen": "#7CFC00", "lemonchiffon": "#FFFACD",
    "lightblue": "#ADD8E6", "lightcoral": "#F08080", "lightcyan": "#E0FFFF",
    "lightgoldenrodyellow": "#FAFAD2", "lightgray": "#D3D3D3", "lightgreen": "#90EE90",
    "lightpink": "#FFB6C1", "lightsalmon": "#FFA07A", "lightseagreen": "#20B2AA",
    "lightskyblue": "#87CEFA", "lightslategray": "#778899", "lightsteelblue": "#B0C4DE",
    "lightyellow": "#FFFFE0", "lime": "#00FF00", "limegreen": "#32CD32",
    "linen": "#FAF0E6", "magenta": "#FF00FF", "maroon": "#800000",
    "mediumaquamarine": "#66CDAA", "mediumblue": "#0000CD", "mediumorchid": "#BA55D3",
    "mediumpurple": "#9370DB", "mediumseagreen": "#3CB371", "mediumslateblue": "#7B68EE",
    "mediumspringgreen": "#00FA9A", "mediumturquoise": "#48D1CC", "mediumvioletred": "#C71585",
    "midnightblue": "#191970", "mintcream": "#F5FFFA", "mistyrose": "#FFE4E1",
    "moccasin": "#FFE4B5", "navajowhite": "#FFDEAD", "navy": "#000080",
    "oldlace": "#FDF5E6", "olive": "#808000", "olivedrab": "#6B8E23",
    "orange": "#FFA500", "orangered": "#FF4500", "orchid": "#DA70D6",
    "palegoldenrod": "#EEE8AA", "palegreen": "#98FB98", "paleturquoise": "#AFEEEE",
    "palevioletred": "#DB7093", "papayawhip": "#FFEFD5", "peachpuff": "#FFDAB9",
    "peru": "#CD853F", "pink": "#FFC0CB", "plum": "#DDA0DD",
    "powderblue": "#B0E0E6", "purple": "#800080", "red": "#FF0000",
    "rosybrown": "#BC8F8F", "royalblue": "#4169E1", "saddlebrown": "#8B4513",
    "salmon": "#FA8072", "sandybrown": "#F4A460", "seagreen": "#2E8B57",
    "seashell": "#FFF5EE", "sienna": "#A0522D", "silver": "#C0C0C0",
    "skyblue": "#87CEEB", "slateblue": "#6A5ACD", "slategray": "#708090",
    "snow": "#FFFAFA", "springgreen": "#00FF7F", "steelblue": "#4682B4",
    "tan": "#D2B48C", "teal": "#008080", "thistle": "#D8BFD8",
    "tomato": "#FF6347", "turquoise": "#40E0D0", "violet": "#EE82EE",
    "wheat": "#F5DEB3", "white": "#FFFFFF", "whitesmoke": "#F5F5F5",
    "yellow": "#FFFF00", "yellowgreen": "#9ACD32",
}

# Run-level w:themeColor names → scheme slot
THEME_COLOR_ALIASES: Dict[str, str] = {
    "dark1": "dk1",
    "light1": "lt1",
    "dark2": "dk2",
    "light2": "lt2",
    "text1": "dk1",
    "background1": "lt1",
    "text2": "dk2",
    "background2": "lt2",
    "hyperlink": "hlink",
    "followedHyperlink": "folHlink",
}

# DrawingML percentages are in thousandths of a percent
_PERCENT = 100000.0


def default_color_scheme() -> ThemeColorScheme:
    return ThemeColorScheme(
        **{name: DEFAULT_SCHEME_COLORS[name] for name in ACCENTS},
        palette=dict(DEFAULT_SCHEME_COLORS),
    )


def system_color_to_hex(name: Optional[str]) -> str:
    return SYSTEM_COLORS.get(name or "", "#000000")


def preset_color_to_hex(name: Optional[str]) -> str:
    return PRESET_COLORS.get((name or "").lower(), "#000000")


def scheme_color_to_hex(name: Optional[str], resolved: Optional[Dict[str, str]] = None) -> str:
    """Look a scheme slot up, preferring slots already parsed from this theme."""
    name = THEME_COLOR_ALIASES.get(name or "", name or "")
    if resolved and name in resolved:
        return resolved[name]
    return DEFAULT_SCHEME_COLORS.get(name, "#000000")


def apply_color_transforms(color: str, node: etree._Element) -> str:
    """Apply lumMod/lumOff/tint/shade children of a color node in document order."""
    for transform in children(node):
        name = local_name(transform)
        value = parse_int(attr(transform, "val"))
        if value is None:
            continue
        if name == "lumMod":
            color = apply_lum_mod(color, value / _PERCENT)
        elif name == "lumOff":
            color = apply_lum_off(color, value / _PERCENT)
        elif name == "tint":
            color = apply_tint(color, value / _PERCENT)
        elif name == "shade":
            color = apply_shade(color, value / _PERCENT)
    return color


def extract_color(elem: Optional[etree._Element], resolved: Optional[Dict[str, str]] = None) -> Optional[str]:
    """Resolve the first color choice under a scheme slot or fill node.

    Handles ``srgbClr``, ``sysClr`` (``lastClr`` first, then the name table),
    ``schemeClr`` and ``prstClr``. Returns None when the node has none.
    """
    if elem is None:
        return None
    for node in children(elem):
        name = local_name(node)
        color: Optional[str] = None
        if name == "srgbClr":
            color = normalize_hex(attr(node, "val"))
        elif name == "sysClr":
            color = normalize_hex(attr(node, "lastClr")) or system_color_to_hex(attr(node, "val"))
        elif name == "schemeClr":
            color = scheme_color_to_hex(attr(node, "val"), resolved)
        elif name == "prstClr":
            color = preset_color_to_hex(attr(node, "val"))
        if color is not None:
            return apply_color_transforms(color, node)
    return None


def parse_theme_colors(theme_root: Optional[etree._Element]) -> ThemeColorScheme:
    """Parse ``a:clrScheme`` into a color scheme.

    Slots that are missing or unresolvable keep the default palette, so the
    result always carries six accents.
    """
    if theme_root is None:
        logger.debug("No theme part, using default theme colors")
        return default_color_scheme()

    scheme = descendant(theme_root, "clrScheme")
    if scheme is None:
        logger.warning("Theme has no color scheme, using default theme colors")
        return default_color_scheme()

    resolved: Dict[str, str] = {}
    for slot in SCHEME_SLOTS:
        color = extract_color(child(scheme, slot), resolved)
        if color:
            resolved[slot] = color

    palette = dict(DEFAULT_SCHEME_COLORS)
    palette.update(resolved)
    return ThemeColorScheme(**{name: palette[name] for name in ACCENTS}, palette=palette)


def _font_slots(group: Optional[etree._Element], default: FontSlots) -> FontSlots:
    if group is None:
        return default

    def typeface(name: str) -> Optional[str]:
        return attr(child(group, name), "typeface") or None

    return FontSlots(
        latin=typeface("latin") or default.latin,
        east_asia=typeface("ea") or default.east_asia,
        complex_script=typeface("cs") or default.complex_script,
    )


def parse_theme_fonts(theme_root: Optional[etree._Element]):
    """Return ``(major, minor)`` font slots from ``a:fontScheme``."""
    scheme = descendant(theme_root, "fontScheme") if theme_root is not None else None
    if scheme is None:
        return DEFAULT_MAJOR_FONT, DEFAULT_MINOR_FONT
    major = _font_slots(child(scheme, "majorFont"), DEFAULT_MAJOR_FONT)
    minor = _font_slots(child(scheme, "minorFont"), DEFAULT_MINOR_FONT)
    return major, minor


def resolve_theme_color(
    name: Optional[str],
    scheme: ThemeColorScheme,
    tint: Optional[str] = None,
    shade: Optional[str] = None,
) -> str:
    """Translate a run-level ``w:themeColor`` into hex.

    ``tint``/``shade`` are the ``w:themeTint``/``w:themeShade`` hex bytes.
    Unknown names resolve to black.
    """
    if not name:
        return "#000000"
    slot = THEME_COLOR_ALIASES.get(name, name)
    color = scheme.palette.get(slot)
    if color is None and slot in ACCENTS:
        color = getattr(scheme, slot)
    if color is None:
        logger.debug(f"Unknown theme color '{name}'")
        return "#000000"
    if tint:
        color = apply_word_tint(color, tint)
    if shade:
        color = apply_word_shade(color, shade)
    return color
