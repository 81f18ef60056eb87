"""Font table parser and run font resolution."""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Optional

from lxml import etree

from docxmodel.model import FontInfo, FontScheme, FontSlots, RunProperties
from docxmodel.docx_parser.theme import DEFAULT_MAJOR_FONT, DEFAULT_MINOR_FONT
from docxmodel.docx_parser.xmlutils import attr, child_val, children

logger = logging.getLogger(__name__)

DEFAULT_FONT = "Calibri"

DIRECT_FONT_ATTRS = ("ascii", "hAnsi", "eastAsia", "cs")
THEME_FONT_ATTRS = ("asciiTheme", "hAnsiTheme", "eastAsiaTheme", "csTheme")

DEFAULT_FONT_CATALOG: Dict[str, FontInfo] = {
    "Calibri": FontInfo(name="Calibri", family="swiss", charset="0"),
    "Calibri Light": FontInfo(name="Calibri Light", family="swiss", charset="0"),
    "等线": FontInfo(name="等线", family="auto", charset="134"),
    "等线 Light": FontInfo(name="等线 Light", family="auto", charset="134"),
    "Times New Roman": FontInfo(name="Times New Roman", family="roman", charset="0"),
    "Arial": FontInfo(name="Arial", family="swiss", charset="0"),
}


def parse_font_table(
    root: Optional[etree._Element],
    major: FontSlots = DEFAULT_MAJOR_FONT,
    minor: FontSlots = DEFAULT_MINOR_FONT,
) -> FontScheme:
    """Parse fontTable.xml into a catalog keyed by font name.

    An absent or empty font table yields the default catalog. ``major`` and
    ``minor`` are the theme font bindings carried alongside the catalog.
    """
    fonts: Dict[str, FontInfo] = {}
    for font in children(root, "font"):
        name = attr(font, "name")
        if not name:
            continue
        fonts[name] = FontInfo(
            name=name,
            alt_name=child_val(font, "altName"),
            family=child_val(font, "family"),
            charset=child_val(font, "charset"),
            pitch=child_val(font, "pitch"),
            panose=child_val(font, "panose1"),
        )

    if not fonts:
        logger.debug("Font table empty or absent, using default catalog")
        fonts = dict(DEFAULT_FONT_CATALOG)

    return FontScheme(major_font=major, minor_font=minor, fonts=fonts)


def parse_run_fonts(rfonts: Optional[etree._Element]) -> Dict[str, str]:
    """Collect the direct and theme font attributes of a ``w:rFonts``."""
    result: Dict[str, str] = {}
    if rfonts is None:
        return result
    for name in DIRECT_FONT_ATTRS + THEME_FONT_ATTRS:
        value = attr(rfonts, name)
        if value:
            result[name] = value
    return result


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def merge_run_fonts(inherited: Dict[str, str], own: Dict[str, str]) -> Dict[str, str]:
    """Overlay ``own`` rFonts attributes on ``inherited`` slot by slot.

    A slot set in ``own``, either literally (``ascii``) or through the theme
    (``asciiTheme``), replaces both attributes of that slot.
    """
    merged = dict(inherited)
    for literal, themed in zip(DIRECT_FONT_ATTRS, THEME_FONT_ATTRS):
        if literal in own or themed in own:
            merged.pop(literal, None)
            merged.pop(themed, None)
    merged.update(own)
    return merged


def direct_font(fonts: Dict[str, str]) -> Optional[str]:
    """First literal font name, in ascii → hAnsi → eastAsia → cs order."""
    for name in DIRECT_FONT_ATTRS:
        value = fonts.get(name)
        if value:
            return value
    return None


def _theme_slot_font(reference: str, group: FontSlots) -> Optional[str]:
    if reference.endswith("EastAsia"):
        face = group.east_asia
    elif reference.endswith("Bidi"):
        face = group.complex_script
    else:
        face = group.latin
    return face or group.latin


def theme_font(reference: Optional[str], font_scheme: FontScheme) -> Optional[str]:
    """Translate a theme reference such as ``minorHAnsi`` into a face name.

    The slot suffix picks latin (Ascii/HAnsi), east Asian (EastAsia) or
    complex script (Bidi), falling back to the group's latin face. Bindings
    missing from ``font_scheme`` fall back to the default theme fonts.
    """
    if not reference:
        return None
    if reference.startswith("major"):
        groups = (font_scheme.major_font, DEFAULT_MAJOR_FONT)
    elif reference.startswith("minor"):
        groups = (font_scheme.minor_font, DEFAULT_MINOR_FONT)
    else:
        logger.debug(f"Unknown theme font reference '{reference}'")
        return None
    for group in groups:
        face = _theme_slot_font(reference, group)
        if face:
            return face
    return None


def theme_font_from(fonts: Dict[str, str], font_scheme: FontScheme) -> Optional[str]:
    for name in THEME_FONT_ATTRS:
        face = theme_font(fonts.get(name), font_scheme)
        if face:
            return face
    return None


def font_of(props: Optional[RunProperties], font_scheme: FontScheme) -> Optional[str]:
    """Font a property bag names, directly or through a theme reference."""
    if props is None or not props.fonts:
        return None
    return direct_font(props.fonts) or theme_font_from(props.fonts, font_scheme)


def resolve_font(
    direct: Optional[RunProperties],
    styles: Iterable[Optional[RunProperties]],
    defaults: Optional[RunProperties],
    font_scheme: FontScheme,
    fallback: str = DEFAULT_FONT,
) -> str:
    """Resolve a run's effective font name.

    Sources are tried in order and the first non-empty one wins:

    1. a literal font on the run (ascii, hAnsi, eastAsia, cs)
    2. a theme font reference on the run
    3. the effective style's font (``styles`` in precedence order,
       normally the run style then the paragraph style)
    4. the document default font
    5. ``fallback``
    """
    if direct is not None and direct.fonts:
        face = direct_font(direct.fonts) or theme_font_from(direct.fonts, font_scheme)
        if face:
            return face
    for props in styles:
        face = font_of(props, font_scheme)
        if face:
            return face
    face = font_of(defaults, font_scheme)
    if face:
        return face
    return fallback or DEFAULT_FONT


# ---------------------------------------------------------------------------
# CSS fallback stacks
# ---------------------------------------------------------------------------

FONT_FALLBACKS: Dict[str, str] = {
    "宋体": 'SimSun, "Times New Roman", serif',
    "黑体": "SimHei, Arial, sans-serif",
    "楷体": 'KaiTi, "Times New Roman", serif',
    "仿宋": 'FangSong, "Times New Roman", serif',
    "微软雅黑": '"Microsoft YaHei", Arial, sans-serif',
    "等线": "DengXian, Arial, sans-serif",
    "等线 Light": '"DengXian Light", Arial, sans-serif',
    "Times New Roman": '"Times New Roman", Times, serif',
    "Arial": "Arial, Helvetica, sans-serif",
    "Calibri": "Calibri, Arial, sans-serif",
    "Calibri Light": '"Calibri Light", Calibri, Arial, sans-serif',
    "Cambria": 'Cambria, "Times New Roman", serif',
    "Consolas": 'Consolas, "Courier New", monospace',
    "Georgia": 'Georgia, "Times New Roman", serif',
    "Tahoma": "Tahoma, Arial, sans-serif",
    "Verdana": "Verdana, Arial, sans-serif",
    "Symbol": "Symbol, serif",
    "Wingdings": "Wingdings, serif",
    "Webdings": "Webdings, serif",
}

CJK_FONT_NAMES = (
    "宋体", "黑体", "楷体", "仿宋", "微软雅黑", "等线", "SimSun", "SimHei",
    "KaiTi", "FangSong", "Microsoft YaHei", "DengXian", "MS Gothic", "MS Mincho",
    "Meiryo", "Yu Gothic", "Malgun Gothic", "Batang", "Dotum",
)

_CJK_RE = re.compile("[\u4e00-\u9fff\u3400-\u4dbf\uf900-\ufaff\u3040-\u30ff\uac00-\ud7af]")

_MONO_HINTS = ("mono", "consol", "courier", "code")
_SERIF_HINTS = ("times", "serif", "georgia", "garamond", "cambria", "book", "roman", "mincho", "song")
_SCRIPT_HINTS = ("script", "brush", "hand", "kunstler", "vivaldi", "edwardian", "mistral", "segoe print")
_DISPLAY_HINTS = ("impact", "display", "poster", "stencil", "showcard", "jokerman", "broadway", "black")


def _quote(name: str) -> str:
    if re.fullmatch(r"[A-Za-z][A-Za-z0-9-]*", name):
        return name
    return '"' + name.replace('"', "") + '"'


def classify_font(name: str) -> str:
    """Bucket a face name: cjk, monospace, serif, script, display or sans-serif."""
    if _CJK_RE.search(name) or any(cjk in name for cjk in CJK_FONT_NAMES):
        return "cjk"
    lower = name.lower()
    if "sans" in lower:
        return "sans-serif"
    if any(hint in lower for hint in _MONO_HINTS):
        return "monospace"
    if any(hint in lower for hint in _SCRIPT_HINTS):
        return "script"
    if any(hint in lower for hint in _DISPLAY_HINTS):
        return "display"
    if any(hint in lower for hint in _SERIF_HINTS):
        return "serif"
    return "sans-serif"


def font_fallback(name: Optional[str]) -> str:
    """CSS-safe font-family stack for a face name, ending in a generic family."""
    if not name:
        return FONT_FALLBACKS[DEFAULT_FONT]
    if name in FONT_FALLBACKS:
        return FONT_FALLBACKS[name]

    face = _quote(name)
    bucket = classify_font(name)
    if bucket == "cjk":
        return f'{face}, "Microsoft YaHei", "PingFang SC", Arial, sans-serif'
    if bucket == "monospace":
        return f'{face}, "Courier New", monospace'
    if bucket == "serif":
        return f'{face}, "Times New Roman", serif'
    if bucket == "script":
        return f"{face}, cursive"
    if bucket == "display":
        return f"{face}, Impact, fantasy"
    return f"{face}, Arial, sans-serif"
