"""Styles parser - Parse styles.xml into flattened style records.

Parsing happens in two passes. ``parse_styles`` turns every ``w:style`` into
a ``StyleRecord`` holding only its own properties, and ``resolve_inheritance``
then walks the ``basedOn`` chains and merges each ancestor's properties
underneath the child's. After that pass the records are read-only.

The ``parse_*_properties`` helpers are shared with the body walker, which
reads direct formatting with exactly the same rules.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace
from typing import Any, Dict, Optional, Set, Tuple, TypeVar

from lxml import etree

from docxmodel.diagnostics import Diagnostics
from docxmodel.exceptions import StyleCycle
from docxmodel.model import DocDefaults, ParagraphProperties, RunProperties, StyleRecord, TableProperties
from docxmodel.utils import (
    DEFAULT_DPI,
    eighth_points_to_pixels,
    half_points_to_points,
    normalize_hex,
    parse_int,
    parse_on_off,
    points_to_pixels,
    twips_to_pixels,
)
from docxmodel.docx_parser.fonts import merge_run_fonts, parse_run_fonts
from docxmodel.docx_parser.xmlutils import attr, child, child_val, children, find_path, local_name, val

logger = logging.getLogger(__name__)

STYLES_PART = "word/styles.xml"

AUTO_COLOR = "#000000"

BORDER_SIDES = ("top", "left", "bottom", "right", "insideH", "insideV")

# w:highlight values (ST_HighlightColor)
HIGHLIGHT_COLORS: Dict[str, str] = {
    "black": "#000000",
    "blue": "#0000FF",
    "cyan": "#00FFFF",
    "green": "#00FF00",
    "magenta": "#FF00FF",
    "red": "#FF0000",
    "yellow": "#FFFF00",
    "white": "#FFFFFF",
    "darkBlue": "#000080",
    "darkCyan": "#008080",
    "darkGreen": "#008000",
    "darkMagenta": "#800080",
    "darkRed": "#800000",
    "darkYellow": "#808000",
    "darkGray": "#808080",
    "lightGray": "#C0C0C0",
}

_ALIGNMENTS = {
    "left": "left",
    "start": "left",
    "center": "center",
    "right": "right",
    "end": "right",
    "both": "justify",
    "justify": "justify",
    "distribute": "justify",
    "lowKashida": "justify",
    "mediumKashida": "justify",
    "highKashida": "justify",
    "thaiDistribute": "justify",
}

P = TypeVar("P", RunProperties, ParagraphProperties, TableProperties)


def normalize_alignment(value: Optional[str]) -> str:
    """Map a ``w:jc`` value onto left/center/right/justify (default left)."""
    if not value:
        return "left"
    return _ALIGNMENTS.get(value, "left")


# ---------------------------------------------------------------------------
# Property parsing
# ---------------------------------------------------------------------------

def _toggle(rpr: etree._Element, name: str) -> Optional[bool]:
    elem = child(rpr, name)
    if elem is None:
        return None
    return parse_on_off(val(elem))


def parse_run_properties(rpr: Optional[etree._Element]) -> RunProperties:
    """Read a ``w:rPr`` element. Absent elements stay None."""
    props = RunProperties()
    if rpr is None:
        return props

    props.style_id = child_val(rpr, "rStyle")
    props.fonts = parse_run_fonts(child(rpr, "rFonts"))

    sz = child(rpr, "sz")
    if sz is None:
        sz = child(rpr, "szCs")
    half_points = parse_int(val(sz)) if sz is not None else None
    if half_points is not None and half_points > 0:
        props.size = half_points_to_points(half_points)

    props.bold = _toggle(rpr, "b")
    props.italic = _toggle(rpr, "i")
    strike = _toggle(rpr, "strike")
    dstrike = _toggle(rpr, "dstrike")
    props.strike = strike if strike is not None else dstrike
    props.caps = _toggle(rpr, "caps")
    props.small_caps = _toggle(rpr, "smallCaps")
    props.vanish = _toggle(rpr, "vanish")
    props.rtl = _toggle(rpr, "rtl")

    underline = child(rpr, "u")
    if underline is not None:
        u_type = val(underline, "single")
        props.underline = u_type != "none"
        props.underline_type = u_type

    color = child(rpr, "color")
    if color is not None:
        raw = val(color)
        # An explicit "auto" is a value of its own and stops the cascade
        props.color = AUTO_COLOR if (raw or "").lower() == "auto" else normalize_hex(raw)
        props.theme_color = attr(color, "themeColor")
        props.theme_tint = attr(color, "themeTint")
        props.theme_shade = attr(color, "themeShade")

    highlight = child_val(rpr, "highlight")
    if highlight and highlight != "none":
        props.highlight = HIGHLIGHT_COLORS.get(highlight) or normalize_hex(highlight)

    props.shading = parse_shading(child(rpr, "shd"))
    props.vert_align = child_val(rpr, "vertAlign")

    lang = child(rpr, "lang")
    if lang is not None:
        props.lang = val(lang) or attr(lang, "eastAsia") or attr(lang, "bidi")

    return props


def parse_shading(shd: Optional[etree._Element]) -> Dict[str, str]:
    if shd is None:
        return {}
    result: Dict[str, str] = {}
    fill = normalize_hex(attr(shd, "fill"))
    if fill:
        result["fill"] = fill
    pattern = val(shd)
    if pattern:
        result["pattern"] = pattern
    color = normalize_hex(attr(shd, "color"))
    if color:
        result["color"] = color
    theme_fill = attr(shd, "themeFill")
    if theme_fill:
        result["theme_fill"] = theme_fill
    return result


def parse_border(elem: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> Optional[Dict[str, Any]]:
    """Read one border side (``w:top``, ``w:insideH``...) as style/size/color/space."""
    if elem is None:
        return None
    style = val(elem, "none") or "none"
    if style == "nil":
        style = "none"
    size = parse_int(attr(elem, "sz"), 0) or 0
    space = parse_int(attr(elem, "space"), 0) or 0
    border: Dict[str, Any] = {
        "style": style,
        "size": eighth_points_to_pixels(size, dpi),
        "color": normalize_hex(attr(elem, "color")) or "#000000",
        "space": points_to_pixels(space, dpi),
    }
    theme_color = attr(elem, "themeColor")
    if theme_color:
        border["theme_color"] = theme_color
    return border


def parse_borders(container: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> Dict[str, Dict[str, Any]]:
    """Read the per-side children of ``pBdr``/``tblBorders``/``tcBorders``."""
    result: Dict[str, Dict[str, Any]] = {}
    if container is None:
        return result
    for side_elem in children(container):
        side = _border_side(side_elem)
        if side is None:
            continue
        border = parse_border(side_elem, dpi)
        if border is not None:
            result[side] = border
    return result


def _border_side(elem: etree._Element) -> Optional[str]:
    name = local_name(elem)
    # Bidi-aware documents write start/end instead of left/right
    name = {"start": "left", "end": "right"}.get(name, name)
    if name in BORDER_SIDES or name in ("between", "bar"):
        return name
    return None


def _twips_attr(elem: Optional[etree._Element], name: str, dpi: int) -> Optional[float]:
    value = parse_int(attr(elem, name))
    if value is None:
        return None
    return twips_to_pixels(value, dpi)


def parse_indent(ind: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> Dict[str, float]:
    if ind is None:
        return {}
    result: Dict[str, float] = {}
    left = _twips_attr(ind, "left", dpi)
    if left is None:
        left = _twips_attr(ind, "start", dpi)
    right = _twips_attr(ind, "right", dpi)
    if right is None:
        right = _twips_attr(ind, "end", dpi)
    for key, value in (
        ("left", left),
        ("right", right),
        ("first_line", _twips_attr(ind, "firstLine", dpi)),
        ("hanging", _twips_attr(ind, "hanging", dpi)),
    ):
        if value is not None:
            result[key] = value
    return result


def parse_spacing(spacing: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> Dict[str, Any]:
    """Read ``w:spacing``; ``line`` stays raw since its unit depends on ``lineRule``."""
    if spacing is None:
        return {}
    result: Dict[str, Any] = {}
    before = _twips_attr(spacing, "before", dpi)
    if before is not None:
        result["before"] = before
    after = _twips_attr(spacing, "after", dpi)
    if after is not None:
        result["after"] = after
    line = parse_int(attr(spacing, "line"))
    if line is not None:
        result["line"] = line
    line_rule = attr(spacing, "lineRule")
    if line_rule:
        result["line_rule"] = line_rule
    return result


def parse_paragraph_properties(ppr: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> ParagraphProperties:
    """Read a ``w:pPr`` element. Absent elements stay None/empty."""
    props = ParagraphProperties()
    if ppr is None:
        return props

    props.style_id = child_val(ppr, "pStyle")
    props.alignment = child_val(ppr, "jc")
    props.indent = parse_indent(child(ppr, "ind"), dpi)
    props.spacing = parse_spacing(child(ppr, "spacing"), dpi)

    num_pr = child(ppr, "numPr")
    if num_pr is not None:
        numbering: Dict[str, Any] = {}
        num_id = child_val(num_pr, "numId")
        if num_id is not None:
            numbering["num_id"] = num_id
        level = parse_int(child_val(num_pr, "ilvl"))
        if level is not None:
            numbering["level"] = level
        props.numbering = numbering

    props.borders = parse_borders(child(ppr, "pBdr"), dpi)
    props.shading = parse_shading(child(ppr, "shd"))
    props.outline_level = parse_int(child_val(ppr, "outlineLvl"))

    keep_next = child(ppr, "keepNext")
    if keep_next is not None:
        props.keep_next = parse_on_off(val(keep_next))
    bidi = child(ppr, "bidi")
    if bidi is not None:
        props.bidi = parse_on_off(val(bidi))
    return props


def parse_width(elem: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> Dict[str, Any]:
    """Read ``w:tblW``/``w:tcW``: ``dxa`` widths become px, ``pct`` stays a percentage."""
    if elem is None:
        return {}
    kind = attr(elem, "type", "dxa")
    raw = attr(elem, "w")
    if kind == "pct":
        if raw and raw.endswith("%"):
            percent = parse_int(raw.rstrip("%"))
        else:
            # fiftieths of a percent
            value = parse_int(raw)
            percent = value / 50.0 if value is not None else None
        return {"type": "pct", "value": percent} if percent is not None else {}
    if kind in ("auto", "nil"):
        return {"type": kind, "value": None}
    value = parse_int(raw)
    if value is None:
        return {}
    return {"type": "dxa", "value": twips_to_pixels(value, dpi)}


def parse_cell_margins(elem: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> Dict[str, float]:
    result: Dict[str, float] = {}
    for side_elem in children(elem):
        side = _border_side(side_elem)
        if side not in ("top", "left", "bottom", "right"):
            continue
        width = _twips_attr(side_elem, "w", dpi)
        if width is not None:
            result[side] = width
    return result


def parse_table_properties(tbl_pr: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> TableProperties:
    props = TableProperties()
    if tbl_pr is None:
        return props
    props.style_id = child_val(tbl_pr, "tblStyle")
    props.borders = parse_borders(child(tbl_pr, "tblBorders"), dpi)
    props.width = parse_width(child(tbl_pr, "tblW"), dpi)
    props.alignment = child_val(tbl_pr, "jc")
    props.cell_margins = parse_cell_margins(child(tbl_pr, "tblCellMar"), dpi)
    return props


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------

def merge_properties(base: Optional[P], override: Optional[P]) -> Optional[P]:
    """Overlay ``override`` on ``base`` without mutating either.

    Scalar fields take the override unless it is None; dict fields are
    merged key by key with the override winning. Run fonts merge per slot
    (see ``merge_run_fonts``).
    """
    if base is None:
        return replace(override) if override is not None else None
    if override is None:
        return replace(base)
    values: Dict[str, Any] = {}
    for f in fields(base):
        mine = getattr(override, f.name)
        inherited = getattr(base, f.name)
        if f.name == "fonts":
            values[f.name] = merge_run_fonts(inherited, mine or {})
        elif isinstance(inherited, dict):
            merged = dict(inherited)
            merged.update(mine or {})
            values[f.name] = merged
        else:
            values[f.name] = mine if mine is not None else inherited
    return type(base)(**values)


# ---------------------------------------------------------------------------
# Styles part
# ---------------------------------------------------------------------------

def parse_doc_defaults(root: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> DocDefaults:
    """Read ``w:docDefaults`` (``rPrDefault`` and ``pPrDefault``)."""
    defaults = DocDefaults()
    doc_defaults = child(root, "docDefaults")
    if doc_defaults is None:
        return defaults
    defaults.character = parse_run_properties(find_path(doc_defaults, "rPrDefault", "rPr"))
    defaults.paragraph = parse_paragraph_properties(find_path(doc_defaults, "pPrDefault", "pPr"), dpi)
    return defaults


def parse_style(style: etree._Element, dpi: int = DEFAULT_DPI) -> Optional[StyleRecord]:
    style_id = attr(style, "styleId")
    if not style_id:
        return None
    style_type = attr(style, "type", "paragraph") or "paragraph"
    record = StyleRecord(
        style_id=style_id,
        type=style_type,
        name=child_val(style, "name") or style_id,
        based_on=child_val(style, "basedOn"),
        next_style=child_val(style, "next"),
        is_default=parse_on_off(attr(style, "default"), default=False),
    )
    ppr = child(style, "pPr")
    if ppr is not None:
        record.paragraph = parse_paragraph_properties(ppr, dpi)
    rpr = child(style, "rPr")
    if rpr is not None:
        record.character = parse_run_properties(rpr)
    tbl_pr = child(style, "tblPr")
    if tbl_pr is not None:
        record.table = parse_table_properties(tbl_pr, dpi)
    return record


def parse_styles(root: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> Dict[str, StyleRecord]:
    """First pass: one unresolved record per ``w:style``, keyed by style id."""
    styles: Dict[str, StyleRecord] = {}
    for style in children(root, "style"):
        record = parse_style(style, dpi)
        if record is not None:
            styles[record.style_id] = record
    logger.debug(f"Parsed {len(styles)} styles")
    return styles


def resolve_inheritance(styles: Dict[str, StyleRecord], diagnostics: Optional[Diagnostics] = None) -> Dict[str, StyleRecord]:
    """Second pass: flatten every ``basedOn`` chain in place.

    Each record absorbs its ancestors' properties (child wins, dict-valued
    properties merged key by key). A chain that loops back on itself is
    reported as ``StyleCycle`` and the repeated style is left as it is.
    """
    diagnostics = diagnostics or Diagnostics()
    resolved: Set[str] = set()
    for style_id in list(styles):
        _resolve_style(style_id, styles, set(), resolved, diagnostics)
    return styles


def _resolve_style(
    style_id: str,
    styles: Dict[str, StyleRecord],
    path: Set[str],
    resolved: Set[str],
    diagnostics: Diagnostics,
) -> StyleRecord:
    record = styles[style_id]
    if style_id in resolved:
        return record
    path.add(style_id)
    parent_id = record.based_on
    if parent_id and parent_id not in styles:
        logger.warning(f"Style '{style_id}' is based on missing style '{parent_id}', ignoring")
    elif parent_id and parent_id in path:
        diagnostics.warn(StyleCycle(
            f"basedOn chain from '{style_id}' loops back to '{parent_id}'",
            part=STYLES_PART,
        ))
    elif parent_id:
        parent = _resolve_style(parent_id, styles, path, resolved, diagnostics)
        _absorb(record, parent)
    path.discard(style_id)
    resolved.add(style_id)
    return record


def _absorb(record: StyleRecord, parent: StyleRecord) -> None:
    if parent.paragraph is not None:
        record.paragraph = merge_properties(parent.paragraph, record.paragraph)
    if parent.character is not None:
        record.character = merge_properties(parent.character, record.character)
    if parent.table is not None:
        record.table = merge_properties(parent.table, record.table)


def default_style_ids(styles: Dict[str, StyleRecord]) -> Dict[str, str]:
    """Map style type to the id of its ``w:default="1"`` style."""
    defaults: Dict[str, str] = {}
    for record in styles.values():
        if record.is_default and record.type not in defaults:
            defaults[record.type] = record.style_id
    if "paragraph" not in defaults and "Normal" in styles:
        defaults["paragraph"] = "Normal"
    return defaults


def load_styles(
    root: Optional[etree._Element],
    diagnostics: Diagnostics,
    dpi: int = DEFAULT_DPI,
) -> Tuple[Dict[str, StyleRecord], DocDefaults]:
    """Parse and flatten the styles part, returning ``(styles, doc_defaults)``."""
    styles = parse_styles(root, dpi)
    resolve_inheritance(styles, diagnostics)
    return styles, parse_doc_defaults(root, dpi)
