"""Resolution context and the property cascade.

A ``ResolutionContext`` bundles every resolver output the body walker needs.
It is assembled once per parse, after style inheritance has been flattened,
and never mutated afterwards; walking a header or footer derives a copy with
that part's own relationships.

Run properties cascade first-writer-wins, per property:
direct formatting → run style → paragraph style → document defaults → hard
defaults. Paragraph properties cascade direct → numbering level (indent
only) → paragraph style → document defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from docxmodel.config import Settings
from docxmodel.diagnostics import Diagnostics
from docxmodel.model import (
    DocDefaults,
    FontScheme,
    ImageBlob,
    Indent,
    NumberingDefinition,
    NumberingLevel,
    NumberingRef,
    ParagraphProperties,
    RunProperties,
    Spacing,
    StyleRecord,
    TableProperties,
    ThemeColorScheme,
)
from docxmodel.utils import twips_to_pixels
from docxmodel.docx_parser.fonts import font_fallback, resolve_font
from docxmodel.docx_parser.media import MAIN_DOCUMENT, Relationships
from docxmodel.docx_parser.numbering import get_list_level
from docxmodel.docx_parser.styles import merge_properties, normalize_alignment
from docxmodel.docx_parser.theme import default_color_scheme, resolve_theme_color

# Spacing "line" in auto mode is expressed in 240ths of a line
LINE_UNITS = 240.0

HARD_DEFAULT_COLOR = "#000000"


@dataclass(frozen=True)
class ResolutionContext:
    settings: Settings
    diagnostics: Diagnostics
    styles: Mapping[str, StyleRecord] = field(default_factory=dict)
    defaults: DocDefaults = field(default_factory=DocDefaults)
    default_styles: Mapping[str, str] = field(default_factory=dict)
    theme_colors: ThemeColorScheme = field(default_factory=default_color_scheme)
    font_scheme: FontScheme = field(default_factory=FontScheme)
    lists: Mapping[str, NumberingDefinition] = field(default_factory=dict)
    images: Mapping[str, ImageBlob] = field(default_factory=dict)
    rels: Relationships = field(default_factory=dict)
    part: str = MAIN_DOCUMENT

    @property
    def dpi(self) -> int:
        return self.settings.dpi

    def for_part(self, part: str, rels: Relationships) -> "ResolutionContext":
        """Context for walking another part (header/footer) with its own relationships."""
        return replace(self, part=part, rels=rels)

    def style(self, style_id: Optional[str], style_type: Optional[str] = None) -> Optional[StyleRecord]:
        if not style_id:
            return None
        record = self.styles.get(style_id)
        if record is None or (style_type and record.type != style_type):
            return None
        return record

    def paragraph_style(self, style_id: Optional[str]) -> Optional[StyleRecord]:
        """Named paragraph style, or the default paragraph style when none is given."""
        if style_id:
            record = self.style(style_id, "paragraph")
            if record is not None:
                return record
        return self.style(self.default_styles.get("paragraph"), "paragraph")

    def table_style(self, style_id: Optional[str]) -> Optional[StyleRecord]:
        if style_id:
            record = self.style(style_id, "table")
            if record is not None:
                return record
        return self.style(self.default_styles.get("table"), "table")


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResolvedRun:
    """Fully resolved character formatting for one run."""

    bold: bool
    italic: bool
    underline: bool
    strike: bool
    color: str
    font: str
    sz: float
    font_stack: str
    highlight: Optional[str]
    style_id: Optional[str]
    vanish: bool
    lang: Optional[str]


def _first(layers: Iterable[Optional[RunProperties]], name: str) -> Any:
    for props in layers:
        if props is None:
            continue
        value = getattr(props, name)
        if value is not None:
            return value
    return None


def _layer_color(props: Optional[RunProperties], scheme: ThemeColorScheme) -> Optional[str]:
    if props is None:
        return None
    if props.theme_color:
        return resolve_theme_color(props.theme_color, scheme, props.theme_tint, props.theme_shade)
    return props.color


def character_layers(
    direct: Optional[RunProperties],
    paragraph_style_id: Optional[str],
    ctx: ResolutionContext,
) -> List[Optional[RunProperties]]:
    """Style layers under direct formatting, highest precedence first."""
    layers: List[Optional[RunProperties]] = []
    run_style = ctx.style(direct.style_id if direct else None, "character")
    if run_style is None:
        run_style = ctx.style(ctx.default_styles.get("character"), "character")
    layers.append(run_style.character if run_style else None)
    para_style = ctx.paragraph_style(paragraph_style_id)
    layers.append(para_style.character if para_style else None)
    return layers


def resolve_run(
    direct: Optional[RunProperties],
    paragraph_style_id: Optional[str],
    ctx: ResolutionContext,
) -> ResolvedRun:
    """Resolve every character property a run exposes."""
    style_layers = character_layers(direct, paragraph_style_id, ctx)
    layers = [direct] + style_layers + [ctx.defaults.character]

    color = None
    for props in layers:
        color = _layer_color(props, ctx.theme_colors)
        if color:
            break

    font = resolve_font(
        direct,
        style_layers,
        ctx.defaults.character,
        ctx.font_scheme,
        fallback=ctx.settings.fallback_font,
    )
    size = _first(layers, "size")
    run_style_id = direct.style_id if direct else None
    return ResolvedRun(
        bold=bool(_first(layers, "bold")),
        italic=bool(_first(layers, "italic")),
        underline=bool(_first(layers, "underline")),
        strike=bool(_first(layers, "strike")),
        color=color or HARD_DEFAULT_COLOR,
        font=font,
        sz=size if size is not None else ctx.settings.default_font_size,
        font_stack=font_fallback(font),
        highlight=_first(layers, "highlight"),
        style_id=run_style_id,
        vanish=bool(_first(layers, "vanish")),
        lang=_first(layers, "lang"),
    )


# ---------------------------------------------------------------------------
# Paragraphs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResolvedParagraph:
    style_id: Optional[str]
    indent: Indent
    spacing: Spacing
    alignment: str
    numbering: Optional[NumberingRef]
    outline_level: Optional[int]
    bidi: bool
    borders: Dict[str, Dict[str, Any]]
    shading: Dict[str, str]


def _numbering_indent(level: Optional[NumberingLevel]) -> Dict[str, float]:
    if level is None:
        return {}
    indent: Dict[str, float] = {"left": level.indent}
    if level.hanging is not None:
        indent["hanging"] = level.hanging
    return indent


def _spacing(raw: Dict[str, Any], dpi: int) -> Spacing:
    line = raw.get("line")
    rule = raw.get("line_rule")
    if line is not None:
        if rule in (None, "auto"):
            line = line / LINE_UNITS
        else:
            line = twips_to_pixels(line, dpi)
    return Spacing(
        before=raw.get("before"),
        after=raw.get("after"),
        line=line,
        line_rule=rule,
    )


def _indent(raw: Dict[str, float]) -> Indent:
    return Indent(
        left=raw.get("left"),
        right=raw.get("right"),
        first_line=raw.get("first_line"),
        hanging=raw.get("hanging"),
    )


def resolve_paragraph(direct: Optional[ParagraphProperties], ctx: ResolutionContext) -> ResolvedParagraph:
    """Resolve paragraph properties through the paragraph cascade."""
    direct = direct or ParagraphProperties()
    style = ctx.paragraph_style(direct.style_id)
    style_props = style.paragraph if style else None

    # Style and defaults first, then direct formatting on top
    base = merge_properties(ctx.defaults.paragraph, style_props)
    merged = merge_properties(base, direct)

    numbering = None
    level = None
    num_id = merged.numbering.get("num_id")
    if num_id is not None and num_id != "0":
        ilvl = merged.numbering.get("level") or 0
        numbering = NumberingRef(num_id=str(num_id), level=ilvl)
        level = get_list_level(num_id, ilvl, ctx.lists)

    # Numbering indent sits between direct formatting and the style
    indent = dict(base.indent)
    indent.update(_numbering_indent(level))
    indent.update(direct.indent)

    return ResolvedParagraph(
        style_id=direct.style_id,
        indent=_indent(indent),
        spacing=_spacing(merged.spacing, ctx.dpi),
        alignment=normalize_alignment(merged.alignment),
        numbering=numbering,
        outline_level=merged.outline_level,
        bidi=bool(merged.bidi),
        borders=merged.borders,
        shading=merged.shading,
    )


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def resolve_table_properties(direct: Optional[TableProperties], ctx: ResolutionContext) -> TableProperties:
    """Table style properties overlaid by direct ``tblPr``."""
    direct = direct or TableProperties()
    style = ctx.table_style(direct.style_id)
    style_props = style.table if style else None
    return merge_properties(style_props, direct)
