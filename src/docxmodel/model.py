"""Document model produced by the extraction engine.

This module defines the data structures shared by every resolver:
Package → resolvers (theme, fonts, styles, numbering, relationships)
→ body walker → DocumentModel

Everything reachable from ``DocumentModel`` is plain data (no open handles),
so a model can be serialized with ``to_dict``/``to_json`` and shipped to a
renderer in another process. Lengths are in pixels at the configured DPI,
font sizes in points, colors as ``#RRGGBB``.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from types import MappingProxyType
from typing import Any, Dict, Optional, Tuple, Union

from docxmodel.utils import clean_text

ALIGNMENTS = ("left", "center", "right", "justify")


# ---------------------------------------------------------------------------
# Style-level property bags (mutable while styles are flattened)
# ---------------------------------------------------------------------------

@dataclass
class RunProperties:
    """Character properties as written in an ``rPr``; None means "not set"."""

    style_id: Optional[str] = None  # w:rStyle
    fonts: Dict[str, str] = field(default_factory=dict)  # ascii, hAnsi, eastAsia, cs, *Theme
    size: Optional[float] = None  # in points
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None
    underline_type: Optional[str] = None
    strike: Optional[bool] = None
    color: Optional[str] = None
    theme_color: Optional[str] = None
    theme_tint: Optional[str] = None
    theme_shade: Optional[str] = None
    highlight: Optional[str] = None
    shading: Dict[str, str] = field(default_factory=dict)
    vert_align: Optional[str] = None
    caps: Optional[bool] = None
    small_caps: Optional[bool] = None
    vanish: Optional[bool] = None
    lang: Optional[str] = None
    rtl: Optional[bool] = None


@dataclass
class ParagraphProperties:
    """Paragraph properties as written in a ``pPr``; None means "not set".

    ``indent`` and ``spacing`` before/after are already in pixels; the
    spacing ``line`` value is kept raw because its unit depends on
    ``lineRule``.
    """

    style_id: Optional[str] = None  # w:pStyle
    alignment: Optional[str] = None  # raw w:jc value
    indent: Dict[str, float] = field(default_factory=dict)
    spacing: Dict[str, Any] = field(default_factory=dict)
    numbering: Dict[str, Any] = field(default_factory=dict)  # num_id, level
    borders: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    shading: Dict[str, str] = field(default_factory=dict)
    outline_level: Optional[int] = None
    keep_next: Optional[bool] = None
    bidi: Optional[bool] = None


@dataclass
class TableProperties:
    style_id: Optional[str] = None
    borders: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    width: Dict[str, Any] = field(default_factory=dict)
    alignment: Optional[str] = None
    cell_margins: Dict[str, float] = field(default_factory=dict)


@dataclass
class StyleRecord:
    """A style from the styles part.

    Records are flattened once (ancestor properties absorbed through
    ``basedOn``) and are read-only afterwards.
    """

    style_id: str
    type: str  # paragraph, character, table, numbering
    name: str
    based_on: Optional[str] = None
    next_style: Optional[str] = None
    is_default: bool = False
    paragraph: Optional[ParagraphProperties] = None
    character: Optional[RunProperties] = None
    table: Optional[TableProperties] = None


@dataclass
class DocDefaults:
    """Document-wide ``pPrDefault``/``rPrDefault``."""

    paragraph: ParagraphProperties = field(default_factory=ParagraphProperties)
    character: RunProperties = field(default_factory=RunProperties)


# ---------------------------------------------------------------------------
# Theme and fonts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ThemeColorScheme:
    accent1: str = "#4472C4"
    accent2: str = "#ED7D31"
    accent3: str = "#A5A5A5"
    accent4: str = "#FFC000"
    accent5: str = "#5B9BD5"
    accent6: str = "#70AD47"
    # Every resolved scheme slot (dk1, lt1, ..., hlink, folHlink)
    palette: Dict[str, str] = field(default_factory=dict)

    def accents(self) -> Tuple[str, ...]:
        return (self.accent1, self.accent2, self.accent3, self.accent4, self.accent5, self.accent6)


@dataclass(frozen=True)
class FontSlots:
    latin: Optional[str] = None
    east_asia: Optional[str] = None
    complex_script: Optional[str] = None


@dataclass(frozen=True)
class FontInfo:
    name: str
    alt_name: Optional[str] = None
    family: Optional[str] = None
    charset: Optional[str] = None
    pitch: Optional[str] = None
    panose: Optional[str] = None


@dataclass(frozen=True)
class FontScheme:
    major_font: FontSlots = field(default_factory=FontSlots)
    minor_font: FontSlots = field(default_factory=FontSlots)
    fonts: Dict[str, FontInfo] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Numbering
# ---------------------------------------------------------------------------

ORDERED_FORMATS = frozenset({
    "decimal", "decimalZero", "lowerLetter", "upperLetter", "lowerRoman", "upperRoman",
    "ordinal", "cardinalText", "ordinalText", "decimalEnclosedCircle",
})


@dataclass(frozen=True)
class NumberingLevel:
    level: int
    format: str = "bullet"
    lvl_text: str = ""  # literal pattern, e.g. "%1."
    indent: float = 0.0  # left indent, px
    hanging: Optional[float] = None
    start: int = 1
    alignment: str = "left"

    @property
    def is_ordered(self) -> bool:
        return self.format in ORDERED_FORMATS


@dataclass(frozen=True)
class NumberingDefinition:
    abstract_num_id: str
    levels: Tuple[NumberingLevel, ...] = ()
    num_id: Optional[str] = None

    def level(self, ilvl: int) -> Optional[NumberingLevel]:
        for lvl in self.levels:
            if lvl.level == ilvl:
                return lvl
        return None


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImageBlob:
    """An embedded media part."""

    path: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


@dataclass(frozen=True)
class ImageRef:
    """An image placed in a run; ``src`` is a key of ``DocumentModel.images``."""

    type: str  # inline, floating
    src: str
    width: float = 0.0
    height: float = 0.0
    embed: Optional[str] = None
    content_type: Optional[str] = None
    description: str = ""
    left: Optional[str] = None
    top: Optional[str] = None
    z_index: Optional[int] = None
    behind_doc: bool = False


@dataclass(frozen=True)
class FloatingImage:
    src: str
    left: str = "0px"
    top: str = "0px"
    z_index: int = 1
    behind_doc: bool = False
    width: float = 0.0
    height: float = 0.0
    relative_from_h: str = "column"
    relative_from_v: str = "paragraph"
    embed: Optional[str] = None


@dataclass(frozen=True)
class BackgroundImage:
    src: str
    kind: str  # page, header


# ---------------------------------------------------------------------------
# Body content
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Indent:
    left: Optional[float] = None
    right: Optional[float] = None
    first_line: Optional[float] = None
    hanging: Optional[float] = None


@dataclass(frozen=True)
class Spacing:
    before: Optional[float] = None
    after: Optional[float] = None
    line: Optional[float] = None  # multiplier for auto, px otherwise
    line_rule: Optional[str] = None


@dataclass(frozen=True)
class Run:
    """A span of text with fully resolved character formatting."""

    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    color: str = "#000000"
    font: str = "Calibri"
    sz: float = 11.0
    font_stack: str = ""
    highlight: Optional[str] = None
    style_id: Optional[str] = None
    image: Optional[ImageRef] = None


@dataclass(frozen=True)
class NumberingRef:
    num_id: str
    level: int = 0


@dataclass(frozen=True)
class Paragraph:
    style_id: Optional[str] = None
    indent: Indent = field(default_factory=Indent)
    spacing: Spacing = field(default_factory=Spacing)
    alignment: str = "left"
    runs: Tuple[Run, ...] = ()
    numbering: Optional[NumberingRef] = None
    outline_level: Optional[int] = None
    bidi: bool = False

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass(frozen=True)
class Border:
    style: str = "none"
    size: float = 0.0  # px
    color: str = "#000000"
    space: float = 0.0


@dataclass(frozen=True)
class TableBorders:
    top: Border = field(default_factory=Border)
    bottom: Border = field(default_factory=Border)
    left: Border = field(default_factory=Border)
    right: Border = field(default_factory=Border)
    inside_h: Border = field(default_factory=Border)
    inside_v: Border = field(default_factory=Border)


@dataclass(frozen=True)
class Cell:
    """A table cell.

    ``row_span`` is 1 for ordinary cells and vertical-merge starts, and 0 for
    continuation cells absorbed by the cell above.
    """

    content: Tuple[Union["Paragraph", "Table"], ...] = ()
    col_span: int = 1
    row_span: int = 1
    background: Optional[str] = None
    borders: Dict[str, Border] = field(default_factory=dict)
    width: Optional[float] = None

    @property
    def paragraphs(self) -> Tuple[Paragraph, ...]:
        return tuple(item for item in self.content if isinstance(item, Paragraph))


@dataclass(frozen=True)
class Row:
    cells: Tuple[Cell, ...] = ()
    height: Optional[float] = None


@dataclass(frozen=True)
class Table:
    style_id: Optional[str] = None
    borders: TableBorders = field(default_factory=TableBorders)
    rows: Tuple[Row, ...] = ()
    width: Optional[float] = None


@dataclass(frozen=True)
class BlockRef:
    """Position of a body block: ``kind`` names the list, ``index`` the slot."""

    kind: str  # paragraph, table
    index: int


@dataclass(frozen=True)
class HeaderFooter:
    part: str
    paragraphs: Tuple[Paragraph, ...] = ()
    tables: Tuple[Table, ...] = ()

    @property
    def text(self) -> str:
        return clean_text("\n".join(p.text for p in self.paragraphs))


@dataclass(frozen=True)
class Page:
    """Page geometry in pixels; ``margin`` is (top, right, bottom, left)."""

    width: float
    height: float
    margin: Tuple[float, float, float, float]
    gutter: float = 0.0
    header: Optional[float] = None
    footer: Optional[float] = None
    orientation: str = "portrait"


@dataclass(frozen=True)
class Metadata:
    title: Optional[str] = None
    subject: Optional[str] = None
    author: Optional[str] = None
    keywords: Optional[str] = None
    created: Optional[str] = None
    modified: Optional[str] = None
    last_modified_by: Optional[str] = None
    pages: Optional[int] = None
    words: Optional[int] = None
    application: Optional[str] = None


# ---------------------------------------------------------------------------
# Root aggregate
# ---------------------------------------------------------------------------

def _empty_mapping() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True)
class DocumentModel:
    """The complete, resolved document.

    ``lists``, ``styles`` and ``images`` are read-only views over copies
    taken at assembly time.
    """

    page: Page
    paragraphs: Tuple[Paragraph, ...] = ()
    tables: Tuple[Table, ...] = ()
    floating_images: Tuple[FloatingImage, ...] = ()
    lists: Mapping[str, NumberingDefinition] = field(default_factory=_empty_mapping)
    theme_colors: ThemeColorScheme = field(default_factory=ThemeColorScheme)
    styles: Mapping[str, StyleRecord] = field(default_factory=_empty_mapping)
    font_table: FontScheme = field(default_factory=FontScheme)
    lang: str = "en-US"
    rtl: bool = False
    headers: Tuple[HeaderFooter, ...] = ()
    footers: Tuple[HeaderFooter, ...] = ()
    images: Mapping[str, ImageBlob] = field(default_factory=_empty_mapping)
    metadata: Metadata = field(default_factory=Metadata)
    body: Tuple[BlockRef, ...] = ()
    background_image: Optional[BackgroundImage] = None
    defaults: DocDefaults = field(default_factory=DocDefaults)
    warnings: Tuple[Any, ...] = ()  # ParseWarning values

    def blocks(self):
        """Yield body paragraphs and tables in document order."""
        for ref in self.body:
            if ref.kind == "paragraph":
                yield self.paragraphs[ref.index]
            else:
                yield self.tables[ref.index]

    def to_dict(self, include_image_data: bool = True) -> Dict[str, Any]:
        return _to_plain(self, include_image_data)

    def to_json(self, include_image_data: bool = True, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(include_image_data), ensure_ascii=False, indent=indent)


def _to_plain(obj: Any, include_image_data: bool) -> Any:
    if isinstance(obj, ImageBlob):
        plain = {"path": obj.path, "content_type": obj.content_type, "size": len(obj.data)}
        if include_image_data:
            plain["data_uri"] = obj.data_uri
        return plain
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _to_plain(getattr(obj, f.name), include_image_data) for f in fields(obj)}
    if isinstance(obj, Mapping):
        return {str(k): _to_plain(v, include_image_data) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_plain(v, include_image_data) for v in obj]
    if isinstance(obj, bytes):
        return base64.b64encode(obj).decode("ascii")
    return obj
