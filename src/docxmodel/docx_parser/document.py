"""Document body walker - Turn document.xml (and headers/footers) into model blocks.

The walker visits block content in document order. Paragraphs resolve their
properties through the cascade in ``context``; runs are read through every
run container Word uses (hyperlinks, content controls, smart tags, simple
fields, insertions) while deletions are skipped. Images placed with
``wp:anchor`` are also collected as floating images, in the order they
appear.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from lxml import etree

from docxmodel.model import (
    BackgroundImage,
    BlockRef,
    FloatingImage,
    HeaderFooter,
    ImageRef,
    Page,
    Paragraph,
    Run,
    Table,
)
from docxmodel.utils import (
    DEFAULT_DPI,
    emu_to_pixels,
    normalize_text,
    parse_float,
    parse_int,
    parse_on_off,
    points_to_pixels,
    twips_to_pixels,
)
from docxmodel.docx_parser.context import ResolutionContext, resolve_paragraph, resolve_run
from docxmodel.docx_parser.media import resolve_image
from docxmodel.docx_parser.styles import parse_paragraph_properties, parse_run_properties
from docxmodel.docx_parser.tables import Block, parse_table
from docxmodel.docx_parser.xmlutils import (
    attr,
    child,
    children,
    descendant,
    descendants,
    local_name,
    rel_attr,
    text_of,
    val,
)

logger = logging.getLogger(__name__)

# A4 portrait with one-inch margins, in twips
DEFAULT_PAGE_WIDTH = 11906
DEFAULT_PAGE_HEIGHT = 16838
DEFAULT_MARGIN = 1440

# Elements whose children are runs (or further run containers)
RUN_CONTAINERS = frozenset({
    "hyperlink", "smartTag", "fldSimple", "ins", "customXml", "moveTo", "dir", "bdo",
})
# Run-level content that never renders
SKIPPED_CONTAINERS = frozenset({"del", "moveFrom"})

_ALIGN_POSITIONS = {
    "left": "0px",
    "top": "0px",
    "inside": "0px",
    "center": "50%",
    "right": "100%",
    "bottom": "100%",
    "outside": "100%",
}

_VML_LENGTH_RE = re.compile(r"^\s*(-?[\d.]+)\s*(pt|px|in|cm|mm)?\s*$")


@dataclass
class WalkState:
    """Per-walk collector for things gathered across blocks."""

    floating_images: List[FloatingImage] = field(default_factory=list)
    first_run_lang: Optional[str] = None
    bidi: bool = False


@dataclass(frozen=True)
class BodyContent:
    paragraphs: Tuple[Paragraph, ...]
    tables: Tuple[Table, ...]
    body: Tuple[BlockRef, ...]
    floating_images: Tuple[FloatingImage, ...]
    first_run_lang: Optional[str]
    bidi: bool


# ---------------------------------------------------------------------------
# Section / page geometry
# ---------------------------------------------------------------------------

def find_section_properties(body: Optional[etree._Element]) -> Optional[etree._Element]:
    """The body's final ``w:sectPr``, else the last one found in a paragraph."""
    if body is None:
        return None
    sect_pr = child(body, "sectPr")
    if sect_pr is not None:
        return sect_pr
    found = list(descendants(body, "sectPr"))
    return found[-1] if found else None


def parse_page(sect_pr: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> Page:
    """Page size, margins and header/footer distances in pixels.

    Missing values default to A4 portrait with one-inch margins.
    """
    pg_sz = child(sect_pr, "pgSz")
    pg_mar = child(sect_pr, "pgMar")

    width = parse_int(attr(pg_sz, "w"), DEFAULT_PAGE_WIDTH)
    height = parse_int(attr(pg_sz, "h"), DEFAULT_PAGE_HEIGHT)
    orientation = attr(pg_sz, "orient")
    if orientation not in ("portrait", "landscape"):
        orientation = "landscape" if width > height else "portrait"

    def margin(name: str, default: Optional[int]) -> Optional[float]:
        value = parse_int(attr(pg_mar, name), default)
        return twips_to_pixels(value, dpi) if value is not None else None

    return Page(
        width=twips_to_pixels(width, dpi),
        height=twips_to_pixels(height, dpi),
        margin=(
            margin("top", DEFAULT_MARGIN),
            margin("right", DEFAULT_MARGIN),
            margin("bottom", DEFAULT_MARGIN),
            margin("left", DEFAULT_MARGIN),
        ),
        gutter=margin("gutter", 0) or 0.0,
        header=margin("header", None),
        footer=margin("footer", None),
        orientation=orientation,
    )


def section_is_rtl(sect_pr: Optional[etree._Element]) -> bool:
    bidi = child(sect_pr, "bidi")
    return bidi is not None and parse_on_off(val(bidi))


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def _pixels(value: float) -> str:
    return f"{round(value, 2):g}px"


def position_value(position: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> str:
    """CSS offset for ``wp:positionH``/``wp:positionV``.

    ``posOffset`` becomes a pixel length, ``align`` a percentage of the
    reference box (left/top 0%, center 50%, right/bottom 100%).
    """
    if position is None:
        return "0px"
    offset = child(position, "posOffset")
    if offset is not None:
        emu = parse_int(text_of(offset), 0) or 0
        return _pixels(emu_to_pixels(emu, dpi))
    align = child(position, "align")
    if align is not None:
        return _ALIGN_POSITIONS.get(text_of(align).strip(), "0px")
    return "0px"


def floating_z_index(anchor: etree._Element) -> int:
    """Stacking order: -1 behind text, else the anchor's relative height (1 if absent)."""
    if parse_on_off(attr(anchor, "behindDoc"), default=False):
        return -1
    relative_height = parse_int(attr(anchor, "relativeHeight"))
    if relative_height is not None and relative_height > 0:
        return relative_height
    return 1


def _extent(container: etree._Element, dpi: int) -> Tuple[float, float]:
    extent = child(container, "extent")
    cx = parse_int(attr(extent, "cx"), 0) or 0
    cy = parse_int(attr(extent, "cy"), 0) or 0
    return emu_to_pixels(cx, dpi), emu_to_pixels(cy, dpi)


def image_from_drawing(drawing: etree._Element, ctx: ResolutionContext, state: WalkState) -> Optional[ImageRef]:
    """Build the image placed by a ``w:drawing`` (inline or anchored).

    Drawings without a picture (shapes, charts) yield None, as do pictures
    whose relationship cannot be resolved.
    """
    anchor = child(drawing, "anchor")
    container = anchor if anchor is not None else child(drawing, "inline")
    if container is None:
        return None
    blip = descendant(container, "blip")
    if blip is None:
        return None
    rel_id = rel_attr(blip, "embed")
    blob = resolve_image(rel_id, ctx.rels, ctx.images, ctx.diagnostics, ctx.part)
    if blob is None:
        return None

    width, height = _extent(container, ctx.dpi)
    description = attr(child(container, "docPr"), "descr") or ""

    if anchor is None:
        return ImageRef(
            type="inline",
            src=blob.path,
            width=width,
            height=height,
            embed=rel_id,
            content_type=blob.content_type,
            description=description,
        )

    position_h = child(anchor, "positionH")
    position_v = child(anchor, "positionV")
    if parse_on_off(attr(anchor, "simplePos"), default=False):
        simple = child(anchor, "simplePos")
        left = _pixels(emu_to_pixels(parse_int(attr(simple, "x"), 0) or 0, ctx.dpi))
        top = _pixels(emu_to_pixels(parse_int(attr(simple, "y"), 0) or 0, ctx.dpi))
    else:
        left = position_value(position_h, ctx.dpi)
        top = position_value(position_v, ctx.dpi)
    behind_doc = parse_on_off(attr(anchor, "behindDoc"), default=False)
    z_index = floating_z_index(anchor)

    state.floating_images.append(FloatingImage(
        src=blob.path,
        left=left,
        top=top,
        z_index=z_index,
        behind_doc=behind_doc,
        width=width,
        height=height,
        relative_from_h=attr(position_h, "relativeFrom") or "column",
        relative_from_v=attr(position_v, "relativeFrom") or "paragraph",
        embed=rel_id,
    ))
    return ImageRef(
        type="floating",
        src=blob.path,
        width=width,
        height=height,
        embed=rel_id,
        content_type=blob.content_type,
        description=description,
        left=left,
        top=top,
        z_index=z_index,
        behind_doc=behind_doc,
    )


def _vml_length(value: Optional[str], dpi: int) -> float:
    if not value:
        return 0.0
    match = _VML_LENGTH_RE.match(value)
    if not match:
        return 0.0
    number = parse_float(match.group(1), 0.0) or 0.0
    unit = match.group(2) or "px"
    if unit == "pt":
        return points_to_pixels(number, dpi)
    if unit == "in":
        return number * dpi
    if unit == "cm":
        return number / 2.54 * dpi
    if unit == "mm":
        return number / 25.4 * dpi
    return number


def image_from_vml(elem: etree._Element, ctx: ResolutionContext) -> Optional[ImageRef]:
    """Legacy ``w:pict``/``w:object`` picture carried by ``v:imagedata``."""
    imagedata = descendant(elem, "imagedata")
    if imagedata is None:
        return None
    rel_id = rel_attr(imagedata, "id")
    blob = resolve_image(rel_id, ctx.rels, ctx.images, ctx.diagnostics, ctx.part)
    if blob is None:
        return None

    shape = imagedata.getparent()
    style = {}
    for declaration in (attr(shape, "style") or "").split(";"):
        if ":" in declaration:
            key, value = declaration.split(":", 1)
            style[key.strip().lower()] = value.strip()
    return ImageRef(
        type="inline",
        src=blob.path,
        width=_vml_length(style.get("width"), ctx.dpi),
        height=_vml_length(style.get("height"), ctx.dpi),
        embed=rel_id,
        content_type=blob.content_type,
        description=attr(imagedata, "title") or "",
    )


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------

def _alternate_branch(alternate: etree._Element) -> Optional[etree._Element]:
    """``mc:Choice`` when present, else ``mc:Fallback``."""
    choice = child(alternate, "Choice")
    if choice is not None:
        return choice
    return child(alternate, "Fallback")


def iter_run_elements(container: etree._Element) -> Iterator[etree._Element]:
    """Yield the ``w:r`` elements of a paragraph in document order."""
    for elem in children(container):
        tag = local_name(elem)
        if tag == "r":
            yield elem
        elif tag in RUN_CONTAINERS:
            yield from iter_run_elements(elem)
        elif tag == "sdt":
            content = child(elem, "sdtContent")
            if content is not None:
                yield from iter_run_elements(content)
        elif tag == "AlternateContent":
            branch = _alternate_branch(elem)
            if branch is not None:
                yield from iter_run_elements(branch)
        elif tag in SKIPPED_CONTAINERS:
            continue


def _symbol(sym: etree._Element) -> str:
    code = attr(sym, "char")
    try:
        return chr(int(code, 16)) if code else ""
    except (ValueError, OverflowError):
        return ""


def iter_run_content(run: etree._Element, ctx: ResolutionContext, state: WalkState) -> Iterator[object]:
    """Yield text fragments (str) and images (ImageRef) in the order they appear."""
    for elem in children(run):
        tag = local_name(elem)
        if tag == "t":
            yield elem.text or ""
        elif tag == "tab":
            yield "\t"
        elif tag in ("br", "cr"):
            yield "\n"
        elif tag == "noBreakHyphen":
            yield "-"
        elif tag == "softHyphen":
            yield "\u00ad"
        elif tag == "sym":
            yield _symbol(elem)
        elif tag == "drawing":
            image = image_from_drawing(elem, ctx, state)
            if image is not None:
                yield image
        elif tag in ("pict", "object"):
            image = image_from_vml(elem, ctx)
            if image is not None:
                yield image
        elif tag == "AlternateContent":
            branch = _alternate_branch(elem)
            if branch is not None:
                yield from iter_run_content(branch, ctx, state)


def build_runs(
    run: etree._Element,
    paragraph_style_id: Optional[str],
    ctx: ResolutionContext,
    state: WalkState,
) -> List[Run]:
    """Turn one ``w:r`` into model runs.

    Text fragments are concatenated into a single run; each image gets a
    run of its own carrying the same formatting. Hidden (``vanish``) runs
    produce nothing.
    """
    direct = parse_run_properties(child(run, "rPr"))
    if direct.lang and state.first_run_lang is None:
        state.first_run_lang = direct.lang

    resolved = resolve_run(direct, paragraph_style_id, ctx)
    if resolved.vanish:
        return []

    def make(text: str, image: Optional[ImageRef] = None) -> Run:
        return Run(
            text=text,
            bold=resolved.bold,
            italic=resolved.italic,
            underline=resolved.underline,
            strike=resolved.strike,
            color=resolved.color,
            font=resolved.font,
            sz=resolved.sz,
            font_stack=resolved.font_stack,
            highlight=resolved.highlight,
            style_id=resolved.style_id,
            image=image,
        )

    runs: List[Run] = []
    buffer: List[str] = []
    for item in iter_run_content(run, ctx, state):
        if isinstance(item, ImageRef):
            if buffer:
                runs.append(make(normalize_text("".join(buffer))))
                buffer = []
            runs.append(make("", item))
        else:
            buffer.append(item)
    text = normalize_text("".join(buffer))
    if text:
        runs.append(make(text))
    return runs


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

def build_paragraph(p: etree._Element, ctx: ResolutionContext, state: WalkState) -> Paragraph:
    direct = parse_paragraph_properties(child(p, "pPr"), ctx.dpi)
    resolved = resolve_paragraph(direct, ctx)
    if resolved.bidi:
        state.bidi = True

    runs: List[Run] = []
    for run in iter_run_elements(p):
        runs.extend(build_runs(run, direct.style_id, ctx, state))

    return Paragraph(
        style_id=resolved.style_id,
        indent=resolved.indent,
        spacing=resolved.spacing,
        alignment=resolved.alignment,
        runs=tuple(runs),
        numbering=resolved.numbering,
        outline_level=resolved.outline_level,
        bidi=resolved.bidi,
    )


def walk_blocks(container: etree._Element, ctx: ResolutionContext, state: WalkState) -> List[Block]:
    """Paragraphs and tables directly inside ``container``, in document order."""
    blocks: List[Block] = []
    for elem in children(container):
        tag = local_name(elem)
        if tag == "p":
            blocks.append(build_paragraph(elem, ctx, state))
        elif tag == "tbl":
            blocks.append(parse_table(elem, ctx, lambda cell, c: walk_blocks(cell, c, state)))
        elif tag == "sdt":
            content = child(elem, "sdtContent")
            if content is not None:
                blocks.extend(walk_blocks(content, ctx, state))
        elif tag == "customXml":
            blocks.extend(walk_blocks(elem, ctx, state))
        elif tag == "AlternateContent":
            branch = _alternate_branch(elem)
            if branch is not None:
                blocks.extend(walk_blocks(branch, ctx, state))
    return blocks


def walk_body(root: Optional[etree._Element], ctx: ResolutionContext) -> BodyContent:
    """Walk ``w:body`` into paragraphs, tables and the document-order index."""
    state = WalkState()
    body = child(root, "body")
    blocks = walk_blocks(body, ctx, state) if body is not None else []

    paragraphs: List[Paragraph] = []
    tables: List[Table] = []
    order: List[BlockRef] = []
    for block in blocks:
        if isinstance(block, Paragraph):
            order.append(BlockRef(kind="paragraph", index=len(paragraphs)))
            paragraphs.append(block)
        else:
            order.append(BlockRef(kind="table", index=len(tables)))
            tables.append(block)

    logger.debug(f"Walked body: {len(paragraphs)} paragraphs, {len(tables)} tables, "
                 f"{len(state.floating_images)} floating images")
    return BodyContent(
        paragraphs=tuple(paragraphs),
        tables=tuple(tables),
        body=tuple(order),
        floating_images=tuple(state.floating_images),
        first_run_lang=state.first_run_lang,
        bidi=state.bidi,
    )


def walk_header_footer(root: Optional[etree._Element], ctx: ResolutionContext) -> HeaderFooter:
    """Walk a header/footer part with the same block walker as the body."""
    state = WalkState()
    blocks = walk_blocks(root, ctx, state) if root is not None else []
    return HeaderFooter(
        part=ctx.part,
        paragraphs=tuple(b for b in blocks if isinstance(b, Paragraph)),
        tables=tuple(b for b in blocks if isinstance(b, Table)),
    )


# ---------------------------------------------------------------------------
# Language, direction, background
# ---------------------------------------------------------------------------

def detect_language(
    default_lang: Optional[str],
    settings_root: Optional[etree._Element],
    first_run_lang: Optional[str],
    fallback: str,
) -> str:
    """Document language: defaults → ``themeFontLang`` → first run → ``fallback``."""
    if default_lang:
        return default_lang
    theme_lang = child(settings_root, "themeFontLang")
    if theme_lang is not None:
        value = val(theme_lang) or attr(theme_lang, "eastAsia") or attr(theme_lang, "bidi")
        if value:
            return value
    if first_run_lang:
        return first_run_lang
    return fallback


def settings_rtl(settings_root: Optional[etree._Element]) -> bool:
    bidi = child(settings_root, "bidi")
    return bidi is not None and parse_on_off(val(bidi))


def find_page_background(root: Optional[etree._Element], ctx: ResolutionContext) -> Optional[BackgroundImage]:
    """Image fill of ``w:background``, if the document has one."""
    background = child(root, "background")
    if background is None:
        return None
    for name in ("fill", "imagedata"):
        elem = descendant(background, name)
        rel_id = rel_attr(elem, "id")
        if rel_id:
            blob = resolve_image(rel_id, ctx.rels, ctx.images, ctx.diagnostics, ctx.part)
            if blob is not None:
                return BackgroundImage(src=blob.path, kind="page")
    blip = descendant(background, "blip")
    if blip is not None:
        blob = resolve_image(rel_attr(blip, "embed"), ctx.rels, ctx.images, ctx.diagnostics, ctx.part)
        if blob is not None:
            return BackgroundImage(src=blob.path, kind="page")
    return None


def first_header_image(headers: Tuple[HeaderFooter, ...]) -> Optional[BackgroundImage]:
    """First image placed in any header, used as the page background."""
    for header in headers:
        for paragraph in _all_paragraphs(header.paragraphs, header.tables):
            for run in paragraph.runs:
                if run.image is not None:
                    return BackgroundImage(src=run.image.src, kind="header")
    return None


def _all_paragraphs(paragraphs, tables) -> Iterator[Paragraph]:
    yield from paragraphs
    for table in tables:
        for row in table.rows:
            for cell in row.cells:
                nested = [b for b in cell.content if isinstance(b, Table)]
                yield from _all_paragraphs(cell.paragraphs, nested)
