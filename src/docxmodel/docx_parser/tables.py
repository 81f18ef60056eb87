"""Table parser - Parse w:tbl elements into rows, cells, spans and borders."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Union

from lxml import etree

from docxmodel.model import Border, Cell, Paragraph, Row, Table, TableBorders
from docxmodel.utils import parse_int, twips_to_pixels
from docxmodel.docx_parser.context import ResolutionContext, resolve_table_properties
from docxmodel.docx_parser.styles import parse_borders, parse_shading, parse_table_properties, parse_width
from docxmodel.docx_parser.theme import resolve_theme_color
from docxmodel.docx_parser.xmlutils import child, child_val, children, local_name, val

logger = logging.getLogger(__name__)

Block = Union[Paragraph, Table]
BlockWalker = Callable[[etree._Element, ResolutionContext], List[Block]]

_TABLE_BORDER_FIELDS = {
    "top": "top",
    "bottom": "bottom",
    "left": "left",
    "right": "right",
    "insideH": "inside_h",
    "insideV": "inside_v",
}


def make_border(raw: Optional[Dict[str, Any]], ctx: ResolutionContext) -> Border:
    """Border value from a parsed border side; theme colors are resolved."""
    if not raw:
        return Border()
    color = raw.get("color") or "#000000"
    if raw.get("theme_color"):
        color = resolve_theme_color(raw["theme_color"], ctx.theme_colors)
    return Border(
        style=raw.get("style", "none"),
        size=raw.get("size", 0.0),
        color=color,
        space=raw.get("space", 0.0),
    )


def make_table_borders(raw: Dict[str, Dict[str, Any]], ctx: ResolutionContext) -> TableBorders:
    values = {
        field_name: make_border(raw.get(side), ctx)
        for side, field_name in _TABLE_BORDER_FIELDS.items()
    }
    return TableBorders(**values)


def _unwrap(container: etree._Element, name: str) -> Iterator[etree._Element]:
    """Yield ``name`` children, looking through content controls and custom XML."""
    for elem in children(container):
        tag = local_name(elem)
        if tag == name:
            yield elem
        elif tag == "sdt":
            content = child(elem, "sdtContent")
            if content is not None:
                yield from _unwrap(content, name)
        elif tag == "customXml":
            yield from _unwrap(elem, name)


def vmerge_row_span(tc_pr: Optional[etree._Element]) -> int:
    """Row span implied by ``w:vMerge``.

    ``restart`` opens a merged region and counts as 1; a continuation
    (``continue`` or no value) is absorbed by the cell above and yields 0.
    """
    vmerge = child(tc_pr, "vMerge")
    if vmerge is None:
        return 1
    if val(vmerge) == "restart":
        return 1
    return 0


def parse_cell(tc: etree._Element, ctx: ResolutionContext, walk_blocks: BlockWalker) -> Cell:
    tc_pr = child(tc, "tcPr")
    col_span = parse_int(child_val(tc_pr, "gridSpan"), 1) or 1

    shading = parse_shading(child(tc_pr, "shd"))
    background = shading.get("fill")
    if background is None and shading.get("theme_fill"):
        background = resolve_theme_color(shading["theme_fill"], ctx.theme_colors)

    width = parse_width(child(tc_pr, "tcW"), ctx.dpi)
    borders = {
        side: make_border(raw, ctx)
        for side, raw in parse_borders(child(tc_pr, "tcBorders"), ctx.dpi).items()
    }

    return Cell(
        content=tuple(walk_blocks(tc, ctx)),
        col_span=max(col_span, 1),
        row_span=vmerge_row_span(tc_pr),
        background=background,
        borders=borders,
        width=width.get("value") if width.get("type") == "dxa" else None,
    )


def parse_row(tr: etree._Element, ctx: ResolutionContext, walk_blocks: BlockWalker) -> Row:
    height = None
    tr_height = child(child(tr, "trPr"), "trHeight")
    if tr_height is not None:
        twips = parse_int(val(tr_height))
        if twips is not None:
            height = twips_to_pixels(twips, ctx.dpi)
    cells = [parse_cell(tc, ctx, walk_blocks) for tc in _unwrap(tr, "tc")]
    return Row(cells=tuple(cells), height=height)


def parse_table(tbl: etree._Element, ctx: ResolutionContext, walk_blocks: BlockWalker) -> Table:
    """Parse a table element.

    Args:
        tbl: The w:tbl XML element.
        ctx: Resolution context of the part being walked.
        walk_blocks: Callback that walks a cell's block content, so nested
            paragraphs and tables are built exactly like body ones.

    Returns:
        Table with borders from the table style overlaid by direct ones.
    """
    direct = parse_table_properties(child(tbl, "tblPr"), ctx.dpi)
    props = resolve_table_properties(direct, ctx)
    rows = [parse_row(tr, ctx, walk_blocks) for tr in _unwrap(tbl, "tr")]
    width = props.width

    return Table(
        style_id=direct.style_id,
        borders=make_table_borders(props.borders, ctx),
        rows=tuple(rows),
        width=width.get("value") if width.get("type") == "dxa" else None,
    )


def column_count(table: Table) -> int:
    """Grid columns covered by the widest row."""
    return max((sum(cell.col_span for cell in row.cells) for row in table.rows), default=0)


def row_spans(rows: Sequence[Row]) -> List[List[int]]:
    """Effective vertical extent of each cell, counting absorbed continuation cells.

    Cells are matched across rows by grid column. Continuation cells stay 0;
    the cell that opens a region gets 1 plus the continuations below it.
    """
    grid: List[List[int]] = [[cell.row_span for cell in row.cells] for row in rows]
    for r, row in enumerate(rows):
        column = 0
        for c, cell in enumerate(row.cells):
            if cell.row_span >= 1:
                extent = 1
                for below in rows[r + 1:]:
                    other = _cell_at_column(below, column)
                    if other is None or other.row_span != 0:
                        break
                    extent += 1
                grid[r][c] = extent
            column += cell.col_span
    return grid


def _cell_at_column(row: Row, column: int) -> Optional[Cell]:
    position = 0
    for cell in row.cells:
        if position == column:
            return cell
        position += cell.col_span
        if position > column:
            return None
    return None
