"""Numbering parser - Parse numbering.xml for list definitions."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Optional

from lxml import etree

from docxmodel.model import NumberingDefinition, NumberingLevel
from docxmodel.utils import DEFAULT_DPI, parse_int, twips_to_pixels
from docxmodel.docx_parser.xmlutils import attr, child, child_val, children, find_path

logger = logging.getLogger(__name__)


def parse_level(lvl: etree._Element, dpi: int = DEFAULT_DPI) -> Optional[NumberingLevel]:
    """Parse one ``w:lvl``; ``lvlText`` is kept as a literal pattern."""
    ilvl = parse_int(attr(lvl, "ilvl"))
    if ilvl is None:
        return None

    ind = find_path(lvl, "pPr", "ind")
    left = parse_int(attr(ind, "left")) if ind is not None else None
    if left is None and ind is not None:
        left = parse_int(attr(ind, "start"))
    hanging = parse_int(attr(ind, "hanging")) if ind is not None else None

    return NumberingLevel(
        level=ilvl,
        format=child_val(lvl, "numFmt") or "bullet",
        lvl_text=child_val(lvl, "lvlText") or "",
        indent=twips_to_pixels(left, dpi) if left is not None else 0.0,
        hanging=twips_to_pixels(hanging, dpi) if hanging is not None else None,
        start=parse_int(child_val(lvl, "start"), 1),
        alignment=child_val(lvl, "lvlJc") or "left",
    )


def _parse_levels(container: etree._Element, dpi: int) -> Dict[int, NumberingLevel]:
    levels: Dict[int, NumberingLevel] = {}
    for lvl in children(container, "lvl"):
        level = parse_level(lvl, dpi)
        if level is not None:
            levels[level.level] = level
    return levels


def _apply_overrides(num: etree._Element, levels: Dict[int, NumberingLevel], dpi: int) -> Dict[int, NumberingLevel]:
    """Apply ``w:lvlOverride`` entries of one numbering instance."""
    levels = dict(levels)
    for override in children(num, "lvlOverride"):
        ilvl = parse_int(attr(override, "ilvl"))
        if ilvl is None:
            continue
        replacement = child(override, "lvl")
        if replacement is not None:
            level = parse_level(replacement, dpi)
            if level is not None:
                levels[ilvl] = replace(level, level=ilvl)
        start = parse_int(child_val(override, "startOverride"))
        if start is not None:
            base = levels.get(ilvl) or NumberingLevel(level=ilvl)
            levels[ilvl] = replace(base, start=start)
    return levels


def parse_numbering(root: Optional[etree._Element], dpi: int = DEFAULT_DPI) -> Dict[str, NumberingDefinition]:
    """Parse numbering.xml to build numbering definitions.

    Args:
        root: Parsed numbering part, or None when the package has none.
        dpi: Resolution for indent conversion.

    Returns:
        Dict keyed by numbering instance id (``w:numId``). Abstract
        definitions no instance refers to are keyed by their abstract id
        when that key is not already taken.
    """
    if root is None:
        return {}

    abstracts: Dict[str, Dict[int, NumberingLevel]] = {}
    for abstract in children(root, "abstractNum"):
        abstract_id = attr(abstract, "abstractNumId")
        if abstract_id is None:
            continue
        abstracts[abstract_id] = _parse_levels(abstract, dpi)

    lists: Dict[str, NumberingDefinition] = {}
    referenced = set()
    for num in children(root, "num"):
        num_id = attr(num, "numId")
        abstract_id = child_val(num, "abstractNumId")
        if num_id is None or abstract_id is None:
            continue
        if abstract_id not in abstracts:
            logger.warning(f"Numbering instance {num_id} refers to missing abstract definition {abstract_id}")
            continue
        referenced.add(abstract_id)
        levels = _apply_overrides(num, abstracts[abstract_id], dpi)
        lists[num_id] = NumberingDefinition(
            abstract_num_id=abstract_id,
            levels=tuple(levels[k] for k in sorted(levels)),
            num_id=num_id,
        )

    for abstract_id, levels in abstracts.items():
        if abstract_id in referenced or abstract_id in lists:
            continue
        lists[abstract_id] = NumberingDefinition(
            abstract_num_id=abstract_id,
            levels=tuple(levels[k] for k in sorted(levels)),
        )

    logger.debug(f"Parsed {len(lists)} numbering definitions")
    return lists


def get_list_level(
    num_id: Optional[str],
    ilvl: int,
    lists: Dict[str, NumberingDefinition],
) -> Optional[NumberingLevel]:
    """Level definition for a paragraph's ``numPr``, or None if it is not a list.

    ``numId`` 0 is Word's way of removing numbering inherited from a style.
    """
    if not num_id or num_id == "0" or num_id not in lists:
        return None
    return lists[num_id].level(ilvl)
