"""Namespace-tolerant XML querying on top of lxml.

Word packages written by different producers spell the same element as
``w:tag``, as ``tag`` in another namespace, or as a bare ``tag``. Every
lookup in the parser goes through these helpers, which match on the local
name only, so no call site has to try the prefixed and bare spellings in
turn.
"""

from __future__ import annotations

from typing import Iterator, List, Optional

from lxml import etree

from docxmodel.diagnostics import Diagnostics
from docxmodel.exceptions import MalformedXml, PartMissing

# OOXML namespaces
NAMESPACES = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
    "v": "urn:schemas-microsoft-com:vml",
    "mc": "http://schemas.openxmlformats.org/markup-compatibility/2006",
    "rel": "http://schemas.openxmlformats.org/package/2006/relationships",
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
}

# Entity expansion and network access stay off for untrusted packages.
_PARSER = etree.XMLParser(
    resolve_entities=False,
    no_network=True,
    huge_tree=False,
    load_dtd=False,
    remove_comments=True,
    remove_pis=True,
)


def parse_xml(data: Optional[bytes]) -> etree._Element:
    """Parse raw XML bytes with the hardened parser.

    Raises:
        etree.XMLSyntaxError: if the content is not well-formed.
    """
    return etree.fromstring(data, parser=_PARSER)


def parse_part(
    data: Optional[bytes],
    part: str,
    diagnostics: Diagnostics,
    required: bool = False,
) -> Optional[etree._Element]:
    """Parse a package part, reporting absence or malformation as warnings.

    Returns None when the part is absent, empty or not well-formed; callers
    then fall back to their documented defaults.
    """
    if data is None or not data.strip():
        if required:
            diagnostics.warn(PartMissing("part not found in package", part=part))
        return None
    try:
        return parse_xml(data)
    except (etree.XMLSyntaxError, ValueError) as exc:
        diagnostics.warn(MalformedXml(f"cannot parse XML: {exc}", part=part))
        return None


def local_name(elem: etree._Element) -> str:
    """Local part of an element tag ('' for comments and PIs)."""
    tag = elem.tag
    if not isinstance(tag, str):
        return ""
    if tag[:1] == "{":
        return tag.rsplit("}", 1)[1]
    if ":" in tag:
        return tag.split(":", 1)[1]
    return tag


def children(elem: Optional[etree._Element], name: Optional[str] = None) -> List[etree._Element]:
    """Direct element children, optionally filtered by local name."""
    if elem is None:
        return []
    return [
        c for c in elem
        if isinstance(c.tag, str) and (name is None or local_name(c) == name)
    ]


def child(elem: Optional[etree._Element], name: str) -> Optional[etree._Element]:
    """First direct child with the given local name."""
    if elem is None:
        return None
    for c in elem:
        if isinstance(c.tag, str) and local_name(c) == name:
            return c
    return None


def find_path(elem: Optional[etree._Element], *names: str) -> Optional[etree._Element]:
    """Follow a chain of direct children, e.g. ``find_path(anchor, 'graphic', 'graphicData')``."""
    current = elem
    for name in names:
        current = child(current, name)
        if current is None:
            return None
    return current


def descendants(elem: Optional[etree._Element], name: str) -> Iterator[etree._Element]:
    """All descendants (document order, self excluded) with the given local name."""
    if elem is None:
        return iter(())
    return (
        d for d in elem.iterdescendants()
        if isinstance(d.tag, str) and local_name(d) == name
    )


def descendant(elem: Optional[etree._Element], name: str) -> Optional[etree._Element]:
    """First descendant with the given local name."""
    return next(descendants(elem, name), None)


def attr(elem: Optional[etree._Element], name: str, default: Optional[str] = None) -> Optional[str]:
    """Attribute lookup by local name, whatever namespace it was written in.

    The WordprocessingML namespace is tried first, then the bare name, then
    any other namespace carrying the same local name.
    """
    if elem is None:
        return default
    value = elem.get(f"{{{NAMESPACES['w']}}}{name}")
    if value is not None:
        return value
    value = elem.get(name)
    if value is not None:
        return value
    suffix = "}" + name
    for key, value in elem.attrib.items():
        if key.endswith(suffix) or (":" in key and key.split(":", 1)[1] == name):
            return value
    return default


def val(elem: Optional[etree._Element], default: Optional[str] = None) -> Optional[str]:
    """Shorthand for the ubiquitous ``w:val`` attribute."""
    return attr(elem, "val", default)


def child_val(elem: Optional[etree._Element], name: str, default: Optional[str] = None) -> Optional[str]:
    """``w:val`` of the named direct child, or ``default`` when absent."""
    c = child(elem, name)
    if c is None:
        return default
    return val(c, default)


def text_of(elem: Optional[etree._Element], default: str = "") -> str:
    if elem is None:
        return default
    return "".join(elem.itertext()) or default


def rel_attr(elem: Optional[etree._Element], name: str = "id") -> Optional[str]:
    """Relationship reference such as ``r:id`` or ``r:embed``.

    The relationships namespace wins over ``w:id``, which is an unrelated
    bookmark/annotation identifier on some elements.
    """
    if elem is None:
        return None
    value = elem.get(f"{{{NAMESPACES['r']}}}{name}")
    if value is not None:
        return value
    return attr(elem, name)
