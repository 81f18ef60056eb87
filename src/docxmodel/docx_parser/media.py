"""Relationships and media - Map relationship ids to parts and load images."""

from __future__ import annotations

import logging
import mimetypes
import posixpath
from dataclasses import dataclass
from typing import Dict, Optional

from lxml import etree

from docxmodel.diagnostics import Diagnostics
from docxmodel.exceptions import RelationshipUnresolved
from docxmodel.model import ImageBlob
from docxmodel.docx_parser.package import Package, rels_part_name, resolve_target
from docxmodel.docx_parser.xmlutils import attr, children, parse_part

logger = logging.getLogger(__name__)

MAIN_DOCUMENT = "word/document.xml"

REL_OFFICE_DOCUMENT = "officeDocument"
REL_STYLES = "styles"
REL_NUMBERING = "numbering"
REL_FONT_TABLE = "fontTable"
REL_SETTINGS = "settings"
REL_THEME = "theme"
REL_HEADER = "header"
REL_FOOTER = "footer"

IMAGE_CONTENT_TYPES: Dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".emf": "image/x-emf",
    ".wmf": "image/x-wmf",
}


@dataclass(frozen=True)
class Relationship:
    id: str
    type: str
    target: str  # package part name, or the raw URI when external
    external: bool = False

    @property
    def kind(self) -> str:
        """Last segment of the relationship type URI, e.g. ``image``."""
        return self.type.rsplit("/", 1)[-1]


Relationships = Dict[str, Relationship]


def parse_relationships(root: Optional[etree._Element], source_part: str) -> Relationships:
    """Parse a ``.rels`` part; internal targets are resolved to part names."""
    rels: Relationships = {}
    for rel in children(root, "Relationship"):
        rel_id = attr(rel, "Id")
        target = attr(rel, "Target")
        if not rel_id or not target:
            continue
        external = (attr(rel, "TargetMode") or "").lower() == "external"
        rels[rel_id] = Relationship(
            id=rel_id,
            type=attr(rel, "Type") or "",
            target=target if external else resolve_target(source_part, target),
            external=external,
        )
    return rels


def load_relationships(package: Package, part: str, diagnostics: Diagnostics) -> Relationships:
    """Relationships declared by ``part``; an absent rels part is simply empty."""
    rels_name = rels_part_name(part)
    root = parse_part(package.get(rels_name), rels_name, diagnostics)
    return parse_relationships(root, part)


def find_related(rels: Relationships, kind: str) -> Optional[str]:
    """Target of the first internal relationship of the given kind."""
    for rel in rels.values():
        if rel.kind == kind and not rel.external:
            return rel.target
    return None


def main_document_part(package: Package, package_rels: Relationships) -> str:
    """Locate the main document through ``_rels/.rels``, else the canonical name."""
    target = find_related(package_rels, REL_OFFICE_DOCUMENT)
    if target and target in package:
        return target
    return MAIN_DOCUMENT


def related_part(rels: Relationships, kind: str, fallback: str, package: Package) -> str:
    """Part related to the main document by ``kind``, with a canonical fallback."""
    target = find_related(rels, kind)
    if target and target in package:
        return target
    return fallback


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def content_type_for(path: str) -> str:
    ext = posixpath.splitext(path)[1].lower()
    if ext in IMAGE_CONTENT_TYPES:
        return IMAGE_CONTENT_TYPES[ext]
    guessed, _ = mimetypes.guess_type(path)
    return guessed or "application/octet-stream"


def is_image_part(path: str) -> bool:
    return posixpath.splitext(path)[1].lower() in IMAGE_CONTENT_TYPES


def collect_images(package: Package) -> Dict[str, ImageBlob]:
    """Every media part (``word/media/*``, plus stray image parts) keyed by part name."""
    images: Dict[str, ImageBlob] = {}
    for name in package.names():
        if not (name.lower().startswith("word/media/") or is_image_part(name)):
            continue
        data = package.get(name)
        if data is None:
            continue
        images[name] = ImageBlob(path=name, content_type=content_type_for(name), data=data)
    logger.debug(f"Collected {len(images)} media parts")
    return images


def resolve_image(
    rel_id: Optional[str],
    rels: Relationships,
    images: Dict[str, ImageBlob],
    diagnostics: Diagnostics,
    part: str = MAIN_DOCUMENT,
) -> Optional[ImageBlob]:
    """Resolve an ``r:embed``/``r:id`` to an image blob.

    A missing relationship or target is reported as
    ``RelationshipUnresolved`` and yields None; external targets are never
    loaded.
    """
    if not rel_id:
        return None
    rel = rels.get(rel_id)
    if rel is None:
        diagnostics.warn(RelationshipUnresolved(f"no relationship with id '{rel_id}'", part=part))
        return None
    if rel.external:
        logger.debug(f"Skipping external image target {rel.target}")
        return None
    blob = images.get(rel.target)
    if blob is None:
        # Case-insensitive second chance, matching the package lookup
        lowered = rel.target.lower()
        blob = next((b for name, b in images.items() if name.lower() == lowered), None)
    if blob is None:
        diagnostics.warn(RelationshipUnresolved(
            f"relationship '{rel_id}' points at missing part '{rel.target}'", part=part,
        ))
    return blob
