"""Model assembler - The single entry point from package bytes to DocumentModel."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import List, Optional

from lxml import etree

from docxmodel.config import Settings
from docxmodel.diagnostics import Diagnostics
from docxmodel.model import DocumentModel, HeaderFooter, Metadata
from docxmodel.utils import parse_int
from docxmodel.docx_parser.context import ResolutionContext
from docxmodel.docx_parser.document import (
    detect_language,
    find_page_background,
    find_section_properties,
    first_header_image,
    parse_page,
    section_is_rtl,
    settings_rtl,
    walk_body,
    walk_header_footer,
)
from docxmodel.docx_parser.fonts import parse_font_table
from docxmodel.docx_parser.media import (
    REL_FONT_TABLE,
    REL_FOOTER,
    REL_HEADER,
    REL_NUMBERING,
    REL_SETTINGS,
    REL_STYLES,
    REL_THEME,
    Relationships,
    collect_images,
    find_related,
    load_relationships,
    main_document_part,
    related_part,
)
from docxmodel.docx_parser.numbering import parse_numbering
from docxmodel.docx_parser.package import Package, PackageSource, open_package
from docxmodel.docx_parser.styles import default_style_ids, load_styles
from docxmodel.docx_parser.theme import parse_theme_colors, parse_theme_fonts
from docxmodel.docx_parser.xmlutils import child, parse_part, text_of

logger = logging.getLogger(__name__)

CORE_PROPERTIES = "docProps/core.xml"
APP_PROPERTIES = "docProps/app.xml"


def _load(package: Package, part: str, diagnostics: Diagnostics, required: bool = False) -> Optional[etree._Element]:
    return parse_part(package.get(part), part, diagnostics, required=required)


def _text(root: Optional[etree._Element], name: str) -> Optional[str]:
    value = text_of(child(root, name)).strip()
    return value or None


def parse_metadata(core: Optional[etree._Element], app: Optional[etree._Element]) -> Metadata:
    """Document properties from ``docProps/core.xml`` and ``docProps/app.xml``."""
    return Metadata(
        title=_text(core, "title"),
        subject=_text(core, "subject"),
        author=_text(core, "creator"),
        keywords=_text(core, "keywords"),
        created=_text(core, "created"),
        modified=_text(core, "modified"),
        last_modified_by=_text(core, "lastModifiedBy"),
        pages=parse_int(_text(app, "Pages")),
        words=parse_int(_text(app, "Words")),
        application=_text(app, "Application"),
    )


def _headers_footers(
    package: Package,
    doc_rels: Relationships,
    kind: str,
    ctx: ResolutionContext,
) -> List[HeaderFooter]:
    parts: List[HeaderFooter] = []
    for rel in doc_rels.values():
        if rel.kind != kind or rel.external:
            continue
        root = _load(package, rel.target, ctx.diagnostics, required=True)
        if root is None:
            continue
        rels = load_relationships(package, rel.target, ctx.diagnostics)
        parts.append(walk_header_footer(root, ctx.for_part(rel.target, rels)))
    return parts


def parse_docx(source: PackageSource, settings: Optional[Settings] = None) -> DocumentModel:
    """Parse a DOCX package into a fully resolved DocumentModel.

    Args:
        source: Package bytes, a filesystem path or a binary file object.
        settings: Engine settings; a default ``Settings()`` when omitted.

    Returns:
        The assembled model. Recoverable problems are listed in
        ``DocumentModel.warnings``.

    Raises:
        PackageCorrupt: the container cannot be opened at all.
        PackageTooLarge: the package exceeds a configured size cap.
    """
    settings = settings or Settings()
    diagnostics = Diagnostics()
    dpi = settings.dpi

    package = open_package(source, settings)
    package_rels = load_relationships(package, "", diagnostics)
    main = main_document_part(package, package_rels)
    doc_rels = load_relationships(package, main, diagnostics)

    def part_for(kind: str, fallback: str) -> str:
        return related_part(doc_rels, kind, fallback, package)

    theme_root = _load(package, part_for(REL_THEME, "word/theme/theme1.xml"), diagnostics)
    theme_colors = parse_theme_colors(theme_root)
    major, minor = parse_theme_fonts(theme_root)

    font_root = _load(package, part_for(REL_FONT_TABLE, "word/fontTable.xml"), diagnostics)
    font_scheme = parse_font_table(font_root, major, minor)

    styles_root = _load(package, part_for(REL_STYLES, "word/styles.xml"), diagnostics)
    styles, defaults = load_styles(styles_root, diagnostics, dpi)

    numbering_root = _load(package, part_for(REL_NUMBERING, "word/numbering.xml"), diagnostics)
    lists = parse_numbering(numbering_root, dpi)

    settings_root = _load(package, part_for(REL_SETTINGS, "word/settings.xml"), diagnostics)
    images = collect_images(package)

    ctx = ResolutionContext(
        settings=settings,
        diagnostics=diagnostics,
        styles=styles,
        defaults=defaults,
        default_styles=default_style_ids(styles),
        theme_colors=theme_colors,
        font_scheme=font_scheme,
        lists=lists,
        images=images,
        rels=doc_rels,
        part=main,
    )

    doc_root = _load(package, main, diagnostics, required=True)
    content = walk_body(doc_root, ctx)
    sect_pr = find_section_properties(child(doc_root, "body"))

    headers = tuple(_headers_footers(package, doc_rels, REL_HEADER, ctx))
    footers = tuple(_headers_footers(package, doc_rels, REL_FOOTER, ctx))

    core_part = find_related(package_rels, "core-properties") or CORE_PROPERTIES
    app_part = find_related(package_rels, "extended-properties") or APP_PROPERTIES
    metadata = parse_metadata(_load(package, core_part, diagnostics), _load(package, app_part, diagnostics))

    model = DocumentModel(
        page=parse_page(sect_pr, dpi),
        paragraphs=content.paragraphs,
        tables=content.tables,
        floating_images=content.floating_images,
        lists=MappingProxyType(dict(lists)),
        theme_colors=theme_colors,
        styles=MappingProxyType(dict(styles)),
        font_table=font_scheme,
        lang=detect_language(defaults.character.lang, settings_root, content.first_run_lang, settings.default_lang),
        rtl=section_is_rtl(sect_pr) or settings_rtl(settings_root) or content.bidi,
        headers=headers,
        footers=footers,
        images=MappingProxyType(dict(images)),
        metadata=metadata,
        body=content.body,
        background_image=find_page_background(doc_root, ctx) or first_header_image(headers),
        defaults=defaults,
        warnings=diagnostics.warnings,
    )
    logger.debug(f"Assembled model with {len(diagnostics)} warnings")
    return model
