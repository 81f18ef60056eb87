"""Build small in-memory DOCX packages for tests."""

import io
import zipfile
from typing import Dict, Iterable, Optional, Tuple

from lxml import etree

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
WP_NS = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"
A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
PIC_NS = "http://schemas.openxmlformats.org/drawingml/2006/picture"
MC_NS = "http://schemas.openxmlformats.org/markup-compatibility/2006"
V_NS = "urn:schemas-microsoft-com:vml"
REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"

REL_TYPE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

NS_DECL = (
    f'xmlns:w="{W_NS}" xmlns:r="{R_NS}" xmlns:wp="{WP_NS}" xmlns:a="{A_NS}" '
    f'xmlns:pic="{PIC_NS}" xmlns:mc="{MC_NS}" xmlns:v="{V_NS}"'
)

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)

CONTENT_TYPES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
  <Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
  <Default Extension="xml" ContentType="application/xml"/>
  <Default Extension="png" ContentType="image/png"/>
  <Override PartName="/word/document.xml"
    ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>
</Types>"""

PACKAGE_RELS = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="{REL_NS}">
  <Relationship Id="rId1" Type="{REL_TYPE}/officeDocument" Target="word/document.xml"/>
  <Relationship Id="rId2" Type="http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties" Target="docProps/core.xml"/>
  <Relationship Id="rId3" Type="{REL_TYPE}/extended-properties" Target="docProps/app.xml"/>
</Relationships>"""


def element(xml: str) -> etree._Element:
    """Parse a fragment written with the w/r/wp/a/pic/mc/v prefixes."""
    return etree.fromstring(_declare(xml))


def _declare(xml: str) -> str:
    """Add the namespace declarations to the root tag of a fragment."""
    xml = xml.strip()
    end = xml.index(">")
    if xml[end - 1] == "/":
        end -= 1
    return f"{xml[:end]} {NS_DECL}{xml[end:]}"


def document_xml(body: str, sect_pr: str = "", background: str = "") -> str:
    return (
        f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f"<w:document {NS_DECL}>{background}<w:body>{body}{sect_pr}</w:body></w:document>"
    )


def styles_xml(styles: str = "", doc_defaults: str = "") -> str:
    return f'<w:styles {NS_DECL}><w:docDefaults>{doc_defaults}</w:docDefaults>{styles}</w:styles>'


def numbering_xml(content: str) -> str:
    return f"<w:numbering {NS_DECL}>{content}</w:numbering>"


def header_xml(content: str, tag: str = "hdr") -> str:
    return f"<w:{tag} {NS_DECL}>{content}</w:{tag}>"


def theme_xml(colors: str = "", fonts: str = "") -> str:
    return (
        f'<a:theme xmlns:a="{A_NS}" name="Office Theme"><a:themeElements>'
        f'<a:clrScheme name="Office">{colors}</a:clrScheme>'
        f'<a:fontScheme name="Office">{fonts}</a:fontScheme>'
        f"</a:themeElements></a:theme>"
    )


def rels_xml(relationships: Iterable[Tuple[str, str, str]], external: Iterable[str] = ()) -> str:
    """Relationships part from ``(id, type suffix, target)`` triples."""
    external = set(external)
    items = []
    for rel_id, kind, target in relationships:
        mode = ' TargetMode="External"' if rel_id in external else ""
        items.append(f'<Relationship Id="{rel_id}" Type="{REL_TYPE}/{kind}" Target="{target}"{mode}/>')
    return f'<Relationships xmlns="{REL_NS}">{"".join(items)}</Relationships>'


def paragraph(text: str = "", ppr: str = "", rpr: str = "") -> str:
    run = f"<w:r>{f'<w:rPr>{rpr}</w:rPr>' if rpr else ''}<w:t xml:space=\"preserve\">{text}</w:t></w:r>" if text else ""
    return f"<w:p>{f'<w:pPr>{ppr}</w:pPr>' if ppr else ''}{run}</w:p>"


def inline_drawing(rel_id: str, cx: int = 914400, cy: int = 457200, descr: str = "") -> str:
    return (
        f'<w:drawing><wp:inline><wp:extent cx="{cx}" cy="{cy}"/>'
        f'<wp:docPr id="1" name="Picture 1" descr="{descr}"/>'
        f'<a:graphic><a:graphicData><pic:pic><pic:blipFill><a:blip r:embed="{rel_id}"/>'
        f"</pic:blipFill></pic:pic></a:graphicData></a:graphic></wp:inline></w:drawing>"
    )


def anchor_drawing(
    rel_id: str,
    horizontal: str = "<wp:posOffset>914400</wp:posOffset>",
    vertical: str = "<wp:posOffset>457200</wp:posOffset>",
    behind_doc: str = "0",
    relative_height: Optional[str] = "251659264",
) -> str:
    height = f' relativeHeight="{relative_height}"' if relative_height is not None else ""
    return (
        f'<w:drawing><wp:anchor simplePos="0" behindDoc="{behind_doc}"{height} locked="0">'
        f'<wp:simplePos x="0" y="0"/>'
        f'<wp:positionH relativeFrom="page">{horizontal}</wp:positionH>'
        f'<wp:positionV relativeFrom="page">{vertical}</wp:positionV>'
        f'<wp:extent cx="1828800" cy="914400"/><wp:docPr id="2" name="Picture 2"/>'
        f'<a:graphic><a:graphicData><pic:pic><pic:blipFill><a:blip r:embed="{rel_id}"/>'
        f"</pic:blipFill></pic:pic></a:graphicData></a:graphic></wp:anchor></w:drawing>"
    )


def build_docx(
    body: str = "",
    styles: Optional[str] = None,
    theme: Optional[str] = None,
    numbering: Optional[str] = None,
    font_table: Optional[str] = None,
    settings: Optional[str] = None,
    document_rels: Iterable[Tuple[str, str, str]] = (),
    sect_pr: str = "",
    background: str = "",
    extra_parts: Optional[Dict[str, bytes]] = None,
    document: Optional[str] = None,
) -> bytes:
    """Zip the given parts into a package and return its bytes.

    Parts left as None are not written, so tests can exercise the
    missing-part fallbacks.
    """
    parts: Dict[str, bytes] = {
        "[Content_Types].xml": CONTENT_TYPES.encode(),
        "_rels/.rels": PACKAGE_RELS.encode(),
        "word/document.xml": (document or document_xml(body, sect_pr, background)).encode(),
    }
    rels = list(document_rels)
    optional = (
        ("word/styles.xml", "styles", styles),
        ("word/theme/theme1.xml", "theme", theme),
        ("word/numbering.xml", "numbering", numbering),
        ("word/fontTable.xml", "fontTable", font_table),
        ("word/settings.xml", "settings", settings),
    )
    for index, (name, kind, content) in enumerate(optional, start=100):
        if content is None:
            continue
        parts[name] = content.encode()
        rels.append((f"rId{index}", kind, name.split("/", 1)[1]))
    parts["word/_rels/document.xml.rels"] = rels_xml(rels).encode()
    for name, content in (extra_parts or {}).items():
        parts[name] = content

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in parts.items():
            zf.writestr(name, content)
    return buffer.getvalue()
