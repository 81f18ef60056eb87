from lxml import etree

from docxmodel.diagnostics import Diagnostics
from docxmodel.docx_parser.xmlutils import (
    NAMESPACES,
    attr,
    child,
    child_val,
    children,
    find_path,
    local_name,
    parse_part,
    rel_attr,
)

W = NAMESPACES['w']
R = NAMESPACES['r']


class TestLookup:
    """Tests for namespace-tolerant element and attribute lookup."""

    def test_prefixed_and_bare_spellings_match(self):
        xml = f"""
        <root xmlns:w="{W}">
            <w:pPr><w:jc w:val="center"/></w:pPr>
            <pPr><jc val="right"/></pPr>
        </root>
        """
        root = etree.fromstring(xml)
        first, second = children(root, "pPr")
        assert child_val(first, "jc") == "center"
        assert child_val(second, "jc") == "right"

    def test_foreign_namespace_attribute(self):
        xml = '<root xmlns:x="urn:other"><item x:val="7"/></root>'
        root = etree.fromstring(xml)
        assert attr(child(root, "item"), "val") == "7"

    def test_none_is_tolerated(self):
        assert child(None, "p") is None
        assert children(None) == []
        assert attr(None, "val", "dflt") == "dflt"
        assert find_path(None, "a", "b") is None

    def test_find_path(self):
        xml = f'<w:a xmlns:w="{W}"><w:b><w:c w:val="x"/></w:b></w:a>'
        root = etree.fromstring(xml)
        assert local_name(find_path(root, "b", "c")) == "c"
        assert find_path(root, "b", "missing") is None

    def test_rel_attr_prefers_relationship_namespace(self):
        xml = f'<w:root xmlns:w="{W}" xmlns:r="{R}"><w:bookmark w:id="0" r:id="rId5"/></w:root>'
        root = etree.fromstring(xml)
        assert rel_attr(child(root, "bookmark")) == "rId5"


class TestParsePart:
    """Tests for part parsing with diagnostics."""

    def test_missing_optional_part_is_silent(self):
        diagnostics = Diagnostics()
        assert parse_part(None, "word/numbering.xml", diagnostics) is None
        assert len(diagnostics) == 0

    def test_missing_required_part_warns(self):
        diagnostics = Diagnostics()
        assert parse_part(None, "word/header1.xml", diagnostics, required=True) is None
        assert diagnostics.codes() == ["part_missing"]

    def test_malformed_xml_warns(self):
        diagnostics = Diagnostics()
        assert parse_part(b"<w:styles><unclosed>", "word/styles.xml", diagnostics) is None
        assert diagnostics.codes() == ["malformed_xml"]
        assert diagnostics.warnings[0].part == "word/styles.xml"

    def test_entities_are_not_expanded(self):
        xml = b"""<?xml version="1.0"?>
        <!DOCTYPE r [<!ENTITY x "expanded">]>
        <r>&x;</r>"""
        diagnostics = Diagnostics()
        root = parse_part(xml, "word/document.xml", diagnostics)
        assert root is None or "expanded" not in "".join(root.itertext())
