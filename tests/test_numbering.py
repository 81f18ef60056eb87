from lxml import etree

from docxmodel.docx_parser.numbering import get_list_level, parse_numbering
from helpers import numbering_xml

ABSTRACT = """
<w:abstractNum w:abstractNumId="0">
    <w:lvl w:ilvl="0">
        <w:start w:val="1"/><w:numFmt w:val="decimal"/><w:lvlText w:val="%1."/><w:lvlJc w:val="left"/>
        <w:pPr><w:ind w:left="720" w:hanging="360"/></w:pPr>
    </w:lvl>
    <w:lvl w:ilvl="1">
        <w:numFmt w:val="lowerLetter"/><w:lvlText w:val="%2)"/>
        <w:pPr><w:ind w:start="1440"/></w:pPr>
    </w:lvl>
</w:abstractNum>
<w:abstractNum w:abstractNumId="5">
    <w:lvl w:ilvl="0"><w:numFmt w:val="bullet"/><w:lvlText w:val="•"/></w:lvl>
</w:abstractNum>
"""


def _numbering(content: str):
    return etree.fromstring(numbering_xml(content))


class TestParseNumbering:
    """Tests for abstract/instance numbering definitions."""

    def test_instances_keyed_by_num_id(self):
        lists = parse_numbering(_numbering(ABSTRACT + '<w:num w:numId="1"><w:abstractNumId w:val="0"/></w:num>'))
        definition = lists["1"]
        assert definition.abstract_num_id == "0"
        assert definition.num_id == "1"
        first = definition.level(0)
        assert first.format == "decimal"
        assert first.lvl_text == "%1."
        assert first.indent == 48.0
        assert first.hanging == 24.0
        assert first.is_ordered
        second = definition.level(1)
        assert second.indent == 96.0
        assert second.start == 1

    def test_unreferenced_abstract_keyed_by_abstract_id(self):
        lists = parse_numbering(_numbering(ABSTRACT + '<w:num w:numId="1"><w:abstractNumId w:val="0"/></w:num>'))
        assert set(lists) == {"1", "5"}
        bullet = lists["5"].level(0)
        assert bullet.lvl_text == "•"
        assert not bullet.is_ordered

    def test_level_override(self):
        content = ABSTRACT + """
        <w:num w:numId="2">
            <w:abstractNumId w:val="0"/>
            <w:lvlOverride w:ilvl="0"><w:startOverride w:val="4"/></w:lvlOverride>
            <w:lvlOverride w:ilvl="1">
                <w:lvl w:ilvl="1"><w:numFmt w:val="upperRoman"/><w:lvlText w:val="%2."/></w:lvl>
            </w:lvlOverride>
        </w:num>
        <w:num w:numId="3"><w:abstractNumId w:val="0"/></w:num>
        """
        lists = parse_numbering(_numbering(content))
        assert lists["2"].level(0).start == 4
        assert lists["2"].level(0).format == "decimal"
        assert lists["2"].level(1).format == "upperRoman"
        # the shared abstract definition is not modified
        assert lists["3"].level(0).start == 1
        assert lists["3"].level(1).format == "lowerLetter"

    def test_missing_abstract_is_skipped(self):
        lists = parse_numbering(_numbering('<w:num w:numId="9"><w:abstractNumId w:val="42"/></w:num>'))
        assert lists == {}

    def test_absent_part(self):
        assert parse_numbering(None) == {}


class TestGetListLevel:
    def test_lookup(self):
        lists = parse_numbering(_numbering(ABSTRACT + '<w:num w:numId="1"><w:abstractNumId w:val="0"/></w:num>'))
        assert get_list_level("1", 1, lists).format == "lowerLetter"
        assert get_list_level("1", 7, lists) is None

    def test_num_id_zero_removes_numbering(self):
        lists = parse_numbering(_numbering(ABSTRACT + '<w:num w:numId="0"><w:abstractNumId w:val="0"/></w:num>'))
        assert get_list_level("0", 0, lists) is None
        assert get_list_level(None, 0, lists) is None
        assert get_list_level("77", 0, lists) is None
