import pytest
from lxml import etree

from docxmodel.model import FontScheme, FontSlots, RunProperties
from docxmodel.docx_parser.fonts import (
    classify_font,
    font_fallback,
    merge_run_fonts,
    parse_font_table,
    parse_run_fonts,
    resolve_font,
    theme_font,
)
from docxmodel.docx_parser.xmlutils import NAMESPACES

W = NAMESPACES['w']

SCHEME = FontScheme(
    major_font=FontSlots(latin="Cambria", east_asia="MS Mincho", complex_script="Arial"),
    minor_font=FontSlots(latin="Georgia", east_asia=None, complex_script="Tahoma"),
)


def _props(**fonts) -> RunProperties:
    return RunProperties(fonts=dict(fonts))


class TestFontTable:
    """Tests for fontTable.xml parsing."""

    def test_entries(self):
        xml = f"""
        <w:fonts xmlns:w="{W}">
            <w:font w:name="Calibri"><w:family w:val="swiss"/><w:charset w:val="00"/>
                <w:pitch w:val="variable"/><w:panose1 w:val="020F0502020204030204"/></w:font>
            <w:font w:name="SimSun"><w:altName w:val="宋体"/></w:font>
        </w:fonts>
        """
        scheme = parse_font_table(etree.fromstring(xml))
        assert set(scheme.fonts) == {"Calibri", "SimSun"}
        assert scheme.fonts["Calibri"].family == "swiss"
        assert scheme.fonts["Calibri"].panose == "020F0502020204030204"
        assert scheme.fonts["SimSun"].alt_name == "宋体"

    def test_absent_table_uses_default_catalog(self):
        scheme = parse_font_table(None)
        assert "Calibri" in scheme.fonts
        assert scheme.minor_font.latin == "Calibri"


class TestResolveFont:
    """Tests for the run font precedence chain."""

    def test_direct_ascii_wins(self):
        direct = _props(ascii="Arial", hAnsi="Verdana", asciiTheme="minorHAnsi")
        assert resolve_font(direct, [], None, SCHEME) == "Arial"

    def test_direct_order(self):
        assert resolve_font(_props(hAnsi="Verdana", eastAsia="SimSun"), [], None, SCHEME) == "Verdana"
        assert resolve_font(_props(cs="Tahoma"), [], None, SCHEME) == "Tahoma"

    def test_theme_reference_on_run(self):
        assert resolve_font(_props(asciiTheme="majorHAnsi"), [], None, SCHEME) == "Cambria"

    def test_style_before_defaults(self):
        style = _props(ascii="Garamond")
        defaults = _props(ascii="Calibri")
        assert resolve_font(RunProperties(), [None, style], defaults, SCHEME) == "Garamond"

    def test_defaults_then_fallback(self):
        defaults = _props(asciiTheme="minorHAnsi")
        assert resolve_font(None, [], defaults, SCHEME) == "Georgia"
        assert resolve_font(None, [], None, SCHEME, fallback="Arial") == "Arial"


class TestThemeFont:
    @pytest.mark.parametrize("reference,expected", [
        ("majorHAnsi", "Cambria"),
        ("majorAscii", "Cambria"),
        ("majorEastAsia", "MS Mincho"),
        ("majorBidi", "Arial"),
        ("minorBidi", "Tahoma"),
    ])
    def test_slots(self, reference, expected):
        assert theme_font(reference, SCHEME) == expected

    def test_missing_slot_falls_back_to_latin(self):
        assert theme_font("minorEastAsia", SCHEME) == "Georgia"

    def test_empty_scheme_uses_default_theme_fonts(self):
        assert theme_font("minorHAnsi", FontScheme()) == "Calibri"
        assert theme_font("majorHAnsi", FontScheme()) == "Calibri Light"

    def test_unknown_reference(self):
        assert theme_font("sideHAnsi", SCHEME) is None

    def test_parse_run_fonts_keeps_theme_attributes(self):
        xml = f'<w:rFonts xmlns:w="{W}" w:ascii="Arial" w:eastAsiaTheme="minorEastAsia"/>'
        fonts = parse_run_fonts(etree.fromstring(xml))
        assert fonts == {"ascii": "Arial", "eastAsiaTheme": "minorEastAsia"}


class TestMergeRunFonts:
    """Inherited rFonts are replaced slot by slot."""

    def test_theme_attribute_replaces_inherited_literal(self):
        parent = {"ascii": "Arial", "hAnsi": "Arial", "eastAsia": "SimSun"}
        child = {"asciiTheme": "majorHAnsi", "hAnsiTheme": "majorHAnsi"}
        assert merge_run_fonts(parent, child) == {
            "eastAsia": "SimSun", "asciiTheme": "majorHAnsi", "hAnsiTheme": "majorHAnsi",
        }

    def test_literal_replaces_inherited_theme_attribute(self):
        merged = merge_run_fonts({"csTheme": "minorBidi"}, {"cs": "Tahoma"})
        assert merged == {"cs": "Tahoma"}

    def test_inputs_untouched(self):
        parent = {"ascii": "Arial"}
        merge_run_fonts(parent, {"asciiTheme": "minorHAnsi"})
        assert parent == {"ascii": "Arial"}


class TestFontFallback:
    """Tests for CSS font-family stacks."""

    def test_known_faces(self):
        assert font_fallback("Times New Roman") == '"Times New Roman", Times, serif'
        assert font_fallback(None) == font_fallback("Calibri")

    @pytest.mark.parametrize("name,bucket", [
        ("SimHei", "cjk"),
        ("Noto Sans", "sans-serif"),
        ("Courier New", "monospace"),
        ("Brush Script MT", "script"),
        ("Impact", "display"),
        ("Book Antiqua", "serif"),
        ("Segoe UI", "sans-serif"),
    ])
    def test_classify(self, name, bucket):
        assert classify_font(name) == bucket

    def test_unknown_faces_end_in_generic_family(self):
        assert font_fallback("Segoe UI") == '"Segoe UI", Arial, sans-serif'
        assert font_fallback("Fira Code").endswith("monospace")
        assert font_fallback("Palatino Roman").endswith("serif")

    def test_single_word_face_is_unquoted(self):
        assert font_fallback("Garamond") == 'Garamond, "Times New Roman", serif'
