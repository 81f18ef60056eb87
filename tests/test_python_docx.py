"""Parse documents produced by python-docx, the way real producers write them."""

import docx
import pytest
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor

from docxmodel import parse_docx


@pytest.fixture
def save(tmp_path):
    def _save(doc, name="sample.docx"):
        path = tmp_path / name
        doc.save(path)
        return path
    return _save


class TestPythonDocx:
    """Round trips through documents saved by python-docx."""

    def test_text_formatting(self, save):
        doc = docx.Document()
        doc.add_heading('Text Formatting Test', 1)

        p = doc.add_paragraph('This is a ')
        p.add_run('bold').bold = True
        r = p.add_run(' red')
        r.font.color.rgb = RGBColor(0xFF, 0x00, 0x00)
        r.font.size = Pt(14)
        r = p.add_run(' italic underlined')
        r.italic = True
        r.underline = True

        model = parse_docx(save(doc))
        heading, body = model.paragraphs
        assert heading.style_id == "Heading1"
        assert heading.text == "Text Formatting Test"

        runs = body.runs
        assert [run.text for run in runs] == ["This is a ", "bold", " red", " italic underlined"]
        assert runs[0].bold is False
        assert runs[1].bold is True
        assert runs[2].color == "#FF0000"
        assert runs[2].sz == 14
        assert runs[3].italic is True
        assert runs[3].underline is True
        assert model.warnings == ()

    def test_alignment(self, save):
        doc = docx.Document()
        doc.add_paragraph('centered').alignment = WD_ALIGN_PARAGRAPH.CENTER
        doc.add_paragraph('justified').alignment = WD_ALIGN_PARAGRAPH.JUSTIFY

        model = parse_docx(save(doc))
        assert [p.alignment for p in model.paragraphs] == ["center", "justify"]

    def test_lists(self, save):
        doc = docx.Document()
        doc.add_paragraph('Item 1', style='List Bullet')
        doc.add_paragraph('First', style='List Number')

        model = parse_docx(save(doc))
        bullet, number = model.paragraphs
        assert bullet.style_id == "ListBullet"
        assert bullet.numbering is not None
        assert number.numbering is not None
        assert number.numbering.num_id in model.lists

    def test_tables(self, save):
        doc = docx.Document()
        table = doc.add_table(rows=2, cols=2)
        table.style = 'Table Grid'
        table.cell(0, 0).text = "A1"
        table.cell(0, 1).text = "B1"
        table.cell(1, 0).merge(table.cell(1, 1)).text = "merged"

        model = parse_docx(save(doc))
        grid = model.tables[0]
        assert grid.style_id == "TableGrid"
        assert grid.borders.top.style == "single"
        assert grid.rows[0].cells[0].paragraphs[0].text == "A1"
        assert grid.rows[1].cells[0].col_span == 2
        assert model.body[0].kind == "table"

    def test_core_properties(self, save):
        doc = docx.Document()
        doc.core_properties.title = "Generated"
        doc.core_properties.author = "Test Suite"
        doc.add_paragraph('x')

        model = parse_docx(save(doc))
        assert model.metadata.title == "Generated"
        assert model.metadata.author == "Test Suite"

    def test_page_setup(self, save):
        doc = docx.Document()
        doc.add_paragraph('x')

        model = parse_docx(save(doc))
        # python-docx's template is US Letter with one-inch margins
        assert model.page.width == 816.0
        assert model.page.margin[0] == 96.0
