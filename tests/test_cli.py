import json

from click.testing import CliRunner

from docxmodel.cli import cli
from helpers import PNG_BYTES, build_docx, inline_drawing


def _write_docx(path, body="<w:p><w:r><w:t>hello</w:t></w:r></w:p>", **kwargs):
    path.write_bytes(build_docx(body=body, **kwargs))
    return path


class TestCli:
    """Tests for the docxmodel command."""

    def test_stdout_json(self, tmp_path):
        docx = _write_docx(tmp_path / "in.docx")
        result = CliRunner().invoke(cli, [str(docx)])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["paragraphs"][0]["runs"][0]["text"] == "hello"

    def test_output_file_and_pretty(self, tmp_path):
        docx = _write_docx(tmp_path / "in.docx")
        out = tmp_path / "out.json"
        result = CliRunner().invoke(cli, [str(docx), "-o", str(out), "--pretty"])
        assert result.exit_code == 0
        text = out.read_text(encoding="utf-8")
        assert text.startswith("{\n")
        assert json.loads(text)["lang"] == "en-US"

    def test_no_images(self, tmp_path):
        docx = _write_docx(
            tmp_path / "in.docx",
            body=f"<w:p><w:r>{inline_drawing('rId5')}</w:r></w:p>",
            document_rels=[("rId5", "image", "media/image1.png")],
            extra_parts={"word/media/image1.png": PNG_BYTES},
        )
        result = CliRunner().invoke(cli, [str(docx), "--no-images"])
        assert result.exit_code == 0
        image = json.loads(result.output)["images"]["word/media/image1.png"]
        assert "data_uri" not in image

    def test_corrupt_input(self, tmp_path):
        bad = tmp_path / "bad.docx"
        bad.write_bytes(b"not a zip")
        result = CliRunner().invoke(cli, [str(bad)])
        assert result.exit_code == 1
        assert "Error parsing DOCX" in result.output

    def test_missing_input(self, tmp_path):
        result = CliRunner().invoke(cli, [str(tmp_path / "nope.docx")])
        assert result.exit_code == 2
