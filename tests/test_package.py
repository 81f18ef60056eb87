import io
import zipfile

import pytest

from docxmodel.config import Settings
from docxmodel.exceptions import PackageCorrupt, PackageTooLarge
from docxmodel.docx_parser.package import (
    Package,
    canonical_part_name,
    open_package,
    rels_part_name,
    resolve_target,
)
from helpers import build_docx


def _zip(parts) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in parts.items():
            zf.writestr(name, content)
    return buffer.getvalue()


class TestPartNames:
    def test_canonical(self):
        assert canonical_part_name("/word/document.xml") == "word/document.xml"
        assert canonical_part_name("word\\media\\image1.png") == "word/media/image1.png"

    def test_rels_part_name(self):
        assert rels_part_name("word/document.xml") == "word/_rels/document.xml.rels"
        assert rels_part_name("") == "_rels/.rels"

    def test_resolve_target(self):
        assert resolve_target("word/document.xml", "media/image1.png") == "word/media/image1.png"
        assert resolve_target("word/document.xml", "../customXml/item1.xml") == "customXml/item1.xml"
        assert resolve_target("word/header1.xml", "/word/media/x.png") == "word/media/x.png"


class TestOpenPackage:
    """Tests for reading the zip container."""

    def test_reads_all_parts(self):
        package = open_package(build_docx())
        assert "word/document.xml" in package
        assert "[Content_Types].xml" in package
        assert len(package) == len(list(package))

    def test_lookup_is_case_insensitive(self):
        package = open_package(_zip({"Word/Document.XML": b"<x/>"}))
        assert package.get("word/document.xml") == b"<x/>"
        assert "/WORD/document.xml" in package
        # original casing is kept for listing
        assert package.names() == ["Word/Document.XML"]

    def test_names_prefix(self):
        package = Package({"word/media/a.png": b"", "word/media/b.png": b"", "word/document.xml": b""})
        assert package.names("word/media/") == ["word/media/a.png", "word/media/b.png"]

    def test_path_and_stream_sources(self, tmp_path):
        data = build_docx()
        path = tmp_path / "doc.docx"
        path.write_bytes(data)
        assert "word/document.xml" in open_package(path)
        assert "word/document.xml" in open_package(str(path))
        assert "word/document.xml" in open_package(io.BytesIO(data))

    def test_not_a_zip(self):
        with pytest.raises(PackageCorrupt):
            open_package(b"this is not a zip file")

    def test_missing_file(self, tmp_path):
        with pytest.raises(PackageCorrupt):
            open_package(tmp_path / "missing.docx")

    def test_text_stream_rejected(self):
        with pytest.raises(PackageCorrupt):
            open_package(io.StringIO("text"))

    def test_damaged_deflate_stream(self):
        data = bytearray(_zip({"word/document.xml": b"<w:document>" + b"lorem ipsum " * 200 + b"</w:document>"}))
        info = zipfile.ZipFile(io.BytesIO(bytes(data))).getinfo("word/document.xml")
        # local header: 30 fixed bytes, then file name and extra field
        name_len = int.from_bytes(data[info.header_offset + 26:info.header_offset + 28], "little")
        extra_len = int.from_bytes(data[info.header_offset + 28:info.header_offset + 30], "little")
        start = info.header_offset + 30 + name_len + extra_len
        for i in range(start, start + min(40, info.compress_size)):
            data[i] ^= 0xFF
        with pytest.raises(PackageCorrupt) as excinfo:
            open_package(bytes(data))
        assert excinfo.value.part == "word/document.xml"


class TestLimits:
    """Tests for the zip bomb caps."""

    def test_package_bytes(self):
        data = build_docx()
        with pytest.raises(PackageTooLarge):
            open_package(data, Settings(max_package_bytes=len(data) - 1))

    def test_part_count(self):
        with pytest.raises(PackageTooLarge):
            open_package(build_docx(), Settings(max_parts=2))

    def test_part_size(self):
        data = _zip({"word/document.xml": b"x" * 5000})
        with pytest.raises(PackageTooLarge) as excinfo:
            open_package(data, Settings(max_part_bytes=1000))
        assert excinfo.value.part == "word/document.xml"

    def test_expanded_total(self):
        data = _zip({"a.xml": b"a" * 600, "b.xml": b"b" * 600})
        with pytest.raises(PackageTooLarge):
            open_package(data, Settings(max_package_bytes=1000))

    def test_too_large_is_corrupt(self):
        assert issubclass(PackageTooLarge, PackageCorrupt)
        assert not PackageTooLarge.recoverable
