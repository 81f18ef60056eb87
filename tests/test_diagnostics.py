import pytest

from docxmodel.config import Settings
from docxmodel.diagnostics import Diagnostics, ParseWarning
from docxmodel.exceptions import PackageCorrupt, StyleCycle


class TestDiagnostics:
    def test_recoverable_errors_become_warnings(self):
        diagnostics = Diagnostics()
        diagnostics.warn(StyleCycle("loop", part="word/styles.xml"))
        assert diagnostics.warnings == (ParseWarning("style_cycle", "loop", "word/styles.xml"),)
        assert len(diagnostics) == 1

    def test_fatal_errors_propagate(self):
        with pytest.raises(PackageCorrupt):
            Diagnostics().warn(PackageCorrupt("broken"))

    def test_error_text_names_part(self):
        assert str(StyleCycle("loop", part="word/styles.xml")) == "loop [word/styles.xml]"
        assert str(PackageCorrupt("broken")) == "broken"


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.dpi == 96
        assert settings.default_lang == "en-US"
        assert settings.fallback_font == "Calibri"

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("DOCXMODEL_DPI", "72")
        monkeypatch.setenv("DOCXMODEL_MAX_PARTS", "10")
        settings = Settings()
        assert settings.dpi == 72
        assert settings.max_parts == 10
