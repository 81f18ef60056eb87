"""DOCX Parser Package - OOXML resolution modules."""

from .assembler import parse_docx, parse_metadata
from .fonts import font_fallback, parse_font_table, resolve_font
from .numbering import get_list_level, parse_numbering
from .package import open_package
from .styles import load_styles, parse_styles, resolve_inheritance
from .tables import parse_table
from .theme import parse_theme_colors, resolve_theme_color

__all__ = [
    "parse_docx",
    "parse_metadata",
    "open_package",
    "parse_theme_colors",
    "resolve_theme_color",
    "parse_font_table",
    "resolve_font",
    "font_fallback",
    "parse_styles",
    "resolve_inheritance",
    "load_styles",
    "parse_numbering",
    "get_list_level",
    "parse_table",
]
