"""docxmodel - Resolve Word packages into a read-only document model."""

from docxmodel.docx_parser import parse_docx
from docxmodel.exceptions import (
    DocxModelError,
    MalformedXml,
    PackageCorrupt,
    PackageTooLarge,
    PartMissing,
    RelationshipUnresolved,
    StyleCycle,
)
from docxmodel.model import DocumentModel

__version__ = "0.1.0"

__all__ = [
    "parse_docx",
    "DocumentModel",
    "DocxModelError",
    "PackageCorrupt",
    "PackageTooLarge",
    "PartMissing",
    "MalformedXml",
    "StyleCycle",
    "RelationshipUnresolved",
]
