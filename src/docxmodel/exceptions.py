"""Error taxonomy for package parsing.

Only ``PackageCorrupt`` (and its subclass ``PackageTooLarge``) ever escapes
``parse_docx``. The remaining conditions are recoverable: resolvers report
them through ``Diagnostics`` and continue with defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional


@dataclass(eq=False)
class DocxModelError(Exception):
    message: str
    part: Optional[str] = None

    code: ClassVar[str] = "docx_model_error"
    recoverable: ClassVar[bool] = True

    def __str__(self) -> str:
        if self.part:
            return f"{self.message} [{self.part}]"
        return self.message


class PackageCorrupt(DocxModelError):
    code = "package_corrupt"
    recoverable = False


class PackageTooLarge(PackageCorrupt):
    code = "package_too_large"


class PartMissing(DocxModelError):
    code = "part_missing"


class MalformedXml(DocxModelError):
    code = "malformed_xml"


class StyleCycle(DocxModelError):
    code = "style_cycle"


class RelationshipUnresolved(DocxModelError):
    code = "relationship_unresolved"
