"""Structured warnings for recoverable parse conditions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from docxmodel.exceptions import DocxModelError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseWarning:
    """A recoverable condition met while parsing, kept as plain data."""

    code: str
    message: str
    part: Optional[str] = None


class Diagnostics:
    """Collects recoverable conditions for a single parse call."""

    def __init__(self) -> None:
        self._warnings: List[ParseWarning] = []

    def warn(self, error: DocxModelError) -> None:
        if not error.recoverable:
            raise error
        logger.warning(f"{error.code}: {error}")
        self._warnings.append(ParseWarning(code=error.code, message=error.message, part=error.part))

    @property
    def warnings(self) -> Tuple[ParseWarning, ...]:
        return tuple(self._warnings)

    def codes(self) -> List[str]:
        return [w.code for w in self._warnings]

    def __len__(self) -> int:
        return len(self._warnings)
