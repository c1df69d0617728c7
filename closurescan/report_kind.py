"""Report kinds emitted by the implicit closure rule."""

from __future__ import annotations

from enum import Enum


class ReportKind(str, Enum):
    """Enumerate the report streams a rule can emit."""

    NO_SCOPE = "noScope"
    REFERENCE = "reference"
    FUNCTION = "function"
    DECLARATION = "declaration"

    @property
    def attr(self) -> str:
        """Return the ``Summary`` attribute that counts this kind."""

        names = {
            ReportKind.NO_SCOPE: "no_scope",
            ReportKind.REFERENCE: "reference",
            ReportKind.FUNCTION: "function",
            ReportKind.DECLARATION: "declaration",
        }
        return names[self]
