"""Protocol definitions for Folio.

These interfaces let the build swap in alternative body renderers without
touching the pipeline.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class BodyRenderer(Protocol):
    """Converts a unit body into the text wrapped by its layout.

    Attributes:
        source_type: Identifier such as "markdown" or "text".
        output_suffix: Suffix given to the default output path, or None to
            keep the source suffix.
    """

    source_type: str
    output_suffix: str | None

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        """Check if this renderer handles the given source file."""
        ...

    @abstractmethod
    def render(self, body: str) -> str:
        """Render a body to output text."""
        ...

