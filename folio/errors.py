"""Error types raised by the Folio build pipeline.

Every error carries the offending file path so the CLI can point the user at
the source of the problem. Aggregate errors (LoadError, BuildError) expose the
individual problems through ``describe()``.

Classes:
    FolioError: Base class with a message and an optional path.
    ParseError: Malformed front matter.
    LoadError: One or more files failed to parse during Site.load().
    RenderError: Missing template variable or unresolved layout.
    WriteError: Filesystem failure or output collision while emitting.
    BuildError: Every RenderError collected during a build.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .content import Site


class FolioError(Exception):
    """Base error with file context.

    Attributes:
        message: Human-readable error message.
        path: Path to the file that caused the error, if known.
    """

    def __init__(self, message: str, path: Path | None = None):
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)

    def describe(self) -> list[tuple[Path | None, str]]:
        """Return the (path, message) pairs this error reports."""
        return [(self.path, self.message)]


class ParseError(FolioError):
    """Front matter could not be parsed.

    Attributes:
        line: 1-based line number in the source text, when known.
    """

    def __init__(self, message: str, path: Path | None = None, line: int | None = None):
        self.line = line
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message, path)

    def with_path(self, path: Path) -> ParseError:
        """Return a copy of this error bound to a source file."""
        error = ParseError(self.message, path)
        error.line = self.line
        return error


class LoadError(FolioError):
    """Aggregate of every ParseError raised while loading a Site.

    The units that loaded cleanly are still available on ``site``.

    Attributes:
        errors: (path, ParseError) pairs in walk order.
        site: The partially loaded Site, with failed units excluded.
    """

    def __init__(self, errors: list[tuple[Path, ParseError]], site: Site | None = None):
        self.errors = list(errors)
        self.site = site
        count = len(self.errors)
        noun = "file" if count == 1 else "files"
        super().__init__(f"{count} {noun} failed to load")

    def describe(self) -> list[tuple[Path | None, str]]:
        return [(path, error.message) for path, error in self.errors]


class RenderError(FolioError):
    """A page could not be rendered.

    Attributes:
        key: Name of the missing context variable, if that was the cause.
        layout: Name of the layout involved, if any.
    """

    def __init__(
        self,
        message: str,
        path: Path | None = None,
        key: str | None = None,
        layout: str | None = None,
    ):
        self.key = key
        self.layout = layout
        super().__init__(message, path)


class WriteError(FolioError):
    """Output could not be written. Fatal for the whole build.

    Attributes:
        original_error: The underlying OSError, if any.
    """

    def __init__(
        self,
        message: str,
        path: Path | None = None,
        original_error: Exception | None = None,
    ):
        self.original_error = original_error
        super().__init__(message, path)


class BuildError(FolioError):
    """Every RenderError collected while rendering the site.

    Attributes:
        errors: The individual RenderErrors.
        load_error: The LoadError of the same build, if some files also
            failed to load.
    """

    def __init__(self, errors: list[RenderError], load_error: LoadError | None = None):
        self.errors = list(errors)
        self.load_error = load_error
        count = len(self.errors)
        noun = "page" if count == 1 else "pages"
        message = f"{count} {noun} failed to render"
        if load_error is not None:
            message = f"{message}; {load_error.message}"
        super().__init__(message)

    def describe(self) -> list[tuple[Path | None, str]]:
        pairs: list[tuple[Path | None, str]] = []
        if self.load_error is not None:
            pairs.extend(self.load_error.describe())
        for error in self.errors:
            pairs.extend(error.describe())
        return pairs
