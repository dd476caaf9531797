"""Utility functions for Folio.

This module contains small helpers used throughout the Folio codebase:
string processing (including dropping date prefixes from filenames) and path
classification.

Key functions:
    slugify: Convert filenames to URL slugs.
    titleize: Convert filenames to human-readable titles.
    first_paragraph: Plain-text excerpt of a body.
    is_markdown: Check if a path is a Markdown file.
    is_content_file: Check if a path is loaded as a content unit.
    is_internal_path: Check if a path is hidden from the build.
    join_root_url: Join a base URL with a path.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

MARKDOWN_SUFFIXES = (".md", ".markdown")
CONTENT_SUFFIXES = MARKDOWN_SUFFIXES + (".html", ".htm", ".xml", ".txt")


def _split_date_prefix(name: str) -> tuple[datetime | None, str]:
    parts = name.split("-")
    if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
        try:
            date = datetime(int(parts[0]), int(parts[1]), int(parts[2]))
        except ValueError:
            return None, name
        return date, "-".join(parts[3:])
    return None, name


def slugify(name: str) -> str:
    """Convert filename (without extension) to slug, dropping date prefix.

    Args:
        name: Filename stem.

    Returns:
        URL-friendly slug.
    """
    _, cleaned = _split_date_prefix(name)
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Examples:
        >>> titleize("2025-01-15-hello-world.md")
        'Hello World'
    """
    _, base = _split_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract and clean the first paragraph from text.

    Skips headings, strips HTML tags and template syntax, collapses
    whitespace and truncates to ``limit`` characters.
    """
    for para in (p.strip() for p in text.split("\n\n")):
        if not para or para.startswith(("#", "![", "```", "---", "{%")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"\{[%#{].*?[%#}]\}", "", para, flags=re.DOTALL)
        collapsed = " ".join(para.split())
        if collapsed:
            return collapsed[:limit]
    return ""


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file (.md or .markdown, any case)."""
    return path.suffix.lower() in MARKDOWN_SUFFIXES


def is_content_file(path: Path) -> bool:
    """Check if a path is parsed as a content unit rather than copied verbatim."""
    return path.suffix.lower() in CONTENT_SUFFIXES


def is_internal_path(path: Path) -> bool:
    """Check if a relative path is hidden from the build.

    Internal paths include layouts (``_layouts``), any other ``_`` prefixed
    component, and dotfiles.

    Args:
        path: Path relative to a content directory.

    Returns:
        True if any path component starts with ``_`` or ``.``.
    """
    return any(part.startswith(("_", ".")) for part in path.parts)


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Examples:
        >>> join_root_url('https://example.com/', 'about/')
        'https://example.com/about/'
    """
    suffix = path if path.startswith("/") else f"/{path}"
    if not root_url:
        return suffix
    return f"{root_url.rstrip('/')}{suffix}"
