"""Body renderers for Folio.

A body renderer turns a unit's (already template-rendered) body into the text
placed in its layout. Markdown bodies become HTML through mistune; everything
else passes through unchanged.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML with syntax highlighting.
- PassthroughRenderer: Returns HTML, XML and text bodies as-is.
- RendererRegistry: Picks the renderer for a source path.
"""

from __future__ import annotations

import re
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .protocols import BodyRenderer
from .utils import is_markdown


def heading_id(text: str) -> str:
    """Generate a URL-friendly anchor ID from heading text."""
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


class _HighlightRenderer(mistune.HTMLRenderer):
    """mistune renderer adding heading anchors and Pygments code blocks."""

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            anchor = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            anchor = base_id
        return f'<h{level} id="{anchor}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        if info:
            try:
                lexer = get_lexer_by_name(info.split()[0], stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                return highlight(code, lexer, HtmlFormatter(cssclass="highlight"))
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        lang_class = f' class="language-{info}"' if info else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown bodies to HTML."""

    source_type = "markdown"
    output_suffix = ".html"

    def can_render(self, path: Path) -> bool:
        return is_markdown(path)

    def render(self, body: str) -> str:
        markdown = mistune.create_markdown(
            renderer=_HighlightRenderer(),
            plugins=["strikethrough", "footnotes", "table", "url"],
        )
        return markdown(body)


class PassthroughRenderer:
    """Returns bodies unchanged. Handles every path, so register it last."""

    source_type = "text"
    output_suffix = None

    def can_render(self, path: Path) -> bool:
        return True

    def render(self, body: str) -> str:
        return body


class RendererRegistry:
    """Registry for body renderers, checked in registration order."""

    def __init__(self):
        self._renderers: list[BodyRenderer] = []
        self.register(MarkdownRenderer())
        self.register(PassthroughRenderer())

    def register(self, renderer: BodyRenderer, first: bool = False) -> None:
        """Register a renderer, optionally ahead of the defaults."""
        if first:
            self._renderers.insert(0, renderer)
        else:
            self._renderers.append(renderer)

    def get_renderer(self, path: Path) -> BodyRenderer:
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        raise LookupError(f"No renderer registered for {path}")


default_renderer_registry = RendererRegistry()
