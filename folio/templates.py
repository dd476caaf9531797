"""Template rendering engine for Folio.

This module uses Jinja2 to render content bodies and wrap them in layouts.
A layout is a file in ``site/_layouts`` that may carry its own front matter;
the front matter is stripped before Jinja sees the template and is exposed to
it as ``layout``.

Rendering is strict: a placeholder that cannot be resolved raises a
RenderError naming the missing key instead of printing a blank. Inside
``{% if %}`` conditions a missing value is simply false, so templates can test
for optional front matter.

Key classes:
- LayoutLoader: Jinja2 loader for layouts and includes.
- TemplateEngine: Builds the render context and renders units.
- RenderedPage: A unit together with its final output text.
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Any

from jinja2 import (
    BaseLoader,
    Environment,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    Undefined,
    UndefinedError,
)
from jinja2.loaders import split_template_path
from markupsafe import Markup

from .collections import ContentCollection, build_category_index, recent, sort_by_date
from .content import ContentUnit, Site
from .errors import ParseError, RenderError
from .frontmatter import FrontMatter, parse_date, parse_front_matter
from .renderers import RendererRegistry, default_renderer_registry
from .utils import join_root_url, slugify

LAYOUT_SUFFIXES = ("", ".html", ".xml")


class MissingValueError(UndefinedError):
    """Raised when a template outputs or iterates an undefined value.

    Attributes:
        key: The name that could not be resolved.
    """

    def __init__(self, key: str | None, message: str | None = None):
        self.key = key
        super().__init__(message)


class _StrictUndefined(StrictUndefined):
    """Undefined value that fails when printed or iterated, but is false in tests."""

    __slots__ = ()

    def _fail_with_undefined_error(self, *args, **kwargs):
        raise MissingValueError(self._undefined_name, self._undefined_message)

    __str__ = __iter__ = __len__ = __contains__ = _fail_with_undefined_error

    def __getattr__(self, name: str) -> Any:
        # ``page.author.name`` stays undefined (and names ``author``) until used.
        if name[:2] == "__":
            raise AttributeError(name)
        return self

    def __getitem__(self, key: Any) -> Any:
        return self

    def __bool__(self) -> bool:
        return False

    __eq__ = Undefined.__eq__
    __ne__ = Undefined.__ne__
    __hash__ = Undefined.__hash__


class LayoutLoader(BaseLoader):
    """Loads layouts (and includes) from a list of directories.

    ``get_template("post")`` finds ``post``, ``post.html`` or ``post.xml`` in
    the first directory that has one. Front matter at the top of the file is
    parsed and kept aside; only the body is handed to Jinja.

    Attributes:
        search_path: Directories searched in order.
    """

    def __init__(self, search_path: Sequence[Path]):
        self.search_path = list(search_path)

    def _find(self, template: str) -> Path:
        pieces = split_template_path(template)
        for directory in self.search_path:
            for suffix in LAYOUT_SUFFIXES:
                candidate = directory.joinpath(*pieces[:-1], pieces[-1] + suffix)
                if candidate.is_file():
                    return candidate
        raise TemplateNotFound(template)

    def _read(self, template: str) -> tuple[Path, FrontMatter, str]:
        path = self._find(template)
        text = path.read_text(encoding="utf-8")
        try:
            front_matter, body = parse_front_matter(text)
        except ParseError as exc:
            raise exc.with_path(path) from exc
        return path, front_matter, body

    def get_source(self, environment: Environment, template: str):
        path, _, body = self._read(template)
        mtime = path.stat().st_mtime

        def uptodate() -> bool:
            try:
                return path.stat().st_mtime == mtime
            except OSError:
                return False

        return body, str(path), uptodate

    def front_matter(self, template: str) -> FrontMatter:
        """Return the front matter of a layout."""
        return self._read(template)[1]


@dataclass(frozen=True)
class RenderedPage:
    """Final output of one unit.

    Attributes:
        unit: The unit, with ``rendered_body`` filled in.
        output: The complete text to write.
    """

    unit: ContentUnit
    output: str


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, Undefined):
        value._fail_with_undefined_error()
    if isinstance(value, datetime):
        return value
    return parse_date(value)


def _as_utc(value: Any) -> datetime:
    date = _as_datetime(value)
    if date.tzinfo is None:
        return date.replace(tzinfo=timezone.utc)
    return date


def date_filter(value: Any, fmt: str = "%Y-%m-%d") -> str:
    """Format a date with ``strftime``. Strings are parsed first."""
    return _as_datetime(value).strftime(fmt)


def date_to_xmlschema(value: Any) -> str:
    return _as_utc(value).isoformat()


def date_to_rfc822(value: Any) -> str:
    return format_datetime(_as_utc(value))


class TemplateEngine:
    """Template rendering engine using Jinja2.

    One engine is created per build, after the Site has been loaded. The
    site-wide part of the render context (``site``, ``data``, collections) is
    computed once here; the per-unit part is built by ``context_for``.

    Attributes:
        site: The loaded Site.
        config: Site configuration.
        data: Site data loaded from ``data/*.yaml``.
        env: Jinja2 environment.
        loader: Layout loader used by ``env``.
    """

    def __init__(
        self,
        site: Site,
        layouts_dir: Path,
        config: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        renderer_registry: RendererRegistry | None = None,
        includes_dir: Path | None = None,
    ):
        """Initialize the template engine.

        Args:
            site: Loaded Site to render.
            layouts_dir: Directory holding the layouts.
            config: Site configuration (title, url, recent_posts ...).
            data: Site data exposed as ``data`` and merged into ``site``.
            renderer_registry: Optional custom body renderer registry.
            includes_dir: Directory searched for ``{% include %}`` templates;
                defaults to ``_includes`` beside ``layouts_dir``.
        """
        self.site = site
        self.config = dict(config or {})
        self.data = dict(data or {})
        self.renderer_registry = renderer_registry or default_renderer_registry
        includes_dir = includes_dir or layouts_dir.parent / "_includes"
        self.loader = LayoutLoader([layouts_dir, includes_dir])
        self.env = Environment(
            loader=self.loader,
            autoescape=True,
            undefined=_StrictUndefined,
            keep_trailing_newline=True,
        )
        self._install_filters()
        self._site_context = self._build_site_context()

    def _install_filters(self) -> None:
        self.env.filters["date"] = date_filter
        self.env.filters["date_to_xmlschema"] = date_to_xmlschema
        self.env.filters["date_to_rfc822"] = date_to_rfc822
        self.env.filters["relative_url"] = self._relative_url
        self.env.filters["absolute_url"] = self._absolute_url
        self.env.filters["slugify"] = slugify
        self.env.globals["url_for"] = self._absolute_url

    def _relative_url(self, path: str) -> str:
        """Prefix a site path with the configured ``baseurl``."""
        path = str(path)
        if path.startswith(("http://", "https://", "//")):
            return path
        base = str(self.config.get("baseurl") or "").rstrip("/")
        return f"{base}{path if path.startswith('/') else '/' + path}"

    def _absolute_url(self, path: str) -> str:
        """Turn a site path into a full URL using ``root_url`` or ``url``."""
        path = str(path)
        if path.startswith(("http://", "https://", "//")):
            return path
        root = str(self.config.get("root_url") or self.config.get("url") or "")
        return join_root_url(root, self._relative_url(path))

    def _build_site_context(self) -> dict[str, Any]:
        posts = sort_by_date(self.site.posts())
        context: dict[str, Any] = {
            key: value
            for key, value in self.config.items()
            if isinstance(value, (str, int, float, bool, list, dict))
        }
        context.update(self.data)
        context.update(
            posts=ContentCollection(posts),
            pages=ContentCollection(self.site.pages()),
            categories=build_category_index(posts),
            static_files=list(self.site.static_files),
        )
        return context

    def context_for(self, unit: ContentUnit) -> dict[str, Any]:
        """Build the render context of a unit.

        The context exposes the unit as ``page`` (and as ``post`` when it is a
        post), the site-wide ``site`` and ``data`` mappings, and the
        ``recent_posts`` collection sized by the ``recent_posts`` setting.
        """
        fields = unit.to_context()
        count = int(self.config.get("recent_posts", 3))
        context: dict[str, Any] = {
            "site": self._site_context,
            "data": self.data,
            "page": fields,
            "recent_posts": ContentCollection(recent(self.site.posts(), count)),
        }
        if unit.is_post:
            context["post"] = fields
        return context

    def render(self, unit: ContentUnit) -> RenderedPage:
        """Render a unit's body and wrap it in its layout.

        Args:
            unit: Unit to render.

        Returns:
            RenderedPage holding the rendered unit and its output text.

        Raises:
            RenderError: On an unresolvable placeholder, an unknown layout, a
                template syntax error, or any other failure raised while the
                templates run.
        """
        with self._render_errors(unit):
            context = self.context_for(unit)
        body = unit.body
        if unit.has_front_matter:
            body = self._render_source(unit, body, context)
        renderer = self.renderer_registry.get_renderer(unit.source_path)
        with self._render_errors(unit):
            rendered_unit = replace(unit, rendered_body=renderer.render(body))
        if not unit.layout:
            return RenderedPage(rendered_unit, rendered_unit.rendered_body)
        output = self._render_layout(rendered_unit, unit.layout, context)
        return RenderedPage(rendered_unit, output)

    @contextmanager
    def _render_errors(self, unit: ContentUnit, layout: str | None = None):
        """Translate any failure while rendering a unit into a RenderError."""
        where = f" in layout '{layout}'" if layout else ""
        try:
            yield
        except TemplateNotFound as exc:
            name = exc.name or layout
            if name == layout:
                message = f"layout '{layout}' not found"
            else:
                message = f"template '{name}' not found{where}"
            raise RenderError(message, unit.source_path, layout=layout) from exc
        except TemplateSyntaxError as exc:
            raise RenderError(
                f"template syntax error{where} on line {exc.lineno}: {exc.message}",
                unit.source_path,
                layout=layout,
            ) from exc
        except MissingValueError as exc:
            raise RenderError(
                f"undefined value '{exc.key}'{where}",
                unit.source_path,
                key=exc.key,
                layout=layout,
            ) from exc
        except UndefinedError as exc:
            raise RenderError(
                f"{exc.message or 'undefined value'}{where}",
                unit.source_path,
                layout=layout,
            ) from exc
        except ParseError as exc:
            # Layout front matter carries its path; a bad value given to a
            # date filter does not.
            if exc.path is not None:
                message = f"invalid front matter in {exc.path}: {exc.message}"
            else:
                message = f"{exc.message}{where}"
            raise RenderError(message, unit.source_path, layout=layout) from exc
        except Exception as exc:
            raise RenderError(
                f"{type(exc).__name__}: {exc}{where}",
                unit.source_path,
                layout=layout,
            ) from exc

    def _render_source(self, unit: ContentUnit, source: str, context: dict[str, Any]) -> str:
        with self._render_errors(unit):
            return self.env.from_string(source).render(context)

    def _render_layout(
        self, unit: ContentUnit, layout: str, context: dict[str, Any]
    ) -> str:
        fields = unit.to_context()
        layout_context = dict(context)
        layout_context.update(page=fields, content=Markup(unit.rendered_body))
        if unit.is_post:
            layout_context["post"] = fields
        with self._render_errors(unit, layout):
            template = self.env.get_template(layout)
            layout_context["layout"] = self.loader.front_matter(layout)
            return template.render(layout_context)

    def render_string(self, source: str, context: dict[str, Any]) -> str:
        """Render a template string against an explicit context."""
        return self.env.from_string(source).render(context)
