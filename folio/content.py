"""Content loading for Folio.

This module turns the files of one or more content directories into
ContentUnits held by a Site. The Site is the build context: it is created at
build start, loaded once, read by the renderer and emitter, and discarded.

Key classes:
- ContentUnit: A post or page with its front matter, body and URL.
- FileContentLoader: Discovers content and static files in a directory.
- UrlDeriver: Computes the URL of a unit from its permalink or location.
- Site: The loaded collection of units, partitioned into posts and pages.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any

from .assets import StaticFile
from .errors import LoadError, ParseError
from .frontmatter import FrontMatter, has_front_matter, parse_front_matter
from .renderers import RendererRegistry, default_renderer_registry
from .utils import (
    first_paragraph,
    is_content_file,
    is_internal_path,
    slugify,
    titleize,
)


@dataclass(frozen=True)
class ContentUnit:
    """A post or a standalone page.

    Attributes:
        identifier: Source path relative to its content directory (POSIX form).
        source_path: Path to the source file on disk.
        front_matter: Parsed front matter mapping.
        body: Raw body text following the front matter.
        url: URL the unit is published at.
        source_type: Body renderer used ("markdown" or "text").
        has_front_matter: Whether the file opened with a front matter block.
            Template syntax in the body is only rendered when it did.
        rendered_body: Body after template and Markdown rendering; empty
            until the unit has been rendered.
    """

    identifier: str
    source_path: Path
    front_matter: FrontMatter
    body: str
    url: str = ""
    source_type: str = "text"
    has_front_matter: bool = True
    rendered_body: str = field(default="", compare=False)

    @property
    def title(self) -> str:
        title = self.front_matter.get("title")
        if title is not None:
            return str(title)
        return titleize(PurePosixPath(self.identifier).name)

    @property
    def date(self) -> datetime | None:
        value = self.front_matter.get("date")
        return value if isinstance(value, datetime) else None

    @property
    def layout(self) -> str | None:
        layout = self.front_matter.get("layout")
        return str(layout) if layout else None

    @property
    def permalink(self) -> str | None:
        permalink = self.front_matter.get("permalink")
        return str(permalink) if permalink else None

    @property
    def categories(self) -> list[str]:
        value = self.front_matter.get("categories", self.front_matter.get("category"))
        if isinstance(value, str):
            return value.split()
        if isinstance(value, list):
            return [str(item) for item in value]
        return []

    @property
    def draft(self) -> bool:
        return self.front_matter.get("draft") is True

    @property
    def slug(self) -> str:
        return slugify(PurePosixPath(self.identifier).stem)

    @property
    def is_post(self) -> bool:
        return self.date is not None

    @property
    def excerpt(self) -> str:
        return first_paragraph(self.body)

    def to_context(self) -> dict[str, Any]:
        """Return the unit's fields as a template context mapping.

        Front matter keys come first; derived fields (title, url, slug ...)
        override them. ``date`` is only present for posts.
        """
        context: dict[str, Any] = dict(self.front_matter)
        context.update(
            identifier=self.identifier,
            title=self.title,
            url=self.url,
            slug=self.slug,
            categories=self.categories,
            draft=self.draft,
            excerpt=self.excerpt,
            content=self.rendered_body,
        )
        if self.date is not None:
            context["date"] = self.date
        return context

    def __getitem__(self, key: str) -> Any:
        # Lets templates reach custom front matter keys as ``post.subtitle``.
        return self.to_context()[key]

    def __hash__(self) -> int:
        # front_matter is a dict; a unit is identified by where it came from.
        return hash((self.identifier, self.source_path))


class FileContentLoader:
    """Discovers the files of a content directory.

    Files and folders whose name starts with ``_`` or ``.`` are skipped; that
    keeps ``_layouts`` out of the content. Results are sorted by path so a walk
    is deterministic.

    Attributes:
        directory: Content directory to walk.
    """

    def __init__(self, directory: Path):
        self.directory = directory

    def iter_files(self) -> Iterator[Path]:
        for path in sorted(self.directory.rglob("*")):
            if path.is_dir():
                continue
            if is_internal_path(path.relative_to(self.directory)):
                continue
            yield path

    def content_files(self) -> list[Path]:
        return [path for path in self.iter_files() if is_content_file(path)]

    def static_files(self) -> list[Path]:
        return [path for path in self.iter_files() if not is_content_file(path)]


class UrlDeriver:
    """Derives the URL of a content unit.

    An explicit ``permalink`` wins. Otherwise posts are placed under their
    categories and date (``/consulting/2025/09/25/slug.html``) and pages keep
    their source location with the renderer's output suffix
    (``about.md`` -> ``/about.html``, ``blog/index.md`` -> ``/blog/``).
    """

    def derive(self, unit: ContentUnit, output_suffix: str | None = None) -> str:
        if unit.permalink:
            permalink = unit.permalink.strip()
            return permalink if permalink.startswith("/") else f"/{permalink}"
        date = unit.date
        if date is not None:
            segments = [slugify(category) for category in unit.categories]
            segments += [f"{date.year:04d}", f"{date.month:02d}", f"{date.day:02d}"]
            segments.append(f"{unit.slug}.html")
            return "/" + "/".join(segments)
        rel = PurePosixPath(unit.identifier)
        if output_suffix:
            rel = rel.with_suffix(output_suffix)
        if rel.name == "index.html":
            parent = rel.parent.as_posix()
            return "/" if parent == "." else f"/{parent}/"
        return f"/{rel.as_posix()}"


class Site:
    """The build context: every content unit of one generation run.

    A Site is loaded once with ``load()`` and is read-only afterwards.
    Units are kept in identifier order.

    Attributes:
        include_drafts: Treat draft units as published (preview builds).
        static_files: Non-content files found in the content directories.
    """

    def __init__(
        self,
        include_drafts: bool = False,
        renderer_registry: RendererRegistry | None = None,
    ):
        self.include_drafts = include_drafts
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.url_deriver = UrlDeriver()
        self.static_files: list[StaticFile] = []
        self._units: list[ContentUnit] = []
        self._by_identifier: dict[str, ContentUnit] = {}
        self._loaded = False

    def load(self, directories: Iterable[Path]) -> Site:
        """Parse every content file of the given directories into the Site.

        Loading does not stop at the first malformed file. Every failure is
        collected and, once the walk is done, reported in one LoadError. The
        units that parsed cleanly stay in the Site, reachable as
        ``exc.site``.

        Args:
            directories: Content directories to walk.

        Returns:
            This Site, for chaining.

        Raises:
            LoadError: If one or more files failed to parse.
            RuntimeError: If the Site was already loaded.
        """
        if self._loaded:
            raise RuntimeError("Site is already loaded")
        self._loaded = True
        errors: list[tuple[Path, ParseError]] = []
        units: list[ContentUnit] = []
        for directory in directories:
            loader = FileContentLoader(directory)
            for path in loader.content_files():
                try:
                    units.append(self._build_unit(directory, path))
                except ParseError as exc:
                    errors.append((path, exc.with_path(path)))
            for path in loader.static_files():
                rel = path.relative_to(directory).as_posix()
                self.static_files.append(StaticFile(path, f"/{rel}"))
        units.sort(key=lambda unit: unit.identifier)
        for unit in units:
            self._units.append(unit)
            self._by_identifier.setdefault(unit.identifier, unit)
        if errors:
            raise LoadError(errors, site=self)
        return self

    def _build_unit(self, directory: Path, path: Path) -> ContentUnit:
        try:
            raw = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError("file is not valid UTF-8") from exc
        front_matter, body = parse_front_matter(raw)
        renderer = self.renderer_registry.get_renderer(path)
        unit = ContentUnit(
            identifier=path.relative_to(directory).as_posix(),
            source_path=path,
            front_matter=front_matter,
            body=body,
            source_type=renderer.source_type,
            has_front_matter=has_front_matter(raw),
        )
        return replace(unit, url=self.url_deriver.derive(unit, renderer.output_suffix))

    def is_published(self, unit: ContentUnit) -> bool:
        return self.include_drafts or not unit.draft

    def all(self) -> list[ContentUnit]:
        """Return every unit, drafts included, in identifier order."""
        return list(self._units)

    def published(self) -> list[ContentUnit]:
        """Return every unit that will be emitted."""
        return [unit for unit in self._units if self.is_published(unit)]

    def posts(self) -> list[ContentUnit]:
        """Return published units that carry a date."""
        return [unit for unit in self.published() if unit.is_post]

    def pages(self) -> list[ContentUnit]:
        """Return published units without a date."""
        return [unit for unit in self.published() if not unit.is_post]

    def get(self, identifier: str) -> ContentUnit | None:
        return self._by_identifier.get(identifier)

    def __len__(self) -> int:
        return len(self._units)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Site({len(self._units)} units, {len(self.static_files)} static files)"
