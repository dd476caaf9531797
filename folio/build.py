"""Site building functionality for Folio.

This module runs the build pipeline: load configuration and data, load the
Site from the content directory, render every published unit, generate feeds,
and emit the output tree.

The build is collect-all for render failures: every unit is rendered, and if
any failed, one BuildError listing all of them is raised before anything is
written. Files that fail to load are left out and reported on the result; the
rest of the site is still built. A WriteError leaves the previous output in
place.

Key functions:
- build_site: Main function to build the entire site.
- load_config: Loads site configuration from folio.yaml.
- load_data: Loads site data from YAML files in the data directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .assets import collect_static_files
from .content import Site
from .emitter import SiteEmitter
from .errors import BuildError, LoadError, ParseError, RenderError
from .feeds import create_default_feed_registry
from .templates import RenderedPage, TemplateEngine

CONFIG_FILENAME = "folio.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "output_dir": "output",
    "port": 4000,
    "root_url": "",
    "baseurl": "",
    "url": "",
    "title": "",
    "description": "",
    "recent_posts": 3,
    "feeds": True,
    "feed_limit": 20,
}

# Settings that must be integers.
INTEGER_SETTINGS = ("port", "recent_posts", "feed_limit")


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        site: The loaded Site.
        pages: Rendered pages, in identifier order.
        output_dir: Directory where the site was built.
        data: Global site data dictionary.
        files: Written files, relative to ``output_dir``.
        load_error: Files that failed to load and were left out of the
            build, if any.
    """

    site: Site
    pages: list[RenderedPage]
    output_dir: Path
    data: dict[str, Any]
    files: list[Path] = field(default_factory=list)
    load_error: LoadError | None = None


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        raise ParseError(
            f"invalid YAML: {getattr(exc, 'problem', None) or exc}",
            path,
            line=mark.line + 1 if mark is not None else None,
        ) from exc


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration from folio.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        ParseError: If folio.yaml is not valid YAML or an integer setting
            (``port``, ``recent_posts``, ``feed_limit``) is not an integer.
    """
    config_path = project_root / CONFIG_FILENAME
    config = DEFAULT_CONFIG.copy()
    if config_path.exists():
        loaded = _read_yaml(config_path) or {}
        if isinstance(loaded, dict):
            config.update(loaded)
    for key in INTEGER_SETTINGS:
        value = config.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ParseError(f"{key} must be an integer, got {value!r}", config_path)
    return config


def load_data(project_root: Path) -> dict[str, Any]:
    """Load site data from YAML files in the data directory.

    ``data/site.yaml`` is merged at the top level; every other file is keyed
    by its stem (``data/nav.yaml`` -> ``data["nav"]``).
    """
    data_dir = project_root / "data"
    data: dict[str, Any] = {}
    if not data_dir.exists():
        return data
    for path in sorted(data_dir.glob("*.yaml")):
        payload = _read_yaml(path)
        if payload is None:
            continue
        if path.name == "site.yaml":
            if isinstance(payload, dict):
                data.update(payload)
        else:
            data[path.stem] = payload
    return data


def render_site(
    engine: TemplateEngine, site: Site, load_error: LoadError | None = None
) -> list[RenderedPage]:
    """Render every published unit.

    Raises:
        BuildError: Listing every unit that failed to render, together with
            ``load_error`` when one is given.
    """
    rendered: list[RenderedPage] = []
    errors: list[RenderError] = []
    for unit in site.published():
        try:
            rendered.append(engine.render(unit))
        except RenderError as exc:
            errors.append(exc)
    if errors:
        raise BuildError(errors, load_error=load_error)
    return rendered


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    root_url: str | None = None,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to publish units marked ``draft: true``.
        root_url: Optional base URL used by ``absolute_url`` and ``url_for``.
        output_dir_override: Optional path to write the build output instead
            of the configured ``output_dir``.

    Returns:
        BuildResult describing the built site. Files that failed to load are
        left out of the output and reported on ``result.load_error``.

    Raises:
        FileNotFoundError: If the project has no ``site/`` directory.
        ParseError: If folio.yaml or a data file is malformed.
        BuildError: If units failed to render.
        WriteError: If the output could not be written.
    """
    config = load_config(project_root)
    if root_url is not None:
        config["root_url"] = root_url
    output_dir = output_dir_override or (project_root / config["output_dir"])
    site_dir = project_root / "site"
    if not site_dir.exists():
        raise FileNotFoundError(f"Expected site directory at {site_dir}")

    data = load_data(project_root)
    load_error: LoadError | None = None
    try:
        site = Site(include_drafts=include_drafts).load([site_dir])
    except LoadError as exc:
        # Build what did load; the caller reports the rest.
        load_error = exc
        site = exc.site
    engine = TemplateEngine(site, site_dir / "_layouts", config=config, data=data)
    pages = render_site(engine, site, load_error)

    generated: dict[str, str] = {}
    if config.get("feeds", True):
        claimed = {page.unit.url for page in pages}
        feeds = create_default_feed_registry().generate_all(site.published(), config)
        # A unit of the same name (a hand-written feed.xml) takes precedence.
        generated = {url: text for url, text in feeds.items() if url not in claimed}
    static_files = site.static_files + collect_static_files(
        project_root / "assets", "/assets"
    )
    files = SiteEmitter(output_dir).emit(pages, static_files, generated)
    return BuildResult(
        site=site,
        pages=pages,
        output_dir=output_dir,
        data=data,
        files=files,
        load_error=load_error,
    )
