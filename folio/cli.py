"""Command-line interface for Folio.

This module defines the CLI commands using Click framework.
It provides commands for creating new projects, building sites, running the
development server and starting new posts.

Commands:
- new: Scaffold a new Folio project.
- build: Build the site into the output directory.
- serve: Run development server with live reload.
- post: Create a new dated post.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import click
import questionary

from . import __version__
from .errors import FolioError
from .frontmatter import dump_front_matter
from .utils import slugify

_CONFIG_TEMPLATE = """\
title: {name}
description: A site built with Folio.
url: ""
baseurl: ""
recent_posts: 3
"""

_DEFAULT_LAYOUT = """\
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{{ page.title }} | {{ site.title }}</title>
  <link rel="stylesheet" href="{{ '/assets/css/main.css' | relative_url }}">
</head>
<body>
  <header><a href="{{ '/' | relative_url }}">{{ site.title }}</a></header>
  <main>
    {% block main %}{{ content }}{% endblock %}
  </main>
</body>
</html>
"""

_POST_LAYOUT = """\
{% extends "default.html" %}
{% block main %}
<article>
  <h1>{{ post.title }}</h1>
  <time datetime="{{ post.date | date_to_xmlschema }}">{{ post.date | date("%B %d, %Y") }}</time>
  {% if post.categories %}<p>Filed under {{ post.categories | join(", ") }}</p>{% endif %}
  {{ content }}
</article>
{% endblock %}
"""

_INDEX_PAGE = """\
---
layout: default
title: Home
---
<h1>{{ site.title }}</h1>
<ul>
{% for post in recent_posts %}
  <li><a href="{{ post.url | relative_url }}">{{ post.title }}</a> {{ post.date | date }}</li>
{% endfor %}
</ul>
"""

_ABOUT_PAGE = """\
---
layout: default
title: About
---
# About

This site is built with Folio.
"""

_STYLESHEET = """\
body { font-family: sans-serif; max-width: 42rem; margin: 2rem auto; }
"""


@click.group()
@click.version_option(version=__version__, prog_name="folio")
def cli():
    """Folio static site generator."""


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Folio project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Folio site created at {target}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
def build(drafts: bool):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site

    try:
        result = build_site(project_root, include_drafts=drafts)
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from None
    except FolioError as exc:
        _report_failure(exc, project_root)
        raise SystemExit(1) from None
    click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")
    if result.load_error is not None:
        _report_failure(result.load_error, project_root)
        raise SystemExit(1)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides folio.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides folio.yaml ws_port)",
)
def serve(drafts: bool, port: int | None, ws_port: int | None):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    server = DevServer(project_root, http_port=port, ws_port=ws_port)
    server.start(include_drafts=drafts)


@cli.command()
@click.argument("title", required=False)
@click.option(
    "--category",
    "categories",
    multiple=True,
    help="Category for the post (repeatable)",
)
def post(title: str | None, categories: tuple[str, ...]):
    """Create a new dated post in site/posts/."""
    project_root = Path.cwd()
    site_dir = project_root / "site"
    if not site_dir.exists():
        raise click.ClickException(
            "No site/ directory found. Run this command from a Folio project root."
        )

    if not title:
        title = questionary.text(
            "Post title:",
            validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
            style=_questionary_style(),
        ).ask()
        if title is None:
            raise click.Abort()
    title = title.strip()

    now = datetime.now().replace(microsecond=0)
    target_path = site_dir / "posts" / f"{now:%Y-%m-%d}-{slugify(title)}.md"
    if target_path.exists():
        raise click.ClickException(
            f"File already exists: {target_path.relative_to(project_root)}"
        )

    front_matter = {"layout": "post", "title": title, "date": now}
    if categories:
        front_matter["categories"] = list(categories)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    target_path.write_text(dump_front_matter(front_matter, "\n"), encoding="utf-8")
    click.echo(f"Created {target_path.relative_to(project_root)}")


def _report_failure(exc: FolioError, project_root: Path) -> None:
    """Print every problem carried by a build error."""
    click.echo(click.style(f"Build failed: {exc.message}", fg="red", bold=True), err=True)
    for path, message in exc.describe():
        if path is not None:
            try:
                path = path.relative_to(project_root)
            except ValueError:
                pass
            click.echo(click.style(f"  File: {path}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {message}", fg="white"), err=True)


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new Folio project.

    Args:
        root: Root directory for the new project.
    """
    today = datetime.now().replace(microsecond=0)
    first_post = dump_front_matter(
        {"layout": "post", "title": "Welcome to Folio", "date": today},
        "\nEdit or delete this post in `site/posts/`.\n",
    )
    files = {
        "folio.yaml": _CONFIG_TEMPLATE.format(name=root.name),
        "site/_layouts/default.html": _DEFAULT_LAYOUT,
        "site/_layouts/post.html": _POST_LAYOUT,
        "site/index.html": _INDEX_PAGE,
        "site/about.md": _ABOUT_PAGE,
        f"site/posts/{today:%Y-%m-%d}-welcome-to-folio.md": first_post,
        "assets/css/main.css": _STYLESHEET,
    }
    for rel_path, content in files.items():
        dest_path = root / rel_path
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        dest_path.write_text(content, encoding="utf-8")
