"""Folio static site generator.

Folio builds a static site from Markdown and HTML content units that carry YAML
front matter. Units are loaded into a Site, queried (for example the most recent
posts), rendered into Jinja2 layouts, and written to an output directory.

The main entry point is the CLI module, which provides commands for scaffolding new
projects, creating posts, building sites, and running the development server.

Pipeline stages, one module each:
- frontmatter: split raw text into a metadata mapping and a body
- content: the Site build context and its ContentUnits
- collections: ordering and slicing of units for templates
- templates: layout resolution and rendering
- emitter: output paths and the write of the rendered tree
"""

__all__ = ["__version__"]
__version__ = "0.2.0"
