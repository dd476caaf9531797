"""Static files for Folio.

Files that are not content units (stylesheets, images, fonts, downloads) are
copied to the output tree byte for byte. They come from two places: the
project's ``assets/`` directory, published under ``/assets/``, and any
non-content file inside the content directories, published at its relative
location.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .utils import is_internal_path


@dataclass(frozen=True)
class StaticFile:
    """A file copied verbatim into the output tree.

    Attributes:
        source_path: File on disk.
        url: URL path the file is published at.
    """

    source_path: Path
    url: str


def collect_static_files(directory: Path, url_prefix: str = "") -> list[StaticFile]:
    """Collect every file under ``directory`` for verbatim copying.

    Args:
        directory: Directory to walk; a missing directory yields nothing.
        url_prefix: URL path the directory is published under (``/assets``).

    Returns:
        StaticFiles sorted by source path.
    """
    if not directory.is_dir():
        return []
    prefix = url_prefix.rstrip("/")
    files: list[StaticFile] = []
    for path in sorted(directory.rglob("*")):
        if path.is_dir():
            continue
        rel = path.relative_to(directory)
        if is_internal_path(rel):
            continue
        files.append(StaticFile(path, f"{prefix}/{rel.as_posix()}"))
    return files
