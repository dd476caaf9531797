"""Output writing for Folio.

The emitter maps every rendered unit, static file and generated file (feeds)
to a path under the output directory and writes them. The whole tree is
planned first so that two sources claiming the same path are reported before
anything touches the disk. Files are then written into a staging directory
beside the output directory, which replaces the previous output only once
every write has succeeded. A failed build therefore never leaves a half
written site behind.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from .assets import StaticFile
from .content import ContentUnit
from .errors import WriteError
from .templates import RenderedPage


def url_to_output_path(url: str) -> PurePosixPath:
    """Map a URL path to a file path relative to the output directory.

    A trailing slash maps to ``index.html`` inside that directory and a last
    segment without a suffix gets ``.html`` appended.

    Raises:
        WriteError: If the path would leave the output directory.
    """
    path = url.split("#", 1)[0].split("?", 1)[0]
    if not path.startswith("/"):
        path = f"/{path}"
    if path.endswith("/"):
        path = f"{path}index.html"
    elif not PurePosixPath(path).suffix:
        path = f"{path}.html"
    rel = PurePosixPath(path.lstrip("/"))
    if ".." in rel.parts:
        raise WriteError(f"output path for {url!r} escapes the output directory")
    return rel


@dataclass(frozen=True)
class PlannedFile:
    """One file of the output tree.

    Attributes:
        source: File the output comes from, used in collision reports.
        content: Text to write, for rendered and generated files.
        copy_from: File to copy byte for byte, for static files.
    """

    source: Path
    content: str | None = None
    copy_from: Path | None = None


class SiteEmitter:
    """Writes the rendered site to the output directory.

    Attributes:
        output_dir: Directory that receives the site.
        staging_dir: Sibling directory the tree is assembled in.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.staging_dir = output_dir.with_name(f"{output_dir.name}.staging")
        self._previous_dir = output_dir.with_name(f"{output_dir.name}.previous")

    def output_path(self, unit: ContentUnit) -> Path:
        """Return where a unit is written."""
        return self.output_dir.joinpath(*url_to_output_path(unit.url).parts)

    def plan(
        self,
        pages: Iterable[RenderedPage],
        static_files: Iterable[StaticFile] = (),
        generated: Mapping[str, str] | None = None,
    ) -> dict[PurePosixPath, PlannedFile]:
        """Map every output path to its source.

        Args:
            pages: Rendered units.
            static_files: Files copied verbatim.
            generated: Extra files keyed by URL path (``/feed.xml``).

        Raises:
            WriteError: If two sources map to the same output path.
        """
        planned: dict[PurePosixPath, PlannedFile] = {}

        def claim(url: str, entry: PlannedFile) -> None:
            try:
                rel = url_to_output_path(url)
            except WriteError as exc:
                raise WriteError(exc.message, entry.source) from exc
            existing = planned.get(rel)
            if existing is not None:
                raise WriteError(
                    f"output {rel} is produced by both {existing.source} and {entry.source}",
                    entry.source,
                )
            planned[rel] = entry

        for page in pages:
            claim(page.unit.url, PlannedFile(page.unit.source_path, content=page.output))
        for static in static_files:
            claim(static.url, PlannedFile(static.source_path, copy_from=static.source_path))
        for url, content in (generated or {}).items():
            claim(url, PlannedFile(Path(url.lstrip("/")), content=content))
        return planned

    def emit(
        self,
        pages: Iterable[RenderedPage],
        static_files: Iterable[StaticFile] = (),
        generated: Mapping[str, str] | None = None,
    ) -> list[Path]:
        """Write the site and swap it into place.

        Returns:
            Paths of the written files, relative to the output directory.

        Raises:
            WriteError: On a collision or any filesystem failure. The previous
                output directory is left untouched.
        """
        planned = self.plan(pages, static_files, generated)
        try:
            self._write(planned)
            self._activate()
        except OSError as exc:
            shutil.rmtree(self.staging_dir, ignore_errors=True)
            failed = Path(exc.filename) if exc.filename else self.output_dir
            raise WriteError(
                f"could not write output: {exc.strerror or exc}", failed, exc
            ) from exc
        return [Path(*rel.parts) for rel in sorted(planned)]

    def _write(self, planned: dict[PurePosixPath, PlannedFile]) -> None:
        if self.staging_dir.exists():
            shutil.rmtree(self.staging_dir)
        self.staging_dir.mkdir(parents=True)
        for rel, entry in sorted(planned.items()):
            target = self.staging_dir.joinpath(*rel.parts)
            target.parent.mkdir(parents=True, exist_ok=True)
            if entry.copy_from is not None:
                shutil.copyfile(entry.copy_from, target)
            else:
                # Bytes, so no newline translation happens on any platform.
                target.write_bytes((entry.content or "").encode("utf-8"))

    def _activate(self) -> None:
        if self._previous_dir.exists():
            shutil.rmtree(self._previous_dir)
        if self.output_dir.exists():
            os.replace(self.output_dir, self._previous_dir)
        try:
            os.replace(self.staging_dir, self.output_dir)
        except OSError:
            if self._previous_dir.exists():
                os.replace(self._previous_dir, self.output_dir)
            raise
        shutil.rmtree(self._previous_dir, ignore_errors=True)
