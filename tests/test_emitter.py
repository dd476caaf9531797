from pathlib import Path, PurePosixPath

import pytest

from folio.assets import StaticFile
from folio.content import ContentUnit
from folio.emitter import SiteEmitter, url_to_output_path
from folio.errors import WriteError
from folio.templates import RenderedPage


def page(identifier: str, url: str, output: str = "x") -> RenderedPage:
    return RenderedPage(ContentUnit(identifier, Path(identifier), {}, "", url=url), output)


def test_url_to_output_path():
    assert url_to_output_path("/") == PurePosixPath("index.html")
    assert url_to_output_path("/blog/") == PurePosixPath("blog/index.html")
    assert url_to_output_path("/about") == PurePosixPath("about.html")
    assert url_to_output_path("/feed.xml") == PurePosixPath("feed.xml")
    assert url_to_output_path("/a/b.html?x=1#top") == PurePosixPath("a/b.html")
    with pytest.raises(WriteError):
        url_to_output_path("/../outside.html")


def test_output_path_uses_permalink(tmp_path):
    emitter = SiteEmitter(tmp_path / "output")
    unit = ContentUnit("about.md", Path("about.md"), {"permalink": "/about-us/"}, "", url="/about-us/")
    assert emitter.output_path(unit) == tmp_path / "output" / "about-us" / "index.html"


def test_emit_writes_tree(tmp_path):
    static_source = tmp_path / "logo.png"
    static_source.write_bytes(b"\x89PNG\r\n")
    emitter = SiteEmitter(tmp_path / "output")
    files = emitter.emit(
        [page("index.html", "/", "home\r\n"), page("posts/a.md", "/2025/09/25/a.html", "é")],
        [StaticFile(static_source, "/images/logo.png")],
        {"/feed.xml": "<rss/>"},
    )
    out = tmp_path / "output"
    assert files == [
        Path("2025/09/25/a.html"),
        Path("feed.xml"),
        Path("images/logo.png"),
        Path("index.html"),
    ]
    assert (out / "index.html").read_bytes() == b"home\r\n"
    assert (out / "2025" / "09" / "25" / "a.html").read_bytes() == "é".encode("utf-8")
    assert (out / "images" / "logo.png").read_bytes() == b"\x89PNG\r\n"
    assert (out / "feed.xml").read_text(encoding="utf-8") == "<rss/>"
    assert not emitter.staging_dir.exists()


def test_emit_replaces_previous_output(tmp_path):
    out = tmp_path / "output"
    (out / "stale").mkdir(parents=True)
    (out / "stale" / "old.html").write_text("old", encoding="utf-8")
    SiteEmitter(out).emit([page("index.html", "/", "new")])
    assert not (out / "stale").exists()
    assert (out / "index.html").read_text(encoding="utf-8") == "new"
    assert not (tmp_path / "output.previous").exists()


def test_collision_is_reported_before_writing(tmp_path):
    out = tmp_path / "output"
    out.mkdir()
    (out / "keep.html").write_text("previous build", encoding="utf-8")
    emitter = SiteEmitter(out)
    pages = [
        page("about.md", "/about.html"),
        page("about.html", "/about.html"),
    ]
    with pytest.raises(WriteError) as excinfo:
        emitter.emit(pages)
    message = excinfo.value.message
    assert "about.md" in message and "about.html" in message
    assert excinfo.value.path == Path("about.html")
    assert (out / "keep.html").read_text(encoding="utf-8") == "previous build"
    assert not emitter.staging_dir.exists()


def test_static_file_collision(tmp_path):
    source = tmp_path / "feed.xml"
    source.write_text("static", encoding="utf-8")
    with pytest.raises(WriteError, match="produced by both"):
        SiteEmitter(tmp_path / "output").plan(
            [], [StaticFile(source, "/feed.xml")], {"/feed.xml": "generated"}
        )


def test_permalink_escaping_output_names_source(tmp_path):
    with pytest.raises(WriteError) as excinfo:
        SiteEmitter(tmp_path / "output").plan([page("evil.md", "/../../etc/passwd")])
    assert excinfo.value.path == Path("evil.md")


def test_filesystem_failure_keeps_previous_output(tmp_path, monkeypatch):
    out = tmp_path / "output"
    out.mkdir()
    (out / "index.html").write_text("previous build", encoding="utf-8")
    emitter = SiteEmitter(out)

    def failing_copy(src, dst):
        raise PermissionError(13, "Permission denied", str(dst))

    monkeypatch.setattr("folio.emitter.shutil.copyfile", failing_copy)
    with pytest.raises(WriteError) as excinfo:
        emitter.emit(
            [page("index.html", "/", "new")],
            [StaticFile(tmp_path / "missing.png", "/missing.png")],
        )
    assert isinstance(excinfo.value.original_error, PermissionError)
    assert "Permission denied" in excinfo.value.message
    assert (out / "index.html").read_text(encoding="utf-8") == "previous build"
    assert not emitter.staging_dir.exists()
