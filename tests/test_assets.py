from folio.assets import StaticFile, collect_static_files


def test_collect_static_files(tmp_path):
    assets = tmp_path / "assets"
    (assets / "css").mkdir(parents=True)
    (assets / "css" / "main.css").write_text("body{}", encoding="utf-8")
    (assets / "images").mkdir()
    (assets / "images" / "logo.png").write_bytes(b"png")
    (assets / "_src").mkdir()
    (assets / "_src" / "main.scss").write_text("$x: 1;", encoding="utf-8")
    (assets / ".DS_Store").write_bytes(b"")

    files = collect_static_files(assets, "/assets/")
    assert files == [
        StaticFile(assets / "css" / "main.css", "/assets/css/main.css"),
        StaticFile(assets / "images" / "logo.png", "/assets/images/logo.png"),
    ]


def test_collect_static_files_missing_dir(tmp_path):
    assert collect_static_files(tmp_path / "nope") == []
