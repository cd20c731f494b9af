import asyncio
from pathlib import Path

from inkwell.build import BuildError
from inkwell.config import RunMode
from inkwell.server import DevServer, _ChangeHandler, matches_watch_target


class DummyEvent:
    def __init__(self, path, is_directory=False):
        self.src_path = path
        self.is_directory = is_directory


def test_change_handler_skips_output(tmp_path):
    server = DevServer(tmp_path)
    called = []
    server.rebuild = lambda: called.append(True)
    handler = _ChangeHandler(server)

    handler.on_any_event(DummyEvent(str(tmp_path / "_site" / "index.html")))
    handler.on_any_event(DummyEvent(str(tmp_path / "_site.staging" / "index.html")))
    handler.on_any_event(DummyEvent(str(tmp_path / "content"), is_directory=True))
    assert called == []

    handler.on_any_event(DummyEvent(str(tmp_path / "content" / "blog" / "post.md")))
    assert called == [True]


def test_should_rebuild(tmp_path):
    server = DevServer(tmp_path)

    assert server.should_rebuild(tmp_path / "public" / "robots.txt")
    assert server.should_rebuild(tmp_path / "css" / "_custom.scss")
    assert server.should_rebuild(tmp_path / "inkwell.yaml")
    assert not server.should_rebuild(tmp_path / "node_modules" / "x" / "index.js")
    assert not server.should_rebuild(tmp_path / ".git" / "HEAD")
    assert not server.should_rebuild(tmp_path / "README.md")
    assert not server.should_rebuild(tmp_path.parent / "elsewhere.md")


def test_matches_watch_target():
    patterns = ["css/**/*.scss", "content/**/*.{svg,png}"]
    assert matches_watch_target("css/_custom.scss", patterns)
    assert matches_watch_target("css/partials/_nav.scss", patterns)
    assert matches_watch_target("content/img/logo.svg", patterns)
    assert matches_watch_target("content/logo.png", patterns)
    assert not matches_watch_target("content/logo.jpg", patterns)


def test_async_broadcast_tracks_stale_clients():
    server = DevServer(Path("."))

    class GoodWS:
        def __init__(self):
            self.messages = []

        async def send(self, msg):
            self.messages.append(msg)

    class BadWS:
        async def send(self, msg):
            raise RuntimeError("fail")

    good = GoodWS()
    bad = BadWS()
    server._ws_clients = {good, bad}
    asyncio.run(server._async_broadcast("hello"))
    assert good.messages == ["hello"]
    assert bad not in server._ws_clients


def test_dev_server_ports(tmp_path):
    server = DevServer(tmp_path, http_port=5055, ws_port=None)
    assert server.http_port == 5055
    assert server.ws_port == 5056
    assert server.run_mode is RunMode.SERVE

    (tmp_path / "inkwell.yaml").write_text("port: 3000\n", encoding="utf-8")
    server = DevServer(tmp_path, RunMode.WATCH)
    assert (server.http_port, server.ws_port) == (3000, 3001)
    assert server.run_mode is RunMode.WATCH


def test_build_swaps_staging_into_place(monkeypatch, tmp_path):
    server = DevServer(tmp_path)
    (tmp_path / "_site").mkdir()
    (tmp_path / "_site" / "old.html").write_text("old", encoding="utf-8")
    calls = {}

    def fake_build_site(root, run_mode, clean_output=True, output_dir_override=None):
        calls["run_mode"] = run_mode
        output_dir_override.mkdir(parents=True)
        (output_dir_override / "index.html").write_text("new", encoding="utf-8")

    monkeypatch.setattr("inkwell.server.build_site", fake_build_site)
    server._build()

    assert calls["run_mode"] is RunMode.SERVE
    assert (tmp_path / "_site" / "index.html").read_text(encoding="utf-8") == "new"
    assert not (tmp_path / "_site" / "old.html").exists()
    assert not (tmp_path / "_site.staging").exists()


def test_rebuild_failure_keeps_serving(monkeypatch, tmp_path):
    server = DevServer(tmp_path)
    server._debounce_seconds = 0
    server._post_build_delay = 0
    broadcasts = []
    server._broadcast_reload = lambda: broadcasts.append(True)

    def failing_build():
        raise BuildError(tmp_path / "content" / "index.html", "boom")

    server._build = failing_build
    server.rebuild()
    assert broadcasts == []
    assert server._rebuilding is False

    server._build = lambda: None
    server.rebuild()
    assert broadcasts == [True]


def test_rebuild_survives_config_and_content_errors(tmp_path):
    (tmp_path / "content").mkdir()
    (tmp_path / "content" / "index.md").write_text("# Home", encoding="utf-8")
    server = DevServer(tmp_path)
    server._debounce_seconds = 0
    server._post_build_delay = 0
    broadcasts = []
    server._broadcast_reload = lambda: broadcasts.append(True)

    (tmp_path / "inkwell.yaml").write_text("- not a mapping\n", encoding="utf-8")
    server.rebuild()

    (tmp_path / "inkwell.yaml").write_text("port: 8080\n", encoding="utf-8")
    (tmp_path / "content" / "_data").mkdir()
    (tmp_path / "content" / "_data" / "site.yaml").write_text("name: [\n", encoding="utf-8")
    server.rebuild()

    (tmp_path / "content").rename(tmp_path / "drafts")
    server.rebuild()

    assert broadcasts == []
    assert server._rebuilding is False

    (tmp_path / "drafts").rename(tmp_path / "content")
    (tmp_path / "content" / "_data" / "site.yaml").write_text("name: Test\n", encoding="utf-8")
    server.rebuild()
    assert broadcasts == [True]
    assert (tmp_path / "_site" / "index.html").exists()
