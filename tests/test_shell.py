"""Tests for the interactive shell: sitesnap.shell, session, cli_output and cli."""

from __future__ import annotations

import gzip
import logging
from datetime import datetime, timezone

import pytest

from sitesnap.cli import main
from sitesnap.cli_output import format_lastmod, format_result_line, format_sitemap_listing
from sitesnap.cli_parsers import ShellUsageError, build_shell_parser, parse_main_args
from sitesnap.config import Settings
from sitesnap.document import SitemapEntry, SnapshotRecord
from sitesnap.session import ShellSession
from sitesnap.shell import COMMANDS, run_command, run_shell

BASE = "https://example.com"
HTML = {"Content-Type": "text/html; charset=UTF-8"}
XML = {"Content-Type": "application/xml"}

SITEMAP = (
    b'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
    b"<url><loc>https://example.com/b/</loc><lastmod>2024-05-01</lastmod></url>"
    b"<url><loc>https://example.com/a/</loc></url>"
    b"<url><loc>https://example.com/b/</loc></url>"
    b"</urlset>"
)


@pytest.fixture
def session(tmp_path, site):
    settings = Settings(output_dir=tmp_path / "snapshots")
    return ShellSession.create(settings, transport=site.transport)


@pytest.fixture
def logs(caplog):
    caplog.set_level(logging.INFO, logger="sitesnap")
    return caplog


def _messages(caplog):
    return [record.getMessage() for record in caplog.records]


# =============================================================================
# Output helpers
# =============================================================================


class TestOutputHelpers:
    def test_result_line_success(self):
        record = SnapshotRecord(url=f"{BASE}/", filename="x.json", status=200)
        assert format_result_line(record) == f"Snapshot taken - {BASE}/"

    def test_result_line_error(self):
        record = SnapshotRecord.failure("http://fail.test/b", "http://fail.test/b - 500")
        assert format_result_line(record) == "http://fail.test/b - 500 - http://fail.test/b"

    def test_format_lastmod(self):
        entry = SitemapEntry("u", datetime(2025, 5, 7, tzinfo=timezone.utc))
        assert format_lastmod(entry) == "May 7, 2025"
        assert format_lastmod(SitemapEntry("u", None)) == ""

    def test_listing(self):
        lines = format_sitemap_listing(
            [
                SitemapEntry(f"{BASE}/news/", datetime(2025, 5, 27, tzinfo=timezone.utc)),
                SitemapEntry(f"{BASE}/about/", None),
            ]
        )
        assert lines == [
            "sitemap (2)",
            f"May 27, 2025        {BASE}/news/",
            f"                    {BASE}/about/",
        ]


# =============================================================================
# Parsers
# =============================================================================


class TestParsers:
    def test_every_command_has_a_handler(self):
        parser = build_shell_parser()
        choices = parser._subparsers._group_actions[0].choices
        assert set(choices) == set(COMMANDS)

    def test_unknown_command_raises(self):
        with pytest.raises(ShellUsageError):
            build_shell_parser().parse_args(["bogus"])

    def test_missing_argument_raises(self):
        with pytest.raises(ShellUsageError):
            build_shell_parser().parse_args(["host"])

    def test_invalid_choice_raises(self):
        with pytest.raises(ShellUsageError):
            build_shell_parser().parse_args(["extract", "links"])

    def test_main_args(self):
        args = parse_main_args(
            ["-o", "out", "-c", "host example.com", "-c", "list", "--no-interactive", "-v"]
        )
        assert args.output == "out"
        assert args.command == ["host example.com", "list"]
        assert args.no_interactive is True
        assert args.verbose is True
        assert args.timeout is None


# =============================================================================
# Dispatch
# =============================================================================


class TestRunCommand:
    def test_exit_words_and_empty_line_stop(self, session):
        assert run_command(session, "exit") is False
        assert run_command(session, "quit") is False
        assert run_command(session, "q") is False
        assert run_command(session, "") is False

    def test_help(self, session, logs):
        assert run_command(session, "help") is True
        assert "  extract seo" in _messages(logs)

    def test_requires_host(self, session, logs):
        assert run_command(session, "snapshot /") is True
        assert "set host first" in _messages(logs)

    def test_usage_error_keeps_running(self, session, logs):
        assert run_command(session, "frobnicate") is True
        assert "Use help to see available commands." in _messages(logs)

    def test_unbalanced_quotes(self, session, logs):
        assert run_command(session, 'host "example.com') is True
        assert any("quotation" in message for message in _messages(logs))


class TestHostCommands:
    def test_host_creates_snapshot_dir(self, session, tmp_path):
        run_command(session, "host example.com run-1")

        assert session.host == "example.com"
        assert session.snapshot_name == "run-1"
        assert session.snapshot_dir == tmp_path / "snapshots" / "example.com" / "run-1"
        assert session.snapshot_dir.is_dir()
        assert session.base_url == BASE

    def test_host_default_name(self, session):
        run_command(session, "host example.com")

        datetime.strptime(session.snapshot_name, "%Y-%m-%d_%H-%M")
        assert session.snapshot_dir.is_dir()

    def test_existing_snapshot_name(self, session, logs):
        run_command(session, "host example.com run-1")
        session.stashed_urls = [f"{BASE}/kept"]

        run_command(session, "host example.com run-1")

        assert "snapshot name already exists" in _messages(logs)
        assert session.stashed_urls == [f"{BASE}/kept"]

    def test_host_resets_lists(self, session):
        run_command(session, "host example.com run-1")
        session.stashed_urls = ["x"]
        session.scanned_urls = ["y"]

        run_command(session, "host example.com run-2")

        assert session.stashed_urls == []
        assert session.scanned_urls == []

    def test_select(self, session, logs):
        run_command(session, "host example.com run-1")
        run_command(session, "host example.com run-2")

        run_command(session, "select run-1")

        assert session.snapshot_name == "run-1"
        assert session.snapshot.snapshot_name == "run-1"

        run_command(session, "select nope")
        assert "snapshot dir does not exist" in _messages(logs)
        assert session.snapshot_name == "run-1"


class TestCaptureCommands:
    def test_robots_then_sitemap_then_snapshot(self, session, site, logs):
        site.add(
            f"{BASE}/robots.txt",
            b"User-agent: *\nSitemap: https://example.com/pages.xml\n",
            headers={"Content-Type": "text/plain"},
        )
        site.add(f"{BASE}/pages.xml", SITEMAP, headers=XML)
        site.add(f"{BASE}/a/", b"<html>a</html>", headers=HTML)
        site.add(f"{BASE}/b/", b"<html>b</html>", headers=HTML)

        run_command(session, "host example.com run")
        run_command(session, "robots")
        assert session.stashed_sitemaps == [f"{BASE}/pages.xml"]
        assert (session.snapshot_dir / "robots.txt").is_file()
        assert "1 sitemaps found" in _messages(logs)

        run_command(session, "sitemap")
        assert session.stashed_urls == [f"{BASE}/a/", f"{BASE}/b/"]
        messages = _messages(logs)
        assert "sitemap (3)" in messages
        assert f"May 1, 2024         {BASE}/b/" in messages
        assert "2 links stashed" in messages

        run_command(session, "snapshot")
        messages = _messages(logs)
        assert f"Snapshot taken - {BASE}/a/" in messages
        assert f"Snapshot taken - {BASE}/b/" in messages
        assert "2 pages" in messages
        assert session.scanned_urls == [f"{BASE}/a/", f"{BASE}/b/"]
        assert (session.snapshot_dir / "01-pages.xml").is_file()
        assert (session.snapshot_dir / "01-a.html").is_file()

    def test_robots_missing(self, session, logs):
        run_command(session, "host example.com run")
        run_command(session, "robots")
        assert any(m.startswith("download robots.txt - ") for m in _messages(logs))

    def test_sitemap_failure_keeps_stash(self, session, logs):
        run_command(session, "host example.com run")
        session.stashed_urls = [f"{BASE}/kept"]

        run_command(session, "sitemap")

        assert f"Failed to fetch {BASE}/sitemap.xml: HTTP 404" in _messages(logs)
        assert session.stashed_urls == [f"{BASE}/kept"]

    def test_sitemap_invalid_path(self, session, logs):
        run_command(session, "host example.com run")
        run_command(session, "sitemap sitemap.txt")
        assert "Sitemap path must end with .xml: sitemap.txt" in _messages(logs)

    @pytest.mark.parametrize(
        "body, encoding",
        [
            (gzip.compress(SITEMAP)[:-8], "gzip"),
            (b"not deflate at all", "deflate"),
            (b"garbage", "br"),
        ],
        ids=["truncated-gzip", "corrupt-deflate", "corrupt-brotli"],
    )
    def test_undecodable_sitemap_keeps_stash(self, session, site, logs, body, encoding):
        site.add(
            f"{BASE}/sitemap.xml", body, headers={**XML, "Content-Encoding": encoding}
        )
        run_command(session, "host example.com run")
        session.stashed_urls = [f"{BASE}/kept"]

        assert run_command(session, "sitemap") is True

        assert session.stashed_urls == [f"{BASE}/kept"]
        assert any(
            m.startswith(f"Cannot decode {encoding} body:") for m in _messages(logs)
        )

    def test_malformed_child_loc_keeps_stash(self, session, site, logs):
        site.add(
            f"{BASE}/sitemap.xml",
            b'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            b"<sitemap><loc>https://example.com:abc/child.xml</loc></sitemap>"
            b"</sitemapindex>",
            headers=XML,
        )
        run_command(session, "host example.com run")
        session.stashed_urls = [f"{BASE}/kept"]

        assert run_command(session, "sitemap") is True

        assert session.stashed_urls == [f"{BASE}/kept"]
        assert any(m.startswith("Invalid URL:") for m in _messages(logs))

    def test_undecodable_robots(self, session, site, logs):
        site.add(
            f"{BASE}/robots.txt",
            b"garbage",
            headers={"Content-Type": "text/plain", "Content-Encoding": "br"},
        )
        run_command(session, "host example.com run")
        session.stashed_sitemaps = [f"{BASE}/kept.xml"]

        assert run_command(session, "robots") is True

        assert session.stashed_sitemaps == [f"{BASE}/kept.xml"]
        assert "download robots.txt - Cannot decode br body: " in "\n".join(_messages(logs))
        assert not (session.snapshot_dir / "robots.txt").exists()

    def test_snapshot_with_arguments_and_errors(self, session, site, logs):
        site.add(f"{BASE}/", b"<html>home</html>", headers=HTML)

        run_command(session, "host example.com run")
        run_command(session, "snapshot / /missing")

        messages = _messages(logs)
        assert f"Snapshot taken - {BASE}/" in messages
        assert f"{BASE}/missing - 404 - {BASE}/missing" in messages
        assert session.stashed_urls == [f"{BASE}/", f"{BASE}/missing"]

    def test_discover_and_list(self, session, site, logs):
        site.add(
            f"{BASE}/",
            b'<html><a href="/">Home</a><a href="/next/">Next</a><a href="/x.png">img</a></html>',
            headers=HTML,
        )

        run_command(session, "host example.com run")
        run_command(session, "snapshot /")
        run_command(session, "discover")

        assert session.stashed_urls == [f"{BASE}/next/"]
        assert "1 links stashed" in _messages(logs)

        logs.clear()
        run_command(session, "list")
        assert _messages(logs) == [f"{BASE}/next/"]

    def test_import(self, session, tmp_path, logs):
        source = tmp_path / "urls.txt"
        source.write_text("/one/\n\n/two/\n", encoding="utf-8")

        run_command(session, "host example.com run")
        run_command(session, f"import {source}")

        assert session.stashed_urls == [f"{BASE}/one/", f"{BASE}/two/"]
        assert "2 stashed" in _messages(logs)

        run_command(session, f"import {tmp_path / 'missing.txt'}")
        assert any(m.startswith("file not found - ") for m in _messages(logs))


class TestPostProcessingCommands:
    def test_extract_seo(self, session, site, logs):
        site.add(f"{BASE}/", b"<html><title>Home</title></html>", headers=HTML)

        run_command(session, "host example.com run")
        run_command(session, "snapshot /")
        run_command(session, "extract seo")

        report = (session.snapshot_dir / "seo.txt").read_text(encoding="utf-8")
        assert report.startswith(f"url: {BASE}/\n")
        assert "title: Home\n" in report

    def test_extract_seo_empty_snapshot(self, session, logs):
        run_command(session, "host example.com run")
        run_command(session, "extract seo")
        assert "No HTML files found in current snapshot" in _messages(logs)

    def test_clean_and_restore(self, session, logs):
        run_command(session, "host example.com run")
        page = session.snapshot_dir / "01-index.html"
        page.write_text('<span data-nonce="a1b2c3d4e5"></span>', encoding="utf-8")

        run_command(session, "clean")
        assert page.read_text(encoding="utf-8") == '<span data-nonce="0000000000"></span>'
        assert "1 files cleaned" in _messages(logs)

        run_command(session, "restore backup")
        assert page.read_text(encoding="utf-8") == '<span data-nonce="a1b2c3d4e5"></span>'
        assert "backup restored (1 files)" in _messages(logs)

    def test_clear(self, session, tmp_path, logs):
        run_command(session, "host example.com run")

        run_command(session, "clear")

        assert not (tmp_path / "snapshots").exists()
        assert "snapshots cleared" in _messages(logs)


# =============================================================================
# Loop and entry point
# =============================================================================


class TestRunShell:
    def test_stops_on_exit_word(self, session):
        lines = iter(["host example.com run", "list", "exit", "host never.test"])
        run_shell(session, read_line=lambda prompt: next(lines))
        assert session.host == "example.com"
        assert next(lines) == "host never.test"

    def test_stops_on_eof(self, session):
        def read_line(prompt):
            raise EOFError

        run_shell(session, read_line=read_line)
        assert session.host is None


class TestMain:
    @pytest.fixture(autouse=True)
    def no_config(self, monkeypatch):
        monkeypatch.setattr("sitesnap.cli._load_config", lambda: None)
        monkeypatch.delenv("SITESNAP_TIMEOUT", raising=False)
        monkeypatch.delenv("SITESNAP_VERIFY_TLS", raising=False)

    def test_commands_without_shell(self, tmp_path):
        output = tmp_path / "out"
        code = main(["-o", str(output), "-c", "host example.com run", "--no-interactive"])
        assert code == 0
        assert (output / "example.com" / "run").is_dir()

    def test_exit_command_stops_early(self, tmp_path):
        output = tmp_path / "out"
        code = main(["-o", str(output), "-c", "exit", "-c", "host example.com run"])
        assert code == 0
        assert not output.exists()

    def test_invalid_environment_returns_1(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SITESNAP_TIMEOUT", "soon")
        assert main(["-o", str(tmp_path), "--no-interactive"]) == 1

    def test_keyboard_interrupt_returns_130(self, tmp_path, monkeypatch):
        def interrupt(session, read_line=input):
            raise KeyboardInterrupt

        monkeypatch.setattr("sitesnap.cli.run_shell", interrupt)
        assert main(["-o", str(tmp_path)]) == 130
