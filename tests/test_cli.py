"""
Tests for the command-line interface.

Commands run in-process through Typer's CliRunner against a temporary
store directory.
"""

import json

import pytest
from typer.testing import CliRunner

from signalshelf.cli import app, render_signals, render_tags
from signalshelf.types import Signal, TagCount


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, tmp_path):
    """Run a CLI command against a fresh store."""
    def _invoke(*args):
        return runner.invoke(app, ["--store", str(tmp_path), *args])
    return _invoke


def _add(invoke, url="https://example.com/a", title="Article A", *extra):
    result = invoke("add", url, title, *extra)
    assert result.exit_code == 0, result.output
    return result.stdout.strip()


class TestAdd:

    def test_prints_id(self, invoke):
        signal_id = _add(invoke)
        assert len(signal_id) == 12

    def test_json(self, invoke):
        result = invoke("--json", "add", "https://example.com", "Example", "-t", "UX", "-t", "ux")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["tags"] == ["ux"]
        assert data["status"] == "inbox"

    def test_validation_errors(self, invoke):
        result = invoke("add", "example.com", "x")
        assert result.exit_code == 1
        assert "URL must start with http:// or https://." in result.output
        assert "Title must be between 2 and 120 characters." in result.output


class TestList:

    def test_seeded_on_first_use(self, invoke):
        result = invoke("list")
        assert result.exit_code == 0
        assert "Fetch API reference" in result.stdout
        assert "Checkout UX patterns" in result.stdout

    def test_query_and_filters(self, invoke):
        _add(invoke, "https://example.com/x", "Findable thing", "--tag", "unique")
        result = invoke("--json", "list", "findable")
        titles = [s["title"] for s in json.loads(result.stdout)]
        assert titles == ["Findable thing"]

        result = invoke("--json", "list", "--tag", "UNIQUE")
        assert [s["title"] for s in json.loads(result.stdout)] == ["Findable thing"]

        result = invoke("--json", "list", "--status", "reading")
        assert [s["title"] for s in json.loads(result.stdout)] == ["Checkout UX patterns"]

    def test_sort_oldest(self, invoke):
        newest = json.loads(invoke("--json", "list").stdout)
        oldest = json.loads(invoke("--json", "list", "--sort", "oldest").stdout)
        assert oldest == list(reversed(newest))

    def test_pinned_first(self, invoke):
        signals = json.loads(invoke("--json", "list").stdout)
        last = signals[-1]["id"]
        assert invoke("pin", last).exit_code == 0
        result = invoke("--json", "list", "--pinned-first")
        assert json.loads(result.stdout)[0]["id"] == last


class TestGetUpdateDelete:

    def test_get(self, invoke):
        signal_id = _add(invoke)
        result = invoke("get", signal_id)
        assert result.exit_code == 0
        assert f"id: {signal_id}" in result.stdout
        assert "title: Article A" in result.stdout

    def test_get_missing(self, invoke):
        result = invoke("get", "nope")
        assert result.exit_code == 1
        assert "Not found: nope" in result.output

    def test_update(self, invoke):
        signal_id = _add(invoke, "https://example.com/a", "Article A", "-t", "old")
        result = invoke("--json", "update", signal_id, "--status", "done", "--tag", "New")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["status"] == "done"
        assert data["tags"] == ["new"]
        assert data["title"] == "Article A"

    def test_update_clear_tags(self, invoke):
        signal_id = _add(invoke, "https://example.com/a", "Article A", "-t", "old")
        result = invoke("--json", "update", signal_id, "--clear-tags")
        assert json.loads(result.stdout)["tags"] == []

    def test_update_invalid(self, invoke):
        signal_id = _add(invoke)
        result = invoke("update", signal_id, "--status", "later")
        assert result.exit_code == 1
        assert "Status must be inbox, reading, or done." in result.output

    def test_update_missing(self, invoke):
        result = invoke("update", "nope", "--status", "done")
        assert result.exit_code == 1
        assert "Not found: nope" in result.output

    def test_delete(self, invoke):
        signal_id = _add(invoke)
        result = invoke("delete", signal_id)
        assert result.exit_code == 0
        assert f"Deleted: {signal_id}" in result.stdout
        assert invoke("delete", signal_id).exit_code == 1


class TestOtherCommands:

    def test_tags(self, invoke):
        result = invoke("--json", "tags")
        tags = json.loads(result.stdout)
        assert {"name": "research", "count": 1} in tags
        assert [t["name"] for t in tags] == sorted(t["name"] for t in tags)

    def test_pin_toggles(self, invoke):
        signal_id = _add(invoke)
        assert f"Pinned: {signal_id}" in invoke("pin", signal_id).stdout
        assert f"Unpinned: {signal_id}" in invoke("pin", signal_id).stdout

    def test_reset(self, invoke):
        _add(invoke, "https://example.com/gone", "Soon gone")
        assert invoke("reset", "--yes").exit_code == 0
        result = invoke("list")
        assert "Soon gone" not in result.stdout
        assert "Fetch API reference" in result.stdout

    def test_health(self, invoke):
        result = invoke("health")
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["name"] == "signalshelf"

    def test_persistence_error(self, invoke, tmp_path, monkeypatch):
        """The traceback goes to the error log of the --store directory."""
        from signalshelf.errors import PersistenceError
        home = tmp_path / "home"
        monkeypatch.delenv("SIGNALSHELF_STORE_PATH", raising=False)
        monkeypatch.setenv("HOME", str(home))

        def fail(*args, **kwargs):
            raise PersistenceError("disk on fire")

        monkeypatch.setattr("signalshelf.api.Shelf.list_signals", fail)
        result = invoke("list")
        assert result.exit_code == 1
        assert "Error: disk on fire" in result.output
        assert (tmp_path / "signalshelf-errors.log").exists()
        assert "disk on fire" in (tmp_path / "signalshelf-errors.log").read_text()
        assert not (home / ".signalshelf").exists()


class TestRendering:

    def test_signal_line(self):
        signal = Signal(
            id="abc123abc123", url="https://x.io", title="Title", tags=["a", "b"],
            status="reading", created_at="2026-01-30T10:00:00.000Z", pinned=True,
        )
        line = render_signals([signal])
        assert line.startswith("abc123abc123 *reading")
        assert "2026-01-30" in line
        assert line.endswith("Title  [a, b]")

    def test_tags_aligned(self):
        output = render_tags([TagCount("a", 3), TagCount("longer", 1)])
        assert output.splitlines() == ["a       3", "longer  1"]

    def test_empty(self):
        assert render_signals([]) == ""
        assert render_tags([]) == ""
