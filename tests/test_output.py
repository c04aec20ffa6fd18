"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline and quiet mode
- JSON documents, file output
- print_table in all three modes
- Global instance management and convenience functions
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from specir import output as output_module
from specir.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("specir.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("specir.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    """AUTO resolves from the terminal and colour settings."""

    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_format_is_kept(self, non_tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON
        assert OutputManager(format=OutputFormat.RICH).format == OutputFormat.RICH


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    """Data goes to stdout, diagnostics go to stderr."""

    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("hello world")
        captured = capfd.readouterr()
        assert captured.out == "hello world\n"
        assert captured.err == ""

    @pytest.mark.parametrize(
        "method, prefix",
        [("success", ""), ("warning", "Warning: "), ("error", "Error: ")],
    )
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method, prefix):
        getattr(OutputManager(no_color=True), method)("something")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert captured.err == f"{prefix}something\n"

    def test_quiet_suppresses_success_only(self, capfd, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.success("done")
        mgr.warning("careful")
        mgr.error("broken")
        err = capfd.readouterr().err
        assert "done" not in err
        assert "careful" in err
        assert "broken" in err

    def test_plain_json_is_unchanged(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_json('{"a": 1}')
        assert json.loads(capfd.readouterr().out) == {"a": 1}

    def test_rich_json_is_highlighted(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).print_json('{"a": 1}')
        assert '"a"' in capfd.readouterr().out


class TestOutputFile:
    def test_data_written_to_file(self, capfd, tmp_path: Path, non_tty):
        target = tmp_path / "ir.json"
        target.write_text("stale", encoding="utf-8")
        mgr = OutputManager(format=OutputFormat.RICH, output_file=str(target))
        mgr.print_json('{"a": 1}')
        assert target.read_text(encoding="utf-8") == '{"a": 1}\n'
        assert capfd.readouterr().out == ""


# ------------------------------------------------------------------ #
# print_table
# ------------------------------------------------------------------ #


class TestPrintTable:
    """print_table in all three output modes."""

    def test_table_json_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.print_table(["id", "name"], [["1", "Alice"], ["2", "Bob"]])
        parsed = json.loads(capfd.readouterr().out)
        assert parsed == [{"id": "1", "name": "Alice"}, {"id": "2", "name": "Bob"}]

    def test_table_plain_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(["id", "name"], [["1", "Alice"]], title="ignored")
        lines = capfd.readouterr().out.strip().split("\n")
        assert lines == ["id\tname", "1\tAlice"]

    def test_table_rich_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(["id", "name"], [["1", "Alice"]], title="Users")
        out = capfd.readouterr().out
        assert "Alice" in out
        assert "Users" in out

    def test_table_empty_rows(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(["col1"], [])
        assert json.loads(capfd.readouterr().out) == []


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        reset_output()
        assert get_output() is get_output()

    def test_set_output_is_used_by_helpers(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.print_data("data")
        output_module.warning("careful")
        captured = capfd.readouterr()
        assert captured.out == "data\n"
        assert captured.err == "Warning: careful\n"
