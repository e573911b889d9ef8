"""Tests for the management console commands."""

from __future__ import annotations

import logging
import sys

import pytest

from backend_shell.local.config import effective_settings
from backend_shell.local.console import execute_command
from backend_shell.local.console import handler
from backend_shell.local.supervisor import startup


@pytest.fixture(autouse=True)
def no_exit_hook(monkeypatch):
    monkeypatch.setattr(startup, "_exit_hook_registered", True)


@pytest.fixture
def backend_settings(monkeypatch, tmp_path):
    monkeypatch.setattr(effective_settings, "BACKEND_ROOT", tmp_path)
    monkeypatch.setattr(effective_settings, "BACKEND_WORKDIR", ".")
    monkeypatch.setattr(effective_settings, "BACKEND_EXECUTABLE", sys.executable)
    monkeypatch.setattr(effective_settings, "BACKEND_ARGS", ["-c", "import time\nwhile True:\n    time.sleep(0.1)\n"])
    monkeypatch.setattr(effective_settings, "BACKEND_LAUNCH_TIMEOUT", "0")
    monkeypatch.setattr(effective_settings, "OVERRIDES_JSON_PATH", tmp_path / "overrides.json")
    monkeypatch.setattr(effective_settings, "STDERR_TAIL_LINES", effective_settings.STDERR_TAIL_LINES)
    return effective_settings


def test_help_does_not_exit(capsys):
    assert execute_command("help", []) is False
    assert "Available commands" in capsys.readouterr().out


def test_unknown_command(caplog):
    with caplog.at_level(logging.INFO):
        assert execute_command("frobnicate", []) is False
    assert "Unknown command: 'frobnicate'" in caplog.text


def test_start_status_stop(backend_settings, backend_supervisor, fast_settings, capsys):
    assert execute_command("start", []) is False
    handles = backend_supervisor.active()
    assert len(handles) == 1

    execute_command("start", [])
    assert len(backend_supervisor.active()) == 1

    execute_command("status", [])
    assert "Backend Status" in capsys.readouterr().out

    execute_command("stop", [])
    assert handles[0].done()
    assert not backend_supervisor.is_running()


def test_exit_stops_backend(backend_settings, backend_supervisor, fast_settings):
    execute_command("start", [])
    handle = backend_supervisor.active()[0]
    assert execute_command("exit", []) is True
    assert handle.done()


def test_status_when_stopped(backend_supervisor, capsys):
    execute_command("status", [])
    assert "Backend is STOPPED" in capsys.readouterr().out


def test_launch_command_waits_for_outcome(backend_settings, capsys):
    execute_command("launch", [sys.executable, "-c", "raise SystemExit(3)"])
    assert "failed with exit code 3" in capsys.readouterr().out


def test_launch_command_reports_missing_executable(backend_settings, capsys):
    execute_command("launch", ["does-not-exist-binary"])
    assert "could not be launched" in capsys.readouterr().out


def test_check_config(backend_settings):
    assert handler.check_configuration() is True


def test_check_config_fails_for_missing_executable(backend_settings, monkeypatch, caplog):
    monkeypatch.setattr(effective_settings, "BACKEND_EXECUTABLE", "does-not-exist-binary")
    assert handler.check_configuration() is False
    assert "not found on PATH" in caplog.text


def test_config_set_persists_override(backend_settings, capsys):
    execute_command("config", ["set", "stderr_tail_lines", "20"])
    assert effective_settings.STDERR_TAIL_LINES == 20
    assert backend_settings.OVERRIDES_JSON_PATH.exists()
    execute_command("config", ["show"])
    assert "STDERR_TAIL_LINES = 20" in capsys.readouterr().out


def test_config_set_rejects_unknown_key(backend_settings, capsys):
    execute_command("config", ["set", "PROCESS_TITLE", "x"])
    assert "not modifiable" in capsys.readouterr().out
