"""Shared test fixtures: recording sinks and small child programs."""

from __future__ import annotations

import os
import stat
import sys
import threading
from pathlib import Path

import pytest

from backend_shell.local.config import effective_settings
from backend_shell.local.supervisor import BackendSupervisor, LaunchConfig, StatusSink


class RecordingSink(StatusSink):
    """Sink that records every report. No output."""

    def __init__(self) -> None:
        self.reports: list[tuple] = []
        self.delivered = threading.Event()

    def report(self, name, outcome, diagnostics=None):
        self.reports.append((name, outcome, diagnostics))
        self.delivered.set()

    @property
    def outcomes(self):
        return [outcome for _, outcome, _ in self.reports]


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def python_config():
    """Factory for a LaunchConfig running a Python snippet in a child interpreter."""
    def _factory(code: str, *args: str, cwd: str | Path = ".") -> LaunchConfig:
        return LaunchConfig(sys.executable, ("-c", code, *args), Path(cwd))
    return _factory


@pytest.fixture
def write_script(tmp_path, monkeypatch):
    """Writes small executable shell scripts into a directory put on PATH."""
    directory = tmp_path / "bin"
    directory.mkdir()
    monkeypatch.setenv("PATH", f"{directory}{os.pathsep}{os.environ.get('PATH', '')}")

    def _write(name: str, body: str) -> Path:
        script = directory / name
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _write


@pytest.fixture
def fast_settings(monkeypatch):
    """Shortens the supervisor's timings so cancellation tests finish quickly."""
    monkeypatch.setattr(effective_settings, "WAIT_POLL_INTERVAL", 0.05)
    monkeypatch.setattr(effective_settings, "GRACEFUL_SHUTDOWN_TIMEOUT", 2)
    monkeypatch.setattr(effective_settings, "PIPE_DRAIN_TIMEOUT", 1)
    return effective_settings


@pytest.fixture
def backend_supervisor():
    supervisor = BackendSupervisor()
    yield supervisor
    supervisor.shutdown(timeout=10)
