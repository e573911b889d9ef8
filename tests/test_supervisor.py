"""Tests for the BackendSupervisor registry and the shell startup hook."""

from __future__ import annotations

import sys
import time

import pytest

from backend_shell.local.config import MergedSettings
from backend_shell.local.supervisor import (
    BackendSupervisor,
    ExitFailure,
    LaunchError,
    Success,
    bootstrap,
)
from backend_shell.local.supervisor import startup

SLEEP_FOREVER = "import time\nwhile True:\n    time.sleep(0.1)\n"


@pytest.fixture
def settings(tmp_path):
    settings = MergedSettings(overrides_path=tmp_path / "overrides.json")
    settings.BACKEND_ROOT = tmp_path
    settings.BACKEND_WORKDIR = "."
    settings.BACKEND_LAUNCH_TIMEOUT = "0"
    return settings


@pytest.fixture(autouse=True)
def no_exit_hook(monkeypatch):
    monkeypatch.setattr(startup, "_exit_hook_registered", True)


def test_supervisor_is_shared():
    assert BackendSupervisor() is BackendSupervisor()


def test_launch_tracks_until_done(backend_supervisor, python_config, sink, tmp_path):
    gate = tmp_path / "gate"
    code = "import os, sys, time\nwhile not os.path.exists(sys.argv[1]):\n    time.sleep(0.01)\n"
    handle = backend_supervisor.launch(python_config(code, str(gate)), sink=sink)
    assert handle in backend_supervisor.active()
    assert backend_supervisor.is_running()

    gate.touch()
    assert handle.result(timeout=30) == Success()
    assert handle.join(timeout=5)
    assert handle not in backend_supervisor.active()


def test_shutdown_terminates_active_backends(backend_supervisor, python_config, sink, fast_settings):
    handles = [backend_supervisor.launch(python_config(SLEEP_FOREVER), sink=sink, name=f"b{i}") for i in range(2)]
    backend_supervisor.shutdown(timeout=20)
    for handle in handles:
        assert handle.done()
        outcome = handle.result()
        assert isinstance(outcome, (ExitFailure, LaunchError))
    assert not backend_supervisor.is_running()
    assert len(sink.reports) == 2


def test_shutdown_without_backends_is_noop(backend_supervisor):
    backend_supervisor.shutdown(timeout=1)
    assert backend_supervisor.active() == []


def test_bootstrap_returns_before_backend_finishes(backend_supervisor, settings, sink, tmp_path):
    gate = tmp_path / "gate"
    settings.BACKEND_EXECUTABLE = sys.executable
    settings.BACKEND_ARGS = [
        "-c",
        "import os, sys, time\nwhile not os.path.exists(sys.argv[1]):\n    time.sleep(0.01)\n",
        str(gate),
    ]
    started = time.monotonic()
    handle = bootstrap(backend_supervisor, sink=sink, settings=settings)
    assert time.monotonic() - started < 5
    assert not handle.done()
    assert handle.config.working_directory == tmp_path

    gate.touch()
    assert handle.result(timeout=30) == Success()
    assert sink.outcomes == [Success()]


def test_bootstrap_reports_missing_backend_as_launch_error(backend_supervisor, settings, sink):
    settings.BACKEND_EXECUTABLE = "does-not-exist-binary"
    settings.BACKEND_ARGS = "run cmd/voidspark/main.go"
    handle = bootstrap(backend_supervisor, sink=sink, settings=settings)
    outcome = handle.result(timeout=30)
    assert isinstance(outcome, LaunchError)
    assert "does-not-exist-binary" in outcome.message


def test_bootstrap_uses_injected_config(backend_supervisor, settings, sink, python_config):
    handle = bootstrap(backend_supervisor, launch_config=python_config("raise SystemExit(5)"), sink=sink, settings=settings)
    assert handle.result(timeout=30) == ExitFailure(5)


def test_bootstrap_rejects_malformed_args(backend_supervisor, settings, sink):
    settings.BACKEND_ARGS = "run 'unterminated"
    handle = bootstrap(backend_supervisor, sink=sink, settings=settings)
    assert handle.done()
    outcome = handle.result(timeout=1)
    assert isinstance(outcome, LaunchError)
    assert "BACKEND_ARGS" in outcome.message
    assert sink.outcomes == [outcome]
    assert backend_supervisor.active() == []


def test_bootstrap_rejects_malformed_timeout(backend_supervisor, settings, sink):
    settings.BACKEND_EXECUTABLE = sys.executable
    settings.BACKEND_ARGS = ["-c", "pass"]
    settings.BACKEND_LAUNCH_TIMEOUT = "soon"
    handle = bootstrap(backend_supervisor, sink=sink, settings=settings)
    outcome = handle.result(timeout=1)
    assert isinstance(outcome, LaunchError)
    assert "BACKEND_LAUNCH_TIMEOUT" in outcome.message
    assert backend_supervisor.active() == []


def test_bootstrap_applies_deadline(backend_supervisor, settings, sink, fast_settings):
    settings.BACKEND_EXECUTABLE = sys.executable
    settings.BACKEND_ARGS = ["-c", SLEEP_FOREVER]
    settings.BACKEND_LAUNCH_TIMEOUT = "0.3"
    handle = bootstrap(backend_supervisor, sink=sink, settings=settings)
    outcome = handle.result(timeout=30)
    assert isinstance(outcome, ExitFailure)
    assert handle.cancel_reason == "deadline exceeded"


def test_resolve_backend_root_warns_on_missing_dir(settings, tmp_path, caplog):
    settings.BACKEND_ROOT = tmp_path / "missing"
    root = startup.resolve_backend_root(settings)
    assert root == tmp_path / "missing"
    assert "not an existing directory" in caplog.text
