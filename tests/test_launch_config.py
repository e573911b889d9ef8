"""Tests for LaunchConfig: immutability and anchor resolution."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from backend_shell.local.config import MergedSettings
from backend_shell.local.supervisor.launch_config import LaunchConfig, resolve_against_anchor


def test_launch_config_is_frozen():
    cfg = LaunchConfig("go", ["run", "main.go"], Path("."))
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.executable = "python"  # type: ignore[misc]


def test_arguments_are_coerced_to_tuple_of_strings():
    args = ["run", Path("cmd/main.go")]
    cfg = LaunchConfig("go", args)  # type: ignore[arg-type]
    args.append("--extra")
    assert cfg.arguments == ("run", str(Path("cmd/main.go")))


def test_command_puts_executable_first():
    cfg = LaunchConfig("go", ("run", "main.go"))
    assert cfg.command == ["go", "run", "main.go"]


def test_working_directory_is_absolute():
    cfg = LaunchConfig("go", (), Path("."))
    assert cfg.working_directory.is_absolute()
    assert cfg.working_directory == Path.cwd()


def test_from_anchor_resolves_relative_dir(tmp_path):
    cfg = LaunchConfig.from_anchor("go", ["run"], "services/../backend", tmp_path)
    assert cfg.working_directory == tmp_path / "backend"


def test_from_anchor_keeps_absolute_dir(tmp_path):
    other = tmp_path / "elsewhere"
    cfg = LaunchConfig.from_anchor("go", [], other, tmp_path / "anchor")
    assert cfg.working_directory == other


def test_resolution_does_not_touch_filesystem(tmp_path):
    missing = tmp_path / "does" / "not" / "exist"
    resolved = resolve_against_anchor("sub", missing)
    assert resolved == missing / "sub"
    assert not missing.exists()


def test_resolution_is_idempotent(tmp_path):
    cfg = LaunchConfig.from_anchor("go", [], "backend", tmp_path)
    again = LaunchConfig(cfg.executable, cfg.arguments, cfg.working_directory)
    assert again == cfg


def test_from_settings(tmp_path):
    settings = MergedSettings(overrides_path=tmp_path / "overrides.json")
    settings.BACKEND_ROOT = tmp_path
    settings.BACKEND_EXECUTABLE = "go"
    settings.BACKEND_ARGS = "run 'cmd/void spark/main.go'"
    settings.BACKEND_WORKDIR = "."
    cfg = LaunchConfig.from_settings(settings)
    assert cfg.command == ["go", "run", "cmd/void spark/main.go"]
    assert cfg.working_directory == tmp_path
