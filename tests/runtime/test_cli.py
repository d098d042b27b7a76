"""Tests for the ``tabweave store`` commands."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from tabweave.cli import main


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.setenv("TABWEAVE_STORE", "local")
    monkeypatch.setenv("TABWEAVE_DATA_ROOT", str(tmp_path / "data"))
    monkeypatch.setenv("TABWEAVE_LOG_LEVEL", "WARNING")
    monkeypatch.delenv("TABWEAVE_LEGACY_DATA_ROOT", raising=False)
    monkeypatch.delenv("TABWEAVE_DATA_PREFIX", raising=False)
    # Keep loguru's sinks pointed at the real stderr, not CliRunner's capture.
    monkeypatch.setattr("tabweave.runtime.log.setup_logging", lambda level="INFO": None)
    return tmp_path


def test_migrate_requires_source(env):
    result = CliRunner().invoke(main, ["store", "migrate"])
    assert result.exit_code == 2
    assert "No legacy data root" in result.output


def test_migrate_copies_legacy_store(env):
    legacy = env / "legacy" / "storage"
    legacy.mkdir(parents=True)
    (legacy / "notes.json").write_text(json.dumps({"unsaved": "hello"}), encoding="utf-8")

    result = CliRunner().invoke(main, ["store", "migrate", "--from", str(env / "legacy")])
    assert result.exit_code == 0, result.output
    assert "Migrated 1 key(s)" in result.output

    copied = json.loads((env / "data" / "storage" / "notes.json").read_text(encoding="utf-8"))
    assert copied == {"unsaved": "hello"}

    again = CliRunner().invoke(main, ["store", "migrate", "--from", str(env / "legacy")])
    assert "Migrated 0 key(s)" in again.output


def test_usage(env):
    result = CliRunner().invoke(main, ["store", "usage"])
    assert result.exit_code == 0, result.output
    assert "0 bytes in use (local)" in result.output
