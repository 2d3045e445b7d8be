"""End-to-end tests for the dotsnapshot command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

import dotsnapshot
from core.paths import machine_identifier
from core.settings import ENV_OVERRIDES
from orchestrator import RunLock
from orchestrator.lock import LOCK_FILE_NAME


@pytest.fixture
def cli_env(tmp_path, monkeypatch, unit_scripts):
    for variable in ENV_OVERRIDES:
        monkeypatch.delenv(variable, raising=False)
    monkeypatch.setenv("DOTSNAPSHOT_HOME", str(tmp_path))

    def configure(*units, **values):
        payload = {
            "snapshot_target_dir": "snapshots",
            "logs_dir": "logs",
            "backup_retention_days": 30,
            "logging": {"level": "INFO", "color": False},
            "generators": list(units),
        }
        payload.update(values)
        config = tmp_path / "settings.json"
        config.write_text(json.dumps(payload), encoding="utf-8")
        monkeypatch.setenv("DOTSNAPSHOT_CONFIG", str(config))
        return tmp_path / "snapshots" / machine_identifier()

    return configure


def test_version(capsys):
    assert dotsnapshot.main(["--version"]) == 0
    assert capsys.readouterr().out.startswith("dotsnapshot ")


def test_list(cli_env, unit_scripts, capsys):
    cli_env(unit_scripts.make("alpha"), unit_scripts.make("beta"))

    assert dotsnapshot.main(["--list"]) == 0

    out = capsys.readouterr().out
    assert "alpha" in out and "Beta" in out
    assert unit_scripts.invocations() == []


def test_full_run(cli_env, unit_scripts):
    machine_root = cli_env(unit_scripts.make("alpha"), unit_scripts.make("beta"))

    assert dotsnapshot.main([]) == 0

    calls = unit_scripts.invocations()
    assert [call[:2] for call in calls] == [["alpha", "true"], ["beta", "true"]]
    assert calls[0][2] == calls[1][2]
    assert (machine_root / "backups").is_dir()
    assert (machine_root / "latest").is_dir()


def test_single_unit_run(cli_env, unit_scripts):
    cli_env(unit_scripts.make("alpha"), unit_scripts.make("beta"))

    assert dotsnapshot.main(["beta", "--timestamp", "20240101_000000"]) == 0
    assert unit_scripts.invocations() == [["beta", "false", "20240101_000000"]]


def test_failing_unit_exits_one(cli_env, unit_scripts):
    cli_env(unit_scripts.make("alpha", exit_code=2), unit_scripts.make("beta"))

    assert dotsnapshot.main([]) == 1
    assert [call[0] for call in unit_scripts.invocations()] == ["alpha"]


@pytest.mark.parametrize(
    "argv",
    [
        ["--timestamp", "not-a-timestamp"],
        ["--retention-days", "-1"],
        ["unknown-unit"],
        ["--config", "/nonexistent/settings.json"],
    ],
)
def test_configuration_problems_exit_one(cli_env, unit_scripts, argv):
    cli_env(unit_scripts.make("alpha"))

    assert dotsnapshot.main(argv) == 1
    assert unit_scripts.invocations() == []


def test_target_dir_override_reaches_units(cli_env, unit_scripts, tmp_path):
    dump = tmp_path / "target.txt"
    cli_env(unit_scripts.make("alpha", body=f'echo "$DSNP_SNAPSHOT_TARGET_DIR_ENV" > "{dump}"'))

    assert dotsnapshot.main(["--target-dir", str(tmp_path / "elsewhere"), "--no-machine-dirs"]) == 0

    assert dump.read_text(encoding="utf-8").strip() == str(tmp_path / "elsewhere")
    assert (tmp_path / "elsewhere" / "latest").is_dir()


def test_cleanup_and_stats(cli_env, unit_scripts):
    machine_root = cli_env(unit_scripts.make("alpha"))
    old = machine_root / "backups" / "20000101_000000"
    old.mkdir(parents=True)
    (old / "Brewfile").write_text("brew 'git'\n", encoding="utf-8")

    assert dotsnapshot.main(["--stats"]) == 0
    assert old.is_dir()

    assert dotsnapshot.main(["--cleanup"]) == 0
    assert not old.exists()
    assert unit_scripts.invocations() == []


def test_lock_contention_exits_one(cli_env, unit_scripts):
    machine_root = cli_env(unit_scripts.make("alpha"))
    machine_root.mkdir(parents=True)

    with RunLock(Path(machine_root) / LOCK_FILE_NAME):
        assert dotsnapshot.main([]) == 1
    assert unit_scripts.invocations() == []


def test_unreadable_backups_are_reported_as_filesystem_errors(cli_env, unit_scripts, monkeypatch, capsys):
    cli_env(unit_scripts.make("alpha"))

    def unreadable(backup_root, *, limit=5):
        raise PermissionError(f"Permission denied: '{backup_root}'")

    monkeypatch.setattr("backup.api.get_backup_stats", unreadable)

    assert dotsnapshot.main(["--stats"]) == 1
    output = capsys.readouterr().out
    assert "Filesystem error" in output
    assert "prepare snapshot directories" not in output
