import io
import sys
from pathlib import Path

import pytest

from core.settings import ConfigurationError
from units import UnitFailure, UnitSession, parse_unit_argv
from units.editors import settings_candidates, user_settings_path


@pytest.fixture
def unit_env(tmp_path, monkeypatch):
    monkeypatch.delenv("DOTSNAPSHOT_CONFIG", raising=False)
    return {
        "DSNP_SNAPSHOT_TARGET_DIR_ENV": str(tmp_path / "snapshots"),
        "DSNP_LOGS_DIR_ENV": str(tmp_path / "logs"),
        "DSNP_USE_MACHINE_DIRECTORIES_ENV": "false",
        "DSNP_BACKUP_RETENTION_DAYS_ENV": "5",
    }


def _session(tmp_path, unit_env, argv):
    return UnitSession.from_argv("demo", argv, project_root=tmp_path, environ=unit_env, stream=io.StringIO())


def test_parse_unit_argv():
    assert parse_unit_argv([]) == (False, None)
    assert parse_unit_argv(["true"]) == (True, None)
    assert parse_unit_argv(["false", "20240101_000000"]) == (False, "20240101_000000")
    with pytest.raises(ConfigurationError):
        parse_unit_argv(["yes"])
    with pytest.raises(ConfigurationError):
        parse_unit_argv(["true", "20240101_000000", "extra"])


def test_from_argv_resolves_forwarded_paths(tmp_path, unit_env):
    session = _session(tmp_path, unit_env, ["true", "20240101_000000"])

    assert session.paths.latest_dir == tmp_path / "snapshots" / "latest"
    assert session.context.timestamp == "20240101_000000"
    assert session.context.backup_enabled is True
    assert session.settings.backup_retention_days == 5
    assert session.paths.latest_dir.is_dir()
    assert session.paths.backup_root.is_dir()
    assert (tmp_path / "logs" / "demo.log").exists()


def test_from_argv_rejects_bad_timestamp(tmp_path, unit_env):
    with pytest.raises(ConfigurationError):
        _session(tmp_path, unit_env, ["true", "yesterday"])


def test_prepare_artifact_captures_then_removes(tmp_path, unit_env):
    session = _session(tmp_path, unit_env, ["true", "20240101_000000"])
    previous = session.artifact_path("Brewfile")
    previous.write_text("old", encoding="utf-8")

    path = session.prepare_artifact("Brewfile")

    assert path == previous
    assert not path.exists()
    assert (session.paths.backup_root / "20240101_000000" / "Brewfile").read_text(encoding="utf-8") == "old"


def test_prepare_artifact_without_backups(tmp_path, unit_env):
    session = _session(tmp_path, unit_env, ["false"])
    session.artifact_path("Brewfile").write_text("old", encoding="utf-8")

    session.prepare_artifact("Brewfile")

    assert not session.paths.backup_root.exists()


def test_write_command_output(tmp_path, unit_env):
    session = _session(tmp_path, unit_env, ["false"])

    path = session.write_command_output("listing", [sys.executable, "-c", "print('ext.one@1.0')"])

    assert path.read_text(encoding="utf-8") == "ext.one@1.0\n"


def test_run_command_failure(tmp_path, unit_env):
    session = _session(tmp_path, unit_env, ["false"])

    with pytest.raises(UnitFailure, match="status 4"):
        session.run_command([sys.executable, "-c", "import sys; sys.exit(4)"])
    with pytest.raises(UnitFailure):
        session.run_command([str(tmp_path / "missing-binary")])


def test_require_command(tmp_path, unit_env):
    session = _session(tmp_path, unit_env, ["false"])

    assert session.require_command("Shell", "sh")
    with pytest.raises(UnitFailure, match="not installed"):
        session.require_command("Nothing", "definitely-not-a-real-command-xyz")


def test_copy_first_existing_prefers_earlier_candidates(tmp_path, unit_env):
    session = _session(tmp_path, unit_env, ["false"])
    first = tmp_path / "dotfiles" / "settings.json"
    second = tmp_path / "user" / "settings.json"
    second.parent.mkdir()
    second.write_text('{"user": true}', encoding="utf-8")

    path = session.copy_first_existing("settings.json", [first, second])
    assert path.read_text(encoding="utf-8") == '{"user": true}'

    first.parent.mkdir()
    first.write_text('{"dotfiles": true}', encoding="utf-8")
    path = session.copy_first_existing("settings.json", [first, second])
    assert path.read_text(encoding="utf-8") == '{"dotfiles": true}'

    with pytest.raises(UnitFailure):
        session.copy_first_existing("settings.json", [tmp_path / "a", tmp_path / "b"])


def test_validate_artifact_and_json_check(tmp_path, unit_env):
    session = _session(tmp_path, unit_env, ["false"])
    empty = session.artifact_path("empty")
    empty.write_text("", encoding="utf-8")
    broken = session.artifact_path("broken.json")
    broken.write_text("{", encoding="utf-8")

    session.validate_artifact(empty)
    with pytest.raises(UnitFailure, match="was not created"):
        session.validate_artifact(session.artifact_path("absent"))
    assert session.check_json(broken) is False
    broken.write_text("{}", encoding="utf-8")
    assert session.check_json(broken) is True


def test_main_maps_failures_to_exit_status(tmp_path, unit_env):
    written = []

    def body(session):
        written.append(session.name)

    def failing(session):
        raise UnitFailure("tool missing")

    kwargs = {"project_root": tmp_path, "environ": unit_env, "stream": io.StringIO()}
    assert UnitSession.main("demo", body, ["false"], **kwargs) == 0
    assert written == ["demo"]
    assert UnitSession.main("demo", failing, ["false"], **kwargs) == 1
    assert UnitSession.main("demo", body, ["maybe"], **kwargs) == 1


def test_settings_candidates(tmp_path):
    candidates = settings_candidates(
        "cursor", "Cursor", environ={"DOTFILES_ROOT": str(tmp_path)}, home=Path("/home/u"), platform="darwin"
    )

    assert candidates == [
        tmp_path / "settings" / "cursor" / "settings.json",
        Path("/home/u/Library/Application Support/Cursor/User/settings.json"),
    ]
    assert user_settings_path("Code", home=Path("/home/u"), platform="linux") == Path(
        "/home/u/.config/Code/User/settings.json"
    )


def test_main_reports_filesystem_errors(tmp_path, unit_env):
    stream = io.StringIO()

    def unwritable(session):
        raise PermissionError("read-only file system")

    kwargs = {"project_root": tmp_path, "environ": unit_env, "stream": stream}
    assert UnitSession.main("demo", unwritable, ["false"], **kwargs) == 1
    assert "read-only file system" in stream.getvalue()
