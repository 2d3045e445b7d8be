import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

import backup.retention as retention
from backup.errors import RetentionError
from backup.retention import RetentionPolicy, apply_retention, backup_age
from core.settings import ConfigurationError

NOW = datetime(2024, 7, 15, 12, 0, 0)


class StubLogger:
    def __init__(self) -> None:
        self.events = []

    def _record(self, level, event, message=None, **extra):  # pragma: no cover - simple recorder
        self.events.append((level, event, extra))

    def step(self, event, message=None, **extra):  # pragma: no cover - simple recorder
        self._record("step", event, message, **extra)

    def info(self, event, message=None, **extra):  # pragma: no cover - simple recorder
        self._record("info", event, message, **extra)

    def success(self, event, message=None, **extra):  # pragma: no cover - simple recorder
        self._record("success", event, message, **extra)

    def warning(self, event, message=None, **extra):  # pragma: no cover - simple recorder
        self._record("warning", event, message, **extra)

    def error(self, event, message=None, **extra):  # pragma: no cover - simple recorder
        self._record("error", event, message, **extra)

    def event(self, *, event, phase, ok, message=None, **extra):  # pragma: no cover - simple recorder
        self.events.append(("event", event, dict(extra, phase=phase, ok=ok)))

    def names(self, level):
        return [event for recorded_level, event, _extra in self.events if recorded_level == level]


def _make_run(base: Path, name: str) -> Path:
    run_dir = base / name
    run_dir.mkdir(parents=True)
    (run_dir / "Brewfile").write_text("brew 'git'\n", encoding="utf-8")
    return run_dir


def _stamp(moment: datetime) -> str:
    return moment.strftime("%Y%m%d_%H%M%S")


def test_apply_retention_removes_old_backups(tmp_path):
    base = tmp_path / "backups"
    names = [
        "20240401_120000",
        "20240601_120000",
        _stamp(NOW - timedelta(hours=1)),
        _stamp(NOW - timedelta(hours=2)),
    ]
    for name in names:
        _make_run(base, name)

    logger = StubLogger()
    summary = apply_retention(base, RetentionPolicy(30), logger=logger, now=NOW)

    assert summary.examined == 4
    assert sorted(summary.removed) == ["20240401_120000", "20240601_120000"]
    assert sorted(summary.kept) == sorted(names[2:])
    assert summary.removed_count == 2
    assert summary.kept_count == 2
    assert not (base / "20240401_120000").exists()
    assert not (base / "20240601_120000").exists()
    for name in names[2:]:
        assert (base / name).is_dir()
    assert logger.names("event") == ["retention_applied"]


def test_boundary_directory_is_kept(tmp_path):
    base = tmp_path / "backups"
    cutoff = NOW.timestamp() - 30 * 86400
    at_cutoff = _stamp(datetime.fromtimestamp(cutoff))
    just_older = _stamp(datetime.fromtimestamp(cutoff - 1))
    _make_run(base, at_cutoff)
    _make_run(base, just_older)

    summary = apply_retention(base, RetentionPolicy(30), logger=StubLogger(), now=NOW)

    assert summary.kept == [at_cutoff]
    assert summary.removed == [just_older]


def test_non_timestamp_names_fall_back_to_mtime(tmp_path):
    base = tmp_path / "backups"
    old = _make_run(base, "manual-copy")
    recent = _make_run(base, "20241340_120000")
    old_ts = NOW.timestamp() - 40 * 86400
    recent_ts = NOW.timestamp() - 86400
    os.utime(old, (old_ts, old_ts))
    os.utime(recent, (recent_ts, recent_ts))

    assert backup_age(old) == (old_ts, "mtime")

    summary = apply_retention(base, RetentionPolicy(30), logger=StubLogger(), now=NOW)

    assert summary.removed == ["manual-copy"]
    assert summary.kept == ["20241340_120000"]
    assert not old.exists()


def test_unknown_age_is_kept_with_warning(tmp_path, monkeypatch):
    base = tmp_path / "backups"
    _make_run(base, "mystery")
    monkeypatch.setattr(retention, "_modification_time", lambda path: None)

    logger = StubLogger()
    summary = apply_retention(base, RetentionPolicy(0), logger=logger, now=NOW)

    assert summary.kept == ["mystery"]
    assert summary.unknown_age == ["mystery"]
    assert summary.removed == []
    assert (base / "mystery").is_dir()
    assert "retention_unknown_age" in logger.names("warning")


def test_zero_mtime_counts_as_unknown(tmp_path):
    base = tmp_path / "backups"
    run_dir = _make_run(base, "epoch-zero")
    os.utime(run_dir, (0, 0))

    assert backup_age(run_dir) == (None, "unknown")


def test_zero_day_window_removes_everything_older_than_now(tmp_path):
    base = tmp_path / "backups"
    _make_run(base, _stamp(NOW - timedelta(seconds=1)))
    _make_run(base, _stamp(NOW))

    summary = apply_retention(base, RetentionPolicy(0), logger=StubLogger(), now=NOW)

    assert summary.removed == [_stamp(NOW - timedelta(seconds=1))]
    assert summary.kept == [_stamp(NOW)]


def test_missing_backup_root_is_a_no_op(tmp_path):
    summary = apply_retention(tmp_path / "absent", RetentionPolicy(30), logger=StubLogger(), now=NOW)

    assert summary.examined == 0
    assert summary.removed == []
    assert summary.kept == []


def test_files_and_symlinks_are_ignored(tmp_path):
    base = tmp_path / "backups"
    base.mkdir()
    (base / "20200101_000000").write_text("not a directory", encoding="utf-8")
    outside = _make_run(tmp_path / "elsewhere", "20200101_000000")
    (base / "20200102_000000").symlink_to(outside, target_is_directory=True)

    summary = apply_retention(base, RetentionPolicy(30), logger=StubLogger(), now=NOW)

    assert summary.examined == 0
    assert (base / "20200101_000000").is_file()
    assert outside.is_dir()


def test_failed_deletion_is_recorded_and_sweep_continues(tmp_path, monkeypatch):
    base = tmp_path / "backups"
    _make_run(base, "20240101_000000")
    _make_run(base, "20240102_000000")
    real_rmtree = retention.shutil.rmtree

    def flaky_rmtree(path, *args, **kwargs):
        if Path(path).name == "20240101_000000":
            raise PermissionError("read-only")
        return real_rmtree(path, *args, **kwargs)

    monkeypatch.setattr(retention.shutil, "rmtree", flaky_rmtree)
    logger = StubLogger()
    summary = apply_retention(base, RetentionPolicy(30), logger=logger, now=NOW)

    assert summary.failed == ["20240101_000000"]
    assert summary.removed == ["20240102_000000"]
    assert summary.kept == []
    assert "retention_remove_failed" in logger.names("error")


def test_unreadable_backup_root_raises(tmp_path):
    not_a_dir = tmp_path / "backups"
    not_a_dir.write_text("oops", encoding="utf-8")

    with pytest.raises(RetentionError):
        apply_retention(not_a_dir, RetentionPolicy(30), logger=StubLogger(), now=NOW)


@pytest.mark.parametrize("days", [-1, None, True, "30"])
def test_policy_rejects_invalid_days(days):
    with pytest.raises(ConfigurationError):
        RetentionPolicy(days)


def test_policy_cutoff():
    policy = RetentionPolicy(2)
    assert policy.window_seconds == 172800
    assert policy.cutoff(1_000_000.0) == 1_000_000.0 - 172800
