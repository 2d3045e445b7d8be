"""Advisory lock preventing two runs against one machine root."""
from __future__ import annotations

import fcntl
import os
from pathlib import Path
from typing import IO, Optional

from .errors import RunLockError

LOCK_FILE_NAME = ".dotsnapshot.lock"


class RunLock:
    """Exclusive, non-blocking ``flock`` held for the duration of a run."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._handle: Optional[IO[str]] = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        if self._handle is not None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        handle = self._path.open("a+", encoding="utf-8")
        try:
            fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as exc:
            handle.close()
            raise RunLockError(f"Another dotsnapshot run holds {self._path}") from exc
        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()}\n")
        handle.flush()
        self._handle = handle

    def release(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            fcntl.flock(handle, fcntl.LOCK_UN)
        finally:
            handle.close()

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False


__all__ = ["LOCK_FILE_NAME", "RunLock"]
