"""
Instance lock: keeps two carddown processes from rewriting the same files.

The lock is a zero-byte marker created with O_CREAT | O_EXCL; its
presence alone is the signal. Use it as a context manager so the marker
is removed on every exit path:

    with InstanceLock(settings.lock_path, force=force):
        ...
"""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from .exceptions import LockError, PersistenceError


class InstanceLock:
    """Exclusive-run guard backed by a marker file."""

    def __init__(self, path: Path, force: bool = False):
        self.path = Path(path)
        self.force = force
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """
        Create the marker file.

        Raises:
            LockError: If the marker already exists and force is not set
        """
        if self._held:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.force:
            logger.warning(f"Removing lock file {self.path}")
            self.path.unlink(missing_ok=True)

        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            raise LockError(self.path) from None
        except OSError as e:
            raise PersistenceError(f"Failed to create lock file ({e.strerror})", self.path) from e
        os.close(fd)

        self._held = True
        logger.debug(f"Acquired lock {self.path}")

    def release(self) -> None:
        """Remove the marker file if this instance created it."""
        if not self._held:
            return
        self.path.unlink(missing_ok=True)
        self._held = False
        logger.debug(f"Released lock {self.path}")

    def __enter__(self) -> InstanceLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
