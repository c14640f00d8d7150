"""Caller-held lock serializing repository operations on one gear."""

import logging
from pathlib import Path
from typing import Optional, Union

from filelock import FileLock, Timeout

from .error_handling import GearLockedError

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".gear_repository.lock"


class GearLock:
    """Exclusive file lock on ``<container_dir>/.gear_repository.lock``.

    Populate, deploy and destroy assume at most one of them runs per gear;
    holding this lock around each call is how a caller provides that.
    ``blocking=False`` fails at once with ``GearLockedError`` instead of
    waiting. Acquisition is reentrant for the same ``GearLock`` object.

    Example:
        >>> with GearLock(container_dir):
        ...     repository.deploy()
    """

    def __init__(self, container_dir: Union[str, Path], blocking: bool = True):
        self.path = Path(container_dir) / LOCK_FILE_NAME
        self.blocking = blocking
        self._lock = FileLock(str(self.path))

    @property
    def held(self) -> bool:
        return self._lock.is_locked

    def acquire(self, blocking: Optional[bool] = None) -> "GearLock":
        if blocking is None:
            blocking = self.blocking
        try:
            self._lock.acquire(timeout=-1 if blocking else 0)
        except Timeout:
            raise GearLockedError(str(self.path)) from None
        logger.debug(f"Acquired {self.path}")
        return self

    def release(self) -> None:
        if not self._lock.is_locked:
            return
        self._lock.release()
        logger.debug(f"Released {self.path}")

    def __enter__(self) -> "GearLock":
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
