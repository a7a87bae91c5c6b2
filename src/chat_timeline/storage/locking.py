"""Advisory file lock for whole-store writes.

The store is always rewritten as a single document, so two processes saving
at once would otherwise interleave their temporary files.  The lock is a
sentinel file created with exclusive-create mode, which is atomic on POSIX
and Windows alike.

Classes
-------
FileLock
    Exclusive lock on a sentinel ``.lock`` file, usable as a context manager.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import IO

logger = logging.getLogger(__name__)

_POLL_INTERVAL_SECONDS: float = 0.05


class FileLock:
    """Cross-platform advisory file lock using exclusive file creation.

    Parameters
    ----------
    lock_path:
        Path to the sentinel lock file.  The file is created on acquisition
        and deleted on release.
    timeout:
        Maximum number of seconds to wait before raising :class:`TimeoutError`.

    Raises
    ------
    TimeoutError
        If the lock cannot be acquired within *timeout* seconds.
    """

    def __init__(self, lock_path: str | Path, timeout: float = 10.0) -> None:
        self._lock_path: Path = Path(lock_path)
        self._timeout: float = timeout
        self._lock_file: IO[str] | None = None

    @property
    def locked(self) -> bool:
        """True while this instance holds the lock."""
        return self._lock_file is not None

    def acquire(self) -> None:
        """Acquire the lock, blocking until success or timeout.

        Raises
        ------
        TimeoutError
            If the lock cannot be acquired within the configured timeout.
        """
        start = time.monotonic()
        while True:
            try:
                self._lock_file = open(self._lock_path, "x")
                return
            except FileExistsError:
                if time.monotonic() - start >= self._timeout:
                    raise TimeoutError(
                        f"Could not acquire lock {self._lock_path} within {self._timeout}s"
                    ) from None
                time.sleep(_POLL_INTERVAL_SECONDS)

    def release(self) -> None:
        """Release the lock and delete the sentinel file.

        Calling ``release()`` when the lock is not held is a no-op.
        """
        if self._lock_file is None:
            return
        self._lock_file.close()
        self._lock_file = None
        try:
            self._lock_path.unlink()
        except FileNotFoundError:
            logger.debug("FileLock: sentinel %s already removed", self._lock_path)

    def __enter__(self) -> FileLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.release()
