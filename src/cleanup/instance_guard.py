#!/usr/bin/env -S python3 -B -u
"""
Single-instance guard based on a PID file.

Usage:
    with InstanceGuard(config.pid_file):
        # only one cleanup run per host gets here
        ...

The PID file is held open with an exclusive flock() for the whole run, so
two instances can never both own it, even while taking over a stale file.
A file left behind by a dead process (its PID is no longer alive) is
overwritten. A stale file whose PID has since been reused by an unrelated
process is indistinguishable from a live lock and blocks the run.
"""

import fcntl
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Optional, TextIO

from mastodon_cleanup.core.exceptions import AlreadyRunningError, LockCreateError


logger = logging.getLogger(__name__)

# PIDs are short; anything longer is garbage
MAX_LOCK_CONTENT = 64


def _exit_on_signal(signum, frame):
    """Turn a termination signal into SystemExit so finally blocks run."""
    logger.warning(f"Received signal {signum}, releasing lock and exiting")
    sys.exit(128 + signum)


def _parse_pid(content: str) -> Optional[int]:
    first_line = content.strip().splitlines()[0] if content.strip() else ''
    try:
        return int(first_line)
    except ValueError:
        return None


class InstanceGuard:
    """Lock file keyed by process id, released on every exit path."""

    HANDLED_SIGNALS = tuple(
        sig for sig in (
            signal.SIGINT,
            signal.SIGTERM,
            getattr(signal, 'SIGHUP', None),
        ) if sig is not None
    )

    def __init__(self, pid_file, out: Optional[TextIO] = None):
        """
        Args:
            pid_file: Path of the lock file
            out: Stream for the stale-lock notice (defaults to sys.stdout)
        """
        self.pid_file = Path(pid_file)
        self.out = out
        self._fd: Optional[int] = None
        self._previous_handlers = {}

    @property
    def held(self) -> bool:
        return self._fd is not None

    def read_pid(self) -> Optional[int]:
        """PID recorded in the lock file, None if missing or unreadable."""
        try:
            content = self.pid_file.read_text()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Could not read {self.pid_file}: {e}")
            return None
        return _parse_pid(content)

    @staticmethod
    def is_process_alive(pid: int) -> bool:
        """Check if a process with this id exists."""
        if pid <= 0:
            return False
        try:
            # Signal 0 checks process existence without sending signal
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists, owned by another user
            return True
        except OSError:
            return False
        return True

    def acquire(self) -> None:
        """
        Take the lock or fail.

        Raises:
            AlreadyRunningError: another instance holds the lock, or the
                lock file names a live process
            LockCreateError: the lock file could not be opened or written
        """
        fd = self._open_locked()
        try:
            content = self._read_content(fd)
            if content.strip():
                stored_pid = _parse_pid(content)
                if stored_pid is None:
                    self._print(f"Unreadable lock file {self.pid_file} "
                                f"(content: {content.strip()[:20]!r}). Replacing it.")
                elif self.is_process_alive(stored_pid):
                    raise AlreadyRunningError(stored_pid, str(self.pid_file))
                else:
                    self._print(f"No running process for PID: {stored_pid}. "
                                f"Replacing {self.pid_file}.")
            self._write_pid(fd)
        except AlreadyRunningError:
            os.close(fd)
            raise
        except OSError as e:
            self._unlink_if_current(fd)
            os.close(fd)
            raise LockCreateError(str(self.pid_file), reason=e.strerror or str(e), cause=e)

        self._fd = fd
        self._install_signal_handlers()
        logger.debug(f"Acquired lock {self.pid_file} (PID {os.getpid()})")

    def release(self) -> None:
        """Delete the lock file and drop the lock. Safe to call more than once."""
        self._restore_signal_handlers()
        if self._fd is None:
            return

        fd, self._fd = self._fd, None
        # Unlink before unlocking so a waiting instance never locks a dead inode
        self._unlink_if_current(fd)
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug(f"Released lock {self.pid_file}")

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    def _open_locked(self) -> int:
        """Open the lock file and flock() it, retrying if it was replaced meanwhile."""
        while True:
            try:
                fd = os.open(str(self.pid_file), os.O_CREAT | os.O_RDWR, 0o644)
            except OSError as e:
                raise LockCreateError(str(self.pid_file), reason=e.strerror or str(e), cause=e)

            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                stored_pid = _parse_pid(self._read_content(fd))
                os.close(fd)
                raise AlreadyRunningError(stored_pid if stored_pid is not None else -1,
                                          str(self.pid_file))
            except OSError as e:
                os.close(fd)
                raise LockCreateError(str(self.pid_file), reason=e.strerror or str(e), cause=e)

            if self._is_current(fd):
                return fd
            # Previous owner unlinked the file between our open and flock
            os.close(fd)

    def _is_current(self, fd: int) -> bool:
        try:
            on_disk = os.stat(str(self.pid_file))
        except FileNotFoundError:
            return False
        opened = os.fstat(fd)
        return (on_disk.st_dev, on_disk.st_ino) == (opened.st_dev, opened.st_ino)

    @staticmethod
    def _read_content(fd: int) -> str:
        os.lseek(fd, 0, os.SEEK_SET)
        return os.read(fd, MAX_LOCK_CONTENT).decode('utf-8', errors='replace')

    @staticmethod
    def _write_pid(fd: int) -> None:
        os.ftruncate(fd, 0)
        os.lseek(fd, 0, os.SEEK_SET)
        os.write(fd, f"{os.getpid()}\n".encode())
        os.fsync(fd)

    def _unlink_if_current(self, fd: int) -> None:
        if not self._is_current(fd):
            return
        try:
            self.pid_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Could not remove {self.pid_file}: {e}")

    def _install_signal_handlers(self) -> None:
        # signal.signal only works from the main thread
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in self.HANDLED_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, _exit_on_signal)

    def _restore_signal_handlers(self) -> None:
        while self._previous_handlers:
            sig, handler = self._previous_handlers.popitem()
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)

    def _print(self, message: str) -> None:
        print(message, file=self.out if self.out is not None else sys.stdout)
