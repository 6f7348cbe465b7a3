#!/usr/bin/env -S python3 -B -u
"""
Session reporting and log file handling.

SessionReporter prints the start and finish lines with the elapsed time
and the end-of-run task summary. LogFileSession duplicates stdout and
stderr into a dated log file and prunes old log files when it opens.
"""

import logging
import time
from datetime import datetime, date
from pathlib import Path
from typing import Callable, List, Optional, TextIO, Tuple

from colorama import Fore, Style

from mastodon_cleanup.core.exceptions import ConfigurationError
from mastodon_cleanup.core.models import TaskResult


logger = logging.getLogger(__name__)

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_PREFIX = "mastodon-cleanup-"
LOG_FILE_GLOB = f"{LOG_FILE_PREFIX}*.log"
SECONDS_PER_DAY = 86400


def split_duration(seconds: int) -> Tuple[int, int, int]:
    """Split a number of seconds into (hours, minutes, seconds)."""
    seconds = max(0, int(seconds))
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return hours, minutes, seconds % 60


def format_duration(seconds: int) -> str:
    hours, minutes, secs = split_duration(seconds)
    return f"{hours} hours {minutes} minutes {secs} seconds"


class TeeWriter:
    """
    Text stream that writes to several streams at once.

    The first stream is the console; isatty() is always False so callers
    never emit terminal colour codes into the log file.
    """

    def __init__(self, *streams: TextIO):
        self.streams = streams

    def write(self, data: str) -> int:
        for stream in self.streams:
            stream.write(data)
        return len(data)

    def writelines(self, lines) -> None:
        for line in lines:
            self.write(line)

    def flush(self) -> None:
        for stream in self.streams:
            stream.flush()

    def isatty(self) -> bool:
        return False

    def writable(self) -> bool:
        return True


class LogFileSession:
    """
    Dated log file shared by the stdout and stderr tee writers.

    Usage:
        with LogFileSession(log_dir, sys.stdout, sys.stderr) as session:
            print("...", file=session.stdout)
    """

    def __init__(self, log_dir, stdout: TextIO, stderr: TextIO,
                 retention_days: int = 30, today: Optional[date] = None):
        self.log_dir = Path(log_dir)
        self.console_stdout = stdout
        self.console_stderr = stderr
        self.retention_days = retention_days
        self.today = today or date.today()
        self.log_file: Optional[Path] = None
        self.stdout: TextIO = stdout
        self.stderr: TextIO = stderr
        self._handle = None

    @property
    def log_file_path(self) -> Path:
        return self.log_dir / f"{LOG_FILE_PREFIX}{self.today.strftime('%Y-%m-%d')}.log"

    def open(self) -> None:
        """
        Create the log directory, open today's file and prune old files.

        Raises:
            ConfigurationError: the directory or file cannot be created
        """
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = self.log_file_path
            self._handle = open(self.log_file, 'a', encoding='utf-8')
        except OSError as e:
            raise ConfigurationError(f"Could not open log file in {self.log_dir}: {e}", cause=e)

        self.stdout = TeeWriter(self.console_stdout, self._handle)
        self.stderr = TeeWriter(self.console_stderr, self._handle)
        self.remove_expired_logs()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.flush()
            self._handle.close()
            self._handle = None
        self.stdout = self.console_stdout
        self.stderr = self.console_stderr

    def remove_expired_logs(self, now: Optional[float] = None) -> List[Path]:
        """Delete log files last modified more than retention_days ago."""
        now = now if now is not None else time.time()
        cutoff = now - self.retention_days * SECONDS_PER_DAY
        removed = []

        for log_file in sorted(self.log_dir.glob(LOG_FILE_GLOB)):
            if not log_file.is_file() or log_file == self.log_file:
                continue
            try:
                if log_file.stat().st_mtime < cutoff:
                    log_file.unlink()
                    removed.append(log_file)
                    logger.info(f"Removed expired log file {log_file}")
            except OSError as e:
                logger.warning(f"Could not remove expired log file {log_file}: {e}")

        return removed

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class SessionReporter:
    """Start/finish timestamps, elapsed time and the task summary."""

    def __init__(self, out: TextIO, clock: Callable[[], datetime] = datetime.now,
                 color: bool = False):
        self.out = out
        self.clock = clock
        self.color = color
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None

    def _now(self) -> datetime:
        return self.clock().replace(microsecond=0)

    def start(self) -> datetime:
        self.start_time = self._now()
        self._print(f"Script started at {self.start_time.strftime(TIME_FORMAT)}")
        return self.start_time

    def finish(self) -> int:
        """Print the finish line and return the elapsed seconds."""
        self.end_time = self._now()
        elapsed = self.elapsed_seconds()
        self._print(
            f"Script finished at {self.end_time.strftime(TIME_FORMAT)} "
            f"(Duration: {format_duration(elapsed)})"
        )
        return elapsed

    def elapsed_seconds(self) -> int:
        if self.start_time is None or self.end_time is None:
            return 0
        return int((self.end_time - self.start_time).total_seconds())

    def announce(self, message: str) -> None:
        self._print(message)

    def report_results(self, results: List[TaskResult]) -> None:
        if not results:
            self._print("No tasks enabled.")
            return

        succeeded = sum(1 for result in results if result.success)
        self._print(f"{succeeded}/{len(results)} tasks completed successfully")
        for result in results:
            if result.success:
                self._print(f"  {self._paint('✓', Fore.GREEN)} {result.task.value}")
            else:
                self._print(f"  {self._paint('✗', Fore.RED)} {result.task.value}: {result.error_message}")

    def _paint(self, text: str, color: str) -> str:
        if not self.color:
            return text
        return f"{color}{text}{Style.RESET_ALL}"

    def _print(self, message: str) -> None:
        print(message, file=self.out, flush=True)
