#!/usr/bin/env -S python3 -B -u
"""
Test Suite for Session Reporting and Log Files

This module tests:
- Duration computation and formatting
- Start/finish lines and the task summary
- Tee writing to console and log file
- Removal of expired log files
"""

import io
import os
import tempfile
import time
import unittest
from datetime import datetime, date
from pathlib import Path

from mastodon_cleanup.cleanup.session import (
    LogFileSession, SessionReporter, TeeWriter, format_duration, split_duration
)
from mastodon_cleanup.core.exceptions import ConfigurationError
from mastodon_cleanup.core.models import Task, TaskResult

DAY = 86400


class TestDuration(unittest.TestCase):
    """Test elapsed time decomposition."""

    def test_split_duration(self):
        self.assertEqual(split_duration(65), (0, 1, 5))
        self.assertEqual(split_duration(0), (0, 0, 0))
        self.assertEqual(split_duration(3600), (1, 0, 0))
        self.assertEqual(split_duration(3 * 3600 + 59 * 60 + 59), (3, 59, 59))

    def test_format_duration(self):
        self.assertEqual(format_duration(65), "0 hours 1 minutes 5 seconds")

    def test_reporter_start_and_finish(self):
        times = iter([
            datetime(2024, 5, 1, 10, 0, 0, 250000),
            datetime(2024, 5, 1, 10, 1, 5, 900000),
        ])
        out = io.StringIO()
        reporter = SessionReporter(out, clock=lambda: next(times))

        reporter.start()
        elapsed = reporter.finish()

        self.assertEqual(elapsed, 65)
        lines = out.getvalue().splitlines()
        self.assertEqual(lines[0], "Script started at 2024-05-01 10:00:00")
        self.assertEqual(
            lines[1],
            "Script finished at 2024-05-01 10:01:05 (Duration: 0 hours 1 minutes 5 seconds)"
        )


class TestReportResults(unittest.TestCase):
    """Test the end-of-run summary."""

    def test_summary_lists_failures(self):
        out = io.StringIO()
        reporter = SessionReporter(out)
        reporter.report_results([
            TaskResult(task=Task.STATUSES_REMOVE, success=True),
            TaskResult(task=Task.CACHE_CLEAR, success=False, error_message="exit code 2"),
        ])

        output = out.getvalue()
        self.assertIn("1/2 tasks completed successfully", output)
        self.assertIn("✓ statuses-remove", output)
        self.assertIn("✗ cache-clear: exit code 2", output)
        self.assertNotIn("\x1b[", output)

    def test_colour_only_when_enabled(self):
        out = io.StringIO()
        SessionReporter(out, color=True).report_results(
            [TaskResult(task=Task.CACHE_CLEAR, success=True)]
        )
        self.assertIn("\x1b[", out.getvalue())

    def test_no_tasks(self):
        out = io.StringIO()
        SessionReporter(out).report_results([])
        self.assertIn("No tasks enabled.", out.getvalue())


class TestTeeWriter(unittest.TestCase):
    """Test the multi-writer."""

    def test_writes_to_all_streams(self):
        first, second = io.StringIO(), io.StringIO()
        tee = TeeWriter(first, second)

        print("hello", file=tee)
        tee.writelines(["a\n", "b\n"])
        tee.flush()

        self.assertEqual(first.getvalue(), "hello\na\nb\n")
        self.assertEqual(second.getvalue(), "hello\na\nb\n")
        self.assertFalse(tee.isatty())


class TestLogFileSession(unittest.TestCase):
    """Test log file creation and retention."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.log_dir = Path(self.temp_dir.name) / "logs"
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()

    def tearDown(self):
        self.temp_dir.cleanup()

    def _old_log(self, name, age_days):
        path = self.log_dir / name
        path.write_text("old\n")
        mtime = time.time() - age_days * DAY
        os.utime(path, (mtime, mtime))
        return path

    def test_creates_directory_and_dated_file(self):
        with LogFileSession(self.log_dir, self.stdout, self.stderr,
                            today=date(2024, 5, 1)) as session:
            print("to stdout", file=session.stdout)
            print("to stderr", file=session.stderr)
            log_file = session.log_file

        self.assertEqual(log_file, self.log_dir / "mastodon-cleanup-2024-05-01.log")
        content = log_file.read_text()
        self.assertIn("to stdout", content)
        self.assertIn("to stderr", content)
        self.assertEqual(self.stdout.getvalue(), "to stdout\n")
        self.assertEqual(self.stderr.getvalue(), "to stderr\n")

    def test_appends_to_existing_file(self):
        for message in ("first run", "second run"):
            with LogFileSession(self.log_dir, self.stdout, self.stderr,
                                today=date(2024, 5, 1)) as session:
                print(message, file=session.stdout)

        content = (self.log_dir / "mastodon-cleanup-2024-05-01.log").read_text()
        self.assertEqual(content, "first run\nsecond run\n")

    def test_removes_expired_logs_only(self):
        self.log_dir.mkdir(parents=True)
        expired = self._old_log("mastodon-cleanup-2024-01-01.log", 45)
        recent = self._old_log("mastodon-cleanup-2024-04-20.log", 10)
        unrelated = self._old_log("other.log", 90)

        with LogFileSession(self.log_dir, self.stdout, self.stderr,
                            retention_days=30, today=date(2024, 5, 1)):
            pass

        self.assertFalse(expired.exists())
        self.assertTrue(recent.exists())
        self.assertTrue(unrelated.exists())

    def test_close_restores_console_streams(self):
        session = LogFileSession(self.log_dir, self.stdout, self.stderr)
        session.open()
        self.assertIsInstance(session.stdout, TeeWriter)
        session.close()
        self.assertIs(session.stdout, self.stdout)
        self.assertIs(session.stderr, self.stderr)

    def test_unwritable_directory_raises_configuration_error(self):
        blocker = Path(self.temp_dir.name) / "file"
        blocker.write_text("not a directory")

        with self.assertRaises(ConfigurationError):
            LogFileSession(blocker / "logs", self.stdout, self.stderr).open()


if __name__ == '__main__':
    unittest.main()
