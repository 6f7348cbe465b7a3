#!/usr/bin/env -S python3 -B -u
"""
Test Suite for the Container Executor

Tests the docker command line wrapper with subprocess mocked out, the
tootctl argv builder and the pre-flight environment checks.
"""

import io
import os
import signal
import subprocess
import tempfile
import time
import unittest
from pathlib import Path
from unittest import mock

from mastodon_cleanup.cleanup.environment import EnvironmentChecker
from mastodon_cleanup.cleanup.instance_guard import InstanceGuard
from mastodon_cleanup.core.exceptions import ContainerNotRunningError, MissingDependencyError
from mastodon_cleanup.core.models import CleanupConfig
from mastodon_cleanup.executors.container_executor import DockerExecutor, EXIT_NOT_EXECUTABLE
from mastodon_cleanup.executors.tootctl import TootctlClient

from fake_executor import FakeExecutor, tootctl


SUBPROCESS = 'mastodon_cleanup.executors.container_executor.subprocess'

SLOW_RUNTIME = """#!/bin/sh
echo started
exec sleep 8
"""


class SignalOnOutput(io.StringIO):
    """Output stream that sends SIGTERM to this process on the first line."""

    def write(self, data):
        written = super().write(data)
        if 'started' in data:
            os.kill(os.getpid(), signal.SIGTERM)
        return written


class TestListRunningContainers(unittest.TestCase):

    @mock.patch(f'{SUBPROCESS}.run')
    def test_parses_names(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="mastodon\nmastodon-db\n\n", stderr=""
        )

        executor = DockerExecutor()

        self.assertEqual(executor.list_running_containers(), ['mastodon', 'mastodon-db'])
        mock_run.assert_called_once_with(['docker', 'ps', '--format', '{{.Names}}'],
                                         capture_output=True, text=True)
        self.assertTrue(executor.is_container_running('mastodon'))
        self.assertFalse(executor.is_container_running('mastodon-d'))

    @mock.patch(f'{SUBPROCESS}.run')
    def test_daemon_error_means_nothing_running(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=1, stdout="", stderr="Cannot connect to the Docker daemon"
        )

        self.assertEqual(DockerExecutor().list_running_containers(), [])

    @mock.patch(f'{SUBPROCESS}.run', side_effect=FileNotFoundError("docker"))
    def test_missing_binary_means_nothing_running(self, mock_run):
        self.assertFalse(DockerExecutor().is_container_running('mastodon'))

    @mock.patch(f'{SUBPROCESS}.run')
    def test_alternative_runtime(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="mastodon\n", stderr=""
        )

        DockerExecutor('podman').list_running_containers()

        self.assertEqual(mock_run.call_args[0][0][0], 'podman')


class TestExec(unittest.TestCase):

    @mock.patch(f'{SUBPROCESS}.Popen')
    def test_streams_output_and_returns_exit_code(self, mock_popen):
        proc = mock_popen.return_value
        proc.stdout = io.StringIO("Removed 3 statuses\nDone\n")
        proc.wait.return_value = 0
        out = io.StringIO()

        result = DockerExecutor().exec('mastodon', tootctl('cache', 'clear'), out=out)

        self.assertEqual(mock_popen.call_args[0][0],
                         ['docker', 'exec', 'mastodon', 'bundle', 'exec', 'tootctl', 'cache', 'clear'])
        self.assertEqual(mock_popen.call_args[1]['stderr'], subprocess.STDOUT)
        self.assertEqual(out.getvalue(), "Removed 3 statuses\nDone\n")
        self.assertTrue(result.success)
        self.assertEqual(result.command, tootctl('cache', 'clear'))

    @mock.patch(f'{SUBPROCESS}.Popen')
    def test_non_zero_exit(self, mock_popen):
        proc = mock_popen.return_value
        proc.stdout = io.StringIO("")
        proc.wait.return_value = 2

        result = DockerExecutor().exec('mastodon', ['false'], out=io.StringIO())

        self.assertFalse(result.success)
        self.assertEqual(result.exit_code, 2)

    @mock.patch(f'{SUBPROCESS}.Popen', side_effect=FileNotFoundError("docker"))
    def test_runtime_not_executable(self, mock_popen):
        result = DockerExecutor().exec('mastodon', ['true'], out=io.StringIO())

        self.assertEqual(result.exit_code, EXIT_NOT_EXECUTABLE)
        self.assertFalse(result.success)


class TestTootctlClient(unittest.TestCase):

    def test_commands(self):
        executor = FakeExecutor()
        client = TootctlClient(executor, 'mastodon')

        client.accounts_prune()
        client.media_remove(5, prune_profiles=True)
        client.disk_usage('/srv/media')

        self.assertEqual(executor.commands, [
            tootctl('accounts', 'prune'),
            tootctl('media', 'remove', '--prune-profiles', '--days', '5'),
            ('df', '-h', '/srv/media'),
        ])

    def test_output_goes_to_client_stream(self):
        out = io.StringIO()
        TootctlClient(FakeExecutor(), 'mastodon', out=out).cache_clear()
        self.assertEqual(out.getvalue(), "ran: bundle exec tootctl cache clear\n")


class TestEnvironmentChecker(unittest.TestCase):

    @mock.patch('mastodon_cleanup.cleanup.environment.shutil.which')
    def test_checks_every_dependency(self, mock_which):
        mock_which.side_effect = lambda cmd: None if cmd == 'df' else f"/usr/bin/{cmd}"
        config = CleanupConfig(dependencies=('docker', 'df'))

        with self.assertRaises(MissingDependencyError) as ctx:
            EnvironmentChecker(config, FakeExecutor()).check_dependencies()

        self.assertEqual(ctx.exception.command, 'df')

    def test_container_check(self):
        executor = FakeExecutor(running=('mastodon',))
        EnvironmentChecker(CleanupConfig(), executor).check_container()

        with self.assertRaises(ContainerNotRunningError) as ctx:
            EnvironmentChecker(CleanupConfig(container='web'), executor).check_container()

        self.assertEqual(ctx.exception.container, 'web')
        self.assertEqual(executor.container_checks, ['mastodon', 'web'])

    @mock.patch.object(DockerExecutor, 'list_running_containers', return_value=['other'])
    def test_running_containers_listed_in_details(self, mock_list):
        with self.assertRaises(ContainerNotRunningError) as ctx:
            EnvironmentChecker(CleanupConfig(), DockerExecutor()).check_container()

        self.assertEqual(ctx.exception.details['running_containers'], 'other')
        mock_list.assert_called_once_with()

    @mock.patch.object(DockerExecutor, 'is_container_running')
    @mock.patch.object(DockerExecutor, 'list_running_containers', return_value=['mastodon'])
    def test_running_container_listed_once(self, mock_list, mock_running):
        EnvironmentChecker(CleanupConfig(), DockerExecutor()).check_container()

        mock_list.assert_called_once_with()
        mock_running.assert_not_called()


@unittest.skipUnless(os.name == 'posix', "needs POSIX signals and /bin/sh")
class TestTermination(unittest.TestCase):
    """A termination signal must not wait for the running remote command."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        base = Path(self.temp_dir.name)
        self.pid_file = base / "mastodon-cleanup.pid"
        self.runtime = base / "slow-docker"
        self.runtime.write_text(SLOW_RUNTIME)
        self.runtime.chmod(0o755)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_sigterm_during_slow_command_releases_lock(self):
        executor = DockerExecutor(str(self.runtime))
        start = time.monotonic()

        with self.assertRaises(SystemExit) as ctx:
            with InstanceGuard(self.pid_file, out=io.StringIO()):
                executor.exec('mastodon', tootctl('cache', 'clear'), out=SignalOnOutput())

        self.assertLess(time.monotonic() - start, 5)
        self.assertEqual(ctx.exception.code, 128 + signal.SIGTERM)
        self.assertFalse(self.pid_file.exists())


if __name__ == '__main__':
    unittest.main()
