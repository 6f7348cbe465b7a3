#!/usr/bin/env -S python3 -B -u
"""
Container Executor Module - Command Execution Inside a Running Container

This module hides the container runtime behind a small interface so the
task logic only ever asks two questions: "is this container running?" and
"run this argv inside it". DockerExecutor implements the interface with
the docker (or podman) command line client.

Key features:
- Running-state check via `<runtime> ps --format {{.Names}}`
- `<runtime> exec <container> ...` with output streamed line by line
- No timeout: a hung remote command blocks until it finishes, but a
  termination signal still unwinds the caller without waiting for it
"""

import logging
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, TextIO

from mastodon_cleanup.core.models import CommandResult
from mastodon_cleanup.core.structured_logging import log_command_execution


logger = logging.getLogger(__name__)

# Exit code reported when the runtime binary itself cannot be started
EXIT_NOT_EXECUTABLE = 127


class CommandExecutor(ABC):
    """Interface for running commands in a named container."""

    @abstractmethod
    def is_container_running(self, container: str) -> bool:
        """Return True if a container with exactly this name is running."""

    def list_running_containers(self) -> Optional[List[str]]:
        """Names of all running containers, or None if the executor cannot list them."""
        return None

    @abstractmethod
    def exec(self, container: str, command: Sequence[str],
             out: Optional[TextIO] = None) -> CommandResult:
        """
        Run command inside the container and wait for it.

        Output of the command is written to out as it arrives.
        """


class DockerExecutor(CommandExecutor):
    """
    Executes commands through the docker command line client.

    Attributes:
        runtime (str): Runtime binary name, 'docker' or a compatible CLI
    """

    def __init__(self, runtime: str = 'docker'):
        self.runtime = runtime

    def list_running_containers(self) -> List[str]:
        """Names of all running containers, empty on query failure."""
        cmd = [self.runtime, 'ps', '--format', '{{.Names}}']
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            logger.error(f"Could not run {self.runtime}: {e}")
            return []

        if result.returncode != 0:
            logger.warning(f"{' '.join(cmd)} failed: {result.stderr.strip()}")
            return []

        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def is_container_running(self, container: str) -> bool:
        running = self.list_running_containers()
        logger.debug(f"Running containers: {', '.join(running) or '(none)'}")
        return container in running

    def exec(self, container: str, command: Sequence[str],
             out: Optional[TextIO] = None) -> CommandResult:
        out = out if out is not None else sys.stdout
        cmd = [self.runtime, 'exec', container] + list(command)
        log_command_execution(logger, cmd, container=container)

        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors='replace',
                bufsize=1
            )
        except OSError as e:
            logger.error(f"Could not start {self.runtime}: {e}")
            return CommandResult(command=tuple(command), exit_code=EXIT_NOT_EXECUTABLE)

        # SystemExit from a termination signal must propagate without waiting on the child
        try:
            for line in proc.stdout:
                out.write(line)
                out.flush()
            exit_code = proc.wait()
        finally:
            proc.stdout.close()

        log_command_execution(logger, cmd, container=container, success=exit_code == 0)
        return CommandResult(command=tuple(command), exit_code=exit_code)
