#!/usr/bin/env -S python3 -B -u
"""
Pre-flight environment checks.

Verifies that the required external commands are installed and that the
target container is running before the lock is taken.
"""

import logging
import shutil
from typing import Iterable

from mastodon_cleanup.core.exceptions import MissingDependencyError, ContainerNotRunningError
from mastodon_cleanup.core.models import CleanupConfig
from mastodon_cleanup.executors.container_executor import CommandExecutor


logger = logging.getLogger(__name__)


class EnvironmentChecker:
    """Checks dependencies and container state for one run."""

    def __init__(self, config: CleanupConfig, executor: CommandExecutor):
        self.config = config
        self.executor = executor

    def check_dependencies(self, commands: Iterable[str] = None) -> None:
        """Raise MissingDependencyError for the first command not on PATH."""
        for command in (commands if commands is not None else self.config.dependencies):
            location = shutil.which(command)
            if location is None:
                raise MissingDependencyError(command)
            logger.debug(f"Found {command}: {location}")

    def check_container(self) -> None:
        """Raise ContainerNotRunningError unless the configured container runs."""
        container = self.config.container
        running = self.executor.list_running_containers()
        if running is not None:
            logger.debug(f"Running containers: {', '.join(running) or '(none)'}")
            is_running = container in running
        else:
            is_running = self.executor.is_container_running(container)

        if not is_running:
            raise ContainerNotRunningError(container, running=running)
        logger.info(f"Container '{container}' is running")

    def validate(self) -> None:
        self.check_dependencies()
        self.check_container()
