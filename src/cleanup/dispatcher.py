#!/usr/bin/env -S python3 -B -u
"""
Task dispatcher.

Runs every enabled task exactly once, in the order Task is declared.
A failed task is recorded and the next task still runs; nothing is
rolled back.
"""

import logging
from time import time
from typing import Callable, Dict, List

from mastodon_cleanup.core.exceptions import RemoteCommandError
from mastodon_cleanup.core.models import CleanupConfig, CommandResult, Task, TaskResult
from mastodon_cleanup.executors.tootctl import TootctlClient
from mastodon_cleanup.cleanup.session import SessionReporter


logger = logging.getLogger(__name__)

ANNOUNCEMENTS: Dict[Task, str] = {
    Task.ACCOUNTS_PRUNE: "Pruning inactive remote accounts...",
    Task.STATUSES_REMOVE: "Removing orphaned statuses...",
    Task.MEDIA_REMOVE: "Removing old cached media and profiles...",
    Task.MEDIA_REMOVE_ORPHAN: "Removing orphaned media files...",
    Task.PREVIEW_CARDS_REMOVE: "Removing old preview cards...",
    Task.CACHE_CLEAR: "Clearing Redis cache...",
    Task.MEDIA_USAGE: "Calculating media disk usage...",
}


class TaskDispatcher:
    """Maps enabled tasks to tootctl commands and runs them in order."""

    def __init__(self, config: CleanupConfig, client: TootctlClient, reporter: SessionReporter):
        self.config = config
        self.client = client
        self.reporter = reporter
        self._handlers: Dict[Task, Callable[[], List[CommandResult]]] = {
            Task.ACCOUNTS_PRUNE: self._accounts_prune,
            Task.STATUSES_REMOVE: self._statuses_remove,
            Task.MEDIA_REMOVE: self._media_remove,
            Task.MEDIA_REMOVE_ORPHAN: self._media_remove_orphans,
            Task.PREVIEW_CARDS_REMOVE: self._preview_cards_remove,
            Task.CACHE_CLEAR: self._cache_clear,
            Task.MEDIA_USAGE: self._media_usage,
        }

    def run(self) -> List[TaskResult]:
        """Run all enabled tasks and return their results in execution order."""
        results = []
        for task in self.config.ordered_tasks:
            results.append(self.run_task(task))
        return results

    def run_task(self, task: Task) -> TaskResult:
        self.reporter.announce(ANNOUNCEMENTS[task])
        start_time = time()

        commands = self._handlers[task]()

        result = TaskResult(
            task=task,
            success=all(command.success for command in commands),
            commands=commands,
            duration_seconds=time() - start_time
        )
        failed = next((command for command in commands if not command.success), None)
        if failed is not None:
            error = RemoteCommandError(list(failed.command), failed.exit_code)
            result.error_message = error.message
            logger.error(f"{task.value}: {error.message}")
        else:
            logger.info(f"{task.value} completed in {result.duration_seconds:.1f}s")
        return result

    def _accounts_prune(self) -> List[CommandResult]:
        return [self.client.accounts_prune()]

    def _statuses_remove(self) -> List[CommandResult]:
        return [self.client.statuses_remove(self.config.days)]

    def _media_remove(self) -> List[CommandResult]:
        first = self.client.media_remove(self.config.days)
        if not first.success:
            logger.warning("Skipping profile pruning because media removal failed")
            return [first]
        return [first, self.client.media_remove(self.config.days, prune_profiles=True)]

    def _media_remove_orphans(self) -> List[CommandResult]:
        return [self.client.media_remove_orphans()]

    def _preview_cards_remove(self) -> List[CommandResult]:
        return [self.client.preview_cards_remove(self.config.days)]

    def _cache_clear(self) -> List[CommandResult]:
        return [self.client.cache_clear()]

    def _media_usage(self) -> List[CommandResult]:
        usage = self.client.media_usage()
        self.reporter.announce(f"Disk usage in {self.config.media_path}:")
        return [usage, self.client.disk_usage(self.config.media_path)]
