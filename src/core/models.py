#!/usr/bin/env -S python3 -B -u
"""
Data Models for Mastodon Cleanup

This module provides the data structures shared by the cleanup components:
the task enumeration, the immutable run configuration and the results of
remote commands and tasks.

Key Features:
- Task enum whose declaration order is the execution order
- Immutable configuration built once from parsed arguments
- Plain result records for reporting
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, FrozenSet
from enum import Enum
from pathlib import Path


class Task(str, Enum):
    """
    Maintenance operations, declared in execution order.

    Iterating the enum yields accounts-prune first and media-usage last,
    whatever order the flags were given in.
    """
    ACCOUNTS_PRUNE = "accounts-prune"
    STATUSES_REMOVE = "statuses-remove"
    MEDIA_REMOVE = "media-remove"
    MEDIA_REMOVE_ORPHAN = "media-remove-orphan"
    PREVIEW_CARDS_REMOVE = "preview-cards-remove"
    CACHE_CLEAR = "cache-clear"
    MEDIA_USAGE = "media-usage"

    @property
    def flag(self) -> str:
        """Command line flag enabling this task."""
        return TASK_FLAGS[self]

    @property
    def description(self) -> str:
        """Help text for the task flag."""
        return TASK_DESCRIPTIONS[self]


TASK_FLAGS: Dict[Task, str] = {
    Task.ACCOUNTS_PRUNE: "--accountsprune",
    Task.STATUSES_REMOVE: "--statusesremove",
    Task.MEDIA_REMOVE: "--mediaremove",
    Task.MEDIA_REMOVE_ORPHAN: "--mediaremoveorphan",
    Task.PREVIEW_CARDS_REMOVE: "--previewcardsremove",
    Task.CACHE_CLEAR: "--cacheclear",
    Task.MEDIA_USAGE: "--mediausage",
}

TASK_DESCRIPTIONS: Dict[Task, str] = {
    Task.ACCOUNTS_PRUNE: "Prune inactive remote accounts (use with caution)",
    Task.STATUSES_REMOVE: "Remove orphaned statuses",
    Task.MEDIA_REMOVE: "Remove old cached media and profiles",
    Task.MEDIA_REMOVE_ORPHAN: "Remove orphaned media files",
    Task.PREVIEW_CARDS_REMOVE: "Remove old preview cards",
    Task.CACHE_CLEAR: "Clear Redis cache",
    Task.MEDIA_USAGE: "Show media disk usage",
}

# accounts-prune and media-usage stay opt-in
CLEANUP_TASKS: FrozenSet[Task] = frozenset({
    Task.STATUSES_REMOVE,
    Task.MEDIA_REMOVE,
    Task.MEDIA_REMOVE_ORPHAN,
    Task.PREVIEW_CARDS_REMOVE,
    Task.CACHE_CLEAR,
})


def ordered_tasks(tasks) -> List[Task]:
    """Return the given tasks in fixed execution order, without duplicates."""
    enabled = set(tasks)
    return [task for task in Task if task in enabled]


@dataclass(frozen=True)
class CleanupConfig:
    """
    Run configuration.

    Built once from the config file and the command line, then passed to
    every component. Never mutated during a run.
    """
    days: int = 30
    container: str = "mastodon"
    log_path: Path = Path("/var/log/mastodon")
    pid_file: Path = Path("/tmp/mastodon-cleanup.pid")
    tasks: FrozenSet[Task] = frozenset()
    logging_enabled: bool = False
    container_runtime: str = "docker"
    dependencies: Tuple[str, ...] = ("docker",)
    retention_days: int = 30
    media_path: str = "/live/public/system"
    verbose_level: int = 0

    def __post_init__(self):
        """Validate numeric fields after initialization."""
        if isinstance(self.days, bool) or not isinstance(self.days, int) or self.days < 0:
            raise ValueError(f"Invalid days: {self.days!r}")
        if isinstance(self.retention_days, bool) or not isinstance(self.retention_days, int) \
                or self.retention_days < 0:
            raise ValueError(f"Invalid retention_days: {self.retention_days!r}")

    @property
    def ordered_tasks(self) -> List[Task]:
        """Enabled tasks in execution order."""
        return ordered_tasks(self.tasks)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command executed inside the container."""
    command: Tuple[str, ...]
    exit_code: int

    @property
    def success(self) -> bool:
        return self.exit_code == 0


@dataclass
class TaskResult:
    """Outcome of one maintenance task."""
    task: Task
    success: bool
    commands: List[CommandResult] = field(default_factory=list)
    error_message: Optional[str] = None
    duration_seconds: float = 0.0
