#!/usr/bin/env -S python3 -B -u
"""
Tootctl client - Mastodon management commands over a CommandExecutor.

Each method issues exactly one command in the container and returns its
CommandResult. Composite tasks (two commands, short-circuit) live in the
dispatcher, not here.
"""

from typing import List, Optional, Sequence, TextIO

from mastodon_cleanup.core.models import CommandResult
from mastodon_cleanup.executors.container_executor import CommandExecutor


TOOTCTL = ['bundle', 'exec', 'tootctl']


class TootctlClient:
    """Builds tootctl invocations for one container."""

    def __init__(self, executor: CommandExecutor, container: str,
                 out: Optional[TextIO] = None):
        self.executor = executor
        self.container = container
        self.out = out

    @staticmethod
    def build(*args: str) -> List[str]:
        """Full argv for a tootctl subcommand."""
        return TOOTCTL + list(args)

    def run(self, *args: str) -> CommandResult:
        return self.executor.exec(self.container, self.build(*args), out=self.out)

    def run_raw(self, command: Sequence[str]) -> CommandResult:
        """Run a non-tootctl command in the same container."""
        return self.executor.exec(self.container, list(command), out=self.out)

    def accounts_prune(self) -> CommandResult:
        return self.run('accounts', 'prune')

    def statuses_remove(self, days: int) -> CommandResult:
        return self.run('statuses', 'remove', '--days', str(days))

    def media_remove(self, days: int, prune_profiles: bool = False) -> CommandResult:
        args = ['media', 'remove']
        if prune_profiles:
            args.append('--prune-profiles')
        args.extend(['--days', str(days)])
        return self.run(*args)

    def media_remove_orphans(self) -> CommandResult:
        return self.run('media', 'remove-orphans')

    def preview_cards_remove(self, days: int) -> CommandResult:
        return self.run('preview_cards', 'remove', '--days', str(days))

    def cache_clear(self) -> CommandResult:
        return self.run('cache', 'clear')

    def media_usage(self) -> CommandResult:
        return self.run('media', 'usage')

    def disk_usage(self, path: str) -> CommandResult:
        return self.run_raw(['df', '-h', path])
