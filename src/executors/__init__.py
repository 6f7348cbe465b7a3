#!/usr/bin/env -S python3 -B -u
"""
Executors package: running commands inside the Mastodon container.
"""

from mastodon_cleanup.executors.container_executor import CommandExecutor, DockerExecutor
from mastodon_cleanup.executors.tootctl import TootctlClient

__all__ = [
    'CommandExecutor',
    'DockerExecutor',
    'TootctlClient',
]
