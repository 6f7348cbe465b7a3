#!/usr/bin/env -S python3 -B -u
"""
mastodon_cleanup - Mastodon Docker Cleanup

Runs a fixed menu of tootctl maintenance commands inside a running
Mastodon container, one instance at a time.
"""

__version__ = '1.0.0'
__author__ = 'Mastodon Admin Tools'
__license__ = 'CC-BY-SA-4.0'

# Package metadata
__all__ = [
    'core',
    'executors',
    'cleanup',
]
