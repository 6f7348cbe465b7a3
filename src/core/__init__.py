#!/usr/bin/env -S python3 -B -u
"""
Core package: configuration, data models, exceptions and logging setup.
"""
