#!/usr/bin/env -S python3 -B -u
"""
Cleanup package

This package contains the cleanup run itself:
- Pre-flight environment checks
- Single-instance PID file guard
- Task dispatching in fixed order
- Session timing, summary and log file handling
- Command line entry point
"""
