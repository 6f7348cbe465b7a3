#!/usr/bin/env -S python3 -B -u
"""
Structured Exception Hierarchy for Mastodon Cleanup

This module provides the exception hierarchy used by the cleanup tool,
with user-facing error messages and suggestions for resolution.

Key Features:
- One exception class per pre-flight failure (dependency, container,
  lock, command line, configuration)
- Per-task remote command failures that never abort the whole run
- Debug information available only in verbose mode
- Consistent "Error: ..." reporting and exit codes
"""

import sys
import traceback
from typing import Optional, Dict, Any, List
from enum import IntEnum


class ErrorCode(IntEnum):
    """Standard exit codes for the application."""
    SUCCESS = 0
    VALIDATION_ERROR = 1
    INTERRUPTED = 130


class CleanupError(Exception):
    """
    Base exception class for all cleanup tool errors.

    Provides structured error information with user-friendly messages
    and suggested actions for resolution.
    """

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize cleanup error with structured information.

        Args:
            message: User-friendly error message
            suggestion: Suggested action to resolve the error
            error_code: Exit code for the error
            details: Additional error details (shown only in verbose mode)
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def format_error(self, verbose_level: int = 0) -> str:
        """
        Format error message based on verbosity level.

        The first line is always the one-line "Error: ..." message.

        Args:
            verbose_level: 0=basic, 1=verbose, 2=debug, 3=full details

        Returns:
            Formatted error message
        """
        lines = [f"Error: {self.message}"]

        if verbose_level >= 1 and self.suggestion:
            lines.append(f"Suggestion: {self.suggestion}")

        if verbose_level >= 1 and self.details:
            lines.append("\nDetails:")
            for key, value in self.details.items():
                lines.append(f"  {key}: {value}")

        if verbose_level >= 2 and self.cause:
            lines.append(f"\nCaused by: {type(self.cause).__name__}: {str(self.cause)}")

        if verbose_level >= 3 and self.cause is not None and self.cause.__traceback__:
            lines.append("\nStack trace:")
            lines.append(''.join(traceback.format_tb(self.cause.__traceback__)))

        return "\n".join(lines)


# Configuration and Environment Errors

class ConfigurationError(CleanupError):
    """Raised for invalid configuration files, flag values or log setup."""

    def __init__(self, message: str, config_file: Optional[str] = None, **kwargs):
        suggestion = "Check your configuration file format and values."
        if config_file:
            suggestion += f" Configuration file: {config_file}"
            kwargs['details'] = kwargs.get('details', {})
            kwargs['details']['config_file'] = config_file
        super().__init__(
            message=message,
            suggestion=suggestion,
            **kwargs
        )


class MissingDependencyError(CleanupError):
    """Raised when a required external command is not installed."""

    def __init__(self, command: str, **kwargs):
        super().__init__(
            message=f"{command} is not installed.",
            suggestion=f"Install {command} or add its location to PATH.",
            details={"command": command},
            **kwargs
        )
        self.command = command


class ContainerNotRunningError(CleanupError):
    """Raised when the target container is not in a running state."""

    def __init__(self, container: str, running: Optional[List[str]] = None, **kwargs):
        details = {"container": container}
        if running is not None:
            details["running_containers"] = ", ".join(running) or "(none)"
        super().__init__(
            message=f"Container '{container}' is not running.",
            suggestion=(
                "Start the Mastodon stack or pass the correct name "
                "with --container."
            ),
            details=details,
            **kwargs
        )
        self.container = container


# Single-instance Errors

class AlreadyRunningError(CleanupError):
    """Raised when the lock file names a live process."""

    def __init__(self, pid: int, pid_file: str, **kwargs):
        super().__init__(
            message=f"Script is already running (PID: {pid}).",
            suggestion=f"Wait for the running cleanup to finish. Lock file: {pid_file}",
            details={"pid": pid, "pid_file": pid_file},
            **kwargs
        )
        self.pid = pid
        self.pid_file = pid_file


class LockCreateError(CleanupError):
    """Raised when the lock file cannot be written."""

    def __init__(self, pid_file: str, reason: str = "", **kwargs):
        super().__init__(
            message="Could not create PID file.",
            suggestion=(
                "Check that the lock file directory exists and is writable, "
                "or choose another location with --pid-file."
            ),
            details={"pid_file": pid_file, "reason": reason},
            **kwargs
        )
        self.pid_file = pid_file


# Command Line Errors

class UnknownFlagError(CleanupError):
    """Raised for command line options the tool does not know."""

    def __init__(self, flag: str, **kwargs):
        super().__init__(
            message=f"Unknown option: {flag}",
            suggestion="Run with --help to list the supported options.",
            details={"flag": flag},
            **kwargs
        )
        self.flag = flag


# Execution Errors

class RemoteCommandError(CleanupError):
    """
    Raised when a command inside the container exits non-zero.

    Non-fatal: the dispatcher records it on the task result and moves on.
    """

    def __init__(self, command: List[str], exit_code: int, **kwargs):
        command_str = " ".join(command)
        super().__init__(
            message=f"Command '{command_str}' failed with exit code {exit_code}",
            suggestion="See the command output above for the reason.",
            details={"command": command_str, "exit_code": exit_code},
            **kwargs
        )
        self.command = list(command)
        self.exit_code = exit_code


# Error Handler Utility

class ErrorHandler:
    """Utility class for consistent error handling across the application."""

    @staticmethod
    def handle_error(error: Exception, verbose_level: int = 0, stream=None) -> int:
        """
        Handle an error and return appropriate exit code.

        Args:
            error: The exception to handle
            verbose_level: Verbosity level (0-3)
            stream: Where to write the message (defaults to sys.stderr)

        Returns:
            Exit code for the application
        """
        stream = stream if stream is not None else sys.stderr
        if isinstance(error, CleanupError):
            print(error.format_error(verbose_level), file=stream)
            return error.error_code

        # Handle unexpected errors
        print("Error: An unexpected error occurred", file=stream)

        if verbose_level >= 1:
            print(f"\nError type: {type(error).__name__}", file=stream)
            print(f"Error message: {str(error)}", file=stream)

        if verbose_level >= 3:
            print("\nStack trace:", file=stream)
            traceback.print_exception(type(error), error, error.__traceback__, file=stream)

        return ErrorCode.VALIDATION_ERROR
