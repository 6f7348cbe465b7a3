#!/usr/bin/env -S python3 -B -u
"""
Mastodon Docker Cleanup

Runs tootctl maintenance tasks inside the running Mastodon container.
Only one run per host is allowed at a time.

Usage:
    mastodon-cleanup --cleanup --days 7 --logging
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TextIO

from colorama import just_fix_windows_console

from mastodon_cleanup.core.config_loader import load_cleanup_config
from mastodon_cleanup.core.exceptions import (
    ConfigurationError, UnknownFlagError, ErrorHandler, ErrorCode
)
from mastodon_cleanup.core.models import CleanupConfig, Task, CLEANUP_TASKS
from mastodon_cleanup.core.structured_logging import setup_logging
from mastodon_cleanup.executors.container_executor import CommandExecutor, DockerExecutor
from mastodon_cleanup.executors.tootctl import TootctlClient
from mastodon_cleanup.cleanup.environment import EnvironmentChecker
from mastodon_cleanup.cleanup.instance_guard import InstanceGuard
from mastodon_cleanup.cleanup.dispatcher import TaskDispatcher
from mastodon_cleanup.cleanup.session import LogFileSession, SessionReporter


logger = logging.getLogger(__name__)


class CleanupArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with status 2."""

    def error(self, message):
        raise ConfigurationError(message)


def build_parser() -> CleanupArgumentParser:
    parser = CleanupArgumentParser(
        prog='mastodon-cleanup',
        description="Mastodon Docker Cleanup Script",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
        epilog="""
Examples:
  # Run all safe cleanup tasks for content older than a week, logging to file
  %(prog)s --cleanup --days 7 --logging

  # Prune remote accounts and show media usage
  %(prog)s --accountsprune --mediausage
        """
    )

    parser.add_argument('--days', type=int, metavar='<n>',
                        help='Set age threshold for cleanups (default: 30)')
    parser.add_argument('--logging', action='store_true',
                        help='Enable logging to the log directory (default: /var/log/mastodon)')
    parser.add_argument('--cleanup', action='store_true',
                        help='Run all safe cleanup tasks (media, orphans, previews, statuses, cache)')
    for task in Task:
        parser.add_argument(task.flag, dest='tasks', action='append_const', const=task,
                            help=task.description)

    parser.add_argument('--container', metavar='NAME',
                        help='Docker container name (default: mastodon)')
    parser.add_argument('--log-path', metavar='DIR',
                        help='Log directory on host')
    parser.add_argument('--pid-file', metavar='PATH',
                        help='PID file preventing concurrent runs')
    parser.add_argument('--config', metavar='FILE',
                        help='YAML configuration file')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase verbosity (-v for info, -vv for debug)')
    parser.add_argument('-h', '--help', action='store_true',
                        help='Display this help')

    return parser


def selected_tasks(args: argparse.Namespace) -> frozenset:
    """Tasks enabled by the parsed flags; --cleanup adds the safe set."""
    tasks = set(args.tasks or [])
    if args.cleanup:
        tasks |= CLEANUP_TASKS
    return frozenset(tasks)


def _as_int(name: str, value: Any, source: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid {name}: {value!r}", config_file=source)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid {name}: {value!r}", config_file=source)


def _as_str(name: str, flag_value: Optional[str], file_config: Dict[str, Any], source: str) -> str:
    """Flag value if given, else the config value, which must not be empty."""
    if flag_value:
        return flag_value
    value = file_config[name]
    if value is None or value == '':
        raise ConfigurationError(f"Missing value for {name}", config_file=source)
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ConfigurationError(f"Invalid {name}: {value!r}", config_file=source)
    return str(value)


def build_config(args: argparse.Namespace, file_config: Dict[str, Any]) -> CleanupConfig:
    """
    Merge config file values and command line flags into a CleanupConfig.

    Raises:
        ConfigurationError: a value is out of range or of the wrong type
    """
    source = args.config or 'defaults'
    days = args.days if args.days is not None else _as_int('days', file_config['days'], source)
    dependencies = file_config['dependencies']
    if isinstance(dependencies, str):
        dependencies = [dependencies]

    try:
        return CleanupConfig(
            days=days,
            container=_as_str('container', args.container, file_config, source),
            log_path=Path(_as_str('log_path', args.log_path, file_config, source)),
            pid_file=Path(_as_str('pid_file', args.pid_file, file_config, source)),
            tasks=selected_tasks(args),
            logging_enabled=args.logging,
            container_runtime=_as_str('container_runtime', None, file_config, source),
            dependencies=tuple(str(dep) for dep in dependencies if dep is not None),
            retention_days=_as_int('retention_days', file_config['retention_days'], source),
            media_path=_as_str('media_path', None, file_config, source),
            verbose_level=args.verbose,
        )
    except ValueError as e:
        raise ConfigurationError(str(e), cause=e)


def run_cleanup(
    config: CleanupConfig,
    executor: CommandExecutor,
    stdout: TextIO,
    stderr: TextIO,
    clock: Callable[[], datetime] = datetime.now
) -> int:
    """
    Validate the environment, take the lock and run the enabled tasks.

    The lock file is removed on every exit from this function once it
    has been created.
    """
    EnvironmentChecker(config, executor).validate()

    with InstanceGuard(config.pid_file, out=stdout):
        log_session = None
        out = stdout
        try:
            if config.logging_enabled:
                log_session = LogFileSession(config.log_path, stdout, stderr,
                                             retention_days=config.retention_days)
                log_session.open()
                out = log_session.stdout
                setup_logging(config.verbose_level, log_session.stderr)
                logger.info(f"Logging to {log_session.log_file}")

            reporter = SessionReporter(out, clock=clock, color=out.isatty())
            reporter.start()

            client = TootctlClient(executor, config.container, out=out)
            results = TaskDispatcher(config, client, reporter).run()

            reporter.report_results(results)
            reporter.finish()
        finally:
            if log_session is not None:
                log_session.close()
                setup_logging(config.verbose_level, stderr)

    return ErrorCode.SUCCESS


def main(
    argv: Optional[List[str]] = None,
    executor: Optional[CommandExecutor] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None
) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    stdout = stdout if stdout is not None else sys.stdout
    stderr = stderr if stderr is not None else sys.stderr

    just_fix_windows_console()
    parser = build_parser()

    if not argv:
        print(parser.format_help(), file=stdout, end='')
        return ErrorCode.SUCCESS

    verbose_level = 0
    setup_logging(verbose_level, stderr)

    try:
        args, extras = parser.parse_known_args(argv)
        if extras:
            raise UnknownFlagError(extras[0])

        if args.help:
            print(parser.format_help(), file=stdout, end='')
            return ErrorCode.SUCCESS

        verbose_level = args.verbose
        setup_logging(verbose_level, stderr)

        config = build_config(args, load_cleanup_config(args.config))
        if executor is None:
            executor = DockerExecutor(config.container_runtime)

        return run_cleanup(config, executor, stdout, stderr)

    except UnknownFlagError as e:
        code = ErrorHandler.handle_error(e, verbose_level, stream=stderr)
        print(parser.format_help(), file=stderr, end='')
        return code
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=stderr)
        return ErrorCode.INTERRUPTED
    except Exception as e:
        return ErrorHandler.handle_error(e, verbose_level, stream=stderr)


if __name__ == '__main__':
    sys.exit(main())
