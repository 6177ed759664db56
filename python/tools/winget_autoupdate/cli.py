#!/usr/bin/env python3
"""
Command-line interface for Winget-AutoUpdate.

The scheduled tasks call ``run`` and ``notify-helper``; the other commands
are meant for administrators.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from loguru import logger

from . import __version__
from .agent import build_context, default_install_dir, install_log_path, run, update_log_path
from .config import parse_policy_lines
from .exceptions import (
    RETRY_EXIT_CODE,
    NetworkTimeoutError,
    PrerequisiteMissingError,
    WingetAutoUpdateError,
)
from .installer import Installer
from .logging_config import setup_logging, verbosity_to_level
from .models import AgentConfig, ListMode, NotificationLevel, UpdateRecord
from .network import DEFAULT_TIMEOUT_SECONDS, wait_for_connectivity
from .notifier import Notifier
from .self_update import DEFAULT_REPOSITORY, SelfUpdater
from .winget import WingetClient


def format_records(records: List[UpdateRecord]) -> str:
    """Render outdated packages as an aligned text table."""
    headers = ("Name", "Id", "Version", "Available")
    rows = [headers] + [
        (r.name, r.id, r.current_version, r.available_version) for r in records
    ]
    widths = [max(len(row[i]) for row in rows) for i in range(len(headers))]
    lines = ["  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip() for row in rows]
    lines.insert(1, "-" * len(lines[0]))
    return "\n".join(lines)


class CLI:
    """Command-line interface for Winget-AutoUpdate."""

    def __init__(self) -> None:
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="winget-autoupdate",
            description="Keep installed applications up to date with winget",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  %(prog)s install                          # Install with the default deny-list
  %(prog)s install --list-mode AllowList --app Mozilla.Firefox
  %(prog)s list                             # Show outdated packages
  %(prog)s run                              # Run one update pass now
            """,
        )

        parser.add_argument(
            "--version", action="version", version=f"Winget-AutoUpdate {__version__}"
        )
        parser.add_argument(
            "--verbose",
            "-v",
            action="count",
            default=0,
            help="Increase verbosity (use -vv for trace output)",
        )
        parser.add_argument(
            "--install-dir",
            type=Path,
            default=None,
            help=f"Installation directory (default: {default_install_dir()})",
        )

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        run_parser = subparsers.add_parser("run", help="Run one update pass")
        run_parser.add_argument("--winget-path", type=Path, help="Path to winget.exe")
        run_parser.add_argument(
            "--repository",
            default=DEFAULT_REPOSITORY,
            help="GitHub repository the agent updates itself from",
        )

        list_parser = subparsers.add_parser("list", help="List outdated packages")
        list_parser.add_argument("--winget-path", type=Path, help="Path to winget.exe")

        install_parser = subparsers.add_parser("install", help="Install the agent")
        install_parser.add_argument(
            "--list-mode",
            choices=[mode.value for mode in ListMode],
            default=ListMode.DENY_LIST.value,
            help="Whether the package list excludes or includes ids",
        )
        install_parser.add_argument(
            "--notification-level",
            choices=[level.value for level in NotificationLevel],
            default=NotificationLevel.FULL.value,
        )
        install_parser.add_argument(
            "--no-auto-update",
            action="store_true",
            help="Do not update the agent itself",
        )
        install_parser.add_argument(
            "--allow-prerelease",
            action="store_true",
            help="Update the agent to pre-releases too",
        )
        install_parser.add_argument(
            "--app",
            action="append",
            dest="apps",
            metavar="ID",
            help="Package id for the list (repeatable)",
        )
        install_parser.add_argument(
            "--list-file",
            type=Path,
            help="File with one package id per line for the list",
        )

        uninstall_parser = subparsers.add_parser("uninstall", help="Remove the agent")
        uninstall_parser.add_argument(
            "--keep-files", action="store_true", help="Keep the install directory"
        )

        subparsers.add_parser(
            "notify-helper", help="Show the queued notification (run by the helper task)"
        )

        self_update_parser = subparsers.add_parser(
            "self-update", help="Update the agent to its latest release"
        )
        self_update_parser.add_argument(
            "--no-restart",
            action="store_true",
            help="Do not restart the update task after updating",
        )
        self_update_parser.add_argument("--repository", default=DEFAULT_REPOSITORY)

        network_parser = subparsers.add_parser(
            "check-network", help="Wait for internet connectivity"
        )
        network_parser.add_argument(
            "--timeout",
            type=int,
            default=DEFAULT_TIMEOUT_SECONDS,
            help="Seconds to wait before giving up",
        )

        return parser

    def run(self, argv: Optional[List[str]] = None) -> int:
        args = self.parser.parse_args(argv)

        if not args.command:
            self.parser.print_help()
            return 1

        install_dir = args.install_dir or default_install_dir()
        self._configure_logging(args.command, install_dir, args.verbose)

        try:
            return self._handle_command(args, install_dir)
        except PrerequisiteMissingError as e:
            logger.error(str(e))
            return RETRY_EXIT_CODE
        except WingetAutoUpdateError as e:
            logger.error(f"Command failed: {e}")
            logger.debug(f"Error details: {e.to_dict()}")
            return 1

    def _configure_logging(self, command: str, install_dir: Path, verbose: int) -> None:
        match command:
            case "run":
                log_file = update_log_path(install_dir)
            case "install":
                log_file = install_log_path(install_dir)
            case _:
                log_file = None
        setup_logging(log_file, verbosity_to_level(verbose))

    def _handle_command(self, args: argparse.Namespace, install_dir: Path) -> int:
        match args.command:
            case "run":
                context = build_context(install_dir, winget_path=args.winget_path)
                return run(context, repository=args.repository)
            case "list":
                return self._handle_list(args)
            case "install":
                return self._handle_install(args, install_dir)
            case "uninstall":
                Installer(install_dir).uninstall(keep_files=args.keep_files)
                return 0
            case "notify-helper":
                Notifier(install_dir).display_queued()
                return 0
            case "self-update":
                return self._handle_self_update(args, install_dir)
            case "check-network":
                return self._handle_check_network(args, install_dir)
            case _:
                logger.error(f"Unknown command: {args.command}")
                return 1

    def _handle_list(self, args: argparse.Namespace) -> int:
        records = WingetClient(args.winget_path).list_outdated()
        if not records:
            print("No outdated packages")
            return 0
        print(format_records(records))
        return 0

    def _handle_install(self, args: argparse.Namespace, install_dir: Path) -> int:
        config = AgentConfig(
            auto_update_enabled=not args.no_auto_update,
            allow_prerelease=args.allow_prerelease,
            list_mode=args.list_mode,
            notification_level=args.notification_level,
        )

        entries: Optional[set[str]] = None
        if args.apps or args.list_file:
            entries = set(args.apps or [])
            if args.list_file:
                lines = args.list_file.read_text(encoding="utf-8").splitlines()
                entries |= parse_policy_lines(lines)

        Installer(install_dir, config=config, policy_entries=entries).install()
        return 0

    def _handle_self_update(self, args: argparse.Namespace, install_dir: Path) -> int:
        context = build_context(install_dir)
        updater = SelfUpdater(
            install_dir,
            context.store,
            context.notifier,
            repository=args.repository,
            allow_prerelease=context.config.allow_prerelease,
        )
        current = context.store.read_version()
        updated = updater.check_and_apply(current, restart=not args.no_restart)
        logger.info("Updated" if updated else "No update applied")
        return 0

    def _handle_check_network(self, args: argparse.Namespace, install_dir: Path) -> int:
        context = build_context(install_dir)
        if not wait_for_connectivity(args.timeout, notifier=context.notifier):
            raise NetworkTimeoutError(args.timeout)
        return 0
