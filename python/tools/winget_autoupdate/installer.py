#!/usr/bin/env python3
"""
Installs Winget-AutoUpdate on a machine and removes it again.

Installation copies the package into the install directory, writes the
settings, version and policy files, registers the toast source in the
registry and creates the two scheduled tasks. Uninstallation reverses each
step.
"""

from __future__ import annotations

import platform
import shutil
import sys
from importlib import resources
from pathlib import Path
from typing import Callable, Iterable, Optional

from loguru import logger

from .agent import default_install_dir
from .config import ConfigStore, parse_policy_lines
from .exceptions import (
    CommandError,
    PrerequisiteMissingError,
    WingetNotFoundError,
)
from .models import AgentConfig, ListMode, Policy
from .registry import register_notification_app, unregister_notification_app
from .scheduler import (
    NOTIFY_TASK_NAME,
    SYSTEM_SID,
    UPDATE_TASK_NAME,
    USERS_GROUP_SID,
    TaskDefinition,
    delete_task,
    register_task,
)
from .winget import WingetClient

PACKAGE_NAME = "winget_autoupdate"
DATA_PACKAGE = "winget_autoupdate.data"
DEFAULT_DENY_LIST = "excluded_apps.txt"
DAILY_RUN_TIME = "06:00"


def default_excluded_apps() -> frozenset[str]:
    """The deny-list shipped with the package."""
    content = resources.files(DATA_PACKAGE).joinpath(DEFAULT_DENY_LIST).read_text(encoding="utf-8")
    return parse_policy_lines(content.splitlines())


def windowless_python(python_executable: Path) -> Path:
    """pythonw.exe next to the interpreter when present, so no console flashes."""
    candidate = python_executable.with_name("pythonw.exe")
    return candidate if candidate.exists() else python_executable


def update_task_definition(install_dir: Path, python_executable: Path) -> TaskDefinition:
    return TaskDefinition(
        name=UPDATE_TASK_NAME,
        command=str(python_executable),
        arguments=f"-m {PACKAGE_NAME} run --install-dir \"{install_dir}\"",
        working_directory=install_dir,
        description="Update installed applications with winget",
        user_id=SYSTEM_SID,
        highest_privileges=True,
        daily_at=DAILY_RUN_TIME,
        at_logon=True,
        multiple_instances="Queue",
    )


def notify_task_definition(install_dir: Path, python_executable: Path) -> TaskDefinition:
    return TaskDefinition(
        name=NOTIFY_TASK_NAME,
        command=str(windowless_python(python_executable)),
        arguments=f"-m {PACKAGE_NAME} notify-helper --install-dir \"{install_dir}\"",
        working_directory=install_dir,
        description="Show Winget-AutoUpdate notifications to the logged-on user",
        group_id=USERS_GROUP_SID,
        execution_time_limit="PT5M",
    )


class Installer:
    """Sets up and tears down an installation under one directory."""

    def __init__(
        self,
        install_dir: Optional[Path] = None,
        *,
        config: Optional[AgentConfig] = None,
        policy_entries: Optional[Iterable[str]] = None,
        python_executable: Optional[Path] = None,
        winget: Optional[WingetClient] = None,
        platform_name: Callable[[], str] = platform.system,
    ) -> None:
        """
        Args:
            install_dir: Target directory, defaults to %ProgramData%\\Winget-AutoUpdate
            config: Settings to persist, defaults to AgentConfig()
            policy_entries: Package ids for the configured list, replacing an
                existing file. None keeps an existing file, or writes the
                shipped deny-list when there is none.
            python_executable: Interpreter the scheduled tasks run
            winget: Client used to verify winget is present
            platform_name: Returns the OS name, "Windows" being the only one supported
        """
        self.install_dir = Path(install_dir) if install_dir else default_install_dir()
        self.store = ConfigStore(self.install_dir)
        self.config = config or AgentConfig()
        self.policy_entries = frozenset(policy_entries) if policy_entries is not None else None
        self.python_executable = Path(python_executable or sys.executable)
        self.winget = winget or WingetClient()
        self._platform_name = platform_name

    @property
    def package_dir(self) -> Path:
        return self.install_dir / PACKAGE_NAME

    def check_prerequisites(self) -> None:
        """
        Raises:
            PrerequisiteMissingError: If not on Windows or winget is not installed
        """
        current_platform = self._platform_name()
        if current_platform != "Windows":
            raise PrerequisiteMissingError("Windows", f"running on {current_platform}")

        try:
            winget_path = self.winget.winget_path
        except WingetNotFoundError as e:
            raise PrerequisiteMissingError(
                "winget", "install App Installer from the Microsoft Store"
            ) from e
        logger.info(f"winget found at {winget_path}")

    def copy_files(self) -> None:
        source = Path(__file__).resolve().parent
        if source == self.package_dir.resolve():
            logger.debug("Running from the install directory, files already in place")
            return
        shutil.copytree(
            source,
            self.package_dir,
            dirs_exist_ok=True,
            ignore=shutil.ignore_patterns("tests", "__pycache__"),
        )
        logger.info(f"Files copied to {self.install_dir}")

    def write_configuration(self) -> None:
        from . import __version__

        self.store.save_config(self.config)
        self.store.write_version(__version__)

        mode = self.config.list_mode
        if self.policy_entries is not None:
            self.store.save_policy(Policy(mode=mode, entries=self.policy_entries))
        elif self.store.policy_path(mode).exists():
            logger.info(f"Keeping existing {self.store.policy_path(mode).name}")
        elif mode is ListMode.DENY_LIST:
            self.store.save_policy(Policy(mode=mode, entries=default_excluded_apps()))
        else:
            logger.warning("Allow-list mode without any package ids, nothing will be updated")
            self.store.save_policy(Policy(mode=mode))

    def register_tasks(self) -> None:
        """
        Raises:
            CommandError: If schtasks rejects a task definition
        """
        for task in (
            update_task_definition(self.install_dir, self.python_executable),
            notify_task_definition(self.install_dir, self.python_executable),
        ):
            result = register_task(task)
            if not result["success"]:
                raise CommandError(
                    f"Failed to register scheduled task {task.name}: {result['output'].strip()}",
                    result["command"],
                )

    def install(self) -> None:
        """
        Run every installation step in order.

        Raises:
            PrerequisiteMissingError: If a prerequisite is missing, before any change
            WingetAutoUpdateError: If a later step fails
        """
        logger.info(f"Installing Winget-AutoUpdate to {self.install_dir}")
        self.check_prerequisites()
        self.copy_files()
        self.write_configuration()
        icon = self.install_dir / "icons" / "app.png"
        register_notification_app(icon if icon.exists() else None)
        self.register_tasks()
        logger.success("Winget-AutoUpdate installed")

    def uninstall(self, keep_files: bool = False) -> None:
        """Remove tasks, registry entries and, unless asked to keep them, files."""
        logger.info("Uninstalling Winget-AutoUpdate")
        for name in (UPDATE_TASK_NAME, NOTIFY_TASK_NAME):
            delete_task(name)
        unregister_notification_app()

        if keep_files:
            logger.info(f"Keeping {self.install_dir}")
        elif self.install_dir.exists():
            shutil.rmtree(self.install_dir)
            logger.info(f"Removed {self.install_dir}")
        logger.success("Winget-AutoUpdate uninstalled")
