#!/usr/bin/env python3
"""
One scheduled update run, from configuration loading to the end-of-run log.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from .config import ConfigStore
from .driver import UpgradeDriver
from .exceptions import ConfigError, WingetAutoUpdateError, WingetNotFoundError
from .localization import LocaleTemplates, load_locale
from .logging_config import log_banner
from .models import AgentConfig, Policy, UNKNOWN_VERSION
from .network import wait_for_connectivity
from .notifier import Notifier
from .self_update import DEFAULT_REPOSITORY, SelfUpdater
from .winget import WingetClient

APP_NAME = "Winget-AutoUpdate"
LOGS_DIR_NAME = "logs"
UPDATE_LOG_NAME = "updates.log"
INSTALL_LOG_NAME = "install.log"


def default_install_dir() -> Path:
    """``%ProgramData%\\Winget-AutoUpdate``"""
    program_data = os.environ.get("ProgramData", r"C:\ProgramData")
    return Path(program_data) / APP_NAME


def update_log_path(install_dir: Path) -> Path:
    return install_dir / LOGS_DIR_NAME / UPDATE_LOG_NAME


def install_log_path(install_dir: Path) -> Path:
    return install_dir / LOGS_DIR_NAME / INSTALL_LOG_NAME


@dataclass
class AgentContext:
    """Everything a run needs, loaded once at startup"""

    install_dir: Path
    store: ConfigStore
    config: AgentConfig
    policy: Policy
    templates: LocaleTemplates
    notifier: Notifier
    winget: WingetClient


def build_context(
    install_dir: Optional[Path] = None,
    *,
    winget_path: Optional[Path] = None,
    culture: Optional[str] = None,
) -> AgentContext:
    """
    Load settings, policy and templates for a run.

    Invalid settings are logged and replaced with defaults so a broken
    config file never stops updates.
    """
    install_dir = Path(install_dir) if install_dir else default_install_dir()
    store = ConfigStore(install_dir)

    try:
        config = store.load_config()
    except ConfigError as e:
        logger.error(f"{e}; using default settings")
        config = AgentConfig()

    try:
        policy = store.load_policy(config.list_mode)
    except ConfigError as e:
        logger.error(f"{e}; no package will be excluded")
        policy = Policy(mode=config.list_mode)

    templates = load_locale(culture)
    notifier = Notifier(install_dir, templates, config.notification_level)

    return AgentContext(
        install_dir=install_dir,
        store=store,
        config=config,
        policy=policy,
        templates=templates,
        notifier=notifier,
        winget=WingetClient(winget_path),
    )


def _installed_version(store: ConfigStore) -> str:
    try:
        return store.read_version()
    except ConfigError as e:
        logger.warning(f"Installed version unknown: {e}")
        return UNKNOWN_VERSION


def run(
    context: AgentContext,
    *,
    connectivity_check: Callable[..., bool] = wait_for_connectivity,
    repository: str = DEFAULT_REPOSITORY,
) -> int:
    """
    Perform one update run.

    Args:
        context: Loaded run context
        connectivity_check: Gate called before any network work
        repository: GitHub repository the agent updates itself from

    Returns:
        Process exit code, 0 once the run reached its end
    """
    version = _installed_version(context.store)
    log_banner(f"{APP_NAME} {version} - run started")
    logger.info(
        f"Notification level: {context.config.notification_level.value}, "
        f"policy: {context.policy.mode.value} ({len(context.policy.entries)} entries), "
        f"language: {context.templates.language}"
    )

    try:
        _run_updates(context, version, connectivity_check, repository)
    except WingetAutoUpdateError as e:
        logger.error(f"Update run aborted: {e}")

    log_banner(f"{APP_NAME} - run finished")
    return 0


def _run_updates(
    context: AgentContext,
    version: str,
    connectivity_check: Callable[..., bool],
    repository: str,
) -> None:
    if not connectivity_check(notifier=context.notifier):
        logger.error("No connectivity, skipping this run")
        return

    if context.config.auto_update_enabled:
        updater = SelfUpdater(
            context.install_dir,
            context.store,
            context.notifier,
            repository=repository,
            allow_prerelease=context.config.allow_prerelease,
        )
        updater.check_and_apply(version)
    else:
        logger.info("Winget-AutoUpdate self-update is disabled")

    logger.info("Checking application updates on Winget repository...")
    try:
        outdated = context.winget.list_outdated()
    except WingetNotFoundError as e:
        logger.error(f"{e}; skipping application updates")
        return

    if not outdated:
        logger.info("No new updates.")
        return

    driver = UpgradeDriver(context.winget, context.notifier)
    driver.apply_updates(outdated, context.policy)
