#!/usr/bin/env python3
"""
Winget-AutoUpdate - Python Interface

Keeps the applications installed on a Windows machine up to date through the
winget package manager, running unattended from the Task Scheduler.

Features:
- Daily and at-logon update runs under the SYSTEM account
- Allow-list or deny-list of package ids
- Toast notifications for the logged-on user, localized
- Connectivity gate before any update work
- Self-update from GitHub releases

Version:
    1.0.0
"""

import platform
from typing import Any, Dict

from .agent import AgentContext, build_context, run
from .config import ConfigStore
from .driver import UpgradeDriver
from .exceptions import (
    ConfigError,
    PrerequisiteMissingError,
    SelfUpdateError,
    UpgradeFailedError,
    WingetAutoUpdateError,
    WingetNotFoundError,
)
from .installer import Installer
from .models import AgentConfig, ListMode, NotificationLevel, Policy, UpdateRecord
from .network import wait_for_connectivity
from .notifier import Notifier
from .self_update import SelfUpdater
from .winget import WingetClient, parse_upgrade_table

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Core classes
    "AgentContext",
    "ConfigStore",
    "Installer",
    "Notifier",
    "SelfUpdater",
    "UpgradeDriver",
    "WingetClient",
    # Data models
    "AgentConfig",
    "ListMode",
    "NotificationLevel",
    "Policy",
    "UpdateRecord",
    # Exceptions
    "ConfigError",
    "PrerequisiteMissingError",
    "SelfUpdateError",
    "UpgradeFailedError",
    "WingetAutoUpdateError",
    "WingetNotFoundError",
    # Functions
    "build_context",
    "parse_upgrade_table",
    "run",
    "wait_for_connectivity",
    "get_tool_info",
]


def get_tool_info() -> Dict[str, Any]:
    """
    Return metadata about this tool for discovery.

    Returns:
        Dict containing tool metadata including name, version, description,
        available functions, requirements, and platform compatibility.
    """
    return {
        "name": "winget_autoupdate",
        "version": __version__,
        "description": "Unattended application updates through winget",
        "license": __license__,
        "supported": platform.system() == "Windows",
        "platform": ["windows"],
        "functions": [
            "run",
            "build_context",
            "list_outdated",
            "apply_updates",
            "wait_for_connectivity",
            "check_and_apply",
            "install",
            "uninstall",
            "display_queued",
        ],
        "requirements": ["loguru", "pydantic", "aiohttp", "aiofiles", "tqdm"],
        "capabilities": [
            "scheduled_updates",
            "allow_and_deny_lists",
            "toast_notifications",
            "localization",
            "self_update",
        ],
        "classes": {
            "WingetClient": "Lists and upgrades packages through winget",
            "UpgradeDriver": "Upgrades eligible packages one at a time",
            "Notifier": "Shows toasts in the user session",
            "SelfUpdater": "Updates the agent from GitHub releases",
            "Installer": "Installs and removes scheduled tasks and files",
        },
    }
