"""Registry entries that let the agent show toasts under its own name."""

from __future__ import annotations

import platform
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .exceptions import RegistryAccessError, UnsupportedPlatformError

NOTIFICATION_APP_ID = "Windows.SystemToast.Winget.Notification"
NOTIFICATION_DISPLAY_NAME = "Application Update"
APP_ID_KEY = rf"SOFTWARE\Classes\AppUserModelId\{NOTIFICATION_APP_ID}"
NOTIFICATION_SETTINGS_KEY = (
    rf"Software\Microsoft\Windows\CurrentVersion\Notifications\Settings\{NOTIFICATION_APP_ID}"
)


def _winreg():
    current_platform = platform.system()
    if current_platform != "Windows":
        raise UnsupportedPlatformError(current_platform)
    import winreg

    return winreg


@contextmanager
def _registry_key(hive: Any, key_path: str):
    """
    Context manager creating (or opening) a registry key for writing.

    Raises:
        RegistryAccessError: If the key cannot be created
    """
    winreg = _winreg()
    try:
        key = winreg.CreateKeyEx(hive, key_path, 0, winreg.KEY_WRITE)
    except OSError as e:
        raise RegistryAccessError(
            f"Failed to open registry key: {key_path}", registry_path=key_path, original_error=e
        ) from e
    try:
        yield key
    finally:
        winreg.CloseKey(key)


def register_notification_app(icon_path: Optional[Path] = None) -> None:
    """
    Register the toast source shown as the notification's sender, and give it
    priority ranking in the current user's action center.
    """
    winreg = _winreg()
    with _registry_key(winreg.HKEY_LOCAL_MACHINE, APP_ID_KEY) as key:
        winreg.SetValueEx(key, "DisplayName", 0, winreg.REG_EXPAND_SZ, NOTIFICATION_DISPLAY_NAME)
        if icon_path is not None:
            winreg.SetValueEx(key, "IconUri", 0, winreg.REG_EXPAND_SZ, str(icon_path))
    logger.debug(f"Registered notification source {NOTIFICATION_APP_ID}")

    with _registry_key(winreg.HKEY_CURRENT_USER, NOTIFICATION_SETTINGS_KEY) as key:
        winreg.SetValueEx(key, "ShowInActionCenter", 0, winreg.REG_DWORD, 1)
        winreg.SetValueEx(key, "Rank", 0, winreg.REG_DWORD, 1)
    logger.debug("Notification ranking set for the current user")


def unregister_notification_app() -> None:
    """Remove both registry entries; missing keys are ignored."""
    winreg = _winreg()
    for hive, key_path in (
        (winreg.HKEY_LOCAL_MACHINE, APP_ID_KEY),
        (winreg.HKEY_CURRENT_USER, NOTIFICATION_SETTINGS_KEY),
    ):
        try:
            winreg.DeleteKey(hive, key_path)
            logger.debug(f"Removed registry key {key_path}")
        except FileNotFoundError:
            logger.debug(f"Registry key already absent: {key_path}")
        except OSError as e:
            raise RegistryAccessError(
                f"Failed to remove registry key: {key_path}",
                registry_path=key_path,
                original_error=e,
            ) from e
