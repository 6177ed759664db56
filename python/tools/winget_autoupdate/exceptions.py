#!/usr/bin/env python3
"""
Exception types for Winget-AutoUpdate
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

# Windows Installer "another installation is in progress" code, reused by the
# installer to ask the deployment tool to retry later.
RETRY_EXIT_CODE = 1618


class WingetAutoUpdateError(Exception):
    """Base exception for all agent errors, carrying structured context."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        file_path: Optional[Path] = None,
        original_error: Optional[Exception] = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.file_path = file_path
        self.original_error = original_error
        self.context = context

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.error_code:
            parts.append(f"Code: {self.error_code}")
        if self.file_path:
            parts.append(f"File: {self.file_path}")
        if self.original_error:
            parts.append(f"Cause: {self.original_error}")
        return " | ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "message": str(self.args[0]) if self.args else "",
            "error_code": self.error_code,
            "file_path": str(self.file_path) if self.file_path else None,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "exception_type": self.__class__.__name__,
        }


class WingetNotFoundError(WingetAutoUpdateError):
    """Raised when the winget executable cannot be located."""

    def __init__(self, searched_paths: Optional[list[str]] = None) -> None:
        super().__init__(
            "Winget executable not found. Is App Installer installed?",
            error_code="WINGET_NOT_FOUND",
            searched_paths=searched_paths or [],
        )


class CommandError(WingetAutoUpdateError):
    """Raised when an external process cannot be started at all."""

    def __init__(
        self, message: str, command: list[str], original_error: Optional[Exception] = None
    ) -> None:
        super().__init__(
            message,
            error_code="COMMAND_ERROR",
            original_error=original_error,
            command=command,
        )
        self.command = command


class NetworkTimeoutError(WingetAutoUpdateError):
    """Raised when connectivity could not be established before the timeout."""

    def __init__(self, timeout_seconds: int) -> None:
        super().__init__(
            f"No network connectivity after {timeout_seconds} seconds",
            error_code="NETWORK_TIMEOUT",
            timeout_seconds=timeout_seconds,
        )


class SelfUpdateError(WingetAutoUpdateError):
    """Raised when checking for or applying a new agent release fails."""

    def __init__(
        self,
        message: str,
        *,
        version: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            error_code="SELF_UPDATE_ERROR",
            original_error=original_error,
            version=version,
        )


class UpgradeFailedError(WingetAutoUpdateError):
    """Describes a package that is still outdated after upgrade and install."""

    def __init__(self, package_id: str, return_codes: Optional[list[int]] = None) -> None:
        super().__init__(
            f"{package_id} is still outdated after upgrade and install attempts",
            error_code="UPGRADE_FAILED",
            package_id=package_id,
            return_codes=return_codes or [],
        )
        self.package_id = package_id


class PrerequisiteMissingError(WingetAutoUpdateError):
    """Raised by the installer when a required component is absent."""

    def __init__(self, component: str, detail: str = "") -> None:
        message = f"Prerequisite missing: {component}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(
            message,
            error_code="PREREQUISITE_MISSING",
            component=component,
        )
        self.component = component


class ConfigError(WingetAutoUpdateError):
    """Raised when a persisted configuration file cannot be read or parsed."""

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[Path] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            error_code="CONFIG_ERROR",
            file_path=config_path,
            original_error=original_error,
        )


class UnsupportedPlatformError(WingetAutoUpdateError):
    """Raised when Windows-only operations are attempted elsewhere."""

    def __init__(self, platform_name: str) -> None:
        super().__init__(
            f"This operation is not supported on {platform_name}. Windows is required.",
            error_code="UNSUPPORTED_PLATFORM",
            platform=platform_name,
        )


class RegistryAccessError(WingetAutoUpdateError):
    """Raised when registry access operations fail."""

    def __init__(
        self,
        message: str,
        *,
        registry_path: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            error_code="REGISTRY_ACCESS_ERROR",
            original_error=original_error,
            registry_path=registry_path,
        )
