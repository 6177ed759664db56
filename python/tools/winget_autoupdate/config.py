#!/usr/bin/env python3
"""
Persisted configuration for Winget-AutoUpdate.

The installer writes three small files under the install directory and every
run reads them once:

- ``config/config.xml``: agent settings (:class:`AgentConfig`)
- ``config/about.xml``: installed agent version
- ``excluded_apps.txt`` or ``included_apps.txt``: the package policy
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import AgentConfig, ListMode, Policy

CONFIG_DIR_NAME = "config"
CONFIG_FILE_NAME = "config.xml"
ABOUT_FILE_NAME = "about.xml"
DENY_LIST_FILE_NAME = "excluded_apps.txt"
ALLOW_LIST_FILE_NAME = "included_apps.txt"


def policy_file_name(mode: ListMode) -> str:
    """Name of the policy file used for a list mode."""
    return ALLOW_LIST_FILE_NAME if mode is ListMode.ALLOW_LIST else DENY_LIST_FILE_NAME


def parse_policy_lines(lines: list[str]) -> frozenset[str]:
    """One trimmed package id per line; blank lines are ignored."""
    return frozenset(line.strip() for line in lines if line.strip())


class ConfigStore:
    """Reads and writes the agent's persisted files under an install directory."""

    def __init__(self, install_dir: Path | str) -> None:
        self.install_dir = Path(install_dir)
        self.config_dir = self.install_dir / CONFIG_DIR_NAME

    @property
    def config_path(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    @property
    def about_path(self) -> Path:
        return self.config_dir / ABOUT_FILE_NAME

    def policy_path(self, mode: ListMode) -> Path:
        return self.install_dir / policy_file_name(mode)

    @contextmanager
    def _file_operation(self, path: Path, mode: str = "r") -> Generator[Any, None, None]:
        """Context manager for file access that turns OS errors into ConfigError."""
        try:
            if "w" in mode:
                path.parent.mkdir(parents=True, exist_ok=True)
            with path.open(mode, encoding="utf-8") as f:
                yield f
        except (OSError, UnicodeDecodeError) as e:
            operation = "reading" if "r" in mode else "writing"
            raise ConfigError(
                f"Failed {operation} {path.name}: {e}",
                config_path=path,
                original_error=e,
            ) from e

    def _read_xml(self, path: Path) -> ET.Element:
        with self._file_operation(path, "r") as f:
            content = f.read()
        try:
            return ET.fromstring(content)
        except ET.ParseError as e:
            raise ConfigError(
                f"Malformed XML in {path.name}: {e}", config_path=path, original_error=e
            ) from e

    def _write_xml(self, path: Path, root: ET.Element) -> None:
        ET.indent(root)
        with self._file_operation(path, "w") as f:
            f.write('<?xml version="1.0" encoding="utf-8"?>\n')
            f.write(ET.tostring(root, encoding="unicode"))
            f.write("\n")

    def load_config(self) -> AgentConfig:
        """
        Load agent settings.

        Returns:
            The parsed AgentConfig, or defaults when the file does not exist

        Raises:
            ConfigError: If the file is unreadable or holds invalid values
        """
        if not self.config_path.exists():
            logger.debug(f"No {self.config_path} found, using default settings")
            return AgentConfig()

        root = self._read_xml(self.config_path)
        values = {
            child.tag: (child.text or "").strip()
            for child in root
            if child.tag in AgentConfig.model_fields
        }
        try:
            config = AgentConfig(**values)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid settings in {self.config_path.name}: {e}",
                config_path=self.config_path,
                original_error=e,
            ) from e

        logger.debug(f"Loaded settings: {config.model_dump(mode='json')}")
        return config

    def save_config(self, config: AgentConfig) -> None:
        root = ET.Element("app")
        for key, value in config.model_dump(mode="json").items():
            ET.SubElement(root, key).text = str(value)
        self._write_xml(self.config_path, root)
        logger.debug(f"Settings written to {self.config_path}")

    def read_version(self) -> str:
        """
        Read the installed agent version from about.xml.

        Raises:
            ConfigError: If the file is missing or has no version element
        """
        if not self.about_path.exists():
            raise ConfigError(
                f"Version file not found: {self.about_path}", config_path=self.about_path
            )
        root = self._read_xml(self.about_path)
        version = (root.findtext("version") or "").strip()
        if not version:
            raise ConfigError(
                f"No version recorded in {self.about_path.name}",
                config_path=self.about_path,
            )
        return version

    def write_version(self, version: str) -> None:
        root = ET.Element("app")
        ET.SubElement(root, "name").text = "Winget-AutoUpdate"
        ET.SubElement(root, "version").text = version.lstrip("vV")
        self._write_xml(self.about_path, root)
        logger.debug(f"Recorded agent version {version}")

    def load_policy(self, mode: ListMode) -> Policy:
        """
        Load the allow-list or deny-list matching the configured mode.

        A missing deny-list excludes nothing. A missing allow-list allows
        nothing, which is logged since it disables every upgrade.
        """
        path = self.policy_path(mode)
        if not path.exists():
            if mode is ListMode.ALLOW_LIST:
                logger.warning(f"Allow-list {path} not found, no package will be updated")
            else:
                logger.debug(f"Deny-list {path} not found, no package is excluded")
            return Policy(mode=mode)

        with self._file_operation(path, "r") as f:
            entries = parse_policy_lines(f.readlines())

        logger.debug(f"Loaded {mode.value} with {len(entries)} entries from {path}")
        return Policy(mode=mode, entries=entries)

    def save_policy(self, policy: Policy) -> None:
        path = self.policy_path(policy.mode)
        with self._file_operation(path, "w") as f:
            for package_id in sorted(policy.entries):
                f.write(f"{package_id}\n")
        logger.debug(f"Wrote {len(policy.entries)} entries to {path}")
