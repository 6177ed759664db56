#!/usr/bin/env python3
"""
Core functionality for interacting with the winget package manager
"""

from __future__ import annotations

import os
import re
import shutil
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .exceptions import CommandError, WingetNotFoundError
from .models import CommandResult, UpdateRecord
from .utils import parse_version

SEPARATOR_PREFIX = "-----"
HEADER_TOKENS = ("Id", "Version", "Available", "Source")
APP_INSTALLER_PATTERN = "Microsoft.DesktopAppInstaller_*_x64__8wekyb3d8bbwe"
AGREEMENT_FLAGS = ["--accept-package-agreements", "--accept-source-agreements"]

# Spinner frames and progress bars winget draws while working
_PROGRESS_RE = re.compile(r"^[\s\-\\|/]*$|[\u2588\u2592]")
_LINE_SPLIT_RE = re.compile(r"\r\n|\n|\r")


def find_column_offsets(header: str) -> Optional[tuple[int, int, int, int]]:
    """
    Locate where the Id, Version, Available and Source columns start.

    The English header tokens are looked up first. When they are missing or
    out of order (localized winget), the start of each whitespace-separated
    header word is used instead, provided there are exactly five words.

    Returns:
        Start offsets of (id, version, available, source), or None when the
        header cannot be understood
    """
    offsets = [header.find(token) for token in HEADER_TOKENS]
    if all(offset > 0 for offset in offsets) and offsets == sorted(offsets):
        return offsets[0], offsets[1], offsets[2], offsets[3]

    words = [match.start() for match in re.finditer(r"\S+", header)]
    if len(words) == 5:
        logger.warning(f"Unrecognized winget header, using word positions: {header.strip()!r}")
        return words[1], words[2], words[3], words[4]

    logger.warning(f"Cannot locate winget table columns in header: {header.strip()!r}")
    return None


def parse_upgrade_table(output: str) -> List[UpdateRecord]:
    """
    Parse the fixed-width table printed by ``winget upgrade``.

    Output without a separator line means nothing is outdated. The header is
    the nearest non-blank line above the separator, and each column's start
    offset comes from the header. Rows after the separator are sliced at those
    offsets and right-trimmed; rows not longer than the Source offset, or
    starting with "-", are skipped. Blank lines do not end the
    table: a later section (packages requiring explicit targeting) has its
    heading and header dropped when its own separator is reached, and its
    rows are parsed with the same offsets.

    Args:
        output: Combined text output of the command

    Returns:
        One UpdateRecord per table row, in listing order
    """
    lines = _LINE_SPLIT_RE.split(output)

    separator_index = next(
        (i for i, line in enumerate(lines) if line.startswith(SEPARATOR_PREFIX)), None
    )
    if separator_index is None:
        logger.debug("No upgrade table in winget output")
        return []

    header = next(
        (lines[i] for i in range(separator_index - 1, -1, -1) if lines[i].strip()), None
    )
    if header is None:
        return []

    offsets = find_column_offsets(header)
    if offsets is None:
        return []
    id_start, version_start, available_start, source_start = offsets

    records: List[UpdateRecord] = []
    block: List[UpdateRecord] = []
    for row in lines[separator_index + 1:] + [""]:
        if not row.strip():
            records.extend(block)
            block = []
            continue
        if row.startswith(SEPARATOR_PREFIX):
            # Lines above a separator in the same block are a section heading
            block = []
            continue
        if len(row) <= source_start or row.startswith("-"):
            continue

        block.append(
            UpdateRecord(
                name=row[:id_start].rstrip(),
                id=row[id_start:version_start].rstrip(),
                current_version=row[version_start:available_start].rstrip(),
                available_version=row[available_start:source_start].rstrip(),
            )
        )

    return records


class WingetClient:
    """
    Thin wrapper around the winget command-line tool.

    The executable is located lazily, so constructing a client never fails;
    the first command raises WingetNotFoundError if winget is missing.
    """

    def __init__(self, winget_path: Optional[Path | str] = None) -> None:
        """
        Args:
            winget_path: Explicit path to winget.exe, skipping discovery
        """
        self._explicit_path = Path(winget_path) if winget_path else None
        self._winget_path: Optional[str] = None
        self._agreements_accepted = False

    @property
    def winget_path(self) -> str:
        if self._winget_path is None:
            self._winget_path = self._find_winget_command()
            logger.debug(f"Using winget at {self._winget_path}")
        return self._winget_path

    def _find_winget_command(self) -> str:
        """
        Locate winget.exe.

        The SYSTEM account has no App Installer alias, so the package folder
        under WindowsApps is searched first, then the user alias, then PATH.

        Raises:
            WingetNotFoundError: If winget is not found
        """
        searched: List[str] = []

        if self._explicit_path is not None:
            if self._explicit_path.exists():
                return str(self._explicit_path)
            raise WingetNotFoundError([str(self._explicit_path)])

        windows_apps = Path(os.environ.get("ProgramFiles", r"C:\Program Files")) / "WindowsApps"
        searched.append(str(windows_apps / APP_INSTALLER_PATTERN / "winget.exe"))
        try:
            candidates = [
                package / "winget.exe"
                for package in windows_apps.glob(APP_INSTALLER_PATTERN)
                if (package / "winget.exe").exists()
            ]
        except OSError as e:
            logger.debug(f"Cannot search {windows_apps}: {e}")
            candidates = []
        if candidates:
            # Folder names embed the package version: ..._1.21.3482.0_x64__...
            newest = max(candidates, key=lambda p: parse_version(p.parent.name.split("_")[1]))
            return str(newest)

        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            alias = Path(local_app_data) / "Microsoft" / "WindowsApps" / "winget.exe"
            searched.append(str(alias))
            if alias.exists():
                return str(alias)

        searched.append("PATH")
        on_path = shutil.which("winget")
        if on_path:
            return on_path

        raise WingetNotFoundError(searched)

    def run_command(self, args: List[str], stream: bool = False) -> CommandResult:
        """
        Run winget with the given arguments and wait for it to exit.

        Args:
            args: Arguments following the executable
            stream: Log each output line as it arrives

        Returns:
            CommandResult with the combined stdout/stderr text

        Raises:
            WingetNotFoundError: If winget cannot be located
            CommandError: If the process cannot be started
        """
        final_command = [self.winget_path, *args]
        logger.debug(f"Executing command: {' '.join(final_command)}")

        creationflags = subprocess.CREATE_NO_WINDOW if sys.platform == "win32" else 0
        try:
            process = subprocess.Popen(
                final_command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                creationflags=creationflags,
            )
        except OSError as e:
            logger.error(f"Exception executing command {' '.join(final_command)}: {e}")
            raise CommandError(
                f"Failed to execute command {' '.join(final_command)}", final_command, e
            ) from e

        output_lines: List[str] = []
        with process:
            for line in process.stdout:
                output_lines.append(line)
                text = line.rstrip()
                if stream and text and not _PROGRESS_RE.search(text):
                    logger.info(f"    {text}")
            return_code = process.wait()

        result: CommandResult = {
            "success": return_code == 0,
            "output": "".join(output_lines),
            "command": final_command,
            "return_code": return_code,
        }

        if return_code != 0:
            logger.debug(f"Command {' '.join(args)} exited with code {return_code}")
        return result

    def accept_source_agreements(self) -> None:
        """Run a listing once so that source agreements never prompt later."""
        if self._agreements_accepted:
            return
        self.run_command(["list", "--accept-source-agreements"])
        self._agreements_accepted = True

    def list_outdated(self) -> List[UpdateRecord]:
        """
        List packages with a newer version available.

        Raises:
            WingetNotFoundError: If winget cannot be located
        """
        self.accept_source_agreements()
        result = self.run_command(["upgrade", "--accept-source-agreements"])
        records = parse_upgrade_table(result["output"])
        logger.debug(f"winget reports {len(records)} outdated package(s)")
        return records

    def is_outdated(self, package_id: str) -> bool:
        """Re-list and check whether a package id is still outdated."""
        return any(record.id == package_id for record in self.list_outdated())

    def upgrade(self, package_id: str) -> CommandResult:
        """Upgrade one package, streaming winget's output to the log."""
        return self.run_command(
            ["upgrade", "--id", package_id, "--all", *AGREEMENT_FLAGS], stream=True
        )

    def install(self, package_id: str) -> CommandResult:
        """Install one package over the existing one, used when upgrade did not help."""
        return self.run_command(["install", "--id", package_id, *AGREEMENT_FLAGS], stream=True)
