"""Shared fixtures for the Winget-AutoUpdate tests."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from winget_autoupdate.localization import load_locale
from winget_autoupdate.models import CommandResult, UpdateRecord
from winget_autoupdate.notifier import Notifier

UPGRADE_OUTPUT = (
    "Name                     Id                        Version      Available    Source\n"
    "-----------------------------------------------------------------------------------\n"
    "Mozilla Firefox (x64 fr) Mozilla.Firefox           119.0        120.0        winget\n"
    "7-Zip 22.01 (x64)        7zip.7zip                 22.01        23.01        winget\n"
    "Notepad++ (64-bit x64)   Notepad++.Notepad++       Unknown      8.6          winget\n"
    "3 upgrades available.\n"
)

EMPTY_OUTPUT = "No installed package found matching input criteria.\n"


def make_result(return_code: int = 0, output: str = "") -> CommandResult:
    return {
        "success": return_code == 0,
        "output": output,
        "command": ["winget"],
        "return_code": return_code,
    }


@pytest.fixture
def install_dir(tmp_path: Path) -> Path:
    """Empty install directory."""
    path = tmp_path / "Winget-AutoUpdate"
    path.mkdir()
    return path


@pytest.fixture
def templates():
    return load_locale("en_US")


@pytest.fixture
def notifier():
    """Notifier double recording every event."""
    return MagicMock(spec=Notifier)


@pytest.fixture
def firefox() -> UpdateRecord:
    return UpdateRecord(
        name="Mozilla Firefox (x64 fr)",
        id="Mozilla.Firefox",
        current_version="119.0",
        available_version="120.0",
    )


@pytest.fixture
def seven_zip() -> UpdateRecord:
    return UpdateRecord(
        name="7-Zip 22.01 (x64)",
        id="7zip.7zip",
        current_version="22.01",
        available_version="23.01",
    )
