#!/usr/bin/env python3
"""
Tests for the winget table parser and client.
"""

import io
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from conftest import EMPTY_OUTPUT, UPGRADE_OUTPUT, make_result
from winget_autoupdate.exceptions import CommandError, WingetNotFoundError
from winget_autoupdate.winget import (
    AGREEMENT_FLAGS,
    WingetClient,
    find_column_offsets,
    parse_upgrade_table,
)


class TestParseUpgradeTable:
    def test_parses_rows_in_listing_order(self):
        records = parse_upgrade_table(UPGRADE_OUTPUT)

        assert [r.id for r in records] == ["Mozilla.Firefox", "7zip.7zip", "Notepad++.Notepad++"]
        firefox = records[0]
        assert firefox.name == "Mozilla Firefox (x64 fr)"
        assert firefox.current_version == "119.0"
        assert firefox.available_version == "120.0"

    def test_unknown_version_is_kept_as_is(self):
        records = parse_upgrade_table(UPGRADE_OUTPUT)
        assert records[2].current_version == "Unknown"
        assert records[2].has_unknown_version

    def test_no_separator_means_nothing_outdated(self):
        assert parse_upgrade_table(EMPTY_OUTPUT) == []
        assert parse_upgrade_table("") == []

    def test_header_found_above_progress_noise(self):
        output = "   - \r   \\ \r\n\n" + UPGRADE_OUTPUT
        assert len(parse_upgrade_table(output)) == 3

    def test_carriage_return_line_endings(self):
        output = UPGRADE_OUTPUT.replace("\n", "\r\n")
        assert [r.id for r in parse_upgrade_table(output)][:2] == ["Mozilla.Firefox", "7zip.7zip"]

    def test_rows_after_blank_line_are_parsed(self):
        output = (
            "Name                     Id                        Version      Available    Source\n"
            "-----------------------------------------------------------------------------------\n"
            "App One                  Vendor.One                1.0          1.1          winget\n"
            "\n"
            "App Two                  Vendor.Two                2.0          2.1          winget\n"
        )
        assert [r.id for r in parse_upgrade_table(output)] == ["Vendor.One", "Vendor.Two"]

    def test_explicit_targeting_section_drops_its_heading(self):
        output = UPGRADE_OUTPUT + (
            "\n"
            "The following packages have an upgrade available, but require explicit targeting:\n"
            "Name                     Id                        Version      Available    Source\n"
            "-----------------------------------------------------------------------------------\n"
            "Some Pinned App          Pinned.App                1.0          2.0          winget\n"
        )
        ids = [r.id for r in parse_upgrade_table(output)]
        assert ids == ["Mozilla.Firefox", "7zip.7zip", "Notepad++.Notepad++", "Pinned.App"]

    def test_short_and_dash_rows_are_skipped(self):
        output = UPGRADE_OUTPUT.replace("3 upgrades available.", "- " * 45)
        assert len(parse_upgrade_table(output)) == 3

    def test_unrecognized_header_returns_empty(self):
        output = "Something else\n-----\nrow\n"
        assert parse_upgrade_table(output) == []


class TestFindColumnOffsets:
    def test_english_header(self):
        header = "Name   Id   Version   Available   Source"
        assert find_column_offsets(header) == (7, 12, 22, 34)

    def test_localized_header_falls_back_to_word_positions(self):
        header = "Nom    ID   Version   Disponible  Source"
        assert find_column_offsets(header) == (7, 12, 22, 34)

    def test_unusable_header(self):
        assert find_column_offsets("Nom Identifiant") is None


@pytest.fixture
def client(tmp_path: Path) -> WingetClient:
    winget = tmp_path / "winget.exe"
    winget.touch()
    return WingetClient(winget)


def _popen(output: str, return_code: int = 0) -> MagicMock:
    process = MagicMock()
    process.__enter__.return_value = process
    process.stdout = io.StringIO(output)
    process.wait.return_value = return_code
    return process


class TestWingetClient:
    def test_explicit_path_missing(self, tmp_path: Path):
        client = WingetClient(tmp_path / "missing.exe")
        with pytest.raises(WingetNotFoundError):
            _ = client.winget_path

    def test_not_found_anywhere(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("ProgramFiles", str(tmp_path))
        monkeypatch.delenv("LOCALAPPDATA", raising=False)
        with patch("winget_autoupdate.winget.shutil.which", return_value=None):
            with pytest.raises(WingetNotFoundError) as exc_info:
                _ = WingetClient().winget_path
        assert "PATH" in exc_info.value.context["searched_paths"]

    def test_prefers_newest_app_installer_folder(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("ProgramFiles", str(tmp_path))
        for version in ("1.19.10173.0", "1.21.3482.0"):
            folder = (
                tmp_path
                / "WindowsApps"
                / f"Microsoft.DesktopAppInstaller_{version}_x64__8wekyb3d8bbwe"
            )
            folder.mkdir(parents=True)
            (folder / "winget.exe").touch()

        path = WingetClient().winget_path
        assert "1.21.3482.0" in path

    def test_run_command_collects_output(self, client: WingetClient):
        with patch("subprocess.Popen", return_value=_popen("line one\nline two\n", 3)) as popen:
            result = client.run_command(["list"])

        assert popen.call_args.args[0][1:] == ["list"]
        assert result["return_code"] == 3
        assert not result["success"]
        assert result["output"] == "line one\nline two\n"

    def test_run_command_start_failure(self, client: WingetClient):
        with patch("subprocess.Popen", side_effect=OSError("access denied")):
            with pytest.raises(CommandError):
                client.run_command(["list"])

    def test_list_outdated_accepts_agreements_once(self, client: WingetClient):
        with patch.object(client, "run_command", return_value=make_result(0, UPGRADE_OUTPUT)) as run:
            client.list_outdated()
            client.list_outdated()

        calls = [c.args[0] for c in run.call_args_list]
        assert calls.count(["list", "--accept-source-agreements"]) == 1
        assert calls.count(["upgrade", "--accept-source-agreements"]) == 2

    def test_is_outdated(self, client: WingetClient):
        with patch.object(client, "run_command", return_value=make_result(0, UPGRADE_OUTPUT)):
            assert client.is_outdated("7zip.7zip")
            assert not client.is_outdated("Git.Git")

    def test_upgrade_and_install_arguments(self, client: WingetClient):
        with patch.object(client, "run_command", return_value=make_result()) as run:
            client.upgrade("7zip.7zip")
            client.install("7zip.7zip")

        upgrade_args, install_args = (c.args[0] for c in run.call_args_list)
        assert upgrade_args == ["upgrade", "--id", "7zip.7zip", "--all", *AGREEMENT_FLAGS]
        assert install_args == ["install", "--id", "7zip.7zip", *AGREEMENT_FLAGS]
        assert all(c.kwargs["stream"] for c in run.call_args_list)
