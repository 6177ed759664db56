# self_update.py
"""Keeps the agent itself current from its published GitHub releases."""

import shutil
import sys
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Callable, Optional

from loguru import logger

from . import web
from .config import ConfigStore
from .exceptions import SelfUpdateError
from .localization import EventKind
from .models import ReleaseInfo, Severity, VersionInfo
from .notifier import Notifier
from .scheduler import UPDATE_TASK_NAME, run_task

DEFAULT_REPOSITORY = "winget-autoupdate/winget-autoupdate"
PACKAGE_DIR_NAME = "winget_autoupdate"
SELF_UPDATE_TAG = "self-update"


class SelfUpdater:
    """
    Checks the release index and replaces the installed agent with a newer one.

    Applying an update downloads the release archive, copies its
    ``winget_autoupdate`` package over the installed one, records the new
    version, re-triggers the update task and ends the current process, so the
    remaining work of this run is done by the new code.
    """

    def __init__(
        self,
        install_dir: Path,
        store: ConfigStore,
        notifier: Optional[Notifier] = None,
        *,
        repository: str = DEFAULT_REPOSITORY,
        allow_prerelease: bool = False,
        fetch_json: Callable[[str], Any] = web.fetch_json,
        download: Callable[[str, Path], Path] = web.download_file,
        restart_task: Callable[[str], Any] = run_task,
        exit_process: Callable[[int], Any] = sys.exit,
    ):
        self.install_dir = Path(install_dir)
        self.store = store
        self.notifier = notifier
        self.repository = repository
        self.allow_prerelease = allow_prerelease
        self._fetch_json = fetch_json
        self._download = download
        self._restart_task = restart_task
        self._exit_process = exit_process

    @property
    def release_index_url(self) -> str:
        base = f"https://api.github.com/repos/{self.repository}/releases"
        return base if self.allow_prerelease else f"{base}/latest"

    def archive_url(self, tag: str) -> str:
        return f"https://github.com/{self.repository}/archive/refs/tags/{tag}.zip"

    def _notify(self, kind: EventKind, *args: object, severity: Severity) -> None:
        if self.notifier is not None:
            self.notifier.notify_event(kind, *args, severity=severity, tag=SELF_UPDATE_TAG)

    def fetch_latest_release(self) -> ReleaseInfo:
        """
        Fetch the newest published release.

        With pre-releases allowed the full release list is read and its first
        entry, the most recent one, is used.
        """
        data = self._fetch_json(self.release_index_url)
        if isinstance(data, list):
            if not data:
                raise SelfUpdateError("Release index is empty")
            data = data[0]
        return ReleaseInfo.model_validate(data)

    def _extract(self, archive_path: Path, extract_to: Path) -> Path:
        try:
            with zipfile.ZipFile(archive_path, "r") as zip_ref:
                zip_ref.extractall(extract_to)
        except zipfile.BadZipFile as e:
            raise SelfUpdateError(f"Invalid ZIP file: {e}", original_error=e) from e

        # The source archive nests the package somewhere below a top folder
        candidates = [
            init.parent
            for init in extract_to.rglob("__init__.py")
            if init.parent.name == PACKAGE_DIR_NAME
        ]
        if not candidates:
            raise SelfUpdateError(f"No {PACKAGE_DIR_NAME} package found in {archive_path.name}")
        return min(candidates, key=lambda path: len(path.parts))

    def _install(self, package_dir: Path) -> None:
        target = self.install_dir / PACKAGE_DIR_NAME
        shutil.copytree(
            package_dir,
            target,
            dirs_exist_ok=True,
            ignore=shutil.ignore_patterns("tests", "__pycache__"),
        )
        logger.debug(f"Copied {package_dir} over {target}")

    def apply(self, release: ReleaseInfo) -> None:
        """
        Download, extract and install a release, then record its version.

        Raises:
            SelfUpdateError: If any step fails
        """
        work_dir = Path(tempfile.mkdtemp(prefix="wau-update-"))
        try:
            archive = self._download(self.archive_url(release.tag_name), work_dir / "release.zip")
            package_dir = self._extract(archive, work_dir / "extracted")
            self._install(package_dir)
            self.store.write_version(release.version)
        except SelfUpdateError:
            raise
        except Exception as e:
            raise SelfUpdateError(
                f"Failed to apply release {release.tag_name}: {e}",
                version=release.version,
                original_error=e,
            ) from e
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

    def check_and_apply(self, current_version: str, restart: bool = True) -> bool:
        """
        Update the agent if a strictly newer release is published.

        Args:
            current_version: Version recorded for the installed agent
            restart: Re-trigger the update task and exit after applying

        Returns:
            True if a newer release was installed (only returned when
            ``restart`` is False), False if none was applied
        """
        logger.info("Checking for a new Winget-AutoUpdate version...")
        try:
            release = self.fetch_latest_release()
        except Exception as e:
            logger.warning(f"Could not check for a new Winget-AutoUpdate version: {e}")
            return False

        versions = VersionInfo(current=current_version, latest=release.version)
        if not versions.update_available:
            logger.info(f"Winget-AutoUpdate is up to date ({current_version})")
            return False

        logger.info(f"New Winget-AutoUpdate version available: {current_version} -> {release.version}")
        self._notify(
            EventKind.SELF_UPDATE_STARTING, release.version, current_version, severity=Severity.INFO
        )

        try:
            self.apply(release)
        except SelfUpdateError as e:
            logger.error(f"Winget-AutoUpdate update failed: {e}")
            self._notify(EventKind.SELF_UPDATE_FAILED, release.version, severity=Severity.ERROR)
            return False

        logger.success(f"Winget-AutoUpdate updated to {release.version}")
        self._notify(EventKind.SELF_UPDATE_SUCCEEDED, release.version, severity=Severity.SUCCESS)

        if not restart:
            return True

        logger.info("Restarting the update task with the new version")
        self._restart_task(UPDATE_TASK_NAME)
        self._exit_process(0)
        return True
