#!/usr/bin/env python3
"""
Toast notifications for the logged-on user.

A toast can only be shown from inside a user session. When the agent runs as
SYSTEM (the scheduled update task), the rendered toast is written to a file
and the notification helper task, which runs as the logged-on user, is started
to display it. In an interactive session the toast is shown directly.
"""

from __future__ import annotations

import getpass
import time
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable, Optional

from loguru import logger
from pydantic import ValidationError

from .config import CONFIG_DIR_NAME
from .exceptions import WingetAutoUpdateError
from .localization import EventKind, LocaleTemplates
from .models import NotificationEvent, NotificationLevel, Severity, ToastPayload
from .registry import NOTIFICATION_APP_ID
from .scheduler import NOTIFY_TASK_NAME, run_task
from .shell import quote_ps, run_powershell

QUEUE_FILE_NAME = "notification.json"
TOAST_GROUP = "Winget-AutoUpdate"
RENDER_DELAY_SECONDS = 3
MAX_TAG_LENGTH = 64

TOAST_SCRIPT = """
[Windows.UI.Notifications.ToastNotificationManager, Windows.UI.Notifications, ContentType = WindowsRuntime] | Out-Null
[Windows.Data.Xml.Dom.XmlDocument, Windows.Data.Xml.Dom.XmlDocument, ContentType = WindowsRuntime] | Out-Null
$xml = New-Object Windows.Data.Xml.Dom.XmlDocument
$xml.LoadXml({xml})
$toast = New-Object Windows.UI.Notifications.ToastNotification $xml
$toast.Tag = {tag}
$toast.Group = {group}
[Windows.UI.Notifications.ToastNotificationManager]::CreateToastNotifier({app_id}).Show($toast)
"""


def is_system_session() -> bool:
    """Check whether the process runs as SYSTEM rather than as a logged-on user."""
    user = getpass.getuser().upper()
    # SYSTEM shows up as "SYSTEM" or as the machine account "<HOSTNAME>$"
    return user == "SYSTEM" or user.endswith("$")


def render_toast_xml(event: NotificationEvent, icon_dir: Optional[Path] = None) -> str:
    """Build the toast XML document for an event."""
    toast = ET.Element("toast")
    visual = ET.SubElement(toast, "visual")
    binding = ET.SubElement(visual, "binding", {"template": "ToastGeneric"})

    if icon_dir is not None:
        icon = icon_dir / f"{event.severity.value}.png"
        if icon.exists():
            ET.SubElement(binding, "image", {"placement": "appLogoOverride", "src": str(icon)})

    ET.SubElement(binding, "text").text = event.title
    ET.SubElement(binding, "text").text = event.message

    if event.severity is Severity.INFO:
        ET.SubElement(toast, "audio", {"silent": "true"})

    return ET.tostring(toast, encoding="unicode")


class Notifier:
    """Sends toast notifications, picking the display path on every call."""

    def __init__(
        self,
        install_dir: Path | str,
        templates: Optional[LocaleTemplates] = None,
        level: NotificationLevel = NotificationLevel.FULL,
        *,
        session_check: Callable[[], bool] = is_system_session,
        sleep: Callable[[float], None] = time.sleep,
        render_delay: float = RENDER_DELAY_SECONDS,
    ) -> None:
        self.install_dir = Path(install_dir)
        self.templates = templates
        self.level = level
        self._session_check = session_check
        self._sleep = sleep
        self._render_delay = render_delay

    @property
    def queue_path(self) -> Path:
        return self.install_dir / CONFIG_DIR_NAME / QUEUE_FILE_NAME

    @property
    def icon_dir(self) -> Path:
        return self.install_dir / "icons"

    def should_show(self, severity: Severity) -> bool:
        match self.level:
            case NotificationLevel.NONE:
                return False
            case NotificationLevel.SUCCESS_ONLY:
                return severity is Severity.SUCCESS
            case _:
                return True

    def notify(
        self,
        title: str,
        message: str,
        severity: Severity = Severity.INFO,
        tag: str = "",
    ) -> None:
        """
        Show a toast to the logged-on user.

        Failures are logged and never raised; a notification is never worth
        aborting an update run for.

        Args:
            title: First line of the toast
            message: Second line of the toast
            severity: Selects the icon and whether the toast is silent
            tag: Toasts sharing a tag replace each other instead of stacking
        """
        if not self.should_show(severity):
            logger.debug(f"Notification suppressed by level {self.level.value}: {title}")
            return

        event = NotificationEvent(
            title=title, message=message, severity=severity, tag=tag[:MAX_TAG_LENGTH]
        )
        payload = ToastPayload(
            title=event.title,
            message=event.message,
            severity=event.severity,
            tag=event.tag,
            group=TOAST_GROUP,
            xml=render_toast_xml(event, self.icon_dir),
        )

        try:
            if self._session_check():
                self._queue_for_helper(payload)
            else:
                self._display_direct(payload)
        except (WingetAutoUpdateError, OSError) as e:
            logger.warning(f"Notification '{title}' could not be shown: {e}")
            return

        self._sleep(self._render_delay)

    def notify_event(
        self,
        kind: EventKind,
        *args: object,
        severity: Severity = Severity.INFO,
        tag: str = "",
    ) -> None:
        """Render an event through the locale templates and show it."""
        if self.templates is None:
            logger.debug(f"No notification templates loaded, skipping {kind.name}")
            return
        title, message = self.templates.render(kind, *args)
        self.notify(title, message, severity, tag)

    def _display_direct(self, payload: ToastPayload) -> None:
        script = TOAST_SCRIPT.format(
            xml=quote_ps(payload.xml),
            tag=quote_ps(payload.tag),
            group=quote_ps(payload.group),
            app_id=quote_ps(NOTIFICATION_APP_ID),
        )
        result = run_powershell(script)
        if not result["success"]:
            logger.warning(f"Toast display failed: {result['output'].strip()}")
        else:
            logger.debug(f"Toast shown: {payload.title}")

    def _queue_for_helper(self, payload: ToastPayload) -> None:
        self.queue_path.parent.mkdir(parents=True, exist_ok=True)
        self.queue_path.write_text(payload.model_dump_json(), encoding="utf-8")
        logger.debug(f"Toast queued for the user session: {payload.title}")
        run_task(NOTIFY_TASK_NAME)

    def display_queued(self) -> bool:
        """
        Show the toast left by the SYSTEM run. Runs inside the helper task.

        Returns:
            True if a queued toast was found and handed to Windows
        """
        if not self.queue_path.exists():
            logger.debug(f"No queued notification at {self.queue_path}")
            return False

        try:
            payload = ToastPayload.model_validate_json(self.queue_path.read_text(encoding="utf-8"))
        except ValidationError as e:
            logger.warning(f"Discarding unreadable queued notification {self.queue_path}: {e}")
            self.queue_path.unlink(missing_ok=True)
            return False

        self._display_direct(payload)
        return True
