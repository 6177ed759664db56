#!/usr/bin/env python3
"""
Windows Task Scheduler registrations for Winget-AutoUpdate.

Two tasks are registered from generated Task Scheduler XML:

- the update task, run daily and at logon under the SYSTEM account
- the notification helper, started on demand in the logged-on user's session
"""

from __future__ import annotations

import tempfile
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger

from .models import CommandResult
from .shell import run_process

TASK_NAMESPACE = "http://schemas.microsoft.com/windows/2004/02/mit/task"
UPDATE_TASK_NAME = "Winget-AutoUpdate"
NOTIFY_TASK_NAME = "Winget-AutoUpdate-Notify"

SYSTEM_SID = "S-1-5-18"
USERS_GROUP_SID = "S-1-5-32-545"


@dataclass
class TaskDefinition:
    """What a scheduled task runs, as whom, and when"""

    name: str
    command: str
    arguments: str
    working_directory: Path
    description: str = ""
    user_id: Optional[str] = None
    group_id: Optional[str] = None
    highest_privileges: bool = False
    daily_at: Optional[str] = None
    at_logon: bool = False
    execution_time_limit: str = "PT3H"
    # IgnoreNew drops a start while running; Queue defers it until the running one exits
    multiple_instances: str = "IgnoreNew"


def _add(parent: ET.Element, tag: str, text: Optional[str] = None) -> ET.Element:
    child = ET.SubElement(parent, tag)
    if text is not None:
        child.text = text
    return child


def build_task_xml(task: TaskDefinition) -> str:
    """Render a task definition as Task Scheduler 1.2 XML."""
    root = ET.Element("Task", {"version": "1.2", "xmlns": TASK_NAMESPACE})

    info = _add(root, "RegistrationInfo")
    _add(info, "Description", task.description)
    _add(info, "URI", f"\\{task.name}")

    triggers = _add(root, "Triggers")
    if task.daily_at:
        calendar = _add(triggers, "CalendarTrigger")
        _add(calendar, "StartBoundary", f"2024-01-01T{task.daily_at}:00")
        _add(calendar, "Enabled", "true")
        by_day = _add(calendar, "ScheduleByDay")
        _add(by_day, "DaysInterval", "1")
    if task.at_logon:
        logon = _add(triggers, "LogonTrigger")
        _add(logon, "Enabled", "true")

    principals = _add(root, "Principals")
    principal = _add(principals, "Principal")
    principal.set("id", "Author")
    if task.user_id:
        _add(principal, "UserId", task.user_id)
    if task.group_id:
        _add(principal, "GroupId", task.group_id)
    _add(principal, "RunLevel", "HighestAvailable" if task.highest_privileges else "LeastPrivilege")

    settings = _add(root, "Settings")
    _add(settings, "MultipleInstancesPolicy", task.multiple_instances)
    _add(settings, "DisallowStartIfOnBatteries", "false")
    _add(settings, "StopIfGoingOnBatteries", "false")
    _add(settings, "StartWhenAvailable", "true")
    _add(settings, "RunOnlyIfNetworkAvailable", "false")
    _add(settings, "ExecutionTimeLimit", task.execution_time_limit)
    _add(settings, "Enabled", "true")

    actions = _add(root, "Actions")
    actions.set("Context", "Author")
    exec_action = _add(actions, "Exec")
    _add(exec_action, "Command", task.command)
    _add(exec_action, "Arguments", task.arguments)
    _add(exec_action, "WorkingDirectory", str(task.working_directory))

    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-16"?>\n' + ET.tostring(root, encoding="unicode")


def register_task(task: TaskDefinition) -> CommandResult:
    """Create or replace a scheduled task."""
    with tempfile.TemporaryDirectory(prefix="wau-task-") as tmp:
        xml_path = Path(tmp) / f"{task.name}.xml"
        # schtasks only accepts UTF-16 task files
        xml_path.write_text(build_task_xml(task), encoding="utf-16")
        result = run_process(
            ["schtasks.exe", "/Create", "/TN", task.name, "/XML", str(xml_path), "/F"]
        )

    if result["success"]:
        logger.info(f"Scheduled task '{task.name}' registered")
    else:
        logger.error(f"Failed to register scheduled task '{task.name}': {result['output'].strip()}")
    return result


def run_task(name: str) -> CommandResult:
    """Start a registered task immediately."""
    result = run_process(["schtasks.exe", "/Run", "/TN", name])
    if not result["success"]:
        logger.warning(f"Failed to start scheduled task '{name}': {result['output'].strip()}")
    return result


def delete_task(name: str) -> CommandResult:
    result = run_process(["schtasks.exe", "/Delete", "/TN", name, "/F"])
    if result["success"]:
        logger.info(f"Scheduled task '{name}' removed")
    else:
        logger.debug(f"Scheduled task '{name}' not removed: {result['output'].strip()}")
    return result


def task_exists(name: str) -> bool:
    return run_process(["schtasks.exe", "/Query", "/TN", name])["success"]
