#!/usr/bin/env python3
"""
Tests for the scheduled task definitions.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from unittest.mock import patch

from conftest import make_result
from winget_autoupdate.installer import notify_task_definition, update_task_definition
from winget_autoupdate.scheduler import (
    NOTIFY_TASK_NAME,
    SYSTEM_SID,
    TASK_NAMESPACE,
    UPDATE_TASK_NAME,
    USERS_GROUP_SID,
    build_task_xml,
    delete_task,
    register_task,
    run_task,
    task_exists,
)

NS = {"t": TASK_NAMESPACE}
INSTALL_DIR = Path(r"C:\ProgramData\Winget-AutoUpdate")
PYTHON = Path(r"C:\Python312\python.exe")


def _parse(xml: str) -> ET.Element:
    # Strip the declaration, ElementTree refuses an encoding mismatch on str input
    return ET.fromstring(xml.split("\n", 1)[1])


class TestUpdateTask:
    def test_triggers(self):
        root = _parse(build_task_xml(update_task_definition(INSTALL_DIR, PYTHON)))

        boundary = root.find("t:Triggers/t:CalendarTrigger/t:StartBoundary", NS).text
        assert boundary.endswith("T06:00:00")
        assert root.find("t:Triggers/t:CalendarTrigger/t:ScheduleByDay/t:DaysInterval", NS).text == "1"
        assert root.find("t:Triggers/t:LogonTrigger", NS) is not None

    def test_runs_as_system_with_highest_privileges(self):
        root = _parse(build_task_xml(update_task_definition(INSTALL_DIR, PYTHON)))

        principal = root.find("t:Principals/t:Principal", NS)
        assert principal.find("t:UserId", NS).text == SYSTEM_SID
        assert principal.find("t:RunLevel", NS).text == "HighestAvailable"

    def test_restart_while_running_is_queued(self):
        # The self-update restart fires while the current run is still alive
        root = _parse(build_task_xml(update_task_definition(INSTALL_DIR, PYTHON)))
        assert root.find("t:Settings/t:MultipleInstancesPolicy", NS).text == "Queue"

    def test_notify_task_ignores_overlapping_starts(self):
        root = _parse(build_task_xml(notify_task_definition(INSTALL_DIR, PYTHON)))
        assert root.find("t:Settings/t:MultipleInstancesPolicy", NS).text == "IgnoreNew"

    def test_action(self):
        root = _parse(build_task_xml(update_task_definition(INSTALL_DIR, PYTHON)))

        action = root.find("t:Actions/t:Exec", NS)
        assert action.find("t:Command", NS).text == str(PYTHON)
        assert action.find("t:Arguments", NS).text.startswith("-m winget_autoupdate run")
        assert action.find("t:WorkingDirectory", NS).text == str(INSTALL_DIR)


class TestNotifyTask:
    def test_no_trigger_and_users_group(self):
        task = notify_task_definition(INSTALL_DIR, PYTHON)
        root = _parse(build_task_xml(task))

        assert task.name == NOTIFY_TASK_NAME
        assert list(root.find("t:Triggers", NS)) == []
        principal = root.find("t:Principals/t:Principal", NS)
        assert principal.find("t:GroupId", NS).text == USERS_GROUP_SID
        assert principal.find("t:UserId", NS) is None
        assert principal.find("t:RunLevel", NS).text == "LeastPrivilege"

    def test_runs_helper_command(self):
        task = notify_task_definition(INSTALL_DIR, PYTHON)
        assert "notify-helper" in task.arguments


class TestSchtasks:
    def test_register_writes_utf16_xml(self):
        seen = {}

        def fake_run(command):
            xml_path = Path(command[command.index("/XML") + 1])
            seen["xml"] = xml_path.read_text(encoding="utf-16")
            return make_result()

        with patch("winget_autoupdate.scheduler.run_process", side_effect=fake_run) as run:
            result = register_task(update_task_definition(INSTALL_DIR, PYTHON))

        assert result["success"]
        command = run.call_args.args[0]
        assert command[:4] == ["schtasks.exe", "/Create", "/TN", UPDATE_TASK_NAME]
        assert command[-1] == "/F"
        assert seen["xml"].startswith('<?xml version="1.0" encoding="UTF-16"?>')

    def test_run_delete_and_query(self):
        with patch("winget_autoupdate.scheduler.run_process", return_value=make_result(1)) as run:
            run_task(NOTIFY_TASK_NAME)
            delete_task(NOTIFY_TASK_NAME)
            assert not task_exists(NOTIFY_TASK_NAME)

        verbs = [c.args[0][1] for c in run.call_args_list]
        assert verbs == ["/Run", "/Delete", "/Query"]
