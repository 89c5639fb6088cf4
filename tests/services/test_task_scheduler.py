import subprocess
from datetime import datetime

import pytest

from wingetupgrader.errors import UpgraderError
from wingetupgrader.services.task_scheduler import (
    TaskDefinition,
    TaskSchedulerService,
    parse_status_line,
)


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


class FakeSchtasks:
    """Models the parts of schtasks.exe the scheduler service relies on."""

    def __init__(self):
        self.tasks = {}
        self.calls = []

    def __call__(self, cmd, check=True, capture_output=False):
        self.calls.append(cmd)
        action = cmd[1]
        name = cmd[cmd.index("/TN") + 1]
        returncode = 0

        if action == "/Query":
            returncode = 0 if name in self.tasks else 1
        elif action == "/Delete":
            returncode = 0 if self.tasks.pop(name, None) is not None else 1
        elif action == "/Create":
            xml_path = cmd[cmd.index("/XML") + 1]
            with open(xml_path, "r", encoding="utf-16") as file_obj:
                self.tasks[name] = file_obj.read()

        if check and returncode != 0:
            raise UpgraderError(f"Command failed ({returncode}): schtasks {action}")
        return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr="")


def test_build_task_xml_for_system_one_shot_task():
    service = TaskSchedulerService(run_cmd=FakeSchtasks(), logger=DummyLogger())

    xml = service.build_task_xml(
        TaskDefinition(
            command="cmd.exe",
            arguments='/c del "C:\\a & b.tag"',
            description="cleanup",
            run_as_system=True,
            start_at=datetime(2026, 10, 16, 9, 5, 30, 123456),
        )
    )

    assert "<UserId>S-1-5-18</UserId>" in xml
    assert "<RunLevel>HighestAvailable</RunLevel>" in xml
    assert "<StartBoundary>2026-10-16T09:05:30</StartBoundary>" in xml
    assert "<DisallowStartIfOnBatteries>false</DisallowStartIfOnBatteries>" in xml
    assert "<StopIfGoingOnBatteries>false</StopIfGoingOnBatteries>" in xml
    assert "<MultipleInstancesPolicy>IgnoreNew</MultipleInstancesPolicy>" in xml
    assert "a &amp; b.tag" in xml


def test_build_task_xml_for_user_session_task_has_no_trigger():
    service = TaskSchedulerService(run_cmd=FakeSchtasks(), logger=DummyLogger())

    xml = service.build_task_xml(
        TaskDefinition(command="powershell.exe", arguments="-File x.ps1", description="q", run_as_system=False)
    )

    assert "<GroupId>S-1-5-32-545</GroupId>" in xml
    assert "<TimeTrigger>" not in xml


def test_register_writes_xml_and_cleans_temp_file():
    fake = FakeSchtasks()
    service = TaskSchedulerService(run_cmd=fake, logger=DummyLogger())

    service.register("\\Group\\Task", TaskDefinition("cmd.exe", "/c echo", "d", True))

    assert "\\Group\\Task" in fake.tasks
    xml_path = fake.calls[-1][fake.calls[-1].index("/XML") + 1]
    with pytest.raises(FileNotFoundError):
        open(xml_path, "r")
    assert service.exists("\\Group\\Task")


def test_parse_status_line_reads_last_line():
    assert parse_status_line("noise\r\nReady|0\r\n") == ("Ready", 0)
    assert parse_status_line("Running|267009") == ("Running", 267009)

    with pytest.raises(UpgraderError):
        parse_status_line("")
