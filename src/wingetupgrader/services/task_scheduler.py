"""Windows Task Scheduler integration through ``schtasks.exe``."""

import os
import subprocess
import tempfile
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple
from xml.sax.saxutils import escape

from wingetupgrader.constants import SYSTEM_SID, USERS_GROUP_SID
from wingetupgrader.errors import UpgraderError

TASK_NAMESPACE = "http://schemas.microsoft.com/windows/2004/02/mit/task"


@dataclass(frozen=True)
class TaskDefinition:
    """The subset of a Task Scheduler definition WingetUpgrader registers."""

    command: str
    arguments: str
    description: str
    run_as_system: bool
    start_at: Optional[datetime] = None
    execution_time_limit: str = "PT2H"


class TaskSchedulerService:
    """Registers, runs, queries and removes scheduled tasks."""

    def __init__(self, run_cmd: Callable, logger):
        self.run_cmd = run_cmd
        self.logger = logger

    def build_task_xml(self, definition: TaskDefinition) -> str:
        if definition.run_as_system:
            principal = f"""
    <Principal id="Author">
      <UserId>{SYSTEM_SID}</UserId>
      <RunLevel>HighestAvailable</RunLevel>
    </Principal>"""
        else:
            # Starts once in every interactive session; the result file keeps the last writer.
            principal = f"""
    <Principal id="Author">
      <GroupId>{USERS_GROUP_SID}</GroupId>
      <RunLevel>LeastPrivilege</RunLevel>
    </Principal>"""

        triggers = ""
        if definition.start_at is not None:
            start = definition.start_at.replace(microsecond=0).isoformat()
            triggers = f"""
    <TimeTrigger>
      <StartBoundary>{start}</StartBoundary>
      <Enabled>true</Enabled>
    </TimeTrigger>"""

        return f"""<?xml version="1.0" encoding="UTF-16"?>
<Task version="1.2" xmlns="{TASK_NAMESPACE}">
  <RegistrationInfo>
    <Description>{escape(definition.description)}</Description>
  </RegistrationInfo>
  <Triggers>{triggers}
  </Triggers>
  <Principals>{principal}
  </Principals>
  <Settings>
    <MultipleInstancesPolicy>IgnoreNew</MultipleInstancesPolicy>
    <DisallowStartIfOnBatteries>false</DisallowStartIfOnBatteries>
    <StopIfGoingOnBatteries>false</StopIfGoingOnBatteries>
    <StartWhenAvailable>true</StartWhenAvailable>
    <AllowStartOnDemand>true</AllowStartOnDemand>
    <Enabled>true</Enabled>
    <Hidden>true</Hidden>
    <ExecutionTimeLimit>{definition.execution_time_limit}</ExecutionTimeLimit>
  </Settings>
  <Actions Context="Author">
    <Exec>
      <Command>{escape(definition.command)}</Command>
      <Arguments>{escape(definition.arguments)}</Arguments>
    </Exec>
  </Actions>
</Task>
"""

    def exists(self, task_name: str) -> bool:
        result = self.run_cmd(
            ["schtasks", "/Query", "/TN", task_name],
            check=False,
            capture_output=True,
        )
        return result.returncode == 0

    def delete(self, task_name: str):
        self.logger.debug("Unregistering scheduled task %s", task_name)
        self.run_cmd(["schtasks", "/Delete", "/TN", task_name, "/F"], check=True, capture_output=True)

    def register(self, task_name: str, definition: TaskDefinition):
        xml = self.build_task_xml(definition)
        fd, xml_path = tempfile.mkstemp(prefix="wingetupgrader-task-", suffix=".xml")
        try:
            with os.fdopen(fd, "w", encoding="utf-16") as file_obj:
                file_obj.write(xml)
            self.logger.debug("Registering scheduled task %s", task_name)
            self.run_cmd(
                ["schtasks", "/Create", "/TN", task_name, "/XML", xml_path],
                check=True,
                capture_output=True,
            )
        finally:
            try:
                os.remove(xml_path)
            except OSError:
                pass

    def run(self, task_name: str):
        self.run_cmd(["schtasks", "/Run", "/TN", task_name], check=True, capture_output=True)

    def query_status(self, task_name: str) -> Tuple[str, int]:
        """Returns the task state name and its last run result."""
        folder, _, leaf = task_name.rpartition("\\")
        script = (
            f"$t = Get-ScheduledTask -TaskPath '{ps_quote(folder + chr(92))}' "
            f"-TaskName '{ps_quote(leaf)}'; "
            "$i = $t | Get-ScheduledTaskInfo; "
            "Write-Output (\"{0}|{1}\" -f $t.State, $i.LastTaskResult)"
        )
        result = self.run_cmd(powershell_command(script), check=True, capture_output=True)
        return parse_status_line(result.stdout)


def parse_status_line(output: Optional[str]) -> Tuple[str, int]:
    lines = (output or "").strip().splitlines()
    if not lines:
        raise UpgraderError("Scheduled task status query returned no output.")

    state, _, last_result = lines[-1].strip().partition("|")
    try:
        return state.strip(), int(last_result.strip())
    except ValueError as exc:
        raise UpgraderError(f"Unexpected scheduled task status: {lines[-1]!r}") from exc


def powershell_command(script: str) -> List[str]:
    return [
        "powershell.exe",
        "-NoProfile",
        "-NonInteractive",
        "-ExecutionPolicy",
        "Bypass",
        "-Command",
        script,
    ]


def powershell_file_arguments(script_path: str) -> List[str]:
    return [
        "-NoProfile",
        "-NonInteractive",
        "-ExecutionPolicy",
        "Bypass",
        "-WindowStyle",
        "Hidden",
        "-File",
        script_path,
    ]


def ps_quote(value: str) -> str:
    return value.replace("'", "''")


def join_arguments(arguments: List[str]) -> str:
    return subprocess.list2cmdline(arguments)
