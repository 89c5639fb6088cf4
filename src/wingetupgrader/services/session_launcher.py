"""Launchers that run a command in the interactive user's session."""

import time
import uuid
from typing import List, Optional

from wingetupgrader.constants import QUERY_TASK_PREFIX, TASK_FOLDER, TASK_HAS_NOT_RUN
from wingetupgrader.errors import ErrorKind, UpgraderError
from wingetupgrader.models import to_signed32
from wingetupgrader.services.task_scheduler import (
    TaskDefinition,
    TaskSchedulerService,
    join_arguments,
)


class DirectLauncher:
    """Runs the command in the current session and waits for it."""

    def __init__(self, command_runner, logger):
        self.command_runner = command_runner
        self.logger = logger

    def run_as_user(self, cmd: List[str], timeout: Optional[float] = None) -> int:
        result = self.command_runner.run(cmd, check=False, capture_output=True, timeout=timeout)
        return to_signed32(result.returncode)


class InteractiveUserLauncher:
    """Runs a command as the logged-on user from an elevated process.

    A one-shot task whose principal is the local Users group is registered,
    started on demand, polled until it leaves the ``Running`` state and then
    removed. Task Scheduler starts it with the interactive user's token.
    """

    RUNNING_STATES = {"Running", "Queued"}

    def __init__(
        self,
        task_scheduler: TaskSchedulerService,
        logger,
        poll_interval: float = 2.0,
        clock=time.monotonic,
        sleep=time.sleep,
    ):
        self.task_scheduler = task_scheduler
        self.logger = logger
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep

    def run_as_user(self, cmd: List[str], timeout: Optional[float] = None) -> int:
        task_name = f"{TASK_FOLDER}{QUERY_TASK_PREFIX} {uuid.uuid4().hex[:8]}"
        definition = TaskDefinition(
            command=cmd[0],
            arguments=join_arguments(cmd[1:]),
            description="Runs the WingetUpgrader package query in the user session.",
            run_as_system=False,
        )

        self.task_scheduler.register(task_name, definition)
        try:
            self.task_scheduler.run(task_name)
            return self._wait_for_completion(task_name, timeout)
        finally:
            try:
                self.task_scheduler.delete(task_name)
            except UpgraderError as exc:
                self.logger.warning("Could not remove query task %s: %s", task_name, exc)

    def _wait_for_completion(self, task_name: str, timeout: Optional[float]) -> int:
        start = self.clock()
        while True:
            state, last_result = self.task_scheduler.query_status(task_name)
            self.logger.debug("Query task state: %s (last result %s)", state, last_result)
            if state not in self.RUNNING_STATES and last_result != TASK_HAS_NOT_RUN:
                return to_signed32(last_result)

            if timeout is not None and (self.clock() - start) > timeout:
                raise UpgraderError(
                    f"User-session query did not finish within {timeout:.0f} seconds.",
                    kind=ErrorKind.HANDOFF_LAUNCH,
                )
            self.sleep(self.poll_interval)
