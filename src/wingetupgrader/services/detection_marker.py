"""Detection marker lifecycle and deferred cleanup scheduling."""

from datetime import datetime, timedelta
from typing import Callable, Optional

from wingetupgrader.constants import CLEANUP_DELAY, CLEANUP_TASK_NAME, TASK_FOLDER
from wingetupgrader.errors import ErrorKind, UpgraderError
from wingetupgrader.errors_catalog import actionable_error
from wingetupgrader.models import MarkerResult, parent_dir
from wingetupgrader.services.task_scheduler import TaskDefinition, TaskSchedulerService


class DetectionMarkerService:
    """Creates the completion marker and schedules its removal.

    Neither operation raises: failures come back as a ``MarkerResult``
    because the upgrade work has already finished when they run.
    """

    def __init__(
        self,
        filesystem_service,
        task_scheduler: TaskSchedulerService,
        logger,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.filesystem_service = filesystem_service
        self.task_scheduler = task_scheduler
        self.logger = logger
        self.now = now

    @property
    def cleanup_task_name(self) -> str:
        return f"{TASK_FOLDER}{CLEANUP_TASK_NAME}"

    def signal(self, path: str) -> MarkerResult:
        try:
            parent = parent_dir(path)
            if parent:
                self.filesystem_service.ensure_dir(parent)
            self.filesystem_service.touch_empty(path)
        except OSError as exc:
            message = actionable_error("marker_create_failed", path=path, detail=str(exc))
            self.logger.error(message)
            return MarkerResult(
                succeeded=False,
                path=path,
                error_kind=ErrorKind.MARKER_CREATE,
                message=message,
            )

        self.logger.info("Detection marker created at %s", path)
        return MarkerResult(succeeded=True, path=path, message="Detection marker created.")

    def build_cleanup_definition(self, path: str, start_at: datetime) -> TaskDefinition:
        return TaskDefinition(
            command="cmd.exe",
            arguments=f'/c if exist "{path}" del /f /q "{path}"',
            description="Removes the WingetUpgrader detection marker after a completed run.",
            run_as_system=True,
            start_at=start_at,
            execution_time_limit="PT10M",
        )

    def schedule_cleanup(self, path: str, delay: Optional[timedelta] = None) -> MarkerResult:
        delay = CLEANUP_DELAY if delay is None else delay
        task_name = self.cleanup_task_name
        start_at = self.now() + delay

        try:
            if self.task_scheduler.exists(task_name):
                self.logger.info("Removing previous cleanup task %s", task_name)
                self.task_scheduler.delete(task_name)
            self.task_scheduler.register(task_name, self.build_cleanup_definition(path, start_at))
        except (UpgraderError, OSError) as exc:
            message = actionable_error("cleanup_schedule_failed", detail=str(exc))
            self.logger.warning(message)
            return MarkerResult(
                succeeded=False,
                path=path,
                error_kind=ErrorKind.CLEANUP_SCHEDULE,
                message=message,
            )

        self.logger.info("Detection marker removal scheduled for %s", start_at.isoformat(timespec="seconds"))
        return MarkerResult(succeeded=True, path=path, message=f"Cleanup scheduled for {start_at:%H:%M}.")
