import logging
import subprocess
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from .errors import UpgraderError
from .models import (
    CatalogResult,
    MarkerResult,
    SelectionCancelled,
    UpgradeOutcome,
    UpgraderConfig,
)
from .services.catalog import PackageCatalogService
from .services.command_runner import CommandRunner
from .services.context_bridge import ContextBridgeService
from .services.dependency import DependencyService
from .services.detection_marker import DetectionMarkerService
from .services.filesystem import FileSystemService
from .services.presenter import ConsoleSelectionPresenter, UnattendedSelectionPresenter
from .services.session_launcher import DirectLauncher, InteractiveUserLauncher
from .services.task_scheduler import TaskSchedulerService
from .services.upgrade_executor import UpgradeExecutorService, resolve_winget_path

console = Console()
logger = logging.getLogger("wingetupgrader")


class WingetUpgrader:
    """Runs one user-approved winget upgrade pass.

    query (user session) -> filter -> select -> upgrade -> detection marker.
    """

    def __init__(
        self,
        config: UpgraderConfig,
        presenter=None,
        direct_query: bool = False,
        check_dependencies: bool = True,
    ):
        self.config = config
        self.check_dependencies = check_dependencies

        self.command_runner = CommandRunner(logger=logger)
        self.filesystem_service = FileSystemService(logger=logger, console=console, run_cmd=self._run_cmd)
        self.task_scheduler = TaskSchedulerService(run_cmd=self._run_cmd, logger=logger)

        if direct_query:
            launcher = DirectLauncher(command_runner=self.command_runner, logger=logger)
        else:
            launcher = InteractiveUserLauncher(task_scheduler=self.task_scheduler, logger=logger)

        self.dependency_service = DependencyService(run_cmd=self._run_cmd, logger=logger, console=console)
        self.context_bridge = ContextBridgeService(
            launcher=launcher,
            filesystem_service=self.filesystem_service,
            logger=logger,
            console=console,
        )
        self.catalog_service = PackageCatalogService(logger=logger)
        self.upgrade_executor = UpgradeExecutorService(
            command_runner=self.command_runner,
            logger=logger,
            winget_path=resolve_winget_path(config.winget_path),
        )
        self.detection_marker = DetectionMarkerService(
            filesystem_service=self.filesystem_service,
            task_scheduler=self.task_scheduler,
            logger=logger,
        )
        self.presenter = presenter or self._default_presenter()

    def _default_presenter(self):
        if self.config.session.is_interactive:
            return ConsoleSelectionPresenter(console=console, session=self.config.session, ui=self.config.ui)
        return UnattendedSelectionPresenter(console=console, session=self.config.session)

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
    ) -> subprocess.CompletedProcess:
        return self.command_runner.run(cmd, check=check, capture_output=capture_output)

    def load_catalog(self) -> CatalogResult:
        handoff = self.context_bridge.query(
            self.config.handoff_dir,
            timeout=self.config.query_timeout_seconds,
        )
        records = self.catalog_service.parse(handoff.rows)
        return self.catalog_service.filter(records, self.config.skip_list)

    def upgrade(self, records) -> List[UpgradeOutcome]:
        outcomes = []
        total = len(records)
        for index, outcome in enumerate(self.upgrade_executor.execute(records, self.config), start=1):
            console.print(f"[blue]({index} of {total})[/blue] {outcome.name}")
            if outcome.succeeded:
                console.print(f"[green]{outcome.message}[/green]")
            else:
                self.presenter.notify(outcome.message, level="warning")
            outcomes.append(outcome)
        return outcomes

    def print_summary(self, outcomes: List[UpgradeOutcome]):
        table = Table(title="Upgrade summary")
        table.add_column("Package")
        table.add_column("Exit code", justify="right")
        table.add_column("Result")
        for outcome in outcomes:
            style = "green" if outcome.succeeded else "red"
            exit_code = "-" if outcome.exit_code is None else str(outcome.exit_code)
            table.add_row(
                outcome.identifier or outcome.name,
                exit_code,
                f"[{style}]{outcome.classification.value}[/{style}]",
            )
        console.print(table)

    def finish(self) -> Optional[MarkerResult]:
        marker_path = self.config.detection_marker
        marker = self.detection_marker.signal(marker_path)
        if not marker.succeeded:
            console.print(f"[yellow]{marker.message}[/yellow]")
            return None

        cleanup = self.detection_marker.schedule_cleanup(marker_path)
        if not cleanup.succeeded:
            console.print(f"[yellow]{cleanup.message}[/yellow]")
        return cleanup

    def run(self) -> int:
        session = self.config.session
        try:
            logger.info(
                "Starting %s %s %s (%s).",
                session.app_vendor,
                session.app_name,
                session.app_version,
                session.deploy_mode,
            )

            if self.check_dependencies:
                self.dependency_service.ensure_winget_client()

            catalog = self.load_catalog()
            if catalog.is_empty:
                self.presenter.notify("No upgrades available.", level="info")
                return 0

            selection = self.presenter.present(list(catalog.records))
            if isinstance(selection, SelectionCancelled) or not selection.records:
                reason = getattr(selection, "reason", "No packages selected.")
                logger.info("No upgrade performed: %s", reason)
                self.presenter.notify("No packages were upgraded.", level="info")
                return 0

            outcomes = self.upgrade(list(selection.records))
            self.print_summary(outcomes)

            failed = [outcome for outcome in outcomes if not outcome.succeeded]
            if failed:
                logger.warning("%s of %s package upgrade(s) failed.", len(failed), len(outcomes))
            else:
                logger.info("All %s package upgrade(s) succeeded.", len(outcomes))

            self.finish()
            self.presenter.notify(
                f"Upgrade finished: {len(outcomes) - len(failed)} succeeded, {len(failed)} failed.",
                level="success" if not failed else "warning",
            )
            return 0

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except UpgraderError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error("[%s] %s", exc.kind.value, exc)
            self.presenter.notify(str(exc), level="error")
            return 0
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1
