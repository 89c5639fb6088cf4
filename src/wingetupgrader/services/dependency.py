"""WinGet PowerShell client module check."""

from typing import Callable

from wingetupgrader.constants import WINGET_CLIENT_MODULE
from wingetupgrader.errors import ErrorKind, UpgraderError
from wingetupgrader.errors_catalog import actionable_error
from wingetupgrader.services.task_scheduler import powershell_command


class DependencyService:
    """Makes sure the query script can import the WinGet client module."""

    def __init__(self, run_cmd: Callable, logger, console):
        self.run_cmd = run_cmd
        self.logger = logger
        self.console = console

    def is_installed(self) -> bool:
        script = (
            f"if (Get-Module -ListAvailable -Name {WINGET_CLIENT_MODULE}) {{ exit 0 }} else {{ exit 1 }}"
        )
        result = self.run_cmd(powershell_command(script), check=False, capture_output=True)
        return result.returncode == 0

    def ensure_winget_client(self):
        try:
            if self.is_installed():
                self.logger.debug("%s module is available.", WINGET_CLIENT_MODULE)
                return

            self.console.print(f"[yellow]Installing {WINGET_CLIENT_MODULE} PowerShell module...[/yellow]")
            self.logger.info("%s module not found. Installing for all users.", WINGET_CLIENT_MODULE)
            script = (
                "Install-PackageProvider -Name NuGet -MinimumVersion 2.8.5.201 -Force -Scope AllUsers | Out-Null; "
                f"Install-Module -Name {WINGET_CLIENT_MODULE} -Force -AllowClobber -Scope AllUsers -Repository PSGallery"
            )
            self.run_cmd(powershell_command(script), check=True, capture_output=True)
            installed = self.is_installed()
        except UpgraderError as exc:
            raise UpgraderError(
                f"{actionable_error('dependency_install_failed', module=WINGET_CLIENT_MODULE)} ({exc})",
                kind=ErrorKind.DEPENDENCY_INSTALL,
            ) from exc

        if not installed:
            raise UpgraderError(
                actionable_error("dependency_install_failed", module=WINGET_CLIENT_MODULE),
                kind=ErrorKind.DEPENDENCY_INSTALL,
            )
        self.console.print(f"[green]{WINGET_CLIENT_MODULE} installed.[/green]")
