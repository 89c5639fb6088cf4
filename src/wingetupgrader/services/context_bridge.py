"""Cross-session package query through a filesystem handoff."""

import json
import os
from typing import Any, List, Optional

from wingetupgrader.constants import QUERY_SCRIPT_NAME, RESULT_FILE_NAME, WINGET_CLIENT_MODULE
from wingetupgrader.errors import ErrorKind, UpgraderError
from wingetupgrader.errors_catalog import actionable_error
from wingetupgrader.models import HandoffResult
from wingetupgrader.services.task_scheduler import powershell_file_arguments, ps_quote


class ContextBridgeService:
    """Runs the read-only package query as the interactive user.

    The elevated process writes a query script into the handoff directory,
    launches it in the user's session, waits for it to exit and then reads
    the result artifact. The user-session process is the only writer of the
    result file; this process is the only reader and the only deleter of the
    script.
    """

    def __init__(self, launcher, filesystem_service, logger, console):
        self.launcher = launcher
        self.filesystem_service = filesystem_service
        self.logger = logger
        self.console = console

    def build_query_script(self, result_path: str) -> str:
        return f"""$ErrorActionPreference = 'Stop'
Import-Module {WINGET_CLIENT_MODULE}
$rows = @(Get-WinGetPackage | Where-Object {{ $_.IsUpdateAvailable }} | ForEach-Object {{
    [PSCustomObject]@{{
        Name             = $_.Name
        Id               = $_.Id
        InstalledVersion = $_.InstalledVersion
        AvailableVersion = @($_.AvailableVersions)[0]
    }}
}})
ConvertTo-Json -InputObject $rows -Depth 3 | Out-File -LiteralPath '{ps_quote(result_path)}' -Encoding utf8 -Force
"""

    def query(self, handoff_dir: str, timeout: Optional[float] = None) -> HandoffResult:
        script_path = os.path.join(handoff_dir, QUERY_SCRIPT_NAME)
        result_path = os.path.join(handoff_dir, RESULT_FILE_NAME)

        try:
            self._prepare(handoff_dir, script_path, result_path)
            self.console.print("[blue]Querying available upgrades in the user session...[/blue]")
            exit_code = self._launch(script_path, timeout)
            self.logger.info("User-session query exited with code %s", exit_code)

            if not os.path.exists(result_path):
                raise UpgraderError(
                    actionable_error("handoff_missing", path=result_path),
                    kind=ErrorKind.HANDOFF_MISSING,
                )

            rows = self._read_result(result_path)
        finally:
            self.filesystem_service.remove_file(script_path)

        self.logger.info("Query reported %s upgradeable package(s).", len(rows))
        return HandoffResult(rows=tuple(rows), result_path=result_path)

    def _prepare(self, handoff_dir: str, script_path: str, result_path: str):
        try:
            self.filesystem_service.ensure_dir(handoff_dir)
            self.filesystem_service.grant_users_modify(handoff_dir)
            if os.path.exists(result_path):
                os.remove(result_path)
            self.filesystem_service.write_text(
                script_path,
                self.build_query_script(result_path),
                encoding="utf-8-sig",
            )
        except OSError as exc:
            raise UpgraderError(
                actionable_error("handoff_launch_failed", detail=str(exc)),
                kind=ErrorKind.HANDOFF_LAUNCH,
            ) from exc
        self.logger.debug("Wrote query script to %s", script_path)

    def _launch(self, script_path: str, timeout: Optional[float]) -> int:
        cmd = ["powershell.exe"] + powershell_file_arguments(script_path)
        try:
            return self.launcher.run_as_user(cmd, timeout=timeout)
        except UpgraderError as exc:
            if exc.kind == ErrorKind.HANDOFF_LAUNCH:
                raise
            raise UpgraderError(
                actionable_error("handoff_launch_failed", detail=str(exc)),
                kind=ErrorKind.HANDOFF_LAUNCH,
            ) from exc

    def _read_result(self, result_path: str) -> List[dict]:
        try:
            with open(result_path, "r", encoding="utf-8-sig") as file_obj:
                content = file_obj.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise UpgraderError(
                actionable_error("handoff_malformed", path=result_path, detail=str(exc)),
                kind=ErrorKind.HANDOFF_MALFORMED,
            ) from exc

        if not content.strip():
            return []

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise UpgraderError(
                actionable_error("handoff_malformed", path=result_path, detail=str(exc)),
                kind=ErrorKind.HANDOFF_MALFORMED,
            ) from exc

        return normalize_rows(parsed, result_path)


def normalize_rows(parsed: Any, result_path: str = "<result>") -> List[dict]:
    """Reconciles a single-record and a multi-record result into one list."""
    if parsed is None:
        return []
    if isinstance(parsed, dict):
        return [parsed]
    if isinstance(parsed, list) and all(isinstance(row, dict) for row in parsed):
        return list(parsed)

    raise UpgraderError(
        actionable_error(
            "handoff_malformed",
            path=result_path,
            detail=f"expected an object or a list of objects, got {type(parsed).__name__}",
        ),
        kind=ErrorKind.HANDOFF_MALFORMED,
    )
