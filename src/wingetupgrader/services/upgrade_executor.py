"""Per-package upgrade execution and exit-code classification."""

import glob
import os
import shlex
import shutil
from typing import Iterable, Iterator, List, Optional

from packaging import version

from wingetupgrader.constants import DESKTOP_APP_INSTALLER_GLOB
from wingetupgrader.errors import ErrorKind, UpgraderError
from wingetupgrader.errors_catalog import actionable_error
from wingetupgrader.models import (
    Classification,
    PackageRecord,
    UpgradeOutcome,
    UpgraderConfig,
    to_signed32,
)


def split_arguments(arguments: Optional[str]) -> List[str]:
    """Tokenizes a Windows argument string, keeping backslashes in paths."""
    tokens = []
    for token in shlex.split(arguments or "", posix=False):
        if len(token) >= 2 and token[0] == token[-1] and token[0] in "\"'":
            token = token[1:-1]
        tokens.append(token)
    return tokens


def classify(exit_code: int, acceptable_exit_codes: Iterable[int]) -> Classification:
    acceptable = {to_signed32(code) for code in acceptable_exit_codes}
    exit_code = to_signed32(exit_code)
    if exit_code not in acceptable:
        return Classification.FAILURE
    if exit_code == 0:
        return Classification.SUCCESS
    return Classification.ACCEPTABLE_FAILURE


def resolve_winget_path(configured: Optional[str] = None, program_files: Optional[str] = None) -> str:
    """Finds winget.exe; the SYSTEM account has no App Execution Alias on PATH."""
    if configured:
        return configured

    program_files = program_files or os.environ.get("ProgramFiles", "C:\\Program Files")
    pattern = os.path.join(program_files, "WindowsApps", DESKTOP_APP_INSTALLER_GLOB, "winget.exe")
    candidates = glob.glob(pattern)
    if candidates:
        return max(candidates, key=_installer_version)

    return shutil.which("winget") or "winget.exe"


def _installer_version(path: str) -> version.Version:
    folder = os.path.basename(os.path.dirname(path))
    parts = folder.split("_")
    try:
        return version.parse(parts[1])
    except (IndexError, version.InvalidVersion):
        return version.parse("0")


class UpgradeExecutorService:
    """Upgrades selected packages one at a time, in selection order."""

    def __init__(self, command_runner, logger, winget_path: str):
        self.command_runner = command_runner
        self.logger = logger
        self.winget_path = winget_path

    def build_command(self, package_id: str, upgrade_arguments: str) -> List[str]:
        return [
            self.winget_path,
            "upgrade",
            "--id",
            package_id,
            "--exact",
        ] + split_arguments(upgrade_arguments)

    def execute(
        self,
        records: Iterable[PackageRecord],
        config: UpgraderConfig,
    ) -> Iterator[UpgradeOutcome]:
        for record in records:
            yield self.upgrade_one(record, config)

    def upgrade_one(self, record: PackageRecord, config: UpgraderConfig) -> UpgradeOutcome:
        if not record.is_actionable:
            return UpgradeOutcome(
                identifier=None,
                name=record.label,
                exit_code=None,
                classification=Classification.FAILURE,
                message=f"{record.label}: identifier missing, upgrade not attempted.",
                error_kind=ErrorKind.MISSING_IDENTIFIER,
            )

        cmd = self.build_command(record.identifier, config.upgrade_arguments)
        self.logger.info("Upgrading %s (%s)", record.label, record.identifier)

        try:
            result = self.command_runner.run(
                cmd,
                check=False,
                capture_output=True,
                timeout=config.upgrade_timeout_seconds,
            )
        except UpgraderError as exc:
            self.logger.error("Upgrade of %s could not run: %s", record.identifier, exc)
            return UpgradeOutcome(
                identifier=record.identifier,
                name=record.label,
                exit_code=None,
                classification=Classification.FAILURE,
                message=f"{record.label}: {exc}",
                error_kind=ErrorKind.PACKAGE_UPGRADE,
            )

        exit_code = to_signed32(result.returncode)
        classification = classify(exit_code, config.acceptable_exit_codes)

        if classification == Classification.SUCCESS:
            message = f"{record.label} upgraded successfully."
        elif classification == Classification.ACCEPTABLE_FAILURE:
            message = f"{record.label} finished with acceptable exit code {exit_code}."
        else:
            message = actionable_error(
                "package_upgrade_failed",
                package_id=record.identifier,
                exit_code=str(exit_code),
            )
            stderr = (result.stderr or "").strip()
            if stderr:
                self.logger.error("winget output for %s:\n%s", record.identifier, stderr)

        self.logger.info("%s -> exit code %s (%s)", record.identifier, exit_code, classification.value)
        return UpgradeOutcome(
            identifier=record.identifier,
            name=record.label,
            exit_code=exit_code,
            classification=classification,
            message=message,
            error_kind=ErrorKind.PACKAGE_UPGRADE if classification == Classification.FAILURE else None,
        )
