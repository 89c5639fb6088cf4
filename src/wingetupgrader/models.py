"""Shared domain models for WingetUpgrader."""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from wingetupgrader.errors import ErrorKind


def to_signed32(value: int) -> int:
    """Folds an exit code into the signed 32-bit range Windows tools report."""
    value &= 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 1 << 32
    return value


@dataclass(frozen=True)
class SessionSettings:
    """Display metadata for the deployment session."""

    app_vendor: str
    app_name: str
    app_version: str
    deploy_mode: str
    show_notifications: bool

    @property
    def is_interactive(self) -> bool:
        return self.deploy_mode == "Interactive"


@dataclass(frozen=True)
class UiSettings:
    title: str
    width: Optional[int]
    name_width: int


@dataclass(frozen=True)
class UpgraderConfig:
    """Immutable run configuration threaded into every component."""

    session: SessionSettings
    detection_marker: str
    acceptable_exit_codes: Tuple[int, ...]
    skip_list: Tuple[str, ...]
    upgrade_arguments: str
    ui: UiSettings
    query_timeout_seconds: float
    upgrade_timeout_seconds: Optional[float]
    winget_path: Optional[str]
    log_file: Optional[str]

    @property
    def handoff_dir(self) -> str:
        return parent_dir(self.detection_marker)


def parent_dir(path: str) -> str:
    """Directory part of ``path``, also for Windows paths on other hosts."""
    if "\\" in path and os.sep != "\\":
        return path.rsplit("\\", 1)[0]
    return os.path.dirname(path) or "."


@dataclass(frozen=True)
class ConfigLoadResult:
    config: UpgraderConfig
    error_kind: Optional[ErrorKind] = None
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PackageRecord:
    """One upgradeable application reported by the package query."""

    identifier: Optional[str]
    name: str = ""
    installed_version: str = ""
    available_version: str = ""

    @property
    def is_actionable(self) -> bool:
        return bool(self.identifier)

    @property
    def label(self) -> str:
        return self.name or self.identifier or "<unnamed package>"


@dataclass(frozen=True)
class HandoffResult:
    """Rows read from the result artifact; an empty tuple means nothing was found."""

    rows: Tuple[Dict[str, Any], ...]
    result_path: str


@dataclass(frozen=True)
class CatalogResult:
    records: Tuple[PackageRecord, ...]
    raw_count: int
    skipped_count: int

    @property
    def is_empty(self) -> bool:
        return not self.records


@dataclass(frozen=True)
class SelectionConfirmed:
    records: Tuple[PackageRecord, ...]


@dataclass(frozen=True)
class SelectionCancelled:
    reason: str = "Selection cancelled by user."


Selection = Union[SelectionConfirmed, SelectionCancelled]


class Classification(str, Enum):
    SUCCESS = "success"
    ACCEPTABLE_FAILURE = "acceptable_failure"
    FAILURE = "failure"


@dataclass(frozen=True)
class UpgradeOutcome:
    """Result of a single package upgrade attempt."""

    identifier: Optional[str]
    name: str
    exit_code: Optional[int]
    classification: Classification
    message: str
    error_kind: Optional[ErrorKind] = None

    @property
    def succeeded(self) -> bool:
        return self.classification != Classification.FAILURE


@dataclass(frozen=True)
class MarkerResult:
    succeeded: bool
    path: str
    error_kind: Optional[ErrorKind] = None
    message: str = ""
