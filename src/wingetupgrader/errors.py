"""Domain errors for WingetUpgrader."""

from enum import Enum


class ErrorKind(str, Enum):
    """Classifies failures so callers can decide fatal vs isolated handling."""

    CONFIG_PARSE = "config_parse"
    HANDOFF_LAUNCH = "handoff_launch"
    HANDOFF_MISSING = "handoff_missing"
    HANDOFF_MALFORMED = "handoff_malformed"
    DEPENDENCY_INSTALL = "dependency_install"
    PACKAGE_UPGRADE = "package_upgrade"
    MISSING_IDENTIFIER = "missing_identifier"
    MARKER_CREATE = "marker_create"
    CLEANUP_SCHEDULE = "cleanup_schedule"
    COMMAND_FAILED = "command_failed"


class UpgraderError(RuntimeError):
    """Raised when the upgrade run cannot continue safely."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.COMMAND_FAILED):
        super().__init__(message)
        self.kind = kind
