"""
WingetUpgrader - user-approved winget upgrades for managed Windows endpoints
"""

__version__ = "1.0.0"

from .core import WingetUpgrader
from .errors import ErrorKind, UpgraderError

__all__ = ["WingetUpgrader", "UpgraderError", "ErrorKind"]
