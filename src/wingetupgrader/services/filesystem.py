"""Filesystem helpers for WingetUpgrader."""

import logging
import os
import sys
from typing import Callable, Optional

from rich.console import Console

from wingetupgrader.constants import USERS_GROUP_SID


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(
        self,
        logger: logging.Logger,
        console: Console,
        run_cmd: Optional[Callable] = None,
    ):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd

    def ensure_dir(self, path: str):
        os.makedirs(path, exist_ok=True)

    def grant_users_modify(self, path: str):
        """Lets the interactive user's session write into ``path`` on Windows."""
        if sys.platform != "win32" or self.run_cmd is None:
            return

        result = self.run_cmd(
            ["icacls", path, "/grant", f"*{USERS_GROUP_SID}:(OI)(CI)M"],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0:
            self.logger.warning(
                "Could not grant Users modify rights on %s (exit code %s).",
                path,
                result.returncode,
            )

    def write_text(self, path: str, content: str, encoding: str = "utf-8"):
        with open(path, "w", encoding=encoding, newline="\r\n") as file_obj:
            file_obj.write(content)

    def touch_empty(self, path: str):
        with open(path, "wb"):
            pass

    def remove_file(self, path: str):
        if not os.path.exists(path):
            return

        try:
            os.remove(path)
            self.logger.debug("Removed file: %s", path)
        except OSError as exc:
            message = f"Warning: Could not remove {path}: {exc}"
            self.console.print(f"[yellow]{message}[/yellow]")
            self.logger.warning(message)
