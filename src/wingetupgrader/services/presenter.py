"""Selection presenters: show the catalog and return the user's choice."""

from typing import Callable, List, Optional, Sequence

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from wingetupgrader.models import (
    PackageRecord,
    Selection,
    SelectionCancelled,
    SelectionConfirmed,
    SessionSettings,
    UiSettings,
)

_LEVEL_STYLES = {
    "info": "blue",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
}


def parse_selection(text: str, count: int) -> Optional[List[int]]:
    """Parses ``all`` or ``1,3,5-7`` into zero-based indexes.

    Returns ``None`` when the answer is empty (cancel). Raises ``ValueError``
    on anything outside ``1..count``.
    """
    answer = text.strip().lower()
    if not answer:
        return None
    if answer in ("all", "a", "*"):
        return list(range(count))

    indexes: List[int] = []
    for part in answer.replace(" ", "").split(","):
        if not part:
            continue
        if "-" in part:
            first, _, last = part.partition("-")
            start, end = int(first), int(last)
            if start > end:
                raise ValueError(f"Invalid range: {part}")
            numbers = range(start, end + 1)
        else:
            numbers = range(int(part), int(part) + 1)

        for number in numbers:
            if number < 1 or number > count:
                raise ValueError(f"No package numbered {number}")
            if number - 1 not in indexes:
                indexes.append(number - 1)
    return sorted(indexes)


class ConsoleSelectionPresenter:
    """Interactive presenter rendering a rich table and prompting for numbers."""

    def __init__(
        self,
        console: Console,
        session: SessionSettings,
        ui: UiSettings,
        ask: Optional[Callable[[str], str]] = None,
    ):
        self.console = console
        self.session = session
        self.ui = ui
        self.ask = ask or self._prompt

    def _prompt(self, message: str) -> str:
        return Prompt.ask(message, console=self.console, default="", show_default=False)

    def build_table(self, records: Sequence[PackageRecord]) -> Table:
        table = Table(title=self.ui.title, width=self.ui.width, show_lines=False)
        table.add_column("#", justify="right", style="bold")
        table.add_column("Name", max_width=self.ui.name_width, overflow="ellipsis")
        table.add_column("Id")
        table.add_column("Installed")
        table.add_column("Available", style="green")

        for number, record in enumerate(records, start=1):
            if record.is_actionable:
                table.add_row(
                    str(number),
                    record.name,
                    record.identifier,
                    record.installed_version,
                    record.available_version,
                )
            else:
                table.add_row(
                    str(number),
                    record.label,
                    "[dim]identifier missing[/dim]",
                    record.installed_version,
                    record.available_version,
                    style="dim",
                )
        return table

    def present(self, records: Sequence[PackageRecord]) -> Selection:
        self.console.rule(f"{self.session.app_vendor} {self.session.app_name} {self.session.app_version}")
        self.console.print(self.build_table(records))

        while True:
            answer = self.ask("Packages to upgrade (e.g. 1,3,5-7 or 'all'; empty to cancel)")
            try:
                indexes = parse_selection(answer, len(records))
            except ValueError as exc:
                self.console.print(f"[red]{exc}[/red]")
                continue

            if indexes is None:
                return SelectionCancelled()
            return SelectionConfirmed(records=tuple(records[index] for index in indexes))

    def notify(self, message: str, level: str = "info"):
        if not self.session.show_notifications and level not in ("warning", "error"):
            return
        style = _LEVEL_STYLES.get(level, "blue")
        self.console.print(f"[{style}]{message}[/{style}]")


class UnattendedSelectionPresenter:
    """Selects every package without prompting, for non-interactive deployments."""

    def __init__(self, console: Console, session: SessionSettings):
        self.console = console
        self.session = session

    def present(self, records: Sequence[PackageRecord]) -> Selection:
        return SelectionConfirmed(records=tuple(records))

    def notify(self, message: str, level: str = "info"):
        if self.session.deploy_mode == "Silent" and level not in ("error",):
            return
        style = _LEVEL_STYLES.get(level, "blue")
        self.console.print(f"[{style}]{message}[/{style}]")
