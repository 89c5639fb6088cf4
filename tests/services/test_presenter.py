import io

import pytest
from rich.console import Console

from wingetupgrader.models import PackageRecord, SelectionCancelled, SelectionConfirmed
from wingetupgrader.services.config_loader import ConfigLoader
from wingetupgrader.services.presenter import (
    ConsoleSelectionPresenter,
    UnattendedSelectionPresenter,
    parse_selection,
)


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None


RECORDS = [
    PackageRecord("Vendor.AppA", "App A", "1.0", "1.1"),
    PackageRecord(None, "Orphan", "2.0", "2.1"),
    PackageRecord("Vendor.AppC", "App C", "3.0", "3.5"),
]


def _presenter(answers, output=None):
    config = ConfigLoader(logger=DummyLogger()).defaults()
    console = Console(file=output or io.StringIO(), width=120)
    pending = list(answers)
    return ConsoleSelectionPresenter(
        console=console,
        session=config.session,
        ui=config.ui,
        ask=lambda _message: pending.pop(0),
    )


def test_parse_selection_handles_lists_ranges_and_all():
    assert parse_selection("3, 1", 3) == [0, 2]
    assert parse_selection("1-3", 3) == [0, 1, 2]
    assert parse_selection("ALL", 2) == [0, 1]
    assert parse_selection("   ", 2) is None


@pytest.mark.parametrize("answer", ["0", "4", "3-1", "x"])
def test_parse_selection_rejects_out_of_range(answer):
    with pytest.raises(ValueError):
        parse_selection(answer, 3)


def test_console_presenter_returns_confirmed_records_in_catalog_order():
    selection = _presenter(["3,1"]).present(RECORDS)

    assert isinstance(selection, SelectionConfirmed)
    assert [record.identifier for record in selection.records] == ["Vendor.AppA", "Vendor.AppC"]


def test_console_presenter_reprompts_after_invalid_answer():
    output = io.StringIO()

    selection = _presenter(["9", "2"], output=output).present(RECORDS)

    assert selection.records == (RECORDS[1],)
    assert "No package numbered 9" in output.getvalue()


def test_console_presenter_cancels_on_empty_answer():
    assert isinstance(_presenter([""]).present(RECORDS), SelectionCancelled)


def test_console_presenter_marks_records_without_identifier():
    output = io.StringIO()

    _presenter([""], output=output).present(RECORDS)

    assert "identifier missing" in output.getvalue()
    assert "Vendor.AppC" in output.getvalue()


def test_unattended_presenter_selects_everything():
    config = ConfigLoader(logger=DummyLogger()).defaults()
    presenter = UnattendedSelectionPresenter(console=Console(file=io.StringIO()), session=config.session)

    selection = presenter.present(RECORDS)

    assert selection.records == tuple(RECORDS)
