"""Тесты выбора оператора, даты и времени"""

from datetime import date

import pytest

from services.availability_service import build_snapshot
from services.calendar_state import CalendarSelection, CalendarState
from services.errors import SelectionError
from tests.helpers import local_dt

TODAY = date(2025, 3, 1)
NOW = local_dt(2025, 3, 1, 10, 0)


def snapshot(operator_id="op1", year=2025, month=3, rows=None):
    rows = rows if rows is not None else [
        ("2025-03-05", "10:00"),
        ("2025-03-05", "10:30"),
        ("2025-03-07", "14:00"),
    ]
    return build_snapshot(operator_id, year, month, rows, NOW)


@pytest.fixture
def selection():
    selection = CalendarSelection()
    selection.select_operator("op1", TODAY)
    selection.apply_snapshot(snapshot())
    return selection


class TestOperatorSelection:
    @pytest.mark.unit
    def test_initial_state(self):
        selection = CalendarSelection()
        assert selection.state == CalendarState.NO_OPERATOR
        assert selection.can_confirm() is False

    @pytest.mark.unit
    def test_change_month_without_operator_fails(self):
        with pytest.raises(SelectionError):
            CalendarSelection().change_month(2025, 4)

    @pytest.mark.unit
    def test_switching_operator_resets_selection(self, selection):
        selection.pick_date("2025-03-05", TODAY)
        selection.pick_time("10:00")

        selection.select_operator("op2", TODAY)
        assert selection.selected_date is None
        assert selection.selected_time is None
        assert selection.state == CalendarState.LOADING

    @pytest.mark.unit
    def test_clearing_operator(self, selection):
        selection.select_operator(None, TODAY)
        assert selection.state == CalendarState.NO_OPERATOR


class TestSnapshots:
    @pytest.mark.unit
    def test_stale_snapshot_ignored(self, selection):
        selection.pick_date("2025-03-05", TODAY)
        assert selection.apply_snapshot(snapshot(operator_id="op2", rows=[])) is False
        assert selection.apply_snapshot(snapshot(month=4, rows=[])) is False
        assert selection.selected_date == "2025-03-05"

    @pytest.mark.unit
    def test_taken_time_is_dropped(self, selection):
        selection.pick_date("2025-03-05", TODAY)
        selection.pick_time("10:30")

        selection.apply_snapshot(snapshot(rows=[("2025-03-05", "10:00")]))
        assert selection.selected_date == "2025-03-05"
        assert selection.selected_time is None
        assert selection.state == CalendarState.DATE_SELECTED

    @pytest.mark.unit
    def test_vanished_date_is_dropped(self, selection):
        selection.pick_date("2025-03-07", TODAY)
        selection.apply_snapshot(snapshot(rows=[("2025-03-05", "10:00")]))
        assert selection.selected_date is None
        assert selection.state == CalendarState.READY


class TestPicking:
    @pytest.mark.unit
    def test_pick_date_without_slots_fails(self, selection):
        with pytest.raises(SelectionError):
            selection.pick_date("2025-03-06", TODAY)

    @pytest.mark.unit
    def test_pick_past_date_fails(self, selection):
        past = snapshot(rows=[("2025-02-27", "10:00")])
        selection.apply_snapshot(past)
        with pytest.raises(SelectionError):
            selection.pick_date("2025-02-27", TODAY)

    @pytest.mark.unit
    def test_pick_time_outside_snapshot_fails(self, selection):
        selection.pick_date("2025-03-05", TODAY)
        with pytest.raises(SelectionError):
            selection.pick_time("14:00")

    @pytest.mark.unit
    def test_can_confirm_only_with_fresh_time(self, selection):
        selection.pick_date("2025-03-05", TODAY)
        selection.pick_time("10:30")
        assert selection.can_confirm() is True
        assert selection.can_confirm(snapshot(rows=[("2025-03-05", "10:00")])) is False

    @pytest.mark.unit
    def test_available_times(self, selection):
        selection.pick_date("2025-03-05", TODAY)
        assert selection.available_times() == ["10:00", "10:30"]


class TestMonths:
    @pytest.mark.unit
    def test_month_bounds(self, selection):
        assert selection.can_show_month(2025, 3, TODAY) is True
        assert selection.can_show_month(2025, 2, TODAY) is False
        assert selection.can_show_month(2025, 6, TODAY) is True
        assert selection.can_show_month(2025, 7, TODAY) is False

    @pytest.mark.unit
    def test_dict_round_trip(self, selection):
        selection.pick_date("2025-03-05", TODAY)
        restored = CalendarSelection.from_dict(selection.to_dict())
        assert restored.selected_date == "2025-03-05"
        assert restored.state == CalendarState.DATE_SELECTED
        assert restored.snapshot.times_for("2025-03-05") == ["10:00", "10:30"]
