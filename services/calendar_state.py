"""Состояние выбора оператора, даты и времени в календаре записи"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional

from config import CALENDAR_MAX_MONTHS_AHEAD
from services.availability_service import AvailabilitySnapshot
from services.errors import SelectionError
from utils.datetime_utils import months_between, parse_date


class CalendarState(str, Enum):
    NO_OPERATOR = "no_operator"
    LOADING = "loading"
    READY = "ready"
    DATE_SELECTED = "date_selected"
    TIME_SELECTED = "time_selected"


@dataclass
class CalendarSelection:
    """Выбор клиента в календаре

    Выбранные дата и время действительны только пока они есть
    в последнем применённом снимке доступности.
    """

    operator_id: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    selected_date: Optional[str] = None
    selected_time: Optional[str] = None
    state: CalendarState = CalendarState.NO_OPERATOR
    snapshot: Optional[AvailabilitySnapshot] = None

    def select_operator(self, operator_id: Optional[str], anchor: date):
        """Смена оператора сбрасывает дату и время"""
        self.selected_date = None
        self.selected_time = None
        self.snapshot = None
        self.year, self.month = anchor.year, anchor.month
        if not operator_id:
            self.operator_id = None
            self.state = CalendarState.NO_OPERATOR
            return
        self.operator_id = operator_id
        self.state = CalendarState.LOADING

    def change_month(self, year: int, month: int):
        if not self.operator_id:
            raise SelectionError("Сначала выберите мастера")
        self.year, self.month = year, month
        self.state = CalendarState.LOADING

    def can_show_month(self, year: int, month: int, today: date) -> bool:
        """Месяц не раньше текущего и не дальше CALENDAR_MAX_MONTHS_AHEAD"""
        return 0 <= months_between(today, year, month) <= CALENDAR_MAX_MONTHS_AHEAD

    def apply_snapshot(self, snapshot: AvailabilitySnapshot) -> bool:
        """Применить новый снимок и перепроверить выбор

        Снимок другого оператора или месяца (устаревший ответ) игнорируется.

        Returns:
            True если снимок применён
        """
        if (
            not self.operator_id
            or snapshot.operator_id != self.operator_id
            or (snapshot.year, snapshot.month) != (self.year, self.month)
        ):
            return False

        self.snapshot = snapshot
        if self.selected_date not in snapshot.dates_with_open_slots:
            self.selected_date = None
            self.selected_time = None
        elif self.selected_time and not snapshot.has_time(self.selected_date, self.selected_time):
            self.selected_time = None

        if self.selected_time:
            self.state = CalendarState.TIME_SELECTED
        elif self.selected_date:
            self.state = CalendarState.DATE_SELECTED
        else:
            self.state = CalendarState.READY
        return True

    def pick_date(self, date_str: str, today: date):
        if self.snapshot is None or self.state in (CalendarState.NO_OPERATOR, CalendarState.LOADING):
            raise SelectionError("Календарь ещё не загружен")
        if parse_date(date_str) < today:
            raise SelectionError("Нельзя выбрать прошедшую дату")
        if date_str not in self.snapshot.dates_with_open_slots:
            raise SelectionError("На эту дату нет свободного времени")
        self.selected_date = date_str
        self.selected_time = None
        self.state = CalendarState.DATE_SELECTED

    def pick_time(self, time_str: str):
        if not self.selected_date or self.snapshot is None:
            raise SelectionError("Сначала выберите дату")
        if not self.snapshot.has_time(self.selected_date, time_str):
            raise SelectionError("Это время недоступно")
        self.selected_time = time_str
        self.state = CalendarState.TIME_SELECTED

    def available_times(self) -> List[str]:
        if not self.selected_date or self.snapshot is None:
            return []
        return self.snapshot.times_for(self.selected_date)

    def can_confirm(self, snapshot: Optional[AvailabilitySnapshot] = None) -> bool:
        """Подтверждение доступно только для выбора, который ещё есть в снимке"""
        snapshot = snapshot or self.snapshot
        if not (self.operator_id and self.selected_date and self.selected_time):
            return False
        if snapshot is None or snapshot.operator_id != self.operator_id:
            return False
        return snapshot.has_time(self.selected_date, self.selected_time)

    def to_dict(self) -> dict:
        return {
            "operator_id": self.operator_id,
            "year": self.year,
            "month": self.month,
            "selected_date": self.selected_date,
            "selected_time": self.selected_time,
            "state": self.state.value,
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "CalendarSelection":
        if not data:
            return cls()
        snapshot = data.get("snapshot")
        return cls(
            operator_id=data.get("operator_id"),
            year=data.get("year"),
            month=data.get("month"),
            selected_date=data.get("selected_date"),
            selected_time=data.get("selected_time"),
            state=CalendarState(data.get("state", CalendarState.NO_OPERATOR.value)),
            snapshot=AvailabilitySnapshot.from_dict(snapshot) if snapshot else None,
        )
