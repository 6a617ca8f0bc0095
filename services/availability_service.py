"""Сервис доступности слотов для календаря записи"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from config import FETCH_RETRY_ATTEMPTS, FETCH_RETRY_DELAY
from database.repositories.slot_repository import SlotRepository
from utils.datetime_utils import month_range
from utils.helpers import now_local
from utils.retry import async_retry


@dataclass
class AvailabilitySnapshot:
    """Свободные слоты оператора за месяц на момент запроса

    dates_with_open_slots всегда совпадает с ключами times_by_date.
    """

    operator_id: str
    year: int
    month: int
    dates_with_open_slots: FrozenSet[str] = frozenset()
    times_by_date: Dict[str, List[str]] = field(default_factory=dict)
    error: Optional[str] = None
    fetched_at: Optional[str] = None

    def times_for(self, date_str: str) -> List[str]:
        return list(self.times_by_date.get(date_str, []))

    def has_time(self, date_str: str, time_str: str) -> bool:
        return time_str in self.times_by_date.get(date_str, [])

    @property
    def is_empty(self) -> bool:
        return not self.dates_with_open_slots

    def to_dict(self) -> dict:
        return {
            "operator_id": self.operator_id,
            "year": self.year,
            "month": self.month,
            "times_by_date": {d: list(t) for d, t in self.times_by_date.items()},
            "error": self.error,
            "fetched_at": self.fetched_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AvailabilitySnapshot":
        times_by_date = {d: list(t) for d, t in data.get("times_by_date", {}).items()}
        return cls(
            operator_id=data["operator_id"],
            year=data["year"],
            month=data["month"],
            dates_with_open_slots=frozenset(times_by_date),
            times_by_date=times_by_date,
            error=data.get("error"),
            fetched_at=data.get("fetched_at"),
        )


def build_snapshot(
    operator_id: str,
    year: int,
    month: int,
    rows: Iterable[Tuple[str, str]],
    now: datetime,
) -> AvailabilitySnapshot:
    """Сгруппировать свободные слоты по датам

    На сегодняшнюю дату отбрасываются времена не позже текущего HH:MM;
    дата без оставшихся времён в снимок не попадает.
    """
    today = now.date().isoformat()
    current_time = now.strftime("%H:%M")

    times_by_date: Dict[str, List[str]] = {}
    for slot_date, slot_time in rows:
        slot_time = slot_time[:5]
        if slot_date == today and slot_time <= current_time:
            continue
        times_by_date.setdefault(slot_date, []).append(slot_time)

    for times in times_by_date.values():
        times.sort()

    return AvailabilitySnapshot(
        operator_id=operator_id,
        year=year,
        month=month,
        dates_with_open_slots=frozenset(times_by_date),
        times_by_date=times_by_date,
        fetched_at=now.isoformat(),
    )


class AvailabilityService:
    """Запрос свободных слотов с кэшем по (салон, оператор, месяц)"""

    def __init__(self, slot_repository=SlotRepository, clock: Callable[[], datetime] = now_local):
        self.slot_repository = slot_repository
        self.clock = clock
        self._cache: Dict[Tuple[str, str, int, int], List[Tuple[str, str]]] = {}

    @async_retry(max_attempts=FETCH_RETRY_ATTEMPTS, delay=FETCH_RETRY_DELAY)
    async def _load(self, salon_id: str, operator_id: str, start: date, end: date):
        return await self.slot_repository.get_open_slots(
            salon_id, operator_id, start.isoformat(), end.isoformat()
        )

    async def fetch_availability(
        self,
        salon_id: str,
        operator_id: Optional[str],
        month_anchor: date,
        now: Optional[datetime] = None,
        refresh: bool = False,
    ) -> AvailabilitySnapshot:
        """Снимок доступности на месяц, содержащий month_anchor

        Никогда не бросает исключений: при сбое возвращается
        пустой снимок с заполненным error.
        """
        year, month = month_anchor.year, month_anchor.month
        if not operator_id:
            return AvailabilitySnapshot(operator_id="", year=year, month=month)

        now = now or self.clock()
        key = (salon_id, operator_id, year, month)

        rows = None if refresh else self._cache.get(key)
        if rows is None:
            start, end = month_range(month_anchor)
            try:
                rows = await self._load(salon_id, operator_id, start, end)
            except Exception as e:
                logging.error(
                    f"Failed to fetch slots for operator {operator_id} ({year}-{month:02d}): {e}"
                )
                return AvailabilitySnapshot(
                    operator_id=operator_id,
                    year=year,
                    month=month,
                    error="Не удалось загрузить расписание",
                    fetched_at=now.isoformat(),
                )
            self._cache[key] = rows

        return build_snapshot(operator_id, year, month, rows, now)

    def invalidate(self, salon_id: str, operator_id: str, date_str: str):
        """Сбросить кэш месяца, содержащего дату"""
        year, month = int(date_str[:4]), int(date_str[5:7])
        self._cache.pop((salon_id, operator_id, year, month), None)

    def clear(self):
        self._cache.clear()
