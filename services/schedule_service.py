"""Сервис расписания операторов"""

import logging
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Tuple

from config import CALENDAR_MAX_MONTHS_AHEAD, SLOT_INTERVAL_OPTIONS
from database.models import Slot
from database.procedures import SalonProcedures
from database.repositories.slot_repository import SlotRepository
from services.availability_service import AvailabilityService
from services.errors import ValidationError
from utils.datetime_utils import month_range, months_between, parse_time
from utils.helpers import now_local
from utils.retry import with_timeout


def validate_template(
    weekdays: Iterable[int],
    start_time: str,
    end_time: str,
    interval_minutes: int,
    year: int,
    month: int,
    today: date,
) -> Tuple[List[int], str, str]:
    """Проверка недельного шаблона до обращения к БД

    Returns:
        (отсортированные дни недели, начало HH:MM, конец HH:MM)
    """
    days = sorted(set(weekdays))
    if not days:
        raise ValidationError("weekdays", "Выберите хотя бы один день недели")
    if any(d < 0 or d > 6 for d in days):
        raise ValidationError("weekdays", "Некорректный день недели")
    try:
        start, end = parse_time(start_time), parse_time(end_time)
    except ValueError:
        raise ValidationError("time_range", "Время в формате ЧЧ:ММ")
    if start >= end:
        raise ValidationError("time_range", "Время начала должно быть раньше окончания")
    if interval_minutes not in SLOT_INTERVAL_OPTIONS:
        raise ValidationError("interval", "Интервал может быть 30 или 60 минут")
    ahead = months_between(today, year, month)
    if ahead < 0 or ahead > CALENDAR_MAX_MONTHS_AHEAD:
        raise ValidationError(
            "month", f"Расписание можно задать не более чем на {CALENDAR_MAX_MONTHS_AHEAD} мес. вперёд"
        )
    return days, start, end


class ScheduleService:
    """Шаблоны расписания и удаление слотов"""

    def __init__(
        self,
        procedures: SalonProcedures,
        availability: AvailabilityService,
        clock: Callable[[], datetime] = now_local,
    ):
        self.procedures = procedures
        self.availability = availability
        self.clock = clock

    async def add_template(
        self,
        salon_id: str,
        operator_id: str,
        weekdays: Iterable[int],
        start_time: str,
        end_time: str,
        interval_minutes: int,
        year: int,
        month: int,
    ) -> int:
        """Создать слоты месяца по шаблону, вернуть количество созданных"""
        days, start, end = validate_template(
            weekdays, start_time, end_time, interval_minutes, year, month, self.clock().date()
        )
        target = date(year, month, 1)
        created = await with_timeout(
            self.procedures.bulk_add_slots(
                salon_id, operator_id, days, start, end, interval_minutes, target
            ),
            label=f"bulk_add_slots({operator_id})",
        )
        self.availability.invalidate(salon_id, operator_id, target.isoformat())
        return created

    async def delete_slot(self, slot_id: int, salon_id: str) -> Tuple[bool, str]:
        slot = await SlotRepository.get(slot_id)
        if slot is None or slot.salon_id != salon_id:
            return False, "not_found"
        success, code = await with_timeout(
            self.procedures.delete_slot(slot_id, salon_id), label=f"delete_slot({slot_id})"
        )
        if success:
            self.availability.invalidate(salon_id, slot.operator_id, slot.slot_date)
        return success, code

    async def delete_date(self, salon_id: str, operator_id: str, date_str: str) -> int:
        """Удалить все свободные слоты дня"""
        deleted = await with_timeout(
            self.procedures.delete_slots_for_date(salon_id, operator_id, date_str),
            label=f"delete_slots_for_date({operator_id}, {date_str})",
        )
        self.availability.invalidate(salon_id, operator_id, date_str)
        logging.info(f"Operator schedule cleared for {operator_id} on {date_str}: {deleted} slots")
        return deleted

    async def day_slots(self, salon_id: str, operator_id: str, date_str: str) -> List[Slot]:
        return await SlotRepository.get_slots_for_date(salon_id, operator_id, date_str)

    async def month_summary(
        self, salon_id: str, operator_id: str, year: int, month: int
    ) -> Dict[str, Tuple[int, int]]:
        first, last = month_range(date(year, month, 1))
        return await SlotRepository.get_month_summary(
            salon_id, operator_id, first.isoformat(), last.isoformat()
        )
