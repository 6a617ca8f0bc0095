"""Репозиторий для чтения слотов расписания

Слоты изменяются только атомарными процедурами (database/procedures.py).
"""

import logging
from typing import Dict, List, Optional, Tuple

from database.base_repository import BaseRepository
from database.models import Slot


def _slot_from_row(row) -> Slot:
    return Slot(
        id=row["id"],
        salon_id=row["salon_id"],
        operator_id=row["operator_id"],
        slot_date=row["slot_date"],
        slot_time=row["slot_time"],
        is_booked=bool(row["is_booked"]),
    )


class SlotRepository(BaseRepository):
    """Чтение слотов"""

    @staticmethod
    async def get_open_slots(
        salon_id: str, operator_id: str, start_date: str, end_date: str
    ) -> List[Tuple[str, str]]:
        """Свободные слоты оператора в диапазоне дат (включительно)

        Ошибки не перехватываются: повторы и деградацию делает вызывающий.

        Returns:
            Список (slot_date, slot_time), по возрастанию даты и времени
        """
        rows = await SlotRepository._execute_query(
            """SELECT slot_date, slot_time FROM slots
            WHERE salon_id=? AND operator_id=? AND is_booked=0
              AND slot_date >= ? AND slot_date <= ?
            ORDER BY slot_date, slot_time""",
            (salon_id, operator_id, start_date, end_date),
            fetch_all=True,
        )
        return [(row["slot_date"], row["slot_time"]) for row in rows]

    @staticmethod
    async def get_slots_for_date(
        salon_id: str, operator_id: str, date_str: str
    ) -> List[Slot]:
        """Все слоты оператора за день (свободные и занятые)"""
        try:
            rows = await SlotRepository._execute_query(
                """SELECT * FROM slots
                WHERE salon_id=? AND operator_id=? AND slot_date=?
                ORDER BY slot_time""",
                (salon_id, operator_id, date_str),
                fetch_all=True,
            )
            return [_slot_from_row(row) for row in rows]
        except Exception as e:
            logging.error(f"Error getting slots for {operator_id} on {date_str}: {e}")
            return []

    @staticmethod
    async def get(slot_id: int) -> Optional[Slot]:
        try:
            row = await SlotRepository._execute_query(
                "SELECT * FROM slots WHERE id=?", (slot_id,), fetch_one=True
            )
            return _slot_from_row(row) if row else None
        except Exception as e:
            logging.error(f"Error getting slot {slot_id}: {e}")
            return None

    @staticmethod
    async def get_month_summary(
        salon_id: str, operator_id: str, start_date: str, end_date: str
    ) -> Dict[str, Tuple[int, int]]:
        """Сводка по дням для экрана расписания: {дата: (всего, занято)}"""
        try:
            rows = await SlotRepository._execute_query(
                """SELECT slot_date, COUNT(*) AS total, SUM(is_booked) AS booked
                FROM slots
                WHERE salon_id=? AND operator_id=? AND slot_date >= ? AND slot_date <= ?
                GROUP BY slot_date""",
                (salon_id, operator_id, start_date, end_date),
                fetch_all=True,
            )
            return {row["slot_date"]: (row["total"], row["booked"] or 0) for row in rows}
        except Exception as e:
            logging.error(f"Error getting month summary for {operator_id}: {e}")
            return {}
