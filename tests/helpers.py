"""Вспомогательные функции тестов"""

from datetime import date, datetime, timedelta

import aiosqlite

from config import DATABASE_PATH, TIMEZONE
from services.booking_flow import ReservationDraft


def local_dt(year, month, day, hour=0, minute=0, second=0) -> datetime:
    return TIMEZONE.localize(datetime(year, month, day, hour, minute, second))


class FixedClock:
    """Управляемые часы для сервисов"""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


async def add_slots(salon_id: str, operator_id: str, date_str: str, times, booked: bool = False):
    """Вставить слоты напрямую"""
    async with aiosqlite.connect(DATABASE_PATH) as db:
        for time_str in times:
            await db.execute(
                """INSERT INTO slots (salon_id, operator_id, slot_date, slot_time, is_booked)
                VALUES (?, ?, ?, ?, ?)""",
                (salon_id, operator_id, date_str, time_str, int(booked)),
            )
        await db.commit()


def draft_for(salon, operator, customer, menu, time_str="10:30", date_str="2025-03-05") -> ReservationDraft:
    return ReservationDraft(
        customer_id=customer.profile_id,
        customer_user_id=customer.user_id,
        salon_id=salon.salon_id,
        operator_id=operator.profile_id,
        menu_id=menu.id,
        reservation_date=date_str,
        reservation_time=time_str,
        gel_removal=menu.with_off,
        off_price=menu.off_price,
        menu_name=menu.name,
        operator_name=operator.display_name,
        duration_minutes=menu.duration_minutes,
        total_price=menu.total_price(date(2025, 3, 5)),
    )
