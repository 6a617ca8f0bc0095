"""Атомарные процедуры бронирования

Каждая изменяющая процедура выполняется одной транзакцией BEGIN IMMEDIATE:
чтение, проверка и запись без промежуточных фиксаций. Только эти процедуры
меняют slots.is_booked и создают/отменяют записи.
"""

import logging
import sqlite3
import uuid
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, List, Optional, Tuple

import aiosqlite

from config import (
    BOOKING_LOCKOUT_HOURS,
    CANCEL_ABUSE_WINDOW_MINUTES,
    DATABASE_PATH,
    MAX_ACTIVE_RESERVATIONS,
)
from database.models import Reservation
from database.repositories.menu_repository import menu_from_row
from database.repositories.reservation_repository import reservation_from_row
from services.cancellation_policy import is_cancelable, is_locked_out
from utils.datetime_utils import month_range, parse_date, parse_datetime, time_range
from utils.helpers import now_local


class SalonProcedures:
    """Атомарные операции над слотами и записями"""

    def __init__(self, db_path: str = DATABASE_PATH, clock: Callable[[], datetime] = now_local):
        self.db_path = db_path
        self.clock = clock

    # === ПРОВЕРКИ ===

    async def _customer_cancel_times(
        self, db: aiosqlite.Connection, customer_id: str, now: datetime
    ) -> List[datetime]:
        """Моменты отмен, сделанных самим клиентом, за период блокировки"""
        since = now - timedelta(hours=BOOKING_LOCKOUT_HOURS, minutes=CANCEL_ABUSE_WINDOW_MINUTES)
        async with db.execute(
            """SELECT canceled_at FROM reservations
            WHERE customer_id=? AND status='canceled' AND canceled_by=?
              AND canceled_at IS NOT NULL""",
            (customer_id, customer_id),
        ) as cursor:
            rows = await cursor.fetchall()

        times = [datetime.fromisoformat(row[0]) for row in rows]
        return [t for t in times if t >= since]

    async def _is_locked_out(
        self, db: aiosqlite.Connection, customer_id: str, now: datetime
    ) -> bool:
        times = await self._customer_cancel_times(db, customer_id, now)
        return is_locked_out(times, now)

    async def can_create_reservation(self, customer_id: str) -> bool:
        """Может ли клиент создавать записи (нет блокировки за отмены)

        Ошибки хранилища не перехватываются.
        """
        now = self.clock()
        async with aiosqlite.connect(self.db_path) as db:
            locked = await self._is_locked_out(db, customer_id, now)
        if locked:
            logging.warning(f"Customer {customer_id} is locked out of booking")
        return not locked

    # === СОЗДАНИЕ И ОТМЕНА ===

    async def create_reservation_and_book_slot(
        self,
        customer_id: str,
        operator_id: str,
        salon_id: str,
        menu_id: int,
        reservation_date: str,
        reservation_time: str,
        gel_removal: bool = False,
        off_price: int = 0,
        other_requests: str = "",
    ) -> Tuple[bool, str, Optional[str]]:
        """Создать запись и занять слот одной транзакцией

        Returns:
            (success, code, reservation_id)
        """
        now = self.clock()
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE")

            try:
                async with db.execute(
                    """SELECT 1 FROM profiles
                    WHERE profile_id=? AND kind='operator' AND salon_id=? AND is_active=1""",
                    (operator_id, salon_id),
                ) as cursor:
                    operator_ok = await cursor.fetchone()
                if not operator_ok:
                    await db.rollback()
                    logging.warning(f"Operator {operator_id} unavailable in salon {salon_id}")
                    return False, "operator_unavailable", None

                if await self._is_locked_out(db, customer_id, now):
                    await db.rollback()
                    logging.warning(f"Customer {customer_id} locked out, reservation rejected")
                    return False, "locked_out", None

                # Лимит активных (будущих) записей клиента
                async with db.execute(
                    """SELECT COUNT(*) FROM reservations
                    WHERE customer_id=? AND status='reserved'
                      AND reservation_date || ' ' || reservation_time >= ?""",
                    (customer_id, now.strftime("%Y-%m-%d %H:%M")),
                ) as cursor:
                    active_count = (await cursor.fetchone())[0]
                if active_count >= MAX_ACTIVE_RESERVATIONS:
                    await db.rollback()
                    logging.warning(f"Customer {customer_id} exceeded active reservation limit")
                    return False, "limit_exceeded", None

                async with db.execute(
                    "SELECT * FROM menus WHERE id=? AND salon_id=? AND is_active=1",
                    (menu_id, salon_id),
                ) as cursor:
                    menu_row = await cursor.fetchone()
                if not menu_row:
                    await db.rollback()
                    logging.warning(f"Menu {menu_id} unavailable in salon {salon_id}")
                    return False, "menu_unavailable", None
                menu = menu_from_row(menu_row)

                async with db.execute(
                    """SELECT id, is_booked FROM slots
                    WHERE salon_id=? AND operator_id=? AND slot_date=? AND slot_time=?""",
                    (salon_id, operator_id, reservation_date, reservation_time),
                ) as cursor:
                    slot = await cursor.fetchone()
                if not slot:
                    await db.rollback()
                    logging.info(f"Slot {reservation_date} {reservation_time} of {operator_id} not found")
                    return False, "slot_not_found", None
                if slot["is_booked"]:
                    await db.rollback()
                    logging.info(f"Slot {reservation_date} {reservation_time} of {operator_id} already booked")
                    return False, "slot_taken", None
                if parse_datetime(reservation_date, reservation_time) <= now:
                    await db.rollback()
                    return False, "slot_in_past", None

                cursor = await db.execute(
                    "UPDATE slots SET is_booked=1 WHERE id=? AND is_booked=0",
                    (slot["id"],),
                )
                if cursor.rowcount != 1:
                    await db.rollback()
                    return False, "slot_taken", None

                async with db.execute(
                    "SELECT cancellation_deadline_minutes FROM salons WHERE salon_id=?",
                    (salon_id,),
                ) as cursor:
                    salon_row = await cursor.fetchone()
                deadline = salon_row[0] if salon_row else None

                reservation_id = uuid.uuid4().hex
                total_price = menu.discounted_price(parse_date(reservation_date))
                if gel_removal:
                    total_price += off_price

                await db.execute(
                    """INSERT INTO reservations
                    (reservation_id, customer_id, operator_id, salon_id, menu_id,
                     reservation_date, reservation_time, status, gel_removal, off_price,
                     other_requests, total_price, cancellation_deadline_minutes, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, 'reserved', ?, ?, ?, ?, ?, ?)""",
                    (
                        reservation_id,
                        customer_id,
                        operator_id,
                        salon_id,
                        menu_id,
                        reservation_date,
                        reservation_time,
                        int(gel_removal),
                        off_price if gel_removal else 0,
                        other_requests,
                        total_price,
                        deadline,
                        now.isoformat(),
                    ),
                )

                await db.commit()
                logging.info(
                    f"Reservation {reservation_id} created: customer {customer_id}, "
                    f"operator {operator_id}, {reservation_date} {reservation_time}"
                )
                return True, "success", reservation_id

            except sqlite3.IntegrityError as e:
                await db.rollback()
                logging.warning(f"Integrity error creating reservation: {e}")
                return False, "slot_taken", None
            except Exception as e:
                await db.rollback()
                logging.error(f"Error in create_reservation_and_book_slot: {e}")
                return False, "unknown_error", None

    async def cancel_reservation_and_free_slot(
        self, reservation_id: str, actor_profile_id: str, actor_kind: str
    ) -> Tuple[bool, str]:
        """Отменить запись и освободить слот одной транзакцией

        Клиент отменяет только свою запись и только до дедлайна,
        оператор отменяет любую запись своего салона.
        """
        now = self.clock()
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE")

            try:
                async with db.execute(
                    "SELECT * FROM reservations WHERE reservation_id=?", (reservation_id,)
                ) as cursor:
                    row = await cursor.fetchone()
                if not row:
                    await db.rollback()
                    return False, "not_found"
                reservation: Reservation = reservation_from_row(row)

                if reservation.status != "reserved":
                    await db.rollback()
                    return False, "not_cancelable"

                if actor_kind == "customer":
                    if reservation.customer_id != actor_profile_id:
                        await db.rollback()
                        logging.warning(
                            f"Customer {actor_profile_id} tried to cancel foreign reservation {reservation_id}"
                        )
                        return False, "forbidden"
                    if not is_cancelable(reservation, now):
                        await db.rollback()
                        return False, "deadline_passed"
                elif actor_kind == "operator":
                    async with db.execute(
                        """SELECT 1 FROM profiles
                        WHERE profile_id=? AND kind='operator' AND salon_id=?""",
                        (actor_profile_id, reservation.salon_id),
                    ) as cursor:
                        allowed = await cursor.fetchone()
                    if not allowed:
                        await db.rollback()
                        logging.warning(
                            f"Operator {actor_profile_id} tried to cancel reservation "
                            f"{reservation_id} of another salon"
                        )
                        return False, "forbidden"
                else:
                    await db.rollback()
                    return False, "forbidden"

                cursor = await db.execute(
                    """UPDATE reservations
                    SET status='canceled', canceled_at=?, canceled_by=?
                    WHERE reservation_id=? AND status='reserved'""",
                    (now.isoformat(), actor_profile_id, reservation_id),
                )
                if cursor.rowcount != 1:
                    await db.rollback()
                    return False, "not_cancelable"

                await db.execute(
                    """UPDATE slots SET is_booked=0
                    WHERE salon_id=? AND operator_id=? AND slot_date=? AND slot_time=?""",
                    (
                        reservation.salon_id,
                        reservation.operator_id,
                        reservation.reservation_date,
                        reservation.reservation_time,
                    ),
                )

                await db.commit()
                logging.info(f"Reservation {reservation_id} canceled by {actor_kind} {actor_profile_id}")
                return True, "success"

            except Exception as e:
                await db.rollback()
                logging.error(f"Error in cancel_reservation_and_free_slot: {e}")
                return False, "unknown_error"

    # === РАСПИСАНИЕ ===

    async def bulk_add_slots(
        self,
        salon_id: str,
        operator_id: str,
        weekdays: Iterable[int],
        start_time: str,
        end_time: str,
        interval_minutes: int,
        target_month: date,
    ) -> int:
        """Создать слоты по недельному шаблону на месяц

        weekdays: 0 = понедельник ... 6 = воскресенье.
        Слоты создаются с сегодняшнего дня, уже существующие пропускаются.

        Returns:
            Количество созданных слотов
        """
        now = self.clock()
        today = now.date()
        weekdays = set(weekdays)
        times = time_range(start_time, end_time, interval_minutes)
        first_day, last_day = month_range(target_month)

        rows = []
        day = max(first_day, today)
        while day <= last_day:
            if day.weekday() in weekdays:
                for slot_time in times:
                    if day == today and slot_time <= now.strftime("%H:%M"):
                        continue
                    rows.append((salon_id, operator_id, day.isoformat(), slot_time))
            day += timedelta(days=1)

        if not rows:
            return 0

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                async with db.execute(
                    """SELECT 1 FROM profiles
                    WHERE profile_id=? AND kind='operator' AND salon_id=?""",
                    (operator_id, salon_id),
                ) as cursor:
                    operator_ok = await cursor.fetchone()
                if not operator_ok:
                    await db.rollback()
                    logging.warning(f"Operator {operator_id} not in salon {salon_id}, slots not added")
                    return 0

                created = 0
                for params in rows:
                    cursor = await db.execute(
                        """INSERT OR IGNORE INTO slots
                        (salon_id, operator_id, slot_date, slot_time, is_booked)
                        VALUES (?, ?, ?, ?, 0)""",
                        params,
                    )
                    created += cursor.rowcount
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logging.info(
            f"Added {created} slots for operator {operator_id} "
            f"({target_month.year}-{target_month.month:02d})"
        )
        return created

    async def delete_slot(self, slot_id: int, salon_id: str) -> Tuple[bool, str]:
        """Удалить свободный слот"""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                async with db.execute(
                    "SELECT is_booked FROM slots WHERE id=? AND salon_id=?",
                    (slot_id, salon_id),
                ) as cursor:
                    slot = await cursor.fetchone()
                if not slot:
                    await db.rollback()
                    return False, "not_found"
                if slot[0]:
                    await db.rollback()
                    return False, "slot_taken"

                await db.execute("DELETE FROM slots WHERE id=? AND is_booked=0", (slot_id,))
                await db.commit()
                logging.info(f"Slot {slot_id} deleted")
                return True, "success"
            except Exception as e:
                await db.rollback()
                logging.error(f"Error deleting slot {slot_id}: {e}")
                return False, "unknown_error"

    async def delete_slots_for_date(self, salon_id: str, operator_id: str, date_str: str) -> int:
        """Удалить все свободные слоты оператора за день

        Returns:
            Количество удалённых слотов
        """
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                cursor = await db.execute(
                    """DELETE FROM slots
                    WHERE salon_id=? AND operator_id=? AND slot_date=? AND is_booked=0""",
                    (salon_id, operator_id, date_str),
                )
                deleted = cursor.rowcount
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logging.info(f"Deleted {deleted} free slots of {operator_id} on {date_str}")
        return deleted
