"""Репозиторий для работы с записями клиентов

Создание и отмена записей выполняются атомарными процедурами.
"""

import logging
from typing import List, Optional

from database.base_repository import BaseRepository
from database.models import Reservation

RESERVATION_SELECT = """SELECT r.*,
    m.name AS menu_name,
    o.display_name AS operator_name,
    c.display_name AS customer_name,
    c.user_id AS customer_user_id,
    o.user_id AS operator_user_id,
    s.name AS salon_name
FROM reservations r
LEFT JOIN menus m ON m.id = r.menu_id
LEFT JOIN profiles o ON o.profile_id = r.operator_id
LEFT JOIN profiles c ON c.profile_id = r.customer_id
LEFT JOIN salons s ON s.salon_id = r.salon_id"""


def reservation_from_row(row) -> Reservation:
    keys = row.keys()
    return Reservation(
        reservation_id=row["reservation_id"],
        customer_id=row["customer_id"],
        operator_id=row["operator_id"],
        salon_id=row["salon_id"],
        menu_id=row["menu_id"],
        reservation_date=row["reservation_date"],
        reservation_time=row["reservation_time"],
        status=row["status"],
        gel_removal=bool(row["gel_removal"]),
        off_price=row["off_price"],
        other_requests=row["other_requests"],
        total_price=row["total_price"],
        cancellation_deadline_minutes=row["cancellation_deadline_minutes"],
        created_at=row["created_at"],
        canceled_at=row["canceled_at"],
        canceled_by=row["canceled_by"],
        menu_name=row["menu_name"] if "menu_name" in keys else None,
        operator_name=row["operator_name"] if "operator_name" in keys else None,
        customer_name=row["customer_name"] if "customer_name" in keys else None,
        salon_name=row["salon_name"] if "salon_name" in keys else None,
        customer_user_id=row["customer_user_id"] if "customer_user_id" in keys else None,
        operator_user_id=row["operator_user_id"] if "operator_user_id" in keys else None,
    )


class ReservationRepository(BaseRepository):
    """Чтение записей и смена статуса оператором"""

    @staticmethod
    async def get(reservation_id: str) -> Optional[Reservation]:
        """Получить запись по ID"""
        try:
            row = await ReservationRepository._execute_query(
                f"{RESERVATION_SELECT} WHERE r.reservation_id=?",
                (reservation_id,),
                fetch_one=True,
            )
            return reservation_from_row(row) if row else None
        except Exception as e:
            logging.error(f"Error getting reservation {reservation_id}: {e}")
            return None

    @staticmethod
    async def find_reserved(
        customer_id: str, operator_id: str, date_str: str, time_str: str
    ) -> Optional[Reservation]:
        """Действующая запись клиента на конкретное время"""
        try:
            row = await ReservationRepository._execute_query(
                f"""{RESERVATION_SELECT} WHERE r.customer_id=? AND r.operator_id=?
                AND r.reservation_date=? AND r.reservation_time=? AND r.status='reserved'""",
                (customer_id, operator_id, date_str, time_str),
                fetch_one=True,
            )
            return reservation_from_row(row) if row else None
        except Exception as e:
            logging.error(f"Error finding reservation for {customer_id}: {e}")
            return None

    @staticmethod
    async def list_for_customer(customer_id: str) -> List[Reservation]:
        """Все записи клиента, новые первыми"""
        try:
            rows = await ReservationRepository._execute_query(
                f"""{RESERVATION_SELECT} WHERE r.customer_id=?
                ORDER BY r.reservation_date DESC, r.reservation_time DESC""",
                (customer_id,),
                fetch_all=True,
            )
            return [reservation_from_row(row) for row in rows]
        except Exception as e:
            logging.error(f"Error getting reservations for customer {customer_id}: {e}")
            return []

    @staticmethod
    async def list_for_salon_date(
        salon_id: str, date_str: str, operator_id: Optional[str] = None
    ) -> List[Reservation]:
        """Записи салона за день (опционально одного оператора)"""
        query = f"{RESERVATION_SELECT} WHERE r.salon_id=? AND r.reservation_date=?"
        params = [salon_id, date_str]
        if operator_id:
            query += " AND r.operator_id=?"
            params.append(operator_id)
        query += " ORDER BY r.reservation_time, o.display_name"
        try:
            rows = await ReservationRepository._execute_query(
                query, tuple(params), fetch_all=True
            )
            return [reservation_from_row(row) for row in rows]
        except Exception as e:
            logging.error(f"Error getting reservations for {salon_id} on {date_str}: {e}")
            return []

    @staticmethod
    async def list_reserved_from(start_date: str) -> List[Reservation]:
        """Активные записи начиная с даты (для восстановления напоминаний)"""
        try:
            rows = await ReservationRepository._execute_query(
                f"""{RESERVATION_SELECT}
                WHERE r.status='reserved' AND r.reservation_date >= ?
                ORDER BY r.reservation_date, r.reservation_time""",
                (start_date,),
                fetch_all=True,
            )
            return [reservation_from_row(row) for row in rows]
        except Exception as e:
            logging.error(f"Error getting reserved reservations from {start_date}: {e}")
            return []

    @staticmethod
    async def set_status(reservation_id: str, salon_id: str, status: str) -> bool:
        """Завершить запись или отметить неявку

        Меняется только запись в статусе reserved; слот остаётся занятым.
        """
        if status not in ("completed", "noshow"):
            raise ValueError(f"Unsupported status transition: {status}")
        try:
            updated = await ReservationRepository._execute_query(
                """UPDATE reservations SET status=?
                WHERE reservation_id=? AND salon_id=? AND status='reserved'""",
                (status, reservation_id, salon_id),
                commit=True,
            )
            if updated:
                logging.info(f"Reservation {reservation_id} marked {status}")
            else:
                logging.warning(f"Reservation {reservation_id} not updated to {status}")
            return updated > 0
        except Exception as e:
            logging.error(f"Error setting status of {reservation_id}: {e}")
            return False

    @staticmethod
    async def count_for_period(
        salon_id: str, start_date: str, end_date: str, exclude_canceled: bool = True
    ) -> int:
        where = "salon_id=? AND reservation_date >= ? AND reservation_date <= ?"
        if exclude_canceled:
            where += " AND status != 'canceled'"
        try:
            return await ReservationRepository._count(
                "reservations", where, (salon_id, start_date, end_date)
            )
        except Exception as e:
            logging.error(f"Error counting reservations for {salon_id}: {e}")
            return 0

    @staticmethod
    async def count_remaining_today(salon_id: str, date_str: str, time_str: str) -> int:
        """Сколько активных записей ещё впереди сегодня"""
        try:
            return await ReservationRepository._count(
                "reservations",
                "salon_id=? AND reservation_date=? AND reservation_time > ? AND status='reserved'",
                (salon_id, date_str, time_str),
            )
        except Exception as e:
            logging.error(f"Error counting today's reservations for {salon_id}: {e}")
            return 0
