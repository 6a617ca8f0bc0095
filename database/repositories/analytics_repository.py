"""Репозиторий для работы с аналитикой"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from database.base_repository import BaseRepository
from utils.helpers import now_local


@dataclass
class CustomerStats:
    """Статистика клиента в салоне"""

    total_reservations: int
    canceled_reservations: int
    noshow_count: int
    last_visit: Optional[str]


class AnalyticsRepository(BaseRepository):
    """Репозиторий для аналитики"""

    @staticmethod
    async def log_event(user_id: int, event: str, data: str = ""):
        """Логирование события"""
        try:
            await AnalyticsRepository._execute_query(
                "INSERT INTO analytics (user_id, event, data, timestamp) VALUES (?, ?, ?, ?)",
                (user_id, event, data, now_local().isoformat()),
                commit=True,
            )
        except Exception as e:
            # Не падаем, только логируем
            logging.error(f"Failed to log event {event} for user {user_id}: {e}")

    @staticmethod
    async def get_customer_stats(customer_id: str, salon_id: str) -> CustomerStats:
        """Статистика клиента по записям салона"""
        try:
            row = await AnalyticsRepository._execute_query(
                """SELECT COUNT(*) AS total,
                    SUM(CASE WHEN status='canceled' THEN 1 ELSE 0 END) AS canceled,
                    SUM(CASE WHEN status='noshow' THEN 1 ELSE 0 END) AS noshow,
                    MAX(CASE WHEN status='completed' THEN reservation_date END) AS last_visit
                FROM reservations WHERE customer_id=? AND salon_id=?""",
                (customer_id, salon_id),
                fetch_one=True,
            )
            return CustomerStats(
                total_reservations=row["total"] or 0,
                canceled_reservations=row["canceled"] or 0,
                noshow_count=row["noshow"] or 0,
                last_visit=row["last_visit"],
            )
        except Exception as e:
            logging.error(f"Error getting stats for customer {customer_id}: {e}")
            return CustomerStats(
                total_reservations=0, canceled_reservations=0, noshow_count=0, last_visit=None
            )

    @staticmethod
    async def get_top_menus(salon_id: str, limit: int = 5) -> List[Tuple[str, int]]:
        """Самые популярные меню салона"""
        try:
            rows = await AnalyticsRepository._execute_query(
                """SELECT m.name, COUNT(*) AS total
                FROM reservations r JOIN menus m ON m.id = r.menu_id
                WHERE r.salon_id=? AND r.status != 'canceled'
                GROUP BY m.id ORDER BY total DESC LIMIT ?""",
                (salon_id, limit),
                fetch_all=True,
            )
            return [(row["name"], row["total"]) for row in rows]
        except Exception as e:
            logging.error(f"Error getting top menus for {salon_id}: {e}")
            return []
