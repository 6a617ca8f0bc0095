"""Репозиторий карт клиентов (karute)"""

import logging
from typing import Optional

from database.base_repository import BaseRepository
from database.models import Karute
from utils.helpers import now_local


class KaruteRepository(BaseRepository):

    @staticmethod
    async def get(customer_id: str, salon_id: str) -> Optional[Karute]:
        try:
            row = await KaruteRepository._execute_query(
                "SELECT * FROM karute WHERE customer_id=? AND salon_id=?",
                (customer_id, salon_id),
                fetch_one=True,
            )
            if not row:
                return None
            return Karute(
                customer_id=row["customer_id"],
                salon_id=row["salon_id"],
                notes=row["notes"],
                updated_at=row["updated_at"],
            )
        except Exception as e:
            logging.error(f"Error getting karute for {customer_id}: {e}")
            return None

    @staticmethod
    async def save(customer_id: str, salon_id: str, notes: str) -> bool:
        """Создать или перезаписать карту клиента"""
        try:
            await KaruteRepository._execute_query(
                """INSERT INTO karute (customer_id, salon_id, notes, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(customer_id, salon_id)
                DO UPDATE SET notes=excluded.notes, updated_at=excluded.updated_at""",
                (customer_id, salon_id, notes, now_local().isoformat()),
                commit=True,
            )
            logging.info(f"Karute saved for customer {customer_id} in {salon_id}")
            return True
        except Exception as e:
            logging.error(f"Error saving karute for {customer_id}: {e}")
            return False

    @staticmethod
    async def delete(customer_id: str, salon_id: str) -> bool:
        try:
            deleted = await KaruteRepository._execute_query(
                "DELETE FROM karute WHERE customer_id=? AND salon_id=?",
                (customer_id, salon_id),
                commit=True,
            )
            return deleted > 0
        except Exception as e:
            logging.error(f"Error deleting karute for {customer_id}: {e}")
            return False
