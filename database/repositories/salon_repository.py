"""Репозиторий для работы с салонами"""

import json
import logging
import uuid
from dataclasses import asdict
from typing import Dict, List, Optional

from config import DEFAULT_CANCELLATION_DEADLINE_MINUTES
from database.base_repository import BaseRepository
from database.models import OpeningHours, Salon, default_opening_hours
from utils.helpers import now_local


def _opening_hours_from_json(raw: str) -> Dict[str, OpeningHours]:
    hours = default_opening_hours()
    for day, value in json.loads(raw or "{}").items():
        if day in hours:
            hours[day] = OpeningHours(**value)
    return hours


def _salon_from_row(row) -> Salon:
    return Salon(
        salon_id=row["salon_id"],
        name=row["name"],
        cancellation_deadline_minutes=row["cancellation_deadline_minutes"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        phone_number=row["phone_number"],
        address=row["address"],
        access_info=row["access_info"],
        opening_hours=_opening_hours_from_json(row["opening_hours"]),
        payment_methods=json.loads(row["payment_methods"] or "[]"),
    )


class SalonRepository(BaseRepository):
    """Репозиторий салонов"""

    @staticmethod
    async def create(
        name: str,
        cancellation_deadline_minutes: int = DEFAULT_CANCELLATION_DEADLINE_MINUTES,
    ) -> Salon:
        """Создать салон"""
        salon = Salon(
            salon_id=uuid.uuid4().hex[:12],
            name=name,
            cancellation_deadline_minutes=cancellation_deadline_minutes,
            created_at=now_local().isoformat(),
        )
        await SalonRepository._execute_query(
            """INSERT INTO salons
            (salon_id, name, cancellation_deadline_minutes, is_active, created_at)
            VALUES (?, ?, ?, 1, ?)""",
            (salon.salon_id, salon.name, salon.cancellation_deadline_minutes, salon.created_at),
            commit=True,
        )
        logging.info(f"Salon {salon.salon_id} created: {name}")
        return salon

    @staticmethod
    async def get(salon_id: str) -> Optional[Salon]:
        """Получить салон по ID"""
        try:
            row = await SalonRepository._execute_query(
                "SELECT * FROM salons WHERE salon_id=?", (salon_id,), fetch_one=True
            )
            return _salon_from_row(row) if row else None
        except Exception as e:
            logging.error(f"Error getting salon {salon_id}: {e}")
            return None

    @staticmethod
    async def list_active() -> List[Salon]:
        try:
            rows = await SalonRepository._execute_query(
                "SELECT * FROM salons WHERE is_active=1 ORDER BY name", fetch_all=True
            )
            return [_salon_from_row(row) for row in rows]
        except Exception as e:
            logging.error(f"Error listing salons: {e}")
            return []

    @staticmethod
    async def update_details(salon: Salon) -> bool:
        """Сохранить карточку салона и срок онлайн-отмены"""
        try:
            updated = await SalonRepository._execute_query(
                """UPDATE salons SET name=?, cancellation_deadline_minutes=?,
                phone_number=?, address=?, access_info=?, opening_hours=?, payment_methods=?
                WHERE salon_id=?""",
                (
                    salon.name,
                    salon.cancellation_deadline_minutes,
                    salon.phone_number,
                    salon.address,
                    salon.access_info,
                    json.dumps({day: asdict(hours) for day, hours in salon.opening_hours.items()}),
                    json.dumps(salon.payment_methods),
                    salon.salon_id,
                ),
                commit=True,
            )
            if updated:
                logging.info(f"Salon {salon.salon_id} details updated")
            return updated > 0
        except Exception as e:
            logging.error(f"Error updating salon {salon.salon_id}: {e}")
            return False
