"""Репозиторий для работы с профилями пользователей"""

import logging
import uuid
from typing import List, Optional, Tuple

from database.base_repository import BaseRepository
from database.models import (
    CustomerProfile,
    OperatorProfile,
    UserProfile,
    profile_from_row,
)
from utils.helpers import now_local


class ProfileRepository(BaseRepository):
    """Профили операторов и клиентов"""

    @staticmethod
    async def get_by_user_id(user_id: int) -> Optional[UserProfile]:
        """Профиль по Telegram user_id"""
        row = await ProfileRepository._execute_query(
            "SELECT * FROM profiles WHERE user_id=?", (user_id,), fetch_one=True
        )
        return profile_from_row(row) if row else None

    @staticmethod
    async def get(profile_id: str) -> Optional[UserProfile]:
        try:
            row = await ProfileRepository._execute_query(
                "SELECT * FROM profiles WHERE profile_id=?", (profile_id,), fetch_one=True
            )
            return profile_from_row(row) if row else None
        except Exception as e:
            logging.error(f"Error getting profile {profile_id}: {e}")
            return None

    @staticmethod
    async def register_customer(
        user_id: int, display_name: str, salon_id: Optional[str]
    ) -> UserProfile:
        """Создать клиента или привязать существующего к салону

        Профиль оператора не изменяется.
        """
        existing = await ProfileRepository.get_by_user_id(user_id)
        if isinstance(existing, OperatorProfile):
            return existing

        if existing is None:
            profile = CustomerProfile(
                profile_id=uuid.uuid4().hex,
                user_id=user_id,
                salon_id=salon_id,
                display_name=display_name,
            )
            await ProfileRepository._execute_query(
                """INSERT INTO profiles
                (profile_id, user_id, kind, salon_id, display_name, is_active, created_at)
                VALUES (?, ?, 'customer', ?, ?, 1, ?)""",
                (profile.profile_id, user_id, salon_id, display_name, now_local().isoformat()),
                commit=True,
            )
            logging.info(f"Customer {profile.profile_id} registered (user {user_id}, salon {salon_id})")
            return profile

        if salon_id and salon_id != existing.salon_id:
            await ProfileRepository._execute_query(
                "UPDATE profiles SET salon_id=? WHERE profile_id=?",
                (salon_id, existing.profile_id),
                commit=True,
            )
            existing.salon_id = salon_id
            logging.info(f"Customer {existing.profile_id} linked to salon {salon_id}")
        return existing

    @staticmethod
    async def add_operator(
        user_id: int, display_name: str, salon_id: str
    ) -> Tuple[bool, str]:
        """Добавить сотрудника в салон

        Клиента без записей можно перевести в операторы.
        """
        try:
            existing = await ProfileRepository.get_by_user_id(user_id)
            if isinstance(existing, OperatorProfile):
                return False, "already_operator"

            if existing is not None:
                has_reservations = await ProfileRepository._exists(
                    "reservations", "customer_id=?", (existing.profile_id,)
                )
                if has_reservations:
                    return False, "has_reservations"
                await ProfileRepository._execute_query(
                    """UPDATE profiles
                    SET kind='operator', salon_id=?, display_name=?, is_active=1
                    WHERE profile_id=?""",
                    (salon_id, display_name, existing.profile_id),
                    commit=True,
                )
                logging.info(f"Customer {existing.profile_id} promoted to operator in {salon_id}")
                return True, "success"

            await ProfileRepository._execute_query(
                """INSERT INTO profiles
                (profile_id, user_id, kind, salon_id, display_name, is_active, created_at)
                VALUES (?, ?, 'operator', ?, ?, 1, ?)""",
                (uuid.uuid4().hex, user_id, salon_id, display_name, now_local().isoformat()),
                commit=True,
            )
            logging.info(f"Operator for user {user_id} added to salon {salon_id}")
            return True, "success"
        except Exception as e:
            logging.error(f"Error adding operator {user_id} to {salon_id}: {e}")
            return False, "unknown_error"

    @staticmethod
    async def list_operators(salon_id: str, active_only: bool = True) -> List[OperatorProfile]:
        """Сотрудники салона"""
        query = "SELECT * FROM profiles WHERE kind='operator' AND salon_id=?"
        if active_only:
            query += " AND is_active=1"
        query += " ORDER BY display_name"
        try:
            rows = await ProfileRepository._execute_query(query, (salon_id,), fetch_all=True)
            return [profile_from_row(row) for row in rows]
        except Exception as e:
            logging.error(f"Error listing operators for {salon_id}: {e}")
            return []

    @staticmethod
    async def set_operator_active(profile_id: str, salon_id: str, is_active: bool) -> bool:
        try:
            updated = await ProfileRepository._execute_query(
                """UPDATE profiles SET is_active=?
                WHERE profile_id=? AND salon_id=? AND kind='operator'""",
                (int(is_active), profile_id, salon_id),
                commit=True,
            )
            return updated > 0
        except Exception as e:
            logging.error(f"Error updating operator {profile_id}: {e}")
            return False

    @staticmethod
    async def list_customers(salon_id: str) -> List[CustomerProfile]:
        """Клиенты салона: привязанные к нему или имеющие в нём записи"""
        try:
            rows = await ProfileRepository._execute_query(
                """SELECT * FROM profiles
                WHERE kind='customer'
                  AND (salon_id=? OR profile_id IN
                       (SELECT customer_id FROM reservations WHERE salon_id=?))
                ORDER BY display_name""",
                (salon_id, salon_id),
                fetch_all=True,
            )
            return [profile_from_row(row) for row in rows]
        except Exception as e:
            logging.error(f"Error listing customers for {salon_id}: {e}")
            return []
