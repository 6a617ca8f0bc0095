"""Сессия пользователя: аноним, клиент или оператор"""

import logging
from dataclasses import dataclass
from typing import Literal, Union

from database.models import CustomerProfile, OperatorProfile
from database.repositories.profile_repository import ProfileRepository


@dataclass(frozen=True)
class Anonymous:
    user_id: int
    kind: Literal["anonymous"] = "anonymous"


@dataclass(frozen=True)
class CustomerSession:
    profile: CustomerProfile
    kind: Literal["customer"] = "customer"

    @property
    def user_id(self) -> int:
        return self.profile.user_id


@dataclass(frozen=True)
class OperatorSession:
    profile: OperatorProfile
    kind: Literal["operator"] = "operator"

    @property
    def user_id(self) -> int:
        return self.profile.user_id


Session = Union[Anonymous, CustomerSession, OperatorSession]


async def resolve_session(user_id: int) -> Session:
    """Определить сессию по Telegram user_id

    Неактивный оператор и ошибки БД дают анонимную сессию.
    """
    try:
        profile = await ProfileRepository.get_by_user_id(user_id)
    except Exception as e:
        logging.error(f"Error resolving session for user {user_id}: {e}")
        return Anonymous(user_id=user_id)

    if isinstance(profile, OperatorProfile):
        if not profile.is_active:
            return Anonymous(user_id=user_id)
        return OperatorSession(profile=profile)
    if isinstance(profile, CustomerProfile):
        return CustomerSession(profile=profile)
    return Anonymous(user_id=user_id)
