"""Middleware: сессия пользователя для каждого апдейта"""

from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.filters import Filter
from aiogram.types import TelegramObject

from services.session import Anonymous, OperatorSession, Session, resolve_session


class SessionMiddleware(BaseMiddleware):
    """Кладёт в data["session"] Anonymous | CustomerSession | OperatorSession"""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user = data.get("event_from_user")
        if user is None:
            data["session"] = Anonymous(user_id=0)
        else:
            data["session"] = await resolve_session(user.id)
        return await handler(event, data)


class IsOperator(Filter):
    """Фильтр: только активные операторы салона"""

    async def __call__(self, event: TelegramObject, session: Session = None) -> bool:
        return isinstance(session, OperatorSession)
