"""Тесты сессии пользователя и фильтра операторов"""

from unittest.mock import AsyncMock, Mock

import pytest

from middlewares.session import IsOperator, SessionMiddleware
from database.repositories.profile_repository import ProfileRepository
from services.session import Anonymous, CustomerSession, OperatorSession, resolve_session


class TestResolveSession:
    @pytest.mark.asyncio
    async def test_unknown_user_is_anonymous(self, init_database):
        session = await resolve_session(999)
        assert isinstance(session, Anonymous)
        assert session.user_id == 999

    @pytest.mark.asyncio
    async def test_customer_session(self, customer):
        session = await resolve_session(customer.user_id)
        assert isinstance(session, CustomerSession)
        assert session.profile.profile_id == customer.profile_id

    @pytest.mark.asyncio
    async def test_operator_session(self, operator):
        session = await resolve_session(operator.user_id)
        assert isinstance(session, OperatorSession)
        assert session.user_id == operator.user_id

    @pytest.mark.asyncio
    async def test_inactive_operator_is_anonymous(self, salon, operator):
        await ProfileRepository.set_operator_active(operator.profile_id, salon.salon_id, False)
        assert isinstance(await resolve_session(operator.user_id), Anonymous)


class TestSessionMiddleware:
    @pytest.mark.asyncio
    async def test_session_put_into_data(self, operator, mock_user):
        handler = AsyncMock(return_value="ok")
        data = {"event_from_user": mock_user(user_id=operator.user_id)}

        result = await SessionMiddleware()(handler, Mock(), data)

        assert result == "ok"
        assert isinstance(data["session"], OperatorSession)
        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_user(self):
        handler = AsyncMock()
        data = {}
        await SessionMiddleware()(handler, Mock(), data)
        assert isinstance(data["session"], Anonymous)


class TestIsOperator:
    @pytest.mark.asyncio
    async def test_filter(self, operator, customer):
        is_operator = IsOperator()
        assert await is_operator(Mock(), session=OperatorSession(profile=operator)) is True
        assert await is_operator(Mock(), session=CustomerSession(profile=customer)) is False
        assert await is_operator(Mock(), session=Anonymous(user_id=1)) is False
        assert await is_operator(Mock()) is False
