"""Тесты обработчиков оператора: меню, карточка салона, объявления"""

from unittest.mock import AsyncMock, Mock

import pytest

from database.repositories.menu_repository import MenuRepository
from database.repositories.salon_repository import SalonRepository
from handlers.announcement_handlers import (
    announcement_content,
    announcement_publish,
    announcement_target,
    announcement_title,
    inbox_open,
)
from handlers.operator_handlers import (
    list_salons,
    menu_delete_confirm,
    menu_division_add,
    menu_division_name,
    menu_edit_start,
    menu_edit_value,
)
from handlers.salon_handlers import deadline_value, edit_field_start, edit_field_value
from services.menu_service import MenuService
from services.session import CustomerSession, OperatorSession
from utils.states import AnnouncementStates, MenuStates, SalonStates

ADMIN_USER_ID = 12345


class TestSalonsCommand:
    """/salons для администратора платформы"""

    @pytest.fixture
    def bot(self):
        bot = Mock()
        bot.get_me = AsyncMock(return_value=Mock(username="salon_bot"))
        return bot

    @pytest.mark.asyncio
    async def test_lists_invite_links(self, bot, mock_message, salon):
        message = mock_message(text="/salons", user_id=ADMIN_USER_ID)

        await list_salons(message, bot)

        text = message.answer.await_args.args[0]
        assert "Test Salon" in text
        assert f"https://t.me/salon_bot?start=salon_{salon.salon_id}" in text

    @pytest.mark.asyncio
    async def test_ignored_for_others(self, bot, mock_message, salon, operator):
        message = mock_message(text="/salons", user_id=operator.user_id)

        await list_salons(message, bot)

        assert not message.answer.called
        assert not bot.get_me.called


class TestMenuHandlers:
    @pytest.mark.asyncio
    async def test_edit_price(self, mock_callback_query, mock_message, mock_state, salon, operator, menu):
        session = OperatorSession(profile=operator)
        callback = mock_callback_query(data=f"omenu_edit:price:{menu.id}", user_id=operator.user_id)

        await menu_edit_start(callback, mock_state, session)
        assert await mock_state.get_state() == MenuStates.editing_field.state

        await menu_edit_value(mock_message(text="¥7,200", user_id=operator.user_id), mock_state, session)

        assert (await MenuRepository.get(menu.id)).price_without_tax == 7200
        assert await mock_state.get_state() is None

    @pytest.mark.asyncio
    async def test_invalid_duration_keeps_state(self, mock_message, mock_state, salon, operator, menu):
        session = OperatorSession(profile=operator)
        await mock_state.set_state(MenuStates.editing_field)
        await mock_state.update_data(edit_menu={"id": menu.id, "field": "duration"})
        message = mock_message(text="abc", user_id=operator.user_id)

        await menu_edit_value(message, mock_state, session)

        assert message.answer.await_args.args[0].startswith("❌")
        assert await mock_state.get_state() == MenuStates.editing_field.state
        assert (await MenuRepository.get(menu.id)).duration_minutes == 90

    @pytest.mark.asyncio
    async def test_delete_unused_menu(self, mock_callback_query, salon, operator, menu):
        callback = mock_callback_query(data=f"omenu_del_ok:{menu.id}", user_id=operator.user_id)

        await menu_delete_confirm(callback, OperatorSession(profile=operator))

        assert await MenuRepository.get(menu.id) is None
        assert "Меню удалено" in callback.message.edit_text.await_args.args[0]

    @pytest.mark.asyncio
    async def test_delete_menu_in_use(
        self, mock_callback_query, procedures, salon, operator, customer, menu, march_slots
    ):
        await procedures.create_reservation_and_book_slot(
            customer.profile_id, operator.profile_id, salon.salon_id, menu.id, march_slots, "10:00"
        )
        callback = mock_callback_query(data=f"omenu_del_ok:{menu.id}", user_id=operator.user_id)

        await menu_delete_confirm(callback, OperatorSession(profile=operator))

        assert await MenuRepository.get(menu.id) is not None
        assert "есть записи" in callback.answer.await_args.args[0]
        assert not callback.message.edit_text.called

    @pytest.mark.asyncio
    async def test_new_division_assigned_to_menu(
        self, mock_callback_query, mock_message, mock_state, salon, operator, menu
    ):
        session = OperatorSession(profile=operator)
        callback = mock_callback_query(data=f"omenu_div_add:{menu.id}", user_id=operator.user_id)

        await menu_division_add(callback, mock_state)
        message = mock_message(text="Руки", user_id=operator.user_id)
        await menu_division_name(message, mock_state, session)

        [division] = await MenuService.list_divisions(salon.salon_id)
        assert (await MenuRepository.get(menu.id)).division_ids == [division.id]
        markup = message.answer.await_args.kwargs["reply_markup"]
        assert markup.inline_keyboard[0][0].text == "✅ Руки"
        assert await mock_state.get_state() is None


class TestSalonHandlers:
    @pytest.mark.asyncio
    async def test_edit_phone(self, mock_callback_query, mock_message, mock_state, salon, operator):
        session = OperatorSession(profile=operator)
        callback = mock_callback_query(data="osalon_edit:phone_number", user_id=operator.user_id)

        await edit_field_start(callback, mock_state)
        await edit_field_value(mock_message(text="03-1234-5678", user_id=operator.user_id), mock_state, session)

        assert (await SalonRepository.get(salon.salon_id)).phone_number == "03-1234-5678"
        assert await mock_state.get_state() is None

    @pytest.mark.asyncio
    async def test_invalid_deadline_keeps_state(self, mock_message, mock_state, salon, operator):
        await mock_state.set_state(SalonStates.awaiting_deadline)
        message = mock_message(text="200", user_id=operator.user_id)

        await deadline_value(message, mock_state, OperatorSession(profile=operator))

        assert await mock_state.get_state() == SalonStates.awaiting_deadline.state
        assert (await SalonRepository.get(salon.salon_id)).cancellation_deadline_minutes == 1440

    @pytest.mark.asyncio
    async def test_deadline_saved_in_minutes(self, mock_message, mock_state, salon, operator):
        await mock_state.set_state(SalonStates.awaiting_deadline)
        message = mock_message(text="3", user_id=operator.user_id)

        await deadline_value(message, mock_state, OperatorSession(profile=operator))

        assert (await SalonRepository.get(salon.salon_id)).cancellation_deadline_minutes == 180


class TestAnnouncementHandlers:
    """Объявление от черновика до прочтения клиентом"""

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_create_publish_and_read(
        self, announcement_service, mock_bot, mock_callback_query, mock_message, mock_state,
        salon, operator, customer,
    ):
        session = OperatorSession(profile=operator)
        await mock_state.set_state(AnnouncementStates.selecting_target)

        await announcement_target(mock_callback_query(data="oann_to:all", user_id=operator.user_id), mock_state)
        await announcement_title(mock_message(text="Закрыто 10 марта", user_id=operator.user_id), mock_state)
        await announcement_content(
            mock_message(text="Ремонт, ждём вас 11 марта", user_id=operator.user_id),
            mock_state, session, announcement_service,
        )

        [draft] = await announcement_service.list_for_salon(salon.salon_id)
        assert draft.is_published is False
        assert mock_bot.sent_messages == []

        callback = mock_callback_query(data=f"oann_pub:{draft.id}", user_id=operator.user_id)
        await announcement_publish(callback, session, announcement_service)
        assert [m["chat_id"] for m in mock_bot.sent_messages] == [customer.user_id]

        opened = mock_callback_query(data=f"inbox:{draft.id}", user_id=customer.user_id)
        await inbox_open(opened, CustomerSession(profile=customer), announcement_service)

        assert "Ремонт, ждём вас 11 марта" in opened.message.edit_text.await_args.args[0]
        _, reads = await announcement_service.read_status(draft.id, salon.salon_id)
        assert reads[0].read_at is not None

    @pytest.mark.asyncio
    async def test_too_long_content_keeps_state(
        self, announcement_service, mock_message, mock_state, salon, operator
    ):
        await mock_state.set_state(AnnouncementStates.awaiting_content)
        await mock_state.update_data(announcement={"customer_id": None, "title": "Акция"})
        message = mock_message(text="x" * 201, user_id=operator.user_id)

        await announcement_content(message, mock_state, OperatorSession(profile=operator), announcement_service)

        assert await mock_state.get_state() == AnnouncementStates.awaiting_content.state
        assert await announcement_service.list_for_salon(salon.salon_id) == []

    @pytest.mark.asyncio
    async def test_other_customer_cannot_open_draft(
        self, announcement_service, mock_callback_query, salon, operator, customer
    ):
        announcement_id = await announcement_service.create(salon.salon_id, operator.profile_id, "Черновик", "Текст")
        callback = mock_callback_query(data=f"inbox:{announcement_id}", user_id=customer.user_id)

        await inbox_open(callback, CustomerSession(profile=customer), announcement_service)

        callback.answer.assert_awaited_once_with("❌ Объявление больше недоступно", show_alert=True)
