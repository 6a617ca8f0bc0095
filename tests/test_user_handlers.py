"""Тесты обработчиков клиента: меню с разделами и карточка салона"""

import pytest

from database.models import Menu
from database.repositories.menu_repository import MenuRepository
from handlers.user_handlers import about_salon, menu_list, menu_tag
from services.menu_service import MenuService
from services.salon_service import SalonService
from services.session import CustomerSession


def menu_buttons(markup):
    return [row[0].text for row in markup.inline_keyboard if row[0].callback_data.startswith("menu:")]


class TestMenuFilter:
    @pytest.fixture
    async def hands(self, salon, menu):
        division_id = await MenuService.create_division(salon.salon_id, "Руки")
        await MenuService.toggle_menu_division(menu.id, salon.salon_id, division_id)
        await MenuRepository.create(
            Menu(id=None, salon_id=salon.salon_id, name="Педикюр", price_without_tax=7000, duration_minutes=60)
        )
        return division_id

    @pytest.mark.asyncio
    async def test_tag_filters_menus(self, hands, mock_message, mock_callback_query, mock_state, customer):
        session = CustomerSession(profile=customer)
        message = mock_message(text="💅 Меню и запись", user_id=customer.user_id)

        await menu_list(message, mock_state, session)
        markup = message.answer.await_args.kwargs["reply_markup"]
        assert len(menu_buttons(markup)) == 2
        assert markup.inline_keyboard[0][0].callback_data == f"menu_tag:{hands}"

        callback = mock_callback_query(data=f"menu_tag:{hands}", user_id=customer.user_id)
        await menu_tag(callback, mock_state, session)

        filtered = callback.message.edit_reply_markup.await_args.kwargs["reply_markup"]
        assert [text.split(" · ")[0] for text in menu_buttons(filtered)] == ["Гель-маникюр"]
        assert filtered.inline_keyboard[0][0].text == "✅ Руки"
        assert (await mock_state.get_data())["menu_filter"] == [hands]

    @pytest.mark.asyncio
    async def test_second_tap_clears_tag(self, hands, mock_callback_query, mock_state, customer):
        session = CustomerSession(profile=customer)

        for _ in range(2):
            callback = mock_callback_query(data=f"menu_tag:{hands}", user_id=customer.user_id)
            await menu_tag(callback, mock_state, session)

        markup = callback.message.edit_reply_markup.await_args.kwargs["reply_markup"]
        assert len(menu_buttons(markup)) == 2
        assert (await mock_state.get_data())["menu_filter"] == []


class TestAboutSalon:
    @pytest.mark.asyncio
    async def test_details_shown(self, mock_message, salon, customer):
        await SalonService.update_text(salon.salon_id, "phone_number", "03-1234-5678")
        await SalonService.set_opening_hours(salon.salon_id, "sunday", False)
        await SalonService.toggle_payment_method(salon.salon_id, "cash")
        message = mock_message(text="ℹ️ О салоне", user_id=customer.user_id)

        await about_salon(message, CustomerSession(profile=customer))

        text = message.answer.await_args.args[0]
        assert "📞 03-1234-5678" in text
        assert "Вс: выходной" in text
        assert "Пн: 10:00-19:00" in text
        assert "💳 Оплата: Наличные" in text
        assert "не позднее чем за 24 ч" in text

    @pytest.mark.asyncio
    async def test_zero_deadline(self, mock_message, salon, customer):
        await SalonService.set_cancellation_deadline(salon.salon_id, 0)
        message = mock_message(text="ℹ️ О салоне", user_id=customer.user_id)

        await about_salon(message, CustomerSession(profile=customer))

        assert "Онлайн-отмена возможна до начала записи" in message.answer.await_args.args[0]
