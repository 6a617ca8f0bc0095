"""Обработчики карточки салона для операторов"""

from aiogram import F, Router
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from config import OPENING_DAY_NAMES, OPENING_DAYS
from database.repositories.salon_repository import SalonRepository
from keyboards.operator_keyboards import (
    OPERATOR_MENU,
    create_day_hours_keyboard,
    create_opening_hours_keyboard,
    create_payment_methods_keyboard,
    create_salon_keyboard,
)
from keyboards.user_keyboards import format_salon_details
from middlewares.session import IsOperator
from services.errors import ValidationError, error_message
from services.salon_service import CLEAR_VALUE, MAX_CANCELLATION_DEADLINE_HOURS, SalonService, parse_deadline_hours
from services.session import OperatorSession
from utils.helpers import format_duration
from utils.states import SalonStates

router = Router()
router.message.filter(IsOperator())
router.callback_query.filter(IsOperator())

FIELD_PROMPTS = {
    "name": "✏️ Введите название салона:",
    "phone_number": f"📞 Введите телефон (или «{CLEAR_VALUE}», чтобы убрать):",
    "address": f"📍 Введите адрес (или «{CLEAR_VALUE}», чтобы убрать):",
    "access_info": f"🚉 Как добраться (или «{CLEAR_VALUE}», чтобы убрать):",
}


def salon_card_text(salon) -> str:
    deadline = salon.cancellation_deadline_minutes
    return (
        f"🏠 КАРТОЧКА САЛОНА\n\n{format_salon_details(salon)}\n\n"
        f"❌ Онлайн-отмена: {'за ' + format_duration(deadline) if deadline else 'до начала записи'}"
    )


@router.message(F.text == "🏠 Салон")
async def salon_card(message: Message, state: FSMContext, session: OperatorSession):
    await state.clear()
    salon = await SalonRepository.get(session.profile.salon_id)
    if salon is None:
        await message.answer(error_message("not_found"))
        return
    await message.answer(salon_card_text(salon), reply_markup=create_salon_keyboard())


@router.callback_query(F.data == "osalon")
async def salon_card_callback(callback: CallbackQuery, state: FSMContext, session: OperatorSession):
    await state.clear()
    salon = await SalonRepository.get(session.profile.salon_id)
    if salon is None:
        await callback.answer(error_message("not_found"), show_alert=True)
        return
    await callback.message.edit_text(salon_card_text(salon), reply_markup=create_salon_keyboard())
    await callback.answer()


# === ТЕКСТОВЫЕ ПОЛЯ ===


@router.callback_query(F.data.startswith("osalon_edit:"))
async def edit_field_start(callback: CallbackQuery, state: FSMContext):
    field = callback.data.split(":", 1)[1]
    if field not in FIELD_PROMPTS:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return
    await state.set_state(SalonStates.awaiting_text)
    await state.update_data(salon_field=field)
    await callback.message.answer(FIELD_PROMPTS[field])
    await callback.answer()


@router.message(SalonStates.awaiting_text)
async def edit_field_value(message: Message, state: FSMContext, session: OperatorSession):
    data = await state.get_data()
    try:
        success, code = await SalonService.update_text(
            session.profile.salon_id, data.get("salon_field", ""), message.text or ""
        )
    except ValidationError as e:
        await message.answer(f"❌ {e.message}")
        return

    await state.clear()
    if not success:
        await message.answer(error_message(code), reply_markup=OPERATOR_MENU)
        return
    salon = await SalonRepository.get(session.profile.salon_id)
    await message.answer("✅ Сохранено\n\n" + salon_card_text(salon), reply_markup=create_salon_keyboard())


# === ЧАСЫ РАБОТЫ ===


@router.callback_query(F.data == "osalon_hours")
async def opening_hours(callback: CallbackQuery, state: FSMContext, session: OperatorSession):
    await state.clear()
    salon = await SalonRepository.get(session.profile.salon_id)
    if salon is None:
        await callback.answer(error_message("not_found"), show_alert=True)
        return
    await callback.message.edit_text(
        "🕒 ЧАСЫ РАБОТЫ\n\nВыберите день:", reply_markup=create_opening_hours_keyboard(salon)
    )
    await callback.answer()


async def _show_day(callback: CallbackQuery, salon_id: str, day: str):
    salon = await SalonRepository.get(salon_id)
    hours = salon.opening_hours[day]
    await callback.message.edit_text(
        f"🕒 {OPENING_DAY_NAMES[day]}: {hours.display()}",
        reply_markup=create_day_hours_keyboard(day, hours.is_open),
    )


def _parse_day(callback: CallbackQuery):
    day = callback.data.split(":", 1)[1]
    return day if day in OPENING_DAYS else None


@router.callback_query(F.data.startswith("osalon_day:"))
async def day_hours(callback: CallbackQuery, session: OperatorSession):
    day = _parse_day(callback)
    if day is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return
    await _show_day(callback, session.profile.salon_id, day)
    await callback.answer()


@router.callback_query(F.data.startswith("osalon_day_toggle:"))
async def day_toggle(callback: CallbackQuery, session: OperatorSession):
    day = _parse_day(callback)
    salon = await SalonRepository.get(session.profile.salon_id)
    if day is None or salon is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    success, code = await SalonService.set_opening_hours(
        salon.salon_id, day, not salon.opening_hours[day].is_open
    )
    if not success:
        await callback.answer(error_message(code), show_alert=True)
        return
    await _show_day(callback, salon.salon_id, day)
    await callback.answer()


@router.callback_query(F.data.startswith("osalon_day_time:"))
async def day_time_start(callback: CallbackQuery, state: FSMContext):
    day = _parse_day(callback)
    if day is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return
    await state.set_state(SalonStates.awaiting_hours)
    await state.update_data(salon_day=day)
    await callback.message.answer(
        f"🕒 {OPENING_DAY_NAMES[day]}: введите время открытия и закрытия\n\nНапример: 10:00 19:00"
    )
    await callback.answer()


@router.message(SalonStates.awaiting_hours)
async def day_time_value(message: Message, state: FSMContext, session: OperatorSession):
    data = await state.get_data()
    day = data.get("salon_day")
    parts = (message.text or "").replace("-", " ").split()
    if len(parts) != 2:
        await message.answer("❌ Введите два времени через пробел, например 10:00 19:00")
        return

    try:
        success, code = await SalonService.set_opening_hours(
            session.profile.salon_id, day, True, parts[0], parts[1]
        )
    except ValidationError as e:
        await message.answer(f"❌ {e.message}")
        return

    await state.clear()
    if not success:
        await message.answer(error_message(code), reply_markup=OPERATOR_MENU)
        return
    salon = await SalonRepository.get(session.profile.salon_id)
    await message.answer(
        f"✅ {OPENING_DAY_NAMES[day]}: {salon.opening_hours[day].display()}",
        reply_markup=create_opening_hours_keyboard(salon),
    )


# === ОПЛАТА ===


@router.callback_query(F.data == "osalon_pay")
async def payment_methods(callback: CallbackQuery, session: OperatorSession):
    salon = await SalonRepository.get(session.profile.salon_id)
    if salon is None:
        await callback.answer(error_message("not_found"), show_alert=True)
        return
    await callback.message.edit_text(
        "💳 СПОСОБЫ ОПЛАТЫ\n\nНажмите, чтобы включить или выключить:",
        reply_markup=create_payment_methods_keyboard(salon),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("osalon_pay_toggle:"))
async def payment_toggle(callback: CallbackQuery, session: OperatorSession):
    method = callback.data.split(":", 1)[1]
    enabled = await SalonService.toggle_payment_method(session.profile.salon_id, method)
    if enabled is None:
        await callback.answer(error_message("unknown_error"), show_alert=True)
        return
    salon = await SalonRepository.get(session.profile.salon_id)
    await callback.message.edit_reply_markup(reply_markup=create_payment_methods_keyboard(salon))
    await callback.answer("✅ Включено" if enabled else "⬜ Выключено")


# === СРОК ОТМЕНЫ ===


@router.callback_query(F.data == "osalon_deadline")
async def deadline_start(callback: CallbackQuery, state: FSMContext):
    await state.set_state(SalonStates.awaiting_deadline)
    await callback.message.answer(
        f"❌ За сколько часов до записи клиент может отменить её сам? (0-{MAX_CANCELLATION_DEADLINE_HOURS})\n\n"
        "Новый срок действует для новых записей."
    )
    await callback.answer()


@router.message(SalonStates.awaiting_deadline)
async def deadline_value(message: Message, state: FSMContext, session: OperatorSession):
    try:
        minutes = parse_deadline_hours(message.text or "")
    except ValidationError as e:
        await message.answer(f"❌ {e.message}")
        return

    await state.clear()
    success, code = await SalonService.set_cancellation_deadline(session.profile.salon_id, minutes)
    if not success:
        await message.answer(error_message(code), reply_markup=OPERATOR_MENU)
        return
    salon = await SalonRepository.get(session.profile.salon_id)
    await message.answer("✅ Сохранено\n\n" + salon_card_text(salon), reply_markup=create_salon_keyboard())
