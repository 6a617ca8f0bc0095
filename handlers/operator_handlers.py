"""Обработчики для операторов салона"""

import asyncio
import logging
from datetime import timedelta

from aiogram import Bot, F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from config import DAY_NAMES_SHORT, STATUS_NAMES
from database.queries import Database
from database.repositories.analytics_repository import AnalyticsRepository
from database.repositories.karute_repository import KaruteRepository
from database.repositories.menu_repository import MenuRepository
from database.repositories.profile_repository import ProfileRepository
from database.repositories.reservation_repository import ReservationRepository
from database.repositories.salon_repository import SalonRepository
from handlers.user_handlers import SALON_LINK_PREFIX
from keyboards.operator_keyboards import (
    OPERATOR_MENU,
    create_category_keyboard,
    create_customer_detail_keyboard,
    create_customers_keyboard,
    create_delete_date_confirm_keyboard,
    create_interval_keyboard,
    create_menu_admin_keyboard,
    create_menu_delete_confirm_keyboard,
    create_menu_divisions_keyboard,
    create_menu_manage_keyboard,
    create_operator_cancel_keyboard,
    create_reservation_actions_keyboard,
    create_reservations_keyboard,
    create_schedule_day_keyboard,
    create_schedule_month_keyboard,
    create_staff_keyboard,
    create_staff_select_keyboard,
    create_template_confirm_keyboard,
    create_weekdays_keyboard,
    create_yes_no_keyboard,
)
from keyboards.user_keyboards import format_menu_summary
from middlewares.session import IsOperator
from services.analytics_service import AnalyticsService
from services.booking_service import BookingService
from services.cancellation_policy import is_time_passed
from services.errors import ValidationError, error_message
from services.menu_service import MenuService, parse_duration
from services.reservation_boards import ReservationBoards
from services.schedule_service import ScheduleService, validate_template
from services.session import OperatorSession
from utils.datetime_utils import parse_date
from utils.helpers import format_date, format_date_short, format_duration, format_price, is_admin, now_local
from utils.states import KaruteStates, MenuStates, ScheduleStates

router = Router()
router.message.filter(IsOperator())
router.callback_query.filter(IsOperator())

# Команды администратора платформы (не требуют профиля оператора)
admin_router = Router()


def _parse_id(callback: CallbackQuery) -> str:
    return callback.data.split(":", 1)[1]


# === ЗАПИСИ ===


async def _reservations_view(salon_id: str, date_str: str):
    selected = parse_date(date_str)
    reservations = await ReservationRepository.list_for_salon_date(salon_id, date_str)
    stats = await AnalyticsService.get_salon_stats(salon_id, selected)

    text = (
        f"📋 ЗАПИСИ · {format_date(selected)}\n\n"
        f"📅 За день: {stats['day_count']}\n"
        f"🕒 Осталось сегодня: {stats['today_remaining']}\n"
        f"📊 За месяц: {stats['month_count']}"
    )
    if stats["top_menus"]:
        text += "\n\n🏆 Популярные меню:\n" + "\n".join(
            f"  {name} — {count}" for name, count in stats["top_menus"]
        )
    kb = create_reservations_keyboard(
        reservations,
        date_str,
        (selected - timedelta(days=1)).isoformat(),
        (selected + timedelta(days=1)).isoformat(),
    )
    return text, kb


@router.message(F.text == "📋 Записи")
async def reservations_today(message: Message, session: OperatorSession):
    """Записи салона на сегодня"""
    text, kb = await _reservations_view(session.profile.salon_id, now_local().date().isoformat())
    await message.answer(text, reply_markup=kb)


@router.callback_query(F.data.startswith("ores:"))
async def reservations_for_date(callback: CallbackQuery, session: OperatorSession, boards: ReservationBoards):
    try:
        date_str = _parse_id(callback)
        parse_date(date_str)
    except (ValueError, IndexError):
        logging.error(f"Invalid callback_data in reservations_for_date: {callback.data}")
        await callback.answer("❌ Ошибка: неверная дата", show_alert=True)
        return

    text, kb = await _reservations_view(session.profile.salon_id, date_str)
    boards.forget(callback.message.chat.id, callback.message.message_id)
    try:
        await callback.message.edit_text(text, reply_markup=kb)
    except Exception as e:
        logging.error(f"Error editing message in reservations_for_date: {e}")
    await callback.answer()


async def _show_reservation(
    callback: CallbackQuery, session: OperatorSession, boards: ReservationBoards, reservation_id: str
):
    reservation = await ReservationRepository.get(reservation_id)
    if reservation is None or reservation.salon_id != session.profile.salon_id:
        boards.forget(callback.message.chat.id, callback.message.message_id)
        await callback.message.edit_text(error_message("not_found"))
        return

    time_passed = is_time_passed(
        reservation.reservation_date, reservation.reservation_time, now_local()
    )
    text = (
        f"📅 {format_date(parse_date(reservation.reservation_date))} в {reservation.reservation_time}\n"
        f"👤 {reservation.customer_name or '—'}\n"
        f"👩‍🎨 {reservation.operator_name or '—'}\n"
        f"💅 {reservation.menu_name or '—'}\n"
        f"💴 {format_price(reservation.total_price)}\n"
        f"📌 {STATUS_NAMES.get(reservation.status, reservation.status)}"
    )
    if reservation.gel_removal:
        text += "\n🧴 Со снятием"
    if reservation.other_requests:
        text += f"\n📝 {reservation.other_requests}"

    await callback.message.edit_text(
        text, reply_markup=create_reservation_actions_keyboard(reservation, time_passed)
    )
    if reservation.status == "reserved":
        boards.track(
            callback.message.chat.id,
            callback.message.message_id,
            reservation.reservation_id,
            reservation.salon_id,
            shown_passed=time_passed,
        )
    else:
        boards.forget(callback.message.chat.id, callback.message.message_id)


@router.callback_query(F.data.startswith("ores_item:"))
async def reservation_detail(callback: CallbackQuery, session: OperatorSession, boards: ReservationBoards):
    await _show_reservation(callback, session, boards, _parse_id(callback))
    await callback.answer()


@router.callback_query(F.data.startswith("ores_complete:") | F.data.startswith("ores_noshow:"))
async def mark_reservation(
    callback: CallbackQuery,
    session: OperatorSession,
    booking_service: BookingService,
    boards: ReservationBoards,
):
    """Завершение записи или отметка неявки"""
    action, reservation_id = callback.data.split(":", 1)
    status = "completed" if action == "ores_complete" else "noshow"

    success, code = await booking_service.mark_reservation(
        reservation_id, session.profile.salon_id, status, callback.from_user.id
    )
    if not success:
        await callback.answer(error_message(code), show_alert=True)
        return

    await callback.answer(f"Статус: {STATUS_NAMES[status]}")
    await _show_reservation(callback, session, boards, reservation_id)


@router.callback_query(F.data.startswith("ores_cancel:"))
async def cancel_reservation_request(callback: CallbackQuery, session: OperatorSession, boards: ReservationBoards):
    reservation_id = _parse_id(callback)
    reservation = await ReservationRepository.get(reservation_id)
    if reservation is None or reservation.salon_id != session.profile.salon_id:
        await callback.answer(error_message("not_found"), show_alert=True)
        return

    boards.forget(callback.message.chat.id, callback.message.message_id)
    await callback.message.edit_text(
        "⚠️ Отменить запись клиента?\n\n"
        f"📅 {format_date_short(reservation.reservation_date)} в {reservation.reservation_time}\n"
        f"👤 {reservation.customer_name or '—'}\n\n"
        "Клиент получит уведомление.",
        reply_markup=create_operator_cancel_keyboard(reservation_id),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("ores_cancel_ok:"))
async def cancel_reservation_confirm(
    callback: CallbackQuery,
    session: OperatorSession,
    booking_service: BookingService,
    boards: ReservationBoards,
):
    """Отмена записи оператором (без ограничения по сроку)"""
    reservation_id = _parse_id(callback)
    await callback.answer("⏳ Отменяю...")
    success, code = await booking_service.cancel_reservation(
        reservation_id, session.profile.profile_id, "operator", callback.from_user.id
    )
    if not success:
        await callback.message.edit_text(error_message(code))
        return
    await _show_reservation(callback, session, boards, reservation_id)


# === РАСПИСАНИЕ ===


async def _schedule_month_view(
    schedule_service: ScheduleService, salon_id: str, operator_id: str, year: int, month: int
):
    summary = await schedule_service.month_summary(salon_id, operator_id, year, month)
    operator = await ProfileRepository.get(operator_id)
    name = operator.display_name if operator else "—"
    free = sum(total - booked for total, booked in summary.values())
    text = (
        f"🗓 РАСПИСАНИЕ · {name}\n\n"
        f"Свободных слотов в месяце: {free}\n"
        "Число = свободные слоты, 🔴 = всё занято"
    )
    return text, create_schedule_month_keyboard(year, month, summary, now_local().date())


@router.message(F.text == "🗓 Расписание")
async def schedule_start(message: Message, state: FSMContext, session: OperatorSession):
    operators = await ProfileRepository.list_operators(session.profile.salon_id)
    await state.clear()
    await message.answer(
        "🗓 Чьё расписание открыть?", reply_markup=create_staff_select_keyboard(operators, "osch_op")
    )


@router.callback_query(F.data.startswith("osch_op:"))
async def schedule_operator(
    callback: CallbackQuery, state: FSMContext, session: OperatorSession, schedule_service: ScheduleService
):
    operator_id = _parse_id(callback)
    operator = await ProfileRepository.get(operator_id)
    if operator is None or operator.salon_id != session.profile.salon_id:
        await callback.answer("Сотрудник не найден", show_alert=True)
        return

    today = now_local().date()
    await state.update_data(sch_operator=operator_id, sch_year=today.year, sch_month=today.month)
    text, kb = await _schedule_month_view(
        schedule_service, session.profile.salon_id, operator_id, today.year, today.month
    )
    await callback.message.edit_text(text, reply_markup=kb)
    await callback.answer()


@router.callback_query(F.data.startswith("osch_m:"))
async def schedule_month(
    callback: CallbackQuery, state: FSMContext, session: OperatorSession, schedule_service: ScheduleService
):
    data = await state.get_data()
    operator_id = data.get("sch_operator")
    if not operator_id:
        await callback.answer("Откройте расписание заново", show_alert=True)
        return
    try:
        year, month = map(int, _parse_id(callback).split("-"))
    except ValueError:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    await state.update_data(sch_year=year, sch_month=month)
    text, kb = await _schedule_month_view(
        schedule_service, session.profile.salon_id, operator_id, year, month
    )
    await callback.message.edit_text(text, reply_markup=kb)
    await callback.answer()


async def _schedule_day_view(
    schedule_service: ScheduleService, salon_id: str, operator_id: str, date_str: str
):
    slots = await schedule_service.day_slots(salon_id, operator_id, date_str)
    booked = sum(1 for slot in slots if slot.is_booked)
    text = (
        f"🗓 {format_date(parse_date(date_str))}\n\n"
        f"Слотов: {len(slots)}, занято: {booked}\n"
        "🗑 = удалить свободный слот, 🔒 = есть запись"
    )
    return text, create_schedule_day_keyboard(slots, date_str)


@router.callback_query(F.data.startswith("osch_d:"))
async def schedule_day(
    callback: CallbackQuery, state: FSMContext, session: OperatorSession, schedule_service: ScheduleService
):
    data = await state.get_data()
    operator_id = data.get("sch_operator")
    date_str = _parse_id(callback)
    if not operator_id:
        await callback.answer("Откройте расписание заново", show_alert=True)
        return

    await state.update_data(sch_date=date_str)
    text, kb = await _schedule_day_view(schedule_service, session.profile.salon_id, operator_id, date_str)
    await callback.message.edit_text(text, reply_markup=kb)
    await callback.answer()


@router.callback_query(F.data.startswith("osch_del:"))
async def schedule_delete_slot(
    callback: CallbackQuery, state: FSMContext, session: OperatorSession, schedule_service: ScheduleService
):
    try:
        slot_id = int(_parse_id(callback))
    except ValueError:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    try:
        success, code = await schedule_service.delete_slot(slot_id, session.profile.salon_id)
    except asyncio.TimeoutError:
        success, code = False, "timeout"
    if not success:
        messages = {"slot_taken": "🔒 На это время уже есть запись"}
        await callback.answer(messages.get(code, error_message(code)), show_alert=True)
    else:
        await callback.answer("🗑 Слот удалён")

    data = await state.get_data()
    if data.get("sch_operator") and data.get("sch_date"):
        text, kb = await _schedule_day_view(
            schedule_service, session.profile.salon_id, data["sch_operator"], data["sch_date"]
        )
        await callback.message.edit_text(text, reply_markup=kb)


@router.callback_query(F.data.startswith("osch_deld:"))
async def schedule_delete_date_request(callback: CallbackQuery):
    date_str = _parse_id(callback)
    await callback.message.edit_text(
        f"⚠️ Удалить все свободные слоты на {format_date_short(date_str)}?\n\n"
        "Слоты с записями останутся.",
        reply_markup=create_delete_date_confirm_keyboard(date_str),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("osch_deld_ok:"))
async def schedule_delete_date(
    callback: CallbackQuery, state: FSMContext, session: OperatorSession, schedule_service: ScheduleService
):
    data = await state.get_data()
    operator_id = data.get("sch_operator")
    date_str = _parse_id(callback)
    if not operator_id:
        await callback.answer("Откройте расписание заново", show_alert=True)
        return

    try:
        deleted = await schedule_service.delete_date(session.profile.salon_id, operator_id, date_str)
    except asyncio.TimeoutError:
        await callback.answer(error_message("timeout"), show_alert=True)
        return
    except Exception as e:
        logging.error(f"Error deleting slots for {date_str}: {e}")
        await callback.answer(error_message("unknown_error"), show_alert=True)
        return

    await callback.answer(f"🗑 Удалено слотов: {deleted}")
    text, kb = await _schedule_day_view(schedule_service, session.profile.salon_id, operator_id, date_str)
    await callback.message.edit_text(text, reply_markup=kb)


# Шаблон расписания: дни недели -> время -> интервал -> подтверждение


@router.callback_query(F.data == "osch_add")
async def template_start(callback: CallbackQuery, state: FSMContext):
    data = await state.get_data()
    if not data.get("sch_operator"):
        await callback.answer("Откройте расписание заново", show_alert=True)
        return
    await state.set_state(ScheduleStates.selecting_weekdays)
    await state.update_data(tpl_weekdays=[])
    await callback.message.edit_text(
        "➕ ШАБЛОН РАСПИСАНИЯ\n\nВыберите дни недели:", reply_markup=create_weekdays_keyboard([])
    )
    await callback.answer()


@router.callback_query(ScheduleStates.selecting_weekdays, F.data.startswith("osch_wd:"))
async def template_toggle_weekday(callback: CallbackQuery, state: FSMContext):
    try:
        weekday = int(_parse_id(callback))
    except ValueError:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    data = await state.get_data()
    selected = set(data.get("tpl_weekdays", []))
    selected.symmetric_difference_update({weekday})
    await state.update_data(tpl_weekdays=sorted(selected))
    await callback.message.edit_reply_markup(reply_markup=create_weekdays_keyboard(selected))
    await callback.answer()


@router.callback_query(ScheduleStates.selecting_weekdays, F.data == "osch_wd_done")
async def template_weekdays_done(callback: CallbackQuery, state: FSMContext):
    data = await state.get_data()
    if not data.get("tpl_weekdays"):
        await callback.answer("Выберите хотя бы один день", show_alert=True)
        return
    await state.set_state(ScheduleStates.awaiting_time_range)
    await callback.message.edit_text("🕒 Введите часы работы в формате 10:00-18:00")
    await callback.answer()


@router.message(ScheduleStates.awaiting_time_range)
async def template_time_range(message: Message, state: FSMContext):
    parts = (message.text or "").replace(" ", "").split("-")
    if len(parts) != 2:
        await message.answer("❌ Формат: 10:00-18:00")
        return

    data = await state.get_data()
    today = now_local().date()
    try:
        # Интервал проверяется на следующем шаге
        _, start, end = validate_template(
            data["tpl_weekdays"], parts[0], parts[1], 30, data["sch_year"], data["sch_month"], today
        )
    except ValidationError as e:
        await message.answer(f"❌ {e.message}")
        return

    await state.update_data(tpl_start=start, tpl_end=end)
    await state.set_state(ScheduleStates.selecting_interval)
    await message.answer("⏱ Интервал между слотами:", reply_markup=create_interval_keyboard())


@router.callback_query(ScheduleStates.selecting_interval, F.data.startswith("osch_int:"))
async def template_interval(callback: CallbackQuery, state: FSMContext):
    try:
        interval = int(_parse_id(callback))
    except ValueError:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    await state.update_data(tpl_interval=interval)
    await state.set_state(ScheduleStates.confirming)
    data = await state.get_data()

    days = ", ".join(DAY_NAMES_SHORT[d] for d in data["tpl_weekdays"])
    await callback.message.edit_text(
        "➕ ШАБЛОН РАСПИСАНИЯ\n\n"
        f"📅 Месяц: {data['sch_month']:02d}.{data['sch_year']}\n"
        f"📆 Дни: {days}\n"
        f"🕒 {data['tpl_start']} – {data['tpl_end']}\n"
        f"⏱ Каждые {interval} мин\n\n"
        "Существующие слоты не дублируются, прошедшее время пропускается.",
        reply_markup=create_template_confirm_keyboard(),
    )
    await callback.answer()


@router.callback_query(ScheduleStates.confirming, F.data == "osch_save")
async def template_save(
    callback: CallbackQuery, state: FSMContext, session: OperatorSession, schedule_service: ScheduleService
):
    data = await state.get_data()
    await callback.answer("⏳ Создаю слоты...")
    try:
        created = await schedule_service.add_template(
            session.profile.salon_id,
            data["sch_operator"],
            data["tpl_weekdays"],
            data["tpl_start"],
            data["tpl_end"],
            data["tpl_interval"],
            data["sch_year"],
            data["sch_month"],
        )
    except ValidationError as e:
        await callback.message.edit_text(f"❌ {e.message}")
        await state.set_state(None)
        return
    except asyncio.TimeoutError:
        await callback.message.edit_text(error_message("timeout"), reply_markup=create_template_confirm_keyboard())
        return
    except Exception as e:
        logging.error(f"Error applying schedule template: {e}")
        await callback.message.edit_text(error_message("unknown_error"))
        await state.set_state(None)
        return

    await state.set_state(None)
    await Database.log_event(callback.from_user.id, "slots_added", f"{data['sch_operator']}:{created}")
    text, kb = await _schedule_month_view(
        schedule_service, session.profile.salon_id, data["sch_operator"], data["sch_year"], data["sch_month"]
    )
    await callback.message.edit_text(f"✅ Создано слотов: {created}\n\n{text}", reply_markup=kb)


@router.callback_query(F.data == "osch_abort")
async def template_abort(callback: CallbackQuery, state: FSMContext):
    await state.set_state(None)
    await callback.message.edit_text("❌ Шаблон отменён")
    await callback.answer()


# === МЕНЮ ===

MENU_ADMIN_TEXT = "💅 УПРАВЛЕНИЕ МЕНЮ\n\n🟢 активно, ⚪ скрыто. Нажмите на меню, чтобы изменить."


@router.message(F.text == "💅 Управление меню")
async def menu_admin(message: Message, state: FSMContext, session: OperatorSession):
    await state.clear()
    menus = await MenuService.list_menus(session.profile.salon_id, active_only=False)
    await message.answer(MENU_ADMIN_TEXT, reply_markup=create_menu_admin_keyboard(menus))


def _menu_id(raw: str):
    try:
        return int(raw)
    except ValueError:
        return None


async def _show_menu_card(callback: CallbackQuery, session: OperatorSession, menu_id: int):
    menu = await MenuRepository.get(menu_id)
    if menu is None or menu.salon_id != session.profile.salon_id:
        await callback.answer("❌ Меню не найдено", show_alert=True)
        return False
    status = "🟢 показывается клиентам" if menu.is_active else "⚪ скрыто"
    await callback.message.edit_text(
        f"{format_menu_summary(menu)}\n\n{status}", reply_markup=create_menu_manage_keyboard(menu)
    )
    return True


@router.callback_query(F.data == "omenu_list")
async def menu_admin_callback(callback: CallbackQuery, state: FSMContext, session: OperatorSession):
    await state.clear()
    menus = await MenuService.list_menus(session.profile.salon_id, active_only=False)
    await callback.message.edit_text(MENU_ADMIN_TEXT, reply_markup=create_menu_admin_keyboard(menus))
    await callback.answer()


@router.callback_query(F.data.startswith("omenu:"))
async def menu_card(callback: CallbackQuery, session: OperatorSession):
    menu_id = _menu_id(_parse_id(callback))
    if menu_id is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return
    if await _show_menu_card(callback, session, menu_id):
        await callback.answer()


@router.callback_query(F.data.startswith("omenu_toggle:"))
async def menu_toggle(callback: CallbackQuery, session: OperatorSession):
    menu_id = _menu_id(_parse_id(callback))
    if menu_id is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    new_state = await MenuService.toggle_menu(menu_id, session.profile.salon_id)
    if new_state is None:
        await callback.answer("❌ Меню не найдено", show_alert=True)
        return

    await _show_menu_card(callback, session, menu_id)
    await callback.answer("🟢 Включено" if new_state else "⚪ Скрыто")


MENU_EDIT_PROMPTS = {
    "name": "✏️ Новое название:",
    "price": "💴 Новая цена без налога (¥):",
    "duration": "⏱ Новая длительность (например 1:30 или 90):",
    "off_price": "🧴 Новая цена снятия (¥):",
}


@router.callback_query(F.data.startswith("omenu_edit:"))
async def menu_edit_start(callback: CallbackQuery, state: FSMContext, session: OperatorSession):
    try:
        _, field, raw_id = callback.data.split(":", 2)
    except ValueError:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return
    menu_id = _menu_id(raw_id)
    if field not in MENU_EDIT_PROMPTS or menu_id is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    await state.set_state(MenuStates.editing_field)
    await state.update_data(edit_menu={"id": menu_id, "field": field})
    await callback.message.answer(MENU_EDIT_PROMPTS[field])
    await callback.answer()


@router.message(MenuStates.editing_field)
async def menu_edit_value(message: Message, state: FSMContext, session: OperatorSession):
    data = await state.get_data()
    edit = data.get("edit_menu") or {}
    field, text = edit.get("field"), message.text or ""

    try:
        if field == "name":
            changes = {"name": text}
        elif field == "duration":
            changes = {"duration_minutes": parse_duration(text)}
        else:
            try:
                amount = _parse_amount(text)
            except ValueError:
                await message.answer("❌ Введите сумму числом, например 6500")
                return
            changes = {"price_without_tax": amount} if field == "price" else {"off_price": amount}
        success, code = await MenuService.update_menu(edit.get("id"), session.profile.salon_id, **changes)
    except ValidationError as e:
        await message.answer(f"❌ {e.message}")
        return

    await state.clear()
    if not success:
        await message.answer(error_message(code), reply_markup=OPERATOR_MENU)
        return
    menu = await MenuRepository.get(edit["id"])
    await message.answer(
        f"✅ Сохранено\n\n{format_menu_summary(menu)}", reply_markup=create_menu_manage_keyboard(menu)
    )


@router.callback_query(F.data.startswith("omenu_del:"))
async def menu_delete_request(callback: CallbackQuery, session: OperatorSession):
    menu_id = _menu_id(_parse_id(callback))
    menu = await MenuRepository.get(menu_id) if menu_id is not None else None
    if menu is None or menu.salon_id != session.profile.salon_id:
        await callback.answer("❌ Меню не найдено", show_alert=True)
        return
    await callback.message.edit_text(
        f"🗑 Удалить меню «{menu.name}»?\n\nМеню с записями удалить нельзя, только скрыть.",
        reply_markup=create_menu_delete_confirm_keyboard(menu.id),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("omenu_del_ok:"))
async def menu_delete_confirm(callback: CallbackQuery, session: OperatorSession):
    menu_id = _menu_id(_parse_id(callback))
    if menu_id is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    success, code = await MenuService.delete_menu(menu_id, session.profile.salon_id)
    if not success:
        await callback.answer(error_message(code), show_alert=True)
        return

    menus = await MenuService.list_menus(session.profile.salon_id, active_only=False)
    await callback.message.edit_text(
        "🗑 Меню удалено\n\n" + MENU_ADMIN_TEXT, reply_markup=create_menu_admin_keyboard(menus)
    )
    await callback.answer()


# === РАЗДЕЛЫ МЕНЮ ===


async def _show_menu_divisions(callback: CallbackQuery, menu):
    divisions = await MenuService.list_divisions(menu.salon_id)
    await callback.message.edit_text(
        f"🏷 Разделы меню «{menu.name}»\n\nКлиенты фильтруют меню по разделам.",
        reply_markup=create_menu_divisions_keyboard(menu, divisions),
    )


@router.callback_query(F.data.startswith("omenu_div:"))
async def menu_divisions(callback: CallbackQuery, session: OperatorSession):
    menu_id = _menu_id(_parse_id(callback))
    menu = await MenuRepository.get(menu_id) if menu_id is not None else None
    if menu is None or menu.salon_id != session.profile.salon_id:
        await callback.answer("❌ Меню не найдено", show_alert=True)
        return
    await _show_menu_divisions(callback, menu)
    await callback.answer()


@router.callback_query(F.data.startswith("omenu_divt:"))
async def menu_division_toggle(callback: CallbackQuery, session: OperatorSession):
    try:
        _, raw_menu_id, raw_division_id = callback.data.split(":", 2)
        menu_id, division_id = int(raw_menu_id), int(raw_division_id)
    except ValueError:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    assigned = await MenuService.toggle_menu_division(menu_id, session.profile.salon_id, division_id)
    if assigned is None:
        await callback.answer(error_message("not_found"), show_alert=True)
        return
    await _show_menu_divisions(callback, await MenuRepository.get(menu_id))
    await callback.answer("✅ Добавлено" if assigned else "⬜ Убрано")


@router.callback_query(F.data.startswith("omenu_div_add:"))
async def menu_division_add(callback: CallbackQuery, state: FSMContext):
    menu_id = _menu_id(_parse_id(callback))
    if menu_id is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return
    await state.set_state(MenuStates.awaiting_division)
    await state.update_data(division_menu=menu_id)
    await callback.message.answer("🏷 Название нового раздела (например «Руки»):")
    await callback.answer()


@router.message(MenuStates.awaiting_division)
async def menu_division_name(message: Message, state: FSMContext, session: OperatorSession):
    """Новый раздел сразу добавляется к меню, из которого его создали"""
    salon_id = session.profile.salon_id
    try:
        division_id = await MenuService.create_division(salon_id, message.text or "")
    except ValidationError as e:
        await message.answer(f"❌ {e.message}")
        return

    menu_id = (await state.get_data()).get("division_menu")
    await state.clear()
    if division_id is None:
        await message.answer(error_message("unknown_error"), reply_markup=OPERATOR_MENU)
        return

    menu = await MenuRepository.get(menu_id)
    if menu is not None and menu.salon_id == salon_id and division_id not in menu.division_ids:
        await MenuService.toggle_menu_division(menu_id, salon_id, division_id)
        menu = await MenuRepository.get(menu_id)
    if menu is None or menu.salon_id != salon_id:
        await message.answer("✅ Раздел создан", reply_markup=OPERATOR_MENU)
        return
    divisions = await MenuService.list_divisions(salon_id)
    await message.answer(
        f"✅ Раздел создан\n\n🏷 Разделы меню «{menu.name}»",
        reply_markup=create_menu_divisions_keyboard(menu, divisions),
    )


@router.callback_query(F.data == "omenu_add")
async def menu_add_start(callback: CallbackQuery, state: FSMContext, session: OperatorSession):
    categories = await MenuRepository.list_categories(session.profile.salon_id)
    await state.update_data(new_menu={})
    if categories:
        await state.set_state(MenuStates.selecting_category)
        await callback.message.edit_text(
            "➕ НОВОЕ МЕНЮ\n\nВыберите категорию:", reply_markup=create_category_keyboard(categories)
        )
    else:
        await state.set_state(MenuStates.awaiting_name)
        await callback.message.edit_text("➕ НОВОЕ МЕНЮ\n\nВведите название:")
    await callback.answer()


@router.callback_query(MenuStates.selecting_category, F.data.startswith("omenu_cat:"))
async def menu_add_category(callback: CallbackQuery, state: FSMContext, session: OperatorSession):
    raw = _parse_id(callback)
    category = None
    if raw != "none":
        try:
            category = await MenuRepository.get_category(int(raw))
        except ValueError:
            await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
            return
        if category is None or category.salon_id != session.profile.salon_id:
            await callback.answer("Категория не найдена", show_alert=True)
            return

    await state.update_data(
        new_menu={
            "category_id": category.category_id if category else None,
            "is_coupon": bool(category and category.is_coupon),
        }
    )
    await state.set_state(MenuStates.awaiting_name)
    await callback.message.edit_text("Введите название меню:")
    await callback.answer()


async def _update_new_menu(state: FSMContext, **values) -> dict:
    data = await state.get_data()
    new_menu = dict(data.get("new_menu", {}))
    new_menu.update(values)
    await state.update_data(new_menu=new_menu)
    return new_menu


def _parse_amount(text: str) -> int:
    value = int((text or "").replace(",", "").replace("¥", "").strip())
    if value < 0:
        raise ValueError("negative amount")
    return value


@router.message(MenuStates.awaiting_name)
async def menu_add_name(message: Message, state: FSMContext):
    name = (message.text or "").strip()
    if not name:
        await message.answer("❌ Введите название")
        return
    await _update_new_menu(state, name=name)
    await state.set_state(MenuStates.awaiting_price)
    await message.answer("💴 Цена без налога (¥):")


@router.message(MenuStates.awaiting_price)
async def menu_add_price(message: Message, state: FSMContext):
    try:
        price = _parse_amount(message.text)
    except ValueError:
        await message.answer("❌ Введите цену числом, например 6500")
        return
    await _update_new_menu(state, price=price)
    await state.set_state(MenuStates.awaiting_duration)
    await message.answer("⏱ Длительность (например 1:30 или 90):")


@router.message(MenuStates.awaiting_duration)
async def menu_add_duration(message: Message, state: FSMContext):
    try:
        duration = parse_duration(message.text or "")
    except ValidationError as e:
        await message.answer(f"❌ {e.message}")
        return
    await _update_new_menu(state, duration=duration)
    await state.set_state(MenuStates.selecting_off)
    await message.answer(
        f"⏱ {format_duration(duration)}\n\n🧴 Включает снятие?",
        reply_markup=create_yes_no_keyboard("omenu_off"),
    )


@router.callback_query(MenuStates.selecting_off, F.data.startswith("omenu_off:"))
async def menu_add_off(callback: CallbackQuery, state: FSMContext, session: OperatorSession):
    with_off = _parse_id(callback) == "yes"
    new_menu = await _update_new_menu(state, with_off=with_off, off_price=0)
    await callback.answer()
    if with_off:
        await state.set_state(MenuStates.awaiting_off_price)
        await callback.message.edit_text("🧴 Цена снятия (¥):")
        return
    await _after_off(callback.message, state, session, new_menu)


@router.message(MenuStates.awaiting_off_price)
async def menu_add_off_price(message: Message, state: FSMContext, session: OperatorSession):
    try:
        off_price = _parse_amount(message.text)
    except ValueError:
        await message.answer("❌ Введите цену числом")
        return
    new_menu = await _update_new_menu(state, off_price=off_price)
    await _after_off(message, state, session, new_menu)


async def _after_off(message: Message, state: FSMContext, session: OperatorSession, new_menu: dict):
    if new_menu.get("is_coupon"):
        await state.set_state(MenuStates.awaiting_coupon)
        await message.answer(
            "🎟 Скидка и срок купона:\nСКИДКА ГГГГ-ММ-ДД ГГГГ-ММ-ДД\n\nНапример: 1000 2025-03-01 2025-03-31"
        )
        return
    await _save_menu(message, state, session, new_menu)


@router.message(MenuStates.awaiting_coupon)
async def menu_add_coupon(message: Message, state: FSMContext, session: OperatorSession):
    parts = (message.text or "").split()
    if len(parts) != 3:
        await message.answer("❌ Формат: 1000 2025-03-01 2025-03-31")
        return
    try:
        discount = _parse_amount(parts[0])
    except ValueError:
        await message.answer("❌ Скидка должна быть числом")
        return
    new_menu = await _update_new_menu(
        state, discount_amount=discount, valid_from=parts[1], valid_until=parts[2]
    )
    await _save_menu(message, state, session, new_menu)


async def _save_menu(message: Message, state: FSMContext, session: OperatorSession, new_menu: dict):
    try:
        menu_id = await MenuService.create_menu(
            session.profile.salon_id,
            new_menu.get("name", ""),
            new_menu.get("price", 0),
            hours=0,
            minutes=new_menu.get("duration", 0),
            category_id=new_menu.get("category_id"),
            with_off=new_menu.get("with_off", False),
            off_price=new_menu.get("off_price", 0),
            discount_amount=new_menu.get("discount_amount"),
            valid_from=new_menu.get("valid_from"),
            valid_until=new_menu.get("valid_until"),
        )
    except ValidationError as e:
        await message.answer(f"❌ {e.message}")
        if e.field in ("discount_amount", "valid_period"):
            return
        await state.clear()
        return

    await state.clear()
    if menu_id is None:
        await message.answer(error_message("unknown_error"), reply_markup=OPERATOR_MENU)
        return
    await message.answer(f"✅ Меню «{new_menu.get('name')}» создано", reply_markup=OPERATOR_MENU)


@router.message(Command("add_category", "add_coupon_category"))
async def add_category(message: Message, command: CommandObject, session: OperatorSession):
    """/add_category <название> или /add_coupon_category <название>"""
    name = (command.args or "").strip()
    if not name:
        await message.answer(f"Использование: /{command.command} <название>")
        return
    is_coupon = command.command == "add_coupon_category"
    category_id = await MenuRepository.create_category(session.profile.salon_id, name, is_coupon)
    if category_id is None:
        await message.answer(error_message("unknown_error"))
        return
    await message.answer(f"✅ Категория «{name}» создана" + (" (купон)" if is_coupon else ""))


# === КЛИЕНТЫ ===


@router.message(F.text == "👥 Клиенты")
async def customers_list(message: Message, state: FSMContext, session: OperatorSession):
    await state.clear()
    customers = await ProfileRepository.list_customers(session.profile.salon_id)
    await message.answer(
        f"👥 КЛИЕНТЫ ({len(customers)})", reply_markup=create_customers_keyboard(customers)
    )


@router.callback_query(F.data == "ocust_list")
async def customers_list_callback(callback: CallbackQuery, session: OperatorSession):
    customers = await ProfileRepository.list_customers(session.profile.salon_id)
    await callback.message.edit_text(
        f"👥 КЛИЕНТЫ ({len(customers)})", reply_markup=create_customers_keyboard(customers)
    )
    await callback.answer()


async def _customer_card(customer_id: str, salon_id: str) -> str:
    customer = await ProfileRepository.get(customer_id)
    stats = await AnalyticsRepository.get_customer_stats(customer_id, salon_id)
    karute = await KaruteRepository.get(customer_id, salon_id)
    text = (
        f"👤 {customer.display_name if customer else '—'}\n\n"
        f"📅 Записей: {stats.total_reservations}\n"
        f"❌ Отмен: {stats.canceled_reservations}\n"
        f"🚫 Неявок: {stats.noshow_count}\n"
        f"🕘 Последний визит: {format_date_short(stats.last_visit) if stats.last_visit else '—'}\n\n"
        "📒 Карта клиента:\n"
    )
    text += karute.notes if karute and karute.notes else "пусто"
    return text


@router.callback_query(F.data.startswith("ocust:"))
async def customer_detail(callback: CallbackQuery, session: OperatorSession, boards: ReservationBoards):
    customer_id = _parse_id(callback)
    customer = await ProfileRepository.get(customer_id)
    if customer is None or customer.salon_id != session.profile.salon_id:
        await callback.answer("Клиент не найден", show_alert=True)
        return
    boards.forget(callback.message.chat.id, callback.message.message_id)
    await callback.message.edit_text(
        await _customer_card(customer_id, session.profile.salon_id),
        reply_markup=create_customer_detail_keyboard(customer_id),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("okarute:"))
async def karute_edit(callback: CallbackQuery, state: FSMContext):
    await state.set_state(KaruteStates.awaiting_notes)
    await state.update_data(karute_customer=_parse_id(callback))
    await callback.message.answer("📒 Введите новый текст карты клиента (или «-» чтобы очистить):")
    await callback.answer()


@router.message(KaruteStates.awaiting_notes)
async def karute_save(message: Message, state: FSMContext, session: OperatorSession):
    data = await state.get_data()
    customer_id = data.get("karute_customer")
    await state.clear()
    notes = (message.text or "").strip()
    salon_id = session.profile.salon_id

    if notes == "-":
        await KaruteRepository.delete(customer_id, salon_id)
    elif not await KaruteRepository.save(customer_id, salon_id, notes):
        await message.answer(error_message("unknown_error"))
        return

    await message.answer(
        await _customer_card(customer_id, salon_id),
        reply_markup=create_customer_detail_keyboard(customer_id),
    )


# === СОТРУДНИКИ ===


@router.message(F.text == "👤 Сотрудники")
async def staff_list(message: Message, state: FSMContext, session: OperatorSession):
    await state.clear()
    operators = await ProfileRepository.list_operators(session.profile.salon_id, active_only=False)
    await message.answer(
        "👤 СОТРУДНИКИ\n\n🟢 принимает записи, ⚪ отключён.\n"
        "Добавить: /add_staff <user_id> <имя>",
        reply_markup=create_staff_keyboard(operators, session.profile.profile_id),
    )


@router.callback_query(F.data.startswith("ostaff_toggle:"))
async def staff_toggle(callback: CallbackQuery, session: OperatorSession):
    profile_id = _parse_id(callback)
    if profile_id == session.profile.profile_id:
        await callback.answer("Нельзя отключить себя", show_alert=True)
        return

    operator = await ProfileRepository.get(profile_id)
    if operator is None or operator.salon_id != session.profile.salon_id:
        await callback.answer("Сотрудник не найден", show_alert=True)
        return

    new_state = not operator.is_active
    if not await ProfileRepository.set_operator_active(profile_id, session.profile.salon_id, new_state):
        await callback.answer(error_message("unknown_error"), show_alert=True)
        return

    operators = await ProfileRepository.list_operators(session.profile.salon_id, active_only=False)
    await callback.message.edit_reply_markup(
        reply_markup=create_staff_keyboard(operators, session.profile.profile_id)
    )
    await callback.answer("🟢 Включён" if new_state else "⚪ Отключён")


ADD_OPERATOR_MESSAGES = {
    "already_operator": "❌ Этот пользователь уже сотрудник",
    "has_reservations": "❌ У пользователя есть записи как у клиента",
}


async def _add_operator(message: Message, salon_id: str, args: str, usage: str):
    parts = (args or "").split(maxsplit=1)
    if len(parts) != 2:
        await message.answer(usage)
        return
    try:
        user_id = int(parts[0])
    except ValueError:
        await message.answer("❌ user_id должен быть числом")
        return

    success, code = await ProfileRepository.add_operator(user_id, parts[1].strip(), salon_id)
    if not success:
        await message.answer(ADD_OPERATOR_MESSAGES.get(code, error_message(code)))
        return
    await Database.log_event(message.from_user.id, "operator_added", str(user_id))
    await message.answer(f"✅ Сотрудник {parts[1].strip()} добавлен")


@router.message(Command("add_staff"))
async def add_staff(message: Message, command: CommandObject, session: OperatorSession):
    """/add_staff <user_id> <имя>"""
    await _add_operator(
        message, session.profile.salon_id, command.args, "Использование: /add_staff <user_id> <имя>"
    )


# === АДМИНИСТРАТОР ПЛАТФОРМЫ ===


@admin_router.message(Command("new_salon"))
async def new_salon(message: Message, command: CommandObject, bot: Bot):
    """/new_salon <название>: создать салон и выдать ссылку-приглашение"""
    if not is_admin(message.from_user.id):
        return
    name = (command.args or "").strip()
    if not name:
        await message.answer("Использование: /new_salon <название>")
        return

    try:
        salon = await SalonRepository.create(name)
    except Exception as e:
        logging.error(f"Error creating salon {name}: {e}")
        await message.answer(error_message("unknown_error"))
        return

    me = await bot.get_me()
    await message.answer(
        f"✅ Салон «{salon.name}» создан\n\n"
        f"🆔 {salon.salon_id}\n"
        f"🔗 https://t.me/{me.username}?start={SALON_LINK_PREFIX}{salon.salon_id}\n\n"
        f"Первый сотрудник: /salon_operator {salon.salon_id} <user_id> <имя>"
    )


@admin_router.message(Command("salons"))
async def list_salons(message: Message, bot: Bot):
    """/salons: активные салоны и их ссылки-приглашения"""
    if not is_admin(message.from_user.id):
        return
    salons = await SalonRepository.list_active()
    if not salons:
        await message.answer("Салонов пока нет. Создайте: /new_salon <название>")
        return

    me = await bot.get_me()
    lines = [
        f"🏠 {salon.name}\n🆔 {salon.salon_id}\n"
        f"🔗 https://t.me/{me.username}?start={SALON_LINK_PREFIX}{salon.salon_id}"
        for salon in salons
    ]
    await message.answer("📋 САЛОНЫ\n\n" + "\n\n".join(lines))


@admin_router.message(Command("salon_operator"))
async def salon_operator(message: Message, command: CommandObject):
    """/salon_operator <salon_id> <user_id> <имя>"""
    if not is_admin(message.from_user.id):
        return
    usage = "Использование: /salon_operator <salon_id> <user_id> <имя>"
    parts = (command.args or "").split(maxsplit=1)
    if len(parts) != 2:
        await message.answer(usage)
        return

    salon = await SalonRepository.get(parts[0])
    if salon is None:
        await message.answer("❌ Салон не найден")
        return
    await _add_operator(message, salon.salon_id, parts[1], usage)


@router.message(Command("panel"))
async def operator_panel(message: Message, session: OperatorSession):
    await message.answer(f"👋 {session.profile.display_name}", reply_markup=OPERATOR_MENU)
