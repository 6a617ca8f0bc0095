"""Обработчики бронирования"""

import logging
from datetime import date

from aiogram import F, Router
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from config import HISTORY_INITIAL_SIZE, HISTORY_PAGE_SIZE, STATUS_NAMES
from database.queries import Database
from database.repositories.menu_repository import MenuRepository
from database.repositories.profile_repository import ProfileRepository
from database.repositories.reservation_repository import ReservationRepository
from keyboards.user_keyboards import (
    MAIN_MENU,
    create_cancel_confirmation_keyboard,
    create_confirmation_keyboard,
    create_history_keyboard,
    create_month_calendar,
    create_operators_keyboard,
    create_reservation_detail_keyboard,
    create_time_slots_keyboard,
)
from services.booking_flow import ReservationDraft
from services.booking_service import BookingService
from services.calendar_state import CalendarSelection
from services.cancellation_policy import cancellation_deadline, is_cancelable
from services.errors import REFRESH_CODES, SalonBotError, SelectionError, ValidationError, error_message
from services.session import CustomerSession, Session
from utils.datetime_utils import parse_date, parse_time
from utils.helpers import format_date, format_date_short, format_duration, format_price, now_local
from utils.states import BookingStates

router = Router()


def _customer(session: Session):
    if isinstance(session, CustomerSession) and session.profile.salon_id:
        return session.profile
    return None


async def _load_selection(state: FSMContext) -> CalendarSelection:
    data = await state.get_data()
    return CalendarSelection.from_dict(data.get("selection"))


async def _save_selection(state: FSMContext, selection: CalendarSelection):
    await state.update_data(selection=selection.to_dict())


async def _refresh_snapshot(
    selection: CalendarSelection, salon_id: str, booking_service: BookingService, refresh: bool = False
):
    """Загрузить снимок для текущего оператора и месяца и перепроверить выбор"""
    snapshot = await booking_service.availability.fetch_availability(
        salon_id,
        selection.operator_id,
        date(selection.year, selection.month, 1),
        refresh=refresh,
    )
    selection.apply_snapshot(snapshot)
    return snapshot


def _calendar_text(selection: CalendarSelection) -> str:
    text = "📍 ШАГ 2 из 4: Выберите дату\n\n🟢 = есть свободное время\n⚫ = прошедшая дата"
    if selection.snapshot is not None:
        if selection.snapshot.error:
            text += f"\n\n⚠️ {selection.snapshot.error}"
        elif selection.snapshot.is_empty:
            text += "\n\n😞 В этом месяце свободного времени нет"
    return text


def _times_text(selection: CalendarSelection) -> str:
    return (
        "📍 ШАГ 3 из 4: Выберите время\n\n"
        f"📅 {format_date(parse_date(selection.selected_date))}\n"
        f"🟢 Свободно: {len(selection.available_times())}"
    )


def _draft_lines(draft: ReservationDraft) -> list:
    lines = [
        f"💅 {draft.menu_name}",
        f"📅 {format_date(parse_date(draft.reservation_date))}",
        f"🕒 {draft.reservation_time}",
        f"👩‍🎨 {draft.operator_name}",
        f"⏱ {format_duration(draft.duration_minutes)}",
        f"💴 {format_price(draft.total_price)}",
    ]
    if draft.gel_removal:
        lines.append(f"🧴 Снятие включено (+¥{draft.off_price:,})")
    if draft.other_requests:
        lines.append(f"📝 {draft.other_requests}")
    return lines


def _summary_text(draft: ReservationDraft) -> str:
    return "\n".join(["📍 ШАГ 4 из 4: Подтверждение\n", *_draft_lines(draft), "\n✅ Подтвердить?"])


async def _start_flow(callback: CallbackQuery, state: FSMContext, session: Session,
                      booking_service: BookingService):
    """Начало записи на меню: выбор мастера"""
    try:
        menu_id = int(callback.data.split(":", 1)[1])
    except (ValueError, IndexError):
        logging.error(f"Invalid callback_data in booking start: {callback.data}")
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    profile = _customer(session)
    if profile is None:
        await callback.answer("Откройте ссылку-приглашение салона", show_alert=True)
        return

    allowed, code = await booking_service.check_rebook(profile.profile_id, menu_id)
    if not allowed:
        await callback.answer(error_message(code), show_alert=True)
        return

    menu = await MenuRepository.get(menu_id)
    if menu.salon_id != profile.salon_id:
        await callback.answer(error_message("menu_unavailable"), show_alert=True)
        return

    operators = await ProfileRepository.list_operators(profile.salon_id)
    if not operators:
        await callback.answer("😞 Сейчас нет доступных мастеров", show_alert=True)
        return

    await state.clear()
    await state.set_state(BookingStates.selecting_operator)
    await state.update_data(menu_id=menu_id, selection=CalendarSelection().to_dict())
    await Database.log_event(callback.from_user.id, "booking_started", str(menu_id))

    await callback.message.edit_text(
        f"📍 ШАГ 1 из 4: Выберите мастера\n\n💅 {menu.name}",
        reply_markup=create_operators_keyboard(operators),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("book:"))
async def booking_start(callback: CallbackQuery, state: FSMContext, session: Session,
                        booking_service: BookingService):
    await _start_flow(callback, state, session, booking_service)


@router.callback_query(F.data.startswith("rebook:"))
async def rebook_start(callback: CallbackQuery, state: FSMContext, session: Session,
                       booking_service: BookingService):
    """Повторная запись из истории"""
    await _start_flow(callback, state, session, booking_service)


@router.callback_query(F.data.startswith("operator:"))
async def select_operator(callback: CallbackQuery, state: FSMContext, session: Session,
                          booking_service: BookingService):
    """Выбор мастера: загрузка календаря текущего месяца"""
    profile = _customer(session)
    if profile is None:
        await callback.answer("Нет доступа", show_alert=True)
        return

    operator_id = callback.data.split(":", 1)[1]
    await callback.answer("⏳ Загружаю расписание...")

    selection = await _load_selection(state)
    selection.select_operator(operator_id, now_local().date())
    await _refresh_snapshot(selection, profile.salon_id, booking_service)
    await _save_selection(state, selection)
    await state.set_state(BookingStates.selecting_date)

    await callback.message.edit_text(
        _calendar_text(selection),
        reply_markup=create_month_calendar(selection, now_local().date()),
    )


@router.callback_query(F.data.startswith("cal:"))
async def month_nav(callback: CallbackQuery, state: FSMContext, session: Session,
                    booking_service: BookingService):
    """Навигация по месяцам"""
    profile = _customer(session)
    if profile is None:
        await callback.answer("Нет доступа", show_alert=True)
        return

    try:
        _, year_month = callback.data.split(":", 1)
        year, month = map(int, year_month.split("-"))
    except ValueError:
        logging.error(f"Invalid callback_data in month_nav: {callback.data}")
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    today = now_local().date()
    selection = await _load_selection(state)
    if not selection.can_show_month(year, month, today):
        await callback.answer("Этот месяц недоступен для записи", show_alert=True)
        return

    try:
        selection.change_month(year, month)
    except SelectionError as e:
        await callback.answer(str(e), show_alert=True)
        return

    await callback.answer("⏳ Загружаю...")
    await _refresh_snapshot(selection, profile.salon_id, booking_service)
    await _save_selection(state, selection)

    try:
        await callback.message.edit_text(
            _calendar_text(selection), reply_markup=create_month_calendar(selection, today)
        )
    except Exception as e:
        logging.error(f"Error editing message in month_nav: {e}")


@router.callback_query(F.data == "cal_refresh")
async def calendar_refresh(callback: CallbackQuery, state: FSMContext, session: Session,
                           booking_service: BookingService):
    profile = _customer(session)
    if profile is None:
        await callback.answer("Нет доступа", show_alert=True)
        return
    selection = await _load_selection(state)
    if not selection.operator_id:
        await callback.answer("Сначала выберите мастера", show_alert=True)
        return

    await callback.answer("⏳ Загружаю...")
    await _refresh_snapshot(selection, profile.salon_id, booking_service, refresh=True)
    await _save_selection(state, selection)
    await callback.message.edit_text(
        _calendar_text(selection), reply_markup=create_month_calendar(selection, now_local().date())
    )


@router.callback_query(F.data.startswith("day:"))
async def select_day(callback: CallbackQuery, state: FSMContext):
    """Выбор дня"""
    try:
        date_str = callback.data.split(":", 1)[1]
        parse_date(date_str)
    except (ValueError, IndexError) as e:
        await callback.answer("❌ Ошибка: неверная дата", show_alert=True)
        logging.error(f"Invalid date in select_day: {callback.data}, error: {e}")
        return

    selection = await _load_selection(state)
    try:
        selection.pick_date(date_str, now_local().date())
    except SelectionError as e:
        await callback.answer(f"❌ {e}", show_alert=True)
        return

    await _save_selection(state, selection)
    await state.set_state(BookingStates.selecting_time)
    await callback.message.edit_text(
        _times_text(selection), reply_markup=create_time_slots_keyboard(selection)
    )
    await callback.answer()


@router.callback_query(F.data.startswith("time:"))
async def select_time(callback: CallbackQuery, state: FSMContext, session: Session,
                      booking_service: BookingService):
    """Выбор времени: свежая проверка доступности и сводка"""
    profile = _customer(session)
    if profile is None:
        await callback.answer("Нет доступа", show_alert=True)
        return

    try:
        time_str = parse_time(callback.data.split(":", 1)[1])
    except (ValueError, IndexError):
        logging.error(f"Invalid callback_data in select_time: {callback.data}")
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    selection = await _load_selection(state)
    try:
        selection.pick_time(time_str)
    except SelectionError as e:
        await callback.answer(f"❌ {e}", show_alert=True)
        return

    # Выбор из кэша мог устареть
    await callback.answer("⏳ Проверяю время...")
    snapshot = await _refresh_snapshot(selection, profile.salon_id, booking_service, refresh=True)
    await _save_selection(state, selection)

    if not selection.can_confirm(snapshot):
        await callback.message.edit_text(
            "❌ Это время только что заняли. Выберите другое.\n\n" + (
                _times_text(selection) if selection.selected_date else _calendar_text(selection)
            ),
            reply_markup=create_time_slots_keyboard(selection)
            if selection.selected_date
            else create_month_calendar(selection, now_local().date()),
        )
        return

    data = await state.get_data()
    menu = await MenuRepository.get(data.get("menu_id"))
    operator = await ProfileRepository.get(selection.operator_id)
    if menu is None or not menu.is_active:
        await state.clear()
        await callback.message.edit_text(error_message("menu_unavailable"))
        return

    on_date = parse_date(selection.selected_date)
    draft = ReservationDraft(
        customer_id=profile.profile_id,
        customer_user_id=callback.from_user.id,
        salon_id=profile.salon_id,
        operator_id=selection.operator_id,
        menu_id=menu.id,
        reservation_date=selection.selected_date,
        reservation_time=selection.selected_time,
        gel_removal=menu.with_off,
        off_price=menu.off_price,
        menu_name=menu.name,
        operator_name=operator.display_name if operator else "",
        duration_minutes=menu.duration_minutes,
        total_price=menu.total_price(on_date),
    )
    try:
        booking_service.open_confirmation(draft)
    except (ValidationError, SalonBotError) as e:
        await callback.message.answer(f"❌ {e}")
        return

    await state.update_data(draft=draft.to_dict())
    await state.set_state(BookingStates.confirming)
    await callback.message.edit_text(_summary_text(draft), reply_markup=create_confirmation_keyboard())


@router.callback_query(F.data == "add_request")
async def add_request(callback: CallbackQuery, state: FSMContext):
    await state.set_state(BookingStates.entering_request)
    await callback.message.answer("📝 Напишите пожелания для мастера (до 200 символов):")
    await callback.answer()


@router.message(BookingStates.entering_request)
async def process_request(message: Message, state: FSMContext, session: Session,
                          booking_service: BookingService):
    """Текст пожеланий к записи"""
    profile = _customer(session)
    flow = booking_service.get_flow(profile.profile_id) if profile else None
    if flow is None or flow.draft is None:
        await state.clear()
        await message.answer(error_message("no_confirmation"), reply_markup=MAIN_MENU)
        return

    try:
        flow.update_requests((message.text or "").strip())
    except ValidationError as e:
        await message.answer(f"❌ {e.message}")
        return
    except SalonBotError as e:
        await message.answer(f"❌ {e}")
        return

    await state.update_data(draft=flow.draft.to_dict())
    await state.set_state(BookingStates.confirming)
    await message.answer(_summary_text(flow.draft), reply_markup=create_confirmation_keyboard())


@router.callback_query(F.data == "back_times")
async def back_to_times(callback: CallbackQuery, state: FSMContext, session: Session,
                        booking_service: BookingService):
    """Назад из сводки к выбору времени"""
    profile = _customer(session)
    if profile and not booking_service.close_confirmation(profile.profile_id):
        await callback.answer(error_message("in_flight"), show_alert=True)
        return

    selection = await _load_selection(state)
    await state.set_state(BookingStates.selecting_time)
    await callback.message.edit_text(
        _times_text(selection) if selection.selected_date else _calendar_text(selection),
        reply_markup=create_time_slots_keyboard(selection)
        if selection.selected_date
        else create_month_calendar(selection, now_local().date()),
    )
    await callback.answer()


@router.callback_query(F.data == "back_calendar")
async def back_to_calendar(callback: CallbackQuery, state: FSMContext):
    selection = await _load_selection(state)
    if not selection.operator_id:
        await callback.answer("Сначала выберите мастера", show_alert=True)
        return
    await state.set_state(BookingStates.selecting_date)
    await callback.message.edit_text(
        _calendar_text(selection), reply_markup=create_month_calendar(selection, now_local().date())
    )
    await callback.answer()


@router.callback_query(F.data == "back_operators")
async def back_to_operators(callback: CallbackQuery, state: FSMContext, session: Session):
    profile = _customer(session)
    if profile is None:
        await callback.answer("Нет доступа", show_alert=True)
        return
    operators = await ProfileRepository.list_operators(profile.salon_id)
    await state.set_state(BookingStates.selecting_operator)
    await callback.message.edit_text(
        "📍 ШАГ 1 из 4: Выберите мастера", reply_markup=create_operators_keyboard(operators)
    )
    await callback.answer()


@router.callback_query(F.data == "cancel_booking_flow")
async def cancel_booking_flow(callback: CallbackQuery, state: FSMContext, session: Session,
                              booking_service: BookingService):
    """Отмена процесса бронирования"""
    profile = _customer(session)
    if profile and not booking_service.close_confirmation(profile.profile_id):
        await callback.answer(error_message("in_flight"), show_alert=True)
        return
    await state.clear()
    await callback.message.edit_text(
        "❌ Запись отменена\n\nВы вернулись в главное меню", reply_markup=None
    )
    await callback.answer("Действие отменено")


@router.callback_query(F.data == "confirm_booking")
async def book_time(callback: CallbackQuery, state: FSMContext, session: Session,
                    booking_service: BookingService):
    """Финальное бронирование с обработкой кодов ошибок"""
    profile = _customer(session)
    if profile is None:
        await callback.answer("Нет доступа", show_alert=True)
        return

    flow = booking_service.get_flow(profile.profile_id)
    if flow is None:
        # Повторное нажатие после завершения: сообщение уже итоговое
        await callback.answer()
        return
    if flow.is_submitting:
        await callback.answer(error_message("in_flight"))
        return

    await callback.answer("⏳ Отправляю...")
    try:
        await callback.message.edit_reply_markup(reply_markup=None)
    except Exception as e:
        logging.warning(f"Cannot hide confirmation keyboard: {e}")
    success, code = await booking_service.submit(profile.profile_id)

    data = await state.get_data()
    draft_data = data.get("draft")

    if success:
        await state.clear()
        await callback.message.edit_text(
            "✅ ЗАПИСЬ ПОДТВЕРЖДЕНА!\n\n"
            + "\n".join(_draft_lines(ReservationDraft.from_dict(draft_data)))
            + "\n\n📋 Ваши записи → '📋 Мои записи'"
        )
        await callback.message.answer("Выберите действие:", reply_markup=MAIN_MENU)
        return

    if code == "in_flight":
        return

    if code in REFRESH_CODES:
        selection = await _load_selection(state)
        await _refresh_snapshot(selection, profile.salon_id, booking_service, refresh=True)
        await _save_selection(state, selection)
        if code in ("limit_exceeded", "locked_out"):
            await state.clear()
            await callback.message.edit_text(error_message(code))
            return
        await state.set_state(BookingStates.selecting_time)
        await callback.message.edit_text(
            error_message(code) + "\n\n" + (
                _times_text(selection) if selection.selected_date else _calendar_text(selection)
            ),
            reply_markup=create_time_slots_keyboard(selection)
            if selection.selected_date
            else create_month_calendar(selection, now_local().date()),
        )
        return

    # Временная ошибка: можно повторить с тем же выбором
    if draft_data and code in ("timeout", "unknown_error"):
        draft = ReservationDraft.from_dict(draft_data)
        booking_service.open_confirmation(draft)
        await callback.message.edit_text(
            error_message(code) + "\n\n" + _summary_text(draft),
            reply_markup=create_confirmation_keyboard(),
        )
        return

    await state.clear()
    await callback.message.edit_text(error_message(code))


# === МОИ ЗАПИСИ ===


async def _history_view(profile, booking_service: BookingService, past_limit: int):
    upcoming, past = await booking_service.get_history(profile.profile_id)
    text = "📋 МОИ ЗАПИСИ\n\n"
    if upcoming:
        text += f"🟢 Предстоящие: {len(upcoming)}\n"
    else:
        text += "Предстоящих записей нет\n"
    if past:
        text += f"🕘 Прошедшие: {len(past)}"
    return text, create_history_keyboard(upcoming, past, past_limit)


@router.message(F.text == "📋 Мои записи")
async def my_reservations(message: Message, session: Session, booking_service: BookingService):
    profile = _customer(session)
    if profile is None:
        await message.answer("Откройте ссылку-приглашение салона.")
        return
    text, kb = await _history_view(profile, booking_service, HISTORY_INITIAL_SIZE)
    await message.answer(text, reply_markup=kb)


@router.callback_query(F.data.startswith("history:"))
async def history_page(callback: CallbackQuery, session: Session, booking_service: BookingService):
    """Подгрузка прошедших записей: сначала 5, затем по 10"""
    profile = _customer(session)
    if profile is None:
        await callback.answer("Нет доступа", show_alert=True)
        return
    try:
        shown = int(callback.data.split(":", 1)[1])
    except (ValueError, IndexError):
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    limit = shown + HISTORY_PAGE_SIZE if shown else HISTORY_INITIAL_SIZE
    text, kb = await _history_view(profile, booking_service, limit)
    await callback.message.edit_text(text, reply_markup=kb)
    await callback.answer()


async def _own_reservation(callback: CallbackQuery, session: Session):
    profile = _customer(session)
    if profile is None:
        await callback.answer("Нет доступа", show_alert=True)
        return None, None
    reservation_id = callback.data.split(":", 1)[1]
    reservation = await ReservationRepository.get(reservation_id)
    if reservation is None or reservation.customer_id != profile.profile_id:
        await callback.answer(error_message("not_found"), show_alert=True)
        return profile, None
    return profile, reservation


@router.callback_query(F.data.startswith("res:"))
async def reservation_detail(callback: CallbackQuery, session: Session):
    profile, reservation = await _own_reservation(callback, session)
    if reservation is None:
        return

    now = now_local()
    cancelable = is_cancelable(reservation, now)
    is_upcoming = reservation.status == "reserved" and reservation.starts_at() >= now

    text = (
        f"📅 {format_date(parse_date(reservation.reservation_date))}\n"
        f"🕒 {reservation.reservation_time}\n"
        f"💅 {reservation.menu_name or '—'}\n"
        f"👩‍🎨 {reservation.operator_name or '—'}\n"
        f"💴 {format_price(reservation.total_price)}\n"
        f"📌 {STATUS_NAMES.get(reservation.status, reservation.status)}"
    )
    if reservation.other_requests:
        text += f"\n📝 {reservation.other_requests}"
    if reservation.status == "reserved" and not cancelable:
        text += "\n\n⚠️ Срок онлайн-отмены истёк. Для отмены свяжитесь с салоном."
    elif cancelable:
        deadline = cancellation_deadline(reservation)
        text += f"\n\n❌ Отмена возможна до {deadline.strftime('%d.%m %H:%M')}"

    await callback.message.edit_text(
        text,
        reply_markup=create_reservation_detail_keyboard(
            reservation, cancelable=cancelable, can_rebook=not is_upcoming
        ),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("cancel_res:"))
async def cancel_reservation_request(callback: CallbackQuery, session: Session):
    """Запрос подтверждения отмены"""
    profile, reservation = await _own_reservation(callback, session)
    if reservation is None:
        return
    if not is_cancelable(reservation, now_local()):
        await callback.answer(error_message("deadline_passed"), show_alert=True)
        return

    await callback.message.edit_text(
        "⚠️ Отменить запись?\n\n"
        f"📅 {format_date_short(reservation.reservation_date)} в {reservation.reservation_time}\n"
        f"💅 {reservation.menu_name or '—'}\n\n"
        "Частые отмены временно блокируют запись.",
        reply_markup=create_cancel_confirmation_keyboard(reservation.reservation_id),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("cancel_confirm:"))
async def cancel_reservation_confirm(callback: CallbackQuery, session: Session,
                                     booking_service: BookingService):
    profile, reservation = await _own_reservation(callback, session)
    if reservation is None:
        return

    await callback.answer("⏳ Отменяю...")
    success, code = await booking_service.cancel_reservation(
        reservation.reservation_id, profile.profile_id, "customer", callback.from_user.id
    )
    if success:
        await callback.message.edit_text(
            "✅ Запись отменена\n\n"
            f"📅 {format_date_short(reservation.reservation_date)} в {reservation.reservation_time}"
        )
    else:
        await callback.message.edit_text(error_message(code))
