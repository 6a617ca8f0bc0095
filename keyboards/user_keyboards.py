"""Клавиатуры для клиентов"""

import calendar
from datetime import date
from typing import List, Optional, Tuple

from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

from config import (
    DAY_NAMES_SHORT,
    MONTH_NAMES,
    OPENING_DAY_NAMES,
    OPENING_DAYS,
    PAYMENT_METHOD_NAMES,
    STATUS_NAMES,
)
from database.models import Announcement, Menu, MenuDivision, OperatorProfile, Reservation, Salon
from services.calendar_state import CalendarSelection
from utils.datetime_utils import shift_month
from utils.helpers import format_date_short, format_price

# Главное меню клиента
MAIN_MENU = ReplyKeyboardMarkup(
    keyboard=[
        [KeyboardButton(text="💅 Меню и запись")],
        [KeyboardButton(text="📋 Мои записи"), KeyboardButton(text="ℹ️ О салоне")],
        [KeyboardButton(text="🔔 Уведомления")],
    ],
    resize_keyboard=True,
    one_time_keyboard=False,
)


def create_menu_list_keyboard(
    menus: List[Menu], divisions: Optional[List[MenuDivision]] = None, selected: Tuple[int, ...] = ()
) -> InlineKeyboardMarkup:
    """Список меню салона; сверху разделы для фильтра"""
    keyboard = []
    tags = [
        InlineKeyboardButton(
            text=f"{'✅' if division.id in selected else '🏷'} {division.name}",
            callback_data=f"menu_tag:{division.id}",
        )
        for division in divisions or []
    ]
    # По три тега в ряд
    keyboard.extend(tags[i:i + 3] for i in range(0, len(tags), 3))
    tag_rows = len(keyboard)
    for menu in menus:
        badge = "🎟 " if menu.is_coupon else ""
        keyboard.append(
            [
                InlineKeyboardButton(
                    text=f"{badge}{menu.name} · {menu.get_duration_display()} · ¥{menu.price_without_tax:,}",
                    callback_data=f"menu:{menu.id}",
                )
            ]
        )
    if len(keyboard) == tag_rows:
        text = "Нет меню с выбранными разделами" if selected else "Меню пока нет"
        keyboard.append([InlineKeyboardButton(text=text, callback_data="ignore")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_menu_detail_keyboard(menu_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="📅 Записаться", callback_data=f"book:{menu_id}")],
            [InlineKeyboardButton(text="🔙 К меню", callback_data="menu_list")],
        ]
    )


def create_operators_keyboard(operators: List[OperatorProfile]) -> InlineKeyboardMarkup:
    """Выбор мастера"""
    keyboard = [
        [
            InlineKeyboardButton(
                text=f"👩‍🎨 {operator.display_name}",
                callback_data=f"operator:{operator.profile_id}",
            )
        ]
        for operator in operators
    ]
    keyboard.append(
        [InlineKeyboardButton(text="❌ Отмена", callback_data="cancel_booking_flow")]
    )
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_month_calendar(selection: CalendarSelection, today: date) -> InlineKeyboardMarkup:
    """Календарь месяца по снимку доступности

    Прошедшие даты и даты без свободного времени некликабельны.
    """
    keyboard = []
    year, month = selection.year, selection.month

    prev_year, prev_month = shift_month(year, month, -1)
    next_year, next_month = shift_month(year, month, 1)

    prev_button = (
        InlineKeyboardButton(text="◀️", callback_data=f"cal:{prev_year}-{prev_month:02d}")
        if selection.can_show_month(prev_year, prev_month, today)
        else InlineKeyboardButton(text=" ", callback_data="ignore")
    )
    next_button = (
        InlineKeyboardButton(text="▶️", callback_data=f"cal:{next_year}-{next_month:02d}")
        if selection.can_show_month(next_year, next_month, today)
        else InlineKeyboardButton(text=" ", callback_data="ignore")
    )

    keyboard.append(
        [
            prev_button,
            InlineKeyboardButton(text=f"{MONTH_NAMES[month - 1]} {year}", callback_data="ignore"),
            next_button,
        ]
    )
    keyboard.append(
        [InlineKeyboardButton(text=day, callback_data="ignore") for day in DAY_NAMES_SHORT]
    )

    snapshot = selection.snapshot
    open_dates = snapshot.dates_with_open_slots if snapshot else frozenset()

    for week in calendar.monthcalendar(year, month):
        row = []
        for day in week:
            if day == 0:
                row.append(InlineKeyboardButton(text=" ", callback_data="ignore"))
                continue
            day_date = date(year, month, day)
            date_str = day_date.isoformat()
            if day_date < today:
                row.append(InlineKeyboardButton(text="⚫", callback_data="ignore"))
            elif date_str in open_dates:
                mark = "✅" if date_str == selection.selected_date else "🟢"
                row.append(InlineKeyboardButton(text=f"{day}{mark}", callback_data=f"day:{date_str}"))
            else:
                row.append(InlineKeyboardButton(text=f"{day}", callback_data="ignore"))
        keyboard.append(row)

    if snapshot is not None and snapshot.error:
        keyboard.append(
            [InlineKeyboardButton(text="🔄 Повторить загрузку", callback_data="cal_refresh")]
        )

    keyboard.append(
        [
            InlineKeyboardButton(text="🔙 Мастера", callback_data="back_operators"),
            InlineKeyboardButton(text="❌ Отмена", callback_data="cancel_booking_flow"),
        ]
    )
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_time_slots_keyboard(selection: CalendarSelection) -> InlineKeyboardMarkup:
    """Свободное время выбранной даты, по 3 в ряд"""
    keyboard = []
    for time_str in selection.available_times():
        if not keyboard or len(keyboard[-1]) == 3:
            keyboard.append([])
        text = f"✅ {time_str}" if time_str == selection.selected_time else time_str
        keyboard[-1].append(InlineKeyboardButton(text=text, callback_data=f"time:{time_str}"))

    if not keyboard:
        keyboard.append(
            [InlineKeyboardButton(text="😞 Свободного времени нет", callback_data="ignore")]
        )

    keyboard.append(
        [InlineKeyboardButton(text="🔙 К календарю", callback_data="back_calendar")]
    )
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_confirmation_keyboard(can_confirm: bool = True) -> InlineKeyboardMarkup:
    """Клавиатура подтверждения записи"""
    keyboard = []
    if can_confirm:
        keyboard.append(
            [InlineKeyboardButton(text="✅ Подтвердить запись", callback_data="confirm_booking")]
        )
    keyboard.extend(
        [
            [InlineKeyboardButton(text="📝 Добавить пожелания", callback_data="add_request")],
            [InlineKeyboardButton(text="◀️ Другое время", callback_data="back_times")],
            [InlineKeyboardButton(text="❌ Отменить", callback_data="cancel_booking_flow")],
        ]
    )
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_history_keyboard(
    upcoming: List[Reservation], past: List[Reservation], past_limit: int
) -> InlineKeyboardMarkup:
    """Мои записи: предстоящие и прошедшие (с постраничной подгрузкой)"""
    keyboard = []
    for reservation in upcoming:
        keyboard.append(
            [
                InlineKeyboardButton(
                    text=f"🟢 {format_date_short(reservation.reservation_date)} "
                    f"{reservation.reservation_time} · {reservation.menu_name or '—'}",
                    callback_data=f"res:{reservation.reservation_id}",
                )
            ]
        )
    for reservation in past[:past_limit]:
        status = STATUS_NAMES.get(reservation.status, reservation.status)
        keyboard.append(
            [
                InlineKeyboardButton(
                    text=f"{format_date_short(reservation.reservation_date)} · "
                    f"{reservation.menu_name or '—'} · {status}",
                    callback_data=f"res:{reservation.reservation_id}",
                )
            ]
        )
    if len(past) > past_limit:
        keyboard.append(
            [InlineKeyboardButton(text="⬇️ Показать ещё", callback_data=f"history:{past_limit}")]
        )
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_reservation_detail_keyboard(
    reservation: Reservation, cancelable: bool, can_rebook: bool
) -> InlineKeyboardMarkup:
    keyboard = []
    if cancelable:
        keyboard.append(
            [
                InlineKeyboardButton(
                    text="❌ Отменить запись",
                    callback_data=f"cancel_res:{reservation.reservation_id}",
                )
            ]
        )
    if can_rebook and reservation.menu_id is not None:
        keyboard.append(
            [InlineKeyboardButton(text="🔁 Записаться снова", callback_data=f"rebook:{reservation.menu_id}")]
        )
    keyboard.append([InlineKeyboardButton(text="🔙 Мои записи", callback_data="history:0")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_cancel_confirmation_keyboard(reservation_id: str) -> InlineKeyboardMarkup:
    """Клавиатура подтверждения отмены"""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text="✅ Да, отменить", callback_data=f"cancel_confirm:{reservation_id}"
                )
            ],
            [InlineKeyboardButton(text="❌ Нет, оставить", callback_data=f"res:{reservation_id}")],
        ]
    )


def create_inbox_keyboard(announcements: List[Announcement]) -> InlineKeyboardMarkup:
    """Объявления салона; непрочитанные отмечены точкой"""
    keyboard = [
        [
            InlineKeyboardButton(
                text=f"{'✉️' if a.is_read else '🔵'} {a.title}",
                callback_data=f"inbox:{a.id}",
            )
        ]
        for a in announcements
    ]
    if not keyboard:
        keyboard.append([InlineKeyboardButton(text="Уведомлений пока нет", callback_data="ignore")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_inbox_back_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text="🔙 К уведомлениям", callback_data="inbox_list")]]
    )


def format_menu_summary(menu: Menu, on_date: Optional[date] = None) -> str:
    """Описание меню для карточки"""
    lines = [f"💅 {menu.name}", f"⏱ {menu.get_duration_display()}"]
    if on_date and menu.is_coupon_valid(on_date):
        lines.append(
            f"💴 {format_price(menu.discounted_price(on_date))} "
            f"(скидка ¥{menu.discount_amount:,})"
        )
    else:
        lines.append(f"💴 {format_price(menu.price_without_tax)}")
    if menu.is_coupon:
        lines.append(f"🎟 Купон: −¥{menu.discount_amount:,}, {menu.valid_from} — {menu.valid_until}")
    if menu.with_off:
        lines.append(f"🧴 Снятие: +¥{menu.off_price:,}")
    if menu.description:
        lines.append(f"\n{menu.description}")
    return "\n".join(lines)


def format_salon_details(salon: Salon) -> str:
    """Контакты, часы работы и оплата; пустые поля пропускаются"""
    lines = [f"ℹ️ {salon.name}"]
    if salon.phone_number:
        lines.append(f"📞 {salon.phone_number}")
    if salon.address:
        lines.append(f"📍 {salon.address}")
    if salon.access_info:
        lines.append(f"🚉 {salon.access_info}")

    lines.append("\n🕒 Часы работы:")
    lines.extend(
        f"{OPENING_DAY_NAMES[day]}: {salon.opening_hours[day].display()}" for day in OPENING_DAYS
    )
    if salon.payment_methods:
        methods = ", ".join(PAYMENT_METHOD_NAMES[m] for m in salon.payment_methods if m in PAYMENT_METHOD_NAMES)
        lines.append(f"\n💳 Оплата: {methods}")
    return "\n".join(lines)
