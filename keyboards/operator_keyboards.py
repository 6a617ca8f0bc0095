"""Клавиатуры для операторов салона"""

import calendar
from datetime import date
from typing import Dict, Iterable, List, Tuple

from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

from config import (
    CALENDAR_MAX_MONTHS_AHEAD,
    DAY_NAMES_SHORT,
    MONTH_NAMES,
    OPENING_DAY_NAMES,
    OPENING_DAYS,
    PAYMENT_METHOD_NAMES,
    SLOT_INTERVAL_OPTIONS,
)
from database.models import (
    Announcement,
    CustomerProfile,
    Menu,
    MenuCategory,
    MenuDivision,
    OperatorProfile,
    Reservation,
    Salon,
    Slot,
)
from utils.datetime_utils import months_between, shift_month
from utils.helpers import format_date_short

OPERATOR_MENU = ReplyKeyboardMarkup(
    keyboard=[
        [KeyboardButton(text="📋 Записи"), KeyboardButton(text="🗓 Расписание")],
        [KeyboardButton(text="💅 Управление меню"), KeyboardButton(text="👥 Клиенты")],
        [KeyboardButton(text="👤 Сотрудники"), KeyboardButton(text="🏠 Салон")],
        [KeyboardButton(text="📢 Объявления")],
    ],
    resize_keyboard=True,
    one_time_keyboard=False,
)

STATUS_ICONS = {"reserved": "🟢", "completed": "✅", "canceled": "❌", "noshow": "🚫"}


# === ЗАПИСИ ===


def create_reservations_keyboard(
    reservations: List[Reservation], date_str: str, prev_date: str, next_date: str
) -> InlineKeyboardMarkup:
    """Записи салона за день"""
    keyboard = [
        [
            InlineKeyboardButton(text="◀️", callback_data=f"ores:{prev_date}"),
            InlineKeyboardButton(text=format_date_short(date_str), callback_data="ignore"),
            InlineKeyboardButton(text="▶️", callback_data=f"ores:{next_date}"),
        ]
    ]
    for reservation in reservations:
        icon = STATUS_ICONS.get(reservation.status, "•")
        keyboard.append(
            [
                InlineKeyboardButton(
                    text=f"{icon} {reservation.reservation_time} · "
                    f"{reservation.customer_name or '—'} · {reservation.operator_name or '—'}",
                    callback_data=f"ores_item:{reservation.reservation_id}",
                )
            ]
        )
    if not reservations:
        keyboard.append([InlineKeyboardButton(text="Записей нет", callback_data="ignore")])
    keyboard.append([InlineKeyboardButton(text="🔄 Обновить", callback_data=f"ores:{date_str}")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_reservation_actions_keyboard(
    reservation: Reservation, time_passed: bool
) -> InlineKeyboardMarkup:
    """Действия оператора: завершить/неявка после начала, отмена до"""
    keyboard = []
    rid = reservation.reservation_id
    if reservation.status == "reserved":
        if time_passed:
            keyboard.append(
                [
                    InlineKeyboardButton(text="✅ Завершить", callback_data=f"ores_complete:{rid}"),
                    InlineKeyboardButton(text="🚫 Неявка", callback_data=f"ores_noshow:{rid}"),
                ]
            )
        keyboard.append(
            [InlineKeyboardButton(text="❌ Отменить запись", callback_data=f"ores_cancel:{rid}")]
        )
        keyboard.append(
            [InlineKeyboardButton(text="📒 Карта клиента", callback_data=f"ocust:{reservation.customer_id}")]
        )
    keyboard.append(
        [InlineKeyboardButton(text="🔙 К записям", callback_data=f"ores:{reservation.reservation_date}")]
    )
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_operator_cancel_keyboard(reservation_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="✅ Да, отменить", callback_data=f"ores_cancel_ok:{reservation_id}")],
            [InlineKeyboardButton(text="🔙 Назад", callback_data=f"ores_item:{reservation_id}")],
        ]
    )


# === РАСПИСАНИЕ ===


def create_staff_select_keyboard(operators: List[OperatorProfile], prefix: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text=f"👩‍🎨 {operator.display_name}",
                    callback_data=f"{prefix}:{operator.profile_id}",
                )
            ]
            for operator in operators
        ]
    )


def create_schedule_month_keyboard(
    year: int, month: int, summary: Dict[str, Tuple[int, int]], today: date
) -> InlineKeyboardMarkup:
    """Месяц расписания оператора: число слотов и занятость по дням"""
    keyboard = []
    prev_year, prev_month = shift_month(year, month, -1)
    next_year, next_month = shift_month(year, month, 1)

    nav = [
        InlineKeyboardButton(text="◀️", callback_data=f"osch_m:{prev_year}-{prev_month:02d}")
        if months_between(today, prev_year, prev_month) >= 0
        else InlineKeyboardButton(text=" ", callback_data="ignore"),
        InlineKeyboardButton(text=f"{MONTH_NAMES[month - 1]} {year}", callback_data="ignore"),
        InlineKeyboardButton(text="▶️", callback_data=f"osch_m:{next_year}-{next_month:02d}")
        if months_between(today, next_year, next_month) <= CALENDAR_MAX_MONTHS_AHEAD
        else InlineKeyboardButton(text=" ", callback_data="ignore"),
    ]
    keyboard.append(nav)
    keyboard.append(
        [InlineKeyboardButton(text=day, callback_data="ignore") for day in DAY_NAMES_SHORT]
    )

    for week in calendar.monthcalendar(year, month):
        row = []
        for day in week:
            if day == 0:
                row.append(InlineKeyboardButton(text=" ", callback_data="ignore"))
                continue
            date_str = date(year, month, day).isoformat()
            total, booked = summary.get(date_str, (0, 0))
            if total:
                text = f"{day}🔴" if booked == total else f"{day}·{total - booked}"
                row.append(InlineKeyboardButton(text=text, callback_data=f"osch_d:{date_str}"))
            else:
                row.append(InlineKeyboardButton(text=str(day), callback_data="ignore"))
        keyboard.append(row)

    keyboard.append(
        [InlineKeyboardButton(text="➕ Добавить по шаблону", callback_data="osch_add")]
    )
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_schedule_day_keyboard(slots: List[Slot], date_str: str) -> InlineKeyboardMarkup:
    """Слоты дня: свободные можно удалить"""
    keyboard = []
    for slot in slots:
        if not keyboard or len(keyboard[-1]) == 3:
            keyboard.append([])
        if slot.is_booked:
            keyboard[-1].append(
                InlineKeyboardButton(text=f"🔒 {slot.slot_time}", callback_data="ignore")
            )
        else:
            keyboard[-1].append(
                InlineKeyboardButton(text=f"🗑 {slot.slot_time}", callback_data=f"osch_del:{slot.id}")
            )
    if any(not slot.is_booked for slot in slots):
        keyboard.append(
            [InlineKeyboardButton(text="🗑 Удалить все свободные", callback_data=f"osch_deld:{date_str}")]
        )
    keyboard.append(
        [InlineKeyboardButton(text="🔙 К месяцу", callback_data=f"osch_m:{date_str[:7]}")]
    )
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_delete_date_confirm_keyboard(date_str: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="✅ Да, удалить", callback_data=f"osch_deld_ok:{date_str}")],
            [InlineKeyboardButton(text="🔙 Назад", callback_data=f"osch_d:{date_str}")],
        ]
    )


def create_weekdays_keyboard(selected: Iterable[int]) -> InlineKeyboardMarkup:
    selected = set(selected)
    row = [
        InlineKeyboardButton(
            text=f"✅{name}" if index in selected else name,
            callback_data=f"osch_wd:{index}",
        )
        for index, name in enumerate(DAY_NAMES_SHORT)
    ]
    return InlineKeyboardMarkup(
        inline_keyboard=[
            row[:4],
            row[4:],
            [InlineKeyboardButton(text="➡️ Далее", callback_data="osch_wd_done")],
        ]
    )


def create_interval_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text=f"{minutes} мин", callback_data=f"osch_int:{minutes}")
                for minutes in SLOT_INTERVAL_OPTIONS
            ]
        ]
    )


def create_template_confirm_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="✅ Создать слоты", callback_data="osch_save")],
            [InlineKeyboardButton(text="❌ Отмена", callback_data="osch_abort")],
        ]
    )


# === МЕНЮ ===


def create_menu_admin_keyboard(menus: List[Menu]) -> InlineKeyboardMarkup:
    keyboard = [
        [
            InlineKeyboardButton(
                text=f"{'🟢' if menu.is_active else '⚪'} {menu.name}",
                callback_data=f"omenu:{menu.id}",
            )
        ]
        for menu in menus
    ]
    keyboard.append([InlineKeyboardButton(text="➕ Новое меню", callback_data="omenu_add")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_menu_manage_keyboard(menu: Menu) -> InlineKeyboardMarkup:
    """Карточка меню для оператора"""
    keyboard = [
        [
            InlineKeyboardButton(
                text="⚪ Скрыть" if menu.is_active else "🟢 Показать",
                callback_data=f"omenu_toggle:{menu.id}",
            )
        ],
        [
            InlineKeyboardButton(text="✏️ Название", callback_data=f"omenu_edit:name:{menu.id}"),
            InlineKeyboardButton(text="💴 Цена", callback_data=f"omenu_edit:price:{menu.id}"),
        ],
        [InlineKeyboardButton(text="⏱ Длительность", callback_data=f"omenu_edit:duration:{menu.id}")],
    ]
    if menu.with_off:
        keyboard[-1].append(
            InlineKeyboardButton(text="🧴 Снятие", callback_data=f"omenu_edit:off_price:{menu.id}")
        )
    keyboard.append([InlineKeyboardButton(text="🏷 Разделы", callback_data=f"omenu_div:{menu.id}")])
    keyboard.append([InlineKeyboardButton(text="🗑 Удалить", callback_data=f"omenu_del:{menu.id}")])
    keyboard.append([InlineKeyboardButton(text="🔙 К меню", callback_data="omenu_list")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_menu_divisions_keyboard(menu: Menu, divisions: List[MenuDivision]) -> InlineKeyboardMarkup:
    """Разделы салона с отметками для выбранного меню"""
    keyboard = [
        [
            InlineKeyboardButton(
                text=f"{'✅' if division.id in menu.division_ids else '⬜'} {division.name}",
                callback_data=f"omenu_divt:{menu.id}:{division.id}",
            )
        ]
        for division in divisions
    ]
    keyboard.append([InlineKeyboardButton(text="➕ Новый раздел", callback_data=f"omenu_div_add:{menu.id}")])
    keyboard.append([InlineKeyboardButton(text="🔙 К меню", callback_data=f"omenu:{menu.id}")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_menu_delete_confirm_keyboard(menu_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="🗑 Да, удалить", callback_data=f"omenu_del_ok:{menu_id}")],
            [InlineKeyboardButton(text="🔙 Назад", callback_data=f"omenu:{menu_id}")],
        ]
    )


def create_category_keyboard(categories: List[MenuCategory]) -> InlineKeyboardMarkup:
    keyboard = [
        [
            InlineKeyboardButton(
                text=f"{'🎟 ' if category.is_coupon else ''}{category.name}",
                callback_data=f"omenu_cat:{category.category_id}",
            )
        ]
        for category in categories
    ]
    keyboard.append([InlineKeyboardButton(text="Без категории", callback_data="omenu_cat:none")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_yes_no_keyboard(prefix: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="Да", callback_data=f"{prefix}:yes"),
                InlineKeyboardButton(text="Нет", callback_data=f"{prefix}:no"),
            ]
        ]
    )


# === КЛИЕНТЫ ===


def create_customers_keyboard(customers: List[CustomerProfile]) -> InlineKeyboardMarkup:
    keyboard = [
        [
            InlineKeyboardButton(
                text=f"👤 {customer.display_name}",
                callback_data=f"ocust:{customer.profile_id}",
            )
        ]
        for customer in customers
    ]
    if not keyboard:
        keyboard.append([InlineKeyboardButton(text="Клиентов пока нет", callback_data="ignore")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_customer_detail_keyboard(customer_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="✏️ Изменить карту", callback_data=f"okarute:{customer_id}")],
            [InlineKeyboardButton(text="🔙 К клиентам", callback_data="ocust_list")],
        ]
    )


def create_staff_keyboard(operators: List[OperatorProfile], own_profile_id: str) -> InlineKeyboardMarkup:
    keyboard = []
    for operator in operators:
        if operator.profile_id == own_profile_id:
            keyboard.append(
                [InlineKeyboardButton(text=f"⭐ {operator.display_name}", callback_data="ignore")]
            )
            continue
        keyboard.append(
            [
                InlineKeyboardButton(
                    text=f"{'🟢' if operator.is_active else '⚪'} {operator.display_name}",
                    callback_data=f"ostaff_toggle:{operator.profile_id}",
                )
            ]
        )
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


# === САЛОН ===


def create_salon_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="✏️ Название", callback_data="osalon_edit:name"),
                InlineKeyboardButton(text="📞 Телефон", callback_data="osalon_edit:phone_number"),
            ],
            [
                InlineKeyboardButton(text="📍 Адрес", callback_data="osalon_edit:address"),
                InlineKeyboardButton(text="🚉 Как добраться", callback_data="osalon_edit:access_info"),
            ],
            [
                InlineKeyboardButton(text="🕒 Часы работы", callback_data="osalon_hours"),
                InlineKeyboardButton(text="💳 Оплата", callback_data="osalon_pay"),
            ],
            [InlineKeyboardButton(text="❌ Срок онлайн-отмены", callback_data="osalon_deadline")],
        ]
    )


def create_opening_hours_keyboard(salon: Salon) -> InlineKeyboardMarkup:
    keyboard = []
    for day in OPENING_DAYS:
        hours = salon.opening_hours[day]
        keyboard.append(
            [
                InlineKeyboardButton(
                    text=f"{OPENING_DAY_NAMES[day]}: {hours.display()}",
                    callback_data=f"osalon_day:{day}",
                )
            ]
        )
    keyboard.append([InlineKeyboardButton(text="🔙 К салону", callback_data="osalon")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_day_hours_keyboard(day: str, is_open: bool) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text="🚫 Сделать выходным" if is_open else "✅ Сделать рабочим",
                    callback_data=f"osalon_day_toggle:{day}",
                )
            ],
            [InlineKeyboardButton(text="🕒 Изменить время", callback_data=f"osalon_day_time:{day}")],
            [InlineKeyboardButton(text="🔙 К часам работы", callback_data="osalon_hours")],
        ]
    )


def create_payment_methods_keyboard(salon: Salon) -> InlineKeyboardMarkup:
    keyboard = [
        [
            InlineKeyboardButton(
                text=f"{'✅' if method in salon.payment_methods else '⬜'} {name}",
                callback_data=f"osalon_pay_toggle:{method}",
            )
        ]
        for method, name in PAYMENT_METHOD_NAMES.items()
    ]
    keyboard.append([InlineKeyboardButton(text="🔙 К салону", callback_data="osalon")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


# === ОБЪЯВЛЕНИЯ ===


def create_announcements_keyboard(announcements: List[Announcement]) -> InlineKeyboardMarkup:
    keyboard = [
        [
            InlineKeyboardButton(
                text=f"{'📢' if a.is_published else '📝'} {a.title}"
                + (f" → {a.customer_name}" if a.customer_id else ""),
                callback_data=f"oann:{a.id}",
            )
        ]
        for a in announcements
    ]
    keyboard.append([InlineKeyboardButton(text="➕ Новое объявление", callback_data="oann_add")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_announcement_keyboard(announcement: Announcement) -> InlineKeyboardMarkup:
    aid = announcement.id
    keyboard = [
        [
            InlineKeyboardButton(
                text="🙈 Снять с публикации" if announcement.is_published else "📢 Опубликовать",
                callback_data=f"oann_pub:{aid}",
            )
        ],
        [
            InlineKeyboardButton(text="✏️ Изменить", callback_data=f"oann_edit:{aid}"),
            InlineKeyboardButton(text="🗑 Удалить", callback_data=f"oann_del:{aid}"),
        ],
    ]
    if announcement.is_published:
        keyboard.append(
            [InlineKeyboardButton(text="👁 Кто прочитал", callback_data=f"oann_reads:{aid}")]
        )
    keyboard.append([InlineKeyboardButton(text="🔙 К объявлениям", callback_data="oann_list")])
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_announcement_target_keyboard(customers: List[CustomerProfile]) -> InlineKeyboardMarkup:
    keyboard = [[InlineKeyboardButton(text="👥 Всем клиентам", callback_data="oann_to:all")]]
    keyboard.extend(
        [InlineKeyboardButton(text=f"👤 {c.display_name}", callback_data=f"oann_to:{c.profile_id}")]
        for c in customers
    )
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_announcement_delete_keyboard(announcement_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="🗑 Да, удалить", callback_data=f"oann_del_ok:{announcement_id}")],
            [InlineKeyboardButton(text="🔙 Назад", callback_data=f"oann:{announcement_id}")],
        ]
    )
