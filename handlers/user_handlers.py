"""Обработчики пользовательских команд"""

import logging

from aiogram import F, Router
from aiogram.filters import CommandObject, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from config import (
    MAX_ACTIVE_RESERVATIONS,
    REMINDER_HOURS_BEFORE,
)
from database.queries import Database
from database.repositories.menu_repository import MenuRepository
from database.repositories.profile_repository import ProfileRepository
from database.repositories.salon_repository import SalonRepository
from keyboards.operator_keyboards import OPERATOR_MENU
from keyboards.user_keyboards import (
    MAIN_MENU,
    create_menu_detail_keyboard,
    create_menu_list_keyboard,
    format_menu_summary,
    format_salon_details,
)
from services.menu_service import MenuService, filter_by_divisions
from services.session import CustomerSession, OperatorSession, Session
from utils.helpers import format_duration, now_local

router = Router()

SALON_LINK_PREFIX = "salon_"


@router.message(CommandStart())
async def start_cmd(message: Message, state: FSMContext, session: Session, command: CommandObject):
    """Команда /start, в том числе по ссылке салона /start salon_<id>"""
    await state.clear()
    user_id = message.from_user.id

    if isinstance(session, OperatorSession):
        await message.answer(
            f"👋 {session.profile.display_name}, панель салона открыта.",
            reply_markup=OPERATOR_MENU,
        )
        return

    args = command.args or ""
    if args.startswith(SALON_LINK_PREFIX):
        salon = await SalonRepository.get(args[len(SALON_LINK_PREFIX):])
        if salon is None or not salon.is_active:
            await message.answer("❌ Салон не найден. Проверьте ссылку-приглашение.")
            return

        is_new = not isinstance(session, CustomerSession)
        await ProfileRepository.register_customer(
            user_id, message.from_user.full_name, salon.salon_id
        )
        if is_new:
            await Database.log_event(user_id, "user_registered", salon.salon_id)

        await message.answer(
            f"👋 Добро пожаловать в «{salon.name}»!\n\n"
            "💅 Выберите меню и запишитесь на удобное время.\n"
            f"⏰ Напомним о записи за {REMINDER_HOURS_BEFORE} ч.",
            reply_markup=MAIN_MENU,
        )
        return

    if isinstance(session, CustomerSession) and session.profile.salon_id:
        await message.answer("С возвращением! 👋\n\nВыберите действие:", reply_markup=MAIN_MENU)
        return

    await message.answer(
        "👋 Это бот онлайн-записи в салон.\n\n"
        "Чтобы записаться, откройте ссылку-приглашение вашего салона."
    )


def _customer_salon_id(session: Session):
    if isinstance(session, CustomerSession) and session.profile.salon_id:
        return session.profile.salon_id
    return None


async def _menu_list_markup(salon_id: str, selected: tuple):
    menus = await MenuRepository.list_for_salon(salon_id)
    divisions = await MenuService.list_divisions(salon_id)
    return create_menu_list_keyboard(filter_by_divisions(menus, selected), divisions, selected)


@router.message(F.text == "💅 Меню и запись")
async def menu_list(message: Message, state: FSMContext, session: Session):
    """Список меню салона клиента"""
    salon_id = _customer_salon_id(session)
    if not salon_id:
        await message.answer("Откройте ссылку-приглашение салона, чтобы увидеть меню.")
        return

    await state.update_data(menu_filter=[])
    await Database.log_event(message.from_user.id, "menu_viewed")
    await message.answer("💅 МЕНЮ\n\nВыберите услугу:", reply_markup=await _menu_list_markup(salon_id, ()))


@router.callback_query(F.data == "menu_list")
async def menu_list_callback(callback: CallbackQuery, state: FSMContext, session: Session):
    salon_id = _customer_salon_id(session)
    if not salon_id:
        await callback.answer("Нет доступа", show_alert=True)
        return
    selected = tuple((await state.get_data()).get("menu_filter", []))
    await callback.message.edit_text(
        "💅 МЕНЮ\n\nВыберите услугу:", reply_markup=await _menu_list_markup(salon_id, selected)
    )
    await callback.answer()


@router.callback_query(F.data.startswith("menu_tag:"))
async def menu_tag(callback: CallbackQuery, state: FSMContext, session: Session):
    """Фильтр меню по разделу: показываются меню со всеми выбранными разделами"""
    salon_id = _customer_salon_id(session)
    if not salon_id:
        await callback.answer("Нет доступа", show_alert=True)
        return
    try:
        division_id = int(callback.data.split(":", 1)[1])
    except ValueError:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    selected = list((await state.get_data()).get("menu_filter", []))
    if division_id in selected:
        selected.remove(division_id)
    else:
        selected.append(division_id)
    await state.update_data(menu_filter=selected)
    await callback.message.edit_reply_markup(reply_markup=await _menu_list_markup(salon_id, tuple(selected)))
    await callback.answer()


@router.callback_query(F.data.startswith("menu:"))
async def menu_detail(callback: CallbackQuery, session: Session):
    """Карточка меню"""
    try:
        menu_id = int(callback.data.split(":", 1)[1])
    except (ValueError, IndexError):
        logging.error(f"Invalid callback_data in menu_detail: {callback.data}")
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    salon_id = _customer_salon_id(session)
    menu = await MenuRepository.get(menu_id)
    if menu is None or not menu.is_active or menu.salon_id != salon_id:
        await callback.answer("❌ Это меню больше недоступно", show_alert=True)
        return

    await callback.message.edit_text(
        format_menu_summary(menu, now_local().date()),
        reply_markup=create_menu_detail_keyboard(menu.id),
    )
    await callback.answer()


@router.message(F.text == "ℹ️ О салоне")
async def about_salon(message: Message, session: Session):
    """Информация о салоне и правилах записи"""
    salon_id = _customer_salon_id(session)
    salon = await SalonRepository.get(salon_id) if salon_id else None
    if salon is None:
        await message.answer("Откройте ссылку-приглашение салона.")
        return

    deadline = salon.cancellation_deadline_minutes
    deadline_text = f"не позднее чем за {format_duration(deadline)}" if deadline else "до начала записи"
    await message.answer(
        f"{format_salon_details(salon)}\n\n"
        f"❌ Онлайн-отмена возможна {deadline_text}\n"
        f"📊 Одновременно активных записей: {MAX_ACTIVE_RESERVATIONS}\n"
        f"⏰ Напоминание за {REMINDER_HOURS_BEFORE} ч до записи\n\n"
        "⚠️ Частые отмены временно блокируют запись.",
        reply_markup=MAIN_MENU,
    )


@router.callback_query(F.data == "ignore")
async def ignore_callback(callback: CallbackQuery):
    """Игнорирование callback"""
    await callback.answer()
