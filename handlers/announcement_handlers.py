"""Обработчики объявлений: оператор пишет и публикует, клиент читает"""

from typing import Optional

from aiogram import F, Router
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from config import ANNOUNCEMENT_CONTENT_MAX_LENGTH, ANNOUNCEMENT_TITLE_MAX_LENGTH
from database.models import Announcement
from database.repositories.profile_repository import ProfileRepository
from keyboards.operator_keyboards import (
    OPERATOR_MENU,
    create_announcement_delete_keyboard,
    create_announcement_keyboard,
    create_announcement_target_keyboard,
    create_announcements_keyboard,
)
from keyboards.user_keyboards import create_inbox_back_keyboard, create_inbox_keyboard
from middlewares.session import IsOperator
from services.announcement_service import AnnouncementService
from services.errors import ValidationError, error_message
from services.session import CustomerSession, OperatorSession, Session
from utils.helpers import format_date_short
from utils.states import AnnouncementStates

router = Router()
router.message.filter(IsOperator())
router.callback_query.filter(IsOperator())

# Входящие объявления клиента
customer_router = Router()

LIST_TEXT = "📢 ОБЪЯВЛЕНИЯ\n\n📢 опубликовано, 📝 черновик"


def _parse_announcement_id(callback: CallbackQuery) -> Optional[int]:
    try:
        return int(callback.data.split(":", 1)[1])
    except ValueError:
        return None


def announcement_text(announcement: Announcement) -> str:
    target = f"👤 {announcement.customer_name}" if announcement.customer_id else "👥 Все клиенты"
    status = "📢 Опубликовано" if announcement.is_published else "📝 Черновик"
    return f"{status}\n{target}\n\n{announcement.title}\n\n{announcement.content}"


async def _show_announcement(
    callback: CallbackQuery, announcement_service: AnnouncementService, announcement_id: int, salon_id: str
) -> bool:
    announcement = await announcement_service.get(announcement_id, salon_id)
    if announcement is None:
        await callback.answer(error_message("not_found"), show_alert=True)
        return False
    await callback.message.edit_text(
        announcement_text(announcement), reply_markup=create_announcement_keyboard(announcement)
    )
    return True


@router.message(F.text == "📢 Объявления")
async def announcements_list(
    message: Message, state: FSMContext, session: OperatorSession, announcement_service: AnnouncementService
):
    await state.clear()
    announcements = await announcement_service.list_for_salon(session.profile.salon_id)
    await message.answer(LIST_TEXT, reply_markup=create_announcements_keyboard(announcements))


@router.callback_query(F.data == "oann_list")
async def announcements_list_callback(
    callback: CallbackQuery, session: OperatorSession, announcement_service: AnnouncementService
):
    announcements = await announcement_service.list_for_salon(session.profile.salon_id)
    await callback.message.edit_text(LIST_TEXT, reply_markup=create_announcements_keyboard(announcements))
    await callback.answer()


@router.callback_query(F.data.startswith("oann:"))
async def announcement_detail(
    callback: CallbackQuery, session: OperatorSession, announcement_service: AnnouncementService
):
    announcement_id = _parse_announcement_id(callback)
    if announcement_id is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return
    if await _show_announcement(callback, announcement_service, announcement_id, session.profile.salon_id):
        await callback.answer()


# === СОЗДАНИЕ И ИЗМЕНЕНИЕ ===


@router.callback_query(F.data == "oann_add")
async def announcement_add(callback: CallbackQuery, state: FSMContext, session: OperatorSession):
    # Адресатом может быть только клиент, привязанный к салону сейчас
    customers = [
        c for c in await ProfileRepository.list_customers(session.profile.salon_id)
        if c.salon_id == session.profile.salon_id
    ]
    await state.set_state(AnnouncementStates.selecting_target)
    await state.update_data(announcement={})
    await callback.message.edit_text(
        "📢 Кому отправить объявление?", reply_markup=create_announcement_target_keyboard(customers)
    )
    await callback.answer()


@router.callback_query(AnnouncementStates.selecting_target, F.data.startswith("oann_to:"))
async def announcement_target(callback: CallbackQuery, state: FSMContext):
    target = callback.data.split(":", 1)[1]
    await state.update_data(announcement={"customer_id": None if target == "all" else target})
    await state.set_state(AnnouncementStates.awaiting_title)
    await callback.message.edit_text(f"✏️ Заголовок (до {ANNOUNCEMENT_TITLE_MAX_LENGTH} символов):")
    await callback.answer()


@router.callback_query(F.data.startswith("oann_edit:"))
async def announcement_edit(
    callback: CallbackQuery,
    state: FSMContext,
    session: OperatorSession,
    announcement_service: AnnouncementService,
):
    announcement_id = _parse_announcement_id(callback)
    announcement = (
        await announcement_service.get(announcement_id, session.profile.salon_id)
        if announcement_id is not None
        else None
    )
    if announcement is None:
        await callback.answer(error_message("not_found"), show_alert=True)
        return

    await state.set_state(AnnouncementStates.awaiting_title)
    await state.update_data(
        announcement={"id": announcement.id, "customer_id": announcement.customer_id}
    )
    await callback.message.answer(
        f"✏️ Новый заголовок (до {ANNOUNCEMENT_TITLE_MAX_LENGTH} символов)\n\nСейчас: {announcement.title}"
    )
    await callback.answer()


@router.message(AnnouncementStates.awaiting_title)
async def announcement_title(message: Message, state: FSMContext):
    title = (message.text or "").strip()
    if not title or len(title) > ANNOUNCEMENT_TITLE_MAX_LENGTH:
        await message.answer(f"❌ Заголовок от 1 до {ANNOUNCEMENT_TITLE_MAX_LENGTH} символов")
        return

    data = await state.get_data()
    await state.update_data(announcement={**data.get("announcement", {}), "title": title})
    await state.set_state(AnnouncementStates.awaiting_content)
    await message.answer(f"📝 Текст объявления (до {ANNOUNCEMENT_CONTENT_MAX_LENGTH} символов):")


@router.message(AnnouncementStates.awaiting_content)
async def announcement_content(
    message: Message,
    state: FSMContext,
    session: OperatorSession,
    announcement_service: AnnouncementService,
):
    data = (await state.get_data()).get("announcement", {})
    salon_id = session.profile.salon_id

    try:
        if data.get("id"):
            success, code = await announcement_service.edit(
                data["id"], salon_id, data.get("title", ""), message.text or "", data.get("customer_id")
            )
            announcement_id = data["id"] if success else None
        else:
            announcement_id = await announcement_service.create(
                salon_id, session.profile.profile_id, data.get("title", ""), message.text or "",
                data.get("customer_id"),
            )
            code = "unknown_error"
    except ValidationError as e:
        if e.field == "content":
            await message.answer(f"❌ {e.message}")
            return
        await state.clear()
        await message.answer(f"❌ {e.message}", reply_markup=OPERATOR_MENU)
        return

    await state.clear()
    if announcement_id is None:
        await message.answer(error_message(code), reply_markup=OPERATOR_MENU)
        return
    announcement = await announcement_service.get(announcement_id, salon_id)
    await message.answer(
        "✅ Сохранено\n\n" + announcement_text(announcement),
        reply_markup=create_announcement_keyboard(announcement),
    )


# === ПУБЛИКАЦИЯ И УДАЛЕНИЕ ===


@router.callback_query(F.data.startswith("oann_pub:"))
async def announcement_publish(
    callback: CallbackQuery, session: OperatorSession, announcement_service: AnnouncementService
):
    announcement_id = _parse_announcement_id(callback)
    if announcement_id is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    success, code = await announcement_service.toggle_publish(announcement_id, session.profile.salon_id)
    if not success:
        await callback.answer(error_message(code), show_alert=True)
        return
    await _show_announcement(callback, announcement_service, announcement_id, session.profile.salon_id)
    await callback.answer("📢 Опубликовано и отправлено" if code == "published" else "🙈 Снято с публикации")


@router.callback_query(F.data.startswith("oann_del:"))
async def announcement_delete_request(
    callback: CallbackQuery, session: OperatorSession, announcement_service: AnnouncementService
):
    announcement_id = _parse_announcement_id(callback)
    announcement = (
        await announcement_service.get(announcement_id, session.profile.salon_id)
        if announcement_id is not None
        else None
    )
    if announcement is None:
        await callback.answer(error_message("not_found"), show_alert=True)
        return
    await callback.message.edit_text(
        f"🗑 Удалить объявление «{announcement.title}»?\n\nКлиенты больше не увидят его в уведомлениях.",
        reply_markup=create_announcement_delete_keyboard(announcement.id),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("oann_del_ok:"))
async def announcement_delete_confirm(
    callback: CallbackQuery, session: OperatorSession, announcement_service: AnnouncementService
):
    announcement_id = _parse_announcement_id(callback)
    if announcement_id is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    success, code = await announcement_service.delete(announcement_id, session.profile.salon_id)
    if not success:
        await callback.answer(error_message(code), show_alert=True)
        return
    announcements = await announcement_service.list_for_salon(session.profile.salon_id)
    await callback.message.edit_text(
        "🗑 Объявление удалено\n\n" + LIST_TEXT, reply_markup=create_announcements_keyboard(announcements)
    )
    await callback.answer()


@router.callback_query(F.data.startswith("oann_reads:"))
async def announcement_reads(
    callback: CallbackQuery, session: OperatorSession, announcement_service: AnnouncementService
):
    announcement_id = _parse_announcement_id(callback)
    status = (
        await announcement_service.read_status(announcement_id, session.profile.salon_id)
        if announcement_id is not None
        else None
    )
    if status is None:
        await callback.answer(error_message("not_found"), show_alert=True)
        return

    announcement, reads = status
    read_count = sum(1 for r in reads if r.read_at)
    lines = [f"👁 {announcement.title}", f"Прочитали: {read_count} из {len(reads)}", ""]
    for read in reads:
        if read.read_at:
            lines.append(f"✉️ {read.customer_name} ({format_date_short(read.read_at[:10])} {read.read_at[11:16]})")
        else:
            lines.append(f"🔵 {read.customer_name}")
    await callback.message.edit_text(
        "\n".join(lines), reply_markup=create_announcement_keyboard(announcement)
    )
    await callback.answer()


# === КЛИЕНТ ===


@customer_router.message(F.text == "🔔 Уведомления")
async def inbox(message: Message, session: Session, announcement_service: AnnouncementService):
    if not isinstance(session, CustomerSession) or not session.profile.salon_id:
        await message.answer("Откройте ссылку-приглашение салона.")
        return
    announcements = await announcement_service.inbox(session.profile)
    unread = sum(1 for a in announcements if not a.is_read)
    await message.answer(
        f"🔔 УВЕДОМЛЕНИЯ\n\nНепрочитанных: {unread}", reply_markup=create_inbox_keyboard(announcements)
    )


@customer_router.callback_query(F.data == "inbox_list")
async def inbox_callback(callback: CallbackQuery, session: Session, announcement_service: AnnouncementService):
    if not isinstance(session, CustomerSession):
        await callback.answer()
        return
    announcements = await announcement_service.inbox(session.profile)
    unread = sum(1 for a in announcements if not a.is_read)
    await callback.message.edit_text(
        f"🔔 УВЕДОМЛЕНИЯ\n\nНепрочитанных: {unread}", reply_markup=create_inbox_keyboard(announcements)
    )
    await callback.answer()


@customer_router.callback_query(F.data.startswith("inbox:"))
async def inbox_open(callback: CallbackQuery, session: Session, announcement_service: AnnouncementService):
    announcement_id = _parse_announcement_id(callback)
    if not isinstance(session, CustomerSession) or announcement_id is None:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    announcement = await announcement_service.open(announcement_id, session.profile)
    if announcement is None:
        await callback.answer("❌ Объявление больше недоступно", show_alert=True)
        return
    await callback.message.edit_text(
        f"📢 {announcement.title}\n\n{announcement.content}", reply_markup=create_inbox_back_keyboard()
    )
    await callback.answer()
