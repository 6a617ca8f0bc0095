"""Объявления салона: черновик, публикация с рассылкой, прочтения"""

import logging
from typing import List, Optional, Tuple

from config import ANNOUNCEMENT_CONTENT_MAX_LENGTH, ANNOUNCEMENT_TITLE_MAX_LENGTH
from database.models import Announcement, AnnouncementRead, CustomerProfile
from database.repositories.announcement_repository import AnnouncementRepository
from database.repositories.profile_repository import ProfileRepository
from services.errors import ValidationError
from services.notification_service import NotificationService


def validate_announcement(title: str, content: str) -> Tuple[str, str]:
    title = (title or "").strip()
    content = (content or "").strip()
    if not title:
        raise ValidationError("title", "Введите заголовок")
    if len(title) > ANNOUNCEMENT_TITLE_MAX_LENGTH:
        raise ValidationError("title", f"Заголовок не длиннее {ANNOUNCEMENT_TITLE_MAX_LENGTH} символов")
    if not content:
        raise ValidationError("content", "Введите текст объявления")
    if len(content) > ANNOUNCEMENT_CONTENT_MAX_LENGTH:
        raise ValidationError(
            "content", f"Текст не длиннее {ANNOUNCEMENT_CONTENT_MAX_LENGTH} символов"
        )
    return title, content


class AnnouncementService:
    """Сервис объявлений для клиентов салона"""

    def __init__(self, notifications: NotificationService):
        self.notifications = notifications

    async def _check_target(self, salon_id: str, customer_id: Optional[str]):
        if customer_id is None:
            return
        customer = await ProfileRepository.get(customer_id)
        if not isinstance(customer, CustomerProfile) or customer.salon_id != salon_id:
            raise ValidationError("customer_id", "Клиент не найден")

    async def _own(self, announcement_id: int, salon_id: str) -> Optional[Announcement]:
        announcement = await AnnouncementRepository.get(announcement_id)
        if announcement is None or announcement.salon_id != salon_id:
            return None
        return announcement

    async def create(
        self,
        salon_id: str,
        operator_id: str,
        title: str,
        content: str,
        customer_id: Optional[str] = None,
    ) -> Optional[int]:
        """Создать неопубликованное объявление

        Raises:
            ValidationError: пустой или слишком длинный текст, чужой клиент
        """
        title, content = validate_announcement(title, content)
        await self._check_target(salon_id, customer_id)
        return await AnnouncementRepository.create(
            Announcement(
                id=None,
                salon_id=salon_id,
                operator_id=operator_id,
                title=title,
                content=content,
                customer_id=customer_id,
            )
        )

    async def edit(
        self,
        announcement_id: int,
        salon_id: str,
        title: str,
        content: str,
        customer_id: Optional[str] = None,
    ) -> Tuple[bool, str]:
        """Raises: ValidationError"""
        title, content = validate_announcement(title, content)
        await self._check_target(salon_id, customer_id)
        if await self._own(announcement_id, salon_id) is None:
            return False, "not_found"
        if not await AnnouncementRepository.update_text(
            announcement_id, salon_id, title, content, customer_id
        ):
            return False, "unknown_error"
        return True, "success"

    async def toggle_publish(self, announcement_id: int, salon_id: str) -> Tuple[bool, str]:
        """Опубликовать (с рассылкой адресатам) или снять с публикации

        Returns:
            Tuple[bool, str]: (success, "published" | "unpublished" | код ошибки)
        """
        announcement = await self._own(announcement_id, salon_id)
        if announcement is None:
            return False, "not_found"

        publish = not announcement.is_published
        if not await AnnouncementRepository.set_published(announcement_id, salon_id, publish):
            return False, "unknown_error"
        if not publish:
            return True, "unpublished"

        recipients = await self.recipients(announcement)
        await self.notifications.notify_announcement(
            [customer.user_id for customer in recipients], announcement
        )
        logging.info(f"Announcement {announcement_id} sent to {len(recipients)} customers")
        return True, "published"

    async def delete(self, announcement_id: int, salon_id: str) -> Tuple[bool, str]:
        if await self._own(announcement_id, salon_id) is None:
            return False, "not_found"
        if not await AnnouncementRepository.delete(announcement_id, salon_id):
            return False, "unknown_error"
        return True, "success"

    async def get(self, announcement_id: int, salon_id: str) -> Optional[Announcement]:
        return await self._own(announcement_id, salon_id)

    async def list_for_salon(self, salon_id: str) -> List[Announcement]:
        return await AnnouncementRepository.list_for_salon(salon_id)

    async def recipients(self, announcement: Announcement) -> List[CustomerProfile]:
        # Объявления видят клиенты, привязанные к салону сейчас
        customers = [
            c for c in await ProfileRepository.list_customers(announcement.salon_id)
            if c.salon_id == announcement.salon_id
        ]
        if announcement.customer_id:
            customers = [c for c in customers if c.profile_id == announcement.customer_id]
        return customers

    async def read_status(
        self, announcement_id: int, salon_id: str
    ) -> Optional[Tuple[Announcement, List[AnnouncementRead]]]:
        announcement = await self._own(announcement_id, salon_id)
        if announcement is None:
            return None
        return announcement, await AnnouncementRepository.read_status(announcement)

    # === КЛИЕНТ ===

    async def inbox(self, customer: CustomerProfile) -> List[Announcement]:
        if not customer.salon_id:
            return []
        return await AnnouncementRepository.list_for_customer(customer.profile_id, customer.salon_id)

    async def open(self, announcement_id: int, customer: CustomerProfile) -> Optional[Announcement]:
        """Открыть объявление клиентом и отметить прочтение"""
        announcement = await AnnouncementRepository.get(announcement_id)
        if (
            announcement is None
            or not announcement.is_published
            or announcement.salon_id != customer.salon_id
            or announcement.customer_id not in (None, customer.profile_id)
        ):
            return None
        await AnnouncementRepository.mark_read(announcement_id, customer.profile_id)
        announcement.is_read = True
        return announcement
