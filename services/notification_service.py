"""Сервис уведомлений"""

import logging
from typing import List

from aiogram import Bot

from database.models import Announcement, Reservation
from utils.helpers import format_date_short


class NotificationService:
    """Сервис для отправки уведомлений операторам и клиентам"""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def _send(self, user_id: int, text: str):
        try:
            await self.bot.send_message(user_id, text)
        except Exception as e:
            logging.error(f"Failed to notify user {user_id}: {e}")

    async def notify_operator_new_reservation(self, reservation: Reservation):
        """Уведомление мастеру о новой записи"""
        if not reservation.operator_user_id:
            return
        text = (
            "🔔 Новая запись\n\n"
            f"📅 {format_date_short(reservation.reservation_date)} в {reservation.reservation_time}\n"
            f"👤 {reservation.customer_name or 'Клиент'}\n"
            f"💅 {reservation.menu_name or '—'}"
        )
        if reservation.other_requests:
            text += f"\n📝 {reservation.other_requests}"
        await self._send(reservation.operator_user_id, text)

    async def notify_operator_cancellation(self, reservation: Reservation):
        """Уведомление мастеру об отмене клиентом"""
        if not reservation.operator_user_id:
            return
        text = (
            "❌ Отмена\n\n"
            f"📅 {format_date_short(reservation.reservation_date)} в {reservation.reservation_time}\n"
            f"👤 {reservation.customer_name or 'Клиент'}"
        )
        await self._send(reservation.operator_user_id, text)

    async def notify_customer_cancellation(self, reservation: Reservation):
        """Уведомление клиенту об отмене салоном"""
        if not reservation.customer_user_id:
            return
        text = (
            "❌ Ваша запись отменена салоном\n\n"
            f"📅 {format_date_short(reservation.reservation_date)} в {reservation.reservation_time}\n"
            f"💅 {reservation.menu_name or '—'}\n\n"
            "Вы можете выбрать другое время в разделе записи."
        )
        await self._send(reservation.customer_user_id, text)

    async def notify_announcement(self, user_ids: List[int], announcement: Announcement) -> int:
        """Рассылка опубликованного объявления, вернуть число доставленных"""
        text = f"📢 {announcement.title}\n\n{announcement.content}\n\n🔔 Все объявления → '🔔 Уведомления'"
        delivered = 0
        for user_id in user_ids:
            try:
                await self.bot.send_message(user_id, text)
                delivered += 1
            except Exception as e:
                logging.error(f"Failed to send announcement {announcement.id} to {user_id}: {e}")
        return delivered
