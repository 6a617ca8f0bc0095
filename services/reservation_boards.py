"""Открытые у операторов карточки записей, обновляемые по часам"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Tuple

from aiogram import Bot

from database.repositories.reservation_repository import ReservationRepository
from keyboards.operator_keyboards import create_reservation_actions_keyboard
from services.cancellation_policy import is_time_passed

MessageKey = Tuple[int, int]


@dataclass
class OpenBoard:
    reservation_id: str
    salon_id: str


class ReservationBoards:
    """Когда время записи наступает, карточка получает кнопки завершения и неявки"""

    def __init__(self, bot: Bot):
        self.bot = bot
        self._boards: Dict[MessageKey, OpenBoard] = {}

    def track(self, chat_id: int, message_id: int, reservation_id: str, salon_id: str, shown_passed: bool):
        # Карточка с кнопками завершения больше не меняется
        if shown_passed:
            self.forget(chat_id, message_id)
            return
        self._boards[(chat_id, message_id)] = OpenBoard(reservation_id, salon_id)

    def forget(self, chat_id: int, message_id: int):
        self._boards.pop((chat_id, message_id), None)

    def __len__(self):
        return len(self._boards)

    async def on_tick(self, now: datetime):
        for key, board in list(self._boards.items()):
            reservation = await ReservationRepository.get(board.reservation_id)
            if reservation is None or reservation.status != "reserved":
                self._boards.pop(key, None)
                continue
            if not is_time_passed(reservation.reservation_date, reservation.reservation_time, now):
                continue

            chat_id, message_id = key
            try:
                await self.bot.edit_message_reply_markup(
                    chat_id=chat_id,
                    message_id=message_id,
                    reply_markup=create_reservation_actions_keyboard(reservation, time_passed=True),
                )
            except Exception as e:
                logging.warning(f"Cannot refresh reservation board {key}: {e}")
            self._boards.pop(key, None)
