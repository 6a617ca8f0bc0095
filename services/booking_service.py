"""Сервис управления бронированием"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import REMINDER_HOURS_BEFORE
from database.models import Reservation
from database.procedures import SalonProcedures
from database.queries import Database
from database.repositories.menu_repository import MenuRepository
from database.repositories.reservation_repository import ReservationRepository
from services.availability_service import AvailabilityService
from services.booking_flow import BookingFlow, FlowState, ReservationDraft
from services.cancellation_policy import is_time_passed
from services.errors import REFRESH_CODES
from services.notification_service import NotificationService
from utils.datetime_utils import parse_datetime
from utils.helpers import format_date_short, now_local
from utils.retry import with_timeout

# После этих кодов запись могла остаться в БД без напоминания
RECONCILE_CODES = ("timeout", "unknown_error", "slot_taken", "limit_exceeded")


class BookingService:
    """Сервис для работы с бронированием"""

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        bot,
        procedures: Optional[SalonProcedures] = None,
        availability: Optional[AvailabilityService] = None,
        notifications: Optional[NotificationService] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self.scheduler = scheduler
        self.bot = bot
        self.procedures = procedures or SalonProcedures(clock=clock)
        self.availability = availability or AvailabilityService(clock=clock)
        self.notifications = notifications or NotificationService(bot)
        self.clock = clock
        self._flows: Dict[str, BookingFlow] = {}

    # === ПОДТВЕРЖДЕНИЕ И ОТПРАВКА ===

    def get_flow(self, customer_id: str) -> Optional[BookingFlow]:
        return self._flows.get(customer_id)

    def open_confirmation(self, draft: ReservationDraft) -> BookingFlow:
        """Открыть сводку записи (ValidationError при неверных данных)"""
        flow = self._flows.get(draft.customer_id) or BookingFlow()
        flow.open(draft)
        self._flows[draft.customer_id] = flow
        return flow

    def close_confirmation(self, customer_id: str) -> bool:
        """Назад из сводки: без обращений к хранилищу"""
        flow = self._flows.get(customer_id)
        if flow is None:
            return True
        if not flow.back():
            return False
        self._flows.pop(customer_id, None)
        return True

    async def submit(self, customer_id: str) -> Tuple[bool, str]:
        """Подтвердить запись: проверка блокировки и одна атомарная операция

        Returns:
            Tuple[bool, str]: (success, code)
        """
        flow = self._flows.get(customer_id)
        if flow is None:
            return False, "no_confirmation"
        if not flow.begin_submit():
            if flow.state == FlowState.SUBMITTING:
                logging.info(f"Duplicate submit ignored for customer {customer_id}")
                return False, "in_flight"
            return False, "no_confirmation"

        draft = flow.draft
        success, code, reservation_id = False, "unknown_error", None
        try:
            allowed = await with_timeout(
                self.procedures.can_create_reservation(customer_id),
                label=f"can_create_reservation({customer_id})",
            )
            if not allowed:
                code = "locked_out"
            else:
                success, code, reservation_id = await with_timeout(
                    self.procedures.create_reservation_and_book_slot(
                        customer_id=draft.customer_id,
                        operator_id=draft.operator_id,
                        salon_id=draft.salon_id,
                        menu_id=draft.menu_id,
                        reservation_date=draft.reservation_date,
                        reservation_time=draft.reservation_time,
                        gel_removal=draft.gel_removal,
                        off_price=draft.off_price,
                        other_requests=draft.other_requests,
                    ),
                    label=f"create_reservation({customer_id})",
                )
        except asyncio.TimeoutError:
            code = "timeout"
        except Exception as e:
            logging.error(f"Error submitting reservation for {customer_id}: {e}")
            code = "unknown_error"
        finally:
            flow.finish(success, code)
            self._flows.pop(customer_id, None)

        if not success and code in RECONCILE_CODES:
            reservation_id = await self._find_unannounced(draft)
            if reservation_id:
                logging.info(f"Reservation {reservation_id} was committed despite '{code}'")
                success, code = True, "success"
                flow.finish(success, code)

        if success or code in REFRESH_CODES:
            self.availability.invalidate(draft.salon_id, draft.operator_id, draft.reservation_date)

        if success:
            await self._after_reservation_created(reservation_id, draft)
        else:
            logging.info(f"Reservation for customer {customer_id} not created: {code}")
        return success, code

    async def _find_unannounced(self, draft: ReservationDraft) -> Optional[str]:
        """Запись по черновику, сохраненная без напоминания и уведомления

        Создание могло завершиться в БД уже после таймаута; повторная
        попытка тогда получает slot_taken или limit_exceeded.
        """
        reservation = await ReservationRepository.find_reserved(
            draft.customer_id, draft.operator_id, draft.reservation_date, draft.reservation_time
        )
        if reservation is None:
            return None
        if self.scheduler.get_job(f"reminder_{reservation.reservation_id}") is not None:
            return None
        return reservation.reservation_id

    async def _after_reservation_created(self, reservation_id: str, draft: ReservationDraft):
        self._schedule_reminder(
            reservation_id,
            draft.reservation_date,
            draft.reservation_time,
            draft.customer_user_id,
            draft.menu_name,
        )
        await Database.log_event(
            draft.customer_user_id,
            "reservation_created",
            f"{draft.reservation_date} {draft.reservation_time}",
        )
        reservation = await ReservationRepository.get(reservation_id)
        if reservation:
            await self.notifications.notify_operator_new_reservation(reservation)

    # === ПЕРЕЗАПИСЬ ИЗ ИСТОРИИ ===

    async def check_rebook(self, customer_id: str, menu_id: int) -> Tuple[bool, str]:
        """Можно ли начать новую запись на то же меню"""
        now = self.clock()
        reservations = await ReservationRepository.list_for_customer(customer_id)
        if any(r.status == "reserved" and r.starts_at() >= now for r in reservations):
            return False, "has_active_reservation"

        menu = await MenuRepository.get(menu_id)
        if not menu or not menu.is_active:
            return False, "menu_unavailable"
        return True, "success"

    async def get_history(self, customer_id: str) -> Tuple[List[Reservation], List[Reservation]]:
        """Записи клиента: (предстоящие по возрастанию, прошедшие новые первыми)"""
        now = self.clock()
        reservations = await ReservationRepository.list_for_customer(customer_id)
        upcoming = [r for r in reservations if r.status == "reserved" and r.starts_at() >= now]
        upcoming_ids = {r.reservation_id for r in upcoming}
        past = [r for r in reservations if r.reservation_id not in upcoming_ids]
        upcoming.sort(key=lambda r: (r.reservation_date, r.reservation_time))
        return upcoming, past

    # === ОТМЕНА И СТАТУСЫ ===

    async def cancel_reservation(
        self, reservation_id: str, actor_profile_id: str, actor_kind: str, actor_user_id: int
    ) -> Tuple[bool, str]:
        """Отмена записи клиентом или оператором"""
        reservation = await ReservationRepository.get(reservation_id)
        try:
            success, code = await with_timeout(
                self.procedures.cancel_reservation_and_free_slot(
                    reservation_id, actor_profile_id, actor_kind
                ),
                label=f"cancel_reservation({reservation_id})",
            )
        except asyncio.TimeoutError:
            return False, "timeout"
        except Exception as e:
            logging.error(f"Error cancelling reservation {reservation_id}: {e}")
            return False, "unknown_error"

        if not success:
            logging.info(f"Reservation {reservation_id} not canceled: {code}")
            return False, code

        self._remove_job_safe(f"reminder_{reservation_id}")
        await Database.log_event(actor_user_id, "reservation_canceled", reservation_id)

        if reservation:
            self.availability.invalidate(
                reservation.salon_id, reservation.operator_id, reservation.reservation_date
            )
            if actor_kind == "customer":
                await self.notifications.notify_operator_cancellation(reservation)
            else:
                await self.notifications.notify_customer_cancellation(reservation)
        return True, "success"

    async def mark_reservation(
        self, reservation_id: str, salon_id: str, status: str, actor_user_id: int
    ) -> Tuple[bool, str]:
        """Завершить запись или отметить неявку (после начала записи)"""
        reservation = await ReservationRepository.get(reservation_id)
        if reservation is None or reservation.salon_id != salon_id:
            return False, "not_found"
        if reservation.status != "reserved":
            return False, "not_cancelable"
        if not is_time_passed(reservation.reservation_date, reservation.reservation_time, self.clock()):
            return False, "too_early"

        if not await ReservationRepository.set_status(reservation_id, salon_id, status):
            return False, "unknown_error"

        self._remove_job_safe(f"reminder_{reservation_id}")
        await Database.log_event(actor_user_id, f"reservation_{status}", reservation_id)
        return True, "success"

    # === НАПОМИНАНИЯ ===

    def _remove_job_safe(self, job_id: str):
        """Удаление задачи из scheduler, если она есть"""
        if self.scheduler.get_job(job_id):
            self.scheduler.remove_job(job_id)

    def _reminder_time(self, starts_at: datetime, now: datetime) -> Optional[datetime]:
        """Когда напомнить: за REMINDER_HOURS_BEFORE, иначе за 2 или 1 час"""
        for hours in (REMINDER_HOURS_BEFORE, 2, 1):
            run_date = starts_at - timedelta(hours=hours)
            if run_date > now:
                return run_date
        return None

    def _schedule_reminder(
        self, reservation_id: str, date_str: str, time_str: str, user_id: int, menu_name: str = ""
    ) -> bool:
        """Планирование напоминания клиенту"""
        try:
            starts_at = parse_datetime(date_str, time_str)
            run_date = self._reminder_time(starts_at, self.clock())
            if run_date is None:
                return False
            self.scheduler.add_job(
                self._send_reminder,
                "date",
                run_date=run_date,
                args=[user_id, date_str, time_str, menu_name],
                id=f"reminder_{reservation_id}",
                replace_existing=True,
            )
            return True
        except Exception as e:
            logging.error(f"Error scheduling reminder for {reservation_id}: {e}")
            return False

    async def restore_reminders(self) -> int:
        """Восстановить напоминания после рестарта"""
        today = self.clock().date().isoformat()
        reservations = await ReservationRepository.list_reserved_from(today)

        restored_count = 0
        for reservation in reservations:
            if not reservation.customer_user_id:
                continue
            if self._schedule_reminder(
                reservation.reservation_id,
                reservation.reservation_date,
                reservation.reservation_time,
                reservation.customer_user_id,
                reservation.menu_name or "",
            ):
                restored_count += 1

        logging.info(f"Restored {restored_count} reminders")
        return restored_count

    async def _send_reminder(self, user_id: int, date_str: str, time_str: str, menu_name: str = ""):
        """Отправка напоминания"""
        try:
            await self.bot.send_message(
                user_id,
                "⏰ НАПОМИНАНИЕ!\n\n"
                "У вас скоро запись:\n"
                f"📅 {format_date_short(date_str)}\n"
                f"🕒 {time_str}\n"
                f"💅 {menu_name or '—'}\n\n"
                "Если нужно отменить → '📋 Мои записи'",
            )
            await Database.log_event(user_id, "reminder_sent", f"{date_str} {time_str}")
        except Exception as e:
            logging.error(f"Error sending reminder: {e}")
