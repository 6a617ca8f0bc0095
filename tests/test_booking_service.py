"""Тесты для BookingService

Критические сценарии:
- Запись от выбора слота до подтверждения
- Перезагрузка доступности после записи и отмены
- Отмена клиентом и оператором
- Завершение и неявка
- Планирование и восстановление напоминаний
"""

import asyncio
from datetime import date

import pytest

from database.repositories.reservation_repository import ReservationRepository
from services.calendar_state import CalendarSelection
from tests.helpers import draft_for, local_dt


class TestEndToEnd:
    """Полный путь клиента"""

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_booked_time_disappears_after_refetch(
        self, booking_service, clock, salon, operator, customer, menu, march_slots
    ):
        selection = CalendarSelection()
        selection.select_operator(operator.profile_id, clock().date())
        snapshot = await booking_service.availability.fetch_availability(
            salon.salon_id, operator.profile_id, date(2025, 3, 1)
        )
        selection.apply_snapshot(snapshot)

        selection.pick_date("2025-03-05", clock().date())
        assert selection.available_times() == ["10:00", "10:30", "14:00"]
        selection.pick_time("10:30")
        assert selection.can_confirm()

        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))
        success, code = await booking_service.submit(customer.profile_id)
        assert (success, code) == (True, "success")

        fresh = await booking_service.availability.fetch_availability(
            salon.salon_id, operator.profile_id, date(2025, 3, 1)
        )
        assert fresh.times_for("2025-03-05") == ["10:00", "14:00"]
        selection.apply_snapshot(fresh)
        assert selection.selected_time is None

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_success_schedules_reminder_and_notifies_operator(
        self, booking_service, mock_scheduler, mock_bot, salon, operator, customer, menu, march_slots
    ):
        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))
        await booking_service.submit(customer.profile_id)

        reservations = await ReservationRepository.list_for_customer(customer.profile_id)
        job = mock_scheduler.get_job(f"reminder_{reservations[0].reservation_id}")
        assert job is not None
        assert job["run_date"] == local_dt(2025, 3, 4, 10, 30)
        assert any(msg["chat_id"] == operator.user_id for msg in mock_bot.sent_messages)

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_taken_slot_invalidates_cache(
        self, booking_service, salon, operator, customer, menu, march_slots
    ):
        availability = booking_service.availability
        await availability.fetch_availability(salon.salon_id, operator.profile_id, date(2025, 3, 1))

        # Слот занимает другой клиент напрямую через процедуру
        from database.repositories.profile_repository import ProfileRepository

        other = await ProfileRepository.register_customer(2002, "Rin", salon.salon_id)
        await booking_service.procedures.create_reservation_and_book_slot(
            other.profile_id, operator.profile_id, salon.salon_id, menu.id, "2025-03-05", "10:30"
        )

        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))
        assert await booking_service.submit(customer.profile_id) == (False, "slot_taken")

        snapshot = await availability.fetch_availability(salon.salon_id, operator.profile_id, date(2025, 3, 1))
        assert not snapshot.has_time("2025-03-05", "10:30")


class TestLateCommit:
    """Запись сохранилась в БД, но ответ пришел после таймаута"""

    @pytest.fixture
    def late_create(self, monkeypatch):
        async def committed_then_timeout(call, timeout=0.01, label="operation"):
            result = await call
            if label.startswith("create_reservation"):
                raise asyncio.TimeoutError()
            return result

        monkeypatch.setattr("services.booking_service.with_timeout", committed_then_timeout)

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_timeout_after_commit_reported_as_success(
        self, late_create, booking_service, mock_scheduler, mock_bot, salon, operator, customer, menu, march_slots
    ):
        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))

        assert await booking_service.submit(customer.profile_id) == (True, "success")

        reservations = await ReservationRepository.list_for_customer(customer.profile_id)
        assert len(reservations) == 1
        assert mock_scheduler.get_job(f"reminder_{reservations[0].reservation_id}") is not None
        assert any(msg["chat_id"] == operator.user_id for msg in mock_bot.sent_messages)

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_retry_finds_unannounced_reservation(
        self, booking_service, mock_scheduler, mock_bot, procedures, salon, operator, customer, menu, march_slots
    ):
        # Процедура завершилась, а напоминание и уведомление не отправлены
        await procedures.create_reservation_and_book_slot(
            customer.profile_id, operator.profile_id, salon.salon_id, menu.id, "2025-03-05", "10:30"
        )

        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))
        assert await booking_service.submit(customer.profile_id) == (True, "success")

        reservations = await ReservationRepository.list_for_customer(customer.profile_id)
        assert len(reservations) == 1
        assert mock_scheduler.get_job(f"reminder_{reservations[0].reservation_id}") is not None
        assert len([m for m in mock_bot.sent_messages if m["chat_id"] == operator.user_id]) == 1

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_announced_reservation_not_repeated(
        self, booking_service, mock_bot, salon, operator, customer, menu, march_slots
    ):
        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))
        assert await booking_service.submit(customer.profile_id) == (True, "success")
        sent = len(mock_bot.sent_messages)

        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))
        assert await booking_service.submit(customer.profile_id) == (False, "limit_exceeded")
        assert len(mock_bot.sent_messages) == sent


class TestHistoryAndRebook:
    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_history_split(self, booking_service, clock, salon, operator, customer, menu, march_slots):
        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))
        await booking_service.submit(customer.profile_id)

        upcoming, past = await booking_service.get_history(customer.profile_id)
        assert len(upcoming) == 1 and not past

        clock.current = local_dt(2025, 3, 5, 12, 0)
        upcoming, past = await booking_service.get_history(customer.profile_id)
        assert not upcoming and len(past) == 1

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_rebook_blocked_with_active_reservation(
        self, booking_service, salon, operator, customer, menu, march_slots
    ):
        assert await booking_service.check_rebook(customer.profile_id, menu.id) == (True, "success")

        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))
        await booking_service.submit(customer.profile_id)
        assert await booking_service.check_rebook(customer.profile_id, menu.id) == (
            False,
            "has_active_reservation",
        )


class TestCancelAndMark:
    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_customer_cancel_removes_reminder(
        self, booking_service, mock_scheduler, mock_bot, salon, operator, customer, menu, march_slots
    ):
        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))
        await booking_service.submit(customer.profile_id)
        reservation = (await ReservationRepository.list_for_customer(customer.profile_id))[0]

        success, code = await booking_service.cancel_reservation(
            reservation.reservation_id, customer.profile_id, "customer", customer.user_id
        )

        assert (success, code) == (True, "success")
        assert mock_scheduler.get_job(f"reminder_{reservation.reservation_id}") is None
        snapshot = await booking_service.availability.fetch_availability(
            salon.salon_id, operator.profile_id, date(2025, 3, 1)
        )
        assert snapshot.has_time("2025-03-05", "10:30")

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_mark_requires_start_time(
        self, booking_service, clock, salon, operator, customer, menu, march_slots
    ):
        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))
        await booking_service.submit(customer.profile_id)
        reservation = (await ReservationRepository.list_for_customer(customer.profile_id))[0]

        assert await booking_service.mark_reservation(
            reservation.reservation_id, salon.salon_id, "completed", operator.user_id
        ) == (False, "too_early")

        clock.current = local_dt(2025, 3, 5, 10, 30)
        assert await booking_service.mark_reservation(
            reservation.reservation_id, salon.salon_id, "completed", operator.user_id
        ) == (True, "success")

        updated = await ReservationRepository.get(reservation.reservation_id)
        assert updated.status == "completed"
        assert await booking_service.mark_reservation(
            reservation.reservation_id, salon.salon_id, "noshow", operator.user_id
        ) == (False, "not_cancelable")


class TestReminders:
    @pytest.mark.unit
    def test_reminder_falls_back_to_shorter_offsets(self, booking_service, clock):
        starts_at = local_dt(2025, 3, 1, 13, 0)
        assert booking_service._reminder_time(starts_at, clock()) == local_dt(2025, 3, 1, 11, 0)
        assert booking_service._reminder_time(local_dt(2025, 3, 1, 10, 30), clock()) is None

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_restore_reminders(
        self, booking_service, mock_scheduler, salon, operator, customer, menu, march_slots
    ):
        booking_service.open_confirmation(draft_for(salon, operator, customer, menu))
        await booking_service.submit(customer.profile_id)
        mock_scheduler.jobs.clear()

        assert await booking_service.restore_reminders() == 1
        assert len(mock_scheduler.jobs) == 1

    @pytest.mark.asyncio
    async def test_send_reminder(self, booking_service, mock_bot):
        await booking_service._send_reminder(2001, "2025-03-05", "10:30", "Гель-маникюр")
        assert mock_bot.sent_messages[0]["chat_id"] == 2001
        assert "НАПОМИНАНИЕ" in mock_bot.sent_messages[0]["text"]
