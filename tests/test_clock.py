"""Тесты минутных часов и карточек записей у операторов"""

import pytest

from database.repositories.reservation_repository import ReservationRepository
from handlers.operator_handlers import cancel_reservation_request, customer_detail, reservations_for_date
from services.clock import MinuteClock
from services.reservation_boards import ReservationBoards
from services.session import OperatorSession
from tests.helpers import local_dt


class TestMinuteClock:
    @pytest.mark.unit
    def test_start_and_stop(self, mock_scheduler, clock):
        minute_clock = MinuteClock(mock_scheduler, clock=clock, interval_seconds=60)

        minute_clock.start()
        job = mock_scheduler.get_job(MinuteClock.JOB_ID)
        assert job["trigger"] == "interval"
        assert job["trigger_args"]["seconds"] == 60

        minute_clock.stop()
        assert mock_scheduler.get_job(MinuteClock.JOB_ID) is None

    @pytest.mark.asyncio
    async def test_tick_notifies_listeners(self, mock_scheduler, clock):
        minute_clock = MinuteClock(mock_scheduler, clock=clock)
        seen = []

        async def failing(now):
            raise RuntimeError("boom")

        async def listener(now):
            seen.append(now)

        minute_clock.subscribe(failing)
        minute_clock.subscribe(listener)
        clock.advance(minutes=1)
        await minute_clock.tick()

        assert minute_clock.now() == local_dt(2025, 3, 1, 10, 1)
        assert seen == [local_dt(2025, 3, 1, 10, 1)]


class TestReservationBoards:
    """Кнопки завершения и неявки появляются после начала записи"""

    async def _reserve(self, procedures, salon, operator, customer, menu):
        _, _, reservation_id = await procedures.create_reservation_and_book_slot(
            customer.profile_id, operator.profile_id, salon.salon_id, menu.id, "2025-03-05", "10:30"
        )
        return reservation_id

    @staticmethod
    def _callbacks(markup):
        return [button.callback_data for row in markup.inline_keyboard for button in row]

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_board_updated_once_time_passes(
        self, mock_bot, procedures, salon, operator, customer, menu, march_slots
    ):
        reservation_id = await self._reserve(procedures, salon, operator, customer, menu)
        boards = ReservationBoards(mock_bot)
        boards.track(operator.user_id, 42, reservation_id, salon.salon_id, shown_passed=False)

        await boards.on_tick(local_dt(2025, 3, 5, 10, 29))
        assert mock_bot.edited_markups == []

        await boards.on_tick(local_dt(2025, 3, 5, 10, 30))
        await boards.on_tick(local_dt(2025, 3, 5, 10, 31))

        assert len(mock_bot.edited_markups) == 1
        edited = mock_bot.edited_markups[0]
        assert (edited["chat_id"], edited["message_id"]) == (operator.user_id, 42)
        assert f"ores_complete:{reservation_id}" in self._callbacks(edited["reply_markup"])

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_canceled_reservation_forgotten(
        self, mock_bot, procedures, salon, operator, customer, menu, march_slots
    ):
        reservation_id = await self._reserve(procedures, salon, operator, customer, menu)
        boards = ReservationBoards(mock_bot)
        boards.track(operator.user_id, 42, reservation_id, salon.salon_id, shown_passed=False)

        await procedures.cancel_reservation_and_free_slot(reservation_id, operator.profile_id, "operator")
        await boards.on_tick(local_dt(2025, 3, 5, 11, 0))

        assert len(boards) == 0
        assert mock_bot.edited_markups == []
        assert (await ReservationRepository.get(reservation_id)).status == "canceled"

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_board_dropped_after_update(
        self, mock_bot, procedures, salon, operator, customer, menu, march_slots
    ):
        reservation_id = await self._reserve(procedures, salon, operator, customer, menu)
        boards = ReservationBoards(mock_bot)
        boards.track(operator.user_id, 42, reservation_id, salon.salon_id, shown_passed=False)

        await boards.on_tick(local_dt(2025, 3, 5, 10, 31))

        assert len(boards) == 0
        assert len(mock_bot.edited_markups) == 1

    @pytest.mark.unit
    def test_passed_board_not_tracked(self, mock_bot):
        boards = ReservationBoards(mock_bot)
        boards.track(1001, 42, "r1", "s1", shown_passed=False)
        boards.track(1001, 42, "r1", "s1", shown_passed=True)
        assert len(boards) == 0


class TestBoardsLeaveScreen:
    """Карточка, замененная другим экраном, больше не обновляется"""

    @pytest.fixture
    async def tracked(self, mock_bot, procedures, salon, operator, customer, menu, march_slots):
        _, _, reservation_id = await procedures.create_reservation_and_book_slot(
            customer.profile_id, operator.profile_id, salon.salon_id, menu.id, "2025-03-05", "10:30"
        )
        boards = ReservationBoards(mock_bot)
        # mock_callback_query: chat.id = user_id, message_id = 1
        boards.track(operator.user_id, 1, reservation_id, salon.salon_id, shown_passed=False)
        return boards, reservation_id

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_back_to_reservation_list(self, tracked, mock_bot, mock_callback_query, operator):
        boards, _ = tracked
        callback = mock_callback_query(data="ores:2025-03-05", user_id=operator.user_id)

        await reservations_for_date(callback, OperatorSession(profile=operator), boards)
        await boards.on_tick(local_dt(2025, 3, 5, 10, 31))

        callback.message.edit_text.assert_awaited_once()
        assert len(boards) == 0
        assert mock_bot.edited_markups == []

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_cancel_prompt(self, tracked, mock_bot, mock_callback_query, operator):
        boards, reservation_id = tracked
        callback = mock_callback_query(data=f"ores_cancel:{reservation_id}", user_id=operator.user_id)

        await cancel_reservation_request(callback, OperatorSession(profile=operator), boards)
        await boards.on_tick(local_dt(2025, 3, 5, 10, 31))

        assert len(boards) == 0
        assert mock_bot.edited_markups == []

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_customer_card(self, tracked, mock_bot, mock_callback_query, operator, customer):
        boards, _ = tracked
        callback = mock_callback_query(data=f"ocust:{customer.profile_id}", user_id=operator.user_id)

        await customer_detail(callback, OperatorSession(profile=operator), boards)
        await boards.on_tick(local_dt(2025, 3, 5, 10, 31))

        assert "Mika" in callback.message.edit_text.await_args.args[0]
        assert len(boards) == 0
        assert mock_bot.edited_markups == []
