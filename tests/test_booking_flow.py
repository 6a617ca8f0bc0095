"""Тесты подтверждения и отправки записи"""

import asyncio

import pytest

from services.booking_flow import BookingFlow, FlowState, ReservationDraft
from services.booking_service import BookingService
from services.errors import SalonBotError, ValidationError


def make_draft(**overrides) -> ReservationDraft:
    values = dict(
        customer_id="c1",
        customer_user_id=2001,
        salon_id="s1",
        operator_id="op1",
        menu_id=1,
        reservation_date="2025-03-05",
        reservation_time="10:30",
        menu_name="Гель-маникюр",
        operator_name="Aya",
        duration_minutes=90,
        total_price=7500,
    )
    values.update(overrides)
    return ReservationDraft(**values)


class TestBookingFlow:
    """Машина состояний подтверждения"""

    @pytest.mark.unit
    def test_open_validates_draft(self):
        flow = BookingFlow()
        with pytest.raises(ValidationError) as exc:
            flow.open(make_draft(reservation_time=""))
        assert exc.value.field == "reservation_time"
        assert flow.state == FlowState.IDLE

    @pytest.mark.unit
    def test_long_requests_rejected(self):
        flow = BookingFlow()
        flow.open(make_draft())
        with pytest.raises(ValidationError):
            flow.update_requests("x" * 201)
        flow.update_requests("x" * 200)
        assert len(flow.draft.other_requests) == 200

    @pytest.mark.unit
    def test_begin_submit_only_once(self):
        flow = BookingFlow()
        flow.open(make_draft())
        assert flow.begin_submit() is True
        assert flow.begin_submit() is False
        assert flow.is_submitting

    @pytest.mark.unit
    def test_back_blocked_while_submitting(self):
        flow = BookingFlow()
        flow.open(make_draft())
        flow.begin_submit()
        assert flow.back() is False
        with pytest.raises(SalonBotError):
            flow.open(make_draft())

    @pytest.mark.unit
    def test_back_from_confirming(self):
        flow = BookingFlow()
        flow.open(make_draft())
        assert flow.back() is True
        assert flow.state == FlowState.IDLE
        assert flow.draft is None

    @pytest.mark.unit
    def test_finish_sets_result(self):
        flow = BookingFlow()
        flow.open(make_draft())
        flow.begin_submit()
        flow.finish(False, "slot_taken")
        assert flow.state == FlowState.FAILED
        assert flow.result_code == "slot_taken"


class FakeProcedures:
    """Считает вызовы и держит запрос, пока тест не отпустит"""

    def __init__(self, result=(True, "success", "r1"), locked=False):
        self.result = result
        self.locked = locked
        self.create_calls = 0
        self.release = asyncio.Event()

    async def can_create_reservation(self, customer_id):
        return not self.locked

    async def create_reservation_and_book_slot(self, **kwargs):
        self.create_calls += 1
        await self.release.wait()
        return self.result


class TestSubmit:
    """BookingService.submit"""

    @pytest.fixture
    def service(self, mock_scheduler, mock_bot, availability, clock):
        def _make(procedures):
            return BookingService(
                mock_scheduler, mock_bot, procedures=procedures, availability=availability, clock=clock
            )

        return _make

    @pytest.mark.asyncio
    async def test_double_submit_calls_create_once(self, service):
        procedures = FakeProcedures(result=(False, "slot_taken", None))
        booking_service = service(procedures)
        booking_service.open_confirmation(make_draft())

        first = asyncio.create_task(booking_service.submit("c1"))
        await asyncio.sleep(0)
        second = await booking_service.submit("c1")

        assert second == (False, "in_flight")
        procedures.release.set()
        assert await first == (False, "slot_taken")
        assert procedures.create_calls == 1

    @pytest.mark.asyncio
    async def test_submit_without_confirmation(self, service):
        booking_service = service(FakeProcedures())
        assert await booking_service.submit("c1") == (False, "no_confirmation")

    @pytest.mark.asyncio
    async def test_locked_out_skips_create(self, service):
        procedures = FakeProcedures(locked=True)
        booking_service = service(procedures)
        booking_service.open_confirmation(make_draft())

        assert await booking_service.submit("c1") == (False, "locked_out")
        assert procedures.create_calls == 0
        assert booking_service.get_flow("c1") is None

    @pytest.mark.asyncio
    async def test_timeout_maps_to_code(self, service, monkeypatch):
        procedures = FakeProcedures()
        booking_service = service(procedures)
        booking_service.open_confirmation(make_draft())

        async def fast_timeout(call, timeout=0.01, label="operation"):
            return await asyncio.wait_for(call, timeout=0.01)

        monkeypatch.setattr("services.booking_service.with_timeout", fast_timeout)
        assert await booking_service.submit("c1") == (False, "timeout")

    @pytest.mark.asyncio
    async def test_close_confirmation_has_no_side_effects(self, service):
        procedures = FakeProcedures()
        booking_service = service(procedures)
        booking_service.open_confirmation(make_draft())

        assert booking_service.close_confirmation("c1") is True
        assert booking_service.get_flow("c1") is None
        assert procedures.create_calls == 0
