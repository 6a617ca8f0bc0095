"""Тесты для ScheduleService"""

from datetime import date

import pytest

from services.errors import ValidationError
from services.schedule_service import ScheduleService, validate_template
from tests.helpers import add_slots

TODAY = date(2025, 3, 1)


class TestValidateTemplate:
    """Проверка шаблона до обращения к БД"""

    @pytest.mark.unit
    def test_valid_template_normalized(self):
        days, start, end = validate_template([4, 0, 0], "9:00", "18:00", 60, 2025, 3, TODAY)
        assert days == [0, 4]
        assert (start, end) == ("09:00", "18:00")

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "weekdays,start,end,interval,year,month,field",
        [
            ([], "10:00", "18:00", 30, 2025, 3, "weekdays"),
            ([7], "10:00", "18:00", 30, 2025, 3, "weekdays"),
            ([0], "10:00", "10:00", 30, 2025, 3, "time_range"),
            ([0], "18:00", "10:00", 30, 2025, 3, "time_range"),
            ([0], "25:00", "26:00", 30, 2025, 3, "time_range"),
            ([0], "10:00", "18:00", 45, 2025, 3, "interval"),
            ([0], "10:00", "18:00", 30, 2025, 2, "month"),
            ([0], "10:00", "18:00", 30, 2025, 7, "month"),
        ],
    )
    def test_invalid_template(self, weekdays, start, end, interval, year, month, field):
        with pytest.raises(ValidationError) as exc:
            validate_template(weekdays, start, end, interval, year, month, TODAY)
        assert exc.value.field == field


class TestScheduleService:
    @pytest.fixture
    def schedule(self, procedures, availability, clock):
        return ScheduleService(procedures, availability, clock=clock)

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_add_template_refreshes_availability(self, schedule, availability, salon, operator):
        before = await availability.fetch_availability(salon.salon_id, operator.profile_id, date(2025, 4, 1))
        assert before.is_empty

        # Понедельники апреля 2025: 7, 14, 21, 28
        created = await schedule.add_template(
            salon.salon_id, operator.profile_id, [0], "10:00", "12:00", 30, 2025, 4
        )
        assert created == 16

        after = await availability.fetch_availability(salon.salon_id, operator.profile_id, date(2025, 4, 1))
        assert after.times_for("2025-04-07") == ["10:00", "10:30", "11:00", "11:30"]

        summary = await schedule.month_summary(salon.salon_id, operator.profile_id, 2025, 4)
        assert summary["2025-04-14"] == (4, 0)

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_add_template_invalid_does_not_write(self, schedule, salon, operator):
        with pytest.raises(ValidationError):
            await schedule.add_template(salon.salon_id, operator.profile_id, [], "10:00", "12:00", 30, 2025, 4)
        assert await schedule.month_summary(salon.salon_id, operator.profile_id, 2025, 4) == {}

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_delete_slot_from_other_salon(self, schedule, salon, operator):
        await add_slots(salon.salon_id, operator.profile_id, "2025-03-05", ["10:00"])
        slot = (await schedule.day_slots(salon.salon_id, operator.profile_id, "2025-03-05"))[0]

        assert await schedule.delete_slot(slot.id, "other") == (False, "not_found")
        assert await schedule.delete_slot(slot.id, salon.salon_id) == (True, "success")
        assert await schedule.day_slots(salon.salon_id, operator.profile_id, "2025-03-05") == []

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_delete_date(self, schedule, availability, salon, operator, march_slots):
        await availability.fetch_availability(salon.salon_id, operator.profile_id, date(2025, 3, 1))

        assert await schedule.delete_date(salon.salon_id, operator.profile_id, march_slots) == 3

        snapshot = await availability.fetch_availability(salon.salon_id, operator.profile_id, date(2025, 3, 1))
        assert snapshot.times_for(march_slots) == []
