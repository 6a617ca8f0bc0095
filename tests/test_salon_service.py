"""Тесты для карточки салона"""

import pytest

from database.repositories.reservation_repository import ReservationRepository
from database.repositories.salon_repository import SalonRepository
from services.errors import ValidationError
from services.salon_service import (
    SalonService,
    parse_deadline_hours,
    validate_opening_hours,
    validate_text_field,
)


class TestValidation:
    """Проверка полей карточки"""

    @pytest.mark.unit
    def test_name_required(self):
        with pytest.raises(ValidationError) as exc:
            validate_text_field("name", "  ")
        assert exc.value.field == "name"

    @pytest.mark.unit
    def test_name_too_long(self):
        with pytest.raises(ValidationError):
            validate_text_field("name", "x" * 101)

    @pytest.mark.unit
    @pytest.mark.parametrize("phone", ["03-1234-5678", "+81 90 1234 5678", "(03) 1234-5678"])
    def test_phone_valid(self, phone):
        assert validate_text_field("phone_number", phone) == phone

    @pytest.mark.unit
    @pytest.mark.parametrize("phone", ["call me", "12-34", "+81 90 1234 5678 9012 34"])
    def test_phone_invalid(self, phone):
        with pytest.raises(ValidationError) as exc:
            validate_text_field("phone_number", phone)
        assert exc.value.field == "phone_number"

    @pytest.mark.unit
    def test_dash_clears_optional_field(self):
        assert validate_text_field("address", "-") == ""

    @pytest.mark.unit
    def test_unknown_field(self):
        with pytest.raises(ValidationError):
            validate_text_field("salon_id", "x")

    @pytest.mark.unit
    def test_opening_hours_order(self):
        assert validate_opening_hours(True, "9:00", "18:30").start == "09:00"
        with pytest.raises(ValidationError):
            validate_opening_hours(True, "19:00", "10:00")
        with pytest.raises(ValidationError):
            validate_opening_hours(True, "abc", "10:00")

    @pytest.mark.unit
    def test_closed_day_keeps_times(self):
        hours = validate_opening_hours(False, "10:00", "19:00")
        assert hours.is_open is False
        assert hours.display() == "выходной"

    @pytest.mark.unit
    @pytest.mark.parametrize("text,minutes", [("0", 0), ("24", 1440), (" 168 ", 10080)])
    def test_deadline_hours(self, text, minutes):
        assert parse_deadline_hours(text) == minutes

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["", "1.5", "-1", "169"])
    def test_deadline_invalid(self, text):
        with pytest.raises(ValidationError) as exc:
            parse_deadline_hours(text)
        assert exc.value.field == "cancellation_deadline"


class TestSalonService:
    @pytest.mark.asyncio
    async def test_update_text(self, salon):
        assert await SalonService.update_text(salon.salon_id, "address", " Shibuya 1-2-3 ") == (True, "success")
        assert (await SalonRepository.get(salon.salon_id)).address == "Shibuya 1-2-3"

    @pytest.mark.asyncio
    async def test_update_text_missing_salon(self, init_database):
        assert await SalonService.update_text("nope", "address", "x") == (False, "not_found")

    @pytest.mark.asyncio
    async def test_opening_hours_one_day(self, salon):
        await SalonService.set_opening_hours(salon.salon_id, "saturday", True, "11:00", "17:00")
        await SalonService.set_opening_hours(salon.salon_id, "holiday", False)

        hours = (await SalonRepository.get(salon.salon_id)).opening_hours
        assert hours["saturday"].display() == "11:00-17:00"
        assert hours["holiday"].is_open is False
        assert hours["friday"].display() == "10:00-19:00"

    @pytest.mark.asyncio
    async def test_reopen_day_keeps_times(self, salon):
        await SalonService.set_opening_hours(salon.salon_id, "monday", True, "12:00", "20:00")
        await SalonService.set_opening_hours(salon.salon_id, "monday", False)
        await SalonService.set_opening_hours(salon.salon_id, "monday", True)

        assert (await SalonRepository.get(salon.salon_id)).opening_hours["monday"].display() == "12:00-20:00"

    @pytest.mark.asyncio
    async def test_unknown_day(self, salon):
        with pytest.raises(ValidationError):
            await SalonService.set_opening_hours(salon.salon_id, "someday", False)

    @pytest.mark.asyncio
    async def test_toggle_payment_method(self, salon):
        assert await SalonService.toggle_payment_method(salon.salon_id, "qr_code") is True
        assert await SalonService.toggle_payment_method(salon.salon_id, "cash") is True
        assert (await SalonRepository.get(salon.salon_id)).payment_methods == ["cash", "qr_code"]

        assert await SalonService.toggle_payment_method(salon.salon_id, "cash") is False
        assert (await SalonRepository.get(salon.salon_id)).payment_methods == ["qr_code"]

    @pytest.mark.asyncio
    async def test_unknown_payment_method(self, salon):
        assert await SalonService.toggle_payment_method(salon.salon_id, "bitcoin") is None

    @pytest.mark.asyncio
    async def test_deadline_for_new_reservations_only(
        self, procedures, salon, operator, customer, menu, march_slots
    ):
        await procedures.create_reservation_and_book_slot(
            customer.profile_id, operator.profile_id, salon.salon_id, menu.id, march_slots, "10:00"
        )
        assert await SalonService.set_cancellation_deadline(salon.salon_id, 120) == (True, "success")

        assert (await SalonRepository.get(salon.salon_id)).cancellation_deadline_minutes == 120
        reservations = await ReservationRepository.list_for_salon_date(salon.salon_id, march_slots)
        assert reservations[0].cancellation_deadline_minutes == 1440
