"""Тесты правил отмены и блокировки за частые отмены"""

from datetime import timedelta

import pytest

from config import BOOKING_LOCKOUT_HOURS, CANCEL_ABUSE_WINDOW_MINUTES
from database.models import Reservation
from services.cancellation_policy import (
    cancellation_deadline,
    is_cancelable,
    is_locked_out,
    is_time_passed,
    lockout_until,
)
from tests.helpers import local_dt


def make_reservation(status="reserved", deadline=1440, date_str="2025-01-10", time_str="10:00"):
    return Reservation(
        reservation_id="r1",
        customer_id="c1",
        operator_id="o1",
        salon_id="s1",
        menu_id=1,
        reservation_date=date_str,
        reservation_time=time_str,
        status=status,
        cancellation_deadline_minutes=deadline,
    )


class TestCancellationDeadline:
    """Дедлайн онлайн-отмены"""

    @pytest.mark.unit
    def test_deadline_is_start_minus_minutes(self):
        reservation = make_reservation(deadline=1440)
        assert cancellation_deadline(reservation) == local_dt(2025, 1, 9, 10, 0)

    @pytest.mark.unit
    def test_missing_deadline_uses_default(self):
        reservation = make_reservation(deadline=None)
        assert cancellation_deadline(reservation) == local_dt(2025, 1, 9, 10, 0)

    @pytest.mark.unit
    def test_cancelable_one_second_before_deadline(self):
        reservation = make_reservation()
        assert is_cancelable(reservation, local_dt(2025, 1, 9, 9, 59, 59)) is True

    @pytest.mark.unit
    def test_not_cancelable_exactly_at_deadline(self):
        reservation = make_reservation()
        assert is_cancelable(reservation, local_dt(2025, 1, 9, 10, 0, 0)) is False

    @pytest.mark.unit
    @pytest.mark.parametrize("status", ["completed", "canceled", "noshow"])
    def test_non_reserved_never_cancelable(self, status):
        reservation = make_reservation(status=status)
        assert is_cancelable(reservation, local_dt(2024, 12, 1)) is False

    @pytest.mark.unit
    def test_zero_deadline_allows_cancel_until_start(self):
        reservation = make_reservation(deadline=0)
        assert is_cancelable(reservation, local_dt(2025, 1, 10, 9, 59)) is True
        assert is_cancelable(reservation, local_dt(2025, 1, 10, 10, 0)) is False


class TestTimePassed:
    @pytest.mark.unit
    def test_time_passed_at_start(self):
        assert is_time_passed("2025-01-10", "10:00", local_dt(2025, 1, 10, 10, 0)) is True

    @pytest.mark.unit
    def test_time_not_passed_before_start(self):
        assert is_time_passed("2025-01-10", "10:00", local_dt(2025, 1, 10, 9, 59)) is False


class TestLockout:
    """Блокировка после серии отмен"""

    @pytest.mark.unit
    def test_three_cancellations_within_window_lock(self):
        base = local_dt(2025, 3, 1, 10, 0)
        times = [base, base + timedelta(minutes=20), base + timedelta(minutes=40)]
        now = base + timedelta(hours=1)

        until = lockout_until(times, now)
        assert until == times[-1] + timedelta(hours=BOOKING_LOCKOUT_HOURS)
        assert is_locked_out(times, now) is True

    @pytest.mark.unit
    def test_cancellations_spread_out_do_not_lock(self):
        base = local_dt(2025, 3, 1, 10, 0)
        step = timedelta(minutes=CANCEL_ABUSE_WINDOW_MINUTES)
        times = [base, base + step, base + step * 2]
        assert is_locked_out(times, base + step * 2) is False

    @pytest.mark.unit
    def test_two_cancellations_do_not_lock(self):
        base = local_dt(2025, 3, 1, 10, 0)
        assert is_locked_out([base, base + timedelta(minutes=1)], base) is False

    @pytest.mark.unit
    def test_lockout_expires(self):
        base = local_dt(2025, 3, 1, 10, 0)
        times = [base, base + timedelta(minutes=1), base + timedelta(minutes=2)]
        after = times[-1] + timedelta(hours=BOOKING_LOCKOUT_HOURS, seconds=1)
        assert is_locked_out(times, after) is False
