"""Правила отмены записей и блокировки за частые отмены"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from config import (
    BOOKING_LOCKOUT_HOURS,
    CANCEL_ABUSE_THRESHOLD,
    CANCEL_ABUSE_WINDOW_MINUTES,
    DEFAULT_CANCELLATION_DEADLINE_MINUTES,
)
from database.models import Reservation
from utils.datetime_utils import parse_datetime


def cancellation_deadline(reservation: Reservation) -> datetime:
    """Момент, после которого клиент не может отменить запись сам"""
    minutes = reservation.cancellation_deadline_minutes
    if minutes is None:
        minutes = DEFAULT_CANCELLATION_DEADLINE_MINUTES
    return reservation.starts_at() - timedelta(minutes=minutes)


def is_cancelable(reservation: Reservation, now: datetime) -> bool:
    """Может ли клиент отменить запись

    Только для статуса reserved и строго раньше дедлайна.
    Проверка подсказочная: процедура отмены проверяет дедлайн сама.
    """
    if reservation.status != "reserved":
        return False
    return now < cancellation_deadline(reservation)


def is_time_passed(date_str: str, time_str: str, now: datetime) -> bool:
    """Наступило ли время записи (для завершения/неявки)"""
    return parse_datetime(date_str, time_str) <= now


def lockout_until(cancel_times: Iterable[datetime], now: datetime) -> Optional[datetime]:
    """До какого момента клиенту запрещена запись

    CANCEL_ABUSE_THRESHOLD отмен в пределах CANCEL_ABUSE_WINDOW_MINUTES
    блокируют запись на BOOKING_LOCKOUT_HOURS после последней из них.
    """
    times = sorted(cancel_times)
    window = timedelta(minutes=CANCEL_ABUSE_WINDOW_MINUTES)
    lockout = timedelta(hours=BOOKING_LOCKOUT_HOURS)

    until = None
    for last in range(CANCEL_ABUSE_THRESHOLD - 1, len(times)):
        first = last - CANCEL_ABUSE_THRESHOLD + 1
        if times[last] - times[first] <= window:
            candidate = times[last] + lockout
            if until is None or candidate > until:
                until = candidate

    if until is not None and until > now:
        return until
    return None


def is_locked_out(cancel_times: Iterable[datetime], now: datetime) -> bool:
    return lockout_until(cancel_times, now) is not None
