"""Утилиты для работы с датами и временем"""

import calendar
from datetime import date, datetime, timedelta
from typing import Tuple

import pytz

from config import TIMEZONE


def localize_datetime(dt: datetime) -> datetime:
    """Безопасная локализация datetime с учетом DST

    Args:
        dt: Наивный datetime объект

    Returns:
        Aware datetime в TIMEZONE приложения
    """
    if dt.tzinfo is not None:
        # Уже aware - конвертируем в нужную зону
        return dt.astimezone(TIMEZONE)

    # Используем is_dst=None чтобы получить исключение при неоднозначности
    try:
        return TIMEZONE.localize(dt, is_dst=None)
    except pytz.exceptions.AmbiguousTimeError:
        # Время попадает на переход часов - используем стандартное время
        return TIMEZONE.localize(dt, is_dst=False)
    except pytz.exceptions.NonExistentTimeError:
        # Время не существует (пропущено при переходе) - сдвигаем на час вперед
        return TIMEZONE.localize(dt + timedelta(hours=1), is_dst=True)


def parse_datetime(date_str: str, time_str: str) -> datetime:
    """Парсинг даты и времени в aware datetime

    Args:
        date_str: Дата в формате YYYY-MM-DD
        time_str: Время в формате HH:MM (секунды отбрасываются)

    Returns:
        Aware datetime объект
    """
    naive_dt = datetime.strptime(f"{date_str} {time_str[:5]}", "%Y-%m-%d %H:%M")
    return localize_datetime(naive_dt)


def parse_date(date_str: str) -> date:
    """YYYY-MM-DD -> date (ValueError при неверном формате)"""
    return datetime.strptime(date_str, "%Y-%m-%d").date()


def parse_time(time_str: str) -> str:
    """Нормализация времени к HH:MM (ValueError при неверном формате)"""
    return datetime.strptime(time_str[:5], "%H:%M").strftime("%H:%M")


def month_range(anchor: date) -> Tuple[date, date]:
    """Первый и последний день месяца, содержащего anchor"""
    last_day = calendar.monthrange(anchor.year, anchor.month)[1]
    return anchor.replace(day=1), anchor.replace(day=last_day)


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    """Сдвиг (year, month) на delta месяцев"""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def months_between(start: date, year: int, month: int) -> int:
    """Количество месяцев от месяца start до (year, month)"""
    return (year * 12 + month) - (start.year * 12 + start.month)


def time_range(start_time: str, end_time: str, interval_minutes: int) -> list:
    """Времена HH:MM от start (включительно) до end (не включительно)"""
    current = datetime.strptime(start_time, "%H:%M")
    end = datetime.strptime(end_time, "%H:%M")
    times = []
    while current < end:
        times.append(current.strftime("%H:%M"))
        current += timedelta(minutes=interval_minutes)
    return times
