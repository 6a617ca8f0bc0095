"""Вспомогательные функции"""

from datetime import date, datetime

from config import ADMIN_IDS, DAY_NAMES, DAY_NAMES_SHORT, TIMEZONE


def now_local() -> datetime:
    """Текущее время в таймзоне салона"""
    return datetime.now(TIMEZONE)


def format_date(date_obj: date) -> str:
    """Форматирование даты для отображения"""
    day_name = DAY_NAMES[date_obj.weekday()]
    return f"{date_obj.strftime('%d.%m.%Y')} ({day_name})"


def format_date_short(date_str: str) -> str:
    """Короткий формат: 05.03 (Ср)"""
    date_obj = datetime.strptime(date_str, "%Y-%m-%d")
    return f"{date_obj.strftime('%d.%m')} ({DAY_NAMES_SHORT[date_obj.weekday()]})"


def format_price(amount: int) -> str:
    """Цена в иенах без налога"""
    return f"¥{amount:,} (без налога)"


def format_duration(duration_minutes: int) -> str:
    """Отображение длительности в читаемом формате"""
    hours = duration_minutes // 60
    minutes = duration_minutes % 60

    if hours and minutes:
        return f"{hours} ч {minutes} мин"
    elif hours:
        return f"{hours} ч"
    else:
        return f"{minutes} мин"


def is_admin(user_id: int) -> bool:
    """Проверка прав администратора платформы"""
    return user_id in ADMIN_IDS
