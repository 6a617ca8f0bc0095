"""Карточка салона: контакты, часы работы, оплата и срок отмены"""

import logging
import re
from typing import Optional, Tuple

from config import (
    OPENING_DAYS,
    PAYMENT_METHOD_NAMES,
    SALON_NAME_MAX_LENGTH,
    SALON_TEXT_MAX_LENGTH,
)
from database.models import OpeningHours, Salon
from database.repositories.salon_repository import SalonRepository
from services.errors import ValidationError
from utils.datetime_utils import parse_time

# Срок онлайн-отмены задаётся в часах
MAX_CANCELLATION_DEADLINE_HOURS = 168

PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")

# Текст для очистки необязательного поля
CLEAR_VALUE = "-"

TEXT_FIELDS = ("name", "phone_number", "address", "access_info")


def validate_text_field(field: str, value: str) -> str:
    """Проверить и нормализовать текстовое поле карточки"""
    if field not in TEXT_FIELDS:
        raise ValidationError(field, "Неизвестное поле")
    value = (value or "").strip()

    if field == "name":
        if not value:
            raise ValidationError("name", "Введите название салона")
        if len(value) > SALON_NAME_MAX_LENGTH:
            raise ValidationError("name", f"Название не длиннее {SALON_NAME_MAX_LENGTH} символов")
        return value

    if value == CLEAR_VALUE:
        return ""
    if len(value) > SALON_TEXT_MAX_LENGTH:
        raise ValidationError(field, f"Не длиннее {SALON_TEXT_MAX_LENGTH} символов")
    if field == "phone_number" and value:
        digits = sum(ch.isdigit() for ch in value)
        if not PHONE_PATTERN.match(value) or not 7 <= digits <= 15:
            raise ValidationError("phone_number", "Телефон: цифры, пробелы, +, - и скобки")
    return value


def validate_opening_hours(is_open: bool, start: str, end: str) -> OpeningHours:
    if not is_open:
        return OpeningHours(is_open=False, start=start, end=end)
    try:
        start, end = parse_time(start), parse_time(end)
    except ValueError:
        raise ValidationError("opening_hours", "Время в формате ЧЧ:ММ")
    if start >= end:
        raise ValidationError("opening_hours", "Время открытия должно быть раньше закрытия")
    return OpeningHours(is_open=True, start=start, end=end)


def parse_deadline_hours(text: str) -> int:
    """Срок отмены в часах -> минуты"""
    try:
        hours = int(text.strip())
    except ValueError:
        raise ValidationError("cancellation_deadline", "Введите целое число часов")
    if not 0 <= hours <= MAX_CANCELLATION_DEADLINE_HOURS:
        raise ValidationError(
            "cancellation_deadline", f"От 0 до {MAX_CANCELLATION_DEADLINE_HOURS} часов"
        )
    return hours * 60


class SalonService:
    """Изменение карточки салона оператором"""

    @staticmethod
    async def _save(salon: Salon) -> Tuple[bool, str]:
        if not await SalonRepository.update_details(salon):
            return False, "unknown_error"
        return True, "success"

    @staticmethod
    async def update_text(salon_id: str, field: str, value: str) -> Tuple[bool, str]:
        """Raises: ValidationError"""
        value = validate_text_field(field, value)
        salon = await SalonRepository.get(salon_id)
        if salon is None:
            return False, "not_found"
        setattr(salon, field, value)
        return await SalonService._save(salon)

    @staticmethod
    async def set_opening_hours(
        salon_id: str, day: str, is_open: bool, start: Optional[str] = None, end: Optional[str] = None
    ) -> Tuple[bool, str]:
        """Raises: ValidationError"""
        if day not in OPENING_DAYS:
            raise ValidationError("day", "Неизвестный день")
        salon = await SalonRepository.get(salon_id)
        if salon is None:
            return False, "not_found"
        current = salon.opening_hours[day]
        salon.opening_hours[day] = validate_opening_hours(
            is_open, start or current.start, end or current.end
        )
        return await SalonService._save(salon)

    @staticmethod
    async def toggle_payment_method(salon_id: str, method: str) -> Optional[bool]:
        """Переключить способ оплаты, вернуть новое значение (None при ошибке)"""
        if method not in PAYMENT_METHOD_NAMES:
            logging.warning(f"Unknown payment method {method}")
            return None
        salon = await SalonRepository.get(salon_id)
        if salon is None:
            return None
        enabled = method not in salon.payment_methods
        if enabled:
            salon.payment_methods.append(method)
        else:
            salon.payment_methods.remove(method)
        # Порядок как в справочнике
        salon.payment_methods = [m for m in PAYMENT_METHOD_NAMES if m in salon.payment_methods]
        success, _ = await SalonService._save(salon)
        return enabled if success else None

    @staticmethod
    async def set_cancellation_deadline(salon_id: str, minutes: int) -> Tuple[bool, str]:
        """Срок действует для новых записей; у существующих он сохранён в записи"""
        salon = await SalonRepository.get(salon_id)
        if salon is None:
            return False, "not_found"
        salon.cancellation_deadline_minutes = minutes
        return await SalonService._save(salon)
