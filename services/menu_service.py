"""Сервис меню салона: проверка и сохранение услуг"""

import logging
from typing import List, Optional, Tuple

from config import MENU_DIVISION_NAME_MAX_LENGTH
from database.models import Menu, MenuDivision
from database.repositories.menu_repository import MenuRepository
from services.errors import ValidationError
from utils.datetime_utils import parse_date


def compose_duration(hours: int, minutes: int) -> int:
    """Длительность в минутах из часов и минут (должна быть > 0)"""
    if hours < 0 or minutes < 0:
        raise ValidationError("duration", "Длительность не может быть отрицательной")
    total = hours * 60 + minutes
    if total <= 0:
        raise ValidationError("duration", "Укажите длительность больше нуля")
    return total


def parse_duration(text: str) -> int:
    """Разбор ввода '1:30', '1 30' или '90' в минуты"""
    parts = text.replace(":", " ").split()
    try:
        if len(parts) == 1:
            return compose_duration(0, int(parts[0]))
        if len(parts) == 2:
            return compose_duration(int(parts[0]), int(parts[1]))
    except ValueError:
        pass
    raise ValidationError("duration", "Введите длительность как 1:30 или в минутах")


class MenuService:
    """Создание и управление меню"""

    @staticmethod
    async def create_menu(
        salon_id: str,
        name: str,
        price_without_tax: int,
        hours: int,
        minutes: int,
        category_id: Optional[int] = None,
        description: Optional[str] = None,
        with_off: bool = False,
        off_price: int = 0,
        discount_amount: Optional[int] = None,
        valid_from: Optional[str] = None,
        valid_until: Optional[str] = None,
    ) -> Optional[int]:
        """Проверить и сохранить меню (None при ошибке БД)

        Купонные поля сохраняются только для купонной категории.

        Raises:
            ValidationError: некорректные данные (до записи в БД)
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("name", "Введите название меню")
        if price_without_tax < 0:
            raise ValidationError("price", "Цена не может быть отрицательной")
        if with_off and off_price < 0:
            raise ValidationError("off_price", "Цена снятия не может быть отрицательной")
        duration = compose_duration(hours, minutes)

        category = await MenuRepository.get_category(category_id) if category_id else None
        if category is not None and category.salon_id != salon_id:
            raise ValidationError("category", "Категория не найдена")

        if category is None or not category.is_coupon:
            discount_amount = valid_from = valid_until = None
        else:
            if discount_amount is None or discount_amount <= 0:
                raise ValidationError("discount_amount", "Укажите размер скидки")
            if discount_amount > price_without_tax:
                raise ValidationError("discount_amount", "Скидка больше цены меню")
            if not valid_from or not valid_until:
                raise ValidationError("valid_period", "Укажите срок действия купона")
            try:
                if parse_date(valid_from) > parse_date(valid_until):
                    raise ValidationError("valid_period", "Начало срока позже окончания")
            except ValueError:
                raise ValidationError("valid_period", "Дата в формате ГГГГ-ММ-ДД")

        menu = Menu(
            id=None,
            salon_id=salon_id,
            name=name,
            price_without_tax=price_without_tax,
            duration_minutes=duration,
            category_id=category.category_id if category else None,
            description=description,
            with_off=with_off,
            off_price=off_price if with_off else 0,
            discount_amount=discount_amount,
            valid_from=valid_from,
            valid_until=valid_until,
        )
        return await MenuRepository.create(menu)

    @staticmethod
    async def toggle_menu(menu_id: int, salon_id: str) -> Optional[bool]:
        """Переключить активность, вернуть новое значение"""
        menu = await MenuRepository.get(menu_id)
        if menu is None or menu.salon_id != salon_id:
            logging.warning(f"Menu {menu_id} not found in salon {salon_id}")
            return None
        new_state = not menu.is_active
        if not await MenuRepository.set_active(menu_id, salon_id, new_state):
            return None
        return new_state

    @staticmethod
    async def list_menus(salon_id: str, active_only: bool = True) -> List[Menu]:
        return await MenuRepository.list_for_salon(salon_id, active_only)

    @staticmethod
    async def update_menu(
        menu_id: int,
        salon_id: str,
        name: Optional[str] = None,
        price_without_tax: Optional[int] = None,
        duration_minutes: Optional[int] = None,
        off_price: Optional[int] = None,
    ) -> Tuple[bool, str]:
        """Изменить поля меню; не переданные поля остаются прежними

        Raises:
            ValidationError: некорректные данные (до записи в БД)
        """
        menu = await MenuRepository.get(menu_id)
        if menu is None or menu.salon_id != salon_id:
            return False, "not_found"

        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("name", "Введите название меню")
            menu.name = name
        if price_without_tax is not None:
            if price_without_tax < 0:
                raise ValidationError("price", "Цена не может быть отрицательной")
            if menu.is_coupon and menu.discount_amount > price_without_tax:
                raise ValidationError("discount_amount", "Скидка больше цены меню")
            menu.price_without_tax = price_without_tax
        if duration_minutes is not None:
            menu.duration_minutes = compose_duration(0, duration_minutes)
        if off_price is not None:
            if not menu.with_off:
                raise ValidationError("off_price", "Снятие не входит в это меню")
            if off_price < 0:
                raise ValidationError("off_price", "Цена снятия не может быть отрицательной")
            menu.off_price = off_price

        if not await MenuRepository.update(menu):
            return False, "unknown_error"
        return True, "success"

    @staticmethod
    async def delete_menu(menu_id: int, salon_id: str) -> Tuple[bool, str]:
        """Удалить меню без записей; меню с историей можно только выключить"""
        menu = await MenuRepository.get(menu_id)
        if menu is None or menu.salon_id != salon_id:
            return False, "not_found"
        if await MenuRepository.has_reservations(menu_id):
            return False, "menu_in_use"
        if not await MenuRepository.delete(menu_id, salon_id):
            return False, "unknown_error"
        return True, "success"

    # === РАЗДЕЛЫ ===

    @staticmethod
    async def create_division(salon_id: str, name: str) -> Optional[int]:
        """Raises: ValidationError"""
        name = (name or "").strip()
        if not name:
            raise ValidationError("division", "Введите название раздела")
        if len(name) > MENU_DIVISION_NAME_MAX_LENGTH:
            raise ValidationError("division", f"Название не длиннее {MENU_DIVISION_NAME_MAX_LENGTH} символов")
        return await MenuRepository.create_division(salon_id, name)

    @staticmethod
    async def list_divisions(salon_id: str) -> List[MenuDivision]:
        return await MenuRepository.list_divisions(salon_id)

    @staticmethod
    async def toggle_menu_division(menu_id: int, salon_id: str, division_id: int) -> Optional[bool]:
        """Добавить раздел к меню или убрать, вернуть новое значение (None при ошибке)"""
        menu = await MenuRepository.get(menu_id)
        if menu is None or menu.salon_id != salon_id:
            return None
        if division_id not in {d.id for d in await MenuRepository.list_divisions(salon_id)}:
            logging.warning(f"Division {division_id} not found in salon {salon_id}")
            return None

        assigned = division_id not in menu.division_ids
        if assigned:
            menu.division_ids.append(division_id)
        else:
            menu.division_ids.remove(division_id)
        if not await MenuRepository.update(menu):
            return None
        return assigned


def filter_by_divisions(menus: List[Menu], division_ids) -> List[Menu]:
    """Меню, у которых есть все выбранные разделы (без выбора - все)"""
    selected = set(division_ids)
    return [menu for menu in menus if selected.issubset(menu.division_ids)]
