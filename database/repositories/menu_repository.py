"""Репозиторий для работы с меню салона"""

import logging
from typing import List, Optional

from database.base_repository import BaseRepository
from database.models import Menu, MenuCategory, MenuDivision
from utils.helpers import now_local


def division_ids_from_text(raw: str) -> List[int]:
    """"1,3" -> [1, 3]"""
    return [int(part) for part in (raw or "").split(",") if part.strip()]


def division_ids_to_text(division_ids: List[int]) -> str:
    return ",".join(str(division_id) for division_id in sorted(set(division_ids)))


def menu_from_row(row) -> Menu:
    return Menu(
        id=row["id"],
        salon_id=row["salon_id"],
        name=row["name"],
        price_without_tax=row["price_without_tax"],
        duration_minutes=row["duration_minutes"],
        category_id=row["category_id"],
        description=row["description"],
        with_off=bool(row["with_off"]),
        off_price=row["off_price"],
        is_active=bool(row["is_active"]),
        discount_amount=row["discount_amount"],
        valid_from=row["valid_from"],
        valid_until=row["valid_until"],
        division_ids=division_ids_from_text(row["division_ids"]),
    )


def _category_from_row(row) -> MenuCategory:
    return MenuCategory(
        category_id=row["category_id"],
        salon_id=row["salon_id"],
        name=row["name"],
        is_coupon=bool(row["is_coupon"]),
    )


class MenuRepository(BaseRepository):
    """Меню и категории меню"""

    @staticmethod
    async def create_category(salon_id: str, name: str, is_coupon: bool = False) -> Optional[int]:
        try:
            await MenuRepository._execute_query(
                "INSERT OR IGNORE INTO menu_categories (salon_id, name, is_coupon) VALUES (?, ?, ?)",
                (salon_id, name, int(is_coupon)),
                commit=True,
            )
            # Категория с таким именем могла существовать раньше
            row = await MenuRepository._execute_query(
                "SELECT category_id FROM menu_categories WHERE salon_id=? AND name=?",
                (salon_id, name),
                fetch_one=True,
            )
            return row["category_id"] if row else None
        except Exception as e:
            logging.error(f"Error creating category {name} for {salon_id}: {e}")
            return None

    @staticmethod
    async def list_categories(salon_id: str) -> List[MenuCategory]:
        try:
            rows = await MenuRepository._execute_query(
                "SELECT * FROM menu_categories WHERE salon_id=? ORDER BY name",
                (salon_id,),
                fetch_all=True,
            )
            return [_category_from_row(row) for row in rows]
        except Exception as e:
            logging.error(f"Error listing categories for {salon_id}: {e}")
            return []

    @staticmethod
    async def get_category(category_id: int) -> Optional[MenuCategory]:
        try:
            row = await MenuRepository._execute_query(
                "SELECT * FROM menu_categories WHERE category_id=?",
                (category_id,),
                fetch_one=True,
            )
            return _category_from_row(row) if row else None
        except Exception as e:
            logging.error(f"Error getting category {category_id}: {e}")
            return None

    # === РАЗДЕЛЫ ===

    @staticmethod
    async def create_division(salon_id: str, name: str) -> Optional[int]:
        """Создать раздел в конце списка, вернуть ID (существующий при совпадении имени)"""
        try:
            await MenuRepository._execute_query(
                """INSERT OR IGNORE INTO menu_divisions (salon_id, name, sort_order)
                VALUES (?, ?, (SELECT COALESCE(MAX(sort_order), 0) + 1
                               FROM menu_divisions WHERE salon_id=?))""",
                (salon_id, name, salon_id),
                commit=True,
            )
            row = await MenuRepository._execute_query(
                "SELECT id FROM menu_divisions WHERE salon_id=? AND name=?",
                (salon_id, name),
                fetch_one=True,
            )
            return row["id"] if row else None
        except Exception as e:
            logging.error(f"Error creating division {name} for {salon_id}: {e}")
            return None

    @staticmethod
    async def list_divisions(salon_id: str) -> List[MenuDivision]:
        try:
            rows = await MenuRepository._execute_query(
                "SELECT * FROM menu_divisions WHERE salon_id=? ORDER BY sort_order, id",
                (salon_id,),
                fetch_all=True,
            )
            return [
                MenuDivision(
                    id=row["id"], salon_id=row["salon_id"], name=row["name"], sort_order=row["sort_order"]
                )
                for row in rows
            ]
        except Exception as e:
            logging.error(f"Error listing divisions for {salon_id}: {e}")
            return []

    @staticmethod
    async def create(menu: Menu) -> Optional[int]:
        """Сохранить новое меню, вернуть его ID"""
        try:
            menu.id = await MenuRepository._insert(
                """INSERT INTO menus
                (salon_id, category_id, division_ids, name, description,
                 price_without_tax, duration_minutes, with_off, off_price, is_active,
                 discount_amount, valid_from, valid_until, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    menu.salon_id,
                    menu.category_id,
                    division_ids_to_text(menu.division_ids),
                    menu.name,
                    menu.description,
                    menu.price_without_tax,
                    menu.duration_minutes,
                    int(menu.with_off),
                    menu.off_price,
                    int(menu.is_active),
                    menu.discount_amount,
                    menu.valid_from,
                    menu.valid_until,
                    now_local().isoformat(),
                ),
            )
            logging.info(f"Menu {menu.id} '{menu.name}' created in salon {menu.salon_id}")
            return menu.id
        except Exception as e:
            logging.error(f"Error creating menu {menu.name}: {e}")
            return None

    @staticmethod
    async def get(menu_id: int) -> Optional[Menu]:
        """Получить меню по ID"""
        try:
            row = await MenuRepository._execute_query(
                "SELECT * FROM menus WHERE id=?", (menu_id,), fetch_one=True
            )
            return menu_from_row(row) if row else None
        except Exception as e:
            logging.error(f"Error getting menu {menu_id}: {e}")
            return None

    @staticmethod
    async def list_for_salon(salon_id: str, active_only: bool = True) -> List[Menu]:
        query = "SELECT * FROM menus WHERE salon_id=?"
        if active_only:
            query += " AND is_active=1"
        query += " ORDER BY category_id, name"
        try:
            rows = await MenuRepository._execute_query(query, (salon_id,), fetch_all=True)
            return [menu_from_row(row) for row in rows]
        except Exception as e:
            logging.error(f"Error listing menus for {salon_id}: {e}")
            return []

    @staticmethod
    async def set_active(menu_id: int, salon_id: str, is_active: bool) -> bool:
        """Включить/выключить меню (только в своём салоне)"""
        try:
            updated = await MenuRepository._execute_query(
                "UPDATE menus SET is_active=? WHERE id=? AND salon_id=?",
                (int(is_active), menu_id, salon_id),
                commit=True,
            )
            if updated:
                logging.info(f"Menu {menu_id} is_active={is_active}")
            return updated > 0
        except Exception as e:
            logging.error(f"Error toggling menu {menu_id}: {e}")
            return False

    @staticmethod
    async def update(menu: Menu) -> bool:
        """Сохранить изменения меню (только в своём салоне)"""
        try:
            updated = await MenuRepository._execute_query(
                """UPDATE menus SET name=?, description=?, price_without_tax=?,
                duration_minutes=?, with_off=?, off_price=?,
                discount_amount=?, valid_from=?, valid_until=?, division_ids=?
                WHERE id=? AND salon_id=?""",
                (
                    menu.name,
                    menu.description,
                    menu.price_without_tax,
                    menu.duration_minutes,
                    int(menu.with_off),
                    menu.off_price,
                    menu.discount_amount,
                    menu.valid_from,
                    menu.valid_until,
                    division_ids_to_text(menu.division_ids),
                    menu.id,
                    menu.salon_id,
                ),
                commit=True,
            )
            if updated:
                logging.info(f"Menu {menu.id} updated")
            return updated > 0
        except Exception as e:
            logging.error(f"Error updating menu {menu.id}: {e}")
            return False

    @staticmethod
    async def has_reservations(menu_id: int) -> bool:
        """Есть ли записи (в том числе прошедшие) с этим меню"""
        try:
            return await MenuRepository._exists("reservations", "menu_id=?", (menu_id,))
        except Exception as e:
            logging.error(f"Error checking reservations for menu {menu_id}: {e}")
            return True

    @staticmethod
    async def delete(menu_id: int, salon_id: str) -> bool:
        """Удалить меню (только в своём салоне)"""
        try:
            deleted = await MenuRepository._execute_query(
                "DELETE FROM menus WHERE id=? AND salon_id=?", (menu_id, salon_id), commit=True
            )
            if deleted:
                logging.info(f"Menu {menu_id} deleted from salon {salon_id}")
            return deleted > 0
        except Exception as e:
            logging.error(f"Error deleting menu {menu_id}: {e}")
            return False
