"""Репозиторий объявлений салона и отметок о прочтении"""

import logging
from typing import List, Optional

from database.base_repository import BaseRepository
from database.models import Announcement, AnnouncementRead
from utils.helpers import now_local

ANNOUNCEMENT_SELECT = """SELECT a.*,
    o.display_name AS operator_name,
    c.display_name AS customer_name
FROM announcements a
LEFT JOIN profiles o ON o.profile_id = a.operator_id
LEFT JOIN profiles c ON c.profile_id = a.customer_id"""


def announcement_from_row(row) -> Announcement:
    keys = row.keys()
    return Announcement(
        id=row["id"],
        salon_id=row["salon_id"],
        operator_id=row["operator_id"],
        customer_id=row["customer_id"],
        title=row["title"],
        content=row["content"],
        is_published=bool(row["is_published"]),
        published_at=row["published_at"],
        created_at=row["created_at"],
        operator_name=row["operator_name"] if "operator_name" in keys else None,
        customer_name=row["customer_name"] if "customer_name" in keys else None,
        is_read=bool(row["is_read"]) if "is_read" in keys else False,
    )


class AnnouncementRepository(BaseRepository):
    """Объявления: оператор пишет и публикует, клиент читает"""

    @staticmethod
    async def create(announcement: Announcement) -> Optional[int]:
        try:
            announcement.id = await AnnouncementRepository._insert(
                """INSERT INTO announcements
                (salon_id, operator_id, customer_id, title, content, is_published, created_at)
                VALUES (?, ?, ?, ?, ?, 0, ?)""",
                (
                    announcement.salon_id,
                    announcement.operator_id,
                    announcement.customer_id,
                    announcement.title,
                    announcement.content,
                    now_local().isoformat(),
                ),
            )
            logging.info(f"Announcement {announcement.id} created in salon {announcement.salon_id}")
            return announcement.id
        except Exception as e:
            logging.error(f"Error creating announcement for {announcement.salon_id}: {e}")
            return None

    @staticmethod
    async def get(announcement_id: int) -> Optional[Announcement]:
        try:
            row = await AnnouncementRepository._execute_query(
                f"{ANNOUNCEMENT_SELECT} WHERE a.id=?", (announcement_id,), fetch_one=True
            )
            return announcement_from_row(row) if row else None
        except Exception as e:
            logging.error(f"Error getting announcement {announcement_id}: {e}")
            return None

    @staticmethod
    async def list_for_salon(salon_id: str) -> List[Announcement]:
        """Все объявления салона, новые первыми"""
        try:
            rows = await AnnouncementRepository._execute_query(
                f"{ANNOUNCEMENT_SELECT} WHERE a.salon_id=? ORDER BY a.created_at DESC, a.id DESC",
                (salon_id,),
                fetch_all=True,
            )
            return [announcement_from_row(row) for row in rows]
        except Exception as e:
            logging.error(f"Error listing announcements for {salon_id}: {e}")
            return []

    @staticmethod
    async def update_text(
        announcement_id: int, salon_id: str, title: str, content: str, customer_id: Optional[str]
    ) -> bool:
        try:
            updated = await AnnouncementRepository._execute_query(
                """UPDATE announcements SET title=?, content=?, customer_id=?
                WHERE id=? AND salon_id=?""",
                (title, content, customer_id, announcement_id, salon_id),
                commit=True,
            )
            return updated > 0
        except Exception as e:
            logging.error(f"Error updating announcement {announcement_id}: {e}")
            return False

    @staticmethod
    async def set_published(announcement_id: int, salon_id: str, is_published: bool) -> bool:
        """Опубликовать или снять с публикации (published_at сбрасывается)"""
        published_at = now_local().isoformat() if is_published else None
        try:
            updated = await AnnouncementRepository._execute_query(
                "UPDATE announcements SET is_published=?, published_at=? WHERE id=? AND salon_id=?",
                (int(is_published), published_at, announcement_id, salon_id),
                commit=True,
            )
            if updated:
                logging.info(f"Announcement {announcement_id} is_published={is_published}")
            return updated > 0
        except Exception as e:
            logging.error(f"Error publishing announcement {announcement_id}: {e}")
            return False

    @staticmethod
    async def delete(announcement_id: int, salon_id: str) -> bool:
        try:
            deleted = await AnnouncementRepository._execute_query(
                "DELETE FROM announcements WHERE id=? AND salon_id=?",
                (announcement_id, salon_id),
                commit=True,
            )
            if deleted:
                await AnnouncementRepository._execute_query(
                    "DELETE FROM announcement_reads WHERE announcement_id=?",
                    (announcement_id,),
                    commit=True,
                )
                logging.info(f"Announcement {announcement_id} deleted")
            return deleted > 0
        except Exception as e:
            logging.error(f"Error deleting announcement {announcement_id}: {e}")
            return False

    # === КЛИЕНТЫ ===

    @staticmethod
    async def list_for_customer(customer_id: str, salon_id: str) -> List[Announcement]:
        """Опубликованные объявления для клиента: общие и адресованные ему"""
        try:
            rows = await AnnouncementRepository._execute_query(
                """SELECT a.*, (r.customer_id IS NOT NULL) AS is_read
                FROM announcements a
                LEFT JOIN announcement_reads r
                    ON r.announcement_id = a.id AND r.customer_id = ?
                WHERE a.salon_id=? AND a.is_published=1
                    AND (a.customer_id IS NULL OR a.customer_id=?)
                ORDER BY a.published_at DESC, a.id DESC""",
                (customer_id, salon_id, customer_id),
                fetch_all=True,
            )
            return [announcement_from_row(row) for row in rows]
        except Exception as e:
            logging.error(f"Error listing announcements for customer {customer_id}: {e}")
            return []

    @staticmethod
    async def mark_read(announcement_id: int, customer_id: str) -> bool:
        """Отметить прочтение (повторная отметка не меняет время)"""
        try:
            await AnnouncementRepository._execute_query(
                """INSERT OR IGNORE INTO announcement_reads (announcement_id, customer_id, read_at)
                VALUES (?, ?, ?)""",
                (announcement_id, customer_id, now_local().isoformat()),
                commit=True,
            )
            return True
        except Exception as e:
            logging.error(f"Error marking announcement {announcement_id} read: {e}")
            return False

    @staticmethod
    async def read_status(announcement: Announcement) -> List[AnnouncementRead]:
        """Кто из адресатов прочитал объявление"""
        query = """SELECT p.profile_id, p.display_name, r.read_at
            FROM profiles p
            LEFT JOIN announcement_reads r
                ON r.customer_id = p.profile_id AND r.announcement_id = ?
            WHERE p.kind='customer' AND p.salon_id=?"""
        params = [announcement.id, announcement.salon_id]
        if announcement.customer_id:
            query += " AND p.profile_id=?"
            params.append(announcement.customer_id)
        query += " ORDER BY r.read_at IS NULL, p.display_name"
        try:
            rows = await AnnouncementRepository._execute_query(query, tuple(params), fetch_all=True)
            return [
                AnnouncementRead(
                    customer_id=row["profile_id"],
                    customer_name=row["display_name"],
                    read_at=row["read_at"],
                )
                for row in rows
            ]
        except Exception as e:
            logging.error(f"Error getting read status for announcement {announcement.id}: {e}")
            return []
