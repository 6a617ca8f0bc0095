"""Карточка салона, объявления клиентам и разделы меню"""

from database.migrations.migration_manager import Migration

SALON_COLUMNS = (
    ("phone_number", "TEXT NOT NULL DEFAULT ''"),
    ("address", "TEXT NOT NULL DEFAULT ''"),
    ("access_info", "TEXT NOT NULL DEFAULT ''"),
    ("opening_hours", "TEXT NOT NULL DEFAULT '{}'"),  # JSON: день -> {is_open, start, end}
    ("payment_methods", "TEXT NOT NULL DEFAULT '[]'"),  # JSON: список способов оплаты
)


async def _columns(db, table: str):
    async with db.execute(f"PRAGMA table_info({table})") as cursor:
        return [col[1] for col in await cursor.fetchall()]


class AddSalonDetailsAndAnnouncements(Migration):
    version = 3
    description = "Add salon details, announcements with read status, menu divisions"

    async def upgrade(self, db):
        salon_columns = await _columns(db, "salons")
        for name, definition in SALON_COLUMNS:
            if name not in salon_columns:
                await db.execute(f"ALTER TABLE salons ADD COLUMN {name} {definition}")

        await db.execute(
            """CREATE TABLE IF NOT EXISTS announcements
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            salon_id TEXT NOT NULL REFERENCES salons(salon_id),
            operator_id TEXT NOT NULL REFERENCES profiles(profile_id),
            customer_id TEXT REFERENCES profiles(profile_id),
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            is_published INTEGER NOT NULL DEFAULT 0,
            published_at TEXT,
            created_at TEXT NOT NULL)"""
        )
        await db.execute(
            """CREATE TABLE IF NOT EXISTS announcement_reads
            (announcement_id INTEGER NOT NULL REFERENCES announcements(id),
            customer_id TEXT NOT NULL REFERENCES profiles(profile_id),
            read_at TEXT NOT NULL,
            PRIMARY KEY (announcement_id, customer_id))"""
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_announcements_salon ON announcements(salon_id, is_published)"
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS menu_divisions
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            salon_id TEXT NOT NULL REFERENCES salons(salon_id),
            name TEXT NOT NULL,
            sort_order INTEGER NOT NULL DEFAULT 0,
            UNIQUE(salon_id, name))"""
        )

    async def downgrade(self, db):
        # menus.division_ids ссылается на удаляемую таблицу
        await db.execute("UPDATE menus SET division_ids=''")
        await db.execute("DROP TABLE IF EXISTS menu_divisions")
        await db.execute("DROP INDEX IF EXISTS idx_announcements_salon")
        await db.execute("DROP TABLE IF EXISTS announcement_reads")
        await db.execute("DROP TABLE IF EXISTS announcements")
        for name, _ in SALON_COLUMNS:
            await db.execute(f"ALTER TABLE salons DROP COLUMN {name}")
