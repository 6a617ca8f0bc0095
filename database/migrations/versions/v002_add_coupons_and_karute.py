"""Купоны в меню и карты клиентов"""

from database.migrations.migration_manager import Migration

COUPON_COLUMNS = (
    ("discount_amount", "INTEGER"),
    ("valid_from", "TEXT"),
    ("valid_until", "TEXT"),
)


class AddCouponsAndKarute(Migration):
    version = 2
    description = "Add coupon fields to menus and customer karute table"

    async def upgrade(self, db):
        # Проверяем есть ли уже колонки купона
        async with db.execute("PRAGMA table_info(menus)") as cursor:
            columns = await cursor.fetchall()
            column_names = [col[1] for col in columns]

        for name, column_type in COUPON_COLUMNS:
            if name not in column_names:
                await db.execute(f"ALTER TABLE menus ADD COLUMN {name} {column_type}")

        await db.execute(
            """CREATE TABLE IF NOT EXISTS karute
            (customer_id TEXT NOT NULL REFERENCES profiles(profile_id),
            salon_id TEXT NOT NULL REFERENCES salons(salon_id),
            notes TEXT NOT NULL DEFAULT '',
            updated_at TEXT,
            PRIMARY KEY (customer_id, salon_id))"""
        )

    async def downgrade(self, db):
        await db.execute("DROP TABLE IF EXISTS karute")
        for name, _ in COUPON_COLUMNS:
            await db.execute(f"ALTER TABLE menus DROP COLUMN {name}")
