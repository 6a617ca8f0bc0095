"""Начальная схема базы данных"""

from database.migrations.migration_manager import Migration


class InitialSchema(Migration):
    version = 1
    description = "Salons, profiles, menus, slots, reservations and analytics"

    async def upgrade(self, db):
        # Таблицы
        await db.execute(
            """CREATE TABLE IF NOT EXISTS salons
            (salon_id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            cancellation_deadline_minutes INTEGER NOT NULL DEFAULT 1440,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL)"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS profiles
            (profile_id TEXT PRIMARY KEY,
            user_id INTEGER NOT NULL UNIQUE,
            kind TEXT NOT NULL CHECK (kind IN ('operator', 'customer')),
            salon_id TEXT REFERENCES salons(salon_id),
            display_name TEXT NOT NULL,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL)"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS menu_categories
            (category_id INTEGER PRIMARY KEY AUTOINCREMENT,
            salon_id TEXT NOT NULL REFERENCES salons(salon_id),
            name TEXT NOT NULL,
            is_coupon INTEGER NOT NULL DEFAULT 0,
            UNIQUE(salon_id, name))"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS menus
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            salon_id TEXT NOT NULL REFERENCES salons(salon_id),
            category_id INTEGER REFERENCES menu_categories(category_id),
            division_ids TEXT NOT NULL DEFAULT '',
            name TEXT NOT NULL,
            description TEXT,
            price_without_tax INTEGER NOT NULL,
            duration_minutes INTEGER NOT NULL CHECK (duration_minutes > 0),
            with_off INTEGER NOT NULL DEFAULT 0,
            off_price INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL)"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS slots
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            salon_id TEXT NOT NULL REFERENCES salons(salon_id),
            operator_id TEXT NOT NULL REFERENCES profiles(profile_id),
            slot_date TEXT NOT NULL,
            slot_time TEXT NOT NULL,
            is_booked INTEGER NOT NULL DEFAULT 0,
            UNIQUE(salon_id, operator_id, slot_date, slot_time))"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS reservations
            (reservation_id TEXT PRIMARY KEY,
            customer_id TEXT NOT NULL REFERENCES profiles(profile_id),
            operator_id TEXT NOT NULL REFERENCES profiles(profile_id),
            salon_id TEXT NOT NULL REFERENCES salons(salon_id),
            menu_id INTEGER REFERENCES menus(id),
            reservation_date TEXT NOT NULL,
            reservation_time TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'reserved'
                CHECK (status IN ('reserved', 'completed', 'canceled', 'noshow')),
            gel_removal INTEGER NOT NULL DEFAULT 0,
            off_price INTEGER NOT NULL DEFAULT 0,
            other_requests TEXT NOT NULL DEFAULT '',
            total_price INTEGER NOT NULL DEFAULT 0,
            cancellation_deadline_minutes INTEGER,
            created_at TEXT NOT NULL,
            canceled_at TEXT,
            canceled_by TEXT)"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS analytics
            (user_id INTEGER, event TEXT, data TEXT, timestamp TEXT)"""
        )

        # Индексы для производительности
        await db.execute(
            """CREATE INDEX IF NOT EXISTS idx_slots_lookup
            ON slots(salon_id, operator_id, is_booked, slot_date)"""
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_reservations_customer ON reservations(customer_id, status)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_reservations_salon_date ON reservations(salon_id, reservation_date)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_analytics_user ON analytics(user_id, event)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_analytics_timestamp ON analytics(timestamp)"
        )

        # Не более одной активной записи на слот оператора
        await db.execute(
            """CREATE UNIQUE INDEX IF NOT EXISTS idx_reservations_active_slot
            ON reservations(operator_id, reservation_date, reservation_time)
            WHERE status = 'reserved'"""
        )

    async def downgrade(self, db):
        await db.execute("DROP TABLE IF EXISTS reservations")
        await db.execute("DROP TABLE IF EXISTS slots")
        await db.execute("DROP TABLE IF EXISTS menus")
        await db.execute("DROP TABLE IF EXISTS menu_categories")
        await db.execute("DROP TABLE IF EXISTS profiles")
        await db.execute("DROP TABLE IF EXISTS salons")
        await db.execute("DROP TABLE IF EXISTS analytics")
