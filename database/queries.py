"""Инициализация базы данных и общие запросы"""

import logging

from config import DATABASE_PATH
from database.migrations.migration_manager import MigrationManager
from database.migrations.versions import ALL_MIGRATIONS
from database.repositories.analytics_repository import AnalyticsRepository


def build_migration_manager(db_path: str = DATABASE_PATH) -> MigrationManager:
    """Менеджер миграций со всеми зарегистрированными версиями"""
    manager = MigrationManager(db_path)
    for migration_class in ALL_MIGRATIONS:
        manager.register(migration_class)
    return manager


class Database:
    """Класс для работы с базой данных"""

    @staticmethod
    async def init_db(db_path: str = DATABASE_PATH):
        """Инициализация БД: применение всех миграций"""
        manager = build_migration_manager(db_path)
        await manager.migrate()
        version = await manager.get_current_version()
        logging.info(f"Database initialized at schema version {version}")

    @staticmethod
    async def log_event(user_id: int, event: str, data: str = ""):
        """Логирование событий (ошибки только логируются)"""
        await AnalyticsRepository.log_event(user_id, event, data)
