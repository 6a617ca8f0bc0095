"""Базовый репозиторий с общими операциями над БД"""

from typing import Any, Optional, Tuple

import aiosqlite

from config import DATABASE_PATH


class BaseRepository:
    """Базовый класс репозиториев: одно соединение на операцию"""

    @staticmethod
    async def _execute_query(
        query: str,
        params: Tuple = (),
        fetch_one: bool = False,
        fetch_all: bool = False,
        commit: bool = False,
    ) -> Any:
        """Выполнить запрос

        Returns:
            Строку (fetch_one), список строк (fetch_all)
            или количество затронутых строк
        """
        async with aiosqlite.connect(DATABASE_PATH) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cursor:
                if fetch_one:
                    result = await cursor.fetchone()
                elif fetch_all:
                    result = await cursor.fetchall()
                else:
                    result = cursor.rowcount
            if commit:
                await db.commit()
            return result

    @staticmethod
    async def _count(table: str, where: Optional[str] = None, params: Tuple = ()) -> int:
        """Количество строк в таблице с условием"""
        query = f"SELECT COUNT(*) FROM {table}"
        if where:
            query += f" WHERE {where}"
        result = await BaseRepository._execute_query(query, params, fetch_one=True)
        return result[0] if result else 0

    @staticmethod
    async def _exists(table: str, where: str, params: Tuple = ()) -> bool:
        """Есть ли хотя бы одна строка с условием"""
        result = await BaseRepository._execute_query(
            f"SELECT 1 FROM {table} WHERE {where} LIMIT 1", params, fetch_one=True
        )
        return result is not None

    @staticmethod
    async def _insert(query: str, params: Tuple = ()) -> int:
        """INSERT с фиксацией, возвращает rowid новой строки"""
        async with aiosqlite.connect(DATABASE_PATH) as db:
            cursor = await db.execute(query, params)
            await db.commit()
            return cursor.lastrowid
