"""Конфигурация pytest и общие фикстуры для всех тестов

Этот файл содержит:
- Настройку тестовой среды
- Mock объекты для aiogram и APScheduler
- Фикстуры для БД и тестового салона
- Фиксированные часы
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import AsyncMock, Mock

import pytest
from aiogram import Bot
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import CallbackQuery, Chat, Message, User

# Добавляем корневую папку в PYTHONPATH
sys.path.insert(0, str(Path(__file__).parent.parent))

# ============================================================================
# НАСТРОЙКА ТЕСТОВОЙ СРЕДЫ
# ============================================================================

# Настройка переменных окружения ДО импорта config
os.environ["DATABASE_PATH"] = "./test_salon.db"
os.environ["BOT_TOKEN"] = "1234567890:ABCdefGHIjklMNOpqrsTUVwxyz12345678"
os.environ["ADMIN_IDS"] = "12345"
os.environ["TIMEZONE"] = "Asia/Tokyo"

# Теперь можно импортировать модули проекта
import aiosqlite  # noqa: E402

from config import DATABASE_PATH  # noqa: E402
from database.models import Menu  # noqa: E402
from database.procedures import SalonProcedures  # noqa: E402
from database.queries import Database  # noqa: E402
from database.repositories.menu_repository import MenuRepository  # noqa: E402
from database.repositories.profile_repository import ProfileRepository  # noqa: E402
from database.repositories.salon_repository import SalonRepository  # noqa: E402
from services.announcement_service import AnnouncementService  # noqa: E402
from services.availability_service import AvailabilityService  # noqa: E402
from services.booking_service import BookingService  # noqa: E402
from services.notification_service import NotificationService  # noqa: E402
from tests.helpers import FixedClock, add_slots, local_dt  # noqa: E402

TABLES = (
    "announcement_reads",
    "announcements",
    "reservations",
    "slots",
    "karute",
    "menus",
    "menu_divisions",
    "menu_categories",
    "profiles",
    "salons",
    "analytics",
)

OPERATOR_USER_ID = 1001
CUSTOMER_USER_ID = 2001


# ============================================================================
# PYTEST КОНФИГУРАЦИЯ
# ============================================================================


def pytest_configure(config):
    """Регистрация пользовательских маркеров"""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: integration test")
    config.addinivalue_line("markers", "unit: unit test")


# ============================================================================
# ОЧИСТКА БД
# ============================================================================


@pytest.fixture(autouse=True)
async def cleanup_database():
    """Автоматическая очистка БД после каждого теста"""
    yield

    try:
        async with aiosqlite.connect(DATABASE_PATH) as db:
            for table in TABLES:
                await db.execute(f"DELETE FROM {table}")
            await db.commit()
    except Exception as e:
        print(f"Warning: Failed to cleanup test database: {e}")


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_db_on_exit():
    """Удаляем тестовую БД после всех тестов"""
    yield

    if os.path.exists(DATABASE_PATH):
        try:
            os.remove(DATABASE_PATH)
        except Exception as e:
            print(f"\n⚠️  Warning: Could not remove test database: {e}")


@pytest.fixture
async def init_database():
    """Инициализация тестовой БД"""
    await Database.init_db()
    yield


# ============================================================================
# ЧАСЫ
# ============================================================================


@pytest.fixture
def clock():
    """1 марта 2025, 10:00 по времени салона"""
    return FixedClock(local_dt(2025, 3, 1, 10, 0))


# ============================================================================
# MOCK SCHEDULER
# ============================================================================


class MockScheduler:
    """Mock APScheduler для тестов"""

    def __init__(self):
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.job_history: List[Dict[str, Any]] = []

    def add_job(self, func, trigger, args=None, kwargs=None, id=None, replace_existing=False, **trigger_args):
        """Мок add_job"""
        if id:
            if id in self.jobs and not replace_existing:
                raise Exception(f"Job {id} already exists")

            self.jobs[id] = {
                "func": func,
                "trigger": trigger,
                "run_date": trigger_args.get("run_date"),
                "trigger_args": trigger_args,
                "args": args or [],
                "kwargs": kwargs or {},
            }
            self.job_history.append({"action": "add", "id": id})
        return Mock()

    def remove_job(self, job_id: str):
        """Мок remove_job"""
        if job_id in self.jobs:
            del self.jobs[job_id]
            self.job_history.append({"action": "remove", "id": job_id})
        else:
            raise Exception(f"Job {job_id} not found")

    def get_job(self, job_id: str):
        return self.jobs.get(job_id)

    def get_jobs(self) -> List:
        return list(self.jobs.values())

    def shutdown(self, wait=True):
        self.jobs.clear()


@pytest.fixture
def mock_scheduler():
    """Фикстура mock scheduler"""
    return MockScheduler()


# ============================================================================
# MOCK BOT
# ============================================================================


class MockBot:
    """Mock Telegram Bot для тестов"""

    def __init__(self):
        self.sent_messages: List[Dict[str, Any]] = []
        self.edited_markups: List[Dict[str, Any]] = []
        self.session = Mock()
        self.session.close = AsyncMock()

    async def send_message(self, chat_id: int, text: str, reply_markup=None, **kwargs):
        """Мок send_message"""
        self.sent_messages.append({"chat_id": chat_id, "text": text, "reply_markup": reply_markup})
        message = Mock(spec=Message)
        message.message_id = len(self.sent_messages)
        message.text = text
        return message

    async def edit_message_reply_markup(self, chat_id: int, message_id: int, reply_markup=None, **kwargs):
        """Мок edit_message_reply_markup"""
        self.edited_markups.append(
            {"chat_id": chat_id, "message_id": message_id, "reply_markup": reply_markup}
        )
        return Mock()


@pytest.fixture
def mock_bot():
    """Фикстура mock bot"""
    return MockBot()


# ============================================================================
# MOCK AIOGRAM OBJECTS
# ============================================================================


@pytest.fixture
def mock_user():
    """Создание mock User"""

    def _create_user(user_id: int = CUSTOMER_USER_ID, full_name: str = "Test User") -> User:
        user = Mock(spec=User)
        user.id = user_id
        user.username = "testuser"
        user.full_name = full_name
        user.is_bot = False
        return user

    return _create_user


@pytest.fixture
def mock_message(mock_user):
    """Создание mock Message"""

    def _create_message(text: str = "/start", user_id: int = CUSTOMER_USER_ID) -> Message:
        message = Mock(spec=Message)
        message.text = text
        message.message_id = 1
        message.from_user = mock_user(user_id=user_id)
        message.chat = Mock(spec=Chat)
        message.chat.id = user_id
        message.answer = AsyncMock(return_value=Mock(spec=Message))
        message.edit_text = AsyncMock()
        message.edit_reply_markup = AsyncMock()
        return message

    return _create_message


@pytest.fixture
def mock_callback_query(mock_user, mock_message):
    """Создание mock CallbackQuery"""

    def _create_callback(data: str = "test", user_id: int = CUSTOMER_USER_ID) -> CallbackQuery:
        callback = Mock(spec=CallbackQuery)
        callback.id = "callback_id_123"
        callback.data = data
        callback.from_user = mock_user(user_id=user_id)
        callback.message = mock_message(text="Test message", user_id=user_id)
        callback.answer = AsyncMock()
        return callback

    return _create_callback


@pytest.fixture
async def mock_state():
    """Создание FSMContext на MemoryStorage"""
    from aiogram.fsm.storage.base import StorageKey

    storage = MemoryStorage()
    bot = Mock(spec=Bot)
    bot.id = 123456789

    state = FSMContext(
        storage=storage,
        key=StorageKey(bot_id=bot.id, chat_id=CUSTOMER_USER_ID, user_id=CUSTOMER_USER_ID),
    )

    yield state

    await state.clear()


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def procedures(clock):
    return SalonProcedures(clock=clock)


@pytest.fixture
def availability(clock):
    return AvailabilityService(clock=clock)


@pytest.fixture
def booking_service(mock_scheduler, mock_bot, procedures, availability, clock):
    """Фикстура BookingService с фиксированными часами"""
    return BookingService(
        mock_scheduler,
        mock_bot,
        procedures=procedures,
        availability=availability,
        notifications=NotificationService(mock_bot),
        clock=clock,
    )


@pytest.fixture
def announcement_service(mock_bot):
    return AnnouncementService(NotificationService(mock_bot))


# ============================================================================
# ТЕСТОВЫЙ САЛОН
# ============================================================================


@pytest.fixture
async def salon(init_database):
    """Салон с дедлайном отмены 24 часа"""
    return await SalonRepository.create("Test Salon", cancellation_deadline_minutes=1440)


@pytest.fixture
async def operator(salon):
    success, code = await ProfileRepository.add_operator(OPERATOR_USER_ID, "Aya", salon.salon_id)
    assert success, code
    return await ProfileRepository.get_by_user_id(OPERATOR_USER_ID)


@pytest.fixture
async def customer(salon):
    return await ProfileRepository.register_customer(CUSTOMER_USER_ID, "Mika", salon.salon_id)


@pytest.fixture
async def menu(salon):
    menu_id = await MenuRepository.create(
        Menu(
            id=None,
            salon_id=salon.salon_id,
            name="Гель-маникюр",
            price_without_tax=6500,
            duration_minutes=90,
            with_off=True,
            off_price=1000,
        )
    )
    return await MenuRepository.get(menu_id)


@pytest.fixture
async def march_slots(salon, operator):
    """Слоты 5 марта 2025: 10:00, 10:30, 14:00"""
    await add_slots(salon.salon_id, operator.profile_id, "2025-03-05", ["10:00", "10:30", "14:00"])
    return "2025-03-05"
