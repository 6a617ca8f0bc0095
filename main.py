"""Главный файл приложения"""

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import BOT_TOKEN
from database.procedures import SalonProcedures
from database.queries import Database
from handlers import (
    announcement_handlers,
    booking_handlers,
    operator_handlers,
    salon_handlers,
    user_handlers,
)
from middlewares.session import SessionMiddleware
from services.announcement_service import AnnouncementService
from services.availability_service import AvailabilityService
from services.booking_service import BookingService
from services.clock import MinuteClock
from services.notification_service import NotificationService
from services.reservation_boards import ReservationBoards
from services.schedule_service import ScheduleService

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


async def main():
    """Главная функция"""
    # Инициализация
    bot = Bot(token=BOT_TOKEN)
    storage = MemoryStorage()
    dp = Dispatcher(storage=storage)

    # Исполнитель по умолчанию: корутины напоминаний выполняются в event loop
    scheduler = AsyncIOScheduler(
        job_defaults={
            'coalesce': True,
            'max_instances': 1
        }
    )

    # Инициализация БД
    await Database.init_db()

    # Сервисы
    procedures = SalonProcedures()
    availability = AvailabilityService()
    notification_service = NotificationService(bot)
    booking_service = BookingService(
        scheduler, bot, procedures=procedures, availability=availability, notifications=notification_service
    )
    schedule_service = ScheduleService(procedures, availability)
    announcement_service = AnnouncementService(notification_service)

    clock = MinuteClock(scheduler)
    boards = ReservationBoards(bot)
    clock.subscribe(boards.on_tick)

    # Регистрация сервисов для dependency injection
    dp["booking_service"] = booking_service
    dp["schedule_service"] = schedule_service
    dp["notification_service"] = notification_service
    dp["announcement_service"] = announcement_service
    dp["clock"] = clock
    dp["boards"] = boards

    # Сессия пользователя определяется до фильтров роутеров
    dp.message.outer_middleware(SessionMiddleware())
    dp.callback_query.outer_middleware(SessionMiddleware())

    # Регистрация роутеров (ВАЖЕН ПОРЯДОК!)
    dp.include_router(operator_handlers.admin_router)  # 1. Команды платформы
    dp.include_router(operator_handlers.router)        # 2. Операторы
    dp.include_router(salon_handlers.router)
    dp.include_router(announcement_handlers.router)
    dp.include_router(booking_handlers.router)         # 3. Бронирования
    dp.include_router(announcement_handlers.customer_router)
    dp.include_router(user_handlers.router)            # 4. Клиенты последними

    # Восстановление напоминаний
    await booking_service.restore_reminders()

    # Запуск планировщика
    scheduler.start()
    clock.start()

    logging.info("🚀 Bot started")

    try:
        await dp.start_polling(bot, skip_updates=True)
    finally:
        clock.stop()
        await bot.session.close()
        scheduler.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
