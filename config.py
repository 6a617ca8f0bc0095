"""Конфигурация приложения"""

import os

import pytz
from dotenv import load_dotenv

load_dotenv()

# Telegram
BOT_TOKEN = os.getenv("BOT_TOKEN")

# Администраторы платформы (создают салоны)
ADMIN_IDS_STR = os.getenv("ADMIN_IDS", "")
if not ADMIN_IDS_STR:
    raise ValueError("ADMIN_IDS not found in .env file")

ADMIN_IDS = [int(id.strip()) for id in ADMIN_IDS_STR.split(",") if id.strip()]

if not BOT_TOKEN:
    raise ValueError("BOT_TOKEN not found in .env file")
if not ADMIN_IDS:
    raise ValueError("No valid admin IDs provided")

# База данных
DATABASE_PATH = os.getenv("DATABASE_PATH", "salon.db")

# Временная зона
TIMEZONE = pytz.timezone(os.getenv("TIMEZONE", "Asia/Tokyo"))

# Политика бронирования
MAX_ACTIVE_RESERVATIONS = 1
DEFAULT_CANCELLATION_DEADLINE_MINUTES = 1440  # 24 часа
OTHER_REQUESTS_MAX_LENGTH = 200

# Защита от злоупотреблений: частые отмены блокируют запись
CANCEL_ABUSE_THRESHOLD = 3
CANCEL_ABUSE_WINDOW_MINUTES = 60
BOOKING_LOCKOUT_HOURS = 24

# Тайминги (в секундах)
MUTATION_TIMEOUT = 15.0  # Таймаут для изменяющих операций
CLOCK_TICK_SECONDS = 60  # Обновление "текущего времени" для операторских экранов
REMINDER_HOURS_BEFORE = 24

# Повторы для чтения слотов
FETCH_RETRY_ATTEMPTS = 3
FETCH_RETRY_DELAY = 0.5

# Ограничения навигации календаря
CALENDAR_MAX_MONTHS_AHEAD = 3  # Максимум месяцев вперёд для бронирования

# Расписание операторов
SLOT_INTERVAL_OPTIONS = (30, 60)
DEFAULT_SCHEDULE_START = "10:00"
DEFAULT_SCHEDULE_END = "19:00"

# История записей
HISTORY_INITIAL_SIZE = 5
HISTORY_PAGE_SIZE = 10

# Информация о салоне
SALON_NAME_MAX_LENGTH = 100
SALON_TEXT_MAX_LENGTH = 200
DEFAULT_OPENING_START = "10:00"
DEFAULT_OPENING_END = "19:00"

# Дни для часов работы (holiday = праздничные дни)
OPENING_DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday", "holiday")
OPENING_DAY_NAMES = {
    "monday": "Пн",
    "tuesday": "Вт",
    "wednesday": "Ср",
    "thursday": "Чт",
    "friday": "Пт",
    "saturday": "Сб",
    "sunday": "Вс",
    "holiday": "Праздники",
}

PAYMENT_METHOD_NAMES = {
    "cash": "Наличные",
    "credit_card": "Банковская карта",
    "e_money": "Электронные деньги",
    "qr_code": "Оплата по QR-коду",
}

# Объявления салона
ANNOUNCEMENT_TITLE_MAX_LENGTH = 50
ANNOUNCEMENT_CONTENT_MAX_LENGTH = 200

# Разделы меню (теги для фильтра клиента)
MENU_DIVISION_NAME_MAX_LENGTH = 30

# Названия месяцев
MONTH_NAMES = [
    "Январь",
    "Февраль",
    "Март",
    "Апрель",
    "Май",
    "Июнь",
    "Июль",
    "Август",
    "Сентябрь",
    "Октябрь",
    "Ноябрь",
    "Декабрь",
]

# Названия дней недели
DAY_NAMES = [
    "понедельник",
    "вторник",
    "среду",
    "четверг",
    "пятницу",
    "субботу",
    "воскресенье",
]

DAY_NAMES_SHORT = ["Пн", "Вт", "Ср", "Чт", "Пт", "Сб", "Вс"]

# Статусы записей для отображения
STATUS_NAMES = {
    "reserved": "Забронировано",
    "completed": "Завершено",
    "canceled": "Отменено",
    "noshow": "Неявка",
}
