"""Ошибки и коды результатов бизнес-операций"""


class SalonBotError(Exception):
    """Базовая ошибка приложения"""


class ValidationError(SalonBotError):
    """Некорректный ввод, обнаруженный до обращения к хранилищу"""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class SelectionError(SalonBotError):
    """Недопустимый выбор даты/времени в календаре"""


# Тексты для кодов результатов, которые видит пользователь
ERROR_MESSAGES = {
    "slot_taken": "❌ Это время только что заняли. Выберите другое.",
    "slot_not_found": "❌ Это время больше недоступно. Выберите другое.",
    "slot_in_past": "❌ Это время уже прошло. Выберите другое.",
    "limit_exceeded": "❌ У вас уже есть активная запись.",
    "has_active_reservation": "❌ У вас уже есть активная запись. Отмените её, чтобы записаться снова.",
    "locked_out": (
        "⛔ Запись временно недоступна из-за частых отмен.\n"
        "Попробуйте позже или свяжитесь с салоном."
    ),
    "menu_unavailable": "❌ Это меню больше недоступно.",
    "menu_in_use": "❌ По этому меню есть записи. Его можно только выключить.",
    "operator_unavailable": "❌ Мастер недоступен. Выберите другого.",
    "not_found": "❌ Запись не найдена.",
    "forbidden": "⛔ Недостаточно прав для этого действия.",
    "not_cancelable": "❌ Эту запись нельзя отменить.",
    "deadline_passed": "❌ Срок онлайн-отмены истёк. Свяжитесь с салоном.",
    "no_confirmation": "⌛ Подтверждение устарело. Начните запись заново.",
    "too_early": "⏳ Отметить можно только после начала записи.",
    "in_flight": "⏳ Запрос уже обрабатывается...",
    "timeout": "⏱ Сервер не ответил вовремя. Попробуйте ещё раз.",
    "unknown_error": "❌ Произошла ошибка. Попробуйте ещё раз.",
}

# Коды, после которых нужно перезагрузить доступность слотов
REFRESH_CODES = frozenset({"slot_taken", "slot_not_found", "slot_in_past", "limit_exceeded", "locked_out"})


def error_message(code: str) -> str:
    return ERROR_MESSAGES.get(code, ERROR_MESSAGES["unknown_error"])
