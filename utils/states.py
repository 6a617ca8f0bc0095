"""FSM состояния"""

from aiogram.fsm.state import State, StatesGroup


class BookingStates(StatesGroup):
    """Состояния записи клиента"""

    selecting_operator = State()
    selecting_date = State()
    selecting_time = State()
    confirming = State()
    entering_request = State()


class ScheduleStates(StatesGroup):
    """Состояния для шаблона расписания оператора"""

    selecting_weekdays = State()
    awaiting_time_range = State()
    selecting_interval = State()
    confirming = State()


class MenuStates(StatesGroup):
    """Состояния создания и изменения меню"""

    selecting_category = State()
    awaiting_name = State()
    awaiting_price = State()
    awaiting_duration = State()
    selecting_off = State()
    awaiting_off_price = State()
    awaiting_coupon = State()
    editing_field = State()
    awaiting_division = State()


class KaruteStates(StatesGroup):
    """Редактирование карты клиента"""

    awaiting_notes = State()


class SalonStates(StatesGroup):
    """Изменение карточки салона"""

    awaiting_text = State()
    awaiting_hours = State()
    awaiting_deadline = State()


class AnnouncementStates(StatesGroup):
    """Создание и изменение объявления"""

    selecting_target = State()
    awaiting_title = State()
    awaiting_content = State()
