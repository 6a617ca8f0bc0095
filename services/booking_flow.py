"""Подтверждение и отправка записи: Idle -> Confirming -> Submitting -> Done|Failed"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional

from config import OTHER_REQUESTS_MAX_LENGTH
from services.errors import SalonBotError, ValidationError


class FlowState(str, Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ReservationDraft:
    """Данные записи до подтверждения клиентом"""

    customer_id: str
    customer_user_id: int
    salon_id: str
    operator_id: str
    menu_id: int
    reservation_date: str
    reservation_time: str
    gel_removal: bool = False
    off_price: int = 0
    other_requests: str = ""
    # Для сводки
    menu_name: str = ""
    operator_name: str = ""
    duration_minutes: int = 0
    total_price: int = 0

    def validate(self):
        """Проверка до любого обращения к хранилищу"""
        for field_name in ("customer_id", "salon_id", "operator_id", "reservation_date", "reservation_time"):
            if not getattr(self, field_name):
                raise ValidationError(field_name, "Выберите мастера, дату и время")
        if self.menu_id is None:
            raise ValidationError("menu_id", "Выберите меню")
        if len(self.other_requests or "") > OTHER_REQUESTS_MAX_LENGTH:
            raise ValidationError(
                "other_requests",
                f"Пожелания не должны превышать {OTHER_REQUESTS_MAX_LENGTH} символов",
            )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ReservationDraft":
        return cls(**data)


class BookingFlow:
    """Машина состояний подтверждения записи

    Переход CONFIRMING -> SUBMITTING синхронный, поэтому повторная
    отправка во время запроса отклоняется без обращения к хранилищу.
    """

    def __init__(self):
        self.state = FlowState.IDLE
        self.draft: Optional[ReservationDraft] = None
        self.result_code: Optional[str] = None

    @property
    def is_submitting(self) -> bool:
        return self.state == FlowState.SUBMITTING

    def open(self, draft: ReservationDraft):
        """Показать сводку для подтверждения"""
        if self.is_submitting:
            raise SalonBotError("Запрос уже отправлен")
        draft.validate()
        self.draft = draft
        self.result_code = None
        self.state = FlowState.CONFIRMING

    def update_requests(self, text: str):
        if self.state != FlowState.CONFIRMING or self.draft is None:
            raise SalonBotError("Нет записи для подтверждения")
        if len(text) > OTHER_REQUESTS_MAX_LENGTH:
            raise ValidationError(
                "other_requests",
                f"Пожелания не должны превышать {OTHER_REQUESTS_MAX_LENGTH} символов",
            )
        self.draft.other_requests = text

    def back(self) -> bool:
        """Вернуться к выбору без побочных эффектов"""
        if self.is_submitting:
            return False
        self.state = FlowState.IDLE
        self.draft = None
        return True

    def begin_submit(self) -> bool:
        """Занять право на единственную отправку"""
        if self.state != FlowState.CONFIRMING:
            return False
        self.state = FlowState.SUBMITTING
        return True

    def finish(self, success: bool, code: str):
        self.state = FlowState.DONE if success else FlowState.FAILED
        self.result_code = code
