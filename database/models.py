"""Модели данных"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Literal, Optional, Union

from config import DEFAULT_OPENING_END, DEFAULT_OPENING_START, OPENING_DAYS
from utils.datetime_utils import parse_datetime
from utils.helpers import format_duration

RESERVATION_STATUSES = ("reserved", "completed", "canceled", "noshow")


@dataclass
class OpeningHours:
    """Часы работы салона в один день"""
    is_open: bool = True
    start: str = DEFAULT_OPENING_START
    end: str = DEFAULT_OPENING_END

    def display(self) -> str:
        return f"{self.start}-{self.end}" if self.is_open else "выходной"


def default_opening_hours() -> Dict[str, OpeningHours]:
    return {day: OpeningHours() for day in OPENING_DAYS}


@dataclass
class Salon:
    """Салон (арендатор)"""
    salon_id: str
    name: str
    cancellation_deadline_minutes: int = 1440
    is_active: bool = True
    created_at: Optional[str] = None
    # Карточка салона для клиентов
    phone_number: str = ""
    address: str = ""
    access_info: str = ""
    opening_hours: Dict[str, OpeningHours] = field(default_factory=default_opening_hours)
    payment_methods: List[str] = field(default_factory=list)


@dataclass
class OperatorProfile:
    """Профиль сотрудника салона"""
    profile_id: str
    user_id: int
    salon_id: str
    display_name: str
    is_active: bool = True
    kind: Literal["operator"] = "operator"


@dataclass
class CustomerProfile:
    """Профиль клиента"""
    profile_id: str
    user_id: int
    salon_id: Optional[str]
    display_name: str
    kind: Literal["customer"] = "customer"


# Профиль различается по явному тегу kind, а не по набору полей
UserProfile = Union[OperatorProfile, CustomerProfile]


def profile_from_row(row) -> UserProfile:
    """Построить профиль из строки таблицы profiles (aiosqlite.Row)"""
    if row["kind"] == "operator":
        return OperatorProfile(
            profile_id=row["profile_id"],
            user_id=row["user_id"],
            salon_id=row["salon_id"],
            display_name=row["display_name"],
            is_active=bool(row["is_active"]),
        )
    if row["kind"] == "customer":
        return CustomerProfile(
            profile_id=row["profile_id"],
            user_id=row["user_id"],
            salon_id=row["salon_id"],
            display_name=row["display_name"],
        )
    raise ValueError(f"Unknown profile kind: {row['kind']}")


@dataclass
class MenuCategory:
    """Категория меню"""
    category_id: int
    salon_id: str
    name: str
    is_coupon: bool = False


@dataclass
class MenuDivision:
    """Раздел меню (тег, например «Руки» или «Ноги»)"""
    id: int
    salon_id: str
    name: str
    sort_order: int = 0


@dataclass
class Menu:
    """Модель услуги (меню салона)"""
    id: Optional[int]
    salon_id: str
    name: str
    price_without_tax: int
    duration_minutes: int
    category_id: Optional[int] = None
    description: Optional[str] = None
    with_off: bool = False
    off_price: int = 0
    is_active: bool = True
    # Поля купона
    discount_amount: Optional[int] = None
    valid_from: Optional[str] = None
    valid_until: Optional[str] = None
    # Разделы (теги) меню для фильтра клиента
    division_ids: List[int] = field(default_factory=list)

    def get_duration_display(self) -> str:
        return format_duration(self.duration_minutes)

    @property
    def is_coupon(self) -> bool:
        return self.discount_amount is not None

    def is_coupon_valid(self, on_date: date) -> bool:
        """Действует ли скидка купона на дату записи"""
        if not self.is_coupon or not self.valid_from or not self.valid_until:
            return False
        return self.valid_from <= on_date.isoformat() <= self.valid_until

    def discounted_price(self, on_date: date) -> int:
        """Цена меню с учётом купона на дату записи"""
        if self.is_coupon_valid(on_date):
            return max(self.price_without_tax - self.discount_amount, 0)
        return self.price_without_tax

    def total_price(self, on_date: date, gel_removal: Optional[bool] = None) -> int:
        """Итоговая цена без налога (со снятием, если оно входит)"""
        if gel_removal is None:
            gel_removal = self.with_off
        price = self.discounted_price(on_date)
        if gel_removal:
            price += self.off_price
        return price


@dataclass
class Slot:
    """Слот для записи к оператору"""
    id: Optional[int]
    salon_id: str
    operator_id: str
    slot_date: str
    slot_time: str
    is_booked: bool = False


@dataclass
class Reservation:
    """Запись клиента"""
    reservation_id: str
    customer_id: str
    operator_id: str
    salon_id: str
    menu_id: Optional[int]
    reservation_date: str
    reservation_time: str
    status: str = "reserved"
    gel_removal: bool = False
    off_price: int = 0
    other_requests: str = ""
    total_price: int = 0
    cancellation_deadline_minutes: Optional[int] = None
    created_at: Optional[str] = None
    canceled_at: Optional[str] = None
    canceled_by: Optional[str] = None

    # Расширенные поля (загружаются из JOIN)
    menu_name: Optional[str] = None
    operator_name: Optional[str] = None
    customer_name: Optional[str] = None
    salon_name: Optional[str] = None
    customer_user_id: Optional[int] = None
    operator_user_id: Optional[int] = None

    def starts_at(self) -> datetime:
        return parse_datetime(self.reservation_date, self.reservation_time)


@dataclass
class Karute:
    """Карта предпочтений клиента"""
    customer_id: str
    salon_id: str
    notes: str = ""
    updated_at: Optional[str] = None


@dataclass
class Announcement:
    """Объявление салона для клиентов"""
    id: Optional[int]
    salon_id: str
    operator_id: str
    title: str
    content: str
    customer_id: Optional[str] = None  # None: всем клиентам салона
    is_published: bool = False
    published_at: Optional[str] = None
    created_at: Optional[str] = None

    # Расширенные поля (загружаются из JOIN)
    operator_name: Optional[str] = None
    customer_name: Optional[str] = None
    is_read: bool = False


@dataclass
class AnnouncementRead:
    """Прочтение объявления клиентом"""
    customer_id: str
    customer_name: str
    read_at: Optional[str] = None
