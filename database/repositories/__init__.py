"""Репозитории для работы с базой данных"""

from database.repositories.analytics_repository import (
    AnalyticsRepository,
    CustomerStats,
)
from database.repositories.karute_repository import KaruteRepository
from database.repositories.menu_repository import MenuRepository
from database.repositories.profile_repository import ProfileRepository
from database.repositories.reservation_repository import ReservationRepository
from database.repositories.salon_repository import SalonRepository
from database.repositories.slot_repository import SlotRepository

__all__ = [
    "AnalyticsRepository",
    "CustomerStats",
    "KaruteRepository",
    "MenuRepository",
    "ProfileRepository",
    "ReservationRepository",
    "SalonRepository",
    "SlotRepository",
]
