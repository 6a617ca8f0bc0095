"""Сервис аналитики"""

from datetime import date, datetime
from typing import Dict, Optional

from database.repositories.analytics_repository import AnalyticsRepository
from database.repositories.reservation_repository import ReservationRepository
from utils.datetime_utils import month_range
from utils.helpers import now_local


class AnalyticsService:
    """Сервис для статистики салона"""

    @staticmethod
    async def get_salon_stats(
        salon_id: str, selected_date: Optional[date] = None, now: Optional[datetime] = None
    ) -> Dict:
        """Статистика для экрана записей оператора"""
        now = now or now_local()
        today = now.date()
        selected_date = selected_date or today
        first, last = month_range(today)

        month_count = await ReservationRepository.count_for_period(
            salon_id, first.isoformat(), last.isoformat()
        )
        day_count = await ReservationRepository.count_for_period(
            salon_id, selected_date.isoformat(), selected_date.isoformat()
        )
        today_remaining = await ReservationRepository.count_remaining_today(
            salon_id, today.isoformat(), now.strftime("%H:%M")
        )
        top_menus = await AnalyticsRepository.get_top_menus(salon_id, limit=3)

        return {
            "month_count": month_count,
            "day_count": day_count,
            "today_remaining": today_remaining,
            "top_menus": top_menus,
        }
