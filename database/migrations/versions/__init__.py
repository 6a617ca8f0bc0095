"""Пакет для версий миграций"""

from database.migrations.versions.v001_initial_schema import InitialSchema
from database.migrations.versions.v002_add_coupons_and_karute import AddCouponsAndKarute
from database.migrations.versions.v003_salon_details_and_announcements import AddSalonDetailsAndAnnouncements

# Порядок регистрации не важен: менеджер сортирует по version
ALL_MIGRATIONS = [InitialSchema, AddCouponsAndKarute, AddSalonDetailsAndAnnouncements]

__all__ = ["InitialSchema", "AddCouponsAndKarute", "AddSalonDetailsAndAnnouncements", "ALL_MIGRATIONS"]
