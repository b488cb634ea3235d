"""
School-wide settings helper backed by the ``system_settings`` table.
"""
import os
from datetime import datetime

import pytz

from models import SystemSetting, db

DEFAULT_TIMEZONE = os.getenv('SCHOOL_TIMEZONE', 'Asia/Manila')


class SystemSettings:
    """Utility class for accessing system settings"""

    _cache = {}
    _cache_loaded = False

    @classmethod
    def _load_cache(cls):
        """Load all active settings into cache"""
        if not cls._cache_loaded:
            cls._cache = {}
            for setting in SystemSetting.query.filter_by(is_active=True).all():
                cls._cache.setdefault(setting.category, {})[setting.key] = setting.typed_value
            cls._cache_loaded = True

    @classmethod
    def get(cls, category, key, default=None):
        """Get a setting value"""
        cls._load_cache()
        value = cls._cache.get(category, {}).get(key)
        return default if value is None else value

    @classmethod
    def get_category(cls, category):
        """Get all settings for a category"""
        cls._load_cache()
        return dict(cls._cache.get(category, {}))

    @classmethod
    def set(cls, category, key, value, description=None):
        """Set a setting value"""
        SystemSetting.upsert_setting(category, key, value, description)
        db.session.commit()
        cls.invalidate_cache()

    @classmethod
    def invalidate_cache(cls):
        """Invalidate the settings cache"""
        cls._cache_loaded = False

    # Convenience methods for common settings
    @classmethod
    def get_school_name(cls):
        return cls.get('general', 'school_name', '')

    @classmethod
    def get_timezone(cls):
        return cls.get('general', 'timezone', DEFAULT_TIMEZONE)

    @classmethod
    def get_late_threshold_minutes(cls):
        return cls.get('attendance', 'late_threshold_minutes', 15)

    @classmethod
    def get_minimum_attendance_rate(cls):
        return cls.get('attendance', 'minimum_rate', 75)

    @classmethod
    def school_now(cls):
        """Current wall-clock time at the school (naive, school timezone)"""
        try:
            tz = pytz.timezone(cls.get_timezone())
        except pytz.UnknownTimeZoneError:
            tz = pytz.timezone(DEFAULT_TIMEZONE)
        return datetime.now(tz).replace(tzinfo=None)

    @classmethod
    def school_today(cls):
        return cls.school_now().date()
