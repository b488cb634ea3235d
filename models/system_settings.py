from datetime import datetime

from . import db

_TRUE_VALUES = ('true', '1', 'yes', 'on')


class SystemSetting(db.Model):
    """Typed key/value configuration edited from the admin settings page"""

    __tablename__ = 'system_settings'

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(50), nullable=False)  # 'general', 'attendance', 'grades'
    key = db.Column(db.String(100), nullable=False)
    value = db.Column(db.Text, nullable=True)
    value_type = db.Column(db.String(20), nullable=False, default='string')  # 'string', 'boolean', 'integer', 'float'
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('category', 'key', name='unique_system_category_key'),)

    def __repr__(self):
        return f'<SystemSetting {self.category}.{self.key} = {self.value}>'

    @property
    def typed_value(self):
        """Stored text converted back to its declared type"""
        if self.value is None:
            return None
        converters = {
            'boolean': lambda raw: raw.lower() in _TRUE_VALUES,
            'integer': int,
            'float': float,
        }
        convert = converters.get(self.value_type)
        if convert is None:
            return self.value
        try:
            return convert(self.value)
        except (ValueError, TypeError):
            return None

    @typed_value.setter
    def typed_value(self, val):
        # bool must be tested before int
        if isinstance(val, bool):
            self.value_type, self.value = 'boolean', 'true' if val else 'false'
        elif isinstance(val, int):
            self.value_type, self.value = 'integer', str(val)
        elif isinstance(val, float):
            self.value_type, self.value = 'float', str(val)
        else:
            self.value_type = 'string'
            self.value = None if val is None else str(val)

    def to_dict(self):
        return {
            'category': self.category,
            'key': self.key,
            'value': self.typed_value,
            'value_type': self.value_type,
            'description': self.description,
        }

    @classmethod
    def upsert_setting(cls, category, key, value, description=None):
        """Insert or update a setting; the caller commits"""
        setting = cls.query.filter_by(category=category, key=key).first()
        if setting is None:
            setting = cls(category=category, key=key)
            db.session.add(setting)
        setting.typed_value = value
        setting.is_active = True
        if description:
            setting.description = description
        return setting
