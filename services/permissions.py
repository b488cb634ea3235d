"""
Roles, capabilities and the explicit actor passed into every service call.
"""

from collections import namedtuple
from enum import Enum

from services.errors import PermissionDenied, ValidationError


class Role(str, Enum):
    ADMIN = 'admin'
    TEACHER = 'teacher'
    PARENT = 'parent'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or '').strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown role: {value!r}")


# Capability names
VIEW_PUPILS = 'view_pupils'
EDIT_PUPILS = 'edit_pupils'
EDIT_GRADES = 'edit_grades'
MARK_ATTENDANCE = 'mark_attendance'
EXCUSE_ABSENCE = 'excuse_absence'
VIEW_REPORTS = 'view_reports'
EXPORT_CLASS_DATA = 'export_class_data'
MANAGE_USERS = 'manage_users'
REVIEW_REGISTRATIONS = 'review_registrations'
PROMOTE_PUPILS = 'promote_pupils'
VIEW_AUDIT_LOGS = 'view_audit_logs'
MANAGE_SETTINGS = 'manage_settings'
VIEW_OWN_CHILDREN = 'view_own_children'
VIEW_CHILD_GRADES = 'view_child_grades'
VIEW_CHILD_ATTENDANCE = 'view_child_attendance'
VIEW_NOTIFICATIONS = 'view_notifications'

_TEACHER_CAPABILITIES = frozenset({
    VIEW_PUPILS, EDIT_PUPILS, EDIT_GRADES, MARK_ATTENDANCE,
    EXCUSE_ABSENCE, VIEW_REPORTS, EXPORT_CLASS_DATA, VIEW_NOTIFICATIONS,
})

_PARENT_CAPABILITIES = frozenset({
    VIEW_OWN_CHILDREN, VIEW_CHILD_GRADES, VIEW_CHILD_ATTENDANCE, VIEW_NOTIFICATIONS,
})


def capabilities_for(role):
    role = Role.parse(role)
    if role is Role.ADMIN:
        return None  # unrestricted
    if role is Role.TEACHER:
        return _TEACHER_CAPABILITIES
    if role is Role.PARENT:
        return _PARENT_CAPABILITIES
    raise ValidationError(f"Unknown role: {role!r}")


class Actor(namedtuple('Actor', ['id', 'role'])):
    """Who is calling: an account id plus its role claim."""

    __slots__ = ()

    def __new__(cls, id, role):
        return super().__new__(cls, id, Role.parse(role))

    @classmethod
    def from_user(cls, user):
        return cls(user.id, user.role)

    def can(self, capability):
        allowed = capabilities_for(self.role)
        return allowed is None or capability in allowed

    @property
    def is_admin(self):
        return self.role is Role.ADMIN


def require(actor, capability):
    """Raise ``PermissionDenied`` unless ``actor`` holds ``capability``."""
    if actor is None or not actor.id:
        raise PermissionDenied("You must be signed in")
    if not actor.can(capability):
        raise PermissionDenied(f"The {actor.role.value} role cannot {capability.replace('_', ' ')}")
    return actor
