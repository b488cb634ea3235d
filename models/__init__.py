from .user import User, UserRoles, db
from .credential import IdentityCredential
from .registration import UserRegistration, RegistrationStatus
from .register_pupil import Pupil
from .subject import Subject
from .grade import Grade
from .attendance import Attendance, AttendanceStatus
from .teacher_assignment import TeacherClass
from .profile import ParentProfile, TeacherProfile
from .audit_log import AuditLog
from .notification import Notification, NotificationTypes
from .system_settings import SystemSetting

__all__ = ['User', 'UserRoles', 'db', 'IdentityCredential', 'UserRegistration', 'RegistrationStatus', 'Pupil', 'Subject', 'Grade', 'Attendance', 'AttendanceStatus', 'TeacherClass', 'ParentProfile', 'TeacherProfile', 'AuditLog', 'Notification', 'NotificationTypes', 'SystemSetting']
