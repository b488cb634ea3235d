from datetime import datetime
import uuid

from . import db


class NotificationTypes:
    GRADE_UPDATE = 'grade_update'
    ATTENDANCE_ALERT = 'attendance_alert'
    ANNOUNCEMENT = 'announcement'
    MESSAGE = 'message'
    USER_REGISTRATION = 'user_registration'
    REGISTRATION_APPROVED = 'registration_approved'
    REGISTRATION_REJECTED = 'registration_rejected'


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    sender_id = db.Column(db.String(36), nullable=True)
    type = db.Column(db.String(40), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    read = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    recipient = db.relationship('User', backref=db.backref('notifications', lazy=True, cascade='all, delete-orphan'))

    def __repr__(self):
        return f"<Notification {self.type} -> {self.recipient_id}>"

    def to_dict(self):
        return {
            'id': self.id,
            'recipient_id': self.recipient_id,
            'sender_id': self.sender_id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'read': self.read,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
