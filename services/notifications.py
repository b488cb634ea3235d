"""
Notification helpers. Notifications are fire-and-forget: ``notify`` and the
helpers built on it log failures and report them as False instead of raising.
"""

import logging

from models import db, Notification, NotificationTypes, User, UserRoles

logger = logging.getLogger(__name__)


def create_notification(recipient_id, notification_type, title, message, sender_id=None):
    """Create a notification for one user."""
    notification = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=notification_type,
        title=title,
        message=message,
    )
    db.session.add(notification)
    db.session.commit()
    return notification


def notify(recipient_id, notification_type, title, message, sender_id=None):
    """Best-effort ``create_notification``; returns True when stored."""
    try:
        create_notification(recipient_id, notification_type, title, message, sender_id)
        return True
    except Exception as e:
        db.session.rollback()
        logger.warning("Failed to send %s notification to %s: %s", notification_type, recipient_id, e)
        return False


def notify_admins(notification_type, title, message, sender_id=None):
    """Notify every active administrator. Returns the number notified."""
    admins = User.query.filter_by(role=UserRoles.ADMIN, archived=False).all()
    return sum(1 for admin in admins if notify(admin.id, notification_type, title, message, sender_id))


def send_absence_notification(pupil, subject, day, sender_id=None):
    """Tell the pupil's guardian about an absence. False when no guardian is linked."""
    if not pupil.parent_id:
        return False
    subject_name = subject.name if subject else 'class'
    return notify(
        pupil.parent_id,
        NotificationTypes.ATTENDANCE_ALERT,
        'Attendance Alert',
        f"Your child {pupil.first_name} {pupil.last_name} was marked absent in "
        f"{subject_name} on {day.strftime('%B %d, %Y')}.",
        sender_id,
    )


def unread_for(user_id, limit=50):
    return (Notification.query
            .filter_by(recipient_id=user_id, read=False)
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .all())


def mark_read(user_id, notification_id):
    """Mark one of the user's notifications read; False if it is not theirs."""
    notification = Notification.query.filter_by(id=notification_id, recipient_id=user_id).first()
    if notification is None:
        return False
    notification.read = True
    db.session.commit()
    return True
