from datetime import datetime
import uuid

from sqlalchemy import event

from . import db


class AuditLog(db.Model):
    """Append-only record of who changed what.

    ``user_id`` is deliberately not a foreign key: entries must outlive the
    accounts they mention.
    """

    __tablename__ = 'audit_logs'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), nullable=False, index=True)
    action = db.Column(db.String(80), nullable=False, index=True)
    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.String(36), nullable=False, index=True)
    old_values = db.Column(db.JSON, nullable=True)
    new_values = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} {self.entity_type}:{self.entity_id} by {self.user_id}>"

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'action': self.action,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'old_values': self.old_values,
            'new_values': self.new_values,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


@event.listens_for(AuditLog, 'before_update')
def _refuse_update(mapper, connection, target):
    raise RuntimeError(f"Audit log entries are immutable (id={target.id})")


@event.listens_for(AuditLog, 'before_delete')
def _refuse_delete(mapper, connection, target):
    raise RuntimeError(f"Audit log entries cannot be deleted (id={target.id})")
