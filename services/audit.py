"""
Audit trail: append-only who-did-what log with before/after snapshots.

Callers commit their own change first and then call ``record``; a failing
audit insert is rolled back on its own and logged, never raised.
"""

import logging
from datetime import date, time, datetime
from decimal import Decimal

from models import db, AuditLog

logger = logging.getLogger(__name__)


def _jsonable(value):
    """Make a snapshot safe for a JSON column."""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def record(actor_id, action, entity_type, entity_id, before=None, after=None):
    """Append one audit entry. Returns the entry, or None if it could not be stored."""
    try:
        entry = AuditLog(
            user_id=str(actor_id),
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            old_values=_jsonable(before) if before is not None else None,
            new_values=_jsonable(after) if after is not None else None,
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except Exception as e:
        db.session.rollback()
        logger.warning(
            "Failed to record audit event %s on %s:%s by %s: %s",
            action, entity_type, entity_id, actor_id, e,
        )
        return None


def list_entries(user_id=None, action=None, entity_type=None, entity_id=None,
                 start=None, end=None, limit=100):
    """Retrieve audit entries with optional filters, newest first."""
    query = AuditLog.query
    if user_id:
        query = query.filter_by(user_id=user_id)
    if action:
        query = query.filter_by(action=action)
    if entity_type:
        query = query.filter_by(entity_type=entity_type)
    if entity_id:
        query = query.filter_by(entity_id=str(entity_id))
    if start:
        query = query.filter(AuditLog.created_at >= start)
    if end:
        query = query.filter(AuditLog.created_at <= end)
    return query.order_by(AuditLog.created_at.desc()).limit(limit).all()
