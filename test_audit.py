import logging
from datetime import date, datetime, time
from decimal import Decimal

import pytest

from models import db, AuditLog
from services import audit


def test_record_serialises_snapshots(app):
    entry = audit.record("user-1", "save_grade", "grades", "grade-1",
                         before=None,
                         after={"day": date(2025, 8, 4), "at": time(7, 30), "grade": Decimal("88.50"),
                                "tags": ("a", "b")})

    stored = db.session.get(AuditLog, entry.id)
    assert stored.old_values is None
    assert stored.new_values == {"day": "2025-08-04", "at": "07:30:00", "grade": 88.5, "tags": ["a", "b"]}
    assert stored.created_at is not None


def test_entries_cannot_be_updated(app):
    entry = audit.record("user-1", "archive_user", "users", "user-2", {"archived": False}, {"archived": True})

    entry.action = "restore_user"
    with pytest.raises(RuntimeError):
        db.session.commit()
    db.session.rollback()
    assert db.session.get(AuditLog, entry.id).action == "archive_user"


def test_entries_cannot_be_deleted(app):
    entry = audit.record("user-1", "archive_user", "users", "user-2")

    db.session.delete(entry)
    with pytest.raises(RuntimeError):
        db.session.commit()
    db.session.rollback()
    assert AuditLog.query.count() == 1


def test_failed_audit_returns_none_and_logs_warning(app, monkeypatch, caplog):
    def broken_commit():
        raise RuntimeError("disk full")

    monkeypatch.setattr(db.session, "commit", broken_commit)
    with caplog.at_level(logging.WARNING, logger="services.audit"):
        assert audit.record("user-1", "save_grade", "grades", "grade-1") is None
    monkeypatch.undo()

    assert "Failed to record audit event save_grade on grades:grade-1 by user-1" in caplog.text
    assert AuditLog.query.count() == 0


def test_list_entries_filters_newest_first(app):
    for minute, (action, user) in enumerate([("save_grade", "t1"), ("mark_attendance", "t1"), ("save_grade", "t2")]):
        db.session.add(AuditLog(user_id=user, action=action, entity_type="grades", entity_id=f"e{minute}",
                                created_at=datetime(2025, 8, 4, 8, minute)))
    db.session.commit()

    assert [e.entity_id for e in audit.list_entries()] == ["e2", "e1", "e0"]
    assert [e.entity_id for e in audit.list_entries(action="save_grade")] == ["e2", "e0"]
    assert [e.entity_id for e in audit.list_entries(user_id="t1")] == ["e1", "e0"]
    assert [e.entity_id for e in audit.list_entries(start=datetime(2025, 8, 4, 8, 1))] == ["e2", "e1"]
    assert len(audit.list_entries(limit=1)) == 1
