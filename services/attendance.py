"""
Attendance recording.

One record per (pupil, subject, date); marking the same key again overwrites
it (last write wins, there is no locking between teachers).
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from models import db, Attendance, AttendanceStatus, Pupil, Subject
from services import audit
from services.errors import Conflict, NotFound, ValidationError
from services.notifications import send_absence_notification
from services.permissions import EXCUSE_ABSENCE, MARK_ATTENDANCE, require
from services.rules import attendance_rate, is_late, parse_date, parse_time
from utils.settings import SystemSettings

logger = logging.getLogger(__name__)


def _get_pupil(pupil_id):
    pupil = db.session.get(Pupil, pupil_id)
    if pupil is None:
        raise NotFound(f"Pupil {pupil_id} does not exist")
    return pupil


def _get_subject(subject_id):
    subject = db.session.get(Subject, subject_id)
    if subject is None:
        raise NotFound(f"Subject {subject_id} does not exist")
    return subject


def effective_status(raw_status, time_in, subject, threshold_minutes=None):
    """Status to store: a 'present' arriving past the threshold becomes 'late'."""
    status = (raw_status or '').strip().lower()
    if status not in AttendanceStatus.ALL:
        raise ValidationError(f"Invalid attendance status: {raw_status!r}")
    if status == AttendanceStatus.PRESENT and subject is not None and subject.start_time:
        if threshold_minutes is None:
            threshold_minutes = SystemSettings.get_late_threshold_minutes()
        if is_late(time_in, subject.start_time, threshold_minutes):
            return AttendanceStatus.LATE
    return status


def find_record(pupil_id, subject_id, day):
    return Attendance.query.filter_by(pupil_id=pupil_id, subject_id=subject_id, date=day).first()


def mark_attendance(actor, pupil_id, subject_id, day, raw_status, observed_time_in=None, remarks=None):
    """Upsert the attendance record for (pupil, subject, day) and return it."""
    require(actor, MARK_ATTENDANCE)
    day = parse_date(day)
    time_in = parse_time(observed_time_in, 'time in')
    pupil = _get_pupil(pupil_id)
    subject = _get_subject(subject_id)

    status = effective_status(raw_status, time_in, subject)
    if status != (raw_status or '').strip().lower():
        logger.info("Pupil %s arrived at %s for %s; marked %s", pupil_id, time_in, subject.code, status)

    record = find_record(pupil_id, subject_id, day)
    before = record.snapshot() if record else None
    if record is None:
        record = Attendance(pupil_id=pupil_id, subject_id=subject_id, date=day)
        db.session.add(record)

    record.status = status
    record.time_in = time_in if status in (AttendanceStatus.PRESENT, AttendanceStatus.LATE) else None
    record.remarks = (remarks or '').strip() or None
    if status != AttendanceStatus.EXCUSED:
        record.excuse_reason = None
    record.teacher_id = actor.id
    record.updated_at = datetime.utcnow()

    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise Conflict(f"Attendance for this pupil, subject and date was saved concurrently: {e.orig}")

    audit.record(actor.id, 'mark_attendance', 'attendance', record.id, before, record.snapshot())

    if status == AttendanceStatus.ABSENT:
        send_absence_notification(pupil, subject, day, actor.id)
    return record


def excuse_absence(actor, pupil_id, subject_id, day, reason):
    """Turn an existing record into an excused absence."""
    require(actor, EXCUSE_ABSENCE)
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('Please provide a reason for the excuse')
    day = parse_date(day)

    record = find_record(pupil_id, subject_id, day)
    if record is None:
        raise NotFound('No attendance record exists for this pupil, subject and date')

    before = {'status': record.status, 'excuse_reason': record.excuse_reason}
    record.status = AttendanceStatus.EXCUSED
    record.excuse_reason = reason
    record.time_in = None
    record.teacher_id = actor.id
    record.updated_at = datetime.utcnow()
    db.session.commit()

    audit.record(actor.id, 'excuse_absence', 'attendance', record.id,
                 before, {'status': AttendanceStatus.EXCUSED, 'excuse_reason': reason})
    return record


def list_attendance(subject_id, day, pupil_ids=None):
    query = Attendance.query.filter_by(subject_id=subject_id, date=parse_date(day))
    if pupil_ids is not None:
        query = query.filter(Attendance.pupil_id.in_(list(pupil_ids)))
    return query.all()


def pupil_attendance_stats(pupil_id, start, end):
    """Status counts and attendance rate for one pupil between two dates (inclusive)."""
    records = (Attendance.query
               .filter(Attendance.pupil_id == pupil_id,
                       Attendance.date >= parse_date(start, 'start date'),
                       Attendance.date <= parse_date(end, 'end date'))
               .all())
    stats = {status: 0 for status in AttendanceStatus.ALL}
    for record in records:
        stats[record.status] = stats.get(record.status, 0) + 1
    stats['total'] = len(records)
    stats['rate'] = attendance_rate(
        stats[AttendanceStatus.PRESENT], stats[AttendanceStatus.LATE],
        stats[AttendanceStatus.ABSENT], stats[AttendanceStatus.EXCUSED],
    )
    return stats
