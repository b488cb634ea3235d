"""
Report data for the dashboard and the DepEd school forms.

SF2 is the daily attendance register summarised over a date range; SF9 is the
learner's progress report card. Both are returned as plain row dicts so the
routes can serve them as JSON or pass them through ``to_csv``.
"""

import csv
import io

from sqlalchemy import func

from models import (
    db, Attendance, AttendanceStatus, Grade, Pupil, RegistrationStatus, Subject, User,
    UserRegistration, UserRoles,
)
from services.rules import QUARTERS, attendance_rate, average, parse_date, validate_grade_level
from utils.settings import SystemSettings

SF2_HEADERS = ['lrn', 'name', 'gender', 'present', 'late', 'absent', 'excused', 'total', 'rate']


def dashboard_counts(today=None):
    """Headline numbers for the admin dashboard."""
    today = parse_date(today) if today else SystemSettings.school_today()

    active_users = (db.session.query(User.role, func.count(User.id))
                    .filter(User.archived.is_(False))
                    .group_by(User.role)
                    .all())
    users_by_role = dict(active_users)

    todays = (db.session.query(Attendance.status, func.count(Attendance.id))
              .filter(Attendance.date == today)
              .group_by(Attendance.status)
              .all())
    attendance_today = {status: 0 for status in AttendanceStatus.ALL}
    attendance_today.update(dict(todays))

    return {
        'date': today.isoformat(),
        'pupils': Pupil.query.filter_by(archived=False).count(),
        'teachers': users_by_role.get(UserRoles.TEACHER, 0),
        'parents': users_by_role.get(UserRoles.PARENT, 0),
        'admins': users_by_role.get(UserRoles.ADMIN, 0),
        'pending_registrations': (UserRegistration.query
                                  .filter(UserRegistration.status.in_(RegistrationStatus.OPEN))
                                  .count()),
        'attendance_today': attendance_today,
        'attendance_rate_today': attendance_rate(
            attendance_today[AttendanceStatus.PRESENT], attendance_today[AttendanceStatus.LATE],
            attendance_today[AttendanceStatus.ABSENT], attendance_today[AttendanceStatus.EXCUSED],
        ),
    }


def _class_pupils(grade_level, section):
    return (Pupil.query
            .filter_by(grade_level=validate_grade_level(grade_level), section=section, archived=False)
            .order_by(Pupil.last_name, Pupil.first_name)
            .all())


def _status_counts(records):
    counts = {status: 0 for status in AttendanceStatus.ALL}
    for record in records:
        counts[record.status] = counts.get(record.status, 0) + 1
    return counts


def class_summary(grade_level, section, day):
    """Attendance status counts of one class on one day, across all subjects."""
    day = parse_date(day)
    pupils = _class_pupils(grade_level, section)
    records = []
    if pupils:
        records = (Attendance.query
                   .filter(Attendance.pupil_id.in_([p.id for p in pupils]), Attendance.date == day)
                   .all())
    counts = _status_counts(records)
    return {
        'grade_level': int(grade_level),
        'section': section,
        'date': day.isoformat(),
        'pupils': len(pupils),
        'recorded': len(records),
        **counts,
        'rate': attendance_rate(counts[AttendanceStatus.PRESENT], counts[AttendanceStatus.LATE],
                                counts[AttendanceStatus.ABSENT], counts[AttendanceStatus.EXCUSED]),
    }


def sf2_rows(grade_level, section, start, end):
    """One row per pupil with status counts and attendance rate between two dates."""
    start = parse_date(start, 'start date')
    end = parse_date(end, 'end date')
    pupils = _class_pupils(grade_level, section)

    by_pupil = {p.id: [] for p in pupils}
    if pupils:
        records = (Attendance.query
                   .filter(Attendance.pupil_id.in_(list(by_pupil)),
                           Attendance.date >= start, Attendance.date <= end)
                   .all())
        for record in records:
            by_pupil[record.pupil_id].append(record)

    minimum = SystemSettings.get_minimum_attendance_rate()
    rows = []
    for pupil in pupils:
        counts = _status_counts(by_pupil[pupil.id])
        rate = attendance_rate(counts[AttendanceStatus.PRESENT], counts[AttendanceStatus.LATE],
                               counts[AttendanceStatus.ABSENT], counts[AttendanceStatus.EXCUSED])
        total = sum(counts.values())
        rows.append({
            'lrn': pupil.lrn,
            'name': pupil.report_name,
            'gender': pupil.gender,
            **counts,
            'total': total,
            'rate': rate,
            'below_minimum': total > 0 and rate < minimum,
        })
    return rows


def sf9_rows(grade_level, section):
    """Report card rows: per-subject quarter grades, final grade and general average."""
    grade_level = validate_grade_level(grade_level)
    pupils = _class_pupils(grade_level, section)
    subjects = Subject.query.filter_by(grade_level=grade_level).order_by(Subject.name).all()

    grades = {}
    if pupils:
        for grade in Grade.query.filter(Grade.pupil_id.in_([p.id for p in pupils])).all():
            grades[(grade.pupil_id, grade.subject_id, grade.quarter)] = grade.final_grade

    rows = []
    for pupil in pupils:
        subject_rows = []
        for subject in subjects:
            quarters = {f"q{q}": grades.get((pupil.id, subject.id, q)) for q in QUARTERS}
            subject_rows.append({
                'subject': subject.name,
                'code': subject.code,
                **quarters,
                'final': average(quarters.values()),
            })
        rows.append({
            'lrn': pupil.lrn,
            'name': pupil.report_name,
            'subjects': subject_rows,
            'general_average': average(s['final'] for s in subject_rows),
        })
    return rows


def to_csv(rows, headers):
    """Render dict rows as CSV text with ``headers`` as the column keys."""
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(headers)
    for row in rows:
        writer.writerow(['' if row.get(h) is None else row.get(h) for h in headers])
    return output.getvalue()
