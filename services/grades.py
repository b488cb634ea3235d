"""
Grade ledger: quarterly grade entry and the averages built on it.
"""

import logging
from collections import namedtuple
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from models import db, Grade, Pupil, Subject
from services import audit
from services.errors import Conflict, NotFound, PortalError
from services.permissions import EDIT_GRADES, require
from services.rules import (
    QUARTERS, average, grade_trend, validate_entry_grade, validate_grade_level, validate_quarter,
)

logger = logging.getLogger(__name__)

GradeEntryResult = namedtuple('GradeEntryResult', ['pupil_id', 'subject_id', 'quarter', 'grade', 'error'])


def save_grade(actor, pupil_id, subject_id, quarter, final_grade, remarks=None):
    """Insert or update the grade for (pupil, subject, quarter)."""
    require(actor, EDIT_GRADES)
    quarter = validate_quarter(quarter)
    final_grade = validate_entry_grade(final_grade)
    if db.session.get(Pupil, pupil_id) is None:
        raise NotFound(f"Pupil {pupil_id} does not exist")
    if db.session.get(Subject, subject_id) is None:
        raise NotFound(f"Subject {subject_id} does not exist")

    grade = Grade.query.filter_by(pupil_id=pupil_id, subject_id=subject_id, quarter=quarter).first()
    before = grade.snapshot() if grade else None
    if grade is not None and grade.is_finalized:
        raise Conflict(f"Quarter {quarter} grade is finalized and can no longer be changed")
    if grade is None:
        grade = Grade(pupil_id=pupil_id, subject_id=subject_id, quarter=quarter)
        db.session.add(grade)

    grade.final_grade = final_grade
    grade.teacher_id = actor.id
    grade.remarks = (remarks or '').strip() or None
    grade.updated_at = datetime.utcnow()
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise Conflict(f"Grade for this pupil, subject and quarter was saved concurrently: {e.orig}")

    audit.record(actor.id, 'save_grade', 'grades', grade.id, before, grade.snapshot())
    return grade


def save_class_grades(actor, entries):
    """Save many grades; each entry succeeds or fails on its own.

    ``entries`` holds dicts with pupil_id, subject_id, quarter and final_grade.
    """
    require(actor, EDIT_GRADES)
    results = []
    for entry in entries:
        pupil_id = entry.get('pupil_id')
        subject_id = entry.get('subject_id')
        quarter = entry.get('quarter')
        try:
            grade = save_grade(actor, pupil_id, subject_id, quarter,
                               entry.get('final_grade'), entry.get('remarks'))
            results.append(GradeEntryResult(pupil_id, subject_id, quarter, grade.final_grade, None))
        except PortalError as e:
            results.append(GradeEntryResult(pupil_id, subject_id, quarter, None, e.message))
    return results


def finalize_quarter(actor, grade_level, section, subject_id, quarter):
    """Lock every grade of a class for one subject and quarter. Returns the count."""
    require(actor, EDIT_GRADES)
    grades = (Grade.query.join(Pupil)
              .filter(Pupil.grade_level == validate_grade_level(grade_level),
                      Pupil.section == section,
                      Grade.subject_id == subject_id,
                      Grade.quarter == validate_quarter(quarter),
                      Grade.is_finalized.is_(False))
              .all())
    for grade in grades:
        grade.is_finalized = True
    db.session.commit()
    for grade in grades:
        audit.record(actor.id, 'finalize_grade', 'grades', grade.id,
                     {'is_finalized': False}, {'is_finalized': True})
    return len(grades)


def class_average(grade_level, section, subject_id, quarter):
    """Average final grade of a class in one subject and quarter; None without grades."""
    rows = (db.session.query(Grade.final_grade)
            .join(Pupil, Grade.pupil_id == Pupil.id)
            .filter(Grade.subject_id == subject_id,
                    Grade.quarter == validate_quarter(quarter),
                    Pupil.grade_level == validate_grade_level(grade_level),
                    Pupil.section == section,
                    Pupil.archived.is_(False))
            .all())
    return average(row.final_grade for row in rows)


def pupil_quarterly_average(pupil_id, quarter):
    """Average across all subjects for one pupil and quarter."""
    rows = (db.session.query(Grade.final_grade)
            .filter(Grade.pupil_id == pupil_id, Grade.quarter == validate_quarter(quarter))
            .all())
    return average(row.final_grade for row in rows)


def pupil_quarterly_averages(pupil_id):
    return {quarter: pupil_quarterly_average(pupil_id, quarter) for quarter in QUARTERS}


def pupil_final_average(pupil_id):
    """Mean of the quarterly averages that exist; empty quarters are skipped, not zero."""
    return average(pupil_quarterly_averages(pupil_id).values())


def subject_final_grade(pupil_id, subject_id):
    rows = (db.session.query(Grade.final_grade)
            .filter_by(pupil_id=pupil_id, subject_id=subject_id)
            .all())
    return average(row.final_grade for row in rows)


def pupil_grade_trend(pupil_id):
    """Trend of the quarterly averages in quarter order."""
    averages = pupil_quarterly_averages(pupil_id)
    return grade_trend([averages[q] for q in QUARTERS])


def pupil_grades(pupil_id):
    return (Grade.query.filter_by(pupil_id=pupil_id)
            .order_by(Grade.subject_id, Grade.quarter)
            .all())
