import pytest

from models import db, AuditLog, Grade
from services import grades
from services.errors import Conflict, NotFound, PermissionDenied, ValidationError


@pytest.fixture
def english(make_subject):
    return make_subject(name="English", code="ENG")


def test_save_grade_rounds_and_records_audit(teacher_actor, pupil, subject):
    grade = grades.save_grade(teacher_actor, pupil.id, subject.id, 1, "89.995", "  Good progress ")

    assert grade.final_grade == 90.0
    assert grade.remarks == "Good progress"
    assert grade.teacher_id == teacher_actor.id
    entry = AuditLog.query.filter_by(action="save_grade").one()
    assert entry.old_values is None
    assert entry.new_values["final_grade"] == 90.0


def test_save_grade_upserts_on_pupil_subject_quarter(teacher_actor, pupil, subject):
    first = grades.save_grade(teacher_actor, pupil.id, subject.id, 2, 82)
    second = grades.save_grade(teacher_actor, pupil.id, subject.id, 2, 87.5)

    assert second.id == first.id
    assert Grade.query.count() == 1
    updated = [e for e in AuditLog.query.filter_by(action="save_grade").all() if e.old_values]
    assert updated[0].old_values["final_grade"] == 82
    assert updated[0].new_values["final_grade"] == 87.5


@pytest.mark.parametrize("value", [59.99, 100.01, -5, "A+", None])
def test_save_grade_rejects_values_outside_entry_range(teacher_actor, pupil, subject, value):
    with pytest.raises(ValidationError):
        grades.save_grade(teacher_actor, pupil.id, subject.id, 1, value)
    assert Grade.query.count() == 0


@pytest.mark.parametrize("quarter", [0, 5, "Q1"])
def test_save_grade_rejects_bad_quarter(teacher_actor, pupil, subject, quarter):
    with pytest.raises(ValidationError):
        grades.save_grade(teacher_actor, pupil.id, subject.id, quarter, 85)


def test_save_grade_unknown_pupil_or_subject(teacher_actor, pupil, subject):
    with pytest.raises(NotFound):
        grades.save_grade(teacher_actor, "missing", subject.id, 1, 85)
    with pytest.raises(NotFound):
        grades.save_grade(teacher_actor, pupil.id, "missing", 1, 85)


def test_parents_cannot_edit_grades(parent_actor, pupil, subject):
    with pytest.raises(PermissionDenied):
        grades.save_grade(parent_actor, pupil.id, subject.id, 1, 85)


def test_finalized_grade_cannot_be_overwritten(teacher_actor, pupil, subject):
    grades.save_grade(teacher_actor, pupil.id, subject.id, 1, 85)
    assert grades.finalize_quarter(teacher_actor, 1, "A", subject.id, 1) == 1

    with pytest.raises(Conflict):
        grades.save_grade(teacher_actor, pupil.id, subject.id, 1, 95)
    assert Grade.query.one().final_grade == 85


def test_save_class_grades_reports_each_entry(teacher_actor, pupil, make_pupil, subject):
    other = make_pupil(first_name="Rosa", last_name="Garcia")
    results = grades.save_class_grades(teacher_actor, [
        {"pupil_id": pupil.id, "subject_id": subject.id, "quarter": 1, "final_grade": 91},
        {"pupil_id": other.id, "subject_id": subject.id, "quarter": 1, "final_grade": 45},
        {"pupil_id": "missing", "subject_id": subject.id, "quarter": 1, "final_grade": 80},
    ])

    assert [r.error is None for r in results] == [True, False, False]
    assert results[0].grade == 91
    assert Grade.query.count() == 1


def test_class_average_ignores_archived_pupils(teacher_actor, make_pupil, subject):
    first = make_pupil()
    second = make_pupil(first_name="Rosa", last_name="Garcia")
    archived = make_pupil(first_name="Leo", last_name="Bautista")
    elsewhere = make_pupil(first_name="Ana", last_name="Lim", section="B")
    for p, value in ((first, 80), (second, 91), (archived, 60), (elsewhere, 60)):
        grades.save_grade(teacher_actor, p.id, subject.id, 1, value)
    archived.archived = True
    db.session.commit()

    assert grades.class_average(1, "A", subject.id, 1) == 85.5
    assert grades.class_average(1, "A", subject.id, 2) is None


def test_pupil_averages(teacher_actor, pupil, subject, english):
    grades.save_grade(teacher_actor, pupil.id, subject.id, 1, 78)
    grades.save_grade(teacher_actor, pupil.id, english.id, 1, 82)
    grades.save_grade(teacher_actor, pupil.id, subject.id, 2, 90)

    assert grades.pupil_quarterly_average(pupil.id, 1) == 80
    assert grades.pupil_quarterly_average(pupil.id, 2) == 90
    assert grades.pupil_quarterly_average(pupil.id, 3) is None
    # quarters without grades are skipped, not counted as zero
    assert grades.pupil_final_average(pupil.id) == 85
    assert grades.subject_final_grade(pupil.id, subject.id) == 84
    assert grades.pupil_grade_trend(pupil.id) == "improving"


def test_pupil_final_average_without_grades(app, pupil):
    assert grades.pupil_final_average(pupil.id) is None
    assert grades.pupil_grade_trend(pupil.id) == "stable"
