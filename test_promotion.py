from datetime import date

import pytest

from models import db, AuditLog, IdentityCredential, Notification, ParentProfile, Pupil, User
from services import attendance, grades, promotion, pupils
from services.errors import Conflict, NotFound, PermissionDenied, ValidationError
from services.rules import GRADE_LEVELS, GRADUATED


def test_promote_processes_each_pupil_independently(admin_actor, make_pupil):
    ready = make_pupil(grade_level=1, section="A")
    also_ready = make_pupil(grade_level=1, section="B", first_name="Rosa")
    wrong_grade = make_pupil(grade_level=3, section="A", first_name="Leo")
    archived = make_pupil(grade_level=1, section="A", first_name="Ana", archived=True)

    outcome = promotion.promote(admin_actor, [ready.id, "missing", wrong_grade.id, also_ready.id, archived.id],
                                from_grade=1, to_grade=2, to_section="Sampaguita")

    assert outcome.promoted == 2
    assert {r.pupil_id for r in outcome.failed} == {"missing", wrong_grade.id, archived.id}
    assert db.session.get(Pupil, ready.id).grade_level == 2
    assert db.session.get(Pupil, ready.id).section == "Sampaguita"
    assert db.session.get(Pupil, wrong_grade.id).grade_level == 3

    entry = AuditLog.query.filter_by(action="promote_pupil", entity_id=ready.id).one()
    assert entry.old_values == {"grade_level": 1, "section": "A"}
    assert entry.new_values == {"grade_level": 2, "section": "Sampaguita"}
    assert AuditLog.query.filter_by(action="promote_pupil").count() == 2


def test_graduation_archives_pupils_in_their_last_grade(admin_actor, make_pupil):
    graduating = make_pupil(grade_level=6, section="Rizal")

    outcome = promotion.promote(admin_actor, [graduating.id], from_grade=6, to_grade=GRADUATED)

    assert outcome.promoted == 1
    assert outcome.graduated is True
    pupil = db.session.get(Pupil, graduating.id)
    assert pupil.grade_level == 6
    assert pupil.section == "Rizal"
    assert pupil.archived is True
    entry = AuditLog.query.filter_by(action="graduate_pupil").one()
    assert entry.old_values == {"grade_level": 6, "section": "Rizal", "archived": False}
    assert entry.new_values == {"grade_level": 6, "section": "Rizal", "archived": True, "to_grade": GRADUATED}


def test_restored_graduate_returns_to_a_reachable_class(admin_actor, teacher_actor, make_pupil):
    graduate = make_pupil(grade_level=6, section="Rizal")
    promotion.promote(admin_actor, [graduate.id], from_grade=6, to_grade=GRADUATED)

    promotion.archive_pupil(teacher_actor, graduate.id, archive=False)

    restored = db.session.get(Pupil, graduate.id)
    assert restored.archived is False
    assert restored.grade_level in GRADE_LEVELS
    assert [p.id for p in pupils.class_pupils(6, "Rizal")] == [graduate.id]


def test_promote_validates_request(admin_actor, make_pupil):
    pupil = make_pupil(grade_level=2)
    with pytest.raises(ValidationError):
        promotion.promote(admin_actor, [pupil.id], from_grade=2, to_grade=3, to_section="")
    with pytest.raises(ValidationError):
        promotion.promote(admin_actor, [pupil.id], from_grade=2, to_grade=2, to_section="A")
    with pytest.raises(ValidationError):
        promotion.promote(admin_actor, [pupil.id], from_grade=2, to_grade=8, to_section="A")
    with pytest.raises(ValidationError):
        promotion.promote(admin_actor, [], from_grade=2, to_grade=3, to_section="A")
    with pytest.raises(ValidationError):
        promotion.promote(admin_actor, pupil.id, from_grade=2, to_grade=3, to_section="A")


@pytest.mark.parametrize("from_grade, to_grade", [(1, 5), (2, 6), (3, GRADUATED), (2, 1)])
def test_promotion_moves_at_most_two_levels(admin_actor, make_pupil, from_grade, to_grade):
    pupil = make_pupil(grade_level=from_grade)
    with pytest.raises(ValidationError):
        promotion.promote(admin_actor, [pupil.id], from_grade=from_grade, to_grade=to_grade, to_section="A")
    assert db.session.get(Pupil, pupil.id).grade_level == from_grade


def test_allowed_target_grades():
    assert promotion.allowed_target_grades(1) == [2, 3]
    assert promotion.allowed_target_grades(5) == [6, GRADUATED]
    assert promotion.allowed_target_grades(6) == [GRADUATED]


def test_malformed_ids_fail_without_stopping_the_batch(admin_actor, make_pupil):
    ready = make_pupil(grade_level=1)

    outcome = promotion.promote(admin_actor, [{"id": ready.id}, ["x"], None, ready.id],
                                from_grade=1, to_grade=2, to_section="A")

    assert outcome.promoted == 1
    assert len(outcome.failed) == 3
    assert all(r.error == "Invalid pupil id" for r in outcome.failed)
    assert db.session.get(Pupil, ready.id).grade_level == 2


def test_only_admins_promote(teacher_actor, make_pupil):
    pupil = make_pupil()
    with pytest.raises(PermissionDenied):
        promotion.promote(teacher_actor, [pupil.id], from_grade=1, to_grade=2, to_section="A")


def test_archive_and_restore_account(admin_actor, teacher):
    archived = promotion.archive_account(admin_actor, teacher.id)

    assert archived.archived is True
    assert db.session.get(IdentityCredential, teacher.id).disabled is True
    entry = AuditLog.query.filter_by(action="archive_user").one()
    assert entry.old_values == {"archived": False}
    assert entry.new_values == {"archived": True}

    restored = promotion.archive_account(admin_actor, teacher.id, archive=False)
    assert restored.archived is False
    assert db.session.get(IdentityCredential, teacher.id).disabled is False
    assert AuditLog.query.filter_by(action="restore_user").count() == 1


def test_archive_without_credential_still_archives(admin_actor, make_user):
    legacy = make_user("teacher", email="legacy@school.edu.ph", with_credential=False)
    assert promotion.archive_account(admin_actor, legacy.id).archived is True


def test_admin_cannot_archive_or_delete_self(admin_actor):
    with pytest.raises(PermissionDenied):
        promotion.archive_account(admin_actor, admin_actor.id)
    with pytest.raises(PermissionDenied):
        promotion.delete_account_permanently(admin_actor, admin_actor.id)


def test_archive_unknown_account_is_not_found(admin_actor):
    with pytest.raises(NotFound):
        promotion.archive_account(admin_actor, "missing")


def test_delete_refused_while_account_has_history(admin_actor, teacher_actor, pupil, subject):
    grades.save_grade(teacher_actor, pupil.id, subject.id, 1, 88)
    with pytest.raises(Conflict):
        promotion.delete_account_permanently(admin_actor, teacher_actor.id)
    assert db.session.get(User, teacher_actor.id) is not None


def test_delete_refused_with_attendance_history(admin_actor, teacher_actor, pupil, subject):
    attendance.mark_attendance(teacher_actor, pupil.id, subject.id, date(2025, 8, 4), "present")
    with pytest.raises(Conflict):
        promotion.delete_account_permanently(admin_actor, teacher_actor.id)


def test_delete_account_permanently(admin_actor, teacher_actor, parent, pupil, subject):
    attendance.mark_attendance(teacher_actor, pupil.id, subject.id, date(2025, 8, 4), "absent")
    assert Notification.query.filter_by(recipient_id=parent.id).count() == 1
    db.session.add(ParentProfile(user_id=parent.id, occupation="Vendor", emergency_contact="Rosa Santos",
                                 emergency_phone="09221234567"))
    db.session.commit()
    parent_id, parent_email = parent.id, parent.email

    promotion.delete_account_permanently(admin_actor, parent_id)

    db.session.expire_all()
    assert db.session.get(User, parent_id) is None
    assert db.session.get(IdentityCredential, parent_id) is None
    assert db.session.get(ParentProfile, parent_id) is None
    assert db.session.get(Pupil, pupil.id).parent_id is None
    entry = AuditLog.query.filter_by(action="delete_user").one()
    assert entry.old_values["email"] == parent_email
    assert entry.new_values is None


def test_archive_pupil(teacher_actor, pupil):
    promotion.archive_pupil(teacher_actor, pupil.id)
    assert db.session.get(Pupil, pupil.id).archived is True
    promotion.archive_pupil(teacher_actor, pupil.id, archive=False)
    assert db.session.get(Pupil, pupil.id).archived is False
    actions = sorted(e.action for e in AuditLog.query.filter_by(entity_type="pupils").all())
    assert actions == ["archive_pupil", "restore_pupil"]
