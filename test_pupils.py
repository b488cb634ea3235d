from datetime import date

import pytest

from models import AuditLog
from services import pupils
from services.errors import Conflict, NotFound, PermissionDenied, ValidationError


def pupil_data(**overrides):
    data = {
        "lrn": "136512090001",
        "first_name": "Maria",
        "middle_name": "Luna",
        "last_name": "Santos",
        "gender": "Female",
        "birth_date": "2017-02-20",
        "grade_level": "2",
        "section": "Mabini",
        "is_4ps_beneficiary": True,
    }
    data.update(overrides)
    return data


def test_create_pupil(teacher_actor, parent):
    pupil = pupils.create_pupil(teacher_actor, pupil_data(parent_id=parent.id))

    assert pupil.gender == "female"
    assert pupil.grade_level == 2
    assert pupil.birth_date == date(2017, 2, 20)
    assert pupil.parent_id == parent.id
    assert pupil.report_name == "Santos, Maria L."
    assert pupil.enrollment_date is not None
    entry = AuditLog.query.filter_by(action="create_pupil").one()
    assert entry.old_values is None
    assert entry.new_values["lrn"] == "136512090001"


@pytest.mark.parametrize("overrides", [
    {"lrn": "13651209000"},
    {"lrn": "13651209000X"},
    {"gender": "other"},
    {"grade_level": 7},
    {"birth_date": "20/02/2017"},
    {"first_name": ""},
    {"section": None},
])
def test_create_pupil_validation(teacher_actor, overrides):
    with pytest.raises(ValidationError):
        pupils.create_pupil(teacher_actor, pupil_data(**overrides))


def test_duplicate_lrn_is_conflict(teacher_actor):
    pupils.create_pupil(teacher_actor, pupil_data())
    with pytest.raises(Conflict):
        pupils.create_pupil(teacher_actor, pupil_data(first_name="Other"))


def test_guardian_must_be_parent_account(teacher_actor, teacher):
    with pytest.raises(ValidationError):
        pupils.create_pupil(teacher_actor, pupil_data(parent_id=teacher.id))
    with pytest.raises(ValidationError):
        pupils.create_pupil(teacher_actor, pupil_data(parent_id="missing"))


def test_parents_cannot_create_pupils(parent_actor):
    with pytest.raises(PermissionDenied):
        pupils.create_pupil(parent_actor, pupil_data())


def test_update_pupil(teacher_actor):
    pupil = pupils.create_pupil(teacher_actor, pupil_data())

    updated = pupils.update_pupil(teacher_actor, pupil.id, {"section": "Rizal", "middle_name": ""})

    assert updated.section == "Rizal"
    assert updated.middle_name is None
    assert updated.lrn == "136512090001"
    entry = AuditLog.query.filter_by(action="update_pupil").one()
    assert entry.old_values["section"] == "Mabini"
    assert entry.new_values["section"] == "Rizal"


def test_update_keeps_own_lrn_but_rejects_anothers(teacher_actor):
    first = pupils.create_pupil(teacher_actor, pupil_data())
    second = pupils.create_pupil(teacher_actor, pupil_data(lrn="136512090002", first_name="Rosa"))

    pupils.update_pupil(teacher_actor, first.id, {"lrn": "136512090001"})
    with pytest.raises(Conflict):
        pupils.update_pupil(teacher_actor, second.id, {"lrn": "136512090001"})


def test_update_unknown_pupil(teacher_actor):
    with pytest.raises(NotFound):
        pupils.update_pupil(teacher_actor, "missing", {"section": "A"})


def test_search_pupils(app, make_pupil):
    make_pupil(first_name="Ana", last_name="Reyes", grade_level=3, section="A", gender="female")
    make_pupil(first_name="Ben", last_name="Aquino", grade_level=3, section="A", is_4ps_beneficiary=True)
    make_pupil(first_name="Carlo", last_name="Reyes", grade_level=4, section="B")
    make_pupil(first_name="Dina", last_name="Reyes", grade_level=3, section="A", archived=True)

    assert [p.first_name for p in pupils.search_pupils(grade_level=3)] == ["Ben", "Ana"]
    assert [p.first_name for p in pupils.search_pupils("reyes")] == ["Ana", "Carlo"]
    assert [p.first_name for p in pupils.search_pupils("reyes", include_archived=True)] == ["Ana", "Carlo", "Dina"]
    assert [p.first_name for p in pupils.search_pupils(is_4ps=True)] == ["Ben"]
    assert [p.first_name for p in pupils.search_pupils(gender="Female")] == ["Ana"]
    assert [p.first_name for p in pupils.class_pupils(3, "A")] == ["Ben", "Ana"]
