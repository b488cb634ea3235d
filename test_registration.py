import pytest
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

from models import (
    db, AuditLog, IdentityCredential, Notification, NotificationTypes, ParentProfile, TeacherProfile, User,
    UserRegistration,
)
from services import registration
from services.errors import (
    AlreadyProcessed, Conflict, DependencyFailure, NotFound, PermissionDenied, ValidationError,
)
from services.identity import LocalIdentityProvider


def registration_data(**overrides):
    data = {
        "email": "ana.cruz@example.com",
        "password": "s3cret-pw",
        "confirm_password": "s3cret-pw",
        "full_name": "Ana Cruz",
        "role": "teacher",
        "reason_for_application": "I teach Grade 3 Section B this school year.",
        "phone_number": "09171234567",
        "address": "123 Rizal St, Quezon City",
        "employee_id": "T-2024-031",
        "department": "Primary",
        "position": "Teacher II",
        "specialization": "Mathematics",
        "education_level": "BEEd",
        "years_experience": "6",
    }
    data.update(overrides)
    return data


def parent_data(**overrides):
    data = registration_data(
        email="ben.reyes@example.com",
        full_name="Ben Reyes",
        role="parent",
        reason_for_application="My son is enrolled in Grade 2 Section A.",
        occupation="Driver",
        emergency_contact="Lorna Reyes",
        emergency_phone="09281234567",
    )
    data.update(overrides)
    return data


class FailingIdentityProvider(LocalIdentityProvider):
    def create_credential(self, email, password):
        raise DependencyFailure("identity provider is unavailable")


@pytest.fixture
def pending(app, admin):
    return registration.submit_registration(registration_data())


@pytest.fixture
def failing_profile_insert():
    """Make User inserts fail at flush time until stopped."""

    def _fail(mapper, connection, target):
        raise SQLAlchemyError("profile table unavailable")

    def stop():
        if event.contains(User, "before_insert", _fail):
            event.remove(User, "before_insert", _fail)

    event.listen(User, "before_insert", _fail)
    yield stop
    stop()


def test_submit_registration_stores_pending_and_notifies_admins(app, admin):
    pending = registration.submit_registration(registration_data(email="Ana.Cruz@Example.com"))

    assert pending.status == "pending"
    assert pending.email == "ana.cruz@example.com"
    notes = Notification.query.filter_by(recipient_id=admin.id).all()
    assert [n.type for n in notes] == [NotificationTypes.USER_REGISTRATION]
    assert AuditLog.query.filter_by(action="user_registration", entity_id=pending.id).count() == 1


@pytest.mark.parametrize("overrides", [
    {"email": "not-an-email"},
    {"password": "12345", "confirm_password": "12345"},
    {"confirm_password": "different"},
    {"full_name": "A"},
    {"role": "admin"},
    {"role": "principal"},
    {"reason_for_application": "too short"},
    {"phone_number": "12345"},
    {"password": "7-chars", "confirm_password": "7-chars"},
    {"phone_number": ""},
    {"address": ""},
    {"address": "Pig"},
    {"employee_id": ""},
    {"department": "   "},
    {"position": None},
    {"years_experience": "-1"},
    {"years_experience": "six"},
    {"years_experience": True},
])
def test_submit_registration_validates_input(app, overrides):
    with pytest.raises(ValidationError):
        registration.submit_registration(registration_data(**overrides))
    assert UserRegistration.query.count() == 0


@pytest.mark.parametrize("overrides", [
    {"occupation": ""},
    {"emergency_contact": "  "},
    {"emergency_phone": ""},
    {"emergency_phone": "12345"},
])
def test_parent_registration_requires_guardian_details(app, overrides):
    with pytest.raises(ValidationError):
        registration.submit_registration(parent_data(**overrides))
    assert UserRegistration.query.count() == 0


def test_submit_registration_keeps_only_the_roles_details(app, admin):
    teacher_reg = registration.submit_registration(registration_data(occupation="Driver"))
    parent_reg = registration.submit_registration(parent_data(employee_id="T-9"))

    assert teacher_reg.employee_id == "T-2024-031"
    assert teacher_reg.years_experience == 6
    assert teacher_reg.occupation is None
    assert parent_reg.occupation == "Driver"
    assert parent_reg.employee_id is None
    assert parent_reg.years_experience is None


def test_teacher_optional_details_may_be_blank(app, admin):
    pending = registration.submit_registration(
        registration_data(specialization="", education_level=None, years_experience=""))

    assert pending.specialization is None
    assert pending.education_level is None
    assert pending.years_experience is None


def test_registration_password_is_never_serialized(pending, admin_actor):
    assert pending.password == "s3cret-pw"
    assert "password" not in pending.to_dict()

    registration.approve(pending.id, admin_actor)

    approved = db.session.get(UserRegistration, pending.id)
    assert approved.password is None
    assert "password" not in approved.to_dict()
    submitted = AuditLog.query.filter_by(action="user_registration", entity_id=pending.id).one()
    assert "password" not in submitted.new_values


def test_submit_registration_rejects_existing_account(app, teacher):
    with pytest.raises(Conflict):
        registration.submit_registration(registration_data(email=teacher.email.upper()))


def test_submit_registration_rejects_second_open_registration(pending):
    with pytest.raises(Conflict):
        registration.submit_registration(registration_data())


def test_approve_creates_credential_and_profile(pending, admin_actor):
    result = registration.approve(pending.id, admin_actor)

    assert result.already_existed is False
    account = db.session.get(User, result.account_id)
    credential = db.session.get(IdentityCredential, result.account_id)
    assert account.email == "ana.cruz@example.com"
    assert account.role == "teacher"
    assert account.phone_number == "09171234567"
    assert account.address == "123 Rizal St, Quezon City"
    assert credential.check_password("s3cret-pw")

    profile = db.session.get(TeacherProfile, account.id)
    assert profile.employee_id == "T-2024-031"
    assert (profile.department, profile.position) == ("Primary", "Teacher II")
    assert profile.specialization == "Mathematics"
    assert profile.years_experience == 6
    assert account.teacher_profile is profile

    approved = db.session.get(UserRegistration, pending.id)
    assert approved.status == "approved"
    assert approved.approved_by == admin_actor.id
    assert approved.approved_at is not None
    assert approved.password is None

    welcome = Notification.query.filter_by(recipient_id=account.id).one()
    assert welcome.type == NotificationTypes.REGISTRATION_APPROVED

    entry = AuditLog.query.filter_by(action="approve_registration").one()
    assert entry.user_id == admin_actor.id
    assert entry.old_values == {"status": "pending"}
    assert entry.new_values["status"] == "approved"
    assert entry.new_values["account_id"] == account.id


def test_approve_twice_is_already_processed(pending, admin_actor):
    registration.approve(pending.id, admin_actor)
    with pytest.raises(AlreadyProcessed):
        registration.approve(pending.id, admin_actor)
    with pytest.raises(AlreadyProcessed):
        registration.reject(pending.id, admin_actor, "changed my mind")
    assert User.query.filter_by(email="ana.cruz@example.com").count() == 1


def test_approve_unknown_registration_is_not_found(app, admin_actor):
    with pytest.raises(NotFound):
        registration.approve("does-not-exist", admin_actor)


def test_approve_links_existing_account_without_duplicating(pending, admin_actor, make_user):
    existing = make_user("teacher", email="ana.cruz@example.com", full_name="Ana Cruz")

    result = registration.approve(pending.id, admin_actor)

    assert result == registration.ApprovalResult(existing.id, True)
    assert User.query.filter_by(email="ana.cruz@example.com").count() == 1
    assert IdentityCredential.query.filter_by(email="ana.cruz@example.com").count() == 1


def test_approve_from_under_review(pending, admin_actor):
    reviewed = registration.mark_under_review(pending.id, admin_actor)
    assert reviewed.status == "under_review"
    assert reviewed.reviewed_at is not None
    # reviewing again leaves it unchanged
    assert registration.mark_under_review(pending.id, admin_actor).status == "under_review"

    result = registration.approve(pending.id, admin_actor)
    assert result.already_existed is False


def test_failing_identity_provider_leaves_registration_pending(pending, admin_actor):
    with pytest.raises(DependencyFailure) as excinfo:
        registration.approve(pending.id, admin_actor, identity=FailingIdentityProvider())

    assert excinfo.value.fatal is True
    db.session.expire_all()
    reverted = db.session.get(UserRegistration, pending.id)
    assert reverted.status == "pending"
    assert reverted.approved_by is None
    assert reverted.password == "s3cret-pw"
    assert User.query.filter_by(email="ana.cruz@example.com").count() == 0
    assert AuditLog.query.filter_by(action="approve_registration").count() == 0


def test_retry_after_profile_failure_links_existing_credential(pending, admin_actor, failing_profile_insert):
    with pytest.raises(DependencyFailure):
        registration.approve(pending.id, admin_actor)

    db.session.expire_all()
    assert db.session.get(UserRegistration, pending.id).status == "pending"
    credential = IdentityCredential.query.filter_by(email="ana.cruz@example.com").one()

    failing_profile_insert()

    result = registration.approve(pending.id, admin_actor)
    assert result.already_existed is True
    assert result.account_id == credential.id
    assert db.session.get(User, credential.id).email == "ana.cruz@example.com"
    assert IdentityCredential.query.count() == 2  # admin + applicant


def test_reject_requires_reason(pending, admin_actor):
    for reason in ("", "   ", None):
        with pytest.raises(ValidationError):
            registration.reject(pending.id, admin_actor, reason)
    assert db.session.get(UserRegistration, pending.id).status == "pending"


def test_reject_is_terminal_and_clears_password(pending, admin_actor):
    rejected = registration.reject(pending.id, admin_actor, "  Not a member of the faculty  ")

    assert rejected.status == "rejected"
    assert rejected.rejection_reason == "Not a member of the faculty"
    assert rejected.rejected_by == admin_actor.id
    assert rejected.password is None
    with pytest.raises(AlreadyProcessed):
        registration.approve(pending.id, admin_actor)

    entry = AuditLog.query.filter_by(action="reject_registration").one()
    assert entry.new_values == {"status": "rejected", "rejection_reason": "Not a member of the faculty"}


def test_only_admins_review_registrations(pending, teacher_actor, parent_actor):
    for actor in (teacher_actor, parent_actor):
        with pytest.raises(PermissionDenied):
            registration.approve(pending.id, actor)
        with pytest.raises(PermissionDenied):
            registration.reject(pending.id, actor, "no")
    assert db.session.get(UserRegistration, pending.id).status == "pending"


def test_list_registrations_defaults_to_open(pending, admin_actor):
    other = registration.submit_registration(parent_data())
    registration.reject(other.id, admin_actor, "Duplicate application")

    assert [r.id for r in registration.list_registrations()] == [pending.id]
    assert [r.id for r in registration.list_registrations(("rejected",))] == [other.id]


def test_approve_parent_creates_parent_profile(app, admin_actor):
    pending = registration.submit_registration(parent_data())

    result = registration.approve(pending.id, admin_actor)

    profile = db.session.get(ParentProfile, result.account_id)
    assert profile.occupation == "Driver"
    assert profile.emergency_contact == "Lorna Reyes"
    assert profile.emergency_phone == "09281234567"
    assert db.session.get(TeacherProfile, result.account_id) is None


def test_approve_adds_profile_to_existing_account_once(pending, admin_actor, make_user):
    existing = make_user("teacher", email="ana.cruz@example.com", full_name="Ana Cruz")

    registration.approve(pending.id, admin_actor)

    assert TeacherProfile.query.filter_by(user_id=existing.id).count() == 1
