"""
Account registration workflow.

    pending -> under_review -> approved | rejected

Approved and rejected are terminal. Every transition is a single conditional
UPDATE on the status column, so two administrators racing on the same
registration cannot both win.

Approval provisions the account in two external steps (identity credential,
then profile row). Either step failing puts the registration back to
``pending`` before the error is raised, and a retried approval picks up a
credential left behind by an earlier attempt instead of creating another.
"""

import logging
from collections import namedtuple
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from models import (
    db, NotificationTypes, ParentProfile, RegistrationStatus, TeacherProfile, User, UserRegistration,
)
from services import audit
from services.errors import (
    AlreadyProcessed, Conflict, DependencyFailure, NotFound, ValidationError,
)
from services.identity import get_identity_provider
from services.notifications import notify, notify_admins
from services.permissions import Role, REVIEW_REGISTRATIONS, require
from services.rules import is_valid_phone_number, validate_email_address

logger = logging.getLogger(__name__)

ApprovalResult = namedtuple('ApprovalResult', ['account_id', 'already_existed'])

SELF_SERVICE_ROLES = (Role.TEACHER, Role.PARENT)
PASSWORD_MIN_LENGTH = 8
REASON_MIN_LENGTH = 10
ADDRESS_MIN_LENGTH = 5

# Role-specific details captured on the form and copied to the role profile
PARENT_FIELDS = ('occupation', 'emergency_contact', 'emergency_phone')
TEACHER_REQUIRED_FIELDS = ('employee_id', 'department', 'position')
TEACHER_OPTIONAL_FIELDS = ('specialization', 'education_level')

WELCOME_MESSAGES = {
    Role.ADMIN: "Your administrator account has been approved. You can now sign in with the password you chose.",
    Role.TEACHER: "Your teacher account has been approved. You can now sign in to record grades and attendance for your classes.",
    Role.PARENT: "Your parent account has been approved. You can now sign in to follow your children's grades and attendance.",
}


def _normalize_email(email):
    return validate_email_address(email).lower()


def _email_taken(email):
    if User.query.filter(func.lower(User.email) == email).first():
        return 'An account with this email already exists'
    open_registration = UserRegistration.query.filter(
        func.lower(UserRegistration.email) == email,
        UserRegistration.status.in_(RegistrationStatus.OPEN),
    ).first()
    if open_registration:
        return 'A registration for this email is already waiting for approval'
    return None


def _text(data, field):
    return str(data.get(field) or '').strip()


def _role_details(role, data):
    """Validated parent or teacher details; the other role's fields are dropped."""
    if role == Role.PARENT:
        details = {field: _text(data, field) for field in PARENT_FIELDS}
        if not all(details.values()):
            raise ValidationError('Occupation and an emergency contact with phone number are required for parents')
        if not is_valid_phone_number(details['emergency_phone']):
            raise ValidationError('Invalid emergency phone number')
        return details

    details = {field: _text(data, field) for field in TEACHER_REQUIRED_FIELDS}
    if not all(details.values()):
        raise ValidationError('Employee ID, department and position are required for teachers')
    for field in TEACHER_OPTIONAL_FIELDS:
        details[field] = _text(data, field) or None

    years = data.get('years_experience')
    if years in (None, ''):
        details['years_experience'] = None
    else:
        try:
            details['years_experience'] = int(years)
        except (TypeError, ValueError):
            raise ValidationError('Years of experience must be a whole number')
        if isinstance(years, bool) or details['years_experience'] < 0:
            raise ValidationError('Years of experience must be a whole number')
    return details


def submit_registration(data):
    """Store a new pending registration and alert the administrators."""
    email = _normalize_email(data.get('email'))

    password = data.get('password') or ''
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    confirm = data.get('confirm_password')
    if confirm is not None and confirm != password:
        raise ValidationError("Passwords don't match")

    full_name = (data.get('full_name') or '').strip()
    if len(full_name) < 2:
        raise ValidationError('Full name is required')

    role = Role.parse(data.get('role'))
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError('Please select a role: teacher or parent')

    reason = (data.get('reason_for_application') or '').strip()
    if len(reason) < REASON_MIN_LENGTH:
        raise ValidationError(f"Please provide a reason (minimum {REASON_MIN_LENGTH} characters)")

    phone_number = (data.get('phone_number') or '').strip()
    if not is_valid_phone_number(phone_number):
        raise ValidationError('A valid phone number is required')

    address = (data.get('address') or '').strip()
    if len(address) < ADDRESS_MIN_LENGTH:
        raise ValidationError(f"Address is required (minimum {ADDRESS_MIN_LENGTH} characters)")

    details = _role_details(role, data)

    taken = _email_taken(email)
    if taken:
        raise Conflict(taken)

    registration = UserRegistration(
        email=email,
        password=password,
        full_name=full_name,
        role=role.value,
        phone_number=phone_number,
        address=address,
        profile_picture=data.get('profile_picture') or None,
        valid_id_document=data.get('valid_id_document') or None,
        reason_for_application=reason,
        status=RegistrationStatus.PENDING,
        **details
    )
    db.session.add(registration)
    db.session.commit()
    logger.info("Registration %s submitted for %s (%s)", registration.id, email, role.value)

    notify_admins(
        NotificationTypes.USER_REGISTRATION,
        'New User Registration',
        f"{full_name} ({role.value}) has registered and is waiting for approval.",
    )
    audit.record(registration.id, 'user_registration', 'user_registrations', registration.id,
                 None, registration.to_dict())
    return registration


def get_registration(registration_id):
    registration = db.session.get(UserRegistration, registration_id)
    if registration is None:
        raise NotFound(f"Registration {registration_id} does not exist")
    return registration


def list_registrations(statuses=RegistrationStatus.OPEN):
    return (UserRegistration.query
            .filter(UserRegistration.status.in_(statuses))
            .order_by(UserRegistration.created_at.desc())
            .all())


def _transition(registration_id, target, from_statuses=RegistrationStatus.OPEN, **values):
    """Atomically move an open registration to ``target``."""
    values.update(status=target, updated_at=datetime.utcnow())
    updated = (UserRegistration.query
               .filter(UserRegistration.id == registration_id,
                       UserRegistration.status.in_(from_statuses))
               .update(values, synchronize_session=False))
    if not updated:
        db.session.rollback()
        registration = get_registration(registration_id)
        raise AlreadyProcessed(f"This registration has already been processed ({registration.status})")
    db.session.commit()
    return get_registration(registration_id)


def _revert_to_pending(registration_id):
    """Compensating action for a failed approval."""
    try:
        (UserRegistration.query
         .filter_by(id=registration_id, status=RegistrationStatus.APPROVED)
         .update({'status': RegistrationStatus.PENDING, 'approved_at': None,
                  'approved_by': None, 'updated_at': datetime.utcnow()},
                 synchronize_session=False))
        db.session.commit()
        logger.warning("Registration %s reverted to pending after a failed approval", registration_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Could not revert registration %s to pending: %s", registration_id, e)


def mark_under_review(registration_id, actor):
    require(actor, REVIEW_REGISTRATIONS)
    registration = get_registration(registration_id)
    if registration.status == RegistrationStatus.UNDER_REVIEW:
        return registration
    registration = _transition(
        registration_id, RegistrationStatus.UNDER_REVIEW,
        from_statuses=(RegistrationStatus.PENDING,),
        reviewed_at=datetime.utcnow(),
    )
    audit.record(actor.id, 'review_registration', 'user_registrations', registration_id,
                 {'status': RegistrationStatus.PENDING}, {'status': RegistrationStatus.UNDER_REVIEW})
    return registration


def _ensure_role_profile(account, registration, role):
    """Copy the registration's parent or teacher details onto the account.

    Runs after the account exists; a failure is logged and the approval
    still succeeds. Accounts that already have a profile are left alone.
    """
    if account.role != role.value:
        return None
    if role == Role.PARENT and account.parent_profile is None:
        profile = ParentProfile(user_id=account.id,
                                **{field: getattr(registration, field) for field in PARENT_FIELDS})
    elif role == Role.TEACHER and account.teacher_profile is None:
        fields = TEACHER_REQUIRED_FIELDS + TEACHER_OPTIONAL_FIELDS + ('years_experience',)
        profile = TeacherProfile(user_id=account.id,
                                 **{field: getattr(registration, field) for field in fields})
    else:
        return None
    try:
        db.session.add(profile)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning("Could not create %s profile for %s: %s", role.value, account.id, e)
        return None
    return profile


def approve(registration_id, actor, identity=None):
    """Approve a registration and provision its account.

    Returns ``ApprovalResult(account_id, already_existed)``. When an account
    or credential already exists for the email nothing is duplicated; a
    missing profile row is still created and linked to that credential.
    """
    require(actor, REVIEW_REGISTRATIONS)
    identity = identity or get_identity_provider()

    prior = db.session.get(UserRegistration, registration_id)
    prior_status = prior.status if prior is not None else None

    registration = _transition(
        registration_id, RegistrationStatus.APPROVED,
        approved_at=datetime.utcnow(), approved_by=actor.id,
    )
    email = registration.email.strip().lower()
    role = Role.parse(registration.role)
    password = registration.password

    account = User.query.filter(func.lower(User.email) == email).first()
    identity_id = account.id if account is not None else None
    if identity_id is None:
        try:
            identity_id = identity.find_credential(email)
        except Exception as e:
            _revert_to_pending(registration_id)
            raise DependencyFailure(f"Failed to look up user account: {e}") from e
    already_existed = identity_id is not None

    if identity_id is None:
        if not password:
            _revert_to_pending(registration_id)
            raise ValidationError('This registration has no password to create the account with')
        try:
            identity_id = identity.create_credential(email, password)
        except Exception as e:
            logger.error("Credential creation failed for registration %s: %s", registration_id, e)
            _revert_to_pending(registration_id)
            raise DependencyFailure(f"Failed to create user account: {e}") from e

    if account is None:
        try:
            account = User(
                id=identity_id,
                email=email,
                full_name=registration.full_name,
                role=role.value,
                phone_number=registration.phone_number,
                address=registration.address,
                profile_picture=registration.profile_picture,
            )
            db.session.add(account)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Profile creation failed for registration %s: %s", registration_id, e)
            _revert_to_pending(registration_id)
            raise DependencyFailure(f"Failed to create user profile: {e}") from e

    _ensure_role_profile(account, registration, role)

    registration.password = None
    db.session.commit()

    notify(account.id, NotificationTypes.REGISTRATION_APPROVED,
           f"Welcome, {account.full_name}!", WELCOME_MESSAGES[role], actor.id)

    audit.record(actor.id, 'approve_registration', 'user_registrations', registration_id,
                 {'status': prior_status},
                 {'status': RegistrationStatus.APPROVED, 'account_id': account.id,
                  'email': email, 'role': role.value, 'already_existed': already_existed})
    logger.info("Registration %s approved by %s (account %s, already existed: %s)",
                registration_id, actor.id, account.id, already_existed)
    return ApprovalResult(account.id, already_existed)


def reject(registration_id, actor, reason):
    """Reject a registration. The reason is mandatory and the rejection final."""
    require(actor, REVIEW_REGISTRATIONS)
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('Please provide a reason for rejection')

    prior = get_registration(registration_id)
    prior_status = prior.status
    registration = _transition(
        registration_id, RegistrationStatus.REJECTED,
        rejected_at=datetime.utcnow(), rejected_by=actor.id,
        rejection_reason=reason, password=None,
    )
    audit.record(actor.id, 'reject_registration', 'user_registrations', registration_id,
                 {'status': prior_status},
                 {'status': RegistrationStatus.REJECTED, 'rejection_reason': reason})
    logger.info("Registration %s rejected by %s", registration_id, actor.id)
    return registration
