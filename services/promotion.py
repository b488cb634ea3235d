"""
Promotion and archival.

Bulk promotion handles every pupil on its own: one bad id or one failing
commit never stops the rest of the batch. Accounts are archived while they
are referenced by grade or attendance history; permanent deletion is refused
until that history is gone.
"""

import logging
from collections import namedtuple

from sqlalchemy.exc import SQLAlchemyError

from models import db, Attendance, Grade, Pupil, User
from services import audit
from services.errors import Conflict, NotFound, PermissionDenied, ValidationError
from services.identity import get_identity_provider
from services.permissions import EDIT_PUPILS, MANAGE_USERS, PROMOTE_PUPILS, require
from services.rules import GRADUATED, validate_grade_level

logger = logging.getLogger(__name__)

PromotionResult = namedtuple('PromotionResult', ['pupil_id', 'ok', 'error'])


class PromotionOutcome:
    """Per-pupil results of one bulk promotion."""

    def __init__(self, to_grade, results=None):
        self.to_grade = to_grade
        self.results = results or []

    @property
    def promoted(self):
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self):
        return [r for r in self.results if not r.ok]

    @property
    def graduated(self):
        return self.to_grade == GRADUATED

    def to_dict(self):
        return {
            'to_grade': self.to_grade,
            'graduated': self.graduated,
            'promoted': self.promoted,
            'failed': [r._asdict() for r in self.failed],
        }


def _promote_one(actor, pupil_id, from_grade, to_grade, to_section):
    if not isinstance(pupil_id, str) or not pupil_id:
        return PromotionResult(pupil_id, False, 'Invalid pupil id')
    try:
        pupil = db.session.get(Pupil, pupil_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Lookup of pupil %s failed: %s", pupil_id, e)
        return PromotionResult(pupil_id, False, f"Database error: {e}")
    if pupil is None:
        return PromotionResult(pupil_id, False, 'Pupil not found')
    if pupil.archived:
        return PromotionResult(pupil_id, False, 'Pupil is archived')
    if pupil.grade_level != from_grade:
        return PromotionResult(pupil_id, False, f"Pupil is in Grade {pupil.grade_level}, not Grade {from_grade}")

    before = {'grade_level': pupil.grade_level, 'section': pupil.section}
    graduating = to_grade == GRADUATED
    try:
        # A graduate keeps their last grade level and section; archiving is the graduation
        if graduating:
            pupil.archived = True
        else:
            pupil.grade_level = to_grade
            pupil.section = to_section
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Promotion of pupil %s failed: %s", pupil_id, e)
        return PromotionResult(pupil_id, False, f"Database error: {e}")

    after = {'grade_level': pupil.grade_level, 'section': pupil.section}
    if graduating:
        before['archived'] = False
        after.update(archived=True, to_grade=to_grade)
    audit.record(actor.id, 'graduate_pupil' if graduating else 'promote_pupil',
                 'pupils', pupil_id, before, after)
    return PromotionResult(pupil_id, True, None)


def allowed_target_grades(from_grade):
    """Grades a class may move to: one or two levels up, Grade 7 meaning graduated."""
    return [g for g in (from_grade + 1, from_grade + 2) if g <= GRADUATED]


def promote(actor, pupil_ids, from_grade, to_grade, to_section=None):
    """Move pupils from one grade to the next; Grade 7 means graduated."""
    require(actor, PROMOTE_PUPILS)
    from_grade = validate_grade_level(from_grade)
    to_grade = validate_grade_level(to_grade, allow_graduated=True)
    if to_grade not in allowed_target_grades(from_grade):
        raise ValidationError(f"Cannot promote from Grade {from_grade} to Grade {to_grade}")
    to_section = (to_section or '').strip() or None
    if to_grade != GRADUATED and not to_section:
        raise ValidationError('Please select a section for the promoted pupils')
    if not isinstance(pupil_ids, (list, tuple)):
        raise ValidationError('pupil_ids must be a list')
    if not pupil_ids:
        raise ValidationError('No pupils selected for promotion')

    outcome = PromotionOutcome(to_grade)
    for pupil_id in pupil_ids:
        outcome.results.append(_promote_one(actor, pupil_id, from_grade, to_grade, to_section))

    logger.info("Promotion Grade %s -> %s by %s: %d promoted, %d failed",
                from_grade, to_grade, actor.id, outcome.promoted, len(outcome.failed))
    return outcome


def _get_account(account_id):
    account = db.session.get(User, account_id)
    if account is None:
        raise NotFound(f"User {account_id} does not exist")
    return account


def archive_account(actor, account_id, archive=True):
    """Archive (or restore) an account and disable (or enable) its login."""
    require(actor, MANAGE_USERS)
    if account_id == actor.id:
        raise PermissionDenied('You cannot archive your own account')
    account = _get_account(account_id)

    before = {'archived': account.archived}
    account.archived = bool(archive)
    db.session.commit()

    identity = get_identity_provider()
    try:
        if archive:
            identity.disable_credential(account.id)
        else:
            identity.enable_credential(account.id)
    except Exception as e:
        logger.warning("Could not %s credential for %s: %s",
                       'disable' if archive else 'enable', account.id, e)

    audit.record(actor.id, 'archive_user' if archive else 'restore_user', 'users', account.id,
                 before, {'archived': account.archived})
    return account


def delete_account_permanently(actor, account_id):
    """Hard-delete an account that has no grade or attendance history."""
    require(actor, MANAGE_USERS)
    if account_id == actor.id:
        raise PermissionDenied('You cannot delete your own account')
    account = _get_account(account_id)

    has_history = (Grade.query.filter_by(teacher_id=account_id).first() is not None
                   or Attendance.query.filter_by(teacher_id=account_id).first() is not None)
    if has_history:
        raise Conflict('This account has recorded grades or attendance; archive it instead')

    before = account.to_dict()
    Pupil.query.filter_by(parent_id=account_id).update({'parent_id': None}, synchronize_session=False)
    db.session.delete(account)
    db.session.commit()
    logger.info("Account %s (%s) permanently deleted by %s", account_id, before['email'], actor.id)

    try:
        get_identity_provider().delete_credential(account_id)
    except Exception as e:
        logger.warning("Profile %s deleted but its credential was not: %s", account_id, e)

    audit.record(actor.id, 'delete_user', 'users', account_id, before, None)


def archive_pupil(actor, pupil_id, archive=True):
    require(actor, EDIT_PUPILS)
    pupil = db.session.get(Pupil, pupil_id)
    if pupil is None:
        raise NotFound(f"Pupil {pupil_id} does not exist")
    before = {'archived': pupil.archived}
    pupil.archived = bool(archive)
    db.session.commit()
    audit.record(actor.id, 'archive_pupil' if archive else 'restore_pupil', 'pupils', pupil_id,
                 before, {'archived': pupil.archived})
    return pupil
