"""
Pupil records: create, update, search.
"""

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from models import db, Pupil, User, UserRoles
from services import audit
from services.errors import Conflict, NotFound, ValidationError
from services.permissions import EDIT_PUPILS, require
from services.rules import GENDERS, is_valid_lrn, parse_date, validate_grade_level

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('lrn', 'first_name', 'last_name', 'gender', 'birth_date', 'grade_level', 'section')
EDITABLE_FIELDS = REQUIRED_FIELDS + (
    'middle_name', 'address', 'profile_picture', 'parent_id', 'is_4ps_beneficiary', 'enrollment_date',
)


def get_pupil(pupil_id):
    pupil = db.session.get(Pupil, pupil_id)
    if pupil is None:
        raise NotFound(f"Pupil {pupil_id} does not exist")
    return pupil


def _clean(data, pupil_id=None):
    """Validate the submitted fields and return the column values to set."""
    values = {}
    for field in EDITABLE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if isinstance(value, str):
            value = value.strip()
        values[field] = value

    if 'lrn' in values:
        if not is_valid_lrn(values['lrn']):
            raise ValidationError('LRN must be exactly 12 digits')
        existing = Pupil.query.filter_by(lrn=values['lrn']).first()
        if existing is not None and existing.id != pupil_id:
            raise Conflict(f"A pupil with LRN {values['lrn']} already exists")
    for field in ('first_name', 'last_name', 'section'):
        if field in values and not values[field]:
            raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required")
    if 'gender' in values:
        values['gender'] = (values['gender'] or '').lower()
        if values['gender'] not in GENDERS:
            raise ValidationError('Gender must be male or female')
    if 'grade_level' in values:
        values['grade_level'] = validate_grade_level(values['grade_level'])
    if 'birth_date' in values:
        values['birth_date'] = parse_date(values['birth_date'], 'birth date')
    if values.get('enrollment_date'):
        values['enrollment_date'] = parse_date(values['enrollment_date'], 'enrollment date')
    elif 'enrollment_date' in values:
        del values['enrollment_date']
    if 'is_4ps_beneficiary' in values:
        values['is_4ps_beneficiary'] = bool(values['is_4ps_beneficiary'])
    for field in ('middle_name', 'address', 'profile_picture', 'parent_id'):
        if field in values and not values[field]:
            values[field] = None

    if values.get('parent_id'):
        guardian = db.session.get(User, values['parent_id'])
        if guardian is None or guardian.role != UserRoles.PARENT:
            raise ValidationError('Guardian must be a parent account')
    return values


def create_pupil(actor, data):
    require(actor, EDIT_PUPILS)
    missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, '')]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    pupil = Pupil(**_clean(data))
    db.session.add(pupil)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise Conflict(f"Could not save pupil: {e.orig}")

    logger.info("Pupil %s (%s) added to Grade %s-%s", pupil.id, pupil.lrn, pupil.grade_level, pupil.section)
    audit.record(actor.id, 'create_pupil', 'pupils', pupil.id, None, pupil.to_dict())
    return pupil


def update_pupil(actor, pupil_id, data):
    require(actor, EDIT_PUPILS)
    pupil = get_pupil(pupil_id)
    values = _clean(data, pupil_id=pupil.id)
    before = pupil.to_dict()
    for field, value in values.items():
        setattr(pupil, field, value)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise Conflict(f"Could not save pupil: {e.orig}")

    audit.record(actor.id, 'update_pupil', 'pupils', pupil.id, before, pupil.to_dict())
    return pupil


def search_pupils(term='', grade_level=None, section=None, gender=None, is_4ps=None,
                  include_archived=False, parent_id=None):
    """Filter pupils by name/LRN substring and class attributes, ordered by last name."""
    query = Pupil.query
    if not include_archived:
        query = query.filter(Pupil.archived.is_(False))
    term = (term or '').strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(
            Pupil.first_name.ilike(pattern),
            Pupil.last_name.ilike(pattern),
            Pupil.middle_name.ilike(pattern),
            Pupil.lrn.ilike(pattern),
        ))
    if grade_level not in (None, ''):
        query = query.filter(Pupil.grade_level == validate_grade_level(grade_level))
    if section:
        query = query.filter(Pupil.section == section)
    if gender:
        query = query.filter(Pupil.gender == gender.lower())
    if is_4ps is not None:
        query = query.filter(Pupil.is_4ps_beneficiary.is_(bool(is_4ps)))
    if parent_id:
        query = query.filter(Pupil.parent_id == parent_id)
    return query.order_by(Pupil.last_name, Pupil.first_name).all()


def class_pupils(grade_level, section):
    """Active pupils of one class."""
    return search_pupils(grade_level=grade_level, section=section)
