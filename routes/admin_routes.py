from flask import Blueprint, request, jsonify
import pytz
from models.user import User, db
from models.system_settings import SystemSetting
from models.registration import RegistrationStatus
from services import audit, promotion, registration
from services.errors import ValidationError
from services.permissions import MANAGE_SETTINGS, VIEW_AUDIT_LOGS, require
from services.rules import parse_date
from utils.session import current_actor, login_required
from utils.settings import SystemSettings

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

# Settings an administrator may change: key -> (category, type)
EDITABLE_SETTINGS = {
    'school_name': ('general', str),
    'school_address': ('general', str),
    'timezone': ('general', str),
    'late_threshold_minutes': ('attendance', int),
    'minimum_rate': ('attendance', int),
}


# ---------------------------------------------------------------------------
# Registrations
# ---------------------------------------------------------------------------

@admin_bp.route('/registrations')
@login_required('admin')
def list_registrations():
    status = request.args.get('status')
    statuses = (status,) if status in RegistrationStatus.ALL else RegistrationStatus.OPEN
    items = registration.list_registrations(statuses)
    return jsonify({'success': True, 'registrations': [r.to_dict() for r in items]})


@admin_bp.route('/registrations/<registration_id>/review', methods=['POST'])
@login_required('admin')
def review_registration(registration_id):
    pending = registration.mark_under_review(registration_id, current_actor())
    return jsonify({'success': True, 'registration': pending.to_dict()})


@admin_bp.route('/registrations/<registration_id>/approve', methods=['POST'])
@login_required('admin')
def approve_registration(registration_id):
    result = registration.approve(registration_id, current_actor())
    message = ('An account with this email already existed and has been linked'
               if result.already_existed else 'Account created successfully')
    return jsonify({
        'success': True,
        'message': message,
        'account_id': result.account_id,
        'already_existed': result.already_existed,
    })


@admin_bp.route('/registrations/<registration_id>/reject', methods=['POST'])
@login_required('admin')
def reject_registration(registration_id):
    data = request.get_json(silent=True) or request.form or {}
    rejected = registration.reject(registration_id, current_actor(), data.get('reason'))
    return jsonify({'success': True, 'registration': rejected.to_dict()})


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

@admin_bp.route('/users')
@login_required('admin')
def list_users():
    query = User.query
    role = request.args.get('role')
    if role:
        query = query.filter_by(role=role.lower())
    if request.args.get('archived') != 'true':
        query = query.filter_by(archived=False)
    users = query.order_by(User.full_name).all()
    return jsonify({'success': True, 'users': [u.to_dict() for u in users]})


@admin_bp.route('/users/<user_id>/archive', methods=['POST'])
@login_required('admin')
def archive_user(user_id):
    user = promotion.archive_account(current_actor(), user_id, archive=True)
    return jsonify({'success': True, 'user': user.to_dict()})


@admin_bp.route('/users/<user_id>/restore', methods=['POST'])
@login_required('admin')
def restore_user(user_id):
    user = promotion.archive_account(current_actor(), user_id, archive=False)
    return jsonify({'success': True, 'user': user.to_dict()})


@admin_bp.route('/users/<user_id>', methods=['DELETE'])
@login_required('admin')
def delete_user(user_id):
    promotion.delete_account_permanently(current_actor(), user_id)
    return jsonify({'success': True, 'message': 'User deleted permanently'})


# ---------------------------------------------------------------------------
# Promotion
# ---------------------------------------------------------------------------

@admin_bp.route('/promote', methods=['POST'])
@login_required('admin')
def promote_pupils():
    data = request.get_json(silent=True) or {}
    outcome = promotion.promote(
        current_actor(),
        data.get('pupil_ids') or [],
        data.get('from_grade'),
        data.get('to_grade'),
        data.get('to_section'),
    )
    return jsonify({'success': True, **outcome.to_dict()})


# ---------------------------------------------------------------------------
# Audit logs and settings
# ---------------------------------------------------------------------------

@admin_bp.route('/audit_logs')
@login_required('admin')
def audit_logs():
    require(current_actor(), VIEW_AUDIT_LOGS)
    args = request.args
    entries = audit.list_entries(
        user_id=args.get('user_id'),
        action=args.get('action'),
        entity_type=args.get('entity_type'),
        entity_id=args.get('entity_id'),
        start=parse_date(args['start'], 'start date') if args.get('start') else None,
        end=parse_date(args['end'], 'end date') if args.get('end') else None,
        limit=args.get('limit', 100, type=int),
    )
    return jsonify({'success': True, 'audit_logs': [e.to_dict() for e in entries]})


@admin_bp.route('/system_settings', methods=['GET', 'POST'])
@login_required('admin')
def system_settings():
    actor = require(current_actor(), MANAGE_SETTINGS)

    if request.method == 'POST':
        data = request.get_json(silent=True) or request.form or {}
        unknown = [key for key in data if key not in EDITABLE_SETTINGS]
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(unknown)}")

        before, after = {}, {}
        for key, value in data.items():
            category, kind = EDITABLE_SETTINGS[key]
            if key == 'timezone' and value not in pytz.all_timezones_set:
                raise ValidationError(f"Unknown timezone: {value}")
            try:
                after[key] = kind(value)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid value for {key}: {value!r}")
            before[key] = SystemSettings.get(category, key)
            SystemSetting.upsert_setting(category, key, after[key])
        db.session.commit()
        # Invalidate settings cache
        SystemSettings.invalidate_cache()
        audit.record(actor.id, 'update_settings', 'system_settings', 'school', before, after)

    settings = SystemSettings.get_category('general')
    settings.update(SystemSettings.get_category('attendance'))
    return jsonify({'success': True, 'settings': settings})
