from flask import Blueprint, request, session, jsonify
from models import db, User
from services import notifications, registration
from services.identity import get_identity_provider
from utils.session import current_user, login_required, sign_in_session

user_bp = Blueprint('user', __name__)


@user_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or request.form or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not email or not password:
        return jsonify({'success': False, 'message': 'Email and password are required'}), 400

    identity_id = get_identity_provider().sign_in(email, password)
    user = db.session.get(User, identity_id) if identity_id else None
    if not user or user.archived:
        return jsonify({'success': False, 'message': 'Invalid credentials'}), 401

    # Login success: store minimal session info
    sign_in_session(user)
    return jsonify({'success': True, 'user': user.to_dict()})


@user_bp.route('/logout', methods=['POST', 'GET'])
def logout():
    session.clear()
    return jsonify({'success': True})


@user_bp.route('/register', methods=['POST'])
def register():
    """Self-service registration for teachers and parents"""
    data = request.get_json(silent=True) or request.form or {}
    pending = registration.submit_registration(data)
    return jsonify({
        'success': True,
        'message': 'Registration submitted. An administrator will review your application.',
        'registration': pending.to_dict(),
    }), 201


@user_bp.route('/api/me')
@login_required()
def me():
    return jsonify({'success': True, 'user': current_user().to_dict()})


@user_bp.route('/api/notifications')
@login_required()
def list_notifications():
    user = current_user()
    items = notifications.unread_for(user.id, limit=request.args.get('limit', 50, type=int))
    return jsonify({'success': True, 'notifications': [n.to_dict() for n in items]})


@user_bp.route('/api/notifications/<notification_id>/read', methods=['POST'])
@login_required()
def read_notification(notification_id):
    if not notifications.mark_read(current_user().id, notification_id):
        return jsonify({'success': False, 'message': 'Notification not found'}), 404
    return jsonify({'success': True})
