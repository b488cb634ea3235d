"""
Session helpers for the blueprints.

The signed session cookie holds ``user_id`` and ``user_role`` after sign-in;
``current_actor`` turns them into the ``Actor`` the services expect.
"""
from functools import wraps

from flask import jsonify, session

from models import db, User
from services.permissions import Actor


def current_user():
    """Signed-in, non-archived account or None."""
    user_id = session.get('user_id')
    if not user_id:
        return None
    user = db.session.get(User, user_id)
    if user is None or user.archived:
        return None
    return user


def current_actor():
    user = current_user()
    return Actor.from_user(user) if user else None


def sign_in_session(user):
    session.clear()
    session['user_id'] = user.id
    session['user_role'] = user.role
    session['user_name'] = user.full_name


def login_required(*roles):
    """Restrict a view to signed-in users, optionally only the given roles."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if current_user() is None:
                session.clear()
                return jsonify({'success': False, 'message': 'Please sign in'}), 401
            if roles and session.get('user_role', '').lower() not in roles:
                return jsonify({'success': False, 'message': 'Access denied'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator
