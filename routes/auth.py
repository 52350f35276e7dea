# routes/auth.py
# Login, logout and the session-based role checks shared by every blueprint

from functools import wraps

from flask import Blueprint, request, session, jsonify, g

from extensions import db
from models import User

auth_bp = Blueprint('auth', __name__)


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({'status': 'error', 'message': 'Please log in to access this page.'}), 401
        user = db.session.get(User, session['user_id'])
        if user is None:
            session.clear()
            return jsonify({'status': 'error', 'message': 'Your session has expired. Please log in again.'}), 401
        g.user = user
        return f(*args, **kwargs)
    return decorated_function


def roles_required(*roles):
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated_function(*args, **kwargs):
            if g.user.role not in roles:
                return jsonify({'status': 'error', 'message': 'You do not have access to this page.'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or request.form
    login_name = (data.get('login') or '').strip()
    password = data.get('password') or ''
    if not login_name or not password:
        return jsonify({'status': 'error', 'message': 'Login and password are required.'}), 400

    user = User.query.filter_by(login=login_name).first()
    if user is None or not user.check_password(password):
        return jsonify({'status': 'error', 'message': 'Invalid login or password.'}), 401

    session.clear()
    session['user_id'] = user.id
    session['user_role'] = user.role
    return jsonify({'status': 'success', 'user': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'status': 'success'})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'status': 'success', 'user': g.user.to_dict()})
