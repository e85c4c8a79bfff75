from flask import Blueprint, current_app, jsonify, request, session

from fitdesk.models.admin import Admin
from fitdesk.utils.decorators import admin_required, logout_required

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


@auth_bp.route('/login', methods=['POST'])
@logout_required
def login():
    """Admin login with email and password"""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form
    elif not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object.'}), 400

    email = data.get('email')
    password = data.get('password')
    if not isinstance(email, str) or not isinstance(password, str) or not email.strip() or not password:
        return jsonify({'error': 'Please enter both email and password.'}), 400
    email = email.strip()

    admin = Admin.authenticate(email, password)
    if admin is None:
        current_app.logger.info("Failed admin login for %s", email)
        return jsonify({'error': 'Invalid credentials'}), 401

    session.clear()
    session['admin_id'] = admin.id
    session['email'] = admin.email
    session['role'] = admin.role
    current_app.logger.info("Admin %s logged in", admin.email)
    return jsonify({'message': 'Login successful', 'user': admin.to_dict()}), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Logout admin and clear session"""
    email = session.get('email')
    session.clear()
    if email:
        current_app.logger.info("Admin %s logged out", email)
    return jsonify({'message': 'Logged out successfully.'}), 200


@auth_bp.route('/me')
@admin_required
def me():
    admin = Admin.get_by_id(session['admin_id'])
    if admin is None:
        session.clear()
        return jsonify({'error': 'Authentication required'}), 401
    return jsonify({'user': admin.to_dict()})
