from functools import wraps

from flask import jsonify, session


def admin_required(f):
    """Decorator for API routes that require an admin session"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'admin_id' not in session:
            return jsonify({'error': 'Authentication required'}), 401

        if session.get('role') != 'admin':
            return jsonify({'error': 'Access denied. Admin privileges required.'}), 403

        return f(*args, **kwargs)
    return decorated_function


def logout_required(f):
    """Decorator for routes that only make sense without a session (like login)"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'admin_id' in session:
            return jsonify({'message': 'Already logged in', 'email': session.get('email')}), 200
        return f(*args, **kwargs)
    return decorated_function
