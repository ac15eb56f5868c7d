from functools import wraps
from flask import jsonify
from flask_login import current_user


def role_required(required_role):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            # 1. Check if user is logged in
            if not current_user.is_authenticated:
                return jsonify({"error": "Authentication required"}), 401

            # 2. Check if user has the correct role
            role_name = current_user.role.role_name if current_user.role else None
            if role_name != required_role.upper():
                return jsonify({"error": "Access denied: insufficient role"}), 403

            return func(*args, **kwargs)
        return wrapper
    return decorator
