from functools import wraps

from flask import jsonify
from flask_login import current_user


def admin_required(view):
    """Reject JSON requests from anonymous or non-admin users before the view runs."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({"error": "Authentication required"}), 401
        if not current_user.is_admin():
            return jsonify({"error": "Administrator access required"}), 403
        return view(*args, **kwargs)
    return wrapped
