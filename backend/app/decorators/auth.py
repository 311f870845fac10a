from functools import wraps
from flask import abort
from flask_jwt_extended import verify_jwt_in_request
from app.services.policy import current_subject


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        if not current_subject().is_admin:
            abort(403, description='Not authorized as an Admin')
        return fn(*args, **kwargs)
    return wrapper
