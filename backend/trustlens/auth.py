from functools import wraps

from flask import jsonify
from flask_jwt_extended import create_access_token, get_jwt, get_jwt_identity, verify_jwt_in_request

ROLES = ('customer', 'vendor', 'admin')


def issue_token(identity, role):
    return create_access_token(identity=str(identity), additional_claims={'role': role})


def current_identity():
    """Integer id from the bearer token, or None when the request carries no token."""
    identity = get_jwt_identity()
    return int(identity) if identity is not None else None


def current_role():
    return get_jwt().get('role')


def role_required(role):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if get_jwt().get('role') != role:
                return jsonify({'error': 'Forbidden: wrong role'}), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def register_jwt_handlers(jwt):
    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({'error': 'Not authorized', 'detail': reason}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({'error': 'Not authorized', 'detail': reason}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'error': 'Not authorized', 'detail': 'Token has expired'}), 401
