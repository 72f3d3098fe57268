from flask import jsonify
from werkzeug.exceptions import HTTPException


class TrustLensError(Exception):
    """Base class for errors raised by services and rendered as JSON."""
    status_code = 500

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self):
        body = dict(self.payload)
        body['error'] = self.message
        return body


class ValidationError(TrustLensError):
    status_code = 400


class NotFoundError(TrustLensError):
    status_code = 404


class ConflictError(TrustLensError):
    status_code = 409


def register_error_handlers(flask_app):
    @flask_app.errorhandler(TrustLensError)
    def handle_domain_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({'error': exc.description or exc.name}), exc.code

    @flask_app.errorhandler(Exception)
    def handle_unexpected(exc):
        flask_app.logger.exception(f"[error] unhandled {type(exc).__name__}: {exc}")
        return jsonify({'error': 'Internal server error'}), 500
