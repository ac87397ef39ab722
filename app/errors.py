"""Service exceptions and JSON error handlers.

Services raise ServiceError subclasses. Blueprints may catch them, but any
exception that reaches Flask is turned into ``{"success": false, "error": ...}``
with the matching status code.
"""
from flask import jsonify, request
from werkzeug.exceptions import HTTPException


class ServiceError(Exception):
    """Base class for expected business errors."""
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError):
    """Invalid input data."""
    status_code = 400


class AccessDeniedError(ServiceError):
    """Caller may not access the shop or entity."""
    status_code = 403


class NotFoundError(ServiceError):
    """Entity does not exist (or is not visible for the caller's shop)."""
    status_code = 404


class ConflictError(ServiceError):
    """Entity state does not allow the operation."""
    status_code = 409


class QuotaExceededError(ServiceError):
    """Plan limit reached."""
    status_code = 429


def error_response(message: str, status_code: int):
    """Build the JSON error body used by all API endpoints."""
    return jsonify({'success': False, 'error': message}), status_code


def register_error_handlers(app):
    """Register JSON error handlers on the app."""
    from app import db

    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            app.logger.error(f'{request.method} {request.path}: {error.message}')
        return error_response(error.message, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        messages = {
            400: 'Ungültige Anfrage',
            401: 'Nicht angemeldet',
            403: 'Zugriff verweigert',
            404: 'Nicht gefunden',
            405: 'Methode nicht erlaubt',
            409: 'Konflikt',
            413: 'Datei zu groß',
        }
        return error_response(messages.get(error.code, error.name), error.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        app.logger.exception(f'Unbehandelter Fehler bei {request.method} {request.path}: {error}')
        return error_response('Interner Serverfehler', 500)
