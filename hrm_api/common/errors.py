# hrm_api/common/errors.py
from flask import current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError

from hrm_api.common.http import fail


class APIError(Exception):
    """Base error carrying an error code and the HTTP status it maps to."""
    code = "API_ERROR"
    status_code = 400

    def __init__(self, message, code=None, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload


class ValidationError(APIError):
    code = "VALIDATION_ERROR"
    status_code = 422


class NotFound(APIError):
    code = "NOT_FOUND"
    status_code = 404


class InvalidReference(APIError):
    """A foreign reference points at nothing, or at a row of another tenant."""
    code = "INVALID_REFERENCE"
    status_code = 422


class CycleDetected(APIError):
    code = "CYCLE_DETECTED"
    status_code = 409


class InvalidTransition(APIError):
    code = "INVALID_TRANSITION"
    status_code = 409


class DuplicateKey(APIError):
    code = "DUPLICATE_KEY"
    status_code = 409


class ConnectionFailure(APIError):
    code = "CONNECTION_FAILURE"
    status_code = 503


class MissingInput(APIError):
    code = "MISSING_INPUT"


class ParseFailure(MissingInput):
    code = "PARSE_FAILURE"


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _integrity(e: IntegrityError):
        # 409 for unique/FK violations
        from hrm_api.extensions import db
        db.session.rollback()
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR",
                    detail=str(e.orig) if getattr(e, "orig", None) else str(e))

    @app.errorhandler(Exception)
    def _500(e: Exception):
        current_app.logger.exception(e)
        return fail("Internal server error", status=500)
