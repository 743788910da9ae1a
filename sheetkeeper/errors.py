"""Typed failures raised by the services and their JSON mapping."""

from flask import jsonify
from pydantic import ValidationError


class SheetError(Exception):
    status = 400

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class BadRequest(SheetError):
    status = 400


class Unauthorized(SheetError):
    status = 401


class Forbidden(SheetError):
    status = 403


class NotFound(SheetError):
    status = 404


def register_error_handlers(app):
    @app.errorhandler(SheetError)
    def _sheet_error(err):
        return jsonify(error=err.message, code=err.code), err.status

    @app.errorhandler(ValidationError)
    def _body_error(err):
        details = err.errors(include_url=False, include_context=False, include_input=False)
        return jsonify(error="Invalid request body.", code="E_BODY_INVALID", details=details), 400
