from flask import Blueprint, current_app, jsonify, request
from mongoengine import ValidationError, NotUniqueError, DoesNotExist
from werkzeug.exceptions import HTTPException

from Utils.appError import AppError

error_bp = Blueprint('errors', __name__)


def _request_context():
    return f"URL: {request.url} | Method: {request.method} | IP: {request.remote_addr}"


def validation_messages(err: ValidationError) -> list:
    """Flatten a mongoengine ValidationError into readable field messages."""
    def walk(prefix, value):
        if isinstance(value, dict):
            for key, inner in value.items():
                yield from walk(f"{prefix}.{key}" if prefix else str(key), inner)
        else:
            yield f"{prefix}: {value}" if prefix else str(value)

    errors = err.to_dict() if err.errors else {}
    messages = list(walk("", errors))
    return messages or [err.message or str(err)]


@error_bp.app_errorhandler(AppError)
def handle_app_error(err):
    level = current_app.logger.error if err.status_code >= 500 else current_app.logger.warning
    level(f"AppError {err.status_code} at {request.path}: {err}")
    return jsonify(err.to_json()), err.status_code


@error_bp.app_errorhandler(ValidationError)
def handle_validation_error(err):
    messages = validation_messages(err)
    current_app.logger.warning(f"Validation failed at {request.path}: {messages}")
    return jsonify({
        "success": False,
        "status": "fail",
        "message": "Validation failed.",
        "errors": messages
    }), 400


@error_bp.app_errorhandler(NotUniqueError)
def handle_not_unique(err):
    current_app.logger.warning(f"Duplicate key at {request.path}: {err}")
    return jsonify({
        "success": False,
        "status": "fail",
        "message": "A record with the same unique value already exists."
    }), 409


@error_bp.app_errorhandler(DoesNotExist)
def handle_does_not_exist(err):
    return jsonify({"success": False, "status": "fail", "message": "Resource not found."}), 404


@error_bp.app_errorhandler(HTTPException)
def handle_http_exception(err):
    # Skip logging for common development requests
    if request.path not in ('/favicon.ico', '/robots.txt'):
        current_app.logger.warning(f"{err.code} {err.name}: {err.description} | {_request_context()}")

    message = {
        404: "The requested resource could not be found.",
        405: "Method not allowed.",
        429: "Rate limit exceeded. Please slow down.",
    }.get(err.code, err.description or err.name)

    return jsonify({
        "success": False,
        "status": "fail" if 400 <= err.code < 500 else "error",
        "message": message
    }), err.code


@error_bp.app_errorhandler(Exception)
def handle_unexpected_error(err):
    # This includes traceback automatically
    current_app.logger.exception(f"Unexpected Application Error: {err} | {_request_context()}")

    return jsonify({
        "success": False,
        "status": "error",
        "message": "Something went wrong on the server."
    }), 500
