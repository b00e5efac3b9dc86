import traceback
from http import HTTPStatus
from typing import Any, Optional, Union

import config
from errors import ApiError, ConflictError, InternalError, NotFoundError, ValidationError

# messages shared by the routes and the tests
CLUB_CREATED = "Club created successfully"
CLUB_NAME_EXISTS = "A club with this name already exists"
EVENT_CREATED = "Event created successfully"
VALIDATION_FAILED = "Validation failed"
INTERNAL_ERROR = "Internal server error"
ROUTE_NOT_FOUND = "Route not found"


def status_text(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Unknown Status"


def success_response(data: Any = None, message: Optional[str] = None, **meta) -> dict:
    """
    Builds {success: True, ...meta, message?, data?}.
    message and data are left out entirely when not given.
    """
    response = {"success": True, **meta}

    if message:
        response["message"] = message

    if data is not None:
        response["data"] = data

    return response


def error_response(status_code: int, message: str, **details) -> dict:
    return {
        "success": False,
        "error": status_text(status_code),
        "message": message,
        **details,
    }


def validation_error(field: str, message: str) -> dict:
    return error_response(
        HTTPStatus.BAD_REQUEST,
        VALIDATION_FAILED,
        field=field,
        validationError=message,
    )


def not_found_error(resource: str, resource_id: Optional[Union[int, str]] = None) -> dict:
    return error_response(HTTPStatus.NOT_FOUND, NotFoundError(resource, resource_id).message)


def conflict_error(message: str) -> dict:
    return error_response(HTTPStatus.CONFLICT, message)


def internal_error(message: str = INTERNAL_ERROR, exc: Optional[BaseException] = None) -> dict:
    response = error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)

    # never leak internals outside development
    if exc is not None and config.is_development():
        response["errorDetails"] = str(exc)
        response["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    return response


def envelope_for(error: ApiError) -> dict:
    """Maps an ApiError onto its envelope."""
    if isinstance(error, ValidationError):
        return validation_error(error.field, error.message)
    if isinstance(error, NotFoundError):
        return not_found_error(error.resource, error.resource_id)
    if isinstance(error, ConflictError):
        return conflict_error(error.message)
    if isinstance(error, InternalError):
        return internal_error(error.message, error.cause)
    return error_response(error.status_code, error.message)
