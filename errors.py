from typing import Optional, Union


class ApiError(Exception):
    """Base for every error the api turns into an error envelope."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    status_code = 400

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class NotFoundError(ApiError):
    status_code = 404

    def __init__(self, resource: str, resource_id: Optional[Union[int, str]] = None):
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(ApiError):
    status_code = 409


class InternalError(ApiError):
    status_code = 500

    def __init__(self, message: str = "Internal server error", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
