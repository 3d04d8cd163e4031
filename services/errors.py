"""Error taxonomy raised by the service layer and mapped to HTTP statuses in main.py."""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Missing or malformed required fields."""
    status_code = 400


class ConflictError(ServiceError):
    """Duplicate value on a unique field."""
    status_code = 400


class Unauthorized(ServiceError):
    """Device token mismatch or missing family membership."""
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class InternalError(ServiceError):
    status_code = 500


class DatabaseUnavailable(ServiceError):
    status_code = 503
