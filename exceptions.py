"""Errors raised by the service layer and rendered as JSON by the app"""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message, details=None, status_code=None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        body = {'success': False, 'error': self.message}
        if self.details:
            body['details'] = self.details
        return body


class ValidationFailed(ServiceError):
    """Bad input. `details` holds a list of {field, message} entries."""
    status_code = 400


class Unauthorized(ServiceError):
    status_code = 401


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409


class StorageError(ServiceError):
    status_code = 502


class ExtractionError(ServiceError):
    status_code = 502
