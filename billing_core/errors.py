"""Error taxonomy shared by the JSON API.

Each error carries the HTTP status it maps to; ``create_app`` registers a
handler that renders them as ``{"error": message}``.
"""


class ApiError(Exception):
    status_code = 500
    default_message = 'Internal Server Error'

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class ValidationError(ApiError):
    status_code = 400
    default_message = 'Invalid request'


class AuthenticationError(ApiError):
    status_code = 401
    default_message = 'Unauthorized'


class AuthorizationError(ApiError):
    status_code = 403
    default_message = 'Forbidden'


class NotFoundError(ApiError):
    status_code = 404
    default_message = 'Not found'


class ConflictError(ApiError):
    status_code = 409
    default_message = 'Conflict'
