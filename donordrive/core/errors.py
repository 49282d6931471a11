# donordrive/core/errors.py
"""
Errors raised by the service layer. Each carries the HTTP status the API
answers with; ``donordrive.main`` registers the handler that renders them.
"""


class ApiError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class BadRequest(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409
