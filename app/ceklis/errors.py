"""
Service-layer errors.

Services raise these; the JSON API turns them into ``{"error": message}``
responses with the matching status code (see ``create_app``).
"""
from __future__ import annotations


class ServiceError(RuntimeError):
    status_code = 400

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.message}


class BadRequest(ServiceError):
    status_code = 400


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409
