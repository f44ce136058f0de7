"""Faults raised by the stores and services.

Each fault carries the HTTP status it is rendered with. The handler in
``main.py`` turns them into ``{"detail": ...}`` responses, optionally with the
``stage`` of a multi-step operation that failed.
"""

from __future__ import annotations


class CRMFault(Exception):
    status_code = 500

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage


class ValidationFault(CRMFault):
    status_code = 422


class NotFoundFault(CRMFault):
    status_code = 404


class ConflictFault(CRMFault):
    status_code = 409


class StoreFault(CRMFault):
    status_code = 500


class FilesystemFault(CRMFault):
    status_code = 500

    def __init__(self, message: str, *, filename: str | None = None, stage: str | None = None) -> None:
        super().__init__(message, stage=stage)
        self.filename = filename


class AuthFault(CRMFault):
    status_code = 403

    def __init__(self, message: str, *, status_code: int = 403) -> None:
        super().__init__(message)
        self.status_code = status_code
