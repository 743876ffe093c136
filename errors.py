"""
Error taxonomy for the storefront API.

Every service raises one of these; a single exception handler in main.py
turns them into a JSON body with a ``message`` field and the matching status.
"""


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(StoreError):
    status_code = 400


class ConflictError(StoreError):
    status_code = 400


class NotFoundError(StoreError):
    status_code = 404


class AuthError(StoreError):
    status_code = 401


class TransactionError(StoreError):
    status_code = 500


class InternalError(StoreError):
    status_code = 500
