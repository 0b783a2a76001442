"""
Error kinds surfaced by the API, each tied to the HTTP status it maps to.

Store failures are ``guidesite.db.StoreError`` and map to 500.
"""

from __future__ import annotations


class AppError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotFoundError(AppError):
    status_code = 404
    message = "Not found"


class ValidationMissingError(AppError):
    status_code = 400
    message = "A required field is missing"


class AuthRequiredError(AppError):
    status_code = 401
    message = "Admin login required"


class AuthFailedError(AppError):
    status_code = 401
    message = "Incorrect password"


class UploadMissingError(AppError):
    status_code = 400
    message = "No file uploaded"
