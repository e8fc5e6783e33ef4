"""
Domain errors raised by the storage and sharing services.

Every error carries a stable message and the HTTP status the boundary
layer maps it to (see the exception handlers in ``ciphershare.main``).
"""
from typing import Optional


class CipherShareError(Exception):
    status_code: int = 500
    default_message: str = "Internal error."

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        self.code = code
        super().__init__(self.message)


class NotFoundError(CipherShareError):
    status_code = 404
    default_message = "Not found."


class ConflictError(CipherShareError):
    status_code = 422
    default_message = "Conflict."


class NoChangeError(CipherShareError):
    """Update requested equals current state. Reported as a success."""
    status_code = 200
    default_message = "No changes made."


class AccessDeniedError(CipherShareError):
    status_code = 403
    default_message = "You do not have permission to perform this action."


class PayloadTooLargeError(CipherShareError):
    status_code = 413
    default_message = "File exceeds the maximum upload size."


class KeyFormatError(CipherShareError):
    default_message = "Stored encryption key is malformed."


class DecryptionError(CipherShareError):
    default_message = "File content could not be decrypted."


class ContentNotFoundError(CipherShareError):
    default_message = "File content is missing from the content store."


class StoreUnavailableError(CipherShareError):
    status_code = 503
    default_message = "Content store is unavailable."


# Stable messages for the duplicate cases
USER_SHARE_EXISTS = "File shared with this user already."
STALE_REQUEST = "File shared with this user already. The request is deleted."
DEPARTMENT_SHARE_EXISTS = "File shared with this department already."
FILENAME_EXISTS = "A file with the same name already exists."
FILENAME_EXISTS_AT_OWNER = "A file with the same name already exists at the owner side."
REQUEST_EXISTS = "You have already requested access to this file."
OWN_FILE = "You already own this file."
