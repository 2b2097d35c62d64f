"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``sportreel.main`` maps each one to a JSON response so
a failed request never takes the process down.
"""
from typing import Dict, Optional


class SportReelError(Exception):
    """Base class for all application errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SportReelError):
    """One or more fields failed their constraints. Raised before any network call."""

    status_code = 422

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        super().__init__(message or "Validation failed")
        self.errors = dict(errors)


class StorageError(SportReelError):
    """Object store transport or service failure."""

    status_code = 502


class UploadError(StorageError):
    """An object upload failed; the operation that needed it is aborted."""


class GenerationError(SportReelError):
    """The image generation service produced nothing usable."""

    status_code = 502


class WriteError(SportReelError):
    """A metadata create, update or delete did not go through."""

    status_code = 500


class NotFoundError(SportReelError):
    status_code = 404


class PermissionDeniedError(SportReelError):
    status_code = 403


class AuthenticationError(SportReelError):
    status_code = 401


class ConflictError(SportReelError):
    status_code = 409
