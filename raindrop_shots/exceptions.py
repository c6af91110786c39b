"""Exception hierarchy for Raindrop Screenshots."""

from __future__ import annotations


class RaindropError(Exception):
    """Base exception for all raindrop_shots errors."""

    pass


class ConfigError(RaindropError):
    """Raised when the configuration is missing or invalid. Fatal at startup."""

    pass


class AuthError(RaindropError):
    """Raised when the access token is rejected and cannot be refreshed."""

    pass


class APIError(RaindropError):
    """Raised when a Raindrop.io API call fails for a non-auth reason.

    ``status_code`` is None for transport failures (DNS, refused connection,
    timeouts) where no response was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UploadError(APIError):
    """Raised when a file upload fails."""

    pass


class FileInvalidError(UploadError):
    """The service rejected the file as invalid or corrupted."""

    pass


class FileSizeLimitError(UploadError):
    """The file exceeds the account's upload size limit."""

    pass


class NoFileError(UploadError):
    """The upload request reached the service without a file."""

    pass
