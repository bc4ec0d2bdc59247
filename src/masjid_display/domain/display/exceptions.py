"""Display-specific exceptions for error handling."""

from typing import Optional


class DisplayError(Exception):
    """Base exception for display operations."""

    pass


class NetworkError(DisplayError):
    """Raised when a fetch fails or the server returns a non-success status."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class ValidationError(DisplayError):
    """Raised when an API payload does not have the expected shape."""

    pass
