"""Exception types raised by the library engine."""


class LibraryError(Exception):
    """Base class for all library engine failures."""


class NetworkError(LibraryError):
    """Request failed or returned a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(NetworkError):
    """Catalog returned 404 for a series or chapter."""


class DecodeError(LibraryError):
    """Catalog response was not the JSON shape we expect."""


class ParseError(LibraryError):
    """A numeric or enumerated field in feed data could not be parsed."""


class FilesystemError(LibraryError):
    """Creating or writing a chapter directory or page file failed."""


class StoreError(LibraryError):
    """Database constraint violation, missing row, or unexpected row count."""
