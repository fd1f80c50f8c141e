"""
Error taxonomy for the shortlink service.

Service-level errors carry the HTTP status and the numeric error code the
API renders as ``{"errcode": ..., "errinfo": ...}``. Backend errors
(cache, GeoIP) are absorbed before they reach a caller.
"""


class ShortenerError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 500
    errcode = "00001"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class InvalidInputError(ShortenerError):
    """Malformed destination URL, short code or query parameter"""
    status_code = 400
    errcode = "10003"


class NotFoundError(ShortenerError):
    """Unknown short code or id"""
    status_code = 404
    errcode = "10001"


class AlreadyExistsError(ShortenerError):
    """Short code taken, either by pre-check or by the unique constraint"""
    status_code = 409
    errcode = "10002"


class UnauthorizedError(ShortenerError):
    status_code = 401
    errcode = "40001"


class InternalError(ShortenerError):
    """Allocator exhaustion or unexpected failure"""
    status_code = 500
    errcode = "00001"


class RepositoryError(InternalError):
    """Durable store failure"""
    errcode = "50001"


class CacheError(Exception):
    """Raised by real cache backends; never surfaced to API callers"""


class GeoIpError(Exception):
    """Base class for GeoIP backend failures"""


class DatabaseNotFoundError(GeoIpError):
    pass


class InvalidIpAddressError(GeoIpError):
    pass


class LookupFailedError(GeoIpError):
    pass
