"""Error definitions for s3proxy."""


class ProxyError(Exception):
    """An error that terminates a proxied request.

    The pipeline renders these verbatim: the message becomes the plain-text
    response body and ``http_status`` the status code.

    Attributes:
        message: Human-readable error description.
        http_status: The HTTP status code to return.
    """

    def __init__(self, message: str, http_status: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.http_status = http_status


class StoreError(ProxyError):
    """The object store could not return the requested key.

    Missing keys, denied access and transport failures all map here; the
    gateway does not tell them apart.

    Attributes:
        key: The store key that was requested.
    """

    def __init__(self, message: str, key: str = "") -> None:
        super().__init__(message, http_status=500)
        self.key = key


class ResolutionError(ProxyError):
    """A symlink descriptor could not be parsed."""

    def __init__(self, message: str, key: str = "") -> None:
        super().__init__(message, http_status=500)
        self.key = key


class ConfigError(ValueError):
    """The gateway configuration is invalid."""
