"""Error hierarchy for geosample.

Error layers:
- GeoSampleError: Base class for all geosample errors
- DomainError: Problems with the requested source or its content (4xx responses)
- InfrastructureError: Server-side failures like missing configuration (5xx responses)

These errors are mapped to HTTP responses by the global exception handler in app.py.
"""


class GeoSampleError(Exception):
    """Base class for all geosample errors."""

    default_code: str = "GeoSampleError"

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


# =============================================================================
# Domain Errors (caller or upstream source problems - 400)
# =============================================================================


class DomainError(GeoSampleError):
    """Base class for errors caused by the source being sampled."""


class InvalidSourceError(DomainError):
    """Source URI could not be parsed."""

    default_code = "InvalidSource"


class UnsupportedTypeError(DomainError):
    """Scheme/suffix combination is not recognized."""

    default_code = "UnsupportedType"


class TransportError(DomainError):
    """Connection refused, DNS failure, timeout or FTP protocol error."""

    default_code = "TransportError"


class AuthenticationError(DomainError):
    """FTP login rejected."""

    default_code = "AuthenticationError"


class UpstreamError(DomainError):
    """Upstream answered with a non-2xx status."""

    default_code = "UpstreamError"

    def __init__(self, status_code: int, body: str | None = None) -> None:
        self.status_code = status_code
        self.body = body
        if body:
            message = f"{body} ({status_code})"
        else:
            message = f"({status_code})"
        super().__init__(message)


class RemoteApplicationError(DomainError):
    """Well-formed JSON response that encodes an error object."""

    default_code = "RemoteApplicationError"

    def __init__(self, message: str, remote_code: int | str | None = None) -> None:
        self.remote_message = message
        self.remote_code = remote_code
        super().__init__(f"{message} ({remote_code})")


class MalformedPayloadError(DomainError):
    """Content failed to parse as the expected format."""

    default_code = "MalformedPayload"

    def __init__(self, message: str, decoder: str | None = None) -> None:
        self.decoder = decoder
        super().__init__(message)


class MalformedArchiveError(MalformedPayloadError):
    """Bytes are not a readable zip archive."""

    def __init__(self, message: str) -> None:
        super().__init__(message, decoder="zip")


class UndeterminedFormatError(DomainError):
    """Archive exhausted without an entry in a supported format."""

    default_code = "UndeterminedFormat"


class InvalidFormatError(DomainError):
    """Requested output format is not supported."""

    default_code = "InvalidFormat"


class SourceNotFoundError(DomainError):
    """Requested source has no row in the metadata index."""

    default_code = "SourceNotFound"


# =============================================================================
# Infrastructure Errors (server-side failures - 500)
# =============================================================================


class InfrastructureError(GeoSampleError):
    """Base class for infrastructure/system errors."""


class ConfigurationError(InfrastructureError):
    """Required server-side configuration is missing."""

    default_code = "ConfigurationError"


class MetadataUnavailableError(InfrastructureError):
    """The metadata index could not be retrieved."""

    default_code = "MetadataUnavailable"


class InternalError(InfrastructureError):
    """Unexpected failure (library bug, temp staging failure)."""

    default_code = "InternalError"
