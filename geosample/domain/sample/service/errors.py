"""Turns pipeline failures into the single error a caller sees.

Stage errors are raised with the bare cause ("Could not parse as JSON",
"(404)", ...). `classify_error` prefixes them for the source that was being
sampled, so the same decoder error reads differently for an ArcGIS server
and for a plain file.
"""

import logging
from typing import Generic, TypeVar

from geosample.domain.sample.model.value import SourceDescriptor
from geosample.domain.shared.error import (
    AuthenticationError,
    GeoSampleError,
    InternalError,
    InvalidSourceError,
    MalformedArchiveError,
    MalformedPayloadError,
    RemoteApplicationError,
    TransportError,
    UndeterminedFormatError,
    UnsupportedTypeError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Already caller-facing, never prefixed
_VERBATIM = (InvalidSourceError, UnsupportedTypeError, UndeterminedFormatError)

_RETRIEVAL = (TransportError, UpstreamError, AuthenticationError, MalformedArchiveError)


def classify_error(exc: BaseException, descriptor: SourceDescriptor | None = None) -> GeoSampleError:
    """Map `exc` to a typed error whose message names the source.

    Errors raised by this package keep their class and code; the message is
    rewritten in place. Anything else becomes an `InternalError`.
    """
    if not isinstance(exc, GeoSampleError):
        logger.exception("Unexpected error while sampling", exc_info=exc)
        error = InternalError(f"Unexpected error: {exc}" if str(exc) else "Unexpected error")
        error.__cause__ = exc
        return error

    if descriptor is None or isinstance(exc, _VERBATIM):
        return exc

    uri = descriptor.uri
    if descriptor.is_esri and isinstance(
        exc, (*_RETRIEVAL, RemoteApplicationError, MalformedPayloadError)
    ):
        return _prefixed(exc, f"Error connecting to Arcgis server {uri}")
    if isinstance(exc, _RETRIEVAL):
        return _prefixed(exc, f"Error retrieving file {uri}")
    if isinstance(exc, MalformedPayloadError):
        match exc.decoder:
            case "csv":
                return _prefixed(exc, f"Error parsing file from {uri} as CSV")
            case "dbf":
                return _prefixed(exc, f"Error parsing file from {uri}")
        return _prefixed(exc, f"Error retrieving file {uri}")
    return exc


def _prefixed(exc: GeoSampleError, prefix: str) -> GeoSampleError:
    if exc.message.startswith(prefix):
        return exc
    exc.message = f"{prefix}: {exc.message}"
    exc.args = (exc.message,)
    return exc


class ResponseGuard(Generic[T]):
    """Settles a request's outcome exactly once.

    The first `resolve` or `reject` wins. Anything reported afterwards (a
    failing FTP QUIT after a parse error, a cleanup error after a complete
    result) is logged at debug level and dropped.
    """

    def __init__(self, descriptor: SourceDescriptor | None = None) -> None:
        self._descriptor = descriptor
        self._settled = False
        self._value: T | None = None
        self._error: GeoSampleError | None = None

    @property
    def settled(self) -> bool:
        return self._settled

    def resolve(self, value: T) -> None:
        if self._settled:
            logger.debug("Response already settled, dropping late result")
            return
        self._settled = True
        self._value = value

    def reject(self, exc: BaseException) -> None:
        if self._settled:
            logger.debug("Response already settled, suppressing: %r", exc)
            return
        self._settled = True
        self._error = classify_error(exc, self._descriptor)

    def outcome(self) -> T:
        """Return the settled value or raise the settled error."""
        if self._error is not None:
            raise self._error
        if not self._settled:
            raise InternalError("Request finished without a result")
        return self._value  # type: ignore[return-value]
