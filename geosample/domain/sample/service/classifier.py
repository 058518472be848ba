"""Source classification from the URI alone (no network access)."""

import re
from urllib.parse import urlsplit

from geosample.domain.sample.model.value import (
    Compression,
    SourceDescriptor,
    SourceFormat,
    Transport,
)
from geosample.domain.shared.error import InvalidSourceError, UnsupportedTypeError

# matches:
# - MapServer/0
# - FeatureServer/13
# - MapServer/1/
ARCGIS_PATH = re.compile(r"(Map|Feature)Server/\d+/?$")

SCHEMES: dict[str, Transport] = {
    "http": Transport.HTTP,
    "https": Transport.HTTP,
    "ftp": Transport.FTP,
}

DELIMITERS: dict[str, str] = {
    ".csv": ",",
    ".tsv": "\t",
    ".psv": "|",
}


def delimited_suffix(name: str) -> str | None:
    """Return the lower-cased delimited-text suffix of `name`, if any."""
    suffix = name[-4:].lower()
    return suffix if suffix in DELIMITERS else None


def entry_format(name: str) -> tuple[SourceFormat, str | None]:
    """Format (and implied delimiter) of a file name, by case-insensitive suffix."""
    lowered = name.lower()
    if suffix := delimited_suffix(lowered):
        return SourceFormat.DELIMITED_TEXT, DELIMITERS[suffix]
    if lowered.endswith(".geojson"):
        return SourceFormat.GEOJSON, None
    if lowered.endswith(".dbf"):
        return SourceFormat.SHAPEFILE, None
    return SourceFormat.UNKNOWN, None


def classify(uri: str) -> SourceDescriptor:
    """Infer transport, format and compression of `uri`.

    Raises:
        InvalidSourceError: `uri` does not parse as an absolute URL.
        UnsupportedTypeError: Scheme or path suffix is not supported.
    """
    try:
        parts = urlsplit(uri)
        parts.port  # Validates the port component
    except ValueError as e:
        raise InvalidSourceError(f"Unable to parse URL from '{uri}'") from e
    if not parts.scheme:
        raise InvalidSourceError(f"Unable to parse URL from '{uri}'")

    transport = SCHEMES.get(parts.scheme.lower())
    if transport is None:
        raise UnsupportedTypeError("Unsupported type")
    if not parts.netloc:
        raise InvalidSourceError(f"Unable to parse URL from '{uri}'")

    if transport is Transport.HTTP and ARCGIS_PATH.search(parts.path):
        return SourceDescriptor(uri=uri, transport=transport, format=SourceFormat.ESRI)

    if parts.path.lower().endswith(".zip"):
        return SourceDescriptor(
            uri=uri,
            transport=transport,
            format=SourceFormat.UNKNOWN,
            compression=Compression.ZIP,
        )

    format, delimiter = entry_format(parts.path)
    if format in (SourceFormat.UNKNOWN, SourceFormat.SHAPEFILE):
        # A bare .dbf has no archive to come from
        raise UnsupportedTypeError("Unsupported type")
    return SourceDescriptor(uri=uri, transport=transport, format=format, delimiter=delimiter)
