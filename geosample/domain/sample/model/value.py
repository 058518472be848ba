from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from geosample.domain.shared.model.value import ValueObject

# Closed value variant every decoder converges on
RecordValue = str | int | float | bool | None
Record = dict[str, RecordValue]


class Transport(StrEnum):
    HTTP = "http"
    FTP = "ftp"


class SourceFormat(StrEnum):
    ESRI = "esri"
    GEOJSON = "geojson"
    DELIMITED_TEXT = "csv"
    SHAPEFILE = "shapefile"
    UNKNOWN = "unknown"


class Compression(StrEnum):
    NONE = "none"
    ZIP = "zip"


class SourceDescriptor(ValueObject):
    """Transport, format and compression of a source, inferred from its URI."""

    uri: str
    transport: Transport
    format: SourceFormat
    compression: Compression = Compression.NONE
    delimiter: str | None = None  # Suffix-implied delimiter for delimited text

    @property
    def is_esri(self) -> bool:
        return self.format is SourceFormat.ESRI

    @property
    def source_type(self) -> str:
        """Label reported as `type` in results ("ESRI", "http" or "ftp")."""
        if self.is_esri:
            return "ESRI"
        return self.transport.value


class SampleRequest(ValueObject):
    descriptor: SourceDescriptor
    size: int = Field(default=10, ge=0)
    offset: int = Field(default=0, ge=0)


class Conform(BaseModel):
    type: str | None = None
    csvsplit: str | None = None


class SourceData(BaseModel):
    fields: list[str] = []
    results: list[Record] = []


class SampleResult(BaseModel):
    """Structural preview of a source.

    Serialized in the shape existing callers consume: field names and
    records live under `source_data`, `compression` only appears for
    archives and `conform.csvsplit` only for delimited text.
    """

    coverage: dict[str, Any] = {}
    note: str = ""
    type: str
    data: str
    compression: str | None = None
    conform: Conform = Field(default_factory=Conform)
    source_data: SourceData = Field(default_factory=SourceData)

    @property
    def fields(self) -> list[str]:
        return self.source_data.fields

    @property
    def records(self) -> list[Record]:
        return self.source_data.results

    def to_response(self) -> dict[str, Any]:
        body = self.model_dump(exclude_none=True)
        # exclude_none also strips null record values; restore them verbatim
        body["source_data"] = self.source_data.model_dump()
        return body


class SampleLimits(ValueObject):
    """Server-side bounds on a requested window."""

    default_size: int = Field(default=10, ge=0)
    max_size: int = Field(default=1000, ge=0)

    def clamp(self, size: int | None) -> int:
        if size is None:
            size = self.default_size
        return min(size, self.max_size)
