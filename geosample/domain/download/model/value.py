from enum import StrEnum

from geosample.domain.shared.model.value import ValueObject


class DownloadFormat(StrEnum):
    CSV = "csv"
    GEOJSON = "geojson"

    @property
    def suffix(self) -> str:
        return f".{self.value}"

    @property
    def content_type(self) -> str:
        if self is DownloadFormat.GEOJSON:
            return "application/geo+json"
        return "text/csv"


class MetadataRow(ValueObject):
    """One processed run listed in the metadata index."""

    source: str
    processed: str


class MetadataLocation(ValueObject):
    """Where the metadata index lives. An empty URL means unconfigured."""

    url: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.url.strip())
