from geosample.domain.sample.decoder.base import Decoder
from geosample.domain.sample.decoder.dbf import DbfDecoder
from geosample.domain.sample.decoder.delimited import DelimitedTextDecoder
from geosample.domain.sample.decoder.esri import EsriDecoder
from geosample.domain.sample.decoder.geojson import GeoJsonDecoder
from geosample.domain.sample.model.value import SourceFormat
from geosample.domain.sample.port.staging import StagingArea


def build_decoder(
    format: SourceFormat,
    staging: StagingArea,
    delimiter: str | None = None,
) -> Decoder:
    """Create a fresh decoder for one request."""
    match format:
        case SourceFormat.ESRI:
            return EsriDecoder()
        case SourceFormat.GEOJSON:
            return GeoJsonDecoder()
        case SourceFormat.DELIMITED_TEXT:
            return DelimitedTextDecoder(delimiter or ",")
        case SourceFormat.SHAPEFILE:
            return DbfDecoder(staging)
    raise ValueError(f"No decoder for format {format!r}")
