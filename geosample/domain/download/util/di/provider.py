from dishka import Provider, provide

from geosample.config import Config
from geosample.domain.download.model.value import MetadataLocation
from geosample.domain.download.query.download_latest import DownloadLatestHandler
from geosample.domain.download.service.download import DownloadService
from geosample.domain.download.service.metadata import MetadataIndex
from geosample.domain.sample.port.archive import ArchiveOpener
from geosample.infrastructure.http.transport import HttpTransport
from geosample.util.di.scope import Scope


class DownloadProvider(Provider):
    @provide(scope=Scope.APP)
    def get_metadata_location(self, config: Config) -> MetadataLocation:
        return MetadataLocation(url=config.metadata.url)

    # Services
    @provide(scope=Scope.UOW)
    def get_metadata_index(self, http: HttpTransport, location: MetadataLocation) -> MetadataIndex:
        return MetadataIndex(transport=http, location=location)

    @provide(scope=Scope.UOW)
    def get_download_service(self, http: HttpTransport, archives: ArchiveOpener) -> DownloadService:
        return DownloadService(transport=http, archives=archives)

    # Query Handlers
    download_latest_handler = provide(DownloadLatestHandler, scope=Scope.UOW)
