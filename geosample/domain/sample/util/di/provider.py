from dishka import Provider, provide

from geosample.config import Config
from geosample.domain.sample.model.value import SampleLimits, Transport
from geosample.domain.sample.port.archive import ArchiveOpener
from geosample.domain.sample.port.staging import StagingArea
from geosample.domain.sample.query.sample_source import SampleSourceHandler
from geosample.domain.sample.service.sample import SampleService
from geosample.infrastructure.ftp.transport import FtpTransport
from geosample.infrastructure.http.transport import HttpTransport
from geosample.util.di.scope import Scope


class SampleProvider(Provider):
    @provide(scope=Scope.APP)
    def get_sample_limits(self, config: Config) -> SampleLimits:
        return SampleLimits(
            default_size=config.sample.default_size,
            max_size=config.sample.max_size,
        )

    # Services
    @provide(scope=Scope.UOW)
    def get_sample_service(
        self,
        http: HttpTransport,
        ftp: FtpTransport,
        staging: StagingArea,
        archives: ArchiveOpener,
    ) -> SampleService:
        return SampleService(
            transports={Transport.HTTP: http, Transport.FTP: ftp},
            staging=staging,
            archives=archives,
        )

    # Query Handlers
    sample_source_handler = provide(SampleSourceHandler, scope=Scope.UOW)
