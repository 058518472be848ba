from dishka import Provider, provide

from geosample.config import Config
from geosample.infrastructure.ftp.transport import FtpTransport
from geosample.util.di.scope import Scope


class FtpProvider(Provider):
    @provide(scope=Scope.APP)
    def get_ftp_transport(self, config: Config) -> FtpTransport:
        return FtpTransport(timeout=config.ftp.timeout, chunk_size=config.ftp.chunk_size)
