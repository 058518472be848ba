from typing import Iterable

from dishka import Provider, provide

from geosample.config import Config
from geosample.domain.sample.port.archive import ArchiveOpener
from geosample.domain.sample.port.staging import StagingArea
from geosample.infrastructure.archive.zip import ZipArchiveOpener
from geosample.infrastructure.local.temp import TempScope
from geosample.util.di.scope import Scope


class LocalProvider(Provider):
    """Per-request scratch space and the archive reader built on it."""

    @provide(scope=Scope.UOW, provides=StagingArea)
    def get_temp_scope(self) -> Iterable[TempScope]:
        scope = TempScope()
        yield scope
        scope.cleanup()

    @provide(scope=Scope.UOW, provides=ArchiveOpener)
    def get_archive_opener(self, staging: StagingArea, config: Config) -> ZipArchiveOpener:
        return ZipArchiveOpener(staging=staging, chunk_size=config.http.chunk_size)
