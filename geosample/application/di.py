from dishka import AsyncContainer, Provider, from_context, make_async_container
from starlette.requests import Request

from geosample.config import Config
from geosample.domain.download.util.di import DownloadProvider
from geosample.domain.sample.util.di import SampleProvider
from geosample.infrastructure.ftp.di import FtpProvider
from geosample.infrastructure.http.di import HttpProvider
from geosample.infrastructure.local.di import LocalProvider
from geosample.util.di.scope import Scope


class ContextProvider(Provider):
    """Values handed to the container rather than built by it."""

    config = from_context(provides=Config, scope=Scope.APP)
    request = from_context(provides=Request, scope=Scope.UOW)


def create_container(config: Config | None = None, *overrides: Provider) -> AsyncContainer:
    """Build the APP container; `overrides` replace matching default providers."""
    if config is None:
        # Pydantic Settings populates from env vars at runtime
        config = Config()  # type: ignore[call-arg]

    return make_async_container(
        ContextProvider(),
        HttpProvider(),
        FtpProvider(),
        LocalProvider(),
        SampleProvider(),
        DownloadProvider(),
        *overrides,
        context={Config: config},
        scopes=Scope,  # type: ignore[arg-type]  # Custom scope class
    )
