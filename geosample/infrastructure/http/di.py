"""DI provider for HTTP infrastructure."""

from typing import AsyncIterable

import httpx
from dishka import Provider, provide

from geosample.config import Config
from geosample.infrastructure.http.transport import HttpTransport
from geosample.util.di.scope import Scope


class HttpProvider(Provider):
    """Shared connection pool and the HTTP source transport."""

    @provide(scope=Scope.APP)
    async def get_http_client(self, config: Config) -> AsyncIterable[httpx.AsyncClient]:
        timeout = httpx.Timeout(
            config.http.read_timeout,
            connect=config.http.connect_timeout,
        )
        async with httpx.AsyncClient(
            timeout=timeout,
            verify=config.http.verify_tls,
            headers={"User-Agent": config.http.user_agent},
        ) as client:
            yield client

    @provide(scope=Scope.APP)
    def get_http_transport(self, client: httpx.AsyncClient, config: Config) -> HttpTransport:
        return HttpTransport(client=client, chunk_size=config.http.chunk_size)
