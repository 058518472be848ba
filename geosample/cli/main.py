"""Main CLI application using Cyclopts."""

import asyncio
import sys

import cyclopts

from geosample.application.di import create_container
from geosample.cli.console import get_console
from geosample.config import Config, configure_logging
from geosample.domain.sample.model.value import SampleResult
from geosample.domain.sample.query.sample_source import SampleSource, SampleSourceHandler
from geosample.domain.shared.error import GeoSampleError
from geosample.util.di.scope import Scope

app = cyclopts.App(
    name="geosample",
    help="Structural previews of remote geographic datasets",
)


@app.command
def serve(
    host: str | None = None,
    port: int | None = None,
    reload: bool = False,
) -> None:
    """Run the HTTP API with uvicorn.

    Args:
        host: Host to bind to. Defaults to GEOSAMPLE_SERVER__HOST.
        port: Port to listen on. Defaults to GEOSAMPLE_SERVER__PORT.
        reload: Restart on code changes (development only).
    """
    import uvicorn

    config = Config()  # type: ignore[call-arg]
    uvicorn.run(
        "geosample.application.api.rest.app:create_app",
        factory=True,
        host=host or config.server.host,
        port=port or config.server.port,
        reload=reload,
        log_config=None,  # configure_logging owns the handlers
    )


@app.command
def sample(
    source: str,
    size: int | None = None,
    offset: int = 0,
    table: bool = False,
) -> None:
    """Print the field names and first records of SOURCE.

    Args:
        source: http(s) or ftp URL of the dataset.
        size: Number of records to return. Defaults to GEOSAMPLE_SAMPLE__DEFAULT_SIZE.
        offset: Number of records to skip first.
        table: Render records as a table instead of JSON.
    """
    console = get_console()
    config = Config()  # type: ignore[call-arg]
    configure_logging(config.logging)

    try:
        result = asyncio.run(_sample(config, SampleSource(source=source, size=size, offset=offset)))
    except GeoSampleError as e:
        console.error(e.message, hint=e.code)
        sys.exit(1)

    if table:
        console.records(result.fields, result.records, title=f"{result.type}: {result.data}")
    else:
        console.json(result.to_response())


async def _sample(config: Config, query: SampleSource) -> SampleResult:
    container = create_container(config)
    try:
        async with container(scope=Scope.UOW) as uow:
            handler = await uow.get(SampleSourceHandler)
            return await handler.run(query)
    finally:
        await container.close()


if __name__ == "__main__":
    app()
