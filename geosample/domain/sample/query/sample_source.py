import logfire
from pydantic import Field

from geosample.domain.sample.model.value import SampleLimits, SampleRequest, SampleResult
from geosample.domain.sample.service.classifier import classify
from geosample.domain.sample.service.sample import SampleService
from geosample.domain.shared.error import InvalidSourceError
from geosample.domain.shared.query import Query, QueryHandler


class SampleSource(Query):
    source: str | None = None
    size: int | None = Field(default=None, ge=0)
    offset: int = Field(default=0, ge=0)


class SampleSourceHandler(QueryHandler[SampleSource, SampleResult]):
    sample_service: SampleService
    limits: SampleLimits

    async def run(self, cmd: SampleSource) -> SampleResult:
        if not cmd.source:
            raise InvalidSourceError("'source' parameter is required")

        descriptor = classify(cmd.source)
        request = SampleRequest(
            descriptor=descriptor,
            size=self.limits.clamp(cmd.size),
            offset=cmd.offset,
        )
        with logfire.span(
            "SampleSource",
            source=descriptor.uri,
            format=descriptor.format.value,
            size=request.size,
            offset=request.offset,
        ):
            result = await self.sample_service.sample(request)
            logfire.info(
                "Sampled source",
                source=descriptor.uri,
                fields=len(result.fields),
                records=len(result.records),
            )
            return result
