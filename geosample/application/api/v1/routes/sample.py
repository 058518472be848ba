"""Source sampling route."""

from typing import Any

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter, Depends, Query

from geosample.application.api.v1.errors import plain_text_errors
from geosample.domain.sample.query.sample_source import SampleSource, SampleSourceHandler

router = APIRouter(
    tags=["Sample"],
    route_class=DishkaRoute,
    dependencies=[Depends(plain_text_errors)],
)


@router.get("/sample")
async def sample_source(
    handler: FromDishka[SampleSourceHandler],
    source: str | None = None,
    size: int | None = Query(default=None, ge=0),
    offset: int = Query(default=0, ge=0),
) -> dict[str, Any]:
    """Field names and the first records of a remote dataset."""
    result = await handler.run(SampleSource(source=source, size=size, offset=offset))
    return result.to_response()
