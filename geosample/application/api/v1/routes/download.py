"""Download of a source's last processed run."""

import re

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from geosample.domain.download.model.value import DownloadFormat
from geosample.domain.download.query.download_latest import (
    DownloadLatest,
    DownloadLatestHandler,
)

router = APIRouter(prefix="/download", tags=["Download"], route_class=DishkaRoute)


@router.get("/{path:path}")
async def download_latest(
    path: str,
    handler: FromDishka[DownloadLatestHandler],
    format: str = DownloadFormat.CSV.value,
) -> StreamingResponse:
    result = await handler.run(DownloadLatest(path=path, format=format))
    safe_name = _sanitize_header_filename(result.filename)
    return StreamingResponse(
        result.stream,
        media_type=result.content_type,
        headers={"Content-Disposition": f'attachment; filename="{safe_name}"'},
    )


def _sanitize_header_filename(filename: str) -> str:
    """Strip characters that could break Content-Disposition headers."""
    return re.sub(r'[\r\n"]', "_", filename)
