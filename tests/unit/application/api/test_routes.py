"""API tests: the FastAPI app over ASGI, with upstream HTTP mocked."""

import io
import zipfile
from typing import AsyncIterable

import httpx
import pytest
from dishka import Provider, provide

from geosample.application.api.rest.app import create_app
from geosample.application.api.v1.routes.download import _sanitize_header_filename
from geosample.application.di import create_container
from geosample.config import Config, MetadataConfig
from geosample.util.di.scope import Scope

METADATA_URL = "https://results.example.com/state.txt"
ARCHIVE_URL = "https://results.example.com/runs/9/us-ca-berkeley.zip"


def _archive() -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("us-ca-berkeley/out.csv", "LON,LAT,NUMBER\n-122.2,37.8,1\n")
    return buffer.getvalue()


def upstream(request: httpx.Request) -> httpx.Response:
    url = str(request.url).split("?")[0]
    if url == "https://example.com/a.csv":
        return httpx.Response(200, content=b"id,name\n1,Main\n2,Elm\n")
    if url == "https://example.com/missing.csv":
        return httpx.Response(404, text="nope")
    if url == METADATA_URL:
        return httpx.Response(200, content=f"source\tprocessed\nus/ca/berkeley\t{ARCHIVE_URL}\n".encode())
    if url == ARCHIVE_URL:
        return httpx.Response(200, content=_archive())
    raise httpx.ConnectError("Connection refused", request=request)


class MockHttpProvider(Provider):
    @provide(scope=Scope.APP)
    async def get_http_client(self) -> AsyncIterable[httpx.AsyncClient]:
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
            yield client


def _client(config: Config) -> httpx.AsyncClient:
    app = create_app(config, container=create_container(config, MockHttpProvider()))
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


@pytest.fixture
async def client():
    async with _client(Config(metadata=MetadataConfig(url=METADATA_URL))) as client:
        yield client


@pytest.fixture
async def unconfigured_client():
    async with _client(Config(metadata=MetadataConfig(url=""))) as client:
        yield client


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestSampleRoute:
    async def test_sample_csv(self, client):
        response = await client.get("/sample", params={"source": "https://example.com/a.csv", "size": 1})

        assert response.status_code == 200
        assert response.json() == {
            "coverage": {},
            "note": "",
            "type": "http",
            "data": "https://example.com/a.csv",
            "conform": {"type": "csv", "csvsplit": ","},
            "source_data": {"fields": ["id", "name"], "results": [{"id": "1", "name": "Main"}]},
        }

    async def test_missing_source(self, client):
        response = await client.get("/sample")

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "'source' parameter is required"

    async def test_unparseable_source(self, client):
        response = await client.get("/sample", params={"source": "not a url"})

        assert response.status_code == 400
        assert response.text == "Unable to parse URL from 'not a url'"

    async def test_unsupported_type(self, client):
        response = await client.get("/sample", params={"source": "https://example.com/a.xlsx"})

        assert response.status_code == 400
        assert response.text == "Unsupported type"

    async def test_upstream_404(self, client):
        response = await client.get("/sample", params={"source": "https://example.com/missing.csv"})

        assert response.status_code == 400
        assert response.text == "Error retrieving file https://example.com/missing.csv: nope (404)"

    async def test_connection_refused(self, client):
        response = await client.get("/sample", params={"source": "https://down.example.com/a.csv"})

        assert response.status_code == 400
        assert response.text == (
            "Error retrieving file https://down.example.com/a.csv: Connection refused"
        )

    async def test_negative_size(self, client):
        response = await client.get(
            "/sample", params={"source": "https://example.com/a.csv", "size": -1}
        )

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.startswith("Invalid 'size' parameter")


class TestDownloadRoute:
    async def test_streams_latest_csv(self, client):
        response = await client.get("/download/us/ca/berkeley", params={"format": "csv"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == 'attachment; filename="out.csv"'
        assert response.text == "LON,LAT,NUMBER\n-122.2,37.8,1\n"

    async def test_invalid_format(self, client):
        response = await client.get("/download/us/ca/berkeley", params={"format": "xlsx"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == 400

    async def test_unknown_source(self, client):
        response = await client.get("/download/us/ca/oakland")

        assert response.status_code == 400
        assert response.json() == {
            "error": {"code": 400, "message": f"Unable to find us/ca/oakland in {METADATA_URL}"}
        }

    async def test_missing_metadata_url(self, unconfigured_client):
        response = await unconfigured_client.get("/download/us/ca/berkeley")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == 500


class TestSanitizeHeaderFilename:
    def test_normal_filename_unchanged(self):
        assert _sanitize_header_filename("out.csv") == "out.csv"

    def test_strips_crlf_and_quotes(self):
        assert _sanitize_header_filename('a"b\r\nc.csv') == "a_b__c.csv"
