"""Unit tests for classify_error and ResponseGuard."""

import pytest

from geosample.domain.sample.service.classifier import classify
from geosample.domain.sample.service.errors import ResponseGuard, classify_error
from geosample.domain.shared.error import (
    AuthenticationError,
    InternalError,
    MalformedArchiveError,
    MalformedPayloadError,
    RemoteApplicationError,
    TransportError,
    UndeterminedFormatError,
    UnsupportedTypeError,
    UpstreamError,
)

ESRI = classify("https://maps.example.com/arcgis/rest/services/P/MapServer/0")
CSV = classify("https://example.com/data.csv")
ZIP = classify("ftp://example.com/data.zip")


class TestClassifyError:
    def test_esri_remote_error(self):
        error = classify_error(RemoteApplicationError("Invalid URL", remote_code=400), ESRI)

        assert isinstance(error, RemoteApplicationError)
        assert error.message == f"Error connecting to Arcgis server {ESRI.uri}: Invalid URL (400)"

    def test_esri_unparseable_response(self):
        error = classify_error(MalformedPayloadError("Could not parse as JSON", decoder="esri"), ESRI)

        assert error.message == f"Error connecting to Arcgis server {ESRI.uri}: Could not parse as JSON"

    def test_esri_upstream_status(self):
        error = classify_error(UpstreamError(404, "page not found"), ESRI)

        assert error.message == f"Error connecting to Arcgis server {ESRI.uri}: page not found (404)"

    def test_file_upstream_status_without_body(self):
        error = classify_error(UpstreamError(500), CSV)

        assert error.message == f"Error retrieving file {CSV.uri}: (500)"

    def test_transport_error(self):
        error = classify_error(TransportError("Connection refused"), CSV)

        assert error.message == f"Error retrieving file {CSV.uri}: Connection refused"
        assert error.code == "TransportError"

    def test_authentication_error(self):
        error = classify_error(AuthenticationError("Authentication error"), ZIP)

        assert error.message == f"Error retrieving file {ZIP.uri}: Authentication error"

    def test_csv_parse_error(self):
        error = classify_error(
            MalformedPayloadError("Number of columns on line 2 does not match header", decoder="csv"),
            CSV,
        )

        assert error.message == (
            f"Error parsing file from {CSV.uri} as CSV: "
            "Number of columns on line 2 does not match header"
        )

    def test_dbf_parse_error(self):
        error = classify_error(MalformedPayloadError("Could not parse as shapefile", decoder="dbf"), ZIP)

        assert error.message == f"Error parsing file from {ZIP.uri}: Could not parse as shapefile"

    def test_geojson_parse_error(self):
        error = classify_error(MalformedPayloadError("Could not parse as JSON", decoder="geojson"), ZIP)

        assert error.message == f"Error retrieving file {ZIP.uri}: Could not parse as JSON"

    def test_corrupt_archive(self):
        error = classify_error(MalformedArchiveError("File is not a zip file"), ZIP)

        assert error.message == f"Error retrieving file {ZIP.uri}: File is not a zip file"

    @pytest.mark.parametrize(
        "exc",
        [
            UndeterminedFormatError("Could not determine type from zip file"),
            UnsupportedTypeError("Unsupported type"),
        ],
    )
    def test_caller_facing_errors_are_verbatim(self, exc):
        message = exc.message

        assert classify_error(exc, ZIP).message == message

    def test_prefix_is_applied_once(self):
        error = TransportError("timed out")

        classify_error(error, CSV)
        classify_error(error, CSV)

        assert error.message == f"Error retrieving file {CSV.uri}: timed out"

    def test_unknown_exception_is_internal(self):
        cause = KeyError("boom")

        error = classify_error(cause, CSV)

        assert isinstance(error, InternalError)
        assert error.__cause__ is cause


class TestResponseGuard:
    def test_first_error_wins(self):
        guard: ResponseGuard[str] = ResponseGuard(CSV)

        guard.reject(MalformedPayloadError("bad row", decoder="csv"))
        guard.reject(TransportError("QUIT failed"))

        with pytest.raises(MalformedPayloadError, match="bad row"):
            guard.outcome()

    def test_error_after_result_is_suppressed(self):
        guard: ResponseGuard[str] = ResponseGuard(CSV)

        guard.resolve("done")
        guard.reject(TransportError("socket closed"))

        assert guard.outcome() == "done"

    def test_unsettled_outcome_is_internal_error(self):
        with pytest.raises(InternalError):
            ResponseGuard(CSV).outcome()
