"""Tests for the converter clients."""

import base64

import httpx
import pytest

from repodrop.converter.clients import HTTPConverterClient, LocalConverterClient, get_converter
from repodrop.core.config import settings
from repodrop.core.exceptions import ConversionEmptyWorkbook, ConversionError, ConversionInvalidFormat


def service(status_code, json_body, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=json_body)

    return HTTPConverterClient("http://converter.test/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_local_converter(people_xlsx):
    result = await LocalConverterClient().convert(people_xlsx, "out.xlsx")

    assert result.output_name == "out.json"
    assert result.rows[0]["name"] == "Ada"


@pytest.mark.asyncio
async def test_http_converter_success():
    """The workbook is posted base64 encoded with the requested name."""
    seen = []
    client = service(
        200,
        {
            "message": "Spreadsheet converted to JSON.",
            "fileName": "data/out.json",
            "data": [{"a": 1}],
            "originalSheetName": "Sheet1",
        },
        seen,
    )

    result = await client.convert(b"PK\x03\x04raw", "data/out.xlsx")

    assert result.rows == [{"a": 1}]
    assert result.output_name == "data/out.json"
    assert result.source_sheet_name == "Sheet1"
    request = seen[0]
    assert request.url.path == "/convert"
    assert request.url.params["fileName"] == "data/out.xlsx"
    assert base64.b64decode(request.content) == b"PK\x03\x04raw"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code,detail,expected",
    [
        (400, {"error": "XLSX file contains no sheets.", "code": "empty_workbook"}, ConversionEmptyWorkbook),
        (400, {"error": "Invalid or corrupted XLSX file data", "code": "invalid_format"}, ConversionInvalidFormat),
        (500, {"error": "Internal Server Error during conversion.", "code": "internal"}, ConversionError),
    ],
)
async def test_http_converter_error_mapping(status_code, detail, expected):
    client = service(status_code, {"detail": detail})

    with pytest.raises(expected) as exc_info:
        await client.convert(b"x", "a.xlsx")

    assert detail["error"] in str(exc_info.value)


@pytest.mark.asyncio
async def test_http_converter_unreachable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = HTTPConverterClient("http://converter.test", transport=httpx.MockTransport(handler))

    with pytest.raises(ConversionError) as exc_info:
        await client.convert(b"x", None)

    assert str(exc_info.value).startswith("Conversion failed:")


def test_get_converter_defaults_to_local(monkeypatch):
    monkeypatch.setattr(settings, "CONVERTER_SERVICE_URL", "")

    assert isinstance(get_converter(), LocalConverterClient)


def test_get_converter_uses_service_when_configured(monkeypatch):
    monkeypatch.setattr(settings, "CONVERTER_SERVICE_URL", "http://converter.internal:8081")

    converter = get_converter()

    assert isinstance(converter, HTTPConverterClient)
    assert converter.base_url == "http://converter.internal:8081"
