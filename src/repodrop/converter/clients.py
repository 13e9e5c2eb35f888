"""Clients for the spreadsheet converter boundary."""

import asyncio
import base64
import logging
from typing import Any, Optional, Protocol

import httpx

from repodrop.converter.spreadsheet import ConversionResult, convert_spreadsheet
from repodrop.core.config import settings
from repodrop.core.exceptions import (
    ConversionEmptyWorkbook,
    ConversionError,
    ConversionInvalidFormat,
)

logger = logging.getLogger(__name__)


class SpreadsheetConverter(Protocol):
    async def convert(self, content: bytes, output_name: Optional[str]) -> ConversionResult: ...


class LocalConverterClient:
    """Runs the conversion in-process on a worker thread."""

    async def convert(self, content: bytes, output_name: Optional[str]) -> ConversionResult:
        return await asyncio.to_thread(convert_spreadsheet, content, output_name)


class HTTPConverterClient:
    """Calls the converter service over HTTP."""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.CONVERTER_TIMEOUT_SECONDS
        self._transport = transport

    async def convert(self, content: bytes, output_name: Optional[str]) -> ConversionResult:
        """
        Post base64 workbook content to the converter service.

        Args:
            content: Raw workbook bytes
            output_name: Requested output file name

        Returns:
            ConversionResult built from the service response

        Raises:
            ConversionInvalidFormat: Service rejected the payload as unreadable
            ConversionEmptyWorkbook: Service found no worksheets
            ConversionError: Any other failure talking to the service
        """
        params = {"fileName": output_name} if output_name else None
        logger.info(
            "Calling converter service",
            extra={"converter_url": self.base_url, "output_name": output_name, "size_bytes": len(content)},
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/convert",
                    params=params,
                    content=base64.b64encode(content),
                    headers={"Content-Type": "text/plain"},
                )
        except httpx.HTTPError as e:
            logger.warning(
                "Converter service unreachable",
                extra={"converter_url": self.base_url, "error": str(e)},
            )
            raise ConversionError(f"Conversion failed: {e}") from e

        if response.status_code != 200:
            raise self._error_for(response)

        body = response.json()
        return ConversionResult(
            rows=body.get("data") or [],
            output_name=body["fileName"],
            source_sheet_name=body.get("originalSheetName", ""),
        )

    @staticmethod
    def _error_for(response: httpx.Response) -> ConversionError:
        detail: Any = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("detail")

        code = None
        message = f"Error {response.status_code}: {response.reason_phrase}"
        if isinstance(detail, dict):
            code = detail.get("code")
            message = detail.get("error") or message
        elif isinstance(detail, str):
            message = detail

        logger.warning(
            "Converter service rejected request",
            extra={"status_code": response.status_code, "code": code, "error": message},
        )

        if response.status_code == 400 and code == "empty_workbook":
            return ConversionEmptyWorkbook(message)
        if response.status_code == 400:
            return ConversionInvalidFormat(message)
        return ConversionError(f"Conversion failed: {message}")


def get_converter() -> SpreadsheetConverter:
    """Use the converter service when configured, otherwise convert in-process."""
    if settings.converter_enabled_remote:
        return HTTPConverterClient(settings.CONVERTER_SERVICE_URL)
    return LocalConverterClient()
