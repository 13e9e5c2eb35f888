"""
Spreadsheet converter service entry point.

FastAPI application that turns the first worksheet of an XLSX workbook
into JSON row objects.
"""

import asyncio
import logging
import os
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query, Request, status

from repodrop.converter.spreadsheet import ConversionResult, convert_spreadsheet, decode_payload
from repodrop.core.config import settings
from repodrop.core.exceptions import ConversionEmptyWorkbook, ConversionInvalidFormat
from repodrop.core.logging import setup_logging
from repodrop.services.converter.middleware import HTTPErrorLoggingMiddleware

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Spreadsheet Converter Service",
    description="Converts XLSX workbooks to JSON row documents",
    version=settings.SERVICE_VERSION,
)
app.add_middleware(HTTPErrorLoggingMiddleware)


def conversion_payload(result: ConversionResult) -> dict[str, Any]:
    return {
        "message": "Spreadsheet converted to JSON.",
        "fileName": result.output_name,
        "data": result.rows,
        "originalSheetName": result.source_sheet_name,
    }


@app.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"service": "converter", "status": "ok", "version": settings.SERVICE_VERSION}


@app.post("/convert")
async def convert(
    request: Request,
    file_name: Optional[str] = Query(None, alias="fileName"),
) -> dict[str, Any]:
    """
    Convert a workbook sent as raw bytes or base64 text.

    Args:
        request: Incoming request; the body carries the workbook
        file_name: Requested output name, extension replaced by ``.json``

    Returns:
        Rows of the first worksheet with the output name and sheet name

    Raises:
        HTTPException: 400 for unreadable or empty workbooks, 500 otherwise
    """
    body = await request.body()
    if not body:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "No file data provided in the request body.", "code": "invalid_format"},
        )

    try:
        result = await asyncio.to_thread(convert_spreadsheet, decode_payload(body), file_name)

    except ConversionEmptyWorkbook as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e), "code": "empty_workbook"},
        )

    except ConversionInvalidFormat as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(e), "code": "invalid_format"},
        )

    except Exception as e:
        logger.error(
            "Unexpected error during conversion",
            extra={"file_name": file_name, "error": str(e)},
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Internal Server Error during conversion.", "code": "internal"},
        )

    return conversion_payload(result)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8081"))
    uvicorn.run(app, host="0.0.0.0", port=port)
