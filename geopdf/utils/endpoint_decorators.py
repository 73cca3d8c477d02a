"""
Decorators for FastAPI endpoint error handling and resource management.

Uploaded PDFs are validated, written to a temporary file for the duration of
the request and removed afterwards. Processing errors map onto HTTP statuses.
"""

import os
import tempfile
import logging
import asyncio
from contextlib import contextmanager
from functools import wraps
from typing import Callable, Iterator, Optional
from fastapi import UploadFile, HTTPException, Request

from geopdf.utils.validation import (
    validate_file_content,
    PdfValidationError,
    VALIDATION_CONSTANTS
)

logger = logging.getLogger(__name__)

# Checked in order; the first matching class decides the status
ERROR_STATUS = (
    (PdfValidationError, 400, "PDF validation failed"),
    (IndexError, 400, "Invalid page"),
    (ValueError, 400, "Invalid request"),
)


async def _read_upload(file: Optional[UploadFile]) -> bytes:
    if not file:
        raise HTTPException(status_code=400, detail="File parameter is required")
    if not file.filename or not file.filename.lower().endswith('.pdf'):
        raise HTTPException(status_code=400, detail="Only PDF files are supported")

    try:
        content = await file.read()
    except OSError as e:
        logger.error(f"Error reading uploaded file: {e}")
        raise HTTPException(status_code=400, detail=f"Error reading uploaded file: {str(e)}")

    ok, error = validate_file_content(content, max_size_mb=VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB'])
    if not ok:
        logger.warning(f"File content validation failed for {file.filename}: {error}")
        raise HTTPException(status_code=400, detail=error)
    return content


@contextmanager
def _temporary_pdf(content: bytes) -> Iterator[str]:
    """Path of a closed temporary copy of `content`, deleted on exit."""
    with tempfile.NamedTemporaryFile(delete=False, suffix='.pdf') as temp_file:
        temp_file.write(content)
    try:
        yield temp_file.name
    finally:
        try:
            os.unlink(temp_file.name)
            logger.debug(f"Cleaned up temporary file: {temp_file.name}")
        except OSError as e:
            logger.warning(f"Failed to clean up temporary file {temp_file.name}: {e}")


def _http_error(error: Exception, filename: str) -> HTTPException:
    for error_type, status, label in ERROR_STATUS:
        if isinstance(error, error_type):
            logger.warning(f"{label} for {filename}: {error}")
            return HTTPException(status_code=status, detail=f"{label}: {str(error)}")
    logger.exception(f"Unexpected error processing {filename}: {error}")
    return HTTPException(status_code=500, detail=f"Internal server error during PDF processing: {str(error)}")


def handle_pdf_processing(func: Callable) -> Callable:
    """
    Wrap a PDF upload endpoint.

    The decorated function must accept `request: Request` and `file: UploadFile`
    as keyword arguments. The temporary file path is exposed as
    `request.state.temp_file_path` and the effective timeout as
    `request.state.timeout_seconds`.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        request: Request = kwargs.get('request')
        if not request:
            raise HTTPException(
                status_code=500,
                detail="Endpoint decorated with handle_pdf_processing must accept 'request: Request'"
            )

        file: UploadFile = kwargs.get('file')
        content = await _read_upload(file)
        timeout_seconds = kwargs.get('processing_timeout') or VALIDATION_CONSTANTS['MAX_PROCESSING_TIME_SECONDS']

        with _temporary_pdf(content) as temp_path:
            request.state.temp_file_path = temp_path
            request.state.timeout_seconds = timeout_seconds
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=timeout_seconds)
            except asyncio.TimeoutError:
                logger.error(f"Processing timed out after {timeout_seconds}s for {file.filename}")
                raise HTTPException(
                    status_code=408,
                    detail=f"PDF processing timed out after {timeout_seconds} seconds."
                )
            except HTTPException:
                raise
            except Exception as e:
                raise _http_error(e, file.filename)

    return wrapper
