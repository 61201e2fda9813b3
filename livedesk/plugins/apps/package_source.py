"""Obtaining App package bytes from a URL or from a multipart upload."""

import json
from typing import Any

import httpx
from fastapi import Request
from starlette.datastructures import UploadFile
from structlog import get_logger

from livedesk.core.tracing import get_tracer
from livedesk.utils.exceptions import (
    BadRequestError,
    InvalidFieldError,
    LengthRequiredError,
    PackageFetchError,
    PackageTooLargeError,
)

logger = get_logger(__name__)
tracer = get_tracer(__name__)

PACKAGE_FIELD = "app"
ZIP_CONTENT_TYPE = "application/zip"
INVALID_URL_MESSAGE = 'Invalid url. It doesn\'t exist or is not "application/zip".'
CHUNK_SIZE = 64 * 1024
# Multipart framing (boundaries, part headers) on top of the file itself.
MULTIPART_OVERHEAD_BYTES = 64 * 1024


async def read_body_params(request: Request) -> dict[str, Any]:
    """JSON body as a dict; empty for multipart or bodiless requests."""
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("application/json"):
        return {}
    body = await request.body()
    if not body:
        return {}
    try:
        params = json.loads(body)
    except json.JSONDecodeError as e:
        raise BadRequestError(f"The request body is not valid JSON: {e.msg}") from e
    if not isinstance(params, dict):
        raise BadRequestError("The request body must be a JSON object.")
    return params


async def fetch_package(url: str, *, timeout: float, max_bytes: int) -> bytes:
    """
    Downloads a package. Anything but a 200 ``application/zip`` response is a
    client error; transport failures raise PackageFetchError.
    """
    log = logger.bind(url=url)
    log.info("Fetching App package from url")
    with tracer.start_as_current_span("apps.fetch_package") as span:
        span.set_attribute("http.url", url)
        try:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                async with client.stream("GET", url) as response:
                    content_type = response.headers.get("content-type")
                    if response.status_code != 200 or content_type != ZIP_CONTENT_TYPE:
                        log.warning(
                            "Rejected App package url",
                            status_code=response.status_code,
                            content_type=content_type,
                        )
                        raise BadRequestError(INVALID_URL_MESSAGE)

                    chunks = bytearray()
                    async for chunk in response.aiter_bytes(CHUNK_SIZE):
                        chunks.extend(chunk)
                        if len(chunks) > max_bytes:
                            raise PackageTooLargeError(max_bytes)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.error("Failed to fetch App package", error=str(e))
            raise PackageFetchError(
                f"Failed to fetch the App package from the url: {e}"
            ) from e

    log.info("Fetched App package", size_bytes=len(chunks))
    return bytes(chunks)


async def _read_bounded(upload: UploadFile, max_bytes: int) -> bytes:
    buffer = bytearray()
    while chunk := await upload.read(CHUNK_SIZE):
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise PackageTooLargeError(max_bytes)
    return bytes(buffer)


async def read_package_upload(
    request: Request, *, max_bytes: int, field: str = PACKAGE_FIELD
) -> bytes | None:
    """
    Buffers the file uploaded under ``field`` completely in memory. Any file
    part under another name is rejected before anything is read. Returns
    None when the request carries no such file.
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        return None

    # Starlette spools form files to disk while parsing, so the size has to be
    # known and bounded before the form is read.
    content_length = request.headers.get("content-length", "")
    if not content_length.isdigit():
        raise LengthRequiredError()
    if int(content_length) > max_bytes + MULTIPART_OVERHEAD_BYTES:
        raise PackageTooLargeError(max_bytes)

    async with request.form() as form:
        uploads = [
            (name, value)
            for name, value in form.multi_items()
            if isinstance(value, UploadFile)
        ]
        for name, _ in uploads:
            if name != field:
                logger.warning("Rejected upload field", expected=field, received=name)
                raise InvalidFieldError(field, name)

        if not uploads:
            return None
        data = await _read_bounded(uploads[0][1], max_bytes)

    logger.info("Buffered uploaded App package", size_bytes=len(data))
    return data


async def resolve_package(
    request: Request, url: str | None, *, timeout: float, max_bytes: int
) -> bytes | None:
    if url:
        if not isinstance(url, str):
            raise BadRequestError('The "url" field must be a string.')
        return await fetch_package(url, timeout=timeout, max_bytes=max_bytes)
    return await read_package_upload(request, max_bytes=max_bytes)
