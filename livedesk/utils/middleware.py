import time
import uuid

import structlog
import structlog.contextvars
from fastapi import Request

logger = structlog.get_logger(__name__)

EXCLUDED_ENDPOINTS = ["/health", "/metrics", "/docs", "/redoc", "/openapi.json"]


async def structured_logging_middleware(request: Request, call_next):
    """
    Binds per-request context (correlation id, caller, route) for every log
    line emitted while the request is handled and logs its completion.
    """
    structlog.contextvars.clear_contextvars()
    start_time = time.perf_counter()

    correlation_id = request.headers.get("x-correlation-id") or str(uuid.uuid4())
    request.state.correlation_id = correlation_id
    structlog.contextvars.bind_contextvars(
        correlation_id=correlation_id,
        user_id=request.headers.get("x-user-id"),
        remote_addr=request.client.host if request.client else None,
        request_path=request.url.path,
        request_method=request.method,
        user_agent=request.headers.get("user-agent"),
    )

    try:
        response = await call_next(request)
        process_time = time.perf_counter() - start_time
        status_code = response.status_code

        if request.url.path not in EXCLUDED_ENDPOINTS:
            log_event = logger.info if 200 <= status_code < 400 else logger.warning
            log_event(
                "Request completed",
                status_code=status_code,
                processing_time_ms=round(process_time * 1000, 2),
            )

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}s"
        return response

    except Exception:
        logger.exception(
            "Request failed with unhandled exception",
            processing_time_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        raise
    finally:
        structlog.contextvars.clear_contextvars()
