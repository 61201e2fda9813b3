"""JSON envelope shared by every REST route and remote method."""

from typing import Any


def success(payload: dict[str, Any] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True}
    if payload:
        body.update(payload)
    return body


def failure(error: str, error_type: str | None = None, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": error}
    if error_type:
        body["errorType"] = error_type
    body.update(extra)
    return body
