# Overview: Shared response envelope for list and write endpoints.

from __future__ import annotations

from typing import Any


def response_payload(
    success: bool,
    message: str,
    *,
    data: Any = None,
    count: int | None = None,
    calculation: dict | None = None,
) -> dict:
    """{success, message, data, count, calculation}; keys left as None are still emitted for list responses."""
    payload: dict[str, Any] = {"success": success, "message": message}
    if data is not None or count is not None:
        payload["data"] = data
        payload["count"] = count
        payload["calculation"] = calculation
    return payload


def error_payload(message: str, details: dict | None = None) -> dict:
    payload: dict[str, Any] = {"success": False, "message": message}
    if details:
        payload["details"] = details
    return payload
