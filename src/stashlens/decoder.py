from __future__ import annotations

import logging
from collections.abc import Collection
from typing import Any

import httpx

from .errors import ClientError, ReportExtractionError, UnexpectedContentTypeError

logger = logging.getLogger(__name__)

_JSON_CONTENT_TYPE = "application/json"


def is_json(response: httpx.Response) -> bool:
    content_type = response.headers.get("Content-Type", "")
    return content_type.split(";", 1)[0].strip().lower() == _JSON_CONTENT_TYPE


def format_server_errors(response: httpx.Response) -> str:
    """Render a ``{"errors": [...]}`` payload, or ``""`` if there is none."""
    if not is_json(response):
        return ""
    try:
        payload = response.json()
    except ValueError:
        return ""
    if not isinstance(payload, dict) or not isinstance(payload.get("errors"), list):
        return ""

    parts = []
    for error in payload["errors"]:
        if not isinstance(error, dict):
            continue
        message = error.get("message") or ""
        exception_name = error.get("exceptionName") or ""
        parts.append(f"{message} ({exception_name})" if exception_name else message)
    return "; ".join(p for p in parts if p)


def check_status(response: httpx.Response, expected: Collection[int], action: str) -> None:
    if response.status_code in expected:
        return
    message = f"{action} failed: HTTP {response.status_code} (expected {_describe(expected)})"
    details = format_server_errors(response)
    if details:
        message = f"{message}: {details}"
    logger.debug(message)
    raise ClientError(message, status_code=response.status_code)


def decode_json(response: httpx.Response, expected: Collection[int], action: str) -> Any:
    """Return the parsed JSON body of an accepted response.

    204 responses decode to ``None`` without touching the body.
    """
    check_status(response, expected, action)
    if response.status_code == 204:
        return None
    if not is_json(response):
        content_type = response.headers.get("Content-Type", "<none>")
        raise UnexpectedContentTypeError(
            f"{action}: HTTP {response.status_code} with unexpected content type {content_type}",
            status_code=response.status_code,
        )
    try:
        return response.json()
    except ValueError as exc:
        raise ReportExtractionError(
            f"{action}: HTTP {response.status_code} body is not valid JSON: {exc}",
            status_code=response.status_code,
        ) from exc


def _describe(expected: Collection[int]) -> str:
    return "/".join(str(code) for code in sorted(expected))
