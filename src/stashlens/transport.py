from __future__ import annotations

import logging
import math
import time
from typing import Any

import httpx

from .errors import ConfigError, RequestTimeoutError, TransportError
from .models import BasicAuth, Credentials

logger = logging.getLogger(__name__)

USER_AGENT = "stashlens"


class Transport:
    """Issues HTTP requests against a fixed base URL.

    Non-2xx statuses are returned as-is; judging them is the decoder's job.
    Redirects are followed by httpx using its default hop limit.

    ``timeout`` bounds the whole exchange, body included. httpx caps each
    phase (connect, write, every single read) by it, and the body is read
    in chunks against a monotonic deadline so a server trickling bytes
    cannot stretch the call past it.
    """

    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        timeout: float,
        client_version: str,
    ) -> None:
        if not math.isfinite(timeout) or timeout <= 0:
            raise ConfigError(f"Invalid timeout {timeout!r}: must be a positive, finite number.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        headers = {
            "User-Agent": f"{USER_AGENT}/{client_version}",
            "Accept": "application/json",
        }
        auth = None
        if isinstance(credentials, BasicAuth):
            auth = httpx.BasicAuth(credentials.login, credentials.password or "")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            auth=auth,
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
        )

    def close(self) -> None:
        self._client.close()

    def execute(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        deadline = time.monotonic() + self.timeout
        try:
            with self._client.stream(
                method, path, params=params, json=json, timeout=httpx.Timeout(self.timeout)
            ) as streamed:
                chunks = []
                for chunk in streamed.iter_raw():
                    chunks.append(chunk)
                    if time.monotonic() > deadline:
                        raise RequestTimeoutError(
                            f"{method} {path} timed out after {self.timeout}s"
                        )
                if time.monotonic() > deadline:
                    raise RequestTimeoutError(f"{method} {path} timed out after {self.timeout}s")
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(f"{method} {path} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        # raw bytes: the rebuilt response decodes Content-Encoding once
        response = httpx.Response(
            streamed.status_code,
            headers=streamed.headers,
            content=b"".join(chunks),
            request=streamed.request,
        )
        logger.debug("%s %s -> %s", method, response.request.url, response.status_code)
        return response
