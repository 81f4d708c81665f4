from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from . import __version__
from .client import DEFAULT_TIMEOUT, StashClient
from .errors import ConfigError
from .models import BasicAuth, Credentials, NoAuth


@dataclass(frozen=True)
class ClientSettings:
    base_url: str
    credentials: Credentials = field(default_factory=NoAuth)
    timeout: float = DEFAULT_TIMEOUT
    client_version: str = __version__

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientSettings:
        """Read STASH_URL, STASH_LOGIN, STASH_PASSWORD, STASH_USER_SLUG and STASH_TIMEOUT."""
        env = os.environ if environ is None else environ
        return cls.build(
            base_url=env.get("STASH_URL"),
            login=env.get("STASH_LOGIN"),
            password=env.get("STASH_PASSWORD"),
            user_slug=env.get("STASH_USER_SLUG"),
            timeout=env.get("STASH_TIMEOUT"),
        )

    @classmethod
    def build(
        cls,
        base_url: str | None,
        login: str | None = None,
        password: str | None = None,
        user_slug: str | None = None,
        timeout: float | str | None = None,
    ) -> ClientSettings:
        if not base_url:
            raise ConfigError("STASH_URL is not set.")

        if timeout is None or timeout == "":
            seconds = DEFAULT_TIMEOUT
        else:
            try:
                seconds = float(timeout)
            except ValueError:
                raise ConfigError(f"Invalid timeout {timeout!r}: expected a number of seconds.") from None
            if not math.isfinite(seconds) or seconds <= 0:
                raise ConfigError(f"Invalid timeout {timeout!r}: must be a positive, finite number.")

        credentials: Credentials
        if login:
            credentials = BasicAuth(login, password or "", user_slug or None)
        else:
            credentials = NoAuth()
        return cls(base_url=base_url, credentials=credentials, timeout=seconds)

    def create_client(self) -> StashClient:
        return StashClient(self.base_url, self.credentials, self.timeout, self.client_version)
