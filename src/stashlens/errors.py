from __future__ import annotations


class StashError(Exception):
    """Base class for all stashlens errors."""


class ConfigError(StashError):
    """Client settings are missing or invalid."""


class ClientError(StashError):
    """The server rejected a request or answered in an unusable way."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnexpectedContentTypeError(ClientError):
    """A JSON body was expected but the server sent something else."""


class TransportError(ClientError):
    """The exchange never produced an HTTP response (connection, DNS, protocol)."""


class RequestTimeoutError(TransportError):
    """The request exceeded the configured timeout."""


class ReportExtractionError(ClientError):
    """A success response carried a payload of the wrong shape."""
