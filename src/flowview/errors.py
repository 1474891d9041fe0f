"""Exception hierarchy shared by the flowview data and rendering layers."""

from __future__ import annotations

from typing import Optional


class FlowViewError(Exception):
    """Base class for all errors raised by flowview."""


class ConfigurationError(FlowViewError):
    """Raised when view, cache or batching options are invalid."""


class FetchError(FlowViewError):
    """A page or chunk could not be fetched from the data layer."""

    def __init__(self, message: str, *, page: Optional[int] = None) -> None:
        super().__init__(message)
        self.page = page


class NetworkError(FetchError):
    """The request never produced a response (connection, timeout, DNS)."""


class ServerError(FetchError):
    """The data layer answered with an error status."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        page: Optional[int] = None,
    ) -> None:
        super().__init__(message, page=page)
        self.status = status


__all__ = [
    "ConfigurationError",
    "FetchError",
    "FlowViewError",
    "NetworkError",
    "ServerError",
]
