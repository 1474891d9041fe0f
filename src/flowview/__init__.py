"""Windowed rendering, chunk caching and pagination for large datasets."""

from .config import PaginationMode, ViewOptions
from .errors import ConfigurationError, FetchError, FlowViewError, NetworkError, ServerError

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "FetchError",
    "FlowViewError",
    "NetworkError",
    "PaginationMode",
    "ServerError",
    "ViewOptions",
    "__version__",
]
