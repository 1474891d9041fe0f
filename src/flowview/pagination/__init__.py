"""Discrete and infinite pagination."""

from ..config import PaginationMode
from .manager import LoadStatus, PaginationManager, PaginationSnapshot

__all__ = ["LoadStatus", "PaginationManager", "PaginationMode", "PaginationSnapshot"]
