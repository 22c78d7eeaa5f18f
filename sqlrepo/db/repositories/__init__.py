"""
Criteria-driven repositories.

``Repository`` is generic: bind it to an entity through a
``RepositoryConfig`` instead of subclassing.
"""

from .base import Repository
from .config import ListableColumns, RepositoryConfig

__all__ = ["Repository", "RepositoryConfig", "ListableColumns"]
