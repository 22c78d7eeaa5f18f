"""
sqlrepo: criteria-driven repositories on top of SQLAlchemy.

Calling code pushes reusable query criteria onto a repository; the
repository folds them into its base query right before each query runs.
"""

from sqlrepo.criteria import Criterion, CriterionKind, CriteriaRegistry
from sqlrepo.db.repositories import ListableColumns, Repository, RepositoryConfig
from sqlrepo.db.resolver import ModelResolver
from sqlrepo.db.schemas import Page
from sqlrepo.db.transactions import SessionTransaction
from sqlrepo.exceptions import RepositoryException

__all__ = [
    "Criterion",
    "CriterionKind",
    "CriteriaRegistry",
    "ListableColumns",
    "ModelResolver",
    "Page",
    "Repository",
    "RepositoryConfig",
    "RepositoryException",
    "SessionTransaction",
]

__version__ = "1.0.0"
