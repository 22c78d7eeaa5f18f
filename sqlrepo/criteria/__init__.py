"""
Query criteria and the per-repository registry that accumulates them.
"""

from .criterion import Criterion, CriterionKind, SORT_ASC, SORT_DESC, normalize_direction
from .registry import CriteriaRegistry

__all__ = [
    "Criterion",
    "CriterionKind",
    "CriteriaRegistry",
    "SORT_ASC",
    "SORT_DESC",
    "normalize_direction",
]
