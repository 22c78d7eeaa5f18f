"""
Criteria registry.

Ordered, deduplicated collection of pending criteria for one repository
instance. Entries accumulate across calls: applying the registry does not
consume it, and ``reset`` only re-enables application. Use ``clear`` to
start from an empty registry.
"""
from __future__ import annotations

import logging
from typing import Iterator, List, Tuple

from .criterion import Criterion

logger = logging.getLogger(__name__)


class CriteriaRegistry:
    def __init__(self) -> None:
        self._entries: List[Criterion] = []
        self._skip = False

    @property
    def entries(self) -> Tuple[Criterion, ...]:
        return tuple(self._entries)

    @property
    def skipped(self) -> bool:
        return self._skip

    def push(self, criterion: Criterion) -> "CriteriaRegistry":
        """Append ``criterion`` unless an equal one is already registered."""
        if criterion in self._entries:
            logger.debug("criteria_push_duplicate: kind=%s", getattr(criterion, "kind", None))
            return self
        self._entries.append(criterion)
        logger.debug("criteria_push: kind=%s size=%d", getattr(criterion, "kind", None), len(self._entries))
        return self

    def skip(self, status: bool = True) -> "CriteriaRegistry":
        self._skip = bool(status)
        return self

    def reset(self) -> "CriteriaRegistry":
        """Re-enable application. Registered entries are kept."""
        return self.skip(False)

    def clear(self) -> "CriteriaRegistry":
        """Drop every registered entry; the skip flag is left as is."""
        self._entries.clear()
        return self

    def apply_all(self, query, repository):
        """Fold every entry over ``query`` in insertion order.

        While skipping, ``query`` is returned unchanged.
        """
        if self._skip:
            logger.debug("criteria_apply_skipped: size=%d", len(self._entries))
            return query
        for criterion in self._entries:
            if isinstance(criterion, Criterion):
                query = criterion.apply(query, repository)
        return query

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Criterion]:
        return iter(list(self._entries))

    def __contains__(self, criterion: object) -> bool:
        return criterion in self._entries

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"CriteriaRegistry(size={len(self._entries)}, skip={self._skip})"
