"""
Repository configuration.

Declares the entity a repository is bound to and the column metadata the
criteria consult at apply-time. Unset column groups fall back to the mapped
table's columns when the repository binds the entity.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class ListableColumns:
    """Columns used to build ``{key: value}`` lookup lists."""

    key: str = "id"
    value: str = "name"
    columns: Tuple[str, ...] = ()
    relations: Tuple[str, ...] = ()

    def select_columns(self) -> Tuple[str, ...]:
        if self.columns:
            return self.columns
        return (self.key, self.value)


@dataclass(frozen=True)
class RepositoryConfig:
    """Entity identifier plus column metadata.

    ``model`` is anything the resolver understands: a mapped class, an import
    path or a class name registered on the resolver's declarative base.
    ``sortable=None`` allows sorting on every mapped column, an empty tuple
    disables sorting entirely.
    """

    model: Any
    fillable: Optional[Tuple[str, ...]] = None
    indexable: Optional[Tuple[str, ...]] = None
    searchable: Tuple[str, ...] = ()
    sortable: Optional[Tuple[str, ...]] = None
    listable: ListableColumns = field(default_factory=ListableColumns)
    status_column: str = "is_active"
    active_value: Any = True
    primary_key: Optional[str] = None
