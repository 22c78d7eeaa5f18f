"""
Query criteria.

A ``Criterion`` is one immutable query transformation: sort, filter,
set-membership filter, active-only filter, column selection or relation
eager loading. Each kind carries its own parameters and ``apply`` dispatches
on the kind through a closed handler table.

``apply`` receives the repository as context instead of capturing it so the
same criterion can be qualified against whatever table the calling
repository is bound to. The context must provide ``fix_columns``,
``column_expression``, ``column_attribute``, ``relationship_attribute``,
``get_model``, ``get_fillable_columns``, ``get_status_column`` and
``get_active_value``.
"""
from __future__ import annotations

import operator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Tuple

from sqlalchemy.orm import load_only, selectinload


class CriterionKind(str, Enum):
    SORT = "sort"
    WHERE = "where"
    WHERE_IN = "where_in"
    ACTIVE = "active"
    SELECT = "select"
    SELECT_FILLABLE = "select_fillable"
    RELATION = "relation"


SORT_ASC = "asc"
SORT_DESC = "desc"


def normalize_direction(direction: Any) -> str:
    """Only ``desc`` (any case) sorts descending; everything else is ``asc``."""
    if isinstance(direction, str) and direction.strip().lower() == SORT_DESC:
        return SORT_DESC
    return SORT_ASC


_COMPARATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "=": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "like": lambda col, value: col.like(value),
    "not like": lambda col, value: col.not_like(value),
    "ilike": lambda col, value: col.ilike(value),
    "not ilike": lambda col, value: col.not_ilike(value),
}


_COMPARATOR_ALIASES = {"==": "=", "<>": "!="}


def _normalize_comparator(comparator: str) -> str:
    key = " ".join(str(comparator).strip().lower().split())
    key = _COMPARATOR_ALIASES.get(key, key)
    if key not in _COMPARATORS:
        raise ValueError(f"Unsupported comparator {comparator!r}; expected one of {sorted(_COMPARATORS)}")
    return key


def _as_tuple(values: Any) -> Tuple[Any, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        return (values,)
    if isinstance(values, (list, tuple, set, frozenset)):
        items = sorted(values, key=repr) if isinstance(values, (set, frozenset)) else values
        return tuple(_freeze(v) for v in items)
    if isinstance(values, Iterable):
        return tuple(_freeze(v) for v in values)
    return (values,)


def _freeze(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


@dataclass(frozen=True)
class Criterion:
    """One query transformation.

    Prefer the classmethod constructors; they normalise parameters so that
    structurally equal criteria compare equal.
    """

    kind: CriterionKind
    column: str | None = None
    columns: Tuple[str, ...] = ()
    value: Any = None
    values: Tuple[Any, ...] = ()
    comparator: str = "="
    direction: str = SORT_ASC
    fix: bool = True

    @classmethod
    def sort(cls, column: str, direction: str = SORT_ASC, fix: bool = True) -> "Criterion":
        return cls(kind=CriterionKind.SORT, column=column, direction=normalize_direction(direction), fix=fix)

    @classmethod
    def where(cls, column: str, value: Any, comparator: str = "=") -> "Criterion":
        return cls(
            kind=CriterionKind.WHERE,
            column=column,
            value=_freeze(value),
            comparator=_normalize_comparator(comparator),
        )

    @classmethod
    def where_in(cls, column: str, values: Iterable[Any]) -> "Criterion":
        return cls(kind=CriterionKind.WHERE_IN, column=column, values=_as_tuple(values))

    @classmethod
    def active(cls) -> "Criterion":
        return cls(kind=CriterionKind.ACTIVE)

    @classmethod
    def select(cls, columns: str | Iterable[str]) -> "Criterion":
        return cls(kind=CriterionKind.SELECT, columns=_as_tuple(columns))

    @classmethod
    def select_fillable(cls, fix: bool = True) -> "Criterion":
        return cls(kind=CriterionKind.SELECT_FILLABLE, fix=fix)

    @classmethod
    def with_relations(cls, relations: str | Iterable[str]) -> "Criterion":
        return cls(kind=CriterionKind.RELATION, columns=_as_tuple(relations))

    def apply(self, query, repository):
        """Return ``query`` transformed by this criterion."""
        return _HANDLERS[self.kind](self, query, repository)


def _apply_sort(criterion: Criterion, query, repository):
    name = repository.fix_columns(criterion.column) if criterion.fix else criterion.column
    expr = repository.column_expression(name)
    return query.order_by(expr.desc() if criterion.direction == SORT_DESC else expr.asc())


def _apply_where(criterion: Criterion, query, repository):
    expr = repository.column_expression(repository.fix_columns(criterion.column))
    return query.filter(_COMPARATORS[criterion.comparator](expr, criterion.value))


def _apply_where_in(criterion: Criterion, query, repository):
    expr = repository.column_expression(repository.fix_columns(criterion.column))
    return query.filter(expr.in_(list(criterion.values)))


def _apply_active(criterion: Criterion, query, repository):
    expr = repository.column_expression(repository.fix_columns(repository.get_status_column()))
    return query.filter(expr == repository.get_active_value())


def _load_only(query, repository, names: Iterable[str]):
    attrs = [repository.column_attribute(name) for name in names if name != "*" and not name.endswith(".*")]
    if not attrs:
        return query
    return query.options(load_only(*attrs))


def _apply_select(criterion: Criterion, query, repository):
    return _load_only(query, repository, repository.fix_columns(list(criterion.columns)))


def _apply_select_fillable(criterion: Criterion, query, repository):
    fillable = list(repository.get_fillable_columns())
    names = repository.fix_columns(fillable) if criterion.fix else fillable
    return _load_only(query, repository, names)


def _apply_relation(criterion: Criterion, query, repository):
    options = []
    for path in criterion.columns:
        owner = repository.get_model()
        loader = None
        for part in path.split("."):
            attr = repository.relationship_attribute(part, owner)
            loader = selectinload(attr) if loader is None else loader.selectinload(attr)
            owner = attr.property.mapper.class_
        if loader is not None:
            options.append(loader)
    if not options:
        return query
    return query.options(*options)


_HANDLERS: Dict[CriterionKind, Callable[[Criterion, Any, Any], Any]] = {
    CriterionKind.SORT: _apply_sort,
    CriterionKind.WHERE: _apply_where,
    CriterionKind.WHERE_IN: _apply_where_in,
    CriterionKind.ACTIVE: _apply_active,
    CriterionKind.SELECT: _apply_select,
    CriterionKind.SELECT_FILLABLE: _apply_select_fillable,
    CriterionKind.RELATION: _apply_relation,
}
