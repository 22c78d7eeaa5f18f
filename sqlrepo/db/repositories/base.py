"""
Generic criteria-driven repository.

Binds a configured entity to a live SQLAlchemy query and a criteria
registry. Convenience finders push criteria; every operation that executes a
query folds the registry into the live query first (unless skipped).

Pushed criteria are NOT cleared after a call. A repository that ran
``find_by("status", "draft")`` keeps filtering on ``status = 'draft'`` for
every later call until ``clear_criteria()`` is called. ``reset_scope()``
only re-enables criteria after ``skip_criteria()``; it does not clear them.
Each query-running call folds the registered criteria into the already
transformed live query again, so on a long-lived repository the generated SQL
repeats those predicates and sort keys once per call.
Build one repository per unit of work.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import literal_column
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.orm import Session

from sqlrepo.criteria import Criterion, CriteriaRegistry, normalize_direction
from sqlrepo.db.columns import get_full_columns, split_column
from sqlrepo.db.resolver import ModelResolver, default_resolver, is_mapped_class
from sqlrepo.db.schemas import Page
from sqlrepo.db.transactions import SessionTransaction, session_transaction_active
from sqlrepo.exceptions import RepositoryException
from sqlrepo.utils.settings import RepositorySettings, get_settings

from .config import ListableColumns, RepositoryConfig

logger = logging.getLogger(__name__)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def _as_list(columns: Union[str, Iterable[str], None]) -> List[str]:
    if columns is None:
        return []
    if isinstance(columns, str):
        return [columns]
    return list(columns)


def _has_selection(columns) -> bool:
    """True when ``columns`` asks for something narrower than ``*``."""
    names = _as_list(columns)
    return bool(names) and names[0] != "*"


class Repository:
    def __init__(
        self,
        session: Session,
        config: RepositoryConfig,
        *,
        resolver: Optional[ModelResolver] = None,
        transaction=None,
        settings: Optional[RepositorySettings] = None,
    ):
        self.session = session
        self.config = config
        self.resolver = resolver or default_resolver
        self.transaction = transaction if transaction is not None else SessionTransaction(session)
        self.settings = settings or get_settings()
        self.criteria = CriteriaRegistry()
        self.model = None
        self.model_query = None
        self.reset_scope()
        self.make_model()

    # ------------------------------------------------------------------
    # Model binding
    # ------------------------------------------------------------------
    def make_model(self):
        """Resolve the configured entity and reset the live query."""
        try:
            model = self.resolver.resolve(self.config.model)
        except (ImportError, AttributeError, LookupError, ValueError) as exc:
            raise RepositoryException(f"Could not resolve model {self.config.model!r}: {exc}") from exc

        if not is_mapped_class(model):
            raise RepositoryException(
                f"Class {self.config.model!r} must be a mapped SQLAlchemy model, got {type(model).__name__}"
            )

        self.model = model
        self._mapper = sa_inspect(model)
        self.model_query = self.session.query(model)
        logger.debug("repository_model_bound: model=%s table=%s", model.__name__, self.get_table())
        return self.model_query

    def get_model(self):
        return self.model

    def get_table(self) -> str:
        return self._mapper.local_table.name

    def get_primary_key(self) -> str:
        if self.config.primary_key:
            return self.config.primary_key
        return self._mapper.primary_key[0].name

    def get_relations(self) -> List[str]:
        return [rel.key for rel in self._mapper.relationships]

    def fix_columns(self, columns, table: Optional[str] = None, prefix: Optional[str] = None):
        """Qualify bare column names with ``table`` (defaults to this entity's table)."""
        return get_full_columns(columns, table or self.get_table(), prefix)

    def _column_names(self) -> List[str]:
        return [col.name for col in self._mapper.local_table.columns]

    def _own_column(self, name: str) -> Optional[str]:
        """Return the bare column name when ``name`` refers to this entity's table."""
        table, column = split_column(name)
        if table is not None and table != self.get_table():
            return None
        return column

    def column_expression(self, name: str):
        """SQL expression for a (possibly qualified) column name.

        Unknown names become literal columns so the engine reports them when
        the statement executes.
        """
        column = self._own_column(name)
        table = self._mapper.local_table
        if column is not None and column in table.c:
            return table.c[column]
        return literal_column(name)

    def column_attribute(self, name: str):
        """Mapped attribute of this entity for a (possibly qualified) column name."""
        column = self._own_column(name)
        if column is not None:
            for prop in self._mapper.column_attrs:
                if prop.key == column or any(getattr(c, "name", None) == column for c in prop.columns):
                    return getattr(self.model, prop.key)
        raise InvalidRequestError(f"Column {name!r} is not mapped on {self.model.__name__}")

    def relationship_attribute(self, name: str, owner=None):
        owner = owner or self.model
        mapper = sa_inspect(owner)
        if name not in mapper.relationships:
            raise InvalidRequestError(f"{owner.__name__} has no relationship named {name!r}")
        return getattr(owner, name)

    # ------------------------------------------------------------------
    # Column metadata
    # ------------------------------------------------------------------
    def get_fillable_columns(self) -> List[str]:
        if self.config.fillable is not None:
            return list(self.config.fillable)
        primary = {col.name for col in self._mapper.primary_key}
        return [name for name in self._column_names() if name not in primary]

    def get_indexable_columns(self) -> List[str]:
        if self.config.indexable is not None:
            return list(self.config.indexable)
        return self._column_names()

    def get_searchable_columns(self) -> List[str]:
        return list(self.config.searchable)

    def get_listable_columns(self) -> ListableColumns:
        return self.config.listable

    def get_sortable_columns(self, column: Optional[str] = None):
        """Sortable column names, or ``column`` itself if sortable (else None)."""
        sortable = list(self.config.sortable) if self.config.sortable is not None else self._column_names()
        if column is None:
            return sortable
        bare = self._own_column(column)
        return column if bare in sortable else None

    def get_status_column(self) -> str:
        return self.config.status_column

    def get_active_value(self):
        return self.config.active_value

    def set_sorting_options(self, column: Optional[str] = None, order: str = "asc") -> bool:
        """Push a sort criterion when ``column`` is sortable.

        A missing column is a successful no-op; a column outside the sortable
        set is dropped and ``False`` is returned.
        """
        if column is None or not str(column).strip():
            return True

        column = str(column).strip().lower()
        if not self.get_sortable_columns(column):
            logger.debug("sort_column_dropped: table=%s column=%s", self.get_table(), column)
            return False

        self.push_criteria(Criterion.sort(column, normalize_direction(order)))
        return True

    # ------------------------------------------------------------------
    # Criteria
    # ------------------------------------------------------------------
    def get_criteria(self) -> CriteriaRegistry:
        return self.criteria

    def get_by_criteria(self, criterion: Criterion) -> "Repository":
        """Apply ``criterion`` to the live query now, without registering it."""
        self.model_query = criterion.apply(self.model_query, self)
        return self

    def reset_scope(self) -> "Repository":
        self.skip_criteria(False)
        return self

    def push_criteria(self, criterion: Criterion) -> "Repository":
        self.criteria.push(criterion)
        return self

    def skip_criteria(self, status: bool = True) -> "Repository":
        self.criteria.skip(status)
        return self

    def clear_criteria(self) -> "Repository":
        """Drop registered criteria and rebuild the base query.

        Applied criteria live on in ``model_query``, so clearing the registry
        alone would not undo them.
        """
        self.criteria.clear()
        self.make_model()
        return self

    def apply_criteria(self) -> "Repository":
        self.model_query = self.criteria.apply_all(self.model_query, self)
        return self

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def _by_id(self, query, id_value):
        return query.filter(self.column_expression(self.fix_columns(self.get_primary_key())) == id_value)

    def _find_by_criteria(self, attribute: str, value: Any, columns=("*",)) -> None:
        self.push_criteria(Criterion.where(attribute, value))
        if _has_selection(columns):
            self.push_criteria(Criterion.select(_as_list(columns)))

    def all(self, columns=("*",)):
        if _has_selection(columns):
            self.push_criteria(Criterion.select(_as_list(columns)))
        self.apply_criteria()
        return self.model_query.all()

    def first(self, columns=None):
        if not _is_blank(columns):
            self.push_criteria(Criterion.select(_as_list(columns)))
        self.apply_criteria()
        return self.model_query.first()

    def find(self, id_value, columns=("*",)):
        if _has_selection(columns):
            self.push_criteria(Criterion.select(_as_list(columns)))
        self.apply_criteria()
        return self._by_id(self.model_query, id_value).first()

    def find_by(self, attribute: str, value: Any, columns=("*",)):
        self._find_by_criteria(attribute, value, columns)
        self.apply_criteria()
        return self.model_query.first()

    def find_all_by(self, attribute: str, value: Any, columns=("*",)):
        self._find_by_criteria(attribute, value, columns)
        self.apply_criteria()
        return self.model_query.all()

    def find_field(self, id_value, field: str):
        """Return one column of the entity with ``id_value`` or ``False``."""
        data = self.find(id_value, [field])
        if data is None:
            return False
        return getattr(data, self.column_attribute(field).key)

    def find_fillable(self, id_value):
        self.push_criteria(Criterion.select_fillable(True))
        return self.find(id_value)

    def find_fillable_with(self, id_value, related: Iterable[str] = ()):
        if not _is_blank(related):
            self.push_criteria(Criterion.with_relations(related))
        return self.find_fillable(id_value)

    def find_fillable_where(self, id_value, field: str, value: Any, cmp: str = "="):
        self.push_criteria(Criterion.where(field, value, cmp))
        return self.find_fillable(id_value)

    def find_list(self, active: bool = True, listable: Optional[ListableColumns] = None) -> Dict[Any, Any]:
        """Return ``{key: value}`` for every matching row."""
        listable = listable or self.get_listable_columns()

        if active:
            self.push_criteria(Criterion.active())

        if listable.relations:
            self.push_criteria(Criterion.with_relations(listable.relations))

        rows = self.all(self.fix_columns(list(listable.select_columns())))
        key = self.column_attribute(listable.key).key
        value = self.column_attribute(listable.value).key
        return {getattr(row, key): getattr(row, value) for row in rows}

    def find_list_by(self, attribute: str, value: Any, active: bool = True) -> Dict[Any, Any]:
        self.push_criteria(Criterion.where(attribute, value))
        return self.find_list(active)

    def paginate(self, per_page: Optional[int] = None, columns=None, page: int = 1) -> Page:
        per_page = self.settings.clamp_per_page(per_page)
        page = max(1, int(page or 1))
        if _is_blank(columns):
            columns = self.get_indexable_columns()

        self.apply_criteria()
        total = self.model_query.count()
        query = Criterion.select(self.fix_columns(_as_list(columns))).apply(self.model_query, self)
        items = query.offset((page - 1) * per_page).limit(per_page).all()
        return Page(items=items, total_items=total, page=page, per_page=per_page)

    def paginate_where(self, field: str, value: Any, cmp: str = "=") -> Page:
        self.push_criteria(Criterion.where(field, value, cmp))
        return self.paginate()

    def find_count(self, attribute: Optional[str] = None, value: Any = None, cmp: str = "=") -> int:
        if not _is_blank(attribute) and not _is_blank(value):
            if isinstance(value, (list, tuple, set, frozenset)):
                self.push_criteria(Criterion.where_in(attribute, value))
            else:
                self.push_criteria(Criterion.where(attribute, value, cmp))

        self.apply_criteria()
        return self.model_query.count()

    def exists(self, id_value) -> bool:
        self.push_criteria(Criterion.where(self.get_primary_key(), id_value))
        return self.find_count() > 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def _persist(self) -> None:
        in_transaction = getattr(self.transaction, "active", False) or session_transaction_active(self.session)
        if in_transaction or not self.settings.autocommit:
            self.session.flush()
        else:
            self.session.commit()

    def _fillable_values(self, data: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for name in self.get_fillable_columns():
            if name in data:
                values[self.column_attribute(name).key] = data[name]
        return values

    def create(self, data: Dict[str, Any]):
        """Create an entity from the fillable keys of ``data``; other keys are ignored."""
        instance = self.model(**self._fillable_values(data))
        self.session.add(instance)
        self._persist()
        self.session.refresh(instance)
        return instance

    def create_with(self, data: Optional[Dict[str, Any]], field: str, value: Any):
        data = dict(data or {})
        data[field] = value
        return self.create(data)

    def _write_query(self):
        # Query.update() refuses a query that carries ORDER BY
        self.apply_criteria()
        return self.model_query.order_by(None)

    def update(self, data: Dict[str, Any], id_value, attribute: Optional[str] = None) -> int:
        attribute = attribute or self.get_primary_key()
        query = self._write_query().filter(self.column_expression(self.fix_columns(attribute)) == id_value)
        rows = query.update(data, synchronize_session=False)
        self._persist()
        return rows

    def update_all(self, data: Dict[str, Any], conditions: Dict[str, Any]) -> int:
        query = self._write_query()
        for attribute, value in conditions.items():
            expr = self.column_expression(self.fix_columns(attribute))
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.filter(expr.in_(list(value)))
            else:
                query = query.filter(expr == value)
        rows = query.update(data, synchronize_session=False)
        self._persist()
        return rows

    def delete(self, id_value) -> bool:
        """Delete the entity with ``id_value``; ``False`` when there is none."""
        if id_value is None:
            return False
        instance = self.find(id_value)
        if instance is None:
            return False
        self.session.delete(instance)
        self._persist()
        return True

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def start_transaction(self):
        return self.transaction.begin()

    def commit_transaction(self):
        return self.transaction.commit()

    def rollback_transaction(self):
        return self.transaction.rollback()
