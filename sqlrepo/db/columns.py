"""
Column qualification helpers.

Maps bare column names to ``table.column`` form so criteria can be applied to
queries that join several tables without ambiguous references.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Tuple, Union

ColumnSpec = Union[str, Iterable[str]]


def split_column(name: str) -> Tuple[Optional[str], str]:
    """Split ``"table.column"`` into ``("table", "column")``; bare names get ``None``."""
    name = name.strip()
    if "." not in name:
        return None, name
    table, _, column = name.rpartition(".")
    return table or None, column


def qualify_column(column: str, table: str, prefix: Optional[str] = None) -> str:
    """Return ``column`` qualified with ``table``.

    Already qualified names are returned untouched. ``prefix`` is prepended to
    the table name (connection level table prefixes).
    """
    column = column.strip()
    if "." in column:
        return column
    table_name = f"{prefix}{table}" if prefix else table
    return f"{table_name}.{column}"


def get_full_columns(columns: ColumnSpec, table: str, prefix: Optional[str] = None) -> Union[str, List[str]]:
    """Qualify one column name or a sequence of them.

    A single string yields a string, any other iterable yields a list in the
    same order.
    """
    if isinstance(columns, str):
        return qualify_column(columns, table, prefix)
    return [qualify_column(c, table, prefix) for c in columns]
