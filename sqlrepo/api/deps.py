"""
API dependency helpers.

Builds one repository per request on top of the request's database session
and lets optional sort query parameters flow into the repository without
validation at the route level.
"""
from typing import Callable, Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from sqlrepo.db.database import get_db
from sqlrepo.db.repositories import Repository, RepositoryConfig
from sqlrepo.db.resolver import ModelResolver


class SortParams:
    """``?sort=<column>&order=<asc|desc>`` query parameters."""

    def __init__(
        self,
        sort: Optional[str] = Query(default=None),
        order: str = Query(default="asc"),
    ):
        self.sort = sort
        self.order = order


def repository_dependency(
    config: RepositoryConfig,
    *,
    resolver: Optional[ModelResolver] = None,
) -> Callable[..., Repository]:
    """Return a dependency that yields a fresh ``Repository`` per request."""

    def _provide(db: Session = Depends(get_db)) -> Repository:
        return Repository(db, config, resolver=resolver)

    return _provide


def sorted_repository_dependency(
    config: RepositoryConfig,
    *,
    resolver: Optional[ModelResolver] = None,
) -> Callable[..., Repository]:
    """Like ``repository_dependency`` but also applies ``SortParams``.

    Unknown or disallowed sort columns are dropped by the repository, so the
    route never fails because of a sort parameter.
    """
    provide = repository_dependency(config, resolver=resolver)

    def _provide_sorted(
        repository: Repository = Depends(provide),
        params: SortParams = Depends(),
    ) -> Repository:
        repository.set_sorting_options(params.sort, params.order)
        return repository

    return _provide_sorted
