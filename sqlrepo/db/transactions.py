"""
Transaction control for repositories.

Repositories do not own transactions; they delegate begin/commit/rollback to
an injected context. ``SessionTransaction`` binds that contract to a
SQLAlchemy session. The active flag is kept in ``session.info`` so every
repository sharing the session sees the same explicit transaction.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

ACTIVE_KEY = "sqlrepo.transaction_active"


def session_transaction_active(session: Session) -> bool:
    """True while an explicit transaction begun on ``session`` is open."""
    return bool(session.info.get(ACTIVE_KEY, False))


class SessionTransaction:
    """Explicit transaction scope on a session.

    While a transaction started through ``begin`` is active, repository
    writes on the same session only flush; ``commit`` or ``rollback`` ends
    the scope.
    """

    def __init__(self, session: Session):
        self.session = session

    @property
    def active(self) -> bool:
        return session_transaction_active(self.session)

    def begin(self) -> "SessionTransaction":
        if not self.session.in_transaction():
            self.session.begin()
        self.session.info[ACTIVE_KEY] = True
        logger.debug("transaction_begin")
        return self

    def commit(self) -> None:
        try:
            self.session.commit()
        finally:
            self.session.info.pop(ACTIVE_KEY, None)
        logger.debug("transaction_commit")

    def rollback(self) -> None:
        try:
            self.session.rollback()
        finally:
            self.session.info.pop(ACTIVE_KEY, None)
        logger.debug("transaction_rollback")

    @contextmanager
    def scope(self) -> Iterator[Session]:
        """Begin, yield the session, then commit or roll back on error."""
        self.begin()
        try:
            yield self.session
        except Exception:
            self.rollback()
            raise
        else:
            self.commit()
