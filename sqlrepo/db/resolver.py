"""
Entity resolution.

Turns the entity identifier declared in a repository configuration into a
concrete handle. Identifiers may be the class itself, an import path
(``"package.module:Class"`` or ``"package.module.Class"``) or the bare name
of a class mapped on the resolver's declarative base.
"""
from __future__ import annotations

import importlib
import logging
from typing import Any, Optional

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper

logger = logging.getLogger(__name__)


def is_mapped_class(candidate: Any) -> bool:
    """Return True when ``candidate`` is an ORM-mapped class."""
    if not isinstance(candidate, type):
        return False
    info = sa_inspect(candidate, raiseerr=False)
    return isinstance(info, Mapper)


class ModelResolver:
    """Resolve entity identifiers to handles.

    The resolver does not validate the kind of object it returns; the
    repository does that so a misconfigured identifier fails at construction.
    """

    def __init__(self, base: Optional[Any] = None):
        self.base = base

    def resolve(self, identifier: Any) -> Any:
        if not isinstance(identifier, str):
            return identifier

        if ":" in identifier or "." in identifier:
            return self._import(identifier)

        found = self._lookup_registered(identifier)
        if found is None:
            raise LookupError(f"No mapped class named {identifier!r} is registered")
        return found

    def _import(self, path: str) -> Any:
        if ":" in path:
            module_name, _, attr = path.partition(":")
        else:
            module_name, _, attr = path.rpartition(".")
        logger.debug("resolve_import: module=%s attr=%s", module_name, attr)
        module = importlib.import_module(module_name)
        target: Any = module
        for part in attr.split("."):
            target = getattr(target, part)
        return target

    def _lookup_registered(self, name: str) -> Optional[Any]:
        if self.base is None:
            return None
        registry = getattr(self.base, "registry", None)
        if registry is None:
            return None
        for mapper in registry.mappers:
            if mapper.class_.__name__ == name:
                return mapper.class_
        return None


default_resolver = ModelResolver()
