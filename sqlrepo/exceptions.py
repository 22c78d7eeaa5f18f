"""Exceptions raised by the repository layer."""


class RepositoryException(RuntimeError):
    """Raised when a repository cannot be bound to a mapped entity."""
