"""
Base Repository Interface.
Defines the standard contract for data access operations.
"""

from typing import TypeVar, Optional, Protocol

T = TypeVar("T")


class BaseRepository(Protocol[T]):
    """Interface for generic persistence operations."""

    def get_by_id(self, id: str) -> Optional[T]:
        """Get a single entity by ID."""
        ...

    def add(self, obj: T) -> T:
        """Insert a new entity and return it refreshed."""
        ...

    def save(self, obj: T) -> T:
        """Flush pending changes of an entity and return it refreshed."""
        ...
