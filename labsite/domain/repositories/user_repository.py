"""
User Repository Interface.
Defines account-specific data access operations.
"""

from datetime import date, datetime
from typing import List, Optional

from labsite.domain.repositories.base import BaseRepository
from labsite.domain.models.user import User


class UserRepository(BaseRepository[User]):
    """Interface for User-specific operations."""

    def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by (normalised) e-mail."""
        ...

    def get_by_orcid(self, orcid: str) -> Optional[User]:
        ...

    def get_by_reset_token(self, token_digest: str, now: datetime) -> Optional[User]:
        """Get the user holding this reset-token digest, if it has not expired."""
        ...

    def count(self) -> int:
        ...

    def list_directory(self, today: date, include_inactive: bool = False) -> List[User]:
        """List users by name; archived and expired accounts only when ``include_inactive``."""
        ...

    def archive_expired(self, today: date) -> int:
        """Archive every active account whose expiration date has been reached."""
        ...

    def clear_expired_reset_tokens(self, now: datetime) -> int:
        """Drop reset tokens whose deadline has passed."""
        ...
