"""
SQLAlchemy Implementation of User Repository.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import SQLAlchemyError

from labsite.domain.models.user import User
from labsite.domain.repositories.user_repository import UserRepository
from labsite.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyUserRepository(SQLAlchemyRepository[User], UserRepository):
    """User repository implementation using SQLAlchemy."""

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def get_by_orcid(self, orcid: str) -> Optional[User]:
        return self.db.query(User).filter(User.orcid == orcid).first()

    def get_by_reset_token(self, token_digest: str, now: datetime) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(
                User.reset_password_token == token_digest,
                User.reset_password_expire > now,
            )
            .first()
        )

    def count(self) -> int:
        return self.db.query(func.count(User.id)).scalar() or 0

    def list_directory(self, today: date, include_inactive: bool = False) -> List[User]:
        query = self.db.query(User)
        if not include_inactive:
            query = query.filter(
                User.is_archived.is_(False),
                or_(User.expiration_date.is_(None), User.expiration_date > today),
            )
        return query.order_by(User.name.asc(), User.email.asc()).all()

    def archive_expired(self, today: date) -> int:
        try:
            count = (
                self.db.query(User)
                .filter(
                    and_(
                        User.is_archived.is_(False),
                        User.expiration_date.is_not(None),
                        User.expiration_date <= today,
                    )
                )
                .update({User.is_archived: True}, synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return count

    def clear_expired_reset_tokens(self, now: datetime) -> int:
        try:
            count = (
                self.db.query(User)
                .filter(
                    User.reset_password_token.is_not(None),
                    User.reset_password_expire <= now,
                )
                .update(
                    {User.reset_password_token: None, User.reset_password_expire: None},
                    synchronize_session=False,
                )
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return count
