"""
API Dependencies.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from labsite.domain.models.user import User
from labsite.domain.repositories.user_repository import UserRepository
from labsite.infrastructure.database import get_db
from labsite.infrastructure.mailer import MailerClient
from labsite.infrastructure.repositories.user_repository import SQLAlchemyUserRepository


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    """Get user repository instance."""
    return SQLAlchemyUserRepository(db, User)


def get_mailer() -> MailerClient:
    return MailerClient()
