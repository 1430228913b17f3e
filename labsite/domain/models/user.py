"""User domain model: maps to the 'users' table."""

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import pytz
from sqlalchemy import Column, String, Boolean, Date, DateTime, Text
from sqlalchemy.sql import func

from labsite.config import get_settings
from labsite.core.security import hash_password, verify_password
from labsite.domain.models.types import JSONEncodedList
from labsite.infrastructure.database import Base

settings = get_settings()

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLES = (ROLE_ADMIN, ROLE_MEMBER)

# Editing any of these counts as account activity and renews an expired account
PROFILE_FIELDS = (
    "name",
    "position",
    "phone",
    "image",
    "orcid",
    "biography",
    "expertises",
    "research_interests",
    "university_education",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_today() -> date:
    return datetime.now(pytz.timezone(settings.TIMEZONE)).date()


def add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year + years, day=28)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=ROLE_MEMBER)

    name = Column(String(200), nullable=True)
    position = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    image = Column(String(500), nullable=True)
    orcid = Column(String(50), unique=True, nullable=True)
    biography = Column(Text, nullable=True)
    expertises = Column(JSONEncodedList, nullable=True, default=list)
    research_interests = Column(JSONEncodedList, nullable=True, default=list)
    university_education = Column(JSONEncodedList, nullable=True, default=list)

    must_change_password = Column(Boolean, nullable=False, default=True)
    expiration_date = Column(Date, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)

    reset_password_token = Column(String(64), nullable=True, index=True)
    reset_password_expire = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User {self.email}>"

    # Password

    def set_password(self, password: str) -> None:
        self.password_hash = hash_password(password)

    def check_password(self, password: str) -> bool:
        return verify_password(password, self.password_hash)

    # Expiration

    def is_expired(self, today: Optional[date] = None) -> bool:
        if self.expiration_date is None:
            return False
        return (today or local_today()) >= self.expiration_date

    def extend_expiration(self, today: Optional[date] = None) -> None:
        self.expiration_date = add_years(today or local_today(), settings.ACCOUNT_VALIDITY_YEARS)

    def renew_expiration_if_lapsed(self, today: Optional[date] = None) -> bool:
        """Extend the expiration date when it is unset or already reached."""
        today = today or local_today()
        if self.expiration_date is None or self.expiration_date <= today:
            self.extend_expiration(today)
            return True
        return False

    # Password reset; the two columns are only ever written together

    def set_reset_token(self, token_digest: str, expires_at: datetime) -> None:
        self.reset_password_token = token_digest
        self.reset_password_expire = expires_at

    def clear_reset_token(self) -> None:
        self.reset_password_token = None
        self.reset_password_expire = None

