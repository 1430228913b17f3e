"""Pydantic schemas for member accounts and profiles."""

from datetime import date, datetime
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["admin", "member"]


def normalize_email(value: str) -> str:
    value = value.strip().lower()
    local, _, domain = value.partition("@")
    if not local or "." not in domain:
        raise ValueError("Invalid email address")
    return value


EmailAddress = Annotated[str, AfterValidator(normalize_email)]


class CamelModel(BaseModel):
    """Accepts both camelCase and snake_case keys; responses use camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Education(CamelModel):
    degree: str
    institution: str
    year: Optional[int] = None


class ProfileFields(CamelModel):
    name: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    image: Optional[str] = None
    orcid: Optional[str] = None
    biography: Optional[str] = None
    expertises: List[str] = Field(default_factory=list)
    research_interests: List[str] = Field(default_factory=list)
    university_education: List[Education] = Field(default_factory=list)


class UserCreate(ProfileFields):
    """Admin provisioning of a member account."""

    email: EmailAddress
    password: str = Field(min_length=1)
    role: Role = "member"
    must_change_password: bool = True
    expiration_date: Optional[date] = None


class UserUpdate(CamelModel):
    """Partial profile update; only the keys present in the request are applied."""

    name: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    image: Optional[str] = None
    orcid: Optional[str] = None
    biography: Optional[str] = None
    expertises: Optional[List[str]] = None
    research_interests: Optional[List[str]] = None
    university_education: Optional[List[Education]] = None
    role: Optional[Role] = None
    password: Optional[str] = None
    must_change_password: Optional[bool] = None
    expiration_date: Optional[date] = None


class UserRead(CamelModel):
    """Sanitized user: no password hash, no reset-token fields."""

    id: str
    email: str
    role: str
    name: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    image: Optional[str] = None
    orcid: Optional[str] = None
    biography: Optional[str] = None
    expertises: List[str] = Field(default_factory=list)
    research_interests: List[str] = Field(default_factory=list)
    university_education: List[Education] = Field(default_factory=list)
    must_change_password: bool
    expiration_date: Optional[date] = None
    is_archived: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    @field_validator("expertises", "research_interests", "university_education", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value


class UserResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: UserRead
    token: Optional[str] = None


class UserListResponse(BaseModel):
    success: bool = True
    count: int
    data: List[UserRead]
