"""Pydantic schemas for Auth requests and responses."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from labsite.domain.schemas.user import CamelModel, EmailAddress, Education, Role, UserRead


class LoginRequest(BaseModel):
    email: EmailAddress
    password: str


class RegisterRequest(CamelModel):
    email: EmailAddress
    password: str = Field(min_length=1)
    role: Role = "member"
    must_change_password: Optional[bool] = None
    name: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    image: Optional[str] = None
    orcid: Optional[str] = None
    biography: Optional[str] = None
    expertises: List[str] = Field(default_factory=list)
    research_interests: List[str] = Field(default_factory=list)
    university_education: List[Education] = Field(default_factory=list)


class InitialSignupRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailAddress
    password: str = Field(min_length=1)


class ChangePasswordRequest(CamelModel):
    old_password: str
    new_password: str = Field(min_length=1)


class InitialPasswordSetupRequest(CamelModel):
    action: Literal["change", "keep"]
    new_password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(CamelModel):
    new_password: str = Field(min_length=1)


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    user: UserRead


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class UsersExistResponse(BaseModel):
    exists: bool
