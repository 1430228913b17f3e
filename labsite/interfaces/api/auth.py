"""Auth API routes: login, registration, bootstrap and password lifecycle."""

from typing import Optional

from fastapi import APIRouter, Depends, status

from labsite.application.services import auth_service
from labsite.domain.models.user import User
from labsite.domain.repositories.user_repository import UserRepository
from labsite.domain.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    InitialPasswordSetupRequest,
    InitialSignupRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UsersExistResponse,
)
from labsite.domain.schemas.user import UserResponse
from labsite.infrastructure.mailer import MailerClient
from labsite.interfaces.api.deps import get_current_user, get_optional_user
from labsite.interfaces.deps import get_mailer, get_user_repository

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=AuthResponse)
def login(body: LoginRequest, repo: UserRepository = Depends(get_user_repository)):
    return auth_service.login(repo, body.email, body.password)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    repo: UserRepository = Depends(get_user_repository),
    caller: Optional[User] = Depends(get_optional_user),
):
    return auth_service.register(repo, body, caller)


@router.get("/check-users-exist", response_model=UsersExistResponse)
def check_users_exist(repo: UserRepository = Depends(get_user_repository)):
    return auth_service.check_users_exist(repo)


@router.post("/initial-signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def initial_signup(body: InitialSignupRequest, repo: UserRepository = Depends(get_user_repository)):
    return auth_service.initial_admin_signup(repo, body)


@router.put("/change-password", response_model=AuthResponse)
def change_password(
    body: ChangePasswordRequest,
    repo: UserRepository = Depends(get_user_repository),
    user: User = Depends(get_current_user),
):
    return auth_service.change_password(repo, user, body.old_password, body.new_password)


@router.put("/initial-password-setup", response_model=AuthResponse)
def initial_password_setup(
    body: InitialPasswordSetupRequest,
    repo: UserRepository = Depends(get_user_repository),
    user: User = Depends(get_current_user),
):
    return auth_service.initial_password_setup(repo, user, body.action, body.new_password)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    repo: UserRepository = Depends(get_user_repository),
    mailer: MailerClient = Depends(get_mailer),
):
    return await auth_service.forgot_password(repo, mailer, body.email)


@router.post("/reset-password/{token}", response_model=AuthResponse)
def reset_password(
    token: str,
    body: ResetPasswordRequest,
    repo: UserRepository = Depends(get_user_repository),
):
    return auth_service.reset_password(repo, token, body.new_password)


@router.get("/me", response_model=UserResponse)
def get_me(user: User = Depends(get_current_user)):
    return auth_service.get_me(user)
