"""Users API routes: member directory, profiles and admin account management."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from labsite.application.services import user_service
from labsite.domain.models.user import User
from labsite.domain.repositories.user_repository import UserRepository
from labsite.domain.schemas.auth import MessageResponse
from labsite.domain.schemas.user import UserCreate, UserListResponse, UserResponse, UserUpdate
from labsite.infrastructure.mailer import MailerClient
from labsite.interfaces.api.deps import get_current_user, get_optional_user, require_admin
from labsite.interfaces.deps import get_mailer, get_user_repository

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("", response_model=UserListResponse)
def list_users(
    include_archived: bool = Query(False, alias="includeArchived"),
    repo: UserRepository = Depends(get_user_repository),
    caller: Optional[User] = Depends(get_optional_user),
):
    return user_service.list_users(repo, caller, include_archived)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    repo: UserRepository = Depends(get_user_repository),
    caller: Optional[User] = Depends(get_optional_user),
):
    return user_service.get_user(repo, user_id, caller)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    repo: UserRepository = Depends(get_user_repository),
    admin: User = Depends(require_admin),
):
    return user_service.create_user(repo, body)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    body: UserUpdate,
    repo: UserRepository = Depends(get_user_repository),
    caller: User = Depends(get_current_user),
):
    return user_service.update_user(repo, user_id, body, caller)


@router.delete("/{user_id}", response_model=MessageResponse)
def archive_user(
    user_id: str,
    repo: UserRepository = Depends(get_user_repository),
    admin: User = Depends(require_admin),
):
    return user_service.archive_user(repo, user_id, admin)


@router.post("/{user_id}/restore", response_model=UserResponse)
def restore_user(
    user_id: str,
    repo: UserRepository = Depends(get_user_repository),
    admin: User = Depends(require_admin),
):
    return user_service.restore_user(repo, user_id, admin)


@router.post("/{user_id}/send-credentials", response_model=MessageResponse)
async def send_credentials(
    user_id: str,
    repo: UserRepository = Depends(get_user_repository),
    mailer: MailerClient = Depends(get_mailer),
    admin: User = Depends(require_admin),
):
    return await user_service.send_credentials(repo, mailer, user_id)
