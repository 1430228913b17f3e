"""User service: member directory, admin provisioning, profile edits and account housekeeping."""

from typing import Optional

import structlog

from labsite.core.exceptions import (
    DuplicateOrcidException,
    EntityNotFoundException,
    ForbiddenException,
    ServerErrorException,
)
from labsite.core.security import generate_temporary_password
from labsite.domain.models.user import PROFILE_FIELDS, ROLE_ADMIN, User, local_today, utcnow
from labsite.domain.repositories.user_repository import UserRepository
from labsite.domain.schemas.auth import MessageResponse
from labsite.domain.schemas.user import UserCreate, UserListResponse, UserRead, UserResponse, UserUpdate
from labsite.application.services.auth_service import create_session_token, insert_user
from labsite.infrastructure.mailer import MailDeliveryError, MailerClient

logger = structlog.get_logger(__name__)

TEXT_FIELDS = ("name", "position", "phone", "image", "biography")
LIST_FIELDS = ("expertises", "research_interests")


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == ROLE_ADMIN


def get_user_or_404(repo: UserRepository, user_id: str) -> User:
    user = repo.get_by_id(user_id)
    if user is None:
        raise EntityNotFoundException("User not found.")
    return user


def list_users(repo: UserRepository, caller: Optional[User], include_archived: bool = False) -> UserListResponse:
    """Public directory of active members; admins may ask for archived and expired accounts too."""
    include_inactive = include_archived and is_admin(caller)
    users = repo.list_directory(local_today(), include_inactive=include_inactive)
    return UserListResponse(count=len(users), data=[UserRead.model_validate(u) for u in users])


def get_user(repo: UserRepository, user_id: str, caller: Optional[User]) -> UserResponse:
    user = get_user_or_404(repo, user_id)
    if user.is_archived and not (is_admin(caller) or (caller is not None and caller.id == user.id)):
        raise EntityNotFoundException("User not found or archived.")
    return UserResponse(user=UserRead.model_validate(user))


def create_user(repo: UserRepository, body: UserCreate) -> UserResponse:
    """Admin provisioning; the account starts on a temporary password."""
    user = User(
        email=body.email,
        role=body.role,
        name=body.name or None,
        position=body.position or None,
        phone=body.phone or None,
        image=body.image or None,
        orcid=body.orcid or None,
        biography=body.biography or None,
        expertises=list(body.expertises),
        research_interests=list(body.research_interests),
        university_education=[item.model_dump() for item in body.university_education],
        must_change_password=body.must_change_password,
        expiration_date=body.expiration_date,
    )
    user.set_password(body.password)
    if user.expiration_date is None:
        user.extend_expiration()
    user = insert_user(repo, user)

    logger.info("User provisioned", user_id=user.id, role=user.role)
    return UserResponse(message="User created successfully.", user=UserRead.model_validate(user))


def update_user(repo: UserRepository, user_id: str, body: UserUpdate, caller: User) -> UserResponse:
    """Apply the fields present in ``body``.

    Members may only edit their own profile; role, expiration date and the
    must-change-password flag are admin-only. A token is returned when the
    caller edited their own account so their session reflects the change.
    """
    user = get_user_or_404(repo, user_id)
    caller_is_admin = is_admin(caller)
    if not caller_is_admin and caller.id != user.id:
        raise ForbiddenException("You are not authorized to update this profile.")

    fields = body.model_fields_set
    before = {field: getattr(user, field) for field in PROFILE_FIELDS}

    for field in TEXT_FIELDS:
        if field in fields:
            setattr(user, field, getattr(body, field) or None)
    for field in LIST_FIELDS:
        if field in fields:
            setattr(user, field, list(getattr(body, field) or []))
    if "university_education" in fields:
        user.university_education = [item.model_dump() for item in body.university_education or []]

    if "orcid" in fields:
        orcid = body.orcid or None
        if orcid and orcid != user.orcid:
            holder = repo.get_by_orcid(orcid)
            if holder is not None and holder.id != user.id:
                raise DuplicateOrcidException()
        user.orcid = orcid

    if caller_is_admin and "role" in fields and body.role is not None:
        user.role = body.role
    if caller_is_admin and "expiration_date" in fields:
        user.expiration_date = body.expiration_date

    password_changed = bool(body.password)
    if password_changed:
        user.set_password(body.password)
        user.must_change_password = False
    elif caller_is_admin and body.must_change_password is not None:
        user.must_change_password = body.must_change_password

    profile_changed = any(getattr(user, field) != before[field] for field in PROFILE_FIELDS)
    explicit_expiration = caller_is_admin and "expiration_date" in fields
    if (profile_changed or password_changed) and not explicit_expiration:
        user.renew_expiration_if_lapsed()

    repo.save(user)
    logger.info("User updated", user_id=user.id, by=caller.id, password_changed=password_changed)

    token = create_session_token(user) if caller.id == user.id else None
    return UserResponse(message="User profile updated successfully.", user=UserRead.model_validate(user), token=token)


def archive_user(repo: UserRepository, user_id: str, caller: User) -> MessageResponse:
    if caller.id == user_id:
        raise ForbiddenException("You cannot archive your own account.")
    user = get_user_or_404(repo, user_id)
    user.is_archived = True
    repo.save(user)
    logger.info("User archived", user_id=user.id, by=caller.id)
    return MessageResponse(message="User archived successfully.")


def restore_user(repo: UserRepository, user_id: str, caller: User) -> UserResponse:
    user = get_user_or_404(repo, user_id)
    user.is_archived = False
    user.renew_expiration_if_lapsed()
    repo.save(user)
    logger.info("User restored", user_id=user.id, by=caller.id)
    return UserResponse(message="User restored successfully.", user=UserRead.model_validate(user))


async def send_credentials(repo: UserRepository, mailer: MailerClient, user_id: str) -> MessageResponse:
    """Reset the account to a fresh temporary password and mail it to the user."""
    user = get_user_or_404(repo, user_id)

    temporary_password = generate_temporary_password()
    user.set_password(temporary_password)
    user.must_change_password = True
    repo.save(user)

    try:
        await mailer.send_credentials_email(user.email, user.name or user.email, temporary_password)
    except MailDeliveryError as exc:
        logger.error("Credentials email failed", user_id=user.id, error=str(exc))
        raise ServerErrorException("Error while sending the credentials email.") from exc

    logger.info("Credentials sent", user_id=user.id)
    return MessageResponse(message="Credentials sent by email. The password has been reset to a temporary one.")


def archive_expired_accounts(repo: UserRepository) -> int:
    count = repo.archive_expired(local_today())
    if count:
        logger.info("Expired accounts archived", count=count)
    return count


def purge_expired_reset_tokens(repo: UserRepository) -> int:
    count = repo.clear_expired_reset_tokens(utcnow())
    if count:
        logger.info("Expired reset tokens cleared", count=count)
    return count
