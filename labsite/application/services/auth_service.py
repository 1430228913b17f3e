"""Auth service: login, registration, password lifecycle and session tokens.

Account password states:

* ``must_change_password`` set: the account still runs on a temporary or
  freshly registered password and is sent through the initial setup flow.
* active: the flag is cleared by change-password, initial setup or reset.
* reset pending: ``reset_password_token``/``reset_password_expire`` are set
  until the token is consumed or expires.
"""

from datetime import timedelta
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError

from labsite.config import get_settings
from labsite.core.exceptions import (
    AccountArchivedException,
    AccountExpiredException,
    DuplicateEmailException,
    DuplicateOrcidException,
    ForbiddenException,
    InvalidCredentialsException,
    InvalidOldPasswordException,
    InvalidOrExpiredTokenException,
    ServerErrorException,
    ValidationException,
)
from labsite.core.security import generate_reset_token, hash_reset_token, issue_token
from labsite.domain.models.user import ROLE_ADMIN, ROLE_MEMBER, User, utcnow
from labsite.domain.repositories.user_repository import UserRepository
from labsite.domain.schemas.auth import (
    AuthResponse,
    InitialSignupRequest,
    MessageResponse,
    RegisterRequest,
    UsersExistResponse,
)
from labsite.domain.schemas.user import UserRead, UserResponse
from labsite.infrastructure.mailer import MailDeliveryError, MailerClient

settings = get_settings()
logger = structlog.get_logger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with this email exists, a reset link has been sent."


def build_token_claims(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "name": user.name,
        "mustChangePassword": bool(user.must_change_password),
        "expirationDate": user.expiration_date.isoformat() if user.expiration_date else None,
        "isArchived": bool(user.is_archived),
    }


def create_session_token(user: User) -> str:
    return issue_token(build_token_claims(user))


def auth_response(user: User, message: str) -> AuthResponse:
    return AuthResponse(message=message, token=create_session_token(user), user=UserRead.model_validate(user))


def insert_user(repo: UserRepository, user: User) -> User:
    """Insert a new account, turning unique-constraint races into domain errors."""
    if repo.get_by_email(user.email):
        raise DuplicateEmailException()
    if user.orcid and repo.get_by_orcid(user.orcid):
        raise DuplicateOrcidException()
    try:
        return repo.add(user)
    except IntegrityError as exc:
        logger.warning("User insert violated a unique constraint", email=user.email)
        if repo.get_by_email(user.email):
            raise DuplicateEmailException() from exc
        raise DuplicateOrcidException() from exc


def login(repo: UserRepository, email: str, password: str) -> AuthResponse:
    user = repo.get_by_email(email)
    if user is None or not user.check_password(password):
        logger.info("Login rejected", email=email)
        raise InvalidCredentialsException()

    if user.is_archived:
        raise AccountArchivedException()

    if user.is_expired():
        user.is_archived = True
        repo.save(user)
        logger.info("Expired account archived at login", user_id=user.id)
        raise AccountExpiredException()

    logger.info("User logged in", user_id=user.id, role=user.role)
    return auth_response(user, "Logged in successfully!")


def register(repo: UserRepository, body: RegisterRequest, caller: Optional[User] = None) -> AuthResponse:
    """Public registration creates members; an admin caller may also pick the role and the must-change flag."""
    caller_is_admin = caller is not None and caller.role == ROLE_ADMIN
    role = body.role if caller_is_admin else ROLE_MEMBER

    user = User(
        email=body.email,
        role=role,
        name=body.name,
        position=body.position,
        phone=body.phone,
        image=body.image,
        orcid=body.orcid or None,
        biography=body.biography,
        expertises=list(body.expertises),
        research_interests=list(body.research_interests),
        university_education=[item.model_dump() for item in body.university_education],
    )
    user.set_password(body.password)
    user.extend_expiration()
    if caller_is_admin and body.must_change_password is not None:
        user.must_change_password = body.must_change_password
    user = insert_user(repo, user)

    logger.info("User registered", user_id=user.id, role=user.role)
    return auth_response(user, "User registered successfully!")


def check_users_exist(repo: UserRepository) -> UsersExistResponse:
    return UsersExistResponse(exists=repo.count() > 0)


def initial_admin_signup(repo: UserRepository, body: InitialSignupRequest) -> AuthResponse:
    if repo.count() > 0:
        raise ForbiddenException("Initial admin signup is only allowed when no users exist.")

    user = User(
        email=body.email,
        name=body.name,
        role=ROLE_ADMIN,
        must_change_password=False,
        is_archived=False,
    )
    user.set_password(body.password)
    user.extend_expiration()
    user = insert_user(repo, user)

    logger.info("Initial admin created", user_id=user.id)
    return auth_response(user, "Initial admin user created successfully!")


def change_password(repo: UserRepository, user: User, old_password: str, new_password: str) -> AuthResponse:
    if not user.check_password(old_password):
        raise InvalidOldPasswordException()

    user.set_password(new_password)
    user.must_change_password = False
    user.renew_expiration_if_lapsed()
    repo.save(user)

    logger.info("Password changed", user_id=user.id)
    return auth_response(user, "Password updated successfully.")


def initial_password_setup(
    repo: UserRepository,
    user: User,
    action: str,
    new_password: Optional[str] = None,
) -> AuthResponse:
    """First-login flow: replace the temporary password or explicitly keep it."""
    if not user.must_change_password:
        raise ForbiddenException("Password change not required for this account.")

    if action == "change":
        if not new_password:
            raise ValidationException("New password is required.")
        user.set_password(new_password)
        user.renew_expiration_if_lapsed()
        message = "Initial password updated successfully."
    elif action == "keep":
        message = "Temporary password confirmed."
    else:
        raise ValidationException("Invalid action specified.")

    user.must_change_password = False
    repo.save(user)

    logger.info("Initial password setup completed", user_id=user.id, action=action)
    return auth_response(user, message)


async def forgot_password(repo: UserRepository, mailer: MailerClient, email: str) -> MessageResponse:
    """Issue a reset token and mail the link.

    The response is identical whether or not the account exists.
    """
    user = repo.get_by_email(email.strip().lower())
    if user is None:
        logger.info("Password reset requested for unknown email")
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    raw_token, token_digest = generate_reset_token()
    user.set_reset_token(token_digest, utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES))
    repo.save(user)

    reset_url = f"{settings.FRONTEND_URL.rstrip('/')}/reinitialiser-mot-de-passe/{raw_token}"
    try:
        await mailer.send_password_reset_email(user.email, user.name or user.email, reset_url)
    except MailDeliveryError as exc:
        # An unsent link must not stay redeemable
        user.clear_reset_token()
        repo.save(user)
        logger.error("Password reset email failed", user_id=user.id, error=str(exc))
        raise ServerErrorException("Error while sending the password reset email.") from exc

    logger.info("Password reset link issued", user_id=user.id)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


def reset_password(repo: UserRepository, raw_token: str, new_password: str) -> AuthResponse:
    user = repo.get_by_reset_token(hash_reset_token(raw_token), utcnow())
    if user is None:
        raise InvalidOrExpiredTokenException()

    user.set_password(new_password)
    user.clear_reset_token()
    user.must_change_password = False
    user.renew_expiration_if_lapsed()
    repo.save(user)

    logger.info("Password reset completed", user_id=user.id)
    return auth_response(user, "Password reset successfully. You are now signed in.")


def get_me(user: User) -> UserResponse:
    return UserResponse(user=UserRead.model_validate(user))
