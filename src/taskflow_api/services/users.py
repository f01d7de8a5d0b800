"""Identity store: user accounts, credentials and profile."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.auth.passwords import hash_password, verify_password
from taskflow_api.exceptions import DuplicateEmail, InvalidCredentials
from taskflow_api.models import Theme, User
from taskflow_api.models.base import utc_now

logger = logging.getLogger(__name__)

# Verified against when the email is unknown so both failure paths cost the same
_DUMMY_HASH = hash_password("taskflow-timing-guard")


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(
    db: AsyncSession,
    email: str,
    active_only: bool = False,
) -> User | None:
    query = select(User).where(User.email == normalize_email(email))
    if active_only:
        query = query.where(User.is_active.is_(True))
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
) -> User:
    """Create a new user account.

    Args:
        db: Database session
        name: Display name
        email: Email address (stored lowercase)
        password: Plain-text password, hashed before persistence

    Returns:
        The new User

    Raises:
        DuplicateEmail: If the email is already registered
    """
    email = normalize_email(email)
    if await get_user_by_email(db, email) is not None:
        raise DuplicateEmail()

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent registration of the same email
        await db.rollback()
        raise DuplicateEmail() from e

    logger.info("Registered user %s", user.id)
    return user


async def verify_credentials(db: AsyncSession, email: str, password: str) -> User:
    """Return the user if the email/password pair is valid.

    Unknown email, inactive account and wrong password are indistinguishable
    to the caller.

    Raises:
        InvalidCredentials: If the credentials do not match an active user
    """
    user = await get_user_by_email(db, email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        raise InvalidCredentials()

    if not verify_password(password, user.password_hash) or not user.is_active:
        logger.warning("Failed login for user %s", user.id)
        raise InvalidCredentials()

    return user


async def record_login(db: AsyncSession, user: User) -> None:
    now = utc_now()
    user.last_login = now
    user.last_active = now
    await db.flush()


async def update_profile(
    db: AsyncSession,
    user: User,
    name: str | None = None,
    avatar: str | None = None,
    theme: Theme | None = None,
    notifications: bool | None = None,
    auto_save: bool | None = None,
    timezone: str | None = None,
) -> User:
    """Update profile fields and preferences; ``None`` leaves a field unchanged."""
    if name is not None:
        user.name = name.strip()
    if avatar is not None:
        user.avatar = avatar
    if theme is not None:
        user.theme = theme
    if notifications is not None:
        user.notifications = notifications
    if auto_save is not None:
        user.auto_save = auto_save
    if timezone is not None:
        user.timezone = timezone

    await db.flush()
    return user
