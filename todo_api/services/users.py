import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from todo_api.exceptions import ConflictError, NotFoundError
from todo_api.models.user import User
from todo_api.utils.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


async def _exists(db: AsyncSession, column, value) -> bool:
    result = await db.execute(select(User.id).filter(column == value))
    return result.first() is not None


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    if await _exists(db, User.username, username):
        raise ConflictError("Username already exists")
    if await _exists(db, User.email, email):
        raise ConflictError("Email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    logger.info("Registered user %s (%s)", user.username, user.id)
    return user


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> User:
    # Resolves inactive users as well; only authentication rejects them.
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def get_user_by_username(db: AsyncSession, username: str) -> User:
    result = await db.execute(
        select(User).filter(User.username == username, User.is_active == True)
    )
    user = result.scalars().first()
    if not user:
        raise NotFoundError("User not found")
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> User:
    result = await db.execute(
        select(User).filter(User.email == email, User.is_active == True)
    )
    user = result.scalars().first()
    if not user:
        raise NotFoundError("User not found")
    return user


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at, User.id))
    return list(result.scalars().all())


async def update_user(
    db: AsyncSession,
    user_id: uuid.UUID,
    username: str | None = None,
    email: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    user = await get_user_by_id(db, user_id)

    if username is not None and username != user.username:
        if await _exists(db, User.username, username):
            raise ConflictError("Username already exists")
        user.username = username

    if email is not None and email != user.email:
        if await _exists(db, User.email, email):
            raise ConflictError("Email already exists")
        user.email = email

    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name

    await db.flush()
    return user


async def set_active(db: AsyncSession, user_id: uuid.UUID, active: bool) -> User:
    user = await get_user_by_id(db, user_id)
    user.is_active = active
    await db.flush()
    logger.info("User %s %s", user.id, "activated" if active else "deactivated")
    return user


async def deactivate_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    return await set_active(db, user_id, False)


async def activate_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    return await set_active(db, user_id, True)


async def authenticate_user(db: AsyncSession, username: str, password: str) -> User | None:
    """Returns the user for valid credentials, or None. Inactive users never authenticate."""
    result = await db.execute(select(User).filter(User.username == username))
    user = result.scalars().first()
    if not user or not verify_password(password, user.password_hash):
        return None
    if not user.is_active:
        logger.warning("Login attempt for inactive user %s", user.id)
        return None
    return user
