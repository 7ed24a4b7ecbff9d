"""
User service — accounts and the public profile views.

Passwords never leave this module in any form: every dict returned here
goes through ``sanitize_user``, which drops ``password_hash``.

Username uniqueness is checked up front for a clean error message and
backed by the unique constraint; an ``IntegrityError`` from a concurrent
registration is translated to the same ``Conflict``.
"""
import logging

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from social_api.errors import Conflict
from social_api.models import Comment, Post, PostLike, User
from social_api.schemas import UserRegister, UserUpdate, iso
from social_api.security import hash_password, verify_password

logger = logging.getLogger(__name__)

USERNAME_TAKEN = "Username already taken"


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def sanitize_user(user: User) -> dict:
    """Public view of a user: everything except the password hash."""
    return {
        "id": user.id,
        "name": user.name,
        "username": user.username,
        "bio": user.bio,
        "createdAt": iso(user.created_at),
        "updatedAt": iso(user.updated_at),
    }


async def _ensure_username_free(db: AsyncSession, username: str, exclude_id: int | None = None) -> None:
    existing = await get_user_by_username(db, username)
    if existing is not None and existing.id != exclude_id:
        raise Conflict(USERNAME_TAKEN)


async def _flush_or_conflict(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError:
        logger.info("Username unique constraint hit during flush")
        raise Conflict(USERNAME_TAKEN)


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_users(db: AsyncSession) -> list[dict]:
    """Return all users in registration order."""
    q = select(User).order_by(User.created_at, User.id)
    result = await db.execute(q)
    return [sanitize_user(u) for u in result.scalars().all()]


async def get_user(db: AsyncSession, user_id: int) -> dict | None:
    """
    Return the profile of *user_id* with id/date summaries of their posts
    and comments and the ids of the posts they liked.

    Returns None when the user does not exist.
    """
    q = (
        select(User)
        .where(User.id == user_id)
        .options(
            selectinload(User.posts),
            selectinload(User.comments),
            selectinload(User.likes),
        )
    )
    result = await db.execute(q)
    user = result.scalar_one_or_none()
    if user is None:
        return None

    data = sanitize_user(user)
    data["posts"] = [{"id": p.id, "createdAt": iso(p.created_at)} for p in user.posts]
    data["comments"] = [{"id": c.id, "createdAt": iso(c.created_at)} for c in user.comments]
    data["likes"] = [{"postId": like.post_id} for like in user.likes]
    return data


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, data: UserRegister) -> dict:
    await _ensure_username_free(db, data.username)

    user = User(
        name=data.name,
        username=data.username,
        bio=data.bio,
        password_hash=await hash_password(data.password),
    )
    db.add(user)
    await _flush_or_conflict(db)
    logger.info("Registered user %d (%s)", user.id, user.username)
    return sanitize_user(user)


async def authenticate(db: AsyncSession, username: str, password: str) -> User | None:
    """Return the user when *username* exists and *password* matches, else None."""
    user = await get_user_by_username(db, username)
    if user is None:
        return None
    if not await verify_password(password, user.password_hash):
        return None
    return user


async def update_user(db: AsyncSession, user: User, data: UserUpdate) -> dict:
    """
    Apply the fields present in *data* to *user*.

    Fields left out of the payload (or sent as null) are untouched; an
    empty ``bio`` clears it.
    """
    if data.name is not None:
        user.name = data.name
    if data.username is not None and data.username != user.username:
        await _ensure_username_free(db, data.username, exclude_id=user.id)
        user.username = data.username
    if data.password is not None:
        user.password_hash = await hash_password(data.password)
    if data.bio is not None:
        user.bio = data.bio.strip() or None

    await _flush_or_conflict(db)
    return sanitize_user(user)


async def delete_user(db: AsyncSession, user: User) -> None:
    """
    Delete *user* along with their posts, comments and likes, and the
    comments and likes other users left on those posts.
    """
    own_posts = select(Post.id).where(Post.author_id == user.id)
    await db.execute(
        delete(PostLike)
        .where(or_(PostLike.author_id == user.id, PostLike.post_id.in_(own_posts)))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Comment)
        .where(or_(Comment.author_id == user.id, Comment.post_id.in_(own_posts)))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Post)
        .where(Post.author_id == user.id)
        .execution_options(synchronize_session=False)
    )
    await db.delete(user)
    await db.flush()
    logger.info("Deleted user %d", user.id)
