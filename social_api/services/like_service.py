"""
Like service — one like per (post, user).

The pair is unique in the schema.  ``like_post`` checks for an existing
row first so the common case gets a clean ``Conflict``; a concurrent
duplicate that slips past the check is caught as ``IntegrityError`` on
flush and reported the same way.
"""
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.errors import Conflict
from social_api.models import PostLike, User
from social_api.services.post_service import like_to_dict, post_exists

logger = logging.getLogger(__name__)

ALREADY_LIKED = "Already liked"


async def _already_liked(db: AsyncSession, post_id: int, user_id: int) -> bool:
    existing = await db.execute(
        select(PostLike.id).where(PostLike.post_id == post_id, PostLike.author_id == user_id)
    )
    return existing.scalar_one_or_none() is not None


async def like_post(db: AsyncSession, post_id: int, user: User) -> dict | None:
    """
    Record that *user* likes *post_id*.

    Returns None when the post does not exist; raises ``Conflict`` when
    the user already likes it.
    """
    if not await post_exists(db, post_id):
        return None

    if await _already_liked(db, post_id, user.id):
        raise Conflict(ALREADY_LIKED)

    # A failed flush expires every loaded object, user included.
    user_id = user.id
    like = PostLike(post_id=post_id, author_id=user_id)
    db.add(like)
    try:
        await db.flush()
    except IntegrityError:
        logger.info("Concurrent duplicate like on post %d by user %d", post_id, user_id)
        raise Conflict(ALREADY_LIKED)
    return like_to_dict(like)


async def unlike_post(db: AsyncSession, post_id: int, user: User) -> bool:
    """Remove *user*'s like from *post_id*.  Returns False when there was none."""
    result = await db.execute(
        delete(PostLike)
        .where(PostLike.post_id == post_id, PostLike.author_id == user.id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0
