"""
Comment service — comments attached to a Post.

Ownership of the comment being edited or deleted is established by the
comment guard before these functions run; they trust the ``Comment`` they
are handed.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.models import Comment, User
from social_api.services.post_service import comment_to_dict, post_exists


async def add_comment(db: AsyncSession, post_id: int, author: User, content: str) -> dict | None:
    """
    Append a comment by *author* to *post_id*.

    Returns None when the target post does not exist.
    """
    if not await post_exists(db, post_id):
        return None

    comment = Comment(content=content, post_id=post_id, author_id=author.id)
    db.add(comment)
    await db.flush()
    return comment_to_dict(comment, author)


async def update_comment(db: AsyncSession, comment: Comment, author: User, content: str) -> dict:
    comment.content = content
    await db.flush()
    return comment_to_dict(comment, author)


async def delete_comment(db: AsyncSession, comment: Comment) -> None:
    await db.delete(comment)
    await db.flush()
