"""
Post service — business logic for the Post aggregate.

Design notes
------------
- The list view computes comment and like counts with correlated scalar
  subqueries, so a page costs one COUNT plus one SELECT no matter how
  many posts it holds.
- The detail view eager-loads likes and comments (each with its user)
  via ``selectinload``; relationships are ``noload`` by default so
  nothing is fetched implicitly.
- Deleting a post removes its comments and likes explicitly instead of
  relying on the backend to honour ``ON DELETE CASCADE``.
- Nothing here commits. ``get_db`` commits once the route returns and
  rolls back if it raised.
"""
import math

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from social_api.models import Comment, Post, PostLike, User
from social_api.schemas import PageMeta, iso

# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def user_summary(user: User | None) -> dict | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "username": user.username,
        "createdAt": iso(user.created_at),
    }


def _post_to_dict(post: Post, author: User | None) -> dict:
    return {
        "id": post.id,
        "body": post.body,
        "authorId": post.author_id,
        "createdAt": iso(post.created_at),
        "updatedAt": iso(post.updated_at),
        "author": user_summary(author),
    }


def comment_to_dict(comment: Comment, author: User | None) -> dict:
    return {
        "id": comment.id,
        "content": comment.content,
        "postId": comment.post_id,
        "authorId": comment.author_id,
        "createdAt": iso(comment.created_at),
        "updatedAt": iso(comment.updated_at),
        "author": user_summary(author),
    }


def like_to_dict(like: PostLike, user: User | None = None) -> dict:
    data = {
        "id": like.id,
        "postId": like.post_id,
        "authorId": like.author_id,
        "createdAt": iso(like.created_at),
    }
    if user is not None:
        data["user"] = user_summary(user)
    return data


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def list_posts(db: AsyncSession, page: int = 1, limit: int = 20) -> tuple[list[dict], PageMeta]:
    """
    Return one page of posts, newest first, with author and counts.

    A page past the end yields an empty list; ``meta`` still reports the
    real totals.
    """
    total: int = (await db.execute(select(func.count()).select_from(Post))).scalar_one()
    meta = PageMeta(
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total > 0 else 0,
    )

    offset = (page - 1) * limit
    if offset >= total:
        # Also keeps huge page numbers away from the driver's OFFSET bind.
        return [], meta

    comment_count = (
        select(func.count(Comment.id))
        .where(Comment.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )
    like_count = (
        select(func.count(PostLike.id))
        .where(PostLike.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )
    q = (
        select(Post, comment_count.label("comment_count"), like_count.label("like_count"))
        .options(joinedload(Post.author))
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(offset)
        .limit(limit)
    )
    rows = (await db.execute(q)).all()

    items = []
    for post, n_comments, n_likes in rows:
        data = _post_to_dict(post, post.author)
        data["counts"] = {"comments": n_comments, "likes": n_likes}
        items.append(data)
    return items, meta


async def get_post(db: AsyncSession, post_id: int) -> dict | None:
    """
    Return *post_id* with its author, likes and comments (oldest first)
    and their counts.

    Returns None when the post does not exist.
    """
    q = (
        select(Post)
        .where(Post.id == post_id)
        .options(
            joinedload(Post.author),
            selectinload(Post.likes).joinedload(PostLike.user),
            selectinload(Post.comments).joinedload(Comment.author),
        )
    )
    result = await db.execute(q)
    post = result.unique().scalar_one_or_none()
    if post is None:
        return None

    data = _post_to_dict(post, post.author)
    data["likes"] = [like_to_dict(like, like.user) for like in post.likes]
    data["comments"] = [comment_to_dict(c, c.author) for c in post.comments]
    data["counts"] = {"comments": len(post.comments), "likes": len(post.likes)}
    return data


async def post_exists(db: AsyncSession, post_id: int) -> bool:
    result = await db.execute(select(Post.id).where(Post.id == post_id))
    return result.scalar_one_or_none() is not None


async def create_post(db: AsyncSession, author: User, body: str) -> dict:
    post = Post(body=body, author_id=author.id)
    db.add(post)
    await db.flush()
    return _post_to_dict(post, author)


async def update_post(db: AsyncSession, post: Post, author: User, body: str) -> dict:
    post.body = body
    await db.flush()
    return _post_to_dict(post, author)


async def delete_post(db: AsyncSession, post: Post) -> None:
    await db.execute(
        delete(PostLike)
        .where(PostLike.post_id == post.id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Comment)
        .where(Comment.post_id == post.id)
        .execution_options(synchronize_session=False)
    )
    await db.delete(post)
    await db.flush()
