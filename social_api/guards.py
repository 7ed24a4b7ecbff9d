"""
Authentication and ownership guards.

A protected route declares an explicit, ordered chain of guards::

    @router.put("/{post_id}")
    async def update_post(data: PostWrite, ctx: PostOwnerContext): ...

Each guard is an async callable taking the request-scoped
``RequestContext`` and returning it, possibly enriched with the resolved
identity or resource.  A guard rejects by raising an ``ApiError``; the
chain stops at the first rejection and the handler never runs.

Ownership guards validate in a fixed order: the path id must be a positive
integer (400), the resource must exist (404), and it must belong to the
resolved identity (403).  Existence is checked before ownership, so a
caller can tell "absent" from "not yours" for resources that exist.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated, Awaitable, Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.database import get_db
from social_api.errors import Forbidden, InvalidInput, NotFound, Unauthenticated
from social_api.models import Comment, Post, User
from social_api.schemas import MAX_ID, positive_int
from social_api.security import verify_token

logger = logging.getLogger(__name__)


@dataclass
class RequestContext:
    request: Request
    db: AsyncSession
    identity: User | None = None
    post: Post | None = None
    comment: Comment | None = None

    def require_identity(self) -> User:
        if self.identity is None:
            raise RuntimeError("ownership guard used without resolve_identity before it")
        return self.identity


Guard = Callable[[RequestContext], Awaitable[RequestContext]]


def parse_positive_id(raw: str | None, label: str) -> int:
    """
    Return *raw* as an int.

    Raises ``InvalidInput`` unless it is a positive integer, and
    ``NotFound`` when it is past ``MAX_ID`` since no row can have that id.
    """
    value = positive_int(raw)
    if value is None:
        raise InvalidInput(f"Invalid {label} ID")
    if value > MAX_ID:
        raise NotFound(f"{label.capitalize()} not found")
    return value


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

async def resolve_identity(ctx: RequestContext) -> RequestContext:
    """Verify the ``Authorization: Bearer <token>`` header and load its user."""
    header = ctx.request.headers.get("Authorization")
    if not header:
        raise Unauthenticated("Token required")

    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise Unauthenticated("Invalid token format")

    claims = verify_token(parts[1])
    user = await ctx.db.get(User, claims.identity_id)
    if user is None:
        # Valid signature, but the account has since been deleted.
        logger.info("Token subject %d no longer exists", claims.identity_id)
        raise Unauthenticated("User not found")

    ctx.identity = user
    return ctx


async def require_post_owner(ctx: RequestContext) -> RequestContext:
    identity = ctx.require_identity()
    post_id = parse_positive_id(ctx.request.path_params.get("post_id"), "post")

    post = await ctx.db.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    if post.author_id != identity.id:
        logger.warning("User %d denied access to post %d", identity.id, post_id)
        raise Forbidden()

    ctx.post = post
    return ctx


async def require_comment_owner(ctx: RequestContext) -> RequestContext:
    identity = ctx.require_identity()
    comment_id = parse_positive_id(ctx.request.path_params.get("comment_id"), "comment")

    comment = await ctx.db.get(Comment, comment_id)
    if comment is None:
        raise NotFound("Comment not found")
    if comment.author_id != identity.id:
        logger.warning("User %d denied access to comment %d", identity.id, comment_id)
        raise Forbidden()

    ctx.comment = comment
    return ctx


async def require_self(ctx: RequestContext) -> RequestContext:
    """The path user id must be the caller's own id.  No lookup is needed."""
    identity = ctx.require_identity()
    raw = ctx.request.path_params.get("user_id")
    if positive_int(raw) != identity.id:
        logger.warning("User %d denied access to user %r", identity.id, raw)
        raise Forbidden()
    return ctx


# ---------------------------------------------------------------------------
# Chains
# ---------------------------------------------------------------------------

def guarded(*guards: Guard):
    """
    Build a FastAPI dependency that runs *guards* left to right and
    returns the resulting ``RequestContext``.

    The dependency shares the request's ``get_db`` session with the
    handler, so resources loaded by a guard are live in the handler's
    transaction.
    """

    async def run_chain(request: Request, db: AsyncSession = Depends(get_db)) -> RequestContext:
        ctx = RequestContext(request=request, db=db)
        for guard in guards:
            ctx = await guard(ctx)
        return ctx

    return run_chain


AuthContext = Annotated[RequestContext, Depends(guarded(resolve_identity))]
SelfContext = Annotated[RequestContext, Depends(guarded(resolve_identity, require_self))]
PostOwnerContext = Annotated[
    RequestContext, Depends(guarded(resolve_identity, require_post_owner))
]
CommentOwnerContext = Annotated[
    RequestContext, Depends(guarded(resolve_identity, require_comment_owner))
]
