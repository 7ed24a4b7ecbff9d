"""
Guard-level tests — each guard is called directly with a hand-built
``RequestContext`` so the validation order (format, existence, ownership)
can be asserted without routing in the way.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from social_api.errors import Forbidden, InvalidInput, NotFound, Unauthenticated
from social_api.guards import (
    RequestContext,
    guarded,
    parse_positive_id,
    require_comment_owner,
    require_post_owner,
    require_self,
    resolve_identity,
)
from social_api.models import Comment, Post, User
from social_api.security import issue_token


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _request(authorization: str | None = None, **path_params: str) -> Request:
    headers = []
    if authorization is not None:
        headers.append((b"authorization", authorization.encode()))
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "query_string": b"",
        "headers": headers,
        "path_params": path_params,
    })


async def _user(db: AsyncSession, username: str) -> User:
    user = User(name=username.title(), username=username, password_hash="x")
    db.add(user)
    await db.flush()
    return user


async def _ctx(db: AsyncSession, user: User | None = None, **path_params: str) -> RequestContext:
    auth = f"Bearer {issue_token(user.id).token}" if user else None
    return RequestContext(request=_request(auth, **path_params), db=db)


# ---------------------------------------------------------------------------
# parse_positive_id
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("raw", ["1", "42", "0042"])
def test_parse_positive_id_accepts(raw):
    assert parse_positive_id(raw, "post") == int(raw)


@pytest.mark.parametrize("raw", [None, "", "0", "-1", "abc", "1.5", " 1", "١"])
def test_parse_positive_id_rejects(raw):
    with pytest.raises(InvalidInput):
        parse_positive_id(raw, "post")


# ---------------------------------------------------------------------------
# resolve_identity
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_resolve_identity_attaches_user(db_session: AsyncSession):
    alice = await _user(db_session, "alice")
    ctx = await resolve_identity(await _ctx(db_session, alice))
    assert ctx.identity is alice


@pytest.mark.asyncio
@pytest.mark.parametrize("header, message", [
    (None, "Token required"),
    ("Token abc", "Invalid token format"),
    ("Bearer", "Invalid token format"),
    ("Bearer a b", "Invalid token format"),
    ("bearer abc", "Invalid token format"),
    ("Bearer abc", "Invalid token"),
])
async def test_resolve_identity_rejects_bad_headers(db_session: AsyncSession, header, message):
    ctx = RequestContext(request=_request(header), db=db_session)
    with pytest.raises(Unauthenticated) as exc_info:
        await resolve_identity(ctx)
    assert exc_info.value.message == message


@pytest.mark.asyncio
async def test_resolve_identity_rejects_expired_token(db_session: AsyncSession):
    alice = await _user(db_session, "alice")
    token = issue_token(alice.id, now=datetime.now(timezone.utc) - timedelta(hours=2)).token
    ctx = RequestContext(request=_request(f"Bearer {token}"), db=db_session)
    with pytest.raises(Unauthenticated):
        await resolve_identity(ctx)


@pytest.mark.asyncio
async def test_resolve_identity_rejects_deleted_user(db_session: AsyncSession):
    token = issue_token(999).token
    ctx = RequestContext(request=_request(f"Bearer {token}"), db=db_session)
    with pytest.raises(Unauthenticated) as exc_info:
        await resolve_identity(ctx)
    assert exc_info.value.message == "User not found"


# ---------------------------------------------------------------------------
# Ownership guards
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_post_guard_order(db_session: AsyncSession):
    alice = await _user(db_session, "alice")
    bob = await _user(db_session, "bob")
    post = Post(body="hi", author_id=alice.id)
    db_session.add(post)
    await db_session.flush()

    chain = guarded(resolve_identity, require_post_owner)

    # Malformed id is rejected before any lookup.
    with pytest.raises(InvalidInput):
        await chain(_request(f"Bearer {issue_token(bob.id).token}", post_id="abc"), db_session)

    # Absent post is NotFound, even for a non-owner.
    with pytest.raises(NotFound):
        await chain(_request(f"Bearer {issue_token(bob.id).token}", post_id="999"), db_session)

    # Existing post owned by someone else is Forbidden.
    with pytest.raises(Forbidden):
        await chain(_request(f"Bearer {issue_token(bob.id).token}", post_id=str(post.id)), db_session)

    ctx = await chain(_request(f"Bearer {issue_token(alice.id).token}", post_id=str(post.id)), db_session)
    assert ctx.post is post
    assert ctx.identity is alice


@pytest.mark.asyncio
async def test_comment_guard(db_session: AsyncSession):
    alice = await _user(db_session, "alice")
    bob = await _user(db_session, "bob")
    post = Post(body="hi", author_id=alice.id)
    db_session.add(post)
    await db_session.flush()
    comment = Comment(content="mine", post_id=post.id, author_id=bob.id)
    db_session.add(comment)
    await db_session.flush()

    ctx = await resolve_identity(await _ctx(db_session, alice, comment_id=str(comment.id)))
    with pytest.raises(Forbidden):
        await require_comment_owner(ctx)

    ctx = await resolve_identity(await _ctx(db_session, bob, comment_id=str(comment.id)))
    ctx = await require_comment_owner(ctx)
    assert ctx.comment is comment

    ctx = await resolve_identity(await _ctx(db_session, bob, comment_id="0"))
    with pytest.raises(InvalidInput):
        await require_comment_owner(ctx)

    ctx = await resolve_identity(await _ctx(db_session, bob, comment_id="12345"))
    with pytest.raises(NotFound):
        await require_comment_owner(ctx)


@pytest.mark.asyncio
async def test_self_guard(db_session: AsyncSession):
    alice = await _user(db_session, "alice")

    ctx = await resolve_identity(await _ctx(db_session, alice, user_id=str(alice.id)))
    assert (await require_self(ctx)).identity is alice

    for other in (str(alice.id + 1), "abc", "²", "99999999999999999999"):
        ctx = await resolve_identity(await _ctx(db_session, alice, user_id=other))
        with pytest.raises(Forbidden):
            await require_self(ctx)


@pytest.mark.asyncio
async def test_ownership_guard_requires_resolved_identity(db_session: AsyncSession):
    ctx = RequestContext(request=_request(post_id="1"), db=db_session)
    with pytest.raises(RuntimeError):
        await require_post_owner(ctx)


@pytest.mark.asyncio
async def test_chain_stops_at_first_rejection(db_session: AsyncSession):
    calls = []

    async def record(ctx):
        calls.append("ran")
        return ctx

    chain = guarded(resolve_identity, record)
    with pytest.raises(Unauthenticated):
        await chain(_request(None), db_session)
    assert calls == []


@pytest.mark.parametrize("raw, label, message", [
    ("2147483648", "post", "Post not found"),
    ("99999999999999999999", "comment", "Comment not found"),
    ("99999999999999999999", "user", "User not found"),
])
def test_parse_positive_id_past_column_range_not_found(raw, label, message):
    with pytest.raises(NotFound) as exc_info:
        parse_positive_id(raw, label)
    assert exc_info.value.message == message


def test_parse_positive_id_accepts_column_max():
    assert parse_positive_id("2147483647", "post") == 2147483647
