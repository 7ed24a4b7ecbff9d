from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.database import get_db
from social_api.dependencies import PaginationParams
from social_api.errors import NotFound
from social_api.guards import AuthContext, PostOwnerContext, parse_positive_id
from social_api.schemas import PostWrite, envelope
from social_api.services import like_service, post_service

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("")
async def list_posts(
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    items, meta = await post_service.list_posts(db, pagination.page, pagination.limit)
    return envelope(items, meta=meta)


@router.get("/{post_id}")
async def get_post(post_id: str, db: AsyncSession = Depends(get_db)):
    post = await post_service.get_post(db, parse_positive_id(post_id, "post"))
    if post is None:
        raise NotFound("Post not found")
    return envelope(post)


@router.post("")
async def create_post(data: PostWrite, ctx: AuthContext):
    return envelope(await post_service.create_post(ctx.db, ctx.identity, data.body))


@router.put("/{post_id}")
async def update_post(data: PostWrite, ctx: PostOwnerContext):
    return envelope(await post_service.update_post(ctx.db, ctx.post, ctx.identity, data.body))


@router.delete("/{post_id}")
async def delete_post(ctx: PostOwnerContext):
    await post_service.delete_post(ctx.db, ctx.post)
    return envelope(message="Post deleted")


@router.put("/{post_id}/like")
async def like_post(post_id: str, ctx: AuthContext):
    like = await like_service.like_post(ctx.db, parse_positive_id(post_id, "post"), ctx.identity)
    if like is None:
        raise NotFound("Post not found")
    return envelope(like)


@router.put("/{post_id}/unlike")
async def unlike_post(post_id: str, ctx: AuthContext):
    removed = await like_service.unlike_post(ctx.db, parse_positive_id(post_id, "post"), ctx.identity)
    if not removed:
        raise NotFound("Like not found")
    return envelope(message="Unliked successfully")
