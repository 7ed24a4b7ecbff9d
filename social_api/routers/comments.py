from fastapi import APIRouter

from social_api.errors import NotFound
from social_api.guards import AuthContext, CommentOwnerContext, parse_positive_id
from social_api.schemas import CommentWrite, envelope
from social_api.services import comment_service

router = APIRouter(prefix="/posts/{post_id}/comments", tags=["comments"])


@router.post("")
async def add_comment(post_id: str, data: CommentWrite, ctx: AuthContext):
    comment = await comment_service.add_comment(
        ctx.db, parse_positive_id(post_id, "post"), ctx.identity, data.content
    )
    if comment is None:
        raise NotFound("Post not found")
    return envelope(comment)


@router.put("/{comment_id}")
async def update_comment(data: CommentWrite, ctx: CommentOwnerContext):
    return envelope(
        await comment_service.update_comment(ctx.db, ctx.comment, ctx.identity, data.content)
    )


@router.delete("/{comment_id}")
async def delete_comment(ctx: CommentOwnerContext):
    await comment_service.delete_comment(ctx.db, ctx.comment)
    return envelope(message="Comment deleted")
