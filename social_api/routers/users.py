import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.database import get_db
from social_api.errors import NotFound, Unauthenticated
from social_api.guards import AuthContext, SelfContext, parse_positive_id
from social_api.schemas import UserLogin, UserRegister, UserUpdate, envelope
from social_api.security import issue_token
from social_api.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register")
async def register(data: UserRegister, db: AsyncSession = Depends(get_db)):
    return envelope(await user_service.register_user(db, data))


@router.post("/login")
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await user_service.authenticate(db, data.username, data.password)
    if user is None:
        logger.info("Failed login for username %r", data.username)
        raise Unauthenticated("Incorrect username or password")
    return envelope(issue_token(user.id).to_dict())


# Declared before "/{user_id}" so "verify" is not captured as an id.
@router.get("/verify")
async def verify(ctx: AuthContext):
    return envelope(user_service.sanitize_user(ctx.identity))


@router.get("")
async def list_users(db: AsyncSession = Depends(get_db)):
    return envelope(await user_service.get_users(db))


@router.get("/{user_id}")
async def get_user(user_id: str, db: AsyncSession = Depends(get_db)):
    user = await user_service.get_user(db, parse_positive_id(user_id, "user"))
    if user is None:
        raise NotFound("User not found")
    return envelope(user)


@router.put("/edit/{user_id}")
async def edit_user(data: UserUpdate, ctx: SelfContext):
    return envelope(await user_service.update_user(ctx.db, ctx.identity, data))


@router.delete("/{user_id}")
async def delete_user(ctx: SelfContext):
    await user_service.delete_user(ctx.db, ctx.identity)
    return envelope(message="User deleted")
