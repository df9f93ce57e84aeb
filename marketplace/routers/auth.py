import asyncio

import bcrypt

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_session
from marketplace.errors import AlreadyExistsError, UnauthorisedError
from marketplace.models.auth import User
from marketplace.schemas.auth import UserCreate, UserRead, Token
from marketplace.utils.tokens import create_access_token


router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.post(
    "/register/",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    data: UserCreate,
    session: AsyncSession = Depends(get_session),
):
    email = data.email.lower()
    if await session.scalar(select(User).filter_by(email=email)):
        raise AlreadyExistsError("Email already registered")

    hashed = await asyncio.to_thread(
        bcrypt.hashpw,
        data.password.get_secret_value().encode(),
        bcrypt.gensalt(),
    )

    user = User(name=data.name, email=email, password_hash=hashed.decode())

    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise AlreadyExistsError("Email already registered")

    await session.refresh(user)
    return user


@router.post("/login/", response_model=Token)
async def login(
    user_input: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_session),
):
    user = await session.scalar(
        select(User).filter_by(email=user_input.username.lower())
    )
    if user is None:
        raise UnauthorisedError("Invalid credentials")

    ok = await asyncio.to_thread(
        bcrypt.checkpw,
        user_input.password.encode(),
        user.password_hash.encode(),
    )
    if not ok:
        raise UnauthorisedError("Invalid credentials")

    return Token(access_token=create_access_token(user.email, user.id, user.name))


__all__ = ["router"]
