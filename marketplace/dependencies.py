from typing import Annotated

import jwt
from fastapi import Depends, Query, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import Settings
from marketplace.database import get_session
from marketplace.errors import UnauthorisedError
from marketplace.kafka import KafkaProducer
from marketplace.schemas.auth import TokenData
from marketplace.services.offer import OfferService
from marketplace.services.product import ProductService
from marketplace.services.transactions import TransactionService
from marketplace.utils.pagination import Cursor
from marketplace.utils.tokens import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login/", auto_error=False)


async def get_current_user(
    token: Annotated[str | None, Depends(oauth2_scheme)]
) -> TokenData:
    if token is None:
        raise UnauthorisedError("Authorization header required")
    try:
        payload = decode_access_token(token)
        return TokenData(
            user_id=payload["user_id"],
            name=payload["name"],
            email=payload["email"]
        )
    except (jwt.PyJWTError, KeyError):
        raise UnauthorisedError("Invalid or expired token")


def get_product_service(session: AsyncSession = Depends(get_session)) -> ProductService:
    return ProductService(session)


def get_offer_service(session: AsyncSession = Depends(get_session)) -> OfferService:
    return OfferService(session)


def get_transaction_service(session: AsyncSession = Depends(get_session)) -> TransactionService:
    return TransactionService(session)


def get_producer(request: Request) -> KafkaProducer | None:
    return getattr(request.app.state, "producer", None)


class PageParams:
    def __init__(
        self,
        cursor: str | None = Query(None),
        limit: int = Query(Settings.PAGE_SIZE_DEFAULT, ge=1, le=Settings.PAGE_SIZE_MAX),
    ):
        self.cursor = Cursor.decode(cursor) if cursor else None
        self.limit = limit
