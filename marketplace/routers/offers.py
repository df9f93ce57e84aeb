from typing import Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from marketplace.dependencies import (
    PageParams,
    get_current_user,
    get_offer_service,
    get_producer,
)
from marketplace.kafka import KafkaProducer, publish
from marketplace.schemas.auth import TokenData
from marketplace.schemas.offers import AcceptRead, AmountCreate, OfferPage, OfferRead
from marketplace.services.offer import OfferService


router = APIRouter(
    prefix="/offers",
    tags=["offers"],
)


@router.get(
    "/",
    response_model=OfferPage,
)
async def list_offers(
        status_: Optional[Literal["pending", "accepted"]] = Query(None, alias="status"),
        seller: Optional[Literal["me"]] = Query(None),
        buyer: Optional[Literal["me"]] = Query(None),
        page: PageParams = Depends(),
        current_user: TokenData = Depends(get_current_user),
        service: OfferService = Depends(get_offer_service),
):
    result = await service.list_offers(
        current_user.user_id,
        status=status_,
        seller=seller,
        buyer=buyer,
        cursor=page.cursor,
        limit=page.limit,
    )
    return OfferPage(items=result.items, has_more=result.has_more, next_cursor=result.next_cursor)


@router.post(
    "/{offer_id}/counter/",
    response_model=OfferRead,
    status_code=status.HTTP_201_CREATED,
)
async def counter_offer(
        data: AmountCreate,
        offer_id: int = Path(..., gt=0),
        current_user: TokenData = Depends(get_current_user),
        service: OfferService = Depends(get_offer_service),
        producer: KafkaProducer | None = Depends(get_producer),
):
    offer = await service.counter_offer(offer_id, current_user.user_id, data.amount)
    await publish(
        producer, "offer_countered",
        offer_id=offer.id, parent_offer_id=offer_id, product_id=offer.product_id,
        proposed_by=offer.proposed_by, amount=offer.amount,
    )
    return offer


@router.post(
    "/{offer_id}/accept/",
    response_model=AcceptRead,
    status_code=status.HTTP_200_OK,
)
async def accept_offer(
        offer_id: int = Path(..., gt=0),
        current_user: TokenData = Depends(get_current_user),
        service: OfferService = Depends(get_offer_service),
        producer: KafkaProducer | None = Depends(get_producer),
):
    result = await service.accept_offer(offer_id, current_user.user_id)
    await publish(
        producer, "offer_accepted",
        offer_id=offer_id, accepted_by=current_user.user_id, amount=result.amount,
    )
    return result
