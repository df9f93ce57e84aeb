from typing import Literal

from fastapi import APIRouter, Depends, Path, Query, status

from marketplace.dependencies import (
    PageParams,
    get_current_user,
    get_producer,
    get_product_service,
)
from marketplace.kafka import KafkaProducer, publish
from marketplace.schemas.auth import TokenData
from marketplace.schemas.offers import AmountCreate, OfferRead
from marketplace.schemas.product import (
    ProductCreate, ProductCreated, ProductDetailsRead, ProductRead,
    PurchaseCreate, PurchaseRead, SellerProductPage,
)
from marketplace.services.product import ProductService


router = APIRouter(
    prefix="/products",
    tags=["products"],
)


@router.post(
    "/",
    response_model=ProductCreated,
    status_code=status.HTTP_201_CREATED
)
async def create_product(
        data: ProductCreate,
        current_user: TokenData = Depends(get_current_user),
        service: ProductService = Depends(get_product_service),
):
    return await service.create_product(
        seller_id=current_user.user_id,
        name=data.name,
        description=data.description,
        price=data.price,
    )


@router.get(
    "/",
    response_model=SellerProductPage,
)
async def list_my_products(
        seller: Literal["me"] = Query(...),
        page: PageParams = Depends(),
        current_user: TokenData = Depends(get_current_user),
        service: ProductService = Depends(get_product_service),
):
    result = await service.list_seller_products(current_user.user_id, page.cursor, page.limit)
    return SellerProductPage(items=result.items, has_more=result.has_more, next_cursor=result.next_cursor)


@router.get(
    "/{product_id}/",
    response_model=ProductDetailsRead,
    status_code=status.HTTP_200_OK
)
async def get_product(
        product_id: int = Path(..., gt=0),
        current_user: TokenData = Depends(get_current_user),
        service: ProductService = Depends(get_product_service),
):
    details = await service.get_product_details(product_id, current_user.user_id)
    return ProductDetailsRead(
        **ProductRead.model_validate(details.product).model_dump(),
        seller_name=details.seller_name,
        offers=details.offers,
        can_purchase=details.can_purchase,
        can_make_initial_offer=details.can_make_initial_offer,
    )


@router.post(
    "/{product_id}/offers/",
    response_model=OfferRead,
    status_code=status.HTTP_201_CREATED,
)
async def make_offer(
        data: AmountCreate,
        product_id: int = Path(..., gt=0),
        current_user: TokenData = Depends(get_current_user),
        service: ProductService = Depends(get_product_service),
        producer: KafkaProducer | None = Depends(get_producer),
):
    offer = await service.create_initial_offer(product_id, current_user.user_id, data.amount)
    await publish(
        producer, "offer_created",
        offer_id=offer.id, product_id=product_id, buyer_id=current_user.user_id, amount=offer.amount,
    )
    return offer


@router.post(
    "/{product_id}/purchase/",
    response_model=PurchaseRead,
    status_code=status.HTTP_200_OK,
)
async def purchase(
        data: PurchaseCreate,
        product_id: int = Path(..., gt=0),
        current_user: TokenData = Depends(get_current_user),
        service: ProductService = Depends(get_product_service),
        producer: KafkaProducer | None = Depends(get_producer),
):
    result = await service.purchase_product(product_id, current_user.user_id, data.offer_id)
    await publish(
        producer, "product_sold",
        product_id=product_id, buyer_id=current_user.user_id, offer_id=data.offer_id,
        transaction_id=result.transaction_id, final_price=result.final_price,
    )
    return result
