from datetime import datetime

from pydantic import BaseModel, Field, PositiveInt, ConfigDict, NonNegativeInt
from typing import Optional, List, Annotated, Literal

from marketplace.schemas.offers import Cents


ProductStatus = Literal["available", "reserved", "sold"]


class ProductCreate(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=255)]
    description: Annotated[Optional[str], Field(None, max_length=2000)]
    price: Cents


class ProductCreated(BaseModel):
    id: PositiveInt

    model_config = ConfigDict(from_attributes=True)


class ProductRead(BaseModel):
    id: PositiveInt
    seller_id: PositiveInt
    name: str
    description: Optional[str] = None
    price: int
    status: ProductStatus
    reserved_by: Optional[PositiveInt] = None
    version: PositiveInt
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True,
                              extra="ignore")


class ProductOffer(BaseModel):
    id: PositiveInt
    buyer_id: PositiveInt
    buyer_name: str
    amount: int
    proposed_by: Literal["buyer", "seller"]
    status: Literal["pending", "countered", "accepted"]
    parent_offer_id: Optional[PositiveInt] = None
    created_at: datetime
    can_counter: bool
    can_accept: bool


class ProductDetailsRead(ProductRead):
    seller_name: Optional[str] = None
    offers: List[ProductOffer] = []
    can_purchase: bool
    can_make_initial_offer: bool


class SellerProduct(BaseModel):
    id: PositiveInt
    name: str
    price: int
    status: ProductStatus
    created_at: datetime
    offer_count: NonNegativeInt = Field(..., description="Pending offers waiting for the seller")


class SellerProductPage(BaseModel):
    items: List[SellerProduct]
    has_more: bool
    next_cursor: Optional[str] = None


class PurchaseCreate(BaseModel):
    offer_id: Optional[PositiveInt] = None


class PurchaseRead(BaseModel):
    transaction_id: PositiveInt
    final_price: int

    model_config = ConfigDict(from_attributes=True)
