from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

# minor currency units; 12.50 is sent as 1250
Cents = Annotated[int, Field(gt=0, strict=True)]


class AmountCreate(BaseModel):
    amount: Cents


class OfferRead(BaseModel):
    id: PositiveInt
    product_id: PositiveInt
    buyer_id: PositiveInt
    amount: int
    proposed_by: Literal["buyer", "seller"]
    status: Literal["pending", "countered", "accepted"]
    parent_offer_id: Optional[PositiveInt] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AcceptRead(BaseModel):
    success: bool
    offer_id: PositiveInt
    amount: int

    model_config = ConfigDict(from_attributes=True)


class OfferListItem(BaseModel):
    id: PositiveInt
    product_id: PositiveInt
    buyer_id: PositiveInt
    amount: int
    created_at: datetime
    product_name: str
    product_price: int
    buyer_name: Optional[str] = None
    seller_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class OfferPage(BaseModel):
    items: List[OfferListItem]
    has_more: bool
    next_cursor: Optional[str] = Field(None, description="Pass back as ?cursor= for the next page")
