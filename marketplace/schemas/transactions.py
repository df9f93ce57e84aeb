from typing import Optional

from pydantic import BaseModel, PositiveInt
from datetime import datetime


class TransactionRead(BaseModel):
    id: PositiveInt
    product_id: PositiveInt
    product_name: str
    buyer_name: str
    final_price: int
    offer_id: Optional[PositiveInt] = None
    created_at: datetime

    model_config = {"from_attributes": True}
