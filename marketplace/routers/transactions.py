from fastapi import APIRouter, Depends

from marketplace.dependencies import get_current_user, get_transaction_service
from marketplace.schemas.auth import TokenData
from marketplace.schemas.transactions import TransactionRead
from marketplace.services.transactions import TransactionService

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get(
    "/",
    response_model=list[TransactionRead]
)
async def get_sales_history(
    current_user: TokenData = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service)
):
    return await service.list_seller_transactions(current_user.user_id)
