from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.auth import User
from marketplace.models.product import Product
from marketplace.models.transactions import Transaction


class TransactionsRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        product_id: int,
        buyer_id: int,
        seller_id: int,
        final_price: int,
        offer_id: int | None = None,
    ) -> Transaction:
        transaction = Transaction(
            product_id=product_id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            final_price=final_price,
            offer_id=offer_id,
        )
        self.session.add(transaction)
        await self.session.flush()
        return transaction

    async def find_by_seller(self, seller_id: int):
        result = await self.session.execute(
            select(
                Transaction.id,
                Transaction.product_id,
                Product.name.label("product_name"),
                User.name.label("buyer_name"),
                Transaction.final_price,
                Transaction.offer_id,
                Transaction.created_at,
            )
            .join(Product, Product.id == Transaction.product_id)
            .join(User, User.id == Transaction.buyer_id)
            .where(Transaction.seller_id == seller_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        )
        return result.all()
