from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.repositories.base import Repositories


class TransactionService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repos = Repositories.for_session(session)

    async def list_seller_transactions(self, seller_id: int):
        async with self.session.begin():
            return await self.repos.transactions.find_by_seller(seller_id)
