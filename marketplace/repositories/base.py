from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.repositories.offers import OffersRepository
from marketplace.repositories.products import ProductsRepository
from marketplace.repositories.transactions import TransactionsRepository


@dataclass
class Repositories:
    products: ProductsRepository
    offers: OffersRepository
    transactions: TransactionsRepository

    @classmethod
    def for_session(cls, session: AsyncSession) -> "Repositories":
        return cls(
            products=ProductsRepository(session),
            offers=OffersRepository(session),
            transactions=TransactionsRepository(session),
        )
