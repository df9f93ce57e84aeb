from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.errors import VersionConflictError
from marketplace.models.offers import CounterOffer, OfferStatus, ProposedBy
from marketplace.models.product import Product, ProductStatus, utcnow
from marketplace.utils.pagination import Cursor, after_cursor


class ProductsRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, product_id: int) -> Product | None:
        # populate_existing: the version must come from the store, not the identity map
        return await self.session.scalar(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )

    async def create(self, seller_id: int, name: str, description: str | None, price: int) -> Product:
        product = Product(
            seller_id=seller_id,
            name=name,
            description=description,
            price=price,
            status=ProductStatus.available.value,
            version=1,
        )
        self.session.add(product)
        await self.session.flush()
        return product

    async def find_by_seller(self, seller_id: int, cursor: Cursor | None = None, limit: int = 50):
        stmt = select(Product).where(Product.seller_id == seller_id)
        clause = after_cursor(Product.created_at, Product.id, cursor)
        if clause is not None:
            stmt = stmt.where(clause)
        stmt = stmt.order_by(Product.created_at.desc(), Product.id.desc()).limit(limit + 1)
        result = await self.session.scalars(stmt)
        return result.all()

    async def count_pending_by_products(self, product_ids: list[int]) -> dict[int, int]:
        if not product_ids:
            return {}
        result = await self.session.execute(
            select(CounterOffer.product_id, func.count(CounterOffer.id))
            .where(
                CounterOffer.product_id.in_(product_ids),
                CounterOffer.status == OfferStatus.pending.value,
                CounterOffer.proposed_by == ProposedBy.buyer.value,
            )
            .group_by(CounterOffer.product_id)
        )
        return {product_id: count for product_id, count in result.all()}

    async def _conditional_update(self, product_id: int, expected_version: int, **values) -> None:
        result = await self.session.execute(
            update(Product)
            .where(Product.id == product_id, Product.version == expected_version)
            .values(version=expected_version + 1, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise VersionConflictError("product", product_id)

    async def reserve(self, product_id: int, buyer_id: int, expected_version: int) -> None:
        await self._conditional_update(
            product_id,
            expected_version,
            status=ProductStatus.reserved.value,
            reserved_by=buyer_id,
        )

    async def mark_sold(self, product_id: int, expected_version: int) -> None:
        await self._conditional_update(
            product_id,
            expected_version,
            status=ProductStatus.sold.value,
            reserved_by=None,
        )
