from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from marketplace.errors import DuplicateOfferError, VersionConflictError
from marketplace.models.auth import User
from marketplace.models.offers import CounterOffer, OfferStatus, ProposedBy, PENDING_OFFER_INDEX
from marketplace.models.product import Product, ProductStatus
from marketplace.utils.pagination import Cursor, after_cursor


def is_pending_offer_violation(exc: IntegrityError) -> bool:
    # postgres names the index; sqlite only lists the columns
    message = str(exc.orig)
    return (
        PENDING_OFFER_INDEX in message
        or "counter_offers.product_id, counter_offers.buyer_id" in message
    )


Seller = aliased(User, name="seller")
Buyer = aliased(User, name="buyer")

_offer_columns = (
    CounterOffer.id,
    CounterOffer.product_id,
    CounterOffer.buyer_id,
    CounterOffer.amount,
    CounterOffer.proposed_by,
    CounterOffer.status,
    CounterOffer.parent_offer_id,
    CounterOffer.created_at,
)

_offer_with_product_columns = (
    CounterOffer.id,
    CounterOffer.product_id,
    CounterOffer.buyer_id,
    CounterOffer.amount,
    CounterOffer.created_at,
    Product.name.label("product_name"),
    Product.price.label("product_price"),
)


class OffersRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _insert(self, offer: CounterOffer) -> CounterOffer:
        self.session.add(offer)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            if is_pending_offer_violation(exc):
                raise DuplicateOfferError(offer.product_id, offer.buyer_id) from exc
            raise
        return offer

    async def create(self, product_id: int, buyer_id: int, amount: int) -> CounterOffer:
        return await self._insert(
            CounterOffer(
                product_id=product_id,
                buyer_id=buyer_id,
                amount=amount,
                proposed_by=ProposedBy.buyer.value,
                status=OfferStatus.pending.value,
            )
        )

    async def find_by_id(self, offer_id: int):
        """Offer joined with the product fields needed to validate an action."""
        result = await self.session.execute(
            select(
                *_offer_columns,
                Product.seller_id,
                Product.status.label("product_status"),
                Product.price.label("listing_price"),
                Seller.name.label("seller_name"),
                Buyer.name.label("buyer_name"),
            )
            .join(Product, Product.id == CounterOffer.product_id)
            .join(Seller, Seller.id == Product.seller_id)
            .join(Buyer, Buyer.id == CounterOffer.buyer_id)
            .where(CounterOffer.id == offer_id)
        )
        return result.one_or_none()

    async def find_pending(self, product_id: int, buyer_id: int) -> int | None:
        return await self.session.scalar(
            select(CounterOffer.id)
            .where(
                CounterOffer.product_id == product_id,
                CounterOffer.buyer_id == buyer_id,
                CounterOffer.status == OfferStatus.pending.value,
            )
            .limit(1)
        )

    async def find_by_product(self, product_id: int):
        result = await self.session.execute(
            select(*_offer_columns, User.name.label("buyer_name"))
            .join(User, User.id == CounterOffer.buyer_id)
            .where(CounterOffer.product_id == product_id)
            .order_by(CounterOffer.created_at.asc(), CounterOffer.id.asc())
        )
        return result.all()

    async def counter(
        self,
        parent_id: int,
        product_id: int,
        buyer_id: int,
        amount: int,
        proposed_by: ProposedBy,
    ) -> CounterOffer:
        """Supersede ``parent_id`` with a new pending offer.

        Must run inside the caller's transaction so the parent update and the
        child insert commit together.
        """
        await self._transition(parent_id, OfferStatus.countered)
        return await self._insert(
            CounterOffer(
                product_id=product_id,
                buyer_id=buyer_id,
                amount=amount,
                proposed_by=proposed_by.value,
                status=OfferStatus.pending.value,
                parent_offer_id=parent_id,
            )
        )

    async def accept(self, offer_id: int) -> None:
        await self._transition(offer_id, OfferStatus.accepted)

    async def _transition(self, offer_id: int, new_status: OfferStatus) -> None:
        # only a pending offer may move; losing a race shows up as zero rows
        result = await self.session.execute(
            update(CounterOffer)
            .where(CounterOffer.id == offer_id, CounterOffer.status == OfferStatus.pending.value)
            .values(status=new_status.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise VersionConflictError("offer", offer_id)

    async def find_pending_for_seller(self, seller_id: int, cursor: Cursor | None = None, limit: int = 50):
        stmt = (
            select(*_offer_with_product_columns, User.name.label("buyer_name"))
            .join(Product, Product.id == CounterOffer.product_id)
            .join(User, User.id == CounterOffer.buyer_id)
            .where(
                Product.seller_id == seller_id,
                CounterOffer.status == OfferStatus.pending.value,
                CounterOffer.proposed_by == ProposedBy.buyer.value,
            )
        )
        return await self._page(stmt, cursor, limit)

    async def find_pending_for_buyer(self, buyer_id: int, cursor: Cursor | None = None, limit: int = 50):
        stmt = (
            select(*_offer_with_product_columns, Seller.name.label("seller_name"))
            .join(Product, Product.id == CounterOffer.product_id)
            .join(Seller, Seller.id == Product.seller_id)
            .where(
                CounterOffer.buyer_id == buyer_id,
                CounterOffer.status == OfferStatus.pending.value,
                CounterOffer.proposed_by == ProposedBy.seller.value,
            )
        )
        return await self._page(stmt, cursor, limit)

    async def find_accepted_for_buyer(self, buyer_id: int, cursor: Cursor | None = None, limit: int = 50):
        stmt = (
            select(*_offer_with_product_columns, Seller.name.label("seller_name"))
            .join(Product, Product.id == CounterOffer.product_id)
            .join(Seller, Seller.id == Product.seller_id)
            .where(
                CounterOffer.buyer_id == buyer_id,
                CounterOffer.status == OfferStatus.accepted.value,
                Product.status == ProductStatus.reserved.value,
            )
        )
        return await self._page(stmt, cursor, limit)

    async def _page(self, stmt, cursor: Cursor | None, limit: int):
        clause = after_cursor(CounterOffer.created_at, CounterOffer.id, cursor)
        if clause is not None:
            stmt = stmt.where(clause)
        stmt = stmt.order_by(CounterOffer.created_at.desc(), CounterOffer.id.desc()).limit(limit + 1)
        result = await self.session.execute(stmt)
        return result.all()
