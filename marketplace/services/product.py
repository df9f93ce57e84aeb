import logging
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.errors import (
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    ConflictError,
    AlreadyExistsError,
    DuplicateOfferError,
    VersionConflictError,
)
from marketplace.models.auth import User
from marketplace.models.offers import CounterOffer, OfferStatus
from marketplace.models.product import Product, ProductStatus
from marketplace.repositories.base import Repositories
from marketplace.utils.pagination import Cursor, Page, extract_pagination
from marketplace.utils.permissions import compute_offer_permissions, compute_product_permissions

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DUPLICATE_OFFER_MESSAGE = "You already have a pending offer on this product"


@dataclass(frozen=True)
class PurchaseResult:
    transaction_id: int
    final_price: int


@dataclass
class ProductDetails:
    product: Product
    seller_name: str | None
    offers: list[dict[str, Any]] = field(default_factory=list)
    can_purchase: bool = False
    can_make_initial_offer: bool = False


class ProductService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repos = Repositories.for_session(session)

    async def create_product(
        self, seller_id: int, name: str, price: int, description: str | None = None
    ) -> Product:
        async with self.session.begin():
            product = await self.repos.products.create(seller_id, name, description, price)
        logger.info("Product %s listed by seller %s at %s", product.id, seller_id, price)
        return product

    async def list_seller_products(
        self, seller_id: int, cursor: Cursor | None = None, limit: int = 50
    ) -> Page:
        async with self.session.begin():
            rows = await self.repos.products.find_by_seller(seller_id, cursor, limit)
            page = extract_pagination(rows, limit)
            counts = await self.repos.products.count_pending_by_products([p.id for p in page.items])

        page.items = [
            {
                "id": p.id,
                "name": p.name,
                "price": p.price,
                "status": p.status,
                "created_at": p.created_at,
                "offer_count": counts.get(p.id, 0),
            }
            for p in page.items
        ]
        return page

    async def get_product_details(self, product_id: int, user_id: int) -> ProductDetails:
        async with self.session.begin():
            product = await self.repos.products.find_by_id(product_id)
            if product is None:
                raise NotFoundError("Product not found")
            offers = await self.repos.offers.find_by_product(product_id)
            seller = await self.session.get(User, product.seller_id)

        has_pending = any(
            o.buyer_id == user_id and o.status == OfferStatus.pending.value for o in offers
        )
        permissions = compute_product_permissions(
            product.seller_id, product.status, product.reserved_by, user_id, has_pending
        )

        offer_items = []
        for o in offers:
            offer_permissions = compute_offer_permissions(
                o.status, o.proposed_by, o.buyer_id, product.seller_id, product.status, user_id
            )
            offer_items.append(
                {
                    **o._asdict(),
                    "can_counter": offer_permissions.can_counter,
                    "can_accept": offer_permissions.can_accept,
                }
            )

        return ProductDetails(
            product=product,
            seller_name=seller.name if seller else None,
            offers=offer_items,
            can_purchase=permissions.can_purchase,
            can_make_initial_offer=permissions.can_make_initial_offer,
        )

    async def create_initial_offer(self, product_id: int, buyer_id: int, amount: int) -> CounterOffer:
        with tracer.start_as_current_span("create_initial_offer"):
            try:
                async with self.session.begin():
                    product = await self.repos.products.find_by_id(product_id)
                    if product is None:
                        raise NotFoundError("Product not found")

                    if product.status == ProductStatus.sold.value:
                        raise InvalidStateError("Product is already sold")

                    if product.status == ProductStatus.reserved.value:
                        raise InvalidStateError("Product is reserved")

                    if product.seller_id == buyer_id:
                        raise InvalidStateError("Cannot make an offer on your own product")

                    if await self.repos.offers.find_pending(product_id, buyer_id) is not None:
                        raise AlreadyExistsError(DUPLICATE_OFFER_MESSAGE)

                    # the pre-check above is racy; the partial unique index decides
                    offer = await self.repos.offers.create(product_id, buyer_id, amount)
            except DuplicateOfferError:
                logger.warning(
                    "Concurrent duplicate offer by buyer %s on product %s rejected", buyer_id, product_id
                )
                raise AlreadyExistsError(DUPLICATE_OFFER_MESSAGE)

            logger.info("Buyer %s offered %s on product %s (offer %s)", buyer_id, amount, product_id, offer.id)
            return offer

    async def purchase_product(
        self, product_id: int, buyer_id: int, offer_id: int | None = None
    ) -> PurchaseResult:
        with tracer.start_as_current_span("purchase_product"):
            try:
                async with self.session.begin():
                    product = await self.repos.products.find_by_id(product_id)
                    if product is None:
                        raise NotFoundError("Product not found")

                    if product.status == ProductStatus.sold.value:
                        raise InvalidStateError("Product is already sold")

                    if product.seller_id == buyer_id:
                        raise InvalidStateError("Cannot purchase your own product")

                    if product.status == ProductStatus.reserved.value and product.reserved_by != buyer_id:
                        raise ForbiddenError("Product is reserved for another buyer")

                    final_price = product.price
                    resolved_offer_id = None
                    if offer_id is not None:
                        offers = await self.repos.offers.find_by_product(product_id)
                        accepted = next(
                            (
                                o for o in offers
                                if o.id == offer_id
                                and o.status == OfferStatus.accepted.value
                                and o.buyer_id == buyer_id
                            ),
                            None,
                        )
                        if accepted is None:
                            raise InvalidStateError("Invalid or non-accepted offer")
                        final_price = accepted.amount
                        resolved_offer_id = accepted.id

                    # sale and transaction record commit together or not at all
                    await self.repos.products.mark_sold(product_id, product.version)
                    transaction = await self.repos.transactions.create(
                        product_id, buyer_id, product.seller_id, final_price, resolved_offer_id
                    )
            except VersionConflictError:
                logger.warning("Lost purchase race on product %s for buyer %s", product_id, buyer_id)
                raise ConflictError("Product was modified by another user")

            logger.info(
                "Product %s sold to buyer %s for %s (transaction %s)",
                product_id, buyer_id, final_price, transaction.id,
            )
            return PurchaseResult(transaction_id=transaction.id, final_price=final_price)
