"""Counter and accept steps of the negotiation protocol.

Each (product, buyer) pair negotiates on its own chain of offers. Only the
party that did not write the current pending offer may act on it, and every
state change runs inside a single database transaction.
"""
import logging
from dataclasses import dataclass

from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.errors import (
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    ConflictError,
    DuplicateOfferError,
    VersionConflictError,
)
from marketplace.models.offers import CounterOffer, OfferStatus, ProposedBy
from marketplace.models.product import ProductStatus
from marketplace.repositories.base import Repositories
from marketplace.utils.pagination import Cursor, Page, extract_pagination
from marketplace.utils.permissions import is_users_turn, resolve_role

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class AcceptResult:
    success: bool
    offer_id: int
    amount: int


def validate_offer_action(offer, user_id: int, action: str) -> ProposedBy:
    """Check that ``user_id`` may ``action`` the offer and return their role."""
    if offer is None:
        raise NotFoundError("Offer not found")

    if offer.status != OfferStatus.pending.value:
        raise InvalidStateError("Offer is not pending")

    if offer.product_status == ProductStatus.sold.value:
        raise InvalidStateError("Product is already sold")

    role = resolve_role(user_id, offer.buyer_id, offer.seller_id)
    if role is None:
        raise ForbiddenError(f"Not authorised to {action} this offer")

    if not is_users_turn(role, offer.proposed_by):
        raise InvalidStateError(f"Cannot {action} your own offer")

    return role


class OfferService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repos = Repositories.for_session(session)

    async def counter_offer(self, offer_id: int, user_id: int, amount: int) -> CounterOffer:
        with tracer.start_as_current_span("counter_offer"):
            try:
                async with self.session.begin():
                    offer = await self.repos.offers.find_by_id(offer_id)
                    role = validate_offer_action(offer, user_id, "counter")
                    new_offer = await self.repos.offers.counter(
                        offer_id, offer.product_id, offer.buyer_id, amount, role
                    )
            except (VersionConflictError, DuplicateOfferError):
                logger.warning("Offer %s changed while user %s was countering it", offer_id, user_id)
                raise ConflictError("Offer was modified by another user")

            logger.info(
                "Offer %s countered by %s %s with %s (new offer %s)",
                offer_id, role.value, user_id, amount, new_offer.id,
            )
            return new_offer

    async def accept_offer(self, offer_id: int, user_id: int) -> AcceptResult:
        with tracer.start_as_current_span("accept_offer"):
            try:
                async with self.session.begin():
                    offer = await self.repos.offers.find_by_id(offer_id)
                    validate_offer_action(offer, user_id, "accept")

                    product = await self.repos.products.find_by_id(offer.product_id)
                    if product is None:
                        raise NotFoundError("Product not found")

                    # offer and reservation commit together or not at all
                    await self.repos.offers.accept(offer_id)
                    await self.repos.products.reserve(product.id, offer.buyer_id, product.version)
            except VersionConflictError as exc:
                logger.warning(
                    "Lost race accepting offer %s: %s %s changed", offer_id, exc.entity, exc.id
                )
                raise ConflictError(f"{exc.entity.capitalize()} was modified by another user")

            logger.info(
                "Offer %s accepted by %s; product %s reserved for buyer %s",
                offer_id, user_id, offer.product_id, offer.buyer_id,
            )
            return AcceptResult(success=True, offer_id=offer_id, amount=offer.amount)

    async def list_offers(
        self,
        user_id: int,
        status: str | None = None,
        seller: str | None = None,
        buyer: str | None = None,
        cursor: Cursor | None = None,
        limit: int = 50,
    ) -> Page:
        async with self.session.begin():
            if status == OfferStatus.pending.value:
                if seller == "me":
                    rows = await self.repos.offers.find_pending_for_seller(user_id, cursor, limit)
                    return extract_pagination(rows, limit)
                if buyer == "me":
                    rows = await self.repos.offers.find_pending_for_buyer(user_id, cursor, limit)
                    return extract_pagination(rows, limit)

            if status == OfferStatus.accepted.value and buyer == "me":
                rows = await self.repos.offers.find_accepted_for_buyer(user_id, cursor, limit)
                return extract_pagination(rows, limit)

        raise InvalidStateError("Invalid query parameters")
