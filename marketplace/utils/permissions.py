from dataclasses import dataclass

from marketplace.models.offers import OfferStatus, ProposedBy
from marketplace.models.product import ProductStatus


@dataclass(frozen=True)
class OfferPermissions:
    can_counter: bool
    can_accept: bool


@dataclass(frozen=True)
class ProductPermissions:
    can_purchase: bool
    can_make_initial_offer: bool


def resolve_role(user_id: int, buyer_id: int, seller_id: int) -> ProposedBy | None:
    """Which side of the negotiation ``user_id`` is on, if any."""
    if user_id == buyer_id:
        return ProposedBy.buyer
    if user_id == seller_id:
        return ProposedBy.seller
    return None


def is_users_turn(role: ProposedBy | None, proposed_by: str) -> bool:
    # the party that wrote the offer waits for the other side
    return role is not None and role.value != proposed_by


def compute_offer_permissions(
    offer_status: str,
    proposed_by: str,
    buyer_id: int,
    seller_id: int,
    product_status: str,
    user_id: int,
) -> OfferPermissions:
    role = resolve_role(user_id, buyer_id, seller_id)
    actionable = (
        offer_status == OfferStatus.pending.value
        and product_status != ProductStatus.sold.value
        and is_users_turn(role, proposed_by)
    )
    return OfferPermissions(can_counter=actionable, can_accept=actionable)


def compute_product_permissions(
    seller_id: int,
    product_status: str,
    reserved_by: int | None,
    user_id: int,
    has_pending_offer: bool,
) -> ProductPermissions:
    is_seller = user_id == seller_id
    is_available = product_status == ProductStatus.available.value
    reserved_for_user = product_status == ProductStatus.reserved.value and reserved_by == user_id

    return ProductPermissions(
        can_purchase=not is_seller and (is_available or reserved_for_user),
        can_make_initial_offer=is_available and not is_seller and not has_pending_offer,
    )
