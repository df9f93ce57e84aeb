from datetime import datetime
from enum import Enum

from sqlalchemy import String, Integer, ForeignKey, TIMESTAMP, CheckConstraint, Index, text
from sqlalchemy.orm import Mapped, mapped_column
from marketplace.database import Base
from marketplace.models.product import utcnow


class OfferStatus(str, Enum):
    pending = "pending"
    countered = "countered"
    accepted = "accepted"


class ProposedBy(str, Enum):
    buyer = "buyer"
    seller = "seller"


PENDING_OFFER_INDEX = "idx_one_pending_per_buyer"


class CounterOffer(Base):
    __tablename__ = "counter_offers"
    __table_args__ = (
        # one pending offer per (product, buyer), checked by the store at write time
        Index(
            PENDING_OFFER_INDEX,
            "product_id",
            "buyer_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        CheckConstraint("proposed_by IN ('buyer', 'seller')", name="chk_proposed_by"),
        CheckConstraint("status IN ('pending', 'countered', 'accepted')", name="chk_offer_status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    buyer_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # cents
    proposed_by: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=OfferStatus.pending.value)
    parent_offer_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("counter_offers.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)
