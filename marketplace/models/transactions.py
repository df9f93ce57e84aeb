from datetime import datetime
from sqlalchemy import Integer, ForeignKey, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from marketplace.database import Base
from marketplace.models.product import utcnow

class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("products.id"), nullable=False, unique=True)
    buyer_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    seller_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    final_price: Mapped[int] = mapped_column(Integer, nullable=False)  # cents
    offer_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("counter_offers.id"), nullable=True)  # null for direct purchase
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)
