from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import String, Integer, ForeignKey, TIMESTAMP, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
from marketplace.database import Base


class ProductStatus(str, Enum):
    available = "available"
    reserved = "reserved"
    sold = "sold"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("status IN ('available', 'reserved', 'sold')", name="chk_status"),
        CheckConstraint("version >= 1", name="chk_version"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    seller_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)  # cents
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProductStatus.available.value, index=True
    )
    reserved_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    # concurrency token, bumped by every status / reserved_by write
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)
