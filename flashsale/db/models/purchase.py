from datetime import datetime
from enum import Enum
from sqlalchemy import DateTime, Integer, String, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column
from flashsale.db.base import Base, TimestampMixin


class PurchaseStatus(str, Enum):
    CONFIRMED = "confirmed"


class Purchase(Base, TimestampMixin):
    """
    Append only ledger row, one per successful reservation.
    Rows are never updated and survive deletion of their sale.
    """
    __table_args__ = (
        # the user purchase marker in redis already enforces this, a second row means the atomic step is broken
        UniqueConstraint("flash_sale_id", "user_id", name="uq_purchase_sale_user"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    flash_sale_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[PurchaseStatus] = mapped_column(
        SAEnum(PurchaseStatus), default=PurchaseStatus.CONFIRMED, nullable=False)
