from datetime import datetime

from sqlalchemy import Column, Integer, Numeric, ForeignKey, Date, DateTime, String, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from caixa.models.store import Base


class Closing(Base):
    __tablename__ = "closings"
    __table_args__ = (
        UniqueConstraint("store_id", "closing_date", name="uq_closing_store_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    closing_date = Column(Date, nullable=False, index=True)
    store_id = Column(String(50), ForeignKey("stores.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    operator_name = Column(String(255), nullable=True)

    # {"carro": 3, "moto": 1} - só quantidades > 0
    common_entries = Column(JSON, nullable=False, default=dict)
    # {"pix": 10.0, "card": 0.0, "deposit": 0.0}
    electronic_entries = Column(JSON, nullable=False, default=dict)
    calculated_totals = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    exits = relationship(
        "OperationalExit",
        back_populates="closing",
        cascade="all, delete-orphan",
        order_by="OperationalExit.id",
    )


class OperationalExit(Base):
    __tablename__ = "closing_operational_exits"

    id = Column(Integer, primary_key=True, index=True)
    closing_id = Column(Integer, ForeignKey("closings.id", ondelete="CASCADE"), nullable=False, index=True)
    scope = Column(String(20), nullable=False, default="store")  # "store" or "admin"
    name = Column(String(255), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_date = Column(Date, nullable=False)

    closing = relationship("Closing", back_populates="exits")
