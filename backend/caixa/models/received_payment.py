from sqlalchemy import Column, Integer, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from caixa.models.store import Base


class ReceivedPayment(Base):
    __tablename__ = "received_payments"
    __table_args__ = (
        # Uma conta a receber só pode ser paga uma vez
        UniqueConstraint("receivable_id", name="uq_received_payment_receivable"),
    )

    id = Column(Integer, primary_key=True, index=True)
    closing_id = Column(Integer, ForeignKey("closings.id", ondelete="CASCADE"), nullable=False, index=True)
    receivable_id = Column(Integer, ForeignKey("receivables.id"), nullable=False, index=True)
    amount_received = Column(Numeric(10, 2), nullable=False)

    receivable = relationship("Receivable")
