from datetime import datetime

from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey

from caixa.models.store import Base


class Receivable(Base):
    __tablename__ = "receivables"

    id = Column(Integer, primary_key=True, index=True)
    store_id = Column(String(50), ForeignKey("stores.id"), nullable=False, index=True)
    client_name = Column(String(255), nullable=False)
    # Placa do veículo ou outra referência do cliente
    reference = Column(String(100), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    debit_date = Column(Date, nullable=False, index=True)

    # pending -> paid_pending_writeoff -> written_off
    status = Column(String(30), nullable=False, default="pending", index=True)

    origin_closing_id = Column(Integer, ForeignKey("closings.id"), nullable=False, index=True)
    payment_closing_id = Column(Integer, ForeignKey("closings.id"), nullable=True, index=True)
    effective_payment_date = Column(Date, nullable=True)
    writeoff_date = Column(DateTime, nullable=True)
    written_off_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
