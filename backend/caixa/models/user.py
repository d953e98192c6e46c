from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from caixa.models.store import Base


class User(Base):
    """Perfil do usuário; a autenticação em si é externa."""
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), index=True, nullable=False)
    store_id = Column(String(50), ForeignKey("stores.id", ondelete="SET NULL"), nullable=True, index=True)
    operator_name = Column(String(255), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)

    store = relationship("Store")
