import logging

from sqlalchemy.orm import Session

from caixa.core.stores import DEFAULT_STORES
from caixa.models.store import Store
from caixa.models.user import User

logger = logging.getLogger(__name__)


def seed_stores(db: Session) -> None:
    """Insert the default stores that are missing; existing rows are left alone."""
    existing = {store_id for (store_id,) in db.query(Store.id).all()}
    missing = [Store(id=sid, name=name) for sid, name in DEFAULT_STORES.items() if sid not in existing]
    if not missing:
        return
    db.add_all(missing)
    db.commit()
    logger.info("Seeded stores: %s", ", ".join(s.id for s in missing))


def seed_demo(db: Session) -> None:
    seed_stores(db)
    if db.query(User).filter(User.email == "operador@capao.dev").first():
        return
    db.add_all([
        User(email="operador@capao.dev", store_id="capao", operator_name="Operador Capão"),
        User(email="operador@guapiara.dev", store_id="guapiara"),
        User(email="admin@caixa.dev", store_id="admin", operator_name="Administração", is_admin=True),
    ])
    db.commit()
