# storage.py  (order ledger)
from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column, Session
from datetime import datetime, timezone

from db import Base

# ---- ORM tables ----
class OrderORM(Base):
    __tablename__ = "orders"
    order_uuid: Mapped[str] = mapped_column(String, primary_key=True, index=True)
    authorized: Mapped[bool] = mapped_column(Boolean, default=False)
    rolled_back: Mapped[bool] = mapped_column(Boolean, default=False)
    tag_holder_name: Mapped[str | None] = mapped_column(String, nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[str] = mapped_column(String, index=True)
    updated_at: Mapped[str] = mapped_column(String)

# ---- helpers ----
def now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

def get_order(db: Session, order_uuid: str) -> OrderORM | None:
    return db.get(OrderORM, order_uuid)

def record_authorization(
    db: Session,
    order_uuid: str,
    authorized: bool,
    tag_holder_name: str | None = None,
    error_code: str | None = None,
) -> OrderORM:
    # upsert: a repeated attempt for the same order overwrites the previous outcome
    order = get_order(db, order_uuid)
    stamp = now_iso()
    if order is None:
        order = OrderORM(order_uuid=order_uuid, rolled_back=False, created_at=stamp)
        db.add(order)
    order.authorized = authorized
    order.tag_holder_name = tag_holder_name
    order.transaction_id = order_uuid if authorized else None
    order.error_code = error_code
    order.updated_at = stamp
    db.commit()
    db.refresh(order)
    return order

def mark_rolled_back(db: Session, order_uuid: str) -> OrderORM:
    order = get_order(db, order_uuid)
    stamp = now_iso()
    if order is None:
        # rolled back remotely but authorized before this process started
        order = OrderORM(order_uuid=order_uuid, authorized=True, created_at=stamp)
        db.add(order)
    order.rolled_back = True
    order.updated_at = stamp
    db.commit()
    db.refresh(order)
    return order
