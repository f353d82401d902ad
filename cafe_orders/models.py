from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(Integer, unique=True, nullable=False, index=True)  # human-facing, from order_sequences
    customer_id = Column(String, nullable=False, index=True)
    customer_name = Column(String, nullable=True)

    # Bill breakdown, stored exactly as computed at checkout
    subtotal = Column(Float, nullable=False, default=0.0)
    sgst = Column(Float, nullable=False, default=0.0)
    cgst = Column(Float, nullable=False, default=0.0)
    discount = Column(Float, nullable=False, default=0.0)
    tip = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False, default=0.0)
    per_person = Column(Float, nullable=False, default=0.0)

    payment_method = Column(String, nullable=False)  # upi/card/wallet/cash
    split_count = Column(Integer, nullable=False, default=1)

    # Lifecycle fields, only written through the lifecycle engine
    status = Column(String, nullable=False, default="placed", index=True)  # placed/in_preparation/completed
    paused = Column(Boolean, nullable=False, default=False)
    prep_time_minutes = Column(Integer, nullable=True)
    status_deadline = Column(DateTime(timezone=True), nullable=True)
    remaining_seconds = Column(Float, nullable=True)  # only set while paused
    status_changed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    # Composite index for the staff dashboard: filter by status, newest first
    __table_args__ = (
        Index("ix_orders_status_created_at", "status", "created_at"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)

    item_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    line_total = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")


class OrderSequence(Base):
    """
    Source of human-facing order numbers.

    One row per named sequence. next_value only ever grows, so a number is
    never handed out twice even if an order row disappears.
    """
    __tablename__ = "order_sequences"

    name = Column(String, primary_key=True)
    next_value = Column(Integer, nullable=False)
