from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    JSON,
    DateTime,
    ForeignKey,
    Text,
    Index,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


# --- Catalog (read-only for the ordering engine) ---

class Product(Base):
    """
    A drink on the menu. Catalog CRUD lives outside this service; the ordering
    engine only reads rows through services.catalog.
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False, index=True)  # 'hot', 'iced', 'frappe'
    base_price = Column(Float, nullable=False)
    sizes = Column(JSON, nullable=False, default=list)     # [{"name": "small", "price_modifier": -0.5}, ...]
    add_ons = Column(JSON, nullable=False, default=list)   # [{"name": "Extra Shot", "price": 0.75}, ...]
    available = Column(Boolean, nullable=False, default=True)


# --- Orders ---

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(String, nullable=False, index=True)  # conversation identity (e.g. Telegram user id)
    status = Column(String, nullable=False, default="created", index=True)  # created/awaiting_pickup/completed/cancelled
    total_price = Column(Float, nullable=False, default=0.0)
    pickup_estimate = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")
    token = relationship("RedemptionToken", back_populates="order", uselist=False)

    __table_args__ = (
        Index("ix_orders_status_created_at", "status", "created_at"),
    )


class OrderItem(Base):
    """
    One priced line of an order. Prices are captured at finalize time and are
    never re-read from the catalog.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)
    product_name = Column(String, nullable=False)
    category = Column(String, nullable=False)

    size = Column(String, nullable=False)
    sugar_level = Column(String, nullable=False)
    ice_level = Column(String, nullable=True)
    add_ons = Column(JSON, nullable=False, default=list)  # [{"name": ..., "price": ...}]

    base_price = Column(Float, nullable=False)
    size_price_modifier = Column(Float, nullable=False, default=0.0)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    line_total = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")


class RedemptionToken(Base):
    """
    Single-use pickup token bound 1:1 to an order. The order is referenced by
    id; the token string is the only thing a customer ever sees.
    """
    __tablename__ = "redemption_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String, unique=True, nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)
    redeemed = Column(Boolean, nullable=False, default=False)
    redeemed_at = Column(DateTime(timezone=True), nullable=True)
    invalidated_at = Column(DateTime(timezone=True), nullable=True)  # set when the order is cancelled
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="token")


# --- Conversation session persistence ---

class CustomerSession(Base):
    """
    Persists conversation sessions so they survive server restarts.
    """
    __tablename__ = "customer_sessions"

    id = Column(Integer, primary_key=True, index=True)
    identity = Column(String, unique=True, nullable=False, index=True)

    state = Column(String, nullable=False, default="browsing")

    # In-progress customization as JSON (null when nothing is being built)
    customization = Column(JSON, nullable=True)

    # Epoch seconds of the last accepted interaction, used for idle expiry
    last_activity = Column(Float, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
