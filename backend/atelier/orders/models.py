from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field as PydanticField
from sqlalchemy import JSON, DateTime
from sqlmodel import Field, Relationship, SQLModel

from atelier.core.schemas import PaginatedResponse, utc_now
from atelier.orders.constants import MAX_ITEMS_PER_ORDER, OrderStatus, PaymentMethod

if TYPE_CHECKING:
    from atelier.users.models import User


# --- Modèles de table ---

class OrderItem(SQLModel, table=True):
    """Ligne de commande: instantané du produit au moment de l'achat."""
    __tablename__ = "order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    product_variant_id: int = Field(foreign_key="product_variants.id", index=True)
    product_name: str = Field(max_length=255)
    product_image: Optional[str] = Field(default=None, max_length=500)
    size: str = Field(max_length=50)
    color: str = Field(max_length=50)
    quantity: int = Field(gt=0)
    unit_price: int = Field(ge=0)
    customization: Optional[Dict[str, Any]] = Field(default=None, sa_type=JSON)

    order: "Order" = Relationship(back_populates="items")

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity


class OrderStatusHistory(SQLModel, table=True):
    """Entrée d'historique de statut, jamais modifiée après insertion."""
    __tablename__ = "order_status_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    status: OrderStatus
    note: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)

    order: "Order" = Relationship(back_populates="status_history")


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(max_length=30, unique=True, index=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    # Montants en pesos
    subtotal: int
    shipping_cost: int = 0
    discount: int = 0
    tax: int = 0
    total: int

    status: OrderStatus = Field(default=OrderStatus.PENDING, index=True)
    payment_method: PaymentMethod
    payment_ref: Optional[str] = Field(default=None, max_length=100, index=True)
    # Copie figée de l'adresse de livraison
    shipping: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    notes: Optional[str] = Field(default=None, max_length=1000)
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    tracking_url: Optional[str] = Field(default=None, max_length=500)

    paid_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    shipped_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    delivered_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)

    user: Optional["User"] = Relationship()
    items: List[OrderItem] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "OrderItem.id"},
    )
    status_history: List[OrderStatusHistory] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "OrderStatusHistory.id"},
    )


class OrderSequence(SQLModel, table=True):
    """Compteur journalier des numéros de commande."""
    __tablename__ = "order_sequences"

    sequence_date: date = Field(primary_key=True)
    last_value: int = Field(default=0)


# --- Schémas API: création ---

class ShippingInfo(BaseModel):
    name: str = PydanticField(min_length=2, max_length=150)
    phone: str = PydanticField(min_length=7, max_length=30)
    email: EmailStr
    address: str = PydanticField(min_length=5, max_length=255)
    city: str = PydanticField(min_length=2, max_length=100)
    department: Optional[str] = None
    postal_code: Optional[str] = None
    country: str = "Colombia"
    notes: Optional[str] = None


class OrderItemCustomization(BaseModel):
    text: Optional[str] = None
    image: Optional[str] = None
    position: Optional[str] = None
    notes: Optional[str] = None


class OrderItemCreate(BaseModel):
    product_id: int = PydanticField(gt=0)
    size: str = PydanticField(min_length=1, max_length=50)
    color: str = PydanticField(min_length=1, max_length=50)
    quantity: int = PydanticField(gt=0)
    customization: Optional[OrderItemCustomization] = None


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = PydanticField(min_length=1, max_length=MAX_ITEMS_PER_ORDER)
    shipping: ShippingInfo
    payment_method: PaymentMethod
    payment_ref: Optional[str] = PydanticField(default=None, max_length=100)
    notes: Optional[str] = PydanticField(default=None, max_length=1000)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    tracking_number: Optional[str] = PydanticField(default=None, max_length=100)
    tracking_url: Optional[str] = PydanticField(default=None, max_length=500)
    notes: Optional[str] = PydanticField(default=None, max_length=500)


class OrderListFilters(BaseModel):
    status: Optional[OrderStatus] = None
    user_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None
    sort_by: Literal["created_at", "total", "status", "order_number"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


# --- Schémas API: lecture ---

class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product_variant_id: int
    product_name: str
    product_image: Optional[str] = None
    size: str
    color: str
    quantity: int
    unit_price: int
    subtotal: int
    customization: Optional[Dict[str, Any]] = None


class StatusHistoryEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: OrderStatus
    note: Optional[str] = None
    created_at: datetime


class OrderRead(BaseModel):
    id: int
    order_number: str
    user_id: int
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    items: List[OrderItemRead]
    subtotal: int
    shipping_cost: int
    discount: int
    tax: int
    total: int
    status: OrderStatus
    status_label: str
    payment_method: PaymentMethod
    payment_ref: Optional[str] = None
    shipping: Dict[str, Any]
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    notes: Optional[str] = None
    status_history: List[StatusHistoryEntry]
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class PaginatedOrderResponse(PaginatedResponse[OrderRead]):
    pass


class OrderStats(BaseModel):
    total: int
    by_status: Dict[OrderStatus, int]
    revenue: int
