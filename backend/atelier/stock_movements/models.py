from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from atelier.core.schemas import utc_now


class MovementType(str, Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    RETURN = "RETURN"
    DAMAGE = "DAMAGE"
    INITIAL = "INITIAL"


# Les mouvements sont un historique immuable: créés une fois, jamais modifiés ni supprimés.

class VariantMovementBase(SQLModel):
    variant_id: int = Field(foreign_key="product_variants.id", index=True)
    movement_type: MovementType
    # Delta signé appliqué au stock
    quantity: int
    previous_stock: int
    new_stock: int
    reference_type: Optional[str] = Field(default=None, max_length=50)
    reference_id: Optional[int] = Field(default=None, index=True)
    reason: Optional[str] = Field(default=None, max_length=500)


class VariantMovement(VariantMovementBase, table=True):
    __tablename__ = "variant_movements"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False, index=True)


class VariantMovementRead(VariantMovementBase):
    id: int
    created_at: datetime


class InputMovementBase(SQLModel):
    input_variant_id: int = Field(foreign_key="input_variants.id", index=True)
    movement_type: MovementType
    quantity: Decimal = Field(max_digits=12, decimal_places=3)
    previous_stock: Decimal = Field(max_digits=12, decimal_places=3)
    new_stock: Decimal = Field(max_digits=12, decimal_places=3)
    reference_type: Optional[str] = Field(default=None, max_length=50)
    reference_id: Optional[int] = Field(default=None, index=True)
    reason: Optional[str] = Field(default=None, max_length=500)


class InputMovement(InputMovementBase, table=True):
    __tablename__ = "input_movements"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False, index=True)


class InputMovementRead(InputMovementBase):
    id: int
    created_at: datetime
