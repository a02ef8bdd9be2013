from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, DateTime
from sqlmodel import Field, SQLModel

from atelier.core.schemas import utc_now


class ProductKind(str, Enum):
    """Nature du produit: stock propre (REGULAR) ou fabriqué à partir d'intrants (TEMPLATE)."""
    REGULAR = "REGULAR"
    TEMPLATE = "TEMPLATE"


# --- Couleurs et tailles partagées par produits et intrants ---

class Color(SQLModel, table=True):
    __tablename__ = "colors"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=50)
    hex_code: str = Field(max_length=20, index=True)


class Size(SQLModel, table=True):
    __tablename__ = "sizes"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=50)
    abbreviation: Optional[str] = Field(default=None, max_length=10)


# --- Modèle Product SQLModel ---

class ProductBase(SQLModel):
    name: str = Field(index=True, max_length=255)
    kind: ProductKind = Field(default=ProductKind.REGULAR)
    # Prix en pesos (unité monétaire entière)
    base_price: int = Field(ge=0)
    images: Optional[List[str]] = Field(default=None, sa_type=JSON)
    is_active: bool = Field(default=True)


class Product(ProductBase, table=True):
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)

    @property
    def main_image(self) -> Optional[str]:
        return self.images[0] if self.images else None
