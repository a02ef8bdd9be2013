from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from atelier.products.models import Color, Product, Size


class ProductVariantBase(SQLModel):
    product_id: int = Field(foreign_key="products.id", index=True)
    color_id: Optional[int] = Field(default=None, foreign_key="colors.id", index=True)
    size_id: Optional[int] = Field(default=None, foreign_key="sizes.id", index=True)
    sku: Optional[str] = Field(default=None, max_length=100, unique=True)
    # Prix spécifique à la variante; sinon le prix de base du produit s'applique
    price: Optional[int] = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)
    is_active: bool = Field(default=True)


class ProductVariant(ProductVariantBase, table=True):
    """Combinaison vendable (couleur x taille) d'un produit."""
    __tablename__ = "product_variants"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_product_variants_stock_positive"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    product: "Product" = Relationship()
    color: Optional["Color"] = Relationship()
    size: Optional["Size"] = Relationship()