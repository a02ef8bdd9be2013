"""
Modèles des intrants (matières premières) et des recettes des produits TEMPLATE.

Un produit TEMPLATE n'a pas de stock propre: sa quantité vendable est dérivée
du stock des variantes d'intrants requises par la recette de sa variante.
"""
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from atelier.products.models import Color, Size


class Input(SQLModel, table=True):
    __tablename__ = "inputs"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255, index=True)
    unit: str = Field(default="unidad", max_length=20)


class InputVariantBase(SQLModel):
    input_id: int = Field(foreign_key="inputs.id", index=True)
    color_id: Optional[int] = Field(default=None, foreign_key="colors.id")
    size_id: Optional[int] = Field(default=None, foreign_key="sizes.id")
    current_stock: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=3)
    is_active: bool = Field(default=True)


class InputVariant(InputVariantBase, table=True):
    __tablename__ = "input_variants"
    __table_args__ = (CheckConstraint("current_stock >= 0", name="ck_input_variants_stock_positive"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    input: Input = Relationship()
    color: Optional["Color"] = Relationship()
    size: Optional["Size"] = Relationship()


class TemplateRecipe(SQLModel, table=True):
    """Quantité d'une variante d'intrant consommée par unité d'une variante TEMPLATE."""
    __tablename__ = "template_recipes"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_template_recipes_quantity_positive"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    variant_id: int = Field(foreign_key="product_variants.id", index=True)
    input_variant_id: int = Field(foreign_key="input_variants.id", index=True)
    quantity: Decimal = Field(max_digits=12, decimal_places=3)

    input_variant: InputVariant = Relationship()
