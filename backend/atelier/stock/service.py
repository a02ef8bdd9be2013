"""
Résolution d'une ligne de panier vers sa variante et calcul de la quantité vendable.

Lecture pure: aucune écriture n'est faite ici. Le calcul de disponibilité dépend
de la nature du produit (ProductKind) et passe par une table de dispatch unique.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from atelier.inputs.models import InputVariant, TemplateRecipe
from atelier.product_variants.exceptions import VariantNotFoundException
from atelier.product_variants.models import ProductVariant
from atelier.products.exceptions import ProductNotFoundException
from atelier.products.models import Product, ProductKind
from atelier.stock.exceptions import InsufficientStockException

logger = logging.getLogger(__name__)


@dataclass
class ResolvedLine:
    product: Product
    variant: ProductVariant
    # Vide pour un produit REGULAR
    recipe: List[TemplateRecipe] = field(default_factory=list)

    @property
    def unit_price(self) -> int:
        return self.variant.price if self.variant.price is not None else self.product.base_price


def _matches(variant: ProductVariant, size: str, color: str) -> bool:
    color_match = (
        variant.color is not None
        and variant.color.hex_code is not None
        and variant.color.hex_code.lower() == color.strip().lower()
    )
    wanted_size = size.strip().lower()
    size_match = variant.size is not None and (
        variant.size.name.lower() == wanted_size
        or (variant.size.abbreviation or "").lower() == wanted_size
    )
    return color_match and size_match


class StockResolver:
    """Trouve la variante d'une ligne de commande et sa disponibilité."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._availability: Dict[ProductKind, Callable[[ResolvedLine], Awaitable[int]]] = {
            ProductKind.REGULAR: self._regular_availability,
            ProductKind.TEMPLATE: self._template_availability,
        }

    async def get_product(self, product_id: int) -> Product:
        product = await self.db.get(Product, product_id, populate_existing=True)
        if product is None:
            logger.warning(f"[StockResolver] Produit {product_id} introuvable.")
            raise ProductNotFoundException(product_id)
        return product

    async def find_variant(self, product: Product, size: str, color: str) -> Optional[ProductVariant]:
        stmt = (
            select(ProductVariant)
            .where(ProductVariant.product_id == product.id, ProductVariant.is_active.is_(True))
            .options(selectinload(ProductVariant.color), selectinload(ProductVariant.size))
            .order_by(ProductVariant.id)
            .execution_options(populate_existing=True)
        )
        variants = (await self.db.execute(stmt)).scalars().all()
        return next((v for v in variants if _matches(v, size, color)), None)

    async def load_recipe(self, variant_id: int) -> List[TemplateRecipe]:
        stmt = (
            select(TemplateRecipe)
            .where(TemplateRecipe.variant_id == variant_id)
            .options(selectinload(TemplateRecipe.input_variant).selectinload(InputVariant.input))
            .order_by(TemplateRecipe.id)
            .execution_options(populate_existing=True)
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def resolve_line(self, product_id: int, size: str, color: str) -> ResolvedLine:
        """Résout (produit, taille, couleur) vers la variante correspondante."""
        product = await self.get_product(product_id)
        variant = await self.find_variant(product, size, color)
        if variant is None:
            logger.warning(f"[StockResolver] Aucune variante pour produit {product_id} (taille={size}, couleur={color}).")
            raise VariantNotFoundException(product_name=product.name, size=size, color=color)

        recipe = await self.load_recipe(variant.id) if product.kind == ProductKind.TEMPLATE else []
        return ResolvedLine(product=product, variant=variant, recipe=recipe)

    async def available_quantity(self, resolved: ResolvedLine) -> int:
        return await self._availability[resolved.product.kind](resolved)

    async def ensure_available(self, resolved: ResolvedLine, requested: int) -> int:
        available = await self.available_quantity(resolved)
        if requested > available:
            raise InsufficientStockException(resolved.product.name, requested=requested, available=available)
        return available

    async def _regular_availability(self, resolved: ResolvedLine) -> int:
        return resolved.variant.stock

    async def _template_availability(self, resolved: ResolvedLine) -> int:
        if not resolved.recipe:
            logger.warning(f"[StockResolver] Variante TEMPLATE {resolved.variant.id} sans recette: disponibilité nulle.")
            return 0
        quantities = []
        for line in resolved.recipe:
            input_variant = line.input_variant
            if input_variant is None or not input_variant.is_active:
                return 0
            quantities.append(math.floor(input_variant.current_stock / line.quantity))
        return max(min(quantities), 0)
