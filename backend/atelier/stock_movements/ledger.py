"""
Journal des mouvements de stock.

Chaque variation de stock passe par ce module: l'UPDATE atomique sur la ligne de
stock et l'insertion du mouvement correspondant se font dans la transaction de
l'appelant. Le nouveau stock enregistré est celui renvoyé par la base (RETURNING),
jamais une valeur calculée plus tôt dans la requête.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.inputs.exceptions import InputVariantNotFoundException
from atelier.inputs.models import Input, InputVariant
from atelier.product_variants.exceptions import VariantNotFoundException
from atelier.product_variants.models import ProductVariant
from atelier.stock.exceptions import InsufficientInputStockException, InsufficientStockException
from atelier.stock_movements.models import InputMovement, MovementType, VariantMovement

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Applique des deltas de stock et journalise un mouvement par opération."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def apply_variant_delta(
        self,
        variant_id: int,
        delta: int,
        movement_type: MovementType,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        reason: Optional[str] = None,
        label: Optional[str] = None,
    ) -> VariantMovement:
        """Ajoute `delta` (signé) au stock d'une variante. Un retrait ne passe jamais sous zéro."""
        stmt = update(ProductVariant).where(ProductVariant.id == variant_id)
        if delta < 0:
            stmt = stmt.where(ProductVariant.stock >= -delta)
        stmt = stmt.values(stock=ProductVariant.stock + delta).returning(ProductVariant.stock, ProductVariant.min_stock)

        row = (await self.db.execute(stmt)).one_or_none()
        if row is None:
            current = await self.db.scalar(select(ProductVariant.stock).where(ProductVariant.id == variant_id))
            if current is None:
                raise VariantNotFoundException(variant_id=variant_id)
            logger.warning(f"[InventoryLedger] Retrait refusé sur variante {variant_id}: demandé {-delta}, disponible {current}")
            raise InsufficientStockException(label or f"variante {variant_id}", requested=-delta, available=current)
        new_stock, min_stock = row
        if delta < 0 and new_stock <= min_stock:
            logger.warning(f"[InventoryLedger] Stock bas sur variante {variant_id}: {new_stock} (seuil {min_stock})")

        movement = VariantMovement(
            variant_id=variant_id,
            movement_type=movement_type,
            quantity=delta,
            previous_stock=new_stock - delta,
            new_stock=new_stock,
            reference_type=reference_type,
            reference_id=reference_id,
            reason=reason,
        )
        self.db.add(movement)
        await self.db.flush()
        logger.debug(f"[InventoryLedger] Variante {variant_id}: {movement.previous_stock} -> {new_stock} ({movement_type.value})")
        return movement

    async def apply_input_delta(
        self,
        input_variant_id: int,
        delta: Decimal,
        movement_type: MovementType,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> InputMovement:
        """Ajoute `delta` (signé) au stock d'une variante d'intrant."""
        delta = Decimal(delta)
        stmt = update(InputVariant).where(InputVariant.id == input_variant_id)
        if delta < 0:
            stmt = stmt.where(InputVariant.current_stock >= -delta)
        stmt = stmt.values(current_stock=InputVariant.current_stock + delta).returning(InputVariant.current_stock)

        new_stock = (await self.db.execute(stmt)).scalar_one_or_none()
        if new_stock is None:
            row = (await self.db.execute(
                select(InputVariant.current_stock, Input.name)
                .join(Input, Input.id == InputVariant.input_id)
                .where(InputVariant.id == input_variant_id)
            )).first()
            if row is None:
                raise InputVariantNotFoundException(input_variant_id)
            logger.warning(f"[InventoryLedger] Retrait refusé sur intrant {input_variant_id}: requis {-delta}, disponible {row.current_stock}")
            raise InsufficientInputStockException(row.name, required=-delta, available=row.current_stock)

        new_stock = Decimal(new_stock)
        movement = InputMovement(
            input_variant_id=input_variant_id,
            movement_type=movement_type,
            quantity=delta,
            previous_stock=new_stock - delta,
            new_stock=new_stock,
            reference_type=reference_type,
            reference_id=reference_id,
            reason=reason,
        )
        self.db.add(movement)
        await self.db.flush()
        logger.debug(f"[InventoryLedger] Intrant {input_variant_id}: {movement.previous_stock} -> {new_stock} ({movement_type.value})")
        return movement

    async def input_movements_for(
        self,
        reference_type: str,
        reference_id: int,
        movement_type: MovementType,
    ) -> List[InputMovement]:
        """Mouvements d'intrants d'un type donné rattachés à une référence (ex: ventes d'une commande)."""
        stmt = (
            select(InputMovement)
            .where(
                InputMovement.reference_type == reference_type,
                InputMovement.reference_id == reference_id,
                InputMovement.movement_type == movement_type,
            )
            .order_by(InputMovement.id)
        )
        return list((await self.db.execute(stmt)).scalars().all())
