import logging
from typing import Any, Dict, Optional

from fastcrud import FastCRUD
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core.schemas import PaginatedResponse
from atelier.stock_movements.models import (
    InputMovement,
    InputMovementRead,
    MovementType,
    VariantMovement,
    VariantMovementRead,
)

logger = logging.getLogger(__name__)


class PaginatedVariantMovementResponse(PaginatedResponse[VariantMovementRead]):
    pass


class PaginatedInputMovementResponse(PaginatedResponse[InputMovementRead]):
    pass


def _build_filters(
    movement_type: Optional[MovementType],
    reference_type: Optional[str],
    reference_id: Optional[int],
) -> Dict[str, Any]:
    filters: Dict[str, Any] = {}
    if movement_type is not None:
        filters["movement_type"] = movement_type
    if reference_type:
        filters["reference_type"] = reference_type
    if reference_id is not None:
        filters["reference_id"] = reference_id
    return filters


class StockMovementService:
    """Consultation (lecture seule) du journal des mouvements de stock."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.variant_crud = FastCRUD(VariantMovement)
        self.input_crud = FastCRUD(InputMovement)

    async def list_variant_movements(
        self,
        limit: int,
        offset: int,
        variant_id: Optional[int] = None,
        movement_type: Optional[MovementType] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
    ) -> PaginatedVariantMovementResponse:
        filters = _build_filters(movement_type, reference_type, reference_id)
        if variant_id is not None:
            filters["variant_id"] = variant_id
        logger.debug(f"[StockMovementService] Mouvements variantes: filters={filters}, limit={limit}, offset={offset}")

        result = await self.variant_crud.get_multi(
            db=self.db,
            offset=offset,
            limit=limit,
            schema_to_select=VariantMovementRead,
            return_as_model=True,
            sort_columns=["created_at", "id"],
            sort_orders=["desc", "desc"],
            **filters,
        )
        return PaginatedVariantMovementResponse(items=result["data"], total=result["total_count"])

    async def list_input_movements(
        self,
        limit: int,
        offset: int,
        input_variant_id: Optional[int] = None,
        movement_type: Optional[MovementType] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
    ) -> PaginatedInputMovementResponse:
        filters = _build_filters(movement_type, reference_type, reference_id)
        if input_variant_id is not None:
            filters["input_variant_id"] = input_variant_id
        logger.debug(f"[StockMovementService] Mouvements intrants: filters={filters}, limit={limit}, offset={offset}")

        result = await self.input_crud.get_multi(
            db=self.db,
            offset=offset,
            limit=limit,
            schema_to_select=InputMovementRead,
            return_as_model=True,
            sort_columns=["created_at", "id"],
            sort_orders=["desc", "desc"],
            **filters,
        )
        return PaginatedInputMovementResponse(items=result["data"], total=result["total_count"])
