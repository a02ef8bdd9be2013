import logging
from typing import Annotated, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, status

from atelier.auth.dependencies import get_current_admin_user
from atelier.config import settings
from atelier.stock_movements.dependencies import StockMovementServiceDep
from atelier.stock_movements.models import MovementType
from atelier.stock_movements.service import PaginatedInputMovementResponse, PaginatedVariantMovementResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Stock Movements"],
    dependencies=[Depends(get_current_admin_user)],
)


def get_pagination_params(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
) -> Tuple[int, int]:
    return limit, offset


PaginationParams = Annotated[Tuple[int, int], Depends(get_pagination_params)]


def handle_stock_movement_service_errors(e: Exception):
    logger.error(f"[StockMovement API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Erreur interne lors de la lecture des mouvements de stock.",
    )


@router.get("/variants", response_model=PaginatedVariantMovementResponse)
async def list_variant_movements(
    service: StockMovementServiceDep,
    pagination: PaginationParams,
    variant_id: Optional[int] = Query(None, description="Filtrer par variante de produit"),
    movement_type: Optional[MovementType] = Query(None),
    reference_type: Optional[str] = Query(None, description="Ex: order"),
    reference_id: Optional[int] = Query(None),
):
    """Liste les mouvements de stock des variantes de produits (Admin requis)."""
    limit, offset = pagination
    try:
        return await service.list_variant_movements(
            limit=limit,
            offset=offset,
            variant_id=variant_id,
            movement_type=movement_type,
            reference_type=reference_type,
            reference_id=reference_id,
        )
    except Exception as e:
        handle_stock_movement_service_errors(e)


@router.get("/inputs", response_model=PaginatedInputMovementResponse)
async def list_input_movements(
    service: StockMovementServiceDep,
    pagination: PaginationParams,
    input_variant_id: Optional[int] = Query(None, description="Filtrer par variante d'intrant"),
    movement_type: Optional[MovementType] = Query(None),
    reference_type: Optional[str] = Query(None),
    reference_id: Optional[int] = Query(None),
):
    """Liste les mouvements de stock des intrants (Admin requis)."""
    limit, offset = pagination
    try:
        return await service.list_input_movements(
            limit=limit,
            offset=offset,
            input_variant_id=input_variant_id,
            movement_type=movement_type,
            reference_type=reference_type,
            reference_id=reference_id,
        )
    except Exception as e:
        handle_stock_movement_service_errors(e)
