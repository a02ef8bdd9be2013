import logging
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.database import get_db_session
from atelier.stock_movements.ledger import InventoryLedger
from atelier.stock_movements.service import StockMovementService

logger = logging.getLogger(__name__)


def get_inventory_ledger(db: Annotated[AsyncSession, Depends(get_db_session)]) -> InventoryLedger:
    return InventoryLedger(db)


def get_stock_movement_service(
    db: Annotated[AsyncSession, Depends(get_db_session)]
) -> StockMovementService:
    """Fournit une instance du service de consultation des mouvements de stock."""
    logger.debug("Providing StockMovementService")
    return StockMovementService(db=db)


InventoryLedgerDep = Annotated[InventoryLedger, Depends(get_inventory_ledger)]
StockMovementServiceDep = Annotated[StockMovementService, Depends(get_stock_movement_service)]
