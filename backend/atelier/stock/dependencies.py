from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.database import get_db_session
from atelier.stock.service import StockResolver


def get_stock_resolver(db: Annotated[AsyncSession, Depends(get_db_session)]) -> StockResolver:
    return StockResolver(db)


StockResolverDep = Annotated[StockResolver, Depends(get_stock_resolver)]
