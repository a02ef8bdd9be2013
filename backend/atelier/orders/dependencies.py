import logging
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.database import get_db_session
from atelier.notifications.dependencies import NotificationServiceDep
from atelier.orders.interfaces.repositories import AbstractOrderRepository
from atelier.orders.repositories import SQLAlchemyOrderRepository
from atelier.orders.service import OrderService
from atelier.orders.state_machine import OrderStateMachine
from atelier.stock.dependencies import StockResolverDep
from atelier.stock_movements.dependencies import InventoryLedgerDep
from atelier.store_settings.dependencies import StoreSettingsServiceDep

logger = logging.getLogger(__name__)

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_order_repository(session: SessionDep) -> AbstractOrderRepository:
    """Fournit une instance du repository de commandes."""
    logger.debug("Providing SQLAlchemyOrderRepository")
    return SQLAlchemyOrderRepository(db_session=session)


OrderRepositoryDep = Annotated[AbstractOrderRepository, Depends(get_order_repository)]


def get_order_state_machine(
    repository: OrderRepositoryDep,
    ledger: InventoryLedgerDep,
    resolver: StockResolverDep,
) -> OrderStateMachine:
    return OrderStateMachine(repository=repository, ledger=ledger, resolver=resolver)


OrderStateMachineDep = Annotated[OrderStateMachine, Depends(get_order_state_machine)]


def get_order_service(
    session: SessionDep,
    repository: OrderRepositoryDep,
    resolver: StockResolverDep,
    ledger: InventoryLedgerDep,
    state_machine: OrderStateMachineDep,
    settings_service: StoreSettingsServiceDep,
    notification_service: NotificationServiceDep,
) -> OrderService:
    """Fournit une instance de OrderService avec ses dépendances."""
    logger.debug("Providing OrderService")
    return OrderService(
        db=session,
        order_repository=repository,
        resolver=resolver,
        ledger=ledger,
        state_machine=state_machine,
        settings_service=settings_service,
        notification_service=notification_service,
    )


OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
