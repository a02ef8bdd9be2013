import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.database import get_db_session
from atelier.orders.dependencies import OrderServiceDep
from atelier.payments.gateway import AbstractPaymentGateway, WompiGatewayClient
from atelier.payments.service import PaymentReconciliationService
from atelier.store_settings.dependencies import StoreSettingsServiceDep

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_gateway() -> AbstractPaymentGateway:
    return WompiGatewayClient()


def get_reconciliation_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    order_service: OrderServiceDep,
    gateway: Annotated[AbstractPaymentGateway, Depends(get_payment_gateway)],
    settings_service: StoreSettingsServiceDep,
) -> PaymentReconciliationService:
    """Fournit une instance du service de réconciliation des paiements."""
    logger.debug("Providing PaymentReconciliationService")
    return PaymentReconciliationService(
        db=db, order_service=order_service, gateway=gateway, settings_service=settings_service
    )


ReconciliationServiceDep = Annotated[PaymentReconciliationService, Depends(get_reconciliation_service)]
