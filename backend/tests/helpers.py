"""Outils partagés par les tests (passerelle factice, construction des services, payloads)."""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional
from unittest.mock import AsyncMock

from sqlalchemy.ext.asyncio import AsyncSession

from atelier.orders.repositories import SQLAlchemyOrderRepository
from atelier.orders.service import OrderService
from atelier.orders.state_machine import OrderStateMachine
from atelier.payments.gateway import AbstractPaymentGateway
from atelier.payments.models import TransactionDetails
from atelier.stock.service import StockResolver
from atelier.stock_movements.ledger import InventoryLedger
from atelier.store_settings.models import GatewayCredentials
from atelier.store_settings.service import StoreSettingsService

# 10h00 à Bogotá le 14 mars 2025
FIXED_NOW = datetime(2025, 3, 14, 15, 0, tzinfo=timezone.utc)

WHITE = "#FFFFFF"
BLACK = "#000000"


class FakePaymentGateway(AbstractPaymentGateway):
    """Passerelle en mémoire: les tests y déposent les transactions à retourner."""

    def __init__(self):
        self.transactions: Dict[str, TransactionDetails] = {}
        self.calls = []

    async def get_transaction_details(
        self, transaction_id: str, credentials: GatewayCredentials
    ) -> Optional[TransactionDetails]:
        self.calls.append(transaction_id)
        return self.transactions.get(transaction_id)


@dataclass
class Catalog:
    """Identifiants du catalogue de test (capturés avant tout rollback)."""
    regular_product_id: int
    regular_variant_id: int
    black_variant_id: int
    template_product_id: int
    template_variant_id: int
    mug_input_variant_id: int
    ink_input_variant_id: int


def build_order_service(
    db_session: AsyncSession, notifier: AsyncMock, clock: Optional[Callable[[], datetime]] = None
) -> OrderService:
    repository = SQLAlchemyOrderRepository(db_session)
    resolver = StockResolver(db_session)
    ledger = InventoryLedger(db_session)
    return OrderService(
        db=db_session,
        order_repository=repository,
        resolver=resolver,
        ledger=ledger,
        state_machine=OrderStateMachine(repository=repository, ledger=ledger, resolver=resolver),
        settings_service=StoreSettingsService(db_session),
        notification_service=notifier,
        clock=clock or (lambda: FIXED_NOW),
    )


def shipping_payload(**overrides) -> dict:
    data = {
        "name": "Ana Compradora",
        "phone": "3001234567",
        "email": "ana@example.com",
        "address": "Calle 10 # 20-30",
        "city": "Medellín",
    }
    data.update(overrides)
    return data


def order_payload(items: list, payment_method: str = "wompi", **overrides) -> dict:
    data = {"items": items, "shipping": shipping_payload(), "payment_method": payment_method}
    data.update(overrides)
    return data


def regular_line(catalog: Catalog, quantity: int = 1, color: str = WHITE, size: str = "M") -> dict:
    return {"product_id": catalog.regular_product_id, "size": size, "color": color, "quantity": quantity}


def template_line(catalog: Catalog, quantity: int = 1) -> dict:
    return {"product_id": catalog.template_product_id, "size": "Mediana", "color": WHITE.lower(), "quantity": quantity}


async def reload(db_session: AsyncSession, model, obj_id):
    """Relit une ligne depuis la base, même après un rollback."""
    return await db_session.get(model, obj_id, populate_existing=True)
