import logging
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from atelier.config import settings
from atelier.core.schemas import utc_now
from atelier.notifications.service import NotificationService
from atelier.orders.config import (
    ORDER_CANCELLED_BY_CUSTOMER_NOTE,
    ORDER_CREATED_NOTE,
    ORDER_STATUS_LABELS,
    ORDER_STATUS_MESSAGES,
)
from atelier.orders.constants import ORDER_REFERENCE_TYPE, OrderStatus
from atelier.orders.exceptions import (
    OrderCancellationNotAllowedException,
    OrderCreationFailedException,
    OrderNotFoundException,
)
from atelier.orders.interfaces.repositories import AbstractOrderRepository
from atelier.orders.models import (
    Order,
    OrderCreate,
    OrderItem,
    OrderItemCreate,
    OrderListFilters,
    OrderRead,
    OrderStats,
    OrderStatusHistory,
    OrderStatusUpdate,
    PaginatedOrderResponse,
)
from atelier.orders.state_machine import OrderStateMachine
from atelier.orders.utils import compute_totals, format_order_number, to_order_read
from atelier.product_variants.exceptions import VariantNotFoundException
from atelier.products.exceptions import ProductInactiveException, ProductNotFoundException
from atelier.products.models import ProductKind
from atelier.stock.service import ResolvedLine, StockResolver
from atelier.stock_movements.ledger import InventoryLedger
from atelier.stock_movements.models import MovementType
from atelier.store_settings.service import StoreSettingsService

logger = logging.getLogger(__name__)


class OrderService:
    """Service applicatif des commandes: création, consultation et cycle de vie.

    Chaque opération d'écriture est une unité de travail unique: elle valide
    (commit) en fin de parcours ou annule tout (rollback) au premier échec.
    """

    def __init__(
        self,
        db: AsyncSession,
        order_repository: AbstractOrderRepository,
        resolver: StockResolver,
        ledger: InventoryLedger,
        state_machine: OrderStateMachine,
        settings_service: StoreSettingsService,
        notification_service: NotificationService,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.order_repository = order_repository
        self.resolver = resolver
        self.ledger = ledger
        self.state_machine = state_machine
        self.settings_service = settings_service
        self.notification_service = notification_service
        self.clock = clock

    # --- Création ---

    async def _resolve_item(self, item_in: OrderItemCreate) -> ResolvedLine:
        try:
            resolved = await self.resolver.resolve_line(item_in.product_id, item_in.size, item_in.color)
        except ProductNotFoundException as e:
            raise OrderCreationFailedException(e.message)
        except VariantNotFoundException as e:
            raise OrderCreationFailedException(e.message)

        if not resolved.product.is_active:
            logger.warning(f"[OrderService] Produit inactif {resolved.product.id} dans le panier.")
            raise ProductInactiveException(resolved.product.name)
        return resolved

    async def create_order(self, user_id: int, order_data: OrderCreate) -> OrderRead:
        """Valide le panier, calcule les montants et enregistre la commande en une transaction."""
        logger.info(f"[OrderService] Création commande pour user {user_id} ({len(order_data.items)} ligne(s))")
        pricing = await self.settings_service.get_pricing_config()

        lines: List[Tuple[OrderItemCreate, ResolvedLine]] = []
        requested_per_variant: Dict[int, int] = defaultdict(int)
        subtotal = 0
        for item_in in order_data.items:
            resolved = await self._resolve_item(item_in)
            requested_per_variant[resolved.variant.id] += item_in.quantity
            await self.resolver.ensure_available(resolved, requested_per_variant[resolved.variant.id])
            subtotal += resolved.unit_price * item_in.quantity
            lines.append((item_in, resolved))

        totals = compute_totals(subtotal, pricing)
        business_day = self.clock().astimezone(ZoneInfo(settings.STORE_TIMEZONE)).date()

        try:
            sequence = await self.order_repository.next_sequence_value(business_day)
            order = Order(
                order_number=format_order_number(business_day, sequence),
                user_id=user_id,
                subtotal=totals.subtotal,
                shipping_cost=totals.shipping_cost,
                tax=totals.tax,
                total=totals.total,
                status=OrderStatus.PENDING,
                payment_method=order_data.payment_method,
                payment_ref=order_data.payment_ref,
                shipping=order_data.shipping.model_dump(mode="json"),
                notes=order_data.notes,
                items=[
                    OrderItem(
                        product_id=resolved.product.id,
                        product_variant_id=resolved.variant.id,
                        product_name=resolved.product.name,
                        product_image=resolved.product.main_image,
                        size=item_in.size,
                        color=item_in.color,
                        quantity=item_in.quantity,
                        unit_price=resolved.unit_price,
                        customization=item_in.customization.model_dump(exclude_none=True) if item_in.customization else None,
                    )
                    for item_in, resolved in lines
                ],
                status_history=[OrderStatusHistory(status=OrderStatus.PENDING, note=ORDER_CREATED_NOTE)],
            )
            await self.order_repository.add(order)

            # Les lignes TEMPLATE ne consomment leurs intrants qu'au paiement
            for item_in, resolved in lines:
                if resolved.product.kind != ProductKind.REGULAR:
                    continue
                await self.ledger.apply_variant_delta(
                    resolved.variant.id,
                    -item_in.quantity,
                    MovementType.SALE,
                    reference_type=ORDER_REFERENCE_TYPE,
                    reference_id=order.id,
                    reason=f"Vente commande {order.order_number}",
                    label=resolved.product.name,
                )
            order_id = order.id
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"[OrderService] Échec création commande pour user {user_id}: {e}")
            raise

        created = await self.order_repository.get_by_id(order_id)
        logger.info(f"[OrderService] Commande {created.order_number} créée (total {created.total}).")
        await self.notify_status(created)
        return to_order_read(created)

    # --- Lecture ---

    async def _get_owned_order(self, order: Optional[Order], user_id: Optional[int], **identifier) -> Order:
        # Une commande d'un autre acheteur est traitée comme inexistante
        if order is None or (user_id is not None and order.user_id != user_id):
            logger.warning(f"[OrderService] Commande {identifier} introuvable pour user {user_id}.")
            raise OrderNotFoundException(**identifier)
        return order

    async def get_order_model(self, order_id: int, user_id: Optional[int] = None) -> Order:
        order = await self.order_repository.get_by_id(order_id)
        return await self._get_owned_order(order, user_id, order_id=order_id)

    async def get_order_model_by_number(self, order_number: str, user_id: Optional[int] = None) -> Order:
        order = await self.order_repository.get_by_number(order_number)
        return await self._get_owned_order(order, user_id, order_number=order_number)

    async def get_order_by_id(self, order_id: int, user_id: Optional[int] = None) -> OrderRead:
        return to_order_read(await self.get_order_model(order_id, user_id))

    async def get_order_by_number(self, order_number: str, user_id: Optional[int] = None) -> OrderRead:
        return to_order_read(await self.get_order_model_by_number(order_number, user_id))

    async def list_orders(self, filters: OrderListFilters, limit: int, offset: int) -> PaginatedOrderResponse:
        orders, total = await self.order_repository.list(filters, limit=limit, offset=offset)
        return PaginatedOrderResponse(items=[to_order_read(o) for o in orders], total=total)

    async def list_user_orders(
        self, user_id: int, limit: int, offset: int, status: Optional[OrderStatus] = None
    ) -> PaginatedOrderResponse:
        return await self.list_orders(OrderListFilters(user_id=user_id, status=status), limit=limit, offset=offset)

    async def get_order_stats(self) -> OrderStats:
        by_status = await self.order_repository.count_by_status()
        revenue = await self.order_repository.sum_revenue()
        return OrderStats(total=sum(by_status.values()), by_status=by_status, revenue=revenue)

    # --- Cycle de vie ---

    async def update_order_status(self, order_id: int, update: OrderStatusUpdate) -> OrderRead:
        """Changement de statut par un administrateur."""
        order = await self.get_order_model(order_id)
        try:
            await self.state_machine.transition(
                order,
                update.status,
                note=update.notes,
                tracking_number=update.tracking_number,
                tracking_url=update.tracking_url,
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.warning(f"[OrderService] Changement de statut refusé pour commande {order_id}: {e}")
            raise

        updated = await self.order_repository.get_by_id(order_id)
        await self.notify_status(updated)
        return to_order_read(updated)

    async def cancel_order(self, order_id: int, user_id: int) -> OrderRead:
        """Annulation par l'acheteur, possible uniquement tant que la commande est en attente."""
        order = await self.get_order_model(order_id, user_id)
        if order.status != OrderStatus.PENDING:
            raise OrderCancellationNotAllowedException(order.order_number, order.status)
        try:
            await self.state_machine.transition(order, OrderStatus.CANCELLED, note=ORDER_CANCELLED_BY_CUSTOMER_NOTE)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.warning(f"[OrderService] Annulation refusée pour commande {order_id}: {e}")
            raise

        cancelled = await self.order_repository.get_by_id(order_id)
        logger.info(f"[OrderService] Commande {cancelled.order_number} annulée par le client {user_id}.")
        await self.notify_status(cancelled)
        return to_order_read(cancelled)

    async def notify_status(
        self, order: Order, message: Optional[str] = None, status_label: Optional[str] = None
    ) -> bool:
        shipping = order.shipping or {}
        email = shipping.get("email") or (order.user.email if order.user else None)
        return await self.notification_service.notify_order_status(
            email=email,
            order_number=order.order_number,
            status=order.status.value,
            message=message or ORDER_STATUS_MESSAGES[order.status],
            customer_name=shipping.get("name") or (order.user.name if order.user else None),
            status_label=status_label or ORDER_STATUS_LABELS[order.status],
        )
