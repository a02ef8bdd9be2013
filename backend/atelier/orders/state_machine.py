"""
Machine à états des commandes.

Toute modification du statut d'une commande passe par `OrderStateMachine.transition`:
vérification de la transition, mise à jour conditionnelle (compare-and-set sur le
statut courant), effets de bord sur le stock puis ajout d'une entrée d'historique.
Rien n'est validé ici: la transaction appartient à l'appelant.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from atelier.core.schemas import utc_now
from atelier.orders.config import ALLOWED_TRANSITIONS, ORDER_STATUS_LABELS
from atelier.orders.constants import ORDER_REFERENCE_TYPE, OrderStatus
from atelier.orders.exceptions import ConcurrentStatusChangeException, InvalidStatusTransitionException
from atelier.orders.interfaces.repositories import AbstractOrderRepository
from atelier.orders.models import Order, OrderItem
from atelier.products.models import ProductKind
from atelier.stock.service import StockResolver
from atelier.stock_movements.ledger import InventoryLedger
from atelier.stock_movements.models import MovementType

logger = logging.getLogger(__name__)

# Statuts après lesquels les intrants des lignes TEMPLATE ont été consommés
INPUTS_CONSUMED_STATUSES = frozenset({OrderStatus.PAID, OrderStatus.PROCESSING})


def is_transition_allowed(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition_allowed(current: OrderStatus, target: OrderStatus) -> None:
    if not is_transition_allowed(current, target):
        raise InvalidStatusTransitionException(current=current, attempted=target)


class OrderStateMachine:

    def __init__(self, repository: AbstractOrderRepository, ledger: InventoryLedger, resolver: StockResolver):
        self.repository = repository
        self.ledger = ledger
        self.resolver = resolver
        self._side_effects: Dict[OrderStatus, Callable[[Order, OrderStatus], Awaitable[None]]] = {
            OrderStatus.PAID: self._consume_inputs,
            OrderStatus.CANCELLED: self._restore_stock,
        }
        self._consume_line: Dict[ProductKind, Callable[[Order, OrderItem], Awaitable[None]]] = {
            ProductKind.REGULAR: self._noop_line,
            ProductKind.TEMPLATE: self._consume_template_line,
        }
        self._restore_line: Dict[ProductKind, Callable[[Order, OrderItem], Awaitable[None]]] = {
            ProductKind.REGULAR: self._restore_regular_line,
            ProductKind.TEMPLATE: self._noop_line,
        }

    async def transition(
        self,
        order: Order,
        target: OrderStatus,
        note: Optional[str] = None,
        tracking_number: Optional[str] = None,
        tracking_url: Optional[str] = None,
        payment_ref: Optional[str] = None,
    ) -> OrderStatus:
        """Fait passer `order` au statut `target` et retourne le statut précédent.

        Lève InvalidStatusTransitionException si la transition n'est pas dans la table,
        ConcurrentStatusChangeException si le statut a changé depuis la lecture.
        """
        current = order.status
        ensure_transition_allowed(current, target)

        now = utc_now()
        values: Dict[str, Any] = {"status": target, "updated_at": now}
        if target == OrderStatus.PAID:
            values["paid_at"] = now
            if payment_ref:
                values["payment_ref"] = payment_ref
        elif target == OrderStatus.SHIPPED:
            values["shipped_at"] = now
            if tracking_number:
                values["tracking_number"] = tracking_number
            if tracking_url:
                values["tracking_url"] = tracking_url
        elif target == OrderStatus.DELIVERED:
            values["delivered_at"] = now

        if not await self.repository.compare_and_set_status(order.id, current, values):
            raise ConcurrentStatusChangeException(order_id=order.id, expected=current)

        side_effect = self._side_effects.get(target)
        if side_effect is not None:
            await side_effect(order, current)

        await self.repository.add_history(
            order.id, target, note or f"Statut changé en {ORDER_STATUS_LABELS[target]}"
        )
        logger.info(f"[OrderStateMachine] Commande {order.order_number}: {current.value} -> {target.value}")
        return current

    async def _kind_of(self, item: OrderItem) -> ProductKind:
        product = await self.resolver.get_product(item.product_id)
        return product.kind

    async def _consume_inputs(self, order: Order, previous: OrderStatus) -> None:
        for item in order.items:
            await self._consume_line[await self._kind_of(item)](order, item)

    async def _restore_stock(self, order: Order, previous: OrderStatus) -> None:
        for item in order.items:
            await self._restore_line[await self._kind_of(item)](order, item)

        if previous in INPUTS_CONSUMED_STATUSES:
            consumed = await self.ledger.input_movements_for(ORDER_REFERENCE_TYPE, order.id, MovementType.SALE)
            for movement in consumed:
                await self.ledger.apply_input_delta(
                    movement.input_variant_id,
                    -movement.quantity,
                    MovementType.RETURN,
                    reference_type=ORDER_REFERENCE_TYPE,
                    reference_id=order.id,
                    reason=f"Annulation commande {order.order_number}",
                )
            logger.info(f"[OrderStateMachine] {len(consumed)} consommation(s) d'intrants restaurée(s) pour {order.order_number}")

    async def _noop_line(self, order: Order, item: OrderItem) -> None:
        return None

    async def _consume_template_line(self, order: Order, item: OrderItem) -> None:
        recipe = await self.resolver.load_recipe(item.product_variant_id)
        if not recipe:
            logger.warning(f"[OrderStateMachine] Variante {item.product_variant_id} sans recette: aucun intrant consommé.")
        for line in recipe:
            await self.ledger.apply_input_delta(
                line.input_variant_id,
                -(line.quantity * item.quantity),
                MovementType.SALE,
                reference_type=ORDER_REFERENCE_TYPE,
                reference_id=order.id,
                reason=f"Fabrication commande {order.order_number}",
            )

    async def _restore_regular_line(self, order: Order, item: OrderItem) -> None:
        await self.ledger.apply_variant_delta(
            item.product_variant_id,
            item.quantity,
            MovementType.RETURN,
            reference_type=ORDER_REFERENCE_TYPE,
            reference_id=order.id,
            reason=f"Annulation commande {order.order_number}",
            label=item.product_name,
        )
