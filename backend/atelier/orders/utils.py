"""
Utilitaires pour le module de gestion des commandes.
"""
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from atelier.orders.config import ORDER_NUMBER_PREFIX, ORDER_STATUS_LABELS
from atelier.orders.models import Order, OrderItemRead, OrderRead, StatusHistoryEntry
from atelier.store_settings.models import PricingConfig


@dataclass(frozen=True)
class OrderTotals:
    subtotal: int
    shipping_cost: int
    tax: int
    total: int


def format_order_number(day: date, sequence: int) -> str:
    """
    Formate le numéro de commande lisible.

    Args:
        day: Jour calendaire de la commande (fuseau de la boutique)
        sequence: Valeur du compteur journalier (1, 2, ...)

    Returns:
        str: Numéro au format ORD-YYMMDD-NNNN
    """
    return f"{ORDER_NUMBER_PREFIX}-{day:%y%m%d}-{sequence:04d}"


def compute_totals(subtotal: int, pricing: PricingConfig) -> OrderTotals:
    """
    Calcule frais de port, taxe et total à partir du sous-total.

    La livraison est offerte dès que le sous-total atteint le seuil; la taxe
    n'est ajoutée que si les prix ne l'incluent pas déjà.
    """
    shipping_cost = 0 if subtotal >= pricing.free_shipping_threshold else pricing.shipping_cost
    if pricing.tax_included:
        tax = 0
    else:
        tax = int((Decimal(subtotal) * Decimal(str(pricing.tax_rate))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return OrderTotals(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        tax=tax,
        total=subtotal + shipping_cost + tax,
    )


def to_amount_in_cents(total: int) -> int:
    return total * 100


def to_order_read(order: Order) -> OrderRead:
    """Convertit une commande ORM (items, historique et acheteur chargés) en schéma de lecture."""
    return OrderRead(
        id=order.id,
        order_number=order.order_number,
        user_id=order.user_id,
        user_name=order.user.name if order.user else None,
        user_email=order.user.email if order.user else None,
        items=[OrderItemRead.model_validate(item) for item in order.items],
        subtotal=order.subtotal,
        shipping_cost=order.shipping_cost,
        discount=order.discount,
        tax=order.tax,
        total=order.total,
        status=order.status,
        status_label=ORDER_STATUS_LABELS[order.status],
        payment_method=order.payment_method,
        payment_ref=order.payment_ref,
        shipping=order.shipping or {},
        tracking_number=order.tracking_number,
        tracking_url=order.tracking_url,
        notes=order.notes,
        status_history=[StatusHistoryEntry.model_validate(entry) for entry in order.status_history],
        paid_at=order.paid_at,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )
