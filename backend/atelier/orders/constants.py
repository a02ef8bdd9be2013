"""
Constantes du module Orders.
"""
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    CASH = "cash"
    TRANSFER = "transfer"
    CARD = "card"
    NEQUI = "nequi"
    DAVIPLATA = "daviplata"
    WOMPI = "wompi"
    PICKUP = "pickup"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PSE = "pse"


MAX_ITEMS_PER_ORDER: int = 50

# Référence utilisée dans les mouvements de stock liés à une commande
ORDER_REFERENCE_TYPE = "order"
