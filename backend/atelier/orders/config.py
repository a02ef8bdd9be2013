"""
Configuration spécifique au module Orders.
Contient les constantes du cycle de vie des commandes.
"""
from typing import Dict, FrozenSet

from atelier.orders.constants import OrderStatus

ORDER_NUMBER_PREFIX = "ORD"

# Libellés des statuts pour l'affichage
ORDER_STATUS_LABELS: Dict[OrderStatus, str] = {
    OrderStatus.PENDING: "En attente",
    OrderStatus.PAID: "Payée",
    OrderStatus.PROCESSING: "En préparation",
    OrderStatus.SHIPPED: "Expédiée",
    OrderStatus.DELIVERED: "Livrée",
    OrderStatus.CANCELLED: "Annulée",
}

# Messages envoyés à l'acheteur lors d'un changement de statut
ORDER_STATUS_MESSAGES: Dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Votre commande est en attente de paiement.",
    OrderStatus.PAID: "Votre paiement a été confirmé. Nous préparons votre commande.",
    OrderStatus.PROCESSING: "Votre commande est en cours de fabrication.",
    OrderStatus.SHIPPED: "Votre commande a été expédiée.",
    OrderStatus.DELIVERED: "Votre commande a été livrée. Merci pour votre achat !",
    OrderStatus.CANCELLED: "Votre commande a été annulée.",
}

# Transitions autorisées; DELIVERED et CANCELLED sont terminaux
ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Statuts comptés dans le chiffre d'affaires
REVENUE_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.PAID,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
})

ORDER_CREATED_NOTE = "Commande créée"
ORDER_CANCELLED_BY_CUSTOMER_NOTE = "Annulée par le client"
