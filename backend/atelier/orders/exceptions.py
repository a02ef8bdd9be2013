"""Exceptions spécifiques au domaine Order."""
from typing import Optional

from atelier.core.exceptions import BadRequestException, NotFoundException
from atelier.orders.config import ORDER_STATUS_LABELS
from atelier.orders.constants import OrderStatus


class OrderNotFoundException(NotFoundException):
    """Levée lorsqu'une commande n'est pas trouvée (ou n'appartient pas au demandeur)."""
    def __init__(self, order_id: Optional[int] = None, order_number: Optional[str] = None):
        identifier = f"numéro {order_number}" if order_number else f"ID {order_id}"
        super().__init__(f"Commande avec {identifier} non trouvée.")
        self.order_id = order_id
        self.order_number = order_number


class InvalidStatusTransitionException(BadRequestException):
    def __init__(self, current: OrderStatus, attempted: OrderStatus):
        super().__init__(
            f"Transition de statut invalide: '{ORDER_STATUS_LABELS[current]}' -> '{ORDER_STATUS_LABELS[attempted]}'."
        )
        self.current = current
        self.attempted = attempted


class ConcurrentStatusChangeException(BadRequestException):
    """Le statut a changé entre la lecture et l'écriture (compare-and-set perdu)."""
    def __init__(self, order_id: int, expected: OrderStatus):
        super().__init__(
            f"Le statut de la commande {order_id} a été modifié par une autre opération (attendu: {expected.value})."
        )
        self.order_id = order_id
        self.expected = expected


class OrderCreationFailedException(BadRequestException):
    """Levée lorsque la création de la commande échoue pour une raison métier (produit, variante...)."""
    pass


class OrderCancellationNotAllowedException(BadRequestException):
    def __init__(self, order_number: str, status: OrderStatus):
        super().__init__(
            f"La commande {order_number} ne peut plus être annulée (statut: {ORDER_STATUS_LABELS[status]})."
        )
        self.order_number = order_number
        self.status = status
