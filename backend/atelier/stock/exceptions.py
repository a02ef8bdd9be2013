"""
Exceptions personnalisées pour la gestion des stocks.
"""
from decimal import Decimal
from typing import Union

from atelier.core.exceptions import BadRequestException

Quantity = Union[int, Decimal]


class InsufficientStockException(BadRequestException):
    """Levée lorsque la quantité disponible ne couvre pas la quantité demandée."""
    def __init__(self, product_name: str, requested: Quantity, available: Quantity):
        super().__init__(
            f"Stock insuffisant pour '{product_name}'. Demandé: {requested}, Disponible: {available}."
        )
        self.product_name = product_name
        self.requested = requested
        self.available = available


class InsufficientInputStockException(BadRequestException):
    """Levée lorsqu'un intrant ne suffit plus pour fabriquer une ligne TEMPLATE."""
    def __init__(self, input_name: str, required: Quantity, available: Quantity):
        super().__init__(
            f"Stock d'intrant insuffisant pour '{input_name}'. Requis: {required}, Disponible: {available}."
        )
        self.input_name = input_name
        self.required = required
        self.available = available
