"""Exceptions spécifiques au module products."""
from atelier.core.exceptions import BadRequestException, NotFoundException


class ProductNotFoundException(NotFoundException):
    """Levée lorsqu'un produit n'existe pas."""
    def __init__(self, product_id: int):
        super().__init__(f"Produit avec ID {product_id} non trouvé.")
        self.product_id = product_id


class ProductInactiveException(BadRequestException):
    """Levée lorsqu'un produit désactivé est commandé."""
    def __init__(self, product_name: str):
        super().__init__(f"Le produit '{product_name}' n'est pas disponible.")
        self.product_name = product_name
