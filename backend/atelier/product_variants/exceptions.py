"""Exceptions spécifiques au module product_variants."""
from typing import Optional

from atelier.core.exceptions import NotFoundException


class VariantNotFoundException(NotFoundException):
    """Exception levée lorsqu'une variante de produit n'est pas trouvée."""

    def __init__(self, variant_id: Optional[int] = None, product_name: Optional[str] = None,
                 size: Optional[str] = None, color: Optional[str] = None):
        self.variant_id = variant_id
        self.product_name = product_name
        self.size = size
        self.color = color
        if variant_id is not None:
            message = f"Variante de produit avec l'ID {variant_id} non trouvée."
        else:
            message = f"Aucune variante de '{product_name}' pour la taille {size} et la couleur {color}."
        super().__init__(message)
