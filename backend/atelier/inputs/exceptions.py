"""Exceptions spécifiques au module inputs."""
from atelier.core.exceptions import NotFoundException


class InputVariantNotFoundException(NotFoundException):
    """Levée lorsqu'une variante d'intrant référencée par une recette n'existe plus."""
    def __init__(self, input_variant_id: int):
        super().__init__(f"Variante d'intrant avec ID {input_variant_id} non trouvée.")
        self.input_variant_id = input_variant_id
