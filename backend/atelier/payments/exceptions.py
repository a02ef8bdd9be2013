"""Exceptions spécifiques aux paiements."""
from atelier.core.exceptions import UnauthorizedException


class InvalidWebhookSignatureException(UnauthorizedException):
    """Levée lorsqu'un webhook ne porte pas de signature valide."""
    def __init__(self):
        super().__init__("Signature invalide")
