"""
Client de la passerelle de paiement (API Wompi).

Seule la lecture d'une transaction est utilisée: le reste du cycle de paiement
est piloté par la passerelle elle-même et nous parvient par webhook.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from pydantic import ValidationError

from atelier.config import settings
from atelier.payments.models import TransactionDetails
from atelier.store_settings.models import GatewayCredentials

logger = logging.getLogger(__name__)

SANDBOX_BASE_URL = "https://sandbox.wompi.co/v1"
PRODUCTION_BASE_URL = "https://production.wompi.co/v1"


def gateway_base_url(is_test_mode: bool) -> str:
    return SANDBOX_BASE_URL if is_test_mode else PRODUCTION_BASE_URL


class AbstractPaymentGateway(ABC):

    @abstractmethod
    async def get_transaction_details(
        self, transaction_id: str, credentials: GatewayCredentials
    ) -> Optional[TransactionDetails]:
        """Retourne statut, référence et montant de la transaction, ou None si indisponible."""
        pass


class WompiGatewayClient(AbstractPaymentGateway):
    """Lecture des transactions via `GET {base}/transactions/{id}`."""

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout if timeout is not None else settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS
        self._transport = transport

    async def get_transaction_details(
        self, transaction_id: str, credentials: GatewayCredentials
    ) -> Optional[TransactionDetails]:
        if not credentials.public_key:
            logger.warning("[WompiGateway] Clé publique non configurée, vérification impossible.")
            return None

        url = f"{gateway_base_url(credentials.is_test_mode)}/transactions/{transaction_id}"
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=self._transport) as client:
                response = await client.get(url, headers={"Authorization": f"Bearer {credentials.public_key}"})
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException:
            logger.error(f"[WompiGateway] Délai dépassé pour la transaction {transaction_id} ({self.timeout}s).")
            return None
        except httpx.HTTPStatusError as e:
            logger.error(f"[WompiGateway] HTTP {e.response.status_code} pour la transaction {transaction_id}.")
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[WompiGateway] Erreur de lecture de la transaction {transaction_id}: {e}")
            return None

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            logger.error(f"[WompiGateway] Réponse malformée pour la transaction {transaction_id}.")
            return None
        try:
            return TransactionDetails.model_validate(data)
        except ValidationError as e:
            logger.error(f"[WompiGateway] Réponse incomplète pour la transaction {transaction_id}: {e}")
            return None
