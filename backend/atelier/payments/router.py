import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from atelier.auth.dependencies import CurrentAdmin
from atelier.payments.dependencies import ReconciliationServiceDep
from atelier.payments.exceptions import InvalidWebhookSignatureException
from atelier.payments.models import GatewayEvent, TransactionVerification, WebhookAck

logger = logging.getLogger(__name__)

webhook_router = APIRouter(tags=["Webhooks"])

TRANSACTION_UPDATED_EVENT = "transaction.updated"
NEQUI_TOKEN_UPDATED_EVENT = "nequi_token.updated"


@webhook_router.post("/payment", response_model=WebhookAck)
async def handle_payment_webhook(
    service: ReconciliationServiceDep,
    payload: Dict[str, Any] = Body(...),
):
    """Reçoit les événements de la passerelle de paiement (sans authentification).

    Répond toujours 200 une fois la signature validée, pour que la passerelle ne
    renvoie pas l'événement; le résultat réel figure dans `success`.
    """
    event_name = payload.get("event")
    logger.info(f"[Webhook] Événement reçu: {event_name}")
    try:
        await service.ensure_valid_signature(payload)

        if event_name == TRANSACTION_UPDATED_EVENT:
            result = await service.process_transaction_event(GatewayEvent.model_validate(payload))
            return WebhookAck(success=result.success, message=result.message)
        if event_name == NEQUI_TOKEN_UPDATED_EVENT:
            logger.info("[Webhook] Token Nequi mis à jour.")
            return WebhookAck(success=True, message="Token Nequi traité")

        logger.info(f"[Webhook] Événement non géré: {event_name}")
        return WebhookAck(success=True, message="Événement reçu")
    except InvalidWebhookSignatureException as e:
        logger.warning("[Webhook] Signature de webhook invalide.")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "message": e.message},
        )
    except ValidationError as e:
        logger.warning(f"[Webhook] Événement malformé: {e}")
        return WebhookAck(success=False, message="Événement malformé")
    except Exception as e:
        logger.exception(f"[Webhook] Erreur de traitement du webhook: {e}")
        return WebhookAck(success=False, message="Erreur de traitement du webhook")


@webhook_router.get("/payment/verify/{transaction_id}", response_model=TransactionVerification)
async def verify_payment_transaction(
    transaction_id: str,
    service: ReconciliationServiceDep,
    admin: CurrentAdmin,
):
    """Interroge la passerelle sur le statut d'une transaction (Admin requis)."""
    transaction_status = await service.verify_transaction(transaction_id)
    if transaction_status is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Impossible de vérifier la transaction")
    return TransactionVerification(transaction_id=transaction_id, status=transaction_status)
