"""
Réconciliation des paiements.

Transforme les événements de la passerelle (webhook ou interrogation à la demande)
en transitions de commande. Un même couple (transaction, statut) n'est appliqué
qu'une seule fois grâce à la table `payment_events`.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.config import settings
from atelier.orders.config import ORDER_STATUS_LABELS, REVENUE_STATUSES
from atelier.orders.constants import OrderStatus
from atelier.orders.exceptions import ConcurrentStatusChangeException
from atelier.orders.models import Order
from atelier.orders.service import OrderService
from atelier.orders.utils import to_amount_in_cents
from atelier.payments.exceptions import InvalidWebhookSignatureException
from atelier.payments.gateway import AbstractPaymentGateway
from atelier.payments.models import (
    EventSource,
    GatewayEvent,
    PaymentEvent,
    ReconciliationResult,
    TransactionDetails,
    TransactionStatus,
)
from atelier.payments.utils import validate_webhook_signature
from atelier.store_settings.service import StoreSettingsService

logger = logging.getLogger(__name__)

PAYMENT_CONFIRMED_LABEL = "Paiement confirmé"
PAYMENT_FAILED_LABEL = "Paiement non abouti"

# Messages renvoyés au client après une confirmation par interrogation
POLLING_MESSAGES: Dict[TransactionStatus, str] = {
    TransactionStatus.APPROVED: "Paiement confirmé avec succès",
    TransactionStatus.PENDING: "Le paiement est toujours en attente",
    TransactionStatus.DECLINED: "Le paiement a été refusé",
    TransactionStatus.ERROR: "Le paiement a été refusé",
    TransactionStatus.VOIDED: "La transaction a été annulée",
}


@dataclass
class _Transaction:
    id: str
    reference: str
    status: str
    amount_in_cents: Optional[int] = None
    status_message: Optional[str] = None


@dataclass
class _Outcome:
    message: str
    notify_message: Optional[str] = None
    notify_label: Optional[str] = None


class PaymentReconciliationService:

    def __init__(
        self,
        db: AsyncSession,
        order_service: OrderService,
        gateway: AbstractPaymentGateway,
        settings_service: StoreSettingsService,
    ):
        self.db = db
        self.order_service = order_service
        self.order_repository = order_service.order_repository
        self.state_machine = order_service.state_machine
        self.gateway = gateway
        self.settings_service = settings_service
        self._handlers: Dict[TransactionStatus, Callable[[Order, _Transaction, EventSource], Awaitable[_Outcome]]] = {
            TransactionStatus.APPROVED: self._handle_approved,
            TransactionStatus.DECLINED: self._handle_failed,
            TransactionStatus.ERROR: self._handle_failed,
            TransactionStatus.VOIDED: self._handle_voided,
            TransactionStatus.PENDING: self._handle_pending,
        }

    # --- Webhook ---

    async def ensure_valid_signature(self, payload: Dict[str, Any]) -> None:
        credentials = await self.settings_service.get_gateway_credentials()
        if not validate_webhook_signature(
            payload, credentials.events_secret, allow_unsigned=not settings.is_production
        ):
            raise InvalidWebhookSignatureException()

    async def process_transaction_event(
        self, event: GatewayEvent, source: EventSource = EventSource.WEBHOOK
    ) -> ReconciliationResult:
        """Applique un événement `transaction.updated`. Ne lève jamais d'exception."""
        try:
            transaction = event.transaction
        except ValueError as e:
            logger.warning(f"[Reconciliation] Transaction illisible dans l'événement: {e}")
            return ReconciliationResult(success=False, message="Événement sans transaction exploitable")
        if transaction is None:
            logger.warning("[Reconciliation] Événement reçu sans transaction.")
            return ReconciliationResult(success=False, message="Événement sans transaction exploitable")

        return await self._reconcile(
            _Transaction(
                id=transaction.id,
                reference=transaction.reference,
                status=transaction.status,
                amount_in_cents=transaction.amount_in_cents,
                status_message=transaction.status_message,
            ),
            source,
        )

    async def _reconcile(self, transaction: _Transaction, source: EventSource) -> ReconciliationResult:
        logger.info(
            f"[Reconciliation] Transaction {transaction.id} ({source.value}): "
            f"référence {transaction.reference}, statut {transaction.status}"
        )
        order_id: Optional[int] = None
        try:
            order = await self.order_repository.get_by_number(transaction.reference)
            if order is None:
                logger.warning(f"[Reconciliation] Commande introuvable: {transaction.reference}")
                return ReconciliationResult(
                    success=False, message=f"Commande introuvable: {transaction.reference}", status=transaction.status
                )
            order_id = order.id

            expected_amount = to_amount_in_cents(order.total)
            if transaction.amount_in_cents is not None and transaction.amount_in_cents != expected_amount:
                logger.warning(
                    f"[Reconciliation] Montant différent pour {order.order_number}: "
                    f"attendu {expected_amount}, reçu {transaction.amount_in_cents}"
                )

            if await self._already_applied(transaction):
                logger.info(f"[Reconciliation] Transaction {transaction.id} ({transaction.status}) déjà appliquée.")
                return self._duplicate_result(order, transaction)

            try:
                handler = self._handlers[TransactionStatus(transaction.status)]
            except ValueError:
                logger.warning(f"[Reconciliation] Statut inconnu: {transaction.status}")
                return ReconciliationResult(
                    success=True, message=f"Transaction traitée: {transaction.status}", order_id=order_id,
                    status=transaction.status,
                )

            outcome = await handler(order, transaction, source)
            await self.db.commit()
        except ConcurrentStatusChangeException:
            await self.db.rollback()
            return await self._report_concurrent_change(order_id, transaction)
        except IntegrityError:
            # Un traitement concurrent a enregistré le même événement
            await self.db.rollback()
            logger.info(f"[Reconciliation] Transaction {transaction.id} ({transaction.status}) enregistrée en parallèle.")
            return self._duplicate_result(await self.order_repository.get_by_id(order_id), transaction)
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"[Reconciliation] Erreur lors du traitement de la transaction {transaction.id}: {e}")
            return ReconciliationResult(success=False, message=str(e) or "Erreur inconnue", order_id=order_id)

        if outcome.notify_message is not None:
            refreshed = await self.order_repository.get_by_id(order_id)
            await self.order_service.notify_status(
                refreshed, message=outcome.notify_message, status_label=outcome.notify_label
            )
        return ReconciliationResult(success=True, message=outcome.message, order_id=order_id, status=transaction.status)

    async def _already_applied(self, transaction: _Transaction) -> bool:
        stmt = select(PaymentEvent.id).where(
            PaymentEvent.transaction_id == transaction.id,
            PaymentEvent.gateway_status == transaction.status,
        )
        return (await self.db.scalar(stmt)) is not None

    async def _record_event(self, order: Order, transaction: _Transaction, source: EventSource) -> None:
        self.db.add(PaymentEvent(
            order_id=order.id,
            transaction_id=transaction.id,
            gateway_status=transaction.status,
            amount_in_cents=transaction.amount_in_cents,
            source=source,
        ))
        await self.db.flush()

    def _duplicate_result(self, order: Optional[Order], transaction: _Transaction) -> ReconciliationResult:
        order_id = order.id if order is not None else None
        if order is not None and order.status in REVENUE_STATUSES:
            return ReconciliationResult(
                success=True, message="Commande déjà payée", order_id=order_id, status=transaction.status
            )
        return ReconciliationResult(
            success=True, message="Transaction déjà traitée", order_id=order_id, status=transaction.status
        )

    async def _report_concurrent_change(self, order_id: Optional[int], transaction: _Transaction) -> ReconciliationResult:
        order = await self.order_repository.get_by_id(order_id) if order_id is not None else None
        if order is not None and order.status in REVENUE_STATUSES:
            logger.info(f"[Reconciliation] Commande {order.order_number} payée par un traitement concurrent.")
            return ReconciliationResult(
                success=True, message="Commande déjà payée", order_id=order_id, status=transaction.status
            )
        logger.warning(f"[Reconciliation] Changement de statut concurrent sur la commande {order_id}.")
        return ReconciliationResult(
            success=False, message="Statut de la commande modifié en parallèle", order_id=order_id,
            status=transaction.status,
        )

    # --- Traitement par statut ---

    async def _handle_approved(self, order: Order, transaction: _Transaction, source: EventSource) -> _Outcome:
        if order.status != OrderStatus.PENDING:
            if order.status in REVENUE_STATUSES and order.payment_ref and order.payment_ref != transaction.id:
                logger.warning(
                    f"[Reconciliation] Possible double débit: commande {order.order_number} déjà payée "
                    f"par {order.payment_ref}, nouvelle transaction approuvée {transaction.id}"
                )
            logger.info(f"[Reconciliation] Commande {order.order_number} n'est plus en attente ({order.status.value}).")
            if order.status in REVENUE_STATUSES:
                return _Outcome(message="Commande déjà payée")
            return _Outcome(message=f"Commande {ORDER_STATUS_LABELS[order.status].lower()}, paiement ignoré")

        await self.state_machine.transition(
            order,
            OrderStatus.PAID,
            note=f"Paiement confirmé via Wompi. Transaction: {transaction.id}",
            payment_ref=transaction.id,
        )
        await self._record_event(order, transaction, source)
        logger.info(f"[Reconciliation] Commande {order.order_number} marquée PAID.")
        return _Outcome(
            message=f"Transaction traitée: {transaction.status}",
            notify_message="Votre paiement a été traité avec succès. Nous préparons votre commande.",
            notify_label=PAYMENT_CONFIRMED_LABEL,
        )

    async def _handle_failed(self, order: Order, transaction: _Transaction, source: EventSource) -> _Outcome:
        if order.status != OrderStatus.PENDING:
            logger.info(f"[Reconciliation] Commande {order.order_number} n'est plus en attente ({order.status.value}).")
            return _Outcome(message=f"Transaction traitée: {transaction.status}")

        # Note d'historique sans changement de statut
        await self.order_repository.add_history(
            order.id,
            order.status,
            f"Paiement échoué: {transaction.status}. {transaction.status_message or 'Sans détails'}",
        )
        await self._record_event(order, transaction, source)
        logger.info(f"[Reconciliation] Paiement échoué pour la commande {order.order_number}: {transaction.status}")
        return _Outcome(
            message=f"Transaction traitée: {transaction.status}",
            notify_message=(
                f"Un problème est survenu avec votre paiement: {transaction.status_message or 'transaction refusée'}. "
                "Veuillez réessayer."
            ),
            notify_label=PAYMENT_FAILED_LABEL,
        )

    async def _handle_voided(self, order: Order, transaction: _Transaction, source: EventSource) -> _Outcome:
        if order.status != OrderStatus.PAID:
            logger.info(f"[Reconciliation] Annulation ignorée pour {order.order_number} ({order.status.value}).")
            return _Outcome(message=f"Transaction traitée: {transaction.status}")

        await self.state_machine.transition(
            order,
            OrderStatus.CANCELLED,
            note=f"Paiement annulé via Wompi. Transaction: {transaction.id}",
        )
        await self._record_event(order, transaction, source)
        logger.info(f"[Reconciliation] Commande {order.order_number} annulée suite à l'annulation du paiement.")
        return _Outcome(
            message=f"Transaction traitée: {transaction.status}",
            notify_message="Votre paiement a été annulé et votre commande a été annulée.",
        )

    async def _handle_pending(self, order: Order, transaction: _Transaction, source: EventSource) -> _Outcome:
        logger.info(f"[Reconciliation] Transaction {transaction.id} en attente.")
        return _Outcome(message=f"Transaction traitée: {transaction.status}")

    # --- Interrogation de la passerelle ---

    async def get_transaction_details(self, transaction_id: str) -> Optional[TransactionDetails]:
        credentials = await self.settings_service.get_gateway_credentials()
        return await self.gateway.get_transaction_details(transaction_id, credentials)

    async def verify_transaction(self, transaction_id: str) -> Optional[str]:
        details = await self.get_transaction_details(transaction_id)
        return details.status if details else None

    async def confirm_payment_by_transaction(
        self, transaction_id: str, order_number: str, user_id: Optional[int] = None
    ) -> ReconciliationResult:
        """Confirmation à l'initiative du client, alternative au webhook."""
        details = await self.get_transaction_details(transaction_id)
        if details is None:
            return ReconciliationResult(
                success=False, message="Impossible de vérifier la transaction auprès de la passerelle"
            )

        if details.reference != order_number:
            logger.warning(f"[Reconciliation] Référence différente: {details.reference} vs {order_number}")
            return ReconciliationResult(
                success=False, message="La transaction ne correspond pas à cette commande", status=details.status
            )

        order = await self.order_repository.get_by_number(order_number)
        if order is None or (user_id is not None and order.user_id != user_id):
            return ReconciliationResult(success=False, message="Commande introuvable")

        if order.status == OrderStatus.PAID:
            return ReconciliationResult(
                success=True, message="La commande est déjà payée", order_id=order.id,
                status=TransactionStatus.APPROVED.value,
            )

        result = await self._reconcile(
            _Transaction(
                id=transaction_id,
                reference=details.reference,
                status=details.status,
                amount_in_cents=details.amount_in_cents,
            ),
            EventSource.POLLING,
        )
        if not result.success:
            return result

        try:
            status = TransactionStatus(details.status)
        except ValueError:
            return ReconciliationResult(
                success=False, message=f"Statut inconnu: {details.status}", order_id=result.order_id,
                status=details.status,
            )
        if status == TransactionStatus.APPROVED:
            refreshed = await self.order_repository.get_by_id(result.order_id)
            if refreshed is None or refreshed.status not in REVENUE_STATUSES:
                return ReconciliationResult(
                    success=False, message=result.message, order_id=result.order_id, status=details.status
                )
        return ReconciliationResult(
            success=status == TransactionStatus.APPROVED,
            message=POLLING_MESSAGES[status],
            order_id=result.order_id,
            status=details.status,
        )
