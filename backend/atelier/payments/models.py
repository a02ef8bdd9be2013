from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField
from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from atelier.core.schemas import utc_now
from atelier.orders.models import OrderRead


class TransactionStatus(str, Enum):
    """Statuts de transaction renvoyés par la passerelle."""
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    ERROR = "ERROR"
    VOIDED = "VOIDED"
    PENDING = "PENDING"


class EventSource(str, Enum):
    WEBHOOK = "webhook"
    POLLING = "polling"


# --- Modèle de table ---

class PaymentEvent(SQLModel, table=True):
    """Transaction de passerelle déjà appliquée à une commande.

    L'unicité sur (transaction_id, gateway_status) empêche qu'un événement rejoué
    produise une seconde transition.
    """
    __tablename__ = "payment_events"
    __table_args__ = (UniqueConstraint("transaction_id", "gateway_status", name="uq_payment_events_transaction_status"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    transaction_id: str = Field(max_length=100, index=True)
    gateway_status: str = Field(max_length=20)
    amount_in_cents: Optional[int] = None
    source: EventSource = Field(default=EventSource.WEBHOOK)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)


# --- Schémas passerelle ---

class GatewayTransaction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    reference: str
    status: str
    amount_in_cents: Optional[int] = None
    status_message: Optional[str] = None


class EventSignature(BaseModel):
    properties: List[str] = []
    checksum: str = ""


class GatewayEvent(BaseModel):
    """Événement webhook tel qu'envoyé par la passerelle."""
    model_config = ConfigDict(extra="ignore")

    event: str
    data: Dict[str, Any] = {}
    signature: Optional[EventSignature] = None
    timestamp: Optional[int] = None
    environment: Optional[str] = None
    sent_at: Optional[str] = None

    @property
    def transaction(self) -> Optional[GatewayTransaction]:
        raw = self.data.get("transaction")
        return GatewayTransaction.model_validate(raw) if isinstance(raw, dict) else None


class TransactionDetails(BaseModel):
    status: str
    reference: str
    amount_in_cents: Optional[int] = None


# --- Schémas API ---

class ReconciliationResult(BaseModel):
    success: bool
    message: str
    order_id: Optional[int] = None
    status: Optional[str] = None


class WebhookAck(BaseModel):
    success: bool
    message: str


class TransactionVerification(BaseModel):
    transaction_id: str
    status: str


class PaymentConfirmationRequest(BaseModel):
    transaction_id: str = PydanticField(min_length=1, max_length=100)


class PaymentConfirmationResponse(BaseModel):
    success: bool
    message: str
    status: Optional[str] = None
    order: Optional[OrderRead] = None
