import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.config import settings
from atelier.orders.constants import OrderStatus
from atelier.orders.models import OrderCreate
from atelier.orders.service import OrderService
from atelier.payments.models import TransactionDetails
from atelier.payments.utils import compute_event_checksum
from atelier.store_settings.models import PAYMENT_SETTINGS_KEY, Setting

from helpers import order_payload, regular_line

pytestmark = pytest.mark.asyncio

WEBHOOK_URL = f"{settings.API_V1_PREFIX}/webhooks/payment"
EVENTS_SECRET = "test_events_secret"


def transaction_payload(reference: str, status: str = "APPROVED", transaction_id: str = "tx-123") -> dict:
    return {
        "event": "transaction.updated",
        "data": {"transaction": {
            "id": transaction_id,
            "reference": reference,
            "status": status,
            "amount_in_cents": 8700000,
        }},
        "signature": {
            "properties": ["transaction.id", "transaction.status", "transaction.amount_in_cents"],
            "checksum": "",
        },
        "timestamp": 1710428400,
        "environment": "test",
    }


def sign(payload: dict, secret: str = EVENTS_SECRET) -> dict:
    payload["signature"]["checksum"] = compute_event_checksum(payload, secret)
    return payload


@pytest_asyncio.fixture
async def events_secret(db_session: AsyncSession) -> str:
    db_session.add(Setting(key=PAYMENT_SETTINGS_KEY, value={"wompi": {"eventsSecret": EVENTS_SECRET}}))
    await db_session.commit()
    return EVENTS_SECRET


@pytest_asyncio.fixture
async def order_number(order_service: OrderService, test_user, catalog) -> str:
    created = await order_service.create_order(
        test_user.id, OrderCreate.model_validate(order_payload([regular_line(catalog, quantity=3)]))
    )
    return created.order_number


async def test_invalid_signature_is_rejected(test_client: AsyncClient, events_secret, order_number, order_service):
    payload = sign(transaction_payload(order_number), secret="not_the_secret")

    response = await test_client.post(WEBHOOK_URL, json=payload)

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Signature invalide"}
    assert (await order_service.get_order_model_by_number(order_number)).status == OrderStatus.PENDING


async def test_signed_event_is_processed(test_client: AsyncClient, events_secret, order_number, order_service):
    response = await test_client.post(WEBHOOK_URL, json=sign(transaction_payload(order_number)))

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Transaction traitée: APPROVED"}
    assert (await order_service.get_order_model_by_number(order_number)).status == OrderStatus.PAID


async def test_unsigned_event_accepted_outside_production(test_client: AsyncClient, order_number, order_service):
    response = await test_client.post(WEBHOOK_URL, json=transaction_payload(order_number))

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert (await order_service.get_order_model_by_number(order_number)).status == OrderStatus.PAID


async def test_unknown_order_still_answers_200(test_client: AsyncClient, events_secret, catalog):
    response = await test_client.post(WEBHOOK_URL, json=sign(transaction_payload("ORD-000000-0000")))

    assert response.status_code == 200
    assert response.json() == {"success": False, "message": "Commande introuvable: ORD-000000-0000"}


async def test_malformed_transaction_still_answers_200(test_client: AsyncClient):
    payload = {"event": "transaction.updated", "data": {"transaction": {"id": "tx-1"}}}

    response = await test_client.post(WEBHOOK_URL, json=payload)

    assert response.status_code == 200
    assert response.json()["success"] is False


async def test_nequi_token_event_is_acknowledged(test_client: AsyncClient):
    response = await test_client.post(WEBHOOK_URL, json={"event": "nequi_token.updated", "data": {}})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Token Nequi traité"}


async def test_unhandled_event_is_acknowledged(test_client: AsyncClient):
    response = await test_client.post(WEBHOOK_URL, json={"event": "bancolombia_transfer_token.updated", "data": {}})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Événement reçu"}


# --- Vérification manuelle (admin) ---

async def test_admin_can_verify_transaction(test_client: AsyncClient, auth_headers_admin, fake_gateway):
    fake_gateway.transactions["tx-1"] = TransactionDetails(status="APPROVED", reference="ORD-250314-0001")

    response = await test_client.get(f"{WEBHOOK_URL}/verify/tx-1", headers=auth_headers_admin)

    assert response.status_code == 200
    assert response.json() == {"transaction_id": "tx-1", "status": "APPROVED"}


async def test_verify_unknown_transaction_returns_404(test_client: AsyncClient, auth_headers_admin):
    response = await test_client.get(f"{WEBHOOK_URL}/verify/tx-unknown", headers=auth_headers_admin)

    assert response.status_code == 404
    assert response.json()["detail"] == "Impossible de vérifier la transaction"


async def test_verify_requires_admin(test_client: AsyncClient, auth_headers_user):
    response = await test_client.get(f"{WEBHOOK_URL}/verify/tx-1", headers=auth_headers_user)

    assert response.status_code == 403
