import logging
from datetime import date
from typing import Annotated, NoReturn, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from atelier.auth.dependencies import CurrentAdmin, CurrentUser
from atelier.config import settings
from atelier.core.exceptions import BadRequestException, NotFoundException
from atelier.orders.constants import OrderStatus
from atelier.orders.dependencies import OrderServiceDep
from atelier.orders.models import (
    OrderCreate,
    OrderListFilters,
    OrderRead,
    OrderStats,
    OrderStatusUpdate,
    PaginatedOrderResponse,
)
from atelier.payments.dependencies import ReconciliationServiceDep
from atelier.payments.models import PaymentConfirmationRequest, PaymentConfirmationResponse

logger = logging.getLogger(__name__)

order_router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
)


def get_pagination_params(
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
) -> Tuple[int, int]:
    return limit, offset


PaginationParams = Annotated[Tuple[int, int], Depends(get_pagination_params)]


def handle_order_service_errors(e: Exception, context: str) -> NoReturn:
    """Traduit les exceptions métier en HTTPException."""
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, NotFoundException):
        logger.info(f"[Orders API] {context}: {e.message}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, BadRequestException):
        logger.warning(f"[Orders API] {context}: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    logger.exception(f"[Orders API] Erreur inattendue ({context}): {e}")
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur interne du serveur.")


def set_content_range(response: Response, page: PaginatedOrderResponse, offset: int) -> None:
    end_range = offset + len(page.items) - 1 if page.items else offset
    response.headers["Content-Range"] = f"orders {offset}-{end_range}/{page.total}"


# --- Endpoints Admin (déclarés avant les routes paramétrées) ---

@order_router.get("/admin/all", response_model=PaginatedOrderResponse)
async def list_all_orders_endpoint(
    service: OrderServiceDep,
    current_admin: CurrentAdmin,
    response: Response,
    pagination: PaginationParams,
    status_filter: Optional[OrderStatus] = Query(default=None, alias="status"),
    user_id: Optional[int] = Query(default=None),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=100),
    sort_by: str = Query(default="created_at", pattern="^(created_at|total|status|order_number)$"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
):
    """Liste toutes les commandes avec filtres (Admin requis)."""
    limit, offset = pagination
    filters = OrderListFilters(
        status=status_filter,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    try:
        page = await service.list_orders(filters, limit=limit, offset=offset)
    except Exception as e:
        handle_order_service_errors(e, f"listage admin {current_admin.id}")
    set_content_range(response, page, offset)
    return page


@order_router.get("/admin/stats", response_model=OrderStats)
async def get_order_stats_endpoint(service: OrderServiceDep, current_admin: CurrentAdmin):
    """Statistiques globales des commandes (Admin requis)."""
    try:
        return await service.get_order_stats()
    except Exception as e:
        handle_order_service_errors(e, "statistiques")


@order_router.get("/admin/{order_id}", response_model=OrderRead)
async def get_order_admin_endpoint(order_id: int, service: OrderServiceDep, current_admin: CurrentAdmin):
    try:
        return await service.get_order_by_id(order_id)
    except Exception as e:
        handle_order_service_errors(e, f"lecture admin commande {order_id}")


@order_router.patch("/admin/{order_id}/status", response_model=OrderRead)
async def update_order_status_admin_endpoint(
    order_id: int,
    status_update: OrderStatusUpdate,
    service: OrderServiceDep,
    current_admin: CurrentAdmin,
):
    """Met à jour le statut d'une commande (Admin requis)."""
    try:
        updated = await service.update_order_status(order_id, status_update)
    except Exception as e:
        handle_order_service_errors(e, f"MAJ statut commande {order_id}")
    logger.info(f"Statut commande {order_id} mis à jour à '{status_update.status.value}' par admin {current_admin.id}.")
    return updated


# --- Endpoints acheteur ---

@order_router.post("/", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def create_order_endpoint(order_data: OrderCreate, service: OrderServiceDep, current_user: CurrentUser):
    """Crée une nouvelle commande pour l'utilisateur authentifié."""
    try:
        created = await service.create_order(user_id=current_user.id, order_data=order_data)
    except Exception as e:
        handle_order_service_errors(e, f"création commande user {current_user.id}")
    logger.info(f"Commande {created.order_number} créée pour l'utilisateur {current_user.id}.")
    return created


@order_router.get("/", response_model=PaginatedOrderResponse)
async def list_user_orders_endpoint(
    service: OrderServiceDep,
    current_user: CurrentUser,
    response: Response,
    pagination: PaginationParams,
    status_filter: Optional[OrderStatus] = Query(default=None, alias="status"),
):
    """Liste les commandes de l'utilisateur authentifié."""
    limit, offset = pagination
    try:
        page = await service.list_user_orders(current_user.id, limit=limit, offset=offset, status=status_filter)
    except Exception as e:
        handle_order_service_errors(e, f"listage commandes user {current_user.id}")
    set_content_range(response, page, offset)
    return page


@order_router.get("/number/{order_number}", response_model=OrderRead)
async def get_order_by_number_endpoint(order_number: str, service: OrderServiceDep, current_user: CurrentUser):
    try:
        return await service.get_order_by_number(order_number, user_id=current_user.id)
    except Exception as e:
        handle_order_service_errors(e, f"lecture commande {order_number}")


@order_router.post("/number/{order_number}/confirm-payment", response_model=PaymentConfirmationResponse)
async def confirm_payment_endpoint(
    order_number: str,
    confirmation: PaymentConfirmationRequest,
    service: OrderServiceDep,
    reconciliation: ReconciliationServiceDep,
    current_user: CurrentUser,
):
    """Confirme un paiement au retour du client, sans attendre le webhook."""
    try:
        await service.get_order_model_by_number(order_number, user_id=current_user.id)
        result = await reconciliation.confirm_payment_by_transaction(
            confirmation.transaction_id, order_number, user_id=current_user.id
        )
        if not result.success:
            logger.warning(f"Confirmation paiement refusée pour {order_number}: {result.message}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)
        order = await service.get_order_by_number(order_number, user_id=current_user.id)
    except Exception as e:
        handle_order_service_errors(e, f"confirmation paiement {order_number}")
    return PaymentConfirmationResponse(success=True, message=result.message, status=result.status, order=order)


@order_router.get("/{order_id}", response_model=OrderRead)
async def get_order_details_endpoint(order_id: int, service: OrderServiceDep, current_user: CurrentUser):
    """Récupère une commande si elle appartient à l'utilisateur."""
    try:
        return await service.get_order_by_id(order_id, user_id=current_user.id)
    except Exception as e:
        handle_order_service_errors(e, f"lecture commande {order_id} user {current_user.id}")


@order_router.post("/{order_id}/cancel", response_model=OrderRead)
async def cancel_order_endpoint(order_id: int, service: OrderServiceDep, current_user: CurrentUser):
    """Annule une commande encore en attente de paiement."""
    try:
        return await service.cancel_order(order_id, user_id=current_user.id)
    except Exception as e:
        handle_order_service_errors(e, f"annulation commande {order_id}")
