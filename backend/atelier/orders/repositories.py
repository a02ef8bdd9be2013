import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from atelier.config import settings
from atelier.orders.config import REVENUE_STATUSES
from atelier.orders.constants import OrderStatus
from atelier.orders.interfaces.repositories import AbstractOrderRepository
from atelier.orders.models import Order, OrderListFilters, OrderSequence, OrderStatusHistory
from atelier.users.models import User

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "created_at": Order.created_at,
    "total": Order.total,
    "status": Order.status,
    "order_number": Order.order_number,
}


def _contains_pattern(text: str) -> str:
    """Motif LIKE de recherche par sous-chaîne, `%` et `_` y restent littéraux."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _day_start_utc(day: date) -> datetime:
    """Début du jour `day` dans le fuseau de la boutique, exprimé en UTC."""
    return datetime.combine(day, time.min, tzinfo=ZoneInfo(settings.STORE_TIMEZONE)).astimezone(timezone.utc)


class SQLAlchemyOrderRepository(AbstractOrderRepository):
    """Implémentation SQLAlchemy du repository des commandes."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    def _with_relations(self, stmt):
        return stmt.options(
            selectinload(Order.items),
            selectinload(Order.status_history),
            selectinload(Order.user),
        ).execution_options(populate_existing=True)

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        logger.debug(f"[OrderRepository] Lecture commande ID: {order_id}")
        result = await self.db.execute(self._with_relations(select(Order).where(Order.id == order_id)))
        return result.scalars().first()

    async def get_by_number(self, order_number: str) -> Optional[Order]:
        logger.debug(f"[OrderRepository] Lecture commande numéro: {order_number}")
        result = await self.db.execute(self._with_relations(select(Order).where(Order.order_number == order_number)))
        return result.scalars().first()

    async def list(self, filters: OrderListFilters, limit: int, offset: int) -> Tuple[List[Order], int]:
        stmt = select(Order).outerjoin(User, User.id == Order.user_id)
        if filters.status is not None:
            stmt = stmt.where(Order.status == filters.status)
        if filters.user_id is not None:
            stmt = stmt.where(Order.user_id == filters.user_id)
        if filters.start_date is not None:
            stmt = stmt.where(Order.created_at >= _day_start_utc(filters.start_date))
        if filters.end_date is not None:
            stmt = stmt.where(Order.created_at < _day_start_utc(filters.end_date + timedelta(days=1)))
        if filters.search:
            pattern = _contains_pattern(filters.search.strip())
            stmt = stmt.where(or_(
                Order.order_number.ilike(pattern, escape="\\"),
                User.name.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
            ))

        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery()))

        sort_column = _SORT_COLUMNS[filters.sort_by]
        ordering = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()
        stmt = self._with_relations(stmt.order_by(ordering, Order.id.desc()).offset(offset).limit(limit))
        orders = list((await self.db.execute(stmt)).scalars().unique().all())
        logger.debug(f"[OrderRepository] {len(orders)}/{total} commandes (offset={offset}, limit={limit})")
        return orders, total or 0

    async def add(self, order: Order) -> Order:
        self.db.add(order)
        await self.db.flush()
        return order

    async def compare_and_set_status(
        self, order_id: int, current: OrderStatus, values: Dict[str, Any]
    ) -> bool:
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == current)
            .values(**values)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            logger.warning(f"[OrderRepository] Compare-and-set perdu pour commande {order_id} (statut attendu {current.value}).")
            return False
        return True

    async def add_history(self, order_id: int, status: OrderStatus, note: Optional[str]) -> OrderStatusHistory:
        entry = OrderStatusHistory(order_id=order_id, status=status, note=note)
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def count_by_status(self) -> Dict[OrderStatus, int]:
        rows = (await self.db.execute(select(Order.status, func.count(Order.id)).group_by(Order.status))).all()
        counts = {status: 0 for status in OrderStatus}
        for status, count in rows:
            counts[OrderStatus(status)] = count
        return counts

    async def sum_revenue(self) -> int:
        revenue = await self.db.scalar(
            select(func.coalesce(func.sum(Order.total), 0)).where(Order.status.in_(REVENUE_STATUSES))
        )
        return int(revenue or 0)

    async def next_sequence_value(self, day: date) -> int:
        table = OrderSequence.__table__
        insert = pg_insert if self.db.get_bind().dialect.name == "postgresql" else sqlite_insert
        stmt = (
            insert(table)
            .values(sequence_date=day, last_value=1)
            .on_conflict_do_update(
                index_elements=[table.c.sequence_date],
                set_={"last_value": table.c.last_value + 1},
            )
            .returning(table.c.last_value)
        )
        value = (await self.db.execute(stmt)).scalar_one()
        logger.debug(f"[OrderRepository] Compteur du {day.isoformat()}: {value}")
        return value
