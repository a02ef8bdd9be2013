from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from atelier.orders.constants import OrderStatus
from atelier.orders.models import Order, OrderListFilters, OrderStatusHistory


class AbstractOrderRepository(ABC):
    """Interface abstraite pour le repository des commandes, de leurs lignes et de leur historique."""

    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        """Récupère une commande par son ID avec items, historique et acheteur chargés."""
        pass

    @abstractmethod
    async def get_by_number(self, order_number: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def list(self, filters: OrderListFilters, limit: int, offset: int) -> Tuple[List[Order], int]:
        """Liste paginée + nombre total de commandes correspondant aux filtres."""
        pass

    @abstractmethod
    async def add(self, order: Order) -> Order:
        """Ajoute une commande (et ses lignes) à la transaction courante."""
        pass

    @abstractmethod
    async def compare_and_set_status(
        self, order_id: int, current: OrderStatus, values: Dict[str, Any]
    ) -> bool:
        """Met à jour la commande seulement si son statut vaut toujours `current`."""
        pass

    @abstractmethod
    async def add_history(self, order_id: int, status: OrderStatus, note: Optional[str]) -> OrderStatusHistory:
        pass

    @abstractmethod
    async def count_by_status(self) -> Dict[OrderStatus, int]:
        pass

    @abstractmethod
    async def sum_revenue(self) -> int:
        pass

    @abstractmethod
    async def next_sequence_value(self, day: date) -> int:
        """Incrémente atomiquement le compteur du jour et retourne la nouvelle valeur."""
        pass
