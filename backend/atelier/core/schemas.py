from datetime import datetime, timezone
from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    items: List[T]
    total: int


def utc_now() -> datetime:
    """Horodatage UTC conscient du fuseau, utilisé pour toutes les colonnes datetime."""
    return datetime.now(timezone.utc)
