from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel
from sqlalchemy import JSON, DateTime
from sqlmodel import Field, SQLModel

from atelier.core.schemas import utc_now

ORDER_SETTINGS_KEY = "order_settings"
PAYMENT_SETTINGS_KEY = "payment_settings"


class Setting(SQLModel, table=True):
    """Paramètre de boutique stocké sous forme clé/valeur JSON."""
    __tablename__ = "settings"

    key: str = Field(primary_key=True, max_length=100)
    value: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False)


class SettingRead(SQLModel):
    key: str
    value: Dict[str, Any]


class PricingConfig(BaseModel):
    shipping_cost: int
    free_shipping_threshold: int
    tax_rate: float
    # Vrai si la TVA est déjà comprise dans les prix affichés
    tax_included: bool


class GatewayCredentials(BaseModel):
    public_key: Optional[str] = None
    events_secret: Optional[str] = None
    is_test_mode: bool = True
