import logging
from typing import Any, Dict

from fastcrud import FastCRUD
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.config import settings
from atelier.store_settings.models import (
    ORDER_SETTINGS_KEY,
    PAYMENT_SETTINGS_KEY,
    GatewayCredentials,
    PricingConfig,
    Setting,
    SettingRead,
)

logger = logging.getLogger(__name__)


def _first_present(values: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Premier champ non nul parmi plusieurs orthographes (camelCase hérité ou snake_case)."""
    for key in keys:
        if values.get(key) is not None:
            return values[key]
    return default


class StoreSettingsService:
    """Lecture des paramètres de boutique, avec valeurs par défaut issues de la configuration."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.crud = FastCRUD(Setting)

    async def get_value(self, key: str) -> Dict[str, Any]:
        setting = await self.crud.get(db=self.db, schema_to_select=SettingRead, return_as_model=True, key=key)
        if setting is None:
            logger.debug(f"[StoreSettingsService] Paramètre '{key}' absent, valeurs par défaut utilisées.")
            return {}
        return setting.value or {}

    async def get_pricing_config(self) -> PricingConfig:
        order_value = await self.get_value(ORDER_SETTINGS_KEY)
        payment_value = await self.get_value(PAYMENT_SETTINGS_KEY)
        return PricingConfig(
            shipping_cost=_first_present(order_value, "shipping_cost", "shippingCost", default=settings.DEFAULT_SHIPPING_COST),
            free_shipping_threshold=_first_present(
                order_value, "free_shipping_threshold", "freeShippingThreshold",
                default=settings.DEFAULT_FREE_SHIPPING_THRESHOLD,
            ),
            tax_rate=_first_present(order_value, "tax_rate", "taxRate", default=settings.DEFAULT_TAX_RATE),
            tax_included=_first_present(payment_value, "tax_included", "taxIncluded", default=settings.DEFAULT_TAX_INCLUDED),
        )

    async def get_gateway_credentials(self) -> GatewayCredentials:
        """Les identifiants enregistrés en base priment sur les variables d'environnement."""
        payment_value = await self.get_value(PAYMENT_SETTINGS_KEY)
        wompi_config: Dict[str, Any] = {}
        methods = payment_value.get("methods")
        if isinstance(methods, list):
            wompi_method = next((m for m in methods if isinstance(m, dict) and m.get("type") == "wompi"), None)
            if wompi_method:
                wompi_config = wompi_method.get("wompiConfig") or wompi_method.get("wompi_config") or {}
        elif isinstance(payment_value.get("wompi"), dict):
            wompi_config = payment_value["wompi"]

        return GatewayCredentials(
            public_key=_first_present(wompi_config, "public_key", "publicKey", default=settings.WOMPI_PUBLIC_KEY),
            events_secret=_first_present(wompi_config, "events_secret", "eventsSecret", default=settings.WOMPI_EVENTS_SECRET),
            is_test_mode=_first_present(wompi_config, "is_test_mode", "isTestMode", default=settings.WOMPI_TEST_MODE),
        )
