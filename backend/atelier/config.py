import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Charger les variables d'environnement AVANT de définir la classe Settings
load_dotenv()

DEFAULT_JWT_SECRET = "remplacer_par_une_vraie_cle_secrete_forte"


# Classe de configuration utilisant Pydantic BaseSettings
class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignorer les variables d'env non définies dans le modèle
    )

    # --- Application ---
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    API_V1_PREFIX: str = "/api/v1"
    STORE_NAME: str = "Atelier"
    STORE_TIMEZONE: str = "America/Bogota"

    # --- SMTP ---
    SENDER_EMAIL: str = "pedidos@atelier.co"
    SENDER_PASSWORD: Optional[str] = None
    SMTP_HOST: str = "smtp.hostinger.com"
    SMTP_PORT: int = 587

    # --- Pagination ---
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # --- Base de Données ---
    DATABASE_URL: Optional[str] = None
    POSTGRES_DB: str = "atelier"
    POSTGRES_USER: str = "atelier"
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: str = "5432"
    DB_ECHO_LOG: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # --- JWT ---
    JWT_SECRET_KEY: str = DEFAULT_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Passerelle de paiement (Wompi) ---
    WOMPI_PUBLIC_KEY: Optional[str] = None
    WOMPI_EVENTS_SECRET: Optional[str] = None
    WOMPI_TEST_MODE: bool = True
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float = 10.0

    # --- Tarification par défaut (si absente de la table settings) ---
    DEFAULT_SHIPPING_COST: int = 12000
    DEFAULT_FREE_SHIPPING_THRESHOLD: int = 150000
    DEFAULT_TAX_RATE: float = 0.19
    DEFAULT_TAX_INCLUDED: bool = True

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ("production", "prod")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


# Instancier la classe de configuration
settings = Settings()

# --- Validation des secrets essentiels après le chargement ---
if settings.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
    logger.warning("La variable JWT_SECRET_KEY utilise la valeur par défaut. Veuillez définir une clé secrète forte.")
if not settings.DATABASE_URL and settings.POSTGRES_PASSWORD is None:
    logger.critical("Ni DATABASE_URL ni POSTGRES_PASSWORD ne sont définis!")
if settings.is_production and not settings.WOMPI_EVENTS_SECRET:
    logger.critical("WOMPI_EVENTS_SECRET n'est pas défini en production: les webhooks seront rejetés.")

logger.info(
    f"Configuration chargée: env={settings.ENVIRONMENT}, DB={settings.POSTGRES_DB}@{settings.POSTGRES_HOST}, "
    f"Wompi test_mode={settings.WOMPI_TEST_MODE}"
)
