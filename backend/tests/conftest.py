# Standard Library
from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator, Callable
from unittest.mock import AsyncMock

# Third-Party Libraries
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

# First-Party Libraries
import atelier.models  # noqa: F401
from atelier.auth.security import create_access_token
from atelier.database import get_db_session
from atelier.inputs.models import Input, InputVariant, TemplateRecipe
from atelier.main import app
from atelier.notifications.dependencies import get_notification_service
from atelier.notifications.service import NotificationService
from atelier.orders.service import OrderService
from atelier.payments.dependencies import get_payment_gateway
from atelier.payments.service import PaymentReconciliationService
from atelier.product_variants.models import ProductVariant
from atelier.products.models import Color, Product, ProductKind, Size
from atelier.store_settings.service import StoreSettingsService
from atelier.users.models import User

from helpers import BLACK, FIXED_NOW, WHITE, Catalog, FakePaymentGateway, build_order_service

# URL de base pour la DB en mémoire
TEST_DATABASE_BASE_URL = "sqlite+aiosqlite:///:memory:"


# --- Fixtures de Base ---

@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Crée un engine, des tables, et fournit une session DB en mémoire pour chaque test."""
    # StaticPool: une seule connexion, sinon chaque connexion verrait une base vide
    engine: AsyncEngine = create_async_engine(
        TEST_DATABASE_BASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with TestingSessionLocal() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock(spec=NotificationService)


@pytest.fixture
def fake_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest_asyncio.fixture(scope="function")
async def test_client(
    db_session: AsyncSession, notifier: AsyncMock, fake_gateway: FakePaymentGateway
) -> AsyncGenerator[AsyncClient, None]:
    """Fournit un AsyncClient httpx qui utilise la session DB de test isolée."""
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# --- Services construits directement ---

@pytest.fixture
def order_service(db_session: AsyncSession, notifier: AsyncMock, clock) -> OrderService:
    return build_order_service(db_session, notifier, clock)


@pytest.fixture
def reconciliation_service(
    db_session: AsyncSession, order_service: OrderService, fake_gateway: FakePaymentGateway
) -> PaymentReconciliationService:
    return PaymentReconciliationService(
        db=db_session,
        order_service=order_service,
        gateway=fake_gateway,
        settings_service=StoreSettingsService(db_session),
    )


# --- Fixtures Utilisateur et Authentification ---

async def _create_user(db_session: AsyncSession, email: str, name: str, is_admin: bool = False) -> User:
    user = User(email=email, name=name, is_admin=is_admin)
    db_session.add(user)
    await db_session.commit()  # Commit pour obtenir l'ID
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "comprador@example.com", "Ana Compradora")


@pytest_asyncio.fixture(scope="function")
async def test_user_2(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "otro@example.com", "Otro Cliente")


@pytest_asyncio.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "admin@example.com", "Admin User", is_admin=True)


def _auth_headers(user: User) -> dict[str, str]:
    access_token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def auth_headers_user(test_user: User) -> dict[str, str]:
    return _auth_headers(test_user)


@pytest.fixture
def auth_headers_user_2(test_user_2: User) -> dict[str, str]:
    return _auth_headers(test_user_2)


@pytest.fixture
def auth_headers_admin(admin_user: User) -> dict[str, str]:
    return _auth_headers(admin_user)


# --- Catalogue ---

@pytest_asyncio.fixture(scope="function")
async def catalog(db_session: AsyncSession) -> Catalog:
    """Un produit REGULAR (blanc: stock 10 à 25000, noir: stock 2 à 27000) et un produit
    TEMPLATE dont la recette consomme 1 taza blanca (stock 5) et 0.5 ml de tinta (stock 2.5)."""
    white = Color(name="Blanco", hex_code=WHITE)
    black = Color(name="Negro", hex_code=BLACK)
    medium = Size(name="Mediana", abbreviation="M")
    db_session.add_all([white, black, medium])
    await db_session.flush()

    tshirt = Product(name="Camiseta Básica", kind=ProductKind.REGULAR, base_price=25000, images=["tshirt.png"])
    mug = Product(name="Taza Personalizada", kind=ProductKind.TEMPLATE, base_price=30000)
    db_session.add_all([tshirt, mug])
    await db_session.flush()

    tshirt_white = ProductVariant(product_id=tshirt.id, color_id=white.id, size_id=medium.id, stock=10)
    tshirt_black = ProductVariant(product_id=tshirt.id, color_id=black.id, size_id=medium.id, stock=2, price=27000)
    mug_white = ProductVariant(product_id=mug.id, color_id=white.id, size_id=medium.id, stock=0)
    db_session.add_all([tshirt_white, tshirt_black, mug_white])

    blank_mug = Input(name="Taza blanca", unit="unidad")
    ink = Input(name="Tinta sublimación", unit="ml")
    db_session.add_all([blank_mug, ink])
    await db_session.flush()

    blank_mug_white = InputVariant(input_id=blank_mug.id, color_id=white.id, current_stock=Decimal("5"))
    ink_default = InputVariant(input_id=ink.id, current_stock=Decimal("2.5"))
    db_session.add_all([blank_mug_white, ink_default])
    await db_session.flush()

    db_session.add_all([
        TemplateRecipe(variant_id=mug_white.id, input_variant_id=blank_mug_white.id, quantity=Decimal("1")),
        TemplateRecipe(variant_id=mug_white.id, input_variant_id=ink_default.id, quantity=Decimal("0.5")),
    ])
    await db_session.commit()

    return Catalog(
        regular_product_id=tshirt.id,
        regular_variant_id=tshirt_white.id,
        black_variant_id=tshirt_black.id,
        template_product_id=mug.id,
        template_variant_id=mug_white.id,
        mug_input_variant_id=blank_mug_white.id,
        ink_input_variant_id=ink_default.id,
    )
