from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.inputs.exceptions import InputVariantNotFoundException
from atelier.inputs.models import InputVariant
from atelier.product_variants.exceptions import VariantNotFoundException
from atelier.product_variants.models import ProductVariant
from atelier.stock.exceptions import InsufficientInputStockException, InsufficientStockException
from atelier.stock_movements.ledger import InventoryLedger
from atelier.stock_movements.models import InputMovement, MovementType, VariantMovement

from helpers import reload

pytestmark = pytest.mark.asyncio


async def test_variant_delta_records_snapshot(db_session: AsyncSession, catalog):
    ledger = InventoryLedger(db_session)

    movement = await ledger.apply_variant_delta(
        catalog.regular_variant_id, -3, MovementType.SALE, reference_type="order", reference_id=42
    )
    await db_session.commit()

    assert movement.id is not None
    assert movement.quantity == -3
    assert movement.previous_stock == 10
    assert movement.new_stock == 7
    assert movement.reference_type == "order"
    assert movement.reference_id == 42
    variant = await reload(db_session, ProductVariant, catalog.regular_variant_id)
    assert variant.stock == 7


async def test_variant_withdrawal_never_goes_below_zero(db_session: AsyncSession, catalog):
    ledger = InventoryLedger(db_session)

    with pytest.raises(InsufficientStockException) as exc_info:
        await ledger.apply_variant_delta(catalog.black_variant_id, -3, MovementType.SALE, label="Camiseta negra")

    assert exc_info.value.requested == 3
    assert exc_info.value.available == 2
    assert "Camiseta negra" in exc_info.value.message
    await db_session.rollback()
    variant = await reload(db_session, ProductVariant, catalog.black_variant_id)
    assert variant.stock == 2
    movements = (await db_session.execute(select(VariantMovement))).scalars().all()
    assert movements == []


async def test_variant_withdrawal_of_whole_stock_is_allowed(db_session: AsyncSession, catalog):
    ledger = InventoryLedger(db_session)

    movement = await ledger.apply_variant_delta(catalog.black_variant_id, -2, MovementType.SALE)

    assert movement.new_stock == 0


async def test_withdrawal_reaching_reorder_threshold_is_logged(db_session: AsyncSession, catalog, caplog):
    variant = await reload(db_session, ProductVariant, catalog.regular_variant_id)
    variant.min_stock = 5
    await db_session.commit()
    ledger = InventoryLedger(db_session)

    with caplog.at_level("WARNING", logger="atelier.stock_movements.ledger"):
        await ledger.apply_variant_delta(catalog.regular_variant_id, -4, MovementType.SALE)
    assert "Stock bas" not in caplog.text

    with caplog.at_level("WARNING", logger="atelier.stock_movements.ledger"):
        await ledger.apply_variant_delta(catalog.regular_variant_id, -1, MovementType.SALE)
    assert "Stock bas sur variante" in caplog.text
    assert "seuil 5" in caplog.text


async def test_unknown_variant_raises_not_found(db_session: AsyncSession, catalog):
    ledger = InventoryLedger(db_session)

    with pytest.raises(VariantNotFoundException):
        await ledger.apply_variant_delta(9999, -1, MovementType.SALE)


async def test_positive_delta_is_not_guarded(db_session: AsyncSession, catalog):
    ledger = InventoryLedger(db_session)

    movement = await ledger.apply_variant_delta(catalog.black_variant_id, 5, MovementType.RETURN, reason="Retour client")

    assert movement.previous_stock == 2
    assert movement.new_stock == 7
    assert movement.reason == "Retour client"


async def test_input_delta_handles_fractional_quantities(db_session: AsyncSession, catalog):
    ledger = InventoryLedger(db_session)

    movement = await ledger.apply_input_delta(
        catalog.ink_input_variant_id, Decimal("-0.5"), MovementType.SALE, reference_type="order", reference_id=1
    )
    await db_session.commit()

    assert movement.quantity == Decimal("-0.5")
    assert movement.previous_stock == Decimal("2.5")
    assert movement.new_stock == Decimal("2.0")
    ink = await reload(db_session, InputVariant, catalog.ink_input_variant_id)
    assert ink.current_stock == Decimal("2.0")


async def test_input_shortage_names_the_input(db_session: AsyncSession, catalog):
    ledger = InventoryLedger(db_session)

    with pytest.raises(InsufficientInputStockException) as exc_info:
        await ledger.apply_input_delta(catalog.ink_input_variant_id, Decimal("-3"), MovementType.SALE)

    assert exc_info.value.input_name == "Tinta sublimación"
    assert exc_info.value.required == Decimal("3")


async def test_unknown_input_variant_raises_not_found(db_session: AsyncSession, catalog):
    ledger = InventoryLedger(db_session)

    with pytest.raises(InputVariantNotFoundException):
        await ledger.apply_input_delta(9999, Decimal("-1"), MovementType.SALE)


async def test_movements_replay_to_current_stock(db_session: AsyncSession, catalog):
    """Stock initial + somme des deltas = stock courant, chaque snapshot enchaîne le précédent."""
    ledger = InventoryLedger(db_session)
    for delta, movement_type in [(-4, MovementType.SALE), (2, MovementType.RETURN), (-1, MovementType.DAMAGE)]:
        await ledger.apply_variant_delta(catalog.regular_variant_id, delta, movement_type)
    await db_session.commit()

    movements = (await db_session.execute(
        select(VariantMovement)
        .where(VariantMovement.variant_id == catalog.regular_variant_id)
        .order_by(VariantMovement.id)
    )).scalars().all()
    variant = await reload(db_session, ProductVariant, catalog.regular_variant_id)

    assert 10 + sum(m.quantity for m in movements) == variant.stock == 7
    for previous, current in zip(movements, movements[1:]):
        assert current.previous_stock == previous.new_stock


async def test_input_movements_for_filters_by_reference_and_type(db_session: AsyncSession, catalog):
    ledger = InventoryLedger(db_session)
    await ledger.apply_input_delta(catalog.mug_input_variant_id, Decimal("-1"), MovementType.SALE, "order", 7)
    await ledger.apply_input_delta(catalog.ink_input_variant_id, Decimal("-0.5"), MovementType.SALE, "order", 7)
    await ledger.apply_input_delta(catalog.mug_input_variant_id, Decimal("-1"), MovementType.SALE, "order", 8)
    await ledger.apply_input_delta(catalog.mug_input_variant_id, Decimal("1"), MovementType.RETURN, "order", 7)
    await db_session.commit()

    movements = await ledger.input_movements_for("order", 7, MovementType.SALE)

    assert [m.input_variant_id for m in movements] == [catalog.mug_input_variant_id, catalog.ink_input_variant_id]
    assert all(isinstance(m, InputMovement) for m in movements)
