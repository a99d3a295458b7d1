"""
Tests for stock holders and the Move ledger.
"""

import pytest

from storeman import InsufficientStock, StockError, stock
from storeman.exceptions import LedgerIntegrityViolation
from storeman.holders import ProductHolder, UntrackedHolder, VariantHolder
from storeman.models import Move, MoveKind, Variant


pytestmark = pytest.mark.django_db


class TestResolveHolder:
    """Tests for stock.holder()."""

    def test_product_level(self, cake):
        """PRODUCT mode resolves to the product counter, also via its placeholder."""
        assert isinstance(stock.holder(cake), ProductHolder)
        assert isinstance(stock.holder(cake.placeholder), ProductHolder)

    def test_variant_level(self, shirt):
        """VARIANT mode resolves a real variant to its own counter."""
        variant = shirt.variants.get(sku='CAM-M')
        assert isinstance(stock.holder(variant), VariantHolder)

    def test_variant_level_product_requires_variant(self, shirt):
        """Addressing a VARIANT product directly is an error."""
        with pytest.raises(StockError) as exc:
            stock.holder(shirt)

        assert exc.value.code == 'VARIANT_REQUIRED'

    def test_untracked(self, sticker):
        """UNTRACKED mode resolves to a holder without quantity."""
        holder = stock.holder(sticker)

        assert isinstance(holder, UntrackedHolder)
        assert not holder.tracked
        assert stock.quantity(sticker) is None


class TestDecrement:
    """Tests for stock.decrement()."""

    def test_decrement_writes_one_move(self, cake):
        """Decrement lowers the quantity and writes an ORDER_PLACED move."""
        move = stock.decrement(3, cake)

        cake.refresh_from_db()
        assert cake.quantity == 7
        assert move.kind == MoveKind.ORDER_PLACED
        assert move.delta == -3
        assert (move.previous_quantity, move.new_quantity) == (10, 7)
        assert move.product_id == cake.pk
        assert move.variant_id is None

    def test_decrement_variant(self, shirt):
        """Variant decrement touches only that variant."""
        medium = shirt.variants.get(sku='CAM-M')
        stock.decrement(4, medium)

        assert stock.quantity(medium) == 0
        assert stock.quantity(shirt.variants.get(sku='CAM-G')) == 5

    def test_insufficient_stock(self, cake):
        """Asking for more than available raises and changes nothing."""
        moves_before = Move.objects.count()

        with pytest.raises(InsufficientStock) as exc:
            stock.decrement(11, cake)

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.requested == 11
        assert exc.value.available == 10
        assert exc.value.retryable
        assert stock.quantity(cake) == 10
        assert Move.objects.count() == moves_before

    def test_decrement_to_zero(self, cake):
        """Exact quantity is allowed; quantity never goes negative."""
        stock.decrement(10, cake)

        assert stock.quantity(cake) == 0
        with pytest.raises(InsufficientStock):
            stock.decrement(1, cake)

    @pytest.mark.parametrize('quantity', [0, -1, None])
    def test_invalid_quantity(self, cake, quantity):
        """Non-positive quantity raises INVALID_QUANTITY."""
        with pytest.raises(StockError) as exc:
            stock.decrement(quantity, cake)

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_untracked_is_noop(self, sticker):
        """Untracked products accept any decrement without a move."""
        assert stock.decrement(1000, sticker) is None
        assert not Move.objects.exists()


class TestIncrement:
    """Tests for stock.increment() and stock.restock()."""

    def test_restock(self, cake, staff):
        """Restock adds stock and records who did it."""
        move = stock.restock(5, cake, user=staff, reason='Chegada do fornecedor')

        assert stock.quantity(cake) == 15
        assert move.kind == MoveKind.RESTOCK
        assert move.user == staff
        assert move.reason == 'Chegada do fornecedor'
        assert move.metadata['restocked_by'] == 'staff@example.com'

    def test_default_reason(self, cake):
        """Moves without a reason get one from their kind."""
        move = stock.restock(2, cake)

        assert move.reason == 'Reposição de 2 unidade(s)'

    def test_import_kind(self, cake):
        """IMPORT is an allowed increment kind."""
        move = stock.increment(4, cake, kind=MoveKind.IMPORT)

        assert move.kind == MoveKind.IMPORT
        assert stock.quantity(cake) == 14

    def test_disallowed_kind(self, cake):
        """Decrement kinds cannot be used to add stock."""
        with pytest.raises(StockError) as exc:
            stock.increment(1, cake, kind=MoveKind.DAMAGED)

        assert exc.value.code == 'INVALID_KIND'

    def test_record_damaged(self, cake):
        """Damaged units leave with a DAMAGED move keeping the reason."""
        move = stock.record_damaged(2, cake, reason='Caiu no chão')

        assert move.kind == MoveKind.DAMAGED
        assert move.delta == -2
        assert move.reason == 'Avaria: Caiu no chão'
        assert move.metadata['damage_reason'] == 'Caiu no chão'

    def test_record_damaged_requires_reason(self, cake):
        """Damage without a reason is refused."""
        with pytest.raises(StockError) as exc:
            stock.record_damaged(1, cake, reason='')

        assert exc.value.code == 'REASON_REQUIRED'


class TestAdjust:
    """Tests for stock.adjust()."""

    def test_adjust_computes_delta(self, cake, staff):
        """Adjust writes new - current as a MANUAL_ADJUSTMENT."""
        move = stock.adjust(cake, 4, 'Contagem semanal', user=staff)

        assert move.kind == MoveKind.MANUAL_ADJUSTMENT
        assert move.delta == -6
        assert move.metadata['adjusted_by'] == 'staff@example.com'
        assert stock.quantity(cake) == 4

    def test_adjust_unchanged_returns_none(self, cake):
        """Same quantity: no move."""
        assert stock.adjust(cake, 10, 'Contagem') is None
        assert Move.objects.of_kind(MoveKind.MANUAL_ADJUSTMENT).count() == 0

    def test_adjust_requires_reason(self, cake):
        """Empty reason raises REASON_REQUIRED."""
        with pytest.raises(StockError) as exc:
            stock.adjust(cake, 3, '')

        assert exc.value.code == 'REASON_REQUIRED'

    def test_adjust_negative(self, cake):
        """Negative targets raise INVALID_QUANTITY."""
        with pytest.raises(StockError) as exc:
            stock.adjust(cake, -1, 'Contagem')

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_adjust_untracked(self, sticker):
        """Untracked products have no quantity to adjust."""
        with pytest.raises(StockError) as exc:
            stock.adjust(sticker, 3, 'Contagem')

        assert exc.value.code == 'NOT_TRACKED'


class TestCreateVariant:
    """Tests for stock.create_variant()."""

    def test_initial_stock_on_ledger(self, shirt):
        """Initial quantity is a VARIANT_CREATED move from zero."""
        variant = shirt.variants.get(sku='CAM-G')
        move = Move.objects.for_holder(variant).get()

        assert variant.quantity == 5
        assert move.kind == MoveKind.VARIANT_CREATED
        assert move.previous_quantity == 0
        assert move.metadata['variant_sku'] == 'CAM-G'

    def test_without_quantity(self, shirt):
        """No quantity, no move."""
        variant = stock.create_variant(shirt, sku='CAM-GG', name='GG')

        assert variant.quantity == 0
        assert not Move.objects.for_holder(variant).exists()

    def test_quantity_requires_variant_mode(self, cake):
        """Seeding a variant of a PRODUCT-mode product is refused."""
        with pytest.raises(StockError) as exc:
            stock.create_variant(cake, sku='BOLO-G', quantity=3)

        assert exc.value.code == 'INVALID_MODE'
        assert not Variant.objects.filter(sku='BOLO-G').exists()


class TestMoveImmutability:
    """Tests for the Move save()/delete() contract."""

    def test_cannot_update(self, cake):
        """Saving an existing move raises."""
        move = stock.decrement(1, cake)
        move.reason = 'Outro motivo'

        with pytest.raises(LedgerIntegrityViolation) as exc:
            move.save()

        assert exc.value.code == 'IMMUTABLE'

    def test_cannot_delete(self, cake):
        """Moves cannot be deleted, one by one or in bulk."""
        move = stock.decrement(1, cake)

        with pytest.raises(LedgerIntegrityViolation):
            move.delete()
        with pytest.raises(LedgerIntegrityViolation):
            Move.objects.all().delete()
        with pytest.raises(LedgerIntegrityViolation):
            Move.objects.all().update(reason='x')

    def test_requires_exactly_one_target(self, cake):
        """Zero or two targets are refused."""
        variant = cake.placeholder

        with pytest.raises(LedgerIntegrityViolation) as exc:
            Move(kind=MoveKind.RESTOCK, delta=1, previous_quantity=0,
                 new_quantity=1, reason='x').save()
        assert exc.value.code == 'TARGET_REQUIRED'

        with pytest.raises(LedgerIntegrityViolation):
            Move(product=cake, variant=variant, kind=MoveKind.RESTOCK, delta=1,
                 previous_quantity=10, new_quantity=11, reason='x').save()

    def test_delta_must_match(self, cake):
        """delta == new_quantity - previous_quantity."""
        with pytest.raises(LedgerIntegrityViolation) as exc:
            Move(product=cake, kind=MoveKind.RESTOCK, delta=2,
                 previous_quantity=10, new_quantity=11, reason='x').save()

        assert exc.value.code == 'DELTA_MISMATCH'
        assert not exc.value.retryable

    def test_stale_previous_quantity(self, cake):
        """A move built on a stale quantity never lands."""
        moves_before = Move.objects.count()

        with pytest.raises(LedgerIntegrityViolation) as exc:
            Move(product=cake, kind=MoveKind.RESTOCK, delta=1,
                 previous_quantity=3, new_quantity=4, reason='x').save()

        assert exc.value.code == 'STALE_QUANTITY'
        assert Move.objects.count() == moves_before
        assert stock.quantity(cake) == 10

    def test_formatted_delta(self, cake):
        """formatted_delta shows the sign."""
        assert stock.restock(3, cake).formatted_delta == '+3'
        assert stock.decrement(2, cake).formatted_delta == '-2'


class TestLedgerQueries:
    """Tests for ledger replay and audit queries."""

    def test_balance_equals_quantity(self, cake, shirt):
        """Every holder's ledger sums to its quantity."""
        small = shirt.variants.get(sku='CAM-P')
        stock.decrement(3, cake)
        stock.restock(8, cake)
        stock.adjust(cake, 2, 'Contagem')
        stock.decrement(1, small)
        stock.record_damaged(1, small, reason='Rasgada')

        assert stock.balance(cake) == stock.quantity(cake) == 2
        assert stock.balance(small) == stock.quantity(small) == 1
        assert stock.drift() == []

    def test_drift_reports_direct_writes(self, cake):
        """A quantity written behind the ledger's back is reported."""
        type(cake).objects.filter(pk=cake.pk).update(quantity=99)

        drift = stock.drift()
        assert drift == [{
            'level': 'product',
            'id': cake.pk,
            'label': 'Bolo de Açaí',
            'quantity': 99,
            'ledger': 10,
            'difference': 89,
        }]

    def test_ledger_filters(self, cake, shirt):
        """ledger() filters by target and kind."""
        stock.decrement(1, cake)
        stock.restock(2, cake)

        assert stock.ledger(product=cake).count() == 3
        assert stock.ledger(product=cake, kind=MoveKind.RESTOCK).count() == 2
        assert stock.ledger(variant=shirt.variants.get(sku='CAM-P')).count() == 1
        assert list(stock.ledger(product=cake).values_list('delta', flat=True)) == [10, -1, 2]


class TestLowStock:
    """Tests for stock.low_stock()."""

    def test_low_stock(self, cake, shirt, sticker):
        """Only tracked holders at or below their threshold are reported."""
        stock.decrement(5, cake)

        low = {(str(obj), qty) for obj, qty in stock.low_stock()}

        assert low == {
            ('Bolo de Açaí', 5),
            ('Camiseta — P', 3),
            ('Camiseta — M', 4),
            ('Camiseta — G', 5),
        }

    def test_stock_status(self, cake, sticker):
        """stock_status follows quantity and threshold."""
        assert cake.stock_status == 'in_stock'
        stock.adjust(cake, 0, 'Zerado')
        cake.refresh_from_db()
        assert cake.stock_status == 'out_of_stock'
        assert sticker.stock_status == 'not_tracked'
