"""
Tests for inventory mode switching.
"""

import pytest

from storeman import StockError, stock
from storeman.models import InventoryMode, Move, MoveKind, Product, Variant


pytestmark = pytest.mark.django_db


class TestVariantToProduct:
    """Folding variant counters onto the product."""

    def test_sums_variants_onto_product(self, shirt):
        """Variants holding 3, 4 and 5 become a product counter of 12."""
        stock.change_mode(shirt, InventoryMode.PRODUCT)

        shirt.refresh_from_db()
        assert shirt.inventory_mode == InventoryMode.PRODUCT
        assert shirt.quantity == 12
        assert stock.quantity(shirt) == 12
        assert not shirt.variants.real().exists()

    def test_creates_one_placeholder(self, shirt):
        """After the switch exactly one placeholder with quantity 0 exists."""
        stock.change_mode(shirt, InventoryMode.PRODUCT)

        placeholders = list(shirt.variants.all())
        assert len(placeholders) == 1
        assert placeholders[0].is_default
        assert placeholders[0].quantity == 0
        assert placeholders[0].sku == 'CAM-DEFAULT'

    def test_writes_mode_sync_moves(self, shirt, staff):
        """One product MODE_SYNC move plus one zeroing move per variant."""
        variant_ids = list(shirt.variants.real().values_list('pk', flat=True))

        stock.change_mode(shirt, InventoryMode.PRODUCT, user=staff)

        product_move = Move.objects.get(product=shirt, kind=MoveKind.MODE_SYNC)
        assert product_move.delta == 12
        assert product_move.user == staff
        assert product_move.metadata['variant_total'] == 12

        zeroing = Move.objects.filter(variant_id__in=variant_ids, kind=MoveKind.MODE_SYNC)
        assert sorted(zeroing.values_list('delta', flat=True)) == [-5, -4, -3]

    def test_ledger_still_replays(self, shirt):
        """Every remaining holder still matches its ledger."""
        stock.change_mode(shirt, InventoryMode.PRODUCT)

        assert stock.drift() == []
        assert stock.balance(Product.objects.get(pk=shirt.pk)) == 12

    def test_deleted_variant_history_survives(self, shirt):
        """Moves of deleted variants keep their variant id and snapshot."""
        medium_id = shirt.variants.get(sku='CAM-M').pk

        stock.change_mode(shirt, InventoryMode.PRODUCT)

        assert not Variant.objects.filter(pk=medium_id).exists()
        moves = Move.objects.filter(variant_id=medium_id).order_by('timestamp', 'pk')
        assert [m.kind for m in moves] == [MoveKind.VARIANT_CREATED, MoveKind.MODE_SYNC]
        assert all(m.metadata['variant_sku'] == 'CAM-M' for m in moves)
        assert moves[0].target is None

    def test_to_untracked_keeps_sum(self, shirt):
        """Switching to untracked still records the sum on the product."""
        stock.change_mode(shirt, InventoryMode.UNTRACKED)

        shirt.refresh_from_db()
        assert shirt.quantity == 12
        assert stock.quantity(shirt) is None
        assert shirt.variants.placeholders().count() == 1
        assert stock.drift() == []


class TestToVariant:
    """Switching into variant-level counting."""

    def test_removes_placeholder(self, cake):
        """PRODUCT → VARIANT deletes the placeholder and creates no variant."""
        stock.change_mode(cake, InventoryMode.VARIANT)

        cake.refresh_from_db()
        assert cake.inventory_mode == InventoryMode.VARIANT
        assert not cake.variants.exists()

    def test_round_trip(self, shirt):
        """VARIANT → PRODUCT → VARIANT leaves no variants and a sound ledger."""
        stock.change_mode(shirt, InventoryMode.PRODUCT)
        stock.change_mode(shirt, InventoryMode.VARIANT)

        assert not Variant.objects.filter(product=shirt).exists()
        assert stock.drift() == []


class TestUntrackedProduct:
    """Switching between untracked and product-level counting."""

    def test_untracked_to_product(self, sticker):
        """The existing placeholder is kept, no duplicate created."""
        placeholder = sticker.placeholder

        stock.change_mode(sticker, InventoryMode.PRODUCT)

        assert list(sticker.variants.all()) == [placeholder]
        assert stock.quantity(sticker) == 0

    def test_product_to_untracked(self, cake):
        """Quantity stops being used; the placeholder stays."""
        stock.change_mode(cake, InventoryMode.UNTRACKED)

        assert stock.quantity(cake) is None
        assert cake.variants.placeholders().count() == 1

    def test_missing_placeholder_is_created(self, sticker):
        """A placeholder lost by earlier edits is recreated on switch."""
        sticker.variants.all().delete()

        stock.change_mode(sticker, InventoryMode.PRODUCT)

        assert sticker.variants.placeholders().count() == 1


class TestModeEdges:
    """No-op and invalid switches."""

    def test_same_mode_is_noop(self, cake):
        """Switching to the current mode writes nothing."""
        moves_before = Move.objects.count()

        stock.change_mode(cake, InventoryMode.PRODUCT)

        assert Move.objects.count() == moves_before
        assert cake.variants.count() == 1

    def test_invalid_mode(self, cake):
        """Unknown modes raise INVALID_MODE."""
        with pytest.raises(StockError) as exc:
            stock.change_mode(cake, 'batch')

        assert exc.value.code == 'INVALID_MODE'

    def test_placeholder_sku_collision(self, make_product):
        """A taken placeholder SKU falls back to one with the product id."""
        first = make_product('Bolo', slug='bolo-1', sku_prefix='BOLO')
        second = make_product('Bolo Grande', slug='bolo-2', sku_prefix='BOLO')

        assert first.placeholder.sku == 'BOLO-DEFAULT'
        assert second.placeholder.sku == f'BOLO-{second.pk}-DEFAULT'

    def test_ensure_placeholder_removes_extras(self, cake):
        """Duplicate placeholders are collapsed to the oldest one."""
        keep = cake.placeholder
        Variant.objects.create(product=cake, sku='BOLO-EXTRA', is_default=True)

        assert stock.ensure_placeholder(cake) == keep
        assert cake.variants.placeholders().count() == 1
