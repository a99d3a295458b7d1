"""
Stock queries — read-only operations.

All methods are classmethod on Stock and use no locking.
"""

from django.db.models import Sum

from storeman.holders import StockHolder, resolve_holder
from storeman.models.enums import InventoryMode
from storeman.models.move import Move
from storeman.models.product import Product, Variant


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def holder(cls, target) -> StockHolder:
        """Holder for a Product or Variant under the product's current mode."""
        return resolve_holder(target)

    @classmethod
    def quantity(cls, target) -> int | None:
        """
        Current quantity of the target's holder.

        Returns:
            int, or None for untracked products
        """
        return resolve_holder(target).quantity

    @classmethod
    def balance(cls, target) -> int:
        """Sum of every ledger delta written on this Product or Variant."""
        return Move.objects.for_holder(target).balance()

    @classmethod
    def ledger(cls, product=None, variant=None, order=None, kind=None,
               start=None, end=None):
        """
        Ledger entries with optional filters, oldest first.

        Args:
            product / variant: Product or Variant (or pk); product matches
                product-level entries only
            order: Order (or pk)
            kind: MoveKind value
            start / end: Inclusive timestamp bounds
        """
        qs = Move.objects.select_related('order', 'user')
        if product is not None:
            qs = qs.filter(product_id=getattr(product, 'pk', product))
        if variant is not None:
            qs = qs.filter(variant_id=getattr(variant, 'pk', variant))
        if order is not None:
            qs = qs.filter(order_id=getattr(order, 'pk', order))
        if kind:
            qs = qs.of_kind(kind)
        return qs.between(start, end)

    @classmethod
    def drift(cls, product=None) -> list[dict]:
        """
        Holders whose quantity disagrees with a replay of their ledger.

        Every Product counter and every existing Variant is checked,
        whatever the current mode. An empty list means the ledger is sound.

        Args:
            product: Limit the check to one product and its variants
        """
        products = Product.objects.all()
        variants = Variant.objects.all()
        if product is not None:
            pk = getattr(product, 'pk', product)
            products = products.filter(pk=pk)
            variants = variants.filter(product_id=pk)

        product_sums = dict(
            Move.objects.filter(product__isnull=False)
            .values_list('product_id')
            .annotate(t=Sum('delta'))
        )
        variant_sums = dict(
            Move.objects.filter(variant__isnull=False)
            .values_list('variant_id')
            .annotate(t=Sum('delta'))
        )

        drifted = []
        for obj in products.only('pk', 'name', 'quantity'):
            replayed = product_sums.get(obj.pk, 0)
            if replayed != obj.quantity:
                drifted.append(_drift('product', obj, replayed))
        for obj in variants.only('pk', 'sku', 'quantity'):
            replayed = variant_sums.get(obj.pk, 0)
            if replayed != obj.quantity:
                drifted.append(_drift('variant', obj, replayed))
        return drifted

    @classmethod
    def tracked_holders(cls, product=None):
        """(level, obj) for every holder whose quantity is in use."""
        products = Product.objects.filter(inventory_mode=InventoryMode.PRODUCT)
        variants = Variant.objects.real().filter(
            product__inventory_mode=InventoryMode.VARIANT
        ).select_related('product')
        if product is not None:
            pk = getattr(product, 'pk', product)
            products = products.filter(pk=pk)
            variants = variants.filter(product_id=pk)
        for obj in products:
            yield 'product', obj
        for obj in variants:
            yield 'variant', obj


def _drift(level, obj, replayed) -> dict:
    return {
        'level': level,
        'id': obj.pk,
        'label': str(obj) if level == 'product' else obj.sku,
        'quantity': obj.quantity,
        'ledger': replayed,
        'difference': obj.quantity - replayed,
    }
