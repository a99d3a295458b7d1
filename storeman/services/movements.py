"""
Stock movements — state-changing operations (decrement, increment, adjust).

Every method resolves the holder for the product's current mode and
delegates to it; the holder locks its row and writes one Move.
"""

import logging

from django.db import transaction

from storeman.exceptions import StockError
from storeman.holders import VariantHolder, resolve_holder
from storeman.models.enums import InventoryMode, MoveKind
from storeman.models.product import Variant

logger = logging.getLogger('storeman')


class StockMovements:
    """State-changing stock movement methods."""

    @classmethod
    def decrement(cls, quantity, target, order=None, user=None, reason=''):
        """
        Stock exit for an order.

        Args:
            target: Product or Variant (resolved under the current mode)

        Returns:
            Move, or None for untracked products

        Raises:
            InsufficientStock: If quantity > current quantity
            StockError('INVALID_QUANTITY'): If quantity <= 0
        """
        return resolve_holder(target).decrement(
            quantity, MoveKind.ORDER_PLACED, order=order, user=user, reason=reason
        )

    @classmethod
    def increment(cls, quantity, target, kind=MoveKind.RESTOCK,
                  order=None, user=None, reason=''):
        """
        Stock entry (restock, cancellation, refund, import).

        Returns:
            Move, or None for untracked products
        """
        if kind not in (MoveKind.RESTOCK, MoveKind.ORDER_CANCELLED,
                        MoveKind.ORDER_REFUNDED, MoveKind.IMPORT):
            raise StockError('INVALID_KIND', kind=str(kind))
        return resolve_holder(target).increment(
            quantity, kind, order=order, user=user, reason=reason
        )

    @classmethod
    def restock(cls, quantity, target, user=None, reason=''):
        """Shortcut for increment(kind=RESTOCK)."""
        holder = resolve_holder(target)
        metadata = {}
        if user is not None:
            metadata['restocked_by'] = getattr(user, 'email', '') or str(user)
        return holder.increment(quantity, MoveKind.RESTOCK, user=user, reason=reason, **metadata)

    @classmethod
    def record_damaged(cls, quantity, target, reason, user=None):
        """
        Remove damaged units.

        Raises:
            StockError('REASON_REQUIRED'): If reason is empty
            InsufficientStock: If quantity > current quantity
        """
        if not reason:
            raise StockError('REASON_REQUIRED')
        return resolve_holder(target).decrement(
            quantity,
            MoveKind.DAMAGED,
            user=user,
            reason=f"Avaria: {reason}",
            damaged_quantity=quantity,
            damage_reason=reason,
        )

    @classmethod
    def adjust(cls, target, new_quantity, reason, user=None):
        """
        Inventory adjustment (admin correction).

        Calculates delta automatically: new_quantity - current quantity.

        Returns:
            Move, or None when the quantity already matches

        Raises:
            StockError('REASON_REQUIRED'): If reason is empty
            StockError('NOT_TRACKED'): If the product is untracked
        """
        return resolve_holder(target).adjust(new_quantity, reason, user=user)

    @classmethod
    def create_variant(cls, product, sku, name='', quantity=0, price=None,
                       user=None, kind=MoveKind.VARIANT_CREATED, **fields):
        """
        Create a real variant with its initial stock on the ledger.

        The variant starts at 0; a positive initial quantity is written as a
        VARIANT_CREATED (or IMPORT) move so the ledger replays from zero.

        Raises:
            StockError('INVALID_MODE'): If product is not VARIANT mode and
                a quantity is given
            StockError('INVALID_QUANTITY'): If quantity < 0
        """
        if quantity < 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)
        if quantity and product.inventory_mode != InventoryMode.VARIANT:
            raise StockError(
                'INVALID_MODE',
                product=product.pk,
                mode=product.inventory_mode,
            )

        with transaction.atomic():
            variant = Variant.objects.create(
                product=product,
                sku=sku,
                name=name,
                price=price,
                quantity=0,
                **fields,
            )
            if quantity:
                metadata = {}
                if user is not None:
                    metadata['created_by'] = getattr(user, 'email', '') or str(user)
                VariantHolder(variant).increment(quantity, kind, user=user, **metadata)
                variant.refresh_from_db()

        logger.info(
            "stock.variant.created",
            extra={"variant_id": variant.pk, "sku": sku, "qty": quantity},
        )
        return variant
