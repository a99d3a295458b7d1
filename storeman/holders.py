"""
Stock holders — one interface over the three inventory modes.

Callers never branch on Product.inventory_mode: they resolve a holder and
call decrement()/increment()/adjust(). Each call locks the holder row for
its whole read-check-write-audit span and writes exactly one Move (or
nothing, for untracked products).

Usage:
    holder = resolve_holder(variant)
    move = holder.decrement(2, order=order)
"""

import logging

from storeman.exceptions import InsufficientStock, StockError
from storeman.locks import holder_lock
from storeman.models.enums import InventoryMode, MoveKind
from storeman.models.move import Move
from storeman.models.product import Product, Variant

logger = logging.getLogger('storeman')


_DEFAULT_REASONS = {
    MoveKind.ORDER_PLACED: 'Pedido {order} realizado',
    MoveKind.ORDER_CANCELLED: 'Pedido {order} cancelado - estoque devolvido',
    MoveKind.ORDER_REFUNDED: 'Pedido {order} reembolsado - estoque devolvido',
    MoveKind.RESTOCK: 'Reposição de {qty} unidade(s)',
    MoveKind.DAMAGED: 'Avaria de {qty} unidade(s)',
    MoveKind.IMPORT: 'Importação',
    MoveKind.VARIANT_CREATED: 'Variante criada com estoque inicial de {qty}',
    MoveKind.MODE_SYNC: 'Sincronização de modo de estoque',
    MoveKind.MANUAL_ADJUSTMENT: 'Ajuste manual',
}


class StockHolder:
    """
    Base holder.

    Subclasses set `model` and wrap one row in `obj`.
    """

    model = None
    tracked = True
    level = ''

    def __init__(self, obj):
        self.obj = obj

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @property
    def pk(self):
        return self.obj.pk

    @property
    def quantity(self) -> int:
        """Current quantity (re-read, unlocked)."""
        return self.model.objects.values_list('quantity', flat=True).get(pk=self.obj.pk)

    @property
    def product(self) -> Product:
        raise NotImplementedError

    def lock(self):
        """Exclusive access to the holder row (context manager yielding it)."""
        return holder_lock(self.model, self.obj.pk)

    # ══════════════════════════════════════════════════════════════
    # MOVEMENTS
    # ══════════════════════════════════════════════════════════════

    def decrement(self, quantity: int, kind=MoveKind.ORDER_PLACED,
                  order=None, user=None, reason: str = '', **metadata) -> Move | None:
        """
        Remove stock.

        Raises:
            StockError('INVALID_QUANTITY'): If quantity <= 0
            InsufficientStock: If quantity > current quantity (nothing mutated)

        Concurrency:
            - Holder row locked for the whole check-and-write
            - Check happens after the lock
        """
        _check_positive(quantity)
        with self.lock() as locked:
            if quantity > locked.quantity:
                raise InsufficientStock(
                    requested=quantity,
                    available=locked.quantity,
                    holder=self.label,
                )
            move = self._write(locked, -quantity, kind, order, user, reason, metadata)
        logger.info(
            "stock.decrement",
            extra={
                "holder": self.label,
                "qty": quantity,
                "kind": str(kind),
                "order": str(order) if order else None,
                "new_quantity": move.new_quantity,
            },
        )
        return move

    def increment(self, quantity: int, kind=MoveKind.RESTOCK,
                  order=None, user=None, reason: str = '', **metadata) -> Move | None:
        """
        Add stock. No upper bound.

        Raises:
            StockError('INVALID_QUANTITY'): If quantity <= 0
        """
        _check_positive(quantity)
        with self.lock() as locked:
            move = self._write(locked, quantity, kind, order, user, reason, metadata)
        logger.info(
            "stock.increment",
            extra={
                "holder": self.label,
                "qty": quantity,
                "kind": str(kind),
                "order": str(order) if order else None,
                "new_quantity": move.new_quantity,
            },
        )
        return move

    def adjust(self, new_quantity: int, reason: str, user=None, **metadata) -> Move | None:
        """
        Inventory correction.

        Calculates delta automatically: new_quantity - current quantity.
        Returns None when nothing changes.

        Raises:
            StockError('REASON_REQUIRED'): If reason is empty
            StockError('INVALID_QUANTITY'): If new_quantity < 0
        """
        if not reason:
            raise StockError('REASON_REQUIRED')
        if new_quantity is None or new_quantity < 0:
            raise StockError('INVALID_QUANTITY', requested=new_quantity)

        with self.lock() as locked:
            delta = new_quantity - locked.quantity
            if delta == 0:
                return None
            if user is not None:
                metadata.setdefault('adjusted_by', getattr(user, 'email', '') or str(user))
            move = self._write(
                locked, delta, MoveKind.MANUAL_ADJUSTMENT, None, user, reason, metadata
            )
        logger.info(
            "stock.adjust",
            extra={"holder": self.label, "delta": delta, "reason": reason},
        )
        return move

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @property
    def label(self) -> str:
        return f"{self.level}:{self.obj.pk}"

    def _target_kwargs(self, locked) -> dict:
        raise NotImplementedError

    def _snapshot(self, locked) -> dict:
        raise NotImplementedError

    def _write(self, locked, delta, kind, order, user, reason, metadata) -> Move:
        previous = locked.quantity
        snapshot = self._snapshot(locked)
        if order is not None:
            snapshot.update({
                'order_id': order.pk,
                'order_number': order.number,
                'customer_name': order.customer_name,
                'customer_email': order.customer_email,
            })
        snapshot.update(metadata)
        move = Move.objects.create(
            kind=kind,
            delta=delta,
            previous_quantity=previous,
            new_quantity=previous + delta,
            reason=reason or _default_reason(kind, order, abs(delta)),
            order=order,
            user=user,
            metadata=snapshot,
            **self._target_kwargs(locked),
        )
        locked.quantity = previous + delta
        self.obj.quantity = locked.quantity
        return move

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.label}>"


class UntrackedHolder(StockHolder):
    """Product without stock control. Every movement is a no-op."""

    model = Product
    tracked = False
    level = 'untracked'

    @property
    def product(self) -> Product:
        return self.obj

    @property
    def quantity(self) -> None:
        return None

    def decrement(self, quantity: int, *args, **kwargs) -> None:
        _check_positive(quantity)
        return None

    def increment(self, quantity: int, *args, **kwargs) -> None:
        _check_positive(quantity)
        return None

    def adjust(self, new_quantity: int, reason: str, user=None, **metadata):
        raise StockError('NOT_TRACKED', product=self.obj.pk)


class ProductHolder(StockHolder):
    """Counter on Product.quantity."""

    model = Product
    level = 'product'

    @property
    def product(self) -> Product:
        return self.obj

    def _target_kwargs(self, locked) -> dict:
        return {'product': locked}

    def _snapshot(self, locked) -> dict:
        return {
            'product_id': locked.pk,
            'product_name': locked.name,
            'product_sku': locked.sku_prefix,
            'inventory_level': 'product',
        }


class VariantHolder(StockHolder):
    """Counter on Variant.quantity."""

    model = Variant
    level = 'variant'

    @property
    def product(self) -> Product:
        return self.obj.product

    def _target_kwargs(self, locked) -> dict:
        return {'variant': locked}

    def _snapshot(self, locked) -> dict:
        product = self.obj.product
        return {
            'variant_id': locked.pk,
            'variant_name': locked.display_name,
            'variant_sku': locked.sku,
            'product_id': product.pk,
            'product_name': product.name,
            'inventory_level': 'variant',
        }


def resolve_holder(obj) -> StockHolder:
    """
    Holder for a Product or Variant under the product's current mode.

    - UNTRACKED product → UntrackedHolder
    - PRODUCT product (or any of its variants) → ProductHolder
    - VARIANT product's variant → VariantHolder

    Raises:
        StockError('VARIANT_REQUIRED'): VARIANT product addressed directly,
            or its placeholder variant
        StockError('HOLDER_NOT_FOUND'): obj is not a Product or Variant
    """
    if isinstance(obj, StockHolder):
        return obj
    if isinstance(obj, Variant):
        product = obj.product
        variant = obj
    elif isinstance(obj, Product):
        product = obj
        variant = None
    else:
        raise StockError('HOLDER_NOT_FOUND', holder=repr(obj))

    mode = product.inventory_mode
    if mode == InventoryMode.UNTRACKED:
        return UntrackedHolder(product)
    if mode == InventoryMode.PRODUCT:
        return ProductHolder(product)
    if variant is None or variant.is_default:
        raise StockError('VARIANT_REQUIRED', product=product.pk)
    return VariantHolder(variant)


def _check_positive(quantity):
    if quantity is None or quantity <= 0:
        raise StockError('INVALID_QUANTITY', requested=quantity)


def _default_reason(kind, order, qty) -> str:
    template = _DEFAULT_REASONS.get(kind, '{kind}')
    return template.format(order=order.number if order else '', qty=qty, kind=kind)
