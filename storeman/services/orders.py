"""
Order fulfillment — place, transition, pay and refund orders.

place() composes validation, payment authorization, slot admission and
stock decrements into one transaction: either the order exists with every
item decremented, or nothing changed. Notifications run after commit.
"""

import logging
from contextlib import ExitStack
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from django.db import IntegrityError, transaction
from django.utils import timezone

from storeman.adapters import get_notification_dispatcher, get_payment_authority
from storeman.conf import storeman_settings
from storeman.exceptions import (
    InsufficientStock,
    InvalidRequest,
    InvalidTransition,
    OrderError,
    OrderRejected,
    StockError,
)
from storeman.holders import StockHolder, resolve_holder
from storeman.locks import holder_lock
from storeman.models.enums import (
    CANCELLED,
    MoveKind,
    OrderKind,
    PaymentStatus,
    can_transition,
    can_transition_payment,
)
from storeman.models.order import Order, OrderItem
from storeman.models.product import Product, Variant
from storeman.services.availability import BookingConfig, check_slot
from storeman.slots import parse_label

logger = logging.getLogger('storeman')

NUMBER_ATTEMPTS = 5


@dataclass
class _Line:
    """One validated order line, before stock is touched."""

    index: int
    product: Product
    variant: Variant | None
    quantity: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def sku(self) -> str:
        if self.variant is not None:
            return self.variant.sku
        return self.product.sku_prefix

    def describe(self) -> dict[str, Any]:
        return {
            'index': self.index,
            'product': self.product.pk,
            'variant': self.variant.pk if self.variant else None,
            'sku': self.sku,
            'name': self.product.name,
        }


class OrderFulfillment:
    """Order placement and lifecycle methods."""

    @classmethod
    def place(cls, kind, items, customer, pickup_date: date | None = None,
              pickup_slot: str | None = None, payment_reference: str | None = None,
              config: BookingConfig | None = None, user=None,
              now: datetime | None = None, notes: str = '') -> Order:
        """
        Place an order.

        Args:
            kind: OrderKind value
            items: [{'variant': Variant|pk} or {'product': Product|pk}, 'quantity': int]
            customer: {'name', 'email', 'phone'}
            pickup_date / pickup_slot: Required for pickup orders ('10:00-10:30')
            payment_reference: Passed to the payment authority
            config: BookingConfig for this request (loaded when None)

        Returns:
            The committed Order with its items

        Raises:
            InvalidRequest: Missing fields or bad values (nothing mutated)
            OrderError('PAYMENT_NOT_AUTHORIZED'): Payment authority said no
            OrderError('BOOKING_DISABLED'): Pickup ordering is turned off
            SlotUnavailable: Slot blocked, full, too soon, closed or not a slot of the day
            OrderRejected: One or more items lacked stock or lost their holder
                to a mode change; lists all of them

        Concurrency:
            - Every product in the order is locked (pk order) before any
              decrement; holders are re-resolved under that lock
        """
        kind, lines, customer = _validate(kind, items, customer, pickup_date, pickup_slot)
        total = sum((line.total_price for line in lines), Decimal('0'))
        reference = (payment_reference or '').strip()

        if not get_payment_authority().is_authorized(reference, total):
            logger.warning(
                "order.payment.not_authorized",
                extra={"reference": reference, "total": str(total)},
            )
            raise OrderError('PAYMENT_NOT_AUTHORIZED', reference=reference, total=total)

        if kind == OrderKind.PICKUP:
            config = config or BookingConfig.load()
            if not config.active:
                raise OrderError('BOOKING_DISABLED')
            check_slot(pickup_date, pickup_slot, config, now=now)

        created_at = now or timezone.now()
        with transaction.atomic():
            order = _create_order(
                kind=kind,
                status='pending',
                payment_status=PaymentStatus.PAID if reference else PaymentStatus.PENDING,
                payment_reference=reference,
                customer_name=customer['name'],
                customer_email=customer['email'],
                customer_phone=customer.get('phone') or '',
                pickup_date=pickup_date if kind == OrderKind.PICKUP else None,
                pickup_slot=pickup_slot if kind == OrderKind.PICKUP else '',
                total=total,
                notes=notes or '',
                user=user,
                created_at=created_at,
            )

            placed = []
            failures = []
            with ExitStack() as stack:
                products = {
                    pk: stack.enter_context(holder_lock(Product, pk))
                    for pk in sorted({line.product.pk for line in lines})
                }
                for line in lines:
                    try:
                        with transaction.atomic():
                            holder = _current_holder(line, products[line.product.pk])
                            move = holder.decrement(
                                line.quantity, MoveKind.ORDER_PLACED, order=order, user=user
                            )
                    except InsufficientStock as e:
                        failures.append({
                            **line.describe(),
                            'code': e.code,
                            'requested': e.requested,
                            'available': e.available,
                        })
                        continue
                    except StockError as e:
                        logger.warning(
                            "order.item.holder_changed",
                            extra={"line": line.describe(), "code": e.code},
                        )
                        failures.append({
                            **line.describe(),
                            'code': e.code,
                            'requested': line.quantity,
                            'available': 0,
                        })
                        continue
                    placed.append((line, move))

                if failures:
                    logger.warning(
                        "order.rejected",
                        extra={"kind": str(kind), "failures": failures},
                    )
                    raise OrderRejected(failures)

                OrderItem.objects.bulk_create([
                    OrderItem(
                        order=order,
                        product=line.product,
                        variant=line.variant,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        total_price=line.total_price,
                        product_name=line.product.name,
                        variant_name=line.variant.display_name if line.variant and not line.variant.is_default else '',
                        sku=line.sku,
                        placed_move=move,
                    )
                    for line, move in placed
                ])
            transaction.on_commit(lambda: _dispatch('order_placed', order))

        logger.info(
            "order.placed",
            extra={
                "order": order.number,
                "kind": str(kind),
                "items": len(lines),
                "total": str(total),
                "pickup_date": pickup_date.isoformat() if order.pickup_date else None,
                "pickup_slot": order.pickup_slot or None,
            },
        )
        return order

    @classmethod
    def transition(cls, order: Order, new_status: str, user=None) -> Order:
        """
        Move an order to a new status.

        Entering 'cancelled' returns every placed item to its holder with
        ORDER_CANCELLED moves, in the same transaction. No other transition
        touches stock.

        Raises:
            InvalidTransition: If the order's state machine forbids it
            StockError: If restoring stock fails (logged, transaction rolled back)
        """
        with transaction.atomic():
            locked = Order.objects.select_for_update().get(pk=order.pk)
            previous = locked.status
            if not can_transition(locked.kind, previous, new_status):
                raise InvalidTransition(previous, str(new_status), order=locked.number)

            fields = ['status', 'updated_at']
            if new_status == CANCELLED and not locked.stock_restored:
                _restore_stock(locked, MoveKind.ORDER_CANCELLED, user)
                locked.stock_restored = True
                fields.append('stock_restored')

            locked.status = str(new_status)
            locked.save(update_fields=fields)
            transaction.on_commit(
                lambda: _dispatch('order_status_changed', locked, previous)
            )

        order.status = locked.status
        order.stock_restored = locked.stock_restored
        logger.info(
            "order.status.changed",
            extra={"order": locked.number, "from": previous, "to": locked.status},
        )
        return locked

    @classmethod
    def set_payment_status(cls, order: Order, new_status: str) -> Order:
        """
        Move payment_status along pending → paid → refunded, pending → failed.

        Never touches stock; use refund() to return stock with the money.

        Raises:
            InvalidTransition: If the payment state machine forbids it
        """
        with transaction.atomic():
            locked = Order.objects.select_for_update().get(pk=order.pk)
            previous = locked.payment_status
            if not can_transition_payment(previous, new_status):
                raise InvalidTransition(
                    previous, str(new_status), order=locked.number, field='payment_status'
                )
            locked.payment_status = str(new_status)
            locked.save(update_fields=['payment_status', 'updated_at'])

        order.payment_status = locked.payment_status
        logger.info(
            "order.payment.changed",
            extra={"order": locked.number, "from": previous, "to": locked.payment_status},
        )
        return locked

    @classmethod
    def refund(cls, order: Order, restock: bool = True, user=None) -> Order:
        """
        Mark a paid order refunded, returning its stock when `restock`.

        Stock already returned by a cancellation is not returned twice.

        Raises:
            InvalidTransition: If the order is not paid
            StockError: If restoring stock fails (logged, transaction rolled back)
        """
        with transaction.atomic():
            locked = Order.objects.select_for_update().get(pk=order.pk)
            previous = locked.payment_status
            if not can_transition_payment(previous, PaymentStatus.REFUNDED):
                raise InvalidTransition(
                    previous, PaymentStatus.REFUNDED.value,
                    order=locked.number, field='payment_status',
                )

            fields = ['payment_status', 'updated_at']
            if restock and not locked.stock_restored:
                _restore_stock(locked, MoveKind.ORDER_REFUNDED, user)
                locked.stock_restored = True
                fields.append('stock_restored')

            locked.payment_status = PaymentStatus.REFUNDED
            locked.save(update_fields=fields)

        order.payment_status = locked.payment_status
        order.stock_restored = locked.stock_restored
        logger.info(
            "order.refunded",
            extra={"order": locked.number, "restocked": locked.stock_restored},
        )
        return locked


# ══════════════════════════════════════════════════════════════
# INTERNALS
# ══════════════════════════════════════════════════════════════


def _validate(kind, items, customer, pickup_date, pickup_slot):
    errors = {}

    try:
        kind = OrderKind(kind or OrderKind.PICKUP)
    except ValueError:
        errors['kind'] = f"must be one of {', '.join(OrderKind.values)}"

    customer = customer if isinstance(customer, dict) else {}
    for field in ('name', 'email'):
        if not str(customer.get(field) or '').strip():
            errors[f'customer.{field}'] = 'required'

    if kind == OrderKind.PICKUP:
        if not isinstance(pickup_date, date):
            errors['date'] = 'required (YYYY-MM-DD)'
        if not pickup_slot:
            errors['slot'] = 'required (HH:MM-HH:MM)'
        else:
            try:
                parse_label(pickup_slot)
            except ValueError:
                errors['slot'] = 'invalid (HH:MM-HH:MM)'

    lines = []
    if not items:
        errors['items'] = 'at least one item is required'
    for index, item in enumerate(items or []):
        key = f'items[{index}]'
        if not isinstance(item, dict):
            errors[key] = 'must be an object'
            continue
        quantity = item.get('quantity')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            errors[f'{key}.quantity'] = 'must be a positive integer'
            continue
        variant, product = _lookup(item)
        if product is None:
            errors[key] = 'unknown product or variant'
            continue
        if not product.is_available or (variant is not None and not variant.is_available):
            errors[key] = 'not available'
            continue
        try:
            resolve_holder(variant or product)
        except StockError as e:
            errors[key] = str(e.message)
            continue
        lines.append(_Line(
            index=index,
            product=product,
            variant=variant,
            quantity=quantity,
            unit_price=variant.unit_price if variant else product.price,
        ))

    if errors:
        raise InvalidRequest(errors)
    return kind, lines, customer


def _current_holder(line: _Line, product: Product) -> StockHolder:
    """
    Re-resolve a validated line against its locked product row.

    The product's mode may have changed since validation. Lines addressed
    by product follow the current mode; a variant folded away by a mode
    change raises HOLDER_NOT_FOUND.
    """
    if line.variant is None or line.variant.is_default:
        holder = resolve_holder(product)
        line.variant = product.placeholder
    else:
        variant = Variant.objects.filter(pk=line.variant.pk, product=product).first()
        if variant is None:
            raise StockError('HOLDER_NOT_FOUND', variant=line.variant.pk)
        variant.product = product
        holder = resolve_holder(variant)
        line.variant = variant
    line.product = product
    return holder


def _lookup(item) -> tuple[Variant | None, Product | None]:
    variant = item.get('variant')
    if variant is not None:
        if not isinstance(variant, Variant):
            variant = Variant.objects.select_related('product').filter(pk=_pk(variant)).first()
        if variant is None:
            return None, None
        return variant, variant.product

    product = item.get('product')
    if product is not None and not isinstance(product, Product):
        product = Product.objects.filter(pk=_pk(product)).first()
    if product is None:
        return None, None
    placeholder = product.placeholder
    return placeholder, product


def _pk(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _create_order(**fields) -> Order:
    """Create the order with the next free PREFIX-YYYYMMDD-NNNN number."""
    day = timezone.localdate(fields['created_at'])
    prefix = f"{storeman_settings.ORDER_NUMBER_PREFIX}-{day:%Y%m%d}-"
    last = (
        Order.objects.filter(number__startswith=prefix)
        .order_by('-number')
        .values_list('number', flat=True)
        .first()
    )
    sequence = int(last[len(prefix):]) if last else 0

    for _ in range(NUMBER_ATTEMPTS):
        sequence += 1
        try:
            with transaction.atomic():
                return Order.objects.create(number=f"{prefix}{sequence:04d}", **fields)
        except IntegrityError:
            logger.info("order.number.taken", extra={"number": f"{prefix}{sequence:04d}"})
    raise OrderError('INVALID_REQUEST', "Não foi possível gerar o número do pedido")


def _restore_stock(order: Order, kind, user) -> None:
    """Return every placed item to its holder. Logs and re-raises on failure."""
    items = [
        item for item in order.items.select_related('variant', 'placed_move')
        if item.placed_move_id is not None
    ]
    try:
        with ExitStack() as stack:
            products = {
                pk: stack.enter_context(holder_lock(Product, pk))
                for pk in sorted({_restore_product_id(item) for item in items} - {None})
            }
            for item in items:
                holder = _restore_holder(item, products.get(_restore_product_id(item)))
                if holder is None or not holder.tracked:
                    logger.warning(
                        "order.restore.skipped",
                        extra={"order": order.number, "item": item.pk, "sku": item.sku},
                    )
                    continue
                holder.increment(-item.placed_move.delta, kind, order=order, user=user)
    except Exception:
        logger.error(
            "order.restore.failed",
            extra={"order": order.number, "kind": str(kind)},
            exc_info=True,
        )
        raise


def _restore_product_id(item) -> int | None:
    return item.product_id or item.placed_move.product_id


def _restore_holder(item, product: Product | None) -> StockHolder | None:
    """Holder that received the item's ORDER_PLACED move, under the locked product's mode."""
    if product is None:
        return None
    target = product
    variant_id = item.placed_move.variant_id
    if variant_id:
        variant = product.variants.filter(pk=variant_id).first()
        if variant is not None:
            variant.product = product
            target = variant
    try:
        return resolve_holder(target)
    except StockError:
        return None


def _dispatch(event: str, *args) -> None:
    """Call the notification dispatcher; failures are logged, never raised."""
    try:
        getattr(get_notification_dispatcher(), event)(*args)
    except Exception:
        logger.exception("notification.failed", extra={"event": event, "order": args[0].number})
