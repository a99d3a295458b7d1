"""
Order and OrderItem — the unit of atomicity for stock mutation.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from storeman.models.enums import (
    CANCELLED,
    OrderKind,
    PaymentStatus,
    PickupStatus,
    RetailStatus,
    status_enum,
)


def _status_choices():
    seen = {}
    for enum in (RetailStatus, PickupStatus):
        for value, label in enum.choices:
            seen.setdefault(value, label)
    return list(seen.items())


class OrderQuerySet(models.QuerySet):

    def pickups(self):
        return self.filter(kind=OrderKind.PICKUP)

    def active(self):
        """Orders that still hold their stock and slot."""
        return self.exclude(status=CANCELLED)

    def booked(self, date, slot_label=None):
        """Non-cancelled pickup orders on a date (optionally one slot)."""
        qs = self.pickups().active().filter(pickup_date=date)
        if slot_label is not None:
            qs = qs.filter(pickup_slot=slot_label)
        return qs


class Order(models.Model):
    """
    Customer order.

    status follows RetailStatus for retail orders and PickupStatus for
    pickup and fundraiser orders; payment_status is independent. Status
    only changes through services.orders.transition().
    """

    number = models.CharField(max_length=40, unique=True, verbose_name=_('Número'))
    kind = models.CharField(
        max_length=20,
        choices=OrderKind.choices,
        default=OrderKind.RETAIL,
        db_index=True,
        verbose_name=_('Tipo'),
    )
    status = models.CharField(
        max_length=20,
        choices=_status_choices(),
        default='pending',
        db_index=True,
        verbose_name=_('Status'),
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        verbose_name=_('Pagamento'),
    )
    payment_reference = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Referência do pagamento'))

    customer_name = models.CharField(max_length=200, verbose_name=_('Cliente'))
    customer_email = models.EmailField(verbose_name=_('E-mail'))
    customer_phone = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Telefone'))

    pickup_date = models.DateField(null=True, blank=True, db_index=True, verbose_name=_('Data de retirada'))
    pickup_slot = models.CharField(
        max_length=20,
        blank=True,
        default='',
        verbose_name=_('Horário de retirada'),
        help_text=_('Ex: 10:00-10:30'),
    )

    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'), verbose_name=_('Total'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    stock_restored = models.BooleanField(
        default=False,
        verbose_name=_('Estoque devolvido'),
        help_text=_('Marcado quando cancelamento ou reembolso devolve o estoque.'),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Usuário'),
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        verbose_name = _('Pedido')
        verbose_name_plural = _('Pedidos')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['kind', 'pickup_date', 'pickup_slot'], name='order_pickup_slot_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(kind=OrderKind.PICKUP) | Q(pickup_date__isnull=False),
                name='order_pickup_requires_date',
            ),
        ]

    @property
    def status_enum(self):
        return status_enum(self.kind)(self.status)

    @property
    def is_cancelled(self) -> bool:
        return self.status == CANCELLED

    @property
    def is_pickup(self) -> bool:
        return self.kind == OrderKind.PICKUP

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    def __str__(self) -> str:
        return self.number


class OrderItem(models.Model):
    """Order line. Snapshots name/sku/price at placement time."""

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Pedido'),
    )
    product = models.ForeignKey(
        'storeman.Product',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Produto'),
    )
    variant = models.ForeignKey(
        'storeman.Variant',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Variante'),
    )
    quantity = models.PositiveIntegerField(verbose_name=_('Quantidade'))
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'), verbose_name=_('Preço unitário'))
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'), verbose_name=_('Total'))
    product_name = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Produto'))
    variant_name = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Variante'))
    sku = models.CharField(max_length=100, blank=True, default='', verbose_name=_('SKU'))

    placed_move = models.ForeignKey(
        'storeman.Move',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Movimento de saída'),
        help_text=_('Vazio quando o produto não controla estoque.'),
    )

    class Meta:
        verbose_name = _('Item do Pedido')
        verbose_name_plural = _('Itens do Pedido')
        ordering = ['order', 'pk']
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name='order_item_positive_quantity',
            ),
        ]

    def __str__(self) -> str:
        name = self.product_name
        if self.variant_name:
            name = f"{name} ({self.variant_name})"
        return f"{self.quantity}x {name}"
