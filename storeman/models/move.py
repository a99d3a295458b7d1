"""
Move model — Immutable ledger of quantity changes.
"""

from django.conf import settings
from django.db import models, transaction
from django.db.models import F, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from storeman.exceptions import LedgerIntegrityViolation
from storeman.models.enums import ADMIN_KINDS, ORDER_KINDS, SYSTEM_KINDS, MoveKind


class MoveQuerySet(models.QuerySet):
    """Audit queries. Bulk writes are refused: the ledger is append-only."""

    def for_holder(self, holder):
        """Moves of a Product or Variant (or a storeman.holders holder)."""
        from storeman.models.product import Variant

        target = getattr(holder, 'obj', holder)
        if isinstance(target, Variant):
            return self.filter(variant_id=target.pk)
        return self.filter(product_id=target.pk)

    def for_order(self, order):
        return self.filter(order=order)

    def of_kind(self, kind):
        return self.filter(kind=kind)

    def between(self, start=None, end=None):
        qs = self
        if start is not None:
            qs = qs.filter(timestamp__gte=start)
        if end is not None:
            qs = qs.filter(timestamp__lte=end)
        return qs

    def increases(self):
        return self.filter(delta__gt=0)

    def decreases(self):
        return self.filter(delta__lt=0)

    def balance(self) -> int:
        """Sum of deltas: what the holder quantity must be."""
        return self.aggregate(t=models.Sum('delta'))['t'] or 0

    def update(self, **kwargs):
        raise LedgerIntegrityViolation('IMMUTABLE', operation='update')

    def delete(self):
        raise LedgerIntegrityViolation('IMMUTABLE', operation='delete')


class Move(models.Model):
    """
    Immutable record of quantity change.

    Rules:
    - NEVER update() or delete()
    - Exactly one target: product OR variant
    - delta == new_quantity - previous_quantity
    - Updates the target quantity atomically on save()

    This is the ONLY model that changes quantity. Callers hold the
    target's lock (see storeman.holders) while creating a Move.
    """

    product = models.ForeignKey(
        'storeman.Product',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='moves',
        verbose_name=_('Produto'),
    )
    # Variants are deleted on mode switch; their history must survive.
    variant = models.ForeignKey(
        'storeman.Variant',
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name='moves',
        verbose_name=_('Variante'),
    )

    kind = models.CharField(
        max_length=30,
        choices=MoveKind.choices,
        db_index=True,
        verbose_name=_('Tipo'),
    )
    delta = models.IntegerField(
        verbose_name=_('Variação'),
        help_text=_('Positivo = entrada, Negativo = saída'),
    )
    previous_quantity = models.PositiveIntegerField(verbose_name=_('Quantidade anterior'))
    new_quantity = models.PositiveIntegerField(verbose_name=_('Quantidade nova'))

    reason = models.CharField(
        max_length=255,
        verbose_name=_('Motivo'),
        help_text=_('Obrigatório. Ex: "Pedido ORD-20250101-0001 realizado"'),
    )
    order = models.ForeignKey(
        'storeman.Order',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='moves',
        verbose_name=_('Pedido'),
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Usuário'),
    )
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))

    objects = MoveQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movimento')
        verbose_name_plural = _('Movimentos')
        ordering = ['timestamp', 'pk']
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(product__isnull=False, variant__isnull=True)
                    | Q(product__isnull=True, variant__isnull=False)
                ),
                name='move_exactly_one_target',
            ),
            models.CheckConstraint(
                condition=Q(delta=F('new_quantity') - F('previous_quantity')),
                name='move_delta_matches_quantities',
            ),
        ]
        indexes = [
            models.Index(fields=['product', 'timestamp'], name='move_product_ts_idx'),
            models.Index(fields=['variant', 'timestamp'], name='move_variant_ts_idx'),
            models.Index(fields=['order', 'kind'], name='move_order_kind_idx'),
        ]

    def save(self, *args, **kwargs):
        """Save move and update the target quantity atomically."""
        if self.pk:
            raise LedgerIntegrityViolation(
                'IMMUTABLE',
                "Movimentos são imutáveis. Para corrigir, crie um novo Move.",
                move_id=self.pk,
            )
        if (self.product_id is None) == (self.variant_id is None):
            raise LedgerIntegrityViolation(
                'TARGET_REQUIRED',
                product_id=self.product_id,
                variant_id=self.variant_id,
            )
        if self.delta != self.new_quantity - self.previous_quantity:
            raise LedgerIntegrityViolation(
                'DELTA_MISMATCH',
                delta=self.delta,
                previous_quantity=self.previous_quantity,
                new_quantity=self.new_quantity,
            )
        if not self.reason:
            raise LedgerIntegrityViolation('REASON_REQUIRED')

        from storeman.models.product import Product, Variant

        model, target_id = (
            (Variant, self.variant_id) if self.variant_id else (Product, self.product_id)
        )

        with transaction.atomic():
            super().save(*args, **kwargs)

            # Conditional on previous_quantity: a stale read never lands.
            updated = model.objects.filter(
                pk=target_id, quantity=self.previous_quantity
            ).update(
                quantity=F('quantity') + self.delta,
                updated_at=timezone.now(),
            )
            if updated != 1:
                raise LedgerIntegrityViolation(
                    'STALE_QUANTITY',
                    "Quantidade do alvo não confere com previous_quantity",
                    target=model._meta.label,
                    target_id=target_id,
                    previous_quantity=self.previous_quantity,
                )

    def delete(self, *args, **kwargs):
        """Prevent deletion: moves are immutable."""
        raise LedgerIntegrityViolation(
            'IMMUTABLE',
            "Movimentos são imutáveis. Para estornar, crie um novo Move com delta inverso.",
            move_id=self.pk,
        )

    @property
    def target(self):
        """Product or Variant this move changed (None if the variant is gone)."""
        if self.variant_id:
            from storeman.models.product import Variant
            return Variant.objects.filter(pk=self.variant_id).first()
        return self.product

    @property
    def target_label(self) -> str:
        if self.variant_id:
            return f"variant:{self.variant_id}"
        return f"product:{self.product_id}"

    @property
    def is_increase(self) -> bool:
        return self.delta > 0

    @property
    def is_decrease(self) -> bool:
        return self.delta < 0

    @property
    def formatted_delta(self) -> str:
        if self.delta == 0:
            return "No change"
        if self.delta > 0:
            return f"+{self.delta}"
        return str(self.delta)

    @property
    def is_order_related(self) -> bool:
        return self.kind in ORDER_KINDS

    @property
    def is_admin_action(self) -> bool:
        return self.kind in ADMIN_KINDS

    @property
    def is_system_action(self) -> bool:
        return self.kind in SYSTEM_KINDS

    def __str__(self) -> str:
        return f"{self.formatted_delta} | {self.reason}"
