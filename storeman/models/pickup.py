"""
Pickup scheduling models — weekly windows, blocked ranges and booking settings.
"""

from datetime import time

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']


def format_time_12h(value: time) -> str:
    """13:30 → '1:30 PM'."""
    hour = value.hour
    period = 'PM' if hour >= 12 else 'AM'
    hour_12 = hour % 12 or 12
    return f"{hour_12}:{value.minute:02d} {period}"


def _clean_range(instance):
    if instance.start_time is None or instance.end_time is None:
        return
    if instance.end_time <= instance.start_time:
        raise ValidationError({'end_time': _('Fim deve ser depois do início.')})


class PickupWindowQuerySet(models.QuerySet):

    def active(self):
        return self.filter(active=True)

    def for_day(self, day_of_week: int):
        return self.filter(day_of_week=day_of_week)


class PickupWindow(models.Model):
    """
    Recurring weekly pickup hours.

    day_of_week counts from Sunday: 0 = Sunday ... 6 = Saturday.
    At most one active window is used per weekday (the earliest start).
    """

    day_of_week = models.PositiveSmallIntegerField(
        choices=[(i, name) for i, name in enumerate(DAY_NAMES)],
        verbose_name=_('Dia da semana'),
    )
    start_time = models.TimeField(verbose_name=_('Início'))
    end_time = models.TimeField(verbose_name=_('Fim'))
    active = models.BooleanField(default=True, verbose_name=_('Ativo'))
    capacity = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Capacidade por horário'),
        help_text=_('Vazio = capacidade padrão das configurações'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PickupWindowQuerySet.as_manager()

    class Meta:
        verbose_name = _('Janela de Retirada')
        verbose_name_plural = _('Janelas de Retirada')
        ordering = ['day_of_week', 'start_time']
        constraints = [
            models.CheckConstraint(
                condition=Q(day_of_week__lte=6),
                name='pickup_window_valid_day',
            ),
            models.CheckConstraint(
                condition=Q(end_time__gt=F('start_time')),
                name='pickup_window_end_after_start',
            ),
            models.CheckConstraint(
                condition=Q(capacity__isnull=True) | Q(capacity__gt=0),
                name='pickup_window_positive_capacity',
            ),
        ]

    def clean(self):
        _clean_range(self)
        if self.capacity is not None and self.capacity <= 0:
            raise ValidationError({'capacity': _('Capacidade deve ser positiva.')})

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.day_of_week]

    @property
    def time_range(self) -> str:
        return f"{format_time_12h(self.start_time)} - {format_time_12h(self.end_time)}"

    @property
    def display_name(self) -> str:
        return f"{self.day_name}: {self.time_range}"

    def __str__(self) -> str:
        return self.display_name


class BlockedSlotQuerySet(models.QuerySet):

    def for_date(self, date):
        return self.filter(date=date)

    def upcoming(self):
        return self.filter(date__gte=timezone.localdate())

    def past(self):
        return self.filter(date__lt=timezone.localdate())

    def block_day(self, date, reason: str = ''):
        """Block every slot of a date."""
        return self.create(
            date=date,
            start_time=time.min,
            end_time=time(23, 59, 59),
            reason=reason or 'Dia inteiro bloqueado',
        )


class BlockedSlot(models.Model):
    """Ad-hoc blackout on a date. Covers [start_time, end_time)."""

    date = models.DateField(db_index=True, verbose_name=_('Data'))
    start_time = models.TimeField(verbose_name=_('Início'))
    end_time = models.TimeField(verbose_name=_('Fim'))
    reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Motivo'))

    created_at = models.DateTimeField(auto_now_add=True)

    objects = BlockedSlotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Bloqueio de Horário')
        verbose_name_plural = _('Bloqueios de Horário')
        ordering = ['-date', 'start_time']
        constraints = [
            models.CheckConstraint(
                condition=Q(end_time__gt=F('start_time')),
                name='blocked_slot_end_after_start',
            ),
        ]

    def clean(self):
        _clean_range(self)

    @property
    def time_range(self) -> str:
        return f"{format_time_12h(self.start_time)} - {format_time_12h(self.end_time)}"

    def __str__(self) -> str:
        suffix = f" ({self.reason})" if self.reason else ''
        return f"{self.date:%Y-%m-%d}: {self.time_range}{suffix}"


class PickupSettings(models.Model):
    """
    Named booking configuration edited by the shop.

    Read through services.availability.BookingConfig.load(), once per
    request, and passed explicitly to the booking code.
    """

    name = models.SlugField(max_length=50, unique=True, default='default', verbose_name=_('Nome'))
    active = models.BooleanField(default=True, verbose_name=_('Encomendas ativas'))
    lead_time_hours = models.PositiveIntegerField(
        default=48,
        verbose_name=_('Antecedência mínima (horas)'),
    )
    slot_capacity = models.PositiveIntegerField(
        default=5,
        verbose_name=_('Pedidos por horário'),
    )
    slot_minutes = models.PositiveIntegerField(
        default=30,
        verbose_name=_('Duração do horário (minutos)'),
    )
    pickup_location = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Local de retirada'))
    pickup_phone = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Telefone'))

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Configuração de Retirada')
        verbose_name_plural = _('Configurações de Retirada')
        constraints = [
            models.CheckConstraint(
                condition=Q(slot_capacity__gt=0) & Q(slot_minutes__gt=0),
                name='pickup_settings_positive_values',
            ),
        ]

    def __str__(self) -> str:
        return self.name
