"""
Enums for Storeman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class InventoryMode(models.TextChoices):
    """
    Where a product's stock lives.

    UNTRACKED: No counting. Orders never touch stock.
    PRODUCT:   One counter on the product. A placeholder variant exists so
               order lines always have a uniform target.
    VARIANT:   One counter per real variant (size, color, ...).
    """
    UNTRACKED = 'untracked', _('Sem controle')
    PRODUCT = 'product', _('Por produto')
    VARIANT = 'variant', _('Por variante')


class MoveKind(models.TextChoices):
    """Why a ledger entry exists."""
    ORDER_PLACED = 'order_placed', _('Pedido realizado')
    ORDER_CANCELLED = 'order_cancelled', _('Pedido cancelado')
    ORDER_REFUNDED = 'order_refunded', _('Pedido reembolsado')
    RESTOCK = 'restock', _('Reposição')
    MANUAL_ADJUSTMENT = 'manual_adjustment', _('Ajuste manual')
    DAMAGED = 'damaged', _('Avaria')
    IMPORT = 'import', _('Importação')
    VARIANT_CREATED = 'variant_created', _('Variante criada')
    MODE_SYNC = 'mode_sync', _('Sincronização de modo')


ORDER_KINDS = {MoveKind.ORDER_PLACED, MoveKind.ORDER_CANCELLED, MoveKind.ORDER_REFUNDED}
ADMIN_KINDS = {MoveKind.MANUAL_ADJUSTMENT, MoveKind.RESTOCK, MoveKind.DAMAGED, MoveKind.MODE_SYNC}
SYSTEM_KINDS = {MoveKind.VARIANT_CREATED, MoveKind.IMPORT}


class OrderKind(models.TextChoices):
    """Order family. Decides which status machine applies."""
    RETAIL = 'retail', _('Varejo')
    FUNDRAISER = 'fundraiser', _('Campanha')
    PICKUP = 'pickup', _('Retirada agendada')


class RetailStatus(models.TextChoices):
    """Shipped orders lifecycle."""
    PENDING = 'pending', _('Pendente')
    PROCESSING = 'processing', _('Em preparo')
    SHIPPED = 'shipped', _('Enviado')
    DELIVERED = 'delivered', _('Entregue')
    CANCELLED = 'cancelled', _('Cancelado')


class PickupStatus(models.TextChoices):
    """Scheduled pickup and fundraiser orders lifecycle."""
    PENDING = 'pending', _('Pendente')
    CONFIRMED = 'confirmed', _('Confirmado')
    READY = 'ready', _('Pronto para retirada')
    PICKED_UP = 'picked_up', _('Retirado')
    CANCELLED = 'cancelled', _('Cancelado')


class PaymentStatus(models.TextChoices):
    """Payment lifecycle, independent from fulfillment status."""
    PENDING = 'pending', _('Pendente')
    PAID = 'paid', _('Pago')
    FAILED = 'failed', _('Falhou')
    REFUNDED = 'refunded', _('Reembolsado')


CANCELLED = 'cancelled'

# ┌──────────────────────────────────────────────────────────────┐
# │ RETAIL:  pending → processing → shipped → delivered          │
# │          pending|processing → cancelled                      │
# │ PICKUP:  pending → confirmed → ready → picked_up             │
# │          pending|confirmed|ready → cancelled                 │
# │ PAYMENT: pending → paid → refunded ; pending → failed        │
# └──────────────────────────────────────────────────────────────┘

RETAIL_TRANSITIONS: dict[RetailStatus, frozenset[RetailStatus]] = {
    RetailStatus.PENDING: frozenset({RetailStatus.PROCESSING, RetailStatus.CANCELLED}),
    RetailStatus.PROCESSING: frozenset({RetailStatus.SHIPPED, RetailStatus.CANCELLED}),
    RetailStatus.SHIPPED: frozenset({RetailStatus.DELIVERED}),
    RetailStatus.DELIVERED: frozenset(),
    RetailStatus.CANCELLED: frozenset(),
}

PICKUP_TRANSITIONS: dict[PickupStatus, frozenset[PickupStatus]] = {
    PickupStatus.PENDING: frozenset({PickupStatus.CONFIRMED, PickupStatus.CANCELLED}),
    PickupStatus.CONFIRMED: frozenset({PickupStatus.READY, PickupStatus.CANCELLED}),
    PickupStatus.READY: frozenset({PickupStatus.PICKED_UP, PickupStatus.CANCELLED}),
    PickupStatus.PICKED_UP: frozenset(),
    PickupStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}


def status_enum(kind: str):
    """Status enum for an order kind."""
    if kind == OrderKind.RETAIL:
        return RetailStatus
    return PickupStatus


def status_transitions(kind: str) -> dict:
    """Transition table for an order kind."""
    if kind == OrderKind.RETAIL:
        return RETAIL_TRANSITIONS
    return PICKUP_TRANSITIONS


def can_transition(kind: str, current: str, new: str) -> bool:
    """Is current → new allowed for this order kind?"""
    enum = status_enum(kind)
    try:
        current_status, new_status = enum(current), enum(new)
    except ValueError:
        return False
    return new_status in status_transitions(kind)[current_status]


def can_transition_payment(current: str, new: str) -> bool:
    """Is current → new allowed for payment status?"""
    try:
        current_status, new_status = PaymentStatus(current), PaymentStatus(new)
    except ValueError:
        return False
    return new_status in PAYMENT_TRANSITIONS[current_status]
