"""
Inventory mode resolver — switch a product between untracked, product and
variant counting without losing stock or ledger history.

Usage:
    from storeman.services.modes import change_mode

    change_mode(shirt, InventoryMode.PRODUCT, user=request.user)
"""

import logging
from contextlib import ExitStack

from django.db import transaction

from storeman.exceptions import StockError
from storeman.locks import holder_lock
from storeman.models.enums import InventoryMode, MoveKind
from storeman.models.move import Move
from storeman.models.product import Product, Variant

logger = logging.getLogger('storeman')


def change_mode(product: Product, new_mode, user=None) -> Product:
    """
    Switch product.inventory_mode and reconcile counters and variants.

    - variant → product|untracked: real variant quantities are summed onto
      the product counter (one MODE_SYNC move on the product, each variant
      zeroed by its own MODE_SYNC move), every variant is deleted and a
      placeholder is created.
    - product|untracked → variant: placeholders are deleted. Real variants
      are not created here.
    - untracked ↔ product: exactly one placeholder is ensured.

    Runs in one transaction with the product row (and the variants being
    folded) locked. Same mode is a no-op.

    Raises:
        StockError('INVALID_MODE'): If new_mode is not an InventoryMode
    """
    try:
        new_mode = InventoryMode(new_mode)
    except ValueError:
        raise StockError('INVALID_MODE', product=product.pk, mode=str(new_mode))

    with transaction.atomic(), holder_lock(Product, product.pk) as locked:
        old_mode = InventoryMode(locked.inventory_mode)
        if old_mode == new_mode:
            return locked

        transferred = None
        if old_mode == InventoryMode.VARIANT:
            transferred = _fold_variants(locked, user)
            locked.variants.all().delete()
        elif new_mode == InventoryMode.VARIANT:
            locked.variants.placeholders().delete()

        Product.objects.filter(pk=locked.pk).update(inventory_mode=new_mode)
        locked.inventory_mode = new_mode
        if new_mode != InventoryMode.VARIANT:
            ensure_placeholder(locked)

    product.inventory_mode = new_mode
    product.quantity = locked.quantity
    logger.info(
        "stock.mode.changed",
        extra={
            "product_id": locked.pk,
            "from": str(old_mode),
            "to": str(new_mode),
            "transferred": transferred,
        },
    )
    return locked


def ensure_placeholder(product: Product) -> Variant | None:
    """
    Make sure a PRODUCT or UNTRACKED product has exactly one placeholder.

    Extra placeholders (left by earlier edits) are removed. VARIANT products
    get none.

    Returns:
        The placeholder Variant, or None for VARIANT products
    """
    if product.inventory_mode == InventoryMode.VARIANT:
        return None

    placeholders = list(product.variants.placeholders().order_by('pk'))
    if placeholders:
        keep, extra = placeholders[0], placeholders[1:]
        if extra:
            Variant.objects.filter(pk__in=[v.pk for v in extra]).delete()
        return keep

    placeholder = Variant.objects.create(
        product=product,
        name='Default',
        sku=_placeholder_sku(product),
        quantity=0,
        is_default=True,
    )
    logger.info(
        "stock.placeholder.created",
        extra={"product_id": product.pk, "sku": placeholder.sku},
    )
    return placeholder


def _fold_variants(product: Product, user) -> int:
    """Move every real variant's quantity onto the product counter."""
    real = list(product.variants.real().order_by('pk').values_list('pk', flat=True))
    total = 0

    with ExitStack() as stack:
        for variant_id in real:
            variant = stack.enter_context(holder_lock(Variant, variant_id))
            if variant.quantity == 0:
                continue
            total += variant.quantity
            Move.objects.create(
                variant=variant,
                kind=MoveKind.MODE_SYNC,
                delta=-variant.quantity,
                previous_quantity=variant.quantity,
                new_quantity=0,
                reason=f"Estoque transferido para o produto {product.name}",
                user=user,
                metadata={
                    'variant_id': variant.pk,
                    'variant_sku': variant.sku,
                    'variant_name': variant.display_name,
                    'product_id': product.pk,
                    'product_name': product.name,
                    'inventory_level': 'variant',
                },
            )

    delta = total - product.quantity
    if delta:
        Move.objects.create(
            product=product,
            kind=MoveKind.MODE_SYNC,
            delta=delta,
            previous_quantity=product.quantity,
            new_quantity=total,
            reason=f"Soma das variantes ({total}) ao trocar para controle por produto",
            user=user,
            metadata={
                'product_id': product.pk,
                'product_name': product.name,
                'inventory_level': 'product',
                'variants': real,
                'variant_total': total,
            },
        )
        product.quantity = total
    return total


def _placeholder_sku(product: Product) -> str:
    prefix = (product.sku_prefix or product.slug).upper()
    sku = f"{prefix}-DEFAULT"
    if Variant.objects.filter(sku=sku).exists():
        sku = f"{prefix}-{product.pk}-DEFAULT"
    return sku
