"""
Product and Variant — the stock holders.

Catalog fields are kept to what stock needs. Quantity columns are a
projection of the ledger: only Move.save() writes them.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from storeman.models.enums import InventoryMode


class StockStatus:
    NOT_TRACKED = 'not_tracked'
    OUT_OF_STOCK = 'out_of_stock'
    LOW_STOCK = 'low_stock'
    IN_STOCK = 'in_stock'


def _stock_status(quantity: int, threshold: int) -> str:
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


class Product(models.Model):
    """
    Sellable product.

    inventory_mode decides which counter applies:
    - UNTRACKED: none
    - PRODUCT: self.quantity
    - VARIANT: each real variant's quantity

    Never switch inventory_mode by assignment; use stock.change_mode(),
    which reconciles counters and variants in one transaction.
    """

    name = models.CharField(max_length=200, verbose_name=_('Nome'))
    slug = models.SlugField(max_length=200, unique=True, verbose_name=_('Slug'))
    sku_prefix = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Prefixo do SKU'),
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        verbose_name=_('Preço'),
    )
    inventory_mode = models.CharField(
        max_length=20,
        choices=InventoryMode.choices,
        default=InventoryMode.UNTRACKED,
        verbose_name=_('Controle de estoque'),
    )
    quantity = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Quantidade'),
        help_text=_('Usado apenas no controle por produto. Alterado somente via Move.'),
    )
    low_stock_threshold = models.PositiveIntegerField(
        default=5,
        verbose_name=_('Alerta de estoque baixo'),
    )
    is_available = models.BooleanField(
        default=True,
        verbose_name=_('Disponível'),
        help_text=_('Disponibilidade manual, independente do estoque.'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Produto')
        verbose_name_plural = _('Produtos')
        ordering = ['name']

    @property
    def is_tracked(self) -> bool:
        return self.inventory_mode != InventoryMode.UNTRACKED

    @property
    def placeholder(self):
        """Default variant used as order line target (None if absent)."""
        return self.variants.filter(is_default=True).first()

    @property
    def stock_status(self) -> str:
        if self.inventory_mode != InventoryMode.PRODUCT:
            return StockStatus.NOT_TRACKED
        return _stock_status(self.quantity, self.low_stock_threshold)

    @property
    def is_low_stock(self) -> bool:
        return self.stock_status == StockStatus.LOW_STOCK

    @property
    def in_stock(self) -> bool:
        if self.inventory_mode == InventoryMode.UNTRACKED:
            return True
        if self.inventory_mode == InventoryMode.PRODUCT:
            return self.quantity > 0
        return self.variants.filter(is_default=False, quantity__gt=0).exists()

    @property
    def actually_available(self) -> bool:
        """Manual flag AND stock (when tracked)."""
        if not self.is_available:
            return False
        if self.inventory_mode == InventoryMode.VARIANT:
            return self.variants.filter(
                is_default=False, is_available=True, quantity__gt=0
            ).exists()
        return self.in_stock

    def __str__(self) -> str:
        return self.name


class VariantQuerySet(models.QuerySet):

    def real(self):
        """Variants created by the merchant (size, color, ...)."""
        return self.filter(is_default=False)

    def placeholders(self):
        """Auto-created default variants."""
        return self.filter(is_default=True)

    def in_stock(self):
        return self.filter(quantity__gt=0)


class Variant(models.Model):
    """
    Product variant.

    Placeholder variants (is_default=True) exist for PRODUCT and UNTRACKED
    products; their own quantity is never used.
    """

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='variants',
        verbose_name=_('Produto'),
    )
    name = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Nome'))
    sku = models.CharField(max_length=100, unique=True, verbose_name=_('SKU'))
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Preço'),
        help_text=_('Vazio = preço do produto'),
    )
    quantity = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Quantidade'),
        help_text=_('Alterado somente via Move.'),
    )
    low_stock_threshold = models.PositiveIntegerField(
        default=5,
        verbose_name=_('Alerta de estoque baixo'),
    )
    is_available = models.BooleanField(default=True, verbose_name=_('Disponível'))
    is_default = models.BooleanField(
        default=False,
        db_index=True,
        verbose_name=_('Variante padrão'),
        help_text=_('Criada automaticamente para controle por produto ou sem controle.'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = VariantQuerySet.as_manager()

    class Meta:
        verbose_name = _('Variante')
        verbose_name_plural = _('Variantes')
        ordering = ['product', 'pk']

    @property
    def display_name(self) -> str:
        return self.name or self.sku

    @property
    def unit_price(self):
        return self.price if self.price is not None else self.product.price

    @property
    def stock_status(self) -> str:
        if self.product.inventory_mode != InventoryMode.VARIANT:
            return StockStatus.NOT_TRACKED
        return _stock_status(self.quantity, self.low_stock_threshold)

    @property
    def is_low_stock(self) -> bool:
        return self.stock_status == StockStatus.LOW_STOCK

    @property
    def in_stock(self) -> bool:
        mode = self.product.inventory_mode
        if mode == InventoryMode.PRODUCT:
            return self.product.quantity > 0
        if mode == InventoryMode.VARIANT:
            return self.quantity > 0
        return True

    @property
    def actually_available(self) -> bool:
        return self.is_available and self.in_stock

    def __str__(self) -> str:
        return f"{self.product} — {self.display_name}"
