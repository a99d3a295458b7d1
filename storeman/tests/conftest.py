"""
Pytest fixtures for Storeman tests.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from django.utils.text import slugify

from storeman import stock
from storeman.adapters import reset_adapters
from storeman.models import InventoryMode, PickupWindow, Product
from storeman.services.availability import BookingConfig
from storeman.tests.adapters import RecordingDispatcher


User = get_user_model()


@pytest.fixture(autouse=True)
def fresh_adapters():
    """Adapters are cached per process; start every test from settings."""
    reset_adapters()
    RecordingDispatcher.events.clear()
    yield
    reset_adapters()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='testuser',
        email='test@example.com',
        password='testpass123'
    )


@pytest.fixture
def staff(db):
    """Create a staff user."""
    return User.objects.create_user(
        username='staff',
        email='staff@example.com',
        password='testpass123',
        is_staff=True,
    )


@pytest.fixture
def make_product(db):
    """Factory: product in the given mode, placeholder ensured, stock restocked."""

    def make(name='Bolo de Açaí', mode=InventoryMode.PRODUCT, quantity=0,
             price=Decimal('45.00'), **fields):
        slug = fields.pop('slug', slugify(name))
        product = Product.objects.create(
            name=name,
            slug=slug,
            price=price,
            inventory_mode=mode,
            **fields,
        )
        stock.ensure_placeholder(product)
        if quantity:
            stock.restock(quantity, product, reason='Estoque inicial')
            product.refresh_from_db()
        return product

    return make


@pytest.fixture
def cake(make_product):
    """Product-level product with 10 units."""
    return make_product('Bolo de Açaí', quantity=10, sku_prefix='BOLO')


@pytest.fixture
def sticker(make_product):
    """Untracked product."""
    return make_product('Adesivo', mode=InventoryMode.UNTRACKED, price=Decimal('5.00'))


@pytest.fixture
def shirt(make_product):
    """Variant-level product with sizes P=3, M=4, G=5."""
    product = make_product('Camiseta', mode=InventoryMode.VARIANT, price=Decimal('60.00'),
                           sku_prefix='CAM')
    for size, quantity in (('P', 3), ('M', 4), ('G', 5)):
        stock.create_variant(product, sku=f'CAM-{size}', name=size, quantity=quantity)
    return product


@pytest.fixture
def windows(db):
    """Pickup window 10:00-12:00 on every weekday."""
    return [
        PickupWindow.objects.create(day_of_week=day, start_time=time(10), end_time=time(12))
        for day in range(7)
    ]


@pytest.fixture
def config():
    """Booking config: 48h lead time, 5 per slot, 30 minute slots."""
    return BookingConfig(lead_time_hours=48, slot_capacity=5, slot_minutes=30)


@pytest.fixture
def now():
    """Wednesday 2025-01-01 09:00 local time."""
    return timezone.make_aware(datetime(2025, 1, 1, 9, 0))


@pytest.fixture
def friday():
    """Friday 2025-01-03, the first bookable date for `now` with 48h lead."""
    return date(2025, 1, 3)


@pytest.fixture
def next_week():
    """A date a week from today (always past a 48h lead time)."""
    return timezone.localdate() + timedelta(days=7)


@pytest.fixture
def customer():
    return {'name': 'Ana Souza', 'email': 'ana@example.com', 'phone': '671-555-0100'}
