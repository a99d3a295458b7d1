"""
Tests for holder locks on databases without row locks.
"""

import gc

import pytest

from storeman import locks
from storeman.locks import holder_lock, uses_row_locks
from storeman.models import Product


pytestmark = pytest.mark.django_db


@pytest.fixture
def mutex_key(cake):
    if uses_row_locks(Product):
        pytest.skip('database has row locks')
    return (Product._meta.label, cake.pk)


class TestHolderLock:
    """Tests for holder_lock() with the in-process mutex."""

    def test_yields_fresh_row(self, cake, mutex_key):
        """The locked instance carries the current quantity."""
        Product.objects.filter(pk=cake.pk).update(quantity=7)

        with holder_lock(Product, cake.pk) as locked:
            assert locked.quantity == 7

    def test_reentrant(self, cake, mutex_key):
        """The same thread can lock a holder it already holds."""
        with holder_lock(Product, cake.pk):
            with holder_lock(Product, cake.pk) as inner:
                assert inner.pk == cake.pk

    def test_mutex_dropped_after_use(self, cake, mutex_key):
        """The registry keeps a holder's mutex only while a block uses it."""
        with holder_lock(Product, cake.pk):
            assert mutex_key in locks._mutexes

        gc.collect()
        assert mutex_key not in locks._mutexes

    def test_missing_row(self, mutex_key):
        """A vanished row raises DoesNotExist."""
        with pytest.raises(Product.DoesNotExist):
            with holder_lock(Product, 999999):
                pass
