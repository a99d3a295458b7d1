"""
Holder locks — exclusive access to one stock holder row.

On databases with row locks, select_for_update() inside the caller's
transaction is the lock. On databases without them (SQLite), an
in-process mutex keyed by (model label, pk) is held for the same
read-check-write-audit span.

SQLite deployments must open transactions with BEGIN IMMEDIATE
(DATABASES[...]['OPTIONS']['transaction_mode'] = 'IMMEDIATE'): the
transaction then owns the database write lock before the mutex is taken,
so both are always acquired in the same order.

Usage:
    with holder_lock(Variant, variant.pk) as locked:
        locked.quantity  # fresh value, exclusive until the block exits
"""

import threading
import weakref
from contextlib import contextmanager

from django.db import connections, router, transaction

_registry_lock = threading.Lock()
# Entries live only while some holder_lock() block references them.
_mutexes: weakref.WeakValueDictionary = weakref.WeakValueDictionary()


def _mutex_for(model, pk) -> threading.RLock:
    key = (model._meta.label, pk)
    with _registry_lock:
        mutex = _mutexes.get(key)
        if mutex is None:
            mutex = _mutexes[key] = threading.RLock()
        return mutex


def uses_row_locks(model) -> bool:
    """Does the database behind this model support SELECT ... FOR UPDATE?"""
    alias = router.db_for_write(model)
    return connections[alias].features.has_select_for_update


@contextmanager
def holder_lock(model, pk):
    """
    Lock one holder row and yield a fresh instance.

    Opens a transaction.atomic() block (a savepoint when nested). The row
    lock is released when the outermost transaction ends; the in-process
    mutex when this block exits.

    Raises:
        model.DoesNotExist: If the row is gone
    """
    if uses_row_locks(model):
        with transaction.atomic():
            yield model.objects.select_for_update().get(pk=pk)
        return

    with transaction.atomic(), _mutex_for(model, pk):
        yield model.objects.get(pk=pk)
