"""
Storeman adapter loading — collaborators configured by dotted path.

Usage:
    from storeman.adapters import get_payment_authority

    authority = get_payment_authority()
    authority.is_authorized("pi_123", Decimal("62.00"))

Settings:
    STOREMAN = {
        "PAYMENT_AUTHORITY": "payments.adapters.StripeAuthority",
        "NOTIFICATION_DISPATCHER": "mailer.adapters.OrderMailer",
    }

Both default to the noop adapters. An empty or unimportable path raises
ImproperlyConfigured.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from storeman.conf import storeman_settings
from storeman.protocols.notification import NotificationDispatcher
from storeman.protocols.payment import PaymentAuthority

logger = logging.getLogger(__name__)


# Cached adapter instances, keyed by setting name
_lock = threading.Lock()
_instances: dict[str, Any] = {}


def _load(setting: str, protocol: type) -> Any:
    instance = _instances.get(setting)
    if instance is not None:
        return instance

    with _lock:
        instance = _instances.get(setting)
        if instance is None:  # double-checked
            path = getattr(storeman_settings, setting)
            if not path:
                raise ImproperlyConfigured(
                    f"STOREMAN['{setting}'] must be configured. "
                    f"Example: 'storeman.adapters.noop.Noop{protocol.__name__}'"
                )
            try:
                instance = import_string(path)()
            except ImportError as e:
                raise ImproperlyConfigured(
                    f"Failed to import {setting.lower()} '{path}': {e}"
                ) from e
            if not isinstance(instance, protocol):
                raise ImproperlyConfigured(
                    f"'{path}' does not implement {protocol.__name__}"
                )
            _instances[setting] = instance
            logger.debug("Loaded %s: %s", setting, path)

    return instance


def get_payment_authority() -> PaymentAuthority:
    """
    Return the configured payment authority.

    Raises:
        ImproperlyConfigured: If PAYMENT_AUTHORITY is empty or import fails
    """
    return _load("PAYMENT_AUTHORITY", PaymentAuthority)


def get_notification_dispatcher() -> NotificationDispatcher:
    """
    Return the configured notification dispatcher.

    Raises:
        ImproperlyConfigured: If NOTIFICATION_DISPATCHER is empty or import fails
    """
    return _load("NOTIFICATION_DISPATCHER", NotificationDispatcher)


def reset_adapters() -> None:
    """Reset the cached adapters. Useful for testing."""
    _instances.clear()
