"""
Exceptions for Storeman.

All errors carry a structured code for programmatic handling.

Families:
    StockError        — holder/ledger operations (InsufficientStock is one of them)
    SlotUnavailable   — pickup slot rejected before any stock is touched
    OrderError        — orchestration (InvalidRequest, OrderRejected, InvalidTransition)
    LedgerIntegrityViolation — broken ledger contract; fatal, never retried
"""

from datetime import date, time
from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Base for structured errors.

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
        retryable: Whether the caller may retry the same request later
    """

    _default_messages: dict[str, str] = {}
    retryable = False

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': str(self.message),
            'data': _serialize(self.data),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.data!r})"


def _serialize(value):
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, BaseError):
        return value.as_dict()
    return value


class StockError(BaseError):
    """
    Structured exception for stock operations.

    Usage:
        try:
            stock.decrement(10, variant)
        except StockError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Só tem {e.available} disponível")
    """

    _default_messages = {
        'INSUFFICIENT_STOCK': 'Quantidade insuficiente no estoque',
        'INVALID_QUANTITY': 'Quantidade inválida (deve ser positiva)',
        'REASON_REQUIRED': 'Motivo é obrigatório',
        'HOLDER_NOT_FOUND': 'Estoque não encontrado',
        'VARIANT_REQUIRED': 'Produto controla estoque por variante; informe a variante',
        'INVALID_MODE': 'Modo de estoque inválido',
        'INVALID_KIND': 'Tipo de movimento inválido para esta operação',
        'NOT_TRACKED': 'Produto não controla estoque',
    }

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)


class InsufficientStock(StockError):
    """Requested more than the holder has. Nothing was mutated."""

    retryable = True

    def __init__(self, requested: int, available: int, **data: Any):
        super().__init__(
            'INSUFFICIENT_STOCK',
            requested=requested,
            available=available,
            **data,
        )


class SlotUnavailable(BaseError):
    """
    Pickup slot cannot be booked.

    data['reason'] is one of: blocked, full, too_soon, closed, invalid.
    """

    _default_messages = {
        'SLOT_BLOCKED': 'Horário bloqueado',
        'SLOT_FULL': 'Horário esgotado',
        'SLOT_TOO_SOON': 'Horário não respeita a antecedência mínima',
        'SLOT_CLOSED': 'Não há retirada neste dia',
        'SLOT_INVALID': 'Horário inválido para este dia',
    }
    retryable = True

    def __init__(self, reason: str, **data: Any):
        super().__init__(f'SLOT_{reason.upper()}', reason=reason, **data)

    @property
    def reason(self) -> str:
        return self.data['reason']


class OrderError(BaseError):
    """Structured exception for order orchestration."""

    _default_messages = {
        'INVALID_REQUEST': 'Dados do pedido inválidos',
        'ORDER_REJECTED': 'Pedido recusado: estoque insuficiente',
        'INVALID_TRANSITION': 'Transição de status inválida',
        'PAYMENT_NOT_AUTHORIZED': 'Pagamento não autorizado',
        'BOOKING_DISABLED': 'Encomendas para retirada estão desativadas',
        'RESTORE_FAILED': 'Falha ao devolver o estoque do pedido',
    }


class InvalidRequest(OrderError):
    """Malformed or incomplete input. Reported directly, nothing mutated."""

    def __init__(self, errors: dict[str, str], **data: Any):
        super().__init__('INVALID_REQUEST', errors=errors, **data)

    @property
    def errors(self) -> dict[str, str]:
        return self.data['errors']


class OrderRejected(OrderError):
    """
    One or more items could not be decremented.

    The whole order transaction rolled back; data['items'] lists every
    failing item with its requested and available quantities.
    """

    retryable = True

    def __init__(self, items: list[dict[str, Any]], **data: Any):
        super().__init__('ORDER_REJECTED', items=items, **data)

    @property
    def items(self) -> list[dict[str, Any]]:
        return self.data['items']


class InvalidTransition(OrderError):
    """Status change not allowed by the order's state machine."""

    def __init__(self, current: str, requested: str, **data: Any):
        super().__init__(
            'INVALID_TRANSITION', current=current, requested=requested, **data
        )


class LedgerIntegrityViolation(BaseError):
    """
    A Move would break the ledger contract.

    Raised when a move has zero or two targets, or when its delta disagrees
    with new_quantity - previous_quantity. Programming error: never retry.
    """

    _default_messages = {
        'TARGET_REQUIRED': 'Movimento deve ter exatamente um alvo (produto ou variante)',
        'DELTA_MISMATCH': 'Variação diferente de novo - anterior',
        'IMMUTABLE': 'Movimentos são imutáveis',
        'REASON_REQUIRED': 'Motivo é obrigatório',
    }
