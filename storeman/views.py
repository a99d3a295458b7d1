"""
JSON endpoints for pickup booking and the staff back office.

Public:
    GET  availability/?from=YYYY-MM-DD&to=YYYY-MM-DD
    GET  slots/?date=YYYY-MM-DD
    POST bookings/

Staff only (403 otherwise):
    POST admin/stock-adjustments/
    GET  admin/ledger/?product=&variant=&order=&kind=&from=&to=
    GET|POST admin/pickup-windows/       GET|PUT|PATCH|DELETE admin/pickup-windows/<id>/
    GET|POST admin/blocked-slots/        GET|PUT|PATCH|DELETE admin/blocked-slots/<id>/
    POST admin/orders/<id>/status/

Errors are returned as {"error": {"code", "message", "data"}} with 400 for
validation, 409 for stock/slot/state conflicts, 403 and 404.
"""

import json
import logging
from datetime import datetime, time, timedelta

from django.forms.models import model_to_dict
from django.http import HttpResponse, JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from storeman.exceptions import BaseError, InvalidRequest, OrderError, StockError
from storeman.forms import BlockedSlotForm, PickupWindowForm
from storeman.models.enums import MoveKind
from storeman.models.order import Order
from storeman.models.pickup import DAY_NAMES, BlockedSlot, PickupWindow
from storeman.models.product import Product, Variant
from storeman.service import Orders, Pickup, Stock
from storeman.slots import day_of_week

logger = logging.getLogger('storeman')

DEFAULT_AVAILABILITY_DAYS = 30
LEDGER_LIMIT = 500

# Codes that are conflicts with current state rather than bad input
CONFLICT_CODES = {'INVALID_TRANSITION', 'BOOKING_DISABLED', 'NOT_TRACKED'}


# ══════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════


def error_response(exc: BaseError) -> JsonResponse:
    """Structured error → JSON with the matching HTTP status."""
    if exc.code == 'PAYMENT_NOT_AUTHORIZED':
        status = 402
    elif exc.retryable or exc.code in CONFLICT_CODES:
        status = 409
    else:
        status = 400
    return JsonResponse({'error': exc.as_dict()}, status=status)


def simple_error(code: str, message: str, status: int, **data) -> JsonResponse:
    return JsonResponse({'error': {'code': code, 'message': message, 'data': data}}, status=status)


def not_found(what: str) -> JsonResponse:
    return simple_error('NOT_FOUND', f'{what} not found', 404)


def read_json(request) -> dict:
    """
    Request body as a dict.

    Raises:
        InvalidRequest: If the body is not a JSON object
    """
    try:
        data = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequest({'body': 'invalid JSON'})
    if not isinstance(data, dict):
        raise InvalidRequest({'body': 'expected a JSON object'})
    return data


def require_date(value, field: str):
    parsed = parse_date(value) if isinstance(value, str) else None
    if parsed is None:
        raise InvalidRequest({field: 'required (YYYY-MM-DD)'})
    return parsed


def optional_datetime(value, field: str, end: bool = False):
    """'2025-01-03' or an ISO datetime; a bare date at `end` covers the whole day."""
    if not value:
        return None
    try:
        parsed = parse_datetime(value)
        if parsed is None:
            day = parse_date(value)
            if day is None:
                raise ValueError(value)
            parsed = datetime.combine(day, time.max if end else time.min)
    except ValueError:
        raise InvalidRequest({field: 'invalid date or datetime'})
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def hhmm(value) -> str | None:
    return value.strftime('%H:%M') if value else None


def form_errors(form) -> JsonResponse:
    errors = {
        field: ' '.join(str(m) for m in messages)
        for field, messages in form.errors.items()
    }
    return error_response(InvalidRequest(errors))


# ══════════════════════════════════════════════════════════════
# SERIALIZERS
# ══════════════════════════════════════════════════════════════


def serialize_day(day) -> dict:
    return {
        'date': day.date.isoformat(),
        'day_of_week': day.day_of_week,
        'day_name': DAY_NAMES[day.day_of_week],
        'available_slot_count': day.available_slot_count,
        'fully_booked': day.fully_booked,
    }


def serialize_slot(slot) -> dict:
    return {
        'label': slot.label,
        'start': hhmm(slot.start),
        'end': hhmm(slot.end),
        'available': slot.available,
        'remaining': slot.remaining,
    }


def serialize_order(order: Order) -> dict:
    return {
        'id': order.pk,
        'number': order.number,
        'kind': order.kind,
        'status': order.status,
        'payment_status': order.payment_status,
        'total': str(order.total),
        'pickup_date': order.pickup_date.isoformat() if order.pickup_date else None,
        'pickup_slot': order.pickup_slot or None,
        'customer': {
            'name': order.customer_name,
            'email': order.customer_email,
            'phone': order.customer_phone,
        },
        'items': [
            {
                'product': item.product_id,
                'variant': item.variant_id,
                'sku': item.sku,
                'product_name': item.product_name,
                'variant_name': item.variant_name,
                'quantity': item.quantity,
                'unit_price': str(item.unit_price),
                'total_price': str(item.total_price),
            }
            for item in order.items.all()
        ],
        'created_at': order.created_at.isoformat(),
    }


def serialize_move(move) -> dict:
    return {
        'id': move.pk,
        'timestamp': move.timestamp.isoformat(),
        'kind': move.kind,
        'product': move.product_id,
        'variant': move.variant_id,
        'delta': move.delta,
        'previous_quantity': move.previous_quantity,
        'new_quantity': move.new_quantity,
        'reason': move.reason,
        'order': move.order.number if move.order_id else None,
        'user': str(move.user) if move.user_id else None,
        'metadata': move.metadata,
    }


def serialize_window(window: PickupWindow) -> dict:
    return {
        'id': window.pk,
        'day_of_week': window.day_of_week,
        'day_name': window.day_name,
        'start_time': hhmm(window.start_time),
        'end_time': hhmm(window.end_time),
        'active': window.active,
        'capacity': window.capacity,
        'display_name': window.display_name,
    }


def serialize_block(block: BlockedSlot) -> dict:
    return {
        'id': block.pk,
        'date': block.date.isoformat(),
        'start_time': hhmm(block.start_time),
        'end_time': hhmm(block.end_time),
        'reason': block.reason,
    }


# ══════════════════════════════════════════════════════════════
# PUBLIC
# ══════════════════════════════════════════════════════════════


class AvailabilityView(View):
    """
    Bookable dates.

    GET /availability/?from=2025-01-03&to=2025-01-31

    `from` defaults to the minimum order date, `to` to 30 days later.
    Only weekdays with a pickup window are listed.
    """

    def get(self, request):
        config = Pickup.config()
        try:
            date_from = (
                require_date(request.GET['from'], 'from') if request.GET.get('from')
                else config.minimum_date()
            )
            date_to = (
                require_date(request.GET['to'], 'to') if request.GET.get('to')
                else date_from + timedelta(days=DEFAULT_AVAILABILITY_DAYS - 1)
            )
            days = Pickup.availability(date_from, date_to, config)
        except BaseError as e:
            return error_response(e)

        return JsonResponse({
            'dates': [serialize_day(day) for day in days if day.slots],
            'minimum_date': config.minimum_date().isoformat(),
        })


class SlotsView(View):
    """
    Slots of one date.

    GET /slots/?date=2025-01-03
    """

    def get(self, request):
        try:
            day = require_date(request.GET.get('date'), 'date')
        except BaseError as e:
            return error_response(e)

        summary = Pickup.slots(day, Pickup.config())
        return JsonResponse({
            'date': day.isoformat(),
            'day_name': DAY_NAMES[day_of_week(day)],
            'slots': [serialize_slot(slot) for slot in summary.slots],
        })


@method_decorator(csrf_exempt, name='dispatch')
class BookingView(View):
    """
    Place an order.

    POST /bookings/
    {
        "kind": "pickup",
        "date": "2025-01-03",
        "slot": "10:00-10:30",
        "items": [{"variant": 12, "quantity": 1}],
        "customer": {"name": "Ana", "email": "ana@example.com", "phone": "671-555-0100"},
        "payment_reference": "pi_123"
    }

    201 with the order, or an error listing every failing item or the
    slot constraint that failed.
    """

    def post(self, request):
        try:
            data = read_json(request)
            kind = data.get('kind') or 'pickup'
            pickup_date = None
            if data.get('date'):
                pickup_date = require_date(data['date'], 'date')
            order = Orders.place(
                kind,
                data.get('items'),
                data.get('customer'),
                pickup_date=pickup_date,
                pickup_slot=data.get('slot'),
                payment_reference=data.get('payment_reference'),
                config=Pickup.config(),
                user=request.user if request.user.is_authenticated else None,
                notes=data.get('notes') or '',
            )
        except BaseError as e:
            return error_response(e)

        return JsonResponse({'order': serialize_order(order)}, status=201)


# ══════════════════════════════════════════════════════════════
# STAFF
# ══════════════════════════════════════════════════════════════


class StaffRequiredMixin:
    """403 unless the session user is active staff."""

    def dispatch(self, request, *args, **kwargs):
        user = getattr(request, 'user', None)
        if not (user and user.is_authenticated and user.is_active and user.is_staff):
            return simple_error('FORBIDDEN', 'Staff access required', 403)
        return super().dispatch(request, *args, **kwargs)


@method_decorator(csrf_exempt, name='dispatch')
class StockAdjustmentView(StaffRequiredMixin, View):
    """
    Set a holder's quantity.

    POST /admin/stock-adjustments/
    {"holder_type": "variant", "holder_id": 12, "new_quantity": 8, "reason": "Contagem"}
    """

    models = {'product': Product, 'variant': Variant}

    def post(self, request):
        try:
            data = read_json(request)
            model = self.models.get(data.get('holder_type'))
            if model is None:
                raise InvalidRequest({'holder_type': 'must be product or variant'})
            holder_id = data.get('holder_id')
            if isinstance(holder_id, bool) or not isinstance(holder_id, int):
                raise InvalidRequest({'holder_id': 'must be an id'})
            new_quantity = data.get('new_quantity')
            if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
                raise InvalidRequest({'new_quantity': 'must be an integer'})
            target = model.objects.filter(pk=holder_id).first()
            if target is None:
                return not_found(data.get('holder_type'))
            move = Stock.adjust(target, new_quantity, data.get('reason') or '', user=request.user)
        except (StockError, InvalidRequest) as e:
            return error_response(e)

        if move is None:
            return JsonResponse({'move': None, 'quantity': new_quantity})
        return JsonResponse({'move': serialize_move(move), 'quantity': move.new_quantity}, status=201)


class LedgerView(StaffRequiredMixin, View):
    """
    Audit query.

    GET /admin/ledger/?product=1&variant=&order=&kind=restock&from=2025-01-01&to=2025-01-31
    """

    def get(self, request):
        params = request.GET
        try:
            kind = params.get('kind') or None
            if kind and kind not in MoveKind.values:
                raise InvalidRequest({'kind': f"must be one of {', '.join(MoveKind.values)}"})
            filters = {}
            for field in ('product', 'variant', 'order'):
                value = params.get(field)
                if value:
                    if not value.isdigit():
                        raise InvalidRequest({field: 'must be an id'})
                    filters[field] = int(value)
            moves = Stock.ledger(
                kind=kind,
                start=optional_datetime(params.get('from'), 'from'),
                end=optional_datetime(params.get('to'), 'to', end=True),
                **filters,
            )
        except BaseError as e:
            return error_response(e)

        count = moves.count()
        return JsonResponse({
            'count': count,
            'moves': [serialize_move(m) for m in moves[:LEDGER_LIMIT]],
        })


@method_decorator(csrf_exempt, name='dispatch')
class ResourceListView(StaffRequiredMixin, View):
    """List (GET) and create (POST) for one model."""

    model = None
    form_class = None
    serializer = None

    def get_queryset(self):
        return self.model.objects.all()

    def get(self, request):
        return JsonResponse({'results': [self.serializer(o) for o in self.get_queryset()]})

    def post(self, request):
        try:
            data = read_json(request)
        except BaseError as e:
            return error_response(e)
        initial = model_to_dict(self.model(), fields=self.form_class._meta.fields)
        form = self.form_class({**initial, **data})
        if not form.is_valid():
            return form_errors(form)
        obj = form.save()
        logger.info(
            "admin.created",
            extra={"model": self.model._meta.label, "id": obj.pk, "user": request.user.pk},
        )
        return JsonResponse(self.serializer(obj), status=201)


@method_decorator(csrf_exempt, name='dispatch')
class ResourceDetailView(StaffRequiredMixin, View):
    """Read (GET), replace (PUT), update (PATCH) and delete (DELETE) one row."""

    model = None
    form_class = None
    serializer = None

    def get_object(self, pk):
        return self.model.objects.filter(pk=pk).first()

    def get(self, request, pk):
        obj = self.get_object(pk)
        if obj is None:
            return not_found(self.model._meta.model_name)
        return JsonResponse(self.serializer(obj))

    def put(self, request, pk):
        return self._save(request, pk, partial=False)

    def patch(self, request, pk):
        return self._save(request, pk, partial=True)

    def delete(self, request, pk):
        obj = self.get_object(pk)
        if obj is None:
            return not_found(self.model._meta.model_name)
        obj.delete()
        logger.info(
            "admin.deleted",
            extra={"model": self.model._meta.label, "id": pk, "user": request.user.pk},
        )
        return HttpResponse(status=204)

    def _save(self, request, pk, partial):
        obj = self.get_object(pk)
        if obj is None:
            return not_found(self.model._meta.model_name)
        try:
            data = read_json(request)
        except BaseError as e:
            return error_response(e)
        fields = self.form_class._meta.fields
        base = model_to_dict(obj if partial else self.model(), fields=fields)
        form = self.form_class({**base, **data}, instance=obj)
        if not form.is_valid():
            return form_errors(form)
        obj = form.save()
        return JsonResponse(self.serializer(obj))


class PickupWindowListView(ResourceListView):
    model = PickupWindow
    form_class = PickupWindowForm
    serializer = staticmethod(serialize_window)


class PickupWindowDetailView(ResourceDetailView):
    model = PickupWindow
    form_class = PickupWindowForm
    serializer = staticmethod(serialize_window)


class BlockedSlotListView(ResourceListView):
    model = BlockedSlot
    form_class = BlockedSlotForm
    serializer = staticmethod(serialize_block)

    def get_queryset(self):
        qs = BlockedSlot.objects.all()
        if self.request.GET.get('upcoming'):
            qs = qs.upcoming()
        return qs


class BlockedSlotDetailView(ResourceDetailView):
    model = BlockedSlot
    form_class = BlockedSlotForm
    serializer = staticmethod(serialize_block)


@method_decorator(csrf_exempt, name='dispatch')
class OrderStatusView(StaffRequiredMixin, View):
    """
    Move an order to a new status. Cancelling returns its stock.

    POST /admin/orders/<id>/status/
    {"status": "cancelled"}
    """

    def post(self, request, pk):
        order = Order.objects.filter(pk=pk).first()
        if order is None:
            return not_found('order')
        try:
            data = read_json(request)
            new_status = data.get('status')
            if not new_status:
                raise InvalidRequest({'status': 'required'})
            order = Orders.transition(order, new_status, user=request.user)
        except (OrderError, StockError) as e:
            return error_response(e)

        return JsonResponse({'order': serialize_order(order)})
