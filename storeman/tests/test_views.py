"""
Tests for the JSON endpoints.
"""

import json
from datetime import time, timedelta

import pytest
from django.urls import reverse

from storeman import orders, stock
from storeman.models import BlockedSlot, Move, MoveKind, Order, PickupWindow
from storeman.slots import day_of_week


pytestmark = pytest.mark.django_db

SLOT = '10:00-10:30'


def post_json(client, url, data, method='post'):
    return getattr(client, method)(url, data=json.dumps(data), content_type='application/json')


@pytest.fixture
def staff_client(client, staff):
    client.force_login(staff)
    return client


@pytest.fixture
def booking(next_week, customer):
    def payload(**overrides):
        data = {
            'kind': 'pickup',
            'date': next_week.isoformat(),
            'slot': SLOT,
            'items': [],
            'customer': customer,
        }
        data.update(overrides)
        return data

    return payload


class TestAvailabilityEndpoints:
    """GET availability/ and slots/."""

    def test_availability(self, client, windows, next_week):
        """Lists bookable dates with their slot counts."""
        response = client.get(reverse('storeman:availability'), {
            'from': next_week.isoformat(),
            'to': (next_week + timedelta(days=2)).isoformat(),
        })

        assert response.status_code == 200
        body = response.json()
        assert [d['date'] for d in body['dates']] == [
            (next_week + timedelta(days=i)).isoformat() for i in range(3)
        ]
        assert body['dates'][0]['available_slot_count'] == 4
        assert body['dates'][0]['fully_booked'] is False
        assert 'minimum_date' in body

    def test_availability_skips_closed_days(self, client, next_week):
        """Weekdays without a window are not listed."""
        PickupWindow.objects.create(day_of_week=day_of_week(next_week),
                                    start_time=time(10), end_time=time(11))

        response = client.get(reverse('storeman:availability'), {
            'from': next_week.isoformat(),
            'to': (next_week + timedelta(days=6)).isoformat(),
        })

        assert [d['date'] for d in response.json()['dates']] == [next_week.isoformat()]

    def test_availability_bad_dates(self, client, next_week):
        """Malformed or reversed ranges are 400."""
        url = reverse('storeman:availability')

        assert client.get(url, {'from': 'amanhã'}).status_code == 400
        response = client.get(url, {
            'from': next_week.isoformat(),
            'to': (next_week - timedelta(days=1)).isoformat(),
        })
        assert response.status_code == 400
        assert response.json()['error']['code'] == 'INVALID_REQUEST'

    def test_slots(self, client, windows, next_week):
        """Lists every slot of a date."""
        BlockedSlot.objects.create(date=next_week, start_time=time(11), end_time=time(11, 30))

        response = client.get(reverse('storeman:slots'), {'date': next_week.isoformat()})

        slots = response.json()['slots']
        assert [s['label'] for s in slots] == [
            '10:00-10:30', '10:30-11:00', '11:00-11:30', '11:30-12:00',
        ]
        assert [s['available'] for s in slots] == [True, True, False, True]
        assert slots[0] == {
            'label': '10:00-10:30', 'start': '10:00', 'end': '10:30',
            'available': True, 'remaining': 5,
        }

    def test_slots_requires_date(self, client):
        """date is required."""
        response = client.get(reverse('storeman:slots'))

        assert response.status_code == 400
        assert 'date' in response.json()['error']['data']['errors']


class TestBookingEndpoint:
    """POST bookings/."""

    def test_booking_created(self, client, windows, cake, booking):
        """A valid booking returns 201 with the order."""
        response = post_json(client, reverse('storeman:bookings'), booking(
            items=[{'product': cake.pk, 'quantity': 2}],
            payment_reference='pi_123',
        ))

        assert response.status_code == 201
        order = response.json()['order']
        assert order['status'] == 'pending'
        assert order['payment_status'] == 'paid'
        assert order['pickup_slot'] == SLOT
        assert order['total'] == '90.00'
        assert order['items'][0]['sku'] == 'BOLO-DEFAULT'
        assert stock.quantity(cake) == 8

    def test_booking_rejected_lists_items(self, client, windows, cake, shirt, booking):
        """Insufficient stock is 409 listing every failing item."""
        small = shirt.variants.get(sku='CAM-P')

        response = post_json(client, reverse('storeman:bookings'), booking(items=[
            {'product': cake.pk, 'quantity': 30},
            {'variant': small.pk, 'quantity': 4},
        ]))

        assert response.status_code == 409
        error = response.json()['error']
        assert error['code'] == 'ORDER_REJECTED'
        assert [i['available'] for i in error['data']['items']] == [10, 3]
        assert not Order.objects.exists()

    def test_booking_invalid(self, client, booking):
        """Missing fields are 400 with every error listed."""
        response = post_json(client, reverse('storeman:bookings'), booking(
            date=None, customer={'name': 'Ana'},
        ))

        assert response.status_code == 400
        errors = response.json()['error']['data']['errors']
        assert set(errors) == {'date', 'customer.email', 'items'}

    def test_booking_malformed_slot(self, client, windows, cake, booking):
        """A malformed slot label is 400, not a retryable conflict."""
        response = post_json(client, reverse('storeman:bookings'), booking(
            slot='10-11', items=[{'product': cake.pk, 'quantity': 1}],
        ))

        assert response.status_code == 400
        assert response.json()['error']['data']['errors'] == {'slot': 'invalid (HH:MM-HH:MM)'}
        assert stock.quantity(cake) == 10

    def test_booking_bad_json(self, client):
        """A body that is not JSON is 400."""
        response = client.post(reverse('storeman:bookings'), data='{',
                               content_type='application/json')

        assert response.status_code == 400

    def test_booking_full_slot(self, client, windows, cake, booking, settings):
        """A full slot is 409 with reason full."""
        settings.STOREMAN = {**settings.STOREMAN, 'SLOT_CAPACITY': 1}
        url = reverse('storeman:bookings')
        post_json(client, url, booking(items=[{'product': cake.pk, 'quantity': 1}]))

        response = post_json(client, url, booking(items=[{'product': cake.pk, 'quantity': 1}]))

        assert response.status_code == 409
        assert response.json()['error']['data']['reason'] == 'full'

    def test_payment_refused(self, client, windows, cake, booking, settings):
        """A refused payment is 402."""
        settings.STOREMAN = {
            **settings.STOREMAN,
            'PAYMENT_AUTHORITY': 'storeman.tests.adapters.ReferenceAuthority',
        }

        response = post_json(client, reverse('storeman:bookings'), booking(
            items=[{'product': cake.pk, 'quantity': 1}], payment_reference='cash',
        ))

        assert response.status_code == 402


class TestStaffAccess:
    """Staff endpoints refuse everyone else."""

    @pytest.mark.parametrize('name', [
        'storeman:stock-adjustments', 'storeman:ledger',
        'storeman:pickup-windows', 'storeman:blocked-slots',
    ])
    def test_anonymous_forbidden(self, client, name):
        """Anonymous users get 403."""
        assert client.get(reverse(name)).status_code == 403

    def test_non_staff_forbidden(self, client, user):
        """Logged-in customers get 403."""
        client.force_login(user)

        assert client.get(reverse('storeman:ledger')).status_code == 403


class TestStockAdjustmentEndpoint:
    """POST admin/stock-adjustments/."""

    def test_adjust(self, staff_client, staff, cake):
        """An adjustment returns 201 with the move."""
        response = post_json(staff_client, reverse('storeman:stock-adjustments'), {
            'holder_type': 'product', 'holder_id': cake.pk,
            'new_quantity': 7, 'reason': 'Contagem',
        })

        assert response.status_code == 201
        body = response.json()
        assert body['quantity'] == 7
        assert body['move']['delta'] == -3
        assert body['move']['kind'] == MoveKind.MANUAL_ADJUSTMENT
        assert Move.objects.get(pk=body['move']['id']).user == staff

    def test_adjust_unchanged(self, staff_client, cake):
        """Same quantity: 200 without a move."""
        response = post_json(staff_client, reverse('storeman:stock-adjustments'), {
            'holder_type': 'product', 'holder_id': cake.pk,
            'new_quantity': 10, 'reason': 'Contagem',
        })

        assert response.status_code == 200
        assert response.json()['move'] is None

    def test_adjust_errors(self, staff_client, cake, sticker):
        """Unknown holders are 404; bad input 400; untracked products 409."""
        url = reverse('storeman:stock-adjustments')

        assert post_json(staff_client, url, {
            'holder_type': 'variant', 'holder_id': 99999, 'new_quantity': 1, 'reason': 'x',
        }).status_code == 404
        assert post_json(staff_client, url, {
            'holder_type': 'batch', 'holder_id': cake.pk, 'new_quantity': 1, 'reason': 'x',
        }).status_code == 400
        assert post_json(staff_client, url, {
            'holder_type': 'product', 'holder_id': cake.pk, 'new_quantity': 1, 'reason': '',
        }).status_code == 400
        assert post_json(staff_client, url, {
            'holder_type': 'product', 'holder_id': sticker.pk, 'new_quantity': 1, 'reason': 'x',
        }).status_code == 409


class TestLedgerEndpoint:
    """GET admin/ledger/."""

    def test_ledger(self, staff_client, cake, shirt):
        """Filters by product and kind."""
        stock.decrement(2, cake)

        response = staff_client.get(reverse('storeman:ledger'), {
            'product': cake.pk, 'kind': 'order_placed',
        })

        body = response.json()
        assert body['count'] == 1
        assert body['moves'][0]['delta'] == -2
        assert body['moves'][0]['product'] == cake.pk

    def test_ledger_bad_filters(self, staff_client):
        """Unknown kinds and non-numeric ids are 400."""
        url = reverse('storeman:ledger')

        assert staff_client.get(url, {'kind': 'theft'}).status_code == 400
        assert staff_client.get(url, {'product': 'bolo'}).status_code == 400
        assert staff_client.get(url, {'from': 'ontem'}).status_code == 400


class TestPickupWindowEndpoints:
    """CRUD admin/pickup-windows/."""

    def test_create_and_list(self, staff_client):
        """POST creates, GET lists."""
        url = reverse('storeman:pickup-windows')

        response = post_json(staff_client, url, {
            'day_of_week': 5, 'start_time': '10:00', 'end_time': '12:00', 'capacity': 3,
        })

        assert response.status_code == 201
        assert response.json()['display_name'] == 'Friday: 10:00 AM - 12:00 PM'
        assert response.json()['active'] is True
        assert len(staff_client.get(url).json()['results']) == 1

    def test_create_invalid_range(self, staff_client):
        """end_time before start_time is 400."""
        response = post_json(staff_client, reverse('storeman:pickup-windows'), {
            'day_of_week': 4, 'start_time': '12:00', 'end_time': '10:00',
        })

        assert response.status_code == 400
        assert 'end_time' in response.json()['error']['data']['errors']

    def test_update_and_delete(self, staff_client):
        """PATCH changes fields; DELETE removes the row."""
        window = PickupWindow.objects.create(day_of_week=1, start_time=time(9), end_time=time(11))
        url = reverse('storeman:pickup-window', args=[window.pk])

        response = post_json(staff_client, url, {'active': False}, method='patch')
        assert response.status_code == 200
        assert response.json()['active'] is False
        assert response.json()['start_time'] == '09:00'

        assert staff_client.delete(url).status_code == 204
        assert staff_client.get(url).status_code == 404


class TestBlockedSlotEndpoints:
    """CRUD admin/blocked-slots/."""

    def test_create_and_read(self, staff_client, next_week):
        """POST creates a blackout; GET reads it back."""
        response = post_json(staff_client, reverse('storeman:blocked-slots'), {
            'date': next_week.isoformat(), 'start_time': '11:00', 'end_time': '11:30',
            'reason': 'Manutenção',
        })

        assert response.status_code == 201
        block = BlockedSlot.objects.get()
        detail = staff_client.get(reverse('storeman:blocked-slot', args=[block.pk])).json()
        assert detail['reason'] == 'Manutenção'
        assert detail['end_time'] == '11:30'

    def test_replace(self, staff_client, next_week):
        """PUT replaces every field."""
        block = BlockedSlot.objects.create(date=next_week, start_time=time(11),
                                           end_time=time(11, 30), reason='Velho')
        url = reverse('storeman:blocked-slot', args=[block.pk])

        response = post_json(staff_client, url, {
            'date': next_week.isoformat(), 'start_time': '14:00', 'end_time': '15:00',
        }, method='put')

        assert response.status_code == 200
        assert response.json()['reason'] == ''
        assert response.json()['start_time'] == '14:00'


class TestOrderStatusEndpoint:
    """POST admin/orders/<id>/status/."""

    def test_cancel_returns_stock(self, staff_client, cake, customer):
        """Cancelling through the endpoint restores stock."""
        order = orders.place('retail', [{'product': cake, 'quantity': 4}], customer)

        response = post_json(staff_client, reverse('storeman:order-status', args=[order.pk]),
                             {'status': 'cancelled'})

        assert response.status_code == 200
        assert response.json()['order']['status'] == 'cancelled'
        assert stock.quantity(cake) == 10

    def test_invalid_transition(self, staff_client, cake, customer):
        """Forbidden transitions are 409."""
        order = orders.place('retail', [{'product': cake, 'quantity': 1}], customer)

        response = post_json(staff_client, reverse('storeman:order-status', args=[order.pk]),
                             {'status': 'delivered'})

        assert response.status_code == 409
        assert response.json()['error']['code'] == 'INVALID_TRANSITION'

    def test_unknown_order(self, staff_client):
        """Unknown order ids are 404."""
        response = post_json(staff_client, reverse('storeman:order-status', args=[99999]),
                             {'status': 'cancelled'})

        assert response.status_code == 404
