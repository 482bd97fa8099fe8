import hashlib
import hmac
import json
from decimal import Decimal

import pytest
from django.test import Client
from django.utils import timezone

from bookings.models import Booking
from payments.models import Payment
from payments.webhooks import apply_payment_failed, apply_payment_succeeded

pytestmark = pytest.mark.django_db

WEBHOOK_URL = '/webhooks/razorpay/payment/'


def sign(body):
    return hmac.new(b'whsec_test', body, hashlib.sha256).hexdigest()


def payment_event(event, booking_id, payment_id='pay_001', status='captured'):
    notes = {'booking_id': str(booking_id)} if booking_id is not None else []
    return {
        'entity': 'event',
        'event': event,
        'payload': {
            'payment': {
                'entity': {
                    'id': payment_id,
                    'entity': 'payment',
                    'amount': 150,
                    'currency': 'NOK',
                    'status': status,
                    'order_id': 'order_TEST123',
                    'notes': notes,
                    'error_description': 'Card declined' if status == 'failed' else None,
                }
            }
        },
    }


def deliver(data, signature=None):
    body = json.dumps(data).encode()
    headers = {}
    if signature is not False:
        headers['HTTP_X_RAZORPAY_SIGNATURE'] = signature or sign(body)
    return Client().post(WEBHOOK_URL, data=body, content_type='application/json', **headers)


@pytest.fixture
def completed_booking(driver, parking_space):
    now = timezone.now()
    return Booking.objects.create(
        driver=driver,
        parking_space=parking_space,
        booking_type=Booking.BOOKING_TYPE_ON_DEMAND,
        status=Booking.STATUS_COMPLETED,
        actual_start_time=now,
        actual_end_time=now,
        duration_minutes=3,
        vehicle_plate='EL12345',
        total_price=Decimal('1.50'),
    )


@pytest.fixture
def pending_payment(completed_booking):
    return Payment.objects.create(
        booking=completed_booking,
        amount=Decimal('1.50'),
        razorpay_order_id='order_TEST123',
    )


def test_captured_payment_confirms_booking(completed_booking, pending_payment):
    response = deliver(payment_event('payment.captured', completed_booking.id))

    assert response.status_code == 200
    assert response.json() == {'status': 'success'}
    pending_payment.refresh_from_db()
    completed_booking.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_COMPLETED
    assert pending_payment.razorpay_payment_id == 'pay_001'
    assert pending_payment.completed_at is not None
    assert completed_booking.status == Booking.STATUS_CONFIRMED


def test_duplicate_capture_is_idempotent(completed_booking, pending_payment):
    deliver(payment_event('payment.captured', completed_booking.id))
    pending_payment.refresh_from_db()
    first_completed_at = pending_payment.completed_at

    response = deliver(payment_event('payment.captured', completed_booking.id))

    assert response.status_code == 200
    pending_payment.refresh_from_db()
    completed_booking.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_COMPLETED
    assert pending_payment.completed_at == first_completed_at
    assert completed_booking.status == Booking.STATUS_CONFIRMED
    assert Payment.objects.count() == 1


def test_failed_payment_leaves_booking_completed(completed_booking, pending_payment):
    response = deliver(payment_event('payment.failed', completed_booking.id, status='failed'))

    assert response.status_code == 200
    pending_payment.refresh_from_db()
    completed_booking.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_FAILED
    assert completed_booking.status == Booking.STATUS_COMPLETED


def test_late_failure_does_not_undo_capture(completed_booking, pending_payment):
    deliver(payment_event('payment.captured', completed_booking.id))
    deliver(payment_event('payment.failed', completed_booking.id, payment_id='pay_000', status='failed'))

    pending_payment.refresh_from_db()
    completed_booking.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_COMPLETED
    assert pending_payment.razorpay_payment_id == 'pay_001'
    assert completed_booking.status == Booking.STATUS_CONFIRMED


def test_capture_after_failed_attempt_wins(completed_booking, pending_payment):
    deliver(payment_event('payment.failed', completed_booking.id, payment_id='pay_000', status='failed'))
    deliver(payment_event('payment.captured', completed_booking.id))

    pending_payment.refresh_from_db()
    completed_booking.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_COMPLETED
    assert completed_booking.status == Booking.STATUS_CONFIRMED


def test_capture_before_payment_row_exists_creates_it(completed_booking):
    response = deliver(payment_event('payment.captured', completed_booking.id))

    assert response.status_code == 200
    payment = Payment.objects.get(booking=completed_booking)
    assert payment.status == Payment.STATUS_COMPLETED
    assert payment.amount == Decimal('1.50')
    assert payment.currency == 'NOK'
    assert payment.razorpay_order_id == 'order_TEST123'


def test_event_without_currency_uses_configured_currency(completed_booking, settings):
    settings.PAYMENT_CURRENCY = 'EUR'
    data = payment_event('payment.failed', completed_booking.id, status='failed')
    del data['payload']['payment']['entity']['currency']

    response = deliver(data)

    assert response.status_code == 200
    payment = Payment.objects.get(booking=completed_booking)
    assert payment.status == Payment.STATUS_FAILED
    assert payment.currency == 'EUR'


def test_event_without_booking_id_is_acknowledged(completed_booking, pending_payment):
    response = deliver(payment_event('payment.captured', None))

    assert response.status_code == 200
    pending_payment.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_PENDING


def test_unknown_event_is_acknowledged(completed_booking, pending_payment):
    response = deliver(payment_event('refund.processed', completed_booking.id))

    assert response.status_code == 200
    pending_payment.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_PENDING


def test_invalid_signature_is_rejected_before_any_change(completed_booking, pending_payment):
    response = deliver(payment_event('payment.captured', completed_booking.id), signature='0' * 64)

    assert response.status_code == 400
    assert response.json()['code'] == 'invalid_signature'
    pending_payment.refresh_from_db()
    completed_booking.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_PENDING
    assert completed_booking.status == Booking.STATUS_COMPLETED


def test_missing_signature_is_rejected(completed_booking, pending_payment):
    response = deliver(payment_event('payment.captured', completed_booking.id), signature=False)
    assert response.status_code == 400
    assert response.json()['code'] == 'invalid_signature'


@pytest.mark.parametrize('body', [b'not json', b'[]', b'"payment.captured"', b'42'])
def test_signed_body_that_is_not_an_event_object_is_rejected(body):
    response = Client().post(WEBHOOK_URL, data=body, content_type='application/json',
                             HTTP_X_RAZORPAY_SIGNATURE=sign(body))
    assert response.status_code == 400
    assert response.json()['code'] == 'invalid_payload'


def test_webhook_only_accepts_post():
    assert Client().get(WEBHOOK_URL).status_code == 405


def test_reconcile_functions_ignore_unknown_bookings():
    entity = payment_event('payment.captured', 9999)['payload']['payment']['entity']
    assert apply_payment_succeeded(9999, entity) is False
    assert apply_payment_failed(9999, entity) is False
    assert not Payment.objects.exists()
