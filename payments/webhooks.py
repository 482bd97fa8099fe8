# ==================== PAYMENTS/WEBHOOKS.PY ====================
"""Settlement of on-demand sessions from Razorpay payment events.

The reconcile functions only ever move state towards an absorbing value, so a
redelivered event, or a success and a failure arriving in either order, ends in
the same state: a captured payment always wins over a failed attempt.
"""
import json
import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from bookings.models import Booking
from utils.exceptions import InvalidSignatureError
from .models import Payment
from .services import RazorpayService, from_minor_units

logger = logging.getLogger(__name__)

EVENT_PAYMENT_CAPTURED = 'payment.captured'
EVENT_PAYMENT_FAILED = 'payment.failed'


@csrf_exempt
@require_POST
def razorpay_webhook(request):
    """Handle Razorpay payment webhooks"""
    signature = request.META.get('HTTP_X_RAZORPAY_SIGNATURE')
    try:
        RazorpayService().verify_webhook_signature(request.body, signature)
    except InvalidSignatureError as e:
        logger.warning(f"Rejected Razorpay webhook with invalid signature: {signature!r}")
        return JsonResponse({'error': str(e.detail), 'code': e.default_code}, status=400)

    try:
        webhook_data = json.loads(request.body)
    except ValueError:
        webhook_data = None
    if not isinstance(webhook_data, dict):
        logger.warning("Signed Razorpay webhook with an unreadable body")
        return JsonResponse({'error': 'Invalid payload', 'code': 'invalid_payload'}, status=400)

    event = webhook_data.get('event')
    try:
        handler = EVENT_HANDLERS.get(event)
        if handler is None:
            logger.info(f"Ignoring Razorpay event {event}")
        else:
            handler(webhook_data.get('payload') or {})
    except Exception as e:
        # Gateway will redeliver; handlers are idempotent
        logger.error(f"Webhook processing error for {event}: {e!r}", exc_info=True)
        return JsonResponse({'error': 'Webhook processing failed', 'code': 'server_error'}, status=500)

    return JsonResponse({'status': 'success'})


def extract_payment_entity(payload):
    return ((payload.get('payment') or {}).get('entity')) or {}


def extract_booking_id(entity):
    """Booking id from the payment notes copied over from the order, or ``None``"""
    notes = entity.get('notes') or {}
    # Razorpay sends an empty list instead of an empty object
    if not isinstance(notes, dict):
        return None
    try:
        return int(notes.get('booking_id'))
    except (TypeError, ValueError):
        return None


def handle_payment_captured(payload):
    entity = extract_payment_entity(payload)
    booking_id = extract_booking_id(entity)
    if booking_id is None:
        logger.warning(f"payment.captured without booking_id (payment {entity.get('id')})")
        return
    apply_payment_succeeded(booking_id, entity)


def handle_payment_failed(payload):
    entity = extract_payment_entity(payload)
    booking_id = extract_booking_id(entity)
    if booking_id is None:
        logger.warning(f"payment.failed without booking_id (payment {entity.get('id')})")
        return
    apply_payment_failed(booking_id, entity)


EVENT_HANDLERS = {
    EVENT_PAYMENT_CAPTURED: handle_payment_captured,
    EVENT_PAYMENT_FAILED: handle_payment_failed,
}


def _lock_booking(booking_id):
    return Booking.objects.select_for_update().filter(id=booking_id).first()


def _payment_defaults(booking, entity, status):
    amount = entity.get('amount')
    return {
        'amount': from_minor_units(amount) if amount is not None else (booking.total_price or Decimal('0.00')),
        'currency': (entity.get('currency') or settings.PAYMENT_CURRENCY).upper(),
        'razorpay_order_id': entity.get('order_id'),
        'status': status,
    }


def apply_payment_succeeded(booking_id, entity):
    """Mark the payment COMPLETED and the booking CONFIRMED. Returns False for unknown bookings."""
    with transaction.atomic():
        booking = _lock_booking(booking_id)
        if booking is None:
            logger.warning(f"payment.captured for unknown booking {booking_id}")
            return False

        payment = Payment.objects.select_for_update().filter(booking=booking).first()
        if payment is None:
            # Event overtook the stop response that records the pending payment
            payment = Payment(booking=booking, **_payment_defaults(booking, entity, Payment.STATUS_COMPLETED))
        elif payment.status == Payment.STATUS_COMPLETED:
            logger.info(f"Duplicate payment.captured for booking {booking_id}, payment already completed")
        payment.status = Payment.STATUS_COMPLETED
        payment.razorpay_payment_id = entity.get('id') or payment.razorpay_payment_id
        payment.gateway_response = entity
        if payment.completed_at is None:
            payment.completed_at = timezone.now()
        payment.save()

        confirmed = Booking.objects.filter(
            id=booking.id,
            status__in=[Booking.STATUS_COMPLETED, Booking.STATUS_CONFIRMED],
        ).update(status=Booking.STATUS_CONFIRMED, updated_at=timezone.now())

    if not confirmed:
        logger.warning(f"Payment captured for booking {booking_id} in status {booking.status}, booking left as is")
    else:
        logger.info(f"Booking {booking_id} confirmed by payment {payment.razorpay_payment_id}")
    return True


def apply_payment_failed(booking_id, entity):
    """Mark a pending payment FAILED. The booking stays COMPLETED; the parking already happened."""
    with transaction.atomic():
        booking = _lock_booking(booking_id)
        if booking is None:
            logger.warning(f"payment.failed for unknown booking {booking_id}")
            return False

        payment = Payment.objects.select_for_update().filter(booking=booking).first()
        if payment is None:
            payment = Payment(booking=booking, **_payment_defaults(booking, entity, Payment.STATUS_FAILED))
        elif payment.status != Payment.STATUS_PENDING:
            logger.info(f"payment.failed for booking {booking_id} ignored, payment already {payment.status}")
            return True

        payment.status = Payment.STATUS_FAILED
        payment.razorpay_payment_id = entity.get('id') or payment.razorpay_payment_id
        payment.gateway_response = entity
        payment.save()

    logger.warning(
        f"Payment failed for booking {booking_id}: {entity.get('error_description') or 'Unknown error'}"
    )
    return True
