# ==================== PAYMENTS/TASKS.PY ====================
from celery import shared_task
from django.conf import settings
from django.utils import timezone
from datetime import timedelta
import logging

from utils.exceptions import GatewayError

logger = logging.getLogger(__name__)

RECONCILE_BATCH_SIZE = 100


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def reconcile_pending_payments(self):
    """Catch up on payment webhooks Razorpay never delivered.

    Pending payments are looked up by order and fed through the same reconcile
    functions as the webhook. Only reads hit the gateway, so the task may be
    retried safely.
    """
    from .models import Payment
    from .services import RazorpayService
    from .webhooks import apply_payment_failed, apply_payment_succeeded

    if not RazorpayService.is_configured():
        logger.info("Razorpay not configured, skipping payment reconciliation")
        return {'checked': 0, 'completed': 0, 'failed': 0}

    service = RazorpayService()
    pending = Payment.objects.filter(
        status=Payment.STATUS_PENDING,
        razorpay_order_id__isnull=False,
    ).order_by('created_at')[:RECONCILE_BATCH_SIZE]

    checked = completed = failed = 0
    gateway_errors = 0
    for payment in pending:
        try:
            attempts = service.fetch_order_payments(payment.razorpay_order_id)
        except GatewayError:
            gateway_errors += 1
            continue

        checked += 1
        captured = [p for p in attempts if p.get('status') == 'captured']
        if captured:
            apply_payment_succeeded(payment.booking_id, captured[0])
            completed += 1
        elif attempts and all(p.get('status') == 'failed' for p in attempts):
            apply_payment_failed(payment.booking_id, attempts[0])
            failed += 1

    logger.info(f"Payment reconciliation: {checked} checked, {completed} completed, {failed} failed")

    if gateway_errors and not checked:
        # Gateway unreachable for the whole batch
        raise self.retry(exc=GatewayError())

    return {'checked': checked, 'completed': completed, 'failed': failed}


@shared_task
def report_unsettled_bookings():
    """Log completed paid sessions whose payment was never requested"""
    from bookings.models import Booking

    threshold = timezone.now() - timedelta(minutes=settings.UNSETTLED_BOOKING_GRACE_MINUTES)
    unsettled = Booking.objects.filter(
        booking_type=Booking.BOOKING_TYPE_ON_DEMAND,
        status=Booking.STATUS_COMPLETED,
        total_price__gt=0,
        actual_end_time__lte=threshold,
        payment__isnull=True,
    ).order_by('actual_end_time')

    booking_ids = list(unsettled.values_list('id', flat=True))
    for booking_id in booking_ids:
        logger.warning(f"Booking {booking_id} completed without a payment, settlement needs attention")

    return booking_ids
