# ==================== BOOKINGS/SERVICES.PY ====================
import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from parking.models import ParkingSpace
from payments.models import Payment
from payments.services import RazorpayService, client_payment_handle
from utils.exceptions import GatewayError, InvalidStateError, NotFoundError
from . import pricing
from .admission import AdmissionController
from .models import Booking

logger = logging.getLogger(__name__)


class SessionService:
    """Lifecycle of on-demand parking sessions: start, stop and read-only views.

    Every call re-reads the booking by primary key. State changes are
    conditional updates on the expected current status, so two concurrent stops
    of the same session cannot both succeed.
    """

    def __init__(self, admission=None, gateway_factory=None):
        self.admission = admission or AdmissionController()
        self.gateway_factory = gateway_factory or RazorpayService

    @staticmethod
    def get_parking_space(parking_space_id):
        try:
            return ParkingSpace.objects.get(id=parking_space_id)
        except ParkingSpace.DoesNotExist:
            raise NotFoundError('Parking space not found.')

    def prepare(self, parking_space_id, coordinate, require_geofence=False):
        parking_space = self.get_parking_space(parking_space_id)
        return self.admission.prepare(parking_space, coordinate, require_geofence)

    def start(self, driver, parking_space_id, vehicle_plate, coordinate, require_geofence=False):
        parking_space = self.get_parking_space(parking_space_id)
        return self.admission.admit(parking_space, driver, coordinate, vehicle_plate, require_geofence)

    def stop(self, booking_id, caller):
        """Meter the session, mark it COMPLETED and request payment.

        Returns ``(booking, payment_handle)``; the handle is ``None`` when nothing
        is owed or no gateway is configured. A gateway failure leaves the
        booking COMPLETED without a Payment row and is raised as ``GatewayError``.
        """
        booking = self._get_own_booking(booking_id, caller)

        if booking.status != Booking.STATUS_STARTED or not booking.is_on_demand:
            raise InvalidStateError()

        now = timezone.now()
        start = booking.session_start
        rate = pricing.rate_per_minute(booking.parking_space)
        total_price = pricing.charge(rate, start, now)
        duration_minutes = pricing.billable_minutes(start, now)

        updated = Booking.objects.filter(
            id=booking.id,
            booking_type=Booking.BOOKING_TYPE_ON_DEMAND,
            status=Booking.STATUS_STARTED,
        ).update(
            status=Booking.STATUS_COMPLETED,
            end_datetime=now,
            actual_end_time=now,
            duration_minutes=duration_minutes,
            estimated_price=total_price,
            total_price=total_price,
            updated_at=now,
        )
        if not updated:
            # Another request stopped it between our read and write
            raise InvalidStateError()

        booking.refresh_from_db()
        logger.info(
            f"On-demand session {booking.id} stopped: {duration_minutes} min, "
            f"{total_price} {settings.PAYMENT_CURRENCY}"
        )

        payment = None
        if total_price > 0:
            if self.gateway_factory.is_configured():
                payment = self._authorize(booking, total_price)
            else:
                logger.warning(f"No payment gateway configured, booking {booking.id} left without payment")

        return booking, client_payment_handle(payment) if payment else None

    def _authorize(self, booking, amount):
        gateway = self.gateway_factory()
        # Not retried: a replayed order could authorize the driver twice
        order = gateway.create_order(booking, amount)

        with transaction.atomic():
            payment, created = Payment.objects.get_or_create(
                booking=booking,
                defaults={
                    'amount': amount,
                    'currency': settings.PAYMENT_CURRENCY,
                    'razorpay_order_id': order['id'],
                    'status': Payment.STATUS_PENDING,
                }
            )
        if not created:
            logger.info(f"Payment for booking {booking.id} already recorded by the gateway callback")
        return payment

    def create_payment_order(self, booking_id, caller):
        """Request payment again for a stopped session that is still unpaid.

        Covers a stop whose order creation failed and a checkout the driver
        abandoned or that was declined. A fresh Razorpay order replaces the
        previous one and the Payment goes back to PENDING.
        """
        booking = self._get_own_booking(booking_id, caller)

        if booking.status != Booking.STATUS_COMPLETED or not booking.is_on_demand:
            raise InvalidStateError()
        if not booking.total_price or booking.total_price <= 0:
            raise InvalidStateError('Nothing is owed for this booking.')
        if Payment.objects.filter(booking=booking, status=Payment.STATUS_COMPLETED).exists():
            raise InvalidStateError('This booking is already paid.')
        if not self.gateway_factory.is_configured():
            raise GatewayError('Payment gateway is not configured.')

        order = self.gateway_factory().create_order(booking, booking.total_price)

        with transaction.atomic():
            payment = Payment.objects.select_for_update().filter(booking=booking).first()
            if payment is not None and payment.status == Payment.STATUS_COMPLETED:
                # Captured on the previous order while this one was being created
                raise InvalidStateError('This booking is already paid.')
            payment, _ = Payment.objects.update_or_create(
                booking=booking,
                defaults={
                    'amount': booking.total_price,
                    'currency': settings.PAYMENT_CURRENCY,
                    'razorpay_order_id': order['id'],
                    'razorpay_payment_id': None,
                    'gateway_response': None,
                    'status': Payment.STATUS_PENDING,
                }
            )

        logger.info(f"Payment order {order['id']} created for booking {booking.id}")
        return client_payment_handle(payment)

    def active_sessions(self, driver, now=None):
        """Running sessions of ``driver`` with their elapsed minutes and running price"""
        now = now or timezone.now()
        bookings = Booking.objects.filter(
            driver=driver,
            booking_type=Booking.BOOKING_TYPE_ON_DEMAND,
            status=Booking.STATUS_STARTED,
        ).select_related('parking_space').order_by('-actual_start_time')

        sessions = []
        for booking in bookings:
            rate = pricing.rate_per_minute(booking.parking_space)
            sessions.append({
                'booking': booking,
                'duration_minutes': pricing.billable_minutes(booking.session_start, now),
                'price_per_minute': rate,
                'estimated_price': pricing.estimate(rate, booking.session_start, now),
            })
        return sessions

    def summary(self, booking_id, caller):
        booking = self._get_own_booking(booking_id, caller)
        if not booking.is_on_demand:
            raise InvalidStateError('This summary is only available for on-demand parking.')

        start = booking.session_start
        end = booking.session_end
        elapsed_seconds = int((end - start).total_seconds()) if start and end else 0

        parking_price = booking.total_price or Decimal('0.00')
        service_fee = Decimal('0.00')
        payment = Payment.objects.filter(booking=booking).first()

        return {
            'id': booking.id,
            'parking_space': {
                'zone_number': booking.parking_space.zone_number,
                'zone_name': booking.parking_space.zone_name,
                'operator': booking.parking_space.operator,
            },
            'vehicle': {'plate_number': booking.vehicle_plate},
            'status': booking.status,
            'start_time': start,
            'end_time': end,
            'duration_minutes': elapsed_seconds // 60,
            'duration_seconds': elapsed_seconds % 60,
            'pricing': {
                'parking_price': parking_price,
                'service_fee': service_fee,
                'total': parking_price + service_fee,
                'currency': payment.currency if payment else settings.PAYMENT_CURRENCY,
                'vat_included': True,
            },
            'payment': {
                'status': payment.status,
                'method': 'razorpay',
            } if payment else None,
        }

    @staticmethod
    def _get_own_booking(booking_id, caller):
        try:
            booking = Booking.objects.select_related('parking_space').get(id=booking_id)
        except (Booking.DoesNotExist, ValueError, TypeError):
            raise NotFoundError()

        if booking.driver_id != caller.id:
            raise InvalidStateError('You do not have access to this booking.')
        return booking
