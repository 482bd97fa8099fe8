# ==================== PAYMENTS/SERVICES.PY ====================
import logging
from decimal import Decimal, ROUND_HALF_UP

import razorpay
from razorpay.errors import SignatureVerificationError
import requests
from django.conf import settings
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from utils.exceptions import GatewayError, InvalidSignatureError

logger = logging.getLogger(__name__)


def to_minor_units(amount):
    """Convert a major-unit amount (NOK) to the gateway's minor unit (øre)"""
    return int((Decimal(amount) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_minor_units(amount):
    return (Decimal(amount or 0) / 100).quantize(Decimal('0.01'))


class _TimeoutHTTPAdapter(HTTPAdapter):
    def __init__(self, *args, timeout=None, **kwargs):
        self.timeout = timeout
        super().__init__(*args, **kwargs)

    def send(self, request, **kwargs):
        if kwargs.get('timeout') is None:
            kwargs['timeout'] = self.timeout
        return super().send(request, **kwargs)


def _build_session():
    """HTTP session that retries idempotent reads and never replays order creation"""
    retry = Retry(
        total=settings.GATEWAY_READ_RETRIES,
        backoff_factor=0.5,
        status_forcelist=(502, 503, 504),
        allowed_methods=frozenset({'GET'}),
        raise_on_status=False,
    )
    adapter = _TimeoutHTTPAdapter(max_retries=retry, timeout=settings.GATEWAY_TIMEOUT_SECONDS)
    session = requests.Session()
    session.mount('https://', adapter)
    session.mount('http://', adapter)
    return session


class RazorpayService:
    """Razorpay payment gateway integration"""

    def __init__(self, client=None):
        self.client = client or razorpay.Client(
            session=_build_session(),
            auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
        )

    @staticmethod
    def is_configured():
        return bool(settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET)

    def create_order(self, booking, amount, currency=None):
        """Create a Razorpay order authorizing ``amount`` for ``booking``.

        The booking id travels in the order notes, which Razorpay copies onto
        every payment made against the order and therefore into the webhooks.
        Failures are raised as ``GatewayError`` and never retried here.
        """
        order_data = {
            'amount': to_minor_units(amount),
            'currency': currency or settings.PAYMENT_CURRENCY,
            'receipt': f'booking_{booking.id}',
            'notes': {
                'booking_id': str(booking.id),
                'driver_id': str(booking.driver_id),
                'booking_type': booking.booking_type,
                'parking_space': booking.parking_space.zone_name or booking.parking_space.title,
            },
        }

        try:
            razorpay_order = self.client.order.create(data=order_data)
        except Exception as e:
            logger.error(f"Error creating Razorpay order for booking {booking.id}: {str(e)}")
            raise GatewayError() from e

        logger.info(f"Razorpay order created: {razorpay_order['id']} for booking {booking.id}")
        return razorpay_order

    def fetch_order_payments(self, razorpay_order_id):
        """Payments attempted against an order, newest first as returned by Razorpay"""
        try:
            response = self.client.order.payments(razorpay_order_id)
        except Exception as e:
            logger.error(f"Error fetching payments for order {razorpay_order_id}: {str(e)}")
            raise GatewayError() from e
        return response.get('items', [])

    def verify_webhook_signature(self, body, signature):
        """Check ``X-Razorpay-Signature`` against the raw request body"""
        if not signature or not settings.RAZORPAY_WEBHOOK_SECRET:
            raise InvalidSignatureError()

        if isinstance(body, bytes):
            body = body.decode('utf-8', errors='replace')

        try:
            self.client.utility.verify_webhook_signature(body, signature, settings.RAZORPAY_WEBHOOK_SECRET)
        except SignatureVerificationError as e:
            raise InvalidSignatureError() from e


def client_payment_handle(payment):
    """What the client needs to open Razorpay checkout for a pending payment"""
    return {
        'payment_id': payment.id,
        'razorpay_order_id': payment.razorpay_order_id,
        'key_id': settings.RAZORPAY_KEY_ID,
        'amount': to_minor_units(payment.amount),
        'currency': payment.currency,
    }
