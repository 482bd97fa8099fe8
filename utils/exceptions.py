# ==================== UTILS/EXCEPTIONS.PY ====================
import logging

from django.utils.translation import gettext_lazy as _
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class CapabilityError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _('This parking space does not support start/stop parking.')
    default_code = 'capability_error'


class GeofenceUnavailableError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _('This parking space has no GPS position, presence cannot be verified.')
    default_code = 'geofence_unavailable'


class OutOfRangeError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _('You are not close enough to the parking space.')
    default_code = 'out_of_range'


class SpotOccupiedError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = _('The parking space is already in use.')
    default_code = 'spot_occupied'


class InvalidStateError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _('Only a running on-demand parking session can be stopped.')
    default_code = 'invalid_state'


class InvalidSignatureError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _('Webhook signature verification failed.')
    default_code = 'invalid_signature'


class GatewayError(APIException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = _('The payment provider could not process the request.')
    default_code = 'gateway_error'


class NotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = _('Booking not found.')
    default_code = 'not_found'


class RateLimitedError(APIException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = _('Too many requests. Please try again later.')
    default_code = 'rate_limited'

    def __init__(self, retry_after=None, detail=None, code=None):
        super().__init__(detail, code)
        self.retry_after = retry_after


def api_exception_handler(exc, context):
    """Render known errors as ``{"error", "code"}`` and hide everything else behind a 500"""
    response = exception_handler(exc, context)

    if response is not None:
        # Field errors from serializers keep DRF's own shape
        if isinstance(response.data, dict) and set(response.data) == {'detail'}:
            detail = response.data['detail']
            response.data = {'error': str(detail), 'code': getattr(detail, 'code', 'error')}
        if isinstance(exc, RateLimitedError) and exc.retry_after is not None:
            response['Retry-After'] = str(exc.retry_after)
        return response

    request = context.get('request')
    view_kwargs = context.get('kwargs') or {}
    user = getattr(request, 'user', None)
    logger.error(
        f"Unhandled error in {context.get('view').__class__.__name__}: {exc!r} "
        f"(booking_id={view_kwargs.get('pk')}, user_id={getattr(user, 'pk', None)})",
        exc_info=exc,
    )
    return Response(
        {'error': str(_('Something went wrong. Please try again.')), 'code': 'server_error'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
