# ==================== BOOKINGS/PRICING.PY ====================
"""Per-minute metering for on-demand parking.

Amounts are ``Decimal`` rounded to two places with ROUND_HALF_UP
(half away from zero for the non-negative amounts used here).
"""
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.utils import timezone

CENT = Decimal('0.01')
MINIMUM_BILLED_MINUTES = 1
_MICROSECOND = timedelta(microseconds=1)
_MICROSECONDS_PER_MINUTE = timedelta(minutes=1) // _MICROSECOND


def _to_decimal(value):
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def rate_per_minute(parking_space):
    """Explicit per-minute rate, else the hourly rate spread over 60 minutes, else 0"""
    if parking_space.price_per_minute:
        return _to_decimal(parking_space.price_per_minute)
    if parking_space.price_per_hour:
        return _to_decimal(parking_space.price_per_hour) / 60
    return Decimal(0)


def billable_minutes(start, end):
    """Whole minutes between ``start`` and ``end``, rounded up, never less than one"""
    elapsed_us = (end - start) // _MICROSECOND
    minutes = -(-elapsed_us // _MICROSECONDS_PER_MINUTE)
    return max(MINIMUM_BILLED_MINUTES, minutes)


def quantize_amount(amount):
    return _to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def charge(rate, start, end):
    """Price of a session from ``start`` to ``end`` at ``rate`` per minute"""
    rate = max(_to_decimal(rate), Decimal(0))
    return quantize_amount(rate * billable_minutes(start, end))


def estimate(rate, start, now=None):
    """Running total for a session that has not been stopped yet"""
    if now is None:
        now = timezone.now()
    return charge(rate, start, now)
