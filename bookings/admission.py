# ==================== BOOKINGS/ADMISSION.PY ====================
"""Decides whether an on-demand session may start on a parking space.

Admission is capability, then (optional) geofence, then conflict. The conflict
read only gives an early, friendly answer: the partial unique constraint on
``Booking`` is what actually guarantees one running session per space, and a
request that loses the race on insert is reported as ``SpotOccupiedError``.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.utils import timezone

from utils.distance_calculator import DistanceCalculator
from utils.exceptions import (
    CapabilityError,
    GeofenceUnavailableError,
    OutOfRangeError,
    SpotOccupiedError,
)
from . import pricing
from .models import Booking

logger = logging.getLogger(__name__)


@dataclass
class AdmissionDecision:
    parking_space: object
    price_per_minute: Decimal
    is_available: bool
    gps_verified: bool

    @property
    def can_start(self):
        return self.is_available and self.gps_verified


class AdmissionController:

    def check_capability(self, parking_space):
        if not parking_space.supports_on_demand_booking or not parking_space.is_active:
            raise CapabilityError()

    def is_present(self, parking_space, coordinate):
        """True when ``coordinate`` lies inside the space's geofence"""
        if not parking_space.has_location:
            raise GeofenceUnavailableError()
        return DistanceCalculator.is_within_tolerance(
            coordinate,
            parking_space.coordinate,
            parking_space.gps_tolerance_meters,
        )

    def has_conflict(self, parking_space):
        return self._running_sessions(parking_space).exists()

    def prepare(self, parking_space, coordinate, require_geofence=False):
        """Dry run of ``admit``: report the decision without writing anything"""
        self.check_capability(parking_space)

        if require_geofence:
            try:
                gps_verified = self.is_present(parking_space, coordinate)
            except GeofenceUnavailableError:
                gps_verified = False
        else:
            gps_verified = True

        return AdmissionDecision(
            parking_space=parking_space,
            price_per_minute=pricing.rate_per_minute(parking_space),
            is_available=not self.has_conflict(parking_space),
            gps_verified=gps_verified,
        )

    def admit(self, parking_space, driver, coordinate, vehicle_plate, require_geofence=False):
        """Run every admission check and insert the STARTED booking"""
        self.check_capability(parking_space)

        if require_geofence and not self.is_present(parking_space, coordinate):
            raise OutOfRangeError()

        if self.has_conflict(parking_space):
            raise SpotOccupiedError()

        now = timezone.now()
        try:
            with transaction.atomic():
                booking = Booking.objects.create(
                    driver=driver,
                    parking_space=parking_space,
                    booking_type=Booking.BOOKING_TYPE_ON_DEMAND,
                    status=Booking.STATUS_STARTED,
                    start_datetime=now,
                    actual_start_time=now,
                    vehicle_plate=vehicle_plate,
                    gps_start_latitude=_coordinate_part(coordinate, 0),
                    gps_start_longitude=_coordinate_part(coordinate, 1),
                    estimated_price=Decimal('0.00'),
                )
        except IntegrityError:
            if self._running_sessions(parking_space).exists():
                logger.warning(
                    f"Lost admission race on parking space {parking_space.id} for user {driver.id}"
                )
                raise SpotOccupiedError()
            raise

        logger.info(f"On-demand session {booking.id} started on space {parking_space.id} by user {driver.id}")
        return booking

    @staticmethod
    def _running_sessions(parking_space):
        return Booking.objects.filter(
            parking_space=parking_space,
            booking_type=Booking.BOOKING_TYPE_ON_DEMAND,
            status=Booking.STATUS_STARTED,
        )


def _coordinate_part(coordinate, index):
    if coordinate is None:
        return None
    return Decimal(str(round(float(coordinate[index]), 6)))
