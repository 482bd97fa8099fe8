import threading
from decimal import Decimal
from unittest import mock

import pytest
from django.db import connection

from bookings.admission import AdmissionController
from bookings.models import Booking
from utils.exceptions import (
    CapabilityError,
    GeofenceUnavailableError,
    OutOfRangeError,
    SpotOccupiedError,
)

AT_SPACE = (59.9139, 10.7522)
ACROSS_TOWN = (59.9500, 10.7000)

pytestmark = pytest.mark.django_db


@pytest.fixture
def controller():
    return AdmissionController()


def running_sessions(space):
    return Booking.objects.filter(
        parking_space=space,
        booking_type=Booking.BOOKING_TYPE_ON_DEMAND,
        status=Booking.STATUS_STARTED,
    )


def test_admit_creates_started_booking(controller, parking_space, driver):
    booking = controller.admit(parking_space, driver, AT_SPACE, 'EL12345')

    assert booking.status == Booking.STATUS_STARTED
    assert booking.booking_type == Booking.BOOKING_TYPE_ON_DEMAND
    assert booking.actual_start_time is not None
    assert booking.estimated_price == Decimal('0.00')
    assert booking.gps_start_latitude == Decimal('59.913900')
    assert booking.vehicle_plate == 'EL12345'


def test_admit_without_position_records_no_coordinate(controller, parking_space, driver):
    booking = controller.admit(parking_space, driver, None, 'EL12345')
    assert booking.gps_start_latitude is None
    assert booking.gps_start_longitude is None


def test_space_without_on_demand_support_is_rejected(controller, advance_only_space, driver):
    with pytest.raises(CapabilityError):
        controller.admit(advance_only_space, driver, AT_SPACE, 'EL12345')
    assert not Booking.objects.exists()


def test_inactive_space_is_rejected(controller, parking_space, driver):
    parking_space.is_active = False
    parking_space.save()
    with pytest.raises(CapabilityError):
        controller.prepare(parking_space, AT_SPACE)


def test_geofence_requires_space_location(controller, unlocated_space, driver):
    with pytest.raises(GeofenceUnavailableError):
        controller.admit(unlocated_space, driver, AT_SPACE, 'EL12345', require_geofence=True)


def test_geofence_rejects_driver_out_of_range(controller, parking_space, driver):
    with pytest.raises(OutOfRangeError):
        controller.admit(parking_space, driver, ACROSS_TOWN, 'EL12345', require_geofence=True)
    assert not Booking.objects.exists()


def test_geofence_not_checked_unless_required(controller, parking_space, driver):
    booking = controller.admit(parking_space, driver, ACROSS_TOWN, 'EL12345')
    assert booking.status == Booking.STATUS_STARTED


def test_second_session_on_occupied_space_is_rejected(controller, parking_space, driver, other_driver):
    controller.admit(parking_space, driver, AT_SPACE, 'EL12345')

    with pytest.raises(SpotOccupiedError):
        controller.admit(parking_space, other_driver, AT_SPACE, 'EV99999')
    assert running_sessions(parking_space).count() == 1


def test_space_is_free_again_after_session_completes(controller, parking_space, driver, other_driver):
    first = controller.admit(parking_space, driver, AT_SPACE, 'EL12345')
    Booking.objects.filter(id=first.id).update(status=Booking.STATUS_COMPLETED)

    second = controller.admit(parking_space, other_driver, AT_SPACE, 'EV99999')
    assert second.status == Booking.STATUS_STARTED


def test_losing_the_insert_race_reports_spot_occupied(controller, parking_space, driver, other_driver):
    # Both requests pass the conflict read before either booking exists
    with mock.patch.object(AdmissionController, 'has_conflict', return_value=False):
        controller.admit(parking_space, driver, AT_SPACE, 'EL12345')
        with pytest.raises(SpotOccupiedError):
            controller.admit(parking_space, other_driver, AT_SPACE, 'EV99999')

    assert running_sessions(parking_space).count() == 1


@pytest.mark.django_db(transaction=True)
def test_concurrent_starts_admit_exactly_one(parking_space, driver, other_driver):
    if connection.vendor == 'sqlite':
        pytest.skip('SQLite serializes writers for the whole database')

    barrier = threading.Barrier(2)
    outcomes = []

    def start(user, plate):
        try:
            barrier.wait(timeout=5)
            AdmissionController().admit(parking_space, user, AT_SPACE, plate)
            outcomes.append('started')
        except SpotOccupiedError:
            outcomes.append('occupied')
        finally:
            connection.close()

    threads = [
        threading.Thread(target=start, args=(driver, 'EL12345')),
        threading.Thread(target=start, args=(other_driver, 'EV99999')),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ['occupied', 'started']
    assert running_sessions(parking_space).count() == 1


def test_prepare_reports_decision_without_writing(controller, parking_space):
    decision = controller.prepare(parking_space, AT_SPACE, require_geofence=True)

    assert decision.is_available
    assert decision.gps_verified
    assert decision.can_start
    assert decision.price_per_minute == Decimal('0.5')
    assert not Booking.objects.exists()


def test_prepare_on_occupied_space(controller, parking_space, driver):
    controller.admit(parking_space, driver, AT_SPACE, 'EL12345')

    decision = controller.prepare(parking_space, AT_SPACE)
    assert not decision.is_available
    assert not decision.can_start
    assert Booking.objects.count() == 1


def test_prepare_without_geofence_is_vacuously_verified(controller, parking_space):
    assert controller.prepare(parking_space, ACROSS_TOWN).gps_verified


def test_prepare_reports_unverifiable_geofence(controller, unlocated_space):
    decision = controller.prepare(unlocated_space, AT_SPACE, require_geofence=True)
    assert not decision.gps_verified
    assert decision.price_per_minute == Decimal('0.5')
