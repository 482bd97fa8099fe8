from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from parking.models import ParkingSpace
from users.models import CustomUser
from utils.ratelimit import reset_rate_limiter


@pytest.fixture(autouse=True)
def fresh_rate_limiter():
    reset_rate_limiter()
    yield
    reset_rate_limiter()


@pytest.fixture
def owner(db):
    return CustomUser.objects.create_user(username='owner', password='pass1234', user_type='owner')


@pytest.fixture
def driver(db):
    return CustomUser.objects.create_user(username='driver', password='pass1234', user_type='driver')


@pytest.fixture
def other_driver(db):
    return CustomUser.objects.create_user(username='other', password='pass1234', user_type='driver')


@pytest.fixture
def parking_space(owner):
    return ParkingSpace.objects.create(
        owner=owner,
        title='Grünerløkka backyard',
        address='Thorvald Meyers gate 1, Oslo',
        zone_number='3012',
        zone_name='Grünerløkka',
        operator='Private',
        latitude=Decimal('59.913900'),
        longitude=Decimal('10.752200'),
        gps_tolerance_meters=50,
        price_per_minute=Decimal('0.5000'),
        supports_on_demand_booking=True,
    )


@pytest.fixture
def advance_only_space(owner):
    return ParkingSpace.objects.create(
        owner=owner,
        title='Reserved garage',
        address='Storgata 10, Oslo',
        price_per_hour=Decimal('30.00'),
        supports_on_demand_booking=False,
    )


@pytest.fixture
def unlocated_space(owner):
    return ParkingSpace.objects.create(
        owner=owner,
        title='Driveway',
        address='Kirkeveien 5, Oslo',
        price_per_hour=Decimal('30.00'),
        supports_on_demand_booking=True,
    )


@pytest.fixture
def api_client(driver):
    client = APIClient()
    client.force_authenticate(user=driver)
    return client
