# ============================= PARKING/FILTERS.PY =============================
import django_filters
from .models import ParkingSpace


class ParkingSpaceFilter(django_filters.FilterSet):
    """Filtering for parking space listings"""

    on_demand = django_filters.BooleanFilter(
        field_name='supports_on_demand_booking',
        label='Supports On-Demand Parking'
    )
    price_per_minute_max = django_filters.NumberFilter(
        field_name='price_per_minute',
        lookup_expr='lte',
        label='Maximum Price Per Minute'
    )
    price_per_hour_max = django_filters.NumberFilter(
        field_name='price_per_hour',
        lookup_expr='lte',
        label='Maximum Price Per Hour'
    )

    class Meta:
        model = ParkingSpace
        fields = {
            'zone_number': ['exact'],
            'zone_name': ['icontains'],
            'operator': ['icontains'],
        }
