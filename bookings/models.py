from decimal import Decimal
from django.db import models
from django.db.models import Q
from users.models import CustomUser
from parking.models import ParkingSpace


class Booking(models.Model):
    BOOKING_TYPE_ADVANCE = 'advance'
    BOOKING_TYPE_ON_DEMAND = 'on_demand'
    BOOKING_TYPE_CHOICES = (
        (BOOKING_TYPE_ADVANCE, 'Advance'),
        (BOOKING_TYPE_ON_DEMAND, 'On Demand'),
    )

    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_STARTED = 'started'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_STARTED, 'Started - Vehicle Parked'),
        (STATUS_COMPLETED, 'Completed - Awaiting Payment'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_CANCELLED, 'Cancelled'),
    )

    # Relations
    driver = models.ForeignKey(CustomUser, on_delete=models.PROTECT, related_name='driver_bookings')
    parking_space = models.ForeignKey(ParkingSpace, on_delete=models.PROTECT, related_name='bookings')

    # Booking details
    booking_type = models.CharField(max_length=20, choices=BOOKING_TYPE_CHOICES)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    # Scheduled interval (advance bookings)
    start_datetime = models.DateTimeField(null=True, blank=True, db_index=True)
    end_datetime = models.DateTimeField(null=True, blank=True)

    # Metered interval (on-demand sessions)
    actual_start_time = models.DateTimeField(null=True, blank=True)
    actual_end_time = models.DateTimeField(null=True, blank=True)
    duration_minutes = models.PositiveIntegerField(null=True, blank=True)

    # Vehicle and presence
    vehicle_plate = models.CharField(max_length=20)
    gps_start_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    gps_start_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    # Pricing
    estimated_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['driver', 'status']),
            models.Index(fields=['parking_space', 'status']),
        ]
        constraints = [
            # At most one running on-demand session per parking space
            models.UniqueConstraint(
                fields=['parking_space'],
                condition=Q(booking_type='on_demand', status='started'),
                name='one_active_on_demand_session_per_space',
            ),
        ]

    def __str__(self):
        return f"Booking {self.id} - {self.driver.username} at {self.parking_space.title}"

    @property
    def is_on_demand(self):
        return self.booking_type == self.BOOKING_TYPE_ON_DEMAND

    @property
    def session_start(self):
        return self.actual_start_time or self.start_datetime

    @property
    def session_end(self):
        return self.actual_end_time or self.end_datetime
