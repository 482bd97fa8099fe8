# ==================== PARKING/MODELS.PY ====================
from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from users.models import CustomUser


class ParkingSpace(models.Model):
    """A privately owned parking space that can be rented out"""

    owner = models.ForeignKey(CustomUser, on_delete=models.CASCADE, related_name='owned_parking_spaces')

    # Location info
    title = models.CharField(max_length=200)
    address = models.CharField(max_length=500)
    zone_number = models.CharField(max_length=20, blank=True, db_index=True)
    zone_name = models.CharField(max_length=200, blank=True)
    operator = models.CharField(max_length=200, blank=True)
    latitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True,
        validators=[MinValueValidator(-90), MaxValueValidator(90)]
    )
    longitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True,
        validators=[MinValueValidator(-180), MaxValueValidator(180)]
    )
    gps_tolerance_meters = models.PositiveIntegerField(default=50)

    # Pricing
    price_per_minute = models.DecimalField(max_digits=10, decimal_places=4, null=True, blank=True)
    price_per_hour = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    # Capabilities
    supports_on_demand_booking = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['supports_on_demand_booking', 'is_active']),
            models.Index(fields=['created_at']),
        ]

    def __str__(self):
        return f"{self.title} - {self.address}"

    @property
    def has_location(self):
        return self.latitude is not None and self.longitude is not None

    @property
    def coordinate(self):
        if not self.has_location:
            return None
        return (float(self.latitude), float(self.longitude))
