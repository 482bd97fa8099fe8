# ==================== BOOKINGS/ADMIN.PY ====================
from django.contrib import admin
from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'driver', 'parking_space', 'status', 'booking_type', 'actual_start_time',
                    'actual_end_time', 'total_price', 'created_at']
    list_filter = ['status', 'booking_type', 'created_at']
    search_fields = ['driver__username', 'parking_space__title', 'parking_space__zone_number', 'vehicle_plate']
    readonly_fields = ['created_at', 'updated_at']
