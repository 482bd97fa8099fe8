# ==================== PARKING/ADMIN.PY ====================
from django.contrib import admin
from .models import ParkingSpace


@admin.register(ParkingSpace)
class ParkingSpaceAdmin(admin.ModelAdmin):
    list_display = ['title', 'owner', 'zone_number', 'supports_on_demand_booking', 'is_active',
                    'price_per_minute', 'price_per_hour', 'created_at']
    list_filter = ['supports_on_demand_booking', 'is_active', 'created_at']
    search_fields = ['title', 'address', 'zone_number', 'zone_name', 'owner__username']
    readonly_fields = ['created_at', 'updated_at']
    fieldsets = (
        ('Basic Info', {'fields': ('owner', 'title', 'address', 'operator')}),
        ('Zone', {'fields': ('zone_number', 'zone_name')}),
        ('Location', {'fields': ('latitude', 'longitude', 'gps_tolerance_meters')}),
        ('Pricing', {'fields': ('price_per_minute', 'price_per_hour')}),
        ('Availability', {'fields': ('supports_on_demand_booking', 'is_active')}),
        ('Timestamps', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )
