# ==================== PAYMENTS/ADMIN.PY ====================
from django.contrib import admin
from django.utils.html import format_html
from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'booking_link', 'driver_name', 'amount',
        'currency', 'status_badge', 'created_at'
    ]
    list_filter = ['status', 'currency', 'created_at']
    search_fields = ['booking__id', 'booking__driver__username', 'razorpay_order_id', 'razorpay_payment_id']
    readonly_fields = ['created_at', 'updated_at', 'completed_at', 'razorpay_order_id',
                       'razorpay_payment_id', 'gateway_response']

    def booking_link(self, obj):
        return f"Booking #{obj.booking_id}"
    booking_link.short_description = 'Booking'

    def driver_name(self, obj):
        return obj.booking.driver.get_full_name()
    driver_name.short_description = 'Driver'

    def status_badge(self, obj):
        colors = {
            'pending': 'orange',
            'completed': 'green',
            'failed': 'red',
        }
        color = colors.get(obj.status, 'gray')
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
            color,
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    # Payments are written by the gateway flow only
    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
