# ==================== PARKING_BACKEND/URLS.PY ====================
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView, TokenObtainPairView

from parking.views import ParkingSpaceViewSet
from bookings.views import BookingViewSet
from payments.views import PaymentViewSet
from payments.webhooks import razorpay_webhook

# Create router and register viewsets
router = DefaultRouter()
router.register(r'parking-spaces', ParkingSpaceViewSet, basename='parking-space')
router.register(r'bookings', BookingViewSet, basename='booking')

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API versioning
    path('api/v1/', include([
        # Authentication endpoints
        path('auth/', include([
            path('token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
            path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
        ])),

        # API routes
        path('', include(router.urls)),

        # Payments
        path('payments/', include([
            path('status/', PaymentViewSet.as_view({'get': 'status'}), name='payment_status'),
            path('create-order/', PaymentViewSet.as_view({'post': 'create_order'}), name='payment_create_order'),
        ])),
    ])),

    path('webhooks/', include([
        path('razorpay/payment/', razorpay_webhook, name='razorpay_webhook'),
    ])),
]

if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
