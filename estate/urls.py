from django.conf import settings
from django.conf.urls.static import static
from django.urls import include, path

from accounts.views import AdminAccountViewSet, AgentAccountViewSet, UserAccountViewSet
from analytics.views import AnalyticsViewSet
from apartments.views import ApartmentViewSet
from bookings.views import BookingViewSet
from favorites.views import FavoriteViewSet
from inspections.views import InspectionViewSet
from notifications.views import NotificationViewSet
from payments.views import PaymentViewSet
from reports.views import ReportViewSet
from reviews.views import ReviewViewSet
from upload.views import upload_image
from utils.routing import EstateRouter


router = EstateRouter()
router.register(r'users', UserAccountViewSet, basename='user')
router.register(r'agents', AgentAccountViewSet, basename='agent')
router.register(r'admin', AdminAccountViewSet, basename='admin')
router.register(r'apartments', ApartmentViewSet, basename='apartment')
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'payments', PaymentViewSet, basename='payment')
router.register(r'inspections', InspectionViewSet, basename='inspection')
router.register(r'reviews', ReviewViewSet, basename='review')
router.register(r'reports', ReportViewSet, basename='report')
router.register(r'favorites', FavoriteViewSet, basename='favorite')
router.register(r'notifications', NotificationViewSet, basename='notification')
router.register(r'analytics', AnalyticsViewSet, basename='analytics')

urlpatterns = [
    path('api/health/', include('health.urls')),
    path('api/upload/', upload_image, name='upload-image'),
    path('api/', include(router.urls)),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
