# alerts/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from alerts.views import AlertViewSet

router = SimpleRouter()
router.register(r"", AlertViewSet, basename="alerts")

urlpatterns = [
    path("", include(router.urls)),
]
