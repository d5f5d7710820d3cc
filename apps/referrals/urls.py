from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import ReferralViewSet

router = SimpleRouter()
router.register(r'', ReferralViewSet, basename='referrals')

urlpatterns = [
    path('', include(router.urls)),
]
