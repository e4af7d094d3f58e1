from django.urls import path, re_path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView
from .views import (
    register, login, session, get_current_user, stats,
    send_hospital_verification, verify_hospital,
    CampaignViewSet, DonationViewSet, ReviewViewSet, TicketViewSet,
    AdminTicketViewSet, NgoVerificationViewSet, AdminNgoVerificationViewSet,
)


class OptionalSlashRouter(DefaultRouter):
    """Router whose routes resolve with or without the trailing slash"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # DRF only accepts a boolean here, so the pattern is set afterwards.
        self.trailing_slash = '/?'


router = OptionalSlashRouter()
router.register(r'campaigns', CampaignViewSet, basename='campaign')
router.register(r'donations', DonationViewSet, basename='donation')
router.register(r'reviews', ReviewViewSet, basename='review')
router.register(r'tickets', TicketViewSet, basename='ticket')
router.register(r'ngo-verifications', NgoVerificationViewSet, basename='ngo-verification')
router.register(r'admin/tickets', AdminTicketViewSet, basename='admin-ticket')
router.register(r'admin/ngo-verifications', AdminNgoVerificationViewSet, basename='admin-ngo-verification')

urlpatterns = [
    re_path(r'^auth/register/?$', register, name='register'),
    re_path(r'^auth/login/?$', login, name='login'),
    re_path(r'^auth/refresh/?$', TokenRefreshView.as_view(), name='token-refresh'),
    re_path(r'^auth/session/?$', session, name='session'),
    re_path(r'^auth/user/?$', get_current_user, name='current-user'),
    re_path(r'^stats/?$', stats, name='stats'),
    re_path(r'^send-hospital-verification/?$', send_hospital_verification, name='send-hospital-verification'),
    re_path(r'^verify-hospital/?$', verify_hospital, name='verify-hospital'),
    path('', include(router.urls)),
]
