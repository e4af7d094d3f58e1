import logging

from rest_framework import mixins, viewsets, status
from rest_framework.exceptions import NotFound
from rest_framework.decorators import action, api_view, authentication_classes, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.tokens import RefreshToken
from django.conf import settings
from django.contrib.auth import authenticate
from django.core import signing
from django.db import IntegrityError, transaction
from django.http import Http404, HttpResponseBadRequest
from django.shortcuts import render
from django.views.decorators.http import require_GET

from . import services
from .authentication import OptionalJWTAuthentication
from .models import Campaign, Donation, Review, Ticket, NgoVerification
from .permissions import IsPlatformAdmin, IsCampaignOwnerOrAdmin
from .serializers import (
    UserSerializer, UserProfileSerializer, CampaignSerializer, DonationSerializer,
    ReviewSerializer, TicketSerializer, AdminTicketSerializer, NgoVerificationSerializer,
    NgoDecisionSerializer, HospitalVerificationRequestSerializer
)
from .tasks import send_hospital_verification_email

logger = logging.getLogger(__name__)

LATEST_REVIEWS = 10


def _token_pair(user):
    refresh = RefreshToken.for_user(user)
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


def _queue_hospital_email(campaign_id, hospital_email=None):
    # Only hand the id to the worker once the row is committed. A mail or
    # broker failure is logged and must not fail the already created campaign.
    transaction.on_commit(
        lambda: send_hospital_verification_email.delay(campaign_id, hospital_email),
        robust=True,
    )


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Register a new user"""
    serializer = UserSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    logger.info("Registered user %s", user.pk)

    return Response({
        'user': UserProfileSerializer(user).data,
        'tokens': _token_pair(user),
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Login user and return JWT tokens"""
    email = request.data.get('email')
    password = request.data.get('password')

    if not email or not password:
        return Response(
            {'error': 'Please provide both email and password'},
            status=status.HTTP_400_BAD_REQUEST
        )

    user = authenticate(request, username=email, password=password)

    if user is None:
        return Response(
            {'error': 'Invalid credentials'},
            status=status.HTTP_401_UNAUTHORIZED
        )

    return Response({
        'user': UserProfileSerializer(user).data,
        'tokens': _token_pair(user),
    })


@api_view(['GET'])
@authentication_classes([OptionalJWTAuthentication])
@permission_classes([AllowAny])
def session(request):
    """Current session, or null when the bearer token is missing or invalid"""
    if not request.user.is_authenticated:
        return Response(None)
    return Response({'user': UserProfileSerializer(request.user).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_current_user(request):
    """Get current authenticated user"""
    return Response(UserProfileSerializer(request.user).data)


class CampaignViewSet(mixins.CreateModelMixin,
                      mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      viewsets.GenericViewSet):
    """
    Campaigns are public to read; creating one requires an account.

    GET  /api/campaigns                 - all campaigns, newest first
    POST /api/campaigns                 - create (code assigned by the server)
    GET  /api/campaigns/my              - campaigns created by the caller
    GET  /api/campaigns/<id>            - one campaign
    GET  /api/campaigns/<id>/donations  - donations to one campaign
    """
    queryset = Campaign.objects.select_related('created_by').all()
    serializer_class = CampaignSerializer
    authentication_classes = [OptionalJWTAuthentication]

    def get_permissions(self):
        if self.action in ['create', 'my']:
            return [IsAuthenticated()]
        return [AllowAny()]

    def get_object(self):
        try:
            return super().get_object()
        except Http404:
            raise NotFound('Campaign not found')

    def perform_create(self, serializer):
        campaign = serializer.save(
            created_by=self.request.user,
            unique_code=services.next_free_campaign_code(),
        )
        logger.info("Campaign %s created by user %s", campaign.unique_code, self.request.user.pk)

        if campaign.needs_hospital_verification:
            _queue_hospital_email(campaign.pk)

    @action(detail=False, methods=['get'])
    def my(self, request):
        """Campaigns created by the authenticated user"""
        campaigns = self.get_queryset().filter(created_by=request.user)
        serializer = self.get_serializer(campaigns, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['get'])
    def donations(self, request, pk=None):
        """Donations made to this campaign, newest first"""
        campaign = self.get_object()
        donations = Donation.objects.select_related('campaign').filter(campaign=campaign)
        serializer = DonationSerializer(donations, many=True)
        return Response(serializer.data)


class DonationViewSet(mixins.CreateModelMixin,
                      mixins.ListModelMixin,
                      viewsets.GenericViewSet):
    """
    Donations can be made anonymously; a valid bearer token links the donor.

    GET  /api/donations       - recent donations (?campaign=<id> to filter)
    POST /api/donations       - record a donation and update the campaign total
    GET  /api/donations/my    - donations made by the caller
    """
    queryset = Donation.objects.select_related('campaign').all()
    serializer_class = DonationSerializer
    authentication_classes = [OptionalJWTAuthentication]

    def get_permissions(self):
        if self.action == 'my':
            return [IsAuthenticated()]
        return [AllowAny()]

    def get_queryset(self):
        queryset = Donation.objects.select_related('campaign').all()

        campaign_id = self.request.query_params.get('campaign', None)
        if campaign_id and campaign_id.isdigit():
            queryset = queryset.filter(campaign_id=campaign_id)

        return queryset

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        donor = request.user if request.user.is_authenticated else None
        donor_name = data.get('donor_name') or (donor.display_name if donor else '')

        donation = services.record_donation(
            campaign=data['campaign'],
            amount=data['amount'],
            tip_amount=data.get('tip_amount', 0),
            donor=donor,
            donor_name=donor_name,
            message=data.get('message', ''),
        )

        payload = self.get_serializer(donation).data
        services.broadcast_donation(donation.campaign, payload)
        return Response(payload, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def my(self, request):
        """Donations made by the authenticated user"""
        donations = self.get_queryset().filter(donor=request.user)
        serializer = self.get_serializer(donations, many=True)
        return Response(serializer.data)


class ReviewViewSet(mixins.CreateModelMixin,
                    mixins.ListModelMixin,
                    viewsets.GenericViewSet):
    """Public reviews; only the latest few are listed"""
    serializer_class = ReviewSerializer
    authentication_classes = [OptionalJWTAuthentication]
    permission_classes = [AllowAny]

    def get_queryset(self):
        return Review.objects.all()[:LATEST_REVIEWS]

    def perform_create(self, serializer):
        user = self.request.user if self.request.user.is_authenticated else None
        serializer.save(user=user)


class TicketViewSet(mixins.CreateModelMixin,
                    mixins.ListModelMixin,
                    viewsets.GenericViewSet):
    """Anyone can open a ticket; signed-in users can list their own"""
    serializer_class = TicketSerializer
    authentication_classes = [OptionalJWTAuthentication]

    def get_permissions(self):
        if self.action == 'create':
            return [AllowAny()]
        return [IsAuthenticated()]

    def get_queryset(self):
        return Ticket.objects.filter(user=self.request.user)

    def perform_create(self, serializer):
        user = self.request.user if self.request.user.is_authenticated else None
        ticket = serializer.save(user=user)
        logger.info("Ticket %s opened: %s", ticket.pk, ticket.subject)


class AdminTicketViewSet(mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         mixins.UpdateModelMixin,
                         viewsets.GenericViewSet):
    """Support desk view of every ticket"""
    queryset = Ticket.objects.select_related('user').all()
    serializer_class = AdminTicketSerializer
    permission_classes = [IsPlatformAdmin]
    http_method_names = ['get', 'patch', 'head', 'options']

    def get_queryset(self):
        queryset = Ticket.objects.select_related('user').all()

        status_param = self.request.query_params.get('status', None)
        if status_param:
            queryset = queryset.filter(status=status_param)

        return queryset


class NgoVerificationViewSet(mixins.CreateModelMixin, viewsets.GenericViewSet):
    """A user's own NGO verification request"""
    queryset = NgoVerification.objects.all()
    serializer_class = NgoVerificationSerializer
    permission_classes = [IsAuthenticated]

    def create(self, request, *args, **kwargs):
        if NgoVerification.objects.filter(user=request.user).exists():
            return self._already_requested()
        try:
            with transaction.atomic():
                return super().create(request, *args, **kwargs)
        except IntegrityError:
            # A concurrent request for the same account won the insert.
            return self._already_requested()

    def _already_requested(self):
        return Response(
            {'error': 'A verification request already exists for this account'},
            status=status.HTTP_400_BAD_REQUEST
        )

    def perform_create(self, serializer):
        verification = serializer.save(user=self.request.user)
        logger.info("NGO verification %s requested by user %s", verification.pk, self.request.user.pk)

    @action(detail=False, methods=['get'])
    def my(self, request):
        """The caller's verification request, or null if none was submitted"""
        verification = NgoVerification.objects.filter(user=request.user).first()
        if verification is None:
            return Response(None)
        return Response(self.get_serializer(verification).data)


class AdminNgoVerificationViewSet(mixins.ListModelMixin,
                                  mixins.RetrieveModelMixin,
                                  viewsets.GenericViewSet):
    """Admin review of NGO verification requests"""
    queryset = NgoVerification.objects.select_related('user').all()
    serializer_class = NgoVerificationSerializer
    permission_classes = [IsPlatformAdmin]

    def partial_update(self, request, pk=None):
        """Approve or reject a request; approval grants the user NGO status"""
        verification = self.get_object()
        decision = NgoDecisionSerializer(data=request.data)
        decision.is_valid(raise_exception=True)

        services.review_ngo_verification(verification, decision.validated_data['verified'])
        return Response(self.get_serializer(verification).data)


@api_view(['GET'])
@authentication_classes([OptionalJWTAuthentication])
@permission_classes([AllowAny])
def stats(request):
    """Landing page totals"""
    return Response(services.platform_stats())


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def send_hospital_verification(request):
    """Email the treating hospital a link to confirm or decline a medical campaign"""
    serializer = HospitalVerificationRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        campaign = Campaign.objects.get(pk=serializer.validated_data['campaign_id'])
    except Campaign.DoesNotExist:
        return Response(
            {'error': 'Campaign not found'},
            status=status.HTTP_404_NOT_FOUND
        )

    if not IsCampaignOwnerOrAdmin().has_object_permission(request, None, campaign):
        return Response(
            {'error': 'Only the campaign owner can request hospital verification'},
            status=status.HTTP_403_FORBIDDEN
        )

    hospital_email = serializer.validated_data.get('hospital_email') or campaign.hospital_email
    if not hospital_email:
        return Response(
            {'error': 'hospital_email is required'},
            status=status.HTTP_400_BAD_REQUEST
        )

    send_hospital_verification_email.delay(campaign.pk, hospital_email)
    logger.info("Hospital verification for %s queued to %s", campaign.unique_code, hospital_email)

    return Response({
        'success': True,
        'message': f'Verification email sent to {hospital_email}',
    })


@require_GET
def verify_hospital(request):
    """Landing page for the links in the hospital verification email"""
    campaign_id = request.GET.get('campaign_id')
    decision = request.GET.get('decision')
    token = request.GET.get('token')

    if not campaign_id or decision not in ('yes', 'no') or not token:
        return HttpResponseBadRequest('Invalid request')

    context = {'home_url': settings.PUBLIC_BASE_URL}

    try:
        services.read_hospital_token(token, campaign_id)
    except signing.SignatureExpired:
        context['error'] = 'This verification link has expired.'
        return render(request, 'api/hospital_verification.html', context, status=400)
    except signing.BadSignature:
        context['error'] = 'This verification link is not valid.'
        return render(request, 'api/hospital_verification.html', context, status=400)

    try:
        campaign = Campaign.objects.get(pk=campaign_id)
    except (Campaign.DoesNotExist, ValueError):
        context['error'] = 'This campaign no longer exists.'
        return render(request, 'api/hospital_verification.html', context, status=404)

    services.apply_hospital_decision(campaign, decision)
    context.update({'campaign': campaign, 'verified': campaign.verified})
    return render(request, 'api/hospital_verification.html', context)
