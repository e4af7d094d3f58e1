"""
Write paths that touch more than one row.

Views stay thin; anything that must keep two tables consistent lives here
and runs inside a single transaction.
"""

import json
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core import signing
from django.db import transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone
from django.utils.crypto import get_random_string
from rest_framework.renderers import JSONRenderer

from .models import Campaign, Donation

logger = logging.getLogger(__name__)

CAMPAIGN_CODE_PREFIX = 'TF-'
CAMPAIGN_CODE_CHARS = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789'
CAMPAIGN_CODE_LENGTH = 6
CAMPAIGN_CODE_ATTEMPTS = 10

HOSPITAL_SIGNING_SALT = 'api.hospital-verification'


def generate_campaign_code():
    """Return a random code of the form TF-XXXXXX (uppercase letters and digits)."""
    return CAMPAIGN_CODE_PREFIX + get_random_string(CAMPAIGN_CODE_LENGTH, allowed_chars=CAMPAIGN_CODE_CHARS)


def next_free_campaign_code():
    """
    Draw codes until one is not already taken.

    The unique constraint on Campaign.unique_code still guards the
    window between this check and the insert.
    """
    for _ in range(CAMPAIGN_CODE_ATTEMPTS):
        code = generate_campaign_code()
        if not Campaign.objects.filter(unique_code=code).exists():
            return code
    raise RuntimeError('Could not allocate a free campaign code')


def campaign_group_name(campaign_id):
    return f'campaign_{campaign_id}'


def record_donation(*, campaign, amount, tip_amount=0, donor=None, donor_name='', message=''):
    """
    Insert a donation and add its amount to the campaign total.

    Both writes commit together; the total is incremented in SQL so
    concurrent donations to the same campaign cannot lose updates.
    """
    with transaction.atomic():
        donation = Donation.objects.create(
            campaign=campaign,
            amount=amount,
            tip_amount=tip_amount or 0,
            donor=donor,
            donor_name=donor_name or '',
            message=message or '',
        )
        Campaign.objects.filter(pk=campaign.pk).update(
            collected_amount=F('collected_amount') + amount,
            updated_at=timezone.now(),
        )

    campaign.refresh_from_db(fields=['collected_amount', 'updated_at'])
    logger.info(
        "Donation %s recorded: %s to %s (%s)",
        donation.pk, amount, campaign.unique_code,
        f"donor {donor.pk}" if donor else "anonymous",
    )
    return donation


def broadcast_donation(campaign, donation_data):
    """Push the new campaign total to everyone watching the campaign."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    async_to_sync(channel_layer.group_send)(
        campaign_group_name(campaign.pk),
        {
            'type': 'donation_update',
            'data': {
                'campaign_id': campaign.pk,
                'collected_amount': float(campaign.collected_amount),
                'donation': json.loads(JSONRenderer().render(donation_data)),
            }
        }
    )


def review_ngo_verification(verification, verified):
    """
    Record an admin decision; approval also grants the user NGO status.

    Rejection leaves the user's current flags as they are.
    """
    with transaction.atomic():
        verification.verified = verified
        verification.reviewed_at = timezone.now()
        verification.save(update_fields=['verified', 'reviewed_at'])

        if verified:
            user = verification.user
            user.is_ngo = True
            if user.role == 'donor':
                user.role = 'ngo'
            user.save(update_fields=['is_ngo', 'role', 'updated_at'])

    logger.info(
        "NGO verification %s for user %s %s",
        verification.pk, verification.user_id, 'approved' if verified else 'rejected',
    )
    return verification


def make_hospital_token(campaign_id):
    return signing.dumps({'campaign': int(campaign_id)}, salt=HOSPITAL_SIGNING_SALT)


def read_hospital_token(token, campaign_id):
    """
    Validate a hospital link token for `campaign_id`.

    Raises signing.BadSignature (or its SignatureExpired subclass) when the
    token is forged, expired, or issued for another campaign.
    """
    payload = signing.loads(
        token,
        salt=HOSPITAL_SIGNING_SALT,
        max_age=settings.HOSPITAL_VERIFICATION_MAX_AGE,
    )
    if str(payload.get('campaign')) != str(campaign_id):
        raise signing.BadSignature('Token was issued for a different campaign')
    return payload


def hospital_verification_links(campaign):
    token = make_hospital_token(campaign.pk)
    base = f"{settings.PUBLIC_BASE_URL}/api/verify-hospital?campaign_id={campaign.pk}&token={token}"
    return {
        'approve': f"{base}&decision=yes",
        'decline': f"{base}&decision=no",
    }


def apply_hospital_decision(campaign, decision):
    campaign.verified = decision == 'yes'
    campaign.save(update_fields=['verified', 'updated_at'])
    logger.info("Hospital %s campaign %s", 'verified' if campaign.verified else 'declined', campaign.unique_code)
    return campaign


def platform_stats():
    totals = Campaign.objects.aggregate(
        total_raised=Sum('collected_amount'),
        campaigns_funded=Count('id', filter=Q(verified=True)),
    )
    # Key names are the ones the landing page already reads.
    return {
        'totalRaised': totals['total_raised'] or 0,
        'campaignsFunded': totals['campaigns_funded'],
        'livesImpacted': Donation.objects.count(),
    }