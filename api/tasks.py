import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

from .models import Campaign
from .services import hospital_verification_links

logger = logging.getLogger(__name__)


@shared_task
def send_hospital_verification_email(campaign_id, hospital_email=None):
    """Email the hospital a pair of signed approve/decline links for a campaign"""
    try:
        campaign = Campaign.objects.get(pk=campaign_id)
    except Campaign.DoesNotExist:
        logger.warning("Hospital verification skipped: campaign %s no longer exists", campaign_id)
        return False

    recipient = hospital_email or campaign.hospital_email
    if not recipient:
        logger.warning("Hospital verification skipped: campaign %s has no hospital email", campaign.unique_code)
        return False

    context = {
        'campaign': campaign,
        'links': hospital_verification_links(campaign),
    }
    send_mail(
        subject=f"Please verify TrueFund campaign {campaign.unique_code}",
        message=render_to_string('api/hospital_verification_email.txt', context),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[recipient],
    )
    logger.info("Hospital verification email for %s sent to %s", campaign.unique_code, recipient)
    return True
