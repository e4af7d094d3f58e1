import re

from django.core import mail
from django.test import override_settings
from rest_framework import status

from api.models import Campaign
from api.services import make_hospital_token

from .base import APITestBase

LINK_PATTERN = re.compile(r'(https?://\S+/api/verify-hospital\?\S+)')


class SendHospitalVerificationTest(APITestBase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user(email='owner@example.com')
        self.campaign = self.make_campaign(
            owner=self.owner,
            cause='Medical',
            hospital_name='City Hospital',
            hospital_email='records@cityhospital.org',
        )

    def send(self, **data):
        data.setdefault('campaign_id', self.campaign.id)
        return self.client.post('/api/send-hospital-verification', data, format='json')

    def test_requires_authentication(self):
        response = self.send()
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_owner_sends_signed_links(self):
        self.authenticate(self.owner)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.send()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertIn('records@cityhospital.org', response.data['message'])

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ['records@cityhospital.org'])
        self.assertIn(self.campaign.unique_code, message.subject)

        links = LINK_PATTERN.findall(message.body)
        self.assertEqual(len(links), 2)
        self.assertTrue(links[0].endswith('decision=yes'))
        self.assertTrue(links[1].endswith('decision=no'))
        self.assertIn('token=', links[0])

    def test_explicit_hospital_email_overrides_campaign(self):
        self.authenticate(self.owner)
        with self.captureOnCommitCallbacks(execute=True):
            self.send(hospital_email='desk@otherhospital.org')

        self.assertEqual(mail.outbox[0].to, ['desk@otherhospital.org'])

    def test_accepts_camel_case_payload(self):
        self.authenticate(self.owner)
        response = self.client.post('/api/send-hospital-verification', {
            'campaignId': self.campaign.id,
            'hospitalEmail': 'desk@otherhospital.org',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(mail.outbox[0].to, ['desk@otherhospital.org'])

    def test_admin_may_send_for_any_campaign(self):
        self.authenticate(self.make_admin())
        with self.captureOnCommitCallbacks(execute=True):
            response = self.send()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)

    def test_other_users_are_forbidden(self):
        self.authenticate(self.make_user(email='stranger@example.com'))
        response = self.send()

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(len(mail.outbox), 0)

    def test_missing_hospital_email(self):
        self.campaign.hospital_email = ''
        self.campaign.save()
        self.authenticate(self.owner)

        response = self.send()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'error': 'hospital_email is required'})

    def test_unknown_campaign(self):
        self.authenticate(self.owner)
        response = self.send(campaign_id=99999)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Campaign not found'})

    def test_campaign_id_is_required(self):
        self.authenticate(self.owner)
        response = self.client.post('/api/send-hospital-verification', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('campaign_id', response.data['fields'])


class VerifyHospitalTest(APITestBase):

    def setUp(self):
        super().setUp()
        self.campaign = self.make_campaign(cause='Medical', hospital_email='records@cityhospital.org')

    def visit(self, decision, token=None, campaign_id=None):
        campaign_id = campaign_id or self.campaign.id
        return self.client.get('/api/verify-hospital', {
            'campaign_id': campaign_id,
            'decision': decision,
            'token': token if token is not None else make_hospital_token(campaign_id),
        })

    def test_approve(self):
        response = self.visit('yes')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'text/html; charset=utf-8')
        self.assertContains(response, 'Verified')
        self.assertContains(response, self.campaign.unique_code)
        self.campaign.refresh_from_db()
        self.assertTrue(self.campaign.verified)

    def test_decline(self):
        Campaign.objects.filter(pk=self.campaign.pk).update(verified=True)

        response = self.visit('no')

        self.assertContains(response, 'Declined')
        self.campaign.refresh_from_db()
        self.assertFalse(self.campaign.verified)

    def test_forged_token(self):
        response = self.visit('yes', token='forged')

        self.assertEqual(response.status_code, 400)
        self.assertContains(response, 'not valid', status_code=400)
        self.campaign.refresh_from_db()
        self.assertFalse(self.campaign.verified)

    def test_token_for_another_campaign(self):
        other = self.make_campaign(code='TF-OTHER1')

        response = self.visit('yes', token=make_hospital_token(other.id))

        self.assertEqual(response.status_code, 400)
        self.campaign.refresh_from_db()
        self.assertFalse(self.campaign.verified)

    @override_settings(HOSPITAL_VERIFICATION_MAX_AGE=-1)
    def test_expired_token(self):
        response = self.visit('yes')

        self.assertContains(response, 'expired', status_code=400)
        self.campaign.refresh_from_db()
        self.assertFalse(self.campaign.verified)

    def test_missing_parameters(self):
        response = self.client.get('/api/verify-hospital', {'campaign_id': self.campaign.id})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b'Invalid request')

    def test_unknown_decision(self):
        response = self.visit('maybe')
        self.assertEqual(response.status_code, 400)

    def test_campaign_gone(self):
        response = self.visit('yes', campaign_id=99999)

        self.assertContains(response, 'no longer exists', status_code=404)
