from unittest import mock

from rest_framework import status

from api.models import NgoVerification
from api.services import review_ngo_verification

from .base import APITestBase

REQUEST = {
    'organization_name': 'Helping Hands Trust',
    'registration_number': 'REG-2041',
    'contact_email': 'office@helpinghands.org',
    'address': '12 Park Street, Kolkata',
}


class NgoVerificationRequestTest(APITestBase):

    def setUp(self):
        super().setUp()
        self.user = self.make_user(email='ngo@example.com')

    def test_submit_requires_authentication(self):
        response = self.client.post('/api/ngo-verifications', REQUEST, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_my_is_null_before_submitting(self):
        self.authenticate(self.user)
        response = self.client.get('/api/ngo-verifications/my')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data)

    def test_submit_and_read_back(self):
        self.authenticate(self.user)
        response = self.client.post('/api/ngo-verifications', dict(REQUEST, verified=True), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['verified'])
        self.assertEqual(response.data['user'], self.user.id)

        response = self.client.get('/api/ngo-verifications/my')
        self.assertEqual(response.data['organization_name'], 'Helping Hands Trust')
        self.assertEqual(response.data['user_email'], 'ngo@example.com')

    def test_duplicate_request_rejected(self):
        self.authenticate(self.user)
        self.client.post('/api/ngo-verifications', REQUEST, format='json')
        response = self.client.post('/api/ngo-verifications', REQUEST, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.assertEqual(NgoVerification.objects.count(), 1)

    def test_concurrent_duplicate_is_rejected(self):
        NgoVerification.objects.create(user=self.user, **REQUEST)
        self.authenticate(self.user)

        # The up-front check loses the race; the unique constraint still holds.
        not_found = mock.Mock()
        not_found.exists.return_value = False
        with mock.patch.object(NgoVerification.objects, 'filter', return_value=not_found):
            response = self.client.post('/api/ngo-verifications', REQUEST, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'error': 'A verification request already exists for this account'})
        self.assertEqual(NgoVerification.objects.count(), 1)


class NgoVerificationReviewTest(APITestBase):

    def setUp(self):
        super().setUp()
        self.user = self.make_user(email='ngo@example.com')
        self.verification = NgoVerification.objects.create(user=self.user, **REQUEST)
        self.url = f'/api/admin/ngo-verifications/{self.verification.id}'

    def test_requires_authentication(self):
        response = self.client.get('/api/admin/ngo-verifications')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_forbidden_for_regular_users(self):
        self.authenticate(self.user)
        response = self.client.patch(self.url, {'verified': True}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.user.refresh_from_db()
        self.assertFalse(self.user.is_ngo)

    def test_admin_lists_requests(self):
        self.authenticate(self.make_admin())
        response = self.client.get('/api/admin/ngo-verifications')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([v['id'] for v in response.data], [self.verification.id])

    def test_approval_grants_ngo_status(self):
        self.authenticate(self.make_admin())
        response = self.client.patch(self.url, {'verified': True}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['verified'])
        self.assertIsNotNone(response.data['reviewed_at'])

        self.user.refresh_from_db()
        self.assertTrue(self.user.is_ngo)
        self.assertEqual(self.user.role, 'ngo')

    def test_rejection_leaves_user_unchanged(self):
        self.authenticate(self.make_admin())
        response = self.client.patch(self.url, {'verified': False}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.verification.refresh_from_db()
        self.assertFalse(self.verification.verified)
        self.assertIsNotNone(self.verification.reviewed_at)

        self.user.refresh_from_db()
        self.assertFalse(self.user.is_ngo)
        self.assertEqual(self.user.role, 'donor')

    def test_decision_is_required(self):
        self.authenticate(self.make_admin())
        response = self.client.patch(self.url, {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('verified', response.data['fields'])

    def test_unknown_request(self):
        self.authenticate(self.make_admin())
        response = self.client.patch('/api/admin/ngo-verifications/9999', {'verified': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_approval_keeps_admin_role(self):
        admin = self.make_admin(email='boss@example.com')
        verification = NgoVerification.objects.create(user=admin, organization_name='Ops NGO', registration_number='R-1')

        review_ngo_verification(verification, True)

        admin.refresh_from_db()
        self.assertTrue(admin.is_ngo)
        self.assertEqual(admin.role, 'admin')
