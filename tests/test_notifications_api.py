"""
Tests for the notification endpoints.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from marketplace.models import MarketplaceProduct, Notification
from marketplace.notifications import notify_sambatan_event
from marketplace.services import create_sambatan, join_sambatan

User = get_user_model()


class NotificationAPITestCase(TestCase):
    """Test suite for listing and reading notifications."""

    def setUp(self):
        self.client = APIClient()

        self.seller = User.objects.create_user(
            username='seller',
            email='seller@example.com',
            password='testpass123'
        )
        self.initiator = User.objects.create_user(
            username='initiator',
            email='initiator@example.com',
            password='testpass123'
        )
        self.buyer = User.objects.create_user(
            username='buyer',
            email='buyer@example.com',
            password='testpass123',
            full_name='Sari Pembeli'
        )
        self.product = MarketplaceProduct.objects.create(
            seller=self.seller,
            name='Bunga Tanjung 30ml',
            price=Decimal('210000.00'),
            moderation_status='approved',
        )

        # One new_participant for the initiator, quota_reached for both
        self.sambatan = create_sambatan(self.initiator, self.product, 3)
        join_sambatan(self.sambatan.id, self.buyer, 2)

        self.initiator_token = str(RefreshToken.for_user(self.initiator).access_token)
        self.buyer_token = str(RefreshToken.for_user(self.buyer).access_token)

    def _authenticate(self, token):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    def test_list_requires_authentication(self):
        response = self.client.get('/api/notifications/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_list_returns_own_notifications_newest_first(self):
        self._authenticate(self.initiator_token)

        response = self.client.get('/api/notifications/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        types = [item['type'] for item in response.data['results']]
        self.assertEqual(types, ['new_participant', 'quota_reached'])
        self.assertEqual(response.data['results'][0]['metadata']['sambatan_id'], self.sambatan.id)

    def test_unread_only_filter_and_count(self):
        Notification.objects.filter(user=self.initiator, type='new_participant').update(is_read=True)
        self._authenticate(self.initiator_token)

        listing = self.client.get('/api/notifications/', {'unread_only': 'true'})
        count = self.client.get('/api/notifications/unread-count/')

        self.assertEqual([item['type'] for item in listing.data['results']], ['quota_reached'])
        self.assertEqual(count.data, {'unread_count': 1})

    def test_mark_one_as_read(self):
        notification = Notification.objects.get(user=self.buyer, type='quota_reached')
        self._authenticate(self.buyer_token)

        response = self.client.put(f'/api/notifications/{notification.id}/read/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_read'])
        notification.refresh_from_db()
        self.assertTrue(notification.is_read)
        self.assertIsNotNone(notification.read_at)

    def test_cannot_mark_someone_elses_notification(self):
        notification = Notification.objects.get(user=self.initiator, type='new_participant')
        self._authenticate(self.buyer_token)

        response = self.client.put(f'/api/notifications/{notification.id}/read/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        notification.refresh_from_db()
        self.assertFalse(notification.is_read)

    def test_mark_unknown_notification_returns_404(self):
        self._authenticate(self.buyer_token)

        response = self.client.put('/api/notifications/999999/read/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_all_as_read(self):
        self._authenticate(self.initiator_token)

        response = self.client.put('/api/notifications/read-all/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated'], 2)
        self.assertFalse(Notification.objects.filter(user=self.initiator, is_read=False).exists())
        # Other users' notifications are untouched
        self.assertTrue(Notification.objects.filter(user=self.buyer, is_read=False).exists())


class NotificationContentTestCase(TestCase):
    """Test suite for notification recipients and payloads."""

    def setUp(self):
        self.seller = User.objects.create_user(
            username='seller',
            email='seller@example.com',
            password='testpass123'
        )
        self.initiator = User.objects.create_user(
            username='initiator',
            email='initiator@example.com',
            password='testpass123'
        )
        self.product = MarketplaceProduct.objects.create(
            seller=self.seller,
            name='Teh Hijau 10ml',
            price=Decimal('55000.00'),
            moderation_status='approved',
        )
        self.sambatan = create_sambatan(self.initiator, self.product, 4)

    def test_metadata_carries_campaign_ids(self):
        notifications = notify_sambatan_event(self.sambatan, 'sambatan_cancelled', extra={'reason': 'Test'})

        self.assertEqual(len(notifications), 1)
        metadata = notifications[0].metadata
        self.assertEqual(metadata['sambatan_id'], self.sambatan.id)
        self.assertEqual(metadata['product_id'], self.product.id)
        self.assertEqual(metadata['product_name'], 'Teh Hijau 10ml')
        self.assertEqual(metadata['target_quantity'], 4)
        self.assertEqual(metadata['current_quantity'], 1)
        self.assertEqual(metadata['reason'], 'Test')

    def test_participant_events_require_participant(self):
        with self.assertRaises(ValueError):
            notify_sambatan_event(self.sambatan, 'payment_verified')

    def test_unknown_event_type_is_rejected(self):
        with self.assertRaises(ValueError):
            notify_sambatan_event(self.sambatan, 'sambatan_exploded')
