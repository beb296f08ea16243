"""
Tests for creating, joining, paying into and cancelling Sambatan campaigns
at the service layer.
"""

import shutil
import tempfile
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone

from marketplace.exceptions import (
    AlreadyParticipating,
    InsufficientSlots,
    InvalidTransition,
    ParticipantNotFound,
    ProductUnavailable,
    SambatanClosed,
)
from marketplace.models import MarketplaceProduct, Notification, Refund, Sambatan, SambatanParticipant
from marketplace.services import (
    cancel_sambatan,
    create_sambatan,
    get_open_sambatans,
    get_sambatan_by_product,
    get_sambatan_participants,
    join_sambatan,
    submit_payment,
    verify_payment,
)

User = get_user_model()

MEDIA_ROOT = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class SambatanLifecycleTestCase(TestCase):
    """Test suite for the Sambatan lifecycle services."""

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.seller = User.objects.create_user(
            username='seller',
            email='seller@example.com',
            password='testpass123'
        )
        self.initiator = User.objects.create_user(
            username='initiator',
            email='initiator@example.com',
            password='testpass123',
            full_name='Rina Initiator'
        )
        self.joiner = User.objects.create_user(
            username='joiner',
            email='joiner@example.com',
            password='testpass123',
            full_name='Budi Joiner'
        )
        self.late_joiner = User.objects.create_user(
            username='late',
            email='late@example.com',
            password='testpass123'
        )
        self.product = MarketplaceProduct.objects.create(
            seller=self.seller,
            name='Kasturi Kijang 30ml',
            price=Decimal('300000.00'),
            moderation_status='approved',
        )

    def _proof(self, name='proof.png'):
        return SimpleUploadedFile(name, b'\x89PNG\r\n\x1a\nproof', content_type='image/png')

    # ========================================================================
    # create_sambatan
    # ========================================================================

    def test_create_adds_initiator_as_first_participant(self):
        sambatan = create_sambatan(self.initiator, self.product, 5)

        self.assertEqual(sambatan.status, 'open')
        self.assertEqual(sambatan.current_quantity, 1)
        self.assertEqual(sambatan.target_quantity, 5)
        self.assertIsNotNone(sambatan.expires_at)
        self.assertGreater(sambatan.expires_at, timezone.now() + timedelta(days=6))

        participation = SambatanParticipant.objects.get(sambatan=sambatan)
        self.assertEqual(participation.participant, self.initiator)
        self.assertEqual(participation.quantity, 1)
        self.assertEqual(participation.payment_status, 'pending')

        self.product.refresh_from_db()
        self.assertTrue(self.product.is_sambatan)

    def test_create_with_target_of_one_closes_immediately(self):
        sambatan = create_sambatan(self.initiator, self.product, 1)

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'closed')
        self.assertTrue(
            Notification.objects.filter(user=self.initiator, type='quota_reached').exists()
        )

    def test_create_uses_given_expiration(self):
        sambatan = create_sambatan(self.initiator, self.product, 3, expiration_days=2)

        self.assertLess(sambatan.expires_at, timezone.now() + timedelta(days=2, minutes=1))

    def test_create_on_unapproved_product_is_refused(self):
        self.product.moderation_status = 'pending'
        self.product.save()

        with self.assertRaises(ProductUnavailable):
            create_sambatan(self.initiator, self.product, 3)

        self.assertFalse(Sambatan.objects.exists())

    def test_create_on_inactive_product_is_refused(self):
        self.product.status = 'inactive'
        self.product.save()

        with self.assertRaises(ProductUnavailable):
            create_sambatan(self.initiator, self.product, 3)

    def test_create_respects_product_participant_range(self):
        self.product.min_participants = 3
        self.product.max_participants = 10
        self.product.save()

        with self.assertRaises(ProductUnavailable):
            create_sambatan(self.initiator, self.product, 2)
        with self.assertRaises(ProductUnavailable):
            create_sambatan(self.initiator, self.product, 11)

        sambatan = create_sambatan(self.initiator, self.product, 10)
        self.assertEqual(sambatan.target_quantity, 10)

    def test_create_with_non_positive_target_is_refused(self):
        with self.assertRaises(InsufficientSlots):
            create_sambatan(self.initiator, self.product, 0)

    def test_initiator_cannot_open_two_sambatans_on_same_product(self):
        create_sambatan(self.initiator, self.product, 3)

        with self.assertRaises(AlreadyParticipating):
            create_sambatan(self.initiator, self.product, 4)

    # ========================================================================
    # join_sambatan
    # ========================================================================

    def test_join_increments_quantity_and_notifies_initiator(self):
        sambatan = create_sambatan(self.initiator, self.product, 5)

        participation = join_sambatan(sambatan.id, self.joiner, 2)

        self.assertEqual(participation.quantity, 2)
        sambatan.refresh_from_db()
        self.assertEqual(sambatan.current_quantity, 3)
        self.assertEqual(sambatan.status, 'open')

        notification = Notification.objects.get(type='new_participant')
        self.assertEqual(notification.user, self.initiator)
        self.assertIn('Budi Joiner', notification.content)
        self.assertEqual(notification.metadata['sambatan_id'], sambatan.id)
        self.assertEqual(notification.metadata['quantity'], 2)

    def test_join_exactly_to_target_closes_and_notifies_everyone(self):
        sambatan = create_sambatan(self.initiator, self.product, 3)

        join_sambatan(sambatan.id, self.joiner, 2)

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.current_quantity, 3)
        self.assertEqual(sambatan.status, 'closed')

        recipients = set(
            Notification.objects.filter(type='quota_reached').values_list('user_id', flat=True)
        )
        self.assertEqual(recipients, {self.initiator.id, self.joiner.id})

    def test_join_beyond_target_is_refused(self):
        sambatan = create_sambatan(self.initiator, self.product, 3)

        with self.assertRaises(InsufficientSlots) as context:
            join_sambatan(sambatan.id, self.joiner, 3)

        self.assertIn('2 of 3', context.exception.message)
        sambatan.refresh_from_db()
        self.assertEqual(sambatan.current_quantity, 1)
        self.assertFalse(SambatanParticipant.objects.filter(participant=self.joiner).exists())

    def test_user_cannot_join_twice(self):
        sambatan = create_sambatan(self.initiator, self.product, 5)
        join_sambatan(sambatan.id, self.joiner, 1)

        with self.assertRaises(AlreadyParticipating):
            join_sambatan(sambatan.id, self.joiner, 1)

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.current_quantity, 2)

    def test_initiator_cannot_join_own_sambatan(self):
        sambatan = create_sambatan(self.initiator, self.product, 5)

        with self.assertRaises(AlreadyParticipating):
            join_sambatan(sambatan.id, self.initiator, 1)

    def test_join_closed_sambatan_is_refused(self):
        sambatan = create_sambatan(self.initiator, self.product, 2)
        join_sambatan(sambatan.id, self.joiner, 1)

        with self.assertRaises(SambatanClosed):
            join_sambatan(sambatan.id, self.late_joiner, 1)

    def test_join_expired_sambatan_is_refused(self):
        sambatan = create_sambatan(self.initiator, self.product, 5)
        Sambatan.objects.filter(pk=sambatan.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

        with self.assertRaises(SambatanClosed):
            join_sambatan(sambatan.id, self.joiner, 1)

    def test_join_with_non_positive_quantity_is_refused(self):
        sambatan = create_sambatan(self.initiator, self.product, 5)

        with self.assertRaises(InsufficientSlots):
            join_sambatan(sambatan.id, self.joiner, 0)

    # ========================================================================
    # submit_payment
    # ========================================================================

    def test_submit_payment_attaches_proof_and_stays_pending(self):
        sambatan = create_sambatan(self.initiator, self.product, 3)
        join_sambatan(sambatan.id, self.joiner, 2)

        participation = submit_payment(sambatan.id, self.joiner, self._proof(), 'bank_transfer')

        participation.refresh_from_db()
        self.assertEqual(participation.payment_status, 'pending')
        self.assertEqual(participation.payment_method, 'bank_transfer')
        self.assertTrue(participation.payment_proof.name.startswith(f'payment_proofs/{sambatan.id}/'))

    def test_submit_payment_by_non_participant_is_refused(self):
        sambatan = create_sambatan(self.initiator, self.product, 3)

        with self.assertRaises(ParticipantNotFound):
            submit_payment(sambatan.id, self.joiner, self._proof())

    def test_submit_payment_after_cancellation_is_refused(self):
        sambatan = create_sambatan(self.initiator, self.product, 3)
        cancel_sambatan(sambatan.id)

        with self.assertRaises(InvalidTransition):
            submit_payment(sambatan.id, self.initiator, self._proof())

    # ========================================================================
    # cancel_sambatan
    # ========================================================================

    def test_cancel_notifies_participants_with_reason(self):
        sambatan = create_sambatan(self.initiator, self.product, 3)
        join_sambatan(sambatan.id, self.joiner, 1)

        cancel_sambatan(sambatan.id, reason='Stok habis')

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'cancelled')
        notifications = Notification.objects.filter(type='sambatan_cancelled')
        self.assertEqual(
            set(notifications.values_list('user_id', flat=True)),
            {self.initiator.id, self.joiner.id}
        )
        self.assertIn('Stok habis', notifications.first().content)

    def test_cancel_twice_is_refused(self):
        sambatan = create_sambatan(self.initiator, self.product, 3)
        cancel_sambatan(sambatan.id)

        with self.assertRaises(InvalidTransition):
            cancel_sambatan(sambatan.id)

    def test_cancel_refunds_verified_payments(self):
        sambatan = create_sambatan(self.initiator, self.product, 3)
        join_sambatan(sambatan.id, self.joiner, 2)
        submit_payment(sambatan.id, self.joiner, self._proof())
        verify_payment(sambatan.id, self.joiner.id, approve=True)

        cancel_sambatan(sambatan.id, reason='Penjual kehabisan stok')

        refund = Refund.objects.get(sambatan=sambatan)
        self.assertEqual(refund.user, self.joiner)
        self.assertEqual(refund.status, 'pending')
        self.assertEqual(refund.reason, 'Sambatan cancelled')
        self.assertTrue(
            Notification.objects.filter(user=self.joiner, type='refund_initiated').exists()
        )
        initiator_participation = SambatanParticipant.objects.get(sambatan=sambatan, participant=self.initiator)
        self.assertEqual(initiator_participation.payment_status, 'cancelled')
        self.assertFalse(Refund.objects.filter(user=self.initiator).exists())

    # ========================================================================
    # Lookups
    # ========================================================================

    def test_lookups(self):
        first = create_sambatan(self.initiator, self.product, 5)
        other_product = MarketplaceProduct.objects.create(
            seller=self.seller,
            name='Melati Pagi 10ml',
            price=Decimal('90000.00'),
            moderation_status='approved',
        )
        second = create_sambatan(self.joiner, other_product, 2)
        join_sambatan(first.id, self.late_joiner, 1)

        self.assertEqual(list(get_open_sambatans()), [second, first])
        self.assertEqual(get_sambatan_by_product(self.product.id), first)
        self.assertIsNone(get_sambatan_by_product(999999))
        self.assertEqual(
            [p.participant for p in get_sambatan_participants(first.id)],
            [self.initiator, self.late_joiner]
        )
