"""
Tests for Sambatan status reconciliation and admin payment verification.

Test Coverage:
- Completion only when closed and every participant's payment is verified
- Idempotence on already completed campaigns
- Rejection never completes a campaign
- Open campaigns are never completed by reconciliation
- Verification and reconciliation roll back together on failure
"""

from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase

from marketplace.exceptions import InvalidTransition, ParticipantNotFound, SambatanNotFound
from marketplace.models import MarketplaceProduct, Notification, Sambatan, SambatanParticipant
from marketplace.services import reconcile_sambatan_status, update_payment_status, verify_payment

User = get_user_model()


class SambatanReconciliationTestCase(TestCase):
    """Test suite for reconcile_sambatan_status()."""

    def setUp(self):
        self.seller = User.objects.create_user(
            username='seller',
            email='seller@example.com',
            password='testpass123'
        )
        self.buyers = [
            User.objects.create_user(
                username=f'buyer{i}',
                email=f'buyer{i}@example.com',
                password='testpass123'
            )
            for i in range(3)
        ]
        self.product = MarketplaceProduct.objects.create(
            seller=self.seller,
            name='Oud Wangi 50ml',
            price=Decimal('450000.00'),
            moderation_status='approved',
            is_sambatan=True,
        )

    def _create_sambatan(self, payment_statuses, status='closed'):
        """Helper creating a campaign with one participant per payment status."""
        sambatan = Sambatan.objects.create(
            initiator=self.buyers[0],
            product=self.product,
            target_quantity=len(payment_statuses),
            current_quantity=len(payment_statuses),
            status=status,
        )
        for buyer, payment_status in zip(self.buyers, payment_statuses):
            SambatanParticipant.objects.create(
                sambatan=sambatan,
                participant=buyer,
                quantity=1,
                payment_status=payment_status,
            )
        return sambatan

    # ========================================================================
    # Completion rule
    # ========================================================================

    def test_closed_with_all_verified_completes(self):
        sambatan = self._create_sambatan(['verified', 'verified', 'verified'])

        self.assertTrue(reconcile_sambatan_status(sambatan.id))

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'completed')

    def test_single_pending_participant_blocks_completion(self):
        sambatan = self._create_sambatan(['verified', 'verified', 'pending'])

        self.assertFalse(reconcile_sambatan_status(sambatan.id))

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'closed')

    def test_single_cancelled_participant_blocks_completion(self):
        sambatan = self._create_sambatan(['cancelled', 'verified', 'verified'])

        self.assertFalse(reconcile_sambatan_status(sambatan.id))

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'closed')

    def test_closed_without_participants_is_not_completed(self):
        sambatan = Sambatan.objects.create(
            initiator=self.buyers[0],
            product=self.product,
            target_quantity=1,
            current_quantity=1,
            status='closed',
        )

        self.assertFalse(reconcile_sambatan_status(sambatan.id))

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'closed')

    def test_open_with_all_verified_is_not_completed(self):
        sambatan = self._create_sambatan(['verified', 'verified'], status='open')
        Sambatan.objects.filter(pk=sambatan.pk).update(target_quantity=5)

        self.assertFalse(reconcile_sambatan_status(sambatan.id))

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'open')

    def test_reconciling_completed_sambatan_twice_is_noop(self):
        sambatan = self._create_sambatan(['verified', 'verified', 'verified'])

        self.assertTrue(reconcile_sambatan_status(sambatan.id))
        first_updated_at = Sambatan.objects.get(pk=sambatan.pk).updated_at

        self.assertFalse(reconcile_sambatan_status(sambatan.id))
        self.assertFalse(reconcile_sambatan_status(sambatan.id))

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'completed')
        self.assertEqual(sambatan.updated_at, first_updated_at)

    def test_unknown_sambatan_raises_not_found(self):
        with self.assertRaises(SambatanNotFound):
            reconcile_sambatan_status(999999)

    def test_completion_notifies_participants_and_seller(self):
        sambatan = self._create_sambatan(['verified', 'verified', 'verified'])

        reconcile_sambatan_status(sambatan.id)

        recipients = set(
            Notification.objects.filter(type='sambatan_completed').values_list('user_id', flat=True)
        )
        expected = {buyer.id for buyer in self.buyers} | {self.seller.id}
        self.assertEqual(recipients, expected)

    # ========================================================================
    # Verification
    # ========================================================================

    def test_verifying_last_pending_payment_completes(self):
        sambatan = self._create_sambatan(['verified', 'verified', 'pending'])

        participation = verify_payment(sambatan.id, self.buyers[2].id, approve=True)

        self.assertEqual(participation.payment_status, 'verified')
        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'completed')
        self.assertTrue(
            Notification.objects.filter(user=self.buyers[2], type='payment_verified').exists()
        )

    def test_verifying_one_of_several_pending_keeps_closed(self):
        sambatan = self._create_sambatan(['verified', 'pending', 'pending'])

        verify_payment(sambatan.id, self.buyers[1].id, approve=True)

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'closed')

    def test_rejection_cancels_payment_and_never_completes(self):
        sambatan = self._create_sambatan(['verified', 'verified', 'pending'])

        participation = verify_payment(sambatan.id, self.buyers[2].id, approve=False)

        self.assertEqual(participation.payment_status, 'cancelled')
        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'closed')
        # Rejection keeps the participant's quantity counted
        self.assertEqual(sambatan.current_quantity, 3)
        self.assertTrue(
            Notification.objects.filter(user=self.buyers[2], type='payment_rejected').exists()
        )

    def test_verification_on_terminal_sambatan_is_refused(self):
        sambatan = self._create_sambatan(['verified', 'verified', 'verified'])
        reconcile_sambatan_status(sambatan.id)

        with self.assertRaises(InvalidTransition):
            verify_payment(sambatan.id, self.buyers[0].id, approve=False)

        participation = SambatanParticipant.objects.get(sambatan=sambatan, participant=self.buyers[0])
        self.assertEqual(participation.payment_status, 'verified')

    def test_verification_of_non_participant_raises_not_found(self):
        sambatan = self._create_sambatan(['pending', 'pending'])

        with self.assertRaises(ParticipantNotFound):
            verify_payment(sambatan.id, self.seller.id, approve=True)

    def test_update_payment_status_rejects_unknown_status(self):
        sambatan = self._create_sambatan(['pending'])

        with self.assertRaises(InvalidTransition):
            update_payment_status(sambatan.id, self.buyers[0].id, 'refunded')

    def test_failed_completion_rolls_back_verification(self):
        sambatan = self._create_sambatan(['verified', 'verified', 'pending'])

        with mock.patch(
            'marketplace.signals.notify_sambatan_event',
            side_effect=DatabaseError('notification insert failed')
        ):
            with self.assertLogs('marketplace.services', level='ERROR'):
                with self.assertRaises(DatabaseError):
                    verify_payment(sambatan.id, self.buyers[2].id, approve=True)

        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'closed')
        participation = SambatanParticipant.objects.get(sambatan=sambatan, participant=self.buyers[2])
        self.assertEqual(participation.payment_status, 'pending')

    def test_approving_twice_is_refused_without_second_notice(self):
        sambatan = self._create_sambatan(['verified', 'pending', 'pending'])
        verify_payment(sambatan.id, self.buyers[1].id, approve=True)

        with self.assertRaises(InvalidTransition):
            verify_payment(sambatan.id, self.buyers[1].id, approve=True)

        self.assertEqual(
            Notification.objects.filter(user=self.buyers[1], type='payment_verified').count(), 1
        )

    def test_rejecting_twice_is_refused_without_second_notice(self):
        sambatan = self._create_sambatan(['verified', 'pending', 'pending'])
        verify_payment(sambatan.id, self.buyers[1].id, approve=False)

        with self.assertRaises(InvalidTransition):
            verify_payment(sambatan.id, self.buyers[1].id, approve=False)

        self.assertEqual(
            Notification.objects.filter(user=self.buyers[1], type='payment_rejected').count(), 1
        )

    def test_approving_rejected_payment_is_logged(self):
        sambatan = self._create_sambatan(['verified', 'verified', 'pending'])
        verify_payment(sambatan.id, self.buyers[2].id, approve=False)

        with self.assertLogs('marketplace.services', level='WARNING') as logs:
            participation = verify_payment(sambatan.id, self.buyers[2].id, approve=True)

        self.assertEqual(participation.payment_status, 'verified')
        self.assertTrue(any('Rejected payment reopened' in line for line in logs.output))
        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'completed')

    def test_verifying_with_stored_proof_missing_from_storage(self):
        sambatan = self._create_sambatan(['verified', 'verified', 'pending'])
        SambatanParticipant.objects.filter(sambatan=sambatan, participant=self.buyers[2]).update(
            payment_proof=f'payment_proofs/{sambatan.id}/{self.buyers[2].id}/gone.png'
        )

        participation = verify_payment(sambatan.id, self.buyers[2].id, approve=True)

        self.assertEqual(participation.payment_status, 'verified')
        self.assertEqual(participation.payment_proof.name, f'payment_proofs/{sambatan.id}/{self.buyers[2].id}/gone.png')
        sambatan.refresh_from_db()
        self.assertEqual(sambatan.status, 'completed')
