"""
Sambatan lifecycle operations.

Every mutating operation runs in a single transaction and locks the
Sambatan row with select_for_update() before reading quantities or
participant payment states, so concurrent joins and verifications of the
same campaign are serialized by the database.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import (
    AlreadyParticipating,
    InsufficientSlots,
    InvalidTransition,
    ParticipantNotFound,
    ProductUnavailable,
    SambatanClosed,
    SambatanNotFound,
)
from .models import MarketplaceProduct, Refund, Sambatan, SambatanParticipant
from .notifications import notify_sambatan_event

logger = logging.getLogger(__name__)

SAMBATAN_RELATED = ('initiator', 'product', 'product__seller')


# ============================================================================
# Lookups
# ============================================================================

def get_open_sambatans():
    """Open campaigns, newest first."""
    return (
        Sambatan.objects.select_related(*SAMBATAN_RELATED)
        .filter(status='open')
        .order_by('-created_at')
    )


def get_sambatan(sambatan_id):
    """
    Fetch a campaign with its initiator, product and participants.

    Raises:
        SambatanNotFound: If no campaign has this id
    """
    try:
        return (
            Sambatan.objects.select_related(*SAMBATAN_RELATED)
            .prefetch_related('participants__participant')
            .get(pk=sambatan_id)
        )
    except Sambatan.DoesNotExist:
        raise SambatanNotFound(f'Sambatan with ID {sambatan_id} does not exist.')


def get_sambatan_participants(sambatan_id):
    """Participants of a campaign, in joining order."""
    return (
        SambatanParticipant.objects.select_related('participant')
        .filter(sambatan_id=sambatan_id)
        .order_by('created_at', 'id')
    )


def get_sambatan_by_product(product_id):
    """Newest open campaign for a product, or None."""
    return get_open_sambatans().filter(product_id=product_id).first()


def get_user_participations(user):
    return (
        SambatanParticipant.objects.select_related('sambatan', 'sambatan__product')
        .filter(participant=user)
        .order_by('-created_at')
    )


def get_sambatan_changes(since=None):
    """
    Campaigns updated after `since`, oldest change first.

    updated_at is stamped before commit, so a row can become visible after a
    client already holds a newer cursor. Rows within
    SAMBATAN_CHANGES_OVERLAP_SECONDS before `since` are returned again;
    clients apply the rows as upserts keyed by id.
    """
    queryset = (
        Sambatan.objects.select_related(*SAMBATAN_RELATED)
        .prefetch_related('participants__participant')
        .order_by('updated_at', 'id')
    )
    if since is not None:
        overlap = timedelta(seconds=settings.SAMBATAN_CHANGES_OVERLAP_SECONDS)
        queryset = queryset.filter(updated_at__gt=since - overlap)
    return queryset


def _lock_sambatan(sambatan_id):
    try:
        return (
            Sambatan.objects.select_for_update()
            .select_related(*SAMBATAN_RELATED)
            .get(pk=sambatan_id)
        )
    except Sambatan.DoesNotExist:
        raise SambatanNotFound(f'Sambatan with ID {sambatan_id} does not exist.')


def _get_participation(sambatan, participant_id):
    try:
        return SambatanParticipant.objects.select_for_update().select_related('participant').get(
            sambatan=sambatan,
            participant_id=participant_id,
        )
    except SambatanParticipant.DoesNotExist:
        raise ParticipantNotFound(
            f'User {participant_id} is not a participant of Sambatan {sambatan.id}.'
        )


# ============================================================================
# Creating and joining
# ============================================================================

def create_sambatan(initiator, product, target_quantity, expiration_days=None):
    """
    Start a Sambatan with the initiator as its first participant.

    The initiator takes one slot, so current_quantity starts at 1. A target
    of 1 closes the campaign immediately.

    Args:
        initiator: User starting the campaign
        product: MarketplaceProduct instance
        target_quantity: Units needed to close the campaign
        expiration_days: Days the campaign stays open (default from settings)

    Returns:
        Sambatan: The created campaign

    Raises:
        ProductUnavailable: Product not listed or target out of the product's range
        InsufficientSlots: target_quantity is not positive
        AlreadyParticipating: Initiator already has an open Sambatan on this product
    """
    if expiration_days is None:
        expiration_days = settings.SAMBATAN_DEFAULT_EXPIRATION_DAYS

    if target_quantity is None or target_quantity <= 0:
        raise InsufficientSlots('Target quantity must be greater than 0.')

    with transaction.atomic():
        product = MarketplaceProduct.objects.select_for_update().get(pk=product.pk)

        if not product.is_listed:
            raise ProductUnavailable('This product is not available for Sambatan.')

        if product.min_participants is not None and target_quantity < product.min_participants:
            raise ProductUnavailable(
                f'Target quantity must be at least {product.min_participants} for this product.'
            )
        if product.max_participants is not None and target_quantity > product.max_participants:
            raise ProductUnavailable(
                f'Target quantity cannot exceed {product.max_participants} for this product.'
            )

        already_running = Sambatan.objects.filter(
            product=product,
            initiator=initiator,
            status='open',
        ).exists()
        if already_running:
            raise AlreadyParticipating('You already have an open Sambatan for this product.')

        if not product.is_sambatan:
            product.is_sambatan = True
            product.save(update_fields=['is_sambatan', 'updated_at'])

        sambatan = Sambatan.objects.create(
            initiator=initiator,
            product=product,
            target_quantity=target_quantity,
            current_quantity=1,
            status='open',
            expires_at=timezone.now() + timedelta(days=expiration_days),
        )

        SambatanParticipant.objects.create(
            sambatan=sambatan,
            participant=initiator,
            quantity=1,
            payment_status='pending',
        )

        if sambatan.is_full:
            sambatan.status = 'closed'
            sambatan.save(update_fields=['status', 'updated_at'])

    logger.info(
        f"Sambatan created. Sambatan ID: {sambatan.id}, Product: {product.name} (ID: {product.id}), "
        f"Initiator: {initiator.email} (ID: {initiator.id}), Target: {target_quantity}, "
        f"Expires: {sambatan.expires_at}"
    )
    return sambatan


def join_sambatan(sambatan_id, user, quantity):
    """
    Add a user to an open campaign.

    Closes the campaign when the join fills it.

    Returns:
        SambatanParticipant: The new participation

    Raises:
        InsufficientSlots: quantity is not positive or exceeds remaining slots
        SambatanNotFound: Unknown campaign
        SambatanClosed: Campaign is not open or has expired
        AlreadyParticipating: User already joined
    """
    if quantity is None or quantity <= 0:
        raise InsufficientSlots('Quantity must be greater than 0.')

    with transaction.atomic():
        sambatan = _lock_sambatan(sambatan_id)

        if sambatan.status != 'open' or sambatan.is_expired():
            raise SambatanClosed('Sambatan not found or already closed.')

        if sambatan.current_quantity + quantity > sambatan.target_quantity:
            raise InsufficientSlots(
                f'Not enough slots. {sambatan.remaining_slots} of '
                f'{sambatan.target_quantity} slots remaining.'
            )

        if sambatan.participants.filter(participant=user).exists():
            raise AlreadyParticipating()

        participation = SambatanParticipant.objects.create(
            sambatan=sambatan,
            participant=user,
            quantity=quantity,
            payment_status='pending',
        )

        sambatan.current_quantity += quantity
        if sambatan.is_full:
            sambatan.status = 'closed'
        sambatan.save(update_fields=['current_quantity', 'status', 'updated_at'])

        notify_sambatan_event(sambatan, 'new_participant', participant=participation)

    logger.info(
        f"User joined Sambatan. Sambatan ID: {sambatan.id}, User: {user.email} (ID: {user.id}), "
        f"Quantity: {quantity}, Filled: {sambatan.current_quantity}/{sambatan.target_quantity}, "
        f"Status: {sambatan.status}"
    )
    return participation


# ============================================================================
# Payments
# ============================================================================

def submit_payment(sambatan_id, user, payment_proof, payment_method=''):
    """
    Attach a participant's proof of payment. The status stays pending until
    an admin verifies it.

    Raises:
        SambatanNotFound / ParticipantNotFound: Unknown campaign or participation
        InvalidTransition: Campaign finished, or payment already settled
    """
    with transaction.atomic():
        sambatan = _lock_sambatan(sambatan_id)
        participation = _get_participation(sambatan, user.id)

        if sambatan.status in ('completed', 'cancelled'):
            raise InvalidTransition(f'Cannot submit payment for a {sambatan.status} Sambatan.')

        if participation.payment_status != 'pending':
            raise InvalidTransition(
                f'Payment is already {participation.payment_status}.'
            )

        participation.payment_proof = payment_proof
        participation.payment_method = payment_method or ''
        participation.save(update_fields=['payment_proof', 'payment_method', 'updated_at'])

    logger.info(
        f"Payment proof submitted. Sambatan ID: {sambatan.id}, "
        f"User: {user.email} (ID: {user.id}), Method: {payment_method or '-'}"
    )
    return participation


def update_payment_status(sambatan_id, participant_id, payment_status, payment_proof=None, payment_method=None):
    """
    Set a participant's payment status.

    On 'verified' the campaign is reconciled in the same transaction, so the
    payment update and any completion commit or roll back together.

    Setting the status a participation already has is refused, so a repeated
    approval or rejection sends no second notification. Reopening a rejected
    payment is allowed and logged.

    Raises:
        InvalidTransition: Unknown or unchanged status, or a finished campaign

    Returns:
        SambatanParticipant: The updated participation
    """
    valid_statuses = [choice for choice, _label in SambatanParticipant.PAYMENT_STATUS_CHOICES]
    if payment_status not in valid_statuses:
        raise InvalidTransition(
            f"Invalid payment status. Must be one of: {', '.join(valid_statuses)}."
        )

    with transaction.atomic():
        sambatan = _lock_sambatan(sambatan_id)
        participation = _get_participation(sambatan, participant_id)

        if sambatan.status in ('completed', 'cancelled'):
            raise InvalidTransition(
                f'Cannot change payments of a {sambatan.status} Sambatan.'
            )

        previous_status = participation.payment_status
        if previous_status == payment_status:
            raise InvalidTransition(f'Payment is already {payment_status}.')

        if previous_status == 'cancelled':
            logger.warning(
                f"Rejected payment reopened. Sambatan ID: {sambatan.id}, "
                f"Participant ID: {participant_id}, New status: {payment_status}"
            )

        update_fields = ['payment_status', 'updated_at']
        participation.payment_status = payment_status
        if payment_proof:
            participation.payment_proof = payment_proof
            update_fields.append('payment_proof')
        if payment_method:
            participation.payment_method = payment_method
            update_fields.append('payment_method')
        participation.save(update_fields=update_fields)

        if payment_status == 'verified':
            reconcile_sambatan_status(sambatan.id)

    return participation


def verify_payment(sambatan_id, participant_id, approve, admin=None):
    """
    Admin approval or rejection of a participant's payment.

    Approval marks the payment verified and reconciles the campaign;
    rejection marks it cancelled. Rejection keeps the participant's quantity
    counted toward the target.

    Args:
        sambatan_id: Campaign id
        participant_id: User id of the participant
        approve: True to verify, False to reject
        admin: Acting staff user, for the audit log

    Returns:
        SambatanParticipant: The updated participation
    """
    payment_status = 'verified' if approve else 'cancelled'

    with transaction.atomic():
        participation = update_payment_status(sambatan_id, participant_id, payment_status)
        event_type = 'payment_verified' if approve else 'payment_rejected'
        notify_sambatan_event(participation.sambatan, event_type, participant=participation)

    logger.info(
        f"Payment {payment_status}. Sambatan ID: {sambatan_id}, Participant ID: {participant_id}, "
        f"Admin: {getattr(admin, 'email', '-')}"
    )
    return participation


def reconcile_sambatan_status(sambatan_id):
    """
    Complete a closed campaign once every participant's payment is verified.

    The campaign row is locked for the duration of the check, so two
    verifications landing together cannot both miss the completion.
    Reconciling a campaign that is not closed (open, or already completed)
    changes nothing.

    Returns:
        bool: True if the campaign moved to completed

    Raises:
        SambatanNotFound: Unknown campaign
        DatabaseError: Re-raised after logging so the caller's transaction rolls back
    """
    try:
        with transaction.atomic():
            sambatan = _lock_sambatan(sambatan_id)

            if sambatan.status != 'closed':
                return False

            payment_statuses = list(
                sambatan.participants.values_list('payment_status', flat=True)
            )
            if not payment_statuses:
                return False
            if any(payment_status != 'verified' for payment_status in payment_statuses):
                return False

            sambatan.status = 'completed'
            sambatan.save(update_fields=['status', 'updated_at'])
    except DatabaseError as e:
        logger.error(
            f"Error reconciling status of Sambatan {sambatan_id}: {e}",
            exc_info=True
        )
        raise

    logger.info(f"Sambatan {sambatan_id} marked as completed - all payments verified")
    return True


# ============================================================================
# Cancellation and expiry
# ============================================================================

def _settle_payments(sambatan, reason):
    """
    Settle every live participation of a campaign that was just cancelled.

    Verified payments and pending payments with an uploaded proof get a
    pending Refund and a refund_initiated notice; their payment status is
    left as is until the refund is processed. Pending participations without
    a proof are cancelled. Already cancelled participations are skipped.

    Returns:
        dict: refunds and cancelled_participants counts
    """
    refunds = 0
    cancelled = 0
    participations = (
        sambatan.participants.select_related('participant')
        .filter(payment_status__in=['pending', 'verified'])
        .order_by('created_at', 'id')
    )
    for participation in participations:
        if participation.payment_status == 'verified' or participation.payment_proof:
            Refund.objects.create(
                user=participation.participant,
                sambatan=sambatan,
                amount=None,
                status='pending',
                reason=reason,
            )
            notify_sambatan_event(
                sambatan,
                'refund_initiated',
                participant=participation,
                extra={'refund_status': 'pending', 'payment_status': participation.payment_status},
            )
            refunds += 1
        else:
            participation.payment_status = 'cancelled'
            participation.save(update_fields=['payment_status', 'updated_at'])
            cancelled += 1

    return {'refunds': refunds, 'cancelled_participants': cancelled}


def cancel_sambatan(sambatan_id, reason='', admin=None):
    """
    Admin cancellation of an open or closed campaign.

    Participants are notified, then payments are settled the same way as on
    expiry (see _settle_payments).

    Raises:
        InvalidTransition: Campaign already completed or cancelled
    """
    with transaction.atomic():
        sambatan = _lock_sambatan(sambatan_id)

        is_valid, error_message = sambatan.can_transition_to('cancelled')
        if not is_valid or sambatan.status == 'cancelled':
            raise InvalidTransition(error_message or 'Sambatan is already cancelled.')

        sambatan.status = 'cancelled'
        sambatan.save(update_fields=['status', 'updated_at'])

        notify_sambatan_event(sambatan, 'sambatan_cancelled', extra={'reason': reason} if reason else None)
        outcome = _settle_payments(sambatan, 'Sambatan cancelled')

    logger.info(
        f"Sambatan cancelled. Sambatan ID: {sambatan_id}, Reason: {reason or '-'}, "
        f"Refunds: {outcome['refunds']}, Cancelled participants: {outcome['cancelled_participants']}, "
        f"Admin: {getattr(admin, 'email', '-')}"
    )
    return sambatan


def _expire_one(sambatan_id, now):
    with transaction.atomic():
        sambatan = _lock_sambatan(sambatan_id)

        # Joined or cancelled since the candidate list was read
        if sambatan.status != 'open' or not sambatan.is_expired(now):
            return None

        sambatan.status = 'cancelled'
        sambatan.save(update_fields=['status', 'updated_at'])

        notify_sambatan_event(sambatan, 'sambatan_expired')
        notify_sambatan_event(sambatan, 'sambatan_expired_initiator')

        return _settle_payments(sambatan, 'Sambatan expired')


def expire_sambatans(now=None, dry_run=False):
    """
    Cancel open campaigns whose deadline has passed.

    Each campaign is processed in its own transaction; a failure is logged
    and reported without stopping the rest.

    Returns:
        list: One dict per expired candidate with id, success and counts
    """
    now = now or timezone.now()
    candidate_ids = list(
        Sambatan.objects.filter(status='open', expires_at__lt=now)
        .order_by('expires_at')
        .values_list('id', flat=True)
    )

    results = []
    for sambatan_id in candidate_ids:
        if dry_run:
            results.append({'id': sambatan_id, 'success': True, 'dry_run': True})
            continue

        try:
            outcome = _expire_one(sambatan_id, now)
        except DatabaseError as e:
            logger.error(f"Error expiring Sambatan {sambatan_id}: {e}", exc_info=True)
            results.append({'id': sambatan_id, 'success': False, 'error': str(e)})
            continue

        if outcome is None:
            continue

        logger.info(
            f"Sambatan {sambatan_id} expired. Refunds: {outcome['refunds']}, "
            f"Cancelled participants: {outcome['cancelled_participants']}"
        )
        results.append({'id': sambatan_id, 'success': True, **outcome})

    return results
