"""
In-app notifications for Sambatan events.

Each event type maps to a set of recipients and an Indonesian title/body.
Notifications are stored rows only; delivery (email, push) happens elsewhere.
"""

import logging

from .models import Notification

logger = logging.getLogger(__name__)


def _product_name(sambatan):
    return sambatan.product.name if sambatan.product_id else 'produk'


def _base_metadata(sambatan):
    return {
        'sambatan_id': sambatan.id,
        'product_id': sambatan.product_id,
        'product_name': _product_name(sambatan),
        'target_quantity': sambatan.target_quantity,
        'current_quantity': sambatan.current_quantity,
    }


def _participant_users(sambatan, exclude_ids=()):
    users = []
    seen = set(exclude_ids)
    for participation in sambatan.participants.select_related('participant'):
        if participation.participant_id in seen:
            continue
        seen.add(participation.participant_id)
        users.append(participation.participant)
    return users


def _build(event_type, sambatan, participant=None, extra=None):
    """
    Return (recipients, title, content) for an event.

    Raises:
        ValueError: For unknown event types or a missing participant
    """
    name = _product_name(sambatan)

    if event_type in ('new_participant', 'payment_verified', 'payment_rejected', 'refund_initiated'):
        if participant is None:
            raise ValueError(f'Participant required for {event_type} event')

    if event_type == 'new_participant':
        who = participant.participant.display_name
        return (
            [sambatan.initiator],
            'Peserta baru bergabung',
            f'{who} bergabung dengan Sambatan {name} ({participant.quantity} item). '
            f'Terisi {sambatan.current_quantity} dari {sambatan.target_quantity} slot.',
        )

    if event_type == 'quota_reached':
        return (
            _participant_users(sambatan),
            'Sambatan mencapai kuota',
            f'Sambatan untuk {name} telah mencapai target {sambatan.target_quantity} slot. '
            f'Silakan selesaikan pembayaran Anda.',
        )

    if event_type == 'payment_verified':
        return (
            [participant.participant],
            'Pembayaran diverifikasi',
            f'Pembayaran Anda untuk Sambatan {name} telah diverifikasi.',
        )

    if event_type == 'payment_rejected':
        return (
            [participant.participant],
            'Pembayaran ditolak',
            f'Pembayaran Anda untuk Sambatan {name} ditolak. Hubungi admin untuk informasi lebih lanjut.',
        )

    if event_type == 'sambatan_completed':
        recipients = _participant_users(sambatan)
        seller = sambatan.product.seller
        if seller.id not in {user.id for user in recipients}:
            recipients.append(seller)
        return (
            recipients,
            'Sambatan selesai',
            f'Semua pembayaran untuk Sambatan {name} telah diverifikasi. Sambatan selesai.',
        )

    if event_type == 'sambatan_cancelled':
        reason = (extra or {}).get('reason')
        content = f'Sambatan untuk {name} telah dibatalkan oleh admin.'
        if reason:
            content = f'{content} Alasan: {reason}'
        return (_participant_users(sambatan), 'Sambatan dibatalkan', content)

    if event_type == 'sambatan_expired':
        return (
            _participant_users(sambatan, exclude_ids=[sambatan.initiator_id]),
            'Sambatan Kedaluwarsa',
            f'Sambatan untuk {name} telah kedaluwarsa dan dibatalkan karena tidak mencapai '
            f'target peserta dalam waktu yang ditentukan.',
        )

    if event_type == 'sambatan_expired_initiator':
        return (
            [sambatan.initiator],
            'Sambatan Anda Kedaluwarsa',
            f'Sambatan yang Anda mulai untuk {name} telah kedaluwarsa dan dibatalkan karena tidak '
            f'mencapai target {sambatan.target_quantity} peserta dalam waktu yang ditentukan. '
            f'Hanya {sambatan.current_quantity} dari {sambatan.target_quantity} slot yang terisi.',
        )

    if event_type == 'refund_initiated':
        return (
            [participant.participant],
            'Pengembalian Dana Diproses',
            f'Sambatan {name} dibatalkan, pembayaran Anda akan dikembalikan. '
            f'Tim admin akan menghubungi Anda untuk proses pengembalian dana.',
        )

    raise ValueError(f'Unknown event type: {event_type}')


def notify_sambatan_event(sambatan, event_type, participant=None, extra=None):
    """
    Create notifications for a Sambatan event.

    Args:
        sambatan: Sambatan instance
        event_type: One of Notification.TYPE_CHOICES
        participant: SambatanParticipant the event is about, when relevant
        extra: Additional metadata merged into each notification

    Returns:
        list: Created Notification instances
    """
    recipients, title, content = _build(event_type, sambatan, participant, extra)

    metadata = _base_metadata(sambatan)
    if participant is not None:
        metadata['participant_id'] = participant.participant_id
        metadata['quantity'] = participant.quantity
    if event_type == 'sambatan_expired_initiator':
        metadata['is_initiator'] = True
    if extra:
        metadata.update(extra)

    notifications = Notification.objects.bulk_create([
        Notification(
            user=user,
            type=event_type,
            title=title,
            content=content,
            metadata=metadata,
        )
        for user in recipients
    ])

    logger.info(
        f"Created {len(notifications)} '{event_type}' notification(s) for Sambatan {sambatan.id}"
    )
    return notifications


def notify_product_moderated(product):
    """Tell a seller their product was approved or rejected."""
    if product.moderation_status == 'approved':
        title = 'Produk disetujui'
        content = f'Produk {product.name} telah disetujui dan tampil di marketplace.'
    else:
        title = 'Produk ditolak'
        content = f'Produk {product.name} ditolak oleh moderator.'

    return Notification.objects.create(
        user=product.seller,
        type='product_moderated',
        title=title,
        content=content,
        metadata={
            'product_id': product.id,
            'moderation_status': product.moderation_status,
        },
    )
