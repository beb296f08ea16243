"""
Django signals reacting to Sambatan status changes.

When a campaign reaches its target (open -> closed) every participant is
asked to complete payment; when it completes (closed -> completed) the
participants and the seller are told. Receivers run inside the saving
transaction, so a failure here rolls back the status change too.
"""

import logging
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import Sambatan
from .notifications import notify_sambatan_event

logger = logging.getLogger(__name__)

STATUS_EVENTS = {
    'closed': 'quota_reached',
    'completed': 'sambatan_completed',
}


@receiver(pre_save, sender=Sambatan)
def remember_previous_status(sender, instance, **kwargs):
    """
    Store the persisted status on the instance before it is overwritten.

    Args:
        sender: The Sambatan model class
        instance: The Sambatan instance about to be saved
        **kwargs: Additional keyword arguments
    """
    if instance.pk is None:
        instance._previous_status = None
        return

    instance._previous_status = (
        Sambatan.objects.filter(pk=instance.pk)
        .values_list('status', flat=True)
        .first()
    )


@receiver(post_save, sender=Sambatan)
def notify_on_status_change(sender, instance, created, **kwargs):
    """
    Emit quota_reached / sambatan_completed notifications on status change.

    Args:
        sender: The Sambatan model class
        instance: The Sambatan instance that was saved
        created: Boolean indicating if this is a new Sambatan
        **kwargs: Additional keyword arguments
    """
    previous_status = getattr(instance, '_previous_status', None)
    if not created and previous_status == instance.status:
        return

    event_type = STATUS_EVENTS.get(instance.status)
    if event_type is None:
        return

    try:
        notify_sambatan_event(instance, event_type)
        logger.info(
            f"Sambatan {instance.id} status changed: {previous_status} -> {instance.status}"
        )
    except Exception as e:
        logger.error(
            f"Error sending {event_type} notifications for Sambatan {instance.id}: {e}",
            exc_info=True
        )
        # Re-raise to roll back the status change with the notifications
        raise
