"""
Domain errors raised by the Sambatan lifecycle operations.

Views translate them into API responses using status_code and message.
"""

from rest_framework import status


class SambatanError(Exception):
    """Base class for errors a user can act on."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'The Sambatan request could not be processed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class SambatanNotFound(SambatanError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Sambatan not found.'


class ParticipantNotFound(SambatanError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Participant not found in this Sambatan.'


class ProductUnavailable(SambatanError):
    default_message = 'This product is not available for Sambatan.'


class SambatanClosed(SambatanError):
    default_message = 'This Sambatan is no longer open.'


class InsufficientSlots(SambatanError):
    default_message = 'Not enough slots left in this Sambatan.'


class AlreadyParticipating(SambatanError):
    status_code = status.HTTP_409_CONFLICT
    default_message = 'You have already joined this Sambatan.'


class InvalidTransition(SambatanError):
    default_message = 'Invalid Sambatan status transition.'
