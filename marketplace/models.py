"""
Models for the sensasiwangi.id marketplace and Sambatan group-buy campaigns.
"""

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .validators import validate_image, validate_payment_proof, validate_phone_number


def user_avatar_upload_path(instance, filename):
    """
    Generate upload path for user avatars.

    Path format: avatars/{user_id}/{filename}
    If user_id is not yet available (user not saved), uses 'temp' as placeholder.
    """
    user_id = instance.id if instance.id else 'temp'
    return f'avatars/{user_id}/{filename}'


def product_image_upload_path(instance, filename):
    """Path format: products/{seller_id}/{filename}"""
    return f'products/{instance.seller_id}/{filename}'


def payment_proof_upload_path(instance, filename):
    """Path format: payment_proofs/{sambatan_id}/{participant_id}/{filename}"""
    return f'payment_proofs/{instance.sambatan_id}/{instance.participant_id}/{filename}'


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address used to log in
    - full_name: Display name shown on campaigns and participant lists
    - phone_number: Optional phone number with validation
    - avatar: Optional profile picture
    - created_at / updated_at: Timestamps

    Admin rights come from Django's is_staff flag.
    """

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    full_name = models.CharField(
        _('full name'),
        max_length=150,
        blank=True,
        default='',
    )

    phone_number = models.CharField(
        _('phone number'),
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number],
        help_text=_('Optional. Enter phone number in local or international format.')
    )

    avatar = models.ImageField(
        _('avatar'),
        upload_to=user_avatar_upload_path,
        blank=True,
        null=True,
        validators=[validate_image],
        help_text=_('Optional. Upload a profile picture (max 5MB, formats: jpg, png, webp).')
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='user_email_idx'),
        ]

    def __str__(self):
        return self.email or self.username

    @property
    def display_name(self):
        return self.full_name or self.username

    def save(self, *args, **kwargs):
        # Case-insensitive uniqueness relies on storing lowercase emails
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)


class MarketplaceProduct(models.Model):
    """
    A perfume (or decant, or accessory) listed by a seller.

    Products become publicly visible only when active and approved by a
    moderator. Products flagged is_sambatan can be bought through a
    Sambatan campaign.
    """

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('sold', 'Sold'),
    ]

    MODERATION_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    seller = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='products',
        help_text=_('User selling this product')
    )

    name = models.CharField(_('name'), max_length=200)

    description = models.TextField(_('description'), blank=True, default='')

    price = models.DecimalField(
        _('price'),
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text=_('Price per unit in IDR')
    )

    image = models.ImageField(
        _('image'),
        upload_to=product_image_upload_path,
        blank=True,
        null=True,
        validators=[validate_image],
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='active',
    )

    moderation_status = models.CharField(
        _('moderation status'),
        max_length=20,
        choices=MODERATION_CHOICES,
        default='pending',
        help_text=_('Products are listed publicly only once approved')
    )

    is_sambatan = models.BooleanField(
        _('sambatan product'),
        default=False,
        help_text=_('Whether the product can be bought through a Sambatan')
    )

    min_participants = models.PositiveIntegerField(
        _('minimum participants'),
        null=True,
        blank=True,
        help_text=_('Smallest target quantity allowed for a Sambatan on this product')
    )

    max_participants = models.PositiveIntegerField(
        _('maximum participants'),
        null=True,
        blank=True,
        help_text=_('Largest target quantity allowed for a Sambatan on this product')
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('marketplace product')
        verbose_name_plural = _('marketplace products')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['seller'], name='product_seller_idx'),
            models.Index(fields=['status', 'moderation_status'], name='product_status_mod_idx'),
            models.Index(fields=['is_sambatan'], name='product_is_sambatan_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def is_listed(self):
        """True when the product is visible in the public marketplace."""
        return self.status == 'active' and self.moderation_status == 'approved'

    def clean(self):
        super().clean()

        if not self.name or not self.name.strip():
            raise ValidationError({'name': _('Product name cannot be empty.')})

        if self.price is not None and self.price <= 0:
            raise ValidationError({'price': _('Price must be greater than 0.')})

        if (
            self.min_participants is not None
            and self.max_participants is not None
            and self.min_participants > self.max_participants
        ):
            raise ValidationError({
                'min_participants': _('Minimum participants cannot exceed maximum participants.')
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class Sambatan(models.Model):
    """
    Group-buy campaign pooling several buyers' quantities of one product.

    Fields:
    - initiator: User who started the campaign (also its first participant)
    - product: Product being bought together
    - target_quantity: Units needed to close the campaign
    - current_quantity: Units committed so far
    - status: open, closed, completed or cancelled
    - expires_at: Deadline for reaching the target while open
    - created_at / updated_at: Timestamps

    Status flow:
    - open -> closed (target reached)
    - open -> cancelled (expired or cancelled by an admin)
    - closed -> completed (every participant's payment verified)
    - closed -> cancelled (cancelled by an admin)
    - completed and cancelled are terminal
    """

    STATUS_CHOICES = [
        ('open', 'Open'),
        ('closed', 'Closed'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    TRANSITIONS = {
        'open': {'closed', 'cancelled'},
        'closed': {'completed', 'cancelled'},
        'completed': set(),
        'cancelled': set(),
    }

    initiator = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='initiated_sambatans',
        help_text=_('User who started the campaign')
    )

    product = models.ForeignKey(
        MarketplaceProduct,
        on_delete=models.CASCADE,
        related_name='sambatans',
        help_text=_('Product bought through this campaign')
    )

    target_quantity = models.PositiveIntegerField(
        _('target quantity'),
        validators=[MinValueValidator(1)],
    )

    current_quantity = models.PositiveIntegerField(
        _('current quantity'),
        default=0,
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='open',
    )

    expires_at = models.DateTimeField(_('expires at'), null=True, blank=True)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('sambatan')
        verbose_name_plural = _('sambatan')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='sambatan_status_idx'),
            models.Index(fields=['product', 'status'], name='sambatan_product_status_idx'),
            models.Index(fields=['expires_at'], name='sambatan_expires_at_idx'),
            models.Index(fields=['updated_at'], name='sambatan_updated_at_idx'),
        ]

    def __str__(self):
        return f"Sambatan #{self.pk} - {self.product.name} ({self.current_quantity}/{self.target_quantity})"

    @property
    def remaining_slots(self):
        return max(self.target_quantity - self.current_quantity, 0)

    @property
    def is_full(self):
        return self.current_quantity >= self.target_quantity

    def is_expired(self, now=None):
        if self.expires_at is None:
            return False
        return self.expires_at < (now or timezone.now())

    def can_transition_to(self, new_status):
        """
        Validate if the campaign can move to new_status.

        Returns:
            tuple: (is_valid: bool, error_message: str or None)
        """
        current_status = self.status

        if current_status == new_status:
            return True, None

        if new_status not in self.TRANSITIONS:
            return False, f'Invalid status "{new_status}".'

        if current_status in ('completed', 'cancelled'):
            return False, f'Cannot modify a {current_status} Sambatan.'

        if new_status not in self.TRANSITIONS[current_status]:
            return False, f'Invalid status transition from {current_status} to {new_status}.'

        return True, None

    def clean(self):
        """
        Validate quantities and status transitions.

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.target_quantity is not None and self.target_quantity <= 0:
            raise ValidationError({
                'target_quantity': _('Target quantity must be greater than 0.')
            })

        if (
            self.target_quantity is not None
            and self.current_quantity is not None
            and self.current_quantity > self.target_quantity
        ):
            raise ValidationError({
                'current_quantity': _('Current quantity cannot exceed target quantity.')
            })

        if self.pk is None:
            return

        try:
            old_instance = Sambatan.objects.get(pk=self.pk)
        except Sambatan.DoesNotExist:
            return

        is_valid, error_message = old_instance.can_transition_to(self.status)
        if not is_valid:
            raise ValidationError({'status': error_message})

        if self.current_quantity != old_instance.current_quantity:
            if old_instance.status != 'open':
                raise ValidationError({
                    'current_quantity': _('Quantity can only change while the Sambatan is open.')
                })
            if self.current_quantity < old_instance.current_quantity:
                raise ValidationError({
                    'current_quantity': _('Current quantity cannot decrease.')
                })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class SambatanParticipant(models.Model):
    """
    A user's commitment to a quantity within a Sambatan.

    Payment flow:
    - pending: joined, proof may or may not be uploaded
    - verified: an admin confirmed the payment proof
    - cancelled: payment rejected, or participation cancelled on expiry

    Participations are never deleted.
    """

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('verified', 'Verified'),
        ('cancelled', 'Cancelled'),
    ]

    sambatan = models.ForeignKey(
        Sambatan,
        on_delete=models.CASCADE,
        related_name='participants',
    )

    participant = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sambatan_participations',
    )

    quantity = models.PositiveIntegerField(
        _('quantity'),
        validators=[MinValueValidator(1)],
    )

    payment_status = models.CharField(
        _('payment status'),
        max_length=20,
        choices=PAYMENT_STATUS_CHOICES,
        default='pending',
    )

    payment_proof = models.FileField(
        _('payment proof'),
        upload_to=payment_proof_upload_path,
        blank=True,
        null=True,
        validators=[validate_payment_proof],
    )

    payment_method = models.CharField(
        _('payment method'),
        max_length=50,
        blank=True,
        default='',
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('sambatan participant')
        verbose_name_plural = _('sambatan participants')
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['sambatan', 'payment_status'], name='participant_payment_idx'),
            models.Index(fields=['participant'], name='participant_user_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['sambatan', 'participant'],
                name='unique_participant_per_sambatan',
            )
        ]

    def __str__(self):
        return f"{self.participant} x{self.quantity} in Sambatan #{self.sambatan_id} ({self.payment_status})"

    def clean(self):
        super().clean()

        if self.quantity is not None and self.quantity <= 0:
            raise ValidationError({'quantity': _('Quantity must be greater than 0.')})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class Notification(models.Model):
    """
    In-app notification for a user.

    metadata carries the ids the client needs to link the notification
    (sambatan_id, product_id, ...).
    """

    TYPE_CHOICES = [
        ('new_participant', 'New participant'),
        ('quota_reached', 'Quota reached'),
        ('payment_verified', 'Payment verified'),
        ('payment_rejected', 'Payment rejected'),
        ('sambatan_completed', 'Sambatan completed'),
        ('sambatan_cancelled', 'Sambatan cancelled'),
        ('sambatan_expired', 'Sambatan expired'),
        ('sambatan_expired_initiator', 'Sambatan expired (initiator)'),
        ('refund_initiated', 'Refund initiated'),
        ('product_moderated', 'Product moderated'),
    ]

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications',
    )

    type = models.CharField(_('type'), max_length=40, choices=TYPE_CHOICES)

    title = models.CharField(_('title'), max_length=200)

    content = models.TextField(_('content'))

    metadata = models.JSONField(_('metadata'), default=dict, blank=True)

    is_read = models.BooleanField(_('read'), default=False)

    read_at = models.DateTimeField(_('read at'), null=True, blank=True)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('notification')
        verbose_name_plural = _('notifications')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notification_user_read_idx'),
        ]

    def __str__(self):
        return f"{self.type} -> {self.user}"

    def mark_read(self):
        if self.is_read:
            return
        self.is_read = True
        self.read_at = timezone.now()
        self.save(update_fields=['is_read', 'read_at'])


class Refund(models.Model):
    """
    Refund owed to a participant whose paid Sambatan expired.

    The amount is left empty; an admin settles it when processing the refund.
    """

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processed', 'Processed'),
        ('rejected', 'Rejected'),
    ]

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='refunds',
    )

    sambatan = models.ForeignKey(
        Sambatan,
        on_delete=models.CASCADE,
        related_name='refunds',
    )

    amount = models.DecimalField(
        _('amount'),
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending',
    )

    reason = models.CharField(_('reason'), max_length=255, blank=True, default='')

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('refund')
        verbose_name_plural = _('refunds')
        ordering = ['-created_at']

    def __str__(self):
        return f"Refund for {self.user} (Sambatan #{self.sambatan_id}, {self.status})"
