"""
Serializers for authentication, marketplace products, Sambatan campaigns
and notifications.
"""

from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework import serializers

from .models import MarketplaceProduct, Notification, Sambatan, SambatanParticipant
from .validators import validate_image, validate_payment_proof, validate_phone_number

User = get_user_model()


def _absolute_file_url(serializer, file_field):
    """Absolute URL of an uploaded file, or None when nothing was uploaded."""
    if not file_field:
        return None
    request = serializer.context.get('request')
    if request is not None:
        return request.build_absolute_uri(file_field.url)
    return file_field.url


# ============================================================================
# Authentication Serializers
# ============================================================================

class UserRegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for user registration.

    Fields:
    - email: Required, unique (case-insensitive)
    - password / confirm_password: Required, must match and pass Django's validators
    - full_name: Optional display name
    - phone_number: Optional, validated format
    """

    password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    confirm_password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = ['id', 'email', 'password', 'confirm_password', 'full_name', 'phone_number', 'created_at']
        read_only_fields = ['id', 'created_at']
        extra_kwargs = {
            'email': {'required': True},
        }

    def validate_email(self, value):
        value = value.strip().lower()

        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(
                "A user with that email already exists."
            )

        return value

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))

        return value

    def validate_phone_number(self, value):
        if not value:
            return value

        try:
            validate_phone_number(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))

        return value

    def validate(self, attrs):
        if attrs.get('password') != attrs.get('confirm_password'):
            raise serializers.ValidationError({
                'confirm_password': 'Password confirmation does not match.'
            })

        return attrs

    def _unique_username(self, email):
        base = email.split('@')[0][:30] or 'user'
        username = base
        suffix = 1
        while User.objects.filter(username=username).exists():
            suffix += 1
            username = f'{base[:26]}{suffix}'
        return username

    def create(self, validated_data):
        """
        Create the user with a hashed password.

        Privilege fields are never taken from the request.
        """
        validated_data.pop('confirm_password', None)
        password = validated_data.pop('password')

        for field in ('is_superuser', 'is_staff', 'is_active', 'groups', 'user_permissions'):
            validated_data.pop(field, None)

        # AbstractUser requires a username; logins use the email
        validated_data['username'] = self._unique_username(validated_data['email'])

        with transaction.atomic():
            user = User(**validated_data)
            user.set_password(password)
            user.save()

        return user


class LoginSerializer(serializers.Serializer):
    """
    Email and password for login.

    Authentication happens in the view so that every failure returns the
    same message.
    """
    email = serializers.EmailField(required=True)
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )


class UserSummarySerializer(serializers.ModelSerializer):
    """Public view of a user shown on products, campaigns and participant lists."""

    avatar_url = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'full_name', 'display_name', 'avatar_url']
        read_only_fields = fields

    def get_avatar_url(self, obj):
        return _absolute_file_url(self, obj.avatar)


# ============================================================================
# Marketplace Product Serializers
# ============================================================================

class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for marketplace products."""

    seller = UserSummarySerializer(read_only=True)
    image_url = serializers.SerializerMethodField()

    class Meta:
        model = MarketplaceProduct
        fields = [
            'id',
            'seller',
            'name',
            'description',
            'price',
            'image_url',
            'status',
            'moderation_status',
            'is_sambatan',
            'min_participants',
            'max_participants',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_image_url(self, obj):
        return _absolute_file_url(self, obj.image)


class ProductCreateSerializer(serializers.ModelSerializer):
    """
    Serializer for sellers listing a product.

    The seller comes from the authenticated user; new products wait for
    moderation (moderation_status='pending').
    """

    class Meta:
        model = MarketplaceProduct
        fields = [
            'id',
            'name',
            'description',
            'price',
            'image',
            'is_sambatan',
            'min_participants',
            'max_participants',
            'moderation_status',
            'created_at',
        ]
        read_only_fields = ['id', 'moderation_status', 'created_at']
        extra_kwargs = {
            'name': {'required': True},
            'price': {'required': True},
            'image': {'required': False},
        }

    def validate_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError(
                "Product name cannot be empty or whitespace only."
            )
        return value.strip()

    def validate_price(self, value):
        try:
            value = Decimal(value)
        except (InvalidOperation, TypeError):
            raise serializers.ValidationError("Price must be a valid number.")

        if value <= 0:
            raise serializers.ValidationError("Price must be greater than 0.")

        return value

    def validate_image(self, value):
        if value is None:
            return value
        try:
            validate_image(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))
        return value

    def validate(self, attrs):
        min_participants = attrs.get('min_participants')
        max_participants = attrs.get('max_participants')

        if (
            min_participants is not None
            and max_participants is not None
            and min_participants > max_participants
        ):
            raise serializers.ValidationError({
                'min_participants': 'Minimum participants cannot exceed maximum participants.'
            })

        return attrs

    def create(self, validated_data):
        request = self.context.get('request')
        validated_data['seller'] = request.user
        validated_data['moderation_status'] = 'pending'
        return MarketplaceProduct.objects.create(**validated_data)


class ProductModerationSerializer(serializers.Serializer):
    """Admin decision on a product: approved or rejected."""

    moderation_status = serializers.ChoiceField(choices=['approved', 'rejected'])


# ============================================================================
# Sambatan Serializers
# ============================================================================

class SambatanParticipantSerializer(serializers.ModelSerializer):
    participant = UserSummarySerializer(read_only=True)
    payment_proof_url = serializers.SerializerMethodField()

    class Meta:
        model = SambatanParticipant
        fields = [
            'id',
            'sambatan',
            'participant',
            'quantity',
            'payment_status',
            'payment_method',
            'payment_proof_url',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_payment_proof_url(self, obj):
        return _absolute_file_url(self, obj.payment_proof)


class SambatanProductSerializer(serializers.ModelSerializer):
    image_url = serializers.SerializerMethodField()

    class Meta:
        model = MarketplaceProduct
        fields = ['id', 'name', 'price', 'image_url', 'seller']
        read_only_fields = fields

    def get_image_url(self, obj):
        return _absolute_file_url(self, obj.image)


class SambatanListSerializer(serializers.ModelSerializer):
    """Campaign summary used by the public list and admin list."""

    initiator = UserSummarySerializer(read_only=True)
    product = SambatanProductSerializer(read_only=True)
    remaining_slots = serializers.IntegerField(read_only=True)

    class Meta:
        model = Sambatan
        fields = [
            'id',
            'initiator',
            'product',
            'target_quantity',
            'current_quantity',
            'remaining_slots',
            'status',
            'expires_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class SambatanDetailSerializer(SambatanListSerializer):
    """Campaign with its participants (oldest first)."""

    participants = serializers.SerializerMethodField()

    class Meta(SambatanListSerializer.Meta):
        fields = SambatanListSerializer.Meta.fields + ['participants']
        read_only_fields = fields

    def get_participants(self, obj):
        participations = sorted(
            obj.participants.all(),
            key=lambda participation: (participation.created_at, participation.id)
        )
        return SambatanParticipantSerializer(participations, many=True, context=self.context).data


class SambatanCreateSerializer(serializers.Serializer):
    """
    Input for starting a Sambatan.

    Fields:
    - product_id: Required, an existing product
    - target_quantity: Required, at least 1
    - expiration_days: Optional, 1 to SAMBATAN_MAX_EXPIRATION_DAYS
    """

    product_id = serializers.IntegerField(required=True)
    target_quantity = serializers.IntegerField(required=True, min_value=1)
    expiration_days = serializers.IntegerField(required=False, min_value=1)

    def validate_product_id(self, value):
        try:
            return MarketplaceProduct.objects.get(pk=value)
        except MarketplaceProduct.DoesNotExist:
            raise serializers.ValidationError(
                f"Product with ID {value} does not exist."
            )

    def validate_expiration_days(self, value):
        max_days = settings.SAMBATAN_MAX_EXPIRATION_DAYS
        if value > max_days:
            raise serializers.ValidationError(
                f"Expiration cannot exceed {max_days} days."
            )
        return value


class SambatanJoinSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(required=True, min_value=1)


class PaymentSubmissionSerializer(serializers.Serializer):
    """Multipart upload of a participant's payment proof."""

    payment_proof = serializers.FileField(required=True)
    payment_method = serializers.CharField(required=False, allow_blank=True, max_length=50)

    def validate_payment_proof(self, value):
        try:
            validate_payment_proof(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))
        return value


class PaymentVerificationSerializer(serializers.Serializer):
    """Admin decision on a payment: approve=true verifies, approve=false rejects."""

    approve = serializers.BooleanField(required=True)


class SambatanCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


# ============================================================================
# Notification Serializers
# ============================================================================

class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'type', 'title', 'content', 'metadata', 'is_read', 'read_at', 'created_at']
        read_only_fields = fields
