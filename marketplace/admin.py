"""
Django admin configuration for marketplace users, products and Sambatan.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import MarketplaceProduct, Notification, Refund, Sambatan, SambatanParticipant, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin with the marketplace profile fields.
    """

    list_display = [
        'email',
        'username',
        'full_name',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'full_name',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': (
                'email',
                'full_name',
                'phone_number',
                'avatar',
            )
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'full_name',
                'password1',
                'password2',
            ),
        }),
    )

    readonly_fields = ['created_at', 'updated_at', 'last_login', 'date_joined']

    date_hierarchy = 'created_at'

    list_per_page = 25

    def get_readonly_fields(self, request, obj=None):
        if obj:  # Editing an existing object
            return self.readonly_fields
        return []


@admin.register(MarketplaceProduct)
class MarketplaceProductAdmin(admin.ModelAdmin):
    list_display = [
        'name',
        'seller',
        'price',
        'status',
        'moderation_status',
        'is_sambatan',
        'created_at',
    ]

    list_filter = [
        'status',
        'moderation_status',
        'is_sambatan',
        'created_at',
    ]

    search_fields = [
        'name',
        'description',
        'seller__email',
    ]

    readonly_fields = ['created_at', 'updated_at']

    ordering = ['-created_at']

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('seller', 'name', 'description', 'image')
        }),
        (_('Pricing & Status'), {
            'fields': ('price', 'status', 'moderation_status')
        }),
        (_('Sambatan'), {
            'fields': ('is_sambatan', 'min_participants', 'max_participants')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


class SambatanParticipantInline(admin.TabularInline):
    """Inline admin for a campaign's participants."""
    model = SambatanParticipant
    extra = 0
    fields = ['participant', 'quantity', 'payment_status', 'payment_method', 'payment_proof', 'created_at']
    readonly_fields = ['participant', 'quantity', 'created_at']
    can_delete = False


@admin.register(Sambatan)
class SambatanAdmin(admin.ModelAdmin):
    """
    Admin interface for Sambatan campaigns.

    Quantities are read-only here; they only change through joins.
    """

    list_display = [
        'id',
        'product',
        'initiator',
        'current_quantity',
        'target_quantity',
        'status',
        'expires_at',
        'created_at',
    ]

    list_filter = [
        'status',
        'created_at',
        'expires_at',
    ]

    search_fields = [
        'product__name',
        'initiator__email',
    ]

    readonly_fields = ['current_quantity', 'created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    inlines = [SambatanParticipantInline]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'type', 'title', 'is_read', 'created_at']
    list_filter = ['type', 'is_read', 'created_at']
    search_fields = ['user__email', 'title']
    readonly_fields = ['created_at', 'read_at']
    ordering = ['-created_at']


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = ['user', 'sambatan', 'amount', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['user__email', 'reason']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-created_at']
