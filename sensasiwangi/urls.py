"""
URL configuration for the sensasiwangi project.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenBlacklistView, TokenRefreshView

from marketplace.views import (
    AdminPaymentVerificationView,
    AdminSambatanCancelView,
    AdminSambatanCompleteView,
    AdminSambatanListView,
    LoginView,
    MySambatanView,
    NotificationListView,
    NotificationReadAllView,
    NotificationReadView,
    NotificationUnreadCountView,
    ProductDetailView,
    ProductListCreateView,
    ProductModerationView,
    ProductSambatanView,
    SambatanChangesView,
    SambatanDetailView,
    SambatanJoinView,
    SambatanListCreateView,
    SambatanParticipantsView,
    SambatanPaymentView,
    UserRegistrationView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Authentication endpoints
    path('api/auth/register/', UserRegistrationView.as_view(), name='user_register'),
    path('api/auth/login/', LoginView.as_view(), name='user_login'),
    path('api/auth/logout/', TokenBlacklistView.as_view(), name='user_logout'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # Marketplace products
    path('api/products/', ProductListCreateView.as_view(), name='product_list'),
    path('api/products/<int:pk>/', ProductDetailView.as_view(), name='product_detail'),
    path('api/products/<int:pk>/sambatan/', ProductSambatanView.as_view(), name='product_sambatan'),
    path('api/admin/products/<int:pk>/moderation/', ProductModerationView.as_view(), name='product_moderation'),

    # Sambatan
    path('api/sambatan/', SambatanListCreateView.as_view(), name='sambatan_list'),
    path('api/sambatan/changes/', SambatanChangesView.as_view(), name='sambatan_changes'),
    path('api/sambatan/mine/', MySambatanView.as_view(), name='sambatan_mine'),
    path('api/sambatan/<int:pk>/', SambatanDetailView.as_view(), name='sambatan_detail'),
    path('api/sambatan/<int:pk>/participants/', SambatanParticipantsView.as_view(), name='sambatan_participants'),
    path('api/sambatan/<int:pk>/join/', SambatanJoinView.as_view(), name='sambatan_join'),
    path('api/sambatan/<int:pk>/payment/', SambatanPaymentView.as_view(), name='sambatan_payment'),

    # Sambatan administration
    path('api/admin/sambatan/', AdminSambatanListView.as_view(), name='admin_sambatan_list'),
    path(
        'api/admin/sambatan/<int:pk>/participants/<int:participant_id>/verify/',
        AdminPaymentVerificationView.as_view(),
        name='admin_payment_verify'
    ),
    path('api/admin/sambatan/<int:pk>/complete/', AdminSambatanCompleteView.as_view(), name='admin_sambatan_complete'),
    path('api/admin/sambatan/<int:pk>/cancel/', AdminSambatanCancelView.as_view(), name='admin_sambatan_cancel'),

    # Notifications
    path('api/notifications/', NotificationListView.as_view(), name='notification_list'),
    path('api/notifications/unread-count/', NotificationUnreadCountView.as_view(), name='notification_unread_count'),
    path('api/notifications/read-all/', NotificationReadAllView.as_view(), name='notification_read_all'),
    path('api/notifications/<int:pk>/read/', NotificationReadView.as_view(), name='notification_read'),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
