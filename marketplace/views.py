"""
API views for authentication, marketplace products, Sambatan campaigns and
notifications.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.contrib.auth import authenticate
from django.core.paginator import EmptyPage, Paginator
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import generics, status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from . import services
from .exceptions import SambatanError
from .models import MarketplaceProduct, Notification, Sambatan
from .notifications import notify_product_moderated
from .permissions import IsNotificationOwner, IsSambatanParticipant, IsStaffUser
from .serializers import (
    LoginSerializer,
    NotificationSerializer,
    PaymentSubmissionSerializer,
    PaymentVerificationSerializer,
    ProductCreateSerializer,
    ProductModerationSerializer,
    ProductSerializer,
    SambatanCancelSerializer,
    SambatanCreateSerializer,
    SambatanDetailSerializer,
    SambatanJoinSerializer,
    SambatanListSerializer,
    SambatanParticipantSerializer,
    UserRegistrationSerializer,
    UserSummarySerializer,
)

logger = logging.getLogger(__name__)


class MarketplaceAPIView(APIView):
    """
    Base view with the checks shared by marketplace endpoints.

    Views keep permission_classes = [AllowAny] and check authentication
    themselves so that missing credentials always answer 401 with a clear
    message.
    """
    permission_classes = [AllowAny]

    def get_client_ip(self, request):
        """
        Get client IP address from request.
        Handles proxy headers for accurate IP detection.
        """
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0]
        else:
            ip = request.META.get('REMOTE_ADDR')
        return ip

    def describe_user(self, request):
        user = request.user
        if not user or not user.is_authenticated:
            return 'anonymous'
        return f'{user.email} (ID: {user.id})'

    def authentication_error(self, request):
        """Return a 401 response when the request is anonymous, else None."""
        if not request.user or not request.user.is_authenticated:
            return Response(
                {'detail': 'Authentication credentials were not provided.'},
                status=status.HTTP_401_UNAUTHORIZED
            )
        return None

    def staff_error(self, request):
        """Return a 401/403 response unless the request comes from staff."""
        error = self.authentication_error(request)
        if error is not None:
            return error

        permission = IsStaffUser()
        if not permission.has_permission(request, self):
            logger.warning(
                f"Non-staff user attempted admin action. Path: {request.path}, "
                f"User: {self.describe_user(request)}, IP: {self.get_client_ip(request)}"
            )
            return Response(
                {'detail': permission.message},
                status=status.HTTP_403_FORBIDDEN
            )
        return None

    def domain_error(self, request, error, action):
        """Log a refused Sambatan action and turn it into an API response."""
        logger.warning(
            f"{action} refused: {error.message} "
            f"User: {self.describe_user(request)}, IP: {self.get_client_ip(request)}"
        )
        return Response({'detail': error.message}, status=error.status_code)

    def paginate(self, request, queryset, serializer_class):
        """
        Page a queryset with ?page= and ?page_size= (default 20, max 100).

        Returns:
            Response: {count, next, previous, results}, or 404 for a page past the end
        """
        try:
            page_size = int(request.query_params.get('page_size', 20))
            if page_size < 1:
                page_size = 20
            elif page_size > 100:
                page_size = 100
        except ValueError:
            page_size = 20

        try:
            page_number = int(request.query_params.get('page', 1))
            if page_number < 1:
                page_number = 1
        except ValueError:
            page_number = 1

        paginator = Paginator(queryset, page_size)
        try:
            page_obj = paginator.page(page_number)
        except EmptyPage:
            return Response(
                {'detail': f'Invalid page number. Page {page_number} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )

        serializer = serializer_class(
            page_obj.object_list,
            many=True,
            context={'request': request}
        )

        response_data = {
            'count': paginator.count,
            'next': None,
            'previous': None,
            'results': serializer.data
        }

        if page_obj.has_next():
            response_data['next'] = request.build_absolute_uri(
                f"{request.path}?page={page_obj.next_page_number()}&page_size={page_size}"
            )
        if page_obj.has_previous():
            response_data['previous'] = request.build_absolute_uri(
                f"{request.path}?page={page_obj.previous_page_number()}&page_size={page_size}"
            )

        return Response(response_data, status=status.HTTP_200_OK)


# ============================================================================
# Authentication Views
# ============================================================================

class UserRegistrationView(generics.CreateAPIView):
    """
    POST /api/auth/register/

    Creates an account. Email uniqueness races are caught at the database
    level and reported like the serializer's own check.
    """
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self.perform_create(serializer)
        except IntegrityError as e:
            if 'email' in str(e).lower() or 'unique' in str(e).lower():
                return Response(
                    {'email': ['A user with that email already exists.']},
                    status=status.HTTP_400_BAD_REQUEST
                )
            raise

        logger.info(f"User registered. Email: {serializer.instance.email} (ID: {serializer.instance.id})")
        headers = self.get_success_headers(serializer.data)
        return Response(serializer.data, status=status.HTTP_201_CREATED, headers=headers)


class LoginView(MarketplaceAPIView):
    """
    POST /api/auth/login/
    Request body: {"email": "user@example.com", "password": "..."}

    Success response (200): {"access": "...", "refresh": "...", "user": {...}}
    Error response (401): {"detail": "Invalid credentials"}

    Rate limited by the 'login' throttle scope. Every failure returns the
    same message so that accounts cannot be enumerated.
    """
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'login'

    def post(self, request, *args, **kwargs):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        email = serializer.validated_data['email'].lower().strip()
        password = serializer.validated_data['password']
        client_ip = self.get_client_ip(request)

        # EmailBackend logs the reason of a failure
        user = authenticate(request, email=email, password=password)
        if user is None:
            return Response(
                {'detail': 'Invalid credentials'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        refresh = RefreshToken.for_user(user)
        logger.info(f"Successful login. Email: {email}, IP: {client_ip}")

        return Response({
            'access': str(refresh.access_token),
            'refresh': str(refresh),
            'user': {
                **UserSummarySerializer(user, context={'request': request}).data,
                'is_staff': user.is_staff,
            }
        }, status=status.HTTP_200_OK)

    def get(self, request, *args, **kwargs):
        """GET method not allowed."""
        return Response(
            {'detail': 'Method "GET" not allowed.'},
            status=status.HTTP_405_METHOD_NOT_ALLOWED
        )


# ============================================================================
# Marketplace Product Views
# ============================================================================

class ProductListCreateView(MarketplaceAPIView):
    """
    GET  /api/products/  public list of active, approved products
    POST /api/products/  list a new product (authenticated, multipart or JSON)

    Query Parameters (GET):
    - search: Case-insensitive match on name or description
    - min_price / max_price: Price range
    - is_sambatan: true/false
    - page / page_size: Pagination
    """
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get(self, request, *args, **kwargs):
        queryset = MarketplaceProduct.objects.select_related('seller').filter(
            status='active',
            moderation_status='approved',
        )

        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(description__icontains=search))

        for param, lookup in (('min_price', 'price__gte'), ('max_price', 'price__lte')):
            value = request.query_params.get(param)
            if value is None:
                continue
            try:
                amount = Decimal(value)
            except InvalidOperation:
                return Response(
                    {'detail': f'Invalid value for "{param}". Must be a valid number.'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            if amount < 0:
                return Response(
                    {'detail': f'"{param}" cannot be negative.'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            queryset = queryset.filter(**{lookup: amount})

        is_sambatan = request.query_params.get('is_sambatan')
        if is_sambatan is not None:
            if is_sambatan.lower() not in ('true', 'false'):
                return Response(
                    {'detail': 'Invalid value for "is_sambatan". Must be "true" or "false".'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            queryset = queryset.filter(is_sambatan=is_sambatan.lower() == 'true')

        return self.paginate(request, queryset.order_by('-created_at'), ProductSerializer)

    def post(self, request, *args, **kwargs):
        error = self.authentication_error(request)
        if error is not None:
            return error

        serializer = ProductCreateSerializer(data=request.data, context={'request': request})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        product = serializer.save()
        logger.info(
            f"Product created. Product ID: {product.id}, Name: {product.name}, "
            f"Seller: {self.describe_user(request)}, IP: {self.get_client_ip(request)}"
        )
        return Response(
            ProductSerializer(product, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class ProductDetailView(MarketplaceAPIView):
    """
    GET /api/products/<id>/

    Unlisted products are visible only to their seller and to staff.
    """

    def get(self, request, *args, **kwargs):
        product_id = kwargs.get('pk')
        try:
            product = MarketplaceProduct.objects.select_related('seller').get(pk=product_id)
        except MarketplaceProduct.DoesNotExist:
            product = None

        user = request.user
        can_see_unlisted = product is not None and user.is_authenticated and (
            user.is_staff or product.seller_id == user.id
        )
        if product is None or not (product.is_listed or can_see_unlisted):
            return Response(
                {'detail': f'Product with ID {product_id} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )

        return Response(ProductSerializer(product, context={'request': request}).data)


class ProductSambatanView(MarketplaceAPIView):
    """GET /api/products/<id>/sambatan/ - the newest open Sambatan for a product."""

    def get(self, request, *args, **kwargs):
        product_id = kwargs.get('pk')
        sambatan = services.get_sambatan_by_product(product_id)
        if sambatan is None:
            return Response(
                {'detail': f'No open Sambatan for product {product_id}.'},
                status=status.HTTP_404_NOT_FOUND
            )
        sambatan = services.get_sambatan(sambatan.id)
        return Response(SambatanDetailSerializer(sambatan, context={'request': request}).data)


class ProductModerationView(MarketplaceAPIView):
    """
    PUT /api/admin/products/<id>/moderation/
    Request body: {"moderation_status": "approved" | "rejected"}

    Staff only. The seller is notified of the decision.
    """

    def put(self, request, *args, **kwargs):
        error = self.staff_error(request)
        if error is not None:
            return error

        product_id = kwargs.get('pk')
        serializer = ProductModerationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            try:
                product = MarketplaceProduct.objects.select_for_update().select_related('seller').get(pk=product_id)
            except MarketplaceProduct.DoesNotExist:
                return Response(
                    {'detail': f'Product with ID {product_id} does not exist.'},
                    status=status.HTTP_404_NOT_FOUND
                )

            old_status = product.moderation_status
            product.moderation_status = serializer.validated_data['moderation_status']
            product.save(update_fields=['moderation_status', 'updated_at'])
            notify_product_moderated(product)

        logger.info(
            f"Product moderated. Product ID: {product_id}, "
            f"Old Status: {old_status}, New Status: {product.moderation_status}, "
            f"Admin: {self.describe_user(request)}, IP: {self.get_client_ip(request)}"
        )
        return Response(ProductSerializer(product, context={'request': request}).data)


# ============================================================================
# Sambatan Views
# ============================================================================

class SambatanListCreateView(MarketplaceAPIView):
    """
    GET  /api/sambatan/  open campaigns, newest first (public)
    POST /api/sambatan/  start a campaign (authenticated)
    Request body: {"product_id": 1, "target_quantity": 5, "expiration_days": 7}
    """

    def get(self, request, *args, **kwargs):
        return self.paginate(request, services.get_open_sambatans(), SambatanListSerializer)

    def post(self, request, *args, **kwargs):
        error = self.authentication_error(request)
        if error is not None:
            return error

        serializer = SambatanCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            sambatan = services.create_sambatan(
                initiator=request.user,
                product=serializer.validated_data['product_id'],
                target_quantity=serializer.validated_data['target_quantity'],
                expiration_days=serializer.validated_data.get('expiration_days'),
            )
        except SambatanError as e:
            return self.domain_error(request, e, 'Sambatan creation')

        sambatan = services.get_sambatan(sambatan.id)
        return Response(
            SambatanDetailSerializer(sambatan, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class SambatanChangesView(MarketplaceAPIView):
    """
    GET /api/sambatan/changes/?since=<ISO-8601 timestamp>

    Campaigns (with participants) updated after `since`, oldest change
    first. Rows stamped within SAMBATAN_CHANGES_OVERLAP_SECONDS before
    `since` are sent again, so apply results as upserts keyed by id. Poll
    again with the returned cursor.

    Response (200): {"cursor": "<timestamp or null>", "results": [...]}
    """

    def get(self, request, *args, **kwargs):
        since_param = request.query_params.get('since')
        since = None

        if since_param:
            since_param = since_param.strip()
            try:
                since = parse_datetime(since_param)
                if since is None:
                    # A literal '+' in an unencoded query string arrives as a space
                    since = parse_datetime(since_param.replace(' ', '+'))
            except ValueError:
                since = None
            if since is None:
                return Response(
                    {'detail': 'Invalid value for "since". Must be an ISO-8601 timestamp.'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            if timezone.is_naive(since):
                since = timezone.make_aware(since, timezone.get_current_timezone())

        changes = list(services.get_sambatan_changes(since))
        newest = changes[-1].updated_at if changes else None
        if since is not None and (newest is None or newest < since):
            # Only re-sent rows; the cursor never moves backwards
            newest = since
        cursor = newest.isoformat() if newest else None

        return Response({
            'cursor': cursor,
            'results': SambatanDetailSerializer(changes, many=True, context={'request': request}).data,
        })


class MySambatanView(MarketplaceAPIView):
    """GET /api/sambatan/mine/ - campaigns the user takes part in, newest first."""

    def get(self, request, *args, **kwargs):
        error = self.authentication_error(request)
        if error is not None:
            return error

        sambatan_ids = services.get_user_participations(request.user).values_list('sambatan_id', flat=True)
        queryset = (
            Sambatan.objects.select_related(*services.SAMBATAN_RELATED)
            .prefetch_related('participants__participant')
            .filter(id__in=sambatan_ids)
            .order_by('-created_at')
        )
        return self.paginate(request, queryset, SambatanDetailSerializer)


class SambatanDetailView(MarketplaceAPIView):
    """GET /api/sambatan/<id>/"""

    def get(self, request, *args, **kwargs):
        try:
            sambatan = services.get_sambatan(kwargs.get('pk'))
        except SambatanError as e:
            return Response({'detail': e.message}, status=e.status_code)

        return Response(SambatanDetailSerializer(sambatan, context={'request': request}).data)


class SambatanParticipantsView(MarketplaceAPIView):
    """GET /api/sambatan/<id>/participants/ - participants in joining order."""

    def get(self, request, *args, **kwargs):
        sambatan_id = kwargs.get('pk')
        if not Sambatan.objects.filter(pk=sambatan_id).exists():
            return Response(
                {'detail': f'Sambatan with ID {sambatan_id} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )

        participants = services.get_sambatan_participants(sambatan_id)
        return Response(
            SambatanParticipantSerializer(participants, many=True, context={'request': request}).data
        )


class SambatanJoinView(MarketplaceAPIView):
    """
    POST /api/sambatan/<id>/join/
    Request body: {"quantity": 2}

    Success response (201): the new participation
    Error responses:
    - 400: Campaign closed or expired, not enough slots, invalid quantity
    - 401: Not authenticated
    - 404: Campaign not found
    - 409: Already participating
    """

    def post(self, request, *args, **kwargs):
        error = self.authentication_error(request)
        if error is not None:
            return error

        serializer = SambatanJoinSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            participation = services.join_sambatan(
                kwargs.get('pk'),
                request.user,
                serializer.validated_data['quantity'],
            )
        except SambatanError as e:
            return self.domain_error(request, e, f"Join of Sambatan {kwargs.get('pk')}")

        return Response(
            SambatanParticipantSerializer(participation, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )

    def get(self, request, *args, **kwargs):
        """GET method not allowed."""
        return Response(
            {'detail': 'Method "GET" not allowed.'},
            status=status.HTTP_405_METHOD_NOT_ALLOWED
        )


class SambatanPaymentView(MarketplaceAPIView):
    """
    POST /api/sambatan/<id>/payment/  (multipart)
    Fields: payment_proof (image or PDF, max 5MB), payment_method (optional)

    Only participants may upload; the payment stays pending until an admin
    verifies it.
    """
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request, *args, **kwargs):
        error = self.authentication_error(request)
        if error is not None:
            return error

        sambatan_id = kwargs.get('pk')
        try:
            sambatan = Sambatan.objects.get(pk=sambatan_id)
        except Sambatan.DoesNotExist:
            return Response(
                {'detail': f'Sambatan with ID {sambatan_id} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )

        permission = IsSambatanParticipant()
        if not permission.has_object_permission(request, self, sambatan):
            logger.warning(
                f"Payment upload by non-participant. Sambatan ID: {sambatan_id}, "
                f"User: {self.describe_user(request)}, IP: {self.get_client_ip(request)}"
            )
            return Response({'detail': permission.message}, status=status.HTTP_403_FORBIDDEN)

        serializer = PaymentSubmissionSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            participation = services.submit_payment(
                sambatan_id,
                request.user,
                serializer.validated_data['payment_proof'],
                serializer.validated_data.get('payment_method', ''),
            )
        except SambatanError as e:
            return self.domain_error(request, e, f'Payment submission for Sambatan {sambatan_id}')

        return Response(
            SambatanParticipantSerializer(participation, context={'request': request}).data,
            status=status.HTTP_200_OK
        )


# ============================================================================
# Sambatan Admin Views
# ============================================================================

class AdminSambatanListView(MarketplaceAPIView):
    """
    GET /api/admin/sambatan/?status=<open|closed|completed|cancelled>

    Staff only. All campaigns, newest first.
    """

    def get(self, request, *args, **kwargs):
        error = self.staff_error(request)
        if error is not None:
            return error

        queryset = Sambatan.objects.select_related(*services.SAMBATAN_RELATED).order_by('-created_at')

        status_filter = request.query_params.get('status')
        if status_filter:
            valid_statuses = [choice for choice, _label in Sambatan.STATUS_CHOICES]
            if status_filter not in valid_statuses:
                return Response(
                    {'detail': f"Invalid status. Must be one of: {', '.join(valid_statuses)}."},
                    status=status.HTTP_400_BAD_REQUEST
                )
            queryset = queryset.filter(status=status_filter)

        return self.paginate(request, queryset, SambatanListSerializer)


class AdminPaymentVerificationView(MarketplaceAPIView):
    """
    POST /api/admin/sambatan/<id>/participants/<participant_id>/verify/
    Request body: {"approve": true}

    participant_id is the participating user's id. Approval may complete
    the campaign; the response carries the campaign's resulting status.
    """

    def post(self, request, *args, **kwargs):
        error = self.staff_error(request)
        if error is not None:
            return error

        serializer = PaymentVerificationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        sambatan_id = kwargs.get('pk')
        participant_id = kwargs.get('participant_id')

        try:
            participation = services.verify_payment(
                sambatan_id,
                participant_id,
                serializer.validated_data['approve'],
                admin=request.user,
            )
        except SambatanError as e:
            return self.domain_error(request, e, f'Payment verification for Sambatan {sambatan_id}')

        sambatan_status = Sambatan.objects.values_list('status', flat=True).get(pk=sambatan_id)
        logger.info(
            f"Payment verification processed. Sambatan ID: {sambatan_id}, "
            f"Participant ID: {participant_id}, Payment Status: {participation.payment_status}, "
            f"Sambatan Status: {sambatan_status}, Admin: {self.describe_user(request)}, "
            f"IP: {self.get_client_ip(request)}"
        )

        return Response({
            'participant': SambatanParticipantSerializer(participation, context={'request': request}).data,
            'sambatan_status': sambatan_status,
        })


class AdminSambatanCompleteView(MarketplaceAPIView):
    """
    POST /api/admin/sambatan/<id>/complete/

    Runs status reconciliation on demand. Response: {"completed": bool, "sambatan": {...}}
    """

    def post(self, request, *args, **kwargs):
        error = self.staff_error(request)
        if error is not None:
            return error

        sambatan_id = kwargs.get('pk')
        try:
            completed = services.reconcile_sambatan_status(sambatan_id)
            sambatan = services.get_sambatan(sambatan_id)
        except SambatanError as e:
            return self.domain_error(request, e, f'Completion of Sambatan {sambatan_id}')

        logger.info(
            f"Manual completion requested. Sambatan ID: {sambatan_id}, Completed: {completed}, "
            f"Admin: {self.describe_user(request)}, IP: {self.get_client_ip(request)}"
        )
        return Response({
            'completed': completed,
            'sambatan': SambatanDetailSerializer(sambatan, context={'request': request}).data,
        })


class AdminSambatanCancelView(MarketplaceAPIView):
    """
    POST /api/admin/sambatan/<id>/cancel/
    Request body: {"reason": "..."} (optional)
    """

    def post(self, request, *args, **kwargs):
        error = self.staff_error(request)
        if error is not None:
            return error

        serializer = SambatanCancelSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        sambatan_id = kwargs.get('pk')
        try:
            services.cancel_sambatan(
                sambatan_id,
                reason=serializer.validated_data.get('reason', ''),
                admin=request.user,
            )
            sambatan = services.get_sambatan(sambatan_id)
        except SambatanError as e:
            return self.domain_error(request, e, f'Cancellation of Sambatan {sambatan_id}')

        return Response(SambatanDetailSerializer(sambatan, context={'request': request}).data)


# ============================================================================
# Notification Views
# ============================================================================

class NotificationListView(MarketplaceAPIView):
    """
    GET /api/notifications/?unread_only=true

    The user's notifications, newest first.
    """

    def get(self, request, *args, **kwargs):
        error = self.authentication_error(request)
        if error is not None:
            return error

        queryset = Notification.objects.filter(user=request.user).order_by('-created_at', '-id')
        unread_only = request.query_params.get('unread_only', '').lower()
        if unread_only == 'true':
            queryset = queryset.filter(is_read=False)

        return self.paginate(request, queryset, NotificationSerializer)


class NotificationUnreadCountView(MarketplaceAPIView):
    """GET /api/notifications/unread-count/"""

    def get(self, request, *args, **kwargs):
        error = self.authentication_error(request)
        if error is not None:
            return error

        count = Notification.objects.filter(user=request.user, is_read=False).count()
        return Response({'unread_count': count})


class NotificationReadView(MarketplaceAPIView):
    """PUT /api/notifications/<id>/read/"""

    def put(self, request, *args, **kwargs):
        error = self.authentication_error(request)
        if error is not None:
            return error

        notification_id = kwargs.get('pk')
        try:
            notification = Notification.objects.get(pk=notification_id)
        except Notification.DoesNotExist:
            return Response(
                {'detail': f'Notification with ID {notification_id} does not exist.'},
                status=status.HTTP_404_NOT_FOUND
            )

        permission = IsNotificationOwner()
        if not permission.has_object_permission(request, self, notification):
            logger.warning(
                f"Attempt to read another user's notification. Notification ID: {notification_id}, "
                f"User: {self.describe_user(request)}, IP: {self.get_client_ip(request)}"
            )
            return Response({'detail': permission.message}, status=status.HTTP_403_FORBIDDEN)

        notification.mark_read()
        return Response(NotificationSerializer(notification).data)


class NotificationReadAllView(MarketplaceAPIView):
    """PUT /api/notifications/read-all/"""

    def put(self, request, *args, **kwargs):
        error = self.authentication_error(request)
        if error is not None:
            return error

        updated = Notification.objects.filter(user=request.user, is_read=False).update(
            is_read=True,
            read_at=timezone.now(),
        )
        return Response({'updated': updated})
