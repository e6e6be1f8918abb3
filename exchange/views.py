"""
HTTP endpoints for swaps, feedback and moderation.

Each view authenticates the caller, shapes the request with a serializer and
hands off to exactly one engine call. Engine failures are translated to HTTP
responses by exchange_error_response().
"""

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import moderation, ratings, swaps
from .exceptions import DuplicateFeedback, DuplicateRequest, ExchangeError, Forbidden, NotFound
from .models import SwapStatus
from .permissions import IsStaffUser
from .serializers import (
    AdminSwapSerializer,
    FeedbackCreateSerializer,
    FeedbackSerializer,
    FeedbackUpdateSerializer,
    ModeratedUserSerializer,
    ReasonSerializer,
    ScheduleSerializer,
    SwapCreateSerializer,
    SwapSerializer,
)

User = get_user_model()
logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (DuplicateRequest, status.HTTP_409_CONFLICT),
    (DuplicateFeedback, status.HTTP_409_CONFLICT),
)


def exchange_error_response(exc, request):
    """
    Translate an engine failure into a response.

    NotFound -> 404, Forbidden -> 403, duplicates -> 409, any other
    ExchangeError or model ValidationError -> 400.
    """
    if isinstance(exc, DjangoValidationError):
        detail = exc.message_dict if hasattr(exc, 'error_dict') else {'detail': exc.messages}
        return Response(detail, status=status.HTTP_400_BAD_REQUEST)

    code = status.HTTP_400_BAD_REQUEST
    for error_class, error_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            code = error_code
            break

    logger.warning(
        f"Request rejected: {type(exc).__name__}: {exc.message} "
        f"User: {getattr(request.user, 'id', None)}, "
        f"Path: {request.path}"
    )
    return Response({'detail': exc.message, 'code': type(exc).__name__}, status=code)


class ExchangeAPIView(APIView):
    """
    Base view: runs the handler and converts engine errors to responses.
    """

    permission_classes = [IsAuthenticated]

    def handle_exception(self, exc):
        if isinstance(exc, (ExchangeError, DjangoValidationError)):
            return exchange_error_response(exc, self.request)
        return super().handle_exception(exc)


# ============================================================================
# Swap endpoints
# ============================================================================

class SwapListCreateView(ExchangeAPIView):
    """
    GET  /api/swaps/?status=<status>&role=<requester|provider>
    POST /api/swaps/

    Request body (POST):
    {
        "provider_id": 2,
        "offered_skill": {"skill": "Guitar", "estimated_hours": 4},
        "requested_skill": {"skill": "Spanish"},
        "message": "Happy to do weekends"
    }

    Error responses:
    - 400: Self-swap, unavailable provider, invalid data
    - 404: Provider not found
    - 409: Identical request already pending
    """

    def get(self, request, *args, **kwargs):
        swap_status = request.query_params.get('status')
        if swap_status and swap_status not in SwapStatus.values:
            return Response(
                {'status': [f'Unknown status "{swap_status}".']},
                status=status.HTTP_400_BAD_REQUEST
            )

        queryset = swaps.swaps_for_user(
            request.user,
            status=swap_status,
            role=request.query_params.get('role'),
        )
        return Response(SwapSerializer(queryset, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = SwapCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        swap = swaps.create_request(
            request.user,
            data['provider_id'],
            data['offered_skill'],
            data['requested_skill'],
            message=data['message'],
            scheduled_date=data['scheduled_date'],
        )
        return Response(SwapSerializer(swap).data, status=status.HTTP_201_CREATED)


class SwapDetailView(ExchangeAPIView):
    """
    GET    /api/swaps/<id>/  - participants only
    DELETE /api/swaps/<id>/  - requester only, pending swaps only
    """

    def get(self, request, pk, *args, **kwargs):
        swap = swaps.get_swap_for_participant(pk, request.user)
        return Response(SwapSerializer(swap).data)

    def delete(self, request, pk, *args, **kwargs):
        swaps.delete_swap(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class SwapTransitionView(ExchangeAPIView):
    """
    POST /api/swaps/<id>/<action>/

    action is one of accept, reject, cancel, start, complete. reject and
    cancel take an optional {"reason": "..."} body.

    Success response (200): the updated swap.
    Error responses:
    - 400: Transition not allowed from the current status
    - 403: Caller may not perform this action on this swap
    - 404: Swap not found
    """

    action = None

    def post(self, request, pk, *args, **kwargs):
        if self.action in ('reject', 'cancel'):
            serializer = ReasonSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            reason = serializer.validated_data['reason']
            swap = getattr(swaps, self.action)(pk, request.user, reason)
        elif self.action == 'complete':
            swap = swaps.mark_completed(pk, request.user)
        else:
            swap = getattr(swaps, self.action)(pk, request.user)

        return Response(SwapSerializer(swap).data, status=status.HTTP_200_OK)


class SwapScheduleView(ExchangeAPIView):
    """POST /api/swaps/<id>/schedule/ with {"scheduled_date": "..."}."""

    def post(self, request, pk, *args, **kwargs):
        serializer = ScheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        swap = swaps.schedule(pk, request.user, serializer.validated_data['scheduled_date'])
        return Response(SwapSerializer(swap).data)


class SwapStatsView(ExchangeAPIView):
    """GET /api/swaps/stats/ - the caller's swap counts per status."""

    def get(self, request, *args, **kwargs):
        return Response(swaps.user_swap_stats(request.user.id))


# ============================================================================
# Feedback endpoints
# ============================================================================

class FeedbackCreateView(ExchangeAPIView):
    """
    POST /api/feedback/

    Request body:
    {
        "swap_id": 12,
        "rating": 5,
        "comment": "Patient and clear",
        "categories": {"communication": 5, "reliability": 4}
    }

    Error responses:
    - 400: Swap is not completed, invalid data
    - 403: Caller did not take part in the swap
    - 404: Swap not found
    - 409: Caller already left feedback on this swap
    """

    def post(self, request, *args, **kwargs):
        serializer = FeedbackCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        feedback = ratings.submit_feedback(
            data['swap_id'],
            request.user,
            data['rating'],
            comment=data['comment'],
            categories=data.get('categories'),
            is_public=data['is_public'],
        )
        return Response(FeedbackSerializer(feedback).data, status=status.HTTP_201_CREATED)


class FeedbackDetailView(ExchangeAPIView):
    """
    PATCH  /api/feedback/<id>/  - original reviewer only
    DELETE /api/feedback/<id>/  - original reviewer only
    """

    def patch(self, request, pk, *args, **kwargs):
        serializer = FeedbackUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        feedback = ratings.edit_feedback(pk, request.user, **data)
        return Response(FeedbackSerializer(feedback).data)

    def delete(self, request, pk, *args, **kwargs):
        ratings.delete_feedback(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class FeedbackSummaryView(ExchangeAPIView):
    """
    GET /api/users/<id>/feedback-summary/ (public)

    Success response (200):
    {
        "user_id": 3,
        "average_rating": 4.5,
        "total_reviews": 2,
        "total_feedbacks": 2,
        "rating_distribution": {"5": 1, "4": 1, "3": 0, "2": 0, "1": 0},
        "categories": {"skill_quality": 4.5, ...}
    }
    """

    permission_classes = [AllowAny]

    def get(self, request, user_id, *args, **kwargs):
        try:
            user = User.objects.get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound('User not found.')

        summary = ratings.feedback_summary(user.pk)
        return Response({
            'user_id': user.pk,
            'total_reviews': user.total_reviews,
            **summary,
        })


class PublicFeedbackPagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = 'page_size'
    max_page_size = 100


class UserFeedbackListView(ExchangeAPIView):
    """
    GET /api/users/<id>/feedback/ (public)

    Lists the feedback a member received that is public and not flagged,
    newest first.

    Query parameters:
    - page: Page number (default: 1)
    - page_size: Results per page (default: 10, max: 100)

    Success response (200):
    {
        "count": 12,
        "next": "http://.../api/users/3/feedback/?page=2",
        "previous": null,
        "results": [{"id": 1, "rating": 5, ...}]
    }

    Error responses:
    - 403: Profile is private (owner and staff can still see it)
    - 404: User not found
    """

    permission_classes = [AllowAny]
    pagination_class = PublicFeedbackPagination

    def get(self, request, user_id, *args, **kwargs):
        try:
            user = User.objects.get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound('User not found.')

        viewer = request.user
        if not user.is_public and not (viewer.is_authenticated and (viewer.pk == user.pk or viewer.is_staff)):
            raise Forbidden('This profile is private.')

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(ratings.public_feedback_for(user.pk), request, view=self)
        serializer = FeedbackSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)


class AccountDeleteView(ExchangeAPIView):
    """DELETE /api/users/me/ - delete the caller's account."""

    def delete(self, request, *args, **kwargs):
        moderation.delete_account(request.user.id)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Moderation endpoints (staff only)
# ============================================================================

class AdminAPIView(ExchangeAPIView):
    permission_classes = [IsAuthenticated, IsStaffUser]


class AdminBanUserView(AdminAPIView):
    """POST /api/admin/users/<id>/ban/ with optional {"reason": "..."}."""

    def post(self, request, user_id, *args, **kwargs):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = moderation.ban_user(user_id, serializer.validated_data['reason'])
        logger.info(f"User {user_id} banned by admin {request.user.id}")
        return Response(ModeratedUserSerializer(user).data)


class AdminUnbanUserView(AdminAPIView):
    """POST /api/admin/users/<id>/unban/"""

    def post(self, request, user_id, *args, **kwargs):
        user = moderation.unban_user(user_id)
        logger.info(f"User {user_id} unbanned by admin {request.user.id}")
        return Response(ModeratedUserSerializer(user).data)


class AdminFeedbackFlagView(AdminAPIView):
    """
    POST /api/admin/feedback/<id>/flag/    with optional {"reason": "..."}
    POST /api/admin/feedback/<id>/unflag/
    """

    flag = True

    def post(self, request, pk, *args, **kwargs):
        if self.flag:
            serializer = ReasonSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            feedback = moderation.flag_feedback(pk, serializer.validated_data['reason'])
        else:
            feedback = moderation.unflag_feedback(pk)
        return Response(FeedbackSerializer(feedback).data)


class AdminSwapCancelView(AdminAPIView):
    """POST /api/admin/swaps/<id>/cancel/ with optional {"reason": "..."}."""

    def post(self, request, pk, *args, **kwargs):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        swap = moderation.force_cancel_swap(pk, serializer.validated_data['reason'])
        return Response(AdminSwapSerializer(swap).data)


class AdminSwapFlagView(AdminAPIView):
    """POST /api/admin/swaps/<id>/flag/ with optional {"reason": "..."}."""

    def post(self, request, pk, *args, **kwargs):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        swap = moderation.flag_swap(pk, serializer.validated_data['reason'])
        return Response(AdminSwapSerializer(swap).data)


class AdminStatsView(AdminAPIView):
    """GET /api/admin/stats/"""

    def get(self, request, *args, **kwargs):
        return Response(moderation.platform_stats())
