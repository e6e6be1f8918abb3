"""
URL configuration for the skillswap project.
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from exchange.views import (
    AccountDeleteView,
    AdminBanUserView,
    AdminFeedbackFlagView,
    AdminStatsView,
    AdminSwapCancelView,
    AdminSwapFlagView,
    AdminUnbanUserView,
    FeedbackCreateView,
    FeedbackDetailView,
    FeedbackSummaryView,
    SwapDetailView,
    SwapListCreateView,
    SwapScheduleView,
    SwapStatsView,
    SwapTransitionView,
    UserFeedbackListView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # JWT Authentication endpoints
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # Swap endpoints
    path('api/swaps/', SwapListCreateView.as_view(), name='swap_list_create'),
    path('api/swaps/stats/', SwapStatsView.as_view(), name='swap_stats'),
    path('api/swaps/<int:pk>/', SwapDetailView.as_view(), name='swap_detail'),
    path('api/swaps/<int:pk>/accept/', SwapTransitionView.as_view(action='accept'), name='swap_accept'),
    path('api/swaps/<int:pk>/reject/', SwapTransitionView.as_view(action='reject'), name='swap_reject'),
    path('api/swaps/<int:pk>/cancel/', SwapTransitionView.as_view(action='cancel'), name='swap_cancel'),
    path('api/swaps/<int:pk>/start/', SwapTransitionView.as_view(action='start'), name='swap_start'),
    path('api/swaps/<int:pk>/complete/', SwapTransitionView.as_view(action='complete'), name='swap_complete'),
    path('api/swaps/<int:pk>/schedule/', SwapScheduleView.as_view(), name='swap_schedule'),

    # Feedback endpoints
    path('api/feedback/', FeedbackCreateView.as_view(), name='feedback_create'),
    path('api/feedback/<int:pk>/', FeedbackDetailView.as_view(), name='feedback_detail'),

    # Member endpoints
    path('api/users/me/', AccountDeleteView.as_view(), name='account_delete'),
    path('api/users/<int:user_id>/feedback-summary/', FeedbackSummaryView.as_view(), name='feedback_summary'),
    path('api/users/<int:user_id>/feedback/', UserFeedbackListView.as_view(), name='user_feedback_list'),

    # Moderation endpoints
    path('api/admin/users/<int:user_id>/ban/', AdminBanUserView.as_view(), name='admin_ban_user'),
    path('api/admin/users/<int:user_id>/unban/', AdminUnbanUserView.as_view(), name='admin_unban_user'),
    path('api/admin/feedback/<int:pk>/flag/', AdminFeedbackFlagView.as_view(flag=True), name='admin_flag_feedback'),
    path('api/admin/feedback/<int:pk>/unflag/', AdminFeedbackFlagView.as_view(flag=False), name='admin_unflag_feedback'),
    path('api/admin/swaps/<int:pk>/cancel/', AdminSwapCancelView.as_view(), name='admin_cancel_swap'),
    path('api/admin/swaps/<int:pk>/flag/', AdminSwapFlagView.as_view(), name='admin_flag_swap'),
    path('api/admin/stats/', AdminStatsView.as_view(), name='admin_stats'),
]
