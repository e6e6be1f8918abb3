"""
Django admin configuration for members, swaps and feedback.

Moderation state is never edited directly here: the actions below go
through exchange.moderation so that cascades and rating recomputation
happen exactly as they do for the API.
"""

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from . import moderation
from .exceptions import ExchangeError
from .models import Feedback, Swap, User


def _run_for_each(modeladmin, request, queryset, operation, verb):
    """Apply a moderation operation to every selected row and report the outcome."""
    done = 0
    for obj in queryset:
        try:
            operation(obj.pk)
        except ExchangeError as exc:
            modeladmin.message_user(request, f'{obj}: {exc.message}', level=messages.WARNING)
        else:
            done += 1
    modeladmin.message_user(request, f'{done} {verb}.', level=messages.SUCCESS)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin interface for marketplace members.

    Extends Django's UserAdmin with the profile, moderation and reputation
    fields. Reputation fields are read-only; they are owned by the rating
    engine.
    """

    # Fields to display in the list view
    list_display = [
        'email',
        'username',
        'display_name',
        'status',
        'average_rating',
        'total_reviews',
        'completed_swaps',
        'is_staff',
        'is_active',
        'created_at',
    ]

    # Fields to filter by in the sidebar
    list_filter = [
        'status',
        'is_public',
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    # Fields to search
    search_fields = [
        'email',
        'username',
        'display_name',
        'first_name',
        'last_name',
        'location',
    ]

    # Default ordering
    ordering = ['-created_at']

    # Fields to display in the detail view
    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': (
                'first_name',
                'last_name',
                'display_name',
                'email',
                'location',
                'availability',
                'is_public',
            )
        }),
        (_('Skills'), {
            'fields': ('skills_offered', 'skills_wanted')
        }),
        (_('Reputation'), {
            'fields': ('average_rating', 'total_reviews', 'completed_swaps')
        }),
        (_('Moderation'), {
            'fields': ('status', 'ban_reason', 'banned_at')
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

    # Fields to display when adding a new user
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'password1',
                'password2',
                'display_name',
            ),
        }),
    )

    readonly_fields = [
        'average_rating',
        'total_reviews',
        'completed_swaps',
        'status',
        'ban_reason',
        'banned_at',
        'created_at',
        'updated_at',
        'last_login',
        'date_joined',
    ]

    actions = ['ban_users', 'unban_users']

    date_hierarchy = 'created_at'

    list_per_page = 25

    def get_readonly_fields(self, request, obj=None):
        """A banned member is reactivated through the unban action only."""
        readonly = list(super().get_readonly_fields(request, obj))
        if obj is not None and obj.is_banned():
            readonly.append('is_active')
        return readonly

    @admin.action(description=_('Ban selected users and cancel their pending swaps'))
    def ban_users(self, request, queryset):
        _run_for_each(self, request, queryset, moderation.ban_user, 'users banned')

    @admin.action(description=_('Unban selected users'))
    def unban_users(self, request, queryset):
        _run_for_each(self, request, queryset, moderation.unban_user, 'users unbanned')


@admin.register(Swap)
class SwapAdmin(admin.ModelAdmin):
    """Admin interface for Swap model. Status is read-only; use the actions."""

    list_display = [
        'id',
        'requester',
        'provider',
        'offered_skill',
        'requested_skill',
        'status',
        'flagged',
        'created_at',
    ]

    list_filter = [
        'status',
        'flagged',
        'created_at',
    ]

    search_fields = [
        'requester__email',
        'requester__username',
        'provider__email',
        'provider__username',
        'offered_skill',
        'requested_skill',
    ]

    readonly_fields = [
        'requester',
        'provider',
        'status',
        'requester_completed',
        'provider_completed',
        'contact_exchanged',
        'cancelled_by',
        'accepted_at',
        'rejected_at',
        'started_at',
        'cancelled_at',
        'completed_at',
        'created_at',
        'updated_at',
    ]

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('requester', 'provider', 'status', 'message')
        }),
        (_('Skills'), {
            'fields': (
                'offered_skill', 'offered_skill_description', 'offered_skill_hours',
                'requested_skill', 'requested_skill_description', 'requested_skill_hours',
            )
        }),
        (_('Progress'), {
            'fields': (
                'scheduled_date', 'contact_exchanged',
                'requester_completed', 'provider_completed',
                'rejection_reason', 'cancellation_reason', 'cancelled_by',
            )
        }),
        (_('Moderation'), {
            'fields': ('flagged', 'flag_reason', 'admin_notes')
        }),
        (_('Timestamps'), {
            'fields': (
                'accepted_at', 'rejected_at', 'started_at', 'cancelled_at',
                'completed_at', 'created_at', 'updated_at',
            ),
            'classes': ('collapse',),
        }),
    )

    actions = ['force_cancel_swaps', 'flag_swaps']

    @admin.action(description=_('Cancel selected swaps'))
    def force_cancel_swaps(self, request, queryset):
        _run_for_each(self, request, queryset, moderation.force_cancel_swap, 'swaps cancelled')

    @admin.action(description=_('Flag selected swaps'))
    def flag_swaps(self, request, queryset):
        _run_for_each(self, request, queryset, moderation.flag_swap, 'swaps flagged')


@admin.register(Feedback)
class FeedbackAdmin(admin.ModelAdmin):
    """Admin interface for Feedback model."""

    list_display = [
        'id',
        'reviewer',
        'reviewee',
        'swap',
        'rating',
        'flagged',
        'admin_reviewed',
        'created_at',
    ]

    list_filter = [
        'rating',
        'flagged',
        'admin_reviewed',
        'created_at',
    ]

    search_fields = [
        'reviewer__email',
        'reviewer__username',
        'reviewee__email',
        'reviewee__username',
        'comment',
    ]

    readonly_fields = [
        'swap',
        'reviewer',
        'reviewee',
        'rating',
        'skill_quality',
        'communication',
        'reliability',
        'professionalism',
        'flagged',
        'flag_reason',
        'created_at',
        'updated_at',
    ]

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('reviewer', 'reviewee', 'swap')
        }),
        (_('Feedback Content'), {
            'fields': (
                'rating', 'comment', 'skill_quality', 'communication',
                'reliability', 'professionalism', 'is_public',
            )
        }),
        (_('Moderation'), {
            'fields': ('flagged', 'flag_reason', 'admin_reviewed', 'admin_notes')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    actions = ['flag_selected', 'unflag_selected']

    @admin.action(description=_('Flag selected feedback (excluded from ratings)'))
    def flag_selected(self, request, queryset):
        _run_for_each(self, request, queryset, moderation.flag_feedback, 'feedback flagged')

    @admin.action(description=_('Unflag selected feedback'))
    def unflag_selected(self, request, queryset):
        _run_for_each(self, request, queryset, moderation.unflag_feedback, 'feedback unflagged')
