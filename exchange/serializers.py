"""
Serializers for the swap, feedback and moderation endpoints.

Input serializers only shape request data; every business rule is enforced
by the engines in exchange.swaps, exchange.ratings and exchange.moderation.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import Feedback, Swap

User = get_user_model()


class ParticipantSerializer(serializers.ModelSerializer):
    """
    Nested serializer for user information in swap and feedback responses.

    Fields:
    - id: User ID
    - username / display_name: Public identity
    - average_rating / total_reviews / completed_swaps: Reputation counters
    """

    class Meta:
        model = User
        fields = ['id', 'username', 'display_name', 'average_rating', 'total_reviews', 'completed_swaps']
        read_only_fields = fields


class SkillDescriptorSerializer(serializers.Serializer):
    skill = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    estimated_hours = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=100)

    def validate_skill(self, value):
        if not value.strip():
            raise serializers.ValidationError("Skill name cannot be empty.")
        return value.strip()


class SwapCreateSerializer(serializers.Serializer):
    """
    Request body for POST /api/swaps/.

    Fields:
    - provider_id: Member asked to provide requested_skill
    - offered_skill / requested_skill: {"skill", "description", "estimated_hours"}
    - message: Optional note (max 500 characters)
    - scheduled_date: Optional proposed date
    """

    provider_id = serializers.IntegerField()
    offered_skill = SkillDescriptorSerializer()
    requested_skill = SkillDescriptorSerializer()
    message = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    scheduled_date = serializers.DateTimeField(required=False, allow_null=True, default=None)


class SwapSerializer(serializers.ModelSerializer):
    """Full swap representation returned by every swap endpoint."""

    requester = ParticipantSerializer(read_only=True)
    provider = ParticipantSerializer(read_only=True)
    offered_skill = serializers.SerializerMethodField()
    requested_skill = serializers.SerializerMethodField()

    class Meta:
        model = Swap
        fields = [
            'id', 'requester', 'provider', 'offered_skill', 'requested_skill', 'status',
            'message', 'rejection_reason', 'cancellation_reason', 'scheduled_date',
            'requester_completed', 'provider_completed', 'contact_exchanged',
            'accepted_at', 'rejected_at', 'started_at', 'cancelled_at', 'completed_at',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_offered_skill(self, obj):
        return {
            'skill': obj.offered_skill,
            'description': obj.offered_skill_description,
            'estimated_hours': obj.offered_skill_hours,
        }

    def get_requested_skill(self, obj):
        return {
            'skill': obj.requested_skill,
            'description': obj.requested_skill_description,
            'estimated_hours': obj.requested_skill_hours,
        }


class AdminSwapSerializer(SwapSerializer):
    """Swap representation for staff, including moderation fields."""

    class Meta(SwapSerializer.Meta):
        fields = SwapSerializer.Meta.fields + ['flagged', 'flag_reason', 'admin_notes']
        read_only_fields = fields


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class ScheduleSerializer(serializers.Serializer):
    scheduled_date = serializers.DateTimeField()


class FeedbackCategoriesSerializer(serializers.Serializer):
    skill_quality = serializers.IntegerField(required=False, min_value=1, max_value=5)
    communication = serializers.IntegerField(required=False, min_value=1, max_value=5)
    reliability = serializers.IntegerField(required=False, min_value=1, max_value=5)
    professionalism = serializers.IntegerField(required=False, min_value=1, max_value=5)


class FeedbackCreateSerializer(serializers.Serializer):
    """
    Request body for POST /api/feedback/.

    The reviewee is not part of the request: it is always the other
    participant of the swap.
    """

    swap_id = serializers.IntegerField()
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')
    categories = FeedbackCategoriesSerializer(required=False)
    is_public = serializers.BooleanField(required=False, default=True)


class FeedbackUpdateSerializer(serializers.Serializer):
    """Request body for PATCH /api/feedback/<id>/; every field is optional."""

    rating = serializers.IntegerField(required=False, min_value=1, max_value=5)
    comment = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    categories = FeedbackCategoriesSerializer(required=False)
    is_public = serializers.BooleanField(required=False)


class FeedbackSerializer(serializers.ModelSerializer):
    reviewer = ParticipantSerializer(read_only=True)
    reviewee = ParticipantSerializer(read_only=True)
    swap_id = serializers.IntegerField(read_only=True)
    categories = serializers.SerializerMethodField()

    class Meta:
        model = Feedback
        fields = [
            'id', 'swap_id', 'reviewer', 'reviewee', 'rating', 'comment', 'categories',
            'is_public', 'flagged', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_categories(self, obj):
        return obj.categories()


class ModeratedUserSerializer(serializers.ModelSerializer):
    """User representation returned by the ban/unban endpoints."""

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'status', 'is_active', 'ban_reason', 'banned_at']
        read_only_fields = fields
