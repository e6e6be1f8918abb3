"""
Data model for the skill swap marketplace: members, swaps and feedback.
"""

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


def normalize_skill(name):
    """Canonical form used when comparing skill tags."""
    return (name or '').strip().casefold()


class User(AbstractUser):
    """
    Marketplace member extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address
    - display_name / location / availability: Public profile details
    - skills_offered / skills_wanted: Lists of free-form skill tags
    - status: 'active' or 'banned' (moderation state)
    - ban_reason / banned_at: Set while the member is banned
    - average_rating / total_reviews: Maintained by the rating engine only
    - completed_swaps: Incremented once per swap that reaches 'completed'
    """

    class Status(models.TextChoices):
        ACTIVE = 'active', _('Active')
        BANNED = 'banned', _('Banned')

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

    display_name = models.CharField(
        _('display name'),
        max_length=150,
        blank=True,
        default='',
    )

    location = models.CharField(
        _('location'),
        max_length=200,
        blank=True,
        default='',
    )

    availability = models.CharField(
        _('availability'),
        max_length=200,
        blank=True,
        default='',
        help_text=_('Free-form availability, e.g. "weekends".')
    )

    skills_offered = models.JSONField(
        _('skills offered'),
        default=list,
        blank=True,
        help_text=_('Skill tags this member can teach.')
    )

    skills_wanted = models.JSONField(
        _('skills wanted'),
        default=list,
        blank=True,
        help_text=_('Skill tags this member wants to learn.')
    )

    is_public = models.BooleanField(
        _('public profile'),
        default=True,
    )

    status = models.CharField(
        _('status'),
        max_length=10,
        choices=Status.choices,
        default=Status.ACTIVE,
    )

    ban_reason = models.CharField(
        _('ban reason'),
        max_length=500,
        blank=True,
        default='',
    )

    banned_at = models.DateTimeField(
        _('banned at'),
        null=True,
        blank=True,
    )

    average_rating = models.DecimalField(
        _('average rating'),
        max_digits=2,
        decimal_places=1,
        default=Decimal('0.0'),
        validators=[
            MinValueValidator(Decimal('0.0'), message=_('Rating cannot be negative.')),
            MaxValueValidator(Decimal('5.0'), message=_('Rating cannot exceed 5.0.'))
        ],
        help_text=_('Mean of non-flagged feedback ratings, one decimal.')
    )

    total_reviews = models.PositiveIntegerField(
        _('total reviews'),
        default=0,
    )

    completed_swaps = models.PositiveIntegerField(
        _('completed swaps'),
        default=0,
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='exchange_us_status_8f3c1a_idx'),
            models.Index(fields=['average_rating'], name='exchange_us_average_2b7d4e_idx'),
        ]

    def __str__(self):
        return self.display_name or self.email or self.username

    def is_banned(self):
        return self.status == self.Status.BANNED

    def is_available(self):
        """
        Check whether the member can receive swap requests.

        Returns:
            bool: False if the account is banned or deactivated
        """
        return self.is_active and not self.is_banned()

    def offers_skill(self, skill):
        """Case-insensitive membership test against skills_offered."""
        wanted = normalize_skill(skill)
        return any(normalize_skill(s) == wanted for s in self.skills_offered or [])

    def clean(self):
        super().clean()

        # Normalize email to lowercase for case-insensitive uniqueness
        if self.email:
            self.email = self.email.lower()

        if not isinstance(self.skills_offered, list):
            raise ValidationError({'skills_offered': _('Skills must be a list of tags.')})
        if not isinstance(self.skills_wanted, list):
            raise ValidationError({'skills_wanted': _('Skills must be a list of tags.')})


class SwapStatus(models.TextChoices):
    PENDING = 'pending', _('Pending')
    ACCEPTED = 'accepted', _('Accepted')
    REJECTED = 'rejected', _('Rejected')
    IN_PROGRESS = 'in_progress', _('In progress')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')


TERMINAL_STATUSES = frozenset({
    SwapStatus.REJECTED,
    SwapStatus.COMPLETED,
    SwapStatus.CANCELLED,
})


def _hours_validators():
    return [
        MinValueValidator(1, message=_('Estimated hours must be at least 1.')),
        MaxValueValidator(100, message=_('Estimated hours must be at most 100.')),
    ]


class Swap(models.Model):
    """
    An exchange of the requester's offered skill for the provider's skill.

    The status field is only ever changed through exchange.swaps; the
    participant references are nulled (not cascaded) when an account is
    deleted so that finished swaps remain as an audit trail.
    """

    requester = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='swaps_requested',
        help_text=_('Member who proposed the swap')
    )

    provider = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='swaps_provided',
        help_text=_('Member asked to provide the requested skill')
    )

    offered_skill = models.CharField(_('offered skill'), max_length=100)
    offered_skill_description = models.TextField(_('offered skill description'), blank=True, default='')
    offered_skill_hours = models.PositiveSmallIntegerField(
        _('offered skill estimated hours'),
        null=True,
        blank=True,
        validators=_hours_validators(),
    )

    requested_skill = models.CharField(_('requested skill'), max_length=100)
    requested_skill_description = models.TextField(_('requested skill description'), blank=True, default='')
    requested_skill_hours = models.PositiveSmallIntegerField(
        _('requested skill estimated hours'),
        null=True,
        blank=True,
        validators=_hours_validators(),
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=SwapStatus.choices,
        default=SwapStatus.PENDING,
    )

    message = models.CharField(_('message'), max_length=500, blank=True, default='')
    rejection_reason = models.CharField(_('rejection reason'), max_length=500, blank=True, default='')
    cancellation_reason = models.CharField(_('cancellation reason'), max_length=500, blank=True, default='')
    cancelled_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text=_('Participant who cancelled; empty for system cancellations')
    )

    scheduled_date = models.DateTimeField(_('scheduled date'), null=True, blank=True)

    requester_completed = models.BooleanField(_('requester marked complete'), default=False)
    provider_completed = models.BooleanField(_('provider marked complete'), default=False)
    contact_exchanged = models.BooleanField(_('contact exchanged'), default=False)

    accepted_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    # Admin monitoring
    flagged = models.BooleanField(_('flagged'), default=False)
    flag_reason = models.CharField(_('flag reason'), max_length=500, blank=True, default='')
    admin_notes = models.TextField(_('admin notes'), blank=True, default='')

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('swap')
        verbose_name_plural = _('swaps')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['requester', 'status'], name='exchange_sw_request_5a1e9c_idx'),
            models.Index(fields=['provider', 'status'], name='exchange_sw_provide_c4d2b7_idx'),
            models.Index(fields=['status', 'created_at'], name='exchange_sw_status_9e0f3d_idx'),
            models.Index(fields=['offered_skill', 'requested_skill'], name='exchange_sw_offered_71b8a2_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['requester', 'provider', 'offered_skill', 'requested_skill'],
                name='unique_pending_swap_request',
                condition=models.Q(status='pending')
            )
        ]

    def __str__(self):
        return f"Swap #{self.pk}: {self.offered_skill} for {self.requested_skill} ({self.status})"

    def role_of(self, user_id):
        """
        Return 'requester', 'provider' or None for the given user id.
        """
        if user_id is None:
            return None
        if user_id == self.requester_id:
            return 'requester'
        if user_id == self.provider_id:
            return 'provider'
        return None

    def is_participant(self, user_id):
        return self.role_of(user_id) is not None

    def other_participant_id(self, user_id):
        role = self.role_of(user_id)
        if role == 'requester':
            return self.provider_id
        if role == 'provider':
            return self.requester_id
        return None

    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def clean(self):
        super().clean()

        # Prevent user from requesting swap with themselves
        if self.requester_id and self.provider_id and self.requester_id == self.provider_id:
            raise ValidationError({
                'provider': _('Cannot create swap request with yourself.')
            })

        if self.status == SwapStatus.COMPLETED:
            if not (self.requester_completed and self.provider_completed and self.completed_at):
                raise ValidationError({
                    'status': _('A completed swap needs both completion flags and a completion time.')
                })

    def save(self, *args, **kwargs):
        """
        Validate fields before saving.

        Constraints are left to the database so that a concurrent duplicate
        surfaces as IntegrityError rather than a stale validation query.
        """
        self.full_clean(validate_constraints=False)
        super().save(*args, **kwargs)


class Feedback(models.Model):
    """
    Post-completion rating one swap participant leaves about the other.

    Fields:
    - swap / reviewer / reviewee: Reviewee is always the other participant
    - rating: Integer 1-5
    - skill_quality, communication, reliability, professionalism:
      Optional category sub-ratings, 1-5
    - is_public: Visibility on the reviewee's profile
    - flagged / flag_reason / admin_reviewed: Moderation state; flagged
      feedback is excluded from rating aggregation
    """

    CATEGORY_FIELDS = ('skill_quality', 'communication', 'reliability', 'professionalism')

    swap = models.ForeignKey(
        Swap,
        on_delete=models.CASCADE,
        related_name='feedback',
    )

    reviewer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='feedback_given',
        help_text=_('User writing the feedback')
    )

    reviewee = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='feedback_received',
        help_text=_('User receiving the feedback')
    )

    rating = models.PositiveSmallIntegerField(
        _('rating'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ],
        help_text=_('Rating from 1 to 5 stars')
    )

    comment = models.TextField(_('comment'), max_length=1000, blank=True, default='')

    skill_quality = models.PositiveSmallIntegerField(null=True, blank=True)
    communication = models.PositiveSmallIntegerField(null=True, blank=True)
    reliability = models.PositiveSmallIntegerField(null=True, blank=True)
    professionalism = models.PositiveSmallIntegerField(null=True, blank=True)

    is_public = models.BooleanField(_('public'), default=True)

    # Admin moderation
    flagged = models.BooleanField(_('flagged'), default=False)
    flag_reason = models.CharField(_('flag reason'), max_length=500, blank=True, default='')
    admin_reviewed = models.BooleanField(_('admin reviewed'), default=False)
    admin_notes = models.TextField(_('admin notes'), blank=True, default='')

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('feedback')
        verbose_name_plural = _('feedback')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['reviewee', 'created_at'], name='exchange_fe_reviewe_3d6a0f_idx'),
            models.Index(fields=['reviewer', 'created_at'], name='exchange_fe_reviewe_8b2c5e_idx'),
            models.Index(fields=['rating'], name='exchange_fe_rating_4f7e1b_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['swap', 'reviewer'],
                name='unique_feedback_per_swap_reviewer'
            )
        ]

    def __str__(self):
        return f"Feedback by {self.reviewer_id} for {self.reviewee_id} - {self.rating}★"

    def categories(self):
        return {name: getattr(self, name) for name in self.CATEGORY_FIELDS}

    def save(self, *args, **kwargs):
        """
        Validate business rules, then save.

        full_clean() is not called so that the (swap, reviewer) unique
        constraint raises IntegrityError at the database level.
        """
        if self.reviewer_id and self.reviewee_id and self.reviewer_id == self.reviewee_id:
            raise ValidationError({
                'reviewee': _('Cannot leave feedback for yourself.')
            })

        if not isinstance(self.rating, int) or isinstance(self.rating, bool) or not 1 <= self.rating <= 5:
            raise ValidationError({
                'rating': _('Rating must be an integer between 1 and 5.')
            })

        for name in self.CATEGORY_FIELDS:
            value = getattr(self, name)
            if value is not None and not 1 <= value <= 5:
                raise ValidationError({
                    name: _('Category ratings must be between 1 and 5.')
                })

        super().save(*args, **kwargs)
