"""
Moderation layer: administrative overrides.

None of these functions edit swap status or rating fields themselves; they
change the moderation state and then go through exchange.swaps and
exchange.ratings so the same rules apply as for member actions.
"""

import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Avg, Count, Q
from django.utils import timezone

from . import ratings, swaps
from .exceptions import Forbidden, NotFound
from .models import Feedback, Swap, SwapStatus, User

logger = logging.getLogger(__name__)

DEFAULT_REASONS = {
    'BAN_CANCEL_REASON': 'User banned',
    'DELETION_CANCEL_REASON': 'Account deleted',
    'ADMIN_CANCEL_REASON': 'Cancelled by admin',
}


def _reason(key):
    return getattr(settings, 'SKILLSWAP', {}).get(key, DEFAULT_REASONS[key])


def _lock_user(user_id):
    try:
        return User.objects.select_for_update().get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'User with ID {user_id} does not exist.')


def _lock_feedback(feedback_id):
    try:
        return Feedback.objects.select_for_update().get(pk=feedback_id)
    except (Feedback.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'Feedback with ID {feedback_id} does not exist.')


# ============================================================================
# Members
# ============================================================================

def ban_user(user_id, reason=''):
    """
    Ban a member and cancel their pending swaps.

    The member is also deactivated so they can no longer authenticate.
    Swaps that are already accepted or in progress are not cancelled.

    Returns:
        User: The banned member

    Raises:
        NotFound: member does not exist
        Forbidden: member is staff
    """
    with transaction.atomic():
        user = _lock_user(user_id)
        if user.is_staff or user.is_superuser:
            raise Forbidden('Cannot ban admin users.')

        user.status = User.Status.BANNED
        user.is_active = False
        user.ban_reason = reason or ''
        user.banned_at = timezone.now()
        user.save(update_fields=['status', 'is_active', 'ban_reason', 'banned_at', 'updated_at'])

        cancelled = swaps.cascade_cancel_for_user(user.pk, _reason('BAN_CANCEL_REASON'))

    logger.info(f"User {user.pk} banned ({reason!r}); {cancelled} pending swaps cancelled")
    return user


def unban_user(user_id):
    """Lift a ban. Swaps cancelled by the ban stay cancelled."""
    with transaction.atomic():
        user = _lock_user(user_id)
        user.status = User.Status.ACTIVE
        user.is_active = True
        user.ban_reason = ''
        user.banned_at = None
        user.save(update_fields=['status', 'is_active', 'ban_reason', 'banned_at', 'updated_at'])

    logger.info(f"User {user.pk} unbanned")
    return user


def delete_account(user_id):
    """
    Delete a member's account.

    Steps:
    1. Cancel the member's pending swaps
    2. Remember whose rating the member's own feedback contributes to
    3. Delete the member (their feedback goes with them; other swaps are kept
       with the participant reference cleared)
    4. Recompute the ratings of those reviewees
    """
    with transaction.atomic():
        user = _lock_user(user_id)
        cancelled = swaps.cascade_cancel_for_user(user.pk, _reason('DELETION_CANCEL_REASON'))

        reviewee_ids = list(
            Feedback.objects.filter(reviewer=user)
            .values_list('reviewee_id', flat=True)
            .distinct()
        )
        user.delete()

        for reviewee_id in reviewee_ids:
            ratings.recompute(reviewee_id)

    logger.info(
        f"User {user_id} deleted; {cancelled} pending swaps cancelled, "
        f"{len(reviewee_ids)} ratings recomputed"
    )


# ============================================================================
# Feedback
# ============================================================================

def flag_feedback(feedback_id, reason=''):
    """
    Flag feedback; it stops counting towards the reviewee's rating.

    Returns:
        Feedback: The flagged record
    """
    with transaction.atomic():
        feedback = _lock_feedback(feedback_id)
        feedback.flagged = True
        feedback.flag_reason = reason or ''
        feedback.admin_reviewed = True
        feedback.save(update_fields=['flagged', 'flag_reason', 'admin_reviewed', 'updated_at'])
        ratings.recompute(feedback.reviewee_id)

    logger.info(f"Feedback {feedback.pk} flagged ({reason!r})")
    return feedback


def unflag_feedback(feedback_id):
    """Clear a flag; the feedback counts towards the rating again."""
    with transaction.atomic():
        feedback = _lock_feedback(feedback_id)
        feedback.flagged = False
        feedback.flag_reason = ''
        feedback.admin_reviewed = True
        feedback.save(update_fields=['flagged', 'flag_reason', 'admin_reviewed', 'updated_at'])
        ratings.recompute(feedback.reviewee_id)

    logger.info(f"Feedback {feedback.pk} unflagged")
    return feedback


# ============================================================================
# Swaps
# ============================================================================

def force_cancel_swap(swap_id, reason=''):
    """Cancel any non-terminal swap regardless of who asks."""
    swap = swaps.force_cancel(swap_id, reason or _reason('ADMIN_CANCEL_REASON'))
    logger.info(f"Swap {swap.pk} force-cancelled by moderation")
    return swap


def flag_swap(swap_id, reason=''):
    """Mark a swap for admin attention. Its status is not changed."""
    with transaction.atomic():
        try:
            swap = Swap.objects.select_for_update().get(pk=swap_id)
        except (Swap.DoesNotExist, ValueError, TypeError):
            raise NotFound(f'Swap with ID {swap_id} does not exist.')
        swap.flagged = True
        swap.flag_reason = reason or ''
        swap.save(update_fields=['flagged', 'flag_reason', 'updated_at'])

    logger.info(f"Swap {swap.pk} flagged ({reason!r})")
    return swap


# ============================================================================
# Reporting
# ============================================================================

def platform_stats(top_skills=10):
    """
    Marketplace-wide counters for the admin dashboard.

    Returns:
        dict: users, swaps (per status), feedback and most offered skills
    """
    users = User.objects.aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(status=User.Status.ACTIVE)),
        banned=Count('id', filter=Q(status=User.Status.BANNED)),
    )

    swap_counts = {'total': 0}
    swap_counts.update({value: 0 for value in SwapStatus.values})
    for row in Swap.objects.values('status').annotate(count=Count('id')):
        swap_counts[row['status']] = row['count']
        swap_counts['total'] += row['count']

    counted = Feedback.objects.filter(flagged=False)
    feedback = counted.aggregate(total=Count('id'), average=Avg('rating'))
    average = feedback['average']

    skill_counts = {}
    for skills in User.objects.values_list('skills_offered', flat=True):
        for skill in skills or []:
            skill_counts[skill] = skill_counts.get(skill, 0) + 1
    popular = sorted(skill_counts.items(), key=lambda item: (-item[1], item[0]))[:top_skills]

    return {
        'users': users,
        'swaps': swap_counts,
        'feedback': {
            'total': feedback['total'],
            'flagged': Feedback.objects.filter(flagged=True).count(),
            'average_rating': ratings.round_rating(average) if average is not None else ratings.ZERO,
        },
        'popular_skills': [{'skill': skill, 'count': count} for skill, count in popular],
    }
