"""
Rating aggregation engine.

A member's average_rating and total_reviews are derived from the
non-flagged feedback that names them as reviewee. Every feedback write in
this module is followed, inside the same transaction, by recompute() for
the affected reviewee. recompute() locks the reviewee's row first, so two
concurrent writes for the same member are applied one after the other and
the later one always sees the earlier one's feedback.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, Q, Sum

from .exceptions import DuplicateFeedback, Forbidden, IllegalState, NotFound
from .models import Feedback, Swap, SwapStatus, User

logger = logging.getLogger(__name__)

ONE_DECIMAL = Decimal('0.1')
ZERO = Decimal('0.0')


def round_rating(value):
    """Round to one decimal place, halves away from zero."""
    return Decimal(str(value)).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def mean_rating(total, count):
    """
    Average of `count` ratings summing to `total`, one decimal.

    Returns Decimal('0.0') when there is nothing to average.
    """
    if not count:
        return ZERO
    return round_rating(Decimal(total) / Decimal(count))


def counted_feedback(user_id):
    """Feedback that counts towards a member's rating."""
    return Feedback.objects.filter(reviewee_id=user_id, flagged=False)


def compute_rating(user_id):
    """
    Read-only aggregate of a member's counted feedback.

    Returns:
        tuple: (average_rating: Decimal, total_reviews: int)
    """
    stats = counted_feedback(user_id).aggregate(total=Sum('rating'), count=Count('id'))
    count = stats['count'] or 0
    return mean_rating(stats['total'] or 0, count), count


def recompute(user_id):
    """
    Rewrite a member's average_rating and total_reviews from scratch.

    Runs a full scan of their counted feedback under a row lock on the
    member.

    Returns:
        dict: {'average_rating': Decimal, 'total_reviews': int}

    Raises:
        NotFound: If the member does not exist
    """
    with transaction.atomic():
        try:
            user = User.objects.select_for_update().get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f'User with ID {user_id} does not exist.')

        average, count = compute_rating(user_id)
        user.average_rating = average
        user.total_reviews = count
        user.save(update_fields=['average_rating', 'total_reviews', 'updated_at'])

    logger.info(f"Recomputed rating for user {user_id}: average={average}, count={count}")
    return {'average_rating': average, 'total_reviews': count}


def recompute_all(batch_size=1000, dry_run=False):
    """
    Repair drift in every member's stored rating.

    Args:
        batch_size: Rows fetched per query
        dry_run: Report the differences without saving them

    Returns:
        list: (user_id, (old_average, old_total), (new_average, new_total))
        for every member whose stored values were wrong
    """
    changes = []

    users = User.objects.order_by('pk').only('id', 'average_rating', 'total_reviews')
    for user in users.iterator(chunk_size=batch_size):
        average, count = compute_rating(user.pk)
        if user.average_rating == average and user.total_reviews == count:
            continue

        changes.append((user.pk, (user.average_rating, user.total_reviews), (average, count)))

    if not dry_run:
        # recompute() takes the row lock and stamps updated_at
        for user_id, _, _ in changes:
            recompute(user_id)

    logger.info(
        f"Rating repair {'(dry run) ' if dry_run else ''}found {len(changes)} members out of date"
    )
    return changes


# ============================================================================
# Feedback operations
# ============================================================================

def _get_feedback(feedback_id):
    try:
        return Feedback.objects.select_for_update().get(pk=feedback_id)
    except (Feedback.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'Feedback with ID {feedback_id} does not exist.')


def _apply_categories(feedback, categories):
    for name, value in (categories or {}).items():
        if name not in Feedback.CATEGORY_FIELDS:
            raise ValidationError({'categories': f'Unknown feedback category: {name}'})
        setattr(feedback, name, value)


def submit_feedback(swap_id, reviewer, rating, comment='', categories=None, is_public=True):
    """
    Leave feedback on a completed swap for the other participant.

    Args:
        swap_id: Completed swap being reviewed
        reviewer: Participant writing the feedback
        rating: Integer 1-5
        comment: Optional text
        categories: Optional mapping of Feedback.CATEGORY_FIELDS to 1-5
        is_public: Whether the feedback shows on the reviewee's profile

    Returns:
        Feedback: The saved record

    Raises:
        NotFound: swap does not exist
        IllegalState: swap is not completed
        Forbidden: reviewer did not take part in the swap
        DuplicateFeedback: reviewer already left feedback on this swap
    """
    try:
        swap = Swap.objects.get(pk=swap_id)
    except (Swap.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'Swap with ID {swap_id} does not exist.')

    if swap.status != SwapStatus.COMPLETED:
        raise IllegalState(f'Can only review completed swaps. This swap is {swap.status}.')

    if not swap.is_participant(reviewer.pk):
        raise Forbidden('You can only review swaps you participated in.')

    reviewee_id = swap.other_participant_id(reviewer.pk)
    if reviewee_id is None:
        raise IllegalState('The other participant of this swap no longer exists.')

    if Feedback.objects.filter(swap=swap, reviewer=reviewer).exists():
        raise DuplicateFeedback()

    feedback = Feedback(
        swap=swap,
        reviewer=reviewer,
        reviewee_id=reviewee_id,
        rating=rating,
        comment=comment or '',
        is_public=is_public,
    )
    _apply_categories(feedback, categories)

    with transaction.atomic():
        try:
            with transaction.atomic():
                feedback.save()
        except IntegrityError:
            raise DuplicateFeedback()
        recompute(reviewee_id)

    logger.info(
        f"Feedback created. Feedback ID: {feedback.pk}, Swap ID: {swap.pk}, "
        f"Reviewer: {reviewer.pk}, Reviewee: {reviewee_id}, Rating: {rating}"
    )
    return feedback


_UNSET = object()


def edit_feedback(feedback_id, actor, rating=None, comment=None, categories=None, is_public=_UNSET):
    """
    Change the author's own feedback. Only provided values are updated.

    Raises:
        NotFound: feedback does not exist
        Forbidden: actor is not the original reviewer
    """
    with transaction.atomic():
        feedback = _get_feedback(feedback_id)
        if feedback.reviewer_id != actor.pk:
            raise Forbidden('You can only update your own feedback.')

        if rating is not None:
            feedback.rating = rating
        if comment is not None:
            feedback.comment = comment
        if is_public is not _UNSET:
            feedback.is_public = is_public
        _apply_categories(feedback, categories)

        feedback.save()
        recompute(feedback.reviewee_id)

    logger.info(f"Feedback {feedback.pk} updated by reviewer {actor.pk}")
    return feedback


def delete_feedback(feedback_id, actor):
    """
    Remove the author's own feedback and recompute the reviewee.

    Raises:
        NotFound: feedback does not exist
        Forbidden: actor is not the original reviewer
    """
    with transaction.atomic():
        feedback = _get_feedback(feedback_id)
        if feedback.reviewer_id != actor.pk:
            raise Forbidden('You can only delete your own feedback.')

        reviewee_id = feedback.reviewee_id
        feedback.delete()
        recompute(reviewee_id)

    logger.info(f"Feedback {feedback_id} deleted by reviewer {actor.pk}")


# ============================================================================
# Reporting
# ============================================================================

def feedback_summary(user_id):
    """
    Aggregate view of a member's counted feedback.

    Category averages use only the feedback that carries that category and
    are zero when none does.

    Returns:
        dict: {
            'total_feedbacks': int,
            'average_rating': Decimal,
            'rating_distribution': {5: int, 4: int, 3: int, 2: int, 1: int},
            'categories': {'skill_quality': Decimal, ...},
        }
    """
    aggregates = {
        'count': Count('id'),
        'total': Sum('rating'),
    }
    for stars in range(1, 6):
        aggregates[f'stars_{stars}'] = Count('id', filter=Q(rating=stars))
    for name in Feedback.CATEGORY_FIELDS:
        aggregates[f'{name}_total'] = Sum(name)
        aggregates[f'{name}_count'] = Count(name)

    data = counted_feedback(user_id).aggregate(**aggregates)

    return {
        'total_feedbacks': data['count'],
        'average_rating': mean_rating(data['total'] or 0, data['count']),
        'rating_distribution': {stars: data[f'stars_{stars}'] for stars in range(5, 0, -1)},
        'categories': {
            name: mean_rating(data[f'{name}_total'] or 0, data[f'{name}_count'])
            for name in Feedback.CATEGORY_FIELDS
        },
    }


def public_feedback_for(user_id):
    """Feedback shown on a member's profile: public and not flagged, newest first."""
    return (
        Feedback.objects
        .filter(reviewee_id=user_id, is_public=True, flagged=False)
        .select_related('reviewer', 'reviewee', 'swap')
        .order_by('-created_at', '-pk')
    )
