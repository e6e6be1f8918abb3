"""
Swap lifecycle engine.

Owns every status change of a Swap. The legal moves are declared once in
TRANSITIONS; each operation locks the swap row, checks the actor's role and
the current status against that table, and only then writes. A failed check
raises one of the exchange.exceptions types and leaves the row untouched.

    pending --accept--> accepted --start--> in_progress --complete(both)--> completed
       |                   |                     |
       +--reject--> rejected                     |
       +------------+------cancel----------------+--> cancelled
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone

from . import directory
from .exceptions import (
    DuplicateRequest,
    Forbidden,
    IllegalTransition,
    InvalidActor,
    NotFound,
    SkillMismatch,
)
from .models import Swap, SwapStatus

logger = logging.getLogger(__name__)

REQUESTER = 'requester'
PROVIDER = 'provider'
PARTICIPANTS = frozenset({REQUESTER, PROVIDER})

# event -> (source states, target state, roles allowed to trigger it)
TRANSITIONS = {
    'accept': (frozenset({SwapStatus.PENDING}), SwapStatus.ACCEPTED, frozenset({PROVIDER})),
    'reject': (frozenset({SwapStatus.PENDING}), SwapStatus.REJECTED, frozenset({PROVIDER})),
    'start': (frozenset({SwapStatus.ACCEPTED}), SwapStatus.IN_PROGRESS, PARTICIPANTS),
    'complete': (frozenset({SwapStatus.IN_PROGRESS}), SwapStatus.COMPLETED, PARTICIPANTS),
    'cancel': (
        frozenset({SwapStatus.PENDING, SwapStatus.ACCEPTED, SwapStatus.IN_PROGRESS}),
        SwapStatus.CANCELLED,
        PARTICIPANTS,
    ),
    'schedule': (frozenset({SwapStatus.ACCEPTED, SwapStatus.IN_PROGRESS}), None, PARTICIPANTS),
    'delete': (frozenset({SwapStatus.PENDING}), None, frozenset({REQUESTER})),
}


def can_transition(status, event):
    """
    Check whether an event is legal from the given status.

    Args:
        status: Current SwapStatus value
        event: Key of TRANSITIONS

    Returns:
        bool: True if the event may fire from this status
    """
    sources, _target, _roles = TRANSITIONS[event]
    return status in sources


def _describe_skill(value):
    """Accept a bare skill name or a {'skill', 'description', 'estimated_hours'} mapping."""
    if isinstance(value, str):
        value = {'skill': value}
    return (
        (value.get('skill') or '').strip(),
        (value.get('description') or '').strip(),
        value.get('estimated_hours'),
    )


def _lock_swap(swap_id):
    try:
        return Swap.objects.select_for_update().get(pk=swap_id)
    except (Swap.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'Swap with ID {swap_id} does not exist.')


def _authorize(swap, event, actor):
    """
    Validate actor role, then current status, for an event.

    Raises:
        Forbidden: If the actor may not trigger this event on this swap
        IllegalTransition: If the swap's status does not allow the event
    """
    sources, _target, roles = TRANSITIONS[event]
    role = swap.role_of(actor.pk)

    if role is None:
        raise Forbidden('Only participants of this swap can do that.')
    if role not in roles:
        raise Forbidden(f'Only the {" or ".join(sorted(roles))} can {event} this swap.')

    if swap.status not in sources:
        raise IllegalTransition(f'Cannot {event} a swap that is {swap.status}.')

    return role


def _log_transition(swap, old_status, actor=None):
    actor_label = actor.pk if actor is not None else 'system'
    logger.info(
        f"Swap status updated. "
        f"Swap ID: {swap.pk}, "
        f"Old Status: {old_status}, "
        f"New Status: {swap.status}, "
        f"Actor: {actor_label}"
    )


# ============================================================================
# Creation and lookup
# ============================================================================

def create_request(requester, provider_id, offered_skill, requested_skill, message='', scheduled_date=None):
    """
    Create a pending swap from requester to provider.

    Args:
        requester: User making the request
        provider_id: Id of the member asked to provide requested_skill
        offered_skill: Skill name or descriptor mapping the requester offers
        requested_skill: Skill name or descriptor mapping wanted from the provider
        message: Optional note to the provider
        scheduled_date: Optional proposed date

    Returns:
        Swap: The new pending swap

    Raises:
        InvalidActor: requester and provider are the same member
        NotFound: provider does not exist
        ProviderUnavailable: provider is banned or inactive
        DuplicateRequest: an identical request is already pending
    """
    if requester.pk == provider_id or str(requester.pk) == str(provider_id):
        raise InvalidActor('You cannot create a swap with yourself.')

    provider = directory.get_user(provider_id)
    directory.ensure_available(provider)

    offered_name, offered_description, offered_hours = _describe_skill(offered_skill)
    requested_name, requested_description, requested_hours = _describe_skill(requested_skill)

    swap = Swap(
        requester=requester,
        provider=provider,
        offered_skill=offered_name,
        offered_skill_description=offered_description,
        offered_skill_hours=offered_hours,
        requested_skill=requested_name,
        requested_skill_description=requested_description,
        requested_skill_hours=requested_hours,
        message=message or '',
        scheduled_date=scheduled_date,
    )

    with transaction.atomic():
        # Serializes requests from one member; MySQL does not enforce the
        # pending-swap unique constraint
        directory.lock_user(requester.pk)

        duplicate = Swap.objects.filter(
            requester=requester,
            provider=provider,
            offered_skill__iexact=offered_name,
            requested_skill__iexact=requested_name,
            status=SwapStatus.PENDING,
        ).exists()
        if duplicate:
            raise DuplicateRequest()

        try:
            with transaction.atomic():
                swap.save()
        except IntegrityError:
            raise DuplicateRequest()

    logger.info(
        f"Swap request created. "
        f"Swap ID: {swap.pk}, Requester: {requester.pk}, Provider: {provider.pk}, "
        f"Offered: {offered_name}, Requested: {requested_name}"
    )
    return swap


def get_swap_for_participant(swap_id, actor):
    """Return the swap if the actor takes part in it."""
    try:
        swap = Swap.objects.select_related('requester', 'provider').get(pk=swap_id)
    except (Swap.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'Swap with ID {swap_id} does not exist.')
    if not swap.is_participant(actor.pk):
        raise Forbidden('You can only view your own swaps.')
    return swap


def swaps_for_user(user, status=None, role=None):
    """
    Queryset of swaps the user takes part in.

    Args:
        user: Participant
        status: Optional SwapStatus filter
        role: Optional 'requester' (sent) or 'provider' (received)
    """
    if role == REQUESTER:
        queryset = Swap.objects.filter(requester=user)
    elif role == PROVIDER:
        queryset = Swap.objects.filter(provider=user)
    else:
        queryset = Swap.objects.filter(Q(requester=user) | Q(provider=user))

    if status:
        queryset = queryset.filter(status=status)

    return queryset.select_related('requester', 'provider').order_by('-created_at')


def user_swap_stats(user_id):
    """
    Count a member's swaps per status.

    Returns:
        dict: {'total': n, 'pending': n, ..., 'cancelled': n}
    """
    rows = (
        Swap.objects.filter(Q(requester_id=user_id) | Q(provider_id=user_id))
        .values('status')
        .annotate(count=Count('id'))
    )
    stats = {'total': 0}
    stats.update({value: 0 for value in SwapStatus.values})
    for row in rows:
        stats[row['status']] = row['count']
        stats['total'] += row['count']
    return stats


# ============================================================================
# Transitions
# ============================================================================

def accept(swap_id, actor):
    """
    Provider accepts a pending swap.

    Both participants must still offer the skills named in the swap.
    """
    with transaction.atomic():
        swap = _lock_swap(swap_id)
        _authorize(swap, 'accept', actor)

        requester = swap.requester
        provider = swap.provider
        if requester is None or provider is None:
            raise IllegalTransition('A participant of this swap no longer exists.')
        if not provider.offers_skill(swap.requested_skill):
            raise SkillMismatch(f'Provider does not offer "{swap.requested_skill}".')
        if not requester.offers_skill(swap.offered_skill):
            raise SkillMismatch(f'Requester does not offer "{swap.offered_skill}".')

        old_status = swap.status
        swap.status = SwapStatus.ACCEPTED
        swap.accepted_at = timezone.now()
        swap.save(update_fields=['status', 'accepted_at', 'updated_at'])

    _log_transition(swap, old_status, actor)
    return swap


def reject(swap_id, actor, reason=''):
    """Provider declines a pending swap; the reason is kept on the record."""
    with transaction.atomic():
        swap = _lock_swap(swap_id)
        _authorize(swap, 'reject', actor)

        old_status = swap.status
        swap.status = SwapStatus.REJECTED
        swap.rejection_reason = reason or ''
        swap.rejected_at = timezone.now()
        swap.save(update_fields=['status', 'rejection_reason', 'rejected_at', 'updated_at'])

    _log_transition(swap, old_status, actor)
    return swap


def cancel(swap_id, actor, reason=''):
    """
    Either participant cancels a pending, accepted or in-progress swap.

    Raises:
        Forbidden: actor is not a participant
        IllegalTransition: swap is already completed, rejected or cancelled
    """
    with transaction.atomic():
        swap = _lock_swap(swap_id)
        _authorize(swap, 'cancel', actor)
        old_status = swap.status
        _apply_cancel(swap, reason, cancelled_by=actor)

    _log_transition(swap, old_status, actor)
    return swap


def force_cancel(swap_id, reason):
    """
    Cancel a swap without an actor check (moderation).

    Completed swaps are still never touched.
    """
    with transaction.atomic():
        swap = _lock_swap(swap_id)
        if not can_transition(swap.status, 'cancel'):
            raise IllegalTransition(f'Cannot cancel a swap that is {swap.status}.')
        old_status = swap.status
        _apply_cancel(swap, reason, cancelled_by=None)

    _log_transition(swap, old_status)
    return swap


def _apply_cancel(swap, reason, cancelled_by):
    swap.status = SwapStatus.CANCELLED
    swap.cancellation_reason = reason or ''
    swap.cancelled_by = cancelled_by
    swap.cancelled_at = timezone.now()
    swap.save(update_fields=[
        'status', 'cancellation_reason', 'cancelled_by', 'cancelled_at', 'updated_at'
    ])


def start(swap_id, actor):
    """Move an accepted swap to in_progress; contact details are now exchanged."""
    with transaction.atomic():
        swap = _lock_swap(swap_id)
        _authorize(swap, 'start', actor)

        old_status = swap.status
        swap.status = SwapStatus.IN_PROGRESS
        swap.contact_exchanged = True
        swap.started_at = timezone.now()
        swap.save(update_fields=['status', 'contact_exchanged', 'started_at', 'updated_at'])

    _log_transition(swap, old_status, actor)
    return swap


def mark_completed(swap_id, actor):
    """
    Record that the actor has finished their side of an in-progress swap.

    Setting the same flag twice is a no-op. When both flags are set the swap
    moves to completed and both members' completed_swaps go up by one; see
    complete_if_ready for how that is kept to exactly once.
    """
    with transaction.atomic():
        swap = _lock_swap(swap_id)
        role = _authorize(swap, 'complete', actor)

        flag = 'requester_completed' if role == REQUESTER else 'provider_completed'
        Swap.objects.filter(pk=swap.pk).update(**{flag: True, 'updated_at': timezone.now()})
        logger.info(f"Swap {swap.pk} marked complete by {role} {actor.pk}")

        complete_if_ready(swap.pk)

    swap.refresh_from_db()
    return swap


def complete_if_ready(swap_id):
    """
    Finish an in-progress swap whose two completion flags are set.

    The status change is a conditional UPDATE, so of any number of callers
    only the one that flips the row gets a non-zero count and bumps the
    counters.

    Returns:
        bool: True if this call moved the swap to completed
    """
    now = timezone.now()
    finished = Swap.objects.filter(
        pk=swap_id,
        status=SwapStatus.IN_PROGRESS,
        requester_completed=True,
        provider_completed=True,
    ).update(status=SwapStatus.COMPLETED, completed_at=now, updated_at=now)

    if not finished:
        return False

    requester_id, provider_id = Swap.objects.filter(pk=swap_id).values_list(
        'requester_id', 'provider_id'
    ).get()
    directory.increment_completed_swaps(requester_id, provider_id)
    logger.info(
        f"Swap status updated. "
        f"Swap ID: {swap_id}, "
        f"Old Status: {SwapStatus.IN_PROGRESS}, "
        f"New Status: {SwapStatus.COMPLETED}, "
        f"Actor: system"
    )
    return True


def schedule(swap_id, actor, scheduled_date):
    """Set or move the session date of an accepted or in-progress swap."""
    with transaction.atomic():
        swap = _lock_swap(swap_id)
        _authorize(swap, 'schedule', actor)
        swap.scheduled_date = scheduled_date
        swap.save(update_fields=['scheduled_date', 'updated_at'])

    logger.info(f"Swap {swap.pk} scheduled for {scheduled_date} by {actor.pk}")
    return swap


def delete_swap(swap_id, actor):
    """
    Permanently remove a pending request. Only its requester may do this.
    """
    with transaction.atomic():
        swap = _lock_swap(swap_id)
        if swap.role_of(actor.pk) != REQUESTER:
            raise Forbidden('You can only delete your own swap requests.')
        if not can_transition(swap.status, 'delete'):
            raise IllegalTransition('Can only delete pending swap requests.')
        swap.delete()

    logger.info(f"Swap request {swap_id} deleted by requester {actor.pk}")


def cascade_cancel_for_user(user_id, reason):
    """
    Cancel every pending swap the member takes part in.

    Accepted and in-progress swaps are left as they are.

    Returns:
        int: Number of swaps cancelled
    """
    now = timezone.now()
    cancelled = Swap.objects.filter(
        Q(requester_id=user_id) | Q(provider_id=user_id),
        status=SwapStatus.PENDING,
    ).update(
        status=SwapStatus.CANCELLED,
        cancellation_reason=reason,
        cancelled_by=None,
        cancelled_at=now,
        updated_at=now,
    )
    logger.info(f"Cascade-cancelled {cancelled} pending swaps for user {user_id}: {reason}")
    return cancelled
