"""
User directory: member lookup and the counters the swap engine maintains.
"""

import logging

from django.db.models import F
from django.utils import timezone

from .exceptions import NotFound, ProviderUnavailable
from .models import User

logger = logging.getLogger(__name__)


def get_user(user_id):
    """
    Fetch a member by id.

    Raises:
        NotFound: If no such member exists
    """
    try:
        return User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'User with ID {user_id} does not exist.')


def lock_user(user_id):
    """
    Fetch a member with a row lock held until the surrounding transaction ends.

    Raises:
        NotFound: If no such member exists
    """
    try:
        return User.objects.select_for_update().get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'User with ID {user_id} does not exist.')


def ensure_available(user):
    """Raise ProviderUnavailable unless the member can take swap requests."""
    if not user.is_available():
        raise ProviderUnavailable(f'User {user.pk} is not accepting swap requests.')


def increment_completed_swaps(*user_ids):
    """
    Add one to completed_swaps for each given member.

    Uses an F() expression so concurrent increments are not lost.
    """
    user_ids = [user_id for user_id in user_ids if user_id is not None]
    if not user_ids:
        return 0
    updated = User.objects.filter(pk__in=user_ids).update(
        completed_swaps=F('completed_swaps') + 1,
        updated_at=timezone.now(),
    )
    logger.info(f"Incremented completed_swaps for users {user_ids}")
    return updated
