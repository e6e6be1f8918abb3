"""
Typed business-rule failures raised by the swap, rating and moderation layers.

Every failure is raised before anything is persisted, so a caller catching
one of these can rely on the affected records being unchanged.
"""


class ExchangeError(Exception):
    """Base class for recoverable business-rule violations."""

    default_message = 'The requested operation is not allowed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(ExchangeError):
    default_message = 'The requested record does not exist.'


class Forbidden(ExchangeError):
    default_message = 'You do not have permission to perform this action.'


class IllegalTransition(ExchangeError):
    default_message = 'This swap cannot move to the requested state.'


class SkillMismatch(IllegalTransition):
    """Accept guard failed: a participant no longer offers the swapped skill."""

    default_message = 'The participants no longer offer the skills in this swap.'


class IllegalState(ExchangeError):
    default_message = 'The swap is not in a state that allows this action.'


class InvalidActor(ExchangeError):
    default_message = 'You cannot target yourself with this action.'


class DuplicateRequest(ExchangeError):
    default_message = 'A similar swap request is already pending.'


class DuplicateFeedback(ExchangeError):
    default_message = 'Feedback has already been submitted for this swap.'


class ProviderUnavailable(ExchangeError):
    default_message = 'This user is not accepting swap requests.'
