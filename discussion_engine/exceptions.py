"""Exceptions raised by discussion commands.

Every command validates before it mutates, so any of these means nothing was
written. ``status_code`` is what the web layer answers with.
"""


class DiscussionError(Exception):
    """Base class for discussion command failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PermissionDeniedError(DiscussionError):
    """The actor lacks the role, phase eligibility, or ownership required."""

    status_code = 403


class InvalidStateError(DiscussionError):
    """The discussion is not in a state that allows the command."""

    status_code = 400


class NotFoundError(DiscussionError):
    """Unknown discussion or message."""

    status_code = 404


class StaleStateError(DiscussionError):
    """A conditional update found the record changed since it was read."""

    status_code = 409


class StoreUnavailableError(DiscussionError):
    """The backing store failed; the user must retry the action."""

    status_code = 503
