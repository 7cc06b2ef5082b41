"""Error taxonomy shared by the store and lifecycle operations."""


class TrackerError(Exception):
    """Base class for every error surfaced to the user."""


class DuplicateKey(TrackerError):
    """A unique constraint (name, problem key, attempt number or date) was violated."""


class ValidationError(TrackerError):
    """Input rejected before touching the store."""


class NotFound(TrackerError):
    """The referenced record no longer exists."""
