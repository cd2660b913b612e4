"""Error taxonomy for the wager engine.

Every error is scoped to the operation that raised it; callers report it
to the operator. Nothing here is retried by the engine itself.
"""


class WagerError(Exception):
    """Base class for all engine errors."""


class InvalidIdentity(WagerError):
    """An entry-key field was empty or contained the reserved delimiter."""


class InvalidChoice(WagerError):
    """A decision value outside the stage's closed choice set."""


class UnknownEntrant(WagerError):
    """An entry key that is not on the current roster."""


class MissingExternalData(WagerError):
    """The scoring snapshot could not be fetched or read at all."""


class StageOrderViolation(WagerError):
    """A stage operation was attempted out of order."""


class StaleDocument(WagerError):
    """The stored pool document changed since it was loaded."""
