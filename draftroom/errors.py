"""Error types raised by the draft engine."""


class DraftRoomError(Exception):
    """Base class for all draft engine errors."""


class NotFoundError(DraftRoomError):
    """A referenced draft, pick, player, team, session or trade does not exist."""


class ValidationError(DraftRoomError):
    """A business rule was violated."""


class InvalidStateError(ValidationError):
    """An entity is not in a state that allows the requested transition."""


class PlayerAlreadyDraftedError(DraftRoomError):
    """The player is already assigned to another pick in the same draft.

    Kept separate from ValidationError so callers can retry on it.
    """


class InternalError(DraftRoomError):
    """Missing configuration or an unrecoverable engine failure."""
