"""
Errors raised by the bracket engine.

All of them are recoverable by the caller; none should take the process down.
"""


class BracketError(Exception):
    """Base class for every bracket engine error."""


class ConfigError(BracketError):
    """Invalid bracket configuration or participant data."""


class UnsupportedTypeError(BracketError):
    """Unknown match type, or an operation the match type does not support."""


class ParticipantCountError(BracketError):
    pass


class InsufficientParticipantsError(ParticipantCountError):
    """Fewer than two participants were given to the seeding step."""


class InvalidParticipantCountError(ParticipantCountError):
    """Fewer than two slots were given to the bracket builder."""


class GameNotFoundError(BracketError):
    pass


class AlreadyCompletedError(BracketError):
    """A result was submitted for a game that is no longer open."""


class SlotNotReadyError(BracketError):
    """The game still has an undetermined participant slot."""


class InvalidWinnerError(BracketError):
    """The declared winner is not one of the game's participants."""


class AmbiguousResultError(BracketError):
    """Tied score with no declared winner in a format that does not allow draws."""


class PropagationError(BracketError):
    """A downstream game referenced by the bracket is missing or inconsistent."""


class RoundIncompleteError(BracketError):
    """The current Swiss round still has games that are not completed."""


class BracketCompleteError(BracketError):
    """All configured Swiss rounds have already been paired."""


class PairingError(BracketError):
    """No pairing exists for the next Swiss round under the rematch policy."""
