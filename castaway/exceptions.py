"""Errors raised by the challenge service.

Routers map each class to one HTTP status; the domain layer never raises these.
"""


class ChallengeError(Exception):
    """Base class for challenge protocol errors."""


class ChallengeNotFoundError(ChallengeError, LookupError):
    """Unknown challenge, or unknown commitment inside a challenge."""


class ChallengeValidationError(ChallengeError, ValueError):
    """Request input the challenge cannot accept."""


class InvalidCommitmentError(ChallengeValidationError):
    """Malformed hash, or a disclosed seed that does not match its commitment."""


class ChallengeNotReadyError(ChallengeError):
    """The requested data or step is not available yet; ask again later."""


class ChallengeConflictError(ChallengeError, RuntimeError):
    """The challenge is in a phase that forbids the requested transition."""


class SeedIntegrityError(ChallengeError, RuntimeError):
    """A revealed seed does not hash to its published commitment."""
