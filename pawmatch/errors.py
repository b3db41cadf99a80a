"""
Error taxonomy for PawMatch.

Every failure raised by the stores, services and match engine derives from
PawMatchError. The five families map onto HTTP status codes in ``pawmatch.api``:
NotFoundError and AuthorizationError -> 404, ValidationError and ConflictError
-> 400, InfrastructureError and InvariantViolation -> 500.
"""


class PawMatchError(Exception):
    """Base exception for all PawMatch errors."""

    message = "pawmatch error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.message)


# --- Not found ---

class NotFoundError(PawMatchError):
    """A referenced animal or match proposal does not exist."""

    message = "not found"


class AnimalNotFound(NotFoundError):
    message = "animal not found"


class MatchNotFound(NotFoundError):
    message = "match not found"


# --- Validation ---

class ValidationError(PawMatchError):
    """Request is well-formed but violates a business rule."""

    message = "validation failed"


class InvalidIdentifier(ValidationError):
    message = "identifier is not valid"


class InvalidMatchMessage(ValidationError):
    message = "match message length is out of bounds"


class AlreadyMatched(ValidationError):
    message = "animal has been matched"


class SameOwner(ValidationError):
    message = "animals are from the same owner"


class SameSex(ValidationError):
    message = "animals have the same sex"


class SexLockedAfterMatchRequest(ValidationError):
    message = "animal sex cannot be edited after a match has been requested"


# --- Conflict ---

class ConflictError(PawMatchError):
    """The target is in a state that does not allow the operation."""

    message = "conflict"


class MatchAlreadyResolved(ConflictError):
    message = "match has already been approved or rejected"


# --- Authorization ---

class AuthorizationError(PawMatchError):
    """Requesting user does not own the relevant animal or proposal."""

    message = "not authorized"


class NotOwner(AuthorizationError):
    message = "user does not own the animal"


class NotIssuer(AuthorizationError):
    message = "user did not issue the match"


class NotReceiver(AuthorizationError):
    message = "user is not the receiver of the match"


# --- Infrastructure ---

class InfrastructureError(PawMatchError):
    """Store or transaction failure, wrapped with operation context."""

    message = "infrastructure failure"


class InvariantViolation(PawMatchError):
    """Persisted state contradicts an invariant the engine maintains."""

    message = "invariant violated"


class PairingCountUnderflow(InvariantViolation):
    message = "pairing count would drop below zero"
