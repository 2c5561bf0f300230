"""
Custom exceptions for the composition meta engine with caller-facing messages.

Every error here is local and recoverable: correct the input or retry the call.
"""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""
    field: str
    message: str
    tag: str
    value: Optional[str] = None

    def __str__(self) -> str:
        return f"validation failed for field '{self.field}': {self.message}"


class MetaEngineException(Exception):
    """Base exception for meta engine errors."""
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


class InvalidBoardError(MetaEngineException):
    """Raised when a board state fails the minimum traits/units gate."""
    code = "INVALID_BOARD"

    def __init__(self, field: str, required: int, actual: int):
        self.field = field
        self.required = required
        self.actual = actual
        super().__init__(
            f"Board rejected: {field} has {actual} entries, at least {required} required",
            f"Board needs at least {required} {field} (got {actual})"
        )


class InvalidOutcomeError(MetaEngineException):
    """Raised when a game outcome carries impossible values."""
    code = "INVALID_OUTCOME"

    def __init__(self, field: str, reason: str):
        self.field = field
        super().__init__(
            f"Invalid game outcome field '{field}': {reason}",
            reason
        )


class FilterValidationError(MetaEngineException):
    """Raised when query filters fail validation; carries one error per field."""
    code = "VALIDATION_ERROR"

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        super().__init__(
            "; ".join(str(e) for e in self.errors) or "validation errors",
            "Invalid query parameters: " + ", ".join(e.field for e in self.errors)
        )


class CompositionNotFoundError(MetaEngineException):
    """Raised when a fingerprint has no observed games in a partition."""
    code = "NOT_FOUND"

    def __init__(self, fingerprint: str, partition: str):
        self.fingerprint = fingerprint
        self.partition = partition
        super().__init__(
            f"Composition '{fingerprint}' has no games in {partition}",
            "No data for this composition yet."
        )


class ConsistencyError(MetaEngineException):
    """Raised when the store reports a failed atomic update (write conflict)."""
    code = "CONFLICT"

    def __init__(self, operation: str, details: str = None):
        super().__init__(
            f"Concurrent write conflict during {operation}: {details}",
            "Data changed while saving. Please retry."
        )


class TransactionError(MetaEngineException):
    """Raised when a retried operation keeps conflicting."""
    code = "TRANSACTION_FAILED"

    def __init__(self, operation: str, attempts: int):
        super().__init__(
            f"Transaction failed for {operation} after {attempts} attempts",
            "Failed to save game result. Please try again."
        )


class ConfigurationError(MetaEngineException):
    """Raised when configuration validation fails."""
    code = "CONFIGURATION_ERROR"

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__(
            "configuration validation failed: " + "; ".join(self.problems)
        )


class DuplicateGameError(MetaEngineException):
    """Raised when a participant result was already folded into its composition."""
    code = "DUPLICATE_GAME"

    def __init__(self, match_id: str, participant_id: int):
        self.match_id = match_id
        self.participant_id = participant_id
        super().__init__(
            f"Game {match_id}/{participant_id} was already ingested",
            "This game result has already been recorded."
        )
