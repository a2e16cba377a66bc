from typing import Optional


class StudyCoreError(Exception):
    """Base exception for the study engine."""
    pass


class SchedulerError(StudyCoreError):
    """Base exception for scheduling errors."""
    pass


class InvalidGradeError(SchedulerError):
    """Raised when an outcome is not one of the supported grades."""
    def __init__(self, outcome, message: str = "Invalid grade"):
        self.outcome = outcome
        self.message = f"{message}: {outcome!r}"
        super().__init__(self.message)


class SessionError(StudyCoreError):
    """Base exception for study-session errors."""
    def __init__(self, owner_id: str, track_id: str, message: str):
        self.owner_id = owner_id
        self.track_id = track_id
        self.message = message
        super().__init__(message)


class EmptyQueueError(SessionError):
    """Raised when no cards are due, so no session can be started."""
    def __init__(self, owner_id: str, track_id: str, message: str = "No cards due"):
        super().__init__(owner_id, track_id, message)


class NoActiveSessionError(SessionError):
    """Raised when there is no unfinished session to resume or update."""
    def __init__(self, owner_id: str, track_id: str, message: str = "No active session"):
        super().__init__(owner_id, track_id, message)


class OutOfSequenceError(SessionError):
    """Raised when a grade arrives for a card that is neither current nor completed."""
    def __init__(self, owner_id: str, track_id: str, card_id: str, expected_card_id=None):
        self.card_id = card_id
        self.expected_card_id = expected_card_id
        super().__init__(
            owner_id,
            track_id,
            f"Card {card_id} is out of sequence (expected {expected_card_id})",
        )


class ConcurrentModificationError(SessionError):
    """Raised when a concurrent write to the same session or track won the race."""
    def __init__(self, owner_id: str, track_id: str, message: str = "Concurrent modification"):
        super().__init__(owner_id, track_id, message)


class CardNotFoundError(SessionError):
    """Raised when a card does not exist for the given owner and track."""
    def __init__(self, owner_id: str, track_id: str, card_id: str):
        self.card_id = card_id
        super().__init__(owner_id, track_id, f"Card {card_id} not found")


class InvalidCheckpointError(SessionError):
    """Raised when a checkpoint does not fit the session's queue."""
    def __init__(self, owner_id: str, track_id: str, message: str = "Invalid checkpoint"):
        super().__init__(owner_id, track_id, message)


class StoreUnavailableError(StudyCoreError):
    """Raised when the card or session store fails or times out (retriable)."""
    def __init__(self, message: str = "Store unavailable", cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)
