"""
SRS Constants and Parameters

All configurable parameters for the SM-2 scheduler in one place.
"""

from enum import Enum

from studycore.srs.exceptions import InvalidGradeError


# ---- Outcomes ----

class Outcome(str, Enum):
    """Learner feedback on a flashcard (the review UI has two buttons)."""
    EASY = "easy"      # Remembered well
    FORGOT = "forgot"  # Did not remember

    @classmethod
    def parse(cls, value) -> "Outcome":
        """
        Coerce an Outcome or its string value; reject everything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, Enum):
            raise InvalidGradeError(value)
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidGradeError(value)

    @classmethod
    def from_level(cls, level: int) -> "Outcome":
        """
        Map the legacy SRS level (0 = not remembered, 3 = easy) to an Outcome.
        """
        if isinstance(level, bool) or not isinstance(level, int):
            raise InvalidGradeError(level)
        if level == LEGACY_LEVEL_EASY:
            return cls.EASY
        if level == LEGACY_LEVEL_FORGOT:
            return cls.FORGOT
        raise InvalidGradeError(level)


LEGACY_LEVEL_FORGOT = 0
LEGACY_LEVEL_EASY = 3


# ---- Initial card state ----

INITIAL_EASE_FACTOR = 2.5
INITIAL_INTERVAL_DAYS = 0
INITIAL_REPETITIONS = 0


# ---- Learning parameters ----

MIN_EASE_FACTOR = 1.3     # SM-2 easiness floor
EASE_STEP_EASY = 0.1      # Added on a successful review (uncapped)
EASE_STEP_FORGOT = 0.2    # Subtracted on a lapse
EASE_DECIMALS = 2         # Ease factor is kept at two decimals

FIRST_INTERVAL_DAYS = 1   # After the first successful review
SECOND_INTERVAL_DAYS = 6  # After the second consecutive success
LAPSE_INTERVAL_DAYS = 1   # Forgotten cards come back tomorrow

MASTERY_STREAK = 3        # Consecutive EASY grades needed for mastery
