"""Error taxonomy for the rating engine and service."""


class RatingError(Exception):
    """Base class for rating errors."""


class RatingValidationError(RatingError):
    """Malformed weights, out-of-range scores or inconsistent configuration."""


class UnknownMethodError(RatingValidationError):
    """Calculation method name is not one of the supported strategies."""

    def __init__(self, method: str):
        super().__init__(f"Unknown calculation method: {method}")
        self.method = method


class MissingDataError(RatingError):
    """A track has no assessments. The engine degrades instead of raising."""


class PersistenceError(RatingError):
    """Writing a rating record failed."""


class NotFoundError(RatingError):
    """Requested employer, rating or dispute does not exist."""


class InvalidTransitionError(RatingError):
    """Dispute or appeal state change not allowed from the current state."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move from '{current}' to '{target}'")
        self.current = current
        self.target = target
