"""Rating scales and adapters to the canonical 0..1 scale.

Every score the engine combines is first converted to a canonical fraction
where 1.0 is the best outcome, then converted back to the scale the caller
asked for. Two bucketing policies turn a native score into a rating label:

- ``direct``: integer points map one-to-one onto labels (four-point scale).
  Fractional scores use half-up rounding to the nearest point.
- ``thresholds``: ordered half-open bands ``[min, max)``, first match wins.
  The band ending at the scale maximum is closed.
"""

import math

from pydantic import BaseModel, model_validator

from ers.errors import RatingValidationError
from ers.schemas.enums import Rating


class ThresholdBand(BaseModel):
    """Score range mapped to one rating label."""

    model_config = {"frozen": True}

    rating: Rating
    min_score: float
    max_score: float


class RatingScale(BaseModel):
    """A native rating representation with its bounds and label policy."""

    model_config = {"frozen": True}

    name: str
    min_score: float
    max_score: float
    inverted: bool = False
    labels: tuple[Rating, ...]  # worst -> best
    policy: str = "direct"  # direct|thresholds
    bands: tuple[ThresholdBand, ...] = ()

    @model_validator(mode="after")
    def check_consistency(self) -> "RatingScale":
        if self.max_score <= self.min_score:
            raise ValueError("max_score must be greater than min_score")
        if self.policy == "direct":
            points = int(self.max_score - self.min_score) + 1
            if points != len(self.labels):
                raise ValueError("direct mapping needs one label per integer point")
        elif self.policy == "thresholds":
            if not self.bands:
                raise ValueError("threshold policy requires bands")
            ordered = sorted(self.bands, key=lambda b: b.min_score)
            for lower, upper in zip(ordered, ordered[1:]):
                if upper.min_score < lower.max_score:
                    raise ValueError(
                        f"bands overlap: {lower.rating.value} and {upper.rating.value}"
                    )
            for band in self.bands:
                if band.min_score >= band.max_score:
                    raise ValueError(f"empty band for {band.rating.value}")
        else:
            raise ValueError(f"unknown label policy: {self.policy}")
        return self

    @property
    def span(self) -> float:
        return self.max_score - self.min_score

    @property
    def worst_score(self) -> float:
        return self.max_score if self.inverted else self.min_score

    @property
    def best_score(self) -> float:
        return self.min_score if self.inverted else self.max_score

    def clamp(self, score: float) -> float:
        return max(self.min_score, min(self.max_score, score))

    def validate_score(self, score: float) -> float:
        """Reject scores outside the scale bounds."""
        if score < self.min_score or score > self.max_score:
            raise RatingValidationError(
                f"Score {score} outside {self.name} bounds "
                f"[{self.min_score}, {self.max_score}]"
            )
        return score

    def to_canonical(self, score: float) -> float:
        fraction = (self.clamp(score) - self.min_score) / self.span
        return 1.0 - fraction if self.inverted else fraction

    def from_canonical(self, value: float) -> float:
        value = max(0.0, min(1.0, value))
        if self.inverted:
            value = 1.0 - value
        return self.min_score + value * self.span

    def label_for(self, score: float | None) -> Rating:
        """Bucket a native score into a rating label."""
        if score is None:
            return Rating.UNKNOWN
        score = self.clamp(score)
        if self.policy == "direct":
            point = int(math.floor(score + 0.5))
            index = point - int(self.min_score)
            if self.inverted:
                index = len(self.labels) - 1 - index
            return self.labels[index]
        for band in self.bands:
            upper_closed = band.max_score >= self.max_score
            if band.min_score <= score < band.max_score or (
                upper_closed and score == band.max_score
            ):
                return band.rating
        return Rating.UNKNOWN

    def tier(self, rating: Rating) -> int | None:
        """Position of a label from worst (0) to best, None for unknown."""
        if rating not in self.labels:
            return None
        return self.labels.index(rating)

    def representative_score(self, rating: Rating) -> float:
        """Native score standing for a label, used when only a label is given."""
        index = self.tier(rating)
        if index is None:
            raise RatingValidationError(
                f"Rating '{rating.value}' is not part of the {self.name} scale"
            )
        if self.policy == "direct":
            if self.inverted:
                index = len(self.labels) - 1 - index
            return self.min_score + index
        band = next(b for b in self.bands if b.rating == rating)
        return (band.min_score + band.max_score) / 2


FOUR_POINT = RatingScale(
    name="four_point",
    min_score=1,
    max_score=4,
    labels=(Rating.RED, Rating.AMBER, Rating.YELLOW, Rating.GREEN),
)

FOUR_POINT_INVERTED = RatingScale(
    name="four_point_inverted",
    min_score=1,
    max_score=4,
    inverted=True,
    labels=(Rating.RED, Rating.AMBER, Rating.YELLOW, Rating.GREEN),
)

LEGACY = RatingScale(
    name="legacy",
    min_score=-100,
    max_score=100,
    labels=(Rating.RED, Rating.AMBER, Rating.GREEN),
    policy="thresholds",
    bands=(
        ThresholdBand(rating=Rating.GREEN, min_score=80, max_score=100),
        ThresholdBand(rating=Rating.AMBER, min_score=50, max_score=80),
        ThresholdBand(rating=Rating.RED, min_score=-100, max_score=50),
    ),
)

SCALES = {s.name: s for s in (FOUR_POINT, FOUR_POINT_INVERTED, LEGACY)}


def get_scale(name: str) -> RatingScale:
    """Look up a built-in scale by name."""
    try:
        return SCALES[name]
    except KeyError:
        raise RatingValidationError(
            f"Unknown rating scale: {name}. Allowed: {sorted(SCALES)}"
        ) from None
