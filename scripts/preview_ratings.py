#!/usr/bin/env python3
"""
Print final ratings for a few sample employers.
Runs the rating engine in-memory (no DB/API needed).
Usage: python scripts/preview_ratings.py [four_point|four_point_inverted|legacy]
"""

import json
import sys
from datetime import date, timedelta
from pathlib import Path

# Add project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ers.engine.aggregator import calculate_rating
from ers.engine.policy import RatingPolicy
from ers.schemas.enums import GatingMode, Track
from ers.schemas.rating import AssessmentInput, ComponentScore

AS_OF = date(2026, 3, 1)

# Scores below are on the four-point scale; they are rescaled for the others.
SAMPLES = {
    "split-opinion": (
        "active",
        [
            (Track.PROJECT, 10, "high", None, {"cbus_compliance": 3, "right_of_entry": 3}),
            (Track.PROJECT, 25, "high", None, {"incolink_compliance": 3}),
            (Track.EXPERTISE, 200, "low", 60.0, {"union_relations_overall": 1}),
        ],
    ),
    "no-expertise": (
        "active",
        [(Track.PROJECT, 20, "medium", None, {"cbus_compliance": 3, "hsr_respect": 2})],
    ),
    "no-agreement": (
        "none",
        [
            (Track.PROJECT, 5, "high", None, {"cbus_compliance": 4}),
            (Track.EXPERTISE, 5, "high", 95.0, {"cbus_overall": 4}),
        ],
    ),
}


def build(policy: RatingPolicy, rows) -> list[AssessmentInput]:
    four_point = RatingPolicy.for_scale("four_point").scale
    out = []
    for i, (track, days, confidence, accuracy, components) in enumerate(rows):
        out.append(
            AssessmentInput(
                assessment_id=f"a{i}",
                track=track,
                assessment_date=AS_OF - timedelta(days=days),
                confidence_level=confidence,
                assessor_accuracy=accuracy,
                components=[
                    ComponentScore(
                        component_id=cid,
                        score=policy.scale.from_canonical(four_point.to_canonical(score)),
                    )
                    for cid, score in components.items()
                ],
            )
        )
    return out


def main():
    scale = sys.argv[1] if len(sys.argv) > 1 else "four_point"
    policy = RatingPolicy.for_scale(scale)
    report = {}
    for name, (status, rows) in SAMPLES.items():
        for mode in GatingMode:
            result = calculate_rating(
                name, AS_OF, build(policy, rows), status, policy, gating_mode=mode
            )
            report[f"{name}/{mode.value}"] = {
                "final_score": result.final_score,
                "final_rating": result.final_rating.value,
                "confidence": result.overall_confidence.value,
                "completeness": result.data_completeness,
                "discrepancy": result.discrepancy.severity.value,
                "review_required": result.review_required,
            }
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
