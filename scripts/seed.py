#!/usr/bin/env python3
"""
Seed script: creates three demo employers with assessments and agreement status.
Run after migrations: python scripts/seed.py
"""

import asyncio
import os
import sys
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from ers.database import async_session_maker
from ers.models import (
    AgreementStatusRecord,
    AssessmentComponent,
    AssessorReliability,
    Employer,
    TrackAssessment,
)

TODAY = date.today()

# name -> (role, agreement status, [(track, days ago, confidence, assessor, {component: score})])
EMPLOYERS = {
    "Harbour Build Group": (
        "builder",
        "active",
        [
            ("project", 10, "high", None, {"cbus_compliance": 3, "right_of_entry": 3, "hsr_respect": 3}),
            ("project", 25, "high", None, {"incolink_compliance": 3, "safety_incidents": 3}),
            ("expertise", 200, "low", "organiser-7", {"union_relations_overall": 1, "safety_culture_overall": 1}),
        ],
    ),
    "Westside Formwork": (
        "trade_contractor",
        "expiring",
        [
            ("project", 40, "medium", None, {"cbus_compliance": 2, "subcontractor_use": 2}),
        ],
    ),
    "Northline Electrical": (
        "trade_contractor",
        "active",
        [
            ("project", 5, "high", None, {"cbus_compliance": 4, "general_safety_standards": 4}),
            ("project", 30, "high", None, {"incolink_compliance": 4, "access_to_inductions": 3}),
            ("expertise", 15, "high", "organiser-2", {"union_relations_overall": 4, "cbus_overall": 4}),
        ],
    ),
}

RELIABILITY = {"organiser-2": 92.0, "organiser-7": 55.0}


async def seed():
    now = datetime.now(timezone.utc)
    async with async_session_maker() as session:
        for assessor_id, accuracy in RELIABILITY.items():
            result = await session.execute(
                select(AssessorReliability).where(AssessorReliability.assessor_id == assessor_id)
            )
            if result.scalars().first():
                continue
            session.add(
                AssessorReliability(
                    reliability_id=str(uuid4()),
                    assessor_id=assessor_id,
                    period_start=TODAY - timedelta(days=365),
                    period_end=TODAY,
                    accuracy_percentage=accuracy,
                    assessments_count=20,
                )
            )

        for name, (role, status, assessments) in EMPLOYERS.items():
            result = await session.execute(select(Employer).where(Employer.name == name))
            if result.scalar_one_or_none():
                print(f"{name} already exists, skipping.")
                continue

            employer_id = str(uuid4())
            session.add(Employer(employer_id=employer_id, name=name, role=role, created_at=now))
            session.add(
                AgreementStatusRecord(
                    status_id=str(uuid4()),
                    employer_id=employer_id,
                    status=status,
                    effective_date=TODAY - timedelta(days=90),
                    source="seed",
                )
            )
            for track, days_ago, confidence, assessor, components in assessments:
                assessment_id = str(uuid4())
                session.add(
                    TrackAssessment(
                        assessment_id=assessment_id,
                        employer_id=employer_id,
                        track=track,
                        assessment_date=TODAY - timedelta(days=days_ago),
                        assessor_id=assessor,
                        method="site_visit" if track == "project" else "organiser_review",
                        confidence_level=confidence,
                        created_at=now,
                    )
                )
                for position, (component_id, score) in enumerate(components.items()):
                    session.add(
                        AssessmentComponent(
                            component_pk=str(uuid4()),
                            assessment_id=assessment_id,
                            position=position,
                            component_id=component_id,
                            score=score,
                        )
                    )
            print(f"Seeded {name} ({employer_id})")
        await session.commit()

    print("Seed complete!")
    print("Example: curl -X POST http://localhost:8000/v1/ratings/batch \\")
    print('  -H "Content-Type: application/json" -d \'{"limit": 10}\'')


if __name__ == "__main__":
    asyncio.run(seed())
