"""Rating service tests with the repository layer mocked out."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from ers.config import settings
from ers.engine.aggregator import calculate_rating
from ers.errors import InvalidTransitionError, NotFoundError, PersistenceError
from ers.schemas.enums import GatingMode, Rating, RatingStatus, Track
from ers.schemas.rating import CalculateRatingRequest
from ers.services import ratings as service

MODULE = "ers.services.ratings"


class _Savepoint:
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


@pytest.fixture
def db():
    session = MagicMock()
    session.begin_nested.return_value = _Savepoint()
    return session


@pytest.fixture
def entity_x(make_assessment):
    return [
        make_assessment(Track.PROJECT, 10, {"cbus_compliance": 3}),
        make_assessment(Track.PROJECT, 25, {"hsr_respect": 3}),
        make_assessment(Track.EXPERTISE, 200, {"union_relations_overall": 1}),
    ]


@pytest.mark.asyncio
async def test_calculate_unknown_employer(db):
    """Unknown employer -> NotFoundError."""
    with patch(f"{MODULE}.get_employer", AsyncMock(return_value=None)):
        with pytest.raises(NotFoundError):
            await service.calculate_final_rating(db, "missing")


@pytest.mark.asyncio
async def test_calculate_persists_new_rating(db, entity_x, as_of):
    """Fresh inputs are calculated and stored with their fingerprint."""
    stored = SimpleNamespace(rating_id="r-1")
    persist = AsyncMock(return_value=stored)
    with (
        patch(f"{MODULE}.get_employer", AsyncMock(return_value=SimpleNamespace(role="builder"))),
        patch(f"{MODULE}.gather_assessments", AsyncMock(return_value=entity_x)),
        patch(f"{MODULE}.get_agreement_status", AsyncMock(return_value=SimpleNamespace(status="active"))),
        patch(f"{MODULE}.load_profiles", AsyncMock(return_value={})),
        patch(f"{MODULE}.get_rating_by_inputs", AsyncMock(return_value=None)),
        patch(f"{MODULE}.persist_result", persist),
    ):
        row, created = await service.calculate_final_rating(db, "emp-1", calculation_date=as_of)

    assert row is stored
    assert created is True
    result = persist.call_args.args[1]
    assert result.final_rating == Rating.AMBER
    assert result.final_score == pytest.approx(2.3043, abs=1e-4)
    assert result.gating_mode == GatingMode.BLEND
    assert len(persist.call_args.kwargs["inputs_hash"]) == 64


@pytest.mark.asyncio
async def test_omitted_gating_mode_uses_settings_default(db, entity_x, as_of):
    """A request without a gating mode falls back to the configured default."""
    body = CalculateRatingRequest(calculation_date=as_of)
    assert body.gating_mode is None

    persist = AsyncMock(return_value=SimpleNamespace(rating_id="r-1"))
    with (
        patch.object(settings, "default_gating_mode", "floor"),
        patch(f"{MODULE}.get_employer", AsyncMock(return_value=SimpleNamespace(role=None))),
        patch(f"{MODULE}.gather_assessments", AsyncMock(return_value=entity_x)),
        patch(f"{MODULE}.get_agreement_status", AsyncMock(return_value=SimpleNamespace(status="active"))),
        patch(f"{MODULE}.load_profiles", AsyncMock(return_value={})),
        patch(f"{MODULE}.get_rating_by_inputs", AsyncMock(return_value=None)),
        patch(f"{MODULE}.persist_result", persist),
    ):
        await service.calculate_final_rating(
            db, "emp-1", calculation_date=body.calculation_date, gating_mode=body.gating_mode
        )

    result = persist.call_args.args[1]
    assert result.gating_mode == GatingMode.FLOOR
    assert result.final_score == pytest.approx(3.0)


@pytest.mark.asyncio
async def test_calculate_reuses_identical_inputs(db, entity_x, as_of):
    """Same inputs on the same date return the stored rating."""
    existing = SimpleNamespace(rating_id="r-0")
    persist = AsyncMock()
    with (
        patch(f"{MODULE}.get_employer", AsyncMock(return_value=SimpleNamespace(role=None))),
        patch(f"{MODULE}.gather_assessments", AsyncMock(return_value=entity_x)),
        patch(f"{MODULE}.get_agreement_status", AsyncMock(return_value=None)),
        patch(f"{MODULE}.load_profiles", AsyncMock(return_value={})),
        patch(f"{MODULE}.get_rating_by_inputs", AsyncMock(return_value=existing)),
        patch(f"{MODULE}.persist_result", persist),
    ):
        row, created = await service.calculate_final_rating(db, "emp-1", calculation_date=as_of)

    assert row is existing
    assert created is False
    persist.assert_not_awaited()


@pytest.mark.asyncio
async def test_force_refresh_skips_lookup(db, entity_x, as_of):
    lookup = AsyncMock(return_value=SimpleNamespace(rating_id="r-0"))
    with (
        patch(f"{MODULE}.get_employer", AsyncMock(return_value=SimpleNamespace(role=None))),
        patch(f"{MODULE}.gather_assessments", AsyncMock(return_value=entity_x)),
        patch(f"{MODULE}.get_agreement_status", AsyncMock(return_value=None)),
        patch(f"{MODULE}.load_profiles", AsyncMock(return_value={})),
        patch(f"{MODULE}.get_rating_by_inputs", lookup),
        patch(f"{MODULE}.persist_result", AsyncMock(return_value=SimpleNamespace())),
    ):
        _, created = await service.calculate_final_rating(
            db, "emp-1", calculation_date=as_of, force_refresh=True
        )

    assert created is True
    lookup.assert_not_awaited()


@pytest.mark.asyncio
async def test_persist_result_review_status(db, entity_x, policy, as_of):
    """A result needing review is stored under review and supersedes older versions."""
    result = calculate_rating(
        "emp-1", as_of, entity_x, "active", policy, gating_mode=GatingMode.BLEND
    )
    create_rating = AsyncMock(return_value=SimpleNamespace(rating_id="r-2"))
    supersede = AsyncMock()
    history = AsyncMock()
    with (
        patch(f"{MODULE}.get_latest_history_entry", AsyncMock(return_value=None)),
        patch(f"{MODULE}.next_rating_version", AsyncMock(return_value=2)),
        patch(f"{MODULE}.supersede_open_ratings", supersede),
        patch(f"{MODULE}.create_final_rating", create_rating),
        patch(f"{MODULE}.create_comparison_log", AsyncMock()),
        patch(f"{MODULE}.create_history_entry", history),
    ):
        await service.persist_result(db, result, inputs_hash="abc")

    supersede.assert_awaited_once_with(db, "emp-1")
    assert create_rating.call_args.kwargs["status"] == RatingStatus.UNDER_REVIEW
    assert create_rating.call_args.kwargs["version"] == 2
    entry = history.call_args.args[3]
    assert entry.new_rating == Rating.AMBER


@pytest.mark.asyncio
async def test_persist_result_wraps_database_errors(db, entity_x, policy, as_of):
    result = calculate_rating(
        "emp-1", as_of, entity_x, "active", policy, gating_mode=GatingMode.BLEND
    )
    with (
        patch(f"{MODULE}.get_latest_history_entry", AsyncMock(return_value=None)),
        patch(f"{MODULE}.next_rating_version", AsyncMock(return_value=1)),
        patch(f"{MODULE}.supersede_open_ratings", AsyncMock(side_effect=SQLAlchemyError("boom"))),
    ):
        with pytest.raises(PersistenceError):
            await service.persist_result(db, result)


@pytest.mark.asyncio
async def test_current_rating_calculated_on_demand(db):
    """No current rating -> calculate one for today."""
    row = SimpleNamespace(rating_id="r-1")
    calculate = AsyncMock(return_value=(row, True))
    with (
        patch(f"{MODULE}.find_current_rating", AsyncMock(return_value=None)),
        patch(f"{MODULE}.calculate_final_rating", calculate),
    ):
        assert await service.get_current_rating(db, "emp-1", date(2026, 3, 1)) is row
    assert calculate.call_args.kwargs["calculation_date"] == date(2026, 3, 1)


@pytest.mark.asyncio
async def test_batch_isolates_failures(db):
    """One failing employer does not stop the batch."""
    row = SimpleNamespace(rating_id="r")
    calculate = AsyncMock(side_effect=[(row, True), NotFoundError("gone"), (row, False)])
    with patch(f"{MODULE}.calculate_final_rating", calculate):
        summary = await service.batch_recalculate(db, employer_ids=["a", "b", "c"])

    assert summary.succeeded == ["a"]
    assert summary.failed == ["b"]
    assert summary.skipped == ["c"]
    assert summary.errors == {"b": "gone"}
    assert db.begin_nested.call_count == 3


@pytest.mark.asyncio
async def test_batch_selects_by_role(db):
    """Without ids the batch lists employers by role."""
    listing = AsyncMock(return_value=["a"])
    with (
        patch(f"{MODULE}.list_employer_ids", listing),
        patch(f"{MODULE}.calculate_final_rating", AsyncMock(return_value=(None, True))),
    ):
        summary = await service.batch_recalculate(db, employer_role="builder", limit=5)

    listing.assert_awaited_once_with(db, role="builder", limit=5)
    assert summary.succeeded == ["a"]


@pytest.mark.asyncio
async def test_archive_only_superseded(db):
    rating = SimpleNamespace(rating_status=RatingStatus.ACTIVE.value)
    with pytest.raises(InvalidTransitionError):
        await service.archive_rating(db, rating)

    rating = SimpleNamespace(rating_status=RatingStatus.SUPERSEDED.value)
    status = AsyncMock()
    with patch(f"{MODULE}.set_rating_status", status):
        await service.archive_rating(db, rating)
    status.assert_awaited_once_with(db, rating, RatingStatus.ARCHIVED)
