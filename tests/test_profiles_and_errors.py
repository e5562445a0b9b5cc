"""Weight profile service and HTTP error mapping."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from ers.api.errors import http_error
from ers.errors import (
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    RatingError,
    RatingValidationError,
    UnknownMethodError,
)
from ers.schemas.admin import WeightProfileRequest
from ers.schemas.enums import Track
from ers.services.profiles import save_weight_profile


@pytest.mark.asyncio
async def test_save_rejects_bad_weights():
    """Invalid weights never reach the database."""
    store = AsyncMock()
    body = WeightProfileRequest(name="p", track=Track.PROJECT, weights={"a": 0.5, "b": 0.2})
    with patch("ers.services.profiles.create_weight_profile_version", store):
        with pytest.raises(RatingValidationError):
            await save_weight_profile(AsyncMock(), body)
    store.assert_not_awaited()


@pytest.mark.asyncio
async def test_save_stores_new_version():
    stored = SimpleNamespace(
        name="builders", version=2, track="project", role="builder", is_default=True
    )
    store = AsyncMock(return_value=stored)
    body = WeightProfileRequest(
        name="builders",
        track=Track.PROJECT,
        role="builder",
        weights={"cbus_compliance": 0.5, "right_of_entry": 0.5},
        is_default=True,
    )
    with patch("ers.services.profiles.create_weight_profile_version", store):
        assert await save_weight_profile(AsyncMock(), body) is stored
    assert store.call_args.kwargs["track"] == "project"
    assert store.call_args.kwargs["is_default"] is True


@pytest.mark.parametrize(
    "error,code",
    [
        (NotFoundError("missing"), 404),
        (InvalidTransitionError("resolved", "pending"), 409),
        (RatingValidationError("bad"), 422),
        (UnknownMethodError("magic"), 422),
        (PersistenceError("down"), 503),
        (RatingError("other"), 500),
    ],
)
def test_http_error_mapping(error, code):
    exc = http_error(error)
    assert exc.status_code == code
    assert exc.detail == str(error)
