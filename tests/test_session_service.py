"""Tests for session persistence and recall."""

from dataclasses import replace

import pytest

from dream_bot.errors import SessionNotFoundError
from dream_bot.services.requests import RequestBuilder
from dream_bot.services.sessions import SessionService


def test_save_then_recall_returns_same_request(
    builder: RequestBuilder, session_service: SessionService, session_store
) -> None:
    request = builder.build({"prompt": "a cat", "guidance_scale": 9.0})

    record = session_service.save("job-1", request)

    assert record.schema_version == 1
    assert session_store.flushes == 1
    assert session_service.recall("job-1") == request


def test_recalled_request_merges_follow_up_overrides(
    builder: RequestBuilder, session_service: SessionService
) -> None:
    request = builder.build({"prompt": "a cat"})
    session_service.save("job-1", request)

    recalled = session_service.recall("job-1")
    merged = builder.build({"seed": 42}, base=recalled)

    assert merged == replace(request, seed=42, used_random_seed=False)


def test_control_net_url_survives_round_trip(
    builder: RequestBuilder, session_service: SessionService, session_store
) -> None:
    request = builder.build(
        {
            "use_controlnet_model": "control_v11p_sd15_canny",
            "control_image_url": "https://img.test/edge.png",
        }
    )
    session_service.save("job-1", request)

    row = session_store.rows[("sd-bot", "job-1")]
    stored: dict = row["data"]  # type: ignore[assignment]
    recalled = session_service.recall("job-1")

    assert "control_image_url" not in stored["request"]
    assert stored["control_net_url"] == "https://img.test/edge.png"
    assert recalled.control_image_url == "https://img.test/edge.png"
    assert recalled.use_controlnet_model == "control_v11p_sd15_canny"


def test_missing_session_raises(session_service: SessionService) -> None:
    with pytest.raises(SessionNotFoundError):
        session_service.recall("unknown")


@pytest.mark.parametrize(
    "data",
    [
        "not-a-record",
        {"schema_version": 2, "job_id": "job-1", "request": {}},
        {"schema_version": 1, "job_id": "job-1", "request": {"prompt": "a cat"}},
    ],
)
def test_unreadable_session_raises(
    session_service: SessionService, session_store, data: object
) -> None:
    session_store.rows[("sd-bot", "job-1")] = {"id": "job-1", "data": data}

    with pytest.raises(SessionNotFoundError):
        session_service.recall("job-1")


def test_sessions_are_scoped_to_collection(
    builder: RequestBuilder, session_store
) -> None:
    SessionService(store=session_store, collection="other").save(
        "job-1", builder.build()
    )

    with pytest.raises(SessionNotFoundError):
        SessionService(store=session_store).recall("job-1")
