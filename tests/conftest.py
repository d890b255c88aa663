"""Shared pytest fixtures for all learner-model tests."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Callable

import pytest

from learner_model.models import (
    BehavioralEvent,
    ContentCharacteristics,
    DifficultyLevel,
    EventType,
    LikeEngagement,
    UserPreferences,
)


TS = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Content fixtures
# ---------------------------------------------------------------------------

NARRATIVE_ADVENTURE = ContentCharacteristics(
    format="narrative",
    genre="adventure",
    difficulty="intermediate",
    template_id="narrative-adventure-intermediate-v1",
)

PODCAST_TRAVEL = ContentCharacteristics(
    format="podcast",
    genre="travel",
    difficulty="beginner",
    template_id="podcast-travel-beginner-v1",
)

EDUCATIONAL_NO_GENRE = ContentCharacteristics(
    format="educational",
    genre=None,
    difficulty="advanced",
    template_id="educational-advanced-v1",
)


@pytest.fixture
def make_event() -> Callable[..., BehavioralEvent]:
    """Factory for behavioural events with unique ids."""
    counter = itertools.count()

    def _make(
        event_type: EventType,
        content_id: str = "content-1",
        percent: float = 50.0,
        characteristics: ContentCharacteristics = NARRATIVE_ADVENTURE,
    ) -> BehavioralEvent:
        return BehavioralEvent(
            event_id=f"event-{next(counter)}",
            content_id=content_id,
            event_type=event_type,
            timestamp=TS,
            playback_position=percent * 1.2,
            playback_position_percent=percent,
            duration=120.0,
            session_id="session-1",
            characteristics=characteristics,
        )

    return _make


@pytest.fixture
def make_like() -> Callable[..., LikeEngagement]:
    """Factory for like/unlike engagements."""

    def _make(
        liked: bool,
        content_id: str = "content-1",
        characteristics: ContentCharacteristics = NARRATIVE_ADVENTURE,
    ) -> LikeEngagement:
        return LikeEngagement(
            content_id=content_id,
            liked=liked,
            liked_at=TS if liked else None,
            session_id="session-1",
            characteristics=characteristics,
        )

    return _make


# ---------------------------------------------------------------------------
# Preference fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def default_preferences() -> UserPreferences:
    return UserPreferences(
        difficulty_preference=DifficultyLevel.INTERMEDIATE,
        preferred_formats=["narrative", "podcast"],
        preferred_genres=["adventure"],
        playback_speed=1.0,
        auto_play=True,
    )
