"""Core domain dataclasses shared across all learner-model modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class EventType(str, Enum):
    """Playback and engagement interactions reported by the listening client."""

    # Playback control
    PLAY = "play"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    # Navigation
    SKIP_FORWARD = "skip-forward"
    SKIP_BACKWARD = "skip-backward"
    SEEK_FORWARD = "seek-forward"
    SEEK_BACKWARD = "seek-backward"
    SEEK_TO_POSITION = "seek-to-position"
    # Replay
    REPLAY_SEGMENT = "replay-segment"
    REPLAY_FULL = "replay-full"
    REPLAY_FROM_POSITION = "replay-from-position"
    # Completion
    COMPLETE = "complete"
    COMPLETE_WITH_REPLAY = "complete-with-replay"
    ABANDON = "abandon"
    ABANDON_EARLY = "abandon-early"  # < 25%
    ABANDON_MID = "abandon-mid"      # 25-75%
    ABANDON_LATE = "abandon-late"    # > 75%
    # Engagement
    LIKE = "like"
    UNLIKE = "unlike"

    @property
    def is_completion(self) -> bool:
        return self is EventType.COMPLETE

    @property
    def is_abandonment(self) -> bool:
        return self.value.startswith("abandon")

    @property
    def is_replay(self) -> bool:
        return self.value.startswith("replay")

    @property
    def is_skip(self) -> bool:
        return "skip" in self.value


class ContentFormat(str, Enum):
    """Content formats the generator can produce."""

    NARRATIVE = "narrative"
    PODCAST = "podcast"
    EDUCATIONAL = "educational"


class DifficultyLevel(str, Enum):
    """Learner-declared difficulty tier."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class ContentCharacteristics:
    """Snapshot of a content item's characteristics, captured at event time.

    Attributes:
        format: Content format label (normally a :class:`ContentFormat` value).
        genre: Genre label, or ``None`` for genre-less content.
        difficulty: Difficulty label of the content (free-form, e.g.
            ``"intermediate"`` or ``"lexical-heavy"``).
        template_id: Identifier of the template the content was generated from.
        topic: Optional topic label.
        tags: Optional fine-grained tags.
    """

    format: str
    genre: str | None
    difficulty: str
    template_id: str
    topic: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BehavioralEvent:
    """A single playback interaction.

    Attributes:
        event_id: Unique identifier for the event.
        content_id: The content item involved.
        event_type: The category of interaction.
        timestamp: When the event occurred.
        playback_position: Absolute position in seconds.
        playback_position_percent: Position as a percentage (0-100) of duration.
        duration: Content duration in seconds.
        session_id: Listening session the event belongs to.
        characteristics: Content characteristics at event time.
    """

    event_id: str
    content_id: str
    event_type: EventType
    timestamp: datetime
    playback_position: float
    playback_position_percent: float
    duration: float
    session_id: str
    characteristics: ContentCharacteristics


@dataclass(frozen=True)
class LikeEngagement:
    """A like or unlike of one content item.

    Attributes:
        content_id: The content item involved.
        liked: ``True`` for a like, ``False`` for an unlike.
        liked_at: When the like happened; ``None`` when not liked.
        session_id: Listening session the engagement belongs to.
        characteristics: Content characteristics at engagement time.
    """

    content_id: str
    liked: bool
    liked_at: datetime | None
    session_id: str
    characteristics: ContentCharacteristics


@dataclass(frozen=True)
class UserPreferences:
    """Preferences supplied by the caller with each request."""

    difficulty_preference: DifficultyLevel
    preferred_formats: list[str] = field(default_factory=list)
    preferred_genres: list[str] = field(default_factory=list)
    playback_speed: float = 1.0
    auto_play: bool = False


@dataclass
class PreferenceWeights:
    """Relative preference weights.

    The three format weights are fixed fields; genre weights live in a
    separate open map keyed by genre label.
    """

    narrative: float = 0.33
    podcast: float = 0.33
    educational: float = 0.33
    genres: dict[str, float] = field(default_factory=dict)

    def format_weights(self) -> dict[str, float]:
        """Return the three format weights keyed by format label."""
        return {
            ContentFormat.NARRATIVE.value: self.narrative,
            ContentFormat.PODCAST.value: self.podcast,
            ContentFormat.EDUCATIONAL.value: self.educational,
        }


@dataclass
class ContentTypePreferences:
    """Per-characteristic preference scores."""

    format_scores: dict[str, float] = field(default_factory=dict)
    genre_scores: dict[str, float] = field(default_factory=dict)
    difficulty_scores: dict[str, float] = field(default_factory=dict)


@dataclass
class SignalInterpretation:
    """Result of interpreting one batch of events and likes.

    Attributes:
        comprehension_level: Estimated comprehension in [0, 1].
        preference_weights: Format/genre weights inferred from likes.
        content_type_preferences: Score maps, each normalised to [0, 1].
    """

    comprehension_level: float = 0.5
    preference_weights: PreferenceWeights = field(default_factory=PreferenceWeights)
    content_type_preferences: ContentTypePreferences = field(
        default_factory=ContentTypePreferences
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LearnerState:
    """Smoothed per-learner state carried between requests.

    The core never stores this; callers persist it and hand it back on the
    next call.

    Attributes:
        preference_weights: Format weights (summing to 1.0) plus genre weights.
        comprehension_level: Smoothed comprehension estimate in [0, 1].
        content_type_preferences: Smoothed score maps.
        difficulty_adjustment: Last difficulty adjustment, in [-1, 1].
        last_updated: When the state was last updated (UTC).
        data_points: Number of updates folded into this state.
    """

    preference_weights: PreferenceWeights = field(default_factory=PreferenceWeights)
    comprehension_level: float = 0.5
    content_type_preferences: ContentTypePreferences = field(
        default_factory=ContentTypePreferences
    )
    difficulty_adjustment: float = 0.0
    last_updated: datetime = field(default_factory=_utcnow)
    data_points: int = 0


@dataclass
class GenerationParameters:
    """Knobs that steer the downstream text generator.

    The last three fields are reserved for future complexity controls and
    are left as ``None``.
    """

    lexical_novelty_budget: float
    construction_sets: list[str]
    variation_pattern: str
    comprehensibility_target: float
    semantic_stability: float
    discourse_complexity: float | None = None
    vocabulary_level: str | None = None
    grammar_complexity: float | None = None


@dataclass
class AdaptationRecommendations:
    """What to surface next and how to shift difficulty."""

    recommended_formats: list[str]
    recommended_genres: list[str]
    difficulty_adjustment: float
    template_recommendations: list[str]


@dataclass
class PromptGuidance:
    """Instruction strings handed verbatim to the prompt builder."""

    meaning_first_approach: str
    variation_specification: str
    comprehensibility_guidance: str
    semantic_anchoring_guidance: str
