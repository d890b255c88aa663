"""Adaptation engine: turns recent signals and learner state into recommendations."""

from __future__ import annotations

import logging

from learner_model.models import (
    AdaptationRecommendations,
    BehavioralEvent,
    ContentFormat,
    DifficultyLevel,
    LearnerState,
    LikeEngagement,
    UserPreferences,
)
from learner_model.ranking import (
    CandidateSource,
    DeclaredPreferenceSource,
    LearnerStateSource,
    LikeTallySource,
)
from learner_model.signals import BehaviourSummary, clamp, summarize_events

logger = logging.getLogger(__name__)

MAX_FORMATS = 3
MAX_GENRES = 5
MAX_TEMPLATES = 5
DEFAULT_FORMATS = [ContentFormat.NARRATIVE.value]

# Candidates taken from each source: (formats, genres); None means all.
_DECLARED_TAKE = (None, None)
_LIKES_TAKE = (2, 3)
_STATE_TAKE = (2, 3)

# Threshold contributions to the difficulty adjustment
_HIGH_COMPLETION = (0.8, 0.2)
_HIGH_ABANDONMENT = (0.3, -0.3)
_HIGH_EARLY_ABANDONMENT = (0.2, -0.2)
_HIGH_REPLAY = (0.15, -0.1)
_LOW_MEAN_POSITION = (50.0, -0.2)
_HIGH_MEAN_POSITION = (90.0, 0.1)
_STATE_HIGH_COMPREHENSION = (0.8, 0.1)
_STATE_LOW_COMPREHENSION = (0.5, -0.2)
_STATE_ADJUSTMENT_WEIGHT = 0.5

# Template difficulty bands
_BEGINNER_BELOW = -0.3
_ADVANCED_ABOVE = 0.3


def get_adaptation_recommendations(
    events: list[BehavioralEvent],
    likes: list[LikeEngagement],
    preferences: UserPreferences,
    state: LearnerState | None = None,
) -> AdaptationRecommendations:
    """Recommend formats, genres, templates and a difficulty shift.

    Format and genre candidates come from three sources, in strict priority
    order: the learner's declared preferences, the top formats/genres by
    like count in *likes*, then the top-scored entries in *state*.  Later
    sources only contribute entries that earlier ones did not, whatever their
    score.

    Args:
        events: Recent behavioural events.
        likes: Recent like/unlike engagements.
        preferences: The learner's declared preferences.
        state: Optional current learner state.

    Returns:
        An :class:`~learner_model.models.AdaptationRecommendations` that
        always names at least one format.
    """
    summary = summarize_events(events)
    adjustment = calculate_difficulty_adjustment(summary, state)

    sources: list[tuple[CandidateSource, tuple[int | None, int | None]]] = [
        (DeclaredPreferenceSource(preferences), _DECLARED_TAKE),
        (LikeTallySource(likes), _LIKES_TAKE),
    ]
    if state is not None:
        sources.append((LearnerStateSource(state), _STATE_TAKE))

    formats = _merge_candidates(
        [source.formats(take[0]) for source, take in sources]
    )
    genres = _merge_candidates(
        [source.genres(take[1]) for source, take in sources]
    )

    formats = formats[:MAX_FORMATS] if formats else list(DEFAULT_FORMATS)
    genres = genres[:MAX_GENRES]
    templates = recommend_templates(formats, genres, adjustment)

    logger.debug(
        "Adaptation: formats=%s genres=%s adjustment=%+.2f templates=%d",
        formats,
        genres,
        adjustment,
        len(templates),
    )
    return AdaptationRecommendations(
        recommended_formats=formats,
        recommended_genres=genres,
        difficulty_adjustment=adjustment,
        template_recommendations=templates,
    )


def calculate_difficulty_adjustment(
    summary: BehaviourSummary,
    state: LearnerState | None = None,
) -> float:
    """Sum the threshold contributions of *summary* (and *state*) into [-1, 1].

    ================================  ============
    Condition                         Contribution
    ================================  ============
    completion rate > 0.8             +0.2
    abandonment rate > 0.3            -0.3
    early-abandonment rate > 0.2      -0.2
    replay rate > 0.15                -0.1
    mean terminal position < 50       -0.2
    mean terminal position > 90       +0.1
    state comprehension > 0.8         +0.1
    state comprehension < 0.5         -0.2
    state difficulty adjustment       x 0.5
    ================================  ============

    The mean-position rows only apply to a non-empty batch; a batch with no
    completion or abandonment events has a mean position of 0.
    """
    adjustment = 0.0

    if summary.completion_rate > _HIGH_COMPLETION[0]:
        adjustment += _HIGH_COMPLETION[1]
    if summary.abandonment_rate > _HIGH_ABANDONMENT[0]:
        adjustment += _HIGH_ABANDONMENT[1]
    if summary.early_abandonment_rate > _HIGH_EARLY_ABANDONMENT[0]:
        adjustment += _HIGH_EARLY_ABANDONMENT[1]
    if summary.replay_rate > _HIGH_REPLAY[0]:
        adjustment += _HIGH_REPLAY[1]

    if summary.total_events:
        if summary.mean_terminal_position < _LOW_MEAN_POSITION[0]:
            adjustment += _LOW_MEAN_POSITION[1]
        elif summary.mean_terminal_position > _HIGH_MEAN_POSITION[0]:
            adjustment += _HIGH_MEAN_POSITION[1]

    if state is not None:
        if state.comprehension_level > _STATE_HIGH_COMPREHENSION[0]:
            adjustment += _STATE_HIGH_COMPREHENSION[1]
        elif state.comprehension_level < _STATE_LOW_COMPREHENSION[0]:
            adjustment += _STATE_LOW_COMPREHENSION[1]
        adjustment += state.difficulty_adjustment * _STATE_ADJUSTMENT_WEIGHT

    return clamp(adjustment, -1.0, 1.0)


def recommend_templates(
    formats: list[str],
    genres: list[str],
    difficulty_adjustment: float,
) -> list[str]:
    """Synthesise template ids for each format x genre pair.

    Ids take the form ``"{format}-{genre}-{level}-v1"``, or
    ``"{format}-{level}-v1"`` when there are no genres.  Formats are the
    outer loop; at most five ids are returned.
    """
    level = difficulty_level_for(difficulty_adjustment).value
    templates: list[str] = []
    for fmt in formats:
        if genres:
            templates.extend(f"{fmt}-{genre}-{level}-v1" for genre in genres)
        else:
            templates.append(f"{fmt}-{level}-v1")
    return templates[:MAX_TEMPLATES]


def difficulty_level_for(difficulty_adjustment: float) -> DifficultyLevel:
    """Map an adjustment scalar onto the tier used in template ids."""
    if difficulty_adjustment < _BEGINNER_BELOW:
        return DifficultyLevel.BEGINNER
    if difficulty_adjustment > _ADVANCED_ABOVE:
        return DifficultyLevel.ADVANCED
    return DifficultyLevel.INTERMEDIATE


def _merge_candidates(candidate_lists: list[list[str]]) -> list[str]:
    """Concatenate candidate lists in order, dropping repeats."""
    merged: list[str] = []
    seen: set[str] = set()
    for candidates in candidate_lists:
        for candidate in candidates:
            if candidate not in seen:
                merged.append(candidate)
                seen.add(candidate)
    return merged
