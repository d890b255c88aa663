"""Signal interpreter: turns raw playback events and likes into learner signals."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from learner_model.models import (
    BehavioralEvent,
    ContentCharacteristics,
    ContentFormat,
    ContentTypePreferences,
    EventType,
    LikeEngagement,
    PreferenceWeights,
    SignalInterpretation,
)

logger = logging.getLogger(__name__)

NEUTRAL_COMPREHENSION = 0.5
DEFAULT_FORMAT_WEIGHT = 0.33

# Comprehension scoring weights
_COMPLETION_WEIGHT = 0.4
_POSITION_WEIGHT = 0.3
_REPLAY_BAND = (0.1, 0.3)     # exclusive bounds of the "engaged but needs support" band
_REPLAY_BAND_BONUS = 0.1
_SKIP_RATE_THRESHOLD = 0.2
_SKIP_PENALTY = 0.2
_EARLY_ABANDON_WEIGHT = 0.3

# Preference weights
_DISLIKE_FACTOR = 0.5
_GENRE_LIKE_INCREMENT = 0.1

# Content-type score deltas
_SCORE_COMPLETE = 1.0
_SCORE_REPLAY = 0.5
_SCORE_EARLY_ABANDON = -0.5
_SCORE_LIKE = 2.0
_SCORE_UNLIKE = -1.0

_FORMAT_KEYS = tuple(f.value for f in ContentFormat)


@dataclass
class BehaviourSummary:
    """Aggregate rates over one batch of behavioural events.

    Rates over content (completion, abandonment, early abandonment) use the
    number of distinct content ids as denominator; replay and skip rates use
    the total number of events.

    Attributes:
        total_events: Number of events in the batch.
        distinct_content: Number of distinct content ids.
        completion_rate: ``complete`` events per distinct content item.
        abandonment_rate: Abandonment events of any band per content item.
        early_abandonment_rate: ``abandon-early`` events per content item.
        replay_rate: Replay events of any kind per event.
        skip_rate: Skip events per event.
        terminal_events: Number of completion-or-abandonment events.
        mean_terminal_position: Mean playback percent over terminal events,
            or 0 when there are none.
    """

    total_events: int = 0
    distinct_content: int = 0
    completion_rate: float = 0.0
    abandonment_rate: float = 0.0
    early_abandonment_rate: float = 0.0
    replay_rate: float = 0.0
    skip_rate: float = 0.0
    terminal_events: int = 0
    mean_terminal_position: float = 0.0


def summarize_events(events: list[BehavioralEvent]) -> BehaviourSummary:
    """Compute the completion/abandonment/replay/skip rates for *events*.

    Args:
        events: Behavioural events, in any order.

    Returns:
        A :class:`BehaviourSummary`; all-zero when *events* is empty.
    """
    if not events:
        return BehaviourSummary()

    completions = sum(1 for e in events if e.event_type.is_completion)
    abandonments = sum(1 for e in events if e.event_type.is_abandonment)
    early_abandons = sum(1 for e in events if e.event_type is EventType.ABANDON_EARLY)
    replays = sum(1 for e in events if e.event_type.is_replay)
    skips = sum(1 for e in events if e.event_type.is_skip)

    distinct_content = len({e.content_id for e in events})
    positions = np.array(
        [
            e.playback_position_percent
            for e in events
            if e.event_type.is_completion or e.event_type.is_abandonment
        ],
        dtype=float,
    )
    mean_position = float(positions.mean()) if positions.size else 0.0

    return BehaviourSummary(
        total_events=len(events),
        distinct_content=distinct_content,
        completion_rate=_ratio(completions, distinct_content),
        abandonment_rate=_ratio(abandonments, distinct_content),
        early_abandonment_rate=_ratio(early_abandons, distinct_content),
        replay_rate=_ratio(replays, len(events)),
        skip_rate=_ratio(skips, len(events)),
        terminal_events=int(positions.size),
        mean_terminal_position=mean_position,
    )


def interpret_signals(
    events: list[BehavioralEvent],
    likes: list[LikeEngagement],
) -> SignalInterpretation:
    """Interpret one batch of events and likes.

    Either argument may be empty.  With no input at all the result is the
    neutral interpretation: comprehension 0.5, equal 0.33 format weights and
    empty score maps.

    Args:
        events: Recent behavioural events.
        likes: Recent like/unlike engagements.

    Returns:
        A new :class:`~learner_model.models.SignalInterpretation`.
    """
    interpretation = SignalInterpretation(
        comprehension_level=infer_comprehension_level(events),
        preference_weights=infer_preference_weights(likes),
        content_type_preferences=infer_content_type_preferences(events, likes),
    )
    logger.debug(
        "Interpreted %d events and %d likes: comprehension=%.3f",
        len(events),
        len(likes),
        interpretation.comprehension_level,
    )
    return interpretation


def infer_comprehension_level(events: list[BehavioralEvent]) -> float:
    """Score comprehension in [0, 1] from completion, replay and skip patterns."""
    if not events:
        return NEUTRAL_COMPREHENSION

    summary = summarize_events(events)

    score = summary.completion_rate * _COMPLETION_WEIGHT
    score += (summary.mean_terminal_position / 100) * _POSITION_WEIGHT

    low, high = _REPLAY_BAND
    if low < summary.replay_rate < high:
        score += _REPLAY_BAND_BONUS

    if summary.skip_rate > _SKIP_RATE_THRESHOLD:
        score -= _SKIP_PENALTY

    score -= summary.early_abandonment_rate * _EARLY_ABANDON_WEIGHT

    return clamp(score, 0.0, 1.0)


def infer_preference_weights(likes: list[LikeEngagement]) -> PreferenceWeights:
    """Derive format and genre weights from like/unlike engagement.

    Each format that received likes gets ``0.33 + like_share -
    0.5 * dislike_share`` (clamped to [0, 1]), where shares are relative to
    all engagements.  The three format weights are then renormalised to sum
    to 1.  Liked genres add ``0.1`` per like to their own key.
    """
    weights = PreferenceWeights()
    if not likes:
        return weights

    liked = [like for like in likes if like.liked]
    format_likes: dict[str, int] = {}
    format_dislikes: dict[str, int] = {}
    for like in likes:
        counts = format_likes if like.liked else format_dislikes
        fmt = like.characteristics.format
        counts[fmt] = counts.get(fmt, 0) + 1

    total = len(likes)
    for fmt, count in format_likes.items():
        if fmt not in _FORMAT_KEYS:
            continue
        net = count / total - (format_dislikes.get(fmt, 0) / total) * _DISLIKE_FACTOR
        setattr(weights, fmt, clamp(DEFAULT_FORMAT_WEIGHT + net, 0.0, 1.0))

    normalise_format_weights(weights)

    for like in liked:
        genre = like.characteristics.genre
        if genre:
            weights.genres[genre] = weights.genres.get(genre, 0.0) + _GENRE_LIKE_INCREMENT

    return weights


def infer_content_type_preferences(
    events: list[BehavioralEvent],
    likes: list[LikeEngagement],
) -> ContentTypePreferences:
    """Accumulate format/genre/difficulty scores and normalise each to [0, 1].

    ========================  =========  =========  ==========
    Signal                    Format     Genre      Difficulty
    ========================  =========  =========  ==========
    ``complete``              +1         +1         +1
    any replay                +0.5       +0.5       --
    ``abandon-early``         -0.5       -0.5       -0.5
    like                      +2         +2         +2
    unlike                    -1         -1         -1
    ========================  =========  =========  ==========
    """
    format_scores: dict[str, float] = {}
    genre_scores: dict[str, float] = {}
    difficulty_scores: dict[str, float] = {}

    def add(
        chars: ContentCharacteristics,
        delta: float,
        include_difficulty: bool = True,
    ) -> None:
        _bump(format_scores, chars.format, delta)
        if chars.genre:
            _bump(genre_scores, chars.genre, delta)
        if include_difficulty:
            _bump(difficulty_scores, chars.difficulty, delta)

    for event in events:
        chars = event.characteristics
        if event.event_type.is_completion:
            add(chars, _SCORE_COMPLETE)
        if event.event_type.is_replay:
            add(chars, _SCORE_REPLAY, include_difficulty=False)
        if event.event_type is EventType.ABANDON_EARLY:
            add(chars, _SCORE_EARLY_ABANDON)

    for like in likes:
        add(like.characteristics, _SCORE_LIKE if like.liked else _SCORE_UNLIKE)

    return ContentTypePreferences(
        format_scores=normalise_scores(format_scores),
        genre_scores=normalise_scores(genre_scores),
        difficulty_scores=normalise_scores(difficulty_scores),
    )


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------


def normalise_scores(scores: dict[str, float]) -> dict[str, float]:
    """Min-max normalise *scores* into [0, 1].

    The range always spans at least [0, 1]: the maximum is taken as no less
    than 1 and the minimum as no more than 0, so a single positive score maps
    to 1.0 rather than collapsing to 0.
    """
    if not scores:
        return {}
    values = np.fromiter(scores.values(), dtype=float, count=len(scores))
    high = max(float(values.max()), 1.0)
    low = min(float(values.min()), 0.0)
    span = (high - low) or 1.0
    normalised = (values - low) / span
    return {key: float(value) for key, value in zip(scores, normalised)}


def normalise_format_weights(weights: PreferenceWeights) -> None:
    """Rescale the three format weights in place so they sum to 1.

    Leaves the weights untouched when their sum is not positive.
    """
    total = weights.narrative + weights.podcast + weights.educational
    if total <= 0:
        return
    weights.narrative /= total
    weights.podcast /= total
    weights.educational /= total


def _bump(scores: dict[str, float], key: str, delta: float) -> None:
    scores[key] = scores.get(key, 0.0) + delta


def _ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
