"""Learner state updater: folds signal interpretations into smoothed learner state."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from learner_model.models import (
    ContentTypePreferences,
    LearnerState,
    PreferenceWeights,
    SignalInterpretation,
)
from learner_model.signals import clamp, normalise_format_weights

logger = logging.getLogger(__name__)

# Exponential moving average rates
_COMPREHENSION_ALPHA = 0.3
_PREFERENCE_ALPHA = 0.2
_CONTENT_TYPE_ALPHA = 0.25

# Difficulty adjustment breakpoints: (threshold, adjustment)
_IMPROVING = (0.1, 0.1)          # comprehension rose by more than 0.1
_DECLINING = (-0.1, -0.2)        # comprehension fell by more than 0.1
_VERY_HIGH = (0.9, 0.15)         # comprehension above 0.9
_VERY_LOW = (0.3, -0.25)         # comprehension below 0.3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_initial_learner_state(
    preference_weights: dict[str, float] | None = None,
    comprehension_level: float | None = None,
) -> LearnerState:
    """Return a fresh learner state, optionally seeded.

    Args:
        preference_weights: Optional starting format weights keyed by
            ``"narrative"``/``"podcast"``/``"educational"``.  Missing keys
            default to 0.33.  Used as given; not renormalised.
        comprehension_level: Optional starting comprehension; defaults to 0.5.

    Returns:
        A new :class:`~learner_model.models.LearnerState` with zero data points.
    """
    seeded = preference_weights or {}
    weights = PreferenceWeights(
        narrative=seeded.get("narrative", 0.33),
        podcast=seeded.get("podcast", 0.33),
        educational=seeded.get("educational", 0.33),
    )
    return LearnerState(
        preference_weights=weights,
        comprehension_level=0.5 if comprehension_level is None else comprehension_level,
    )


def update_learner_state(
    interpretation: SignalInterpretation,
    state: LearnerState | None = None,
    now: Callable[[], datetime] = _utcnow,
) -> LearnerState:
    """Fold *interpretation* into *state* and return the new state.

    Every field moves by an exponential moving average rather than being
    overwritten, so a single batch of signals cannot swing the state
    abruptly:

    ====================  =====
    Field                 Alpha
    ====================  =====
    Comprehension         0.3
    Format/genre weights  0.2
    Content-type scores   0.25
    ====================  =====

    Keys absent from the interpretation keep their previous value.  Format
    weights are renormalised to sum to 1 afterwards.  The difficulty
    adjustment is derived from the change in comprehension.

    Args:
        interpretation: Output of
            :func:`~learner_model.signals.interpret_signals`.
        state: The current state.  A default initial state is used when
            omitted.  Never mutated.
        now: Clock used for ``last_updated``.

    Returns:
        A new :class:`~learner_model.models.LearnerState` with
        ``data_points`` incremented by one.
    """
    if state is None:
        state = create_initial_learner_state()

    new_comprehension = _ema(
        state.comprehension_level,
        interpretation.comprehension_level,
        _COMPREHENSION_ALPHA,
    )

    weights = _update_preference_weights(
        state.preference_weights, interpretation.preference_weights
    )

    previous = state.content_type_preferences
    signal = interpretation.content_type_preferences
    content_types = ContentTypePreferences(
        format_scores=_merge_scores(previous.format_scores, signal.format_scores),
        genre_scores=_merge_scores(previous.genre_scores, signal.genre_scores),
        difficulty_scores=_merge_scores(
            previous.difficulty_scores, signal.difficulty_scores
        ),
    )

    adjustment = difficulty_adjustment_from_comprehension(
        new_comprehension, state.comprehension_level
    )

    updated = LearnerState(
        preference_weights=weights,
        comprehension_level=clamp(new_comprehension, 0.0, 1.0),
        content_type_preferences=content_types,
        difficulty_adjustment=adjustment,
        last_updated=now(),
        data_points=state.data_points + 1,
    )
    logger.debug(
        "Learner state updated: comprehension %.3f -> %.3f, adjustment=%+.2f, "
        "data_points=%d",
        state.comprehension_level,
        updated.comprehension_level,
        adjustment,
        updated.data_points,
    )
    return updated


def get_learner_state(state: LearnerState) -> LearnerState:
    """Return an independent copy of *state*."""
    return copy.deepcopy(state)


def difficulty_adjustment_from_comprehension(
    new_level: float, previous_level: float
) -> float:
    """Map a comprehension change onto a difficulty adjustment.

    A rising learner gets a small increase, a falling one a larger decrease;
    otherwise very high or very low absolute comprehension decides.
    """
    change = new_level - previous_level

    if change > _IMPROVING[0]:
        return _IMPROVING[1]
    if change < _DECLINING[0]:
        return _DECLINING[1]
    if new_level > _VERY_HIGH[0]:
        return _VERY_HIGH[1]
    if new_level < _VERY_LOW[0]:
        return _VERY_LOW[1]
    return 0.0


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _update_preference_weights(
    current: PreferenceWeights, signal: PreferenceWeights
) -> PreferenceWeights:
    weights = PreferenceWeights(
        narrative=_ema(current.narrative, signal.narrative, _PREFERENCE_ALPHA),
        podcast=_ema(current.podcast, signal.podcast, _PREFERENCE_ALPHA),
        educational=_ema(current.educational, signal.educational, _PREFERENCE_ALPHA),
        genres=_merge_scores(current.genres, signal.genres, _PREFERENCE_ALPHA),
    )
    normalise_format_weights(weights)
    return weights


def _merge_scores(
    current: dict[str, float],
    signal: dict[str, float],
    alpha: float = _CONTENT_TYPE_ALPHA,
) -> dict[str, float]:
    merged = dict(current)
    for key, value in signal.items():
        merged[key] = _ema(merged.get(key, 0.0), value, alpha)
    return merged


def _ema(current: float, signal: float, alpha: float) -> float:
    return current * (1 - alpha) + signal * alpha
