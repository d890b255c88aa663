"""Model service: the versioned facade over the four learner-model components."""

from __future__ import annotations

import logging
import random
import time
from contextlib import contextmanager
from typing import Iterator

from learner_model.adaptation import get_adaptation_recommendations
from learner_model.generation import (
    GenerationParameterCalculator,
    get_prompt_engineering_guidance,
)
from learner_model.learner_state import get_learner_state, update_learner_state
from learner_model.models import (
    AdaptationRecommendations,
    BehavioralEvent,
    GenerationParameters,
    LearnerState,
    LikeEngagement,
    PromptGuidance,
    SignalInterpretation,
    UserPreferences,
)
from learner_model.signals import interpret_signals

logger = logging.getLogger(__name__)

API_VERSION = "v1"


class ModelService:
    """Versioned entry point used by request handlers.

    The service holds no learner data: every method takes its inputs as
    arguments and returns new values, so one instance can be shared by any
    number of concurrent callers.  The only owned collaborator is the
    :class:`~learner_model.generation.GenerationParameterCalculator` and
    its random source.

    Args:
        calculator: Generation parameter calculator.  Defaults to one with an
            unseeded random source.
        slow_call_threshold_ms: Calls slower than this are logged at WARNING.
    """

    def __init__(
        self,
        calculator: GenerationParameterCalculator | None = None,
        slow_call_threshold_ms: float = 100.0,
    ) -> None:
        self._calculator = calculator or GenerationParameterCalculator()
        self._slow_call_threshold_ms = slow_call_threshold_ms

    def get_version(self) -> str:
        return API_VERSION

    def get_generation_parameters(
        self, preferences: UserPreferences
    ) -> GenerationParameters:
        with self._timed("get_generation_parameters"):
            return self._calculator.get_generation_parameters(preferences)

    def get_prompt_engineering_guidance(
        self,
        preferences: UserPreferences,
        params: GenerationParameters,
    ) -> PromptGuidance:
        with self._timed("get_prompt_engineering_guidance"):
            return get_prompt_engineering_guidance(preferences, params)

    def get_adaptation_recommendations(
        self,
        events: list[BehavioralEvent],
        likes: list[LikeEngagement],
        preferences: UserPreferences,
        state: LearnerState | None = None,
    ) -> AdaptationRecommendations:
        with self._timed("get_adaptation_recommendations"):
            return get_adaptation_recommendations(events, likes, preferences, state)

    def interpret_signals(
        self,
        events: list[BehavioralEvent],
        likes: list[LikeEngagement],
    ) -> SignalInterpretation:
        with self._timed("interpret_signals"):
            return interpret_signals(events, likes)

    def update_learner_state(
        self,
        interpretation: SignalInterpretation,
        state: LearnerState | None = None,
    ) -> LearnerState:
        with self._timed("update_learner_state"):
            return update_learner_state(interpretation, state)

    def get_learner_state(self, state: LearnerState) -> LearnerState:
        return get_learner_state(state)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _timed(self, operation: str) -> Iterator[None]:
        start_ms = time.monotonic() * 1000
        try:
            yield
        finally:
            elapsed_ms = time.monotonic() * 1000 - start_ms
            if elapsed_ms > self._slow_call_threshold_ms:
                logger.warning(
                    "%s took %.1fms (threshold: %.0fms)",
                    operation,
                    elapsed_ms,
                    self._slow_call_threshold_ms,
                )
            else:
                logger.debug("%s took %.1fms", operation, elapsed_ms)


def create_model_service(
    seed: int | None = None,
    slow_call_threshold_ms: float = 100.0,
) -> ModelService:
    """Build a :class:`ModelService`, optionally with a seeded jitter source."""
    calculator = GenerationParameterCalculator(random.Random(seed))
    return ModelService(
        calculator=calculator, slow_call_threshold_ms=slow_call_threshold_ms
    )
