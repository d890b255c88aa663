"""Tests for ModelService (the versioned facade over the learner model)."""

from __future__ import annotations

import random
from unittest.mock import patch

import pytest

from learner_model.generation import GenerationParameterCalculator
from learner_model.models import (
    AdaptationRecommendations,
    DifficultyLevel,
    EventType,
    GenerationParameters,
    LearnerState,
    PromptGuidance,
    SignalInterpretation,
    UserPreferences,
)
from learner_model.service import API_VERSION, ModelService, create_model_service


def _service(seed: int = 3) -> ModelService:
    return ModelService(calculator=GenerationParameterCalculator(random.Random(seed)))


class TestVersion:
    def test_version(self) -> None:
        assert API_VERSION == "v1"
        assert _service().get_version() == "v1"


class TestGeneration:
    def test_parameters_for_tier(self, default_preferences) -> None:
        params = _service().get_generation_parameters(default_preferences)
        assert isinstance(params, GenerationParameters)
        assert params.lexical_novelty_budget == 0.06

    def test_guidance(self, default_preferences) -> None:
        service = _service()
        params = service.get_generation_parameters(default_preferences)
        guidance = service.get_prompt_engineering_guidance(default_preferences, params)
        assert isinstance(guidance, PromptGuidance)
        assert params.variation_pattern in guidance.variation_specification

    def test_seeded_factory_is_reproducible(self, default_preferences) -> None:
        first = create_model_service(seed=11).get_generation_parameters(default_preferences)
        second = create_model_service(seed=11).get_generation_parameters(default_preferences)
        assert first == second


class TestSignalPipeline:
    def test_interpret_then_update(self, make_event, make_like) -> None:
        service = _service()
        events = [make_event(EventType.COMPLETE, f"c{i}", 100) for i in range(3)]
        interpretation = service.interpret_signals(events, [make_like(True)])
        assert isinstance(interpretation, SignalInterpretation)

        state = service.update_learner_state(interpretation)
        assert state.data_points == 1
        assert state.comprehension_level > 0.5

        state = service.update_learner_state(interpretation, state)
        assert state.data_points == 2

    def test_get_learner_state_copies(self) -> None:
        state = LearnerState()
        snapshot = _service().get_learner_state(state)
        assert snapshot == state
        assert snapshot is not state

    def test_recommendations(self, make_event, default_preferences) -> None:
        events = [make_event(EventType.ABANDON_EARLY, f"c{i}", 10) for i in range(3)]
        recs = _service().get_adaptation_recommendations(events, [], default_preferences)
        assert isinstance(recs, AdaptationRecommendations)
        assert recs.difficulty_adjustment < 0


class TestTiming:
    def test_slow_call_logs_warning(self, default_preferences) -> None:
        service = ModelService(slow_call_threshold_ms=-1)
        with patch("learner_model.service.logger") as mock_logger:
            service.get_generation_parameters(default_preferences)
            mock_logger.warning.assert_called_once()

    def test_fast_call_logs_debug(self, default_preferences) -> None:
        service = ModelService(slow_call_threshold_ms=60_000)
        with patch("learner_model.service.logger") as mock_logger:
            service.get_generation_parameters(default_preferences)
            mock_logger.warning.assert_not_called()
            mock_logger.debug.assert_called_once()

    def test_errors_propagate(self) -> None:
        with pytest.raises(ValueError):
            _service().get_generation_parameters(
                UserPreferences(difficulty_preference="expert")
            )

    def test_default_calculator(self) -> None:
        params = ModelService().get_generation_parameters(
            UserPreferences(difficulty_preference=DifficultyLevel.ADVANCED)
        )
        assert params.lexical_novelty_budget == 0.08
