"""Tests for ModelServicer (gRPC service layer)."""

from __future__ import annotations

import random
from unittest.mock import MagicMock, patch

import grpc
import pytest
from google.protobuf.struct_pb2 import Struct

from learner_model import codec
from learner_model.generation import GenerationParameterCalculator
from learner_model.service import ModelService
from learner_model.servicer import (
    SERVICE_NAME,
    ModelServicer,
    add_model_servicer_to_server,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_context() -> MagicMock:
    """Return a mock gRPC context."""
    ctx = MagicMock()
    ctx.set_code = MagicMock()
    ctx.set_details = MagicMock()
    return ctx


def _make_servicer() -> ModelServicer:
    calculator = GenerationParameterCalculator(random.Random(5))
    return ModelServicer(model_service=ModelService(calculator=calculator))


def _call(method: str, payload: dict, servicer: ModelServicer | None = None):
    servicer = servicer or _make_servicer()
    ctx = _make_context()
    response = getattr(servicer, method)(codec.dict_to_struct(payload), ctx)
    return codec.struct_to_dict(response), ctx


PREFERENCES = {
    "difficultyPreference": "beginner",
    "preferredFormats": ["narrative", "podcast"],
    "preferredGenres": [],
    "playbackSpeed": 1.0,
    "autoPlay": False,
}


def _event(event_type: str, content_id: str, percent: float) -> dict:
    return {
        "id": f"{content_id}-{event_type}",
        "contentId": content_id,
        "eventType": event_type,
        "timestamp": "2024-06-01T12:00:00Z",
        "playbackPosition": percent,
        "playbackPositionPercent": percent,
        "duration": 100,
        "sessionId": "session-1",
        "contentCharacteristics": {
            "format": "podcast",
            "genre": "travel",
            "difficulty": "beginner",
            "templateId": "podcast-travel-beginner-v1",
        },
    }


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class TestGetGenerationParameters:
    def test_returns_parameters(self) -> None:
        result, ctx = _call("GetGenerationParameters", {"preferences": PREFERENCES})
        assert result["lexicalNoveltyBudget"] == pytest.approx(0.04)
        assert result["variationPattern"] == "same-meaning-minimal-variation"
        assert len(result["constructionSets"]) == 5
        assert "discourseComplexity" not in result
        ctx.set_code.assert_not_called()

    def test_missing_preferences_sets_invalid_argument(self) -> None:
        result, ctx = _call("GetGenerationParameters", {})
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)
        assert result == {}

    def test_unknown_tier_sets_invalid_argument(self) -> None:
        prefs = dict(PREFERENCES, difficultyPreference="expert")
        _, ctx = _call("GetGenerationParameters", {"preferences": prefs})
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)


class TestGetPromptGuidance:
    def test_uses_supplied_parameters(self) -> None:
        params = {
            "lexicalNoveltyBudget": 0.04,
            "constructionSets": ["present-tense"],
            "variationPattern": "same-meaning-minimal-variation",
            "comprehensibilityTarget": 0.666,
            "semanticStability": 0.8,
        }
        result, _ = _call(
            "GetPromptGuidance", {"preferences": PREFERENCES, "parameters": params}
        )
        assert "Target comprehensibility: 0.67." in result["comprehensibilityGuidance"]
        assert "Use 1 construction patterns" in result["meaningFirstApproach"]

    def test_computes_parameters_when_absent(self) -> None:
        result, ctx = _call("GetPromptGuidance", {"preferences": PREFERENCES})
        assert set(result) == {
            "meaningFirstApproach",
            "variationSpecification",
            "comprehensibilityGuidance",
            "semanticAnchoringGuidance",
        }
        assert "Use 5 construction patterns" in result["meaningFirstApproach"]
        ctx.set_code.assert_not_called()


# ---------------------------------------------------------------------------
# Adaptation and signals
# ---------------------------------------------------------------------------


class TestGetAdaptationRecommendations:
    def test_empty_batch(self) -> None:
        result, _ = _call(
            "GetAdaptationRecommendations",
            {"events": [], "likes": [], "preferences": PREFERENCES},
        )
        assert result["recommendedFormats"] == ["narrative", "podcast"]
        assert result["difficultyAdjustment"] == 0
        assert result["templateRecommendations"] == [
            "narrative-intermediate-v1",
            "podcast-intermediate-v1",
        ]

    def test_abandonment_batch(self) -> None:
        events = [_event("abandon-early", f"c{i}", 10) for i in range(3)]
        result, _ = _call(
            "GetAdaptationRecommendations",
            {"events": events, "likes": [], "preferences": PREFERENCES},
        )
        assert result["difficultyAdjustment"] < 0
        assert result["templateRecommendations"][0].endswith("-beginner-v1")

    def test_with_learner_state(self) -> None:
        state = {
            "comprehensionLevel": 0.9,
            "difficultyAdjustment": 0.0,
            "contentTypePreferences": {"formatScores": {"educational": 1.0}},
        }
        result, _ = _call(
            "GetAdaptationRecommendations",
            {"preferences": PREFERENCES, "learnerState": state},
        )
        assert result["recommendedFormats"] == ["narrative", "podcast", "educational"]
        assert result["difficultyAdjustment"] == pytest.approx(0.1)

    def test_string_liked_flag_sets_invalid_argument(self) -> None:
        like = {
            "contentId": "c1",
            "liked": "false",
            "contentCharacteristics": {"format": "podcast", "difficulty": "beginner"},
        }
        _, ctx = _call(
            "GetAdaptationRecommendations",
            {"likes": [like], "preferences": PREFERENCES},
        )
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)

    def test_bad_event_sets_invalid_argument(self) -> None:
        bad = _event("fast-forward", "c1", 10)
        _, ctx = _call(
            "GetAdaptationRecommendations",
            {"events": [bad], "preferences": PREFERENCES},
        )
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)


class TestInterpretSignals:
    def test_empty_batch_is_neutral(self) -> None:
        result, _ = _call("InterpretSignals", {"events": [], "likes": []})
        assert result["comprehensionLevel"] == 0.5
        assert result["preferenceWeights"] == {
            "narrative": pytest.approx(0.33),
            "podcast": pytest.approx(0.33),
            "educational": pytest.approx(0.33),
        }
        assert result["contentTypePreferences"] == {
            "formatScores": {},
            "genreScores": {},
            "difficultyScores": {},
        }

    def test_completions(self) -> None:
        events = [_event("complete", f"c{i}", 100) for i in range(3)]
        result, _ = _call("InterpretSignals", {"events": events})
        assert result["comprehensionLevel"] == pytest.approx(0.7)
        assert result["contentTypePreferences"]["formatScores"] == {"podcast": 1.0}


# ---------------------------------------------------------------------------
# Learner state
# ---------------------------------------------------------------------------


class TestUpdateLearnerState:
    def test_from_initial_state(self) -> None:
        result, _ = _call(
            "UpdateLearnerState", {"interpretation": {"comprehensionLevel": 1.0}}
        )
        assert result["comprehensionLevel"] == pytest.approx(0.65)
        assert result["dataPoints"] == 1
        assert result["difficultyAdjustment"] == pytest.approx(0.1)
        assert "lastUpdated" in result

    def test_increments_existing_state(self) -> None:
        state = {"comprehensionLevel": 0.5, "dataPoints": 4}
        result, _ = _call(
            "UpdateLearnerState",
            {"interpretation": {"comprehensionLevel": 0.5}, "learnerState": state},
        )
        assert result["dataPoints"] == 5

    @pytest.mark.parametrize("payload", [
        {"interpretation": "oops"},
        {"interpretation": {"preferenceWeights": [0.5, 0.5]}},
        {"interpretation": {"comprehensionLevel": 0.5}, "learnerState": "stale"},
    ])
    def test_non_object_payload_sets_invalid_argument(self, payload) -> None:
        with patch("learner_model.servicer.logger") as mock_logger:
            result, ctx = _call("UpdateLearnerState", payload)
            mock_logger.exception.assert_not_called()
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)
        assert result == {}

    def test_missing_interpretation_sets_invalid_argument(self) -> None:
        _, ctx = _call("UpdateLearnerState", {"learnerState": {}})
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)
        ctx.set_details.assert_called_once_with("Missing required field 'interpretation'")


class TestGetLearnerState:
    def test_echoes_state(self) -> None:
        state = {
            "preferenceWeights": {
                "narrative": 0.5,
                "podcast": 0.3,
                "educational": 0.2,
                "mystery": 0.1,
            },
            "comprehensionLevel": 0.6,
            "contentTypePreferences": {
                "formatScores": {"narrative": 1.0},
                "genreScores": {},
                "difficultyScores": {},
            },
            "difficultyAdjustment": 0.0,
            "lastUpdated": "2024-06-01T12:00:00+00:00",
            "dataPoints": 2,
        }
        result, ctx = _call("GetLearnerState", {"learnerState": state})
        assert result == state
        ctx.set_code.assert_not_called()

    def test_missing_state_sets_invalid_argument(self) -> None:
        _, ctx = _call("GetLearnerState", {})
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)


class TestGetVersion:
    def test_version(self) -> None:
        result, _ = _call("GetVersion", {})
        assert result == {"version": "v1"}


# ---------------------------------------------------------------------------
# Error mapping and registration
# ---------------------------------------------------------------------------


class TestErrorMapping:
    def test_unexpected_error_sets_internal(self) -> None:
        service = MagicMock()
        service.interpret_signals.side_effect = RuntimeError("crash")
        servicer = ModelServicer(model_service=service)
        with patch("learner_model.servicer.logger") as mock_logger:
            result, ctx = _call("InterpretSignals", {}, servicer)
            mock_logger.exception.assert_called_once()
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INTERNAL)
        ctx.set_details.assert_called_once_with("Internal error in InterpretSignals.")
        assert result == {}

    def test_error_response_is_empty_struct(self) -> None:
        servicer = _make_servicer()
        response = servicer.GetLearnerState(Struct(), _make_context())
        assert isinstance(response, Struct)
        assert len(response.fields) == 0


class TestRegistration:
    def test_registers_generic_handler(self) -> None:
        server = MagicMock()
        add_model_servicer_to_server(_make_servicer(), server)
        server.add_generic_rpc_handlers.assert_called_once()
        (handlers,) = server.add_generic_rpc_handlers.call_args[0]
        assert len(handlers) == 1

    def test_service_name(self) -> None:
        assert SERVICE_NAME == "learner_model.v1.ModelService"
