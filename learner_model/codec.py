"""Wire codec: camelCase JSON-shaped dicts and protobuf ``Struct`` <-> dataclasses.

The request layer and the persistence layer both speak the camelCase shape
below.  Preference weights travel as one blended map (the three format keys
plus one key per genre) and are split into
:class:`~learner_model.models.PreferenceWeights` fields on decode.
Timestamps travel as ISO-8601 strings; naive values are taken as UTC.

Every ``*_from_dict`` function raises :class:`ValueError` on a malformed
payload so callers can report a single error type.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from google.protobuf import json_format
from google.protobuf.struct_pb2 import Struct

from learner_model.models import (
    AdaptationRecommendations,
    BehavioralEvent,
    ContentCharacteristics,
    ContentFormat,
    ContentTypePreferences,
    DifficultyLevel,
    EventType,
    GenerationParameters,
    LearnerState,
    LikeEngagement,
    PreferenceWeights,
    PromptGuidance,
    SignalInterpretation,
    UserPreferences,
)

_FORMAT_KEYS = tuple(f.value for f in ContentFormat)


# ---------------------------------------------------------------------------
# Struct <-> dict
# ---------------------------------------------------------------------------


def struct_to_dict(message: Struct) -> dict[str, Any]:
    """Convert a ``google.protobuf.Struct`` into a plain dict."""
    return json_format.MessageToDict(message)


def dict_to_struct(payload: dict[str, Any]) -> Struct:
    """Convert a JSON-compatible dict into a ``google.protobuf.Struct``."""
    message = Struct()
    json_format.ParseDict(payload, message)
    return message


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


def characteristics_from_dict(payload: dict[str, Any]) -> ContentCharacteristics:
    return ContentCharacteristics(
        format=str(_require(payload, "format")),
        genre=payload.get("genre") or None,
        difficulty=str(_require(payload, "difficulty")),
        template_id=str(payload.get("templateId", "")),
        topic=payload.get("topic"),
        tags=[str(t) for t in payload.get("tags") or []],
    )


def characteristics_to_dict(chars: ContentCharacteristics) -> dict[str, Any]:
    return {
        "format": chars.format,
        "genre": chars.genre,
        "difficulty": chars.difficulty,
        "templateId": chars.template_id,
        "topic": chars.topic,
        "tags": list(chars.tags),
    }


def event_from_dict(payload: dict[str, Any]) -> BehavioralEvent:
    """Decode one behavioural event.

    Raises:
        ValueError: On a missing field, unknown event type or bad timestamp.
    """
    return BehavioralEvent(
        event_id=str(_require(payload, "id")),
        content_id=str(_require(payload, "contentId")),
        event_type=_enum(EventType, _require(payload, "eventType")),
        timestamp=parse_datetime(_require(payload, "timestamp")),
        playback_position=_number(payload, "playbackPosition", 0.0),
        playback_position_percent=_number(payload, "playbackPositionPercent", 0.0),
        duration=_number(payload, "duration", 0.0),
        session_id=str(payload.get("sessionId", "")),
        characteristics=characteristics_from_dict(
            _require(payload, "contentCharacteristics")
        ),
    )


def event_to_dict(event: BehavioralEvent) -> dict[str, Any]:
    return {
        "id": event.event_id,
        "contentId": event.content_id,
        "eventType": event.event_type.value,
        "timestamp": format_datetime(event.timestamp),
        "playbackPosition": event.playback_position,
        "playbackPositionPercent": event.playback_position_percent,
        "duration": event.duration,
        "sessionId": event.session_id,
        "contentCharacteristics": characteristics_to_dict(event.characteristics),
    }


def like_from_dict(payload: dict[str, Any]) -> LikeEngagement:
    liked = _require(payload, "liked")
    if not isinstance(liked, bool):
        raise ValueError(f"Field 'liked' must be a boolean, got {liked!r}")
    liked_at = payload.get("likedAt")
    return LikeEngagement(
        content_id=str(_require(payload, "contentId")),
        liked=liked,
        liked_at=parse_datetime(liked_at) if liked_at else None,
        session_id=str(payload.get("sessionId", "")),
        characteristics=characteristics_from_dict(
            _require(payload, "contentCharacteristics")
        ),
    )


def like_to_dict(like: LikeEngagement) -> dict[str, Any]:
    return {
        "contentId": like.content_id,
        "liked": like.liked,
        "likedAt": format_datetime(like.liked_at) if like.liked_at else None,
        "sessionId": like.session_id,
        "contentCharacteristics": characteristics_to_dict(like.characteristics),
    }


def preferences_from_dict(payload: dict[str, Any]) -> UserPreferences:
    """Decode user preferences.

    Raises:
        ValueError: On an unknown difficulty tier or format.
    """
    return UserPreferences(
        difficulty_preference=_enum(
            DifficultyLevel, _require(payload, "difficultyPreference")
        ),
        preferred_formats=[
            _enum(ContentFormat, f).value for f in payload.get("preferredFormats") or []
        ],
        preferred_genres=[str(g) for g in payload.get("preferredGenres") or []],
        playback_speed=_number(payload, "playbackSpeed", 1.0),
        auto_play=bool(payload.get("autoPlay", False)),
    )


def preferences_to_dict(preferences: UserPreferences) -> dict[str, Any]:
    return {
        "difficultyPreference": DifficultyLevel(preferences.difficulty_preference).value,
        "preferredFormats": list(preferences.preferred_formats),
        "preferredGenres": list(preferences.preferred_genres),
        "playbackSpeed": preferences.playback_speed,
        "autoPlay": preferences.auto_play,
    }


# ---------------------------------------------------------------------------
# Interpretation and learner state
# ---------------------------------------------------------------------------


def preference_weights_from_dict(payload: dict[str, Any]) -> PreferenceWeights:
    _expect_object(payload)
    weights = PreferenceWeights(
        narrative=_number(payload, "narrative", 0.33),
        podcast=_number(payload, "podcast", 0.33),
        educational=_number(payload, "educational", 0.33),
    )
    for key, value in payload.items():
        if key not in _FORMAT_KEYS:
            weights.genres[key] = _as_float(key, value)
    return weights


def preference_weights_to_dict(weights: PreferenceWeights) -> dict[str, float]:
    blended = weights.format_weights()
    blended.update(weights.genres)
    return blended


def content_type_preferences_from_dict(
    payload: dict[str, Any],
) -> ContentTypePreferences:
    _expect_object(payload)
    return ContentTypePreferences(
        format_scores=_score_map(payload.get("formatScores")),
        genre_scores=_score_map(payload.get("genreScores")),
        difficulty_scores=_score_map(payload.get("difficultyScores")),
    )


def content_type_preferences_to_dict(
    prefs: ContentTypePreferences,
) -> dict[str, dict[str, float]]:
    return {
        "formatScores": dict(prefs.format_scores),
        "genreScores": dict(prefs.genre_scores),
        "difficultyScores": dict(prefs.difficulty_scores),
    }


def interpretation_from_dict(payload: dict[str, Any]) -> SignalInterpretation:
    _expect_object(payload)
    return SignalInterpretation(
        comprehension_level=_number(payload, "comprehensionLevel", 0.5),
        preference_weights=preference_weights_from_dict(
            payload.get("preferenceWeights") or {}
        ),
        content_type_preferences=content_type_preferences_from_dict(
            payload.get("contentTypePreferences") or {}
        ),
    )


def interpretation_to_dict(interpretation: SignalInterpretation) -> dict[str, Any]:
    return {
        "comprehensionLevel": interpretation.comprehension_level,
        "preferenceWeights": preference_weights_to_dict(
            interpretation.preference_weights
        ),
        "contentTypePreferences": content_type_preferences_to_dict(
            interpretation.content_type_preferences
        ),
    }


def learner_state_from_dict(payload: dict[str, Any]) -> LearnerState:
    """Decode a persisted learner state.

    Raises:
        ValueError: On a bad timestamp or non-numeric field.
    """
    _expect_object(payload)
    last_updated = payload.get("lastUpdated")
    state = LearnerState(
        preference_weights=preference_weights_from_dict(
            payload.get("preferenceWeights") or {}
        ),
        comprehension_level=_number(payload, "comprehensionLevel", 0.5),
        content_type_preferences=content_type_preferences_from_dict(
            payload.get("contentTypePreferences") or {}
        ),
        difficulty_adjustment=_number(payload, "difficultyAdjustment", 0.0),
        data_points=int(_number(payload, "dataPoints", 0)),
    )
    if last_updated:
        state.last_updated = parse_datetime(last_updated)
    return state


def learner_state_to_dict(state: LearnerState) -> dict[str, Any]:
    return {
        "preferenceWeights": preference_weights_to_dict(state.preference_weights),
        "comprehensionLevel": state.comprehension_level,
        "contentTypePreferences": content_type_preferences_to_dict(
            state.content_type_preferences
        ),
        "difficultyAdjustment": state.difficulty_adjustment,
        "lastUpdated": format_datetime(state.last_updated),
        "dataPoints": state.data_points,
    }


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


def generation_parameters_from_dict(payload: dict[str, Any]) -> GenerationParameters:
    return GenerationParameters(
        lexical_novelty_budget=_as_float(
            "lexicalNoveltyBudget", _require(payload, "lexicalNoveltyBudget")
        ),
        construction_sets=[str(c) for c in _require(payload, "constructionSets")],
        variation_pattern=str(_require(payload, "variationPattern")),
        comprehensibility_target=_as_float(
            "comprehensibilityTarget", _require(payload, "comprehensibilityTarget")
        ),
        semantic_stability=_as_float(
            "semanticStability", _require(payload, "semanticStability")
        ),
        discourse_complexity=payload.get("discourseComplexity"),
        vocabulary_level=payload.get("vocabularyLevel"),
        grammar_complexity=payload.get("grammarComplexity"),
    )


def generation_parameters_to_dict(params: GenerationParameters) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "lexicalNoveltyBudget": params.lexical_novelty_budget,
        "constructionSets": list(params.construction_sets),
        "variationPattern": params.variation_pattern,
        "comprehensibilityTarget": params.comprehensibility_target,
        "semanticStability": params.semantic_stability,
    }
    # Reserved fields are omitted until set
    if params.discourse_complexity is not None:
        payload["discourseComplexity"] = params.discourse_complexity
    if params.vocabulary_level is not None:
        payload["vocabularyLevel"] = params.vocabulary_level
    if params.grammar_complexity is not None:
        payload["grammarComplexity"] = params.grammar_complexity
    return payload


def recommendations_to_dict(recs: AdaptationRecommendations) -> dict[str, Any]:
    return {
        "recommendedFormats": list(recs.recommended_formats),
        "recommendedGenres": list(recs.recommended_genres),
        "difficultyAdjustment": recs.difficulty_adjustment,
        "templateRecommendations": list(recs.template_recommendations),
    }


def guidance_to_dict(guidance: PromptGuidance) -> dict[str, str]:
    return {
        "meaningFirstApproach": guidance.meaning_first_approach,
        "variationSpecification": guidance.variation_specification,
        "comprehensibilityGuidance": guidance.comprehensibility_guidance,
        "semanticAnchoringGuidance": guidance.semantic_anchoring_guidance,
    }


# ---------------------------------------------------------------------------
# Timestamp helpers
# ---------------------------------------------------------------------------


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 string (a trailing ``Z`` is accepted) into UTC-aware form.

    Raises:
        ValueError: If *value* is not a parsable timestamp.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"Invalid timestamp {value!r}") from exc
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def format_datetime(dt: datetime) -> str:
    """Format *dt* as ISO-8601; naive datetimes are assumed UTC."""
    return (dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)).isoformat()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _expect_object(payload: Any) -> None:
    if not isinstance(payload, dict):
        raise ValueError(f"Expected an object, got {type(payload).__name__}")


def _require(payload: dict[str, Any], key: str) -> Any:
    _expect_object(payload)
    if payload.get(key) is None:
        raise ValueError(f"Missing required field {key!r}")
    return payload[key]


def _number(payload: dict[str, Any], key: str, default: float) -> float:
    _expect_object(payload)
    value = payload.get(key)
    if value is None:
        return default
    return _as_float(key, value)


def _as_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Field {key!r} must be numeric, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Field {key!r} must be numeric, got {value!r}") from exc


def _score_map(payload: Any) -> dict[str, float]:
    if not payload:
        return {}
    _expect_object(payload)
    return {str(k): _as_float(k, v) for k, v in payload.items()}


def _enum(enum_cls: Any, value: Any) -> Any:
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValueError(
            f"Invalid {enum_cls.__name__} {value!r}; expected one of: {allowed}"
        ) from exc
