"""gRPC servicer: the entry point for all inbound calls from the request layer.

Messages are ``google.protobuf.Struct`` values carrying the camelCase payloads
handled by :mod:`learner_model.codec`, so the service is registered through a
generic handler and needs no generated stubs.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import grpc
from google.protobuf.struct_pb2 import Struct

from learner_model import codec
from learner_model.models import BehavioralEvent, LearnerState, LikeEngagement
from learner_model.service import ModelService

logger = logging.getLogger(__name__)

SERVICE_NAME = "learner_model.v1.ModelService"

_METHODS = (
    "GetGenerationParameters",
    "GetPromptGuidance",
    "GetAdaptationRecommendations",
    "InterpretSignals",
    "UpdateLearnerState",
    "GetLearnerState",
    "GetVersion",
)


class ModelServicer:
    """Implements the ``learner_model.v1.ModelService`` gRPC service.

    Each method decodes its request with :mod:`learner_model.codec`, calls
    the :class:`~learner_model.service.ModelService`, and encodes the result.
    Decoding errors are reported as ``INVALID_ARGUMENT``; anything else is
    logged and reported as ``INTERNAL``.  On error an empty ``Struct`` is
    returned.

    Args:
        model_service: The :class:`~learner_model.service.ModelService`.
    """

    def __init__(self, model_service: ModelService) -> None:
        self._service = model_service

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def GetGenerationParameters(self, request: Struct, context: Any) -> Struct:
        """Request: ``{preferences}``.  Response: generation parameters."""

        def run(payload: dict[str, Any]) -> dict[str, Any]:
            prefs = codec.preferences_from_dict(payload.get("preferences"))
            params = self._service.get_generation_parameters(prefs)
            return codec.generation_parameters_to_dict(params)

        return self._handle("GetGenerationParameters", request, context, run)

    def GetPromptGuidance(self, request: Struct, context: Any) -> Struct:
        """Request: ``{preferences, parameters?}``.  Response: four guidance strings.

        When ``parameters`` is absent, fresh parameters are computed for the
        preferences first.
        """

        def run(payload: dict[str, Any]) -> dict[str, Any]:
            prefs = codec.preferences_from_dict(payload.get("preferences"))
            if payload.get("parameters"):
                params = codec.generation_parameters_from_dict(payload["parameters"])
            else:
                params = self._service.get_generation_parameters(prefs)
            guidance = self._service.get_prompt_engineering_guidance(prefs, params)
            return codec.guidance_to_dict(guidance)

        return self._handle("GetPromptGuidance", request, context, run)

    # ------------------------------------------------------------------
    # Adaptation and signals
    # ------------------------------------------------------------------

    def GetAdaptationRecommendations(self, request: Struct, context: Any) -> Struct:
        """Request: ``{events, likes, preferences, learnerState?}``."""

        def run(payload: dict[str, Any]) -> dict[str, Any]:
            events, likes = _decode_batch(payload)
            prefs = codec.preferences_from_dict(payload.get("preferences"))
            state = _optional_state(payload)
            recs = self._service.get_adaptation_recommendations(
                events, likes, prefs, state
            )
            return codec.recommendations_to_dict(recs)

        return self._handle("GetAdaptationRecommendations", request, context, run)

    def InterpretSignals(self, request: Struct, context: Any) -> Struct:
        """Request: ``{events, likes}``.  Response: signal interpretation."""

        def run(payload: dict[str, Any]) -> dict[str, Any]:
            events, likes = _decode_batch(payload)
            interpretation = self._service.interpret_signals(events, likes)
            return codec.interpretation_to_dict(interpretation)

        return self._handle("InterpretSignals", request, context, run)

    # ------------------------------------------------------------------
    # Learner state
    # ------------------------------------------------------------------

    def UpdateLearnerState(self, request: Struct, context: Any) -> Struct:
        """Request: ``{interpretation, learnerState?}``.  Response: new state."""

        def run(payload: dict[str, Any]) -> dict[str, Any]:
            if not payload.get("interpretation"):
                raise ValueError("Missing required field 'interpretation'")
            interpretation = codec.interpretation_from_dict(payload["interpretation"])
            state = self._service.update_learner_state(
                interpretation, _optional_state(payload)
            )
            return codec.learner_state_to_dict(state)

        return self._handle("UpdateLearnerState", request, context, run)

    def GetLearnerState(self, request: Struct, context: Any) -> Struct:
        """Request: ``{learnerState}``.  Response: the same state, normalised."""

        def run(payload: dict[str, Any]) -> dict[str, Any]:
            state = _optional_state(payload)
            if state is None:
                raise ValueError("Missing required field 'learnerState'")
            return codec.learner_state_to_dict(self._service.get_learner_state(state))

        return self._handle("GetLearnerState", request, context, run)

    def GetVersion(self, request: Struct, context: Any) -> Struct:
        return self._handle(
            "GetVersion",
            request,
            context,
            lambda payload: {"version": self._service.get_version()},
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _handle(
        self,
        method: str,
        request: Struct,
        context: Any,
        run: Callable[[dict[str, Any]], dict[str, Any]],
    ) -> Struct:
        try:
            payload = codec.struct_to_dict(request)
            return codec.dict_to_struct(run(payload))
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
        except Exception:
            logger.exception("Unexpected error in %s", method)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details(f"Internal error in {method}.")
        return Struct()


def add_model_servicer_to_server(servicer: ModelServicer, server: grpc.Server) -> None:
    """Register *servicer* on *server* under :data:`SERVICE_NAME`."""
    handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(servicer, name),
            request_deserializer=Struct.FromString,
            response_serializer=Struct.SerializeToString,
        )
        for name in _METHODS
    }
    server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),)
    )


def _decode_batch(
    payload: dict[str, Any],
) -> tuple[list[BehavioralEvent], list[LikeEngagement]]:
    events = [codec.event_from_dict(e) for e in payload.get("events") or []]
    likes = [codec.like_from_dict(like) for like in payload.get("likes") or []]
    return events, likes


def _optional_state(payload: dict[str, Any]) -> LearnerState | None:
    raw = payload.get("learnerState")
    return codec.learner_state_from_dict(raw) if raw else None
