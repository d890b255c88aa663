"""Generation parameter calculator: difficulty tier -> text-generation knobs."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from learner_model.models import (
    DifficultyLevel,
    GenerationParameters,
    PromptGuidance,
    UserPreferences,
)
from learner_model.signals import clamp

logger = logging.getLogger(__name__)

# Targets are jittered by up to +/- half of this amount
_JITTER_SPAN = 0.1
_COMPREHENSIBILITY_BOUNDS = (0.3, 0.95)
_STABILITY_BOUNDS = (0.5, 0.95)

_BEGINNER_CONSTRUCTIONS = [
    "present-tense",
    "simple-questions",
    "basic-connectives",
    "declarative-statements",
    "simple-negation",
]

_INTERMEDIATE_CONSTRUCTIONS = [
    "present-tense",
    "past-tense",
    "future-tense",
    "conditional",
    "simple-questions",
    "complex-questions",
    "basic-connectives",
    "advanced-connectives",
    "relative-clauses",
    "declarative-statements",
    "negation",
]

# Tiers are not strict supersets: the advanced all-* entries stand in for the
# simple-questions, basic-connectives, declarative and negation variants.
_ADVANCED_CONSTRUCTIONS = [
    "present-tense",
    "past-tense",
    "future-tense",
    "conditional",
    "subjunctive",
    "passive-voice",
    "all-question-types",
    "all-connectives",
    "relative-clauses",
    "complex-sentences",
    "all-statement-types",
    "all-negation-patterns",
]


@dataclass(frozen=True)
class TierProfile:
    """Fixed generation settings for one difficulty tier.

    Attributes:
        novelty_rate: Fraction of tokens that may be new vocabulary
            (0.04 is roughly one new lemma per 25 tokens).
        comprehensibility_min: Base comprehensibility target.
        semantic_stability_min: Base semantic-stability target.
        variation_pattern: Variation label handed to the generator.
        construction_sets: Permitted grammatical constructions.
    """

    novelty_rate: float
    comprehensibility_min: float
    semantic_stability_min: float
    variation_pattern: str
    construction_sets: tuple[str, ...]


TIER_PROFILES: dict[DifficultyLevel, TierProfile] = {
    DifficultyLevel.BEGINNER: TierProfile(
        novelty_rate=0.04,
        comprehensibility_min=0.7,
        semantic_stability_min=0.8,
        variation_pattern="same-meaning-minimal-variation",
        construction_sets=tuple(_BEGINNER_CONSTRUCTIONS),
    ),
    DifficultyLevel.INTERMEDIATE: TierProfile(
        novelty_rate=0.06,
        comprehensibility_min=0.6,
        semantic_stability_min=0.7,
        variation_pattern="same-meaning-moderate-variation",
        construction_sets=tuple(_INTERMEDIATE_CONSTRUCTIONS),
    ),
    DifficultyLevel.ADVANCED: TierProfile(
        novelty_rate=0.08,
        comprehensibility_min=0.5,
        semantic_stability_min=0.6,
        variation_pattern="same-meaning-extensive-variation",
        construction_sets=tuple(_ADVANCED_CONSTRUCTIONS),
    ),
}


class GenerationParameterCalculator:
    """Computes :class:`~learner_model.models.GenerationParameters` per tier.

    Everything except the comprehensibility and semantic-stability targets is
    a fixed lookup on the difficulty tier.  Those two targets get a small
    uniform jitter of +/-0.05 so repeated calls for the same tier do not
    produce byte-identical prompts.  The jitter is drawn from *rng*, which
    tests can seed.

    Args:
        rng: Random source for the target jitter.  Defaults to a fresh,
            unseeded :class:`random.Random`.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()

    def get_generation_parameters(
        self, preferences: UserPreferences
    ) -> GenerationParameters:
        """Return generation parameters for the learner's difficulty tier.

        Only ``preferences.difficulty_preference`` is read.

        Raises:
            ValueError: If the difficulty preference is not a known tier.
        """
        tier = DifficultyLevel(preferences.difficulty_preference)
        profile = TIER_PROFILES[tier]

        params = GenerationParameters(
            lexical_novelty_budget=profile.novelty_rate,
            construction_sets=list(profile.construction_sets),
            variation_pattern=profile.variation_pattern,
            comprehensibility_target=clamp(
                profile.comprehensibility_min + self._jitter(),
                *_COMPREHENSIBILITY_BOUNDS,
            ),
            semantic_stability=clamp(
                profile.semantic_stability_min + self._jitter(),
                *_STABILITY_BOUNDS,
            ),
        )
        logger.debug(
            "Generation parameters for %s: novelty=%.2f comprehensibility=%.3f "
            "stability=%.3f",
            tier.value,
            params.lexical_novelty_budget,
            params.comprehensibility_target,
            params.semantic_stability,
        )
        return params

    def _jitter(self) -> float:
        return (self._rng.random() - 0.5) * _JITTER_SPAN


def get_generation_parameters(
    preferences: UserPreferences,
    rng: random.Random | None = None,
) -> GenerationParameters:
    """Convenience wrapper around :class:`GenerationParameterCalculator`."""
    return GenerationParameterCalculator(rng).get_generation_parameters(preferences)


def get_prompt_engineering_guidance(
    preferences: UserPreferences,
    params: GenerationParameters,
) -> PromptGuidance:
    """Render the four instruction strings consumed by the prompt builder.

    The wording, the fields each string mentions and the two-decimal float
    formatting are relied upon downstream.  *preferences* is accepted for
    interface symmetry and currently unused.
    """
    constructions = params.construction_sets
    return PromptGuidance(
        meaning_first_approach=(
            "Generate content that prioritizes semantic grounding over grammatical "
            "complexity. Ensure meaning is clear through context, not just "
            f"grammatical form. Use {len(constructions)} construction patterns: "
            f"{', '.join(constructions)}."
        ),
        variation_specification=(
            f"Apply variation pattern: {params.variation_pattern}. Maintain semantic "
            f"stability ({params.semantic_stability:.2f}) while varying linguistic form."
        ),
        comprehensibility_guidance=(
            f"Target comprehensibility: {params.comprehensibility_target:.2f}. Ensure "
            "input sits in zone of partial understanding - enough known material to "
            "infer meaning, enough unknown to generate learning."
        ),
        semantic_anchoring_guidance=(
            "Anchor language to non-linguistic context (narrative, situation, intent). "
            f"Semantic stability requirement: {params.semantic_stability:.2f}."
        ),
    )
