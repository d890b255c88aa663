"""Candidate sources that feed the format/genre ranking of the adaptation engine."""

from __future__ import annotations

from abc import ABC, abstractmethod

from learner_model.models import LearnerState, LikeEngagement, UserPreferences


class CandidateSource(ABC):
    """Abstract base class for a source of format and genre candidates.

    The :func:`~learner_model.adaptation.get_adaptation_recommendations`
    engine consults its sources in a fixed priority order and concatenates
    their candidates, skipping anything an earlier source already produced.
    A source's own ordering therefore only matters within its contribution.
    """

    @abstractmethod
    def formats(self, n: int | None = None) -> list[str]:
        """Return up to *n* format labels, best-first (all when *n* is ``None``)."""

    @abstractmethod
    def genres(self, n: int | None = None) -> list[str]:
        """Return up to *n* genre labels, best-first (all when *n* is ``None``)."""


class DeclaredPreferenceSource(CandidateSource):
    """Formats and genres the learner declared, in their declared order."""

    def __init__(self, preferences: UserPreferences) -> None:
        self._preferences = preferences

    def formats(self, n: int | None = None) -> list[str]:
        return [_label(f) for f in self._preferences.preferred_formats][:n]

    def genres(self, n: int | None = None) -> list[str]:
        return list(self._preferences.preferred_genres)[:n]


class LikeTallySource(CandidateSource):
    """Formats and genres ranked by how often the learner liked them.

    Counts are computed fresh from the supplied likes; unlikes are ignored.
    """

    def __init__(self, likes: list[LikeEngagement]) -> None:
        self._format_counts: dict[str, int] = {}
        self._genre_counts: dict[str, int] = {}
        for like in likes:
            if not like.liked:
                continue
            chars = like.characteristics
            _count(self._format_counts, chars.format)
            if chars.genre:
                _count(self._genre_counts, chars.genre)

    def formats(self, n: int | None = None) -> list[str]:
        return top_keys(self._format_counts, n)

    def genres(self, n: int | None = None) -> list[str]:
        return top_keys(self._genre_counts, n)


class LearnerStateSource(CandidateSource):
    """Formats and genres ranked by the learner state's smoothed scores."""

    def __init__(self, state: LearnerState) -> None:
        self._scores = state.content_type_preferences

    def formats(self, n: int | None = None) -> list[str]:
        return top_keys(self._scores.format_scores, n)

    def genres(self, n: int | None = None) -> list[str]:
        return top_keys(self._scores.genre_scores, n)


def top_keys(scores: dict[str, float], n: int | None = None) -> list[str]:
    """Return the keys of *scores* by descending value; ties keep insertion order."""
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    return [key for key, _ in ranked[:n]]


def _count(counts: dict[str, int], key: str) -> None:
    counts[key] = counts.get(key, 0) + 1


def _label(value: object) -> str:
    return getattr(value, "value", value)
