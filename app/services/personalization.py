"""
Personalization bonus policy.

Read-only view over a request's UserPreferences. The bonus is additive and
capped, so a tag-matching game can only overtake another game whose score
is at most `cap` higher.
"""

from typing import Iterable

from app.core.config import settings
from app.models.schemas import UserPreferences


class PersonalizationProfile:
    def __init__(
        self,
        preferences: UserPreferences,
        per_match_bonus: float = settings.PERSONALIZATION_BONUS,
        cap: float = settings.PERSONALIZATION_CAP,
    ):
        if per_match_bonus < 0 or cap < 0:
            raise ValueError("per_match_bonus and cap must not be negative")
        self.preferences = preferences
        self.per_match_bonus = per_match_bonus
        self.cap = cap
        # favourite genres and themes can overlap; one preference counts once
        self._wanted = frozenset(preferences.favorite_genres | preferences.preferred_themes)

    @property
    def is_empty(self) -> bool:
        return not self._wanted

    def matches(self, game_tags: Iterable[str]) -> frozenset:
        tags = {t.strip().lower() for t in game_tags or [] if t}
        return self._wanted & tags

    def bonus_for(self, game_tags: Iterable[str]) -> float:
        if self.is_empty:
            return 0.0
        return min(self.cap, self.per_match_bonus * len(self.matches(game_tags)))
