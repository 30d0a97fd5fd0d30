"""ELO rating utilities."""
from __future__ import annotations
from dataclasses import dataclass, field
import math

K_FACTOR = 32


def expected_score(rating_a: float, rating_b: float) -> float:
    """Return expected score for player A against player B."""
    return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / 400))


def update_rating(rating: float, expected: float, score: float, k: float = K_FACTOR) -> float:
    """Update a single rating given expected score and actual score."""
    return rating + k * (score - expected)


def round_half_away_from_zero(value: float) -> int:
    """Round to the nearest integer, ties going away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def update_ratings(rating_winner: int, rating_loser: int, k: int = K_FACTOR) -> tuple[int, int]:
    """Return the new ``(winner, loser)`` ratings after a decisive match.

    Each side is rounded on its own, so the pair is not guaranteed to be
    zero-sum: the total may move by one point.
    """
    expected_winner = expected_score(rating_winner, rating_loser)
    expected_loser = 1 - expected_winner
    new_winner = update_rating(rating_winner, expected_winner, 1, k)
    new_loser = update_rating(rating_loser, expected_loser, 0, k)
    return round_half_away_from_zero(new_winner), round_half_away_from_zero(new_loser)


def apply_match(ratings: dict[str, int], winner: str, loser: str, k: int = K_FACTOR) -> tuple[int, int]:
    """Update ``ratings`` in place for a decisive match between two keys.

    Expected scores come from the ratings before the match. The loser is
    read after the winner has been written, so an entity matched against
    itself ends where it started.
    """
    expected_winner = expected_score(ratings[winner], ratings[loser])
    ratings[winner] = round_half_away_from_zero(update_rating(ratings[winner], expected_winner, 1, k))
    ratings[loser] = round_half_away_from_zero(update_rating(ratings[loser], 1 - expected_winner, 0, k))
    return ratings[winner], ratings[loser]


@dataclass
class EloRatingSystem:
    """In-memory rating table for a fixed set of entities."""
    k: int = K_FACTOR
    ratings: dict[str, int] = field(default_factory=dict)

    def add_player(self, name: str, rating: int = 1000) -> None:
        self.ratings[name] = rating

    def record_match(self, winner: str, loser: str) -> tuple[int, int]:
        """Record a decisive match and update ratings.

        Parameters
        ----------
        winner, loser: str
            Entity identifiers. Both must have been added previously; a
            ``KeyError`` is raised otherwise and no rating changes.
        """
        return apply_match(self.ratings, winner, loser, self.k)
