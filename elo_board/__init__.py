"""ELO leaderboard service with an append-only ledger."""
from .elo import expected_score, update_rating, update_ratings, EloRatingSystem
from .ledger import Ledger, replay
from .snapshot import SnapshotStore
from .service import LeaderboardService

__all__ = [
    "expected_score",
    "update_rating",
    "update_ratings",
    "EloRatingSystem",
    "Ledger",
    "replay",
    "SnapshotStore",
    "LeaderboardService",
]
