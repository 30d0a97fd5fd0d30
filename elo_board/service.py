"""Leaderboard service: ratings, ledger and snapshot kept in step."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping
import asyncio
import logging

from .config import Settings
from .defaults import DEFAULT_LEADERBOARD
from .elo import K_FACTOR, apply_match
from .errors import InternalError, InvalidRequest, ServiceNotReady
from .ledger import RESET_LEADERBOARD, RESET_LOGS, Ledger, error_message, vote_message
from .snapshot import SnapshotStore

logger = logging.getLogger(__name__)

MISSING_PARAMETERS = "Missing required parameters"
INVALID_MODEL_NAMES = "Invalid model names"
INTERNAL_ERROR = "Internal server error"


class LeaderboardService:
    """Owns the in-memory leaderboard and coordinates its persistence.

    ``vote``, ``reset_leaderboard`` and ``reset_logs`` run one at a time
    under a single lock: ledger append, in-memory update and snapshot
    rewrite happen as one step. A crash between the ledger append and the
    snapshot rewrite leaves the snapshot one mutation behind; the ledger is
    written first because it can rebuild the snapshot.
    """

    def __init__(
        self,
        ledger: Ledger,
        snapshot: SnapshotStore,
        defaults: Mapping[str, int] = DEFAULT_LEADERBOARD,
        k: int = K_FACTOR,
    ):
        self.ledger = ledger
        self.snapshot = snapshot
        self.defaults = dict(defaults)
        self.k = k
        self._ratings: dict[str, int] = {}
        self._lock = asyncio.Lock()
        self._ready = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "LeaderboardService":
        return cls(Ledger(settings.log_path), SnapshotStore(settings.leaderboard_path))

    @property
    def ready(self) -> bool:
        return self._ready

    def initialize(self) -> None:
        """Load the snapshot (or defaults) and the ledger.

        Errors propagate: a service that failed to initialize must not serve.
        """
        if self.snapshot.exists():
            self._ratings = self.snapshot.load()
            logger.info("Loaded %d ratings from %s", len(self._ratings), self.snapshot.path)
        else:
            self._ratings = dict(self.defaults)
            self.snapshot.save(self._ratings)
            logger.info("No snapshot found, wrote defaults to %s", self.snapshot.path)
        self.ledger.load()
        self._ready = True

    def _check_ready(self) -> None:
        if not self._ready:
            raise ServiceNotReady("Service not initialized")

    def record_error(self, endpoint: str, description: str) -> None:
        """Append an error entry; a failed write only reaches the diagnostic log."""
        try:
            self.ledger.append(error_message(endpoint, description))
        except OSError:
            logger.exception("Could not write ledger entry for %s error: %s", endpoint, description)

    @contextmanager
    def _storage(self, endpoint: str) -> Iterator[None]:
        """Turn file-system failures into :class:`InternalError`."""
        try:
            yield
        except OSError as exc:
            logger.error("Storage failure on %s", endpoint, exc_info=exc)
            self.record_error(endpoint, str(exc))
            raise InternalError(INTERNAL_ERROR) from exc

    async def get(self) -> dict[str, int]:
        self._check_ready()
        ratings = dict(self._ratings)
        with self._storage("/get"):
            self.ledger.append("/get")
        return ratings

    async def vote(self, winner: str | None, loser: str | None, obj: str | None) -> dict[str, int]:
        """Apply one decisive comparison and return the updated leaderboard."""
        self._check_ready()
        if not winner or not loser or not obj:
            self.record_error("/vote", MISSING_PARAMETERS)
            raise InvalidRequest(MISSING_PARAMETERS)

        async with self._lock:
            if winner not in self._ratings or loser not in self._ratings:
                self.record_error("/vote", f"{INVALID_MODEL_NAMES} ({winner}, {loser})")
                raise InvalidRequest(INVALID_MODEL_NAMES)

            updated = dict(self._ratings)
            apply_match(updated, winner, loser, self.k)
            with self._storage("/vote"):
                self.ledger.append(vote_message(winner, loser, obj))
                self._ratings = updated
                self.snapshot.save(self._ratings)
            return dict(self._ratings)

    async def reset_leaderboard(self) -> str:
        self._check_ready()
        async with self._lock:
            with self._storage(RESET_LEADERBOARD):
                self.ledger.append(RESET_LEADERBOARD)
                self._ratings = dict(self.defaults)
                self.snapshot.save(self._ratings)
        return "Leaderboard reset successfully"

    async def reset_logs(self) -> str:
        self._check_ready()
        async with self._lock:
            with self._storage(RESET_LOGS):
                self.ledger.reset()
                self.ledger.append(RESET_LOGS)
        return "Logs reset successfully"

    async def status(self) -> dict[str, Any]:
        self._check_ready()
        with self._storage("/admin/status"):
            status = {
                "size_mb_logs": round(self.ledger.size_bytes() / (1024 * 1024), 2),
                "total_requests": len(self.ledger),
                "total_models": len(self._ratings),
                "last_request": self.ledger.last_entry,
            }
            self.ledger.append("/admin/status")
        return status

    async def get_logs(self) -> list[str]:
        self._check_ready()
        entries = self.ledger.entries
        with self._storage("/admin/get-logs"):
            self.ledger.append("/admin/get-logs")
        return entries
