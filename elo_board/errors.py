"""Error taxonomy shared by the service and the HTTP layer."""
from __future__ import annotations


class LeaderboardError(Exception):
    """Base error; ``status_code`` is the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(LeaderboardError):
    status_code = 400


class Unauthorized(LeaderboardError):
    status_code = 401


class Forbidden(LeaderboardError):
    status_code = 403


class InternalError(LeaderboardError):
    status_code = 500


class ServiceNotReady(LeaderboardError):
    status_code = 503


class ConfigError(LeaderboardError):
    """Settings could not be parsed."""


class SnapshotError(LeaderboardError):
    """The snapshot file is not a valid entity -> rating mapping."""


class LedgerReplayError(LeaderboardError):
    """The ledger cannot be replayed against the rating table."""
