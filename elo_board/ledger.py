"""Append-only event ledger.

Every access, vote, admin action and error is written as one line of the
form ``[<ISO-8601 UTC timestamp>] <message>``. Vote lines carry enough
information to rebuild the leaderboard with :func:`replay`.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Mapping
import logging
import re

from .elo import K_FACTOR, EloRatingSystem
from .errors import LedgerReplayError

logger = logging.getLogger(__name__)

RESET_LEADERBOARD = "/admin/reset-leaderboard"
RESET_LOGS = "/admin/reset-logs"

_ENTRY_RE = re.compile(r"^\[(?P<timestamp>[^\]]+)\] (?P<message>.*)$")
_VOTE_RE = re.compile(r"^/vote (?P<winner>\S+) > (?P<loser>\S+) \((?P<object>.*)\)$")


def utc_timestamp(when: datetime | None = None) -> str:
    """Return ``when`` (default: now) as ``2025-02-02T12:05:09.123Z``."""
    when = when or datetime.now(timezone.utc)
    return when.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_entry(message: str, when: datetime | None = None) -> str:
    """Build a ledger line; line breaks in ``message`` are escaped so one
    entry is always one line on disk."""
    message = message.replace("\r", "\\r").replace("\n", "\\n")
    return f"[{utc_timestamp(when)}] {message}"


def vote_message(winner: str, loser: str, obj: str) -> str:
    return f"/vote {winner} > {loser} ({obj})"


def error_message(endpoint: str, description: str) -> str:
    return f"{endpoint} - Error: {description}"


def parse_entry(line: str) -> tuple[str, str] | None:
    """Split a ledger line into ``(timestamp, message)``."""
    match = _ENTRY_RE.match(line.rstrip("\n"))
    if match is None:
        return None
    return match["timestamp"], match["message"]


@dataclass(frozen=True)
class VoteRecord:
    """A successful vote as recorded in the ledger."""

    timestamp: str
    winner: str
    loser: str
    object: str


def parse_vote(line: str) -> VoteRecord | None:
    """Return the vote described by ``line`` or ``None`` for any other entry."""
    entry = parse_entry(line)
    if entry is None:
        return None
    timestamp, message = entry
    match = _VOTE_RE.match(message)
    if match is None:
        return None
    return VoteRecord(timestamp, match["winner"], match["loser"], match["object"])


def replay(lines: Iterable[str], defaults: Mapping[str, int], k: int = K_FACTOR) -> dict[str, int]:
    """Rebuild a leaderboard from ledger lines.

    Starts from ``defaults`` and applies every vote in order. A successful
    leaderboard reset puts the table back to ``defaults``; access and error
    entries are skipped.
    """
    system = EloRatingSystem(k=k, ratings=dict(defaults))
    for lineno, line in enumerate(lines, start=1):
        entry = parse_entry(line)
        if entry is None:
            continue
        if entry[1] == RESET_LEADERBOARD:
            system.ratings = dict(defaults)
            continue
        vote = parse_vote(line)
        if vote is None:
            continue
        try:
            system.record_match(vote.winner, vote.loser)
        except KeyError as exc:
            raise LedgerReplayError(f"line {lineno}: unknown entity {exc.args[0]!r}") from exc
    return system.ratings


class Ledger:
    """Ledger file plus the in-memory copy of its entries.

    The file is written before memory is touched, so a failed write never
    leaves an entry in memory that is missing on disk.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._entries: list[str] = []

    def load(self) -> None:
        """Read existing entries verbatim, or create an empty ledger file."""
        if self.path.exists():
            with self.path.open("r", encoding="utf-8") as fh:
                self._entries = [line.rstrip("\n") for line in fh if line.strip()]
            logger.info("Loaded %d ledger entries from %s", len(self._entries), self.path)
        else:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("", encoding="utf-8")
            self._entries = []
            logger.info("Created empty ledger at %s", self.path)

    def append(self, message: str) -> str:
        """Timestamp ``message``, persist it and return the formatted entry."""
        entry = format_entry(message)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(entry + "\n")
        self._entries.append(entry)
        return entry

    def reset(self) -> None:
        """Truncate the ledger file and forget every entry."""
        self.path.write_text("", encoding="utf-8")
        self._entries.clear()

    def size_bytes(self) -> int:
        return self.path.stat().st_size

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def last_entry(self) -> str | None:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)
