"""JSON snapshot of the current ratings, used for fast startup."""
from __future__ import annotations

from pathlib import Path
from typing import Mapping
import json
import logging

from .errors import SnapshotError

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Single pretty-printed ``{entity: rating}`` file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> dict[str, int]:
        """Parse the snapshot, raising :class:`SnapshotError` on bad content."""
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"{self.path}: invalid JSON ({exc})") from exc
        if not isinstance(data, dict):
            raise SnapshotError(f"{self.path}: expected an object of entity ratings")
        for name, rating in data.items():
            # bool is an int subclass but never a rating
            if not name or not isinstance(rating, int) or isinstance(rating, bool):
                raise SnapshotError(f"{self.path}: invalid entry {name!r}: {rating!r}")
        return data

    def save(self, ratings: Mapping[str, int]) -> None:
        """Overwrite the snapshot via a temporary file and rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump(dict(ratings), fh, indent=2, ensure_ascii=False)
            tmp_path.replace(self.path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
