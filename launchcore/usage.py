"""Usage history of activated items and the resulting ranking scores."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from launchcore import config
from launchcore.items import RankItem

log = logging.getLogger(__name__)

DATABASE_FILE_NAME = "launchcore.db"
CFG_MEMORY_DECAY = "memoryDecay"
DEF_MEMORY_DECAY = 0.5
CFG_PRIO_PERFECT = "prioritizePerfectMatch"
DEF_PRIO_PERFECT = True

_CREATE_TABLE = (
    "CREATE TABLE IF NOT EXISTS activation ( "
    "    timestamp INTEGER DEFAULT CURRENT_TIMESTAMP, "
    "    query TEXT, "
    "    extension_id, "
    "    item_id TEXT, "
    "    action_id TEXT "
    "); "
)


@dataclass(frozen=True)
class Activation:
    """A single recorded activation of an item action."""

    query: str
    extension_id: str
    item_id: str
    action_id: str


def _default_database_path() -> Path:
    data_path = config.data_location() / DATABASE_FILE_NAME
    legacy_path = config.config_location() / DATABASE_FILE_NAME
    data_path.parent.mkdir(parents=True, exist_ok=True)
    if legacy_path.exists():
        if data_path.exists():
            log.warning("Ignoring stale usage database at %s", legacy_path)
        else:
            try:
                legacy_path.rename(data_path)
            except OSError:
                log.critical("Failed to move the usage database to data location")
    return data_path


def _text(value) -> str:
    return "" if value is None else str(value)


class UsageHistory:
    """Records activations and turns them into usage scores.

    Scores applied to rank items fall into these intervals::

        perfect, recent        (3, 4]   3 + usage score
        perfect, not recent    (2, 3]   2 + 1 / text length
        recent                 (1, 2]   1 + usage score
        matched                (0, 1]   match score
        not matched           (-1, 0]  -1 + 1 / text length

    Perfect matches are prioritized only if ``prioritize_perfect_match``.
    """

    def __init__(self, database_path: str | Path | None = None,
                 settings: config.Settings | None = None):
        self._settings = settings if settings is not None else config.settings()
        path = Path(database_path) if database_path is not None else _default_database_path()

        self._db_lock = threading.RLock()
        self._data_lock = threading.Lock()
        self._connection = sqlite3.connect(str(path), check_same_thread=False)
        self._initialize_table()

        self._memory_decay = float(self._settings.value(CFG_MEMORY_DECAY, DEF_MEMORY_DECAY))
        self._prioritize_perfect_match = bool(
            self._settings.value(CFG_PRIO_PERFECT, DEF_PRIO_PERFECT))
        self._scores: dict[tuple[str, str], float] = {}
        self.update_scores()

    def __enter__(self) -> UsageHistory:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _initialize_table(self) -> None:
        with self._db_lock, self._connection:
            self._connection.execute(_CREATE_TABLE)

    @property
    def memory_decay(self) -> float:
        """Weight factor per step back in the activation history."""
        with self._data_lock:
            return self._memory_decay

    @memory_decay.setter
    def memory_decay(self, value: float) -> None:
        self._settings.set_value(CFG_MEMORY_DECAY, float(value))
        with self._data_lock:
            self._memory_decay = float(value)
        self.update_scores()

    @property
    def prioritize_perfect_match(self) -> bool:
        """Whether perfect matches rank above all other matches."""
        with self._data_lock:
            return self._prioritize_perfect_match

    @prioritize_perfect_match.setter
    def prioritize_perfect_match(self, value: bool) -> None:
        self._settings.set_value(CFG_PRIO_PERFECT, bool(value))
        with self._data_lock:
            self._prioritize_perfect_match = bool(value)

    @property
    def scores(self) -> dict[tuple[str, str], float]:
        """Usage scores by (extension id, item id), each in [0, 1)."""
        with self._data_lock:
            return dict(self._scores)

    def _apply_score(self, extension_id: str, rank_item: RankItem) -> None:
        usage = self._scores.get((extension_id, rank_item.item.id))
        if self._prioritize_perfect_match and rank_item.score == 1.0:
            if usage is not None:
                rank_item.score = 3.0 + usage
            else:
                rank_item.score = 2.0 + 1.0 / len(rank_item.item.text)
        elif usage is not None:
            rank_item.score = 1.0 + usage
        elif rank_item.score == 0.0:
            rank_item.score = -1.0 + 1.0 / len(rank_item.item.text)

    def apply_scores(self, extension_id: str, rank_items: Iterable[RankItem]) -> None:
        """Adjust the scores of ``rank_items`` of one extension in place."""
        with self._data_lock:
            for rank_item in rank_items:
                self._apply_score(extension_id, rank_item)

    def apply_pair_scores(self, pairs) -> None:
        """Adjust scores of (extension, rank item) pairs in place."""
        with self._data_lock:
            for extension, rank_item in pairs:
                self._apply_score(extension.id, rank_item)

    def add_activation(self, query: str, extension_id: str, item_id: str, action_id: str) -> None:
        """Record an activation and recompute the scores."""
        log.debug("Database: Adding activation…")
        with self._db_lock, self._connection:
            self._connection.execute(
                "INSERT INTO activation (query, extension_id, item_id, action_id) "
                "VALUES (:query, :extension_id, :item_id, :action_id);",
                {"query": query, "extension_id": extension_id,
                 "item_id": item_id, "action_id": action_id},
            )
        self.update_scores()

    def clear_activations(self) -> None:
        """Delete all recorded activations and recompute the scores."""
        log.debug("Clearing activations…")
        with self._db_lock:
            with self._connection:
                self._connection.execute("DROP TABLE activation;")
            self._initialize_table()
        self.update_scores()

    def activations(self) -> list[Activation]:
        """Recorded activations with an item id, oldest first."""
        with self._db_lock:
            rows = self._connection.execute(
                "SELECT query, extension_id, item_id, action_id FROM activation "
                "WHERE item_id<>'' ORDER BY rowid"
            ).fetchall()
        return [Activation(*map(_text, row)) for row in rows]

    def update_scores(self) -> None:
        """Recompute usage scores from the recorded activations."""
        log.debug("Updating usage scores…")
        activations = self.activations()
        decay = self.memory_decay

        weights: dict[tuple[str, str], float] = defaultdict(float)
        count = len(activations)
        for offset, activation in enumerate(activations):
            weights[(activation.extension_id, activation.item_id)] += decay ** (count - offset)

        by_weight: dict[float, list[tuple[str, str]]] = defaultdict(list)
        for key, weight in weights.items():
            by_weight[weight].append(key)

        # Distribute scores linearly over [0, 1) preserving the weight order.
        scores: dict[tuple[str, str], float] = {}
        distinct = len(by_weight)
        for rank, weight in enumerate(sorted(by_weight)):
            for key in by_weight[weight]:
                scores[key] = rank / distinct

        with self._data_lock:
            self._scores = scores

    def close(self) -> None:
        """Close the database connection."""
        with self._db_lock:
            self._connection.close()