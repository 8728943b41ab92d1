"""Query objects and the handler interfaces that answer them."""

from __future__ import annotations

import dataclasses
import threading
from abc import abstractmethod
from typing import TYPE_CHECKING, Iterable, Sequence, Union

from launchcore.extensions import Extension
from launchcore.itemindex import ItemIndex
from launchcore.items import IndexItem, Item, RankItem
from launchcore.matching import MatchConfig

if TYPE_CHECKING:
    from launchcore.usage import UsageHistory

Items = Union[Item, Iterable[Item]]


class Query(Extension.__base__):  # plain ABC, not an extension
    """A running user query that handlers add their results to."""

    @property
    @abstractmethod
    def synopsis(self) -> str:
        """The synopsis of the handler processing this query."""

    @property
    @abstractmethod
    def trigger(self) -> str:
        """The trigger of this query; empty for global queries."""

    @property
    @abstractmethod
    def string(self) -> str:
        """The query string, excluding the trigger."""

    @property
    @abstractmethod
    def is_finished(self) -> bool:
        """True once the query processing stopped."""

    @property
    @abstractmethod
    def is_valid(self) -> bool:
        """True as long as the query has not been cancelled."""

    @property
    def is_triggered(self) -> bool:
        """True if this query has a trigger."""
        return bool(self.trigger)

    @property
    @abstractmethod
    def matches(self) -> Sequence:
        """The results added so far."""

    @property
    @abstractmethod
    def fallbacks(self) -> Sequence:
        """The fallback results of this query."""

    @abstractmethod
    def activate_match(self, item: int, action: int = 0) -> None:
        """Run action ``action`` of match ``item``."""

    @abstractmethod
    def activate_fallback(self, item: int, action: int = 0) -> None:
        """Run action ``action`` of fallback ``item``."""

    @abstractmethod
    def add(self, items: Items) -> None:
        """Add one item or several items; prefer batches to avoid flicker."""

    def __str__(self) -> str:
        return self.string


class TriggerQueryHandler(Extension):
    """A handler that alone processes queries starting with its trigger."""

    def synopsis(self) -> str:
        """Hint about accepted query strings, shown on empty query."""
        return ""

    def allow_trigger_remap(self) -> bool:
        """Whether users may remap the trigger."""
        return True

    def default_trigger(self) -> str:
        """The trigger used unless the user defines one."""
        return f"{self.id} "

    def set_trigger(self, trigger: str) -> None:
        """Informs the handler about the user defined trigger."""

    def supports_fuzzy_matching(self) -> bool:
        """Whether the handler can match fuzzily."""
        return False

    def set_fuzzy_matching(self, enabled: bool) -> None:
        """Switch fuzzy matching; ignored by default."""

    @abstractmethod
    def handle_trigger_query(self, query: Query) -> None:
        """Process ``query``; runs in a worker thread."""


class GlobalQueryHandler(TriggerQueryHandler):
    """A handler returning scored items, usable in the global search.

    ``usage_history`` is attached by the query engine; without one the
    scores are left as the handler returned them.
    """

    usage_history: UsageHistory | None = None

    @abstractmethod
    def handle_global_query(self, query: Query) -> list[RankItem]:
        """Return scored items for ``query``; runs in a worker thread."""

    def handle_empty_query(self, query: Query) -> list[Item]:
        """Items for an empty global query; none by default."""
        return []

    def apply_usage_score(self, rank_items: list[RankItem]) -> None:
        """Adjust the scores of ``rank_items`` in place by the usage history."""
        if self.usage_history is not None:
            self.usage_history.apply_scores(self.id, rank_items)

    def handle_trigger_query(self, query: Query) -> None:
        """Add the global results, usage scored and sorted best first."""
        rank_items = self.handle_global_query(query)
        self.apply_usage_score(rank_items)
        rank_items.sort(key=lambda rank_item: rank_item.score, reverse=True)
        query.add([rank_item.item for rank_item in rank_items])


class FallbackHandler(Extension):
    """Provides items shown when a query yields no results."""

    @abstractmethod
    def fallbacks(self, string: str) -> list[Item]:
        """The fallback items for the query ``string``."""


class IndexQueryHandler(GlobalQueryHandler):
    """A global handler with built-in indexing and matching.

    Subclasses provide items with lookup strings in
    :meth:`update_index_items` by calling :meth:`set_index_items`.
    """

    def __init__(self):
        self._index: ItemIndex | None = None
        self._index_lock = threading.Lock()

    def supports_fuzzy_matching(self) -> bool:
        return True

    def set_fuzzy_matching(self, enabled: bool) -> None:
        """Set the fuzzy mode of the index, rebuilding it if it changed."""
        with self._index_lock:
            if self._index is None:
                config = MatchConfig(fuzzy=enabled)
            elif self._index.config.fuzzy != enabled:
                config = dataclasses.replace(self._index.config, fuzzy=enabled)
            else:
                return
            self._index = ItemIndex(config)
        self.update_index_items()

    def handle_global_query(self, query: Query) -> list[RankItem]:
        """Search the index for the query string."""
        with self._index_lock:
            index = self._index
        if index is None:
            return []
        return index.search(query.string, lambda: query.is_valid)

    @abstractmethod
    def update_index_items(self) -> None:
        """Rebuild the index items; must call :meth:`set_index_items`."""

    def set_index_items(self, index_items: Iterable[IndexItem]) -> None:
        """Set the items of the index; thread safe."""
        with self._index_lock:
            if self._index is None:
                raise RuntimeError("the index is created by set_fuzzy_matching")
            self._index.set_items(index_items)