"""Execution of user queries by trigger and global query handlers."""

from __future__ import annotations

import itertools
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Protocol

from launchcore.extensions import Extension, Signal
from launchcore.handlers import (
    FallbackHandler,
    GlobalQueryHandler,
    Items,
    Query,
    TriggerQueryHandler,
)
from launchcore.items import Item, RankItem

log = logging.getLogger(__name__)
timing_log = logging.getLogger("launchcore.query_runtimes")

_VISIBLE_BATCH = 20


class FallbackOrderSource(Protocol):
    """Anything that knows the user defined order of fallbacks."""

    def fallback_order(self) -> dict[tuple[str, str], int]:
        ...


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class QueryExecution(Query):
    """A query processed by a single trigger query handler in a worker thread.

    Results are buffered as they are added and moved to :attr:`matches` by
    :meth:`collect_results`, which happens at once as long as the query is
    valid. Use as a context manager to cancel and wait on exit.
    """

    _query_ids = itertools.count()

    def __init__(self, engine: FallbackOrderSource,
                 fallback_handlers: Iterable[FallbackHandler],
                 query_handler: TriggerQueryHandler,
                 string: str,
                 trigger: str = ""):
        self._engine = engine
        self.query_id = next(QueryExecution._query_ids)
        self._trigger = trigger
        self._string = string
        self._query_handler = query_handler
        self._fallback_handlers = list(fallback_handlers)
        self._valid = True

        self._buffer: list[tuple[Extension, Item]] = []
        self._buffer_lock = threading.Lock()
        self._matches: list[tuple[Extension, Item]] = []
        self._fallbacks: list[tuple[Extension, Item]] = []
        self._results_lock = threading.Lock()

        self._thread: threading.Thread | None = None
        self.finished = Signal()

    def __enter__(self) -> QueryExecution:
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()
        if not self.is_finished:
            log.warning("Busy wait on query: #%d", self.query_id)
        self.wait()
        log.debug("Query deleted. [#%d '%s']", self.query_id, self._string)

    # Query interface

    @property
    def synopsis(self) -> str:
        return self._query_handler.synopsis()

    @property
    def trigger(self) -> str:
        return self._trigger

    @property
    def string(self) -> str:
        return self._string

    @property
    def is_valid(self) -> bool:
        return self._valid

    @property
    def is_finished(self) -> bool:
        return self._thread is None or not self._thread.is_alive()

    @property
    def matches(self) -> list[Item]:
        with self._results_lock:
            return [item for _, item in self._matches]

    @property
    def fallbacks(self) -> list[Item]:
        with self._results_lock:
            return [item for _, item in self._fallbacks]

    @property
    def match_pairs(self) -> list[tuple[Extension, Item]]:
        """The matches together with the extension that provided each."""
        with self._results_lock:
            return list(self._matches)

    @property
    def fallback_pairs(self) -> list[tuple[Extension, Item]]:
        """The fallbacks together with the handler that provided each."""
        with self._results_lock:
            return list(self._fallbacks)

    def activate_match(self, item: int, action: int = 0) -> None:
        """Run action ``action`` of match ``item``."""
        with self._results_lock:
            _, target = self._matches[item]
        target.actions[action]()

    def activate_fallback(self, item: int, action: int = 0) -> None:
        """Run action ``action`` of fallback ``item``."""
        with self._results_lock:
            _, target = self._fallbacks[item]
        target.actions[action]()

    def add(self, items: Items) -> None:
        """Add one item or several items to the results of this query."""
        batch = [items] if isinstance(items, Item) else list(items)
        with self._buffer_lock:
            self._buffer.extend((self._query_handler, item) for item in batch)
        if self._valid:
            self.collect_results()

    # Execution

    def run(self) -> None:
        """Start processing the query in a worker thread."""
        if self._thread is not None:
            raise RuntimeError(f"query #{self.query_id} has already been started")
        self._thread = threading.Thread(
            target=self._work, name=f"query-{self.query_id}", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        """Invalidate the query; handlers are expected to stop soon."""
        self._valid = False

    def wait(self) -> None:
        """Block until the worker thread has finished."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def collect_results(self) -> None:
        """Move the buffered results to the matches."""
        with self._buffer_lock:
            if not self._buffer:
                return
            collected, self._buffer = self._buffer, []
            with self._results_lock:
                self._matches.extend(collected)

    def _work(self) -> None:
        try:
            self._run_fallback_handlers()
            start = time.monotonic()
            self._query_handler.handle_trigger_query(self)
            timing_log.debug("│%6d ms│ TRIGGER |%6d│ #%d  '%s' '%s'",
                             _elapsed_ms(start), len(self._matches),
                             self.query_id, self._trigger, self._string)
        except Exception:
            log.warning("TriggerQueryHandler '%s' threw exception:",
                        self._query_handler.id, exc_info=True)
        finally:
            self.finished.emit()

    def _run_fallback_handlers(self) -> None:
        if not self._trigger and not self._string:
            return

        order = self._engine.fallback_order()
        text = f"{self._trigger}{self._string}"
        ranked = [
            (handler, item, order.get((handler.id, item.id), 0))
            for handler in self._fallback_handlers
            for item in handler.fallbacks(text)
        ]
        ranked.sort(key=lambda entry: entry[2], reverse=True)

        with self._results_lock:
            self._fallbacks.extend((handler, item) for handler, item, _ in ranked)


class GlobalQuery(QueryExecution, TriggerQueryHandler):
    """A query processed by all enabled global query handlers at once."""

    def __init__(self, engine: FallbackOrderSource,
                 fallback_handlers: Iterable[FallbackHandler],
                 query_handlers: Iterable[GlobalQueryHandler],
                 string: str):
        super().__init__(engine, fallback_handlers, self, string, "")
        self._query_handlers = list(query_handlers)

    @property
    def id(self) -> str:
        return "globalquery"

    @property
    def name(self) -> str:
        return "Global query"

    @property
    def description(self) -> str:
        return "Runs a bunch of global query handlers"

    @property
    def synopsis(self) -> str:
        return ""

    def _handle(self, handler: GlobalQueryHandler,
                collected: list[tuple[Extension, RankItem]],
                lock: threading.Lock) -> None:
        # Cancelled runs end fast.
        if not self.is_valid:
            return
        try:
            start = time.monotonic()
            if not self._string:
                results = [RankItem(item, 0.0) for item in handler.handle_empty_query(self)]
            else:
                results = list(handler.handle_global_query(self))
            handling_ms = _elapsed_ms(start)

            start = time.monotonic()
            handler.apply_usage_score(results)
            scoring_ms = _elapsed_ms(start)

            with lock:
                collected.extend((handler, rank_item) for rank_item in results)

            timing_log.debug("│%6d ms│%6d ms│%6d│ #%d '%s' %s", handling_ms, scoring_ms,
                             len(results), self.query_id, self._string, handler.id)
        except Exception:
            log.warning("GlobalQueryHandler '%s' threw exception:", handler.id, exc_info=True)

    def handle_trigger_query(self, query: Query) -> None:
        """Run every global handler, rank their results and add them."""
        collected: list[tuple[Extension, RankItem]] = []
        lock = threading.Lock()

        start = time.monotonic()
        if self._query_handlers:
            with ThreadPoolExecutor() as pool:
                list(pool.map(lambda handler: self._handle(handler, collected, lock),
                              self._query_handlers))
        handling_ms = _elapsed_ms(start)

        start = time.monotonic()
        collected.sort(key=lambda pair: (pair[1].score, pair[1].item.text), reverse=True)

        # The visible items go first for fast response times.
        if len(collected) > _VISIBLE_BATCH:
            self._add_rank_items(collected[:_VISIBLE_BATCH])
            self._add_rank_items(collected[_VISIBLE_BATCH:])
        else:
            self._add_rank_items(collected)
        sorting_ms = _elapsed_ms(start)

        timing_log.debug("│%6d ms│%6d ms│%6d│ #%d GLOBAL '%s'", handling_ms, sorting_ms,
                         len(collected), self.query_id, self._string)

    def _add_rank_items(self, pairs: list[tuple[Extension, RankItem]]) -> None:
        with self._buffer_lock:
            self._buffer.extend((extension, rank_item.item) for extension, rank_item in pairs)
        if self._valid:
            self.collect_results()