"""The query engine dispatching user input to the registered handlers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from launchcore import config
from launchcore.execution import GlobalQuery, QueryExecution
from launchcore.extensions import Extension, ExtensionRegistry, Signal
from launchcore.handlers import FallbackHandler, GlobalQueryHandler, TriggerQueryHandler
from launchcore.usage import UsageHistory

log = logging.getLogger(__name__)

CFG_GLOBAL_HANDLER_ENABLED = "global_handler_enabled"
CFG_FALLBACK_ORDER = "fallback_order"
CFG_FALLBACK_EXTENSION = "extension"
CFG_FALLBACK_ITEM = "fallback"
CFG_TRIGGER = "trigger"
CFG_FUZZY = "fuzzy"

FallbackOrder = dict[tuple[str, str], int]


@dataclass
class _TriggerEntry:
    handler: TriggerQueryHandler
    trigger: str
    fuzzy: bool


@dataclass
class _GlobalEntry:
    handler: GlobalQueryHandler
    enabled: bool


def _encode_trigger(trigger: str) -> str:
    # Quoted so that leading and trailing spaces survive the INI format.
    return json.dumps(trigger)


def _decode_trigger(raw: str) -> str:
    try:
        decoded = json.loads(raw)
    except ValueError:
        return raw
    return decoded if isinstance(decoded, str) else raw


class QueryEngine:
    """Tracks query handlers in a registry and creates queries for input strings.

    Handler triggers, fuzzy modes, global enablement and the fallback order
    are persisted in ``settings``. Use as a context manager or call
    :meth:`close` to stop tracking the registry.
    """

    def __init__(self, registry: ExtensionRegistry,
                 usage_history: UsageHistory | None = None,
                 settings: config.Settings | None = None):
        self._registry: ExtensionRegistry | None = registry
        self._settings = settings if settings is not None else config.settings()
        self._owns_usage = usage_history is None
        self.usage_history = (usage_history if usage_history is not None
                              else UsageHistory(settings=self._settings))

        self._trigger_handlers: dict[str, _TriggerEntry] = {}
        self._global_handlers: dict[str, _GlobalEntry] = {}
        self._fallback_handlers: dict[str, FallbackHandler] = {}
        self._active_triggers: dict[str, TriggerQueryHandler] = {}
        self._fallback_order: FallbackOrder = {}

        self.handler_added = Signal()
        self.handler_removed = Signal()

        self._load_fallback_order()
        registry.added.connect(self._on_added)
        registry.removed.connect(self._on_removed)

    def __enter__(self) -> QueryEngine:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Registry tracking

    def _on_added(self, extension: Extension) -> None:
        if isinstance(extension, TriggerQueryHandler):
            handler_id = extension.id
            raw = self._settings.value(f"{handler_id}/{CFG_TRIGGER}", None)
            trigger = extension.default_trigger() if raw is None else _decode_trigger(raw)
            fuzzy = bool(self._settings.value(f"{handler_id}/{CFG_FUZZY}", False))

            extension.set_trigger(trigger)
            extension.set_fuzzy_matching(fuzzy)
            self._trigger_handlers.setdefault(
                handler_id, _TriggerEntry(extension, trigger, fuzzy))
            self._update_active_triggers()

            if isinstance(extension, GlobalQueryHandler):
                enabled = bool(self._settings.value(
                    f"{handler_id}/{CFG_GLOBAL_HANDLER_ENABLED}", True))
                extension.usage_history = self.usage_history
                self._global_handlers.setdefault(handler_id, _GlobalEntry(extension, enabled))

            self.handler_added.emit()

        if isinstance(extension, FallbackHandler):
            self._fallback_handlers.setdefault(extension.id, extension)
            self.handler_added.emit()

    def _on_removed(self, extension: Extension) -> None:
        if isinstance(extension, TriggerQueryHandler):
            self._trigger_handlers.pop(extension.id, None)
            self._update_active_triggers()
            if isinstance(extension, GlobalQueryHandler):
                self._global_handlers.pop(extension.id, None)
            self.handler_removed.emit()

        if isinstance(extension, FallbackHandler):
            self._fallback_handlers.pop(extension.id, None)
            self.handler_removed.emit()

    # Queries

    def query(self, string: str) -> QueryExecution:
        """Create a query for ``string``; the caller starts it with ``run``."""
        fallback_handlers = [handler for _, handler in sorted(self._fallback_handlers.items())]

        for trigger, handler in sorted(self._active_triggers.items()):
            if string.startswith(trigger):
                return QueryExecution(self, fallback_handlers, handler,
                                      string[len(trigger):], trigger)

        global_handlers = [entry.handler for _, entry in sorted(self._global_handlers.items())
                           if entry.enabled]
        return GlobalQuery(self, fallback_handlers, global_handlers, string)

    # Trigger handlers

    def trigger_handlers(self) -> dict[str, TriggerQueryHandler]:
        """All trigger handlers by id."""
        return {handler_id: entry.handler
                for handler_id, entry in sorted(self._trigger_handlers.items())}

    def active_trigger_handlers(self) -> dict[str, TriggerQueryHandler]:
        """The handlers in effect by trigger."""
        return dict(sorted(self._active_triggers.items()))

    def _update_active_triggers(self) -> None:
        active: dict[str, TriggerQueryHandler] = {}
        for handler_id, entry in sorted(self._trigger_handlers.items()):
            existing = active.get(entry.trigger)
            if existing is not None:
                log.warning("Trigger '%s' of '%s' already registered for '%s'.",
                            entry.trigger, handler_id, existing.id)
            else:
                active[entry.trigger] = entry.handler
        self._active_triggers = active

    def trigger(self, handler_id: str) -> str:
        """The trigger of handler ``handler_id``; KeyError if unknown."""
        return self._trigger_handlers[handler_id].trigger

    def set_trigger(self, handler_id: str, trigger: str) -> None:
        """Set the user trigger; empty or the default trigger resets it."""
        entry = self._trigger_handlers[handler_id]

        if entry.trigger == trigger or not entry.handler.allow_trigger_remap():
            return

        default = entry.handler.default_trigger()
        if not trigger or trigger == default:
            entry.trigger = default
            self._settings.remove(f"{handler_id}/{CFG_TRIGGER}")
        else:
            entry.trigger = trigger
            self._settings.set_value(f"{handler_id}/{CFG_TRIGGER}", _encode_trigger(trigger))

        entry.handler.set_trigger(entry.trigger)
        self._update_active_triggers()

    def fuzzy(self, handler_id: str) -> bool:
        """Whether fuzzy matching is on for ``handler_id``; KeyError if unknown."""
        return self._trigger_handlers[handler_id].fuzzy

    def set_fuzzy(self, handler_id: str, fuzzy: bool) -> None:
        """Switch fuzzy matching if the handler supports it."""
        entry = self._trigger_handlers[handler_id]
        if entry.handler.supports_fuzzy_matching():
            entry.fuzzy = bool(fuzzy)
            self._settings.set_value(f"{handler_id}/{CFG_FUZZY}", entry.fuzzy)
            entry.handler.set_fuzzy_matching(entry.fuzzy)

    # Global handlers

    def global_handlers(self) -> dict[str, GlobalQueryHandler]:
        """All global query handlers by id."""
        return {handler_id: entry.handler
                for handler_id, entry in sorted(self._global_handlers.items())}

    def is_enabled(self, handler_id: str) -> bool:
        """Whether global handler ``handler_id`` takes part in global queries."""
        return self._global_handlers[handler_id].enabled

    def set_enabled(self, handler_id: str, enabled: bool = True) -> None:
        """Enable or disable global handler ``handler_id``."""
        entry = self._global_handlers[handler_id]
        if entry.enabled != bool(enabled):
            self._settings.set_value(
                f"{handler_id}/{CFG_GLOBAL_HANDLER_ENABLED}", bool(enabled))
            entry.enabled = bool(enabled)

    # Fallback handlers

    def fallback_handlers(self) -> dict[str, FallbackHandler]:
        """All fallback handlers by id."""
        return dict(sorted(self._fallback_handlers.items()))

    def fallback_order(self) -> FallbackOrder:
        """Priorities by (handler id, item id); higher ranks first."""
        return dict(self._fallback_order)

    def set_fallback_order(self, order: FallbackOrder) -> None:
        """Replace and persist the fallback order."""
        self._fallback_order = dict(order)
        self._save_fallback_order()

    def _save_fallback_order(self) -> None:
        keys = sorted(self._fallback_order)
        keys.sort(key=lambda key: self._fallback_order[key], reverse=True)
        self._settings.write_array(CFG_FALLBACK_ORDER, [
            {CFG_FALLBACK_EXTENSION: extension_id, CFG_FALLBACK_ITEM: item_id}
            for extension_id, item_id in keys
        ])

    def _load_fallback_order(self) -> None:
        rows = self._settings.read_array(CFG_FALLBACK_ORDER)
        order: FallbackOrder = {}
        for rank, row in enumerate(reversed(rows), start=1):
            key = (row.get(CFG_FALLBACK_EXTENSION, ""), row.get(CFG_FALLBACK_ITEM, ""))
            order.setdefault(key, rank)
        self._fallback_order = order

    def close(self) -> None:
        """Stop tracking the registry and release an owned usage history."""
        if self._registry is not None:
            self._registry.added.disconnect(self._on_added)
            self._registry.removed.disconnect(self._on_removed)
            self._registry = None
            if self._owns_usage:
                self.usage_history.close()