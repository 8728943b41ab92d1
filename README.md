# launchcore

The search core of an application launcher: index items under lookup
strings, match user input against them (optionally fuzzy), boost results
you picked before, and dispatch each input string either to the handler
whose trigger it starts with or to all enabled global handlers, with
fallback items alongside.

## Installation

```
pip install launchcore
```

To run the test suite:

```
pip install "launchcore[test]"
pytest
```

## Modules

- `launchcore.items`: `Action` (callable), the abstract `Item`, the
  dataclass `StandardItem`, `RankItem` (an item with a score, ordered by
  score) and `IndexItem` (an item with its lookup string).
- `launchcore.matching`: `MatchConfig`, `tokenize(string, config)`,
  `Matcher` and `Match`. Tokenizing drops soft hyphens, and by default
  strips diacritics, lower-cases, splits on separator characters and sorts
  the words. `Matcher.match` accepts a string or anything with a `text`
  attribute; a `Match` is truthy when it matched and `float()` gives its
  score (an empty query scores `0.0`, no match `-1.0`).
- `launchcore.levenshtein`: `Levenshtein.prefix_edit_distance(prefix,
  string, k)`, a banded prefix edit distance limited to `k` errors, and
  `check_prefix_edit_distance(prefix, string, delta)`.
- `launchcore.itemindex`: `ItemIndex`, an inverted word index with prefix
  lookup and, when `config.fuzzy` is set, n-gram based fuzzy lookup.
  `search(string, is_valid)` takes a flag or a callable and gives up with no
  results once it turns false.
- `launchcore.usage`: `UsageHistory`, an SQLite record of activations.
  `add_activation` stores one and recomputes the scores; `apply_scores`
  adjusts rank item scores in place so that perfect matches and recently
  used items rank first. `memory_decay` and `prioritize_perfect_match` are
  stored in the settings.
- `launchcore.extensions`: `ExtensionRegistry` with `added`/`removed`
  `Signal`s, `ExtensionWatcher`, `StrongDependency` (raises
  `DependencyError` if missing) and `WeakDependency` (follows
  (de)registration and calls back).
- `launchcore.handlers`: the `Query` interface and the handler bases
  `TriggerQueryHandler`, `GlobalQueryHandler`, `FallbackHandler` and
  `IndexQueryHandler`.
- `launchcore.execution`: `QueryExecution` runs one trigger handler in a
  worker thread; `GlobalQuery` runs all global handlers in a thread pool,
  sorts by score (ties by text, descending) and adds the results.
- `launchcore.engine`: `QueryEngine` tracks handlers in a registry and
  persists triggers, fuzzy modes, global enablement and the fallback order.
- `launchcore.background`: `BackgroundExecutor`, which runs a task in a
  thread, restarting it if `run()` is called while it runs.
- `launchcore.config`: `Settings` (INI file; keys `group/name`, arrays via
  `read_array`/`write_array`) and `config_location()`, `data_location()`,
  `cache_location()`, `settings()`, `state()`.

## Example

Matching a single item:

```python
from launchcore.items import StandardItem
from launchcore.matching import Matcher

item = StandardItem(id="term", text="Terminal Emulator")
match = Matcher("term").match(item)
if match:
    print(float(match))
```

An index-backed handler only provides its items. The index is created when
`set_fuzzy_matching` is first called, which `QueryEngine` does on
registration; `update_index_items` is then called to fill it.

```python
import tempfile
from pathlib import Path

from launchcore.config import Settings
from launchcore.engine import QueryEngine
from launchcore.extensions import ExtensionRegistry
from launchcore.handlers import IndexQueryHandler
from launchcore.items import IndexItem, StandardItem
from launchcore.usage import UsageHistory


class Apps(IndexQueryHandler):
    id = "apps"
    name = "Applications"
    description = "Launch installed applications"

    def update_index_items(self):
        firefox = StandardItem(id="firefox", text="Firefox")
        self.set_index_items([IndexItem(firefox, "Firefox web browser")])


with tempfile.TemporaryDirectory() as directory:
    settings = Settings(Path(directory) / "config")
    registry = ExtensionRegistry()
    with UsageHistory(Path(directory) / "usage.db", settings=settings) as usage, \
            QueryEngine(registry, usage_history=usage, settings=settings) as engine:
        registry.register(Apps())
        with engine.query("fire") as execution:
            execution.run()
            execution.wait()
            print([item.text for item in execution.matches])
```

Input starting with a handler's trigger (by default its id and a space,
here `"apps "`) goes to that handler alone; anything else is a global
query. Without explicit arguments, `QueryEngine` keeps its settings in
`config_location()` and its usage database in `data_location()`.

## What it does not do

This is a library only. It has no command-line program, no launcher window
or settings screen, no hotkey handling, no icon loading, no plugin loading
and no clipboard or URL opening; those are left to the application that
uses it.