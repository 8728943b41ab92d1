"""An inverted word index over items with prefix and fuzzy lookup."""

from __future__ import annotations

import bisect
import threading
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Callable, Iterable, NamedTuple, Union

from launchcore.items import IndexItem, Item, RankItem
from launchcore.levenshtein import Levenshtein
from launchcore.matching import MatchConfig, tokenize

_N = 2

Validity = Union[bool, Callable[[], bool]]


class _Location(NamedTuple):
    index: int
    position: int


class _StringEntry(NamedTuple):
    item_index: int
    max_match_len: int


class _StringMatch(NamedTuple):
    index: int
    position: int
    match_len: int


@dataclass
class _WordEntry:
    word: str
    occurrences: list[_Location]


@dataclass
class _IndexData:
    items: list[Item] = field(default_factory=list)
    strings: list[_StringEntry] = field(default_factory=list)
    words: list[_WordEntry] = field(default_factory=list)
    word_keys: list[str] = field(default_factory=list)
    ngrams: dict[str, list[_Location]] = field(default_factory=dict)


def _ngrams_for_word(word: str) -> list[str]:
    padded = " " * (_N - 1) + word
    return [padded[start:start + _N] for start in range(len(word))]


def _as_callable(is_valid: Validity) -> Callable[[], bool]:
    if callable(is_valid):
        return is_valid
    flag = bool(is_valid)
    return lambda: flag


class ItemIndex:
    """A search index mapping lookup strings to items."""

    def __init__(self, config: MatchConfig | None = None):
        self._config = config if config is not None else MatchConfig()
        self._data = _IndexData()
        self._lock = threading.Lock()

    @property
    def config(self) -> MatchConfig:
        """The match configuration of this index."""
        return self._config

    def set_items(self, index_items: Iterable[IndexItem]) -> None:
        """Replace the indexed items."""
        items: list[Item] = []
        strings: list[_StringEntry] = []
        item_positions: dict[int, int] = {}
        occurrences: dict[str, list[_Location]] = defaultdict(list)

        for string_index, index_item in enumerate(index_items):
            item_index = item_positions.get(id(index_item.item))
            if item_index is None:
                item_index = len(items)
                item_positions[id(index_item.item)] = item_index
                items.append(index_item.item)

            words = tokenize(index_item.string, self._config)
            for position, word in enumerate(words):
                occurrences[word].append(_Location(string_index, position))

            strings.append(_StringEntry(item_index, sum(map(len, words))))

        words = [_WordEntry(word, occurrences[word]) for word in sorted(occurrences)]

        ngrams: dict[str, list[_Location]] = defaultdict(list)
        if self._config.fuzzy:
            for word_index, entry in enumerate(words):
                for position, ngram in enumerate(_ngrams_for_word(entry.word)):
                    ngrams[ngram].append(_Location(word_index, position))

        data = _IndexData(
            items=items,
            strings=strings,
            words=words,
            word_keys=[entry.word for entry in words],
            ngrams=dict(ngrams),
        )
        with self._lock:
            self._data = data

    def _word_matches(self, data: _IndexData, word: str,
                      valid: Callable[[], bool]) -> list[tuple[_WordEntry, int]]:
        length = len(word)

        def truncated(key: str) -> str:
            return key[:length]

        low = bisect.bisect_left(data.word_keys, word, key=truncated)
        high = bisect.bisect_right(data.word_keys, word, key=truncated)
        matches = [(entry, length) for entry in data.words[low:high]]

        if not self._config.fuzzy:
            return matches

        counts: Counter[int] = Counter()
        for ngram in _ngrams_for_word(word):
            if not valid():
                return []
            for location in data.ngrams.get(ngram, ()):
                if low <= location.index < high:
                    continue
                if location.position < length:
                    counts[location.index] += 1

        # Cheap preselection by the n-gram bound, then the edit distance check.
        levenshtein = Levenshtein()
        allowed_errors = length // MatchConfig.error_tolerance_divisor
        minimum_match_count = length - allowed_errors * _N

        for word_index, count in counts.items():
            if not valid():
                return []
            if count < minimum_match_count:
                continue
            entry = data.words[word_index]
            distance = levenshtein.prefix_edit_distance(word, entry.word, allowed_errors)
            if distance <= allowed_errors:
                matches.append((entry, length - distance))

        return matches

    def _string_matches(self, data: _IndexData, word: str,
                        valid: Callable[[], bool]) -> list[_StringMatch]:
        matches = [
            _StringMatch(location.index, location.position, match_len)
            for entry, match_len in self._word_matches(data, word, valid)
            for location in entry.occurrences
        ]
        matches.sort(key=lambda match: match.index)
        return matches

    def search(self, string: str, is_valid: Validity = True) -> list[RankItem]:
        """Return the items matching ``string`` with their best scores.

        ``is_valid`` is a flag or a callable; when it turns false the search
        is abandoned and yields no results.
        """
        valid = _as_callable(is_valid)
        words = tokenize(string, self._config)
        data = self._data
        scores: dict[int, float] = {}

        if not words:
            for entry in data.strings:
                scores.setdefault(entry.item_index, 0.0)
        else:
            matches = self._string_matches(data, words[0], valid)

            for word in words[1:]:
                if not valid() or not matches:
                    return []

                others = self._string_matches(data, word, valid)
                if not others:
                    return []

                by_index: dict[int, list[_StringMatch]] = defaultdict(list)
                for other in others:
                    by_index[other.index].append(other)

                matches = [
                    _StringMatch(right.index, right.position, right.match_len + left.match_len)
                    for left in matches
                    for right in by_index.get(left.index, ())
                    if left.position < right.position
                ]

            for match in matches:
                entry = data.strings[match.index]
                score = match.match_len / entry.max_match_len
                best = scores.get(entry.item_index)
                if best is None or best < score:
                    scores[entry.item_index] = score

        return [RankItem(data.items[item_index], score) for item_index, score in scores.items()]