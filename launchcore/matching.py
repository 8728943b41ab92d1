"""Tokenizing and scoring of query strings against item texts."""

from __future__ import annotations

import re
import unicodedata
from collections import deque
from dataclasses import dataclass
from typing import ClassVar

from launchcore.levenshtein import Levenshtein

_SEPARATORS = re.compile(r"""[\s\\/\-\[\](){}#!?<>"'=+*.:,;_]+""")
_COMBINING_DIACRITICS = re.compile("[\u0300-\u036f]")
_SOFT_HYPHEN = "\u00ad"


@dataclass
class MatchConfig:
    """Options controlling how strings are tokenized and compared."""

    separator_regex: re.Pattern = _SEPARATORS
    ignore_case: bool = True
    ignore_diacritics: bool = True
    ignore_word_order: bool = True
    fuzzy: bool = False
    error_tolerance_divisor: ClassVar[int] = 4


def tokenize(string: str, config: MatchConfig) -> list[str]:
    """Split ``string`` into normalized words according to ``config``."""
    string = string.replace(_SOFT_HYPHEN, "")

    if config.ignore_diacritics:
        string = _COMBINING_DIACRITICS.sub("", unicodedata.normalize("NFD", string))

    if config.ignore_case:
        string = string.lower()

    tokens = [token for token in config.separator_regex.split(string) if token]

    if config.ignore_word_order:
        tokens.sort()

    return tokens


@dataclass(frozen=True)
class Match:
    """A match score; negative scores mean no match."""

    score: float = -1.0

    def __bool__(self) -> bool:
        return self.is_match

    def __float__(self) -> float:
        return float(self.score)

    @property
    def is_match(self) -> bool:
        return self.score >= 0.0

    @property
    def is_empty_match(self) -> bool:
        return self.score == 0.0

    @property
    def is_exact_match(self) -> bool:
        return abs(self.score - 1.0) * 1e12 <= 1.0


class Matcher:
    """Matches strings or items against a fixed query."""

    def __init__(self, query: str, config: MatchConfig | None = None):
        self.config = config if config is not None else MatchConfig()
        self.query = query
        self.tokens = tokenize(query, self.config)
        self._levenshtein = Levenshtein()

    def match(self, target) -> Match:
        """Score ``target``, a string or an object with a ``text`` attribute."""
        text = target if isinstance(target, str) else target.text

        # An empty query matches everything with a zero score.
        if not self.tokens:
            return Match(0.0)

        pending = deque(self.tokens)
        matched_chars = 0.0
        total_chars = 0.0

        for other in tokenize(text, self.config):
            if pending and len(pending[0]) <= len(other):
                token = pending[0]
                if self.config.fuzzy:
                    allowed = len(token) // self.config.error_tolerance_divisor
                    distance = self._levenshtein.prefix_edit_distance(token, other, allowed)
                    if distance <= allowed:
                        matched_chars += len(token) - distance
                        pending.popleft()
                elif other.startswith(token):
                    matched_chars += len(token)
                    pending.popleft()
            total_chars += len(other)

        if not pending:
            return Match(matched_chars / total_chars)
        return Match(-1.0)