"""Result items, their actions and scored wrappers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable

from launchcore.matching import Match


@dataclass
class Action:
    """A named, runnable action attached to an item."""

    id: str
    text: str
    function: Callable[[], object]

    def __call__(self):
        return self.function()


class Item(ABC):
    """A result item displayed in the query results list."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Identifier, unique per extension."""

    @property
    @abstractmethod
    def text(self) -> str:
        """Primary text; used for scoring and must not be empty."""

    @property
    @abstractmethod
    def subtext(self) -> str:
        """Secondary descriptive text."""

    @property
    @abstractmethod
    def icon_urls(self) -> list[str]:
        """URLs used to look up the item icon."""

    @property
    def input_action_text(self) -> str:
        """Replacement input text, usually applied by pressing Tab."""
        return ""

    @property
    def actions(self) -> list[Action]:
        """The actions a user can run on this item."""
        return []


@dataclass(eq=False)
class StandardItem(Item):
    """General purpose item holding its values directly."""

    id: str = ""
    text: str = ""
    subtext: str = ""
    input_action_text: str = ""
    icon_urls: list[str] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)


@dataclass(eq=False)
class RankItem:
    """An item with a score, used to rank results of several handlers."""

    item: Item
    score: float

    def __post_init__(self):
        if isinstance(self.score, Match):
            self.score = self.score.score
        else:
            self.score = float(self.score)

    def __lt__(self, other: RankItem) -> bool:
        return self.score < other.score

    def __gt__(self, other: RankItem) -> bool:
        return self.score > other.score


@dataclass(eq=False)
class IndexItem:
    """An item paired with the lookup string it is indexed under."""

    item: Item
    string: str