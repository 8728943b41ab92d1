import pytest

from launchcore.config import Settings
from launchcore.handlers import (
    FallbackHandler,
    GlobalQueryHandler,
    IndexQueryHandler,
    Query,
    TriggerQueryHandler,
)
from launchcore.items import IndexItem, Item, RankItem, StandardItem
from launchcore.usage import UsageHistory


class FakeQuery(Query):
    def __init__(self, string="", trigger="", valid=True):
        self._string = string
        self._trigger = trigger
        self._valid = valid
        self.items = []

    @property
    def synopsis(self):
        return ""

    @property
    def trigger(self):
        return self._trigger

    @property
    def string(self):
        return self._string

    @property
    def is_finished(self):
        return False

    @property
    def is_valid(self):
        return self._valid

    @property
    def matches(self):
        return self.items

    @property
    def fallbacks(self):
        return []

    def activate_match(self, item, action=0):
        self.items[item].actions[action]()

    def activate_fallback(self, item, action=0):
        raise IndexError(item)

    def add(self, items):
        if isinstance(items, Item):
            self.items.append(items)
        else:
            self.items.extend(items)


class EchoHandler(TriggerQueryHandler):
    id = "echo"
    name = "Echo"
    description = "Echoes the query"

    def handle_trigger_query(self, query):
        query.add(StandardItem(id="e", text=query.string))


class FixedGlobal(GlobalQueryHandler):
    id = "g"
    name = "Global"
    description = "Fixed results"

    def __init__(self, rank_items):
        self.rank_items = rank_items

    def handle_global_query(self, query):
        return [RankItem(r.item, r.score) for r in self.rank_items]


APPLE = StandardItem(id="apple", text="apple")
BANANA = StandardItem(id="banana", text="banana")


class Fruits(IndexQueryHandler):
    id = "fruits"
    name = "Fruits"
    description = "Fruit index"

    def __init__(self):
        super().__init__()
        self.updates = 0

    def update_index_items(self):
        self.updates += 1
        self.set_index_items([IndexItem(APPLE, "apple"), IndexItem(BANANA, "banana")])


@pytest.fixture
def history(tmp_path):
    with UsageHistory(tmp_path / "usage.db", Settings(tmp_path / "config")) as usage:
        yield usage


def test_trigger_handler_defaults():
    handler = EchoHandler()
    assert TriggerQueryHandler.default_trigger(handler) == "echo "
    assert TriggerQueryHandler.synopsis(handler) == ""
    assert TriggerQueryHandler.allow_trigger_remap(handler) is True
    assert TriggerQueryHandler.supports_fuzzy_matching(handler) is False


def test_trigger_handler_handles_query():
    query = FakeQuery("hello", "echo ")
    expected = StandardItem(id="e", text="hello")
    EchoHandler().handle_trigger_query(query)
    assert [(item.id, item.text) for item in query.matches] == [(expected.id, expected.text)]
    assert query.is_triggered
    assert str(query) == "hello"


def test_handler_without_query_method_is_abstract():
    class Incomplete(TriggerQueryHandler):
        id = "x"
        name = "X"
        description = "X"

    class Complete(Incomplete):
        def handle_trigger_query(self, query):
            query.add([])

    with pytest.raises(TypeError):
        Incomplete()
    assert TriggerQueryHandler.default_trigger(Complete()) == "x "


def test_fallback_handler_is_abstract():
    class Incomplete(FallbackHandler):
        id = "x"
        name = "X"
        description = "X"

    fallback_item = StandardItem(id="f", text="search")

    class Complete(Incomplete):
        def fallbacks(self, string):
            return [fallback_item]

    with pytest.raises(TypeError):
        Incomplete()
    assert Complete().fallbacks("q") == [fallback_item]


def test_global_handler_sorts_best_first_without_history():
    a = StandardItem(id="a", text="alpha")
    b = StandardItem(id="b", text="beta")
    c = StandardItem(id="c", text="gamma")
    handler = FixedGlobal([RankItem(a, 0.2), RankItem(b, 0.9), RankItem(c, 0.5)])
    query = FakeQuery("x")
    handler.handle_trigger_query(query)
    assert [item.id for item in query.matches] == ["b", "c", "a"]


def test_global_handler_empty_query_yields_nothing():
    handler = FixedGlobal([RankItem(StandardItem(id="a", text="alpha"), 0.5)])
    assert GlobalQueryHandler.handle_empty_query(handler, FakeQuery()) == []


def test_usage_score_prioritizes_perfect_match(history):
    handler = FixedGlobal([])
    handler.usage_history = history
    perfect = RankItem(StandardItem(id="p", text="abcd"), 1.0)
    partial = RankItem(StandardItem(id="q", text="abcdef"), 0.5)
    none = RankItem(StandardItem(id="r", text="xyz"), 0.0)
    handler.apply_usage_score([perfect, partial, none])
    assert 2.0 < perfect.score <= 3.0
    assert partial.score == 0.5
    assert -1.0 < none.score <= 0.0


def test_usage_history_reorders_results(history):
    a = StandardItem(id="a", text="alpha")
    b = StandardItem(id="b", text="beta")
    handler = FixedGlobal([RankItem(a, 0.6), RankItem(b, 0.5)])
    handler.usage_history = history
    history.add_activation("be", "g", "b", "")
    query = FakeQuery("x")
    handler.handle_trigger_query(query)
    assert [item.id for item in query.matches] == ["b", "a"]


def test_index_handler_requires_index_before_items():
    with pytest.raises(RuntimeError):
        Fruits().set_index_items([IndexItem(APPLE, "apple")])


def test_index_handler_builds_index_once_per_mode():
    handler = Fruits()
    assert IndexQueryHandler.supports_fuzzy_matching(handler) is True
    IndexQueryHandler.set_fuzzy_matching(handler, False)
    assert handler.updates == 1
    IndexQueryHandler.set_fuzzy_matching(handler, False)
    assert handler.updates == 1
    IndexQueryHandler.set_fuzzy_matching(handler, True)
    assert handler.updates == 2


def test_index_handler_prefix_search():
    handler = Fruits()
    handler.set_fuzzy_matching(False)
    results = handler.handle_global_query(FakeQuery("app"))
    assert [r.item for r in results] == [APPLE]
    assert 0.0 < results[0].score < 1.0


def test_index_handler_fuzzy_search():
    handler = Fruits()
    handler.set_fuzzy_matching(False)
    assert handler.handle_global_query(FakeQuery("applx")) == []
    handler.set_fuzzy_matching(True)
    results = handler.handle_global_query(FakeQuery("applx"))
    assert [r.item for r in results] == [APPLE]


def test_index_handler_without_index_returns_nothing():
    assert IndexQueryHandler.handle_global_query(Fruits(), FakeQuery("apple")) == []


def test_index_handler_trigger_query_empty_string_returns_all():
    handler = Fruits()
    IndexQueryHandler.set_fuzzy_matching(handler, False)
    query = FakeQuery("")
    IndexQueryHandler.handle_trigger_query(handler, query)
    assert {item.id for item in query.matches} == {APPLE.id, BANANA.id}