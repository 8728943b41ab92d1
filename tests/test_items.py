import pytest

from launchcore.items import Action, IndexItem, Item, RankItem, StandardItem
from launchcore.matching import Match


def test_action_call_runs_function():
    calls = []
    action = Action("open", "Open", lambda: calls.append("ran") or "result")
    assert action() == "result"
    assert calls == ["ran"]
    assert action.id == "open"
    assert action.text == "Open"


def test_item_is_abstract():
    with pytest.raises(TypeError):
        Item()


def test_minimal_item_defaults():
    class Minimal(Item):
        id = "m"
        text = "Minimal"
        subtext = "sub"
        icon_urls = ["xdg:m"]

    item = Minimal()
    assert item.input_action_text == ""
    assert item.actions == []
    assert item.text == "Minimal"

    low = RankItem(item, 0.5)
    high = RankItem(item, 0.7)
    assert low < high
    assert low.item is item
    assert IndexItem(item, "minimal").item is item


def test_standard_item_defaults():
    item = StandardItem()
    assert (item.id, item.text, item.subtext, item.input_action_text) == ("", "", "", "")
    assert item.icon_urls == []
    assert item.actions == []


def test_standard_item_lists_are_independent():
    first = StandardItem()
    second = StandardItem()
    first.icon_urls.append("a")
    assert second.icon_urls == []


def test_standard_item_values_and_mutation():
    action = Action("a", "A", lambda: None)
    item = StandardItem("id1", "Text", "Sub", "input", ["icon"], [action])
    assert item.input_action_text == "input"
    assert item.actions == [action]
    item.text = "Other"
    assert item.text == "Other"


def test_standard_items_hash_by_identity():
    a = StandardItem("same", "Same")
    b = StandardItem("same", "Same")
    assert len({a, b}) == 2
    assert a != b


def test_rank_item_from_match_and_float():
    item = StandardItem("i", "Item")
    assert RankItem(item, Match(0.5)).score == 0.5
    assert RankItem(item, 0.25).score == 0.25
    assert RankItem(item, 0.25).item is item


def test_rank_item_ordering():
    item = StandardItem("i", "Item")
    low = RankItem(item, 0.1)
    high = RankItem(item, 0.9)
    assert low < high
    assert high > low
    assert not high < low
    ranked = sorted([high, low, RankItem(item, 0.5)], reverse=True)
    assert [r.score for r in ranked] == sorted((r.score for r in ranked), reverse=True)


def test_index_item_holds_item_and_string():
    item = StandardItem("i", "Item")
    entry = IndexItem(item, "lookup")
    assert entry.item is item
    assert entry.string == "lookup"