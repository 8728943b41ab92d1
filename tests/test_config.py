import pytest

from launchcore.config import (
    Settings,
    cache_location,
    config_location,
    data_location,
    settings,
    state,
)


@pytest.fixture
def store(tmp_path):
    return Settings(tmp_path / "sub" / "config")


def test_missing_key_returns_default(store):
    assert store.value("group/key", "fallback") == "fallback"
    assert store.value("key") is None


def test_string_round_trip(store):
    store.set_value("files/trigger", "f ")
    assert store.value("files/trigger", "") == "f "


@pytest.mark.parametrize("value", [True, False])
def test_bool_round_trip(store, value):
    store.set_value("files/fuzzy", value)
    assert store.value("files/fuzzy", not value) is value


def test_numbers_round_trip(store):
    store.set_value("memoryDecay", 0.5)
    store.set_value("count", 7)
    assert store.value("memoryDecay", 0.0) == 0.5
    assert store.value("count", 0) == 7


def test_invalid_number_falls_back_to_default(store):
    store.set_value("count", "many")
    assert store.value("count", 3) == 3


def test_values_persist_across_instances(store):
    store.set_value("a/b", "c")
    assert Settings(store.path).value("a/b") == "c"


def test_file_uses_ini_sections(store):
    store.set_value("group/key", "v")
    store.set_value("plain", "w")
    text = store.path.read_text(encoding="utf-8")
    assert "[group]" in text
    assert "key = v" in text
    assert "[General]" in text


def test_remove_key(store):
    store.set_value("group/key", "v")
    store.set_value("group/other", "w")
    store.remove("group/key")
    assert store.value("group/key") is None
    assert store.value("group/other") == "w"


def test_remove_group(store):
    store.set_value("group/key", "v")
    store.set_value("group/other", "w")
    store.remove("group")
    assert store.value("group/key") is None
    assert store.value("group/other") is None


def test_invalid_key_raises(store):
    with pytest.raises(ValueError):
        store.value("/key")
    with pytest.raises(ValueError):
        store.set_value("group/", 1)


def test_array_round_trip(store):
    rows = [
        {"extension": "websearch", "fallback": "google"},
        {"extension": "files", "fallback": "home"},
    ]
    store.write_array("fallback_order", rows)
    assert store.read_array("fallback_order") == rows


def test_write_array_replaces_previous_rows(store):
    store.write_array("order", [{"x": "1"}, {"x": "2"}])
    store.write_array("order", [{"x": "3"}])
    assert store.read_array("order") == [{"x": "3"}]


def test_missing_array_is_empty(store):
    assert store.read_array("nothing") == []


def test_settings_and_state_locations():
    assert settings().path.parent == config_location()
    assert settings().path.name == "config"
    assert state().path.parent == cache_location()
    assert state().path.name == "state"


def test_locations_are_distinct_from_each_other():
    locations = {config_location(), data_location(), cache_location()}
    assert len(locations) >= 2
    assert all("launchcore" in str(path) for path in locations)