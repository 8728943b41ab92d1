import pytest

from launchcore.config import Settings
from launchcore.extensions import Extension
from launchcore.items import RankItem, StandardItem
from launchcore.usage import (
    CFG_MEMORY_DECAY,
    DEF_MEMORY_DECAY,
    Activation,
    UsageHistory,
)


@pytest.fixture
def config_settings(tmp_path):
    return Settings(tmp_path / "config")


@pytest.fixture
def history(tmp_path, config_settings):
    with UsageHistory(tmp_path / "usage.db", config_settings) as usage:
        yield usage


def rank(item_id, score, text="abcd"):
    return RankItem(StandardItem(id=item_id, text=text), score)


class Ext(Extension):
    def __init__(self, ext_id):
        self._id = ext_id

    @property
    def id(self):
        return self._id

    @property
    def name(self):
        return self._id

    @property
    def description(self):
        return ""


def test_defaults_come_from_source(history):
    assert history.memory_decay == DEF_MEMORY_DECAY
    assert history.prioritize_perfect_match is True
    assert history.scores == {}


def test_unused_perfect_match_is_prioritized(history):
    item = rank("a", 1.0)
    history.apply_scores("ext", [item])
    assert 2.0 < item.score <= 3.0


def test_unmatched_item_falls_below_zero(history):
    item = rank("a", 0.0)
    history.apply_scores("ext", [item])
    assert -1.0 < item.score <= 0.0


def test_partial_match_is_unchanged(history):
    item = rank("a", 0.5)
    history.apply_scores("ext", [item])
    assert item.score == 0.5


def test_recent_items_get_usage_bonus(history):
    history.add_activation("q", "ext", "a", "run")
    perfect, partial = rank("a", 1.0), rank("a", 0.5)
    history.apply_scores("ext", [perfect, partial])
    assert perfect.score == 3.0
    assert partial.score == 1.0


def test_usage_is_per_extension(history):
    history.add_activation("q", "ext", "a", "run")
    item = rank("a", 0.5)
    history.apply_scores("other", [item])
    assert item.score == 0.5


def test_more_recent_activation_scores_higher(history):
    history.add_activation("q", "ext", "a", "run")
    history.add_activation("q", "ext", "a", "run")
    history.add_activation("q", "ext", "b", "run")
    scores = history.scores
    assert scores[("ext", "b")] > scores[("ext", "a")]
    assert all(0.0 <= value < 1.0 for value in scores.values())


def test_equal_weights_share_a_score(history):
    history.memory_decay = 1.0
    history.add_activation("q", "ext", "a", "run")
    history.add_activation("q", "ext", "b", "run")
    first, second = rank("a", 1.0), rank("b", 1.0)
    history.apply_scores("ext", [first, second])
    assert first.score == second.score == 3.0


def test_empty_item_ids_are_ignored(history):
    history.add_activation("q", "ext", "", "run")
    assert history.activations() == []
    assert history.scores == {}


def test_activations_are_recorded_in_order(history):
    history.add_activation("q1", "ext", "a", "run")
    history.add_activation("q2", "ext", "b", "open")
    assert history.activations() == [
        Activation("q1", "ext", "a", "run"),
        Activation("q2", "ext", "b", "open"),
    ]


def test_clear_activations(history):
    history.add_activation("q", "ext", "a", "run")
    history.clear_activations()
    assert history.activations() == []
    item = rank("a", 0.5)
    history.apply_scores("ext", [item])
    assert item.score == 0.5


def test_prioritization_can_be_disabled(history, config_settings):
    history.prioritize_perfect_match = False
    item = rank("a", 1.0)
    history.apply_scores("ext", [item])
    assert item.score == 1.0
    assert config_settings.value("prioritizePerfectMatch", True) is False


def test_pair_scores_use_extension_ids(history):
    history.add_activation("q", "ext", "a", "run")
    used, unused = rank("a", 0.5), rank("a", 0.5)
    history.apply_pair_scores([(Ext("ext"), used), (Ext("other"), unused)])
    assert used.score == 1.0
    assert unused.score == 0.5


def test_activations_and_settings_persist(tmp_path, config_settings):
    path = tmp_path / "persist.db"
    with UsageHistory(path, config_settings) as first:
        first.memory_decay = 0.25
        first.add_activation("q", "ext", "a", "run")
    assert config_settings.value(CFG_MEMORY_DECAY, 0.0) == 0.25
    with UsageHistory(path, config_settings) as second:
        assert second.memory_decay == 0.25
        assert ("ext", "a") in second.scores